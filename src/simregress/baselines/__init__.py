"""Baseline persistence exports."""
from .store import BaselineMetadata, BaselineStore, sanitize_signal_name

__all__ = [
    "BaselineMetadata",
    "BaselineStore",
    "sanitize_signal_name",
]
