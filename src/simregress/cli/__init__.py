"""Command line interface for simregress."""
from .main import cli, main

__all__ = ["cli", "main"]
