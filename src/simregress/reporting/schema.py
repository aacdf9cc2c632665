"""JSON schema definition for reporter output."""
from __future__ import annotations

SCHEMA_VERSION = "1.0.0"

_NUMBER_OR_NULL = {"type": ["number", "null"]}

JSON_SCHEMA_V1 = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "simregress report",
    "type": "object",
    "required": ["schema_version", "generated_at", "operation", "summary", "cases"],
    "properties": {
        "schema_version": {"type": "string"},
        "generated_at": {"type": "string", "format": "date-time"},
        "operation": {"enum": ["capture", "verify"]},
        "summary": {
            "type": "object",
            "required": ["total", "succeeded", "failed", "errors", "skipped", "duration_s"],
            "properties": {
                "total": {"type": "integer"},
                "succeeded": {"type": "integer"},
                "failed": {"type": "integer"},
                "errors": {"type": "integer"},
                "skipped": {"type": "integer"},
                "duration_s": {"type": "number"},
            },
        },
        "cases": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "status", "duration_ms"],
                "properties": {
                    "id": {"type": "string"},
                    "status": {"enum": ["passed", "failed", "error", "skipped"]},
                    "duration_ms": {"type": "number"},
                    "details": {"type": "string"},
                    "signal_count": {"type": "integer"},
                    "quick_match": {"type": ["boolean", "null"]},
                    "partial": {"type": "array", "items": {"type": "string"}},
                    "comparison": {
                        "type": "object",
                        "required": [
                            "matches",
                            "tolerance",
                            "max_absolute_error",
                            "max_relative_error",
                            "differences",
                        ],
                        "properties": {
                            "matches": {"type": "boolean"},
                            "tolerance": {"type": "string"},
                            "max_absolute_error": _NUMBER_OR_NULL,
                            "max_relative_error": _NUMBER_OR_NULL,
                            "worst_sample": {"type": ["string", "null"]},
                            "differences": {"type": "array", "items": {"type": "string"}},
                        },
                    },
                },
            },
        },
    },
}
