"""Schema loading and validation utilities."""

import json
from pathlib import Path

import jsonschema

_SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


def load_schema(path: Path) -> dict:
    """Load a JSON Schema file and return as dict."""
    with open(path) as f:
        return json.load(f)


def bundled_schema(name: str) -> dict:
    """Load one of the package's bundled schemas by stem (e.g. ``"pool"``)."""
    return load_schema(_SCHEMA_DIR / f"{name}.json")


def schema_errors(document, schema: dict) -> list[str]:
    """Return every validation error message, empty when the document is valid.

    Messages are prefixed with the JSON path of the offending value.
    """
    validator = jsonschema.Draft7Validator(schema)
    errors = []
    found = sorted(
        validator.iter_errors(document), key=lambda e: [str(p) for p in e.path]
    )
    for error in found:
        location = "/".join(str(p) for p in error.path) or "<root>"
        errors.append(f"{location}: {error.message}")
    return errors
