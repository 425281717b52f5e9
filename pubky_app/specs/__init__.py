"""pubky.app specs tooling.

    specs/
    ├── __init__.py      # Core re-exports
    ├── core.py          # Primitives: BLAKE3, canonical JSON, JSON loading
    ├── schema.py        # JSON Schema validation of raw record shapes
    └── __main__.py      # Command-line interface (python -m pubky_app.specs)
"""

from pubky_app.specs.core import (
    PACKAGE_ROOT,
    SCHEMAS_DIR,
    blake3_bytes,
    canonical_json_bytes,
    load_json,
)
from pubky_app.specs.schema import (
    schema_validator,
    validate_against_schema,
)

__all__ = [
    "PACKAGE_ROOT",
    "SCHEMAS_DIR",
    "blake3_bytes",
    "canonical_json_bytes",
    "load_json",
    "schema_validator",
    "validate_against_schema",
]
