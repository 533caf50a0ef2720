"""JSON Schema validation for CI asset attributes (jsonschema, Draft 7)."""

from __future__ import annotations

from typing import Any

import jsonschema
from jsonschema import Draft7Validator
from referencing.exceptions import Unresolvable


class InvalidSchemaError(ValueError):
    """The schema document itself is not a valid JSON Schema."""


class JsonSchemaValidator:
    """Validate instances against schemas compiled per call.

    Schemas live in CI type rows and can change at any time, so nothing
    is cached between calls.
    """

    def validate(self, schema: dict[str, Any], instance: Any) -> list[str]:
        """Return one ``"<json-pointer>: <message>"`` string per violation.

        Raises:
            InvalidSchemaError: if *schema* is not a valid Draft 7 schema, or
                holds a ``$ref`` that does not resolve.
        """
        try:
            Draft7Validator.check_schema(schema)
        except jsonschema.SchemaError as exc:
            raise InvalidSchemaError(exc.message) from exc

        validator = Draft7Validator(schema)
        try:
            errors = sorted(
                validator.iter_errors(instance),
                key=lambda e: [str(p) for p in e.absolute_path],
            )
        except Unresolvable as exc:
            raise InvalidSchemaError(f"Unresolvable reference: {exc}") from exc
        return [
            f"/{'/'.join(str(p) for p in err.absolute_path)}: {err.message}" for err in errors
        ]
