"""Attribute schemas carried by CI types.

A CI type's ``attributes`` document may hold a JSON Schema under the
``schema`` key. When present, every asset of that type must satisfy it.
"""

from __future__ import annotations

from typing import Any, Protocol

SCHEMA_KEY = "schema"


class SchemaValidator(Protocol):
    """Capability that checks an instance against a JSON Schema.

    ``validate`` returns one message per violation (empty when valid) and
    raises ``ValueError`` when the schema itself is malformed.
    """

    def validate(self, schema: dict[str, Any], instance: Any) -> list[str]: ...


def schema_of(type_attributes: dict[str, Any] | None) -> Any | None:
    """The JSON Schema declared by a CI type, or None.

    The value is returned as stored; a malformed schema is reported by the
    validator, not filtered out here.
    """
    if not type_attributes:
        return None
    return type_attributes.get(SCHEMA_KEY)
