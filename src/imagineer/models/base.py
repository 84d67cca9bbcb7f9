"""Shared base for request and response schemas.

Clients exchange camelCase JSON, while the rest of the code uses
snake_case. Every schema accepts both spellings on input and emits
camelCase on output.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base schema with camelCase aliases.

    Responses are built straight from storage records through
    ``from_attributes``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, keyed by snake_case name.

        Explicit nulls are kept so a partial update can clear a field.
        Enum members come out as their plain values.
        """
        return self.model_dump(mode="json", exclude_unset=True)


__all__ = ["ApiModel"]
