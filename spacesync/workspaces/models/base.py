"""Base class for everything persisted to a key-value area.

Stored payloads use camelCase keys (``colorScheme``, ``pinnedBookmarks``) so
items written by older clients stay readable.  Python code uses snake_case
attribute names; both spellings are accepted on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-ready dict stored in a key-value area."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
