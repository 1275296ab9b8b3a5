"""Shared schema configuration."""

from typing import Annotated

from pydantic import BaseModel, StringConstraints
from pydantic.alias_generators import to_camel

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelRequest(BaseModel):
    """Request body accepting camelCase keys (and snake_case field names)."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "forbid",
    }
