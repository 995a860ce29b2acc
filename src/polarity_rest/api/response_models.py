"""Pydantic models for Polarity JSON:API responses.

Only the parts of a document the client reads are modelled; everything
else is kept through ``extra="allow"`` so unknown fields never break
parsing.

Usage:
    document = JsonApiDocument.model_validate(response.body)
    for resource in document.resources():
        print(resource.id, resource.attributes)
"""

from typing import Any

from pydantic import BaseModel, Field


class JsonApiResource(BaseModel):
    """A JSON:API resource object.

    Attributes:
        id: Resource identifier (the server uses strings and integers)
        type: Resource type, e.g. "channels"
        attributes: Resource attributes keyed by dasherized names
    """

    id: str | int | None = None
    type: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}

    def attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)


class JsonApiDocument(BaseModel):
    """Top-level JSON:API document.

    ``data`` is a list for collection endpoints and a single resource for
    member endpoints.
    """

    data: list[JsonApiResource] | JsonApiResource | None = None
    included: list[JsonApiResource] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}

    def resources(self) -> list[JsonApiResource]:
        """Return ``data`` as a list regardless of document shape."""
        if self.data is None:
            return []
        if isinstance(self.data, JsonApiResource):
            return [self.data]
        return list(self.data)
