"""Tag upload models.

A ``TagEntityPair`` is one (entity, tag, channels) assertion. Pairs are
grouped into ``TagUploadBatch`` objects of at most
``MAX_TAG_ENTITIES_PER_REQUEST`` entries, and the outcome of sending all
batches is summarised in a ``BulkUploadResult``.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..constants import (
    MAX_TAG_ENTITIES_PER_REQUEST,
    MAXIMUM_ENTITY_NAME_LENGTH,
    MAXIMUM_TAG_NAME_LENGTH,
    MINIMUM_ENTITY_NAME_LENGTH,
    MINIMUM_TAG_NAME_LENGTH,
    TAG_ENTITY_PAIR_TYPE,
)
from ..validation.address import is_address_or_range_or_cidr

EntityType = Literal["ip", "string"]


class TagEntityPair(BaseModel):
    """
    One tag applied to one entity in one or more channels.

    ``entity_type`` is always derived from ``entity_value``; build pairs with
    :meth:`create` rather than passing it in.
    """

    entity_value: str = Field(
        ..., min_length=MINIMUM_ENTITY_NAME_LENGTH, max_length=MAXIMUM_ENTITY_NAME_LENGTH
    )
    tag_value: str = Field(
        ..., min_length=MINIMUM_TAG_NAME_LENGTH, max_length=MAXIMUM_TAG_NAME_LENGTH
    )
    entity_type: EntityType
    channel_ids: tuple[int, ...] = Field(..., min_length=1)

    # Position of the tag in the caller's input, for error reporting
    row_index: int | None = None
    column_index: int | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def create(
        cls,
        entity: str,
        tag: str,
        channel_ids: list[int] | tuple[int, ...],
        row_index: int | None = None,
        column_index: int | None = None,
    ) -> "TagEntityPair":
        """Build a pair, classifying the entity as ``ip`` or ``string``."""
        return cls(
            entity_value=entity,
            tag_value=tag,
            entity_type="ip" if is_address_or_range_or_cidr(entity) else "string",
            channel_ids=tuple(channel_ids),
            row_index=row_index,
            column_index=column_index,
        )

    def to_resource(self) -> dict[str, Any]:
        """Render the JSON:API resource object the server expects."""
        return {
            "type": TAG_ENTITY_PAIR_TYPE,
            "attributes": {
                "type": self.entity_type,
                "entity": self.entity_value,
                "tag": self.tag_value,
                "channel-id": list(self.channel_ids),
            },
        }


@dataclass
class TagUploadBatch:
    """
    Ordered group of pairs sent in a single upload request.

    Attributes:
        index: Zero-based position of the batch in the upload
        pairs: Pairs in input traversal order
    """

    index: int
    pairs: list[TagEntityPair]

    def __post_init__(self) -> None:
        if not 1 <= len(self.pairs) <= MAX_TAG_ENTITIES_PER_REQUEST:
            raise ValueError(
                f"A tag upload batch must contain between 1 and "
                f"{MAX_TAG_ENTITIES_PER_REQUEST} pairs, got {len(self.pairs)}"
            )

    def __len__(self) -> int:
        return len(self.pairs)

    def to_payload(self) -> dict[str, Any]:
        """Request body for ``POST /v2/tag-entity-pairs``."""
        return {"data": [pair.to_resource() for pair in self.pairs]}


@dataclass
class RowRejection:
    """A value that failed validation and was left out of the upload."""

    row_index: int
    column_index: int
    field: Literal["entity", "tag"]
    value: str
    message: str

    def __str__(self) -> str:
        return f"Row {self.row_index} column {self.column_index} ({self.field}): {self.message}"


@dataclass
class ClassificationResult:
    """Accepted pairs and rejected values produced from a set of rows."""

    accepted: list[TagEntityPair] = field(default_factory=list)
    rejected: list[RowRejection] = field(default_factory=list)

    def extend(self, other: "ClassificationResult") -> None:
        self.accepted.extend(other.accepted)
        self.rejected.extend(other.rejected)


@dataclass
class BulkUploadResult:
    """
    Outcome of a bulk tag upload.

    Only the response of the last submitted batch is kept, in
    ``last_response``; it is ``None`` when nothing was uploaded. The counters
    cover every batch that was sent.

    Attributes:
        last_response: Decoded body of the last successful upload request
        batches_submitted: Number of batches the server accepted
        pairs_submitted: Number of tag-entity pairs the server accepted
        rejected: Values skipped because they failed validation
    """

    last_response: Any = None
    batches_submitted: int = 0
    pairs_submitted: int = 0
    rejected: list[RowRejection] = field(default_factory=list)

    @property
    def has_uploads(self) -> bool:
        return self.batches_submitted > 0
