"""Turn rows of (entity, tag, tag, ...) into validated upload batches.

Overview:
--------
Each input row is a sequence of strings. Column 0 is the entity and the
remaining columns are tags for that entity:

```
[["8.8.8.8", "dns", "google"],
 ["example.com", "phishing"]]
```

Every cell is trimmed and length-checked. A valid (entity, tag) cell
becomes a ``TagEntityPair`` whose type is ``ip`` when the entity is an IP
address, CIDR block or range, and ``string`` otherwise.

Invalid Data Policy:
-------------------
- stop_on_invalid_data=False (default): an invalid entity skips its whole
  row, an invalid tag skips only that tag. Skipped values are recorded as
  ``RowRejection`` objects and logged at debug level.
- stop_on_invalid_data=True: the first invalid value raises
  ``TagValidationError``.

Batching:
--------
``iter_batches`` is a generator. It yields a batch as soon as it holds
``max_batch_size`` pairs, so a consumer can upload batch N before rows for
batch N+1 are even read. When the stop policy raises, the batch being
filled is discarded and never yielded; batches yielded earlier are
unaffected.
"""

from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from ..constants import MAX_TAG_ENTITIES_PER_REQUEST
from ..models.tags import ClassificationResult, RowRejection, TagEntityPair, TagUploadBatch
from ..observability.logger import null_logger
from ..utils.exceptions import TagValidationError
from ..validation.fields import validate_entity_name, validate_tag_name

Row = Sequence[Any]


def _cell_text(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip()


class TagBatchBuilder:
    """
    Validate tag rows and group the resulting pairs into batches.

    Attributes:
        channel_id: Channel every pair is applied to
        stop_on_invalid_data: Raise on the first invalid value instead of skipping it
        max_batch_size: Maximum pairs per batch
        rejected: Values skipped so far by ``iter_batches``
    """

    def __init__(
        self,
        channel_id: int,
        stop_on_invalid_data: bool = False,
        max_batch_size: int = MAX_TAG_ENTITIES_PER_REQUEST,
        logger: Any = None,
    ) -> None:
        if not 1 <= max_batch_size <= MAX_TAG_ENTITIES_PER_REQUEST:
            raise ValueError(
                f"max_batch_size must be between 1 and {MAX_TAG_ENTITIES_PER_REQUEST}"
            )
        self.channel_id = channel_id
        self.stop_on_invalid_data = stop_on_invalid_data
        self.max_batch_size = max_batch_size
        self.logger = logger or null_logger()
        self.rejected: list[RowRejection] = []

    def _reject(
        self, result: ClassificationResult, rejection: RowRejection
    ) -> None:
        if self.stop_on_invalid_data:
            raise TagValidationError(
                rejection.message,
                value=rejection.value,
                field=rejection.field,
                row_index=rejection.row_index,
                column_index=rejection.column_index,
            )
        self.logger.debug(
            "Skipping invalid value",
            field=rejection.field,
            row=rejection.row_index,
            column=rejection.column_index,
            reason=rejection.message,
        )
        result.rejected.append(rejection)

    def classify_row(self, row_index: int, row: Row) -> ClassificationResult:
        """
        Validate one row.

        Returns:
            Accepted pairs in column order and the rejected values

        Raises:
            TagValidationError: If a value is invalid and stop_on_invalid_data is set
        """
        result = ClassificationResult()
        if not row:
            return result

        entity = _cell_text(row[0])
        error = validate_entity_name(entity)
        if error:
            self._reject(result, RowRejection(row_index, 0, "entity", entity, error))
            return result

        for column_index in range(1, len(row)):
            tag = _cell_text(row[column_index])
            error = validate_tag_name(tag)
            if error:
                self._reject(result, RowRejection(row_index, column_index, "tag", tag, error))
                continue

            result.accepted.append(
                TagEntityPair.create(
                    entity,
                    tag,
                    [self.channel_id],
                    row_index=row_index,
                    column_index=column_index,
                )
            )

        return result

    def classify(self, rows: Iterable[Row]) -> ClassificationResult:
        """Validate every row without batching."""
        result = ClassificationResult()
        for row_index, row in enumerate(rows):
            result.extend(self.classify_row(row_index, row))
        return result

    def iter_batches(self, rows: Iterable[Row]) -> Iterator[TagUploadBatch]:
        """
        Yield batches of at most ``max_batch_size`` pairs in input order.

        Rejected values are appended to ``self.rejected`` as rows are read.
        """
        self.rejected = []
        pending: list[TagEntityPair] = []
        batch_index = 0

        for row_index, row in enumerate(rows):
            result = self.classify_row(row_index, row)
            self.rejected.extend(result.rejected)

            for pair in result.accepted:
                pending.append(pair)
                if len(pending) == self.max_batch_size:
                    yield TagUploadBatch(index=batch_index, pairs=pending)
                    batch_index += 1
                    pending = []

        if pending:
            yield TagUploadBatch(index=batch_index, pairs=pending)
