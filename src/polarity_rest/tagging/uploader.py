"""Send tag batches to the server one at a time.

Batches are uploaded strictly in order and never concurrently: batch N+1
is not built until batch N has been answered, so a failure always maps to
a contiguous prefix of the input that is already stored. Nothing is
retried or rolled back.
"""

from collections.abc import Iterable
from typing import Any

from ..api.endpoints import PolarityEndpoints
from ..api.transport import RequestSpec, Transport
from ..models.tags import BulkUploadResult, TagUploadBatch
from ..observability.logger import null_logger
from ..utils.exceptions import (
    PartialUploadError,
    TagUploadError,
    TagValidationError,
    TransportError,
)
from .builder import Row, TagBatchBuilder


class BulkTagUploader:
    """Upload the batches produced by a ``TagBatchBuilder``."""

    def __init__(self, transport: Transport, logger: Any = None) -> None:
        self.transport = transport
        self.logger = logger or null_logger()

    async def upload_batch(self, batch: TagUploadBatch, result: BulkUploadResult) -> Any:
        """
        Send a single batch and record it in ``result``.

        Raises:
            TagUploadError: If the first batch is rejected or cannot be sent
            PartialUploadError: If a later batch is rejected or cannot be sent
        """
        error_class = PartialUploadError if result.batches_submitted else TagUploadError
        try:
            response = await self.transport.send(
                RequestSpec(
                    method="POST",
                    path=PolarityEndpoints.TAG_ENTITY_PAIRS,
                    json=batch.to_payload(),
                )
            )
        except TransportError as e:
            self.logger.error("Error Applying Tags", batch=batch.index, error=e.detail)
            raise self._batch_error(
                error_class, f"Could not apply tags: {e.detail}", batch, result
            ) from e

        if response.status_code != 201:
            self.logger.error(
                "Error Applying Tags",
                batch=batch.index,
                status=response.status_code,
                body=response.body,
            )
            raise self._batch_error(
                error_class,
                "Could not apply tags",
                batch,
                result,
                status=response.status_code,
                body=response.body,
            )

        result.last_response = response.body
        result.batches_submitted += 1
        result.pairs_submitted += len(batch)
        self.logger.info("Uploaded tag batch", batch=batch.index, pairs=len(batch))
        return response.body

    @staticmethod
    def _batch_error(
        error_class: type[TagUploadError],
        detail: str,
        batch: TagUploadBatch,
        result: BulkUploadResult,
        status: int | None = None,
        body: Any = None,
    ) -> TagUploadError:
        error = error_class(
            detail,
            status=status,
            body=body,
            failed_pairs=list(batch.pairs),
            batch_index=batch.index,
            batches_submitted=result.batches_submitted,
            pairs_submitted=result.pairs_submitted,
        )
        error.result = result
        return error

    async def upload(self, builder: TagBatchBuilder, rows: Iterable[Row]) -> BulkUploadResult:
        """
        Validate ``rows`` with ``builder`` and upload each batch as it fills.

        Whichever error ends the run carries the partial ``BulkUploadResult``
        as ``.result``.

        Returns:
            Summary holding the last batch response and upload counters

        Raises:
            TagValidationError: If the builder stops on invalid data. Batches
                sent before the invalid value stay on the server.
            TagUploadError: If a batch is rejected or cannot be sent
        """
        result = BulkUploadResult()
        try:
            for batch in builder.iter_batches(rows):
                await self.upload_batch(batch, result)
        except TagValidationError as e:
            e.result = result
            self.logger.error(
                "Tag upload stopped on invalid data",
                row=e.row_index,
                batches=result.batches_submitted,
                pairs=result.pairs_submitted,
            )
            raise
        finally:
            result.rejected = list(builder.rejected)

        self.logger.info(
            "Tag upload complete",
            batches=result.batches_submitted,
            pairs=result.pairs_submitted,
            rejected=len(result.rejected),
        )
        return result
