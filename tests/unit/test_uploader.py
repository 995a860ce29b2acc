"""Unit tests for BulkTagUploader."""

import pytest
from conftest import response, sent_requests

from polarity_rest.tagging import BulkTagUploader, TagBatchBuilder
from polarity_rest.utils.exceptions import (
    PartialUploadError,
    TagUploadError,
    TagValidationError,
    TransportError,
)


def rows_with_pairs(count: int) -> list[list[str]]:
    return [[f"host{i}.example.com", "tag"] for i in range(count)]


@pytest.mark.asyncio
async def test_single_batch_upload(mock_transport):
    mock_transport.send.return_value = response(201, {"data": [{"id": "1"}]})
    uploader = BulkTagUploader(mock_transport)

    result = await uploader.upload(TagBatchBuilder(channel_id=5), [["8.8.8.8", "dns", "google"]])

    request = mock_transport.send.await_args.args[0]
    assert request.method == "POST"
    assert request.path == "/v2/tag-entity-pairs"
    assert request.json == {
        "data": [
            {
                "type": "tag-entity-pairs",
                "attributes": {"type": "ip", "entity": "8.8.8.8", "tag": "dns", "channel-id": [5]},
            },
            {
                "type": "tag-entity-pairs",
                "attributes": {
                    "type": "ip",
                    "entity": "8.8.8.8",
                    "tag": "google",
                    "channel-id": [5],
                },
            },
        ]
    }
    assert result.last_response == {"data": [{"id": "1"}]}
    assert result.batches_submitted == 1
    assert result.pairs_submitted == 2


@pytest.mark.asyncio
async def test_4001_pairs_upload_in_three_calls(mock_transport):
    mock_transport.send.side_effect = [
        response(201, {"batch": 0}),
        response(201, {"batch": 1}),
        response(201, {"batch": 2}),
    ]
    uploader = BulkTagUploader(mock_transport)

    result = await uploader.upload(TagBatchBuilder(channel_id=1), rows_with_pairs(4001))

    sizes = [len(request.json["data"]) for request in sent_requests(mock_transport)]
    assert sizes == [2000, 2000, 1]
    assert result.last_response == {"batch": 2}
    assert result.pairs_submitted == 4001


@pytest.mark.asyncio
async def test_empty_input_makes_no_calls(mock_transport):
    result = await BulkTagUploader(mock_transport).upload(TagBatchBuilder(channel_id=1), [])

    mock_transport.send.assert_not_awaited()
    assert result.last_response is None
    assert result.has_uploads is False


@pytest.mark.asyncio
async def test_only_invalid_rows_makes_no_calls(mock_transport):
    result = await BulkTagUploader(mock_transport).upload(
        TagBatchBuilder(channel_id=1), [["", "tag"], ["x" * 300, "tag"]]
    )

    mock_transport.send.assert_not_awaited()
    assert len(result.rejected) == 2


@pytest.mark.asyncio
async def test_first_batch_rejected(mock_transport):
    mock_transport.send.return_value = response(400, {"errors": [{"detail": "bad"}]})

    with pytest.raises(TagUploadError) as exc_info:
        await BulkTagUploader(mock_transport).upload(
            TagBatchBuilder(channel_id=1), rows_with_pairs(3)
        )

    error = exc_info.value
    assert not isinstance(error, PartialUploadError)
    assert error.detail == "Could not apply tags"
    assert error.status == 400
    assert error.body == {"errors": [{"detail": "bad"}]}
    assert len(error.failed_pairs) == 3
    assert error.batch_index == 0
    assert error.batches_submitted == 0


@pytest.mark.asyncio
async def test_later_batch_rejected_is_partial(mock_transport):
    mock_transport.send.side_effect = [response(201, {}), response(500, "Server Error")]

    with pytest.raises(PartialUploadError) as exc_info:
        await BulkTagUploader(mock_transport).upload(
            TagBatchBuilder(channel_id=1), rows_with_pairs(2500)
        )

    error = exc_info.value
    assert error.batch_index == 1
    assert error.batches_submitted == 1
    assert error.pairs_submitted == 2000
    assert len(error.failed_pairs) == 500
    assert error.failed_pairs[0].entity_value == "host2000.example.com"


@pytest.mark.asyncio
async def test_no_further_batches_after_failure(mock_transport):
    mock_transport.send.return_value = response(422, None)

    with pytest.raises(TagUploadError):
        await BulkTagUploader(mock_transport).upload(
            TagBatchBuilder(channel_id=1), rows_with_pairs(4001)
        )

    assert mock_transport.send.await_count == 1


@pytest.mark.asyncio
async def test_stop_policy_keeps_earlier_batches(mock_transport):
    mock_transport.send.return_value = response(201, {"data": [{"id": "1"}]})
    rows = rows_with_pairs(2000) + [["example.com", "t"], ["", "t"]]

    with pytest.raises(TagValidationError) as exc_info:
        await BulkTagUploader(mock_transport).upload(
            TagBatchBuilder(channel_id=1, stop_on_invalid_data=True), rows
        )

    # Only the full batch was sent; the pair buffered before the invalid row was not
    assert mock_transport.send.await_count == 1
    stored = exc_info.value.result
    assert stored.batches_submitted == 1
    assert stored.pairs_submitted == 2000
    assert stored.last_response == {"data": [{"id": "1"}]}
    assert stored.has_uploads is True


@pytest.mark.asyncio
async def test_stop_policy_before_flush_uploads_nothing(mock_transport):
    rows = [["1.2.3.4", "t1", "t2"], ["bad entity " + "x" * 300, "t3"]]

    with pytest.raises(TagValidationError) as exc_info:
        await BulkTagUploader(mock_transport).upload(
            TagBatchBuilder(channel_id=1, stop_on_invalid_data=True), rows
        )

    mock_transport.send.assert_not_awaited()
    assert exc_info.value.result.has_uploads is False


@pytest.mark.asyncio
async def test_transport_error_on_first_batch(mock_transport):
    mock_transport.send.side_effect = TransportError("HTTP Request Error: refused")

    with pytest.raises(TagUploadError) as exc_info:
        await BulkTagUploader(mock_transport).upload(
            TagBatchBuilder(channel_id=1), rows_with_pairs(1)
        )

    error = exc_info.value
    assert not isinstance(error, PartialUploadError)
    assert isinstance(error.__cause__, TransportError)
    assert error.detail == "Could not apply tags: HTTP Request Error: refused"
    assert error.status is None
    assert len(error.failed_pairs) == 1


@pytest.mark.asyncio
async def test_transport_error_after_stored_batch_is_partial(mock_transport):
    mock_transport.send.side_effect = [
        response(201, {"batch": 0}),
        TransportError("HTTP Request Error: reset"),
    ]

    with pytest.raises(PartialUploadError) as exc_info:
        await BulkTagUploader(mock_transport).upload(
            TagBatchBuilder(channel_id=1), rows_with_pairs(2001)
        )

    error = exc_info.value
    assert isinstance(error.__cause__, TransportError)
    assert error.batch_index == 1
    assert error.batches_submitted == 1
    assert error.pairs_submitted == 2000
    assert [pair.entity_value for pair in error.failed_pairs] == ["host2000.example.com"]
    assert error.result.last_response == {"batch": 0}
