"""Clearing a channel, including the asynchronous 202 Accepted case.

State Machine:
-------------
```
REQUESTED --DELETE 200--------------------------> COMPLETED
REQUESTED --DELETE 202, wait_until_complete=False--> TIMED_OUT
REQUESTED --DELETE 202, wait_until_complete=True---> PENDING -> POLLING
POLLING   --channel empty------------------------> COMPLETED
POLLING   --status check failed / cancelled------> FAILED
REQUESTED --DELETE failed------------------------> FAILED
```

While POLLING, the channel-empty check runs every ``poll_interval_ms``
(30 seconds by default) with no upper bound, driven by tenacity inside an
asyncio task owned by the operation. The task is cancelled on every exit
path: completion, failure, ``cancel()``, or leaving ``async with``.

TIMED_OUT is a normal result for callers that chose not to wait: the
response carries ``clearComplete: false`` and ``meta.timeout``.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_result, wait_fixed

from ..api.endpoints import PolarityEndpoints
from ..api.response_models import JsonApiDocument
from ..api.transport import RequestSpec, Transport
from ..constants import CLEAR_CHANNEL_POLL_INTERVAL_MS
from ..models.channels import ClearState, completed_response, pending_response
from ..observability.logger import null_logger
from ..utils.exceptions import ClearChannelError, PolarityAPIError, PolarityError


def channel_empty_params(channel_id: int | str) -> dict[str, str]:
    """Query for at most one entity tagged in ``channel_id``, across all users."""
    return {
        "option[count]": "false",
        "option[searchTags]": "false",
        "option[searchComments]": "false",
        "option[searchEntities]": "true",
        "option[searchAllUsers]": "true",
        "option[searchLoggedInUser]": "false",
        "option[searchSelectedUsers]": "false",
        "page[number]": "1",
        "page[size]": "1",
        "filter[tag-entity-pair.channel-id]": str(channel_id),
    }


async def check_channel_empty(transport: Transport, channel_id: int | str) -> bool:
    """
    Return True when no entity is tagged in the channel.

    Raises:
        PolarityAPIError: If the search request is not answered with 200
        TransportError: If the server cannot be reached
    """
    response = await transport.send(
        RequestSpec(
            method="GET",
            path=PolarityEndpoints.SEARCHABLE_ITEMS,
            params=channel_empty_params(channel_id),
        )
    )
    if response.status_code != 200:
        raise PolarityAPIError(
            "Failed to check if channel is empty", status=response.status_code, body=response.body
        )

    try:
        document = JsonApiDocument.model_validate(response.body)
    except ValidationError as e:
        raise PolarityAPIError(
            f"Unexpected searchable-items response: {e}",
            status=response.status_code,
            body=response.body,
        ) from e
    return len(document.resources()) == 0


class ChannelClearOperation:
    """
    One ``DELETE /v2/channels/{id}?option[clearChannel]=true`` request and
    whatever polling it needs.

    Usage:
        async with ChannelClearOperation(transport, 12) as operation:
            result = await operation.run()

    Attributes:
        state: Current ``ClearState``
        response: Body of the DELETE response once received
        result: Value returned by ``run()`` once finished
    """

    def __init__(
        self,
        transport: Transport,
        channel_id: int | str,
        wait_until_complete: bool = True,
        poll_interval_ms: int = CLEAR_CHANNEL_POLL_INTERVAL_MS,
        logger: Any = None,
        empty_check: Callable[[], Awaitable[bool]] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.channel_id = channel_id
        self.wait_until_complete = wait_until_complete
        self.poll_interval_ms = poll_interval_ms
        self.logger = (logger or null_logger()).bind(channel_id=channel_id)
        self._empty_check = empty_check or (lambda: check_channel_empty(transport, channel_id))
        self._sleep = sleep

        self.state = ClearState.REQUESTED
        self.response: Any = None
        self.result: dict[str, Any] | None = None
        self.checks = 0
        self._task: asyncio.Task | None = None

    async def __aenter__(self) -> "ChannelClearOperation":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.cancel()

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000

    def cancel(self) -> None:
        """Stop polling. Has no effect once the operation has finished."""
        self._stop_polling()
        if not self.state.is_terminal:
            self.state = ClearState.FAILED

    def _stop_polling(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self.logger.debug("Channel clear polling cancelled")

    async def run(self) -> dict[str, Any]:
        """
        Clear the channel.

        Returns:
            The DELETE response body with ``clearComplete`` added

        Raises:
            PolarityAPIError: If the DELETE is not answered with 200 or 202
            ClearChannelError: If the channel-empty check fails while polling
            TransportError: If the DELETE cannot be sent
        """
        if self.state is not ClearState.REQUESTED:
            raise RuntimeError(f"Channel clear already {self.state.value}")

        try:
            response = await self.transport.send(
                RequestSpec(
                    method="DELETE",
                    path=PolarityEndpoints.CHANNEL_BY_ID.format(channel_id=self.channel_id),
                    params={"option[clearChannel]": "true"},
                )
            )
        except PolarityError:
            self.state = ClearState.FAILED
            raise

        self.response = response.body

        if response.status_code == 200:
            return self._complete()

        if response.status_code != 202:
            self.state = ClearState.FAILED
            self.logger.error(
                "Error Clearing Channel", status=response.status_code, body=response.body
            )
            raise PolarityAPIError(
                "Failed to clear channel", status=response.status_code, body=response.body
            )

        if not self.wait_until_complete:
            self.state = ClearState.TIMED_OUT
            self.result = pending_response(self.response, self.poll_interval_ms)
            self.logger.info("Channel clear accepted, not waiting for completion")
            return self.result

        self.state = ClearState.PENDING
        self._task = asyncio.create_task(self._poll_until_empty())
        self.state = ClearState.POLLING
        self.logger.info(
            "Channel clear accepted, polling for completion", interval_ms=self.poll_interval_ms
        )

        try:
            await self._task
        except PolarityError as e:
            self.state = ClearState.FAILED
            self.logger.error("Error checking if channel is empty", error=str(e))
            raise ClearChannelError(
                f"Channel {self.channel_id} clear was accepted but checking for completion "
                f"failed: {e.detail}",
                channel_id=self.channel_id,
                response=self.response,
                status=getattr(e, "status", None),
                body=getattr(e, "body", None),
            ) from e
        except asyncio.CancelledError:
            self.state = ClearState.FAILED
            raise
        finally:
            self._stop_polling()

        return self._complete()

    def _complete(self) -> dict[str, Any]:
        self.state = ClearState.COMPLETED
        self.result = completed_response(self.response)
        self.logger.info("Channel cleared", checks=self.checks)
        return self.result

    async def _check_once(self) -> bool:
        self.checks += 1
        empty = await self._empty_check()
        self.logger.debug("Checked if channel is empty", empty=empty, check=self.checks)
        return empty

    async def _poll_until_empty(self) -> None:
        await self._sleep(self.poll_interval)
        retrying = AsyncRetrying(
            retry=retry_if_result(lambda empty: not empty),
            wait=wait_fixed(self.poll_interval),
            sleep=self._sleep,
        )
        await retrying(self._check_once)
