"""Polarity REST API client.

Handles the session lifecycle and the per-endpoint request glue for
channels, tagging, integrations and users.

Architecture Overview:
---------------------
- Transport: every request goes through a ``Transport`` (``HttpxTransport``
  by default). The transport holds the session cookie set by
  ``POST /v1/authenticate``.
- Bulk tagging is delegated to ``TagBatchBuilder`` + ``BulkTagUploader``.
- Channel clearing is delegated to ``ChannelClearOperation``, which owns
  the polling loop for 202 Accepted responses.

Authentication:
--------------
1. POST /v1/authenticate with {identification, password}
2. 200 means the session cookie is set and the client is connected
3. DELETE /v1/authenticate ends the session

Every other operation requires a connected client and raises
``PreconditionError`` otherwise. The client must not be connected or
disconnected while other operations are in flight.

JSON:API Response Format:
------------------------
Responses are JSON:API documents: ``data`` holds the resource(s) with
dasherized ``attributes``, ``included`` holds side-loaded resources and
``meta`` holds counters. Bodies are returned to the caller as decoded JSON.
"""

import asyncio
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from ..channels.poller import ChannelClearOperation, check_channel_empty
from ..config import ChannelConfig, ConnectionConfig, SearchConfig, TaggingConfig
from ..constants import CHANNEL_TYPE, INTEGRATION_LOOKUP_TYPE, INTEGRATION_OPTION_TYPE
from ..models.tags import BulkUploadResult
from ..observability.logger import null_logger
from ..tagging.builder import Row, TagBatchBuilder
from ..tagging.uploader import BulkTagUploader
from ..utils.exceptions import (
    AuthenticationError,
    PolarityAPIError,
    PolarityError,
    PreconditionError,
    ResourceNotFoundError,
    TransportError,
)
from .endpoints import PolarityEndpoints
from .response_models import JsonApiDocument
from .transport import HttpxTransport, RequestSpec, Transport, TransportResponse


class PolarityClient:
    """
    Polarity REST API client.

    Usage:
        async with PolarityClient(ConnectionConfig(host, username, password)) as polarity:
            channel_id = await polarity.get_channel_id("my-channel")
            await polarity.apply_tags([["8.8.8.8", "dns"]], channel_id)

    Args:
        config: Connection details. May instead be given to ``connect()``.
        transport: Transport to use. Built from ``config`` when omitted.
        logger: structlog logger. Defaults to a logger that discards output.
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        transport: Transport | None = None,
        logger: Any = None,
        tagging: TaggingConfig | None = None,
        channels: ChannelConfig | None = None,
        search: SearchConfig | None = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self._owns_transport = transport is None
        self.logger = logger or null_logger()
        self.tagging = tagging or TaggingConfig()
        self.channels = channels or ChannelConfig()
        self.search = search or SearchConfig()

        self.is_connected = False
        self.host: str | None = None

    async def __aenter__(self) -> "PolarityClient":
        try:
            await self.connect()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            if self.is_connected:
                await self.disconnect()
        finally:
            await self.close()

    @property
    def is_disconnected(self) -> bool:
        return not self.is_connected

    async def close(self) -> None:
        """Close the transport if this client created it."""
        if self.transport is not None and self._owns_transport:
            await self.transport.aclose()
            self.transport = None

    def _require_connection(self, action: str) -> Transport:
        if self.is_disconnected or self.transport is None:
            raise PreconditionError(f"Polarity must be connected before trying to {action}")
        return self.transport

    async def _request(
        self,
        action: str,
        method: str,
        path: str,
        expected: tuple[int, ...] = (200,),
        params: dict[str, Any] | None = None,
        json: Any = None,
        detail: str | None = None,
    ) -> TransportResponse:
        """
        Send an authenticated request and check its status code.

        Raises:
            PreconditionError: If the client is not connected
            TransportError: If the server cannot be reached
            PolarityAPIError: If the status code is not in ``expected``
        """
        transport = self._require_connection(action)
        try:
            response = await transport.send(
                RequestSpec(method=method, path=path, params=params, json=json)
            )
        except TransportError as e:
            self.logger.error("HTTP Request Error", action=action, error=str(e.cause or e))
            raise

        if response.status_code not in expected:
            self.logger.error(
                "Unexpected response", action=action, status=response.status_code, body=response.body
            )
            raise PolarityAPIError(
                detail or f"Failed to {action}", status=response.status_code, body=response.body
            )
        return response

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def connect(self, config: ConnectionConfig | None = None) -> Any:
        """
        Authenticate and open a session.

        Returns:
            Body of the authentication response

        Raises:
            AuthenticationError: If the server rejects the credentials
            TransportError: If the server cannot be reached
        """
        if config is not None:
            self.config = config
        if self.config is None:
            raise PreconditionError("Connection details are required to connect to Polarity")

        if self.transport is None:
            self.transport = HttpxTransport(self.config.host, self.config.request)
            self._owns_transport = True

        self.logger.info("Authenticating with Polarity", host=self.config.host)
        try:
            response = await self.transport.send(
                RequestSpec(
                    method="POST",
                    path=PolarityEndpoints.AUTHENTICATE,
                    json={
                        "identification": self.config.username,
                        "password": self.config.password,
                    },
                )
            )
        except TransportError as e:
            self.logger.error("Authentication connection error", error=str(e.cause or e))
            raise

        if response.status_code != 200:
            self.logger.error("Authentication failed", status=response.status_code)
            raise AuthenticationError(status=response.status_code, body=response.body)

        self.is_connected = True
        self.host = self.config.host
        self.logger.info("Authentication successful", host=self.host)
        return response.body

    async def disconnect(self) -> Any:
        """End the session. The transport is closed if this client created it."""
        response = await self._request(
            "disconnect",
            "DELETE",
            PolarityEndpoints.AUTHENTICATE,
            detail="Failed to disconnect from Polarity",
        )
        self.is_connected = False
        self.host = None
        await self.close()
        return response.body

    # -------------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------------

    async def get_channel(self, channel_name: str) -> dict[str, Any]:
        """
        Return the channel resource named ``channel_name`` (case sensitive).

        Raises:
            ResourceNotFoundError: If no channel has exactly that name
        """
        response = await self._request(
            "get a channel",
            "GET",
            PolarityEndpoints.CHANNELS,
            params={"filter[channel.channel-name]": channel_name},
            detail="Failed to get channel",
        )

        document = self._parse_document(response)
        for resource in document.resources():
            if resource.attribute("channel-name") == channel_name:
                return resource.model_dump()

        self.logger.error("Error getting channel id", channel=channel_name)
        raise ResourceNotFoundError("channel", channel_name, status=response.status_code)

    async def get_channel_id(self, channel_name: str) -> str | int:
        channel = await self.get_channel(channel_name)
        return channel["id"]

    async def create_channel(self, channel_name: str, channel_description: str = "") -> Any:
        response = await self._request(
            "create a channel",
            "POST",
            PolarityEndpoints.CHANNELS,
            expected=(201,),
            json={
                "data": {
                    "type": CHANNEL_TYPE,
                    "attributes": {
                        "channel-name": channel_name,
                        "description": channel_description,
                    },
                }
            },
            detail="Failed to create channel",
        )
        return response.body

    async def is_channel_empty(self, channel_id: int | str) -> bool:
        """Return True when no entity is tagged in the channel for any user."""
        transport = self._require_connection("check if a channel is empty")
        return await check_channel_empty(transport, channel_id)

    async def clear_channel(
        self, channel_id: int | str, wait_until_complete: bool = True
    ) -> dict[str, Any]:
        """
        Delete every tag in a channel.

        When the server answers 202 Accepted the clear continues in the
        background. With ``wait_until_complete`` the channel is polled until
        it is empty; otherwise the response is returned at once with
        ``clearComplete: false``.

        Returns:
            DELETE response body with ``clearComplete`` added

        Raises:
            ClearChannelError: If polling for completion fails
        """
        transport = self._require_connection("clear a channel")
        async with ChannelClearOperation(
            transport,
            channel_id,
            wait_until_complete=wait_until_complete,
            poll_interval_ms=self.channels.clear_poll_interval_ms,
            logger=self.logger,
        ) as operation:
            return await operation.run()

    async def clear_channel_by_name(
        self, channel_name: str, wait_until_complete: bool = True
    ) -> dict[str, Any]:
        self._require_connection("clear a channel by name")
        channel_id = await self.get_channel_id(channel_name)
        self.logger.debug("Resolved channel name", channel=channel_name, channel_id=channel_id)
        return await self.clear_channel(channel_id, wait_until_complete=wait_until_complete)

    # -------------------------------------------------------------------------
    # Tagging
    # -------------------------------------------------------------------------

    async def apply_tags(
        self,
        rows: Iterable[Row],
        channel_id: int,
        stop_on_invalid_data: bool | None = None,
    ) -> BulkUploadResult:
        """
        Apply tags to entities in a channel.

        Args:
            rows: Rows of [entity, tag, tag, ...]
            channel_id: Channel to tag in
            stop_on_invalid_data: Raise on the first invalid entity or tag
                instead of skipping it. Defaults to the tagging config.

        Returns:
            Upload summary; ``last_response`` is the body of the last batch
            response, or None if there was nothing valid to upload

        Raises:
            PolarityError: ``channel_id`` is not an integer
            TagValidationError: Invalid data under stop_on_invalid_data
            TagUploadError: A batch was rejected or could not be sent
                (PartialUploadError if earlier batches were already stored)
        """
        transport = self._require_connection("apply tags")
        try:
            channel_id = int(channel_id)
        except (TypeError, ValueError) as e:
            raise PolarityError(f"Channel id must be an integer, got {channel_id!r}") from e
        if stop_on_invalid_data is None:
            stop_on_invalid_data = self.tagging.stop_on_invalid_data

        builder = TagBatchBuilder(
            channel_id,
            stop_on_invalid_data=stop_on_invalid_data,
            max_batch_size=self.tagging.max_pairs_per_request,
            logger=self.logger,
        )
        uploader = BulkTagUploader(transport, logger=self.logger)
        return await uploader.upload(builder, rows)

    async def get_entity_id(
        self, entity_value: str, channels: list[int] | None = None
    ) -> str | int | None:
        """Return the id of the entity named ``entity_value``, or None if untagged."""
        params = {
            "filter[entity.entity-name-lower]": entity_value.lower(),
            "option[searchEntities]": "true",
            "option[searchTags]": "false",
            "option[searchComments]": "false",
        }
        if channels:
            params["filter[tag-entity-pair.channel-id]"] = ",".join(str(c) for c in channels)

        response = await self._request(
            "get an entity id",
            "GET",
            PolarityEndpoints.SEARCHABLE_ITEMS,
            params=params,
            detail="Error while trying to find entity",
        )

        document = self._parse_document(response)
        for item in document.resources():
            name = item.attribute("searchable-item-name") or ""
            if name.lower() == entity_value.lower():
                return item.attribute("entity-id")
        return None

    async def get_tags_by_entity_id(self, entity_id: str | int | None) -> list[str]:
        if entity_id is None:
            self._require_connection("get tags")
            return []

        response = await self._request(
            "get tags",
            "GET",
            PolarityEndpoints.ENTITY_BY_ID.format(entity_id=entity_id),
            detail="Error while trying to retrieve tags",
        )
        document = self._parse_document(response)
        return [
            item.attribute("tag-name") for item in document.included if item.type == "tags"
        ]

    async def get_tags_by_entity_value(
        self, entity_value: str, channels: list[int] | None = None
    ) -> list[str]:
        """Return the tag names applied to ``entity_value`` in ``channels`` (all if empty)."""
        entity_id = await self.get_entity_id(entity_value, channels)
        return await self.get_tags_by_entity_id(entity_id)

    # -------------------------------------------------------------------------
    # Integrations
    # -------------------------------------------------------------------------

    async def get_integrations(self) -> Any:
        response = await self._request(
            "get integrations", "GET", PolarityEndpoints.INTEGRATIONS
        )
        return response.body

    async def restart_integration(self, integration_id: str) -> Any:
        response = await self._request(
            "restart an integration",
            "GET",
            PolarityEndpoints.INTEGRATION_RESTART.format(integration_id=integration_id),
            detail="Failed to restart integration",
        )
        return response.body

    async def update_integration_option(
        self, integration_id: str, option_key: str, option_attributes: dict[str, Any]
    ) -> Any:
        """
        Update one option of an integration.

        Args:
            integration_id: Integration id (see ``get_integration_id``)
            option_key: Option key, e.g. "apiKey"
            option_attributes: e.g. {"value": "...", "admin-only": True, "user-can-edit": False}
        """
        option_id = f"{integration_id}-{option_key}"
        response = await self._request(
            "update an integration option",
            "PATCH",
            PolarityEndpoints.INTEGRATION_OPTION_BY_ID.format(option_id=option_id),
            json={
                "data": {
                    "type": INTEGRATION_OPTION_TYPE,
                    "id": option_id,
                    "attributes": option_attributes,
                }
            },
            detail="Failed to update integration option",
        )
        return response.body

    async def search_integrations(
        self,
        integration_ids: list[str],
        text: str,
        ignore_errors: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Look up the entities found in ``text`` with several integrations.

        At most ``search.max_concurrency`` lookups run at once. Results are
        returned in the order of ``integration_ids``.

        Args:
            integration_ids: Integrations to search
            text: Free text to parse entities from
            ignore_errors: Record a failing integration as
                {"integration_id", "error"} instead of raising

        Raises:
            ValueError: If text is longer than ``search.max_text_length``
        """
        self._require_connection("search integrations")
        if len(text) > self.search.max_text_length:
            raise ValueError(
                f"Search text must be {self.search.max_text_length} characters or less, "
                f"got {len(text)}"
            )

        semaphore = asyncio.Semaphore(self.search.max_concurrency)

        async def lookup(integration_id: str) -> dict[str, Any]:
            async with semaphore:
                try:
                    response = await self._request(
                        "search integrations",
                        "POST",
                        PolarityEndpoints.INTEGRATION_LOOKUPS,
                        expected=(200, 201),
                        json={
                            "data": {
                                "type": INTEGRATION_LOOKUP_TYPE,
                                "attributes": {"integration-id": integration_id, "text": text},
                            }
                        },
                        detail=f"Failed to search integration {integration_id}",
                    )
                except PolarityError as e:
                    if not ignore_errors:
                        raise
                    self.logger.warning(
                        "Integration search failed", integration=integration_id, error=e.detail
                    )
                    return {"integration_id": integration_id, "error": e.detail}
                return {"integration_id": integration_id, "result": response.body}

        return list(await asyncio.gather(*[lookup(i) for i in integration_ids]))

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_users(self) -> Any:
        response = await self._request("get users", "GET", PolarityEndpoints.USERS)
        return response.body

    async def get_users_for_integration(self, integration_id: str) -> list[dict[str, Any]]:
        """Return the user resources that have access to an integration."""
        response = await self._request(
            "get users for an integration",
            "GET",
            PolarityEndpoints.INTEGRATION_USERS.format(integration_id=integration_id),
        )
        document = self._parse_document(response)
        return [user.model_dump() for user in document.resources()]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _parse_document(self, response: TransportResponse) -> JsonApiDocument:
        try:
            return JsonApiDocument.model_validate(response.body)
        except ValidationError as e:
            self.logger.warning(
                "Response validation failed", error=str(e), validation_errors=e.errors()
            )
            raise PolarityAPIError(
                "Unexpected response from Polarity", status=response.status_code, body=response.body
            ) from e
