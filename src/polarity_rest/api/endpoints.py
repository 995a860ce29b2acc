"""Centralized endpoint paths for the Polarity REST API.

Usage:
    from polarity_rest.api.endpoints import PolarityEndpoints

    endpoint = PolarityEndpoints.CHANNEL_BY_ID.format(channel_id=12)
    # Returns: "/v2/channels/12"
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PolarityEndpoints:
    """
    Polarity REST API endpoint constants.

    Paths are relative to the server host. Use .format() to substitute
    path parameters.
    """

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------
    AUTHENTICATE: str = "/v1/authenticate"

    # -------------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------------
    CHANNELS: str = "/v2/channels"
    CHANNEL_BY_ID: str = "/v2/channels/{channel_id}"

    # -------------------------------------------------------------------------
    # Tagging and search
    # -------------------------------------------------------------------------
    TAG_ENTITY_PAIRS: str = "/v2/tag-entity-pairs"
    SEARCHABLE_ITEMS: str = "/v2/searchable-items"
    ENTITY_BY_ID: str = "/v2/entities/{entity_id}"

    # -------------------------------------------------------------------------
    # Integrations
    # -------------------------------------------------------------------------
    INTEGRATIONS: str = "/v2/integrations"
    INTEGRATION_RESTART: str = "/v2/integrations/{integration_id}/restart"
    INTEGRATION_USERS: str = "/v2/integrations/{integration_id}/users"
    INTEGRATION_OPTION_BY_ID: str = "/v2/integration-options/{option_id}"
    INTEGRATION_LOOKUPS: str = "/v2/integration-lookups"

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------
    USERS: str = "/v2/users"
