"""Configuration constants for the Polarity REST API client.

Named constants for the limits the Polarity server enforces and the
defaults the client uses when talking to it.
"""

# -----------------------------------------------------------------------------
# Tag and Entity Limits
# -----------------------------------------------------------------------------

MINIMUM_TAG_NAME_LENGTH: int = 1
MAXIMUM_TAG_NAME_LENGTH: int = 2100

MINIMUM_ENTITY_NAME_LENGTH: int = 1
MAXIMUM_ENTITY_NAME_LENGTH: int = 256

# The server rejects tag-entity-pair uploads larger than this
MAX_TAG_ENTITIES_PER_REQUEST: int = 2000

# -----------------------------------------------------------------------------
# Channel Clearing
# -----------------------------------------------------------------------------

# Interval between "is the channel empty yet" checks after a 202 Accepted
CLEAR_CHANNEL_POLL_INTERVAL_MS: int = 30000

# -----------------------------------------------------------------------------
# Integration Search
# -----------------------------------------------------------------------------

# Maximum number of integration lookups in flight at once
MAX_CONCURRENT_INTEGRATION_SEARCHES: int = 10

# Maximum characters of free text the server will parse for entities
MAX_SEARCH_TEXT_LENGTH: int = 5000

# -----------------------------------------------------------------------------
# JSON:API resource types
# -----------------------------------------------------------------------------

TAG_ENTITY_PAIR_TYPE: str = "tag-entity-pairs"
CHANNEL_TYPE: str = "channels"
INTEGRATION_OPTION_TYPE: str = "integration-options"
INTEGRATION_LOOKUP_TYPE: str = "integration-lookups"
