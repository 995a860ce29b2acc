"""Length validation for tag and entity values.

Both validators return an error message when the value is invalid and
``None`` when it is acceptable, so callers can decide whether a failure
skips the value or aborts the whole upload.
"""

from ..constants import (
    MAXIMUM_ENTITY_NAME_LENGTH,
    MAXIMUM_TAG_NAME_LENGTH,
    MINIMUM_ENTITY_NAME_LENGTH,
    MINIMUM_TAG_NAME_LENGTH,
)


def validate_tag_name(tag: str) -> str | None:
    """Return an error message if ``tag`` is not 1-2100 characters long."""
    if len(tag) < MINIMUM_TAG_NAME_LENGTH or len(tag) > MAXIMUM_TAG_NAME_LENGTH:
        return (
            f"The tag '{tag}' must be greater than or equal to {MINIMUM_TAG_NAME_LENGTH} "
            f"characters and less than or equal to {MAXIMUM_TAG_NAME_LENGTH} characters"
        )
    return None


def validate_entity_name(entity: str) -> str | None:
    """Return an error message if ``entity`` is not 1-256 characters long."""
    if len(entity) < MINIMUM_ENTITY_NAME_LENGTH or len(entity) > MAXIMUM_ENTITY_NAME_LENGTH:
        return (
            f"The entity '{entity}' must be greater than or equal to "
            f"{MINIMUM_ENTITY_NAME_LENGTH} characters and less than or equal to "
            f"{MAXIMUM_ENTITY_NAME_LENGTH} characters"
        )
    return None
