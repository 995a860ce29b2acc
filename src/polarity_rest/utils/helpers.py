"""Small helpers shared by the client and the CLI."""

import re

_NON_ALPHANUMERIC = re.compile(r"[^0-9a-zA-Z]")


def get_integration_id(integration_directory: str) -> str:
    """
    Convert an integration directory name into its integration id.

    Every character outside ``[0-9a-zA-Z]`` is replaced with an underscore,
    e.g. ``"polarity-integration-arin"`` becomes ``"polarity_integration_arin"``.
    """
    return _NON_ALPHANUMERIC.sub("_", integration_directory)
