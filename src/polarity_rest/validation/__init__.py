"""Validation of tagged entities.

Includes IP address classification and tag/entity length checks.
"""

from .address import (
    is_address_or_range_or_cidr,
    is_ip,
    is_ip_cidr,
    is_ip_range,
    is_ipv4,
    is_ipv4_cidr,
    is_ipv4_range,
    is_ipv6,
    is_ipv6_cidr,
    is_ipv6_range,
)
from .fields import validate_entity_name, validate_tag_name

__all__ = [
    "is_ipv4",
    "is_ipv6",
    "is_ip",
    "is_ipv4_cidr",
    "is_ipv6_cidr",
    "is_ip_cidr",
    "is_ipv4_range",
    "is_ipv6_range",
    "is_ip_range",
    "is_address_or_range_or_cidr",
    "validate_tag_name",
    "validate_entity_name",
]
