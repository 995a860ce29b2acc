"""Strict syntactic classification of IP addresses, CIDR blocks and ranges.

These predicates decide whether a tagged entity is uploaded with type
``ip`` or ``string``. They are deliberately stricter than ``ipaddress``
for IPv4:

- octets with leading zeros ("01.2.3.4") are rejected
- interior whitespace is rejected; surrounding whitespace is trimmed
- an IPv4 CIDR must name the network base address ("10.0.0.5/24" is invalid)

IPv6 syntax is delegated to ``ipaddress.IPv6Address`` after zone indexes
("%eth0") and whitespace are rejected. IPv6 CIDR blocks are checked for
syntax only.
"""

import ipaddress
import re

_WHITESPACE = re.compile(r"\s")


def _is_decimal(value: str) -> bool:
    """True when every character is an ASCII digit (str.isdigit also accepts '²')."""
    return bool(value) and all("0" <= c <= "9" for c in value)


def _has_leading_zero(octet: str) -> bool:
    return len(octet) > 1 and octet[0] == "0"


def _parse_prefix(value: str, maximum: int) -> int | None:
    """Return the prefix length if it is a plain decimal in [0, maximum]."""
    value = value.strip()
    if not _is_decimal(value):
        return None
    prefix = int(value)
    if prefix > maximum:
        return None
    return prefix


def is_ipv4(value: str | None) -> bool:
    """
    Return True for dotted-quad addresses of the form 0-255.0-255.0-255.0-255.

    Leading zeros are not accepted ("00.0.0.1", "100.01.2.3"), and neither
    are empty octets ("123.2.3.").
    """
    if value is None:
        return False

    value = value.strip()
    if _WHITESPACE.search(value):
        return False

    octets = value.split(".")
    if len(octets) != 4:
        return False

    for octet in octets:
        if not _is_decimal(octet) or _has_leading_zero(octet):
            return False
        if int(octet) > 255:
            return False

    return True


def is_ipv6(value: str | None) -> bool:
    """Return True for a valid IPv6 address without a zone index."""
    if value is None:
        return False

    value = value.strip()
    if _WHITESPACE.search(value) or "%" in value:
        return False

    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True


def is_ip(value: str | None) -> bool:
    """Return True for a single IPv4 or IPv6 address (not a range or CIDR)."""
    return is_ipv4(value) or is_ipv6(value)


def _is_network_base(octets: list[int], prefix: int) -> bool:
    """
    Check that the host bits of an IPv4 address are zero for ``prefix``.

    Works one octet boundary at a time: the octet containing the prefix
    boundary must be a multiple of the block size and every octet after it
    must be zero.
    """
    if prefix == 0:
        return all(octet == 0 for octet in octets)

    # Index of the octet that holds the last network bit
    boundary = (prefix - 1) // 8
    block_size = 2 ** (8 * (boundary + 1) - prefix)

    if any(octet != 0 for octet in octets[boundary + 1 :]):
        return False
    return octets[boundary] % block_size == 0


def is_ipv4_cidr(value: str | None) -> bool:
    """
    Return True for an IPv4 CIDR block whose address is the network base.

    "192.168.1.0/24" is valid, "192.168.1.5/24" is not.
    """
    if value is None:
        return False

    tokens = value.strip().split("/")
    if len(tokens) != 2:
        return False

    address, prefix_text = tokens
    prefix = _parse_prefix(prefix_text, 32)
    if prefix is None or not is_ipv4(address):
        return False

    octets = [int(octet) for octet in address.strip().split(".")]
    return _is_network_base(octets, prefix)


def is_ipv6_cidr(value: str | None) -> bool:
    """Return True for IPv6 CIDR syntax with a prefix length in [0, 128]."""
    if value is None:
        return False

    tokens = value.strip().split("/")
    if len(tokens) != 2:
        return False

    address, prefix_text = tokens
    if _parse_prefix(prefix_text, 128) is None:
        return False
    return is_ipv6(address)


def is_ip_cidr(value: str | None) -> bool:
    return is_ipv4_cidr(value) or is_ipv6_cidr(value)


def _split_range(value: str | None) -> tuple[str, str] | None:
    if value is None:
        return None
    parts = value.strip().split("-")
    if len(parts) != 2:
        return None
    return parts[0].strip(), parts[1].strip()


def is_ipv4_range(value: str | None) -> bool:
    """
    Return True for "start-end" where both ends are IPv4 addresses.

    The range is not required to be ascending.
    """
    parts = _split_range(value)
    return parts is not None and is_ipv4(parts[0]) and is_ipv4(parts[1])


def is_ipv6_range(value: str | None) -> bool:
    """Return True for "start-end" where both ends are IPv6 addresses."""
    parts = _split_range(value)
    return parts is not None and is_ipv6(parts[0]) and is_ipv6(parts[1])


def is_ip_range(value: str | None) -> bool:
    return is_ipv4_range(value) or is_ipv6_range(value)


def is_address_or_range_or_cidr(value: str | None) -> bool:
    """Return True when ``value`` should be tagged as an ``ip`` entity."""
    return is_ip(value) or is_ip_cidr(value) or is_ip_range(value)
