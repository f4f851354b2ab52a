"""Validation of user-entered connection settings."""

import ipaddress
import string
from typing import Optional, Union

MAX_FIELD_LENGTH = 255
MAX_HOSTNAME_LENGTH = 253
MAX_LABEL_LENGTH = 63
_LABEL_CHARS = frozenset(string.ascii_letters + string.digits + "-")


def _is_ascii_digits(text: str) -> bool:
    # str.isdigit() also accepts things like "²" and Arabic-Indic digits
    return bool(text) and all(c in string.digits for c in text)


def is_valid_ipv4(address: str) -> bool:
    if not address or address.startswith(".") or address.endswith(".") or ".." in address:
        return False
    parts = address.split(".")
    if len(parts) != 4:
        return False
    for part in parts:
        if not _is_ascii_digits(part):
            return False
        if len(part) > 1 and part.startswith("0"):
            return False
        if int(part) > 255:
            return False
    return True


def is_valid_ipv6(address: str) -> bool:
    try:
        ipaddress.IPv6Address(address)
    except ValueError:
        return False
    return True


def is_valid_hostname(hostname: str) -> bool:
    if not hostname or len(hostname) > MAX_HOSTNAME_LENGTH:
        return False
    if hostname.startswith(".") or hostname.endswith(".") or ".." in hostname:
        return False

    labels = hostname.split(".")
    # Four numeric labels is a malformed IPv4 address, not a name
    if len(labels) == 4 and all(_is_ascii_digits(label) for label in labels):
        return False

    for label in labels:
        if not 1 <= len(label) <= MAX_LABEL_LENGTH:
            return False
        if label.startswith("-") or label.endswith("-"):
            return False
        if not set(label) <= _LABEL_CHARS:
            return False

    if _is_ascii_digits(labels[-1]):
        return False
    return True


def validate_host(host: Optional[str]) -> bool:
    if host is None:
        return False
    host = host.strip()
    if not host:
        return False
    return is_valid_ipv4(host) or is_valid_ipv6(host) or is_valid_hostname(host)


def validate_port(port: Union[str, int, None]) -> bool:
    if port is None or isinstance(port, bool):
        return False
    if isinstance(port, str):
        port = port.strip()
        if not _is_ascii_digits(port):
            return False
        port = int(port)
    return 1 <= port <= 65535


def _validate_length(value: Optional[str]) -> bool:
    if value is None:
        return False
    return 1 <= len(value.strip()) <= MAX_FIELD_LENGTH


def validate_username(username: Optional[str]) -> bool:
    return _validate_length(username)


def validate_password(password: Optional[str]) -> bool:
    return _validate_length(password)
