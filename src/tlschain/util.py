import logging
import string
from collections.abc import Mapping
from datetime import datetime, timezone
from ssl import DER_cert_to_PEM_cert, PEM_cert_to_DER_cert
from typing import Union

import validators
from OpenSSL import SSL
from retry.api import retry

from . import constants

__module__ = "tlschain.util"

logger = logging.getLogger(__name__)
DN_SEPARATORS = ",\n"


def force_str(s, encoding="utf-8", errors="strict") -> str:
    if isinstance(s, str):
        return s
    if isinstance(s, bytes):
        return s.decode(encoding, errors)
    return str(s)


def is_ip_address(host: str) -> bool:
    return validators.ipv4(host) is True or validators.ipv6(host) is True


def _split_unescaped(value: str, separators: str) -> list[str]:
    parts = []
    current = []
    quoted = False
    escaped = False
    for char in value:
        if escaped:
            current.append(char)
            escaped = False
            continue
        if char == "\\":
            current.append(char)
            escaped = True
            continue
        if char == '"':
            quoted = not quoted
            current.append(char)
            continue
        if char in separators and not quoted:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def _unescape_value(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        value = value[1:-1]
    decoded = bytearray()
    pos = 0
    while pos < len(value):
        char = value[pos]
        if char == "\\" and pos + 1 < len(value):
            pair = value[pos + 1 : pos + 3]  # noqa: E203
            if len(pair) == 2 and all(c in string.hexdigits for c in pair):
                decoded += bytes.fromhex(pair)
                pos += 3
                continue
            decoded += value[pos + 1].encode("utf-8")
            pos += 2
            continue
        decoded += char.encode("utf-8")
        pos += 1
    return decoded.decode("utf-8", errors="replace")


def parse_distinguished_name(dn: Union[str, Mapping, None]) -> dict[str, str]:
    """
    Ordered RDN short name to value mapping.

    Mappings pass through (list values keep their first entry). Strings such as
    `CN=x, O="Acme, Inc.", C=AU` are tokenized on unquoted, unescaped commas and
    then on the first unescaped `=` so values may themselves contain `=`.
    Repeated keys keep the first value.
    """
    if not dn:
        return {}
    if isinstance(dn, Mapping):
        result = {}
        for key, value in dn.items():
            if isinstance(value, (list, tuple)):
                value = value[0] if value else ""
            result.setdefault(str(key).strip(), force_str(value))
        return result

    result = {}
    for rdn in _split_unescaped(force_str(dn), DN_SEPARATORS):
        if not rdn.strip():
            continue
        pair = _split_unescaped(rdn, "=")
        if len(pair) < 2:
            logger.debug(f"ignoring malformed RDN {rdn}")
            continue
        key = pair[0].strip()
        value = "=".join(pair[1:])
        if not key:
            continue
        result.setdefault(key, _unescape_value(value))
    return result


def format_distinguished_name(dn: Mapping) -> str:
    if not dn:
        return ""
    return ", ".join(f"{key}={value}" for key, value in dn.items())


def names_match(subject: Mapping, issuer: Mapping) -> bool:
    """Identity fields must agree wherever both names carry them"""
    for field in constants.IDENTITY_FIELDS:
        if field in subject and field in issuer and subject[field] != issuer[field]:
            return False
    return True


def pem_encode(der: bytes) -> str:
    return DER_cert_to_PEM_cert(der)


def pem_decode(pem: str) -> bytes:
    return PEM_cert_to_DER_cert(pem)


def match_hostname(pattern: str, host: str) -> bool:
    if not isinstance(pattern, str) or not isinstance(host, str):
        return False
    pattern = pattern.strip().rstrip(".").lower()
    host = host.strip().rstrip(".").lower()
    if not pattern or not host:
        return False
    if pattern == host:
        return True
    if not pattern.startswith("*.") or not pattern[2:]:
        return False
    suffix_labels = pattern[2:].split(".")
    host_labels = host.split(".")
    # the wildcard stands in for exactly one leftmost label
    if len(host_labels) != len(suffix_labels) + 1 or not host_labels[0]:
        return False
    return host_labels[1:] == suffix_labels


def serial_number_hex(serial_number: int) -> str:
    value = f"{serial_number:X}"
    return value if len(value) % 2 == 0 else f"0{value}"


def date_diff(comparer: datetime, now: datetime = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    interval = comparer - now
    if interval.days < -1:
        return f"Expired {int(abs(interval.days))} days ago"
    if interval.days == -1:
        return "Expired yesterday"
    if interval.days == 0:
        return "Expires today"
    if interval.days == 1:
        return "Expires tomorrow"
    if interval.days > 365:
        return (
            f"Expires in {interval.days} days ({int(round(interval.days/365))} years)"
        )
    return f"Expires in {interval.days} days"


def parse_x509_date(value: Union[bytes, str, None]) -> Union[datetime, None]:
    if not value:
        return None
    try:
        return datetime.strptime(
            force_str(value), constants.X509_DATE_FMT
        ).replace(tzinfo=timezone.utc)
    except ValueError as ex:
        logger.debug(ex, exc_info=True)
    return None


@retry(SSL.WantReadError, tries=3, delay=0.5)
def do_handshake(conn: SSL.Connection):
    conn.do_handshake()
