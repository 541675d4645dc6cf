import sys
import logging
from datetime import datetime
from typing import Union

from .config import load_config, get_config
from .exceptions import (
    ValidationError,
    TransportError,
    HandshakeTimeoutError,
    ProtocolError,
)
from .models import Certificate, ChainReport, ValidationIssue
from .chain import build_chain
from .transport import fetch_peer_certificates, retrieve_chain
from .validator import validate

__module__ = "tlschain"
__all__ = [
    "check_chain",
    "retrieve_chain",
    "validate",
    "Certificate",
    "ChainReport",
    "ValidationIssue",
    "ValidationError",
    "TransportError",
    "HandshakeTimeoutError",
    "ProtocolError",
]

assert sys.version_info >= (3, 9), "Requires Python 3.9 or newer"
logger = logging.getLogger(__name__)


def check_chain(
    hostname: str,
    port: Union[int, None] = None,
    timeout_ms: Union[int, None] = None,
    config: Union[dict, None] = None,
    session_class: type = None,
    now: Union[datetime, None] = None,
) -> ChainReport:
    """
    Retrieve the chain presented by hostname:port and validate it.

    Connection settings not passed explicitly come from `config["defaults"]`,
    which falls back to the merged user and project configuration files.
    Raises `ValidationError`, `TransportError`, `HandshakeTimeoutError` or
    `ProtocolError` when no chain could be retrieved; every other finding is
    reported as a `ValidationIssue` on the returned report.
    """
    if config is None:
        config = get_config(custom_values=load_config())
    defaults = config.get("defaults", {})
    if port is None:
        port = defaults.get("port")
    if timeout_ms is None:
        timeout_ms = defaults.get("timeout_ms")
    peer_certificate, tls_state = fetch_peer_certificates(
        hostname,
        port,
        timeout_ms=timeout_ms,
        use_sni=defaults.get("use_sni", True),
        cafiles=defaults.get("cafiles"),
        session_class=session_class,
    )
    chain = build_chain(
        peer_certificate,
        chain_head_is_leaf=defaults.get("chain_head_is_leaf", True),
    )
    issues = validate(chain, tls_state.hostname, now=now, config=config)
    report = ChainReport(
        hostname=tls_state.hostname,
        port=tls_state.port,
        chain=chain,
        issues=issues,
        tls_state=tls_state,
    )
    logger.info(
        f"{report.hostname}:{report.port} chain of {len(chain)} with {len(report.errors)} errors {len(report.warnings)} warnings"
    )
    return report
