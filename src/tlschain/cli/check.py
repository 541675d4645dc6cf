import sys
import json
import logging
from typing import Union

from rich.console import Console

from .. import cli, constants, check_chain
from ..exceptions import (
    ValidationError,
    TransportError,
    HandshakeTimeoutError,
    ProtocolError,
)
from ..models import ChainReport

__module__ = "tlschain.cli.check"

logger = logging.getLogger(__name__)
EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_RETRIEVAL_FAILED = 2
RETRIEVAL_ERRORS = (
    ValidationError,
    TransportError,
    HandshakeTimeoutError,
    ProtocolError,
)


def render_report(
    report: ChainReport, con: Union[Console, None] = None, use_icons: bool = False
):
    target = {"hostname": report.hostname, "port": report.port}
    if report.tls_state is not None and report.tls_state.negotiated_protocol:
        cli.infoln(
            f"Negotiated {report.tls_state.negotiated_protocol} {report.tls_state.negotiated_cipher} {report.tls_state.peer_address}",
            result_text="TLS",
            con=con,
            use_icons=use_icons,
            **target,
        )
    for index, cert in enumerate(report.chain):
        cli.outputln(
            f"{cert.subject_dn} ({cert.expiry_status() or cert.status()})",
            aside=f"#{index} {cert.serial_number}",
            result_text=cert.role.upper(),
            result_icon=constants.ROLE_ICON_MAP.get(cert.role, ""),
            con=con,
            use_icons=use_icons,
        )
    for issue in report.issues:
        cli.issueln(issue, con=con, use_icons=use_icons)
    if report.valid:
        cli.passln(
            "Certificate chain is valid",
            bold_result=True,
            con=con,
            use_icons=use_icons,
            **target,
        )
    else:
        cli.failln(
            f"Certificate chain has {len(report.errors)} error(s)",
            bold_result=True,
            con=con,
            use_icons=use_icons,
            **target,
        )


def check(config: dict, con: Union[Console, None] = None, as_json: bool = False) -> int:
    """Check every configured target in turn, returning the process exit status"""
    use_icons = any(
        n.get("type") == "console" and n.get("use_icons")
        for n in config.get("outputs", [])
    )
    exit_code = EXIT_VALID
    results = []
    for target in config.get("targets", []):
        hostname = target["hostname"]
        port = target.get("port")
        try:
            report = check_chain(hostname, port, config=config)
        except RETRIEVAL_ERRORS as err:
            logger.debug(err, exc_info=True)
            cli.failln(
                f"{type(err).__name__} {err}",
                hostname=hostname,
                port=port,
                con=con,
                use_icons=use_icons,
            )
            results.append(
                {
                    "hostname": hostname,
                    "port": port,
                    "valid": False,
                    "error": {"type": type(err).__name__, "message": str(err)},
                }
            )
            exit_code = EXIT_RETRIEVAL_FAILED
            continue
        render_report(report, con=con, use_icons=use_icons)
        results.append(report.to_dict())
        if not report.valid and exit_code == EXIT_VALID:
            exit_code = EXIT_INVALID

    if as_json:
        sys.stdout.write(
            json.dumps(
                results,
                sort_keys=True,
                indent=4,
                default=str,
            )
        )
        sys.stdout.write("\n")
    return exit_code
