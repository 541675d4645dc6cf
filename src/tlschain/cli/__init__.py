from typing import Union

from rich.console import Console
from rich.table import Table

from .. import constants
from ..models import ValidationIssue


def outputln(
    message: str,
    con: Union[Console, None] = None,
    result_level: str = constants.RESULT_LEVEL_INFO,
    result_text: str = None,
    result_label: str = "",
    result_icon: str = None,
    aside: str = "",
    hostname: str = None,
    port: int = None,
    use_icons: bool = False,
    bold_result: bool = False,
):
    """
    Print one result row: coloured level text and message on the left, a dim
    `label host:port` aside on the right. Does nothing without a console so
    callers can pass `None` when output is suppressed.
    """
    if not isinstance(con, Console) or result_level not in constants.CLI_COLOR_MAP:
        return
    color = constants.CLI_COLOR_MAP[result_level]
    if result_text is None:
        result_text = constants.DEFAULT_MAP[result_level]
    icon = ""
    if use_icons:
        icon = result_icon or constants.CLI_ICON_MAP.get(result_level, "")
    target = hostname or ""
    if hostname and port:
        target = f"{hostname}:{port}"
    style = f"bold {color}" if bold_result else color

    row = Table.grid(expand=True)
    row.add_column()
    row.add_column(justify="right", style="dim", no_wrap=True, overflow=None)
    row.add_row(
        f"{icon} [{style}]{result_text} {message}[/{style}]".strip(),
        " ".join(part for part in [result_label, aside, target] if part),
    )
    con.print(row)


def infoln(message: str, con: Union[Console, None] = None, **kwargs):
    kwargs["result_level"] = constants.RESULT_LEVEL_INFO
    outputln(message, con=con, **kwargs)


def passln(message: str, con: Union[Console, None] = None, **kwargs):
    kwargs["result_level"] = constants.RESULT_LEVEL_PASS
    outputln(message, con=con, **kwargs)


def warnln(message: str, con: Union[Console, None] = None, **kwargs):
    kwargs["result_level"] = constants.RESULT_LEVEL_WARN
    outputln(message, con=con, **kwargs)


def failln(message: str, con: Union[Console, None] = None, **kwargs):
    kwargs["result_level"] = constants.RESULT_LEVEL_FAIL
    outputln(message, con=con, **kwargs)


SEVERITY_OUTPUT = {
    constants.SEVERITY_ERROR: failln,
    constants.SEVERITY_WARNING: warnln,
}


def issueln(issue: ValidationIssue, con: Union[Console, None] = None, **kwargs):
    """One row per validation issue, the severity picks the result level"""
    aside = (
        "chain"
        if issue.certificate_index == constants.CHAIN_WIDE_INDEX
        else f"#{issue.certificate_index}"
    )
    SEVERITY_OUTPUT.get(issue.severity, infoln)(
        issue.message, con=con, result_label=issue.rule or "", aside=aside, **kwargs
    )
