import sys
import logging
import argparse
from pathlib import Path
from urllib.parse import urlparse
from typing import Union

import validators
from rich.console import Console
from rich.logging import RichHandler
from art import text2art

from . import outputln, failln
from .check import check, EXIT_RETRIEVAL_FAILED
from .generate import generate
from .. import constants, util
from ..config import load_config, get_config, DEFAULT_CONFIG

__module__ = "tlschain.cli"
__version__ = "0.3.0"

REMOTE_URL = "https://github.com/tlschain/tlschain"
APP_BANNER = text2art("tlschain", font="tarty4")

assert sys.version_info >= (3, 9), "Requires Python 3.9 or newer"
console = Console()
logger = logging.getLogger(__name__)


class _HelpAction(argparse._HelpAction):
    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        parser.exit()


def _parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(
        prog="tlschain",
        description=f"Release {__version__} {REMOTE_URL}",
        add_help=False,
    )
    common.add_argument("--version", dest="show_version", action="store_true")
    common.add_argument(
        "-q",
        "--quiet",
        help="show no stdout (useful in automation when producing structured data outputs)",
        dest="quiet",
        action="store_true",
    )
    common.add_argument("--no-banner", dest="hide_banner", action="store_true")
    common.add_argument(
        "-p",
        "--config-path",
        help=f"Provide the path to a configuration file (Default: {DEFAULT_CONFIG})",
        dest="config_file",
        default=DEFAULT_CONFIG,
    )
    group = common.add_mutually_exclusive_group()
    group.add_argument(
        "-v",
        "--errors-only",
        help="set logging level to ERROR (default CRITICAL)",
        dest="log_level_error",
        action="store_true",
    )
    group.add_argument(
        "-vv",
        "--warning",
        help="set logging level to WARNING (default CRITICAL)",
        dest="log_level_warning",
        action="store_true",
    )
    group.add_argument(
        "-vvv",
        "--info",
        help="set logging level to INFO (default CRITICAL)",
        dest="log_level_info",
        action="store_true",
    )
    group.add_argument(
        "-vvvv",
        "--debug",
        help="set logging level to DEBUG (default CRITICAL)",
        dest="log_level_debug",
        action="store_true",
    )
    # subcommands inherit the shared options, the top level only adds dispatch
    cli = argparse.ArgumentParser(
        prog="tlschain",
        description=common.description,
        add_help=True,
        parents=[common],
    )
    sub_parsers = cli.add_subparsers()
    generate_parser = sub_parsers.add_parser(
        "generate",
        prog="tlschain generate",
        description=cli.description,
        add_help=False,
        help="Generate a basic configuration file",
        parents=[common],
    )
    generate_parser.set_defaults(subcommand="generate")
    generate_parser.add_argument("-h", "--help", action=_HelpAction)
    check_parser = sub_parsers.add_parser(
        "check",
        prog="tlschain check",
        description=cli.description,
        add_help=False,
        help="Retrieve and validate the certificate chain of each target",
        parents=[common],
    )
    check_parser.set_defaults(subcommand="check")
    check_parser.add_argument("-h", "--help", action=_HelpAction)
    check_parser.add_argument(
        "targets",
        nargs="*",
        help="All unnamed arguments are hosts (and ports) targets to check. ~$ tlschain check google.com:443 github.io [::1]:8443",
    )
    check_parser.add_argument(
        "-t",
        "--timeout",
        help=f"connect and handshake time budget in milliseconds (Default: {constants.DEFAULT_TIMEOUT_MS})",
        dest="timeout_ms",
        type=int,
        default=None,
    )
    check_parser.add_argument(
        "-c",
        "--cafiles",
        help="path to an additional PEM encoded CA bundle file, may be repeated",
        dest="cafiles",
        action="append",
        default=None,
    )
    check_parser.add_argument(
        "--disable-sni",
        help="Do not negotiate SNI using INDA encoded host",
        dest="disable_sni",
        action="store_true",
    )
    check_parser.add_argument(
        "--field-leaf",
        help="Only treat the first certificate as the leaf when it carries DNS names or serverAuth",
        dest="field_leaf",
        action="store_true",
    )
    check_parser.add_argument(
        "--json",
        help="Print the reports to stdout as JSON",
        dest="as_json",
        action="store_true",
    )
    return cli


def main(argv: Union[list, None] = None) -> int:
    cli = _parser()
    args = cli.parse_args(argv)
    if args.show_version:
        if args.hide_banner:
            console.print(f"tlschain=={__version__}\n{REMOTE_URL}")
        else:
            console.print(
                f"[bold][{constants.CLI_COLOR_PRIMARY}]{APP_BANNER}[/{constants.CLI_COLOR_PRIMARY}][/bold]\ntlschain=={__version__}\n{REMOTE_URL}"
            )
        return 0

    try:
        logger.info(f"subcommand {args.subcommand}")
    except AttributeError:
        cli.print_help()
        return 0

    log_level = logging.CRITICAL
    if args.log_level_error:
        log_level = logging.ERROR
    if args.log_level_warning:
        log_level = logging.WARNING
    if args.log_level_info:
        log_level = logging.INFO
    if args.log_level_debug:
        log_level = logging.DEBUG

    handlers = []
    log_format = "%(asctime)s - %(name)s - [%(levelname)s] %(message)s"
    if not args.quiet and sys.stdout.isatty():
        log_format = "%(message)s"
        handlers.append(RichHandler(rich_tracebacks=True))
    logging.basicConfig(format=log_format, level=log_level, handlers=handlers)

    if args.subcommand == "generate":
        return generate({**vars(args)})

    try:
        config = _check_config(vars(args), args.config_file)
    except (AttributeError, ValueError) as err:
        failln(str(err), con=console)
        return EXIT_RETRIEVAL_FAILED
    if not config.get("targets"):
        failln("No targets defined", con=console)
        return EXIT_RETRIEVAL_FAILED

    # JSON goes to stdout so the console output would corrupt it
    use_console = (
        any(n.get("type") == "console" for n in config.get("outputs", []))
        and not args.quiet
        and not args.as_json
    )
    use_icons = any(
        n.get("type") == "console" and n.get("use_icons")
        for n in config.get("outputs", [])
    )
    if use_console and not args.hide_banner:
        console.print(
            f"[bold][{constants.CLI_COLOR_PRIMARY}]{APP_BANNER}[/{constants.CLI_COLOR_PRIMARY}][/bold]"
        )
        console.print(
            f"{__version__}\t\t[bold][{constants.CLI_COLOR_PASS}]VALID[/{constants.CLI_COLOR_PASS}] [{constants.CLI_COLOR_WARN}]WARNING[/{constants.CLI_COLOR_WARN}] [{constants.CLI_COLOR_FAIL}]ERROR[/{constants.CLI_COLOR_FAIL}] [{constants.CLI_COLOR_INFO}]INFO[/{constants.CLI_COLOR_INFO}][/bold]"
        )
    if Path(args.config_file).is_file():
        outputln(
            args.config_file,
            aside="core",
            result_text="CONFIG",
            result_icon=":file_folder:",
            con=console if use_console else None,
            use_icons=use_icons,
        )
    return check(config, con=console if use_console else None, as_json=args.as_json)


def parse_target(value: str, default_port: int = constants.DEFAULT_PORT) -> dict:
    """`host`, `host:port` or `[ipv6]:port` to a target mapping"""
    if not value.startswith("https://"):
        value = f"https://{value}"
    parsed = urlparse(value)
    hostname = parsed.hostname
    if not hostname or (
        validators.domain(hostname) is not True and not util.is_ip_address(hostname)
    ):
        raise AttributeError(f"Target {value} hostname {hostname} is invalid")
    return {"hostname": hostname, "port": parsed.port or default_port}


def _check_config(cli_args: dict, filename: Union[str, None]) -> dict:
    custom = load_config(filename)
    config = get_config(custom_values=custom)
    config["cli_version"] = __version__
    defaults = config["defaults"]
    if cli_args.get("cafiles"):
        defaults["cafiles"] = [*defaults.get("cafiles", []), *cli_args["cafiles"]]
    if cli_args.get("timeout_ms"):
        defaults["timeout_ms"] = cli_args["timeout_ms"]
    if cli_args.get("disable_sni"):
        defaults["use_sni"] = False
    if cli_args.get("field_leaf"):
        defaults["chain_head_is_leaf"] = False
    targets = [
        parse_target(value, defaults.get("port") or constants.DEFAULT_PORT)
        for value in cli_args.get("targets") or []
    ]
    if targets:
        config["targets"] = targets
    if cli_args.get("log_level_error"):
        config["outputs"] = [
            n for n in config.get("outputs", []) if n.get("type") != "console"
        ]
    return config


if __name__ == "__main__":
    sys.exit(main())
