import sys
import logging
from pathlib import Path

import validators
import yaml
from rich.console import Console
from rich.prompt import Prompt, IntPrompt, Confirm

from .. import cli, constants, util
from ..config import default_config, DEFAULT_CONFIG

__module__ = "tlschain.cli.generate"

logger = logging.getLogger(__name__)
console = Console()


def _gather_target() -> tuple[str, int]:
    hostname = Prompt.ask(
        f"Enter a hostname [{constants.CLI_COLOR_INFO}](Ctrl+C to exit)[/{constants.CLI_COLOR_INFO}]"
    ).strip()
    if not hostname:
        console.print(
            f"[{constants.CLI_COLOR_FAIL}]No hostname supplied, exiting[/{constants.CLI_COLOR_FAIL}]"
        )
        sys.exit(0)
    if validators.domain(hostname) is not True and not util.is_ip_address(hostname):
        console.print(f"hostname {hostname} is invalid")
        sys.exit(0)

    port = IntPrompt.ask(
        "Enter a port", default=constants.DEFAULT_PORT, show_default=True
    )
    return hostname, port


def generate(args: dict) -> int:
    try:
        conf = default_config()
        targets = []
        while Confirm.ask("Do you want add a target host?", default=True):
            hostname, port = _gather_target()
            target = {"hostname": hostname}
            if port and port != constants.DEFAULT_PORT:
                target["port"] = port
            targets.append(target)

        conf["outputs"] = [{"type": "console", "use_icons": True}]
        conf["targets"] = targets
        conf_path = args.get("config_file") or DEFAULT_CONFIG
        config_file = Path(conf_path)
        if config_file.is_file() and not Confirm.ask(
            f"Do you want to over write {conf_path}?", default=True
        ):
            conf_path = Prompt.ask("Enter a file name: ", default=DEFAULT_CONFIG).strip()
            if not conf_path:
                console.print(
                    f"[{constants.CLI_COLOR_FAIL}]No file name supplied, exiting[/{constants.CLI_COLOR_FAIL}]"
                )
                sys.exit(0)
            config_file = Path(conf_path)

        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(
            yaml.dump(conf, encoding="utf-8", default_flow_style=False).decode(),
            encoding="utf-8",
        )
        cli.outputln(
            conf_path,
            aside="core",
            result_text="SAVED",
            result_icon=":floppy_disk:",
            con=console,
        )
    except KeyboardInterrupt:
        logger.debug("generate cancelled")
    return 0
