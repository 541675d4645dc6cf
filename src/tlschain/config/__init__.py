import logging
from os import path
from pathlib import Path
from copy import deepcopy
from typing import Union

import validators
import yaml

from .. import util

__module__ = "tlschain.config"

logger = logging.getLogger(__name__)
DEFAULT_CONFIG = ".tlschain-config.yaml"
CONFIG_PATH = f"{path.expanduser('~')}/.config/tlschain"

DEFAULT_VALUES = b"""
---
defaults:
  port: 443
  timeout_ms: 5000
  use_sni: True
  cafiles: []
  chain_head_is_leaf: True
  expiry_warning_days: 30
  skip_rules: []

outputs:
  - type: console
    use_icons: False

targets: []
"""


def _deep_merge(*args) -> dict:
    assert len(args) >= 2, "_deep_merge requires at least two dicts to merge"
    result = deepcopy(args[0])
    if not isinstance(result, dict):
        raise AttributeError(
            f"_deep_merge only takes dict arguments, got {type(result)} {result}"
        )
    for merge_dict in args[1:]:
        if not isinstance(merge_dict, dict):
            raise AttributeError(
                f"_deep_merge only takes dict arguments, got {type(merge_dict)} {merge_dict}"
            )
        for key, merge_val in merge_dict.items():
            result_val = result.get(key)
            if isinstance(result_val, dict) and isinstance(merge_val, dict):
                result[key] = _deep_merge(result_val, merge_val)
            else:
                result[key] = deepcopy(merge_val)
    return result


def _merge_targets(*args) -> list:
    merged = {}
    for targets in args:
        for target in targets or []:
            if not isinstance(target, dict):
                raise AttributeError(f"Target must be a mapping, got {target}")
            key = target.get("hostname")
            merged[key] = {**merged.get(key, {}), **target}
    return list(merged.values())


def _validate_config(combined_config: dict) -> dict:
    defaults = combined_config["defaults"]
    default_port = defaults.get("port") or 443
    targets = []
    for target in combined_config.get("targets", []):
        hostname = target.get("hostname")
        if not hostname or not isinstance(hostname, str):
            raise AttributeError("Missing hostname")
        if validators.domain(hostname) is not True and not util.is_ip_address(
            hostname
        ):
            raise AttributeError(f"Target hostname {hostname} is invalid")
        if isinstance(target.get("port"), str):
            target["port"] = int(target.get("port"))
        if not target.get("port"):  # falsey type coercion
            target["port"] = default_port
        if not 1 <= target["port"] <= 65535:
            raise AttributeError(f"Target {hostname} port {target['port']} is invalid")
        targets.append(target)
    combined_config["targets"] = targets
    if not isinstance(defaults.get("skip_rules"), list):
        defaults["skip_rules"] = list(filter(None, [defaults.get("skip_rules")]))
    if not isinstance(defaults.get("cafiles"), list):
        defaults["cafiles"] = list(filter(None, [defaults.get("cafiles")]))

    return combined_config


def combine_configs(user_conf: dict, custom_conf: dict) -> dict:
    default_values = default_config()
    ret_config = {
        "defaults": _deep_merge(
            default_values.get("defaults", {}),
            user_conf.get("defaults") or {},
            custom_conf.get("defaults") or {},
        ),
    }
    outputs = list(custom_conf.get("outputs") or [])
    outputs.extend(
        [
            item
            for item in user_conf.get("outputs") or []
            if item["type"] not in [i["type"] for i in outputs]
        ]
    )
    if not outputs:
        outputs = default_values.get("outputs", [])
    ret_config["outputs"] = outputs
    ret_config["targets"] = _merge_targets(
        user_conf.get("targets"),
        custom_conf.get("targets"),
    )
    return _validate_config(ret_config)


def get_config(custom_values: Union[dict, None] = None) -> dict:
    user_config = load_config(path.join(CONFIG_PATH, DEFAULT_CONFIG))
    return combine_configs(user_config, custom_values or {})


def default_config() -> dict:
    return yaml.safe_load(DEFAULT_VALUES)


def load_config(filename: str = DEFAULT_CONFIG) -> dict:
    config_path = Path(filename)
    if config_path.is_file():
        logger.debug(config_path.absolute())
        return yaml.safe_load(config_path.read_text(encoding="utf8")) or {}
    return {}
