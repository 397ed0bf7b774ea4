import logging
from os import path
from pathlib import Path
from copy import deepcopy
from urllib.parse import urlparse
from typing import Union

import validators
import yaml

from .. import constants

__module__ = "tlspin.config"

logger = logging.getLogger(__name__)
DEFAULT_CONFIG = ".tlspin-config.yaml"
CONFIG_PATH = f"{path.expanduser('~')}/.config/tlspin"


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


def _validate_config(combined_config: dict) -> dict:
    pinning = combined_config["pinning"]
    if pinning.get("mode") not in constants.PINNING_MODES:
        raise AttributeError(
            f"pinning mode {pinning.get('mode')} is invalid, expected one of {constants.PINNING_MODES}"
        )
    if not isinstance(pinning.get("validate_domain"), bool):
        raise AttributeError("pinning validate_domain should be true or false")
    if isinstance(pinning.get("certificates"), str):
        pinning["certificates"] = [pinning["certificates"]]
    readiness = combined_config["readiness"]
    if not isinstance(readiness.get("attempts"), int) or readiness["attempts"] < 1:
        raise AttributeError(
            f"readiness attempts {readiness.get('attempts')} should be a positive integer"
        )
    if (
        not isinstance(readiness.get("interval"), (int, float))
        or readiness["interval"] <= 0
    ):
        raise AttributeError(
            f"readiness interval {readiness.get('interval')} should be a positive number of seconds"
        )
    targets = []
    for target in combined_config.get("targets", []):
        hostname = target.get("hostname")
        if not hostname or not isinstance(hostname, str):
            raise AttributeError("Missing hostname")
        if not hostname.startswith("http"):
            hostname = f"https://{hostname}"
        parsed = urlparse(hostname)
        if validators.domain(parsed.hostname) is not True:
            raise AttributeError(
                f"URL {hostname} hostname {parsed.hostname} is invalid"
            )
        target["hostname"] = parsed.hostname
        if isinstance(target.get("port"), str):
            target["port"] = int(target.get("port"))
        if not target.get("port"):
            target["port"] = parsed.port or 443
        targets.append(target)
    combined_config["targets"] = targets

    return combined_config


def combine_configs(user_conf: dict, custom_conf: dict) -> dict:
    ret_config = _deep_merge(base_config(), user_conf or {}, custom_conf or {})
    return _validate_config(ret_config)


def get_config(custom_values: Union[dict, None] = None) -> dict:
    user_config = load_config(path.join(CONFIG_PATH, DEFAULT_CONFIG))
    return combine_configs(user_config, custom_values or {})


def base_config() -> dict:
    return yaml.safe_load(
        Path(path.join(str(Path(__file__).parent), "base.yaml")).read_bytes()
    )


def load_config(filename: str = DEFAULT_CONFIG) -> dict:
    config_path = Path(filename)
    if config_path.is_file():
        logger.debug(config_path.absolute())
        return yaml.safe_load(config_path.read_text(encoding="utf8")) or {}
    return {}
