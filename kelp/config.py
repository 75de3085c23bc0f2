"""
Configuration for the Kelp text editor.

Settings live in a plain key=value file, by default
~/kelp/config/kelp.conf. The KELP_CONFIG environment variable points
somewhere else. Every key is optional:

    tab_stop=8
    quit_times=3
    message_timeout=5
    log_file=~/kelp/kelp.log
"""
import math
import os
from dataclasses import dataclass

from kelp import logger

CONFIG_PATH = "~/kelp/config/kelp.conf"

@dataclass
class Config:
    tab_stop: int = 8
    quit_times: int = 3
    message_timeout: float = 5.0
    log_file: str = "~/kelp/kelp.log"

def _positive_int(value: str) -> int:
    n = int(value)
    if n <= 0:
        raise ValueError(f"expected a positive integer, got {value!r}")
    return n

def _non_negative_int(value: str) -> int:
    n = int(value)
    if n < 0:
        raise ValueError(f"expected a non-negative integer, got {value!r}")
    return n

def _positive_float(value: str) -> float:
    n = float(value)
    if not math.isfinite(n) or n <= 0:
        raise ValueError(f"expected a positive number, got {value!r}")
    return n

# key -> parser for its value
_PARSERS = {
    "tab_stop": _positive_int,
    "quit_times": _non_negative_int,
    "message_timeout": _positive_float,
    "log_file": str,
}

def config_path() -> str:
    """Return the path of the config file, honouring KELP_CONFIG."""
    return os.path.expanduser(os.environ.get("KELP_CONFIG", CONFIG_PATH))

def load_config(path: str = None) -> Config:
    """
    Read settings from `path` (or the default location) and return a Config.
    A missing file gives the defaults. Unknown keys and bad values are
    logged and skipped so a broken config never keeps the editor from starting.
    """
    cfg = Config()
    if path is None:
        path = config_path()
    if not os.path.isfile(path):
        return cfg

    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "\ufffd" in line:
                logger.log(f"{path}:{lineno}: ignoring line that is not valid UTF-8")
                continue
            if "=" not in line:
                logger.log(f"{path}:{lineno}: ignoring line without '=': {line}")
                continue
            key, value = (part.strip() for part in line.split("=", 1))
            parser = _PARSERS.get(key)
            if parser is None:
                logger.log(f"{path}:{lineno}: unknown setting '{key}'")
                continue
            try:
                setattr(cfg, key, parser(value))
            except ValueError as e:
                logger.log(f"{path}:{lineno}: bad value for '{key}': {e}")
    return cfg
