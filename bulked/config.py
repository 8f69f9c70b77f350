import os
from dataclasses import dataclass

import dotenv

from bulked import log_utils

DEFAULT_CONTEXT_LINES = 20

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass
class Settings:
    """Defaults for the CLI, overridable per invocation by flags."""
    context_lines: int = DEFAULT_CONTEXT_LINES
    no_ignore: bool = False
    hidden: bool = False


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    if value.strip().lower() in _TRUTHY:
        return True
    if value.strip().lower() in _FALSY:
        return False
    log_utils.warning(f"Ignoring {name}={value!r}: expected a boolean")
    return default


def _read_context(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        parsed = -1
    if parsed < 0:
        log_utils.warning(f"Ignoring {name}={value!r}: expected a non-negative integer")
        return default
    return parsed


def load_settings() -> Settings:
    """Reads BULKED_* variables from the environment and a .env file, if any."""
    dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))
    return Settings(
        context_lines=_read_context("BULKED_CONTEXT", DEFAULT_CONTEXT_LINES),
        no_ignore=_read_bool("BULKED_NO_IGNORE", False),
        hidden=_read_bool("BULKED_HIDDEN", False),
    )
