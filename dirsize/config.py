from __future__ import annotations
import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .models import SizeFormat
from .navigation import CHROME_ROWS, SIZE_FILTER_MIN
from .scanner import DEFAULT_STRATEGY, STRATEGIES

ENV_PREFIX = "DIRSIZE_"
_TRUE = ("1", "true", "yes", "on")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    """Runtime settings: defaults, then DIRSIZE_* environment, then CLI flags."""
    size_format: SizeFormat = SizeFormat.MEGABYTES
    min_size: int = SIZE_FILTER_MIN
    strategy: str = DEFAULT_STRATEGY
    workers: Optional[int] = None
    chrome_rows: int = CHROME_ROWS
    log_level: int = logging.INFO
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name, "").strip()
            return value or None

        kwargs = {}
        if get("SIZE"):
            try:
                kwargs["size_format"] = SizeFormat.parse(get("SIZE"))
            except ValueError as e:
                raise ConfigError(f"{ENV_PREFIX}SIZE: {e}")
        if get("MIN_SIZE"):
            kwargs["min_size"] = _int(get("MIN_SIZE"), "MIN_SIZE")
        if get("STRATEGY"):
            kwargs["strategy"] = get("STRATEGY").lower()
        if get("WORKERS"):
            kwargs["workers"] = _int(get("WORKERS"), "WORKERS")
        if get("CHROME_ROWS"):
            kwargs["chrome_rows"] = _int(get("CHROME_ROWS"), "CHROME_ROWS")
        if (get("DEBUG") or "").lower() in _TRUE:
            kwargs["log_level"] = logging.DEBUG
        if get("LOG_FILE"):
            kwargs["log_file"] = get("LOG_FILE")
        return cls(**kwargs).validate()

    def merged(self, **overrides) -> "Settings":
        """Copy with every override that is not None applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validate()

    def validate(self) -> "Settings":
        if self.min_size < 0:
            raise ConfigError("min_size must not be negative")
        if self.workers is not None and self.workers < 1:
            raise ConfigError("workers must be at least 1")
        if self.strategy not in STRATEGIES:
            raise ConfigError(f"unknown strategy {self.strategy!r} (expected one of {', '.join(STRATEGIES)})")
        if self.chrome_rows < 0:
            raise ConfigError("chrome_rows must not be negative")
        return self


def _int(text: str, name: str) -> int:
    try:
        return int(text.replace("_", ""))
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {text!r}")
