import logging

import pytest

from dirsize.config import ConfigError, Settings
from dirsize.models import SizeFormat


def test_defaults():
    s = Settings.from_env({})
    assert s.size_format is SizeFormat.MEGABYTES
    assert s.min_size == 1_000_000
    assert s.strategy == "pool"
    assert s.workers is None
    assert s.log_level == logging.INFO


def test_environment_overrides():
    s = Settings.from_env({
        "DIRSIZE_SIZE": "gb",
        "DIRSIZE_MIN_SIZE": "5_000",
        "DIRSIZE_STRATEGY": "Threaded",
        "DIRSIZE_WORKERS": "3",
        "DIRSIZE_DEBUG": "yes",
        "DIRSIZE_LOG_FILE": "/tmp/x.log",
    })
    assert s.size_format is SizeFormat.GIGABYTES
    assert s.min_size == 5000
    assert s.strategy == "threaded"
    assert s.workers == 3
    assert s.log_level == logging.DEBUG
    assert s.log_file == "/tmp/x.log"


@pytest.mark.parametrize("env", [
    {"DIRSIZE_SIZE": "pb"},
    {"DIRSIZE_MIN_SIZE": "lots"},
    {"DIRSIZE_MIN_SIZE": "-1"},
    {"DIRSIZE_WORKERS": "0"},
    {"DIRSIZE_STRATEGY": "fast"},
    {"DIRSIZE_CHROME_ROWS": "-2"},
    {"DIRSIZE_CHROME_ROWS": "tall"},
])
def test_invalid_environment(env):
    with pytest.raises(ConfigError):
        Settings.from_env(env)


def test_merged_ignores_unset_overrides():
    base = Settings.from_env({"DIRSIZE_SIZE": "kb"})
    s = base.merged(size_format=None, strategy="sequential", workers=None)
    assert s.size_format is SizeFormat.KILOBYTES
    assert s.strategy == "sequential"
    with pytest.raises(ConfigError):
        base.merged(min_size=-5)


def test_chrome_rows_from_environment():
    assert Settings.from_env({}).chrome_rows == 3
    assert Settings.from_env({"DIRSIZE_CHROME_ROWS": "6"}).chrome_rows == 6
