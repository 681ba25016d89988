from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config import Settings


@pytest.fixture
def home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("GRPCC_HISTORY", raising=False)
    return tmp_path


def test_history_defaults_to_home_file(home):
    assert Settings(_env_file=None).history_path == home / ".grpcc_history"


def test_empty_history_disables_persistence(home):
    assert Settings(_env_file=None, HISTORY="").history_path is None


def test_explicit_history_path_is_expanded(home):
    assert Settings(_env_file=None, HISTORY="~/sessions/grpcc").history_path == home / "sessions" / "grpcc"
    assert Settings(_env_file=None, HISTORY="/var/tmp/h").history_path == Path("/var/tmp/h")


def test_history_read_from_environment(home, monkeypatch):
    monkeypatch.setenv("GRPCC_HISTORY", str(home / "from-env"))
    assert Settings(_env_file=None).history_path == home / "from-env"

    monkeypatch.setenv("GRPCC_HISTORY", "")
    assert Settings(_env_file=None).history_path is None


def test_log_format_is_validated():
    assert Settings(_env_file=None, LOG_FORMAT=" JSON ").LOG_FORMAT == "json"
    with pytest.raises(ValidationError):
        Settings(_env_file=None, LOG_FORMAT="xml")
