"""
Unit tests for configuration loading.
"""

import pytest
from mbwatch.config import _load_env, parse_account_specs
from mbwatch.models import AccountSpec


ENV_VARS = [
    "MBSYNC_ACCOUNTS",
    "MBSYNC_EXECUTABLE",
    "MBSYNC_VERBOSITY_FLAG",
    "MBSYNC_INTERVAL",
    "LOG_LEVEL",
    "LOG_FILE",
    "HEALTH_CHECK_ENABLED",
    "HEALTH_CHECK_PORT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestParseAccountSpecs:
    """Tests for parse_account_specs function."""

    def test_bare_names_use_default(self):
        assert parse_account_specs("gmail, work", 300) == [
            AccountSpec("gmail", 300),
            AccountSpec("work", 300),
        ]

    def test_explicit_interval(self):
        assert parse_account_specs("gmail:60,work", 300) == [
            AccountSpec("gmail", 60),
            AccountSpec("work", 300),
        ]

    def test_blank_items_skipped(self):
        assert parse_account_specs(" , gmail ,,", 300) == [AccountSpec("gmail", 300)]

    def test_duplicate_keeps_first_position_last_interval(self):
        assert parse_account_specs("gmail:60,work,gmail:120", 300) == [
            AccountSpec("gmail", 120),
            AccountSpec("work", 300),
        ]

    @pytest.mark.parametrize("value", ["gmail:abc", "gmail:0", "gmail:-5", ":60"])
    def test_invalid_items(self, value):
        with pytest.raises(ValueError):
            parse_account_specs(value, 300)


class TestLoadEnv:
    """Tests for _load_env function."""

    def test_defaults(self, clean_env):
        """Test defaults when only the account list is set."""
        clean_env.setenv("MBSYNC_ACCOUNTS", "gmail")
        cfg = _load_env()

        assert cfg["ACCOUNTS"] == [AccountSpec("gmail", 300)]
        assert cfg["MBSYNC_EXECUTABLE"] == "mbsync"
        assert cfg["MBSYNC_VERBOSITY_FLAG"] == "-V"
        assert cfg["DEFAULT_INTERVAL"] == 300
        assert cfg["LOG_LEVEL"] == "INFO"
        assert cfg["LOG_FILE"] is None
        assert cfg["HEALTH_CHECK_ENABLED"] is True
        assert cfg["HEALTH_CHECK_PORT"] == 8080

    def test_overrides(self, clean_env):
        """Test every variable is honoured."""
        clean_env.setenv("MBSYNC_ACCOUNTS", "gmail:60, work")
        clean_env.setenv("MBSYNC_EXECUTABLE", "/usr/local/bin/mbsync")
        clean_env.setenv("MBSYNC_INTERVAL", "900")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("LOG_FILE", "/tmp/mbwatch.log")
        clean_env.setenv("HEALTH_CHECK_ENABLED", "no")
        clean_env.setenv("HEALTH_CHECK_PORT", "9090")
        cfg = _load_env()

        assert cfg["ACCOUNTS"] == [AccountSpec("gmail", 60), AccountSpec("work", 900)]
        assert cfg["MBSYNC_EXECUTABLE"] == "/usr/local/bin/mbsync"
        assert cfg["LOG_LEVEL"] == "DEBUG"
        assert cfg["LOG_FILE"] == "/tmp/mbwatch.log"
        assert cfg["HEALTH_CHECK_ENABLED"] is False
        assert cfg["HEALTH_CHECK_PORT"] == 9090

    def test_accounts_required(self, clean_env):
        with pytest.raises(ValueError, match="MBSYNC_ACCOUNTS"):
            _load_env()

    def test_accounts_must_name_something(self, clean_env):
        clean_env.setenv("MBSYNC_ACCOUNTS", " , ")
        with pytest.raises(ValueError):
            _load_env()

    def test_invalid_interval(self, clean_env):
        clean_env.setenv("MBSYNC_ACCOUNTS", "gmail")
        clean_env.setenv("MBSYNC_INTERVAL", "0")
        with pytest.raises(ValueError, match="MBSYNC_INTERVAL"):
            _load_env()

    def test_invalid_port(self, clean_env):
        clean_env.setenv("MBSYNC_ACCOUNTS", "gmail")
        clean_env.setenv("HEALTH_CHECK_PORT", "80")
        with pytest.raises(ValueError, match="HEALTH_CHECK_PORT"):
            _load_env()
