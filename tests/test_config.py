"""Tests for the config module."""

import pytest

from xlsxcore.config import Settings, _parse_bool


class TestParseBool:
    """Test boolean environment parsing."""

    def test_parse_bool_true(self, monkeypatch):
        """Test parsing a true flag, case-insensitively."""
        monkeypatch.setenv("VERIFY_PASSWORD", "True")
        assert _parse_bool("VERIFY_PASSWORD", "false") is True

    def test_parse_bool_false(self, monkeypatch):
        """Test that anything but "true" is false."""
        monkeypatch.setenv("VERIFY_PASSWORD", "yes")
        assert _parse_bool("VERIFY_PASSWORD", "true") is False

    def test_parse_bool_default(self, monkeypatch):
        """Test the default is used when the variable is unset."""
        monkeypatch.delenv("VERIFY_PASSWORD", raising=False)
        assert _parse_bool("VERIFY_PASSWORD", "true") is True


class TestSettings:
    """Test Settings configuration."""

    def test_settings_initialization_with_defaults(self):
        """Test Settings initialization with default values."""
        settings = Settings()

        assert settings.total_rows == 1048576
        assert settings.max_columns == 16384
        assert settings.max_spin_count == 10000000
        assert settings.verify_password is True
        assert settings.truncate_to_declared_size is True
        assert settings.log_level == "INFO"

    def test_settings_explicit_values(self):
        """Test Settings with explicit parameters."""
        settings = Settings(
            total_rows=65536,
            max_columns=256,
            max_spin_count=100000,
            verify_password=False,
            truncate_to_declared_size=False,
            log_level="DEBUG",
        )

        assert settings.total_rows == 65536
        assert settings.max_columns == 256
        assert settings.max_spin_count == 100000
        assert settings.verify_password is False
        assert settings.truncate_to_declared_size is False
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize("value", [True, False])
    def test_settings_verify_flag_variations(self, value):
        """Test the verification flag accepts both values."""
        assert Settings(verify_password=value).verify_password is value
