"""Tests for environment-driven settings."""

import pytest

from securecontact.config import load_settings
from securecontact.shared.errors import FailurePolicy


class TestLoadSettings:

    def test_empty_values_are_unset(self, monkeypatch) -> None:
        monkeypatch.setenv("ENCRYPTION_KEY", "   ")
        monkeypatch.setenv("RECAPTCHA_SECRET_KEY", "")
        settings = load_settings()

        assert settings.encryption_key is None
        assert settings.encryption_enabled is False
        assert settings.recaptcha_enabled is False

    def test_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("ENCRYPTION_KEY", "k")
        monkeypatch.setenv("MAX_FAILED_ATTEMPTS", "3")
        monkeypatch.setenv("RECAPTCHA_MIN_SCORE", "0.7")
        monkeypatch.setenv("BAN_CHECK_POLICY", "FAIL_CLOSED")
        settings = load_settings()

        assert settings.encryption_enabled is True
        assert settings.max_failed_attempts == 3
        assert settings.recaptcha_min_score == 0.7
        assert settings.ban_check_policy == FailurePolicy.FAIL_CLOSED
        assert settings.scanner_policy == FailurePolicy.FAIL_OPEN

    def test_bad_integer(self, monkeypatch) -> None:
        monkeypatch.setenv("BAN_DURATION_HOURS", "forever")
        with pytest.raises(ValueError):
            load_settings()

    def test_unknown_policy(self, monkeypatch) -> None:
        monkeypatch.setenv("SCANNER_POLICY", "sometimes")
        with pytest.raises(ValueError):
            load_settings()

    def test_reads_dotenv_file(self, monkeypatch, tmp_path) -> None:
        (tmp_path / ".env").write_text("MAX_FAILED_ATTEMPTS=7\nSCANNER_POLICY=fail_closed\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("MAX_FAILED_ATTEMPTS", raising=False)
        monkeypatch.delenv("SCANNER_POLICY", raising=False)
        settings = load_settings()

        assert settings.max_failed_attempts == 7
        assert settings.scanner_policy == FailurePolicy.FAIL_CLOSED
