"""
Unit tests for environment-based configuration

Deletion settings, auth settings and the tiered logging levels.
"""
import logging
from pathlib import Path

import pytest

from messenger.config.auth import AuthSettings
from messenger.config.deletion import DEFAULT_BATCH_SIZE, DeletionSettings
from messenger.config.logging_config import TRACE, _parse_log_level, get_log_level, get_logger
from messenger.services.auth_service import AuthService


pytestmark = pytest.mark.unit


class TestDeletionSettings:
    """Loading DeletionSettings from environment variables"""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AVATARS_DIR", raising=False)
        monkeypatch.delenv("DELETION_BATCH_SIZE", raising=False)

        settings = DeletionSettings.from_env()

        assert settings.avatars_dir == Path("uploads/avatars")
        assert settings.batch_size == DEFAULT_BATCH_SIZE

    def test_custom_values(self, monkeypatch):
        monkeypatch.setenv("AVATARS_DIR", "/srv/messenger/avatars")
        monkeypatch.setenv("DELETION_BATCH_SIZE", "50")

        settings = DeletionSettings.from_env()

        assert settings.avatars_dir == Path("/srv/messenger/avatars")
        assert settings.batch_size == 50

    def test_empty_avatar_dir_disables_disposal(self, monkeypatch):
        monkeypatch.setenv("AVATARS_DIR", "")

        assert DeletionSettings.from_env().avatars_dir is None

    @pytest.mark.parametrize("value", ["0", "-3"])
    def test_batch_size_must_be_positive(self, monkeypatch, value):
        monkeypatch.setenv("DELETION_BATCH_SIZE", value)

        with pytest.raises(ValueError, match="DELETION_BATCH_SIZE must be positive"):
            DeletionSettings.from_env()


class TestAuthSettings:
    """Loading AuthSettings and issuing tokens with them"""

    def test_env_values(self, monkeypatch):
        monkeypatch.setenv("AUTH_SECRET_KEY", "s3cret")
        monkeypatch.setenv("AUTH_ALGORITHM", "HS512")
        monkeypatch.setenv("AUTH_ACCESS_TOKEN_EXPIRE_MINUTES", "15")

        settings = AuthSettings.from_env()

        assert settings.secret_key == "s3cret"
        assert settings.algorithm == "HS512"
        assert settings.access_token_expire_minutes == 15

    def test_generated_secret_when_unset(self, monkeypatch):
        monkeypatch.delenv("AUTH_SECRET_KEY", raising=False)

        assert len(AuthSettings.from_env().secret_key) >= 32

    def test_empty_secret_is_replaced(self, monkeypatch):
        monkeypatch.setenv("AUTH_SECRET_KEY", "")

        assert len(AuthSettings.from_env().secret_key) >= 32

    def test_token_round_trip(self):
        service = AuthService(AuthSettings(secret_key="k", algorithm="HS256", access_token_expire_minutes=5))

        payload = service.decode_token(service.create_access_token(42, is_admin=True))

        assert payload["sub"] == "42"
        assert payload["admin"] is True
        assert payload["type"] == "access"

    def test_token_signed_with_other_key_is_rejected(self):
        issuer = AuthService(AuthSettings(secret_key="one", algorithm="HS256", access_token_expire_minutes=5))
        verifier = AuthService(AuthSettings(secret_key="two", algorithm="HS256", access_token_expire_minutes=5))

        assert verifier.decode_token(issuer.create_access_token(42)) is None

    def test_expired_token_is_rejected(self):
        service = AuthService(AuthSettings(secret_key="k", algorithm="HS256", access_token_expire_minutes=-1))

        assert service.decode_token(service.create_access_token(42)) is None


class TestLoggingLevels:
    """Per-service log level overrides"""

    def test_service_override_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        monkeypatch.setenv("LOG_LEVEL_DELETION", "TRACE")

        assert get_log_level("messenger.services.user_deletion") == TRACE
        assert get_log_level("messenger.routes.user_routes") == logging.INFO

    def test_commands_share_deletion_override(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL_DELETION", "DEBUG")

        assert get_log_level("messenger.database.delete_user") == logging.DEBUG
        assert get_log_level("messenger.database.delete_users_except") == logging.DEBUG

    def test_unmapped_module_uses_global_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("LOG_LEVEL_API", "DEBUG")

        assert get_log_level("messenger.database.session") == logging.ERROR

    def test_default_when_nothing_set(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("LOG_LEVEL_AUTH", raising=False)

        assert get_log_level("messenger.services.auth_service") == logging.INFO

    @pytest.mark.parametrize("name, expected", [
        ("trace", TRACE),
        ("WARN", logging.WARNING),
        ("warning", logging.WARNING),
        ("bogus", logging.INFO),
    ])
    def test_parse_level_names(self, name, expected):
        assert _parse_log_level(name) == expected

    def test_logger_has_trace(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL_DELETION", "TRACE")

        logger = get_logger("messenger.services.user_deletion")

        assert logger.level == TRACE
        assert logger.isEnabledFor(TRACE)
        logger.trace("trace message")
