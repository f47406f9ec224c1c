"""Tests for configuration validation."""

import os
import pytest
from pydantic import ValidationError
from unittest.mock import patch

from funding_workflow.config.config import Config, validate_config


class TestConfigValidation:
    """Test startup config validation."""

    VALID_ENV = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-key-123",
        "AI_PROVIDER": "openai",
        "OPENAI_API_KEY": "sk-test",
        "BULK_EVALUATION_DELAY_SECONDS": "0.5",
        "LOG_LEVEL": "DEBUG",
    }

    def test_valid_config_loads_successfully(self):
        """All required vars present → Config loads without error."""
        with patch.dict(os.environ, self.VALID_ENV, clear=True):
            config = validate_config()

        assert config.supabase_url == "https://test.supabase.co"
        assert config.supabase_key == "test-key-123"
        assert config.ai_provider == "openai"
        assert config.openai_api_key == "sk-test"
        assert config.bulk_evaluation_delay_seconds == 0.5
        assert config.log_level == "DEBUG"

    def test_defaults(self):
        env = {"SUPABASE_URL": "https://test.supabase.co", "SUPABASE_KEY": "k"}
        with patch.dict(os.environ, env, clear=True):
            config = Config(_env_file=None)

        assert config.ai_provider == "mock"
        assert config.monitoring_refresh_seconds == 30
        assert config.high_workload_threshold == 10
        assert config.overdue_days == 90
        assert config.default_currency == "XOF"

    def test_missing_required_vars_all_listed(self):
        """Missing vars → one ValueError naming every missing variable."""
        with patch.dict(os.environ, {"AI_PROVIDER": "mock"}, clear=True):
            with pytest.raises(ValueError) as exc_info:
                validate_config()

        message = str(exc_info.value)
        assert "SUPABASE_URL" in message
        assert "SUPABASE_KEY" in message

    def test_unknown_provider_rejected(self):
        env = {**self.VALID_ENV, "AI_PROVIDER": "gemini"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValidationError):
                validate_config()
