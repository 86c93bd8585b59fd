"""
Pantry Proxy Backend — Configuration Tests
===========================================

What we test:
    ✅ Missing document-service credentials → ConfigurationError
    ✅ create_app() refuses to build without credentials
    ✅ API prefix normalization
    ✅ Derived values (doc URL, CORS list)
"""

import pytest

from pantry_proxy.config import Settings
from pantry_proxy.exceptions import ConfigurationError
from pantry_proxy.main import create_app


def _settings(**overrides) -> Settings:
    values = {
        "grist_base_url": "https://grist.test",
        "grist_api_key": "key",
        "grist_doc_id": "doc",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestRequiredSettings:

    def test_complete_settings_pass(self):
        _settings().validate_required()

    def test_missing_all_credentials_lists_each(self):
        settings = _settings(grist_base_url="", grist_api_key="", grist_doc_id="")
        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_required()
        assert exc_info.value.missing == ["GRIST_BASE_URL", "GRIST_API_KEY", "GRIST_DOC_ID"]
        assert "GRIST_API_KEY is not set" in exc_info.value.message

    def test_missing_api_key_only(self):
        with pytest.raises(ConfigurationError) as exc_info:
            _settings(grist_api_key="").validate_required()
        assert exc_info.value.missing == ["GRIST_API_KEY"]

    def test_create_app_refuses_to_start(self):
        with pytest.raises(ConfigurationError):
            create_app(_settings(grist_doc_id=""))


class TestDerivedSettings:

    @pytest.mark.parametrize(
        "raw, expected",
        [("", ""), ("/", ""), ("api", "/api"), ("/api", "/api"), ("/api/", "/api")],
    )
    def test_api_prefix_normalized(self, raw, expected):
        assert _settings(api_prefix=raw).api_prefix == expected

    def test_doc_url_strips_trailing_slash(self):
        settings = _settings(grist_base_url="https://grist.test/", grist_doc_id="abc")
        assert settings.grist_doc_url == "https://grist.test/api/docs/abc"

    def test_cors_origins_list(self):
        settings = _settings(cors_origins="http://a.test, http://b.test")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValueError):
            _settings(log_level="chatty")

    def test_ai_defaults_supplied(self):
        settings = _settings()
        assert settings.ai_provider == "ollama"
        assert settings.ai_service_url.startswith("http")
