"""
Tests — Settings loading and service wiring.
"""
import pytest

from config.settings import (
    DatabaseConfig, Settings, load_settings, get_settings, reset_settings,
)
from core.services import build_services
from database.store_memory import InMemoryVoicemailStore
from backend.platform import PlatformClient


@pytest.fixture(autouse=True)
def _clear_cache():
    reset_settings()
    yield
    reset_settings()


class TestDefaults:
    def test_default_settings(self):
        s = Settings()
        assert s.platform.api_url == "https://api.rogertalk.com/v17/"
        assert s.voicemail.anonymous_caller == "unknownuser"
        assert s.flusher.enabled is True
        assert s.notifications.sms_on_queue is False
        assert s.database.store_backend == "memory"

    def test_missing_file_yields_defaults(self, tmp_path):
        s = load_settings(str(tmp_path / "nope.yaml"))
        assert s.app_name == "VoicemailBridge"

    def test_get_settings_caches(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VOICEMAIL_BRIDGE_CONFIG", str(tmp_path / "nope.yaml"))
        assert get_settings() is get_settings()


class TestYamlLoading:
    def test_sections_and_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PLATFORM_ACCESS_TOKEN", "tok-123")
        path = tmp_path / "settings.yaml"
        path.write_text(
            "app_name: Bridge\n"
            "platform:\n"
            "  access_token: ${PLATFORM_ACCESS_TOKEN}\n"
            "  timeout_s: 5\n"
            "database:\n"
            "  store_backend: file\n"
            "  store_file_dir: /var/lib/bridge\n"
            "twilio:\n"
            "  account_sid: AC1\n"
            "  from_number: '+14427776437'\n"
            "voicemail:\n"
            "  deliver_timeout_s: 15\n"
            "flusher:\n"
            "  enabled: false\n"
            "  interval_s: 60\n"
            "notifications:\n"
            "  sms_on_queue: true\n"
        )

        s = load_settings(str(path))

        assert s.app_name == "Bridge"
        assert s.platform.access_token == "tok-123"
        assert s.platform.timeout_s == 5.0
        assert s.platform.api_url == "https://api.rogertalk.com/v17/"
        assert s.database.store_backend == "file"
        assert s.database.store_file_dir == "/var/lib/bridge"
        assert s.twilio.account_sid == "AC1"
        assert s.voicemail.deliver_timeout_s == 15.0
        assert s.voicemail.anonymous_caller == "unknownuser"
        assert s.flusher.enabled is False
        assert s.flusher.interval_s == 60
        assert s.notifications.sms_on_queue is True
        assert "verify your phone number" in s.notifications.message

    def test_unknown_env_var_left_verbatim(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("platform:\n  access_token: ${NOT_SET_ANYWHERE}\n")
        assert load_settings(str(path)).platform.access_token == "${NOT_SET_ANYWHERE}"


class TestBuildServices:
    def test_defaults_wire_memory_store_and_platform_client(self):
        services = build_services(Settings())
        assert isinstance(services.store, InMemoryVoicemailStore)
        assert isinstance(services.poster, PlatformClient)
        assert services.sms is None
        assert services.engine.store is services.store
        assert services.flusher.engine is services.engine
        assert services.engine.timeout_s == 60.0

    def test_twilio_credentials_enable_sms(self):
        s = Settings()
        s.twilio.account_sid = "AC1"
        s.twilio.auth_token = "tok"
        s.twilio.from_number = "+14427776437"
        services = build_services(s)
        assert services.sms is not None
        assert services.sms.from_number == "+14427776437"

    def test_file_backend_from_settings(self, tmp_path):
        s = Settings(database=DatabaseConfig(store_backend="file", store_file_dir=str(tmp_path)))
        assert build_services(s).store.backend_name == "file"
