"""
Configuration loader for the voicemail bridge.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class PlatformConfig:
    api_url: str = "https://api.rogertalk.com/v17/"
    access_token: str = ""
    timeout_s: float = 30.0


@dataclass
class DatabaseConfig:
    url: str = "sqlite:///./voicemail_bridge.db"      # postgresql:// | mysql:// | sqlite://
    store_backend: str = "memory"                      # "sql" | "memory" | "file"
    store_file_dir: str = "./data"                     # directory for file backend


@dataclass
class TwilioConfig:
    account_sid: str = ""
    auth_token: str = ""
    from_number: str = ""


@dataclass
class VoicemailConfig:
    anonymous_caller: str = "unknownuser"   # stands in for an empty From
    deliver_timeout_s: float = 60.0         # deadline for one whole deliver()


@dataclass
class FlusherConfig:
    enabled: bool = True
    interval_s: int = 300


@dataclass
class NotificationConfig:
    sms_on_queue: bool = False
    message: str = (
        "You have new voicemail in Roger. First, please verify your phone number to listen.\n"
        "Open Roger > Settings > Connect accounts > Add phone number.\n"
        "http://rgr.im/get"
    )


@dataclass
class Settings:
    app_name: str = "VoicemailBridge"
    debug: bool = False
    platform: PlatformConfig = field(default_factory=PlatformConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    twilio: TwilioConfig = field(default_factory=TwilioConfig)
    voicemail: VoicemailConfig = field(default_factory=VoicemailConfig)
    flusher: FlusherConfig = field(default_factory=FlusherConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "VOICEMAIL_BRIDGE_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = raw.get("debug", settings.debug)

        if "platform" in raw:
            p = raw["platform"]
            settings.platform = PlatformConfig(
                api_url=p.get("api_url", settings.platform.api_url),
                access_token=p.get("access_token", ""),
                timeout_s=float(p.get("timeout_s", settings.platform.timeout_s)),
            )

        if "database" in raw:
            db = raw["database"]
            settings.database = DatabaseConfig(
                url=db.get("url", settings.database.url),
                store_backend=db.get("store_backend", settings.database.store_backend),
                store_file_dir=db.get("store_file_dir", settings.database.store_file_dir),
            )

        if "twilio" in raw:
            tw = raw["twilio"]
            settings.twilio = TwilioConfig(
                account_sid=tw.get("account_sid", ""),
                auth_token=tw.get("auth_token", ""),
                from_number=tw.get("from_number", ""),
            )

        if "voicemail" in raw:
            vm = raw["voicemail"]
            settings.voicemail = VoicemailConfig(
                anonymous_caller=vm.get("anonymous_caller", settings.voicemail.anonymous_caller),
                deliver_timeout_s=float(vm.get("deliver_timeout_s", settings.voicemail.deliver_timeout_s)),
            )

        if "flusher" in raw:
            fl = raw["flusher"]
            settings.flusher = FlusherConfig(
                enabled=fl.get("enabled", True),
                interval_s=int(fl.get("interval_s", 300)),
            )

        if "notifications" in raw:
            n = raw["notifications"]
            settings.notifications = NotificationConfig(
                sms_on_queue=n.get("sms_on_queue", False),
                message=n.get("message", settings.notifications.message),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    _settings = None
