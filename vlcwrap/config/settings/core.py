from __future__ import annotations

import json
import os
import shlex
import threading
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vlcwrap.backend.common.errors import ConfigError
from vlcwrap.backend.common.logging import get_logger
from vlcwrap.backend.common.types import LogLevel

from .paths import expand_env, get_user_settings_path, get_vlc_runtime_root

log = get_logger(__name__)

_SETTINGS_LOCK = threading.Lock()
_SETTINGS_SINGLETON: Optional["Settings"] = None

# field -> environment variable that overrides it
_ENV_OVERRIDES = {
    "app_name": "VLCWRAP_APP_NAME",
    "env": "VLCWRAP_ENV",
    "log_level": "VLCWRAP_LOG_LEVEL",
    "instance_args": "VLCWRAP_INSTANCE_ARGS",
    "forward_native_logs": "VLCWRAP_FORWARD_NATIVE_LOGS",
    "parse_timeout_sec": "VLCWRAP_PARSE_TIMEOUT_SEC",
}


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    app_name: str = "vlcwrap"
    env: str = "development"
    log_level: LogLevel = "INFO"
    vlc_runtime_root: Optional[str] = None
    instance_args: List[str] = Field(default_factory=list)
    forward_native_logs: bool = False
    parse_timeout_sec: float = Field(default=5.0, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("instance_args", mode="before")
    @classmethod
    def _split_args(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump()


def load_user_settings() -> Dict[str, Any]:
    user_path = get_user_settings_path()
    if not user_path.exists():
        return {}
    try:
        with user_path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"unreadable user settings {user_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"user settings {user_path} must hold a JSON object")
    return expand_env(payload)


def _build_settings() -> Settings:
    raw: Dict[str, Any] = dict(load_user_settings())
    for field_name, env_name in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is not None:
            raw[field_name] = value

    vlc_root = os.getenv("VLCWRAP_VLC_ROOT") or raw.get("vlc_runtime_root") or get_vlc_runtime_root()
    raw["vlc_runtime_root"] = vlc_root

    try:
        settings = Settings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid vlcwrap settings: {exc}") from exc

    log.debug("settings_loaded", extra={"env": settings.env, "log_level": settings.log_level})
    return settings


def get_settings(*, reload: bool = False) -> Settings:
    global _SETTINGS_SINGLETON
    with _SETTINGS_LOCK:
        if _SETTINGS_SINGLETON is None or reload:
            _SETTINGS_SINGLETON = _build_settings()

        return _SETTINGS_SINGLETON


__all__ = [
    "Settings",
    "get_settings",
    "load_user_settings",
]
