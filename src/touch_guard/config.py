"""Configuration management for Touch Guard."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class TrackingConfig(BaseModel):
    """Frame gating and touch detection parameters."""

    slow_frame_rate: float = Field(default=5.0, gt=0, le=60.0)
    fast_frame_rate: float = Field(default=15.0, gt=0, le=60.0)
    movement_cooloff_seconds: float = Field(default=3.0, ge=0, le=60.0)
    touch_cooloff_seconds: float = Field(default=5.0, ge=0, le=60.0)
    # Lower is more sensitive
    image_distance_threshold: float = Field(default=7.5, ge=0, le=50.0)
    # Mean mask intensity per pixel (0-255) a hand must cover
    hand_coverage_threshold: float = Field(default=10.0, ge=0, le=255.0)
    mask_size: int = Field(default=112, ge=16, le=512)


class NotificationConfig(BaseModel):
    """Notification settings."""

    enabled: bool = True
    title: str = "Hands off"
    message: str = "You are touching your face"
    duration_seconds: int = Field(default=3, ge=1, le=30)
    cooldown_seconds: float = Field(default=5.0, ge=0, le=300)


class CameraConfig(BaseModel):
    """Camera settings."""

    device_id: Optional[int] = Field(default=None, ge=0)
    width: int = Field(default=640, ge=160, le=1920)
    height: int = Field(default=480, ge=120, le=1080)
    mirror: bool = True


class AppConfig(BaseModel):
    """Main configuration."""

    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)


def validate_tracking(current: TrackingConfig, **changes: Any) -> TrackingConfig:
    """Return ``current`` with ``changes`` applied, or raise ConfigurationError."""
    unknown = set(changes) - set(TrackingConfig.model_fields)
    if unknown:
        raise ConfigurationError(f"Unknown tracking setting(s): {', '.join(sorted(unknown))}")
    try:
        return TrackingConfig.model_validate({**current.model_dump(), **changes})
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


class ConfigManager:
    """Persists AppConfig as JSON in the user config directory."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self._config_dir = Path(config_dir) if config_dir else Path(user_config_dir("touch-guard"))
        self._config_file = self._config_dir / "settings.json"
        self._config: Optional[AppConfig] = None

    @property
    def config_file(self) -> Path:
        return self._config_file

    def load_config(self) -> AppConfig:
        """Return the cached settings, reading settings.json on first use."""
        if self._config:
            return self._config

        if self._config_file.exists():
            try:
                with open(self._config_file) as f:
                    self._config = AppConfig(**json.load(f))
            except (OSError, TypeError, ValueError) as e:
                # ValidationError is a ValueError
                logger.warning(f"Ignoring unreadable settings file {self._config_file}: {e}")
                self._config = AppConfig()
        else:
            self._config = AppConfig()

        return self._config

    def save_config(self, config: Optional[AppConfig] = None) -> None:
        """Write ``config`` (or the cached settings) and cache it."""
        if not config:
            config = self._config
        if not config:
            return

        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self._config_file, "w") as f:
            json.dump(config.model_dump(), f, indent=2)
        self._config = config

    def update_config(self, **kwargs: Any) -> AppConfig:
        """Update specific configuration values.

        Raises ConfigurationError and keeps the current configuration if the
        result would be invalid.
        """
        config = self.load_config()
        config_dict = config.model_dump()

        for key, value in kwargs.items():
            if key in config_dict and isinstance(value, dict):
                config_dict[key].update(value)
            else:
                config_dict[key] = value

        try:
            updated_config = AppConfig(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e
        self.save_config(updated_config)
        return updated_config

    def update_tracking(self, **changes: Any) -> TrackingConfig:
        """Validate and persist tracking preference changes."""
        config = self.load_config()
        tracking = validate_tracking(config.tracking, **changes)
        self.save_config(config.model_copy(update={"tracking": tracking}))
        return tracking

    def reset(self) -> AppConfig:
        """Restore and persist the default configuration."""
        self._config = None
        if self._config_file.exists():
            self._config_file.unlink()
        defaults = AppConfig()
        self.save_config(defaults)
        return defaults


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Shared manager for the default settings location."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> AppConfig:
    """Settings as persisted, or defaults."""
    return get_config_manager().load_config()
