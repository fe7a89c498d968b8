"""
Configuration management using Pydantic Settings.

Architecture Decision: Why pydantic-settings?
- Type-safe configuration with validation
- Supports multiple sources (YAML, env vars, defaults)
- Easy to test with different configurations
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from focusflow.domain.models import AppSettings

PREFERENCES_FILE = "settings.yaml"


def _xdg_dir(variable: str, fallback: Path) -> Path:
    value = os.environ.get(variable)
    return Path(value) if value else fallback


class Settings(BaseSettings):
    """
    Process settings with multiple sources:
    1. Default values (hardcoded)
    2. YAML config file
    3. Environment variables (highest priority)

    ``defaults`` seeds the user preferences of a fresh application state.
    """
    model_config = SettingsConfigDict(
        env_prefix='FOCUSFLOW_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    # Application paths
    app_name: str = "FocusFlow"
    config_dir: Optional[Path] = None
    data_dir: Optional[Path] = None

    # Database
    database_url: Optional[str] = None
    state_key: str = "focusflow-state"

    # Timer
    tick_interval_seconds: float = 1.0

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # Backups
    backup_retention_count: int = 5

    # Access gate
    require_passcode: bool = True

    # Preferences for a fresh state
    defaults: AppSettings = AppSettings()

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._init_paths()
        self._load_yaml_config()

    def _init_paths(self):
        """Fill in XDG-style config and data dirs, then make sure both exist"""
        folder = self.app_name.lower()
        if self.config_dir is None:
            self.config_dir = _xdg_dir("XDG_CONFIG_HOME", Path.home() / ".config") / folder
        if self.data_dir is None:
            self.data_dir = _xdg_dir("XDG_DATA_HOME", Path.home() / ".local" / "share") / folder

        for path in (self.config_dir, self.data_dir):
            path.mkdir(parents=True, exist_ok=True)

    def preference_files(self) -> List[Path]:
        """Candidate preference files, highest precedence first"""
        return [Path("config") / PREFERENCES_FILE, self.config_dir / PREFERENCES_FILE]

    def _load_yaml_config(self):
        """Seed ``defaults`` from the first preference file that exists"""
        config_file = next((p for p in self.preference_files() if p.exists()), None)
        if config_file is None:
            return
        with open(config_file, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
        self.defaults = self.defaults.model_copy(update=AppSettings(**config_data).model_dump(exclude_unset=True))

    def save_defaults(self):
        """Save current preference defaults to YAML file"""
        config_file = self.config_dir / PREFERENCES_FILE
        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(self.defaults.model_dump(mode='json'), f, default_flow_style=False)

    def get_db_url(self) -> str:
        """Configured URL, or the SQLite file in the data dir"""
        return self.database_url or f"sqlite+aiosqlite:///{self.data_dir / 'focusflow.db'}"

    def get_log_file(self) -> Path:
        return self.log_file or self.data_dir / 'logs' / 'focusflow.log'

    def get_backup_dir(self) -> Path:
        return self.data_dir / 'backups'


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Re-read env vars and preference files"""
    global _settings
    _settings = Settings()
    return _settings
