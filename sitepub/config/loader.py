"""Configuration loader."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .models import ConfigModel

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "sitepub" / "config.yaml"

# Environment variable naming an alternative config file
CONFIG_ENV = "SITEPUB_CONFIG"


class Config:
    """Lazily loaded configuration plus the workspace directories derived from it."""

    def __init__(self, config_path: Optional[Path] = None, config: Optional[ConfigModel] = None) -> None:
        """
        Initialize config manager.

        Args:
            config_path: YAML file; defaults to $SITEPUB_CONFIG, then ~/.config/sitepub/config.yaml
            config: Already built configuration, used instead of reading the file
        """
        if config_path is None:
            config_path = Path(os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH))
        self.config_path = Path(config_path)
        self._config = config

    @property
    def config(self) -> ConfigModel:
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    def _directory(self, path: Path) -> Path:
        path = path.expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def workspace_root(self) -> Path:
        return self._directory(Path(self.config.workspace_root))

    @property
    def build_root(self) -> Path:
        """Build artifact and build logs."""
        return self._directory(self.workspace_root / "build")

    @property
    def runs_dir(self) -> Path:
        """Archived run records when no database is configured."""
        return self._directory(self.workspace_root / "runs")

    @property
    def cache_dir(self) -> Path:
        """Build tool binaries, keyed by version."""
        return self._directory(Path(self.config.hugo.cache_dir))

    def get_db_config(self) -> Optional[Dict[str, Any]]:
        """Postgres section as a dict, or None when runs are archived to files."""
        if self.config.postgres is None:
            return None
        return self.config.postgres.model_dump()

    def get_llm_config(self) -> Dict[str, Any]:
        """LLM section as a dict with the API key resolved from the environment."""
        llm_config = self.config.llm.model_dump()
        env_name = llm_config.get("api_key_env")
        if env_name and os.environ.get(env_name):
            llm_config["api_key"] = os.environ[env_name]
        return llm_config


def load_config(config_path: Path) -> ConfigModel:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path} (run `sitepub init` first)")

    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")

    try:
        return ConfigModel(**config_data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}")


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)
