"""
config.py

This module provides the configuration management
system for the scheduling core.
It loads settings from a YAML file,
explicitly expands environment variables,
and provides convenient access to these settings
through a singleton instance of the Config class.

Usage Example:

1. Import the config instance:
   from interview_scheduler.config import config

2. Access a configuration value:
   slots = config["scheduling"]["slots_per_day"]
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError


class SchedulingConfig(BaseModel):
    slots_per_day: int = Field(default=8, ge=1)
    day_start_hour: int = Field(default=9, ge=0, le=23)
    slot_minutes: int = Field(default=60, ge=1)
    # Reject chosen times that do not fall inside a feasible slot
    enforce_feasible_choice: bool = True


class MembershipConfig(BaseModel):
    repair_attempts: int = Field(default=1, ge=0)
    save_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=0.05, ge=0)


class ConfigModel(BaseModel):
    scheduling: SchedulingConfig = SchedulingConfig()
    membership: MembershipConfig = MembershipConfig()
    paths: Dict[str, Any] = Field(default_factory=dict)
    logging: Dict[str, Any] = Field(default_factory=dict)


class Config:
    """
    Manages application configuration, loading settings from a YAML file.

    Loads configuration settings from `config.yaml` at the project root,
    expands environment variables explicitly (format: ${ENV_VAR_NAME}),
    validates them against `ConfigModel` and provides dictionary-like access.
    This class is typically used as a singleton via the `config` instance
    defined at the module level.
    """

    _instance = None
    _config: Optional[Dict[str, Any]] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._config = cls._instance._load_config()
        return cls._instance

    def _load_config(self) -> Dict[str, Any]:
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

        config_dict: Dict[str, Any] = {}
        if config_path.exists():
            with open(config_path, "r") as stream:
                try:
                    config_dict = yaml.safe_load(stream) or {}
                except yaml.YAMLError as exc:
                    print(f"Error loading config.yaml: {exc}")
                    raise

        # Substitute environment variables, prefixing to avoid clashes
        config_str = json.dumps(config_dict)
        config_str = os.path.expandvars(config_str.replace("${", "${ENV_"))
        config_dict = json.loads(config_str)

        def remove_prefix(data: Any) -> Any:
            if isinstance(data, dict):
                return {k: remove_prefix(v) for k, v in data.items()}
            elif isinstance(data, list):
                return [remove_prefix(item) for item in data]
            elif isinstance(data, str) and data.startswith("${ENV_"):
                env_var_name = data[6:-1]
                return os.getenv(env_var_name, "")
            return data

        final_config: Dict[str, Any] = remove_prefix(config_dict)

        # Empty YAML sections load as None
        for section in ("scheduling", "membership", "paths", "logging"):
            if final_config.get(section) is None:
                final_config.pop(section, None)

        try:
            validated_config = ConfigModel(**final_config)
            final_config = validated_config.model_dump()
        except ValidationError as e:
            print(f"Configuration validation error: {e}")
            raise

        return final_config

    @property
    def config(self) -> Dict[str, Any]:
        if self._config is None:
            raise RuntimeError("Config not loaded")
        return self._config

    def get(self, key, default=None):
        """
        Retrieves a top-level configuration value by key,
        returning a default if not found.
        """
        return self.config.get(key, default)

    def __getitem__(self, key):
        """
        Enables dictionary-style access (e.g., `config['scheduling']`).

        Raises:
            KeyError: If the key does not exist in the configuration.
        """
        return self.config[key]

    def __repr__(self):
        return f"Config(path={Path(__file__).parent.parent / 'config.yaml'})"


# Singleton instance
config = Config().config
