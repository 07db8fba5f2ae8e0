#!/usr/bin/env python3
"""
Core configuration management for Maintenance Orchestrator
Handles application settings, user overrides, and per-run tuning knobs
"""

import os
from typing import Dict, Any, Optional, List, Tuple
from pathlib import Path
import logging

import yaml

HOME_ENV_VAR = "MAINTENANCE_ORCHESTRATOR_HOME"


def default_config_dir() -> Path:
    """Resolve the configuration directory (env override first)"""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".maintenance_orchestrator"


class Config:
    """Central configuration manager with YAML support and validation"""

    def __init__(self, config_dir: Optional[str] = None):
        self._config: Dict[str, Any] = {}
        self._user_config: Dict[str, Any] = {}

        self.set_config_dir(config_dir or default_config_dir())

    def set_config_dir(self, config_dir):
        """Switch to another configuration directory and reload from it"""
        self.config_dir = Path(config_dir).expanduser()
        self.config_file = self.config_dir / "config.yaml"
        self.user_config_file = self.config_dir / "user_config.yaml"
        self.load_config()

    def get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values"""
        return {
            'core': {
                'log_level': 'INFO',
                'log_file': str(self.config_dir / 'orchestrator.log'),
            },
            'execution': {
                'force_simulation': False,
                'interpreter': None,  # auto-detect powershell / pwsh
                'simulation_line_delay': 0.2,
                'simulation_pause_delay': 0.5,
            },
            'estimator': {
                'interval': 0.5,
                'increment': 0.01,
                'cap': 0.9,
            },
            'integrity': {
                'simulated_phase_seconds': 3.0,
            },
            'installer': {
                'download_timeout': 300,
                'chunk_size': 8192,
                'user_agent': 'Maintenance-Orchestrator/1.0',
                'catalog_file': str(self.config_dir / 'programs.yaml'),
            },
            'session': {
                'stream_buffer': 256,
            },
        }

    def load_config(self):
        """Load configuration from files"""
        self._config = {}
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    self._config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logging.error(f"Failed to load config: {e}")
                self._config = {}

        # Merge with defaults
        self._config = self._merge_configs(self.get_default_config(), self._config)

        self._user_config = {}
        if self.user_config_file.exists():
            try:
                with open(self.user_config_file, 'r') as f:
                    self._user_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logging.error(f"Failed to load user config: {e}")
                self._user_config = {}

    def save_config(self) -> bool:
        """Save current configuration to files"""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w') as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, indent=2)

            if self._user_config:
                with open(self.user_config_file, 'w') as f:
                    yaml.safe_dump(self._user_config, f, default_flow_style=False, indent=2)
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to save config: {e}")
            return False
        return True

    def get(self, key: str, default: Any = None, user_override: bool = True) -> Any:
        """Get configuration value with dot notation support"""
        keys = key.split('.')

        if user_override and self._user_config:
            value = self._get_nested_value(self._user_config, keys)
            if value is not None:
                return value

        value = self._get_nested_value(self._config, keys)
        return value if value is not None else default

    def set(self, key: str, value: Any, save_immediately: bool = True) -> bool:
        """Set configuration value with dot notation support"""
        self._set_nested_value(self._config, key.split('.'), value)

        if save_immediately:
            return self.save_config()
        return True

    def set_user(self, key: str, value: Any, save_immediately: bool = True) -> bool:
        """Set user-specific configuration value"""
        self._set_nested_value(self._user_config, key.split('.'), value)

        if save_immediately:
            return self.save_config()
        return True

    def section(self, name: str) -> Dict[str, Any]:
        """Get a whole section with user overrides applied"""
        merged = dict(self._config.get(name, {}) or {})
        user_section = self._user_config.get(name) if self._user_config else None
        if isinstance(user_section, dict):
            merged = self._merge_configs(merged, user_section)
        return merged

    def _get_nested_value(self, config_dict: Dict[str, Any], keys: List[str]) -> Any:
        """Get nested configuration value"""
        current = config_dict
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return None
        return current

    def _set_nested_value(self, config_dict: Dict[str, Any], keys: List[str], value: Any):
        """Set nested configuration value"""
        current = config_dict
        for key in keys[:-1]:
            if key not in current or not isinstance(current[key], dict):
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value

    def _merge_configs(self, default: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries"""
        merged = default.copy()

        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def validate_config(self) -> Tuple[bool, List[str]]:
        """Validate current configuration"""
        errors = []

        log_level = self.get('core.log_level', 'INFO')
        if log_level not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            errors.append(f"Invalid log level: {log_level}")

        for key in ('execution.simulation_line_delay', 'execution.simulation_pause_delay',
                    'estimator.interval', 'integrity.simulated_phase_seconds'):
            value = self.get(key)
            if not isinstance(value, (int, float)) or value < 0:
                errors.append(f"{key} must be a non-negative number")

        increment = self.get('estimator.increment')
        cap = self.get('estimator.cap')
        if not isinstance(increment, (int, float)) or not 0 < increment <= 1:
            errors.append("estimator.increment must be in (0, 1]")
        if not isinstance(cap, (int, float)) or not 0 < cap < 1:
            errors.append("estimator.cap must be in (0, 1)")

        chunk_size = self.get('installer.chunk_size')
        if not isinstance(chunk_size, int) or chunk_size < 1:
            errors.append("installer.chunk_size must be a positive integer")

        buffer_size = self.get('session.stream_buffer')
        if not isinstance(buffer_size, int) or buffer_size < 1:
            errors.append("session.stream_buffer must be a positive integer")

        return len(errors) == 0, errors

    def get_config_summary(self) -> Dict[str, Any]:
        """Get a summary of current configuration"""
        return {
            'config_dir': str(self.config_dir),
            'log_level': self.get('core.log_level'),
            'force_simulation': self.get('execution.force_simulation'),
            'interpreter': self.get('execution.interpreter') or 'auto',
            'catalog_file': self.get('installer.catalog_file'),
        }


# Global configuration instance
config = Config()
