"""
Configuration for the interaction analysis

Holds the analysis defaults (confidence level, report layout, recoding),
logging options and input validation switches in one nested dictionary.

Usage:
    from config import CONFIG

    CONFIG.get('interaction.ci_level')          # 0.95
    CONFIG.update('interaction.recode', True)   # runtime change
    CONFIG.get('some.nested.key', default='x')  # missing keys fall back

Environment variables prefixed with MOVER_ override defaults at import time,
e.g. MOVER_INTERACTION_CI_LEVEL=0.9 or MOVER_LOGGING_LEVEL=DEBUG.
"""

import os
import warnings
from typing import Any, Dict, Optional

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Accepted spellings of boolean flags set through environment variables
TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off"}


class ConfigManager:
    """
    Nested configuration with dot-path access.

    Keys are addressed as 'section.key'. `update` only changes keys that
    already exist.
    """

    def __init__(self, config_dict: Optional[Dict] = None):
        self._config = config_dict or self._get_default_config()
        self._env_prefix = "MOVER_"
        self._load_env_overrides()

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        return {

            # ========== INTERACTION ANALYSIS ==========
            "interaction": {
                "ci_level": 0.95,  # Two-sided confidence level
                "em": True,  # True: effect modification table, False: interaction table
                "recode": False,  # Recode preventive exposures automatically
            },

            # ========== LOGGING ==========
            "logging": {
                "enabled": True,
                "level": "INFO",
                "format": "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
                "date_format": "%Y-%m-%d %H:%M:%S",

                "file_enabled": False,
                "log_dir": "logs",
                "log_file": "interaction_mover.log",
                "max_log_size": 10485760,  # 10MB
                "backup_count": 5,

                "console_enabled": True,
                "console_level": "WARNING",

                "log_data_operations": True,
                "log_analysis_operations": True,
                "log_performance": True,
            },

            # ========== VALIDATION ==========
            "validation": {
                "validate_inputs": True,
            },
        }

    def _load_env_overrides(self) -> None:
        """
        Apply MOVER_<SECTION>_<KEY>=value overrides.

        The first segment after the prefix is the section, the rest joined by
        underscores is the key. Values stay strings. Unknown keys are skipped
        with a warning.
        """
        for name, value in os.environ.items():
            if not name.startswith(self._env_prefix):
                continue

            # MOVER_INTERACTION_CI_LEVEL -> interaction.ci_level
            section, _, key = name[len(self._env_prefix):].lower().partition('_')
            if not section or not key:
                continue

            try:
                self.update(f"{section}.{key}", value)
            except KeyError as e:
                warnings.warn(f"Ignoring env override {name}={value}: {e}", stacklevel=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Value at dot-path `key`, or `default` when any segment is missing."""
        value = self._config
        for part in key.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def update(self, key: str, value: Any) -> None:
        """
        Replace the value of an existing key.

        Raises:
            KeyError: If the section or the key does not exist.
        """
        *parents, final_key = key.split('.')
        node = self._config

        for part in parents:
            if not isinstance(node, dict) or part not in node:
                raise KeyError(f"Config path '{'.'.join(parents)}' does not exist")
            node = node[part]

        if final_key not in node:
            raise KeyError(f"Config key '{key}' does not exist")

        node[final_key] = value

    def validate(self) -> tuple[bool, list[str]]:
        """
        Check the settings the analysis depends on.

        Returns:
            tuple: (is_valid, errors) with one message per violated constraint.
        """
        errors = []

        try:
            ci_level = float(self.get('interaction.ci_level'))
        except (TypeError, ValueError):
            ci_level = None
        if ci_level is None or not 0 < ci_level < 1:
            errors.append("interaction.ci_level must be between 0 and 1")

        for flag in ('interaction.em', 'interaction.recode'):
            value = self.get(flag)
            if isinstance(value, str):
                value = value.strip().lower()
                if value not in TRUE_STRINGS | FALSE_STRINGS:
                    errors.append(f"{flag} must be a boolean, got '{value}'")
            elif not isinstance(value, bool):
                errors.append(f"{flag} must be a boolean")

        if str(self.get('logging.level')).upper() not in LOG_LEVELS:
            errors.append(f"logging.level must be one of {LOG_LEVELS}")

        return len(errors) == 0, errors

    def __repr__(self) -> str:
        return f"ConfigManager({len(self._config)} sections)"


# Global config instance
CONFIG = ConfigManager()
