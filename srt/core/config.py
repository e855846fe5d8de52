"""
SRT Tool Core Configuration

Configuration management for the tool: a JSON file under the tool home
directory merged over built-in defaults. Replication tunables (prefixes,
log tables, report size, parallelism, ...) live here.
"""

import os
import json
from typing import Any, Dict, Optional
from platformdirs import user_config_dir

from srt.core.types import OperationResult, ReplicationSettings
from srt.core.exceptions import ConfigError, ValidationError
from srt.core.utils import create_success_result, create_error_result, normalize_boolean_param
from srt.srt_utils import variables

# Replication keys and the ReplicationSettings field each one feeds
REPLICATION_KEYS = {
    "SEED_PARTITION_PREFIX": "seed_partition_prefix",
    "LOG_TABLE_PREFIX": "log_table_prefix",
    "RUN_LOG_TABLE": "run_log_table",
    "AUDIT_LOG_TABLE": "audit_log_table",
    "MAX_REPORT_ENTRIES": "max_report_entries",
    "ERROR_DETAIL_LENGTH": "error_detail_length",
    "BACKTRACE_LENGTH": "backtrace_length",
    "COPY_BATCH_SIZE": "copy_batch_size",
    "PARALLEL_WORKERS": "parallel_workers",
    "UNIT_TIMEOUT": "unit_timeout",
    "PURGE_RECYCLEBIN": "purge_recyclebin",
    "POST_REPLICATION_SQL": "post_replication_sql",
}


class ConfigManager:
    """Load, query and persist the tool configuration."""

    def __init__(self):
        self.app_name = variables.APP_NAME
        self.config_file_name = "config.json"
        self.config = self._load_config()

    def _get_default_config(self) -> Dict[str, Any]:
        defaults = ReplicationSettings()
        config = {
            "APP_NAME": self.app_name,
            "SRT_TOOL_HOME": os.getenv("SRT_TOOL_HOME", user_config_dir(self.app_name)),
            "SOURCE_ENV": None,
        }
        for key, attribute in REPLICATION_KEYS.items():
            config[key] = getattr(defaults, attribute)
        return config

    def _get_config_file_path(self) -> str:
        home = os.getenv("SRT_TOOL_HOME", user_config_dir(self.app_name))
        return os.path.join(home, self.config_file_name)

    def _load_config(self) -> Dict[str, Any]:
        config = self._get_default_config()
        config_file = self._get_config_file_path()

        if os.path.exists(config_file):
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    config.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                # Unreadable file: keep the defaults
                pass

        return config

    def _save_config(self) -> None:
        config_file = self._get_config_file_path()
        os.makedirs(os.path.dirname(os.path.abspath(config_file)), exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(self.config, f, indent=4)

    def _coerce_value(self, key: str, value: Any) -> Any:
        """Convert CLI strings to the type of the key's default value."""
        if not isinstance(value, str):
            return value

        default = self._get_default_config().get(key)

        if key == "UNIT_TIMEOUT":
            if value.strip().lower() in ('', 'none', 'null'):
                return None
            try:
                return float(value)
            except ValueError:
                raise ValidationError(f"Invalid value for {key}: {value}")
        if isinstance(default, bool):
            return normalize_boolean_param(value, key)
        if isinstance(default, int):
            try:
                return int(value)
            except ValueError:
                raise ValidationError(f"Invalid value for {key}: {value}")
        if isinstance(default, list):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                parsed = [statement.strip() for statement in value.split(';') if statement.strip()]
            if not isinstance(parsed, list):
                raise ValidationError(f"{key} expects a list of SQL statements")
            return parsed
        return value

    def get_config_value(self, key: str) -> Any:
        return self.config.get(key)

    def set_config_value(self, key: str, value: Any) -> OperationResult:
        if key not in self._get_default_config():
            raise ValidationError(f"Unknown configuration key: {key}")
        self.config[key] = self._coerce_value(key, value)
        self._save_config()
        return create_success_result(f"Configuration '{key}' set to '{self.config[key]}'")

    def reset(self) -> None:
        self.config = self._get_default_config()
        self._save_config()

    def get_srt_tool_home(self) -> str:
        return self.config.get("SRT_TOOL_HOME") or os.path.dirname(self._get_config_file_path())

    def get_envs_file(self) -> str:
        return os.path.join(self.get_srt_tool_home(), "environments.ini")

    def get_replication_settings(self) -> ReplicationSettings:
        """Build the replication tunables from the current configuration."""
        values = {}
        for key, attribute in REPLICATION_KEYS.items():
            if key in self.config:
                values[attribute] = self.config[key]
        try:
            return ReplicationSettings(**values)
        except TypeError as e:
            raise ConfigError(f"Invalid replication configuration: {str(e)}")


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Return the process-wide ConfigManager."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_replication_settings() -> ReplicationSettings:
    return get_config_manager().get_replication_settings()


def show_config_info() -> OperationResult:
    """Return the current configuration and the file paths it uses."""
    try:
        manager = get_config_manager()
        data = {
            "config": dict(manager.config),
            "paths": {
                "config_file": manager._get_config_file_path(),
                "srt_tool_home": manager.get_srt_tool_home(),
                "environments_file": manager.get_envs_file(),
            }
        }
        return create_success_result("Configuration retrieved successfully", data=data)
    except Exception as e:
        return create_error_result(f"Failed to retrieve configuration: {str(e)}")


def set_config(key: str, value: Any) -> OperationResult:
    """Set one configuration key and persist it."""
    try:
        return get_config_manager().set_config_value(key, value)
    except Exception as e:
        return create_error_result(f"Failed to update configuration: {str(e)}")


def reset_config() -> OperationResult:
    """Reset the configuration to the built-in defaults."""
    try:
        get_config_manager().reset()
        return create_success_result("Configuration reset to defaults")
    except Exception as e:
        return create_error_result(f"Failed to reset configuration: {str(e)}")
