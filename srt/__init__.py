"""
Schema Refresh Tool

Refreshes a lower database environment from a higher one: partitions are
aligned, every table is reloaded and demand-mode materialized views are
refreshed, with per-table failures collected into one run report.
"""

__version__ = "0.1.0"

from srt.api import (
    replicate,
    create_environment,
    list_environments,
    get_environment,
    delete_environment,
    test_environment,
    show_config_info,
    set_config,
    reset_config,
)

__all__ = [
    "__version__",
    "replicate",
    "create_environment",
    "list_environments",
    "get_environment",
    "delete_environment",
    "test_environment",
    "show_config_info",
    "set_config",
    "reset_config",
]
