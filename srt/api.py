"""
SRT Tool API - Programmatic interface for the Schema Refresh Tool

This module provides functions for using the tool without going through the
command-line interface. Every function returns an OperationResult and never
raises.
"""

from srt.core.replication import replicate
from srt.core.environment import (
    create_environment,
    list_environments,
    get_environment,
    delete_environment,
    test_environment,
)
from srt.core.config import show_config_info, set_config, reset_config

__all__ = [
    # Replication
    'replicate',

    # Environment Management
    'create_environment',
    'list_environments',
    'get_environment',
    'delete_environment',
    'test_environment',

    # Configuration
    'show_config_info',
    'set_config',
    'reset_config',
]
