"""
SRT Tool Core

Replication engine and the environment/configuration layer it runs on. The
CLI and the API are thin wrappers over the functions exported here.
"""

from srt.core.replication import replicate, ReplicationOrchestrator
from srt.core.environment import (
    create_environment, list_environments, get_environment, delete_environment,
    test_environment, get_connection_url
)
from srt.core.config import show_config_info, set_config, reset_config, get_replication_settings
from srt.core.types import OperationResult, ReplicationRun, RunOutcome, RunState

__all__ = [
    'replicate',
    'ReplicationOrchestrator',
    'create_environment',
    'list_environments',
    'get_environment',
    'delete_environment',
    'test_environment',
    'get_connection_url',
    'show_config_info',
    'set_config',
    'reset_config',
    'get_replication_settings',
    'OperationResult',
    'ReplicationRun',
    'RunOutcome',
    'RunState',
]
