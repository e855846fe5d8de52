"""
SRT Tool Core Utilities

Shared utility functions used across the core module.
These utilities provide common functionality for validation, result handling,
error formatting and console output.
"""

import os
import sys
import configparser
from typing import List, Dict, Any, Optional
from sqlalchemy.exc import DBAPIError

from srt.core.types import DatabaseType, OperationResult
from srt.core.exceptions import ValidationError, SRTError
from srt.srt_utils import variables


def validate_database_type(db_type: str) -> DatabaseType:
    """Validate and convert database type string to enum."""
    try:
        return DatabaseType(db_type.upper())
    except ValueError:
        valid_types = [t.value for t in DatabaseType]
        raise ValidationError(f"Invalid database type '{db_type}'. Valid types: {valid_types}")


def ensure_directory_exists(file_path: str) -> None:
    """Ensure the directory for a file path exists."""
    directory = os.path.dirname(os.path.abspath(file_path))
    if directory:
        os.makedirs(directory, exist_ok=True)


def load_environment_config() -> configparser.ConfigParser:
    """Load environment configuration from file."""
    config = configparser.ConfigParser()
    if os.path.exists(variables.ENVS_FILE):
        config.read(variables.ENVS_FILE)
    return config


def save_environment_config(config: configparser.ConfigParser) -> None:
    """Save environment configuration to file."""
    ensure_directory_exists(variables.ENVS_FILE)

    with open(variables.ENVS_FILE, 'w') as f:
        config.write(f)


def create_success_result(message: str, data: Any = None, record_count: int = None) -> OperationResult:
    """Create a successful operation result."""
    return OperationResult(
        success=True,
        message=message,
        data=data,
        record_count=record_count
    )


def create_error_result(message: str, error_details: str = None, data: Any = None) -> OperationResult:
    """Create an error operation result."""
    return OperationResult(
        success=False,
        message=message,
        data=data,
        error_details=error_details
    )


def handle_exception(e: Exception, operation: str) -> OperationResult:
    """Handle exceptions and convert to operation result."""
    if isinstance(e, SRTError):
        return create_error_result(e.message, e.details)
    else:
        return create_error_result(
            f"Error during {operation}: {str(e)}",
            str(type(e).__name__)
        )


def validate_required_params(params: Dict[str, Any], required: List[str]) -> None:
    """Validate that required parameters are present and not None."""
    missing = []
    for param in required:
        if param not in params or params[param] is None:
            missing.append(param)

    if missing:
        raise ValidationError(f"Missing required parameters: {', '.join(missing)}")


def normalize_boolean_param(value: Any, param_name: str) -> bool:
    """Normalize various boolean representations to bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value.lower() in ('true', '1', 'yes', 'on'):
            return True
        elif value.lower() in ('false', '0', 'no', 'off'):
            return False

    raise ValidationError(f"Invalid boolean value for {param_name}: {value}")


def safe_print(message: str) -> None:
    """Print a message, degrading gracefully on consoles that cannot encode it."""
    try:
        print(message)
    except UnicodeEncodeError:
        encoding = getattr(sys.stdout, 'encoding', None) or 'ascii'
        print(message.encode(encoding, errors='replace').decode(encoding, errors='replace'))


def truncate(text: Optional[str], length: int) -> str:
    """Cut text to at most ``length`` characters. None becomes an empty string."""
    if text is None:
        return ''
    return text[:length]


def get_error_code(e: BaseException) -> str:
    """
    Extract the driver error code from an exception.

    python-oracledb exposes ``code`` on the first argument of the DB-API error,
    psycopg2 exposes ``pgcode``. Anything else falls back to the exception
    class name.
    """
    orig = e.orig if isinstance(e, DBAPIError) and e.orig is not None else e

    if orig.args:
        code = getattr(orig.args[0], 'code', None)
        if code is not None:
            return str(code)
    for attribute in ('code', 'pgcode', 'errno'):
        code = getattr(orig, attribute, None)
        if code is not None and not callable(code):
            return str(code)
    return type(orig).__name__


def get_error_detail(e: BaseException) -> str:
    """Error text without SQLAlchemy's statement/background suffix."""
    if isinstance(e, DBAPIError) and e.orig is not None:
        return str(e.orig)
    return str(e)


def format_error_message(e: BaseException, detail_length: int = 100) -> str:
    """Render an exception as the two-line error message stored in the run log."""
    return f"error number: {get_error_code(e)}\nerr message: {truncate(get_error_detail(e), detail_length)}"
