"""
SRT Tool Core Exceptions

Exception hierarchy shared by the core modules, the API and the CLI.
Every error carries a human readable message and optional details.
"""

from typing import Dict, Optional


class SRTError(Exception):
    """Base class for all Schema Refresh Tool errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, str]:
        """Convert the error to a dictionary (used by the API layer)."""
        result = {
            'error': self.__class__.__name__,
            'message': self.message
        }
        if self.details:
            result['details'] = self.details
        return result


class EnvironmentError(SRTError):
    """Raised when an environment definition is missing or invalid."""
    pass


class ValidationError(SRTError):
    """Raised when a parameter fails validation."""
    pass


class DatabaseError(SRTError):
    """Raised when a database operation fails."""
    pass


class CatalogError(DatabaseError):
    """Raised when catalog discovery fails. Always fatal to a replication run."""
    pass


class ReplicationError(SRTError):
    """Raised when a replication run cannot be set up or completed."""
    pass


class EncryptionError(SRTError):
    """Raised when encrypting or decrypting an environment fails."""
    pass


class ConfigError(SRTError):
    """Raised when the tool configuration cannot be read or written."""
    pass
