# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain Exceptions - Custom exceptions for the restorechain package.
"""


class RestoreChainError(Exception):
    """Base exception for all restorechain errors."""

    code = "RestoreChainError"

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RestoreChainError):
    """Raised when configuration is invalid."""

    code = "ConfigurationError"


class MalformedLSNError(RestoreChainError):
    """Raised when an LSN cannot be parsed as a non-negative integer."""

    code = "MalformedLSN"


class NoFullBackupFoundError(RestoreChainError):
    """Raised when no Full backup qualifies and the restore is not continuing."""

    code = "NoFullBackupFound"


class FileMetadataMissingError(RestoreChainError):
    """Raised when a selected backup set has no resolvable file names."""

    code = "FileMetadataMissing"


class MultiDatabaseContinuationUnsupportedError(RestoreChainError):
    """Raised when a rename is ambiguous while continuing several databases."""

    code = "MultiDatabaseContinuationUnsupported"


class HistoryError(RestoreChainError):
    """Raised when history store operations fail."""

    code = "HistoryError"
