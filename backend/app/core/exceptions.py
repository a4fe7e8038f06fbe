"""
Custom Exceptions for CodeSync
==============================

Raised by the services and converted into outbound events by the SyncHub,
never allowed to terminate the dispatch loop.

Usage:
    from app.core.exceptions import CloneError, ValidationError

    if not repo_url:
        raise ValidationError("repoUrl is required", field="repoUrl")
"""

from typing import Optional, Any, Dict


class CodeSyncError(Exception):
    """Base exception for all CodeSync errors"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Validation Errors
# ============================================

class ValidationError(CodeSyncError):
    """Inbound event payload is missing or has invalid fields"""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class UnknownEventError(ValidationError):
    """Inbound event type has no handler"""

    def __init__(self, event: str):
        super().__init__(f"Unknown event '{event}'")
        self.code = "UNKNOWN_EVENT"
        self.details["event"] = event


class PathOutsideProjectError(ValidationError):
    """Relative path escapes the project root"""

    def __init__(self, relative_path: str):
        super().__init__(f"Path '{relative_path}' is outside the project", field="relativePath")
        self.code = "PATH_OUTSIDE_PROJECT"


# ============================================
# Project Ingestion Errors
# ============================================

class CloneError(CodeSyncError):
    """Cloning a remote repository failed"""

    def __init__(self, repo_url: str, message: str = "Clone failed"):
        super().__init__(f"Failed to clone {repo_url}: {message}", code="CLONE_FAILED")
        self.details["repo_url"] = repo_url


# ============================================
# Execution Errors
# ============================================

class ProcessExecutionError(CodeSyncError):
    """External process failed (non-zero exit, spawn error, timeout)"""

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message, code="EXECUTION_ERROR")
        if command:
            self.details["command"] = command


class ProcessTimeoutError(ProcessExecutionError):
    """External process exceeded its deadline"""

    def __init__(self, command: str, timeout_ms: int):
        super().__init__(f"Command timed out after {timeout_ms}ms: {command}", command)
        self.code = "EXECUTION_TIMEOUT"
        self.details["timeout_ms"] = timeout_ms


# ============================================
# Storage Errors
# ============================================

class StorageError(CodeSyncError):
    """Persistence operation failed"""

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


class FileAccessError(StorageError):
    """Filesystem read/write failed"""

    def __init__(self, file_path: str, message: str):
        super().__init__(f"Failed to access '{file_path}': {message}")
        self.code = "FILE_ACCESS_ERROR"
        self.details["file_path"] = file_path


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: CodeSyncError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
