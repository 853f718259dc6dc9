"""Custom exception hierarchy for ReplyThread."""


class ReplyThreadError(Exception):
    """Base exception for all ReplyThread errors."""

    def __init__(self, message: str = "An error occurred in ReplyThread"):
        self.message = message
        super().__init__(self.message)


class ValidationError(ReplyThreadError):
    """Base exception for input rejected before any host call.

    Carries an i18n key so the GUI can show the reason inline.
    """

    def __init__(self, message: str = "Validation failed", key: str = "errors.validation_failed"):
        self.key = key
        super().__init__(message)


class EditValidationError(ValidationError):
    """Edit draft is not saveable (length, reason, time limit, no changes)."""

    def __init__(self, message: str = "Edit is not valid", key: str = "edit.invalid"):
        super().__init__(message, key)


class DeleteValidationError(ValidationError):
    """Delete confirmation is incomplete (reason or confirmation token)."""

    def __init__(self, message: str = "Delete is not confirmed", key: str = "delete.invalid"):
        super().__init__(message, key)


class ReplyValidationError(ValidationError):
    """Reply draft is empty or too long."""

    def __init__(self, message: str = "Reply is not valid", key: str = "compose.invalid"):
        super().__init__(message, key)


class HostError(ReplyThreadError):
    """Base exception for failures reported by host callbacks."""

    def __init__(self, message: str = "A host operation failed"):
        super().__init__(message)


class HostCallError(HostError):
    """Host callback failed (server or network error on the host side)."""

    def __init__(self, message: str = "Host callback failed"):
        super().__init__(message)


class HostPermissionError(HostError):
    """Host rejected the action for the current user."""

    def __init__(self, message: str = "Action not permitted"):
        super().__init__(message)


class HostTimeoutError(HostError):
    """Host callback timed out."""

    def __init__(self, message: str = "Host callback timed out"):
        super().__init__(message)


class DataError(ReplyThreadError):
    """Base exception for data-related errors."""

    def __init__(self, message: str = "A data error occurred"):
        super().__init__(message)


class ThreadDataError(DataError):
    """Thread payload is malformed."""

    def __init__(self, message: str = "Malformed thread data"):
        super().__init__(message)


class ConfigError(DataError):
    """Configuration is invalid or missing."""

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message)
