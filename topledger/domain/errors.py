"""
Error taxonomy shared by use cases and the HTTP boundary.

Every error carries the HTTP status it maps to; main.py turns them into
{"error": message} responses.
"""


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError, ValueError):
    """Missing or out-of-range input"""
    status_code = 400


class AuthError(LedgerError):
    """Missing, invalid or expired token"""
    status_code = 401


class ForbiddenError(LedgerError):
    """Role or ownership mismatch"""
    status_code = 403


class NotFoundError(LedgerError):
    status_code = 404


class ConflictError(LedgerError):
    """State conflict, e.g. starting a top while one is active"""
    status_code = 409


class StorageError(LedgerError):
    """Underlying store unavailable"""
    status_code = 500
