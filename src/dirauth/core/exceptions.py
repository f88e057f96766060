"""
DirAuth Exception Types

Custom exceptions for directory authentication and account reconciliation.

Only two kinds are expected during normal operation and recovered locally:
- PrincipalNotFound: no directory entry matches the username
- AccountStoreConflict: a concurrent attempt already provisioned the account

Everything else is fatal to the authentication attempt.
"""

from typing import Optional


class DirAuthError(Exception):
    """Base exception for all DirAuth errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class PrincipalNotFound(DirAuthError):
    """
    No directory principal matches the query.

    This is a normal negative outcome, not a failure of the directory.
    """

    def __init__(self, username: str, scope: Optional[str] = None) -> None:
        if scope:
            message = f"No directory user matches '{username}' within {scope}"
        else:
            message = f"No directory user matches '{username}'"
        super().__init__(message, code=32)  # LDAP noSuchObject
        self.username = username
        self.scope = scope


class DirectoryError(DirAuthError):
    """
    Directory protocol error.

    The directory answered, but not in a way the client can use
    (ambiguous match, malformed entry, rejected service bind).
    """

    pass


class DirectoryUnavailable(DirectoryError):
    """
    Directory could not be reached in time.

    Raised for transport failures, timeouts and cancelled attempts.
    Callers should not report this as bad credentials.
    """

    pass


class AccountStoreConflict(DirAuthError):
    """
    Account store uniqueness violation.

    Raised by the account service when an account or user already exists
    for the same key.
    """

    def __init__(self, message: str = "Account already exists") -> None:
        super().__init__(message, code=409)


class InvalidDistinguishedName(DirAuthError, ValueError):
    """A distinguished name could not be parsed."""

    pass


class DuplicateTrustMapping(DirAuthError):
    """A domain already has a trust mapping bound to it."""

    pass


class InvalidTransition(DirAuthError):
    """A decision trace was asked to make a transition it does not allow."""

    pass
