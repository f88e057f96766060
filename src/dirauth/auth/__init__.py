"""
DirAuth Auth Module

High-level interface for directory-backed login decisions.

Components:
- authenticator: DirectoryAuthenticator and create_ldap_authenticator
- deadline: per-attempt timeout and cancellation
"""

from dirauth.auth.authenticator import DirectoryAuthenticator, create_ldap_authenticator
from dirauth.auth.deadline import Deadline

__all__ = [
    "Deadline",
    "DirectoryAuthenticator",
    "create_ldap_authenticator",
]
