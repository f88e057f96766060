"""
DirAuth Accounts Module

Components:
- base: AccountStore and AccountService contracts
- synchronizer: AccountSynchronizer and the pure reconcile() decision table
"""

from dirauth.accounts.base import AccountService, AccountStore
from dirauth.accounts.synchronizer import AccountSynchronizer, reconcile

__all__ = [
    "AccountService",
    "AccountStore",
    "AccountSynchronizer",
    "reconcile",
]
