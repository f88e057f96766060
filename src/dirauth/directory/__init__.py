"""
DirAuth Directory Module

Components:
- base: DirectoryClient and TrustMappingSource contracts
- trust: TrustResolver and an in-memory trust mapping table
- config: LdapConfig connection settings
- ldap_client: ldap3-backed DirectoryClient
"""

from dirauth.directory.base import DirectoryClient, TrustMappingSource
from dirauth.directory.config import LdapConfig
from dirauth.directory.ldap_client import LdapDirectoryClient
from dirauth.directory.trust import StaticTrustMappings, TrustResolver

__all__ = [
    "DirectoryClient",
    "TrustMappingSource",
    "LdapConfig",
    "LdapDirectoryClient",
    "StaticTrustMappings",
    "TrustResolver",
]
