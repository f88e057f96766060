"""
Pytest configuration and shared fixtures for DirAuth tests.
"""

import pytest

from dirauth.accounts.synchronizer import AccountSynchronizer
from dirauth.auth.authenticator import DirectoryAuthenticator
from dirauth.core.types import BindingType, TrustMapping
from dirauth.directory.trust import StaticTrustMappings, TrustResolver
from tests.doubles import FakeAccountStore, FakeDirectory


MAPPED_DOMAIN = 1
UNMAPPED_DOMAIN = 2
GROUP_DN = "CN=devs,OU=groups,DC=example,DC=com"


# =============================================================================
# TRUST MAPPING FIXTURES
# =============================================================================


@pytest.fixture
def group_mapping() -> TrustMapping:
    """Trust mapping binding MAPPED_DOMAIN to the devs group."""
    return TrustMapping(
        domain_id=MAPPED_DOMAIN,
        bound_name=GROUP_DN,
        default_account_type=2,
        binding_type=BindingType.GROUP,
    )


@pytest.fixture
def trust_mappings(group_mapping: TrustMapping) -> StaticTrustMappings:
    return StaticTrustMappings.of([group_mapping])


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture
def test_password() -> str:
    """Test password."""
    return "TestP@ssw0rd123!"


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def store() -> FakeAccountStore:
    return FakeAccountStore()


@pytest.fixture
def authenticator(
    directory: FakeDirectory,
    store: FakeAccountStore,
    trust_mappings: StaticTrustMappings,
) -> DirectoryAuthenticator:
    """Authenticator wired to in-memory collaborators."""
    return make_authenticator(directory, store, trust_mappings)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def make_authenticator(
    directory: FakeDirectory,
    store: FakeAccountStore,
    trust_mappings: StaticTrustMappings,
) -> DirectoryAuthenticator:
    return DirectoryAuthenticator(
        directory=directory,
        trust_resolver=TrustResolver(trust_mappings),
        accounts=store,
        synchronizer=AccountSynchronizer(store),
    )


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "concurrency: marks tests that run attempts on several threads"
    )
