"""
Trust mapping lookup.

A trust mapping binds a local domain to a directory group or OU and turns
on domain-wide auto-provisioning for that domain.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, Optional

import attrs
import structlog

from dirauth.core.exceptions import DuplicateTrustMapping
from dirauth.core.types import TrustMapping
from dirauth.directory.base import TrustMappingSource


@attrs.define
class TrustResolver:
    """
    Resolves the trust mapping for a domain.

    Absence is a normal outcome: the domain falls back to per-user
    directory authentication.
    """

    source: TrustMappingSource
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def resolve(self, domain_id: Any) -> Optional[TrustMapping]:
        mapping = self.source.resolve_trust_mapping(domain_id)
        if mapping is None:
            self._logger.debug("trust_mapping_absent", domain_id=domain_id)
        else:
            self._logger.debug(
                "trust_mapping_resolved",
                domain_id=domain_id,
                bound_name=mapping.bound_name,
                binding_type=mapping.binding_type.name,
            )
        return mapping


@attrs.define
class StaticTrustMappings(TrustMappingSource):
    """
    In-memory trust mapping table.

    INVARIANT: at most one mapping per domain

    Example:
        mappings = StaticTrustMappings.of([
            TrustMapping(domain_id=1, bound_name="CN=devs,OU=groups,DC=example,DC=com"),
        ])
        resolver = TrustResolver(mappings)
    """

    _mappings: Dict[Any, TrustMapping] = attrs.Factory(dict)
    _lock: threading.RLock = attrs.Factory(threading.RLock)

    @classmethod
    def of(cls, mappings: Iterable[TrustMapping]) -> "StaticTrustMappings":
        table = cls()
        for mapping in mappings:
            table.add(mapping)
        return table

    def add(self, mapping: TrustMapping) -> None:
        with self._lock:
            existing = self._mappings.get(mapping.domain_id)
            if existing is not None:
                raise DuplicateTrustMapping(
                    f"Domain {mapping.domain_id} is already linked to {existing.bound_name}"
                )
            self._mappings[mapping.domain_id] = mapping

    def remove(self, domain_id: Any) -> Optional[TrustMapping]:
        with self._lock:
            return self._mappings.pop(domain_id, None)

    def resolve_trust_mapping(self, domain_id: Any) -> Optional[TrustMapping]:
        with self._lock:
            return self._mappings.get(domain_id)

    def __len__(self) -> int:
        return len(self._mappings)
