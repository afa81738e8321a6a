"""Data management package for the trust system.

Provides the storage adapter and schemas for:
- Trust relationships (explicit and inferred)
- Assertions with provenance (source, importing bot)

Storage adapters:
- TrustStore: User-scoped trust persistence, the data collaborator of the engine
"""

from trust_system.data_management.trust_store import TrustStore

__all__ = [
    "TrustStore",
]
