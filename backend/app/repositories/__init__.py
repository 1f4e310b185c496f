"""
Inkwell Backend - Persistence Capabilities
============================================

What:  Abstract store contracts (AccountStore, UsageLedger, TransactionStore)
       and their two implementations.

Implementations:
    - sql.py:    async SQLAlchemy, one committed write per operation
    - memory.py: in-process dictionaries for tests and degraded deployments

The application picks one explicitly (Settings.store_backend or the
`stores=` argument of create_app); services only see the `Stores` bundle.
"""

from app.repositories.base import AccountStore, Stores, TransactionStore, UsageLedger

__all__ = ["AccountStore", "Stores", "TransactionStore", "UsageLedger"]
