"""
Inkwell Backend - Application Package Initializer
===================================================

What: Marks the `app` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth/payment gates
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← quota, transforms, accounting
    ├─────────────────────────────────────┤
    │      Stores (Repositories, ABCs)    │  ← SQL or in-memory implementations
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy engine
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
