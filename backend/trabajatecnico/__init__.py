"""
TrabajaTecnico Backend — Application Package
=============================================

What: REST backend for the TrabajaTecnico marketplace, where freelance
      technicians apply to short-term projects posted by companies.
Who:  Imported by uvicorn (``trabajatecnico.main:app``), Alembic and pytest.

Layering:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← validate input, shape JSON
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← lifecycle, notifications, mail
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
