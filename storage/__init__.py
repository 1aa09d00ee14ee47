"""
Storage Package.

This package manages persistence of the diary.

Modules:
- models/: SQLAlchemy ORM models
- database: Engine, sessions and transaction scopes
- repositories/: Data access layer
- store: TradeStore implementation used by the margin engine
"""
