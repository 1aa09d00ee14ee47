"""
Repository Layer Package.

============================================================
ARCHITECTURE PRINCIPLES
============================================================
1. One repository per aggregate or child table
2. Session Injection: Sessions are injected, not created internally
3. Explicit Methods: No generic 'execute', clear method names
4. Exception Handling: All DB errors wrapped in repository exceptions
5. Repositories flush but never commit

============================================================
REPOSITORIES
============================================================
- PortfolioRepository
- TradeRepository
- FinancingEventRepository
- TradeClosureRepository
- SpotTransactionRepository

============================================================
"""

from storage.repositories.diary import (
    FinancingEventRepository,
    PortfolioRepository,
    TradeClosureRepository,
    TradeRepository,
)
from storage.repositories.exceptions import (
    ConnectionError,
    IntegrityError,
    QueryError,
    RepositoryException,
)
from storage.repositories.spot import SpotTransactionRepository


__all__ = [
    "PortfolioRepository",
    "TradeRepository",
    "FinancingEventRepository",
    "TradeClosureRepository",
    "SpotTransactionRepository",
    "RepositoryException",
    "ConnectionError",
    "IntegrityError",
    "QueryError",
]
