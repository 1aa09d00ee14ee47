"""
Analytics Package.

Read-side folds over stored trades and spot transactions.

Components:
- positions: open margin positions
- statistics: portfolio statistics, optionally marked to live quotes
- trade_analytics: win rate, monthly and per-symbol profit
- spot: spot holdings and statistics
"""

from analytics.positions import OpenPosition, open_margin_positions
from analytics.spot import (
    SpotHoldings,
    SpotPosition,
    SpotStatistics,
    TickerStatistics,
    spot_positions,
    spot_statistics,
    spot_ticker_statistics,
)
from analytics.statistics import (
    PortfolioStatistics,
    build_portfolio_statistics,
    portfolio_statistics,
)
from analytics.trade_analytics import (
    AnalyticsSummary,
    MonthlyProfit,
    SymbolProfit,
    analytics_summary,
    monthly_profit,
    symbol_profit,
)


__all__ = [
    "OpenPosition",
    "open_margin_positions",
    "PortfolioStatistics",
    "portfolio_statistics",
    "build_portfolio_statistics",
    "AnalyticsSummary",
    "MonthlyProfit",
    "SymbolProfit",
    "analytics_summary",
    "monthly_profit",
    "symbol_profit",
    "SpotHoldings",
    "SpotPosition",
    "SpotStatistics",
    "TickerStatistics",
    "spot_positions",
    "spot_statistics",
    "spot_ticker_statistics",
]
