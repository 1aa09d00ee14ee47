"""
Quote Source Configuration.

============================================================
ENVIRONMENT
============================================================
ALPHAVANTAGE_API_KEYS       comma separated key list
ALPHAVANTAGE_API_KEY        single key, used when the list is empty
QUOTE_TTL_SECONDS           cache TTL (default 600)
QUOTE_HTTP_TIMEOUT_SECONDS  total aiohttp timeout (default 10)

A .env file in the working directory is honored.

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple

from dotenv import load_dotenv


# ============================================================
# INSTRUMENT TABLES
# ============================================================

DOMESTIC_TICKERS: FrozenSet[str] = frozenset({
    "GAZP", "ROSN", "SBER", "NVTK", "GMKN", "LKOH", "SIBN", "PLZL", "PHOR",
    "SNGS", "TATN", "NLMK", "RUAL", "CHMF", "AKRN", "VSMO", "PIKK", "ALRS",
    "MTSS", "MGNT", "TCSG", "T", "MAGN", "HYDR", "IRKT", "UNAC", "IRAO",
    "VTBR", "RTKM", "RASP", "MOEX", "BANE", "SMLT", "CBOM", "NKNC", "AFKS",
    "SGZH", "KZOS", "MGTS", "FEES", "GCHE", "NMTP", "APTK", "UPRO", "FLOT",
    "YAKG", "FESH", "MSNG", "LSNG", "AVAN", "KAZT", "VKCO", "POSI", "GLTR",
    "VK", "AGRO", "RAGR", "MVID",
})
"""Symbols quoted on MOEX first."""

TICKER_ALIASES: Dict[str, str] = {
    "TCSG": "T",
}
"""Renamed instruments: old symbol -> current symbol."""

BOARD_BY_TICKER: Dict[str, str] = {
    "GAZP": "TQBR",
    "VKCO": "TQBR",
    "SBER": "TQBR",
    "VTBR": "TQBR",
    "LKOH": "TQBR",
    "PLZL": "TQBR",
    "MGNT": "TQBR",
    "MVID": "TQBR",
    "T": "TQBR",
    "TATN": "TQBR",
    "ALRS": "TQBR",
    "MTSS": "TQBR",
    "VK": "TQBR",
    "POSI": "TQTF",
    "GLTR": "TQTF",
}
"""Preferred MOEX trading board per symbol."""

FALLBACK_BOARDS: Tuple[str, ...] = ("TQBR", "TQTF")


def _split_keys(raw: str) -> List[str]:
    return [key.strip() for key in raw.split(",") if key.strip()]


@dataclass
class QuoteConfig:
    """Configuration of the quote cache and its providers."""

    alpha_vantage_keys: List[str] = field(default_factory=list)
    """API keys tried in order on rate-limit responses."""

    ttl_seconds: int = 600
    """Default age after which a cached price is refreshed."""

    http_timeout_seconds: float = 10.0
    """Total timeout of one upstream request."""

    domestic_tickers: FrozenSet[str] = DOMESTIC_TICKERS
    aliases: Dict[str, str] = field(default_factory=lambda: dict(TICKER_ALIASES))
    boards: Dict[str, str] = field(default_factory=lambda: dict(BOARD_BY_TICKER))

    @classmethod
    def from_env(cls) -> "QuoteConfig":
        """Load configuration from environment variables."""
        load_dotenv()
        keys = _split_keys(os.getenv("ALPHAVANTAGE_API_KEYS", ""))
        if not keys:
            keys = _split_keys(os.getenv("ALPHAVANTAGE_API_KEY", ""))
        return cls(
            alpha_vantage_keys=keys,
            ttl_seconds=int(os.getenv("QUOTE_TTL_SECONDS", "600")),
            http_timeout_seconds=float(os.getenv("QUOTE_HTTP_TIMEOUT_SECONDS", "10")),
        )

    def resolve(self, ticker: str) -> str:
        """Upper-case and apply the alias table."""
        symbol = ticker.strip().upper()
        return self.aliases.get(symbol, symbol)

    def is_domestic(self, symbol: str) -> bool:
        return symbol in self.domestic_tickers

    def boards_for(self, symbol: str) -> List[str]:
        """Mapped board first, then the generic fallbacks, without repeats."""
        ordered = []
        mapped = self.boards.get(symbol)
        if mapped:
            ordered.append(mapped)
        for board in FALLBACK_BOARDS:
            if board not in ordered:
                ordered.append(board)
        return ordered

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []
        if self.ttl_seconds < 0:
            errors.append("ttl_seconds must not be negative")
        if self.http_timeout_seconds <= 0:
            errors.append("http_timeout_seconds must be positive")
        return errors
