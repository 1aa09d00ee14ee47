"""
MOEX Quote Source - Moscow Exchange ISS public API adapter.

No authentication required. A symbol is looked up on its
mapped trading board first, then on the generic share (TQBR)
and ETF (TQTF) boards.
"""

import logging
from typing import Any, Callable, List, Optional

import aiohttp

from quote_sources.base import BaseQuoteSource
from quote_sources.config import FALLBACK_BOARDS
from quote_sources.exceptions import NormalizationError, QuoteSourceError
from quote_sources.models import Quote


logger = logging.getLogger(__name__)


class MoexQuoteSource(BaseQuoteSource):
    """
    MOEX ISS last-trade price.

    Endpoint:
    /iss/engines/stock/markets/shares/boards/{board}/securities/{ticker}.json

    Price is the LAST column of the first marketdata row.
    """

    BASE_URL = "https://iss.moex.com/iss/engines/stock/markets/shares/boards"
    CURRENCY = "RUB"

    def __init__(
        self,
        boards_for: Optional[Callable[[str], List[str]]] = None,
        timeout: float = BaseQuoteSource.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Args:
            boards_for: Callable symbol -> ordered board list
                (defaults to the generic fallback boards)
            timeout: Total request timeout in seconds
            session: Shared aiohttp session
        """
        super().__init__(timeout, session)
        self._boards_for = boards_for or (lambda symbol: list(FALLBACK_BOARDS))

    @property
    def name(self) -> str:
        return "moex"

    def _url(self, board: str, symbol: str) -> str:
        return f"{self.BASE_URL}/{board}/securities/{symbol}.json"

    @staticmethod
    def _params() -> dict[str, str]:
        return {
            "iss.meta": "off",
            "iss.only": "securities,marketdata",
            "marketdata.columns": "LAST",
            "securities.columns": "SECID,BOARDID",
        }

    def _extract_price(self, data: Any) -> Any:
        try:
            return data["marketdata"]["data"][0][0]
        except (KeyError, IndexError, TypeError) as e:
            raise NormalizationError(
                message=f"Unexpected marketdata shape: {e}",
                source_name=self.name,
                raw_data=data,
            ) from e

    async def fetch_quote(self, symbol: str, domestic: bool = True) -> Quote:
        errors: List[QuoteSourceError] = []
        boards: List[str] = list(self._boards_for(symbol))

        for board in boards:
            try:
                data = await self._make_request(self._url(board, symbol), self._params())
                raw_price = self._extract_price(data)
                # Strings are not accepted as MOEX prices
                if not isinstance(raw_price, (int, float)) or isinstance(raw_price, bool):
                    raise NormalizationError(
                        message=f"LAST is not a number: {raw_price!r}",
                        source_name=self.name,
                        raw_data=data,
                    )
                price = self._parse_price(raw_price, data)
                logger.debug(f"[{self.name}] {symbol} on {board}: {price}")
                return Quote(ticker=symbol, price=price, source=self.name, currency=self.CURRENCY)
            except QuoteSourceError as e:
                logger.debug(f"[{self.name}] {symbol} not available on {board}: {e}")
                errors.append(e)

        raise QuoteSourceError(
            message=f"No MOEX price for {symbol} on boards {boards}",
            source_name=self.name,
            original_error=errors[-1] if errors else None,
        )
