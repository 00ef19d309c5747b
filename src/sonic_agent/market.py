import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from .errors import MarketDataUnavailable
from .http_client import HttpClient, HttpError, translate, unwrap_envelope


class MarketDataClient:
    """Read-only token and pool lookups against the Sega API."""

    def __init__(self, http: HttpClient, base_url: str, timeout: float = 10.0) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, what: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.http.get_json(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        except HttpError as exc:
            raise translate(exc, MarketDataUnavailable, what) from exc
        return unwrap_envelope(response, MarketDataUnavailable, what)

    def token_price(self, mint: str) -> Optional[Decimal]:
        data = self._get("/sega/price", "token price", params={"mint": mint})
        raw = data.get("priceInUSD") if isinstance(data, dict) else None
        if raw is None:
            return None
        try:
            return Decimal(str(raw))
        except InvalidOperation:
            raise MarketDataUnavailable(f"price for {mint} is not numeric: {raw!r}") from None

    def mint_info(self, mints: Iterable[str]) -> Any:
        return self._get("/api/mint/ids", "mint info", params={"mints": ",".join(mints)})

    def default_mint_list(self) -> Any:
        return self._get("/api/mint/list", "default mint list")

    def pools_by_ids(self, pool_ids: Iterable[str]) -> Any:
        return self._get("/api/pools/info/ids", "pool info", params={"ids": ",".join(pool_ids)})

    def pools_by_mints(
        self,
        mint1: str,
        mint2: str,
        page: int = 1,
        page_size: int = 10,
        pool_type: Optional[str] = None,
    ) -> Any:
        params: Dict[str, Any] = {"page": page, "pageSize": page_size, "mint1": mint1, "mint2": mint2}
        if pool_type:
            params["poolType"] = pool_type
        return self._get("/api/pools/info/mint", "pool info by mints", params=params)

    def pools_by_lp_mints(self, lp_mints: Iterable[str]) -> Any:
        return self._get("/api/pools/info/lps", "pool info by LP mints", params={"lps": ",".join(lp_mints)})

    def pool_list(
        self,
        page: int = 1,
        page_size: int = 10,
        pool_type: Optional[str] = None,
        sort_field: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Any:
        params: Dict[str, Any] = {"page": page, "pageSize": page_size}
        if pool_type:
            params["poolType"] = pool_type
        if sort_field:
            params["poolSortField"] = sort_field
        if sort_type:
            params["sortType"] = sort_type
        return self._get("/api/pools/info/list", "pool list", params=params)

    def leaderboard(self, wallet: str) -> Any:
        """Points leaderboard rows plus the ``me`` entry for ``wallet``."""
        return self._get("/sega/leaderboard", "leaderboard", params={"wallet": wallet})

    def sonic_stats(self, wallet: str, start_time: Optional[int] = None, end_time: Optional[int] = None) -> Any:
        payload = {
            "wallet": wallet,
            "startTime": start_time or 0,
            "endTime": end_time or int(time.time()),
        }
        try:
            response = self.http.post_json(f"{self.base_url}/sega/sonic", payload, timeout=self.timeout)
        except HttpError as exc:
            raise translate(exc, MarketDataUnavailable, "sonic stats") from exc
        return unwrap_envelope(response, MarketDataUnavailable, "sonic stats")
