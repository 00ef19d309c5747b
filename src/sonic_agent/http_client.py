from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

import requests
from requests.adapters import HTTPAdapter, Retry

from .errors import SonicAgentError


@dataclass(eq=False)
class HttpError(Exception):
    """Transport-level failure with HTTP context."""

    message: str
    http_status: Optional[int] = None
    body: Optional[str] = None
    timed_out: bool = False
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        suffix = []
        if self.http_status is not None:
            suffix.append(f"status={self.http_status}")
        if self.body:
            suffix.append(f"body={self.body}")
        if self.cause:
            suffix.append(f"cause={self.cause}")
        detail = ", ".join(suffix)
        return f"{self.message} ({detail})" if detail else self.message


class HttpClient:
    def __init__(self, timeout: float, max_retries: int, user_agent: str) -> None:
        self.timeout = timeout
        self.session = requests.Session()
        retry_policy = Retry(
            total=max_retries,
            backoff_factor=0.2,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET",),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_policy, pool_connections=4, pool_maxsize=16)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        return self._request("GET", url, timeout, params=params)

    def post_json(self, url: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        return self._request("POST", url, timeout, json=payload)

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, url: str, timeout: Optional[float], **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise HttpError(f"{method} {url} timed out", timed_out=True, cause=exc) from exc
        except requests.RequestException as exc:
            raise HttpError(f"{method} {url} failed", cause=exc) from exc

        status = response.status_code
        if status >= 400:
            raise HttpError(f"{method} {url} returned status {status}", http_status=status, body=response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise HttpError(
                f"{method} {url} response was not valid JSON",
                http_status=status,
                body=response.text,
                cause=exc,
            ) from exc
        if not isinstance(payload, dict):
            raise HttpError(f"{method} {url} response was not a JSON object", http_status=status)
        return payload


def unwrap_envelope(payload: Dict[str, Any], error_cls: Type[SonicAgentError], what: str) -> Any:
    """Return ``data`` from a ``{success, data}`` envelope or raise ``error_cls``."""
    if payload.get("success") is not True:
        message = payload.get("msg") or payload.get("message") or "Unknown error"
        raise error_cls(f"{what} failed", service_message=str(message))
    if "data" not in payload:
        raise error_cls(f"{what} response missing data")
    return payload["data"]


def translate(exc: HttpError, error_cls: Type[SonicAgentError], what: str) -> SonicAgentError:
    return error_cls(
        f"{what} request failed: {exc.message}",
        http_status=exc.http_status,
        service_message=exc.body,
        timed_out=exc.timed_out,
        cause=exc,
    )
