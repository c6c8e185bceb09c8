"""JSON-over-HTTP transport for the key/value config service."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from speedguard._constants import USER_AGENT
from speedguard._redact import redact_for_log
from speedguard.config import MonitorConfig
from speedguard.exceptions import SpeedGuardTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the limit store and alert log.

    Tests pass small fakes implementing these two coroutines.
    """

    async def get_json(self, path: str) -> Any:
        ...

    async def put_json(self, path: str, payload: Mapping[str, Any]) -> Any:
        ...


class HttpTransport:
    """aiohttp transport speaking plain JSON to a REST key/value store."""

    def __init__(self, config: MonitorConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}{path}{self._config.path_suffix}"

    def _params(self) -> dict[str, str]:
        if self._config.auth_token:
            return {"auth": self._config.auth_token}
        return {}

    async def _request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> Any:
        url = self._url(path)
        params = self._params()
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        body: str | None = None
        if payload is not None:
            headers["content-type"] = "application/json; charset=UTF-8"
            body = json.dumps(payload, separators=(",", ":"))

        _logger.debug("%s %s params=%s body=%s", method, url, redact_for_log(params), redact_for_log(payload))

        try:
            async with self._http.request(method, url, params=params, data=body, headers=headers) as resp:
                try:
                    text = await resp.text()
                except (UnicodeDecodeError, LookupError) as exc:
                    raise SpeedGuardTransportError(
                        f"Undecodable body from {path}: {exc}",
                        status_code=resp.status,
                        endpoint=path,
                    ) from exc
                if resp.status < 200 or resp.status >= 300:
                    raise SpeedGuardTransportError(
                        f"HTTP {resp.status} from {path}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=path,
                    )
        except SpeedGuardTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise SpeedGuardTransportError(
                f"Request to {path} failed: {exc}",
                endpoint=path,
            ) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise SpeedGuardTransportError(
                f"Invalid JSON from {path}: {text[:200]}",
                endpoint=path,
            ) from exc

    async def get_json(self, path: str) -> Any:
        """GET *path* and return the decoded JSON body (``None`` when empty)."""
        return await self._request("GET", path)

    async def put_json(self, path: str, payload: Mapping[str, Any]) -> Any:
        """PUT *payload* at *path*; repeating the call with the same path is idempotent."""
        return await self._request("PUT", path, payload)
