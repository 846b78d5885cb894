"""Shared aiohttp plumbing for the JSON info APIs."""

from __future__ import annotations

import time
from typing import Any

import aiohttp

from voxmenu.logging_config import get_logger
from voxmenu.observability.metrics import record_external_call
from voxmenu.services.info.exceptions import InfoProviderError

logger: Any = get_logger(__name__)


class JsonHttpClient:
    """Lazily opened aiohttp session with a total request timeout."""

    provider = "http"

    def __init__(self, timeout_seconds: float = 5.0) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON document.

        Raises:
            InfoProviderError: On transport errors, HTTP errors or invalid JSON.
        """
        session = await self._get_session()
        start = time.perf_counter()
        try:
            async with session.get(url, params=params) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise InfoProviderError(
                        f"{self.provider} request failed: {resp.status} {body[:200]}",
                        provider=self.provider,
                    )
                data = await resp.json(content_type=None)
        except InfoProviderError:
            record_external_call(self.provider, (time.perf_counter() - start) * 1000, ok=False)
            raise
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            record_external_call(self.provider, (time.perf_counter() - start) * 1000, ok=False)
            logger.warning(f"{self.provider} request failed: {e}")
            raise InfoProviderError(f"{self.provider} request failed: {e}", provider=self.provider) from e

        record_external_call(self.provider, (time.perf_counter() - start) * 1000)
        return data

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
