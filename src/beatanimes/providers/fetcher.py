"""
HTTP layer for the resolver. `Fetcher` wraps aiohttp with common defaults,
headers, timeout and optional proxy support; `MirrorFetcher` sits on top and
spreads requests over a pool of interchangeable mirror domains.
"""
from __future__ import annotations
import asyncio
import logging
from enum import Enum
from typing import Iterable, Optional

import aiohttp

from ..errors import NetworkError
from .base import DomainPool, FetchResponse

log = logging.getLogger("beatanimes.providers.fetcher")

DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 15


class Fetcher:
    def __init__(self, *, timeout: float = DEFAULT_TIMEOUT, proxy: str | None = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=min(timeout, 4))
        self.proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": DEFAULT_UA},
                connector=aiohttp.TCPConnector(ssl=False),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict | None = None,
        params: dict | None = None,
        data: dict | str | None = None,
    ) -> FetchResponse:
        """Send one request and return status + body; never raises on non-2xx."""
        session = await self._get_session()
        async with session.request(
            method,
            url,
            headers=headers or {},
            params=params,
            data=data,
            allow_redirects=True,
            proxy=self.proxy,
        ) as resp:
            text = await resp.text(errors="replace")
            return FetchResponse(
                status=resp.status,
                url=str(resp.url),
                text=text,
                headers=dict(resp.headers),
            )


# ──────────────────────────────
#  Mirror fallback
# ──────────────────────────────
class FallbackPolicy(str, Enum):
    STICKY = "sticky"            # one candidate per call, demoted on failure
    EXHAUSTIVE = "exhaustive"    # walk the whole pool per call


def _is_absolute(path_or_url: str) -> bool:
    return path_or_url.startswith(("http://", "https://"))


def _join(base: str, path: str) -> str:
    return f"{base}/{path.lstrip('/')}"


class MirrorFetcher:
    """
    Resolves relative paths against an ordered pool of mirror domains.

    The domain that last answered with a 2xx becomes the active one and is
    tried first on the next call. Absolute URLs skip the pool but still get
    the same headers and timeout.
    """

    def __init__(
        self,
        domains: Iterable[str],
        *,
        policy: FallbackPolicy | str = FallbackPolicy.EXHAUSTIVE,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_UA,
        fetcher: Fetcher | None = None,
    ):
        self.pool = DomainPool(tuple(domains))
        self.policy = FallbackPolicy(policy)
        self.timeout = timeout
        self.user_agent = user_agent
        self.fetcher = fetcher or Fetcher(timeout=timeout)
        self._candidate = 0

    async def close(self):
        await self.fetcher.close()

    @property
    def active_domain(self) -> Optional[str]:
        return self.pool.active

    async def fetch(
        self,
        path_or_url: str,
        *,
        method: str = "GET",
        headers: dict | None = None,
        params: dict | None = None,
        data: dict | str | None = None,
    ) -> FetchResponse:
        merged = {"User-Agent": self.user_agent}
        merged.update(headers or {})
        kwargs = dict(method=method, headers=merged, params=params, data=data)

        if _is_absolute(path_or_url):
            return await self._attempt(path_or_url, **kwargs)
        if self.policy is FallbackPolicy.STICKY:
            return await self._fetch_sticky(path_or_url, **kwargs)
        return await self._fetch_exhaustive(path_or_url, **kwargs)

    async def _attempt(self, url: str, *, method, headers, params, data) -> FetchResponse:
        try:
            resp = await asyncio.wait_for(
                self.fetcher.request(method, url, headers=headers, params=params, data=data),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise NetworkError(f"timed out after {self.timeout}s: {url}", stage="fetch") from e
        except (aiohttp.ClientError, UnicodeDecodeError) as e:
            raise NetworkError(f"{type(e).__name__} for {url}: {e}", stage="fetch") from e
        if not resp.ok:
            raise NetworkError(f"HTTP {resp.status} from {url}", stage="fetch")
        return resp

    async def _fetch_sticky(self, path: str, **kwargs) -> FetchResponse:
        index = self._candidate
        url = _join(self.pool.domains[index], path)
        try:
            resp = await self._attempt(url, **kwargs)
        except NetworkError:
            # Next call goes to the next mirror; this one still fails.
            self._candidate = (index + 1) % len(self.pool.domains)
            log.warning(f"Mirror {self.pool.domains[index]} failed, "
                        f"demoting to {self.pool.domains[self._candidate]}")
            raise
        self._promote(index)
        return resp

    async def _fetch_exhaustive(self, path: str, **kwargs) -> FetchResponse:
        last_error: Optional[NetworkError] = None
        for index in self.pool.rotation():
            url = _join(self.pool.domains[index], path)
            try:
                resp = await self._attempt(url, **kwargs)
            except NetworkError as e:
                log.warning(f"Mirror failed: {e}")
                last_error = e
                continue
            self._promote(index)
            return resp
        raise NetworkError(
            f"all {len(self.pool.domains)} mirrors failed for {path}: {last_error}",
            stage="fetch",
        ) from last_error

    def _promote(self, index: int):
        if self.pool.active_index != index:
            log.info(f"Active mirror is now {self.pool.domains[index]}")
        self.pool.active_index = index
        self._candidate = index
