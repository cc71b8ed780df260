"""
Rotating access token for download-link requests.

The key is published base64-encoded at a remote content endpoint and rotates
on the publisher's side, so it is refetched once the cached copy is older than
the refresh interval.
"""
from __future__ import annotations
import asyncio
import base64
import binascii
import logging
import time
from typing import Callable, Optional

from ..errors import NetworkError
from .base import AuthToken
from .fetcher import MirrorFetcher

log = logging.getLogger("beatanimes.providers.auth")

REFRESH_INTERVAL = 10 * 60


class AuthKeyManager:
    def __init__(
        self,
        mirrors: MirrorFetcher,
        url: str,
        *,
        refresh_interval: float = REFRESH_INTERVAL,
        clock: Callable[[], float] = time.time,
    ):
        self.mirrors = mirrors
        self.url = url
        self.refresh_interval = refresh_interval
        self.clock = clock
        self._token: Optional[AuthToken] = None
        self._lock = asyncio.Lock()

    def _fresh(self) -> bool:
        return self._token is not None and self._token.age(self.clock()) < self.refresh_interval

    async def get_auth_key(self) -> str:
        if self._fresh():
            return self._token.decoded_value
        async with self._lock:
            # Another waiter may have refreshed while we queued.
            if not self._fresh():
                self._token = await self._fetch()
            return self._token.decoded_value

    async def _fetch(self) -> AuthToken:
        log.info("Refreshing auth key")
        resp = await self.mirrors.fetch(self.url)
        try:
            decoded = base64.b64decode(resp.text.strip(), validate=True).decode("utf-8").strip()
        except (binascii.Error, UnicodeDecodeError) as e:
            raise NetworkError(f"auth key endpoint returned undecodable body: {e}",
                               stage="decode_auth_key") from e
        return AuthToken(decoded_value=decoded, inserted_at=int(self.clock()))
