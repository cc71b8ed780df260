"""
Resolution pipeline: the entry points the HTTP layer calls.

Usage:
    async with ResolutionPipeline.from_settings(Settings.from_env()) as pipeline:
        streams = await pipeline.resolve_episode_streams("naruto-episode-1")
        print(streams.to_dict())

Episode and download resolution always hit the network; catalog listings go
through the per-namespace TTL caches.
"""
from __future__ import annotations
import logging
import time
from typing import Any, Callable, Optional

from ..cache import CatalogCaches
from ..config import Settings
from ..errors import ExtractionError, NotFoundError
from .auth import AuthKeyManager
from .base import EpisodeStreams
from .extractor import PageExtractor, RegexPageExtractor
from .fetcher import MirrorFetcher
from .handshake import StreamHandshake

log = logging.getLogger("beatanimes.providers.runner")


class ResolutionPipeline:
    def __init__(
        self,
        mirrors: MirrorFetcher,
        *,
        handshake: StreamHandshake | None = None,
        extractor: PageExtractor | None = None,
        auth: AuthKeyManager | None = None,
        caches: CatalogCaches | None = None,
    ):
        self.mirrors = mirrors
        self.extractor = extractor or RegexPageExtractor()
        self.handshake = handshake or StreamHandshake(mirrors, extractor=self.extractor)
        self.auth = auth
        self.caches = caches or CatalogCaches()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResolutionPipeline":
        mirrors = MirrorFetcher(settings.domains, policy=settings.fallback, timeout=settings.timeout)
        auth = None
        if settings.auth_key_url:
            auth = AuthKeyManager(mirrors, settings.auth_key_url,
                                  refresh_interval=settings.auth_refresh)
        return cls(mirrors, auth=auth, caches=CatalogCaches(settings.cache_ttls))

    async def close(self):
        await self.mirrors.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # ── streams ──────────────────

    async def resolve_episode_streams(self, episode_id: str) -> EpisodeStreams:
        start = time.monotonic()
        streams = await self.handshake.resolve(episode_id)
        log.info(f"[{episode_id}] {len(streams.sources)} source(s), "
                 f"{len(streams.raw_servers)} server(s) in {time.monotonic() - start:.1f}s")
        return streams

    # ── downloads ──────────────────

    async def resolve_download_links(self, anime_id: str, *, strict: bool = False) -> dict[str, str]:
        """
        Quality → URL map from the download section of `/{anime_id}`.

        With `strict=False` an empty or unparseable section yields `{}`;
        with `strict=True` it raises ExtractionError. Network failures raise
        either way.
        """
        headers = {}
        if self.auth is not None:
            headers["Cookie"] = f"auth={await self.auth.get_auth_key()}"
        else:
            log.warning(f"[{anime_id}] no auth key endpoint configured, requesting without cookie")

        page = await self.mirrors.fetch(f"/{anime_id.strip('/')}", headers=headers)
        try:
            links = self.extractor.extract_download_links(page.text)
        except Exception as e:
            if strict:
                raise ExtractionError(f"download links unreadable: {e}", stage="download_links") from e
            log.warning(f"[{anime_id}] download link extraction failed: {e}")
            return {}
        if not links and strict:
            raise ExtractionError(f"no download links on page {anime_id!r}", stage="download_links")
        return dict(links)

    # ── catalog listings ──────────────────

    async def fetch_listing(
        self,
        namespace: str,
        path: str,
        parse: Callable[[str], Any],
        *,
        key: Optional[str] = None,
    ) -> Any:
        """
        Cached catalog page (search, anime, recent, popular, upcoming).

        `parse` turns the fetched HTML into the listing; an empty listing
        raises NotFoundError and is not cached.
        """
        cache = self.caches[namespace]

        async def load():
            page = await self.mirrors.fetch(path)
            result = parse(page.text)
            if not result:
                raise NotFoundError(f"nothing found at {path}", stage=namespace)
            return result

        return await cache.get_or_load(key or path, load)
