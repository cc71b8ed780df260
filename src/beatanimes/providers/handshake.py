"""
Encrypt-ajax handshake: episode page → playable sources.

Flow:
  1. /{episode_id}                   → embed iframe URL (+ server list)
  2. embed URL ?id=                  → video id
  3. embed page                      → <script data-name="episode" data-value=...>
  4. id=<enc(video id)>&alias=<video id>&<dec(token)>
  5. <embed origin>/encrypt-ajax.php → {"data": <ciphertext>}
  6. dec(data, secondary key)        → {"source": [{"file", "label"}, ...]}

Any stage failing aborts the whole resolution; callers never see a partial
source list.
"""
from __future__ import annotations
import json
import logging
from enum import Enum
from typing import Optional
from urllib.parse import parse_qs, quote, urlparse

from ..errors import CryptoError, ExtractionError
from .base import EpisodeStreams, StreamSource
from .crypto import CipherSuite
from .extractor import PageExtractor, RegexPageExtractor, normalize_url
from .fetcher import MirrorFetcher

log = logging.getLogger("beatanimes.providers.handshake")

DECRYPT_PATH = "/encrypt-ajax.php"


class Stage(str, Enum):
    FETCH_EPISODE_PAGE = "fetch_episode_page"
    PARSE_VIDEO_ID = "parse_video_id"
    FETCH_EMBED_PAGE = "fetch_embed_page"
    BUILD_PARAMS = "build_params"
    CALL_DECRYPT_ENDPOINT = "call_decrypt_endpoint"
    DECRYPT_PAYLOAD = "decrypt_payload"
    RESOLVED = "resolved"


def parse_video_id(embed_url: str) -> Optional[str]:
    values = parse_qs(urlparse(embed_url).query).get("id")
    if not values or not values[0]:
        return None
    return values[0]


def build_query(encrypted_id: str, video_id: str, token: str) -> str:
    """id=<encrypted id>&alias=<video id>&<token fragment, verbatim>"""
    return f"id={quote(encrypted_id, safe='')}&alias={video_id}&{token}"


class StreamHandshake:
    def __init__(
        self,
        mirrors: MirrorFetcher,
        *,
        ciphers: CipherSuite | None = None,
        extractor: PageExtractor | None = None,
    ):
        self.mirrors = mirrors
        self.ciphers = ciphers or CipherSuite()
        self.extractor = extractor or RegexPageExtractor()

    async def resolve(self, episode_id: str) -> EpisodeStreams:
        # ── 1. episode page ──
        log.info(f"[{episode_id}] {Stage.FETCH_EPISODE_PAGE.value}")
        page = await self.mirrors.fetch(f"/{episode_id.strip('/')}")
        embed_url = self.extractor.extract_embed_url(page.text)
        if not embed_url:
            raise ExtractionError(f"no embed iframe on episode page {episode_id!r}",
                                  stage=Stage.FETCH_EPISODE_PAGE.value)
        embed_url = normalize_url(embed_url)
        servers = self.extractor.extract_servers(page.text)

        # ── 2. video id ──
        video_id = parse_video_id(embed_url)
        if not video_id:
            raise ExtractionError(f"embed URL has no id parameter: {embed_url}",
                                  stage=Stage.PARSE_VIDEO_ID.value)

        # ── 3. embed page + hidden token ──
        log.info(f"[{episode_id}] {Stage.FETCH_EMBED_PAGE.value} {embed_url}")
        embed = await self.mirrors.fetch(embed_url)
        script_value = self.extractor.extract_hidden_token(embed.text)
        if not script_value:
            raise ExtractionError("embed page has no episode token script",
                                  stage=Stage.FETCH_EMBED_PAGE.value)

        # ── 4. signed query ──
        query = self.build_params(video_id, script_value)

        # ── 5. decrypt endpoint ──
        ciphertext = await self.call_decrypt_endpoint(embed_url, query)

        # ── 6/7. payload → sources ──
        sources = self.decrypt_sources(ciphertext)
        log.info(f"[{episode_id}] {Stage.RESOLVED.value}: {len(sources)} source(s)")
        return EpisodeStreams(sources=sources, raw_servers=servers)

    def build_params(self, video_id: str, script_value: str) -> str:
        encrypted_id = self.ciphers.encrypt_id(video_id)
        token = self.ciphers.decrypt_token(script_value)
        return build_query(encrypted_id, video_id, token)

    async def call_decrypt_endpoint(self, embed_url: str, query: str) -> str:
        parsed = urlparse(embed_url)
        url = f"{parsed.scheme}://{parsed.netloc}{DECRYPT_PATH}?{query}"
        resp = await self.mirrors.fetch(url, headers={
            "X-Requested-With": "XMLHttpRequest",
            "Referer": embed_url,
        })
        try:
            body = resp.json()
        except ValueError as e:
            raise CryptoError("decrypt endpoint returned invalid JSON",
                              stage=Stage.CALL_DECRYPT_ENDPOINT.value) from e
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, str) or not data:
            raise CryptoError("decrypt endpoint response has no data field",
                              stage=Stage.CALL_DECRYPT_ENDPOINT.value)
        return data

    def decrypt_sources(self, ciphertext: str) -> list[StreamSource]:
        plaintext = self.ciphers.decrypt_payload(ciphertext)
        try:
            payload = json.loads(plaintext)
        except ValueError as e:
            raise CryptoError("decrypted payload is not JSON",
                              stage=Stage.DECRYPT_PAYLOAD.value) from e
        entries = payload.get("source") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            raise CryptoError("decrypted payload has no source list",
                              stage=Stage.DECRYPT_PAYLOAD.value)
        try:
            return [StreamSource.from_entry(e) for e in entries]
        except (KeyError, TypeError) as e:
            raise CryptoError(f"malformed source entry: {e}",
                              stage=Stage.DECRYPT_PAYLOAD.value) from e
