"""
Page field extraction. The resolver only talks to the `PageExtractor`
protocol; `RegexPageExtractor` is the stock implementation for gogoanime
style markup and can be swapped out when the site layout changes.
"""
from __future__ import annotations
import html as _html
import re
from typing import Optional, Protocol
from urllib.parse import urlparse


class PageExtractor(Protocol):
    def extract_embed_url(self, html: str) -> Optional[str]: ...

    def extract_hidden_token(self, html: str) -> Optional[str]: ...

    def extract_download_links(self, html: str) -> dict[str, str]: ...

    def extract_servers(self, html: str) -> dict[str, str]: ...


_IFRAME_RE = re.compile(r"<iframe\b[^>]*?\s(?:data-lazy-src|src)=[\"']([^\"']+)[\"']", re.I)
_DATA_VIDEO_RE = re.compile(r"data-video=[\"']([^\"']+)[\"']", re.I)
_SERVER_RE = re.compile(
    r"<li\b[^>]*class=[\"']([\w-]+)[\"'][^>]*>\s*<a\b[^>]*data-video=[\"']([^\"']+)[\"']",
    re.I,
)
_SCRIPT_TAG_RE = re.compile(r"<script\b([^>]*)>", re.I)
_ATTR_RE = re.compile(r"([\w-]+)\s*=\s*[\"']([^\"']*)[\"']")
_DOWNLOAD_BLOCK_RE = re.compile(
    r"<div\b[^>]*class=[\"'][^\"']*\b(?:cf-download|dowload)\b[^\"']*[\"'][^>]*>(.*?)</div>",
    re.I | re.S,
)
_ANCHOR_RE = re.compile(r"<a\b[^>]*href=[\"']([^\"']+)[\"'][^>]*>(.*?)</a>", re.I | re.S)
_TAG_RE = re.compile(r"<[^>]+>")
_RES_RE = re.compile(r"\d+\s*x\s*(\d{3,4})|(\d{3,4})\s*p\b", re.I)

# Known embed hosts, matched by substring
_HOSTS = ("gradehgplus", "streamwish", "doodstream", "filemoon", "vidguard",
          "mixdrop", "mp4upload", "gogostream", "vidcdn", "streamsb")


def normalize_url(url: str) -> str:
    url = _html.unescape(url.strip())
    if url.startswith("//"):
        return "https:" + url
    return url


def identify_host(url: str) -> str:
    for host in _HOSTS:
        if host in url:
            return host
    hostname = urlparse(url).hostname or ""
    return hostname.split(".")[0] if hostname else "unknown"


def _quality_label(text: str) -> str:
    m = _RES_RE.search(text)
    if m:
        return f"{m.group(1) or m.group(2)}p"
    return re.sub(r"(?i)^download\s*", "", text).strip()


class RegexPageExtractor:
    def extract_embed_url(self, html: str) -> Optional[str]:
        """First player iframe, falling back to the first server's data-video."""
        for pattern in (_IFRAME_RE, _DATA_VIDEO_RE):
            m = pattern.search(html)
            if m:
                return normalize_url(m.group(1))
        return None

    def extract_hidden_token(self, html: str) -> Optional[str]:
        """`data-value` of the `<script data-name="episode">` tag."""
        for m in _SCRIPT_TAG_RE.finditer(html):
            attrs = dict((k.lower(), v) for k, v in _ATTR_RE.findall(m.group(1)))
            if attrs.get("data-name") == "episode" and attrs.get("data-value"):
                return attrs["data-value"]
        return None

    def extract_download_links(self, html: str) -> dict[str, str]:
        links: dict[str, str] = {}
        for block in _DOWNLOAD_BLOCK_RE.findall(html):
            for href, inner in _ANCHOR_RE.findall(block):
                text = _html.unescape(_TAG_RE.sub(" ", inner)).strip()
                label = _quality_label(text)
                if label and label not in links:
                    links[label] = normalize_url(href)
        return links

    def extract_servers(self, html: str) -> dict[str, str]:
        servers: dict[str, str] = {}
        for name, url in _SERVER_RE.findall(html):
            servers.setdefault(name.lower(), normalize_url(url))
        for i, url in enumerate(_DATA_VIDEO_RE.findall(html), start=1):
            url = normalize_url(url)
            if url in servers.values() or not url.startswith("http"):
                continue
            servers.setdefault(identify_host(url) or f"alt{i}", url)
        return servers
