"""
Core types for the beatanimes resolution pipeline.

A resolved episode is a list of playable variants plus the raw embed
servers the episode page advertised:
  - StreamSource: one playable URL with its quality label
  - EpisodeStreams: everything `resolve_episode_streams` hands back
"""
from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import Optional

# ──────────────────────────────
#  Stream definitions
# ──────────────────────────────
@dataclass(frozen=True)
class StreamSource:
    file_url: str
    label: str = "unknown"            # "360P" | "720P" | "hls P" | ...
    is_m3u8: bool = False

    @classmethod
    def from_entry(cls, entry: dict) -> "StreamSource":
        """Build from one decrypted `{"file": ..., "label": ...}` entry."""
        url = entry["file"]
        return cls(file_url=url, label=str(entry.get("label", "unknown")),
                   is_m3u8=".m3u8" in url)

    def to_dict(self):
        return {"file": self.file_url, "label": self.label, "isM3U8": self.is_m3u8}


@dataclass
class EpisodeStreams:
    sources: list[StreamSource] = field(default_factory=list)
    raw_servers: dict[str, str] = field(default_factory=dict)  # server name → embed URL

    def to_dict(self):
        return {
            "sources": [s.to_dict() for s in self.sources],
            "raw_servers": dict(self.raw_servers),
        }

# ──────────────────────────────
#  Auth token slot
# ──────────────────────────────
@dataclass
class AuthToken:
    decoded_value: str
    inserted_at: int                  # epoch seconds

    def age(self, now: float) -> float:
        return now - self.inserted_at

# ──────────────────────────────
#  Raw HTTP response (returned by the fetchers)
# ──────────────────────────────
@dataclass
class FetchResponse:
    status: int
    url: str
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self):
        return json.loads(self.text)

# ──────────────────────────────
#  Domain pool (owned by MirrorFetcher)
# ──────────────────────────────
@dataclass
class DomainPool:
    domains: tuple[str, ...]
    active_index: Optional[int] = None  # last domain that answered, None until one does

    def __post_init__(self):
        # Normalize: no trailing slash, drop blanks
        self.domains = tuple(d.strip().rstrip("/") for d in self.domains if d and d.strip())
        if not self.domains:
            raise ValueError("DomainPool needs at least one base URL")

    @property
    def active(self) -> Optional[str]:
        if self.active_index is None:
            return None
        return self.domains[self.active_index]

    def rotation(self) -> list[int]:
        """Indexes in try order: active domain first, then the rest in pool order."""
        start = self.active_index or 0
        order = [start] + [i for i in range(len(self.domains)) if i != start]
        return order
