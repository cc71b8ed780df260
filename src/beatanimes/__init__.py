"""Gogoanime stream resolution with mirror fallback and TTL caching."""
from .cache import MISS, CatalogCaches, TTLCache
from .config import Settings
from .errors import CryptoError, ExtractionError, NetworkError, NotFoundError, ResolutionError
from .providers.base import EpisodeStreams, StreamSource
from .providers.runner import ResolutionPipeline

__all__ = [
    "MISS",
    "CatalogCaches",
    "CryptoError",
    "EpisodeStreams",
    "ExtractionError",
    "NetworkError",
    "NotFoundError",
    "ResolutionError",
    "ResolutionPipeline",
    "Settings",
    "StreamSource",
    "TTLCache",
]
