"""
Error taxonomy for stream resolution.

  NetworkError     every mirror failed, or a request timed out
  ExtractionError  an expected page field is missing (stale selectors)
  CryptoError      a handshake encrypt/decrypt/parse step failed
  NotFoundError    upstream answered but has nothing for the request

The HTTP layer maps `http_status` straight onto its response.
"""
from __future__ import annotations
from typing import Optional


class ResolutionError(Exception):
    http_status = 500

    def __init__(self, message: str, *, stage: Optional[str] = None):
        self.stage = stage
        if stage:
            message = f"[{stage}] {message}"
        super().__init__(message)


class NetworkError(ResolutionError):
    pass


class ExtractionError(ResolutionError):
    pass


class CryptoError(ResolutionError):
    pass


class NotFoundError(ResolutionError):
    http_status = 404
