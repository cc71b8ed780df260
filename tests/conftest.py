import asyncio
import base64
import json

import pytest
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from beatanimes.providers.base import FetchResponse
from beatanimes.providers.crypto import GOGO_KEYS


def encrypt(plaintext, key: bytes, iv: bytes = GOGO_KEYS.iv, *, pad: bool = True) -> str:
    """Reference AES-CBC encryption, base64 out (what CryptoJS.AES.encrypt().toString() gives)."""
    data = plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext
    if pad:
        padder = sym_padding.PKCS7(128).padder()
        data = padder.update(data) + padder.finalize()
    enc = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return base64.b64encode(enc.update(data) + enc.finalize()).decode("ascii")


class FakeClock:
    def __init__(self, now: float = 1_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeFetcher:
    """
    Stand-in for the aiohttp Fetcher. Routes map a URL (exact, or without its
    query string) to a FetchResponse, an exception to raise, or a coroutine
    function called with the request.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.closed = False

    def add(self, url, text="", status=200):
        self.routes[url] = FetchResponse(status=status, url=url, text=text)

    def add_json(self, url, body, status=200):
        self.add(url, json.dumps(body), status)

    def fail(self, url, exc):
        self.routes[url] = exc

    def urls(self):
        return [c["url"] for c in self.calls]

    async def request(self, method, url, *, headers=None, params=None, data=None):
        self.calls.append({"method": method, "url": url, "headers": dict(headers or {})})
        route = self.routes.get(url, self.routes.get(url.split("?")[0]))
        if route is None:
            return FetchResponse(status=404, url=url, text="not found")
        if isinstance(route, BaseException):
            raise route
        if callable(route):
            return await route(method, url)
        return route

    async def close(self):
        self.closed = True


def slow(seconds, text="late"):
    async def handler(method, url):
        await asyncio.sleep(seconds)
        return FetchResponse(status=200, url=url, text=text)
    return handler


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def clock():
    return FakeClock()
