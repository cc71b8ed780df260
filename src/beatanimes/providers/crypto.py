"""
AES-CBC primitives for the encrypt-ajax handshake.

The site encrypts with CryptoJS using a raw key + IV (no passphrase/KDF), so
plain AES-CBC with PKCS7 padding reproduces it byte for byte. The primary key
covers the video id and the hidden page token; the secondary key covers the
decrypt endpoint's response.
"""
from __future__ import annotations
import base64
import binascii
import re
from dataclasses import dataclass

from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..errors import CryptoError

_BLOCK = 16
_HEX_RE = re.compile(r"[0-9a-fA-F]+")


@dataclass(frozen=True)
class CipherKeySet:
    primary_key: bytes
    secondary_key: bytes
    iv: bytes

    def __post_init__(self):
        for name in ("primary_key", "secondary_key"):
            if len(getattr(self, name)) not in (16, 24, 32):
                raise ValueError(f"{name} must be 16, 24 or 32 bytes")
        if len(self.iv) != _BLOCK:
            raise ValueError("iv must be 16 bytes")

    @classmethod
    def from_strings(cls, primary_key: str, secondary_key: str, iv: str) -> "CipherKeySet":
        return cls(primary_key.encode("utf-8"), secondary_key.encode("utf-8"), iv.encode("utf-8"))


# Lifted from the site's player JS
GOGO_KEYS = CipherKeySet.from_strings(
    "37911490979715163134003223491201",
    "54674138327930866480207815084989",
    "3134003223491201",
)


def _decode_ciphertext(ciphertext: str, stage: str) -> bytes:
    """Accept base64 (what CryptoJS emits) or an all-hex string of whole blocks."""
    text = ciphertext.strip()
    if _HEX_RE.fullmatch(text) and len(text) % (2 * _BLOCK) == 0:
        return bytes.fromhex(text)
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"ciphertext is neither base64 nor hex: {e}", stage=stage) from e


class CipherSuite:
    def __init__(self, keys: CipherKeySet = GOGO_KEYS):
        self.keys = keys

    def _cipher(self, key: bytes) -> Cipher:
        return Cipher(algorithms.AES(key), modes.CBC(self.keys.iv), backend=default_backend())

    def _encrypt(self, plaintext: str, key: bytes) -> str:
        padder = sym_padding.PKCS7(128).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = self._cipher(key).encryptor()
        raw = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(raw).decode("ascii")

    def _decrypt(self, ciphertext: str, key: bytes, stage: str) -> str:
        data = _decode_ciphertext(ciphertext, stage)
        if not data or len(data) % _BLOCK:
            raise CryptoError(f"ciphertext length {len(data)} is not a multiple of {_BLOCK}",
                              stage=stage)
        decryptor = self._cipher(key).decryptor()
        padded = decryptor.update(data) + decryptor.finalize()
        # Remove PKCS7 padding
        unpadder = sym_padding.PKCS7(128).unpadder()
        try:
            plain = unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise CryptoError("bad padding (wrong key?)", stage=stage) from e
        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoError("plaintext is not UTF-8", stage=stage) from e

    def encrypt_id(self, video_id: str) -> str:
        """Base64 ciphertext of the embed's video id (primary key)."""
        return self._encrypt(video_id, self.keys.primary_key)

    def decrypt_token(self, ciphertext: str) -> str:
        """Recover the query-string fragment hidden in the embed page."""
        return self._decrypt(ciphertext, self.keys.primary_key, "decrypt_token")

    def decrypt_payload(self, ciphertext: str) -> str:
        """Decrypt the encrypt-ajax `data` field (secondary key) to JSON text."""
        return self._decrypt(ciphertext, self.keys.secondary_key, "decrypt_payload")
