import base64
import json

import pytest

from beatanimes.errors import CryptoError
from beatanimes.providers.crypto import GOGO_KEYS, CipherKeySet, CipherSuite
from conftest import encrypt

PAYLOAD = json.dumps({"source": [{"file": "https://x/video.m3u8", "label": "720P"}]})


def test_encrypt_id_matches_reference():
    suite = CipherSuite()
    assert suite.encrypt_id("abc123") == encrypt("abc123", GOGO_KEYS.primary_key)


def test_decrypt_token_uses_primary_key():
    suite = CipherSuite()
    token = encrypt("akamai=0&mp4=0", GOGO_KEYS.primary_key)
    assert suite.decrypt_token(token) == "akamai=0&mp4=0"


@pytest.mark.parametrize("key_len", [16, 24, 32])
def test_decrypt_payload_round_trips_for_every_key_length(key_len):
    keys = CipherKeySet(b"p" * key_len, bytes(range(key_len)), b"0123456789abcdef")
    suite = CipherSuite(keys)
    ciphertext = encrypt(PAYLOAD, keys.secondary_key, keys.iv)
    assert suite.decrypt_payload(ciphertext) == PAYLOAD


def test_decrypt_payload_accepts_hex():
    suite = CipherSuite()
    raw = base64.b64decode(encrypt(PAYLOAD, GOGO_KEYS.secondary_key))
    assert suite.decrypt_payload(raw.hex()) == PAYLOAD


def test_wrong_block_size_reports_stage():
    suite = CipherSuite()
    short = base64.b64encode(b"x" * 10).decode()
    with pytest.raises(CryptoError) as exc:
        suite.decrypt_payload(short)
    assert exc.value.stage == "decrypt_payload"


def test_garbage_text_is_crypto_error():
    with pytest.raises(CryptoError):
        CipherSuite().decrypt_token("not base64 at all!")


def test_bad_padding_is_crypto_error():
    # A zero final byte is never valid PKCS7 padding.
    forged = encrypt(b"\x00" * 16, GOGO_KEYS.secondary_key, pad=False)
    with pytest.raises(CryptoError, match="padding"):
        CipherSuite().decrypt_payload(forged)


def test_non_utf8_plaintext_is_crypto_error():
    ciphertext = encrypt(b"\xff\xfe\xfd", GOGO_KEYS.secondary_key)
    with pytest.raises(CryptoError, match="UTF-8"):
        CipherSuite().decrypt_payload(ciphertext)


def test_key_set_validates_lengths():
    with pytest.raises(ValueError):
        CipherKeySet(b"short", b"k" * 32, b"i" * 16)
    with pytest.raises(ValueError):
        CipherKeySet(b"k" * 32, b"k" * 32, b"i" * 8)


def test_gogo_keys_are_aes256():
    assert len(GOGO_KEYS.primary_key) == 32
    assert len(GOGO_KEYS.secondary_key) == 32
    assert GOGO_KEYS.iv == b"3134003223491201"
