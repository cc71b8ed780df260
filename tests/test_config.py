import pytest

from beatanimes.config import DEFAULT_DOMAINS, Settings
from beatanimes.providers.fetcher import FallbackPolicy


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("BEATANIMES_DOMAINS", "BEATANIMES_FALLBACK", "BEATANIMES_TIMEOUT",
                 "BEATANIMES_AUTH_KEY_URL", "BEATANIMES_AUTH_TTL", "BEATANIMES_TTL_SEARCH",
                 "BEATANIMES_TTL_ANIME", "BEATANIMES_TTL_RECENT", "BEATANIMES_TTL_POPULAR",
                 "BEATANIMES_TTL_UPCOMING", "BEATANIMES_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env(dotenv=False)
    assert settings.domains == DEFAULT_DOMAINS
    assert settings.fallback is FallbackPolicy.EXHAUSTIVE
    assert settings.timeout == 15
    assert settings.auth_key_url == ""
    assert settings.auth_refresh == 600
    assert settings.cache_ttls == {
        "search": 600, "anime": 3600, "recent": 300, "popular": 600, "upcoming": 3600,
    }


def test_overrides(monkeypatch):
    monkeypatch.setenv("BEATANIMES_DOMAINS", "https://m1.test, https://m2.test,")
    monkeypatch.setenv("BEATANIMES_FALLBACK", "Sticky")
    monkeypatch.setenv("BEATANIMES_TIMEOUT", "7.5")
    monkeypatch.setenv("BEATANIMES_AUTH_KEY_URL", "https://keys.test/a.txt")
    monkeypatch.setenv("BEATANIMES_TTL_RECENT", "60")
    monkeypatch.setenv("BEATANIMES_LOG_LEVEL", "debug")

    settings = Settings.from_env(dotenv=False)

    assert settings.domains == ("https://m1.test", "https://m2.test")
    assert settings.fallback is FallbackPolicy.STICKY
    assert settings.timeout == 7.5
    assert settings.auth_key_url == "https://keys.test/a.txt"
    assert settings.cache_ttls["recent"] == 60
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("name,value", [
    ("BEATANIMES_TIMEOUT", "soon"),
    ("BEATANIMES_TIMEOUT", "0"),
    ("BEATANIMES_TTL_SEARCH", "-5"),
    ("BEATANIMES_FALLBACK", "random"),
    ("BEATANIMES_LOG_LEVEL", "loud"),
])
def test_invalid_values_name_the_variable(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        Settings.from_env(dotenv=False)
