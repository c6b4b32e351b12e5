import pytest

from resourcekit.utils.settings import DEFAULT_CORS_ORIGINS, get_settings, refresh_settings_cache


def test_defaults():
    settings = get_settings()
    assert settings.log_level == "INFO"
    assert settings.api_prefix == "/api/v1"
    assert settings.request_logging is True
    assert settings.max_page_limit is None
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS


def test_settings_are_cached_until_refreshed(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert get_settings() is first

    refresh_settings_cache()
    assert get_settings().log_level == "DEBUG"


@pytest.mark.parametrize(
    "raw,expected",
    [("/", ""), ("", ""), ("api", "/api"), ("/api/v2/", "/api/v2")],
)
def test_api_prefix_normalised(monkeypatch, raw, expected):
    monkeypatch.setenv("API_PREFIX", raw)
    refresh_settings_cache()
    assert get_settings().api_prefix == expected


@pytest.mark.parametrize("raw,expected", [("false", False), ("0", False), ("on", True), ("garbage", True)])
def test_request_logging_flag(monkeypatch, raw, expected):
    monkeypatch.setenv("REQUEST_LOGGING", raw)
    refresh_settings_cache()
    assert get_settings().request_logging is expected


@pytest.mark.parametrize("raw,expected", [("50", 50), ("0", None), ("-3", None), ("abc", None)])
def test_max_page_limit(monkeypatch, raw, expected):
    monkeypatch.setenv("MAX_PAGE_LIMIT", raw)
    refresh_settings_cache()
    assert get_settings().max_page_limit == expected


def test_cors_origins_split(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,,")
    refresh_settings_cache()
    assert get_settings().cors_origins == ("https://a.example", "https://b.example")
