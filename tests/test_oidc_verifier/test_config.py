"""Tests for VerifierConfig and environment settings."""

import pytest

from oidc_verifier.config import VerifierConfig, discovery_url
from oidc_verifier.settings import Settings, get_settings

ISSUER = "https://golang.oktapreview.com"


def test_defaults():
    cfg = VerifierConfig(issuer=ISSUER)
    assert cfg.leeway_seconds == 120
    assert cfg.cache_ttl_seconds == 300
    assert cfg.cleanup_interval_seconds == 300
    assert cfg.discovery_path == ".well-known/openid-configuration"
    assert cfg.discovery_url == f"{ISSUER}/.well-known/openid-configuration"
    assert cfg.expected_audience is None
    assert cfg.expected_client_id is None
    assert cfg.expected_nonce == ""


@pytest.mark.parametrize(
    "issuer,path",
    [
        (ISSUER, ".well-known/openid-configuration"),
        (ISSUER + "/", ".well-known/openid-configuration"),
        (ISSUER, "/.well-known/openid-configuration"),
    ],
)
def test_discovery_url_single_slash(issuer, path):
    assert discovery_url(issuer, path) == f"{ISSUER}/.well-known/openid-configuration"


def test_expected_claims_are_copied_and_read_only():
    claims = {"aud": "api", "cid": ["a", "b"], "nonce": "abc123"}
    cfg = VerifierConfig(issuer=ISSUER, expected_claims=claims)
    claims["aud"] = "changed"
    assert cfg.expected_audience == "api"
    assert cfg.expected_client_id == ["a", "b"]
    assert cfg.expected_nonce == "abc123"
    with pytest.raises(TypeError):
        cfg.expected_claims["aud"] = "x"


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"issuer": ""}, "issuer"),
        ({"issuer": "  "}, "issuer"),
        ({"issuer": ISSUER, "leeway_seconds": -1}, "leeway_seconds"),
        ({"issuer": ISSUER, "cache_ttl_seconds": 0}, "cache_ttl_seconds"),
        ({"issuer": ISSUER, "cleanup_interval_seconds": -5}, "cleanup_interval_seconds"),
        ({"issuer": ISSUER, "http_timeout_seconds": 0}, "http_timeout_seconds"),
    ],
)
def test_invalid_config_raises(kwargs, message):
    with pytest.raises(ValueError, match=message):
        VerifierConfig(**kwargs)


def test_from_settings_requires_issuer():
    with pytest.raises(ValueError, match="OIDC_ISSUER"):
        VerifierConfig.from_settings(Settings(issuer=None))


def test_from_settings_maps_expected_claims():
    settings = Settings(
        issuer=f" {ISSUER} ",
        audience="api://default",
        client_id="web, mobile",
        nonce="n-1",
        leeway_seconds=30,
        cache_ttl_seconds=60,
    )
    cfg = VerifierConfig.from_settings(settings)
    assert cfg.issuer == ISSUER
    assert cfg.expected_audience == "api://default"
    assert cfg.expected_client_id == ("web", "mobile")
    assert cfg.expected_nonce == "n-1"
    assert cfg.leeway_seconds == 30
    assert cfg.cache_ttl_seconds == 60


def test_single_client_id_is_a_string():
    cfg = VerifierConfig.from_settings(Settings(issuer=ISSUER, client_id="web"))
    assert cfg.expected_client_id == "web"


def test_from_environ(monkeypatch):
    monkeypatch.setenv("OIDC_ISSUER", ISSUER)
    monkeypatch.setenv("OIDC_LEEWAY_SECONDS", "45")
    monkeypatch.setenv("OIDC_DISCOVERY_PATH", ".well-known/oauth-authorization-server")
    get_settings.cache_clear()
    try:
        cfg = VerifierConfig.from_environ()
    finally:
        get_settings.cache_clear()
    assert cfg.leeway_seconds == 45
    assert cfg.discovery_url == f"{ISSUER}/.well-known/oauth-authorization-server"


def test_log_to_stderr_from_environ(monkeypatch):
    monkeypatch.setenv("OIDC_ISSUER", ISSUER)
    monkeypatch.setenv("OIDC_LOG_TO_STDERR", "true")
    get_settings.cache_clear()
    try:
        assert get_settings().log_to_stderr is True
    finally:
        get_settings.cache_clear()
    assert Settings(issuer=ISSUER).log_to_stderr is False
