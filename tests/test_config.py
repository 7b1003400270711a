"""Tests for pkgauth.config module.

Covers defaults, TOML layering, and environment variable overrides.
Every test runs in an empty working directory with a throwaway HOME.
"""

from __future__ import annotations

import logging

from pathlib import Path

import pytest

from pydantic import ValidationError

from pkgauth.config import (
    LogSettings,
    OAuthSettings,
    PkgAuthSettings,
    StoreSettings,
    _deep_merge,
    _find_config_files,
    _load_toml_config,
    clear_settings,
    get_settings,
)


class TestDefaults:
    """Built-in defaults."""

    def test_oauth_defaults(self) -> None:
        oauth = OAuthSettings()
        assert oauth.authorize_url == "https://github.com/login/oauth/authorize"
        assert oauth.token_url == "https://github.com/login/oauth/access_token"
        assert oauth.callback_port == 51321
        assert oauth.callback_path == "/auth-code/callback"
        assert oauth.scopes == "repo write:packages read:org"
        assert oauth.auth_timeout == 300.0
        assert oauth.fail_on_missing_code is True

    def test_callback_url(self) -> None:
        assert OAuthSettings().callback_url == "http://localhost:51321/auth-code/callback"

    def test_callback_url_custom_host(self) -> None:
        oauth = OAuthSettings(callback_host="192.168.1.5", callback_port=8000)
        assert oauth.callback_url == "http://192.168.1.5:8000/auth-code/callback"

    def test_callback_path_gets_leading_slash(self) -> None:
        assert OAuthSettings(callback_path="cb").callback_path == "/cb"

    def test_port_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            OAuthSettings(callback_port=70000)

    def test_store_defaults(self) -> None:
        store = StoreSettings()
        assert store.backend == "keyring"
        assert store.oauth_app_service == "gh-pkg-helper://github.com"
        assert store.package_token_service == "pkgs://github.com"

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StoreSettings(backend="sqlite")

    def test_log_defaults(self) -> None:
        assert LogSettings().level == "INFO"


class TestEnvironment:
    """PKGAUTH_<SECTION>__<FIELD> overrides."""

    def test_env_overrides_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PKGAUTH_OAUTH__CALLBACK_PORT", "51400")
        monkeypatch.setenv("PKGAUTH_STORE__BACKEND", "memory")
        settings = PkgAuthSettings()
        assert settings.oauth.callback_port == 51400
        assert settings.store.backend == "memory"

    def test_env_overrides_toml(self, monkeypatch: pytest.MonkeyPatch) -> None:
        Path("pkgauth.toml").write_text("[oauth]\ncallback_port = 50000\nscopes = \"repo\"\n", encoding="utf-8")
        monkeypatch.setenv("PKGAUTH_OAUTH__CALLBACK_PORT", "51400")
        settings = PkgAuthSettings()
        assert settings.oauth.callback_port == 51400
        assert settings.oauth.scopes == "repo"

    def test_explicit_kwargs_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PKGAUTH_LOG__LEVEL", "ERROR")
        settings = PkgAuthSettings(log={"level": "DEBUG"})
        assert settings.log.level == "DEBUG"


class TestTomlLayering:
    """Config file discovery and merging."""

    def test_no_files(self) -> None:
        assert _find_config_files() == []
        assert _load_toml_config() == {}

    def test_pyproject_section(self) -> None:
        Path("pyproject.toml").write_text(
            '[project]\nname = "x"\n\n[tool.pkgauth.store]\nbackend = "memory"\n',
            encoding="utf-8",
        )
        assert _load_toml_config() == {"store": {"backend": "memory"}}
        assert PkgAuthSettings().store.backend == "memory"

    def test_pkgauth_toml_overrides_pyproject(self) -> None:
        Path("pyproject.toml").write_text("[tool.pkgauth.log]\nlevel = \"WARNING\"\n", encoding="utf-8")
        Path("pkgauth.toml").write_text("[log]\nlevel = \"DEBUG\"\n", encoding="utf-8")
        assert PkgAuthSettings().log.level == "DEBUG"

    def test_user_config_overrides_project(self) -> None:
        Path("pkgauth.toml").write_text("[oauth]\nauth_timeout = 10\n", encoding="utf-8")
        user_config = Path("~/.config/pkgauth/config.toml").expanduser()
        user_config.parent.mkdir(parents=True)
        user_config.write_text("[oauth]\nauth_timeout = 20\n", encoding="utf-8")
        assert PkgAuthSettings().oauth.auth_timeout == 20

    def test_config_file_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom.toml"
        custom.write_text("[oauth]\nfail_on_missing_code = false\n", encoding="utf-8")
        monkeypatch.setenv("PKGAUTH_CONFIG_FILE", str(custom))
        assert custom in _find_config_files()
        assert PkgAuthSettings().oauth.fail_on_missing_code is False

    def test_unreadable_file_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        Path("pkgauth.toml").write_text("this is [not toml", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="pkgauth.config"):
            assert _load_toml_config() == {}
        assert "Ignoring unreadable config file" in caplog.text

    def test_deep_merge(self) -> None:
        base = {"oauth": {"callback_port": 1, "scopes": "repo"}, "log": {"level": "INFO"}}
        override = {"oauth": {"callback_port": 2}}
        merged = _deep_merge(base, override)
        assert merged == {"oauth": {"callback_port": 2, "scopes": "repo"}, "log": {"level": "INFO"}}
        assert base["oauth"]["callback_port"] == 1


class TestSettingsCache:
    """get_settings/clear_settings."""

    def test_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_clear_reloads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_settings()
        monkeypatch.setenv("PKGAUTH_LOG__LEVEL", "ERROR")
        clear_settings()
        second = get_settings()
        assert second is not first
        assert second.log.level == "ERROR"


class TestShow:
    """Human-readable settings table."""

    def test_lists_every_section(self) -> None:
        output = PkgAuthSettings().show()
        for section in ("[oauth]", "[store]", "[log]"):
            assert section in output
        assert "callback_port" in output
        assert "51321" in output

    def test_long_values_truncated(self) -> None:
        output = PkgAuthSettings(oauth={"scopes": "x" * 80}).show()
        assert "x" * 80 not in output
        assert "..." in output
