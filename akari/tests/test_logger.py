"""Tests for structured logging setup and secret masking."""

from __future__ import annotations

import logging

from akari.utils.logger import _MASK, _mask_secrets, setup_logging


def _mask(**fields) -> dict:
    return _mask_secrets(None, "info", {"event": "test", **fields})


class TestMaskSecrets:
    def test_secret_keys_masked(self) -> None:
        out = _mask(api_key="abc", RAPIDAPI_KEY="def", auth_token="ghi", database_url="x")
        assert out["api_key"] == _MASK
        assert out["RAPIDAPI_KEY"] == _MASK
        assert out["auth_token"] == _MASK
        assert out["database_url"] == _MASK

    def test_event_never_masked(self) -> None:
        assert _mask()["event"] == "test"

    def test_ordinary_keys_untouched(self) -> None:
        out = _mask(token_symbol="AKR", count=3)
        assert out["token_symbol"] == "AKR"
        assert out["count"] == 3

    def test_bearer_values_masked(self) -> None:
        assert _mask(header="Bearer abc123")["header"] == f"Bearer {_MASK}"

    def test_dsn_password_masked(self) -> None:
        out = _mask(target="postgresql+asyncpg://svc:hunter2@db:5432/akari")
        assert out["target"] == f"postgresql+asyncpg://svc:{_MASK}@db:5432/akari"

    def test_plain_urls_untouched(self) -> None:
        url = "https://api.coingecko.com/api/v3"
        assert _mask(url=url)["url"] == url


class TestSetupLogging:
    def test_configures_root_logger(self) -> None:
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        try:
            setup_logging("DEBUG", json_output=True)

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert logging.getLogger("aiohttp").level == logging.WARNING
        finally:
            root.handlers[:] = handlers
            root.setLevel(level)
