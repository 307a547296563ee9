"""Tests for settings validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.config import Settings


class TestSettings:
    def test_log_level_uppercased(self) -> None:
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_is_production(self) -> None:
        assert Settings(environment="production").is_production is True
        assert Settings(environment="development").is_production is False

    def test_api_port_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_PORT", "9001")
        assert Settings().api.api_port == 9001
