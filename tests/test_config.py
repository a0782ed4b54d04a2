"""Tests for Settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from upwatch.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.chdir("/")
        s = Settings()
        assert s.check_interval == 30
        assert s.retention_days == 90
        assert s.recent_minutes == 60
        assert s.latency_threshold_ms == 250
        assert s.speedtest_interval == 3600
        assert s.speedtest_bytes == 25_000_000
        assert s.status_page_size == 500

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("UPWATCH_CHECK_INTERVAL", "15")
        monkeypatch.setenv("UPWATCH_TARGETS", "https://x.example")
        s = Settings()
        assert s.check_interval == 15
        assert s.targets == "https://x.example"

    def test_frozen(self):
        s = Settings()
        with pytest.raises(ValidationError):
            s.check_interval = 5

    @pytest.mark.parametrize("field", ["check_interval", "prune_interval", "speedtest_bytes", "recent_minutes"])
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 0})
