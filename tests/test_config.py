"""
Unit tests for settings and normalizer configuration
"""
import dataclasses
import logging

import pytest

from sheetscan.config import Settings, settings
from sheetscan.core import InvalidConfigException, setup_logger
from sheetscan.core.logger import resolve_level
from sheetscan.normalizer import NormalizerConfig


class TestNormalizerConfig:
    """Immutable configuration value"""

    def test_defaults(self):
        config = NormalizerConfig()
        assert config.canonical_size == (3508, 2480)
        assert config.marker_min_area == 100
        assert config.marker_max_area == 5000
        assert config.validate() is config

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            NormalizerConfig().marker_min_area = 1

    def test_with_overrides_returns_copy(self):
        base = NormalizerConfig()
        changed = base.with_overrides(stitch_gutter=0)
        assert changed.stitch_gutter == 0
        assert base.stitch_gutter == 20

    @pytest.mark.parametrize("field, value", [
        ("strategy", "unknown"),
        ("cluster_search", "kd_tree"),
        ("output_format", "gif"),
        ("marker_min_area", 6000),
        ("detection_scale", 0),
        ("page_short_side", 4000),
        ("blur_kernel", 4),
        ("adaptive_block_size", 1),
        ("stitch_gutter", -1),
        ("output_quality", 101),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(InvalidConfigException) as exc_info:
            NormalizerConfig().with_overrides(**{field: value})
        assert exc_info.value.error_code == "INVALID_CONFIG"

    def test_from_settings(self):
        settings = Settings(OUTPUT_FORMAT="png", STITCH_GUTTER=5, NORMALIZER_STRATEGY="grid")
        config = NormalizerConfig.from_settings(settings, output_quality=70)
        assert config.output_format == "png"
        assert config.stitch_gutter == 5
        assert config.strategy == "grid"
        assert config.output_quality == 70


class TestSettings:
    """Environment driven settings"""

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SHEETSCAN_OUTPUT_QUALITY", "75")
        monkeypatch.setenv("SHEETSCAN_MAX_CONCURRENT_JOBS", "1")
        settings = Settings()
        assert settings.OUTPUT_QUALITY == 75
        assert settings.MAX_CONCURRENT_JOBS == 1

    def test_defaults(self):
        settings = Settings()
        assert settings.DETECTION_SCALE == 0.25
        assert settings.OUTPUT_FORMAT == "webp"


class TestLogger:
    """setup_logger"""

    def test_file_handler_under_logs_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "LOGS_DIR", tmp_path)
        log = setup_logger("sheetscan-test.file", "unit.log", "debug")
        log.debug("written")
        for handler in log.handlers:
            handler.flush()
        assert log.level == logging.DEBUG
        assert "written" in (tmp_path / "unit.log").read_text(encoding="utf-8")
        assert not log.propagate

    def test_repeat_setup_keeps_handlers_and_updates_level(self):
        first = setup_logger("sheetscan-test.repeat", level=logging.INFO)
        count = len(first.handlers)
        again = setup_logger("sheetscan-test.repeat", level="WARNING")
        assert again is first
        assert len(again.handlers) == count
        assert again.level == logging.WARNING
        assert all(h.level == logging.WARNING for h in again.handlers)

    def test_level_defaults_to_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "LOG_LEVEL", "ERROR")
        assert resolve_level(None) == logging.ERROR

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            resolve_level("chatty")
