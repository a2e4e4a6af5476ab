"""Tests for gifweave.config module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from gifweave.color_format import ColorFormat
from gifweave.config import (
    DEFAULT_QUANTIZE_CONFIG,
    AnimationConfig,
    LoggingConfig,
    QuantizeConfig,
)
from gifweave.error_handling import ConfigurationError


class TestQuantizeConfig:
    """Tests for QuantizeConfig class."""

    def test_default_initialization(self):
        """Test that default values are set correctly."""
        config = QuantizeConfig()

        assert config.MAX_COLORS == 256
        assert config.COLOR_FORMAT is ColorFormat.RGBA4444
        assert config.CLEAR_ALPHA is True
        assert config.CLEAR_ALPHA_THRESHOLD == 1
        assert config.ONE_BIT_ALPHA is False

    def test_color_format_parsed_from_string(self):
        assert QuantizeConfig(COLOR_FORMAT="RGB565").COLOR_FORMAT is ColorFormat.RGB565

    def test_invalid_color_format(self):
        with pytest.raises(ValueError, match="Unknown color format"):
            QuantizeConfig(COLOR_FORMAT="cmyk")

    @pytest.mark.parametrize("max_colors", [0, 257, 1.5, True])
    def test_invalid_max_colors(self, max_colors):
        with pytest.raises(ValueError, match="MAX_COLORS"):
            QuantizeConfig(MAX_COLORS=max_colors)

    def test_clear_alpha_color(self):
        assert QuantizeConfig().CLEAR_ALPHA_COLOR == 0
        with pytest.raises(ValueError, match="CLEAR_ALPHA_COLOR"):
            QuantizeConfig(CLEAR_ALPHA_COLOR=256)

    def test_invalid_clear_threshold(self):
        with pytest.raises(ValueError, match="CLEAR_ALPHA_THRESHOLD"):
            QuantizeConfig(CLEAR_ALPHA_THRESHOLD=-1)

    def test_default_instance(self):
        assert DEFAULT_QUANTIZE_CONFIG == QuantizeConfig()


class TestAnimationConfig:
    """Tests for AnimationConfig class."""

    def test_default_initialization(self):
        config = AnimationConfig(WIDTH=320, HEIGHT=240)

        assert config.FRAME_RATE == 30.0
        assert config.DELAY_MS is None
        assert config.ALPHA_THRESHOLD == 128
        assert config.DISPOSAL == 2
        assert config.REPEAT == 0
        assert config.AUTO_GROW is True
        assert isinstance(config.QUANTIZE, QuantizeConfig)

    def test_frame_delay_from_rate(self):
        assert AnimationConfig(WIDTH=1, HEIGHT=1, FRAME_RATE=25).frame_delay_ms == 40.0

    def test_explicit_delay_wins(self):
        config = AnimationConfig(WIDTH=1, HEIGHT=1, FRAME_RATE=25, DELAY_MS=70)
        assert config.frame_delay_ms == 70.0

    def test_nested_quantize_mapping(self):
        config = AnimationConfig(WIDTH=1, HEIGHT=1, QUANTIZE={"max_colors": 8, "color_format": "rgb444"})
        assert config.QUANTIZE.MAX_COLORS == 8
        assert config.QUANTIZE.COLOR_FORMAT is ColorFormat.RGB444

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"WIDTH": 0, "HEIGHT": 1}, "must be positive"),
            ({"WIDTH": 1, "HEIGHT": 70_000}, "at most 65535"),
            ({"WIDTH": 1, "HEIGHT": 1, "FRAME_RATE": 0}, "FRAME_RATE"),
            ({"WIDTH": 1, "HEIGHT": 1, "DELAY_MS": -5}, "DELAY_MS"),
            ({"WIDTH": 1, "HEIGHT": 1, "ALPHA_THRESHOLD": 300}, "ALPHA_THRESHOLD"),
            ({"WIDTH": 1, "HEIGHT": 1, "DISPOSAL": 4}, "DISPOSAL"),
            ({"WIDTH": 1, "HEIGHT": 1, "DISPOSAL": True}, "DISPOSAL"),
            ({"WIDTH": 1, "HEIGHT": 1, "DISPOSAL": 2.5}, "DISPOSAL"),
            ({"WIDTH": 1, "HEIGHT": 1, "REPEAT": -2}, "REPEAT"),
            ({"WIDTH": 1, "HEIGHT": 1, "INITIAL_CAPACITY": -1}, "INITIAL_CAPACITY"),
        ],
    )
    def test_invalid_values(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            AnimationConfig(**kwargs)

    def test_zero_rate_allowed_with_delay(self):
        config = AnimationConfig(WIDTH=1, HEIGHT=1, FRAME_RATE=0, DELAY_MS=20)
        assert config.frame_delay_ms == 20.0


class TestAnimationConfigFromDict:
    """Tests for AnimationConfig.from_dict."""

    def test_lower_case_keys(self):
        config = AnimationConfig.from_dict(
            {"width": 64, "height": 32, "delay_ms": 50, "quantize": {"max_colors": 16}}
        )
        assert (config.WIDTH, config.HEIGHT) == (64, 32)
        assert config.DELAY_MS == 50
        assert config.QUANTIZE.MAX_COLORS == 16

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown AnimationConfig option 'colour'"):
            AnimationConfig.from_dict({"width": 1, "height": 1, "colour": "red"})

    def test_unknown_nested_key(self):
        with pytest.raises(ConfigurationError, match="Unknown QuantizeConfig option"):
            AnimationConfig.from_dict({"width": 1, "height": 1, "quantize": {"dither": True}})

    def test_invalid_value_wrapped(self):
        with pytest.raises(ConfigurationError, match="Invalid animation configuration"):
            AnimationConfig.from_dict({"width": 1, "height": 1, "repeat": 100_000})

    def test_missing_size(self):
        with pytest.raises(ConfigurationError):
            AnimationConfig.from_dict({"fps": 10})

    def test_missing_required_field(self):
        with pytest.raises(ConfigurationError, match="Invalid animation configuration"):
            AnimationConfig.from_dict({"width": 10})


class TestLoggingConfig:
    """Tests for LoggingConfig class."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = LoggingConfig()
        assert config.LOG_LEVEL == "INFO"
        assert config.LOGS_DIR is None

    def test_environment_overrides(self, tmp_path):
        env = {"GIFWEAVE_LOG_LEVEL": "debug", "GIFWEAVE_LOGS_DIR": str(tmp_path)}
        with patch.dict(os.environ, env, clear=True):
            config = LoggingConfig()
        assert config.LOG_LEVEL == "DEBUG"
        assert config.LOGS_DIR == Path(tmp_path)

    def test_invalid_level(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
                LoggingConfig(LOG_LEVEL="chatty")
