"""Tests for the alignment self-check."""

from __future__ import annotations

import logging

import pytest

from cpad.core.alignment.validator import (
    DEFAULT_CONFIG,
    AlignmentConfig,
    AlignmentValidator,
    ConfigurationError,
)


class TestValidate:
    def test_default_constants_hold(self):
        report = AlignmentValidator.validate(AlignmentConfig(2.89, 0.1, 2.99))
        assert report.valid is True
        assert report.deviation < 1e-4

    @pytest.mark.parametrize("config", [
        AlignmentConfig(2.89, 0.1, 2.99 + 2e-4),
        AlignmentConfig(2.89 + 5e-4, 0.1, 2.99),
        AlignmentConfig(2.89, 0.2, 2.99),
    ])
    def test_perturbation_beyond_tolerance_is_invalid(self, config):
        assert AlignmentValidator.validate(config).valid is False

    def test_perturbation_within_tolerance_is_valid(self):
        assert AlignmentValidator.validate(AlignmentConfig(2.89, 0.1, 2.99 + 1e-5)).valid is True

    def test_check_raises(self):
        validator = AlignmentValidator()
        with pytest.raises(ConfigurationError, match="Alignment invariant violated"):
            validator.check(AlignmentConfig(1.0, 1.0, 5.0))


class TestConfigure:
    def test_fresh_validator_is_healthy(self):
        validator = AlignmentValidator()
        assert validator.valid is True
        assert validator.degraded is False
        assert validator.active_config == DEFAULT_CONFIG

    def test_invalid_config_degrades_and_keeps_last_known_good(self, caplog):
        validator = AlignmentValidator()
        with caplog.at_level(logging.ERROR):
            report = validator.configure(AlignmentConfig(1.0, 1.0, 5.0))
        assert report.valid is False
        assert validator.degraded is True
        assert validator.valid is False
        assert validator.active_config == DEFAULT_CONFIG
        assert "last-known-good" in caplog.text

    def test_valid_config_restores(self):
        validator = AlignmentValidator(AlignmentConfig(1.0, 1.0, 5.0))
        assert validator.degraded is True

        good = AlignmentConfig(1.0, 2.0, 3.0)
        validator.configure(good)
        assert validator.degraded is False
        assert validator.valid is True
        assert validator.active_config == good
