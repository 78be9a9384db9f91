"""Alignment self-check over three configured constants.

The invariant ``|value_a + value_b - value_c| < tolerance`` is a configuration
consistency check only. It runs when the pipeline is built or reconfigured,
never per message, and a violation puts the pipeline into a degraded state
instead of stopping it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when an alignment configuration violates its invariant."""


@dataclass(frozen=True)
class AlignmentConfig:
    value_a: float = 2.89
    value_b: float = 0.1
    value_c: float = 2.99
    tolerance: float = 1e-4

    @property
    def deviation(self) -> float:
        return abs(self.value_a + self.value_b - self.value_c)


@dataclass(frozen=True)
class AlignmentReport:
    """Result of validating one configuration."""

    config: AlignmentConfig
    valid: bool
    deviation: float


DEFAULT_CONFIG = AlignmentConfig()


class AlignmentValidator:
    """Holds the active alignment config and the degraded flag.

    Usage::

        validator = AlignmentValidator()
        validator.configure(AlignmentConfig(2.89, 0.1, 2.99))
        validator.valid      # True
        validator.degraded   # False
    """

    def __init__(self, config: AlignmentConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._active = DEFAULT_CONFIG
        self._degraded = False
        self._last_report = self.validate(DEFAULT_CONFIG)
        if config is not None:
            self.configure(config)

    @property
    def active_config(self) -> AlignmentConfig:
        """The last configuration that passed validation."""
        return self._active

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def valid(self) -> bool:
        """Whether the most recently supplied configuration was valid."""
        return self._last_report.valid

    @property
    def last_report(self) -> AlignmentReport:
        return self._last_report

    @staticmethod
    def validate(config: AlignmentConfig) -> AlignmentReport:
        deviation = config.deviation
        return AlignmentReport(config=config, valid=deviation < config.tolerance, deviation=deviation)

    def check(self, config: AlignmentConfig) -> AlignmentReport:
        """Validate ``config`` and raise if the invariant does not hold.

        Raises:
            ConfigurationError: If ``|a + b - c|`` is not below the tolerance.
        """
        report = self.validate(config)
        if not report.valid:
            raise ConfigurationError(
                f"Alignment invariant violated: |{config.value_a} + {config.value_b} - "
                f"{config.value_c}| = {report.deviation:.6g} >= {config.tolerance}"
            )
        return report

    def configure(self, config: AlignmentConfig) -> AlignmentReport:
        """Adopt ``config`` if valid; otherwise keep the last-known-good config.

        Never raises. An invalid config is logged and marks the validator
        degraded until a valid config is supplied.
        """
        with self._lock:
            try:
                report = self.check(config)
            except ConfigurationError as exc:
                logger.error("%s; continuing with last-known-good configuration", exc)
                self._degraded = True
                self._last_report = self.validate(config)
                return self._last_report

            if self._degraded:
                logger.info("Alignment configuration restored")
            self._active = config
            self._degraded = False
            self._last_report = report
            logger.debug("Alignment configuration accepted (deviation=%.3g)", report.deviation)
            return report
