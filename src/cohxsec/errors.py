from __future__ import annotations

# sysexits.h EX_CONFIG
EX_CONFIG = 78


class ConfigurationError(ValueError):
    """Invalid integrator or form-factor configuration. Not recoverable."""

    exit_status = EX_CONFIG


class SingularInputError(ValueError):
    """Momentum transfer sits on a pole of a truncated Fourier-Bessel series."""
