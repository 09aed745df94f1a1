# src/cohxsec/physics/form_factors.py
from __future__ import annotations
from typing import Dict, Iterable, Sequence

import numpy as np

from ..config.schemas import DeltaTransitionCfg, FormFactorCfg
from ..errors import SingularInputError
from .units import PI, fm

# Relative distance to a series pole below which qr counts as "on" it
POLE_RTOL = 1e-12


class FourierBesselFormFactor:
    """
    Nuclear form factor from a truncated Fourier-Bessel (de Vries) expansion
    of the charge density:

        F(Q) = 4 pi R^3 sinc(QR) * sum_i (-1)^(i-1) c_i / ((i pi + QR)(i pi - QR))

    with R the cut-off radius in fm. At Q = 0 sinc -> 1.

    Precondition: QR must not coincide with i*pi for any i <= N, where the
    truncated series has a pole. Such inputs raise SingularInputError.
    """

    def __init__(self, coefficients: Sequence[float], radius_fm: float, nucleus: int = 0):
        c = np.asarray(coefficients, dtype=np.float64)
        if c.ndim != 1 or c.size == 0:
            raise ValueError("Fourier-Bessel expansion needs at least one coefficient")
        if radius_fm <= 0:
            raise ValueError(f"Non-positive radius {radius_fm} fm")
        self.coefficients = c
        self.radius = radius_fm * fm      # GeV^-1
        self.nucleus = nucleus
        n = np.arange(1, c.size + 1)
        self._n_pi = PI * n
        self._signed_c = np.where(n % 2 == 1, 1.0, -1.0) * c

    @classmethod
    def from_cfg(cls, cfg: FormFactorCfg, diagnostics_level: int = 0) -> "FourierBesselFormFactor":
        ff = cls(cfg.coefficients, cfg.radius_fm, cfg.nucleus)
        if diagnostics_level >= 1:
            print(f"[form_factor] Loaded {ff.coefficients.size} coefficients for nucleus {ff.nucleus}")
        return ff

    @property
    def radius_fm(self) -> float:
        return self.radius / fm

    def form_factor(self, Q):
        """F(Q) for scalar or array Q [GeV]."""
        qr = np.asarray(Q, dtype=np.float64) * self.radius
        on_pole = np.isclose(np.abs(qr)[..., None], self._n_pi, rtol=POLE_RTOL, atol=0.0)
        if np.any(on_pole):
            raise SingularInputError(
                f"Q*R hits a pole of the {self.coefficients.size}-term Fourier-Bessel series "
                f"(Q*R = n*pi) for nucleus {self.nucleus}"
            )
        terms = self._signed_c / ((self._n_pi + qr[..., None]) * (self._n_pi - qr[..., None]))
        total = terms.sum(axis=-1)
        # np.sinc(x) = sin(pi x)/(pi x), finite at x = 0
        out = 4.0 * PI * self.radius_fm ** 3 * total * np.sinc(qr / PI)
        return float(out) if out.ndim == 0 else out

    __call__ = form_factor


class DeltaTransitionFormFactor(FourierBesselFormFactor):
    """
    Form factors entering coherent NC photon production through the
    N -> Delta(1232) transition: the nuclear Fourier-Bessel density plus the
    modified-dipole vector and axial couplings C3V and C5A.
    """

    def __init__(self, coefficients: Sequence[float], radius_fm: float, nucleus: int = 0,
                 params: DeltaTransitionCfg | None = None):
        super().__init__(coefficients, radius_fm, nucleus)
        self.params = params or DeltaTransitionCfg()

    @classmethod
    def from_cfg(cls, cfg: FormFactorCfg, params: DeltaTransitionCfg | None = None,
                 diagnostics_level: int = 0) -> "DeltaTransitionFormFactor":
        ff = cls(cfg.coefficients, cfg.radius_fm, cfg.nucleus, params)
        if diagnostics_level >= 1:
            print(f"[form_factor] Loaded {ff.coefficients.size} coefficients for nucleus {ff.nucleus}")
        return ff

    def C3V(self, Q2: float) -> float:
        p = self.params
        MV2 = p.MV * p.MV
        return p.C3V0 / (1.0 + Q2 / MV2) ** 2 / (1.0 + Q2 / (4.0 * MV2))

    def C3VNC(self, Q2: float) -> float:
        return (1.0 - 2.0 * self.params.sin2_theta_w) * self.C3V(Q2)

    def C5A(self, Q2: float) -> float:
        p = self.params
        MA2 = p.MA * p.MA
        return p.C5A0 / (1.0 + Q2 / MA2) ** 2 / (1.0 + Q2 / (3.0 * MA2))

    def C5ANC(self, Q2: float) -> float:
        return -self.C5A(Q2)


def build_form_factor_registry(
    cfgs: Iterable[FormFactorCfg],
    delta_params: DeltaTransitionCfg | None = None,
    diagnostics_level: int = 0,
) -> Dict[int, DeltaTransitionFormFactor]:
    """Map nucleus PDG code -> form-factor calculator. Duplicate nuclei are an error."""
    reg: Dict[int, DeltaTransitionFormFactor] = {}
    for cfg in cfgs:
        if cfg.nucleus in reg:
            raise ValueError(f"Duplicate form factor for nucleus {cfg.nucleus}")
        reg[cfg.nucleus] = DeltaTransitionFormFactor.from_cfg(cfg, delta_params, diagnostics_level)
    return reg
