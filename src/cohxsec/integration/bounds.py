# src/cohxsec/integration/bounds.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

import numpy as np

from ..config.schemas import ProcessKind
from ..physics.interaction import Interaction, KineVar, Range1D
from ..physics.units import ASMALL_NUM, PI


class Parametrization(str, Enum):
    """Integration variables, in the order the differential functions expect them."""
    PION_ELEP = "pion-elep"           # El (angles integrated inside the model)
    PION_ANGULAR = "pion-angular"     # El, theta_l, theta_pi, phi_pi
    PHOTON_OMEGA = "photon-omega"     # Eg, cos theta_l, cos theta_g, phi_g
    PHOTON_THETA = "photon-theta"     # Eg, theta_l, theta_g, phi_g

    @property
    def process(self) -> ProcessKind:
        return ProcessKind.PION if self.value.startswith("pion") else ProcessKind.PHOTON

    @property
    def variables(self) -> Tuple[KineVar, ...]:
        return _VARIABLES[self]


_VARIABLES: Dict[Parametrization, Tuple[KineVar, ...]] = {
    Parametrization.PION_ELEP: (KineVar.EL,),
    Parametrization.PION_ANGULAR: (KineVar.EL, KineVar.THETA_L, KineVar.THETA_PI, KineVar.PHI_PI),
    Parametrization.PHOTON_OMEGA: (KineVar.EG, KineVar.THETA_L, KineVar.THETA_G, KineVar.PHI_G),
    Parametrization.PHOTON_THETA: (KineVar.EG, KineVar.THETA_L, KineVar.THETA_G, KineVar.PHI_G),
}


@dataclass(frozen=True)
class KinematicLimits:
    """Per-variable integration ranges; empty when the phase space is closed."""
    variables: Tuple[KineVar, ...]
    ranges: Tuple[Range1D, ...]
    above_threshold: bool = True

    def __post_init__(self):
        if not self.above_threshold:
            return
        if len(self.ranges) != len(self.variables):
            raise ValueError("One range per integration variable is required")
        for var, r in zip(self.variables, self.ranges):
            if r.min > r.max:
                raise ValueError(f"Inverted limits for {var.value}: [{r.min}, {r.max}]")

    @classmethod
    def forbidden(cls, variables: Tuple[KineVar, ...]) -> "KinematicLimits":
        return cls(variables, (), above_threshold=False)

    @property
    def lower(self) -> np.ndarray:
        return np.array([r.min for r in self.ranges], dtype=np.float64)

    @property
    def upper(self) -> np.ndarray:
        return np.array([r.max for r in self.ranges], dtype=np.float64)


class KinematicBoundsResolver:
    """
    Integration limits for coherent pion / photon production.

    Polar angles run over [eps, pi-eps] and azimuths over [eps, 2pi-eps], so
    the sin(theta) Jacobians never see an exact endpoint.
    """

    def __init__(self, eps: float = ASMALL_NUM):
        if not 0.0 < eps < 0.5:
            raise ValueError(f"Boundary guard must be small and positive, got {eps}")
        self.eps = eps

    def lepton_energy_range(self, interaction: Interaction) -> Range1D | None:
        """El in [(1-y_max) E, (1-y_min) E]; None if the y range is empty."""
        E = interaction.init_state.probe_E
        y = interaction.phase_space().limits(KineVar.Y)
        if y.min > y.max:
            return None
        return Range1D((1.0 - y.max) * E, (1.0 - y.min) * E)

    def photon_energy_range(self, interaction: Interaction) -> Range1D:
        # the photon may carry away the whole probe energy
        return Range1D(0.0, interaction.init_state.probe_E)

    def polar_range(self) -> Range1D:
        return Range1D(self.eps, PI - self.eps)

    def azimuth_range(self) -> Range1D:
        return Range1D(self.eps, 2.0 * PI - self.eps)

    def resolve(self, interaction: Interaction, parametrization: Parametrization) -> KinematicLimits:
        variables = parametrization.variables
        if not interaction.phase_space().is_above_threshold():
            return KinematicLimits.forbidden(variables)

        if parametrization.process is ProcessKind.PION:
            energy = self.lepton_energy_range(interaction)
            if energy is None:
                return KinematicLimits.forbidden(variables)
        else:
            energy = self.photon_energy_range(interaction)

        if parametrization is Parametrization.PION_ELEP:
            return KinematicLimits(variables, (energy,))
        if parametrization is Parametrization.PHOTON_OMEGA:
            cos_range = Range1D(-1.0, 1.0)
            return KinematicLimits(variables, (energy, cos_range, cos_range, self.azimuth_range()))
        return KinematicLimits(
            variables, (energy, self.polar_range(), self.polar_range(), self.azimuth_range())
        )
