# src/cohxsec/physics/interaction.py
from __future__ import annotations
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Literal, NamedTuple, Optional

import numpy as np

from .units import ASMALL_NUM, AMU, M_ELECTRON, M_MUON, M_PI0, M_PION, M_TAU


class KineVar(str, Enum):
    EL = "El"               # final-state lepton energy
    EG = "Eg"               # photon energy
    THETA_L = "theta_l"
    THETA_PI = "theta_pi"
    THETA_G = "theta_g"
    PHI_PI = "phi_pi"
    PHI_G = "phi_g"
    X = "x"
    Y = "y"
    Q2 = "Q2"
    W = "W"


class KinePhaseSpace(str, Enum):
    """Which variables a differential cross section is differential in."""
    ELEP_FE = "El|E"               # dxsec/dEl, angles integrated by the model
    EL_OL_TPI_FE = "El,Ol,Tpi|E"   # d4xsec/dEl dOmega_l dOmega_pi
    EG_OL_OG_FE = "Eg,Ol,Og|E"     # d5xsec/dEg dOmega_l dOmega_g


class Range1D(NamedTuple):
    min: float
    max: float

    @property
    def width(self) -> float:
        return self.max - self.min


# PDG codes
PDG_NUE, PDG_NUMU, PDG_NUTAU = 12, 14, 16
PDG_ELECTRON, PDG_MUON, PDG_TAU = 11, 13, 15

_CHARGED_LEPTON_MASS = {PDG_NUE: M_ELECTRON, PDG_NUMU: M_MUON, PDG_NUTAU: M_TAU}


def nucleus_pdg(Z: int, A: int) -> int:
    return 1000000000 + Z * 10000 + A * 10


def nucleus_mass(pdg: int) -> float:
    """Approximate nuclear mass [GeV] from the mass number in the PDG code."""
    A = (pdg // 10) % 1000
    if A <= 0:
        raise ValueError(f"Not a nucleus PDG code: {pdg}")
    return A * AMU


@dataclass(frozen=True)
class InitialState:
    probe_pdg: int
    target_pdg: int
    probe_E: float             # lab frame [GeV]

    @property
    def target_mass(self) -> float:
        return nucleus_mass(self.target_pdg)

    def as_string(self) -> str:
        return f"nu-pdg:{self.probe_pdg};tgt-pdg:{self.target_pdg}"


@dataclass(frozen=True)
class ProcessInfo:
    """Coherent scattering off a whole nucleus, producing one pion or photon."""
    current: Literal["CC", "NC"] = "NC"
    produced: Literal["pion", "gamma"] = "pion"

    def as_string(self) -> str:
        return f"<COH;{self.current};{self.produced}>"


@dataclass
class Kinematics:
    """Mutable kinematic record, overwritten at every integrand evaluation."""
    values: Dict[KineVar, float] = field(default_factory=dict)
    fs_lepton_p4: Optional[np.ndarray] = None   # (E, px, py, pz)
    hadsyst_p4: Optional[np.ndarray] = None

    def set(self, var: KineVar, value: float) -> None:
        self.values[var] = float(value)

    def get(self, var: KineVar) -> float:
        try:
            return self.values[var]
        except KeyError:
            raise KeyError(f"Kinematic variable {var.value!r} is not set") from None

    def clear(self) -> None:
        self.values.clear()
        self.fs_lepton_p4 = None
        self.hadsyst_p4 = None


class KPhaseSpace:
    """Kinematically allowed region of a coherent interaction."""

    def __init__(self, interaction: "Interaction"):
        self._interaction = interaction

    def threshold(self) -> float:
        """Probe energy threshold: m + m^2/(2 M_target), m = m_lepton + m_produced."""
        m = self._interaction.fs_lepton_mass + self._interaction.produced_mass
        return m + m * m / (2.0 * self._interaction.init_state.target_mass)

    def is_above_threshold(self) -> bool:
        E = self._interaction.init_state.probe_E
        return E > self.threshold()

    def limits(self, var: KineVar) -> Range1D:
        if var is KineVar.Y:
            return self._y_limits()
        raise ValueError(f"No phase-space limits defined for {var.value!r}")

    def _y_limits(self) -> Range1D:
        E = self._interaction.init_state.probe_E
        if E <= 0:
            return Range1D(-1.0, -1.0)
        y_min = self._interaction.produced_mass / E + ASMALL_NUM
        y_max = 1.0 - self._interaction.fs_lepton_mass / E - ASMALL_NUM
        return Range1D(y_min, y_max)


@dataclass
class Interaction:
    """
    Initial state + process + kinematics of one coherent interaction.

    Integration code never writes into an Interaction it was handed; it works
    on a copy() and sets skip_process_check on that copy.
    """
    init_state: InitialState
    process: ProcessInfo
    kine: Kinematics = field(default_factory=Kinematics)
    skip_process_check: bool = False
    skip_kinematic_check: bool = False

    @classmethod
    def coh_pion(cls, probe_pdg: int, target_pdg: int, E: float,
                 current: Literal["CC", "NC"] = "NC") -> "Interaction":
        return cls(InitialState(probe_pdg, target_pdg, E), ProcessInfo(current, "pion"))

    @classmethod
    def coh_gamma(cls, probe_pdg: int, target_pdg: int, E: float) -> "Interaction":
        return cls(InitialState(probe_pdg, target_pdg, E), ProcessInfo("NC", "gamma"))

    @property
    def fs_lepton_mass(self) -> float:
        if self.process.current == "NC":
            return 0.0
        m = _CHARGED_LEPTON_MASS.get(abs(self.init_state.probe_pdg))
        if m is None:
            raise ValueError(f"Unsupported probe PDG {self.init_state.probe_pdg}")
        return m

    @property
    def produced_mass(self) -> float:
        if self.process.produced == "gamma":
            return 0.0
        return M_PI0 if self.process.current == "NC" else M_PION

    def phase_space(self) -> KPhaseSpace:
        return KPhaseSpace(self)

    def copy(self) -> "Interaction":
        return copy.deepcopy(self)

    def as_string(self) -> str:
        return f"{self.process.as_string()} {self.init_state.as_string()}"
