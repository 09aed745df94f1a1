# src/cohxsec/integration/functions.py
from __future__ import annotations
from typing import Sequence

import numpy as np

from ..physics.interaction import Interaction, KinePhaseSpace, KineVar
from ..physics.models import XSecModel
from ..physics.units import M_NUCLEON, PI, XSEC_WORKING_UNIT
from .bounds import Parametrization

# --- helpers ----------------------------------------------------------------

def four_vector(E: float, p: float, theta: float, phi: float) -> np.ndarray:
    """(E, px, py, pz) for momentum magnitude p along (theta, phi)."""
    st = np.sin(theta)
    return np.array([E, p * st * np.cos(phi), p * st * np.sin(phi), p * np.cos(theta)])


def minkowski_sq(p4: np.ndarray) -> float:
    return float(p4[0] * p4[0] - p4[1:] @ p4[1:])

# --- Interfaces -------------------------------------------------------------

class DifferentialFunction:
    """
    Numerical view of a differential cross-section model: f(x_1..x_N) -> float.

    The function owns a private copy of the interaction; every evaluation
    overwrites that copy's kinematics and then asks the model for the cross
    section, expressed in units of 1e-38 cm^2. The caller's interaction is
    never written to.
    """
    n_dim: int
    kps: KinePhaseSpace

    def __init__(self, model: XSecModel, interaction: Interaction):
        self.model = model
        self.interaction = interaction.copy()
        # limits come pre-validated from KinematicBoundsResolver
        self.interaction.skip_process_check = True
        self.E_nu = self.interaction.init_state.probe_E
        self.m_lep = self.interaction.fs_lepton_mass
        self.n_calls = 0

    def __call__(self, x: Sequence[float]) -> float:
        if len(x) != self.n_dim:
            raise ValueError(f"{type(self).__name__} takes {self.n_dim} variables, got {len(x)}")
        self.n_calls += 1
        return self._eval(x)

    def _eval(self, x: Sequence[float]) -> float:
        raise NotImplementedError

    def _model_xsec(self) -> float:
        return self.model.xsec(self.interaction, self.kps) / XSEC_WORKING_UNIT

# --- Implementations --------------------------------------------------------

class DXSecDElepPion(DifferentialFunction):
    """dxsec/dEl for coherent pion production; the model integrates the angles."""
    n_dim = 1
    kps = KinePhaseSpace.ELEP_FE

    def _eval(self, x):
        E_l = float(x[0])
        kine = self.interaction.kine
        kine.set(KineVar.EL, E_l)
        kine.set(KineVar.Y, 1.0 - E_l / self.E_nu)
        return self._model_xsec()


class D4XSecDElDThetalDOmegapi(DifferentialFunction):
    """
    d4xsec/(dEl dtheta_l dtheta_pi dphi_pi) for coherent pion production.

    The lepton defines phi = 0. Points where the lepton or pion would be
    off-shell (energy below its mass) contribute zero.
    """
    n_dim = 4
    kps = KinePhaseSpace.EL_OL_TPI_FE

    def __init__(self, model: XSecModel, interaction: Interaction):
        super().__init__(model, interaction)
        self.m_pi = self.interaction.produced_mass
        self.p4_nu = np.array([self.E_nu, 0.0, 0.0, self.E_nu])

    def _eval(self, x):
        E_l, theta_l, theta_pi, phi_pi = (float(v) for v in x)
        E_pi = self.E_nu - E_l
        if E_l < self.m_lep or E_pi < self.m_pi:
            return 0.0

        p_l = np.sqrt(E_l * E_l - self.m_lep * self.m_lep)
        p_pi = np.sqrt(E_pi * E_pi - self.m_pi * self.m_pi)
        p4_lep = four_vector(E_l, p_l, theta_l, 0.0)
        p4_pi = four_vector(E_pi, p_pi, theta_pi, phi_pi)

        Q2 = -minkowski_sq(self.p4_nu - p4_lep)
        y = E_pi / self.E_nu
        x_bj = Q2 / (2.0 * E_pi * M_NUCLEON) if E_pi > 0 else 0.0

        kine = self.interaction.kine
        kine.set(KineVar.EL, E_l)
        kine.set(KineVar.THETA_L, theta_l)
        kine.set(KineVar.THETA_PI, theta_pi)
        kine.set(KineVar.PHI_PI, phi_pi)
        kine.set(KineVar.Q2, Q2)
        kine.set(KineVar.Y, y)
        kine.set(KineVar.X, x_bj)
        kine.set(KineVar.W, self.m_pi)
        kine.fs_lepton_p4 = p4_lep
        kine.hadsyst_p4 = p4_pi

        return np.sin(theta_l) * np.sin(theta_pi) * self._model_xsec()


class D5XSecDEgDOmegalDOmegag(DifferentialFunction):
    """
    d5xsec/(dEg dOmega_l dOmega_g) sampled in (Eg, cos theta_l, cos theta_g, phi_g).

    Cosines are sampled directly, so no Jacobian appears. The lepton azimuth
    is fixed at 0; integrating it out is a factor 2 pi left to the caller.
    """
    n_dim = 4
    kps = KinePhaseSpace.EG_OL_OG_FE

    def _eval(self, x):
        E_g, cos_l, cos_g, phi_g = (float(v) for v in x)
        return self._eval_angles(E_g, np.arccos(np.clip(cos_l, -1.0, 1.0)),
                                 np.arccos(np.clip(cos_g, -1.0, 1.0)), phi_g)

    def _eval_angles(self, E_g: float, theta_l: float, theta_g: float, phi_g: float) -> float:
        E_l = self.E_nu - E_g
        if E_l < self.m_lep:
            return 0.0

        p_l = np.sqrt(E_l * E_l - self.m_lep * self.m_lep)
        p4_lep = four_vector(E_l, p_l, theta_l, 0.0)
        p4_gamma = four_vector(E_g, E_g, theta_g, phi_g)
        p4_nu = np.array([self.E_nu, 0.0, 0.0, self.E_nu])

        kine = self.interaction.kine
        kine.set(KineVar.EG, E_g)
        kine.set(KineVar.EL, E_l)
        kine.set(KineVar.THETA_L, theta_l)
        kine.set(KineVar.THETA_G, theta_g)
        kine.set(KineVar.PHI_G, phi_g)
        kine.set(KineVar.Q2, -minkowski_sq(p4_nu - p4_lep))
        kine.set(KineVar.Y, E_g / self.E_nu)
        kine.fs_lepton_p4 = p4_lep
        kine.hadsyst_p4 = p4_gamma

        return self._model_xsec()


class D4XSecDEgDThetalDThetagDPhig(D5XSecDEgDOmegalDOmegag):
    """
    Same cross section in (Eg, theta_l, theta_g, phi_g): carries the
    sin(theta_l) sin(theta_g) Jacobian and the 2 pi lepton azimuth itself.
    """

    def _eval(self, x):
        E_g, theta_l, theta_g, phi_g = (float(v) for v in x)
        jac = 2.0 * PI * np.sin(theta_l) * np.sin(theta_g)
        return jac * self._eval_angles(E_g, theta_l, theta_g, phi_g)

# --- Factory ----------------------------------------------------------------

def make_differential_function(
    parametrization: Parametrization, model: XSecModel, interaction: Interaction
) -> DifferentialFunction:
    if parametrization is Parametrization.PION_ELEP:
        return DXSecDElepPion(model, interaction)
    elif parametrization is Parametrization.PION_ANGULAR:
        return D4XSecDElDThetalDOmegapi(model, interaction)
    elif parametrization is Parametrization.PHOTON_OMEGA:
        return D5XSecDEgDOmegalDOmegag(model, interaction)
    elif parametrization is Parametrization.PHOTON_THETA:
        return D4XSecDEgDThetalDThetagDPhig(model, interaction)
    else:
        raise ValueError(f"Unknown parametrization {parametrization}")
