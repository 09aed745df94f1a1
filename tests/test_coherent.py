import numpy as np
import pytest

from cohxsec.errors import EX_CONFIG
from cohxsec.integration.coherent import CoherentXSecIntegrator, IntegratorState
from cohxsec.integration.bounds import KinematicBoundsResolver
from cohxsec.physics.interaction import Interaction, KineVar, PDG_NUMU, nucleus_pdg
from cohxsec.physics.units import ASMALL_NUM, XSEC_WORKING_UNIT, cm2

C12 = nucleus_pdg(6, 12)
TWO_PI = 2 * np.pi


class ConstantModel:
    """Differential cross section of exactly 1e-38 cm2 everywhere."""

    def __init__(self, valid=True):
        self.valid = valid

    def valid_process(self, interaction):
        return self.valid

    def xsec(self, interaction, kps):
        return XSEC_WORKING_UNIT


class NeverCalledModel(ConstantModel):
    def xsec(self, interaction, kps):
        raise AssertionError("model evaluated for a forbidden interaction")


class LeptonEnergySquaredModel(ConstantModel):
    def xsec(self, interaction, kps):
        return interaction.kine.get(KineVar.EL) ** 2 * XSEC_WORKING_UNIT


class PhotonAngularModel(ConstantModel):
    def xsec(self, interaction, kps):
        c = np.cos(interaction.kine.get(KineVar.THETA_G))
        return (1 + c * c) * interaction.kine.get(KineVar.EG) * XSEC_WORKING_UNIT


def _integrator(**cfg):
    return CoherentXSecIntegrator(cfg, diagnostics_level=0)


def test_split_pion_constant_model_scenario():
    E = 1.8
    nu = Interaction.coh_pion(PDG_NUMU, C12, E)
    integ = _integrator(IsCOHPion=True)
    El = KinematicBoundsResolver().lepton_energy_range(nu)
    xsec = integ.integrate(ConstantModel(), nu)
    assert xsec / cm2 == pytest.approx((El.max - El.min) * 1e-38, rel=1e-6)


def test_pion_angular_constant_model():
    E = 1.8
    nu = Interaction.coh_pion(PDG_NUMU, C12, E)
    integ = _integrator(**{"IsCOHPion": True, "split-integral": False,
                           "gsl-integration-type": "adaptive",
                           "gsl-relative-tolerance": 1e-3, "gsl-max-eval": 100000})
    El = KinematicBoundsResolver().lepton_energy_range(nu)
    expected = El.width * (2 * np.cos(ASMALL_NUM)) ** 2 * (TWO_PI - 2 * ASMALL_NUM) * 1e-38
    assert integ.integrate(ConstantModel(), nu) / cm2 == pytest.approx(expected, rel=1e-3)


def test_photon_omega_constant_model_scenario():
    E = 1.2
    nu = Interaction.coh_gamma(PDG_NUMU, C12, E)
    expected = E * 2 * 2 * (TWO_PI - 2 * ASMALL_NUM) * 1e-38 * TWO_PI
    exact = _integrator(**{"IsCOHGamma": True, "gsl-integration-type": "adaptive"})
    assert exact.integrate(ConstantModel(), nu) / cm2 == pytest.approx(expected, rel=1e-9)
    mc = _integrator(IsCOHGamma=True)   # default vegas
    assert mc.integrate(ConstantModel(), nu) / cm2 == pytest.approx(expected, rel=2e-2)


def test_photon_theta_agrees_with_omega():
    nu = Interaction.coh_gamma(PDG_NUMU, C12, 1.0)
    common = {"IsCOHGamma": True, "gsl-integration-type": "adaptive",
              "gsl-relative-tolerance": 1e-3, "gsl-max-eval": 100000}
    omega = _integrator(**common).integrate(ConstantModel(), nu)
    theta = _integrator(**common, OmegaPhaseSpace=False).integrate(ConstantModel(), nu)
    assert theta == pytest.approx(omega, rel=1e-3)


@pytest.mark.parametrize("flags", [{"IsCOHPion": True}, {"IsCOHGamma": True}])
def test_below_threshold_and_invalid_give_exact_zero(flags):
    integ = _integrator(**flags)
    below = Interaction.coh_pion(PDG_NUMU, C12, 0.1) if "IsCOHPion" in flags \
        else Interaction.coh_gamma(PDG_NUMU, C12, 0.0)
    assert integ.integrate(NeverCalledModel(), below) == 0.0
    above = Interaction.coh_pion(PDG_NUMU, C12, 2.0)
    assert integ.integrate(NeverCalledModel(valid=False), above) == 0.0


@pytest.mark.parametrize("flags", [
    {"IsCOHPion": False, "IsCOHGamma": False},
    {"IsCOHPion": True, "IsCOHGamma": True},
    {"IsCOHPion": True, "gsl-integration-type": "miser-ish"},
])
def test_bad_configuration_terminates(flags):
    for _ in range(2):
        with pytest.raises(SystemExit) as excinfo:
            CoherentXSecIntegrator(flags, diagnostics_level=0)
        assert excinfo.value.code == EX_CONFIG


def test_unconfigured_and_reconfigure():
    integ = CoherentXSecIntegrator(diagnostics_level=0)
    assert integ.state is IntegratorState.UNCONFIGURED
    nu = Interaction.coh_pion(PDG_NUMU, C12, 1.8)
    with pytest.raises(RuntimeError):
        integ.integrate(ConstantModel(), nu)
    integ.configure({"IsCOHPion": True})
    assert integ.state is IntegratorState.PION
    integ.configure({"IsCOHGamma": True})
    assert integ.state is IntegratorState.PHOTON


def test_tightening_tolerance_stays_within_bound():
    E = 1.8
    nu = Interaction.coh_pion(PDG_NUMU, C12, E)
    loose = _integrator(**{"IsCOHPion": True, "gsl-relative-tolerance": 1e-2}).integrate(
        LeptonEnergySquaredModel(), nu)
    tight = _integrator(**{"IsCOHPion": True, "gsl-relative-tolerance": 1e-8}).integrate(
        LeptonEnergySquaredModel(), nu)
    assert abs(loose - tight) <= 1e-2 * abs(tight)
    El = KinematicBoundsResolver().lepton_energy_range(nu)
    assert tight / cm2 == pytest.approx((El.max ** 3 - El.min ** 3) / 3 * 1e-38, rel=1e-8)


def test_repeated_calls_are_identical_and_leave_input_alone():
    nu = Interaction.coh_gamma(PDG_NUMU, C12, 1.0)
    integ = _integrator(IsCOHGamma=True)
    first = integ.integrate(PhotonAngularModel(), nu)
    second = integ.integrate(PhotonAngularModel(), nu)
    assert first == second
    assert first > 0.0
    assert nu.kine.values == {}
    assert nu.skip_process_check is False
