import numpy as np
import pytest
from pydantic import ValidationError

from cohxsec.config.schemas import DeltaTransitionCfg, FormFactorCfg
from cohxsec.errors import SingularInputError
from cohxsec.physics.form_factors import (
    DeltaTransitionFormFactor,
    FourierBesselFormFactor,
    build_form_factor_registry,
)
from cohxsec.physics.units import fm

# de Vries C12 charge-density coefficients (first few terms)
C12_COEFFS = [0.15721e-1, 0.38732e-1, 0.36808e-1, 0.14671e-1, -0.43277e-2]
C12_RADIUS_FM = 8.0


def test_form_factor_at_zero_uses_sinc_limit():
    ff = FourierBesselFormFactor(C12_COEFFS, C12_RADIUS_FM)
    expected = 4 * np.pi * C12_RADIUS_FM ** 3 * sum(
        (-1) ** i * c / ((i + 1) * np.pi) ** 2 for i, c in enumerate(C12_COEFFS)
    )
    F0 = ff.form_factor(0.0)
    assert np.isfinite(F0)
    assert F0 == pytest.approx(expected, rel=1e-12)


def test_form_factor_continuous_near_zero():
    ff = FourierBesselFormFactor(C12_COEFFS, C12_RADIUS_FM)
    assert ff(1e-9) == pytest.approx(ff(0.0), rel=1e-9)


def test_form_factor_vectorised_matches_scalar():
    ff = FourierBesselFormFactor(C12_COEFFS, C12_RADIUS_FM)
    Q = np.array([0.0, 0.05, 0.1, 0.2])
    F = ff(Q)
    assert F.shape == Q.shape
    assert np.allclose(F, [ff(float(q)) for q in Q])


def test_form_factor_single_term_closed_form():
    ff = FourierBesselFormFactor([1.0], 2.0)
    Q = 0.1
    qr = Q * 2.0 * fm
    expected = 4 * np.pi * 8.0 * (1.0 / ((np.pi + qr) * (np.pi - qr))) * np.sin(qr) / qr
    assert ff(Q) == pytest.approx(expected, rel=1e-12)


def test_form_factor_pole_is_rejected():
    ff = FourierBesselFormFactor(C12_COEFFS, C12_RADIUS_FM)
    Q_pole = 2 * np.pi / ff.radius
    with pytest.raises(SingularInputError):
        ff(Q_pole)
    with pytest.raises(SingularInputError):
        ff(np.array([0.0, Q_pole]))
    # poles beyond the truncation order do not exist
    assert np.isfinite(ff(6 * np.pi / ff.radius * 1.0001))


def test_form_factor_rejects_bad_inputs():
    with pytest.raises(ValueError):
        FourierBesselFormFactor([], 1.0)
    with pytest.raises(ValueError):
        FourierBesselFormFactor([1.0], 0.0)
    with pytest.raises(ValidationError):
        FormFactorCfg(**{"DV-Coefficient": [], "DV-Radius": 8.0, "DV-Nucleus": 1000060120})


def test_delta_transition_couplings_at_zero():
    p = DeltaTransitionCfg()
    ff = DeltaTransitionFormFactor(C12_COEFFS, C12_RADIUS_FM, params=p)
    assert ff.C3V(0.0) == pytest.approx(p.C3V0)
    assert ff.C3VNC(0.0) == pytest.approx((1 - 2 * p.sin2_theta_w) * p.C3V0)
    assert ff.C5ANC(0.0) == pytest.approx(-p.C5A0)
    # dipole fall-off
    assert abs(ff.C3V(1.0)) < abs(ff.C3V(0.1)) < abs(ff.C3V(0.0))


def test_registry_by_nucleus():
    cfgs = [
        FormFactorCfg(**{"DV-Coefficient": C12_COEFFS, "DV-Radius": 8.0, "DV-Nucleus": 1000060120}),
        FormFactorCfg(**{"DV-Coefficient": [0.1, 0.05], "DV-Radius": 10.0, "DV-Nucleus": 1000080160}),
    ]
    reg = build_form_factor_registry(cfgs, diagnostics_level=0)
    assert set(reg) == {1000060120, 1000080160}
    assert reg[1000080160].radius_fm == pytest.approx(10.0)
    with pytest.raises(ValueError):
        build_form_factor_registry(cfgs + cfgs[:1], diagnostics_level=0)
