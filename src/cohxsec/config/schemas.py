from __future__ import annotations
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional


class QuadratureType(str, Enum):
    """Multi-dimensional quadrature strategies selectable by name."""
    ADAPTIVE = "adaptive"   # deterministic adaptive cubature (Genz-Malik)
    VEGAS = "vegas"         # adaptive Monte Carlo
    PLAIN = "plain"         # non-adaptive Monte Carlo


class ProcessKind(str, Enum):
    PION = "pion"
    PHOTON = "photon"


class RunCfg(BaseModel):
    """
    Global run controls.

    TOML:

    [run]
    diagnostics_level = 1   # 0=off, 1=minimal, 2=verbose
    """

    diagnostics_level: int = 1

    @field_validator("diagnostics_level")
    def _diag_range(cls, v: int) -> int:
        if v not in (0, 1, 2):
            raise ValueError("diagnostics_level must be 0, 1, or 2")
        return v


class IntegratorCfg(BaseModel):
    """
    Numerical settings of the coherent cross-section integrator.

    Keys are the historical configuration names, e.g.

    [integrator]
    gsl-integration-type   = "vegas"    # "adaptive" | "vegas" | "plain"
    gsl-max-eval           = 4000
    gsl-relative-tolerance = 0.01
    split-integral         = true
    IsCOHPion              = false
    IsCOHGamma             = true
    OmegaPhaseSpace        = true

    Exactly one of IsCOHPion / IsCOHGamma must be set. Instances are frozen:
    a reload builds a new object, which is validated again.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    integration_type: QuadratureType = Field(QuadratureType.VEGAS, alias="gsl-integration-type")
    max_eval: int = Field(4000, alias="gsl-max-eval", gt=0)
    relative_tolerance: float = Field(0.01, alias="gsl-relative-tolerance", gt=0.0)
    split_integral: bool = Field(True, alias="split-integral")
    has_pion: bool = Field(False, alias="IsCOHPion")
    has_photon: bool = Field(False, alias="IsCOHGamma")
    omega_phase_space: bool = Field(True, alias="OmegaPhaseSpace")

    # Monte Carlo strategies draw from a generator seeded per integration,
    # so repeated calls give identical results. None uses fresh entropy.
    seed: Optional[int] = 0

    @field_validator("integration_type", mode="before")
    def _normalise_type(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            known = [q.value for q in QuadratureType]
            if v not in known:
                raise ValueError(f"Unknown gsl-integration-type {v!r}; expected one of {known}")
        return v

    @model_validator(mode="after")
    def _exactly_one_process(self) -> "IntegratorCfg":
        if not self.has_pion and not self.has_photon:
            raise ValueError("No pion nor gamma option has been requested")
        if self.has_pion and self.has_photon:
            raise ValueError("Pion and Gamma options have been requested at the same time")
        return self

    @property
    def process(self) -> ProcessKind:
        return ProcessKind.PION if self.has_pion else ProcessKind.PHOTON


class FormFactorCfg(BaseModel):
    """
    Fourier-Bessel expansion of a nuclear charge density.

    [form_factor]
    DV-Coefficient = [ ... ]
    DV-Radius      = 8.0          # fm
    DV-Nucleus     = 1000060120   # PDG code of the target
    """

    model_config = ConfigDict(populate_by_name=True)

    coefficients: List[float] = Field(alias="DV-Coefficient", min_length=1)
    radius_fm: float = Field(alias="DV-Radius", gt=0.0)
    nucleus: int = Field(alias="DV-Nucleus")


class DeltaTransitionCfg(BaseModel):
    """Modified-dipole parameters of the N -> Delta transition form factors."""
    C3V0: float = 2.13
    C5A0: float = 1.2
    MV: float = 0.84    # GeV
    MA: float = 1.05    # GeV
    sin2_theta_w: float = 0.2312


class Config(BaseModel):
    """
    Top-level TOML configuration.
    """

    run: RunCfg = Field(default_factory=RunCfg)
    integrator: IntegratorCfg
    form_factors: List[FormFactorCfg] = Field(default_factory=list)
    delta_transition: DeltaTransitionCfg = Field(default_factory=DeltaTransitionCfg)
