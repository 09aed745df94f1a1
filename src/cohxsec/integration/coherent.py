# src/cohxsec/integration/coherent.py
from __future__ import annotations
import sys
from enum import Enum
from typing import Any, Mapping

from ..config.load import build_integrator_cfg
from ..config.schemas import IntegratorCfg, ProcessKind
from ..errors import ConfigurationError
from ..physics.interaction import Interaction
from ..physics.models import XSecModel
from ..physics.units import PI, XSEC_WORKING_UNIT
from .bounds import KinematicBoundsResolver, KinematicLimits, Parametrization
from .functions import make_differential_function
from .quadrature import AdaptiveIntegrationEngine, IntegrationResult


class IntegratorState(Enum):
    UNCONFIGURED = "unconfigured"
    PION = "pion"
    PHOTON = "photon"


class CoherentXSecIntegrator:
    """
    Total cross section of coherent pion or photon production.

    configure() picks the process once (pion or photon); integrate() then
    dispatches on that choice:

    - pion, split-integral: 1-D integral over the lepton energy, the model
      having integrated the angles itself;
    - pion otherwise: 4-D over (El, theta_l, theta_pi, phi_pi);
    - photon: 4-D over (Eg, cos theta_l, cos theta_g, phi_g) times 2 pi for
      the lepton azimuth with OmegaPhaseSpace, else over
      (Eg, theta_l, theta_g, phi_g).

    Invalid processes and interactions below threshold give exactly 0
    before any quadrature is set up.
    """

    tag = "COHXSecAR"

    def __init__(self, cfg: IntegratorCfg | Mapping[str, Any] | None = None,
                 diagnostics_level: int = 1,
                 bounds: KinematicBoundsResolver | None = None):
        self.diagnostics_level = diagnostics_level
        self.bounds = bounds or KinematicBoundsResolver()
        self.state = IntegratorState.UNCONFIGURED
        self.cfg: IntegratorCfg | None = None
        self.engine: AdaptiveIntegrationEngine | None = None
        if cfg is not None:
            self.configure(cfg)

    # ---- configuration -----------------------------------------------------

    def configure(self, cfg: IntegratorCfg | Mapping[str, Any]) -> None:
        """
        Validate cfg and switch to the pion or photon state.

        An invalid configuration terminates the process with exit status 78:
        it is a setup mistake, not something to recover from at run time.
        """
        try:
            cfg = build_integrator_cfg(cfg)
        except ConfigurationError as exc:
            print(f"[{self.tag}] {exc}", file=sys.stderr)
            print(f"[{self.tag}] Invalid configuration. Exiting", file=sys.stderr)
            raise SystemExit(exc.exit_status) from exc

        self.cfg = cfg
        self.engine = AdaptiveIntegrationEngine(cfg, diagnostics_level=self.diagnostics_level)
        self.state = IntegratorState.PION if cfg.process is ProcessKind.PION else IntegratorState.PHOTON
        if self.diagnostics_level >= 2:
            print(f"[{self.tag}] configured for {self.state.value}: type={cfg.integration_type.value} "
                  f"max_eval={cfg.max_eval} rtol={cfg.relative_tolerance} "
                  f"split={cfg.split_integral} omega={cfg.omega_phase_space}")

    def parametrization(self) -> Parametrization:
        if self.state is IntegratorState.PION:
            return Parametrization.PION_ELEP if self.cfg.split_integral else Parametrization.PION_ANGULAR
        if self.state is IntegratorState.PHOTON:
            return Parametrization.PHOTON_OMEGA if self.cfg.omega_phase_space else Parametrization.PHOTON_THETA
        raise RuntimeError(f"[{self.tag}] integrator used before configure()")

    # ---- integration -------------------------------------------------------

    def integrate(self, model: XSecModel, interaction: Interaction) -> float:
        """Total cross section [GeV^-2]; divide by units.cm2 for cm^2."""
        if self.state is IntegratorState.PION:
            return self.integrate_pion(model, interaction)
        if self.state is IntegratorState.PHOTON:
            return self.integrate_photon(model, interaction)
        raise RuntimeError(f"[{self.tag}] integrator used before configure()")

    def integrate_pion(self, model: XSecModel, interaction: Interaction) -> float:
        limits = self._open_phase_space(model, interaction)
        if limits is None:
            return 0.0
        if self.diagnostics_level >= 1:
            E = limits.ranges[0]
            print(f"[{self.tag}] Lepton energy integration range = [{E.min}, {E.max}]")

        res = self._run(model, interaction, limits)
        if self.diagnostics_level >= 2:
            print(f"[{self.tag}] The integral was performed in {res.elapsed_s} sec")
        return res.value * XSEC_WORKING_UNIT

    def integrate_photon(self, model: XSecModel, interaction: Interaction) -> float:
        limits = self._open_phase_space(model, interaction)
        if limits is None:
            return 0.0

        res = self._run(model, interaction, limits)
        xsec = res.value * XSEC_WORKING_UNIT
        if self.parametrization() is Parametrization.PHOTON_OMEGA:
            xsec *= 2.0 * PI

        # the photon integral is the slowest step, so its timing is always reported
        if self.diagnostics_level >= 1:
            print(f"[{self.tag}] The integral was performed in {res.elapsed_s} sec")
        return xsec

    def _open_phase_space(self, model: XSecModel, interaction: Interaction) -> KinematicLimits | None:
        """Limits of the configured parametrization, or None when xsec is zero."""
        if not model.valid_process(interaction):
            if self.diagnostics_level >= 2:
                print(f"[{self.tag}] *** Invalid process {interaction.as_string()}")
            return None
        if not interaction.phase_space().is_above_threshold():
            if self.diagnostics_level >= 2:
                print(f"[{self.tag}] *** Below energy threshold")
            return None
        limits = self.bounds.resolve(interaction, self.parametrization())
        if not limits.above_threshold:
            if self.diagnostics_level >= 2:
                print(f"[{self.tag}] *** Empty integration range")
            return None
        return limits

    def _run(self, model: XSecModel, interaction: Interaction, limits: KinematicLimits) -> IntegrationResult:
        fn = make_differential_function(self.parametrization(), model, interaction)
        return self.engine.integrate(fn, limits.lower, limits.upper)
