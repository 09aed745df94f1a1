from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable

import numpy as np

from cohxsec.config.load import load_config
from cohxsec.config.schemas import Config
from cohxsec.errors import ConfigurationError
from cohxsec.integration.coherent import CoherentXSecIntegrator
from cohxsec.physics.form_factors import DeltaTransitionFormFactor, build_form_factor_registry
from cohxsec.physics.interaction import Interaction
from cohxsec.physics.models import ModelCatalog
from cohxsec.physics.units import cm2


@dataclass
class XSecSetup:
    """Everything built once from a TOML config and then shared read-only."""
    config: Config
    integrator: CoherentXSecIntegrator
    form_factors: Dict[int, DeltaTransitionFormFactor] = field(default_factory=dict)


def setup_from_config(cfg_path: str | Path) -> XSecSetup:
    """
    Load the TOML config and build the integrator and form-factor registry.

    Configuration errors end the process with exit status 78.
    """
    try:
        cfg = load_config(cfg_path)
        form_factors = build_form_factor_registry(
            cfg.form_factors, cfg.delta_transition, diagnostics_level=cfg.run.diagnostics_level
        )
    except (ConfigurationError, ValueError) as exc:
        status = getattr(exc, "exit_status", ConfigurationError.exit_status)
        print(f"[setup] {exc}", file=sys.stderr)
        print(f"[setup] Invalid configuration {cfg_path}. Exiting", file=sys.stderr)
        raise SystemExit(status) from exc

    diag_level = cfg.run.diagnostics_level
    if diag_level >= 1:
        print(f"[setup] config = {cfg_path}")
        print(f"[setup] process={cfg.integrator.process.value} "
              f"type={cfg.integrator.integration_type.value} form_factors={len(form_factors)}")

    integrator = CoherentXSecIntegrator(cfg.integrator, diagnostics_level=diag_level)
    return XSecSetup(config=cfg, integrator=integrator, form_factors=form_factors)


def total_xsecs(
    setup: XSecSetup,
    catalog: ModelCatalog,
    interactions: Iterable[Interaction],
) -> np.ndarray:
    """
    Integrated cross section [cm^2] for each interaction, using the model the
    catalog assigns to it. Interactions without a model get 0.
    """
    diag_level = setup.config.run.diagnostics_level
    out = []
    for j, interaction in enumerate(interactions):
        model = catalog.xsec_alg(interaction)
        if model is None:
            out.append(0.0)
            continue
        xsec = setup.integrator.integrate(model, interaction) / cm2
        if diag_level >= 2:
            print(f"[xsec] {j}: E={interaction.init_state.probe_E} GeV "
                  f"{interaction.as_string()} -> {xsec:.6e} cm2")
        out.append(xsec)
    return np.asarray(out, dtype=np.float64)
