# src/cohxsec/integration/quadrature.py
from __future__ import annotations
import time
from typing import Callable, NamedTuple, Sequence

import numpy as np
import vegas
from scipy.integrate import cubature, quad

from ..config.schemas import IntegratorCfg, QuadratureType

Integrand = Callable[[Sequence[float]], float]

# QUADPACK qags: 21-point Gauss-Kronrod per subinterval
GK21_POINTS = 21


class IntegrationResult(NamedTuple):
    value: float
    error: float
    n_eval: int
    converged: bool
    elapsed_s: float = 0.0


def genz_malik_points(ndim: int) -> int:
    """Integrand evaluations of one degree-7 Genz-Malik rule application."""
    return 2 ** ndim + 2 * ndim * ndim + 2 * ndim + 1


class _CountingIntegrand:
    def __init__(self, fn: Integrand):
        self.fn = fn
        self.n_eval = 0

    def __call__(self, x) -> float:
        self.n_eval += 1
        return float(self.fn(x))

    def batch(self, xs: np.ndarray) -> np.ndarray:
        return np.array([self(row) for row in xs], dtype=np.float64)

# --- Interfaces -------------------------------------------------------------

class QuadratureStrategy:
    """Base protocol: integrate fn over the box [lower, upper]."""
    name: str

    def integrate(self, fn: Integrand, lower: np.ndarray, upper: np.ndarray,
                  rtol: float, max_eval: int) -> IntegrationResult:
        raise NotImplementedError

# --- Implementations --------------------------------------------------------

class GaussKronrod1D(QuadratureStrategy):
    """Adaptive 1-D Gauss-Kronrod (QUADPACK qags via scipy)."""
    name = "gauss-kronrod"

    def integrate(self, fn, lower, upper, rtol, max_eval):
        if len(lower) != 1:
            raise ValueError("GaussKronrod1D integrates exactly one variable")
        f = _CountingIntegrand(fn)
        limit = max(1, max_eval // GK21_POINTS)
        # qags refuses a pure relative tolerance below 50 machine epsilons
        epsrel = max(rtol, 50.0 * np.finfo(np.float64).eps)
        out = quad(lambda t: f((t,)), float(lower[0]), float(upper[0]),
                   epsabs=0.0, epsrel=epsrel, limit=limit, full_output=1)
        # a fourth element (message) is only present when qags flagged a problem
        value, error = out[0], out[1]
        return IntegrationResult(float(value), float(error), f.n_eval, len(out) == 3)


class AdaptiveCubature(QuadratureStrategy):
    """Deterministic adaptive cubature (Genz-Malik degree 7/5 embedded rule)."""
    name = QuadratureType.ADAPTIVE.value

    def integrate(self, fn, lower, upper, rtol, max_eval):
        ndim = len(lower)
        if ndim < 2:
            raise ValueError("AdaptiveCubature needs at least two variables")
        f = _CountingIntegrand(fn)
        per_rule = genz_malik_points(ndim)
        # every subdivision re-applies the rule to 2^ndim child regions
        max_subdivisions = max(1, (max_eval - per_rule) // (per_rule * 2 ** ndim))
        res = cubature(f.batch, np.asarray(lower, dtype=np.float64), np.asarray(upper, dtype=np.float64),
                       rule="genz-malik", rtol=rtol, atol=0.0, max_subdivisions=max_subdivisions)
        return IntegrationResult(float(res.estimate), float(res.error), f.n_eval,
                                 res.status == "converged")


class VegasMonteCarlo(QuadratureStrategy):
    """
    Monte Carlo integration with the vegas package.

    With adapt=True the importance-sampling grid is trained on the first
    iterations (discarded) before the accumulated estimate is formed;
    adapt=False gives plain stratified sampling. The random generator is
    seeded per call, so identical inputs give identical outputs.
    """

    def __init__(self, adapt: bool = True, seed: int | None = 0,
                 nitn_train: int = 5, nitn: int = 10):
        self.adapt = adapt
        self.seed = seed
        self.nitn_train = nitn_train if adapt else 0
        self.nitn = nitn
        self.name = QuadratureType.VEGAS.value if adapt else QuadratureType.PLAIN.value

    def integrate(self, fn, lower, upper, rtol, max_eval):
        ndim = len(lower)
        f = _CountingIntegrand(fn)
        rng = np.random.default_rng(self.seed)
        integ = vegas.Integrator(
            [[float(a), float(b)] for a, b in zip(lower, upper)],
            adapt=self.adapt,
            ran_array_generator=rng.random,
        )
        neval = max(max_eval // (self.nitn_train + self.nitn), 2 * 2 ** ndim)
        if self.nitn_train:
            integ(f, nitn=self.nitn_train, neval=neval)
        result = integ(f, nitn=self.nitn, neval=neval, rtol=rtol)
        mean, sdev = float(result.mean), float(result.sdev)
        converged = sdev <= rtol * abs(mean) or (mean == 0.0 and sdev == 0.0)
        return IntegrationResult(mean, sdev, f.n_eval, converged)

# --- Factory ----------------------------------------------------------------

def make_quadrature(cfg: IntegratorCfg) -> QuadratureStrategy:
    if cfg.integration_type is QuadratureType.ADAPTIVE:
        return AdaptiveCubature()
    elif cfg.integration_type is QuadratureType.VEGAS:
        return VegasMonteCarlo(adapt=True, seed=cfg.seed)
    elif cfg.integration_type is QuadratureType.PLAIN:
        return VegasMonteCarlo(adapt=False, seed=cfg.seed)
    else:
        raise ValueError(f"Unknown quadrature type {cfg.integration_type}")


class AdaptiveIntegrationEngine:
    """
    Integrates a DifferentialFunction over a box.

    One variable: adaptive Gauss-Kronrod. Several: the strategy named by
    gsl-integration-type. Running out of evaluations is not an error: the
    best estimate is returned with converged=False.
    """

    def __init__(self, cfg: IntegratorCfg, diagnostics_level: int = 1):
        self.cfg = cfg
        self.diagnostics_level = diagnostics_level
        self.one_dim = GaussKronrod1D()
        self.multi_dim = make_quadrature(cfg)

    def strategy_for(self, ndim: int) -> QuadratureStrategy:
        return self.one_dim if ndim == 1 else self.multi_dim

    def integrate(self, fn: Integrand, lower: Sequence[float], upper: Sequence[float]) -> IntegrationResult:
        lo = np.asarray(lower, dtype=np.float64)
        hi = np.asarray(upper, dtype=np.float64)
        if lo.shape != hi.shape or lo.ndim != 1 or lo.size == 0:
            raise ValueError(f"Bounds must be matching 1-D sequences, got {lo.shape} and {hi.shape}")

        strategy = self.strategy_for(lo.size)
        t0 = time.perf_counter()
        res = strategy.integrate(fn, lo, hi, self.cfg.relative_tolerance, self.cfg.max_eval)
        res = res._replace(elapsed_s=time.perf_counter() - t0)

        if self.diagnostics_level >= 2:
            print(f"[quadrature] {strategy.name} ndim={lo.size} value={res.value:.6g} "
                  f"err={res.error:.3g} n_eval={res.n_eval} in {res.elapsed_s:.3f} s")
            if not res.converged:
                print(f"[quadrature] rtol={self.cfg.relative_tolerance} not reached within "
                      f"gsl-max-eval={self.cfg.max_eval}; returning best estimate")
        return res
