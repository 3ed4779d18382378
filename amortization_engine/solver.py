"""
Internal-rate solver: find the periodic rate x with

    sum_t CF_t / (1 + x)^t = reference_amount,   t = 1..n

Newton-Raphson on the NPV function is the default; a bracketed Brent solve
is available for flows where Newton wanders. The outcome always carries an
explicit `converged` flag; a non-converged rate is only a best estimate.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.optimize import brentq

from .errors import DegenerateInput, InvalidParameter, NonConvergence
from .utils import as_cash_flow_array, period_times

logger = logging.getLogger(__name__)

# Brent bracket on the periodic rate.
_BRACKET_LOW = -0.9
_BRACKET_HIGH_START = 1.0
_BRACKET_HIGH_MAX = 1e4


@dataclass(frozen=True)
class SolverResult:
    rate: float
    converged: bool
    iterations: int
    method: str = "newton"

    def require_converged(self, stage: str = "solver") -> float:
        """Return the rate, raising NonConvergence when the solve did not converge."""
        if not self.converged:
            raise NonConvergence(
                f"{self.method} solver stopped after {self.iterations} iterations without converging "
                f"(last estimate {self.rate!r})",
                last_estimate=self.rate,
                iterations=self.iterations,
                stage=stage,
            )
        return self.rate


def npv(rate: float, cash_flows: Sequence[float], reference_amount: float = 0.0) -> float:
    """sum CF_t / (1+x)^t - reference_amount"""
    cfs = as_cash_flow_array(cash_flows)
    t = period_times(len(cfs))
    return float(np.sum(cfs / (1.0 + rate) ** t) - reference_amount)


def npv_derivative(rate: float, cash_flows: Sequence[float]) -> float:
    """d(npv)/dx = -sum t * CF_t / (1+x)^(t+1)"""
    cfs = as_cash_flow_array(cash_flows)
    t = period_times(len(cfs))
    return float(-np.sum(t * cfs / (1.0 + rate) ** (t + 1.0)))


def _check_inputs(reference_amount: float, cfs: np.ndarray, tolerance: float, max_iterations: int) -> None:
    if cfs.size == 0:
        raise DegenerateInput("cash flow vector is empty", stage="solver")
    if not np.all(np.isfinite(cfs)):
        raise DegenerateInput("cash flow vector contains non-finite values", stage="solver")
    if not reference_amount > 0:
        raise InvalidParameter(f"reference_amount must be positive, got {reference_amount}", stage="solver")
    if not tolerance > 0:
        raise InvalidParameter(f"tolerance must be positive, got {tolerance}", stage="solver")
    if max_iterations <= 0:
        raise InvalidParameter(f"max_iterations must be positive, got {max_iterations}", stage="solver")


def _newton(reference_amount: float, cfs: np.ndarray, guess: float, tolerance: float, max_iterations: int) -> SolverResult:
    rate = float(guess)
    for i in range(1, max_iterations + 1):
        value = npv(rate, cfs, reference_amount)
        if abs(value) < tolerance:
            return SolverResult(rate, True, i, "newton")

        slope = npv_derivative(rate, cfs)
        if slope == 0.0 or not math.isfinite(slope):
            logger.debug("Newton stopped at iteration %d: derivative %r", i, slope)
            return SolverResult(rate, False, i, "newton")

        new_rate = rate - value / slope
        if not math.isfinite(new_rate) or new_rate <= -1.0:
            logger.debug("Newton stopped at iteration %d: step left the domain (%r)", i, new_rate)
            return SolverResult(rate, False, i, "newton")

        if abs(new_rate - rate) < tolerance:
            return SolverResult(new_rate, True, i, "newton")
        rate = new_rate

    return SolverResult(rate, False, max_iterations, "newton")


def _brent(reference_amount: float, cfs: np.ndarray, tolerance: float, max_iterations: int) -> SolverResult:
    def f(x: float) -> float:
        return npv(x, cfs, reference_amount)

    a, b = _BRACKET_LOW, _BRACKET_HIGH_START
    fa = f(a)
    fb = f(b)
    while fa * fb > 0 and b < _BRACKET_HIGH_MAX:
        b *= 2.0
        fb = f(b)

    if fa * fb > 0:
        logger.debug("Brent solve: root not bracketed on [%s, %s]", a, b)
        return SolverResult(float("nan"), False, 0, "brentq")

    root, info = brentq(f, a, b, xtol=tolerance * 1e-4, maxiter=max_iterations, full_output=True, disp=False)
    converged = bool(info.converged) and abs(f(root)) < tolerance
    return SolverResult(float(root), converged, int(info.iterations), "brentq")


def solve_periodic_rate(
    reference_amount: float,
    cash_flows: Sequence[float],
    initial_guess: float = 0.1,
    tolerance: float = 1e-4,
    max_iterations: int = 100,
    method: str = "newton",
) -> SolverResult:
    """
    Periodic rate equating the present value of `cash_flows` (t = 1..n) to
    `reference_amount`.

    Newton stops when |npv(x)| < tolerance or the step |x_new - x| < tolerance.
    If `max_iterations` runs out, the last iterate comes back with
    converged=False.
    """
    cfs = as_cash_flow_array(cash_flows)
    _check_inputs(reference_amount, cfs, tolerance, max_iterations)

    if method == "newton":
        result = _newton(reference_amount, cfs, initial_guess, tolerance, max_iterations)
    elif method == "brentq":
        result = _brent(reference_amount, cfs, tolerance, max_iterations)
    else:
        raise InvalidParameter(f"Unsupported solver method: {method}", stage="solver")

    if result.converged:
        logger.debug("%s converged in %d iterations: rate=%.10f", method, result.iterations, result.rate)
    else:
        logger.warning("%s did not converge after %d iterations (last estimate %r)",
                       method, result.iterations, result.rate)
    return result
