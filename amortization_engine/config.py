"""
Static configuration for the engine: fee/insurance/tax constants, solver
settings and the regulatory bounds table.

Everything is a frozen dataclass passed into the calculation explicitly.
`load_config` overlays a YAML file on the defaults, e.g.

    engine:
      insurance_rate: 0.0005
      service_fee: 9.0
    solver:
      max_iterations: 200
    regulatory_bounds:
      rate_caps: {PEN: 83.40, USD: 16.41}
      max_term: 120
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from .bonds import Currency

logger = logging.getLogger(__name__)

DEFAULT_DISCLOSURES: Tuple[str, ...] = (
    "effective_annual_rate",
    "effective_cost_rate",
    "payment_periodicity",
    "fees_and_charges",
    "required_insurance",
    "transaction_tax",
)


@dataclass(frozen=True)
class SolverSettings:
    initial_guess: float = 0.1
    tolerance: float = 1e-4
    max_iterations: int = 100
    method: str = "newton"
    accept_approximate: bool = False


@dataclass(frozen=True)
class RegulatoryBounds:
    rate_caps: Mapping[Currency, float] = field(
        default_factory=lambda: {Currency.PEN: 83.40, Currency.USD: 16.41}
    )
    min_term: int = 6
    max_term: int = 120
    max_grace_ratio: float = 0.25
    compliant_threshold: float = 0.75
    required_disclosures: Tuple[str, ...] = DEFAULT_DISCLOSURES

    def rate_cap(self, currency: Currency) -> float:
        try:
            return float(self.rate_caps[Currency(currency)])
        except KeyError:
            raise ValueError(f"No rate cap configured for currency {currency}") from None


@dataclass(frozen=True)
class EngineConfig:
    insurance_rate: float = 0.0005       # monthly, on outstanding balance
    service_fee: float = 9.0             # flat, per installment
    transaction_tax_rate: float = 0.00005
    balance_epsilon: float = 0.01
    periods_per_year: int = 12
    solver: SolverSettings = field(default_factory=SolverSettings)
    bounds: RegulatoryBounds = field(default_factory=RegulatoryBounds)


DEFAULT_CONFIG = EngineConfig()


def _overlay(base, section: Optional[Mapping[str, Any]], section_name: str):
    if not section:
        return base
    known = {f.name for f in fields(base)}
    unknown = set(section) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{section_name}': {sorted(unknown)}")
    return replace(base, **dict(section))


def config_from_mapping(settings: Mapping[str, Any]) -> EngineConfig:
    unknown = set(settings) - {"engine", "solver", "regulatory_bounds"}
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

    solver = _overlay(SolverSettings(), settings.get("solver"), "solver")
    if solver.method not in ("newton", "brentq"):
        raise ValueError(f"Unsupported solver method: {solver.method}")

    bounds_section = dict(settings.get("regulatory_bounds") or {})
    if "rate_caps" in bounds_section:
        bounds_section["rate_caps"] = {
            Currency(str(k).upper()): float(v) for k, v in bounds_section["rate_caps"].items()
        }
    if "required_disclosures" in bounds_section:
        bounds_section["required_disclosures"] = tuple(bounds_section["required_disclosures"])
    bounds = _overlay(RegulatoryBounds(), bounds_section, "regulatory_bounds")

    engine_section = settings.get("engine") or {}
    if "solver" in engine_section or "bounds" in engine_section:
        raise ValueError("Use the top-level 'solver' and 'regulatory_bounds' sections")
    config = _overlay(EngineConfig(), engine_section, "engine")
    return replace(config, solver=solver, bounds=bounds)


def load_config(path: Union[str, Path]) -> EngineConfig:
    """Read a YAML settings file; defaults are returned when it does not exist."""
    settings_path = Path(path)
    if not settings_path.exists():
        logger.warning("Settings file %s not found, using defaults", settings_path)
        return DEFAULT_CONFIG

    with open(settings_path, "r") as f:
        settings: Dict[str, Any] = yaml.safe_load(f) or {}

    if not isinstance(settings, dict):
        raise ValueError(f"{settings_path}: expected a mapping at the top level")

    config = config_from_mapping(settings)
    logger.info("Loaded engine configuration from %s", settings_path)
    return config
