from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .bonds import BondParameters
from .config import EngineConfig
from .engine import BondEngine
from .risk import price_change_estimate
from .solver import npv

DEFAULT_SHOCKS_BP = (-100, -50, -25, 25, 50, 100)


def run_rate_scenarios(
    params: BondParameters,
    shocks_bp: Sequence[float] = DEFAULT_SHOCKS_BP,
    config: Optional[EngineConfig] = None,
) -> pd.DataFrame:
    """
    Shift the annual rate by each shock (100bp = 1 percentage point) and
    re-evaluate. Also reprices the base all-in cash flows at the shifted
    periodic discount rate and compares the relative PV change with the
    duration/convexity estimate.

    Raises the base evaluation error if the unshocked bond fails.
    """
    engine = BondEngine(config)
    ppy = engine.config.periods_per_year

    base = engine.evaluate(params).unwrap()
    ind = base.indicators
    flows = np.array([p.total_due for p in base.schedule], dtype=float)
    base_discount = (1.0 + ind.effective_cost_rate_annual) ** (1.0 / ppy) - 1.0
    base_pv = npv(base_discount, flows)
    mod_dur_periods = ind.modified_duration_years * ppy

    rows = [{
        "scenario": "BASE",
        "shock_bp": 0.0,
        "rate_value_percent": params.rate_value_percent,
        "installment": ind.installment,
        "effective_cost_rate_annual": ind.effective_cost_rate_annual,
        "pv_change_actual": 0.0,
        "pv_change_estimate": 0.0,
        "error": "",
    }]

    for bp in shocks_bp:
        name = f"RATE_{bp:+g}bp"
        shocked = replace(params, rate_value_percent=params.rate_value_percent + bp / 100.0)
        res = engine.evaluate(shocked)
        if not res.is_ok():
            rows.append({
                "scenario": name,
                "shock_bp": float(bp),
                "rate_value_percent": shocked.rate_value_percent,
                "installment": np.nan,
                "effective_cost_rate_annual": np.nan,
                "pv_change_actual": np.nan,
                "pv_change_estimate": np.nan,
                "error": str(res.error),
            })
            continue

        s_ind = res.value.indicators
        dy = s_ind.monthly_rate - ind.monthly_rate
        shocked_pv = npv(base_discount + dy, flows)

        rows.append({
            "scenario": name,
            "shock_bp": float(bp),
            "rate_value_percent": shocked.rate_value_percent,
            "installment": s_ind.installment,
            "effective_cost_rate_annual": s_ind.effective_cost_rate_annual,
            "pv_change_actual": shocked_pv / base_pv - 1.0,
            "pv_change_estimate": price_change_estimate(mod_dur_periods, ind.convexity, dy),
            "error": "",
        })

    return pd.DataFrame(rows)
