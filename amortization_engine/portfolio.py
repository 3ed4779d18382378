from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .bonds import BondParameters, EngineResult
from .config import EngineConfig
from .engine import BondEngine
from .errors import EngineError
from .result import Ok, Result

logger = logging.getLogger(__name__)


def evaluate_many(
    params_list: Sequence[BondParameters],
    config: Optional[EngineConfig] = None,
    max_workers: Optional[int] = None,
) -> List[Result[EngineResult, EngineError]]:
    """
    Evaluate independent parameter records. Evaluations share no state, so a
    thread pool is safe; results come back in input order.
    """
    engine = BondEngine(config)
    if not max_workers or max_workers <= 1 or len(params_list) <= 1:
        results = [engine.evaluate(p) for p in params_list]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(engine.evaluate, params_list))

    n_err = sum(1 for r in results if not r.is_ok())
    logger.info("Batch evaluated %d bonds (%d failed)", len(results), n_err)
    return results


def summary_frame(
    params_list: Sequence[BondParameters],
    results: Sequence[Result[EngineResult, EngineError]],
) -> pd.DataFrame:
    """One row per bond: inputs, indicators (NaN on failure) and error text."""
    if len(params_list) != len(results):
        raise ValueError("params_list and results must have the same length")

    indicator_cols = [
        "effective_cost_rate_annual",
        "effective_yield_rate_annual",
        "macaulay_duration_years",
        "modified_duration_years",
        "convexity",
        "installment",
        "monthly_rate",
    ]

    rows = []
    for params, res in zip(params_list, results):
        row = {
            "principal": params.principal,
            "currency": params.currency.value,
            "term_periods": params.term_periods,
            "rate_basis": params.rate_basis.value,
            "rate_value_percent": params.rate_value_percent,
            "grace_kind": params.grace_kind.value,
            "grace_periods": params.grace_periods,
        }
        if isinstance(res, Ok):
            ind = asdict(res.value.indicators)
            row.update({c: ind[c] for c in indicator_cols})
            row["total_paid"] = float(sum(p.total_due for p in res.value.schedule))
            row["error"] = ""
        else:
            row.update({c: np.nan for c in indicator_cols})
            row["total_paid"] = np.nan
            row["error"] = str(res.error)
        rows.append(row)

    return pd.DataFrame(rows)
