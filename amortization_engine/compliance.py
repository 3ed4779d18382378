"""
Regulatory checks on bond parameters.

Each rule maps the parameters and an injected `RegulatoryBounds` to a
`RuleEvaluation`. The report status is COMPLIANT when every rule passes,
NON_COMPLIANT when the passing fraction drops below
`bounds.compliant_threshold` (0.75), PARTIAL otherwise.
"""
from __future__ import annotations

import math
from typing import Callable, Optional, Sequence, Tuple

from .bonds import BondParameters, ComplianceReport, ComplianceStatus, GraceKind, RuleEvaluation
from .config import DEFAULT_DISCLOSURES, RegulatoryBounds

# Disclosures the engine emits with every result (rates, periodicity, every cost component).
ENGINE_DISCLOSURES = frozenset(DEFAULT_DISCLOSURES)

Rule = Callable[[BondParameters, RegulatoryBounds], RuleEvaluation]


def check_interest_rate(params: BondParameters, bounds: RegulatoryBounds) -> RuleEvaluation:
    cap = bounds.rate_cap(params.currency)
    rate = params.rate_value_percent
    ok = 0 < rate <= cap
    if rate <= 0:
        text = f"Rate of {rate}% is not a valid positive rate."
    elif ok:
        text = f"Annual rate of {rate}% is within the {cap}% cap for {params.currency.value} loans."
    else:
        text = f"Annual rate of {rate}% exceeds the {cap}% cap for {params.currency.value} loans."
    return RuleEvaluation(
        name="interest_rate_cap",
        is_compliant=ok,
        observed_value=float(rate),
        limit_value=cap,
        explanation=text,
        regulation="Law No. 31143 (usury protection for consumers)",
    )


def check_term(params: BondParameters, bounds: RegulatoryBounds) -> RuleEvaluation:
    term = params.term_periods
    ok = bounds.min_term <= term <= bounds.max_term
    if ok:
        text = f"Term of {term} months is within the allowed {bounds.min_term}-{bounds.max_term} months."
    elif term < bounds.min_term:
        text = f"Term of {term} months is below the minimum of {bounds.min_term} months."
    else:
        text = f"Term of {term} months exceeds the maximum of {bounds.max_term} months."
    return RuleEvaluation(
        name="term_bounds",
        is_compliant=ok,
        observed_value=float(term),
        limit_value=float(bounds.max_term),
        explanation=text,
        regulation="SBS Resolution No. 3274-2017",
    )


def max_grace_periods(term_periods: int, max_grace_ratio: float) -> int:
    return int(math.floor(term_periods * max_grace_ratio))


def check_grace_period(params: BondParameters, bounds: RegulatoryBounds) -> RuleEvaluation:
    grace = params.effective_grace_periods
    if params.grace_kind == GraceKind.NONE or grace == 0:
        return RuleEvaluation(
            name="grace_period_ratio",
            is_compliant=True,
            observed_value=0.0,
            limit_value=0.0,
            explanation="No grace period configured.",
        )

    limit = max_grace_periods(params.term_periods, bounds.max_grace_ratio)
    ok = grace <= limit and grace < params.term_periods
    pct = bounds.max_grace_ratio * 100
    if ok:
        text = f"Grace of {grace} months is within the {limit}-month limit ({pct:g}% of the term)."
    else:
        text = f"Grace of {grace} months exceeds the {limit}-month limit ({pct:g}% of the term)."
    return RuleEvaluation(
        name="grace_period_ratio",
        is_compliant=ok,
        observed_value=float(grace),
        limit_value=float(limit),
        explanation=text,
        regulation="SBS Circular No. G-200-2020",
    )


def check_disclosures(params: BondParameters, bounds: RegulatoryBounds) -> RuleEvaluation:
    required = tuple(bounds.required_disclosures)
    missing = [d for d in required if d not in ENGINE_DISCLOSURES]
    ok = not missing
    if ok:
        text = "All required rate, fee, insurance and tax disclosures are provided."
    else:
        text = f"Missing disclosures: {', '.join(missing)}."
    return RuleEvaluation(
        name="disclosure_completeness",
        is_compliant=ok,
        observed_value=float(len(required) - len(missing)),
        limit_value=float(len(required)),
        explanation=text,
        regulation="SBS Resolution No. 3274-2017 (market conduct)",
    )


RULES: Tuple[Rule, ...] = (
    check_interest_rate,
    check_term,
    check_grace_period,
    check_disclosures,
)


def overall_status(evaluations: Sequence[RuleEvaluation], threshold: float = 0.75) -> Tuple[ComplianceStatus, float]:
    if not evaluations:
        return ComplianceStatus.COMPLIANT, 1.0
    ratio = sum(1 for e in evaluations if e.is_compliant) / len(evaluations)
    if ratio == 1.0:
        return ComplianceStatus.COMPLIANT, ratio
    if ratio < threshold:
        return ComplianceStatus.NON_COMPLIANT, ratio
    return ComplianceStatus.PARTIAL, ratio


def validate_compliance(
    params: BondParameters,
    bounds: Optional[RegulatoryBounds] = None,
    rules: Sequence[Rule] = RULES,
) -> ComplianceReport:
    bounds = bounds or RegulatoryBounds()
    evaluations = tuple(rule(params, bounds) for rule in rules)
    status, ratio = overall_status(evaluations, bounds.compliant_threshold)
    return ComplianceReport(evaluations=evaluations, overall_status=status, compliance_ratio=ratio)
