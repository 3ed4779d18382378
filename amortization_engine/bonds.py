from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional, Tuple

import pandas as pd

from .errors import InvalidParameter


class Currency(str, Enum):
    PEN = "PEN"
    USD = "USD"


class RateBasis(str, Enum):
    EFFECTIVE = "EFFECTIVE"
    NOMINAL = "NOMINAL"


class Capitalization(str, Enum):
    DAILY = "DAILY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    BIMONTHLY = "BIMONTHLY"
    QUARTERLY = "QUARTERLY"
    FOUR_MONTHLY = "FOUR_MONTHLY"
    SEMIANNUAL = "SEMIANNUAL"
    ANNUAL = "ANNUAL"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    Capitalization.DAILY: 360,
    Capitalization.BIWEEKLY: 24,
    Capitalization.MONTHLY: 12,
    Capitalization.BIMONTHLY: 6,
    Capitalization.QUARTERLY: 4,
    Capitalization.FOUR_MONTHLY: 3,
    Capitalization.SEMIANNUAL: 2,
    Capitalization.ANNUAL: 1,
}


class GraceKind(str, Enum):
    NONE = "NONE"
    PARTIAL = "PARTIAL"
    TOTAL = "TOTAL"


class ComplianceStatus(str, Enum):
    COMPLIANT = "COMPLIANT"
    PARTIAL = "PARTIAL"
    NON_COMPLIANT = "NON_COMPLIANT"


@dataclass(frozen=True)
class BondParameters:
    """
    Input record for one calculation. Amounts are in currency units, the rate
    is an annual percentage (12.0 means 12%), terms are monthly periods.
    """
    principal: float
    currency: Currency
    term_periods: int
    rate_basis: RateBasis
    rate_value_percent: float
    start_date: dt.date
    capitalization: Optional[Capitalization] = None
    grace_kind: GraceKind = GraceKind.NONE
    grace_periods: int = 0
    include_insurance: bool = False
    include_service_fee: bool = False

    def __post_init__(self):
        # amounts may arrive as Decimal, enum fields as plain strings
        try:
            object.__setattr__(self, "principal", float(self.principal))
            object.__setattr__(self, "rate_value_percent", float(self.rate_value_percent))
            object.__setattr__(self, "currency", _as_enum(Currency, self.currency))
            object.__setattr__(self, "rate_basis", _as_enum(RateBasis, self.rate_basis))
            object.__setattr__(self, "grace_kind", _as_enum(GraceKind, self.grace_kind))
            if self.capitalization is not None:
                object.__setattr__(self, "capitalization", _as_enum(Capitalization, self.capitalization))
        except (TypeError, ValueError) as exc:
            raise InvalidParameter(str(exc), stage="validation") from exc

    @property
    def effective_grace_periods(self) -> int:
        if self.grace_kind == GraceKind.NONE:
            return 0
        return self.grace_periods

    def validation_errors(self) -> List[str]:
        errors: List[str] = []
        if not self.principal > 0:
            errors.append(f"principal must be positive, got {self.principal}")
        if self.term_periods <= 0:
            errors.append(f"term_periods must be positive, got {self.term_periods}")
        if not self.rate_value_percent > 0:
            errors.append(f"rate_value_percent must be positive, got {self.rate_value_percent}")
        if self.rate_basis == RateBasis.NOMINAL and self.capitalization is None:
            errors.append("capitalization is required for a nominal rate")
        if self.grace_periods < 0:
            errors.append(f"grace_periods must be >= 0, got {self.grace_periods}")
        if self.grace_kind != GraceKind.NONE and self.grace_periods >= self.term_periods:
            errors.append(
                f"grace_periods ({self.grace_periods}) must be less than term_periods ({self.term_periods})"
            )
        return errors

    def validate(self) -> None:
        errors = self.validation_errors()
        if errors:
            raise InvalidParameter("; ".join(errors), stage="validation")

    @classmethod
    def from_mapping(cls, raw: Mapping) -> "BondParameters":
        """
        Build parameters from loosely typed input (strings from a form or a
        JSON body). Enum fields accept any letter case.
        """
        try:
            capitalization = raw.get("capitalization")
            return cls(
                principal=float(raw["principal"]),
                currency=Currency(str(raw["currency"]).upper()),
                term_periods=int(raw["term_periods"]),
                rate_basis=RateBasis(str(raw["rate_basis"]).upper()),
                rate_value_percent=float(raw["rate_value_percent"]),
                start_date=pd.Timestamp(raw["start_date"]).date(),
                capitalization=Capitalization(str(capitalization).upper()) if capitalization else None,
                grace_kind=GraceKind(str(raw.get("grace_kind", "NONE")).upper()),
                grace_periods=int(raw.get("grace_periods", 0)),
                include_insurance=_as_bool(raw.get("include_insurance", False)),
                include_service_fee=_as_bool(raw.get("include_service_fee", False)),
            )
        except InvalidParameter:
            raise
        except KeyError as exc:
            raise InvalidParameter(f"missing field: {exc.args[0]}", stage="validation") from exc
        except (TypeError, ValueError) as exc:
            raise InvalidParameter(str(exc), stage="validation") from exc


def _as_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    return enum_cls(str(value).upper())


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


@dataclass(frozen=True)
class PaymentPeriod:
    index: int
    due_date: dt.date
    principal_component: float
    interest_component: float
    insurance_component: float
    service_fee_component: float
    transaction_tax_component: float
    total_due: float
    remaining_balance: float
    capitalized_interest: float = 0.0


@dataclass(frozen=True)
class FinancialIndicators:
    effective_cost_rate_annual: float    # TCEA
    effective_yield_rate_annual: float   # TREA
    macaulay_duration_years: float
    modified_duration_years: float
    convexity: float
    installment: float
    monthly_rate: float
    converged: bool = True


@dataclass(frozen=True)
class RuleEvaluation:
    name: str
    is_compliant: bool
    observed_value: float
    limit_value: float
    explanation: str
    regulation: str = ""


@dataclass(frozen=True)
class ComplianceReport:
    evaluations: Tuple[RuleEvaluation, ...]
    overall_status: ComplianceStatus
    compliance_ratio: float

    @property
    def failed(self) -> Tuple[RuleEvaluation, ...]:
        return tuple(e for e in self.evaluations if not e.is_compliant)


@dataclass(frozen=True)
class EngineResult:
    schedule: Tuple[PaymentPeriod, ...]
    indicators: FinancialIndicators
