import datetime as dt
from decimal import Decimal

import pytest

from amortization_engine.bonds import BondParameters, Capitalization, Currency, GraceKind, RateBasis
from amortization_engine.errors import InvalidParameter


@pytest.fixture(scope="module")
def raw():
    return {
        "principal": "15000",
        "currency": "usd",
        "term_periods": "36",
        "rate_basis": "nominal",
        "rate_value_percent": "9.5",
        "capitalization": "quarterly",
        "grace_kind": "partial",
        "grace_periods": "3",
        "start_date": "2026-02-13",
        "include_insurance": "true",
        "include_service_fee": "no",
    }


def test_from_mapping_coerces_types(raw):
    p = BondParameters.from_mapping(raw)
    assert p.principal == 15_000.0
    assert p.currency == Currency.USD
    assert p.term_periods == 36
    assert p.rate_basis == RateBasis.NOMINAL
    assert p.capitalization == Capitalization.QUARTERLY
    assert p.grace_kind == GraceKind.PARTIAL
    assert p.start_date == dt.date(2026, 2, 13)
    assert p.include_insurance is True
    assert p.include_service_fee is False
    assert p.validation_errors() == []


def test_from_mapping_missing_field(raw):
    incomplete = {k: v for k, v in raw.items() if k != "principal"}
    with pytest.raises(InvalidParameter, match="principal"):
        BondParameters.from_mapping(incomplete)


def test_from_mapping_bad_enum(raw):
    with pytest.raises(InvalidParameter):
        BondParameters.from_mapping({**raw, "currency": "EUR"})


def test_capitalization_periods_per_year():
    assert Capitalization.MONTHLY.periods_per_year == 12
    assert Capitalization.BIMONTHLY.periods_per_year == 6
    assert Capitalization.SEMIANNUAL.periods_per_year == 2
    assert Capitalization.DAILY.periods_per_year == 360


def test_validation_collects_every_violation():
    p = BondParameters(
        principal=0.0,
        currency=Currency.PEN,
        term_periods=12,
        rate_basis=RateBasis.NOMINAL,
        rate_value_percent=-1.0,
        start_date=dt.date(2026, 1, 1),
        grace_kind=GraceKind.TOTAL,
        grace_periods=12,
    )
    errors = p.validation_errors()
    assert len(errors) == 4, errors
    with pytest.raises(InvalidParameter) as info:
        p.validate()
    assert info.value.stage == "validation"


def test_effective_grace_periods():
    base = dict(
        principal=1.0,
        currency=Currency.PEN,
        term_periods=12,
        rate_basis=RateBasis.EFFECTIVE,
        rate_value_percent=10.0,
        start_date=dt.date(2026, 1, 1),
        grace_periods=3,
    )
    assert BondParameters(**base).effective_grace_periods == 0
    assert BondParameters(**base, grace_kind=GraceKind.TOTAL).effective_grace_periods == 3


def test_parameters_are_immutable():
    p = BondParameters(
        principal=1.0,
        currency=Currency.PEN,
        term_periods=12,
        rate_basis=RateBasis.EFFECTIVE,
        rate_value_percent=10.0,
        start_date=dt.date(2026, 1, 1),
    )
    with pytest.raises(AttributeError):
        p.principal = 2.0


def test_constructor_normalises_loose_values():
    p = BondParameters(
        principal=Decimal("2500.50"),
        currency="usd",
        term_periods=12,
        rate_basis="Nominal",
        rate_value_percent=Decimal("9.5"),
        start_date=dt.date(2026, 1, 1),
        capitalization="monthly",
        grace_kind="partial",
        grace_periods=2,
    )
    assert p.principal == 2500.5 and isinstance(p.principal, float)
    assert p.rate_value_percent == 9.5
    assert p.currency is Currency.USD
    assert p.rate_basis is RateBasis.NOMINAL
    assert p.capitalization.periods_per_year == 12
    assert p.grace_kind is GraceKind.PARTIAL
