import pytest

from mandate_data_client.entitlements import (DEFAULT_PLANS, FEATURE_REQUIREMENTS, LIMIT_COLUMNS,
                                              build_limit_result, parse_feature, parse_limit_type,
                                              parse_plan_name, plan_allows)
from mandate_data_client.exceptions import ValidationError
from mandate_data_client.models import Feature, LimitType, PlanName


def test_tables_cover_every_enum_member():
    assert set(FEATURE_REQUIREMENTS) == set(Feature)
    assert set(LIMIT_COLUMNS) == set(LimitType)
    assert set(DEFAULT_PLANS) == set(PlanName)


@pytest.mark.parametrize("feature", list(Feature))
def test_free_plan_unlocks_nothing(feature):
    assert plan_allows(PlanName.FREE, feature) is False


@pytest.mark.parametrize("plan", [PlanName.PREMIUM, PlanName.SUPER_ADMIN, PlanName.ILLIMITE])
def test_paid_plans_unlock_payroll(plan):
    assert plan_allows(plan, Feature.PAYROLL) is True


def test_parse_rejects_typos():
    assert parse_feature("payroll") is Feature.PAYROLL
    assert parse_limit_type("mandates") is LimitType.MANDATES
    assert parse_plan_name("ILLIMITE") is PlanName.ILLIMITE
    with pytest.raises(ValidationError):
        parse_feature("payrol")
    with pytest.raises(ValidationError):
        parse_limit_type("seats")
    with pytest.raises(ValidationError):
        parse_plan_name("GOLD")


@pytest.mark.parametrize("current", [0, 1, 10_000])
def test_unlimited_is_always_allowed(current):
    result = build_limit_result(current, None)
    assert result.allowed is True
    assert result.unlimited is True
    assert result.limit is None
    assert result.percentage is None


def test_limit_result_reports_usage():
    result = build_limit_result(3, 4)
    assert result.allowed is True
    assert result.unlimited is False
    assert result.percentage == 75
    assert result.remaining == 1


def test_limit_result_over_limit():
    result = build_limit_result(6, 5)
    assert result.allowed is False
    assert result.remaining == 0
    assert result.percentage == 120


def test_zero_limit_is_not_unlimited():
    result = build_limit_result(0, 0)
    assert result.unlimited is False
    assert result.limit == 0
    assert result.remaining == 0
    assert result.percentage == 100
