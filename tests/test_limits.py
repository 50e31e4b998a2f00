import uuid

import pytest

from mandate_data_client import LimitExceededError, NotFoundError, ValidationError
from mandate_data_client.models import LimitType, MandateCreate, OrganizationCreate, PlanName, UserCreate

pytestmark = pytest.mark.asyncio


async def _add_users(data_client, organization_id, count, prefix="user"):
    users = []
    for i in range(count):
        user = await data_client.create_user(UserCreate(email=f"{prefix}{i}@example.com", name=f"{prefix} {i}"))
        await data_client.add_organization_member(organization_id, user.id)
        users.append(user)
    return users


async def test_free_plan_allows_a_single_user(data_client, organization):
    # ARRANGE
    check = await data_client.can_perform_action(organization.id, LimitType.USERS)
    assert check.allowed is True

    # ACT
    await _add_users(data_client, organization.id, 1)

    # ASSERT
    status = await data_client.check_organization_limits(organization.id, "users")
    assert status.current == 1
    assert status.limit == 1
    assert status.allowed is True
    assert status.percentage == 100
    assert status.remaining == 0

    check = await data_client.can_perform_action(organization.id, LimitType.USERS)
    assert check.allowed is False
    assert "User limit reached (1/1)" in check.reason


async def test_limit_round_trip(data_client, organization):
    # CUSTOM с лимитом в 3 пользователя
    await data_client.update_custom_limits(organization.id, max_users=3, max_storage=None)
    users = await _add_users(data_client, organization.id, 3)

    assert (await data_client.can_perform_action(organization.id, LimitType.USERS)).allowed is False
    with pytest.raises(LimitExceededError) as exc_info:
        await _add_users(data_client, organization.id, 1, prefix="extra")
    assert exc_info.value.current == 3
    assert exc_info.value.limit == 3

    assert await data_client.remove_organization_member(organization.id, users[0].id) is True
    assert (await data_client.can_perform_action(organization.id, LimitType.USERS)).allowed is True


async def test_zero_limit_forbids_creation(data_client, organization):
    await data_client.update_custom_limits(organization.id, max_users=0, max_storage=None)

    status = await data_client.check_organization_limits(organization.id, LimitType.USERS)
    assert status.unlimited is False
    assert status.limit == 0
    assert status.percentage == 100

    check = await data_client.can_perform_action(organization.id, LimitType.USERS)
    assert check.allowed is False
    assert check.limit == 0


@pytest.mark.parametrize("plan", [PlanName.SUPER_ADMIN, PlanName.ILLIMITE])
async def test_unlimited_plans(data_client, organization, plan):
    await data_client.change_plan(organization.id, plan)
    await _add_users(data_client, organization.id, 3)

    for dimension in (LimitType.USERS, LimitType.MANDATES, LimitType.STORAGE):
        status = await data_client.check_organization_limits(organization.id, dimension)
        assert status.unlimited is True
        assert status.limit is None
        assert status.allowed is True
        check = await data_client.can_perform_action(organization.id, dimension, increment=10_000)
        assert check.allowed is True


async def test_free_plan_allows_a_single_mandate(data_client, organization):
    await data_client.create_mandate(organization.id, MandateCreate(name="Hôtel"))

    with pytest.raises(LimitExceededError) as exc_info:
        await data_client.create_mandate(organization.id, MandateCreate(name="Restaurant"))
    assert exc_info.value.dimension == "mandates"

    # на PREMIUM мандаты не ограничены
    await data_client.change_plan(organization.id, PlanName.PREMIUM)
    await data_client.create_mandate(organization.id, MandateCreate(name="Restaurant"))
    status = await data_client.check_organization_limits(organization.id, LimitType.MANDATES)
    assert status.current == 2
    assert status.unlimited is True


async def test_storage_limit_is_converted_to_bytes(data_client, organization):
    unit = data_client.limits_config.storage_unit_bytes
    status = await data_client.check_organization_limits(organization.id, LimitType.STORAGE)
    assert status.limit == 100 * unit

    await data_client.record_storage_usage(organization.id, 60 * unit)
    assert (await data_client.can_perform_action(organization.id, LimitType.STORAGE, 40 * unit)).allowed is True
    assert (await data_client.can_perform_action(organization.id, LimitType.STORAGE, 41 * unit)).allowed is False

    with pytest.raises(LimitExceededError):
        await data_client.record_storage_usage(organization.id, 41 * unit)

    assert await data_client.release_storage_usage(organization.id, 100 * unit) == 0


@pytest.mark.parametrize("dimension", ["objects", "sectors", "articles", "tasks"])
async def test_uncounted_dimensions(data_client, organization, dimension):
    status = await data_client.check_organization_limits(organization.id, dimension)
    assert status.current == 0
    assert status.unlimited is True


async def test_limits_summary(data_client, organization, member):
    summary = await data_client.get_limits_summary(organization.id)
    assert summary.plan_name is PlanName.FREE
    assert summary.is_active is False
    assert set(summary.limits) == {LimitType.USERS, LimitType.MANDATES, LimitType.STORAGE}
    assert summary.limits[LimitType.USERS].current == 1


async def test_limit_errors(data_client, organization):
    with pytest.raises(NotFoundError):
        await data_client.check_organization_limits(uuid.uuid4(), LimitType.USERS)
    with pytest.raises(ValidationError):
        await data_client.check_organization_limits(organization.id, "seats")
    with pytest.raises(ValidationError):
        await data_client.can_perform_action(organization.id, LimitType.USERS, increment=-1)


async def test_limits_are_per_organization(data_client, organization, member):
    other = await data_client.create_organization(OrganizationCreate(name="Other"))
    check = await data_client.can_perform_action(other.id, LimitType.USERS)
    assert check.allowed is True
    assert check.current == 0
