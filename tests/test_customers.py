"""Customer provisioning and cleanup handlers."""

import pytest

from chargefn.common.events import UserCreatedEvent, UserDeletedEvent
from chargefn.common.gateway import GatewayError
from chargefn.common.store import DatabaseError


@pytest.mark.asyncio
async def test_create_customer_stores_directory_entry(service, fake_db, gateway):
    gateway.create_customer.return_value = "cus_123"

    customer_id = await service.create_customer(UserCreatedEvent(uid="u1", email="a@example.com"))

    assert customer_id == "cus_123"
    gateway.create_customer.assert_awaited_once_with("a@example.com")
    assert fake_db.get("stripe_customers/u1") == "cus_123"


@pytest.mark.asyncio
async def test_create_customer_failure_propagates(service, fake_db, gateway):
    gateway.create_customer.side_effect = GatewayError("Invalid email address", error_type="invalid_request_error")

    with pytest.raises(GatewayError):
        await service.create_customer(UserCreatedEvent(uid="u1", email="nope@"))

    assert fake_db.writes == []


@pytest.mark.asyncio
async def test_cleanup_deletes_customer_then_entry(service, fake_db, gateway):
    fake_db.put("stripe_customers/u1", "cus_123")

    async def _delete(customer_id):
        assert fake_db.get("stripe_customers/u1") == "cus_123"

    gateway.delete_customer.side_effect = _delete

    await service.cleanup_user(UserDeletedEvent(uid="u1"))

    gateway.delete_customer.assert_awaited_once_with("cus_123")
    assert fake_db.get("stripe_customers/u1") is None


@pytest.mark.asyncio
async def test_cleanup_without_entry_is_noop(service, fake_db, gateway):
    """A re-delivered delete finds no entry and does not touch the gateway."""

    await service.cleanup_user(UserDeletedEvent(uid="u1"))

    gateway.delete_customer.assert_not_awaited()
    assert fake_db.writes == []


@pytest.mark.asyncio
async def test_cleanup_tolerates_customer_missing_at_gateway(service, fake_db, gateway):
    fake_db.put("stripe_customers/u1", "cus_123")
    gateway.delete_customer.side_effect = GatewayError(
        "No such customer: 'cus_123'",
        error_type="invalid_request_error",
        code="resource_missing",
    )

    await service.cleanup_user(UserDeletedEvent(uid="u1"))

    assert fake_db.get("stripe_customers/u1") is None


@pytest.mark.asyncio
async def test_cleanup_gateway_failure_leaves_entry(service, fake_db, gateway):
    fake_db.put("stripe_customers/u1", "cus_123")
    gateway.delete_customer.side_effect = GatewayError("An error occurred with our connection to Stripe.")

    with pytest.raises(GatewayError):
        await service.cleanup_user(UserDeletedEvent(uid="u1"))

    assert fake_db.get("stripe_customers/u1") == "cus_123"


@pytest.mark.asyncio
async def test_cleanup_lookup_failure_propagates(service, fake_db, gateway):
    fake_db.fail_on.add(("GET", "stripe_customers/u1"))

    with pytest.raises(DatabaseError):
        await service.cleanup_user(UserDeletedEvent(uid="u1"))

    gateway.delete_customer.assert_not_awaited()
