from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from purchasing.application.reconcile_order import (
    LinePayload, OrderPayload, ReconcileOrderUseCase, parse_ref
)
from purchasing.domain.exceptions import (
    EmptyOrderError, ForbiddenError, NotFoundError, OrderNotFoundError, ValidationError
)
from purchasing.domain.factories import utcnow
from purchasing.domain.models import OrderStatus


def payload(*lines, **kwargs) -> OrderPayload:
    return OrderPayload(lines=[LinePayload(product=p, quantity=q) for p, q in lines], **kwargs)


async def create(uow, caller, *lines, **kwargs):
    return await ReconcileOrderUseCase(uow)(None, payload(*lines, **kwargs), caller)


def assert_totals_consistent(order):
    for line in order.lines:
        assert line.total_price == line.unit_price * line.quantity
    assert order.total_amount == sum((line.total_price for line in order.lines), Decimal("0"))


@pytest.mark.parametrize("ref, expected", [
    (3, 3),
    ("3", 3),
    ("/api/products/3", 3),
    ("/api/products/3/", 3),
    (None, None),
    ("", None),
    ("/api/products/abc", None),
    (0, None),
    (True, None),
])
def test_parse_ref(ref, expected):
    assert parse_ref(ref) == expected


async def test_create_order_prices_lines_and_total(uow, alice):
    result = await create(uow, alice, (10, 2), (11, 1))
    order = result.order

    assert order.id is not None
    assert order.status == OrderStatus.PENDING
    assert order.customer_id == alice.id
    assert [line.total_price for line in order.lines] == [Decimal("20.00"), Decimal("5.50")]
    assert order.total_amount == Decimal("25.50")
    assert result.warnings == []
    assert_totals_consistent(order)


async def test_create_order_stamps_number_and_dates(uow, alice):
    order = (await create(uow, alice, (10, 1))).order

    assert order.order_number.startswith("ORD-")
    _, random_part, timestamp = order.order_number.split("-")
    assert len(random_part) == 4 and random_part.isdigit()
    assert timestamp.isdigit()
    assert order.created_at is not None
    assert order.updated_at is None


async def test_quantity_defaults_to_one(uow, alice):
    result = await ReconcileOrderUseCase(uow)(
        None, OrderPayload(lines=[LinePayload(product=11)]), alice
    )

    assert result.order.lines[0].quantity == 1
    assert result.order.total_amount == Decimal("5.50")


def test_quantity_must_be_positive():
    with pytest.raises(PydanticValidationError):
        LinePayload(product=10, quantity=0)


async def test_product_iri_is_resolved(uow, alice):
    result = await create(uow, alice, ("/api/products/10", 3))

    assert result.order.lines[0].product_id == 10
    assert result.order.total_amount == Decimal("30.00")


async def test_unresolvable_lines_are_skipped_with_warnings(uow, alice):
    result = await create(uow, alice, (10, 1), (999, 5), (None, 2))

    assert len(result.order.lines) == 1
    assert result.order.total_amount == Decimal("10.00")
    assert len(result.warnings) == 2
    assert "999" in result.warnings[0]


async def test_deleted_product_is_not_resolvable(uow, store, alice):
    store.products[11].deleted_at = utcnow()
    result = await create(uow, alice, (10, 1), (11, 1))

    assert [line.product_id for line in result.order.lines] == [10]


async def test_order_without_resolvable_lines_is_rejected(uow, store, alice):
    with pytest.raises(EmptyOrderError):
        await create(uow, alice, (999, 1))

    assert store.orders == {}
    assert store.lines == {}


async def test_order_without_lines_is_rejected(uow, alice):
    with pytest.raises(ValidationError):
        await ReconcileOrderUseCase(uow)(None, OrderPayload(), alice)


async def test_admin_can_explicitly_allow_empty_order(uow, admin):
    result = await ReconcileOrderUseCase(uow)(None, OrderPayload(allow_empty=True), admin)

    assert result.order.lines == []
    assert result.order.total_amount == Decimal("0.00")


async def test_allow_empty_is_ignored_for_regular_users(uow, alice):
    with pytest.raises(EmptyOrderError):
        await ReconcileOrderUseCase(uow)(None, OrderPayload(allow_empty=True), alice)


async def test_update_replaces_lines_and_deletes_old_ones(uow, store, alice):
    created = (await create(uow, alice, (10, 2), (11, 1))).order
    old_line_ids = {line.id for line in created.lines}

    updated = (await ReconcileOrderUseCase(uow)(created.id, payload((12, 3)), alice)).order

    assert updated.id == created.id
    assert updated.order_number == created.order_number
    assert len(updated.lines) == 1
    assert updated.total_amount == Decimal("0.30")
    assert updated.updated_at is not None
    assert not old_line_ids & set(store.lines)
    assert len(store.lines) == 1
    assert_totals_consistent(updated)


async def test_replacing_with_same_lines_twice_is_idempotent(uow, store, alice):
    created = (await create(uow, alice, (10, 2), (11, 1))).order
    use_case = ReconcileOrderUseCase(uow)

    first = (await use_case(created.id, payload((10, 2), (11, 1)), alice)).order
    second = (await use_case(created.id, payload((10, 2), (11, 1)), alice)).order

    assert first.total_amount == second.total_amount == Decimal("25.50")
    assert len(first.lines) == len(second.lines) == 2
    assert len(store.lines) == 2


async def test_update_without_lines_keeps_existing_lines(uow, alice):
    created = (await create(uow, alice, (10, 2))).order

    updated = (await ReconcileOrderUseCase(uow)(created.id, OrderPayload(notes="позвонить"), alice)).order

    assert updated.notes == "позвонить"
    assert [line.id for line in updated.lines] == [line.id for line in created.lines]
    assert updated.total_amount == Decimal("20.00")


async def test_update_with_only_unresolvable_lines_is_rejected_and_rolled_back(uow, store, alice):
    created = (await create(uow, alice, (10, 2))).order

    with pytest.raises(EmptyOrderError):
        await ReconcileOrderUseCase(uow)(created.id, payload((999, 1)), alice)

    kept = await ReconcileOrderUseCase(uow)(created.id, OrderPayload(), alice)
    assert [line.id for line in kept.order.lines] == [line.id for line in created.lines]


async def test_failure_while_writing_lines_keeps_previous_state(uow, store, alice):
    created = (await create(uow, alice, (10, 2), (11, 1))).order
    store.fail_on_add_line = True

    with pytest.raises(RuntimeError):
        await ReconcileOrderUseCase(uow)(created.id, payload((12, 1)), alice)

    store.fail_on_add_line = False
    order = store.orders[created.id]
    assert order.total_amount == Decimal("25.50")
    assert sorted(line.id for line in store.lines.values()) == sorted(line.id for line in created.lines)


async def test_price_snapshot_survives_catalog_price_change(uow, store, alice):
    created = (await create(uow, alice, (10, 2))).order
    store.products[10].price = Decimal("99.99")

    order = (await ReconcileOrderUseCase(uow)(created.id, OrderPayload(notes="x"), alice)).order

    assert order.lines[0].unit_price == Decimal("10.00")
    assert order.total_amount == Decimal("20.00")


async def test_update_of_missing_order_fails(uow, alice):
    with pytest.raises(OrderNotFoundError):
        await ReconcileOrderUseCase(uow)(12345, payload((10, 1)), alice)


async def test_other_customer_cannot_update_pending_order(uow, alice, bob):
    created = (await create(uow, alice, (10, 1))).order

    with pytest.raises(ForbiddenError):
        await ReconcileOrderUseCase(uow)(created.id, payload((11, 1)), bob)


async def test_owner_cannot_update_approved_order_but_admin_can(uow, alice, admin):
    created = (await create(uow, alice, (10, 1))).order
    use_case = ReconcileOrderUseCase(uow)
    await use_case(created.id, OrderPayload(status=OrderStatus.APPROVED), admin)

    with pytest.raises(ForbiddenError):
        await use_case(created.id, payload((11, 1)), alice)

    updated = (await use_case(created.id, payload((11, 1)), admin)).order
    assert updated.status == OrderStatus.APPROVED
    assert updated.total_amount == Decimal("5.50")


async def test_owner_sets_status_when_creating(uow, alice):
    result = await create(uow, alice, (10, 1), status=OrderStatus.APPROVED)

    assert result.order.status == OrderStatus.APPROVED
    assert result.order.customer_id == alice.id


async def test_owner_sets_status_on_own_pending_order(uow, alice):
    created = (await create(uow, alice, (10, 1))).order

    updated = (await ReconcileOrderUseCase(uow)(created.id, OrderPayload(status=OrderStatus.COMPLETED), alice)).order

    assert updated.status == OrderStatus.COMPLETED
    assert [line.product_id for line in updated.lines] == [10]


async def test_admin_creates_order_on_behalf_of_customer(uow, admin, bob):
    result = await create(uow, admin, (10, 1), customer=bob.id)

    assert result.order.customer_id == bob.id


async def test_customer_cannot_create_order_for_someone_else(uow, alice, bob):
    with pytest.raises(ForbiddenError):
        await create(uow, alice, (10, 1), customer=bob.id)


async def test_admin_order_for_unknown_customer_fails(uow, admin):
    with pytest.raises(NotFoundError):
        await create(uow, admin, (10, 1), customer="/api/users/777")


async def test_successful_reconcile_commits_once(uow, alice):
    await create(uow, alice, (10, 1))

    assert uow.commits == 1
