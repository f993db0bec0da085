from decimal import Decimal
import importlib
import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from storefront.cart.repository import add_item_to_cart, get_cart_items, get_or_create_cart
from storefront.common.errors import EmptyCartError, NotFoundError, PersistenceError, ValidationError
from storefront.common.utils import now
from storefront.orders.repository import (
    create_order, get_all_orders, get_order_by_id, get_order_items, get_user_orders,
    update_order_status, update_payment_status,
)
from storefront.orders.utils import compute_checkout_summary
from storefront.schema.full_schema import CartItem, OrderItem, Orders, Product

ORDERS_MODULE = "storefront.orders.repository"

SHIPPING = {
    "first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com", "phone": "5550100100",
    "address": "12 Analytical Row", "city": "London", "state": "LDN", "zip_code": "10001",
}


async def count_rows(session, model):
    res = await session.execute(select(func.count()).select_from(model))
    return res.scalar_one()


async def fill_cart(session, catalog, owner_id="owner-a"):
    cart = await get_or_create_cart(session, owner_id)
    await add_item_to_cart(session, cart.id, product_id=catalog.cashews.id, quantity=2)
    await add_item_to_cart(session, cart.id, product_id=catalog.walnuts.id, quantity=1)
    return cart


@pytest.mark.asyncio
async def test_create_order_snapshots_cart(db_session, session_factory, catalog):
    cart = await fill_cart(db_session, catalog)

    result = await create_order(db_session, "owner-a", SHIPPING, SHIPPING, "credit")

    assert result.ok
    order = result.value
    assert order.total_amount == Decimal("130")
    assert order.status.value == "pending"
    assert order.payment_status.value == "pending"
    assert len(order.items) == 2
    assert {(it.product_id, it.price, it.quantity) for it in order.items} == {
        (catalog.cashews.id, Decimal("50"), 2),
        (catalog.walnuts.id, Decimal("30"), 1),
    }

    async with session_factory() as fresh:
        view = await get_cart_items(fresh, "owner-a")
        assert view.items == []
        assert view.cart_id == cart.id


@pytest.mark.asyncio
async def test_gift_box_order_item_keeps_its_discriminator(db_session, catalog):
    cart = await get_or_create_cart(db_session, "owner-a")
    await add_item_to_cart(db_session, cart.id, gift_box_id=catalog.festive.id, quantity=2)
    await add_item_to_cart(db_session, cart.id, product_id=catalog.almonds.id, pack_size="500g")

    result = await create_order(db_session, "owner-a", SHIPPING)

    boxes = [it for it in result.value.items if it.gift_box_id is not None]
    assert len(boxes) == 1
    assert boxes[0].product_id is None
    assert boxes[0].product_name == "Festive Box"
    assert result.value.total_amount == Decimal("210")


@pytest.mark.asyncio
async def test_empty_cart_creates_no_order(db_session, catalog):
    await get_or_create_cart(db_session, "owner-a")

    result = await create_order(db_session, "owner-a", SHIPPING)

    assert result.value is None
    assert isinstance(result.error, EmptyCartError)
    assert await count_rows(db_session, Orders) == 0


@pytest.mark.asyncio
async def test_owner_without_cart_is_an_empty_cart(db_session):
    result = await create_order(db_session, "nobody", SHIPPING)

    assert result.error_code == "EMPTY_CART"


@pytest.mark.asyncio
async def test_unresolvable_line_blocks_checkout(db_session, catalog):
    await fill_cart(db_session, catalog)
    await db_session.execute(update(Product).where(Product.id == catalog.walnuts.id).values(deleted_at=now()))
    await db_session.commit()

    result = await create_order(db_session, "owner-a", SHIPPING)

    assert isinstance(result.error, NotFoundError)
    assert len(result.error.details["item_ids"]) == 1
    assert await count_rows(db_session, Orders) == 0
    assert await count_rows(db_session, CartItem) == 2


@pytest.mark.asyncio
async def test_failed_item_insert_rolls_everything_back(monkeypatch, db_session, session_factory, catalog):
    orders_mod = importlib.import_module(ORDERS_MODULE)
    await fill_cart(db_session, catalog)

    async def failing_insert(session, order_id, cart_items):
        raise IntegrityError("INSERT INTO orderitem", {}, Exception("simulated failure"))

    monkeypatch.setattr(orders_mod, "insert_order_items", failing_insert)

    result = await create_order(db_session, "owner-a", SHIPPING)

    assert not result.ok
    assert isinstance(result.error, PersistenceError)
    async with session_factory() as fresh:
        assert await count_rows(fresh, Orders) == 0
        assert await count_rows(fresh, OrderItem) == 0
        view = await get_cart_items(fresh, "owner-a")
        assert sum(item.quantity for item in view.items) == 3


@pytest.mark.asyncio
async def test_placed_order_ignores_later_catalog_changes(db_session, catalog):
    await fill_cart(db_session, catalog)
    placed = (await create_order(db_session, "owner-a", SHIPPING)).value

    await db_session.execute(
        update(Product).where(Product.id == catalog.cashews.id).values(price=Decimal("99"), name="Renamed")
    )
    await db_session.commit()

    items = await get_order_items(db_session, placed.id, owner_id="owner-a")
    cashew = next(it for it in items if it.product_id == catalog.cashews.id)
    assert cashew.price == Decimal("50")
    assert cashew.product_name == "Premium Cashews"


@pytest.mark.asyncio
async def test_order_reads_are_scoped_to_owner(db_session, catalog):
    await fill_cart(db_session, catalog)
    placed = (await create_order(db_session, "owner-a", SHIPPING)).value

    mine = await get_order_by_id(db_session, placed.id, owner_id="owner-a")
    assert mine.public_id == placed.public_id
    assert len(mine.items) == 2

    with pytest.raises(NotFoundError):
        await get_order_by_id(db_session, placed.id, owner_id="owner-b")
    with pytest.raises(NotFoundError):
        await get_order_items(db_session, placed.id, owner_id="owner-b")


@pytest.mark.asyncio
async def test_user_orders_newest_first(db_session, catalog):
    first = None
    for _ in range(2):
        await fill_cart(db_session, catalog)
        placed = (await create_order(db_session, "owner-a", SHIPPING)).value
        first = first or placed

    orders = await get_user_orders(db_session, "owner-a")

    assert len(orders) == 2
    assert orders[-1].id == first.id
    assert await get_user_orders(db_session, "owner-b") == []


@pytest.mark.asyncio
async def test_status_transitions(db_session, catalog):
    await fill_cart(db_session, catalog)
    placed = (await create_order(db_session, "owner-a", SHIPPING)).value

    shipped = await update_order_status(db_session, placed.id, "shipped")
    paid = await update_payment_status(db_session, placed.id, "paid")

    assert shipped.value.status.value == "shipped"
    assert paid.value.payment_status.value == "paid"

    pending = await get_all_orders(db_session, status="pending")
    assert pending == []
    assert [o.id for o in await get_all_orders(db_session, status="shipped")] == [placed.id]


@pytest.mark.asyncio
async def test_status_transition_errors(db_session, catalog):
    await fill_cart(db_session, catalog)
    placed = (await create_order(db_session, "owner-a", SHIPPING)).value

    bogus = await update_order_status(db_session, placed.id, "teleported")
    missing = await update_payment_status(db_session, 424242, "paid")

    assert isinstance(bogus.error, ValidationError)
    assert isinstance(missing.error, NotFoundError)


@pytest.mark.asyncio
async def test_checkout_summary_is_display_only(db_session, catalog):
    await fill_cart(db_session, catalog)
    view = await get_cart_items(db_session, "owner-a")

    summary = compute_checkout_summary(view)["summary"]

    assert summary["subtotal"] == Decimal("130.00")
    assert summary["shipping"] == Decimal("5.99")
    assert summary["tax"] == Decimal("10.40")
    assert summary["total"] == Decimal("146.39")

    placed = (await create_order(db_session, "owner-a", SHIPPING)).value
    assert placed.total_amount == Decimal("130")
