# tests/test_order_service.py
import uuid
from decimal import Decimal

import pytest

from app.core.errors import AppError, ErrorCode
from app.models.product import Product
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import OrderCreate, OrderItemInput, OrderStatusUpdate
from app.services.order_service import OrderService


@pytest.fixture
def service(session_factory):
    return OrderService(OrderRepository(), ProductRepository(), session_factory)


def _order(*lines: tuple[Product, int], **fields) -> OrderCreate:
    return OrderCreate(
        items=[OrderItemInput(product_id=p.id, quantity=q) for p, q in lines],
        **fields,
    )


def _stock(session_factory, product_id) -> int:
    with session_factory() as session:
        return session.get(Product, product_id).stock


def test_create_order_totals_and_deducts_stock(service, session_factory, make_user, make_product):
    user = make_user()
    phone = make_product(name="Phone", price="199.99", stock=5)
    case = make_product(name="Case", price="5.50", stock=10)

    order_id = service.create_order(
        user,
        _order((phone, 2), (case, 3), shipping_address=" 1 Main St "),
    )

    order = service.get_order_by_id(uuid.UUID(order_id), user)
    assert order.status == "pending"
    assert order.total_amount == Decimal("416.48")
    assert order.shipping_address == "1 Main St"
    assert {(i.product_id, i.quantity) for i in order.items} == {(phone.id, 2), (case.id, 3)}
    assert _stock(session_factory, phone.id) == 3
    assert _stock(session_factory, case.id) == 7


def test_empty_order_rejected(service, make_user):
    with pytest.raises(AppError) as exc:
        service.create_order(make_user(), OrderCreate(items=[]))
    assert exc.value.code == ErrorCode.INVALID_REQUEST


def test_inactive_product_cannot_be_ordered(service, make_user, make_product):
    hidden = make_product(is_active=False)
    with pytest.raises(AppError) as exc:
        service.create_order(make_user(), _order((hidden, 1)))
    assert exc.value.code == ErrorCode.PRODUCT_NOT_FOUND


def test_insufficient_stock_leaves_everything_untouched(service, session_factory, make_user, make_product):
    user = make_user()
    plenty = make_product(name="Plenty", stock=10)
    scarce = make_product(name="Scarce", stock=1)

    with pytest.raises(AppError) as exc:
        service.create_order(user, _order((plenty, 2), (scarce, 2)))

    assert exc.value.code == ErrorCode.INVALID_REQUEST
    assert _stock(session_factory, plenty.id) == 10
    assert service.get_user_orders(user) == []


def test_repeated_lines_share_product_stock(service, session_factory, make_user, make_product):
    user = make_user()
    mug = make_product(name="Mug", stock=6)

    with pytest.raises(AppError) as exc:
        service.create_order(user, _order((mug, 5), (mug, 5)))

    assert exc.value.code == ErrorCode.INVALID_REQUEST
    assert _stock(session_factory, mug.id) == 6
    assert service.get_user_orders(user) == []


def test_repeated_lines_within_stock_are_accepted(service, session_factory, make_user, make_product):
    mug = make_product(name="Mug", price="4.00", stock=6)

    order_id = uuid.UUID(service.create_order(make_user(), _order((mug, 2), (mug, 4))))

    assert _stock(session_factory, mug.id) == 0
    assert service.get_all_orders()[0].id == order_id
    assert service.get_all_orders()[0].total_amount == Decimal("24.00")


def test_other_users_cannot_view_order(service, make_user, make_product):
    owner = make_user(name="owner")
    stranger = make_user(name="stranger")
    admin = make_user(name="boss", role="admin")
    order_id = uuid.UUID(service.create_order(owner, _order((make_product(), 1))))

    with pytest.raises(AppError) as exc:
        service.get_order_by_id(order_id, stranger)
    assert exc.value.code == ErrorCode.UNAUTHORIZED

    assert service.get_order_by_id(order_id, admin).id == order_id


def test_unknown_order(service, make_user):
    with pytest.raises(AppError) as exc:
        service.get_order_by_id(uuid.uuid4(), make_user())
    assert exc.value.code == ErrorCode.ORDER_NOT_FOUND


def test_status_update(service, make_user, make_product):
    user = make_user()
    order_id = uuid.UUID(service.create_order(user, _order((make_product(), 1))))

    service.update_order_status(order_id, OrderStatusUpdate(status="shipped"))

    assert service.get_order_by_id(order_id, user).status == "shipped"


def test_invalid_status_rejected(service):
    with pytest.raises(AppError) as exc:
        service.update_order_status(uuid.uuid4(), OrderStatusUpdate(status="lost"))
    assert exc.value.code == ErrorCode.INVALID_STATUS


def test_delete_order_removes_items(service, make_user, make_product):
    user = make_user()
    order_id = uuid.UUID(service.create_order(user, _order((make_product(), 1))))

    service.delete_order(order_id)

    assert service.get_all_orders() == []
    with pytest.raises(AppError) as exc:
        service.get_order_items(order_id, user)
    assert exc.value.code == ErrorCode.ORDER_NOT_FOUND


def test_orders_without_database():
    service = OrderService(None, None, None)
    with pytest.raises(AppError) as exc:
        service.create_order(None, OrderCreate(items=[]))
    assert exc.value.code == ErrorCode.TRANSACTION_ERROR
