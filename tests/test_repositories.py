# tests/test_repositories.py
from decimal import Decimal

from app.models.cart import CartItem
from app.models.order import Order, OrderItem
from app.models.review import Review
from app.repositories.cart_repo import CartRepository
from app.repositories.category_repo import CategoryRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.review_repo import ReviewRepository
from app.repositories.user_repo import UserRepository
from app.schemas.review import ReviewFilter


def test_categories_listed_by_name(session_factory, make_category):
    make_category(name="Toys")
    make_category(name="Books")

    with session_factory() as session:
        names = [c.name for c in CategoryRepository().list(session)]

    assert names == ["Books", "Toys"]


def test_product_filter_combines_criteria(session_factory, make_category, make_product):
    phones = make_category(name="Phones")
    make_product(name="Budget", price="99.00", category=phones)
    make_product(name="Flagship", price="999.00", category=phones)
    make_product(name="Retired", price="150.00", category=phones, is_active=False)
    make_product(name="Cable", price="9.00")

    repo = ProductRepository()
    with session_factory() as session:
        in_category = {p.name for p in repo.filter(session, category_id=phones.id)}
        active_mid = {
            p.name
            for p in repo.filter(
                session,
                category_id=phones.id,
                is_active=True,
                min_price=Decimal("50"),
                max_price=Decimal("500"),
            )
        }

    assert in_category == {"Budget", "Flagship", "Retired"}
    assert active_mid == {"Budget"}


def test_active_lookup_skips_inactive(session_factory, make_product):
    hidden = make_product(is_active=False)
    repo = ProductRepository()

    with session_factory() as session:
        assert repo.get_active_by_id(session, hidden.id) is None
        assert repo.get_by_id(session, hidden.id) is not None


def test_user_existence_checks(session_factory, make_user):
    make_user(name="alice", email="alice@example.com")
    repo = UserRepository()

    with session_factory() as session:
        assert repo.name_exists(session, "alice")
        assert not repo.name_exists(session, "bob")
        assert repo.email_exists(session, "alice@example.com")
        assert repo.get_by_email(session, "missing@example.com") is None


def test_order_lines_grouped_per_order(session_factory, make_user, make_product):
    user = make_user()
    pen = make_product(name="Pen")
    ink = make_product(name="Ink")
    repo = OrderRepository()

    with session_factory() as session:
        first = repo.create(session, Order(user_id=user.id, total_amount=Decimal("3.00")))
        second = repo.create(session, Order(user_id=user.id, total_amount=Decimal("1.00")))
        empty = repo.create(session, Order(user_id=user.id, total_amount=Decimal("0.00")))
        repo.add_items(
            session,
            [
                OrderItem(order_id=first.id, product_id=pen.id, quantity=1, price=Decimal("1.00")),
                OrderItem(order_id=first.id, product_id=ink.id, quantity=1, price=Decimal("2.00")),
                OrderItem(order_id=second.id, product_id=pen.id, quantity=1, price=Decimal("1.00")),
            ],
        )

        grouped = repo.items_by_order(session, [first.id, second.id, empty.id])
        assert len(grouped[first.id]) == 2
        assert [line.product_id for line in grouped[second.id]] == [pen.id]
        assert empty.id not in grouped
        assert repo.items_by_order(session, []) == {}

        repo.delete(session, first)
        assert repo.get_by_id(session, first.id) is None
        assert repo.list_items(session, first.id) == []


def test_cart_rows_are_scoped_to_user(session_factory, make_user, make_product):
    alice, bob = make_user(name="alice"), make_user(name="bob")
    pen = make_product(name="Pen")
    repo = CartRepository()

    with session_factory() as session:
        for user in (alice, bob):
            repo.save(
                session,
                CartItem(user_id=user.id, product_id=pen.id, quantity=1, price=Decimal("1.00"), name="Pen"),
            )

        assert repo.get_item(session, alice.id, pen.id).user_id == alice.id
        repo.clear(session, alice.id)
        assert repo.list_for_user(session, alice.id) == []
        assert len(repo.list_for_user(session, bob.id)) == 1


def test_review_writes_track_media(session_factory, make_user, make_product):
    user, stranger = make_user(), make_user(name="bob")
    phone = make_product()
    repo = ReviewRepository()

    with session_factory() as session:
        review = repo.create(
            session,
            Review(user_id=user.id, product_id=phone.id, rating=5, comment="Nice", media_urls=["a.png"]),
        )
        assert review.has_media

        review.media_urls = []
        repo.update(session, review)
        rows, total = repo.page(session, ReviewFilter(has_media=False), offset=0, limit=10, product_id=phone.id)
        assert total == 1
        assert rows[0].id == review.id

        _, total = repo.page(session, ReviewFilter(), offset=0, limit=10, user_id=stranger.id)
        assert total == 0
