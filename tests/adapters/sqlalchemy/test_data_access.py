from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from crudmerge.adapters.sqlalchemy import SqlAlchemyDataAccess
from crudmerge.domain.merge import UnknownFieldError
from crudmerge.domain.ports import IdGroup, MissingIdentityError, NotFoundError
from tests.helpers.models import Customer, Order

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _seed(session: Session) -> list[Customer]:
    customers = [
        Customer(
            name="Ada Lovelace",
            email="ada@example.org",
            city="London",
            orders=[Order(item="Engine", quantity=1)],
        ),
        Customer(name="Alan Turing", email="alan@example.org", city="Manchester"),
        Customer(name="Grace Hopper", email="grace@example.org", city="Arlington"),
        Customer(name="Adam Smith", city="London"),
    ]
    session.add_all(customers)
    session.flush()
    return customers


def _ids(customers: list[Customer]) -> list[int]:
    return [customer.id for customer in customers]


def _order_count(session: Session) -> int:
    return session.execute(select(func.count()).select_from(Order)).scalar_one()


@pytest.fixture
def customers(sqlite_session: Session) -> SqlAlchemyDataAccess[Customer]:
    _seed(sqlite_session)
    return SqlAlchemyDataAccess(sqlite_session, Customer)


def test_find_by_id(customers: SqlAlchemyDataAccess[Customer]) -> None:
    found = customers.find_by_id(1)

    assert found is not None
    assert found.name == "Ada Lovelace"
    assert customers.find_by_id(99, expected=False) is None
    with pytest.raises(NotFoundError, match="No Customer with identity 99"):
        customers.find_by_id(99)


def test_list_all_pages_by_primary_key(customers: SqlAlchemyDataAccess[Customer]) -> None:
    assert _ids(customers.list_all(0, 10)) == [1, 2, 3, 4]
    assert _ids(customers.list_all(1, 2)) == [2, 3]


def test_list_by_ids(customers: SqlAlchemyDataAccess[Customer]) -> None:
    assert _ids(customers.list_by_ids([3, 1])) == [1, 3]
    assert customers.list_by_ids([]) == []


def test_list_by_field_filters(customers: SqlAlchemyDataAccess[Customer]) -> None:
    assert _ids(customers.list_by_field_equals("city", "London", 0, 10)) == [1, 4]
    assert _ids(customers.list_by_field_like("name", "AD", 0, 10)) == [1, 4]
    assert customers.list_by_field_like("name", "%", 0, 10) == []
    assert _ids(customers.list_by_field_in("city", ["London", "Arlington"], 0, 10)) == [1, 3, 4]
    assert customers.list_by_field_in("city", [], 0, 10) == []


def test_unknown_columns_are_rejected(customers: SqlAlchemyDataAccess[Customer]) -> None:
    with pytest.raises(UnknownFieldError):
        customers.list_by_field_equals("missing", 1, 0, 10)
    with pytest.raises(UnknownFieldError):
        customers.list_by_field_like("orders", "x", 0, 10)


def test_list_by_content(customers: SqlAlchemyDataAccess[Customer]) -> None:
    example = Customer(city="London", name="Adam Smith")
    examples = [Customer(city="London"), Customer(city="Arlington")]

    assert _ids(customers.list_by_content_equals(example, 0, 10)) == [4]
    assert _ids(customers.list_by_content_in(examples, 0, 10)) == [1, 3, 4]


def test_autocomplete_returns_sorted_distinct_values(
    customers: SqlAlchemyDataAccess[Customer],
) -> None:
    assert customers.autocomplete("city", "on", 10) == ["Arlington", "London"]
    assert customers.autocomplete("city", "on", 1) == ["Arlington"]
    assert customers.autocomplete("city", "zzz", 10) == []


def test_autocomplete_ids_groups_identities(customers: SqlAlchemyDataAccess[Customer]) -> None:
    groups = customers.autocomplete_ids("city", "lon", 10)

    assert len(groups) == 1
    group = groups[0]
    assert isinstance(group, IdGroup)
    assert group.value == "London"
    assert sorted(group.ids) == [1, 4]
    assert group.count == 2


def test_autocomplete_limits_in_sql_without_loading_entities(
    customers: SqlAlchemyDataAccess[Customer], sqlite_session: Session
) -> None:
    sqlite_session.expunge_all()

    assert customers.autocomplete("name", "a", 2) == ["Ada Lovelace", "Adam Smith"]
    groups = customers.autocomplete_ids("city", "on", 1)

    assert [(group.value, group.ids) for group in groups] == [("Arlington", [3])]
    assert len(sqlite_session.identity_map) == 0


def test_persist_creates_a_fresh_entity(
    customers: SqlAlchemyDataAccess[Customer], sqlite_session: Session
) -> None:
    source = Customer(name="Barbara Liskov", orders=[Order(item="Book", quantity=2)])

    created = customers.persist(source)

    assert created is not source
    assert created.id == 5
    assert created.name == "Barbara Liskov"
    assert [order.item for order in created.orders] == ["Book"]
    assert _order_count(sqlite_session) == 2


def test_persist_keeps_given_identity(customers: SqlAlchemyDataAccess[Customer]) -> None:
    created = customers.persist(Customer(id=42, name="Fixed"))

    assert created.id == 42
    assert customers.find_by_id(42) is created


def test_update_by_id_merges_into_persisted_entity(
    customers: SqlAlchemyDataAccess[Customer], sqlite_session: Session
) -> None:
    persisted = customers.find_by_id(1)
    assert persisted is not None
    engine_order = persisted.orders[0]

    updated = customers.update_by_id(
        Customer(
            id=1,
            city="Paris",
            orders=[Order(id=engine_order.id, quantity=5), Order(item="Gear", quantity=3)],
        )
    )

    assert updated is persisted
    assert (updated.name, updated.city) == ("Ada Lovelace", "Paris")
    assert updated.orders[0] is engine_order
    assert (engine_order.item, engine_order.quantity) == ("Engine", 5)
    assert [order.item for order in updated.orders] == ["Engine", "Gear"]
    assert _order_count(sqlite_session) == 2


def test_update_by_id_removes_orphaned_children(
    customers: SqlAlchemyDataAccess[Customer], sqlite_session: Session
) -> None:
    updated = customers.update_by_id(Customer(id=1, orders=[Order(item="Other")]))

    assert [order.item for order in updated.orders] == ["Other"]
    assert _order_count(sqlite_session) == 1


def test_update_by_id_requires_identity_and_existing_entity(
    customers: SqlAlchemyDataAccess[Customer],
) -> None:
    with pytest.raises(MissingIdentityError):
        customers.update_by_id(Customer(name="Nobody"))
    with pytest.raises(NotFoundError):
        customers.update_by_id(Customer(id=99, name="Nobody"))


def test_update_by_ids(customers: SqlAlchemyDataAccess[Customer]) -> None:
    updated = customers.update_by_ids([Customer(id=2, city="Bletchley"), Customer(id=3)])

    assert [customer.city for customer in updated] == ["Bletchley", "Arlington"]


def test_remove_by_id_cascades_to_children(
    customers: SqlAlchemyDataAccess[Customer], sqlite_session: Session
) -> None:
    customers.remove_by_id(1)
    sqlite_session.flush()

    assert customers.find_by_id(1, expected=False) is None
    assert _order_count(sqlite_session) == 0


def test_remove_by_ids(customers: SqlAlchemyDataAccess[Customer], sqlite_session: Session) -> None:
    customers.remove_by_ids([2, 3])
    sqlite_session.flush()

    assert _ids(customers.list_all(0, 10)) == [1, 4]
    with pytest.raises(NotFoundError):
        customers.remove_by_id(2)
