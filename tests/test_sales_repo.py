import sqlite3

import pytest

from dairy_ledger.database.repositories.prices_repo import PricesRepo
from dairy_ledger.database.repositories.products_repo import ProductNotFound, ProductsRepo
from dairy_ledger.database.repositories.sales_repo import DomainError, SaleLine, SalesRepo

DAY = "2026-01-02"


@pytest.fixture()
def repo(conn):
    return SalesRepo(conn)


@pytest.fixture()
def cust(make_customer):
    return make_customer("Ravi")


@pytest.fixture()
def milk(make_product):
    return make_product("Milk", "litre", 5.0)


@pytest.fixture()
def curd(make_product):
    return make_product("Curd", "kg", 3.0)


def _items(conn, sale_id):
    return [
        tuple(r)
        for r in conn.execute(
            "SELECT product_id, quantity, price_used FROM sale_items WHERE sale_id=? ORDER BY id",
            (sale_id,),
        ).fetchall()
    ]


def _total(conn, sale_id):
    return conn.execute("SELECT total FROM sales WHERE id=?", (sale_id,)).fetchone()[0]


def test_new_sale_total_and_items(conn, repo, cust, milk, curd, count_rows):
    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 2, 5.0), (curd, 1, 3.0)])

    assert _total(conn, sid) == pytest.approx(13.0)
    assert _items(conn, sid) == [(milk, 2.0, 5.0), (curd, 1.0, 3.0)]
    assert count_rows("sales") == 1


def test_replace_semantics_drops_old_lines(conn, repo, cust, milk, curd):
    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 2, 5.0)])
    sid2 = repo.upsert_daily_sale(cust, DAY, [(curd, 1, 3.0)])

    assert sid2 == sid
    assert _items(conn, sid) == [(curd, 1.0, 3.0)]
    assert _total(conn, sid) == pytest.approx(3.0)


def test_idempotent_repeat_call(conn, repo, cust, milk, curd, count_rows):
    items = [(milk, 2, 5.0), (curd, 1, 3.0)]
    sid = repo.upsert_daily_sale(cust, DAY, items)
    first = (repo.get_daily_sale(cust, DAY)["total"], _items(conn, sid))

    assert repo.upsert_daily_sale(cust, DAY, items) == sid
    second = (repo.get_daily_sale(cust, DAY)["total"], _items(conn, sid))

    assert first == second
    assert count_rows("sales") == 1
    assert count_rows("sale_items") == 2


def test_at_most_one_sale_per_customer_and_day(repo, cust, milk, make_customer, count_rows):
    other = make_customer("Meena")
    for qty in (1, 2, 3):
        repo.upsert_daily_sale(cust, DAY, [(milk, qty, 5.0)])
    repo.upsert_daily_sale(cust, "2026-01-03", [(milk, 1, 5.0)])
    repo.upsert_daily_sale(other, DAY, [(milk, 1, 5.0)])

    assert count_rows("sales", "customer_id=? AND date=?", cust, DAY) == 1
    assert count_rows("sales") == 3


def test_empty_items_zeroes_existing_sale(conn, repo, cust, milk, count_rows):
    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 4, 5.0)])
    repo.upsert_daily_sale(cust, DAY, [])

    sale = repo.get_daily_sale(cust, DAY)
    assert sale["id"] == sid
    assert sale["total"] == 0
    assert sale["items"] == []
    assert count_rows("sale_items") == 0


def test_empty_items_without_sale_creates_zero_sale(repo, cust):
    assert repo.get_daily_sale(cust, DAY) is None
    sid = repo.upsert_daily_sale(cust, DAY, [])
    sale = repo.get_daily_sale(cust, DAY)
    assert sale["id"] == sid
    assert sale["total"] == 0
    assert sale["items"] == []


def test_new_sale_items_bind_to_natural_key_not_last_row(conn, repo, cust, milk, make_customer):
    other = make_customer("Meena")
    # A later sale id exists for someone else before our insert.
    repo.upsert_daily_sale(other, "2026-01-05", [(milk, 9, 5.0)])
    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 1, 5.0)])

    assert conn.execute("SELECT customer_id FROM sales WHERE id=?", (sid,)).fetchone()[0] == cust
    assert _items(conn, sid) == [(milk, 1.0, 5.0)]


def test_failed_batch_keeps_previous_state(conn, repo, cust, milk):
    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 2, 5.0)])

    with pytest.raises(sqlite3.IntegrityError):
        # product 9999 violates the sale_items foreign key mid-batch
        repo.upsert_daily_sale(cust, DAY, [(milk, 7, 5.0), (9999, 1, 1.0)])

    assert not conn.in_transaction
    assert _items(conn, sid) == [(milk, 2.0, 5.0)]
    assert _total(conn, sid) == pytest.approx(10.0)


def test_failed_first_batch_leaves_no_sale(repo, cust, count_rows):
    with pytest.raises(sqlite3.IntegrityError):
        repo.upsert_daily_sale(cust, DAY, [(9999, 1, 1.0)])
    assert count_rows("sales") == 0


def test_accepts_saleline_and_mapping_items(conn, repo, cust, milk, curd):
    sid = repo.upsert_daily_sale(
        cust,
        DAY,
        [SaleLine(milk, 1.5, 5.0), {"product_id": curd, "quantity": 2, "price": 3.0}],
    )
    assert _total(conn, sid) == pytest.approx(13.5)


def test_zero_quantity_lines_are_persisted_as_given(conn, repo, cust, milk, curd):
    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 0, 5.0), (curd, 1, 3.0)])
    assert len(_items(conn, sid)) == 2
    assert _total(conn, sid) == pytest.approx(3.0)


def test_rejects_non_iso_date(repo, cust, milk):
    with pytest.raises(DomainError):
        repo.upsert_daily_sale(cust, "2/1/2026", [(milk, 1, 5.0)])
    with pytest.raises(DomainError):
        repo.upsert_daily_sale(cust, "2026-1-2", [(milk, 1, 5.0)])


def test_price_used_is_historical(conn, repo, cust, milk):
    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 2, 5.0)])
    ProductsRepo(conn).update(milk, "Milk", "litre", 8.0)

    assert _items(conn, sid) == [(milk, 2.0, 5.0)]
    assert _total(conn, sid) == pytest.approx(10.0)


def test_build_lines_prices_and_drops_zero(conn, repo, cust, milk, curd):
    PricesRepo(conn).set_custom_price(cust, curd, 2.5)
    lines = repo.build_lines(cust, {milk: 2, curd: 4, 99: 0})

    assert lines == [SaleLine(milk, 2.0, 5.0), SaleLine(curd, 4.0, 2.5)]


def test_build_lines_unknown_product(repo, cust):
    with pytest.raises(ProductNotFound):
        repo.build_lines(cust, {4242: 1})


def test_entry_sheet_prefers_recorded_price(conn, repo, cust, milk, curd):
    repo.upsert_daily_sale(cust, DAY, [(milk, 3, 4.0)])
    PricesRepo(conn).set_custom_price(cust, curd, 2.0)

    sheet = {row["product_id"]: row for row in repo.entry_sheet(cust, DAY)}

    assert sheet[milk]["quantity"] == 3.0
    assert sheet[milk]["price"] == 4.0          # captured price, not base 5.0
    assert sheet[curd]["quantity"] == 0.0
    assert sheet[curd]["price"] == 2.0
    assert sheet[curd]["is_special"] is True


def test_list_sales_on_and_delete(repo, cust, milk, make_customer):
    other = make_customer("Anil")
    repo.upsert_daily_sale(cust, DAY, [(milk, 1, 5.0)])
    repo.upsert_daily_sale(other, DAY, [(milk, 2, 5.0)])

    rows = repo.list_sales_on(DAY)
    assert [r["customer_name"] for r in rows] == ["Anil", "Ravi"]

    assert repo.delete_daily_sale(cust, DAY) is True
    assert repo.get_daily_sale(cust, DAY) is None
    assert repo.delete_daily_sale(cust, DAY) is False


def test_resaving_sheet_keeps_lines_of_archived_product(conn, repo, cust, milk, curd):
    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 2, 5.0), (curd, 1, 3.0)])
    ProductsRepo(conn).deactivate(curd)

    sheet = repo.entry_sheet(cust, DAY)
    assert [(r["product_id"], r["archived"]) for r in sheet] == [(milk, False), (curd, True)]

    quantities = {r["product_id"]: r["quantity"] for r in sheet}
    prices = {r["product_id"]: r["price"] for r in sheet}
    repo.upsert_daily_sale(cust, DAY, repo.build_lines(cust, quantities, prices))

    assert _items(conn, sid) == [(milk, 2.0, 5.0), (curd, 1.0, 3.0)]
    assert _total(conn, sid) == pytest.approx(13.0)


def test_build_lines_keeps_sheet_prices_after_base_price_change(conn, repo, cust, milk, curd):
    repo.upsert_daily_sale(cust, DAY, [(milk, 2, 5.0)])
    ProductsRepo(conn).update(milk, "Milk", "litre", 8.0)
    prices = {r["product_id"]: r["price"] for r in repo.entry_sheet(cust, DAY)}

    assert repo.build_lines(cust, {milk: 2}, prices) == [SaleLine(milk, 2.0, 5.0)]
    # without pinned prices the current rate applies
    assert repo.build_lines(cust, {milk: 2}) == [SaleLine(milk, 2.0, 8.0)]
    # products missing from the mapping are still resolved
    assert repo.build_lines(cust, {curd: 1}, {milk: 5.0}) == [SaleLine(curd, 1.0, 3.0)]


def test_failure_inside_open_transaction_rolls_back_only_the_batch(conn, repo, cust, milk, count_rows):
    conn.execute("BEGIN")
    conn.execute("INSERT INTO customers(name) VALUES ('Outer')")

    with pytest.raises(sqlite3.IntegrityError):
        repo.upsert_daily_sale(cust, DAY, [(milk, 1, 5.0), (9999, 1, 1.0)])

    # savepoint undone, caller's transaction still open with its own work
    assert conn.in_transaction
    assert count_rows("sales") == 0
    assert count_rows("customers", "name=?", "Outer") == 1

    sid = repo.upsert_daily_sale(cust, DAY, [(milk, 2, 5.0)])
    assert conn.in_transaction
    conn.commit()

    assert count_rows("customers", "name=?", "Outer") == 1
    assert _items(conn, sid) == [(milk, 2.0, 5.0)]
