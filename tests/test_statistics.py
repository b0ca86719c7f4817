from datetime import timedelta

from app.clock import today
from tests.test_expenses import add_expense, category


def test_dashboard_totals_are_exact(alice, bob):
    category_id = category(alice)
    other_id = category(alice, "transport")
    for amount in ("0.10", "0.20", "0.30"):
        add_expense(alice, category_id, amount=amount, days_ago=0)
    add_expense(alice, other_id, amount="10.00", days_ago=0)
    add_expense(bob, category(bob), amount="99.00")

    stats = alice.get("/expenses/statistics").json()["data"]

    assert stats["total_expenses"] == 4
    assert stats["total_amount"] == "10.60"
    assert stats["this_month_expenses"] == 4
    assert stats["this_month_amount"] == "10.60"
    assert stats["category_count"] == 2


def test_dashboard_empty(alice):
    stats = alice.get("/expenses/statistics").json()["data"]
    assert stats["total_expenses"] == 0
    assert stats["total_amount"] == "0.00"
    assert stats["average_daily_amount"] == "0.00"


def test_category_breakdown(alice):
    groceries = category(alice)
    transport = category(alice, "transport")
    add_expense(alice, groceries, amount="30.00")
    add_expense(alice, groceries, amount="45.00")
    add_expense(alice, transport, amount="25.00")

    rows = alice.get("/expenses/statistics/categories").json()["data"]

    assert [r["category_name"] for r in rows] == ["Groceries", "Transport"]
    assert rows[0]["total_amount"] == "75.00"
    assert rows[0]["expense_count"] == 2
    assert rows[0]["percentage"] == "75.0"
    assert rows[1]["percentage"] == "25.0"


def test_category_breakdown_unknown_category(alice):
    category_id = category(alice)
    add_expense(alice, category_id, amount="5.00")
    alice.delete(f"/categories/{category_id}")

    rows = alice.get("/expenses/statistics/categories").json()["data"]
    assert rows[0]["category_name"] == "unknown"
    assert rows[0]["category_id"] is None


def test_monthly_statistics(alice):
    category_id = category(alice)
    add_expense(alice, category_id, amount="1.25", days_ago=0)
    add_expense(alice, category_id, amount="2.50", days_ago=0)

    current = today()
    data = alice.get("/expenses/statistics/monthly", params={"year": current.year}).json()["data"]

    assert data["year"] == current.year
    month = next(m for m in data["months"] if m["month"] == f"{current.year}-{current.month:02d}")
    assert month["total_amount"] == "3.75"
    assert month["expense_count"] == 2


def test_monthly_statistics_defaults_to_current_year(alice):
    data = alice.get("/expenses/statistics/monthly").json()["data"]
    assert data == {"year": today().year, "months": []}


def test_monthly_statistics_rejects_bad_year(alice):
    assert alice.get("/expenses/statistics/monthly", params={"year": 1999}).status_code == 400
    assert alice.get("/expenses/statistics/monthly", params={"year": today().year + 1}).status_code == 400
    # zero is a supplied year, not a request for the default
    zero = alice.get("/expenses/statistics/monthly", params={"year": 0})
    assert zero.status_code == 400
    assert zero.json()["error"] == "Invalid year"


def test_statistics_date_range(alice):
    category_id = category(alice)
    add_expense(alice, category_id, amount="1.00", days_ago=40)
    add_expense(alice, category_id, amount="2.00", days_ago=1)

    stats = alice.get(
        "/expenses/statistics",
        params={"date_from": (today() - timedelta(days=7)).isoformat()},
    ).json()["data"]
    assert stats["total_expenses"] == 1
    assert stats["total_amount"] == "2.00"
