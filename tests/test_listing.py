from conftest import OTHER_OWNER_ID, OWNER_ID, create_expense, list_expenses


def test_listing_is_scoped_to_owner(client, current_user) -> None:
    create_expense(client, title="mine")
    current_user.id = OTHER_OWNER_ID
    create_expense(client, title="theirs")
    current_user.id = OWNER_ID

    body = list_expenses(client)

    assert body["totalExpenses"] == 1
    assert [e["title"] for e in body["expenses"]] == ["mine"]


def test_default_sort_is_newest_first(client) -> None:
    create_expense(client, title="old", date="2024-01-01T00:00:00")
    create_expense(client, title="new", date="2024-03-01T00:00:00")
    create_expense(client, title="mid", date="2024-02-01T00:00:00")

    body = list_expenses(client)

    assert [e["title"] for e in body["expenses"]] == ["new", "mid", "old"]


def test_sort_by_amount_ascending(client) -> None:
    for amount in (30, 10, 20):
        create_expense(client, amount=amount)

    body = list_expenses(client, sortBy="amount", sortOrder="asc")

    assert [e["amount"] for e in body["expenses"]] == [10, 20, 30]


def test_invalid_sort_field_is_rejected(client) -> None:
    assert client.get("/expense/all", params={"sortBy": "user"}).status_code == 400


def test_filters_and_inclusive_date_range(client) -> None:
    create_expense(client, title="a", category="Food", paymentMethod="cash", date="2024-01-01T00:00:00")
    create_expense(client, title="b", category="Food", paymentMethod="card", date="2024-01-15T00:00:00")
    create_expense(client, title="c", category="Food", paymentMethod="cash", date="2024-01-31T00:00:00")
    create_expense(client, title="d", category="Rent", paymentMethod="cash", date="2024-01-15T00:00:00")
    create_expense(client, title="e", category="Food", paymentMethod="cash", date="2024-02-01T00:00:00")

    body = list_expenses(client, category="Food", paymentMethod="cash", startDate="2024-01-01", endDate="2024-01-31")

    assert sorted(e["title"] for e in body["expenses"]) == ["a", "c"]
    assert body["totalExpenses"] == 2


def test_pagination_totals(client) -> None:
    for i in range(12):
        create_expense(client, title=f"e{i}", amount=i)

    first = list_expenses(client, limit=5, sortBy="amount", sortOrder="asc")
    last = list_expenses(client, limit=5, page=3, sortBy="amount", sortOrder="asc")

    assert first["totalExpenses"] == 12
    assert first["totalPages"] == 3
    assert first["currentPage"] == 1
    assert [e["amount"] for e in first["expenses"]] == [0, 1, 2, 3, 4]
    assert [e["amount"] for e in last["expenses"]] == [10, 11]
    assert last["currentPage"] == 3


def test_page_and_limit_are_clamped(client) -> None:
    for _ in range(3):
        create_expense(client)

    below = list_expenses(client, page=0, limit=0)
    above = list_expenses(client, page=-2, limit=1000)

    assert below["currentPage"] == 1
    assert len(below["expenses"]) == 1
    assert below["totalPages"] == 3
    assert above["currentPage"] == 1
    assert len(above["expenses"]) == 3
    assert above["totalPages"] == 1


def test_empty_listing(client) -> None:
    body = list_expenses(client)

    assert body == {"expenses": [], "totalExpenses": 0, "totalPages": 0, "currentPage": 1}


def test_listing_requires_admin_role(client, current_user) -> None:
    current_user.role = "user"

    response = client.get("/expense/all")

    assert response.status_code == 403
