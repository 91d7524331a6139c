"""
HTTP API tests.

Exercise the v1 routes end to end against the in-memory database.
"""

import pytest
from decimal import Decimal


def transaction_payload(category_id, amount, tx_type="Expense", **kwargs):
    payload = {
        "date": "2024-03-01",
        "amount": amount,
        "type": tx_type,
        "category_id": category_id,
    }
    payload.update(kwargs)
    return payload


@pytest.mark.asyncio
async def test_health_and_root(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Correlation-ID" in response.headers

    response = await client.get("/")
    assert response.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_create_income_updates_fund(client, income_category, general_fund):
    category_id, fund_id = income_category.id, general_fund.id

    response = await client.post(
        "/v1/transactions",
        json=transaction_payload(category_id, "200.00", "Income", fund_id=fund_id),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["type"] == "Income"
    assert body["is_deleted"] is False

    fund = (await client.get(f"/v1/funds/{fund_id}")).json()
    assert Decimal(fund["balance"]) == Decimal("1200.00")


@pytest.mark.asyncio
@pytest.mark.filterwarnings("error:.*HTTP_422_UNPROCESSABLE_ENTITY")
async def test_grant_overspend_returns_invariant_error(client, expense_category, grant):
    category_id, grant_id = expense_category.id, grant.id

    response = await client.post(
        "/v1/transactions",
        json=transaction_payload(category_id, "1500.00", grant_id=grant_id),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "ERR_INVARIANT_001"
    assert body["details"]["requested_amount"] == "1500.00"
    assert body["details"]["remaining_balance"] == "1000.00"

    grant_body = (await client.get(f"/v1/grants/{grant_id}")).json()
    assert Decimal(grant_body["amount_used"]) == Decimal("0")


@pytest.mark.asyncio
async def test_split_mismatch_returns_validation_error(client, expense_category):
    category_id = expense_category.id

    response = await client.post(
        "/v1/transactions",
        json=transaction_payload(
            category_id, "100.00",
            splits=[{"category_id": category_id, "amount": "40.00"}],
        ),
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


@pytest.mark.asyncio
@pytest.mark.filterwarnings("error:.*HTTP_422_UNPROCESSABLE_ENTITY")
async def test_malformed_request_returns_422(client):
    response = await client.post("/v1/transactions", json={"type": "Expense"})

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_unknown_transaction_returns_404(client):
    response = await client.get("/v1/transactions/999")

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_update_delete_restore_flow(client, expense_category, general_fund, building_fund):
    category_id, general_id, building_id = expense_category.id, general_fund.id, building_fund.id
    created = (await client.post(
        "/v1/transactions",
        json=transaction_payload(category_id, "100.00", fund_id=general_id, payee="Acme"),
    )).json()
    transaction_id = created["id"]

    response = await client.put(
        f"/v1/transactions/{transaction_id}",
        json=transaction_payload(category_id, "120.00", fund_id=building_id, payee="Acme"),
    )
    assert response.status_code == 200
    assert Decimal((await client.get(f"/v1/funds/{general_id}")).json()["balance"]) == Decimal("1000")
    assert Decimal((await client.get(f"/v1/funds/{building_id}")).json()["balance"]) == Decimal("380")

    response = await client.delete(f"/v1/transactions/{transaction_id}", params={"deleted_by": "auditor"})
    assert response.status_code == 200
    assert response.json()["is_deleted"] is True
    assert (await client.get(f"/v1/transactions/{transaction_id}")).status_code == 404

    deleted = (await client.get("/v1/transactions/deleted")).json()
    assert [t["id"] for t in deleted] == [transaction_id]

    response = await client.post(f"/v1/transactions/{transaction_id}/restore")
    assert response.status_code == 200
    assert Decimal((await client.get(f"/v1/funds/{building_id}")).json()["balance"]) == Decimal("380")

    trail = (await client.get(f"/v1/audit/Transaction/{transaction_id}")).json()
    assert [entry["action"] for entry in trail] == ["Restore", "Delete", "Update", "Create"]


@pytest.mark.asyncio
async def test_permanent_delete_policy(client, expense_category, general_fund):
    category_id, fund_id = expense_category.id, general_fund.id
    created = (await client.post(
        "/v1/transactions",
        json=transaction_payload(category_id, "30.00", fund_id=fund_id),
    )).json()

    response = await client.delete(f"/v1/transactions/{created['id']}/permanent")
    assert response.status_code == 422

    response = await client.delete(
        f"/v1/transactions/{created['id']}/permanent", params={"recalculate": "true"}
    )
    assert response.status_code == 204
    assert Decimal((await client.get(f"/v1/funds/{fund_id}")).json()["balance"]) == Decimal("1000")


@pytest.mark.asyncio
async def test_transfer_endpoint(client, general_fund, building_fund):
    general_id, building_id = general_fund.id, building_fund.id

    response = await client.post("/v1/transfers", json={
        "from_fund_id": general_id,
        "to_fund_id": building_id,
        "amount": "125.00",
        "date": "2024-04-01",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["expense_leg"]["transfer_pair_id"] == body["income_leg"]["transfer_pair_id"]
    assert Decimal((await client.get(f"/v1/funds/{general_id}")).json()["balance"]) == Decimal("875")
    assert Decimal((await client.get(f"/v1/funds/{building_id}")).json()["balance"]) == Decimal("625")

    response = await client.post("/v1/transfers", json={
        "from_fund_id": general_id,
        "to_fund_id": general_id,
        "amount": "1.00",
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_review_flow(client, expense_category):
    category_id = expense_category.id
    first = (await client.post(
        "/v1/transactions",
        json=transaction_payload(category_id, "100.00", date="2024-01-10", payee="ABC Corp"),
    )).json()
    second = (await client.post(
        "/v1/transactions",
        json=transaction_payload(category_id, "100.00", date="2024-01-11", payee="ABC Corp"),
    )).json()

    matches = (await client.post("/v1/duplicates/search", json={"date_range_days": 3})).json()
    assert len(matches) == 1
    assert matches[0]["match_type"] == "Likely"
    assert (await client.get("/v1/duplicates/count")).json() == {"count": 1}

    response = await client.post("/v1/duplicates/resolve", json={
        "transaction1_id": second["id"],
        "transaction2_id": first["id"],
        "resolution": "Dismiss",
    })
    assert response.status_code == 204

    dismissed = (await client.get("/v1/duplicates/dismissed", params={
        "transaction1_id": first["id"],
        "transaction2_id": second["id"],
    })).json()
    assert dismissed["dismissed"] is True
    assert (await client.post("/v1/duplicates/search", json={"date_range_days": 3})).json() == []

    response = await client.post("/v1/duplicates/resolve", json={
        "transaction1_id": first["id"],
        "transaction2_id": second["id"],
        "resolution": "Ignore",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_check_duplicate_entry(client, expense_category):
    category_id = expense_category.id
    existing = (await client.post(
        "/v1/transactions",
        json=transaction_payload(category_id, "42.00", date="2024-06-01", payee="Acme Supply"),
    )).json()

    response = await client.get("/v1/transactions/check-duplicate", params={
        "date": "2024-06-01",
        "amount": "42.00",
        "payee": "ACME SUPPLY",
    })

    assert response.status_code == 200
    assert [w["id"] for w in response.json()] == [existing["id"]]


@pytest.mark.asyncio
async def test_recalculate_endpoint_repairs_drift(client, db_session, income_category, general_fund):
    category_id, fund_id = income_category.id, general_fund.id
    await client.post(
        "/v1/transactions",
        json=transaction_payload(category_id, "50.00", "Income", fund_id=fund_id),
    )

    fund = await db_session.get(type(general_fund), fund_id, populate_existing=True)
    fund.balance = Decimal("0.00")
    await db_session.commit()

    response = await client.post(f"/v1/funds/{fund_id}/recalculate")

    assert response.status_code == 200
    assert Decimal(response.json()["balance"]) == Decimal("1050")
    assert (await client.post("/v1/funds/777/recalculate")).status_code == 404


@pytest.mark.asyncio
async def test_process_recurring_endpoint(client, income_category, general_fund):
    category_id, fund_id = income_category.id, general_fund.id
    await client.post(
        "/v1/transactions",
        json=transaction_payload(
            category_id, "20.00", "Income",
            fund_id=fund_id,
            date="2024-01-01",
            is_recurring=True,
            recurrence_pattern="weekly",
        ),
    )

    response = await client.post("/v1/transactions/process-recurring", params={"as_of": "2024-01-08"})

    assert response.status_code == 200
    assert response.json()["count"] == 1
    assert response.json()["created"][0]["date"] == "2024-01-08"
