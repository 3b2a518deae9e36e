from decimal import Decimal

from fastapi.testclient import TestClient
from sqlmodel import Session

from ..core.config import Settings, get_settings
from ..core.db import create_engine_for_url, get_session
from ..main import app


def _create(client: TestClient, first_name: str, last_name: str = "Lee") -> dict:
    response = client.post(
        "/account", json={"first_name": first_name, "last_name": last_name}
    )
    assert response.status_code == 201
    return response.json()


def _balance(client: TestClient, account_id: int) -> Decimal:
    return Decimal(client.get(f"/account/{account_id}").json()["balance"])


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "sqlite"}


def test_health_reports_unreachable_database(client: TestClient, tmp_path) -> None:
    broken = create_engine_for_url(f"sqlite:///{tmp_path}/missing/dir/ledger.db")

    def _broken_session():
        with Session(broken) as session:
            yield session

    app.dependency_overrides[get_session] = _broken_session

    response = client.get("/health")
    assert response.status_code == 503
    assert response.json() == {"status": "error", "database": "unavailable"}


def test_debit_credit_transfer_scenario(client: TestClient) -> None:
    alice = _create(client, "Alice", "Lee")
    assert alice["id"] is not None
    assert len(alice["uuid"]) == 36
    assert Decimal(alice["balance"]) == 0

    debit = client.post(f"/account/{alice['id']}/debit", json={"amount": 50})
    assert debit.status_code == 200
    assert debit.json() == f"$50.00 debited to Alice's account with id={alice['id']}"
    assert _balance(client, alice["id"]) == Decimal("50")

    credit = client.post(f"/account/{alice['id']}/credit", json={"amount": 20})
    assert credit.status_code == 200
    assert credit.json() == f"$20.00 credited from Alice's account with id={alice['id']}"
    assert _balance(client, alice["id"]) == Decimal("30")

    bob = _create(client, "Bob", "Stone")
    assert Decimal(bob["balance"]) == 0

    transfer = client.post(
        f"/account/{alice['id']}/transfer",
        json={"recipient_id": bob["id"], "amount": 10},
    )
    assert transfer.status_code == 200
    assert transfer.json() == (
        f"$10.00 transferred from Alice's account with id={alice['id']} "
        f"to Bob's account id={bob['id']}"
    )
    assert _balance(client, bob["id"]) == Decimal("10")
    assert _balance(client, alice["id"]) == Decimal("20")


def test_list_accounts(client: TestClient) -> None:
    assert client.get("/account").json() == []

    first = _create(client, "Carol")
    second = _create(client, "Dave")

    listed = client.get("/account").json()
    assert [account["id"] for account in listed] == [first["id"], second["id"]]
    assert {account["uuid"] for account in listed} == {first["uuid"], second["uuid"]}


def test_get_missing_account_returns_404(client: TestClient) -> None:
    response = client.get("/account/999")
    assert response.status_code == 404
    assert response.json() == {"error": "Account with id = 999 does not exist"}


def test_delete_is_idempotent(client: TestClient) -> None:
    account = _create(client, "Eve")

    for _ in range(2):
        response = client.request("DELETE", "/account", json={"id": account["id"]})
        assert response.status_code == 200
        assert response.json() == f"removed acc with id = {account['id']}"

    assert client.get(f"/account/{account['id']}").status_code == 404

    missing = client.request("DELETE", "/account", json={"id": 12345})
    assert missing.status_code == 200


def test_update_merges_names(client: TestClient) -> None:
    account = _create(client, "Frank", "Hill")

    response = client.put(
        f"/account/{account['id']}",
        json={"first_name": "", "last_name": "Moore", "balance": "0"},
    )
    assert response.status_code == 200
    assert response.json() == f"updated acc with id = {account['id']}"

    updated = client.get(f"/account/{account['id']}").json()
    assert updated["first_name"] == "Frank"
    assert updated["last_name"] == "Moore"
    assert updated["uuid"] == account["uuid"]
    assert Decimal(updated["balance"]) == 0


def test_update_missing_account_returns_404(client: TestClient) -> None:
    response = client.put("/account/404", json={"first_name": "Nobody"})
    assert response.status_code == 404
    assert "error" in response.json()


def test_update_rejects_balance_change(client: TestClient) -> None:
    account = _create(client, "Gina")

    response = client.put(f"/account/{account['id']}", json={"balance": "500"})
    assert response.status_code == 403
    assert "cannot be changed" in response.json()["error"]
    assert _balance(client, account["id"]) == 0


def test_update_balance_with_override_enabled(client: TestClient) -> None:
    app.dependency_overrides[get_settings] = lambda: Settings(allow_balance_override=True)
    account = _create(client, "Hank")

    response = client.put(f"/account/{account['id']}", json={"balance": "125.5"})
    assert response.status_code == 200
    assert _balance(client, account["id"]) == Decimal("125.5")


def test_invalid_amount_returns_400(client: TestClient) -> None:
    account = _create(client, "Ivy")

    for body in ({"amount": "abc"}, {"amount": -5}, {"amount": 0}, {}):
        response = client.post(f"/account/{account['id']}/debit", json=body)
        assert response.status_code == 400
        assert "amount" in response.json()["error"]

    assert _balance(client, account["id"]) == 0


def test_create_requires_names(client: TestClient) -> None:
    response = client.post("/account", json={"first_name": "Solo"})
    assert response.status_code == 400
    assert "last_name" in response.json()["error"]


def test_debit_missing_account_returns_404(client: TestClient) -> None:
    response = client.post("/account/77/debit", json={"amount": 5})
    assert response.status_code == 404


def test_transfer_accepts_string_recipient_id(client: TestClient) -> None:
    source = _create(client, "Jack")
    recipient = _create(client, "Kate")
    client.post(f"/account/{source['id']}/debit", json={"amount": "100.25"})

    response = client.post(
        f"/account/{source['id']}/transfer",
        json={"recipient_id": str(recipient["id"]), "amount": "0.25"},
    )
    assert response.status_code == 200
    assert _balance(client, source["id"]) == Decimal("100")
    assert _balance(client, recipient["id"]) == Decimal("0.25")


def test_transfer_to_missing_recipient_leaves_balance(client: TestClient) -> None:
    source = _create(client, "Liam")
    client.post(f"/account/{source['id']}/debit", json={"amount": 40})

    response = client.post(
        f"/account/{source['id']}/transfer",
        json={"recipient_id": 9999, "amount": 10},
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Account with id = 9999 does not exist"}
    assert _balance(client, source["id"]) == Decimal("40")


def test_transfer_rejects_self_transfer(client: TestClient) -> None:
    account = _create(client, "Mia")
    client.post(f"/account/{account['id']}/debit", json={"amount": 500})

    response = client.post(
        f"/account/{account['id']}/transfer",
        json={"recipient_id": account["id"], "amount": 100},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot transfer to the same account"}
    assert _balance(client, account["id"]) == Decimal("500")
