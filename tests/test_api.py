import pytest

from api.app import create_app
from ledger_core.services import BudgetService


@pytest.fixture
def client(settings, storage, clock):
    service = BudgetService.from_settings(settings, storage, clock=clock)
    app = create_app(settings, service=service)
    app.config["TESTING"] = True
    return app.test_client()


def _sign_up_and_log_in(client, email="alice@example.com", password="correct horse"):
    response = client.post("/accounts", json={"email": email, "password": password})
    assert response.status_code == 201
    response = client.post("/sessions", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.get_json()['token']}"}


def test_sign_up_does_not_issue_a_token(client):
    response = client.post("/accounts", json={"email": "alice@example.com", "password": "correct horse"})

    assert response.status_code == 201
    assert set(response.get_json()) == {"id"}


def test_duplicate_sign_up(client):
    _sign_up_and_log_in(client)

    response = client.post("/accounts", json={"email": "ALICE@example.com", "password": "correct horse"})
    assert response.status_code == 409


def test_login_failures_are_identical(client):
    _sign_up_and_log_in(client)

    wrong_password = client.post("/sessions", json={"email": "alice@example.com", "password": "nope nope nope"})
    unknown_email = client.post("/sessions", json={"email": "eve@example.com", "password": "nope nope nope"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.get_json() == unknown_email.get_json()


def test_login_response_shape(client):
    client.post("/accounts", json={"email": "alice@example.com", "password": "correct horse"})
    body = client.post("/sessions", json={"email": "alice@example.com", "password": "correct horse"}).get_json()

    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == 3600


def test_record_list_summary_delete(client):
    headers = _sign_up_and_log_in(client)
    for amount, category, timestamp in [
        ("-100", "food", "2026-02-03T12:00:00Z"),
        ("2000", "salary", "2026-02-05T09:00:00Z"),
        ("-50", "food", "2026-02-09T19:30:00Z"),
    ]:
        response = client.post(
            "/transactions",
            json={"amount": amount, "category": category, "timestamp": timestamp},
            headers=headers,
        )
        assert response.status_code == 201

    query = "?start=2026-02-01&end=2026-03-01"
    items = client.get(f"/transactions{query}", headers=headers).get_json()["items"]
    assert [item["amount"] for item in items] == ["-50.00", "2000.00", "-100.00"]

    summary = client.get(f"/summary{query}", headers=headers).get_json()
    assert summary["net"] == "1850.00"
    assert [item["category"] for item in summary["categories"]] == ["salary", "food"]

    response = client.delete(f"/transactions/{items[0]['id']}", headers=headers)
    assert response.status_code == 204
    assert len(client.get(f"/transactions{query}", headers=headers).get_json()["items"]) == 2

    assert client.get("/categories", headers=headers).get_json() == {"items": ["food", "salary"]}


def test_validation_errors(client):
    headers = _sign_up_and_log_in(client)

    response = client.post(
        "/transactions",
        json={"amount": "0", "category": "food", "timestamp": "2026-02-03T12:00:00Z"},
        headers=headers,
    )
    assert response.status_code == 400
    response = client.post("/transactions", data="not json", headers=headers)
    assert response.status_code == 400
    response = client.get("/summary?start=2026-02-01", headers=headers)
    assert response.status_code == 400
    response = client.get("/summary?start=2026-03-01&end=2026-02-01", headers=headers)
    assert response.status_code == 400


def test_out_of_range_amount_is_a_validation_error(client):
    headers = _sign_up_and_log_in(client)

    response = client.post(
        "/transactions",
        json={"amount": "1e30", "category": "food", "timestamp": "2026-02-03T12:00:00Z"},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "Validation error"


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer garbage"}, {"Authorization": "Basic abc"}],
)
def test_unauthorized(client, headers):
    response = client.get("/summary", headers=headers)

    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.parametrize(
    "method,path,kwargs",
    [
        ("post", "/transactions", {"data": "not json"}),
        ("post", "/transactions", {"json": {"amount": "0"}}),
        ("get", "/summary?start=2026-02-01", {}),
        ("get", "/transactions?start=2026-03-01&end=2026-02-01", {}),
        ("get", "/transactions/export.csv?end=2026-02-01", {}),
    ],
)
def test_credentials_are_checked_before_the_request_body(client, method, path, kwargs):
    response = getattr(client, method)(path, headers={"Authorization": "Bearer garbage"}, **kwargs)

    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}


def test_default_period_follows_the_account_zone(client, clock):
    clock.now = clock.now.replace(month=2, day=28, hour=20)
    client.post(
        "/accounts",
        json={"email": "kenji@example.com", "password": "correct horse", "timezone": "Asia/Tokyo"},
    )
    token = client.post(
        "/sessions", json={"email": "kenji@example.com", "password": "correct horse"}
    ).get_json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    response = client.get("/transactions/export.csv", headers=headers)

    assert response.status_code == 200
    assert "transactions-2026-03-01-to-2026-04-01.csv" in response.headers["Content-Disposition"]


def test_expired_token_is_unauthorized(client, clock):
    headers = _sign_up_and_log_in(client)
    clock.advance(hours=1)

    response = client.get("/summary", headers=headers)
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}


def test_foreign_delete_is_plain_not_found(client):
    alice = _sign_up_and_log_in(client)
    bob = _sign_up_and_log_in(client, "bob@example.com", "battery staple")
    entry_id = client.post(
        "/transactions",
        json={"amount": "-5", "category": "food", "timestamp": "2026-02-03T12:00:00Z"},
        headers=alice,
    ).get_json()["id"]

    foreign = client.delete(f"/transactions/{entry_id}", headers=bob)
    missing = client.delete("/transactions/no-such-id", headers=bob)

    assert foreign.status_code == missing.status_code == 404
    assert foreign.get_json() == missing.get_json() == {"error": "Record not found"}


def test_export_csv(client):
    headers = _sign_up_and_log_in(client)
    client.post(
        "/transactions",
        json={"amount": "-5", "category": "food", "timestamp": "2026-02-03T12:00:00Z"},
        headers=headers,
    )

    response = client.get("/transactions/export.csv?start=2026-02-01&end=2026-03-01", headers=headers)

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert "transactions-2026-02-01-to-2026-03-01.csv" in response.headers["Content-Disposition"]
    assert response.get_data(as_text=True).splitlines()[1].split(",")[2:4] == ["-5.00", "food"]


def test_internal_errors_are_opaque(settings, clock):
    class BrokenService(BudgetService):
        def get_summary(self, token, period):
            raise RuntimeError("database password is hunter2")

    service = BrokenService.from_settings(settings, None, clock=clock)
    client = create_app(settings, service=service).test_client()
    response = client.get("/summary", headers=_sign_up_and_log_in(client))

    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal error"}
