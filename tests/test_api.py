import pytest

from rollout_demo.services.simulation import SimulationSource


async def test_root_reports_service_identity(api_client) -> None:
    resp = await api_client.get("/")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["service"] == "demo-app"
    assert payload["version"] == "2.3.4"
    assert payload["commit"] == "abc1234"
    assert payload["uptime"] >= 0
    assert "timestamp" in payload


async def test_ready_is_idempotent(api_client) -> None:
    for _ in range(3):
        resp = await api_client.get("/ready")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ready"


async def test_list_users_returns_fixed_page(api_client, sleeper) -> None:
    resp = await api_client.get("/api/v1/users")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total"] == 3
    assert payload["page"] == 1
    assert [u["name"] for u in payload["users"]] == ["Alice", "Bob", "Charlie"]
    assert "created_at" not in payload["users"][0]

    assert len(sleeper.calls) == 1
    assert 0.0 <= sleeper.calls[0] <= 0.1


async def test_get_user_returns_fabricated_record(api_client) -> None:
    resp = await api_client.get("/api/v1/users/7")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["id"] == 7
    assert payload["name"] == "User 7"
    assert payload["email"] == "user7@example.com"
    assert payload["created_at"]


@pytest.mark.parametrize("user_id", ["42", "11", "not-a-number"])
async def test_get_unknown_user_returns_404(api_client, user_id: str) -> None:
    resp = await api_client.get(f"/api/v1/users/{user_id}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}


async def test_get_user_injected_failure_returns_500(api_client, simulation: SimulationSource) -> None:
    simulation.error_rate = 1.0

    resp = await api_client.get("/api/v1/users/1")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


async def test_create_user_requires_name_and_email(api_client) -> None:
    resp = await api_client.post("/api/v1/users", json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Name and email are required"}

    for body in (
        {"name": "A", "email": ""},
        {"name": None, "email": "a@b.com"},
        {"name": 0, "email": "a@b.com"},
        {"name": "A", "email": False},
    ):
        resp = await api_client.post("/api/v1/users", json=body)
        assert resp.status_code == 400, body


@pytest.mark.parametrize(
    ("name", "expected"),
    [(" ", " "), (5, "5"), ("Ada", "Ada")],
)
async def test_create_user_accepts_any_present_name(api_client, name, expected: str) -> None:
    resp = await api_client.post("/api/v1/users", json={"name": name, "email": "a@b.com"})
    assert resp.status_code == 201
    assert resp.json()["name"] == expected


async def test_create_user_with_malformed_json_is_rejected(api_client) -> None:
    resp = await api_client.post(
        "/api/v1/users",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Name and email are required"}


async def test_create_user_returns_201_with_generated_id(api_client) -> None:
    resp = await api_client.post("/api/v1/users", json={"name": "A", "email": "a@b.com"})
    assert resp.status_code == 201
    payload = resp.json()
    assert payload["name"] == "A"
    assert payload["email"] == "a@b.com"
    assert isinstance(payload["id"], int)
    assert 0 <= payload["id"] <= 999


async def test_create_user_accepts_form_body(api_client) -> None:
    resp = await api_client.post("/api/v1/users", data={"name": "Form", "email": "form@example.com"})
    assert resp.status_code == 201
    assert resp.json()["name"] == "Form"


async def test_slow_endpoint_reports_delay(api_client, sleeper) -> None:
    resp = await api_client.get("/api/v1/slow")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["message"] == "Slow endpoint response"
    assert payload["delay"].endswith("ms")

    assert len(sleeper.calls) == 1
    assert 0.0 <= sleeper.calls[0] <= 3.0
    assert abs(int(payload["delay"][:-2]) - sleeper.calls[0] * 1000) <= 1


async def test_error_endpoint_always_fails(api_client) -> None:
    for _ in range(2):
        resp = await api_client.get("/api/v1/error")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Simulated server error"}


async def test_unknown_route_echoes_path_and_method(api_client) -> None:
    resp = await api_client.get("/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not found", "path": "/nope", "method": "GET"}


async def test_unmatched_method_is_reported_as_not_found(api_client) -> None:
    resp = await api_client.delete("/api/v1/users")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not found", "path": "/api/v1/users", "method": "DELETE"}
