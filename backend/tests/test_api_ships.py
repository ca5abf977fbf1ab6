"""Tests for the /rest/ships endpoints.

Uses the shared conftest fixtures (db, api_client) backed by in-memory SQLite.
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from app.models.ship import Ship
from app.modules import ship_lifecycle
from app.utils.epoch import to_epoch_millis

BASE = "/rest/ships"
PROD_2900 = to_epoch_millis(datetime(2900, 6, 15))


def _body(**overrides) -> dict:
    body = {
        "name": "Orion",
        "planet": "Earth",
        "shipType": "TRANSPORT",
        "prodDate": PROD_2900,
        "speed": 0.5,
        "crewSize": 100,
    }
    body.update(overrides)
    return body


def _create(api_client, **overrides) -> dict:
    resp = api_client.post(BASE, json=_body(**overrides))
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestCreateShip:
    """POST /rest/ships creates a ship."""

    def test_create_ok(self, api_client):
        data = _create(api_client)
        assert data["id"] > 0
        assert data["name"] == "Orion"
        assert data["shipType"] == "TRANSPORT"
        assert data["prodDate"] == PROD_2900
        assert data["isUsed"] is False
        assert data["speed"] == 0.5
        assert data["crewSize"] == 100
        assert data["rating"] == 0.33

    def test_speed_rounded_and_rating_derived(self, api_client):
        data = _create(api_client, speed=0.555, isUsed=True)
        assert data["speed"] == 0.56
        # 80 * 0.56 * 0.5 / 120
        assert data["rating"] == 0.19

    def test_client_id_and_rating_ignored(self, api_client):
        data = _create(api_client, id=777, rating=50.0)
        assert data["id"] != 777
        assert data["rating"] == 0.33

    def test_iso_prod_date_accepted(self, api_client):
        data = _create(api_client, prodDate="2900-06-15T00:00:00Z")
        assert data["prodDate"] == PROD_2900

    @pytest.mark.parametrize("missing", ["name", "planet", "shipType", "prodDate", "speed", "crewSize"])
    def test_missing_field_returns_400(self, api_client, db, missing):
        body = _body()
        del body[missing]
        resp = api_client.post(BASE, json=body)
        assert resp.status_code == 400
        assert resp.json()["code"] == "bad_request"
        assert db.query(Ship).count() == 0

    @pytest.mark.parametrize("overrides", [
        {"speed": 1.5},
        {"speed": 0.001},
        {"crewSize": 0},
        {"crewSize": 10000},
        {"name": ""},
        {"name": "n" * 51},
        {"planet": ""},
        {"prodDate": to_epoch_millis(datetime(2799, 12, 31, 23, 59))},
        {"prodDate": to_epoch_millis(datetime(3020, 1, 1))},
        {"shipType": "SPACESHIP"},
        {"speed": "fast"},
        {"prodDate": "not a date"},
    ])
    def test_invalid_field_returns_400(self, api_client, overrides):
        resp = api_client.post(BASE, json=_body(**overrides))
        assert resp.status_code == 400

    def test_empty_body_returns_400(self, api_client):
        assert api_client.post(BASE, json={}).status_code == 400


class TestGetShip:
    """GET /rest/ships/{id}."""

    def test_get_ok(self, api_client):
        created = _create(api_client)
        resp = api_client.get(f"{BASE}/{created['id']}")
        assert resp.status_code == 200
        assert resp.json() == created

    def test_not_found(self, api_client):
        resp = api_client.get(f"{BASE}/999")
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    @pytest.mark.parametrize("raw", ["0", "-5", "abc", "1.5"])
    def test_bad_id_returns_400(self, api_client, raw):
        assert api_client.get(f"{BASE}/{raw}").status_code == 400


class TestUpdateShip:
    """POST /rest/ships/{id} merges a partial record."""

    def test_partial_update(self, api_client):
        created = _create(api_client)
        resp = api_client.post(f"{BASE}/{created['id']}", json={"name": "Vega"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Vega"
        for key in ("planet", "shipType", "prodDate", "isUsed", "speed", "crewSize", "rating"):
            assert data[key] == created[key]

    def test_update_recomputes_rating(self, api_client):
        created = _create(api_client)
        data = api_client.post(f"{BASE}/{created['id']}", json={"isUsed": True}).json()
        # 80 * 0.5 * 0.5 / 120
        assert data["rating"] == 0.17

    def test_update_prod_date(self, api_client):
        created = _create(api_client)
        new_date = to_epoch_millis(datetime(3019, 1, 1))
        data = api_client.post(f"{BASE}/{created['id']}", json={"prodDate": new_date}).json()
        assert data["prodDate"] == new_date
        assert data["rating"] == 40.0

    def test_rating_in_body_ignored(self, api_client):
        created = _create(api_client)
        data = api_client.post(f"{BASE}/{created['id']}", json={"rating": 10.0}).json()
        assert data["rating"] == 0.33

    def test_invalid_value_returns_400(self, api_client):
        created = _create(api_client)
        resp = api_client.post(f"{BASE}/{created['id']}", json={"speed": 2.0})
        assert resp.status_code == 400
        assert api_client.get(f"{BASE}/{created['id']}").json()["speed"] == 0.5

    def test_not_found(self, api_client):
        assert api_client.post(f"{BASE}/999", json={"name": "Vega"}).status_code == 404

    def test_bad_id(self, api_client):
        assert api_client.post(f"{BASE}/abc", json={"name": "Vega"}).status_code == 400


class TestDeleteShip:
    """DELETE /rest/ships/{id}."""

    def test_delete_ok(self, api_client, db):
        created = _create(api_client)
        resp = api_client.delete(f"{BASE}/{created['id']}")
        assert resp.status_code == 200
        assert resp.content == b""
        assert db.query(Ship).count() == 0

    def test_delete_twice_returns_404(self, api_client):
        created = _create(api_client)
        api_client.delete(f"{BASE}/{created['id']}")
        assert api_client.delete(f"{BASE}/{created['id']}").status_code == 404

    def test_bad_id(self, api_client):
        assert api_client.delete(f"{BASE}/0").status_code == 400


class TestListAndCount:
    """GET /rest/ships and GET /rest/ships/count."""

    @pytest.fixture
    def fleet(self, api_client):
        _create(api_client, name="Orion", planet="Mars", shipType="MILITARY", speed=0.9, crewSize=10)
        _create(api_client, name="Vega", planet="Earth", shipType="TRANSPORT", speed=0.2, crewSize=20, isUsed=True)
        _create(api_client, name="Orion II", planet="Mars", shipType="MERCHANT", speed=0.5, crewSize=30)
        _create(api_client, name="Lyra", planet="Venus", shipType="MILITARY", speed=0.7, crewSize=40)
        _create(api_client, name="Deneb", planet="Earth", shipType="TRANSPORT", speed=0.3, crewSize=50)

    def test_default_page_size_is_three(self, api_client, fleet):
        data = api_client.get(BASE).json()
        assert [s["name"] for s in data] == ["Orion", "Vega", "Orion II"]

    def test_page_number(self, api_client, fleet):
        data = api_client.get(BASE, params={"pageNumber": 1}).json()
        assert [s["name"] for s in data] == ["Lyra", "Deneb"]

    def test_order_by_speed(self, api_client, fleet):
        data = api_client.get(BASE, params={"order": "SPEED", "pageSize": 5}).json()
        assert [s["speed"] for s in data] == [0.2, 0.3, 0.5, 0.7, 0.9]

    def test_unknown_order_returns_400(self, api_client, fleet):
        assert api_client.get(BASE, params={"order": "NAME"}).status_code == 400

    @pytest.mark.parametrize("params", [{"pageSize": 0}, {"pageNumber": -1}, {"minSpeed": "fast"}])
    def test_bad_params_return_400(self, api_client, params):
        assert api_client.get(BASE, params=params).status_code == 400

    @pytest.mark.parametrize("params", [
        {"minCrewSize": 10**25},
        {"maxCrewSize": -(10**25)},
        {"pageNumber": 10**25},
        {"pageSize": 2**31},
        {"after": 2**63},
    ])
    def test_oversized_integers_return_400(self, api_client, fleet, params):
        resp = api_client.get(BASE, params=params)
        assert resp.status_code == 400
        assert resp.json()["code"] == "bad_request"

    @pytest.mark.parametrize("params", [{"maxCrewSize": 10**25}, {"before": -(2**63) - 1}])
    def test_count_oversized_integers_return_400(self, api_client, fleet, params):
        assert api_client.get(f"{BASE}/count", params=params).status_code == 400

    def test_widest_accepted_integers(self, api_client, fleet):
        params = {"minCrewSize": -(2**31), "maxCrewSize": 2**31 - 1, "pageSize": 10}
        assert len(api_client.get(BASE, params=params).json()) == 5
        assert api_client.get(BASE, params={"pageNumber": 2**31 - 1}).json() == []

    def test_filters(self, api_client, fleet):
        data = api_client.get(BASE, params={"name": "Orion", "planet": "Mars", "pageSize": 10}).json()
        assert {s["name"] for s in data} == {"Orion", "Orion II"}

        data = api_client.get(BASE, params={"shipType": "MILITARY", "minSpeed": 0.7, "pageSize": 10}).json()
        assert {s["name"] for s in data} == {"Orion", "Lyra"}

        data = api_client.get(BASE, params={"isUsed": "true"}).json()
        assert [s["name"] for s in data] == ["Vega"]

    def test_crew_size_bounds_inclusive(self, api_client, fleet):
        data = api_client.get(BASE, params={"minCrewSize": 20, "maxCrewSize": 40, "pageSize": 10}).json()
        assert [s["crewSize"] for s in data] == [20, 30, 40]

    def test_count_all(self, api_client, fleet):
        resp = api_client.get(f"{BASE}/count")
        assert resp.status_code == 200
        assert resp.json() == 5

    def test_count_filtered(self, api_client, fleet):
        assert api_client.get(f"{BASE}/count", params={"planet": "Earth"}).json() == 2
        assert api_client.get(f"{BASE}/count", params={"name": "orion"}).json() == 0

    def test_count_ignores_paging(self, api_client, fleet):
        assert api_client.get(f"{BASE}/count", params={"pageSize": 1, "pageNumber": 3}).json() == 5

    def test_date_range(self, api_client, fleet):
        params = {"after": PROD_2900, "before": PROD_2900}
        assert api_client.get(f"{BASE}/count", params=params).json() == 5
        assert api_client.get(f"{BASE}/count", params={"after": PROD_2900 + 1}).json() == 0

    def test_empty_store(self, api_client):
        assert api_client.get(BASE).json() == []
        assert api_client.get(f"{BASE}/count").json() == 0


class TestStoreFailures:
    """Store errors have no dedicated mapping and surface as a generic 500."""

    @pytest.fixture
    def failing_client(self, api_client):
        return TestClient(api_client.app, raise_server_exceptions=False)

    def test_integrity_error_is_internal_error(self, failing_client, monkeypatch):
        def broken_count(db, ship_filter):
            raise IntegrityError("INSERT INTO ship ...", {}, Exception("constraint failed"))

        monkeypatch.setattr(ship_lifecycle, "count_ships", broken_count)
        resp = failing_client.get(f"{BASE}/count")
        assert resp.status_code == 500
        assert resp.json() == {"detail": "An unexpected error occurred.", "code": "internal_error"}
