"""HTTP tests for the ModCalc API.

The Supabase client is replaced with the in-memory fake from conftest, the
AI notes service with a stub, and the picker cache with a fresh instance.
"""

import asyncio
import json
from datetime import datetime, timezone

import pytest
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from modcalc import main
from modcalc.api.deps import get_ai_notes, get_cache
from modcalc.api.limiter import limiter
from modcalc.core.config import get_settings
from modcalc.main import app
from modcalc.services.catalog_cache import CatalogCache

CAR = {
    "id": "car-1",
    "make": "Subaru",
    "model": "WRX",
    "year": 2019,
    "trim": "STI",
    "drivetrain": "AWD",
    "curb_weight_lbs": 3400,
    "stock_hp": 305,
    "stock_tq": 290,
    "zero_to_sixty_s": 4.8,
    "quarter_mile_s": 13.2,
}

MODS = [
    {
        "id": "intake",
        "name": "Cold Air Intake",
        "category": "intake",
        "avg_hp_gain": 10,
        "avg_tq_gain": 8,
        "avg_weight_delta_lbs": -2,
    },
    {
        "id": "turbo",
        "name": "Big Turbo",
        "category": "forced induction",
        "avg_hp_gain": 100,
        "avg_tq_gain": 90,
        "avg_weight_delta_lbs": 15,
        "needs_tune": True,
    },
]

AUTH = {"Authorization": "Bearer good-token"}


class StubNotes:
    def __init__(self, notes=None, error=None):
        self.notes = notes
        self.error = error
        self.calls = 0

    async def generate_notes(self, car, mods):
        self.calls += 1
        if self.error:
            raise self.error
        return {"notes": self.notes} if self.notes else {}


@pytest.fixture
def notes():
    return StubNotes(notes=["Plan for a bigger intercooler."])


@pytest.fixture
def cache():
    return CatalogCache()


@pytest.fixture
def db(fake_db):
    fake_db.tables["cars"] = [dict(CAR)]
    fake_db.tables["mods"] = [dict(m) for m in MODS]
    fake_db.add_user("good-token", "user-1", "driver@example.com")
    return fake_db


@pytest.fixture
def client(db, notes, cache):
    app.dependency_overrides[get_ai_notes] = lambda: notes
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def _today_events(user_id: str, n: int) -> list[dict]:
    now = datetime.now(timezone.utc).isoformat()
    return [{"user_id": user_id, "occurred_at": now} for _ in range(n)]


# ---------------------------------------------------------------------------
# Predict
# ---------------------------------------------------------------------------


class TestPredict:
    def test_stock_build(self, client, notes):
        resp = client.post("/api/predict", json={"carId": "car-1", "modIds": []})
        assert resp.status_code == 200
        data = resp.json()
        assert data["estimatedHp"] == 305
        assert data["estimatedTq"] == 290
        assert data["estimatedWeight"] == 3400
        assert data["zeroToSixty"] == 4.8
        assert data["quarterMile"] == 13.2
        # empty builds always get AI notes
        assert data["notes"] == ["Plan for a bigger intercooler."]
        assert notes.calls == 1

    def test_mods_apply_in_request_order(self, client):
        resp = client.post(
            "/api/predict", json={"carId": "car-1", "modIds": ["turbo", "intake"]}
        )
        data = resp.json()
        assert data["estimatedHp"] == 305 + 100 + 9
        assert data["estimatedTq"] == 290 + 90 + 7
        assert data["estimatedWeight"] == 3413
        assert data["powerToWeight"] == pytest.approx(414 / 3413)
        assert data["notes"][0] == "Big Turbo typically benefits most with a tune."
        assert data["notes"][-1] == "Plan for a bigger intercooler."

    def test_bolt_ons_skip_ai_notes(self, client, notes):
        resp = client.post("/api/predict", json={"carId": "car-1", "modIds": ["intake"]})
        assert resp.status_code == 200
        assert resp.json()["notes"] == []
        assert notes.calls == 0

    def test_unknown_mod_ids_are_ignored(self, client):
        resp = client.post(
            "/api/predict", json={"carId": "car-1", "modIds": ["intake", "nitrous"]}
        )
        assert resp.json()["estimatedHp"] == 315

    def test_ai_failure_still_returns_estimate(self, client, notes):
        notes.error = RuntimeError("upstream down")
        resp = client.post("/api/predict", json={"carId": "car-1", "modIds": ["turbo"]})
        assert resp.status_code == 200
        assert resp.json()["notes"] == ["Big Turbo typically benefits most with a tune."]

    def test_unknown_car(self, client):
        resp = client.post("/api/predict", json={"carId": "nope", "modIds": []})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Car not found"}

    @pytest.mark.parametrize(
        "body",
        [
            {"modIds": []},
            {"carId": "", "modIds": []},
            {"carId": "car-1", "modIds": "intake"},
            {"carId": "car-1", "modIds": [f"m{i}" for i in range(101)]},
        ],
    )
    def test_invalid_body(self, client, body):
        resp = client.post("/api/predict", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid body"

    def test_malformed_json(self, client):
        resp = client.post(
            "/api/predict",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid body"

    def test_missing_mod_ids_defaults_to_empty(self, client):
        resp = client.post("/api/predict", json={"carId": "car-1"})
        assert resp.status_code == 200
        assert resp.json()["estimatedHp"] == 305

    def test_unexpected_failure_is_500(self, client, db):
        db.errors["mods"] = RuntimeError("connection reset")
        resp = client.post("/api/predict", json={"carId": "car-1", "modIds": ["turbo"]})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}


class TestQuota:
    def test_signed_in_prediction_records_usage(self, client, db):
        resp = client.post(
            "/api/predict", json={"carId": "car-1", "modIds": []}, headers=AUTH
        )
        assert resp.status_code == 200
        assert [e["user_id"] for e in db.tables["usage_events"]] == ["user-1"]

    def test_anonymous_prediction_records_nothing(self, client, db):
        client.post("/api/predict", json={"carId": "car-1", "modIds": []})
        assert "usage_events" not in db.tables

    def test_exhausted_quota_is_429(self, client, db):
        db.tables["usage_events"] = _today_events("user-1", 3)
        resp = client.post(
            "/api/predict", json={"carId": "car-1", "modIds": []}, headers=AUTH
        )
        assert resp.status_code == 429
        assert resp.json() == {"error": "Daily limit reached for FREE plan."}
        assert len(db.tables["usage_events"]) == 3

    def test_failed_prediction_is_not_counted(self, client, db):
        resp = client.post("/api/predict", json={"carId": "nope"}, headers=AUTH)
        assert resp.status_code == 404
        assert "usage_events" not in db.tables

    def test_bad_token_is_anonymous(self, client, db):
        db.tables["usage_events"] = _today_events("user-1", 3)
        resp = client.post(
            "/api/predict",
            json={"carId": "car-1", "modIds": []},
            headers={"Authorization": "Bearer expired"},
        )
        assert resp.status_code == 200

    def test_usage_endpoint(self, client, db):
        db.tables["usage_events"] = _today_events("user-1", 2)
        assert client.get("/api/usage", headers=AUTH).json() == {
            "plan": "FREE",
            "limit": 3,
            "used": 2,
            "remaining": 1,
        }
        assert client.get("/api/usage").json()["used"] == 0


# ---------------------------------------------------------------------------
# Catalog & Picker
# ---------------------------------------------------------------------------


class TestCatalog:
    def test_cars(self, client):
        cars = client.get("/api/cars").json()
        assert cars[0]["id"] == "car-1"
        assert cars[0]["stock_hp"] == 305

    def test_mods_flat_and_grouped(self, client):
        flat = client.get("/api/mods").json()
        assert {m["id"] for m in flat} == {"intake", "turbo"}

        grouped = client.get("/api/mods", params={"grouped": "true"}).json()
        assert set(grouped) == {"intake", "forced induction"}
        assert grouped["forced induction"][0]["needs_tune"] is True


class TestPicker:
    def test_years_fall_back_when_catalog_is_empty(self, client):
        assert client.get("/api/years").json() == {
            "years": [2020, 2019, 2018, 2017, 2016, 2015]
        }

    def test_cascade(self, client, db):
        db.tables["car_trims"] = [
            {"year": 2021, "make": "Honda", "model": "Civic", "trim_label": "Si"},
            {"year": 2021, "make": "Honda", "model": "Civic", "trim_label": "Type R"},
            {"year": 2020, "make": "Mazda", "model": "MX-5", "trim_label": "Club"},
        ]
        assert client.get("/api/years").json() == {"years": [2021, 2020]}
        assert client.get("/api/makes", params={"year": 2021}).json() == {
            "makes": ["Honda"]
        }
        assert client.get(
            "/api/models", params={"year": 2021, "make": "Honda"}
        ).json() == {"models": ["Civic"]}
        assert client.get(
            "/api/trims", params={"year": 2021, "make": "Honda", "model": "Civic"}
        ).json() == {"trims": ["Si", "Type R"]}

    def test_picker_results_are_cached(self, client, db):
        db.tables["car_trims"] = [
            {"year": 2021, "make": "Honda", "model": "Civic", "trim_label": "Si"}
        ]
        client.get("/api/makes", params={"year": 2021})
        client.get("/api/makes", params={"year": 2021})
        assert db.calls.count("car_trims") == 1

    def test_missing_query_param(self, client):
        resp = client.get("/api/makes")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"

    def test_car_specs(self, client, db):
        db.tables["car_trims"] = [
            {
                "year": 2021,
                "make": "Honda",
                "model": "Civic",
                "trim_label": "Si",
                "stock_hp_bhp": 200,
                "stock_tq_lbft": 192,
                "curb_weight_lb": 2906,
            }
        ]
        params = {"year": 2021, "make": "Honda", "model": "Civic", "trim_label": "Si"}
        data = client.get("/api/car-specs", params=params).json()
        assert data["source"] == "official"
        assert data["stock_hp_bhp"] == 200

        params["trim_label"] = "Sport"
        assert client.get("/api/car-specs", params=params).json()["source"] == "missing"


# ---------------------------------------------------------------------------
# Community Specs & Builds
# ---------------------------------------------------------------------------

SUBMISSION = {
    "year": 2021,
    "make": "Honda",
    "model": "Civic",
    "trim_label": "Si",
    "stock_hp_bhp": 200,
    "stock_tq_lbft": 192,
    "curb_weight_lb": 2906,
    "source_url": "https://example.com/civic-si",
}


class TestCommunitySpecs:
    def test_submit(self, client, db):
        resp = client.post("/api/community-specs", json=SUBMISSION, headers=AUTH)
        assert resp.status_code == 201
        assert resp.json()["status"] == "pending"
        stored = db.tables["community_specs"][0]
        assert stored["status"] == "pending"
        assert stored["submitted_by"] == "user-1"
        assert stored["submitted_email"] == "driver@example.com"

    def test_anonymous_submit(self, client, db):
        resp = client.post("/api/community-specs", json=SUBMISSION)
        assert resp.status_code == 201
        assert db.tables["community_specs"][0]["submitted_by"] is None

    @pytest.mark.parametrize(
        "override",
        [
            {"stock_hp_bhp": None},
            {"stock_hp_bhp": 0},
            {"year": 1800},
            {"make": ""},
            {"source_url": "ftp://example.com/specs"},
            {"submitted_email": "not-an-email"},
            {"zero_to_sixty_s_stock": -1},
        ],
    )
    def test_invalid_submission(self, client, override):
        resp = client.post("/api/community-specs", json={**SUBMISSION, **override})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid body"


class TestBuilds:
    RESULT = {
        "estimatedHp": 414,
        "estimatedTq": 387,
        "estimatedWeight": 3413,
        "powerToWeight": 0.121,
        "zeroToSixty": 4.1,
        "quarterMile": 12.3,
        "notes": [],
    }

    def test_requires_sign_in(self, client):
        resp = client.post(
            "/api/builds",
            json={"carId": "car-1", "modIds": [], "result": self.RESULT},
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Sign in required"}
        assert client.get("/api/builds").status_code == 401

    def test_save_and_list(self, client):
        resp = client.post(
            "/api/builds",
            json={"carId": "car-1", "modIds": ["turbo"], "result": self.RESULT},
            headers=AUTH,
        )
        assert resp.status_code == 201
        assert resp.json() == {"message": "Saved"}

        builds = client.get("/api/builds", headers=AUTH).json()
        assert len(builds) == 1
        assert builds[0]["car_id"] == "car-1"
        assert builds[0]["mod_ids"] == ["turbo"]
        assert builds[0]["result"]["estimatedHp"] == 414


# ---------------------------------------------------------------------------
# Health & Errors
# ---------------------------------------------------------------------------


class TestHealth:
    def test_basic(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_detailed(self, client):
        data = client.get("/health", params={"detailed": "true"}).json()
        assert data["status"] == "ok"
        assert data["supabase"]["status"] == "healthy"

    def test_detailed_degraded(self, client, db):
        db.errors["cars"] = RuntimeError("connection refused")
        data = client.get("/health", params={"detailed": "true"}).json()
        assert data["status"] == "degraded"
        assert data["supabase"]["status"] == "unhealthy"

    def test_unknown_route(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found"}


# ---------------------------------------------------------------------------
# Rate Limiting
# ---------------------------------------------------------------------------


class RecordingLogger:
    def __init__(self):
        self.warnings = []

    def warning(self, msg, *args, **kwargs):
        self.warnings.append(msg)

    def __getattr__(self, name):
        return lambda *args, **kwargs: None


@pytest.fixture
def rate_limited(monkeypatch):
    monkeypatch.setattr(get_settings(), "rate_limit", "2/minute")
    monkeypatch.setattr(limiter, "enabled", True)
    limiter.reset()
    yield
    limiter.reset()


class TestRateLimit:
    def test_per_ip_limit(self, client, rate_limited, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(main, "logger", recorder)

        codes = [
            client.post("/api/predict", json={"carId": "car-1", "modIds": []}).status_code
            for _ in range(4)
        ]
        assert codes == [200, 200, 429, 429]

        resp = client.post("/api/predict", json={"carId": "car-1", "modIds": []})
        assert resp.json() == {"error": "Rate limit exceeded. Try again later."}
        assert any("Rate limit exceeded" in w for w in recorder.warnings)

    def test_applies_to_signed_in_callers(self, client, rate_limited):
        codes = [
            client.post(
                "/api/predict", json={"carId": "car-1", "modIds": []}, headers=AUTH
            ).status_code
            for _ in range(3)
        ]
        assert codes == [200, 200, 429]


class TestValidationHandler:
    def test_error_without_location(self):
        exc = RequestValidationError([{"loc": (), "msg": "bad input", "type": "value_error"}])
        resp = asyncio.run(main.validation_handler(None, exc))
        assert resp.status_code == 400
        assert json.loads(resp.body) == {
            "error": "Invalid request",
            "detail": [{"loc": [], "msg": "bad input"}],
        }
