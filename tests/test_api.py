"""Tests for the FastAPI service."""

import pytest
from fastapi.testclient import TestClient

from price_estimator.api import create_app
from price_estimator.config import Settings


@pytest.fixture
def client(settings: Settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


class TestHealth:
    """Test the health check."""

    def test_health(self, client: TestClient):
        response = client.get("/health")
        body = response.json()

        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["dataset_size"] == 60
        assert body["strategies"] == {"heuristic": True, "regression": True, "neural": False}
        assert body["active_model_id"] is None


class TestEstimate:
    """Test price estimates."""

    def test_default_strategy_is_heuristic(self, client: TestClient, reference_property: dict):
        response = client.post("/api/v1/estimate", json=reference_property)
        body = response.json()

        assert response.status_code == 200
        assert body["strategy"] == "heuristic"
        assert body["estimated_price"] == pytest.approx(423500.0)
        assert body["formatted_price"] == "$423,500.00"

    def test_regression(self, client: TestClient, reference_property: dict):
        response = client.post("/api/v1/estimate", params={"strategy": "regression"}, json=reference_property)

        assert response.status_code == 200
        assert response.json()["estimated_price"] > 0

    def test_regression_needs_property_type(self, client: TestClient, reference_property: dict):
        payload = {k: v for k, v in reference_property.items() if k != "property_type"}
        response = client.post("/api/v1/estimate", params={"strategy": "regression"}, json=payload)

        assert response.status_code == 422
        assert "property_type" in response.json()["error"]

    def test_regression_location_ignores_case(self, client: TestClient, reference_property: dict):
        params = {"strategy": "regression"}
        expected = client.post("/api/v1/estimate", params=params, json=reference_property).json()
        response = client.post("/api/v1/estimate", params=params, json=dict(reference_property, location="suburban"))

        assert response.status_code == 200
        assert response.json()["estimated_price"] == pytest.approx(expected["estimated_price"])

    def test_regression_unknown_location(self, client: TestClient, reference_property: dict):
        response = client.post(
            "/api/v1/estimate", params={"strategy": "regression"}, json=dict(reference_property, location="Mars")
        )

        assert response.status_code == 422
        assert "Unknown location" in response.json()["error"]

    def test_unknown_strategy(self, client: TestClient, reference_property: dict):
        response = client.post("/api/v1/estimate", params={"strategy": "magic"}, json=reference_property)

        assert response.status_code == 400
        assert response.json()["status_code"] == 400

    def test_untrained_neural_network(self, client: TestClient, reference_property: dict):
        response = client.post("/api/v1/estimate", params={"strategy": "neural"}, json=reference_property)
        assert response.status_code == 503

    def test_negative_area(self, client: TestClient, reference_property: dict):
        response = client.post("/api/v1/estimate", json=dict(reference_property, area=-10))
        assert response.status_code == 422

    def test_quarter_bathroom(self, client: TestClient, reference_property: dict):
        response = client.post("/api/v1/estimate", json=dict(reference_property, bathrooms=1.25))
        assert response.status_code == 422


class TestModels:
    """Test training and managing stored models."""

    def test_train_saves_and_activates(self, client: TestClient):
        response = client.post("/api/v1/models/train", json={"name": "Test model"})
        body = response.json()

        assert response.status_code == 200
        assert body["saved"] is True
        assert body["warning"] is None
        assert body["record"]["name"] == "Test model"
        assert body["record"]["id"].startswith("model_")
        assert 0.0 <= body["accuracy"] <= 1.0

        health = client.get("/health").json()
        assert health["active_model_id"] == body["record"]["id"]

    def test_train_without_body(self, client: TestClient):
        response = client.post("/api/v1/models/train")
        assert response.json()["saved"] is True

    def test_unknown_feature(self, client: TestClient):
        response = client.post("/api/v1/models/train", json={"features": ["garden_size"]})

        assert response.status_code == 500
        assert response.json()["error"] == "Error training model. Please try again."

    def test_list_and_get(self, client: TestClient):
        first = client.post("/api/v1/models/train", json={"name": "first"}).json()["record"]
        second = client.post("/api/v1/models/train", json={"name": "second"}).json()["record"]

        listed = client.get("/api/v1/models").json()
        assert [record["id"] for record in listed] == [second["id"], first["id"]]

        fetched = client.get(f"/api/v1/models/{first['id']}").json()
        assert fetched["name"] == "first"

    def test_get_unknown(self, client: TestClient):
        response = client.get("/api/v1/models/model_missing")
        assert response.status_code == 404

    def test_activate(self, client: TestClient):
        first = client.post("/api/v1/models/train", json={"name": "first"}).json()["record"]
        client.post("/api/v1/models/train", json={"name": "second"})

        response = client.post(f"/api/v1/models/{first['id']}/activate")

        assert response.status_code == 200
        assert client.get("/health").json()["active_model_id"] == first["id"]

    def test_delete_active_model(self, client: TestClient, reference_property: dict):
        record = client.post("/api/v1/models/train").json()["record"]

        response = client.delete(f"/api/v1/models/{record['id']}")
        assert response.status_code == 204
        assert client.get(f"/api/v1/models/{record['id']}").status_code == 404

        estimate = client.post("/api/v1/estimate", params={"strategy": "regression"}, json=reference_property)
        assert estimate.status_code == 503

    def test_delete_unknown_is_noop(self, client: TestClient):
        response = client.delete("/api/v1/models/model_missing")
        assert response.status_code == 204

    def test_stored_model_loaded_on_startup(self, settings: Settings):
        with TestClient(create_app(settings)) as first_client:
            record = first_client.post("/api/v1/models/train").json()["record"]

        with TestClient(create_app(settings)) as second_client:
            assert second_client.get("/health").json()["active_model_id"] == record["id"]


class TestStartupSettings:
    """Test startup under non-default settings."""

    def test_strict_solver_regression_unavailable(self, tmp_path, reference_property: dict):
        settings = Settings(data_dir=tmp_path, train_neural_on_startup=False, max_inversion_dimension=2)

        with TestClient(create_app(settings)) as client:
            health = client.get("/health").json()
            assert health["strategies"]["regression"] is False

            response = client.post("/api/v1/models/train")
            assert response.status_code == 500

    def test_unknown_configured_feature(self, tmp_path, reference_property: dict):
        settings = Settings(data_dir=tmp_path, train_neural_on_startup=False, regression_features=["garden_size"])

        with TestClient(create_app(settings)) as client:
            assert client.get("/health").json()["strategies"]["regression"] is False

            response = client.post("/api/v1/estimate", json=reference_property)
            assert response.status_code == 200

    def test_single_feature_fits(self, tmp_path, reference_property: dict):
        settings = Settings(
            data_dir=tmp_path,
            train_neural_on_startup=False,
            max_inversion_dimension=2,
            regression_features=["area"],
        )

        with TestClient(create_app(settings)) as client:
            response = client.post("/api/v1/estimate", params={"strategy": "regression"}, json=reference_property)
            assert response.status_code == 200


class TestMarketTrends:
    """Test the dataset summary endpoint."""

    def test_market_trends(self, client: TestClient):
        response = client.get("/api/v1/market-trends")
        body = response.json()

        assert response.status_code == 200
        assert body["total_properties"] == 60
        assert body["hottest_area"] in {"Downtown", "Suburban", "Rural"}
