# tests/routers/test_api_errors.py
"""
Tests for the global exception handlers.

Test Methodology:
- Request validation failures are produced with malformed bodies
- Service exceptions are produced with stub engines injected through
  app.dependency_overrides, since valid request bodies never reach them
- Every error response uses the ErrorDetail shape {error, message, details}
"""

import pytest

from portfolio_dashboard.dependencies import get_equity_engine
from portfolio_dashboard.main import app
from portfolio_dashboard.services.circuit_breaker import CircuitBreakerOpen
from portfolio_dashboard.services.exceptions import (
    PriceDataError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    TickerNotFoundError,
    ValidationError,
)

SERIES_BODY = {
    "transactions": [
        {"date": "2024-03-11", "ticker": "AAPL", "type": "BUY", "quantity": "1", "price": "120"},
    ],
}


class RaisingEngine:
    """Engine stand-in whose series build raises the given exception."""

    def __init__(self, error: Exception):
        self.error = error

    def build_series(self, transactions):
        raise self.error


@pytest.fixture
def raise_from_engine(client):
    def _install(error: Exception) -> None:
        app.dependency_overrides[get_equity_engine] = lambda: RaisingEngine(error)

    return _install


# =============================================================================
# REQUEST VALIDATION (422)
# =============================================================================

class TestRequestValidation:
    """Tests for the 422 handler."""

    def test_shape(self, client):
        response = client.post("/equity/series", json={"transactions": [{"ticker": "AAPL"}]})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "ValidationError"
        assert body["message"] == "Request validation failed"
        fields = {d["field"] for d in body["details"]}
        assert "body.transactions.0.date" in fields
        assert all({"field", "message", "type"} <= set(d) for d in body["details"])

    def test_buy_without_price(self, client):
        response = client.post("/equity/series", json={
            "transactions": [{"date": "2024-03-11", "ticker": "AAPL", "type": "BUY", "quantity": "1"}],
        })

        assert response.status_code == 422
        messages = " ".join(d["message"] for d in response.json()["details"])
        assert "price is required for BUY transactions" in messages

    @pytest.mark.parametrize("override", [
        {"type": "TRANSFER"},
        {"quantity": "-1"},
        {"price": "0"},
        {"fees": "-0.5"},
        {"ticker": "AA PL"},
        {"date": "2024-13-01"},
    ])
    def test_invalid_transaction_fields(self, client, override):
        transaction = {**SERIES_BODY["transactions"][0], **override}

        response = client.post("/equity/series", json={"transactions": [transaction]})

        assert response.status_code == 422

    def test_lowercase_type_accepted(self, client):
        transaction = {**SERIES_BODY["transactions"][0], "type": "sell"}

        response = client.post("/equity/series", json={"transactions": [transaction]})

        assert response.status_code == 200


# =============================================================================
# SERVICE ERRORS
# =============================================================================

class TestServiceErrors:
    """Tests for the ServiceError handlers."""

    def test_validation_error_is_400(self, client, raise_from_engine):
        raise_from_engine(ValidationError("quantity must be positive", field="quantity"))

        response = client.post("/equity/series", json=SERIES_BODY)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "ValidationError"
        assert body["message"] == "quantity must be positive"
        assert body["details"] == {"field": "quantity"}

    def test_ticker_not_found_is_404(self, client, raise_from_engine):
        raise_from_engine(TickerNotFoundError("ZZZZ", "yahoo"))

        response = client.post("/equity/series", json=SERIES_BODY)

        assert response.status_code == 404
        assert response.json()["details"] == {"ticker": "ZZZZ"}

    def test_rate_limit_is_429(self, client, raise_from_engine):
        raise_from_engine(RateLimitError("yahoo", retry_after=30))

        response = client.post("/equity/series", json=SERIES_BODY)

        assert response.status_code == 429
        assert response.json()["details"] == {"retry_after": 30}

    def test_provider_unavailable_is_503(self, client, raise_from_engine):
        raise_from_engine(ProviderUnavailableError("yahoo", "connection reset"))

        response = client.post("/equity/series", json=SERIES_BODY)

        assert response.status_code == 503
        assert response.json()["error"] == "ProviderUnavailableError"

    def test_circuit_open_sets_retry_after(self, client, raise_from_engine):
        raise_from_engine(CircuitBreakerOpen("yahoo_finance", time_remaining=41.5))

        response = client.post("/equity/series", json=SERIES_BODY)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "42"
        assert response.json()["details"] == {"breaker_name": "yahoo_finance", "retry_after": 42}

    def test_price_data_error_is_503(self, client, raise_from_engine):
        raise_from_engine(PriceDataError("price directory not found", source="/data/prices"))

        response = client.post("/equity/series", json=SERIES_BODY)

        assert response.status_code == 503
        assert response.json()["details"] == {"source": "/data/prices"}

    def test_generic_service_error_is_500(self, client, raise_from_engine):
        raise_from_engine(ServiceError("unexpected state"))

        response = client.post("/equity/series", json=SERIES_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "ServiceError"


# =============================================================================
# FRAMEWORK ERRORS
# =============================================================================

class TestHttpErrors:
    """Tests for framework HTTP errors in the ErrorDetail shape."""

    def test_unknown_route(self, client):
        response = client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"error": "HTTPException", "message": "Not Found", "details": None}

    def test_wrong_method(self, client):
        response = client.get("/equity/series")

        assert response.status_code == 405
        assert response.json()["error"] == "HTTPException"
