"""Tests for the REST API."""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from core.indicators import enrich_series
from core.models.candle import Candle
from core.signal_scorer import SignalScorer
from core.stream_enricher import StreamEnricher

from app.config import Settings
from app.main import create_app
from app.services.market_session import MarketSession


class NullStream:
    async def start(self):
        pass

    async def stop(self):
        pass


@pytest.fixture
def session():
    provider = MagicMock()
    provider.fetch = AsyncMock(
        side_effect=lambda symbol, *args: enrich_series(
            [Candle(label=f"{symbol}{i:03d}", close=100.0 + i) for i in range(60)]
        )
    )
    return MarketSession(
        provider,
        enricher=StreamEnricher(scorer=SignalScorer(jitter=False)),
        stream_factory=lambda *args: NullStream(),
        settings=Settings(history_limit=60),
        rng=random.Random(0),
    )


@pytest.fixture
def client(session):
    return TestClient(create_app(session))


class TestBeforeSelection:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_status_without_market(self, client):
        data = client.get("/api/status").json()
        assert data["symbol"] is None
        assert data["candles"] == 0
        assert data["streaming"] is False

    @pytest.mark.parametrize(
        "path", ["/api/state", "/api/series", "/api/indicators", "/api/prediction", "/api/backtest"]
    )
    def test_state_endpoints_conflict(self, client, path):
        assert client.get(path).status_code == 409


class TestSession:
    """Tests for market selection and state publication."""

    @pytest.fixture
    def selected(self, client):
        response = client.post("/api/session", json={"symbol": "eth", "interval": "4h", "market_type": "SPOT"})
        assert response.status_code == 200
        return client

    def test_select(self, selected):
        data = selected.get("/api/status").json()
        assert data["symbol"] == "ETH"
        assert data["interval"] == "4h"
        assert data["market_type"] == "SPOT"
        assert data["source"] == "LIVE"
        assert data["streaming"] is True
        assert data["candles"] == 60

    def test_invalid_interval(self, client):
        response = client.post("/api/session", json={"symbol": "BTC", "interval": "2h"})
        assert response.status_code == 422

    def test_series(self, selected):
        series = selected.get("/api/series").json()
        assert len(series) == 60
        assert series[-1]["sma50"] is not None
        assert series[0]["sma20"] is None

    def test_indicators_and_prediction(self, selected):
        indicators = selected.get("/api/indicators").json()
        prediction = selected.get("/api/prediction").json()

        assert indicators["trend"] == "UP"
        assert 0 <= indicators["rsi"] <= 100
        assert prediction["signal"] in ("BUY", "SELL", "HOLD")
        assert 0 <= prediction["confidence"] <= 98

    def test_backtest(self, selected):
        backtest = selected.get("/api/backtest").json()
        assert backtest["initial_balance"] == 10000.0
        assert len(backtest["equity_curve"]) == 10

    def test_state(self, selected):
        state = selected.get("/api/state").json()
        assert state["symbol"] == "ETH"
        assert len(state["onchain"]) == 5

    def test_insight_context(self, selected):
        data = selected.get("/api/insight-context").json()
        assert data["symbol"] == "ETH"
        assert "Timeframe: 4h" in data["context"]


class TestImport:
    """Tests for CSV import."""

    def test_import(self, client, session):
        body = "Date,Price\n" + "".join(f"2025-01-{i + 1:02d},{100 + i}\n" for i in range(20))
        response = client.post("/api/import?name=test.csv", content=body)

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "IMPORTED"
        assert data["symbol"] == "test.csv"
        assert data["streaming"] is False
        assert data["candles"] == 20

    def test_import_bad_csv(self, client):
        response = client.post("/api/import", content="foo,bar\n1,2\n")

        assert response.status_code == 400
        assert response.json()["detail"] == "Import Failed: Missing Date or Price columns."

    def test_import_no_rows(self, client):
        response = client.post("/api/import", content="date,price\nx,notanumber\n")
        assert response.status_code == 400


class TestScanner:
    def test_scanner(self, client):
        rows = client.get("/api/scanner").json()

        assert [r["symbol"] for r in rows] == ["BTC", "ETH", "SOL", "BNB", "XRP"]
        assert all(r["trend"] == "UP" for r in rows)
