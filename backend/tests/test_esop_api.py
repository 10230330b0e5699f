"""HTTP API for grants and analytics."""

from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from pathlib import Path

from httpx import ASGITransport, AsyncClient

from esop_advisor.config import EsopSettings
from esop_advisor.db.session import Database
from esop_advisor.main import create_app
from esop_advisor.providers import InMemoryQuoteProvider, StaticFxProvider

USER = {"X-User-Id": "user-1"}

CSV = (
    "ticker,company,grantDate,quantity,vested,exercisePrice,currentPrice,status,salePrice,saleDate\n"
    "MSFT,Microsoft,2020-05-15,500,500,220,415.75,Vested,,\n"
    "AMZN,Amazon,2021-09-10,300,300,2100,185.20,Exercised,,\n"
    "TSLA,Tesla,2023-01-01,100,100,180,,Sold,250,2023-06-01\n"
)

RECORDS = [
    {"ticker": "AAPL", "company": "Apple", "grantDate": "2023-02-01", "quantity": "1000", "vested": "0",
     "exercisePrice": "150", "currentPrice": "228.50", "status": "Unvested"},
    {"ticker": "MSFT", "company": "Microsoft", "grantDate": "2020-05-15", "quantity": "500", "vested": "500",
     "exercisePrice": "220", "currentPrice": "415.75", "status": "Vested"},
    {"ticker": "GOOG", "company": "Alphabet", "grantDate": "2023-08-01", "quantity": "200", "vested": "0",
     "exercisePrice": "1800", "currentPrice": "142.30", "status": "Unvested"},
    {"ticker": "AMZN", "company": "Amazon", "grantDate": "2021-09-10", "quantity": "300", "vested": "300",
     "exercisePrice": "2100", "currentPrice": "185.20", "status": "Exercised"},
]


def _client(tmp_path: Path, **settings):
    database = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'esop.db'}")
    app = create_app(
        EsopSettings(fx_service_url=None, **settings),
        database=database,
        quote_provider=InMemoryQuoteProvider(),
        fx_provider=StaticFxProvider(Decimal("83")),
    )

    @asynccontextmanager
    async def _manager():
        async with app.router.lifespan_context(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client

    return _manager


async def test_health(tmp_path: Path):
    async with _client(tmp_path)() as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_analytics_envelope(tmp_path: Path):
    async with _client(tmp_path)() as client:
        response = await client.post("/esop/analytics", json={"records": RECORDS, "asOf": "2024-06-30"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "success"
    data = payload["data"]
    assert data["region"] == "usa"
    assert data["baseCurrency"] == "USD"
    assert data["totals"]["totalCostBasis"] == 740000
    assert data["totals"]["totalCurrentValue"] == 263435
    assert data["totals"]["totalUnrealizedPnL"] == -476565
    assert data["totals"]["totalTax"] == 0
    assert len(data["perRowCalculations"]) == 4
    assert data["perRowCalculations"][0]["cagr"] is None
    assert data["perRowCalculations"][1]["priceSource"] == "csv"
    assert data["meta"]["asOf"] == "2024-06-30"
    assert data["meta"]["taxRatesUsed"]["currency"] == "USD"
    assert [item["year"] for item in data["charts"]["esopsPerYear"]] == [2023, 2020, 2021]
    assert data["meta"]["missingColumns"] == []
    assert data["meta"]["extraColumns"] == []
    assert data["projection"]["principal"] == 263435
    assert data["projection"]["horizonYears"] == 10
    assert len(data["projection"]["series"]) == 10


async def test_validation_failure_uses_error_envelope(tmp_path: Path):
    records = [dict(RECORDS[1], vested="900")]
    async with _client(tmp_path)() as client:
        response = await client.post("/esop/analytics", json={"records": records})

    assert response.status_code == 400
    payload = response.json()
    assert payload["status"] == "error"
    assert payload["code"] == "VALIDATION_ERROR"
    assert payload["errors"] == ["Row 1: vested (900) cannot exceed quantity (500)"]


async def test_mixed_region_batch_is_rejected(tmp_path: Path):
    records = [RECORDS[1], dict(RECORDS[3], ticker="INFY.NS")]
    async with _client(tmp_path)() as client:
        response = await client.post("/esop/analytics", json={"records": records})

    assert response.status_code == 400
    assert response.json()["code"] == "MIXED_REGIONS"


async def test_validate_endpoint_reports_without_raising(tmp_path: Path):
    async with _client(tmp_path)() as client:
        response = await client.post("/esop/grants/validate", json={"records": []})

    assert response.status_code == 200
    payload = response.json()
    assert payload["isValid"] is False
    assert payload["errors"] == ["No records provided for validation"]


async def test_upload_list_analyse_and_delete(tmp_path: Path):
    async with _client(tmp_path)() as client:
        upload = await client.post(
            "/esop/grants/upload",
            headers=USER,
            files={"file": ("grants.csv", CSV.encode("utf-8"), "text/csv")},
        )
        assert upload.status_code == 201
        assert upload.json()["stored"] == 3
        assert upload.json()["missingColumns"] == [
            "vestingStartDate",
            "vestingEndDate",
            "strikePrice",
            "type",
            "notes",
        ]
        assert upload.json()["extraColumns"] == []

        listing = await client.get("/esop/grants", headers=USER)
        assert listing.json()["count"] == 3
        assert listing.json()["grants"][2]["salePrice"] == 250

        analytics = await client.get("/esop/analytics", headers=USER, params={"asOf": "2024-06-30"})
        assert analytics.status_code == 200
        totals = analytics.json()["data"]["totals"]
        assert totals["totalRealizedPnL"] == 7000
        assert totals["totalTax"] == 1680

        other = await client.get("/esop/grants", headers={"X-User-Id": "user-2"})
        assert other.json()["count"] == 0

        deleted = await client.delete("/esop/grants", headers=USER)
        assert deleted.status_code == 204

        missing = await client.get("/esop/analytics", headers=USER)
        assert missing.status_code == 404
        assert missing.json()["code"] == "NOT_FOUND_ERROR"


async def test_invalid_upload_stores_nothing(tmp_path: Path):
    bad = CSV.replace("MSFT,Microsoft,2020-05-15,500,500", "MSFT,Microsoft,2020-05-15,500,700")
    async with _client(tmp_path)() as client:
        upload = await client.post(
            "/esop/grants/upload",
            headers=USER,
            files={"file": ("grants.csv", bad.encode("utf-8"), "text/csv")},
        )
        listing = await client.get("/esop/grants", headers=USER)

    assert upload.status_code == 400
    assert upload.json()["errors"] == ["Row 1: vested (700) cannot exceed quantity (500)"]
    assert listing.json()["count"] == 0


async def test_user_context_is_required(tmp_path: Path):
    async with _client(tmp_path)() as client:
        response = await client.get("/esop/grants")

    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_ERROR"


async def test_internal_token_guards_routes(tmp_path: Path):
    async with _client(tmp_path, internal_auth_token="s3cret")() as client:
        denied = await client.post("/esop/grants/validate", json={"records": RECORDS})
        allowed = await client.post(
            "/esop/grants/validate", json={"records": RECORDS}, headers={"X-Internal-Token": "s3cret"}
        )

    assert denied.status_code == 401
    assert allowed.status_code == 200


async def test_export_csv(tmp_path: Path):
    async with _client(tmp_path)() as client:
        response = await client.post(
            "/esop/analytics/export",
            params={"format": "csv"},
            json={"records": RECORDS, "asOf": "2024-06-30"},
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.splitlines()
    assert lines[0].startswith("ticker,company,status")
    assert len(lines) == 5


async def test_upload_analytics_without_storing(tmp_path: Path):
    async with _client(tmp_path)() as client:
        response = await client.post(
            "/esop/analytics/upload",
            params={"asOf": "2024-06-30"},
            files={"file": ("grants.csv", CSV.encode("utf-8"), "text/csv")},
        )
        listing = await client.get("/esop/grants", headers=USER)

    assert response.status_code == 200
    assert response.json()["data"]["totals"]["totalRealizedPnL"] == 7000
    assert listing.json()["count"] == 0


async def test_upload_analytics_reports_header_mismatch(tmp_path: Path):
    csv = (
        "ticker,company,grantDate,quantity,vested,exercisePrice,currentPrice,status,broker\n"
        "MSFT,Microsoft,2020-05-15,500,500,220,415.75,Vested,Fidelity\n"
    )
    async with _client(tmp_path)() as client:
        response = await client.post(
            "/esop/analytics/upload",
            params={"asOf": "2024-06-30"},
            files={"file": ("grants.csv", csv.encode("utf-8"), "text/csv")},
        )

    assert response.status_code == 200
    meta = response.json()["data"]["meta"]
    assert meta["extraColumns"] == ["broker"]
    assert meta["missingColumns"] == [
        "vestingStartDate",
        "vestingEndDate",
        "strikePrice",
        "type",
        "salePrice",
        "saleDate",
        "notes",
    ]


async def test_projection_options_on_posted_and_stored_analytics(tmp_path: Path):
    async with _client(tmp_path)() as client:
        posted = await client.post(
            "/esop/analytics",
            json={
                "records": RECORDS,
                "asOf": "2024-06-30",
                "inflationRate": 0,
                "expectedCAGR": 0,
                "monthlyContribution": 100,
                "projectionYears": 2,
            },
        )
        await client.post(
            "/esop/grants/upload",
            headers=USER,
            files={"file": ("grants.csv", CSV.encode("utf-8"), "text/csv")},
        )
        stored = await client.get(
            "/esop/analytics",
            headers=USER,
            params={"asOf": "2024-06-30", "expectedCAGR": "0.12", "projectionYears": "3"},
        )

    assert posted.status_code == 200
    projection = posted.json()["data"]["projection"]
    assert projection["expectedCAGR"] == 0
    assert projection["series"] == [
        {"year": 1, "value": 264635, "realValue": 264635},
        {"year": 2, "value": 265835, "realValue": 265835},
    ]
    assert stored.status_code == 200
    stored_projection = stored.json()["data"]["projection"]
    assert stored_projection["expectedCAGR"] == 0.12
    assert [point["year"] for point in stored_projection["series"]] == [1, 2, 3]
