"""
Test suite for the dashboard statistics, sales report and service report.
"""
from datetime import date

import pytest

from app.api.v1.endpoints.reports import service_category
from app.api.v1.endpoints.stats import month_keys, month_label
from app.tests.helpers import USER_ID, create_client, create_service


async def seed_sales(client, headers):
    """One CPF client with TV and cloud, one CNPJ client with a plain service."""
    tv = await create_service(client, headers, name="TV", price=37.99)
    cloud = await create_service(client, headers, name="Cloud 150GB", price=4.99)
    support = await create_service(client, headers, name="Suporte Técnico", price=8.35)

    ana = await create_client(
        client,
        headers,
        service_ids=[tv["id"], cloud["id"]],
        tv_setup={"quantity_premium": 2, "sold_by": USER_ID, "expires_at": "2027-03-01"},
        cloud_setups=[{"service_id": cloud["id"], "expires_at": "2027-01-31", "is_test": True}],
    )
    nexus = await create_client(
        client,
        headers,
        document="11222333000181",
        name="Nexus Telecom LTDA",
        opened_by=USER_ID,
        service_selections=[{"service_id": support["id"], "custom_price": 7.5, "sold_by": USER_ID}],
    )
    return {"tv": tv, "cloud": cloud, "support": support, "ana": ana, "nexus": nexus}


# ------------------------------------------------------------------
# HELPERS
# ------------------------------------------------------------------
def test_month_helpers():
    assert month_keys(date(2025, 11, 1), date(2026, 2, 1)) == ["2025-11", "2025-12", "2026-01", "2026-02"]
    assert month_label("2026-03") == "mar/2026"
    assert month_label("2025-12") == "dez/2025"


@pytest.mark.parametrize("name, expected", [
    ("HubPlay Premium", "HUB"),
    ("Telemedicina e Telepet", "TELE"),
    ("Cloud 150GB", "CLOUD"),
    ("Antivírus", "OTHER"),
])
def test_service_category(name, expected):
    assert service_category(name) == expected


# ------------------------------------------------------------------
# STATS
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_dashboard_stats(client, admin_headers, user_headers):
    await seed_sales(client, admin_headers)

    response = await client.get("/api/v1/stats", headers=user_headers)

    assert response.status_code == 200
    assert response.json() == {
        "total_clients": 2,
        "total_contracts": 0,
        "active_tv_slots": 2,
        "active_cloud_accesses": 0,
    }


@pytest.mark.asyncio
async def test_stats_overview(client, admin_headers, user_headers):
    """
    Test GET /api/v1/stats/overview.

    Validates:
    - Metrics split clients by CPF/CNPJ
    - TV plan summary and usage against the goal
    - One segment per non-TV service
    """
    # Setup
    data = await seed_sales(client, admin_headers)

    # Execute
    response = await client.get("/api/v1/stats/overview", headers=user_headers)

    # Assert: Metrics
    body = response.json()
    assert body["metrics"]["all"] == {"cpf": 1, "cnpj": 1, "total": 2, "last_month": 2}
    assert body["metrics"]["premium"]["total"] == 1
    assert body["metrics"]["essencial"]["total"] == 0

    # Assert: Plans and usage
    plans = {item["plan"]: item for item in body["plan_summary"]}
    assert plans["PREMIUM"] == {"plan": "PREMIUM", "clients": 1, "slots": 2}
    assert body["tv_usage"] == {"goal": 5000, "used": 2, "available": 4998, "percentage": 0.04}

    # Assert: Segments
    keys = [segment["key"] for segment in body["segments"]]
    assert keys[:3] == ["all", "essencial", "premium"]
    assert set(keys[3:]) == {f"service-{data['cloud']['id']}", f"service-{data['support']['id']}"}
    assert body["recent_contracts"] == []


@pytest.mark.asyncio
async def test_sales_report(client, admin_headers, user_headers):
    """
    Test GET /api/v1/stats/sales for the current month.
    """
    # Setup
    data = await seed_sales(client, admin_headers)
    current = date.today().strftime("%Y-%m")

    # Execute
    response = await client.get(
        "/api/v1/stats/sales", params={"start": current, "end": current}, headers=user_headers
    )

    # Assert
    assert response.status_code == 200
    body = response.json()
    assert len(body["points"]) == 1
    point = body["points"][0]
    assert point["month"] == current
    assert point["totals"]["tv-premium"] == 2
    assert point["totals"][f"svc-{data['cloud']['id']}"] == 1
    assert point["totals"][f"svc-{data['support']['id']}"] == 1
    assert body["total_sales"] == 4
    groups = {service["key"]: service["group"] for service in body["services"]}
    assert groups["tv-premium"] == "TV"
    assert groups[f"svc-{data['support']['id']}"] == "SERVICO"

    # Execute: Filter by service name
    response = await client.get(
        "/api/v1/stats/sales",
        params={"start": current, "end": current, "services": "Suporte Técnico"},
        headers=user_headers,
    )
    body = response.json()
    assert body["selected_services"] == ["Suporte Técnico"]
    assert body["total_sales"] == 1


@pytest.mark.asyncio
async def test_sales_report_defaults_to_twelve_months(client, user_headers):
    response = await client.get("/api/v1/stats/sales", headers=user_headers)

    body = response.json()
    assert len(body["points"]) == 12
    assert body["points"][-1]["month"] == date.today().strftime("%Y-%m")
    assert body["total_sales"] == 0


@pytest.mark.asyncio
async def test_sales_report_rejects_bad_months(client, user_headers):
    response = await client.get("/api/v1/stats/sales", params={"start": "2026-13"}, headers=user_headers)
    assert response.status_code == 400

    response = await client.get(
        "/api/v1/stats/sales", params={"start": "2026-05", "end": "2026-01"}, headers=user_headers
    )
    assert response.status_code == 400


# ------------------------------------------------------------------
# SERVICE REPORT
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_services_report_rows(client, admin_headers, user_headers):
    """
    Test GET /api/v1/reports/services.

    Validates:
    - TV profiles are listed per slot, the TV service link is not repeated
    - Cloud accesses and plain services get their categories
    - Vendor names come from the user directory
    """
    # Setup
    await seed_sales(client, admin_headers)

    # Execute
    response = await client.get("/api/v1/reports/services", headers=user_headers)

    # Assert
    assert response.status_code == 200
    body = response.json()
    rows = body["data"]
    assert body["total"] == len(rows)

    ana_rows = [row for row in rows if row["client_name"] == "Ana Souza"]
    assert sorted(row["category"] for row in ana_rows) == ["CLOUD", "CLOUD", "TV", "TV"]
    tv_rows = [row for row in ana_rows if row["category"] == "TV"]
    assert {row["identifier"] for row in tv_rows} == {
        "1a8@nexusrs.com.br · Perfil 1",
        "1a8@nexusrs.com.br · Perfil 2",
    }
    assert tv_rows[0]["service_name"] == "TV PREMIUM"
    assert tv_rows[0]["service_vendor_name"] == "Maria Vendas"
    access_row = next(row for row in ana_rows if row["plan_type"] == "TESTE")
    assert access_row["status"] == "Teste"

    nexus_rows = [row for row in rows if row["client_name"] == "Nexus Telecom LTDA"]
    assert len(nexus_rows) == 1
    assert nexus_rows[0]["category"] == "OTHER"
    assert nexus_rows[0]["service_value"] == 7.5
    assert nexus_rows[0]["client_vendor_name"] == "Maria Vendas"


@pytest.mark.asyncio
async def test_services_report_filters(client, admin_headers, user_headers):
    await seed_sales(client, admin_headers)

    response = await client.get("/api/v1/reports/services", params={"category": "tv"}, headers=user_headers)
    assert {row["category"] for row in response.json()["data"]} == {"TV"}

    response = await client.get("/api/v1/reports/services", params={"service": "suporte,hub"}, headers=user_headers)
    assert [row["service_name"] for row in response.json()["data"]] == ["Suporte Técnico"]

    response = await client.get(
        "/api/v1/reports/services", params={"document": "11.222.333/0001-81"}, headers=user_headers
    )
    assert {row["client_name"] for row in response.json()["data"]} == {"Nexus Telecom LTDA"}

    response = await client.get("/api/v1/reports/services", params={"search": "ninguem"}, headers=user_headers)
    assert response.json() == {"data": [], "total": 0}
