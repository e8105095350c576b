"""
Test suite for the Cloud access endpoints.
"""
import pytest

from app.tests.helpers import create_client, create_service


async def client_with_access(client, headers, service_name="Cloud 150GB", expires_at="2027-01-31", **extra):
    service = await create_service(client, headers, name=service_name)
    created = await create_client(
        client,
        headers,
        service_ids=[service["id"]],
        cloud_setups=[{"service_id": service["id"], "expires_at": expires_at}],
        **extra,
    )
    return created, created["cloud_accesses"][0]


@pytest.mark.asyncio
async def test_list_cloud_accesses_ordered_by_expiration(client, admin_headers, user_headers):
    """
    Test GET /api/v1/cloud/accesses.

    Validates:
    - Soonest expiration first
    - Each item carries its client and service
    """
    # Setup: Two clients with different expirations
    await client_with_access(client, admin_headers, "Cloud 150GB", "2027-05-01")
    await client_with_access(
        client, admin_headers, "HubPlay Premium", "2026-12-01",
        document="11222333000181", name="Nexus Telecom LTDA",
    )

    # Execute
    response = await client.get("/api/v1/cloud/accesses", headers=user_headers)

    # Assert
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [item["expires_at"] for item in body["data"]] == ["2026-12-01", "2027-05-01"]
    assert body["data"][0]["client"]["name"] == "Nexus Telecom LTDA"
    assert body["data"][0]["service"]["name"] == "HubPlay Premium"


@pytest.mark.asyncio
async def test_list_cloud_accesses_filters(client, admin_headers):
    await client_with_access(client, admin_headers, "Cloud 150GB", "2027-05-01")
    await client_with_access(
        client, admin_headers, "HubPlay Premium", "2026-12-01",
        document="11222333000181", name="Nexus Telecom LTDA",
    )

    # Exact service name, case-insensitive
    response = await client.get("/api/v1/cloud/accesses", params={"service": "hubplay premium"}, headers=admin_headers)
    assert [item["service"]["name"] for item in response.json()["data"]] == ["HubPlay Premium"]

    # Partial names do not match the service filter
    response = await client.get("/api/v1/cloud/accesses", params={"service": "hubplay"}, headers=admin_headers)
    assert response.json()["total"] == 0

    # Formatted document
    response = await client.get("/api/v1/cloud/accesses", params={"document": "529.982"}, headers=admin_headers)
    assert [item["client"]["name"] for item in response.json()["data"]] == ["Ana Souza"]

    # Free text over client and service
    response = await client.get("/api/v1/cloud/accesses", params={"search": "nexus"}, headers=admin_headers)
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_update_cloud_access(client, admin_headers, user_headers):
    """
    Test PATCH /api/v1/cloud/accesses/{id}.
    """
    # Setup
    _, access = await client_with_access(client, admin_headers)
    url = f"/api/v1/cloud/accesses/{access['id']}"

    # Execute + Assert: Empty body
    response = await client.patch(url, json={}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Provide at least one field to update"

    # Execute + Assert: Extend and mark as test
    response = await client.patch(
        url, json={"expires_at": "2027-06-30", "is_test": True, "notes": " teste "}, headers=user_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["expires_at"] == "2027-06-30"
    assert body["is_test"] is True
    assert body["notes"] == "teste"
    assert body["service"]["name"] == "Cloud 150GB"


@pytest.mark.asyncio
async def test_update_missing_cloud_access(client, admin_headers):
    response = await client.patch(
        "/api/v1/cloud/accesses/00000000-0000-0000-0000-000000000001",
        json={"notes": "x"},
        headers=admin_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_cloud_access_is_admin_only(client, admin_headers, user_headers):
    _, access = await client_with_access(client, admin_headers)
    url = f"/api/v1/cloud/accesses/{access['id']}"

    response = await client.delete(url, headers=user_headers)
    assert response.status_code == 403

    response = await client.delete(url, headers=admin_headers)
    assert response.status_code == 204

    response = await client.get("/api/v1/cloud/accesses", headers=admin_headers)
    assert response.json()["total"] == 0
