"""
Test suite for the services catalog and client phone lines.
"""
import pytest

from app.tests.helpers import create_client, create_service


@pytest.mark.asyncio
async def test_create_service_parses_brazilian_price(client, admin_headers):
    """
    Test POST /api/v1/services with a "1.234,56" price string.
    """
    # Execute
    data = await create_service(client, admin_headers, name="  HubPlay Premium ", price="1.234,56")

    # Assert: Name trimmed, price normalized
    assert data["name"] == "HubPlay Premium"
    assert data["price"] == 1234.56
    assert data["allow_custom_price"] is False


@pytest.mark.asyncio
async def test_create_service_rejects_negative_price(client, admin_headers):
    response = await client.post(
        "/api/v1/services", json={"name": "Cloud 150GB", "price": -1}, headers=admin_headers
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_service_duplicate_name(client, admin_headers):
    await create_service(client, admin_headers, name="Cloud 150GB")

    response = await client.post(
        "/api/v1/services", json={"name": "Cloud 150GB", "price": 5}, headers=admin_headers
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_services_are_admin_managed(client, admin_headers, user_headers):
    # Regular users can read the catalog but not change it
    response = await client.post(
        "/api/v1/services", json={"name": "Cloud 150GB", "price": 5}, headers=user_headers
    )
    assert response.status_code == 403

    await create_service(client, admin_headers, name="TV", price=37.99)
    await create_service(client, admin_headers, name="Cloud 150GB", price=4.99)

    response = await client.get("/api/v1/services", headers=user_headers)
    assert response.status_code == 200
    assert [item["name"] for item in response.json()] == ["Cloud 150GB", "TV"]


@pytest.mark.asyncio
async def test_update_and_delete_service(client, admin_headers):
    service = await create_service(client, admin_headers)

    response = await client.put(f"/api/v1/services/{service['id']}", json={}, headers=admin_headers)
    assert response.status_code == 400

    response = await client.put(
        f"/api/v1/services/{service['id']}", json={"price": "5,49", "allow_custom_price": True}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["price"] == 5.49
    assert response.json()["allow_custom_price"] is True

    # Nulls for required columns are skipped
    response = await client.put(
        f"/api/v1/services/{service['id']}", json={"name": None, "price": None}, headers=admin_headers
    )
    assert response.status_code == 400

    response = await client.put(
        f"/api/v1/services/{service['id']}",
        json={"name": None, "allow_custom_price": None, "description": "Backup"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["name"] == service["name"]
    assert response.json()["price"] == 5.49
    assert response.json()["allow_custom_price"] is True

    response = await client.delete(f"/api/v1/services/{service['id']}", headers=admin_headers)
    assert response.status_code == 204

    response = await client.delete(f"/api/v1/services/{service['id']}", headers=admin_headers)
    assert response.status_code == 404


# ------------------------------------------------------------------
# LINES
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_line_crud(client, user_headers):
    """
    Test create, filter, update and delete of phone lines.
    """
    # Setup
    owner = await create_client(client, user_headers)

    # Execute: Create a dependent line
    response = await client.post(
        "/api/v1/lines",
        json={"client_id": owner["id"], "phone_number": "51988887777", "type": "DEPENDENTE"},
        headers=user_headers,
    )
    assert response.status_code == 201
    line = response.json()
    assert line["type"] == "DEPENDENTE"

    # Execute: Filter by client
    response = await client.get("/api/v1/lines", params={"client_id": owner["id"]}, headers=user_headers)
    assert [item["id"] for item in response.json()] == [line["id"]]

    # Execute: Null phone is ignored, nickname is written
    response = await client.put(
        f"/api/v1/lines/{line['id']}",
        json={"phone_number": None, "nickname": "Filho"},
        headers=user_headers,
    )
    assert response.status_code == 200
    assert response.json()["phone_number"] == "51988887777"
    assert response.json()["nickname"] == "Filho"

    # Execute: Delete
    response = await client.delete(f"/api/v1/lines/{line['id']}", headers=user_headers)
    assert response.status_code == 204
    response = await client.get("/api/v1/lines", headers=user_headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_line_for_unknown_client(client, user_headers):
    response = await client.post(
        "/api/v1/lines",
        json={"client_id": "00000000-0000-0000-0000-000000000001", "phone_number": "51988887777"},
        headers=user_headers,
    )

    assert response.status_code == 404
