"""
Test suite for the Clients endpoints.
Covers creation with service/cloud setup, ownership checks, search filters,
partial updates, CNPJ lookup and deletion.
"""
import pytest

from app.tests.helpers import create_client, create_service


@pytest.mark.asyncio
async def test_create_client_normalizes_document(client, admin_headers):
    """
    Test POST /api/v1/clients with a formatted CPF.

    Validates:
    - Document is stored as digits only
    - opened_by defaults to the creator
    - New client starts without services or TV profiles
    """
    # Execute: Create client with punctuation in the document
    data = await create_client(client, admin_headers, document="529.982.247-25")

    # Assert: Normalized fields
    assert data["document"] == "52998224725"
    assert data["name"] == "Ana Souza"
    assert data["cost_center"] == "NEXUS"
    assert data["opened_by"] == "11111111-1111-1111-1111-111111111111"
    assert data["services"] == []
    assert data["tv_assignments"] == []


@pytest.mark.asyncio
async def test_create_client_rejects_invalid_document(client, admin_headers):
    response = await client.post(
        "/api/v1/clients",
        json={"name": "Ana Souza", "email": "ana@example.com", "document": "123.456", "cost_center": "NEXUS"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Provide a valid CPF or CNPJ"


@pytest.mark.asyncio
async def test_create_client_duplicate_document_conflicts(client, admin_headers):
    # Setup: First client owns the document
    await create_client(client, admin_headers)

    # Execute: Same document with different formatting
    response = await client.post(
        "/api/v1/clients",
        json={"name": "Outra Pessoa", "email": "outra@example.com", "document": "529.982.247-25", "cost_center": "LUXUS"},
        headers=admin_headers,
    )

    # Assert: Conflict
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_create_client_requires_authentication(client):
    response = await client.post(
        "/api/v1/clients",
        json={"name": "Ana Souza", "email": "ana@example.com", "document": "52998224725", "cost_center": "NEXUS"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_client_with_cloud_service_requires_expiration(client, admin_headers):
    """
    Test that selecting a cloud service without an expiration date fails
    and leaves no half-created client behind.
    """
    # Setup: Cloud service in the catalog
    service = await create_service(client, admin_headers, name="Cloud 150GB")

    # Execute: Select it without cloud_setups
    response = await client.post(
        "/api/v1/clients",
        json={
            "name": "Ana Souza",
            "email": "ana@example.com",
            "document": "52998224725",
            "cost_center": "NEXUS",
            "service_ids": [service["id"]],
        },
        headers=admin_headers,
    )

    # Assert: Rejected and rolled back
    assert response.status_code == 400
    assert "Cloud 150GB" in response.json()["detail"]

    listing = await client.get("/api/v1/clients", headers=admin_headers)
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_create_client_with_cloud_access(client, admin_headers):
    # Setup: Cloud service in the catalog
    service = await create_service(client, admin_headers, name="Cloud 150GB")

    # Execute: Create client with a cloud setup
    data = await create_client(
        client,
        admin_headers,
        service_selections=[{"service_id": service["id"], "custom_price": 3.5, "sold_by": "Maria Vendas"}],
        cloud_setups=[{"service_id": service["id"], "expires_at": "2027-01-31", "notes": " anual "}],
    )

    # Assert: Service link with negotiated price and the cloud access
    assert len(data["services"]) == 1
    assert data["services"][0]["custom_price"] == 3.5
    assert data["services"][0]["sold_by"] == "Maria Vendas"
    assert len(data["cloud_accesses"]) == 1
    access = data["cloud_accesses"][0]
    assert access["expires_at"] == "2027-01-31"
    assert access["notes"] == "anual"
    assert access["is_test"] is False


@pytest.mark.asyncio
async def test_create_client_with_unknown_service(client, admin_headers):
    response = await client.post(
        "/api/v1/clients",
        json={
            "name": "Ana Souza",
            "email": "ana@example.com",
            "document": "52998224725",
            "cost_center": "NEXUS",
            "service_ids": ["00000000-0000-0000-0000-000000000001"],
        },
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Unknown service(s)")


@pytest.mark.asyncio
async def test_create_client_with_tv_service_assigns_slots(client, admin_headers):
    """
    Test that a TV service with a complete tv_setup hands out slots from
    the first standard account.
    """
    # Setup: TV service in the catalog
    tv = await create_service(client, admin_headers, name="TV", price=37.99)

    # Execute: Create client asking for two essencial profiles
    data = await create_client(
        client,
        admin_headers,
        service_ids=[tv["id"]],
        tv_setup={
            "quantity_essencial": 2,
            "sold_by": "Maria Vendas",
            "expires_at": "2027-03-01",
        },
    )

    # Assert: Two labelled profiles in the 1a8 account
    assignments = data["tv_assignments"]
    assert len(assignments) == 2
    assert [item["profile_label"] for item in assignments] == ["Perfil 1", "Perfil 2"]
    assert {item["email"] for item in assignments} == {"1a8@nexusrs.com.br"}
    assert [item["slot_number"] for item in assignments] == [1, 2]
    for item in assignments:
        assert item["status"] == "ASSIGNED"
        assert item["plan_type"] == "ESSENCIAL"
        assert item["sold_by"] == "Maria Vendas"
        assert item["expires_at"] == "2027-03-01"
        assert len(item["password"]) == 4


@pytest.mark.asyncio
async def test_update_client_reduces_tv_quantity(client, admin_headers):
    # Setup: Client with three profiles
    tv = await create_service(client, admin_headers, name="TV", price=37.99)
    created = await create_client(
        client,
        admin_headers,
        service_ids=[tv["id"]],
        tv_setup={"quantity_essencial": 3, "sold_by": "Maria Vendas", "expires_at": "2027-03-01"},
    )

    # Execute: Lower the quantity to one without resending the services
    response = await client.put(
        f"/api/v1/clients/{created['id']}",
        json={"tv_setup": {"quantity_essencial": 1, "sold_by": "Maria Vendas", "expires_at": "2027-06-01"}},
        headers=admin_headers,
    )

    # Assert: One profile left, with the new expiration
    assert response.status_code == 200
    assignments = response.json()["tv_assignments"]
    assert len(assignments) == 1
    assert assignments[0]["expires_at"] == "2027-06-01"
    assert response.json()["services"][0]["name"] == "TV"


@pytest.mark.asyncio
async def test_removing_tv_service_releases_slots(client, admin_headers):
    # Setup: Client with one TV profile
    tv = await create_service(client, admin_headers, name="TV", price=37.99)
    created = await create_client(
        client,
        admin_headers,
        service_ids=[tv["id"]],
        tv_setup={"quantity": 1, "sold_by": "Maria Vendas", "expires_at": "2027-03-01"},
    )

    # Execute: Drop every service
    response = await client.put(
        f"/api/v1/clients/{created['id']}",
        json={"service_ids": []},
        headers=admin_headers,
    )

    # Assert: The slot went back as USED
    assert response.status_code == 200
    assert response.json()["services"] == []
    slots = await client.get("/api/v1/tv/slots", headers=admin_headers)
    first = next(slot for slot in slots.json() if slot["slot_number"] == 1)
    assert first["status"] == "USED"
    assert first["client_id"] is None


@pytest.mark.asyncio
async def test_list_clients_search_and_document_type(client, admin_headers):
    """
    Test GET /api/v1/clients filters.

    Validates:
    - search matches formatted documents by their digits
    - document_type splits CPF and CNPJ clients
    - Pagination envelope fields
    """
    # Setup: One person and one company
    await create_client(client, admin_headers)
    await create_client(client, admin_headers, document="11222333000181", name="Nexus Telecom LTDA")

    # Execute: Search by formatted CNPJ
    response = await client.get(
        "/api/v1/clients", params={"search": "11.222.333/0001-81"}, headers=admin_headers
    )

    # Assert: Only the company
    body = response.json()
    assert response.status_code == 200
    assert [item["name"] for item in body["data"]] == ["Nexus Telecom LTDA"]
    assert body["total"] == 1
    assert body["total_pages"] == 1

    # Execute: CPF filter
    response = await client.get("/api/v1/clients", params={"document_type": "CPF"}, headers=admin_headers)
    assert [item["name"] for item in response.json()["data"]] == ["Ana Souza"]


@pytest.mark.asyncio
async def test_list_clients_pagination(client, admin_headers):
    await create_client(client, admin_headers)
    await create_client(client, admin_headers, document="11222333000181", name="Nexus Telecom LTDA")

    response = await client.get("/api/v1/clients", params={"page": 2, "limit": 1}, headers=admin_headers)

    body = response.json()
    assert body["page"] == 2
    assert body["limit"] == 1
    assert body["total"] == 2
    assert body["total_pages"] == 2
    assert len(body["data"]) == 1


@pytest.mark.asyncio
async def test_get_client_enforces_ownership(client, admin_headers, user_headers, other_user_headers):
    """
    Test GET /api/v1/clients/{id} ownership rules.

    Validates:
    - The creator can read the client
    - Another regular user gets 403
    - Admins can read anything
    """
    # Setup: Client opened by the regular user
    created = await create_client(client, user_headers)

    # Execute + Assert: Owner
    response = await client.get(f"/api/v1/clients/{created['id']}", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["contracts"] == []

    # Execute + Assert: Another user
    response = await client.get(f"/api/v1/clients/{created['id']}", headers=other_user_headers)
    assert response.status_code == 403

    # Execute + Assert: Admin
    response = await client.get(f"/api/v1/clients/{created['id']}", headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_get_missing_client(client, admin_headers):
    response = await client.get(
        "/api/v1/clients/00000000-0000-0000-0000-000000000001", headers=admin_headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_client_is_admin_only(client, admin_headers, user_headers):
    created = await create_client(client, user_headers)

    response = await client.put(
        f"/api/v1/clients/{created['id']}", json={"name": "Ana S."}, headers=user_headers
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_client_partial_fields(client, admin_headers):
    # Setup
    created = await create_client(client, admin_headers, phone="51999990000")

    # Execute: Change the name only
    response = await client.put(
        f"/api/v1/clients/{created['id']}", json={"name": "Ana Souza Lima"}, headers=admin_headers
    )

    # Assert: Other fields untouched
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Ana Souza Lima"
    assert body["phone"] == "51999990000"
    assert body["document"] == "52998224725"


@pytest.mark.asyncio
async def test_update_client_document_conflict(client, admin_headers):
    await create_client(client, admin_headers)
    other = await create_client(client, admin_headers, document="11222333000181", name="Nexus Telecom LTDA")

    response = await client.put(
        f"/api/v1/clients/{other['id']}", json={"document": "529.982.247-25"}, headers=admin_headers
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_client(client, admin_headers):
    created = await create_client(client, admin_headers)

    response = await client.delete(f"/api/v1/clients/{created['id']}", headers=admin_headers)
    assert response.status_code == 204

    response = await client.get(f"/api/v1/clients/{created['id']}", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_lookup_cnpj(client, user_headers):
    """
    Test GET /api/v1/clients/lookup/cnpj/{cnpj}.

    Validates:
    - Check digits are validated before any lookup
    - Registry data is returned for a valid CNPJ
    """
    # Execute + Assert: Bad check digits
    response = await client.get("/api/v1/clients/lookup/cnpj/11222333000182", headers=user_headers)
    assert response.status_code == 400

    # Execute + Assert: Known company
    response = await client.get("/api/v1/clients/lookup/cnpj/11.222.333-0001-81", headers=user_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["document"] == "11222333000181"
    assert body["name"] == "Nexus Telecom LTDA"
    assert body["city"] == "Porto Alegre"
