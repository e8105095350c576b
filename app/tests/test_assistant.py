"""
Test suite for the dashboard assistant endpoints.
"""
from datetime import date, timedelta

import pytest

from app.tests.helpers import USER_ID, create_client, create_service, create_template


async def seed_expiring(client, headers):
    """A client with one TV profile and one cloud access, both expiring this week."""
    tv = await create_service(client, headers, name="TV", price=37.99)
    cloud = await create_service(client, headers, name="Cloud 150GB", price=4.99)
    return await create_client(
        client,
        headers,
        service_ids=[tv["id"], cloud["id"]],
        tv_setup={"quantity": 1, "sold_by": USER_ID, "expires_at": (date.today() + timedelta(days=3)).isoformat()},
        cloud_setups=[{"service_id": cloud["id"], "expires_at": (date.today() + timedelta(days=5)).isoformat()}],
    )


@pytest.mark.asyncio
async def test_assistant_stats(client, admin_headers, user_headers):
    await seed_expiring(client, admin_headers)

    response = await client.get("/api/v1/assistant/stats", headers=user_headers)

    assert response.status_code == 200
    assert response.json() == {"clients": 1, "contracts": 0, "tv_active": 1, "services": 2}


@pytest.mark.asyncio
async def test_expiring_services(client, admin_headers, user_headers):
    """
    Test GET /api/v1/assistant/expiring.

    Validates:
    - Cloud and TV entries within the window are listed
    - A shorter window leaves them out
    """
    # Setup
    await seed_expiring(client, admin_headers)

    # Execute
    response = await client.get("/api/v1/assistant/expiring", params={"days": 30}, headers=user_headers)

    # Assert
    results = response.json()["results"]
    assert [(item["type"], item["service_name"]) for item in results] == [("cloud", "Cloud 150GB"), ("tv", "TV")]
    assert {item["client_name"] for item in results} == {"Ana Souza"}

    # Execute + Assert: Nothing expires in the next two days
    response = await client.get("/api/v1/assistant/expiring", params={"days": 2}, headers=user_headers)
    assert response.json() == {"results": []}


@pytest.mark.asyncio
async def test_search_clients_requires_two_characters(client, admin_headers, user_headers):
    await create_client(client, admin_headers)

    response = await client.get("/api/v1/assistant/search/clients", params={"q": "a"}, headers=user_headers)
    assert response.json() == {"results": []}

    response = await client.get("/api/v1/assistant/search/clients", params={"q": "souza"}, headers=user_headers)
    results = response.json()["results"]
    assert [item["name"] for item in results] == ["Ana Souza"]
    assert results[0]["document"] == "52998224725"


@pytest.mark.asyncio
async def test_suggestions_on_empty_system(client, user_headers):
    response = await client.get("/api/v1/assistant/suggestions", headers=user_headers)

    assert response.status_code == 200
    titles = [item["title"] for item in response.json()["results"]]
    assert titles == ["Poucos slots TV disponíveis", "Cadastre seu primeiro cliente"]


@pytest.mark.asyncio
async def test_suggestions_with_activity(client, admin_headers, user_headers):
    """
    Pending contracts, soon expiring services and recent clients each get a hint.
    """
    # Setup
    owner = await seed_expiring(client, admin_headers)
    template = await create_template(client, admin_headers)
    await client.post(
        "/api/v1/contracts",
        json={"title": "Contrato Ana", "client_id": owner["id"], "template_id": template["id"]},
        headers=admin_headers,
    )

    # Execute
    response = await client.get("/api/v1/assistant/suggestions", headers=user_headers)

    # Assert
    results = response.json()["results"]
    titles = [item["title"] for item in results]
    assert titles == [
        "1 contrato(s) pendente(s)",
        "2 serviço(s) vence(m) em breve",
        "Poucos slots TV disponíveis",
        "1 novo(s) cliente(s) no último mês",
    ]
    assert results[0]["action"] == {"label": "Ver contratos", "route": "/contratos"}
    assert "Apenas 7 slot(s)" in results[2]["description"]


@pytest.mark.asyncio
async def test_tv_available_counts_fresh_slots(client, admin_headers, user_headers):
    response = await client.get("/api/v1/assistant/tv/available", headers=user_headers)
    assert response.json() == {"count": 0}

    await seed_expiring(client, admin_headers)

    response = await client.get("/api/v1/assistant/tv/available", headers=user_headers)
    assert response.json() == {"count": 7}


@pytest.mark.asyncio
async def test_pending_contracts(client, admin_headers, user_headers):
    owner = await create_client(client, admin_headers)
    template = await create_template(client, admin_headers)
    created = await client.post(
        "/api/v1/contracts",
        json={"title": "Contrato Ana", "client_id": owner["id"], "template_id": template["id"]},
        headers=admin_headers,
    )
    cancelled = await client.post(
        "/api/v1/contracts",
        json={"title": "Contrato Antigo", "client_id": owner["id"], "template_id": template["id"]},
        headers=admin_headers,
    )
    await client.post(f"/api/v1/contracts/{cancelled.json()['id']}/cancel", headers=admin_headers)

    response = await client.get("/api/v1/assistant/contracts/pending", headers=user_headers)

    results = response.json()["results"]
    assert [item["id"] for item in results] == [created.json()["id"]]
    assert results[0]["status"] == "DRAFT"
    assert results[0]["client_name"] == "Ana Souza"


# ------------------------------------------------------------------
# CHAT
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_chat_requires_message(client, user_headers):
    response = await client.post("/api/v1/assistant/chat", json={"message": "   "}, headers=user_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Message is required"


@pytest.mark.asyncio
async def test_chat_without_provider_returns_fallback(client, user_headers, fake_ai):
    response = await client.post("/api/v1/assistant/chat", json={"message": "Oi"}, headers=user_headers)

    assert response.status_code == 503
    assert response.json()["fallback"] is True


@pytest.mark.asyncio
async def test_chat_forwards_recent_history(client, user_headers, fake_ai):
    """
    Test POST /api/v1/assistant/chat.

    Validates:
    - Message is trimmed
    - Only the last 10 history messages reach the provider
    """
    # Setup
    fake_ai.answer = {"response": "Você tem 3 clientes.", "model": "gemini-2.0-flash"}
    history = [
        {"sender": "user" if index % 2 == 0 else "assistant", "content": f"mensagem {index}"}
        for index in range(12)
    ]

    # Execute
    response = await client.post(
        "/api/v1/assistant/chat",
        json={"message": " Quantos clientes? ", "history": history},
        headers=user_headers,
    )

    # Assert
    assert response.status_code == 200
    assert response.json() == {"response": "Você tem 3 clientes.", "model": "gemini-2.0-flash"}
    message, forwarded = fake_ai.calls[0]
    assert message == "Quantos clientes?"
    assert len(forwarded) == 10
    assert forwarded[0].content == "mensagem 2"
    assert forwarded[-1].content == "mensagem 11"
