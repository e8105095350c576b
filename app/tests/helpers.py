"""
Token minting and request factories shared by the test modules.
"""
import os
import time

from jose import jwt

ADMIN_ID = "11111111-1111-1111-1111-111111111111"
USER_ID = "22222222-2222-2222-2222-222222222222"
OTHER_USER_ID = "33333333-3333-3333-3333-333333333333"

ADMIN_EMAIL = "admin@nexusrs.com.br"
ADMIN_PASSWORD = "correct-password"


def make_token(user_id: str, role: str = "user", email: str = None, name: str = None) -> str:
    """Mint an HS256 token shaped like the ones Supabase Auth issues."""
    now = int(time.time())
    metadata = {"role": role}
    if name:
        metadata["name"] = name
    payload = {
        "sub": user_id,
        "email": email or f"{role}-{user_id[:4]}@nexusrs.com.br",
        "aud": "authenticated",
        "role": "authenticated",
        "iat": now,
        "exp": now + 3600,
        "user_metadata": metadata,
    }
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


def auth_headers(user_id: str, role: str = "user", email: str = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role, email)}"}


async def create_service(client, headers, name="Cloud 150GB", price=4.99, **extra):
    response = await client.post(
        "/api/v1/services",
        json={"name": name, "price": price, **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_client(client, headers, document="52998224725", name="Ana Souza", **extra):
    body = {
        "name": name,
        "email": "ana.souza@example.com",
        "document": document,
        "cost_center": "NEXUS",
        **extra,
    }
    response = await client.post("/api/v1/clients", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def create_template(client, headers, name="Contrato Padrão", content="Contrato de {{clientName}} ({{clientDocument}})"):
    response = await client.post(
        "/api/v1/templates",
        json={"name": name, "content": content},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
