"""
Company lookup by CNPJ through BrasilAPI.
"""
import os
from typing import Optional

import httpx
from fastapi import HTTPException, status

from app.core.validation import format_phone, only_digits

BRASIL_API_URL = os.getenv("BRASIL_API_URL", "https://brasilapi.com.br/api/cnpj/v1").rstrip("/")
LOOKUP_TIMEOUT_SECONDS = 8.0


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_address(data: dict) -> Optional[str]:
    """street, number · complement · neighborhood"""
    street = ", ".join(part for part in (_clean(data.get("logradouro")), _clean(data.get("numero"))) if part)
    parts = [street or None, _clean(data.get("complemento")), _clean(data.get("bairro"))]
    return " · ".join(part for part in parts if part) or None


def map_company(cnpj: str, data: dict) -> dict:
    company_name = _clean(data.get("razao_social"))
    trade_name = _clean(data.get("nome_fantasia"))
    phone_digits = only_digits(f"{data.get('ddd_telefone_1') or ''}{data.get('telefone') or ''}")
    return {
        "document": cnpj,
        "name": trade_name or company_name,
        "company_name": company_name,
        "trade_name": trade_name,
        "address": build_address(data),
        "city": _clean(data.get("municipio")),
        "state": _clean(data.get("uf")),
        "phone": format_phone(phone_digits),
        "postal_code": only_digits(data.get("cep")) or None,
        "email": _clean(data.get("email")),
        "opening_date": _clean(data.get("data_inicio_atividade") or data.get("abertura")),
    }


class CNPJLookupService:

    def __init__(self, base_url: str = BRASIL_API_URL, timeout: float = LOOKUP_TIMEOUT_SECONDS):
        self.base_url = base_url
        self.timeout = timeout

    async def lookup(self, cnpj: str) -> dict:
        """
        Fetch a company and map it to the client form fields.

        Raises:
            HTTPException 404: CNPJ unknown to BrasilAPI
            HTTPException 502: Upstream error or unreadable response
            HTTPException 504: Upstream timeout
        """
        print(f"[CNPJ] Looking up {cnpj}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/{cnpj}",
                    headers={"accept": "application/json"},
                )
        except httpx.TimeoutException:
            print(f"[CNPJ] [ERROR] Timeout looking up {cnpj}")
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail="CNPJ lookup timed out. Try again.",
            )
        except httpx.HTTPError as e:
            print(f"[CNPJ] [ERROR] Request failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Could not look up the CNPJ right now",
            )

        if response.status_code == 404:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="CNPJ not found")

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400 or not isinstance(data, dict):
            print(f"[CNPJ] [ERROR] BrasilAPI answered {response.status_code}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Could not look up the CNPJ right now",
            )

        return map_company(cnpj, data)


def get_cnpj_lookup() -> CNPJLookupService:
    return CNPJLookupService()
