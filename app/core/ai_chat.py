"""
AI chat for the in-app assistant.

Google Gemini is tried first and OpenAI second. Providers without an API key
are skipped; when none answers the caller gets None.
"""
import os
from typing import List, Optional

import httpx

from app.schemas.assistant import ChatHistoryItem

GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GOOGLE_MODEL = os.getenv("GOOGLE_MODEL", "gemini-pro")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"

CHAT_TIMEOUT_SECONDS = 15.0
HISTORY_LIMIT = 10
TEMPERATURE = 0.7
MAX_OUTPUT_TOKENS = 500

SYSTEM_PROMPT = """Você é um assistente virtual especializado em um sistema de gestão de serviços de telefonia e TV.

O sistema permite:
- Gerenciar clientes (cadastrar, editar, buscar por nome, documento, e-mail)
- Criar e gerenciar contratos
- Gerenciar acessos de TV (planos Essencial e Premium)
- Gerenciar serviços Cloud, Hub e Telemedicina
- Gerar relatórios e estatísticas
- Acompanhar vencimentos e renovações
- Gerenciar templates de contratos

Responda de forma clara, amigável e em português brasileiro. Seja conciso mas completo.

Se a pergunta for sobre funcionalidades do sistema, explique como usar. Se for uma pergunta geral, responda de forma útil e relevante."""

SYSTEM_ACK = "Entendido! Estou pronto para ajudar com o sistema de gestão de serviços."


class AIChatService:

    def __init__(
        self,
        google_api_key: Optional[str] = GOOGLE_API_KEY,
        google_model: str = GOOGLE_MODEL,
        openai_api_key: Optional[str] = OPENAI_API_KEY,
        openai_model: str = OPENAI_MODEL,
    ):
        self.google_api_key = google_api_key
        self.google_model = google_model
        self.openai_api_key = openai_api_key
        self.openai_model = openai_model

    @property
    def configured(self) -> bool:
        return bool(self.google_api_key or self.openai_api_key)

    async def _call_gemini(self, message: str, history: List[ChatHistoryItem]) -> Optional[dict]:
        if not self.google_api_key:
            return None

        contents = [
            {"role": "user", "parts": [{"text": SYSTEM_PROMPT}]},
            {"role": "model", "parts": [{"text": SYSTEM_ACK}]},
        ]
        contents.extend(
            {"role": "user" if item.sender == "user" else "model", "parts": [{"text": item.content}]}
            for item in history[-HISTORY_LIMIT:]
        )
        contents.append({"role": "user", "parts": [{"text": message}]})

        try:
            async with httpx.AsyncClient(timeout=CHAT_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    GEMINI_URL.format(model=self.google_model),
                    params={"key": self.google_api_key},
                    json={
                        "contents": contents,
                        "generationConfig": {"temperature": TEMPERATURE, "maxOutputTokens": MAX_OUTPUT_TOKENS},
                    },
                )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            print("[ASSISTANT] [ERROR] Gemini timeout")
            return None
        except (httpx.HTTPError, ValueError) as e:
            print(f"[ASSISTANT] [ERROR] Gemini failed: {e}")
            return None

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            print("[ASSISTANT] [ERROR] Gemini answered without text")
            return None
        return {"response": text, "model": self.google_model}

    async def _call_openai(self, message: str, history: List[ChatHistoryItem]) -> Optional[dict]:
        if not self.openai_api_key:
            return None

        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(
            {"role": "user" if item.sender == "user" else "assistant", "content": item.content}
            for item in history[-HISTORY_LIMIT:]
        )
        messages.append({"role": "user", "content": message})

        try:
            async with httpx.AsyncClient(timeout=CHAT_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    OPENAI_URL,
                    headers={"Authorization": f"Bearer {self.openai_api_key}"},
                    json={
                        "model": self.openai_model,
                        "messages": messages,
                        "temperature": TEMPERATURE,
                        "max_tokens": MAX_OUTPUT_TOKENS,
                    },
                )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            print("[ASSISTANT] [ERROR] OpenAI timeout")
            return None
        except (httpx.HTTPError, ValueError) as e:
            print(f"[ASSISTANT] [ERROR] OpenAI failed: {e}")
            return None

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            print("[ASSISTANT] [ERROR] OpenAI answered without text")
            return None
        return {"response": text, "model": data.get("model") or self.openai_model}

    async def reply(self, message: str, history: List[ChatHistoryItem]) -> Optional[dict]:
        """
        Returns:
            dict | None: {"response", "model"}, or None if no provider answered
        """
        result = await self._call_gemini(message, history)
        if result:
            print("[ASSISTANT] Answer from Gemini")
            return result

        result = await self._call_openai(message, history)
        if result:
            print("[ASSISTANT] Answer from OpenAI")
            return result

        print("[ASSISTANT] No AI provider available")
        return None


def get_ai_chat() -> AIChatService:
    return AIChatService()
