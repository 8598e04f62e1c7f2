from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from serafina_chat.core.errors import UpstreamError
from serafina_chat.core.locales import REPHRASE_FALLBACK, locale_label, localized
from serafina_chat.core.settings import Settings

logger = logging.getLogger(__name__)

GENERIC_UPSTREAM_ERROR = "LLM error"
MAX_DETAIL_CHARS = 300

SYSTEM_PROMPT_TEMPLATE = """
Sei Serafina, nutrizionista pediatrica in una web app per bambini.
Rispondi in {label} con frasi brevi, pratiche e gentili (max 2 frasi, massimo 40 parole).
Usa al massimo 1 emoji; evita diagnosi e non nominare farmaci.
Ricorda il piatto sano: 1/2 frutta e verdura, 1/4 cereali integrali, 1/4 proteine sane.
Quando ha senso, aggiungi un piccolo consiglio di mangiare consapevole (mangiare piano, ascoltare fame e sazietà).
""".strip()


def build_system_prompt(locale: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(label=locale_label(locale))


def extract_error_message(body: str) -> str | None:
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()[:MAX_DETAIL_CHARS]
    if isinstance(error, str) and error.strip():
        return error.strip()[:MAX_DETAIL_CHARS]
    message = data.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()[:MAX_DETAIL_CHARS]
    return None


def extract_content(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        choice = choices[0]
        if isinstance(choice, dict):
            message = choice.get("message")
            if isinstance(message, dict):
                content = message.get("content")
                if isinstance(content, str):
                    return content
    return ""


@dataclass(frozen=True)
class Completion:
    text: str
    fallback: bool = False


class ChatCompletionClient:
    """Single-shot client for an OpenAI-compatible chat completion endpoint."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def url(self) -> str:
        return f"{self.settings.base_url}/chat/completions"

    def headers(self) -> dict[str, str]:
        headers = {
            "content-type": "application/json",
            "authorization": f"Bearer {self.settings.api_key}",
        }
        if self.settings.organization:
            headers["openai-organization"] = self.settings.organization
        return headers

    def payload(self, message: str, locale: str) -> dict:
        return {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": build_system_prompt(locale)},
                {"role": "user", "content": message},
            ],
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }

    async def complete(self, message: str, locale: str) -> Completion:
        """Return the trimmed reply, or the localized rephrase fallback when empty.

        Raises ``UpstreamError`` carrying the upstream status for non-2xx answers
        and 502 when no status is available.
        """
        timeout = self.settings.timeout_ms / 1000.0
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(self.url(), json=self.payload(message, locale), headers=self.headers())
        except httpx.HTTPError as exc:
            logger.warning("upstream request failed: %s", exc)
            raise UpstreamError(GENERIC_UPSTREAM_ERROR, detail=exc.__class__.__name__, status_code=502) from exc

        status_code = int(response.status_code)
        if status_code < 200 or status_code >= 300:
            detail = extract_error_message(response.text)
            logger.warning("upstream returned status=%s detail=%s", status_code, detail)
            raise UpstreamError(GENERIC_UPSTREAM_ERROR, detail=detail or GENERIC_UPSTREAM_ERROR, status_code=status_code)

        try:
            data = response.json()
        except ValueError as exc:
            logger.warning("upstream returned undecodable body: %s", exc)
            raise UpstreamError(GENERIC_UPSTREAM_ERROR, detail="invalid upstream body", status_code=502) from exc

        reply = extract_content(data).strip()
        if not reply:
            return Completion(localized(REPHRASE_FALLBACK, locale), fallback=True)
        return Completion(reply)
