from __future__ import annotations

from typing import Any

DEFAULT_LOCALE = "it"
SUPPORTED_LOCALES = ("it", "en", "es", "zh")

# Language names as written inside the Italian persona prompt.
LOCALE_LABELS = {
    "it": "italiano",
    "en": "inglese",
    "es": "spagnolo",
    "zh": "cinese",
}

REPHRASE_FALLBACK = {
    "it": "Puoi riformulare?",
    "en": "Could you rephrase that?",
    "es": "¿Puedes reformularlo?",
    "zh": "你能换个说法吗？",
}

MISSING_MESSAGE = {
    "it": "Messaggio mancante",
    "en": "Missing message",
    "es": "Falta el mensaje",
    "zh": "缺少消息",
}

MESSAGE_TOO_LONG = {
    "it": "Messaggio troppo lungo (max {limit} caratteri)",
    "en": "Message too long (max {limit} characters)",
    "es": "Mensaje demasiado largo (máx. {limit} caracteres)",
    "zh": "消息太长（最多 {limit} 个字符）",
}

RATE_LIMITED = {
    "it": "Troppe richieste, riprova tra un minuto",
    "en": "Too many requests, please try again in a minute",
    "es": "Demasiadas solicitudes, inténtalo de nuevo en un minuto",
    "zh": "请求过多，请一分钟后再试",
}


def resolve_locale(raw: Any) -> str:
    if not isinstance(raw, str):
        return DEFAULT_LOCALE
    candidate = raw.strip().lower()[:2]
    if candidate in SUPPORTED_LOCALES:
        return candidate
    return DEFAULT_LOCALE


def locale_label(locale: str) -> str:
    return LOCALE_LABELS.get(locale, LOCALE_LABELS[DEFAULT_LOCALE])


def localized(table: dict[str, str], locale: str, **params: Any) -> str:
    text = table.get(locale) or table[DEFAULT_LOCALE]
    if params:
        return text.format(**params)
    return text
