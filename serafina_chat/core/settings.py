import os
from dataclasses import dataclass


def _split_origins(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


DEFAULT_ALLOWED_ORIGINS = ["https://ilpiattosano.netlify.app"]


@dataclass
class Settings:
    api_key: str
    organization: str
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout_ms: int
    max_message_chars: int
    cache_ttl_sec: int
    rate_limit_max: int
    rate_limit_window_sec: int
    allowed_origins: list[str]
    log_level: str
    host: str
    port: int


def load_settings() -> Settings:
    origins = _split_origins(os.getenv("SERAFINA_ALLOWED_ORIGINS", ""))
    return Settings(
        api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        organization=os.getenv("OPENAI_ORG", "").strip(),
        base_url=os.getenv("SERAFINA_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
        model=os.getenv("SERAFINA_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini",
        temperature=float(os.getenv("SERAFINA_TEMPERATURE", "0.5")),
        max_tokens=int(os.getenv("SERAFINA_MAX_TOKENS", "120")),
        timeout_ms=int(os.getenv("SERAFINA_TIMEOUT_MS", "15000")),
        max_message_chars=int(os.getenv("SERAFINA_MAX_MESSAGE_CHARS", "500")),
        cache_ttl_sec=int(os.getenv("SERAFINA_CACHE_TTL_SEC", "86400")),
        rate_limit_max=int(os.getenv("SERAFINA_RATE_LIMIT_MAX", "5")),
        rate_limit_window_sec=int(os.getenv("SERAFINA_RATE_LIMIT_WINDOW_SEC", "60")),
        allowed_origins=origins or list(DEFAULT_ALLOWED_ORIGINS),
        log_level=os.getenv("SERAFINA_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        host=os.getenv("SERAFINA_HOST", "0.0.0.0").strip() or "0.0.0.0",
        port=int(os.getenv("SERAFINA_PORT", "8080")),
    )


SETTINGS = load_settings()
