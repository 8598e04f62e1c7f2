from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Optional

from serafina_chat.core.cache import ReplyCache, cache_key
from serafina_chat.core.errors import ConfigurationError, MessageValidationError, RateLimitError
from serafina_chat.core.limiter import RateLimiter
from serafina_chat.core.locales import MESSAGE_TOO_LONG, MISSING_MESSAGE, RATE_LIMITED, localized, resolve_locale
from serafina_chat.core.metrics import metrics
from serafina_chat.core.quick_replies import match_quick_reply
from serafina_chat.core.settings import Settings
from serafina_chat.core.upstream import ChatCompletionClient

logger = logging.getLogger(__name__)

SOURCE_QUICK_REPLY = "quick_reply"
SOURCE_CACHE = "cache"
SOURCE_UPSTREAM = "upstream"


@dataclass(frozen=True)
class ChatResult:
    reply: str
    locale: str
    source: str


class ChatHandler:
    """Runs one chat message through quick replies, cache, rate limit and upstream.

    Cache hits return before the rate limiter is consulted, so cached answers
    never consume a client's window.
    """

    def __init__(
        self,
        settings: Settings,
        cache: ReplyCache,
        limiter: RateLimiter,
        upstream: Any,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.limiter = limiter
        self.upstream = upstream
        self.rng = rng

    def ensure_configured(self) -> None:
        if not self.settings.api_key:
            logger.error("OPENAI_API_KEY is not configured")
            raise ConfigurationError("Chiave OpenAI mancante lato server")

    def validate(self, message: Any, locale: str) -> str:
        if not isinstance(message, str) or not message.strip():
            raise MessageValidationError(localized(MISSING_MESSAGE, locale))
        limit = self.settings.max_message_chars
        if len(message) > limit:
            raise MessageValidationError(localized(MESSAGE_TOO_LONG, locale, limit=limit))
        return message.strip()

    async def handle(self, message: Any, raw_locale: Any, client_id: str) -> ChatResult:
        self.ensure_configured()
        locale = resolve_locale(raw_locale)
        text = self.validate(message, locale)

        quick = match_quick_reply(text, locale, self.rng)
        if quick is not None:
            metrics.record_quick_reply(quick.kind)
            logger.info("quick reply kind=%s locale=%s", quick.kind, locale)
            return ChatResult(quick.text, locale, SOURCE_QUICK_REPLY)

        key = cache_key(locale, text)
        cached = self.cache.get(key)
        if cached is not None:
            metrics.record_cache(hit=True)
            return ChatResult(cached, locale, SOURCE_CACHE)
        metrics.record_cache(hit=False)

        if not self.limiter.allow(client_id):
            metrics.record_rate_limited()
            logger.info("rate limited client=%s", client_id)
            raise RateLimitError(localized(RATE_LIMITED, locale))

        try:
            completion = await self.upstream.complete(message, locale)
        except Exception:
            metrics.record_upstream("error")
            raise
        if completion.fallback:
            metrics.record_upstream("empty")
        else:
            metrics.record_upstream("ok")
            self.cache.set(key, completion.text)
        logger.info("upstream reply locale=%s chars=%d", locale, len(completion.text))
        return ChatResult(completion.text, locale, SOURCE_UPSTREAM)


def build_chat_handler(settings: Settings, rng: Optional[random.Random] = None) -> ChatHandler:
    return ChatHandler(
        settings=settings,
        cache=ReplyCache(ttl_sec=settings.cache_ttl_sec),
        limiter=RateLimiter(settings.rate_limit_max, float(settings.rate_limit_window_sec)),
        upstream=ChatCompletionClient(settings),
        rng=rng,
    )
