"""Canned replies that never reach the model.

Greetings and thanks match the whole (lowercased, trimmed) message. Mindful
eating prompts and red-flag topics match on substrings, checked in that order,
so an incidental substring can trigger them. That imprecision is known and kept.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from serafina_chat.core.locales import localized

KIND_GREETING = "greeting"
KIND_THANKS = "thanks"
KIND_MINDFUL = "mindful"
KIND_RED_FLAG = "red_flag"

GREETING_WORDS = frozenset(
    {
        "ciao",
        "salve",
        "buongiorno",
        "buonasera",
        "hello",
        "hi",
        "hey",
        "good morning",
        "hola",
        "buenos días",
        "buenos dias",
        "buenas",
        "你好",
        "您好",
        "嗨",
    }
)

THANKS_WORDS = frozenset(
    {
        "grazie",
        "grazie mille",
        "thanks",
        "thank you",
        "thx",
        "gracias",
        "muchas gracias",
        "谢谢",
        "谢谢你",
        "多谢",
    }
)

MINDFUL_KEYWORDS = (
    "mindful",
    "consapevol",
    "mangiare piano",
    "lentamente",
    "fame emotiva",
    "sazietà",
    "eat slowly",
    "hunger",
    "despacio",
    "hambre",
    "saciedad",
    "正念",
    "慢慢吃",
    "饥饿",
    "饱",
)

RED_FLAG_KEYWORDS = (
    "vomit",
    "digiun",
    "non mangiare",
    "saltare i pasti",
    "lassativ",
    "anoressi",
    "bulimi",
    "dimagrire in fretta",
    "skip meals",
    "stop eating",
    "starv",
    "laxative",
    "anorexi",
    "ayunar",
    "en ayunas",
    "dejar de comer",
    "laxante",
    "厌食",
    "催吐",
    "不吃饭",
    "绝食",
    "泻药",
)

GREETING_REPLY = {
    "it": "Ciao! Sono Serafina 🍎 Chiedimi pure qualcosa sul piatto sano.",
    "en": "Hi! I'm Serafina 🍎 Ask me anything about the healthy plate.",
    "es": "¡Hola! Soy Serafina 🍎 Pregúntame lo que quieras sobre el plato saludable.",
    "zh": "你好！我是Serafina 🍎 有关健康餐盘的问题尽管问我吧。",
}

THANKS_REPLY = {
    "it": "Prego! Se vuoi, posso aiutarti con altre idee per il piatto.",
    "en": "You're welcome! I can help with more plate ideas if you like.",
    "es": "¡De nada! Si quieres, te ayudo con más ideas para el plato.",
    "zh": "不客气！如果需要，我可以再给你一些餐盘建议。",
}

MINDFUL_TIPS = {
    "it": [
        "Prova a mangiare piano: appoggia la forchetta tra un boccone e l'altro 🍽️",
        "Prima di mangiare chiediti: ho fame davvero o sono annoiato?",
        "Guarda i colori nel piatto e prova a nominarli tutti prima di iniziare.",
        "Mastica con calma e ascolta la pancia: ti dirà quando sei sazio.",
    ],
    "en": [
        "Try eating slowly: put your fork down between bites 🍽️",
        "Before eating, ask yourself: am I really hungry or just bored?",
        "Look at the colors on your plate and name them all before you start.",
        "Chew calmly and listen to your tummy: it will tell you when you're full.",
    ],
    "es": [
        "Intenta comer despacio: deja el tenedor entre bocado y bocado 🍽️",
        "Antes de comer pregúntate: ¿tengo hambre de verdad o estoy aburrido?",
        "Mira los colores del plato y nómbralos todos antes de empezar.",
        "Mastica con calma y escucha tu barriga: te dirá cuándo estás lleno.",
    ],
    "zh": [
        "试着慢慢吃：每吃一口就放下叉子 🍽️",
        "吃东西前问问自己：我是真的饿了，还是只是无聊？",
        "开吃前看看盘子里的颜色，把它们都说出来。",
        "细嚼慢咽，听听肚子的声音：它会告诉你什么时候饱了。",
    ],
}

RED_FLAG_REPLY = {
    "it": (
        "Questo è un tema importante e delicato 💛 Parlane con un adulto di fiducia "
        "o con il tuo pediatra: sapranno aiutarti nel modo giusto."
    ),
    "en": (
        "This is an important and delicate topic 💛 Please talk to a trusted adult "
        "or your pediatrician: they can help you the right way."
    ),
    "es": (
        "Es un tema importante y delicado 💛 Habla con un adulto de confianza "
        "o con tu pediatra: sabrán ayudarte de la forma correcta."
    ),
    "zh": "这是一个重要而敏感的话题 💛 请和你信任的大人或儿科医生谈谈，他们会用正确的方式帮助你。",
}


@dataclass(frozen=True)
class QuickReply:
    kind: str
    text: str


def match_quick_reply(message: str, locale: str, rng: Optional[random.Random] = None) -> Optional[QuickReply]:
    normalized = (message or "").strip().lower()
    if not normalized:
        return None
    if normalized in GREETING_WORDS:
        return QuickReply(KIND_GREETING, localized(GREETING_REPLY, locale))
    if normalized in THANKS_WORDS:
        return QuickReply(KIND_THANKS, localized(THANKS_REPLY, locale))
    if any(keyword in normalized for keyword in MINDFUL_KEYWORDS):
        tips = MINDFUL_TIPS.get(locale) or MINDFUL_TIPS["it"]
        chooser = rng or random
        return QuickReply(KIND_MINDFUL, chooser.choice(tips))
    if any(keyword in normalized for keyword in RED_FLAG_KEYWORDS):
        return QuickReply(KIND_RED_FLAG, localized(RED_FLAG_REPLY, locale))
    return None
