import re

from shared.models.bot import FAQ, Bot

SYSTEM_FAQS: list[FAQ] = [
    FAQ(
        question="greeting",
        keywords=["hello", "hi", "hey", "hiya", "good morning", "good afternoon", "good evening", "greetings"],
        answer="Hello! How can I help you today?",
    ),
    FAQ(
        question="thanks",
        keywords=["thank you", "thanks", "thx", "much appreciated"],
        answer="You're welcome! Is there anything else I can help you with?",
    ),
    FAQ(
        question="goodbye",
        keywords=["goodbye", "bye", "see you", "farewell"],
        answer="Goodbye! Feel free to come back if you have more questions.",
    ),
]

_PUNCTUATION = re.compile(r"[^\w\s']")


def normalize(text: str) -> str:
    """Lower-case and collapse whitespace."""
    return " ".join(text.lower().split())


class FAQMatcher:
    """Keyword matcher checked before any model call.

    Bot FAQs match on a plain substring of the normalised message. The
    built-in list matches whole words only, and only on short messages, so
    "hi, what is your refund policy?" still reaches the classifier.
    """

    def __init__(self, system_faqs: list[FAQ] | None = None, system_max_words: int = 4) -> None:
        self._system_faqs = SYSTEM_FAQS if system_faqs is None else system_faqs
        self._system_max_words = system_max_words

    def match(self, message: str, bot: Bot) -> FAQ | None:
        text = normalize(message or "")
        if not text:
            return None

        for faq in bot.faqs:
            if not faq.enabled:
                continue
            if any(kw and normalize(kw) in text for kw in faq.keywords):
                return faq

        bare = normalize(_PUNCTUATION.sub(" ", text))
        if len(bare.split()) > self._system_max_words:
            return None
        for faq in self._system_faqs:
            for kw in faq.keywords:
                if re.search(rf"\b{re.escape(normalize(kw))}\b", bare):
                    return faq
        return None
