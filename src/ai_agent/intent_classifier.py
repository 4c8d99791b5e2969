"""
Cheap local intent filter run before any external call
"""
import logging
import re
from enum import Enum
from typing import Iterable, Pattern

from config.settings import Config

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    GREETING = "greeting"
    GRATITUDE = "gratitude"
    SMALL_TALK = "small_talk"
    SCHEDULING_REQUEST = "scheduling_request"
    AMBIGUOUS = "ambiguous"
    UNRELATED = "unrelated"


GREETINGS = (
    "hi", "hii", "hello", "hey", "heya", "hiya", "howdy", "yo", "greetings",
    "good morning", "good afternoon", "good evening", "namaste",
)

GRATITUDE = (
    "thanks", "thank you", "thankyou", "thx", "ty", "cheers", "much appreciated",
    "appreciate it", "great job",
)

SMALL_TALK = (
    "how are you", "how r u", "how's it going", "hows it going", "what's up", "whats up",
    "who are you", "what are you", "what can you do", "are you a bot", "tell me a joke",
    "bye", "goodbye", "see you", "good night", "how do you work",
)

DAY_WORDS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "mon", "tue", "tues", "wed", "thu", "thur", "thurs", "fri",
    "today", "tomorrow", "tonight", "weekend", "next week", "this week",
    "morning", "afternoon", "evening", "noon", "midnight",
)

MONTH_WORDS = (
    "january", "february", "march", "april", "may", "june", "july", "august",
    "september", "october", "november", "december",
    "jan", "feb", "apr", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
)

DURATION_WORDS = (
    "hour", "hours", "hr", "hrs", "minute", "minutes", "min", "mins",
    "half an hour", "half hour", "all day",
)

SCHEDULING_VERBS = (
    "schedule", "book", "block", "remind", "reminder", "plan", "set up", "setup",
    "arrange", "organize", "organise", "add", "create", "put", "reserve",
    "meeting", "meet", "call", "sync", "standup", "stand-up", "appointment",
    "event", "task", "deadline", "focus", "interview", "review", "lunch", "dinner",
)

SCHEDULING_KEYWORDS = DAY_WORDS + MONTH_WORDS + DURATION_WORDS + SCHEDULING_VERBS

# "3pm", "10:30", "15:00"
_CLOCK_RE = re.compile(r"\b\d{1,2}(:\d{2})?\s?(am|pm)\b|\b([01]?\d|2[0-3]):[0-5]\d\b")


def _phrase_pattern(phrases: Iterable[str]) -> Pattern:
    # Longest first so "good morning" wins over "morning"
    ordered = sorted(set(phrases), key=len, reverse=True)
    alternation = "|".join(re.escape(p) for p in ordered)
    return re.compile(rf"(?<![\w'])(?:{alternation})(?![\w'])")


class IntentClassifier:
    """
    Keyword/phrase classifier.

    Sets are checked in priority order: greetings, gratitude, small talk,
    then scheduling vocabulary. Phrases match on word boundaries, so "hi"
    does not fire inside "this". No match is UNRELATED.
    """

    def __init__(self, min_length: int = None):
        self.min_length = min_length if min_length is not None else Config.MIN_MESSAGE_LENGTH
        self._chain = [
            (Intent.GREETING, _phrase_pattern(GREETINGS)),
            (Intent.GRATITUDE, _phrase_pattern(GRATITUDE)),
            (Intent.SMALL_TALK, _phrase_pattern(SMALL_TALK)),
            (Intent.SCHEDULING_REQUEST, _phrase_pattern(SCHEDULING_KEYWORDS)),
        ]

    def classify(self, text: str) -> Intent:
        normalized = " ".join((text or "").lower().split())

        for intent, pattern in self._chain:
            if pattern.search(normalized):
                logger.debug(f"Classified {normalized[:40]!r} as {intent.value}")
                return intent

        if _CLOCK_RE.search(normalized):
            return Intent.SCHEDULING_REQUEST

        if len(normalized) < self.min_length:
            return Intent.AMBIGUOUS

        return Intent.UNRELATED
