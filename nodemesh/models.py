"""
Request-scoped data structures for the chat router.
"""

from enum import Enum
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


class Intent(str, Enum):
    """Coarse category deciding which handler answers a message"""
    WEATHER = "weather"
    NEWS = "news"
    GENERAL = "general"

    @classmethod
    def normalize(cls, value: Any) -> Optional["Intent"]:
        """Map a raw upstream value onto a known intent; None if unrecognized."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass
class ClassificationResult:
    """
    Intent plus slots for one message.

    Attributes:
        intent: Always one of Intent
        location: Weather location slot
        topic: News topic slot
        activity: Activity the user mentioned, if any
        source: "llm" or "keyword" (diagnostics only)
    """
    intent: Intent
    location: str = ""
    topic: str = ""
    activity: str = ""
    source: str = "keyword"


@dataclass
class ChatReply:
    """Reply returned to the caller, echoing the classification"""
    reply: str
    intent: str
    location: str = ""
    topic: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
