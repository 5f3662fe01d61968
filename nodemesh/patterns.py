"""
Keyword patterns and prompts for intent classification.

Pattern categories are checked in a fixed order: weather before news. The
vocabularies overlap ("storm alerts", "weather updates").
"""

from typing import Dict, Any
import re

# Checked in this order; first match wins
INTENT_PRIORITY = ("weather", "news")


def load_intent_patterns() -> Dict[str, Any]:
    """
    Load keyword-fallback patterns.

    Pattern Categories:
        - weather: weather vocabulary plus "in/for/at <place>" slot phrases
        - news: news vocabulary plus "about/on/regarding/of <topic>" slot phrases
        - stopwords: words dropped when the slot is taken from the remainder

    Returns:
        Dictionary with pattern categories for keyword classification
    """
    patterns = {
        "weather": {
            "keyword_pattern": (
                r"\b(weather|forecast\w*|temperatures?|rain\w*|snow\w*|(?!brain)\w*storm\w*|"
                r"climate|alerts?|wind(?:y|s)?|humidity)\b"
            ),
            "slot": "location",
            "slot_patterns": [
                r"\b(?:in|for|at)\s+([A-Za-z0-9][A-Za-z0-9\s,.'-]*)(?:[.!?]|$)",
                r"\bweather\s+([A-Za-z0-9][A-Za-z0-9\s,.'-]*)(?:[.!?]|$)",
            ],
            # "at all in Paris", "London for the weekend": last place-like segment wins
            "slot_splitter": r"\s+(?:in|for|at)\s+",
        },
        "news": {
            "keyword_pattern": r"\b(news|headlines?|articles?|updates?|breaking)\b",
            "slot": "topic",
            "slot_patterns": [
                r"\b(?:about|on|regarding|of)\s+([A-Za-z0-9][A-Za-z0-9\s,.'-]*)(?:[.!?]|$)",
                r"\b(?:news|headlines|articles)\s+([A-Za-z0-9][A-Za-z0-9\s,.'-]*)(?:[.!?]|$)",
            ],
        },
        "stopwords": [
            "what", "what's", "whats", "how", "how's", "hows", "is", "are", "was", "will", "be",
            "it", "its", "it's", "the", "a", "an", "tell", "me", "give", "get", "show", "please",
            "can", "could", "you", "i", "about", "in", "for", "at", "on", "of", "regarding",
            "latest", "top", "current", "currently", "like", "today", "tonight", "tomorrow",
            "now", "right", "any", "there", "going", "to", "do", "does", "all",
        ],
        # Time words that trail a place name ("in London tomorrow")
        "trailing_time": r"\s+(?:today|tonight|tomorrow|now|right now|this (?:morning|afternoon|evening|week|weekend))$",
        # Slot values that are only a time reference ("the weekend", "next week")
        "time_phrase": (
            r"(?:(?:this|next|the|that)\s+)?"
            r"(?:today|tonight|tomorrow|now|weekend|week|morning|afternoon|evening|night|days?)"
        ),
        # Lowercase leading article; "The Hague" keeps its capital T
        "leading_article": r"^(?:the|a|an)\s+",
    }

    return patterns


def compile_patterns(patterns: Dict[str, Any]) -> Dict[str, Any]:
    """
    Compile regex patterns for performance.

    Args:
        patterns: Pattern dictionary from load_intent_patterns()

    Returns:
        Dictionary with compiled regex patterns
    """
    compiled = {}

    for category in INTENT_PRIORITY:
        compiled[category] = {
            "keyword_pattern": re.compile(patterns[category]["keyword_pattern"], re.IGNORECASE),
            "slot_patterns": [re.compile(p, re.IGNORECASE) for p in patterns[category]["slot_patterns"]],
        }
        splitter = patterns[category].get("slot_splitter")
        compiled[category]["slot_splitter"] = re.compile(splitter, re.IGNORECASE) if splitter else None

    compiled["stopwords"] = frozenset(patterns["stopwords"])
    compiled["trailing_time"] = re.compile(patterns["trailing_time"], re.IGNORECASE)
    compiled["time_phrase"] = re.compile(patterns["time_phrase"], re.IGNORECASE)
    compiled["leading_article"] = re.compile(patterns["leading_article"])

    return compiled


def get_classification_prompt(message: str) -> str:
    """Prompt asking the model for strictly one intent plus slot fields as JSON."""
    return f"""You will classify the following user message into one of three intents: "weather", "news", or "general".
If the intent is "weather", also extract the most relevant location mentioned (city, state, country, zip code, etc.). If you cannot find one, return an empty string for location.
If the intent is "news", also extract the specific topic or keywords the user is interested in (e.g., "stock market", "AI advancements", "local politics"). If none are clearly provided beyond "news" itself, use an empty string for topic.
If the user mentions an activity they are planning (e.g., "hiking", "a picnic"), put it in activity; otherwise use an empty string.
Respond strictly in JSON format with the shape {{"intent": "weather|news|general", "location": "", "topic": "", "activity": ""}}. Do not add any text before or after the JSON object.
Example for weather in London: {{"intent": "weather", "location": "London", "topic": "", "activity": ""}}
Example for news about tech: {{"intent": "news", "location": "", "topic": "tech", "activity": ""}}
Example for a general question: {{"intent": "general", "location": "", "topic": "", "activity": ""}}
User message: "{message}"
"""


def get_general_prompt(message: str) -> str:
    """Persona prompt for open-ended answers."""
    return f"""You are NodeMesh, a helpful assistant. Answer the user's message in a concise and friendly way.
You can also look up live weather and news when the user asks for them.
User message: "{message}"
"""
