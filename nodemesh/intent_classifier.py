"""
Intent Classification - LLM with keyword fallback

Two-tier classification:
- Tier 1 (LLM): Gemini via ModelInvoker, JSON pulled out with extract_json()
- Tier 2 (Keyword): deterministic regex matching, weather before news,
  general when neither matches

Tier 1 is skipped when the LLM path is disabled. Any tier-1 failure
(invoker error, no JSON, unknown intent) falls through to tier 2, so
classify() always returns a ClassificationResult.
"""

import re
import logging
import time
from typing import Any, Optional

from .config import RouterConfig
from .degradation import DegradationChain, Stage
from .model_invoker import ModelInvoker
from .models import ClassificationResult, Intent
from .patterns import INTENT_PRIORITY, compile_patterns, get_classification_prompt, load_intent_patterns
from .text_extractor import extract_json

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"[A-Za-z0-9][A-Za-z0-9'-]*")


def _slot_value(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


class IntentClassifier:
    """
    Classifies a message into weather / news / general with slots.

    Intents:
        - weather: location slot
        - news: topic slot
        - general: everything else
    """

    def __init__(self, config: RouterConfig, invoker: ModelInvoker):
        """
        Args:
            config: Router configuration
            invoker: Shared model invoker (its enabled flag gates tier 1)
        """
        self.config = config
        self.invoker = invoker

        self.patterns = load_intent_patterns()
        self.compiled_patterns = compile_patterns(self.patterns)

    async def classify(self, message: str) -> ClassificationResult:
        """
        Classify a message.

        Args:
            message: Raw user message

        Returns:
            ClassificationResult (never raises for upstream failures)
        """
        start_time = time.time()

        async def keyword_stage() -> ClassificationResult:
            return self.classify_with_keywords(message)

        chain = DegradationChain(
            "intent",
            [
                Stage("llm", lambda: self._classify_with_llm(message), enabled=self.invoker.enabled),
                Stage("keyword", keyword_stage),
            ],
            fallback=ClassificationResult(intent=Intent.GENERAL),
        )
        outcome = await chain.run()
        result = outcome.value

        if self.config.log_classifications:
            logger.info(
                f" Intent ({outcome.stage}): {result.intent.value} "
                f"location={result.location or 'N/A'} topic={result.topic or 'N/A'} "
                f"(time={(time.time() - start_time) * 1000:.1f}ms)"
            )

        return result

    async def _classify_with_llm(self, message: str) -> Optional[ClassificationResult]:
        raw = await self.invoker.invoke(get_classification_prompt(message))
        logger.debug(f"Raw Gemini intent response: {raw[:200]!r}")

        parsed = extract_json(raw)
        if parsed is None:
            logger.warning("⚠️ Failed to parse valid JSON intent from Gemini, using fallback.")
            return None

        intent = Intent.normalize(parsed.get("intent"))
        if intent is None:
            logger.warning(f"⚠️ Gemini returned unrecognized intent {parsed.get('intent')!r}, using fallback.")
            return None

        return ClassificationResult(
            intent=intent,
            location=_slot_value(parsed.get("location")),
            topic=_slot_value(parsed.get("topic")),
            activity=_slot_value(parsed.get("activity")),
            source="llm",
        )

    def classify_with_keywords(self, message: str) -> ClassificationResult:
        """
        Deterministic keyword classification.

        Categories are tested in INTENT_PRIORITY order; the first whose
        keyword pattern matches wins. The slot comes from a prepositional
        phrase when one matches, else from the message with keywords and
        stopwords removed.
        """
        text = (message or "").strip()

        for category in INTENT_PRIORITY:
            compiled = self.compiled_patterns[category]
            if not compiled["keyword_pattern"].search(text):
                continue

            slot_value = self._extract_slot(text, category)
            slot_name = self.patterns[category]["slot"]
            logger.debug(f"[Keyword Intent] Detected {category} with {slot_name}={slot_value or 'Not Found'}")
            return ClassificationResult(
                intent=Intent(category),
                location=slot_value if slot_name == "location" else "",
                topic=slot_value if slot_name == "topic" else "",
            )

        logger.debug("[Keyword Intent] Detected general")
        return ClassificationResult(intent=Intent.GENERAL)

    def _extract_slot(self, text: str, category: str) -> str:
        compiled = self.compiled_patterns[category]

        for pattern in compiled["slot_patterns"]:
            match = pattern.search(text)
            if match:
                segments = [match.group(1)]
                if compiled["slot_splitter"] is not None:
                    segments = compiled["slot_splitter"].split(match.group(1))
                values = [v for v in (self._clean_slot(s) for s in segments) if v]
                if values:
                    return values[-1]

        remainder = compiled["keyword_pattern"].sub(" ", text)
        stopwords = self.compiled_patterns["stopwords"]
        tokens = [tok for tok in _TOKEN.findall(remainder) if tok.lower() not in stopwords]
        return " ".join(tokens)

    def _clean_slot(self, value: str) -> str:
        cleaned = value.strip().rstrip(" ,.'-")
        cleaned = self.compiled_patterns["trailing_time"].sub("", cleaned).strip().rstrip(" ,.'-")
        cleaned = self.compiled_patterns["leading_article"].sub("", cleaned)
        if cleaned.lower() in self.compiled_patterns["stopwords"]:
            return ""
        if self.compiled_patterns["time_phrase"].fullmatch(cleaned):
            return ""
        return cleaned
