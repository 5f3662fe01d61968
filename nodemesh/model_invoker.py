"""
Gemini invocation with cross-model fallback.

One ModelFallbackPolicy (ordered candidate list + retriable predicate) is
shared by every call site. ModelInvoker walks the candidates, returns the
first usable text, moves on after retriable failures and stops at the first
terminal one.

GeminiTransport is the only code that touches google-generativeai; it turns
SDK responses and exceptions into plain text or ModelCallError so the
invoker can be driven by a scripted transport in tests.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence, Tuple

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from .config import RouterConfig

logger = logging.getLogger(__name__)

# Failure reasons reported by the transport
REASON_HTTP = "http_error"
REASON_TIMEOUT = "timeout"
REASON_NETWORK = "network_error"
REASON_EMPTY = "empty_response"
REASON_PROMPT_BLOCKED = "prompt_blocked"
REASON_CANDIDATE_BLOCKED = "candidate_blocked"
REASON_UNEXPECTED_FINISH = "unexpected_finish"

_OK_FINISH_REASONS = {"STOP", "MAX_TOKENS", "FINISH_REASON_UNSPECIFIED"}


class ModelInvocationError(Exception):
    """Base class for every failure of the text-generation path."""


class ModelUnavailableError(ModelInvocationError):
    """LLM path disabled by configuration or missing credentials."""


class ModelCallError(ModelInvocationError):
    """A single model call failed or produced unusable output."""

    def __init__(self, message: str, model_id: str = "", status: Optional[int] = None, reason: str = REASON_HTTP):
        super().__init__(message)
        self.model_id = model_id
        self.status = status
        self.reason = reason

    def __str__(self) -> str:
        details = [f"model={self.model_id}" if self.model_id else "", f"status={self.status}" if self.status else ""]
        suffix = ", ".join(d for d in details if d)
        base = super().__str__()
        return f"{base} ({suffix}, reason={self.reason})" if suffix else f"{base} (reason={self.reason})"


class AllModelsFailedError(ModelInvocationError):
    """Every candidate model was tried and none produced usable text."""

    def __init__(self, attempts: Sequence[str], last_error: Optional[BaseException]):
        self.attempts = list(attempts)
        self.last_error = last_error
        super().__init__(f"All Gemini model attempts failed ({', '.join(self.attempts)}): {last_error}")


@dataclass(frozen=True)
class ModelFallbackPolicy:
    """
    Candidate ordering and retry classification shared by every model call.

    Attributes:
        fallback_models: Models tried after the preferred one, in order
        retriable_statuses: HTTP statuses worth trying on another model
        retriable_reasons: Non-HTTP failure reasons worth trying on another model
    """

    fallback_models: Tuple[str, ...] = ("gemini-1.5-flash", "gemini-pro")
    retriable_statuses: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})
    retriable_reasons: FrozenSet[str] = field(
        default_factory=lambda: frozenset(
            {REASON_TIMEOUT, REASON_NETWORK, REASON_EMPTY, REASON_CANDIDATE_BLOCKED, REASON_UNEXPECTED_FINISH}
        )
    )

    @classmethod
    def from_config(cls, config: RouterConfig) -> "ModelFallbackPolicy":
        return cls(fallback_models=tuple(config.fallback_models))

    def candidates(self, preferred_model: Optional[str]) -> List[str]:
        """Preferred model first, then fallbacks, deduplicated in order."""
        ordered: List[str] = []
        for model_id in ([preferred_model] if preferred_model else []) + list(self.fallback_models):
            if model_id and model_id not in ordered:
                ordered.append(model_id)
        return ordered

    def is_retriable(self, error: ModelCallError) -> bool:
        if error.status is not None:
            return error.status in self.retriable_statuses
        return error.reason in self.retriable_reasons


class GeminiTransport:
    """Issues one generateContent call per model through google-generativeai."""

    def __init__(self, api_key: str, timeout: float, temperature: float = 0.2, max_output_tokens: int = 800):
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        genai.configure(api_key=api_key)

    async def generate(self, model_id: str, prompt: str) -> str:
        """
        Call one model and return its text.

        Raises:
            ModelCallError: on SDK errors, timeouts or unusable output
        """
        model = genai.GenerativeModel(model_id)
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    model.generate_content,
                    prompt,
                    generation_config=genai.types.GenerationConfig(
                        temperature=self.temperature,
                        max_output_tokens=self.max_output_tokens,
                    ),
                    request_options={"timeout": self.timeout},
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ModelCallError(f"Gemini call timed out after {self.timeout}s", model_id, reason=REASON_TIMEOUT) from e
        except google_exceptions.GoogleAPICallError as e:
            status = e.code if isinstance(e.code, int) else None
            raise ModelCallError(f"Gemini API error: {e.message}", model_id, status=status) from e
        except google_exceptions.RetryError as e:
            raise ModelCallError(f"Gemini network error: {e}", model_id, reason=REASON_NETWORK) from e
        except OSError as e:
            raise ModelCallError(f"Gemini network error: {e}", model_id, reason=REASON_NETWORK) from e

        return self._extract_text(model_id, response)

    @staticmethod
    def _extract_text(model_id: str, response) -> str:
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback is not None else None
        candidates = list(getattr(response, "candidates", None) or [])

        if not candidates:
            if block_reason:
                reason_name = getattr(block_reason, "name", str(block_reason))
                logger.error(f"Gemini request blocked for model {model_id}. Reason: {reason_name}")
                raise ModelCallError(
                    f"Gemini request blocked due to safety settings (Reason: {reason_name})",
                    model_id,
                    reason=REASON_PROMPT_BLOCKED,
                )
            raise ModelCallError("No candidates in Gemini response", model_id, reason=REASON_EMPTY)

        candidate = candidates[0]
        finish_reason = getattr(candidate, "finish_reason", None)
        finish_name = getattr(finish_reason, "name", None) or (str(finish_reason) if finish_reason else None)
        if finish_name and finish_name not in _OK_FINISH_REASONS:
            logger.error(f"Gemini generation stopped for model {model_id}. Reason: {finish_name}")
            reason = REASON_CANDIDATE_BLOCKED if finish_name == "SAFETY" else REASON_UNEXPECTED_FINISH
            raise ModelCallError(f"Gemini generation finished unexpectedly (Reason: {finish_name})", model_id, reason=reason)

        content = getattr(candidate, "content", None)
        parts = list(getattr(content, "parts", None) or [])
        text = "".join(part.text for part in parts if isinstance(getattr(part, "text", None), str))
        if not text.strip():
            raise ModelCallError("No text content in Gemini response parts", model_id, reason=REASON_EMPTY)
        return text


class ModelInvoker:
    """
    Best-effort text generation across an ordered list of models.

    The caller sees either text or a ModelInvocationError; which model
    answered is only visible in the logs.
    """

    def __init__(
        self,
        transport,
        policy: ModelFallbackPolicy,
        default_model: str,
        enabled: bool = True,
    ):
        self.transport = transport
        self.policy = policy
        self.default_model = default_model
        self.enabled = enabled

    @classmethod
    def from_config(cls, config: RouterConfig, transport=None) -> "ModelInvoker":
        if transport is None and config.llm_enabled:
            transport = GeminiTransport(config.gemini_api_key, timeout=config.gemini_timeout)
        return cls(
            transport=transport,
            policy=ModelFallbackPolicy.from_config(config),
            default_model=config.gemini_model,
            enabled=config.llm_enabled and transport is not None,
        )

    async def invoke(self, prompt: str, preferred_model: Optional[str] = None) -> str:
        """
        Generate text for a prompt, falling back across models.

        Args:
            prompt: Full prompt text
            preferred_model: Model to try first (default: configured model)

        Returns:
            The first non-empty text produced by a candidate model

        Raises:
            ModelUnavailableError: LLM path disabled
            ModelCallError: terminal failure (not retried)
            AllModelsFailedError: every candidate failed retriably
        """
        if not self.enabled or self.transport is None:
            raise ModelUnavailableError("Gemini is disabled or GEMINI_API_KEY is not set")

        candidates = self.policy.candidates(preferred_model or self.default_model)
        attempted: List[str] = []
        last_error: Optional[ModelCallError] = None

        for model_id in candidates:
            attempted.append(model_id)
            logger.debug(f"Attempting Gemini call to model: {model_id}")
            try:
                text = await self.transport.generate(model_id, prompt)
            except ModelCallError as e:
                last_error = e
                if not self.policy.is_retriable(e):
                    logger.warning(f"⚠️ Gemini call failed for model {model_id} with terminal error: {e}")
                    raise
                logger.warning(f"⚠️ Gemini call failed for model {model_id}: {e}. Trying next fallback...")
                continue

            if text and text.strip():
                if model_id != candidates[0]:
                    logger.warning(f"Gemini initial model {candidates[0]} failed, fell back to model: {model_id}")
                return text

            last_error = ModelCallError("Empty text in Gemini response", model_id, reason=REASON_EMPTY)
            logger.warning(f"⚠️ Empty text from model {model_id}. Trying next fallback...")

        logger.error(f"❌ All Gemini model attempts failed: {attempted}")
        raise AllModelsFailedError(attempted, last_error) from last_error
