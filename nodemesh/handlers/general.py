"""
General handler: open-ended answers from Gemini with a static fallback.
"""

import logging
from typing import Optional

from ..degradation import DegradationChain, Stage
from ..model_invoker import ModelInvoker
from ..patterns import get_general_prompt

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "I'm having trouble reaching my AI brain right now, but you can try again in a bit "
    "or ask for weather or news updates."
)


class GeneralHandler:
    """Answers general intents through the shared model invoker."""

    def __init__(self, invoker: ModelInvoker):
        self.invoker = invoker

    async def handle(self, message: str) -> str:
        async def llm_answer() -> Optional[str]:
            text = await self.invoker.invoke(get_general_prompt(message))
            return text.strip() or None

        chain = DegradationChain(
            "general",
            [Stage("llm", llm_answer, enabled=self.invoker.enabled)],
            fallback=FALLBACK_MESSAGE,
        )
        outcome = await chain.run()
        if outcome.degraded:
            logger.warning(f"⚠️ General answer degraded to static reply (skipped={outcome.skipped})")
        return outcome.value
