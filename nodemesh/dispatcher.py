"""
Dispatch: classifier -> handler -> ChatReply.
"""

import logging
from typing import Optional

import httpx

from .config import RouterConfig
from .handlers import GeneralHandler, NewsHandler, WeatherHandler
from .intent_classifier import IntentClassifier
from .model_invoker import ModelInvoker
from .models import ChatReply, Intent

logger = logging.getLogger(__name__)


class EmptyMessageError(ValueError):
    """Client sent no message text."""


def validate_message(message: Optional[str]) -> str:
    """Return the message, or raise EmptyMessageError for missing/blank input."""
    if not isinstance(message, str) or not message.strip():
        raise EmptyMessageError("Message is required.")
    return message


class ChatDispatcher:
    """Routes one message through classification and the matching handler."""

    def __init__(
        self,
        classifier: IntentClassifier,
        weather: WeatherHandler,
        news: NewsHandler,
        general: GeneralHandler,
    ):
        self.classifier = classifier
        self.weather = weather
        self.news = news
        self.general = general

    @classmethod
    def from_config(cls, config: RouterConfig, http_client: httpx.AsyncClient, transport=None) -> "ChatDispatcher":
        """Wire every component from one config; the invoker is shared."""
        invoker = ModelInvoker.from_config(config, transport=transport)
        return cls(
            classifier=IntentClassifier(config, invoker),
            weather=WeatherHandler(config, http_client),
            news=NewsHandler(config, http_client),
            general=GeneralHandler(invoker),
        )

    async def dispatch(self, message: Optional[str]) -> ChatReply:
        """
        Handle one chat message.

        Raises:
            EmptyMessageError: before any classification or network call
        """
        message = validate_message(message)
        logger.info(f"Received message: {message[:80]!r}")

        classification = await self.classifier.classify(message)

        if classification.intent is Intent.WEATHER:
            reply = await self.weather.handle(classification.location)
        elif classification.intent is Intent.NEWS:
            reply = await self.news.handle(classification.topic, message)
        else:
            reply = await self.general.handle(message)

        logger.info(f"Sending reply (intent={classification.intent.value}, length={len(reply)})")
        return ChatReply(
            reply=reply,
            intent=classification.intent.value,
            location=classification.location,
            topic=classification.topic,
        )
