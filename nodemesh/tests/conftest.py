"""
Test configuration and fixtures for the chat router tests.

Gemini is replaced by ScriptedTransport (a list of outcomes consumed in
order); weather and news sources by httpx.MockTransport.
"""

from typing import Callable, List, Tuple, Union

import httpx
import pytest

from nodemesh.config import RouterConfig
from nodemesh.model_invoker import ModelCallError, ModelFallbackPolicy, ModelInvoker


class ScriptedTransport:
    """Stands in for GeminiTransport; each generate() pops the next outcome."""

    def __init__(self, outcomes: List[Union[str, Exception]]):
        self.outcomes = list(outcomes)
        self.calls: List[Tuple[str, str]] = []

    @property
    def models_called(self) -> List[str]:
        return [model_id for model_id, _ in self.calls]

    async def generate(self, model_id: str, prompt: str) -> str:
        self.calls.append((model_id, prompt))
        if not self.outcomes:
            raise AssertionError(f"unexpected extra model call to {model_id}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            if isinstance(outcome, ModelCallError) and not outcome.model_id:
                outcome.model_id = model_id
            raise outcome
        return outcome


def retriable_error(status: int = 503) -> ModelCallError:
    return ModelCallError("upstream unavailable", status=status)


def terminal_error(status: int = 400) -> ModelCallError:
    return ModelCallError("bad request", status=status)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose every request is answered by handler."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def test_config() -> RouterConfig:
    """Fully configured router (no real credentials)"""
    return RouterConfig(
        gemini_api_key="test-gemini-key",
        gemini_model="gemini-2.0-flash",
        fallback_models=("gemini-1.5-flash", "gemini-pro"),
        weather_api_key="test-weather-key",
        news_api_key="test-news-key",
        weather_base_url="https://weather.test/v1",
        news_base_url="https://news.test/v2",
        log_classifications=False,
    )


@pytest.fixture
def keyword_only_config(test_config) -> RouterConfig:
    """Same configuration with the LLM kill switch on"""
    return RouterConfig(
        gemini_api_key=test_config.gemini_api_key,
        disable_gemini=True,
        weather_api_key=test_config.weather_api_key,
        news_api_key=test_config.news_api_key,
        weather_base_url=test_config.weather_base_url,
        news_base_url=test_config.news_base_url,
        log_classifications=False,
    )


@pytest.fixture
def make_invoker(test_config) -> Callable[[List[Union[str, Exception]]], Tuple[ModelInvoker, ScriptedTransport]]:
    """Factory: invoker driven by a scripted list of outcomes"""

    def _make(outcomes):
        transport = ScriptedTransport(outcomes)
        invoker = ModelInvoker(
            transport=transport,
            policy=ModelFallbackPolicy.from_config(test_config),
            default_model=test_config.gemini_model,
        )
        return invoker, transport

    return _make


@pytest.fixture
def disabled_invoker(keyword_only_config) -> ModelInvoker:
    """Invoker with the LLM path switched off"""
    return ModelInvoker.from_config(keyword_only_config)
