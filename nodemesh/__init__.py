"""
NodeMesh Chat Router

Routes a free-text message to a weather, news or general handler. Intent
comes from Gemini when it is reachable and from keyword matching when it is
not; every handler degrades to a display string instead of failing.

Main Entry Point:
    app.py - FastAPI application with POST /chat endpoint

Components:
    - RouterConfig: Configuration dataclass with environment variable loading
    - ModelInvoker: Gemini calls with cross-model fallback
    - IntentClassifier: LLM classification with keyword fallback
    - ChatDispatcher: classifier -> handler -> reply
"""

from .config import RouterConfig
from .dispatcher import ChatDispatcher, EmptyMessageError
from .intent_classifier import IntentClassifier
from .model_invoker import ModelFallbackPolicy, ModelInvoker
from .models import ChatReply, ClassificationResult, Intent

__all__ = [
    "ChatDispatcher",
    "ChatReply",
    "ClassificationResult",
    "EmptyMessageError",
    "Intent",
    "IntentClassifier",
    "ModelFallbackPolicy",
    "ModelInvoker",
    "RouterConfig",
]
