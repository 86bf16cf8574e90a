"""
Service providers for the API routers

Each getter builds its service once; tests swap them through
``app.dependency_overrides``.
"""
import logging

from fastapi import HTTPException

from hygeia.config import settings
from hygeia.exceptions import AnalysisFailed, FlowBusy, InvalidInput, InvalidTransition
from hygeia.services.authenticity_service import AuthenticityAssessor
from hygeia.services.drug_database import DrugKnowledgeBase
from hygeia.services.flow_controller import FlowSessionStore, InteractionFlowController
from hygeia.services.gemini_service import GeminiService
from hygeia.services.safety_check_service import SafetyCheckService
from hygeia.services.safety_resolver import (
    GeminiSafetyResolver, RuleBasedSafetyResolver, SafetyResolver
)

logger = logging.getLogger(__name__)

_gemini_service = None
_knowledge_base = None
_safety_resolver = None
_session_store = None


def get_gemini_service() -> GeminiService:
    """Get or create the Gemini service"""
    global _gemini_service
    if _gemini_service is None:
        _gemini_service = GeminiService()
    return _gemini_service


def get_knowledge_base() -> DrugKnowledgeBase:
    """Get or create the drug knowledge base"""
    global _knowledge_base
    if _knowledge_base is None:
        _knowledge_base = DrugKnowledgeBase(extra_catalog_path=settings.KNOWLEDGE_BASE_PATH)
    return _knowledge_base


def get_assessor() -> AuthenticityAssessor:
    return AuthenticityAssessor(get_gemini_service())


def get_safety_resolver() -> SafetyResolver:
    """Get or create the resolver selected by SAFETY_ENGINE"""
    global _safety_resolver
    if _safety_resolver is None:
        if settings.SAFETY_ENGINE.lower() == "gemini":
            _safety_resolver = GeminiSafetyResolver(get_gemini_service())
        else:
            _safety_resolver = RuleBasedSafetyResolver(get_knowledge_base())
        logger.info(f"Safety engine: {_safety_resolver.engine}")
    return _safety_resolver


def get_safety_check_service() -> SafetyCheckService:
    return SafetyCheckService(get_knowledge_base(), get_safety_resolver())


def get_session_store() -> FlowSessionStore:
    """Get or create the verify session store"""
    global _session_store
    if _session_store is None:
        _session_store = FlowSessionStore(
            factory=lambda: InteractionFlowController(get_assessor(), get_safety_resolver()),
            max_sessions=settings.MAX_SESSIONS,
        )
    return _session_store


def to_http_error(error: Exception, retry_message: str = "Request failed. Please try again.") -> HTTPException:
    """Map a service error onto the HTTP status the front end expects"""
    if isinstance(error, InvalidInput):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, (InvalidTransition, FlowBusy)):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, AnalysisFailed):
        logger.error(f"Analysis failed: {error}")
        return HTTPException(status_code=502, detail=retry_message)
    logger.error(f"Unexpected service error: {error}")
    return HTTPException(status_code=500, detail=str(error))
