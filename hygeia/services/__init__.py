# Services Package
from .drug_database import DrugKnowledgeBase
from .gemini_service import GeminiService
from .authenticity_service import AuthenticityAssessor
from .safety_resolver import SafetyResolver, RuleBasedSafetyResolver, GeminiSafetyResolver
from .safety_check_service import SafetyCheckService
from .flow_controller import FlowStage, InteractionFlowController, FlowSessionStore

__all__ = [
    'DrugKnowledgeBase',
    'GeminiService',
    'AuthenticityAssessor',
    'SafetyResolver',
    'RuleBasedSafetyResolver',
    'GeminiSafetyResolver',
    'SafetyCheckService',
    'FlowStage',
    'InteractionFlowController',
    'FlowSessionStore',
]
