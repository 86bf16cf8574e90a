"""
Safety Check Service - Drug name + allergy list to safety verdict
"""
import logging
from typing import Iterable, Optional

from hygeia.exceptions import InvalidInput
from hygeia.models.drug import AllergyProfile, DrugIdentity, SafetyVerdict
from hygeia.services.drug_database import DrugKnowledgeBase
from hygeia.services.safety_resolver import SafetyResolver

logger = logging.getLogger(__name__)


class SafetyCheckService:
    """Resolve a typed drug name against the user's allergy profile"""

    def __init__(self, knowledge_base: DrugKnowledgeBase, resolver: SafetyResolver):
        self.knowledge_base = knowledge_base
        self.resolver = resolver

    def identify(self, drug_name: str) -> DrugIdentity:
        """Knowledge base identity, or the degraded placeholder on a miss"""
        identity = self.knowledge_base.lookup(drug_name)
        if identity is None:
            logger.info(f"'{drug_name}' not found in knowledge base, using degraded identity")
            return DrugIdentity.unknown(drug_name)
        return identity

    def check(self, drug_name: Optional[str], allergies: Iterable[str] = ()) -> SafetyVerdict:
        """
        Run a safety check

        Raises:
            InvalidInput: blank drug name (checked before any lookup or remote call)
            AnalysisFailed: a remote resolver could not produce a verdict
        """
        if not drug_name or not drug_name.strip():
            raise InvalidInput("Please enter a drug name.")

        profile = allergies if isinstance(allergies, AllergyProfile) else AllergyProfile(allergies)
        identity = self.identify(drug_name.strip())

        verdict = self.resolver.resolve(identity, profile)
        logger.info(
            f"Safety check for {identity.name} with {len(profile)} allergies "
            f"({self.resolver.engine}): {verdict.status.value}"
        )
        return verdict
