"""
Authenticity Assessor - Medicine package verification through Gemini vision
"""
import logging
from typing import Any, Dict, List

from hygeia.exceptions import AnalysisFailed, InvalidInput
from hygeia.models.authenticity import (
    ActiveIngredient, AuthenticityReport, AuthenticityStatus, SideEffect, SideEffectSeverity
)
from hygeia.models.drug import DrugIdentity
from hygeia.models.image import ImagePayload
from hygeia.services.gemini_service import reply_list

logger = logging.getLogger(__name__)


AUTHENTICITY_SYSTEM_INSTRUCTION = (
    "You are Hygeia, a medical safety AI. Analyze this medicine package image for authenticity. "
    "Inspect typography, alignment, holographic elements (if visible), and packaging quality. "
    "Identify drug name, manufacturer, and ingredients. Be precise and conservative in your assessment."
)

AUTHENTICITY_PROMPT = (
    "Assess the medicine package in this image and respond with the JSON object described by the schema."
)

AUTHENTICITY_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "manufacturer": {"type": "string"},
        "activeIngredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "dosage": {"type": "string"},
                },
            },
        },
        "drugFamily": {"type": "string"},
        "authenticityStatus": {
            "type": "string",
            "description": "AUTHENTIC, COUNTERFEIT, or SUSPICIOUS",
        },
        "confidenceScore": {"type": "number", "description": "Value between 0 and 1"},
        "authenticityReasoning": {"type": "string"},
        "sideEffects": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "effect": {"type": "string"},
                    "severity": {"type": "string", "description": "LOW, MEDIUM, or HIGH"},
                },
            },
        },
    },
    "required": [
        "name", "manufacturer", "activeIngredients", "drugFamily", "authenticityStatus",
        "confidenceScore", "authenticityReasoning", "sideEffects",
    ],
}


class AuthenticityAssessor:
    """
    Authenticity assessment of medicine package photos

    The client is any object exposing ``generate_json(prompt,
    system_instruction, response_schema, image)``; in production that is
    GeminiService.
    """

    def __init__(self, client):
        self.client = client

    def assess(self, image: ImagePayload) -> AuthenticityReport:
        """
        Analyze a medicine image for authenticity and extract its details

        Raises:
            InvalidInput: no image supplied
            AnalysisFailed: the AI call failed or returned unusable data
        """
        if image is None or not image.data:
            raise InvalidInput("No image provided.")

        logger.info(f"Assessing package image ({image.mime_type}, {image.size} bytes)")
        data = self.client.generate_json(
            prompt=AUTHENTICITY_PROMPT,
            system_instruction=AUTHENTICITY_SYSTEM_INSTRUCTION,
            response_schema=AUTHENTICITY_RESPONSE_SCHEMA,
            image=image,
        )
        report = self.parse_report(data)
        logger.info(
            f"Assessment for {report.identity.name}: {report.authenticity_status.value} "
            f"(confidence {report.confidence_score:.2f})"
        )
        return report

    def parse_report(self, data: Dict[str, Any]) -> AuthenticityReport:
        """Convert the assessor JSON reply into an AuthenticityReport"""
        if not data or not isinstance(data, dict):
            raise AnalysisFailed("Empty response from AI")

        name = str(data.get('name') or '').strip()
        if not name:
            raise AnalysisFailed("AI response did not identify the medicine")

        raw_status = data.get('authenticityStatus')
        if raw_status is not None and not isinstance(raw_status, str):
            logger.error(f"Malformed authenticityStatus in AI response: {raw_status!r}")
            raise AnalysisFailed("Malformed 'authenticityStatus' in AI response")

        active_ingredients = self._parse_ingredients(reply_list(data, 'activeIngredients'))
        family = str(data.get('drugFamily') or '').strip()

        # Nothing usable to cross-check against: fall back to the degraded identity
        if not family and not active_ingredients:
            identity = DrugIdentity.unknown(name)
        else:
            identity = DrugIdentity(
                name=name,
                family=family,
                ingredients=[i.name for i in active_ingredients],
            )

        return AuthenticityReport(
            identity=identity,
            manufacturer=str(data.get('manufacturer') or '').strip(),
            authenticity_status=AuthenticityStatus.parse(raw_status),
            confidence_score=self._parse_confidence(data.get('confidenceScore')),
            authenticity_reasoning=str(data.get('authenticityReasoning') or '').strip(),
            side_effects=tuple(self._parse_side_effects(reply_list(data, 'sideEffects'))),
            active_ingredients=tuple(active_ingredients),
        )

    @staticmethod
    def _parse_ingredients(raw) -> List[ActiveIngredient]:
        ingredients = []
        for item in raw:
            if isinstance(item, dict):
                name = str(item.get('name') or '').strip()
                dosage = str(item.get('dosage') or '').strip()
            else:
                name, dosage = str(item or '').strip(), ''
            if name:
                ingredients.append(ActiveIngredient(name=name, dosage=dosage))
        return ingredients

    @staticmethod
    def _parse_side_effects(raw) -> List[SideEffect]:
        effects = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            effect = str(item.get('effect') or '').strip()
            if effect:
                effects.append(SideEffect(
                    effect=effect,
                    severity=SideEffectSeverity.parse(item.get('severity')),
                ))
        return effects

    @staticmethod
    def _parse_confidence(raw) -> float:
        try:
            value = float(raw)
        except (TypeError, ValueError):
            logger.warning(f"Non-numeric confidence score from AI: {raw!r}")
            return 0.0
        if value != value:  # NaN
            return 0.0
        return min(1.0, max(0.0, value))
