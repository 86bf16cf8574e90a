"""
Authenticity assessment models
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from hygeia.models.drug import DrugIdentity


class AuthenticityStatus(str, Enum):
    AUTHENTIC = "AUTHENTIC"
    COUNTERFEIT = "COUNTERFEIT"
    SUSPICIOUS = "SUSPICIOUS"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AuthenticityStatus":
        try:
            return cls(str(value or '').strip().upper())
        except ValueError:
            return cls.UNKNOWN


class SideEffectSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SideEffectSeverity":
        try:
            return cls(str(value or '').strip().upper())
        except ValueError:
            return cls.MEDIUM


@dataclass(frozen=True)
class SideEffect:
    effect: str
    severity: SideEffectSeverity


@dataclass(frozen=True)
class ActiveIngredient:
    name: str
    dosage: str = ""


@dataclass(frozen=True)
class AuthenticityReport:
    """Structured verdict returned by the authenticity assessor"""
    identity: DrugIdentity
    manufacturer: str
    authenticity_status: AuthenticityStatus
    confidence_score: float
    authenticity_reasoning: str
    side_effects: Tuple[SideEffect, ...] = ()
    active_ingredients: Tuple[ActiveIngredient, ...] = ()

    @property
    def is_counterfeit(self) -> bool:
        return self.authenticity_status == AuthenticityStatus.COUNTERFEIT

    def to_dict(self) -> Dict:
        return {
            'name': self.identity.name,
            'manufacturer': self.manufacturer,
            'drug_family': self.identity.family,
            'active_ingredients': [
                {'name': i.name, 'dosage': i.dosage} for i in self.active_ingredients
            ],
            'authenticity_status': self.authenticity_status.value,
            'confidence_score': self.confidence_score,
            'authenticity_reasoning': self.authenticity_reasoning,
            'side_effects': [
                {'effect': s.effect, 'severity': s.severity.value} for s in self.side_effects
            ],
        }
