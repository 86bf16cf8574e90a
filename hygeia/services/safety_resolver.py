"""
Safety Resolver - Allergy cross-referencing for a single drug
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from hygeia.exceptions import AnalysisFailed, InvalidInput
from hygeia.models.drug import DrugIdentity, SafetyStatus, SafetyVerdict
from hygeia.services.drug_database import DrugKnowledgeBase
from hygeia.services.gemini_service import reply_list

logger = logging.getLogger(__name__)


UNKNOWN_DRUG_WARNING = "Drug not in reference database; consult pharmacist"
UNKNOWN_DRUG_EXPLANATION = "Unrecognized medication — proceed with caution."


@dataclass(frozen=True)
class AllergyMatch:
    """One allergy term that hit the drug's family or an ingredient"""
    term: str
    matched_on: str   # 'family' or 'ingredient'
    matched_value: str

    def warning(self, drug_name: str) -> str:
        if self.matched_on == 'family':
            return (f"Contraindicated: {drug_name} belongs to the {self.matched_value} family, "
                    f"which matches your '{self.term}' allergy")
        return (f"Contraindicated: {drug_name} contains {self.matched_value}, "
                f"which matches your '{self.term}' allergy")


def _normalize(value: str) -> str:
    return (value or '').strip().lower()


def find_allergy_matches(identity: DrugIdentity, allergies: Iterable[str]) -> List[AllergyMatch]:
    """
    Match allergy terms against a drug's family and ingredients

    A term matches when it is a substring of the family, or equal to or a
    substring of an ingredient name, all compared trimmed and lowercased.
    Results follow the order of ``allergies``; empty and repeated terms are
    skipped.
    """
    family = _normalize(identity.family)
    ingredients = [(ingredient, _normalize(ingredient)) for ingredient in identity.ingredients]

    matches = []
    seen = set()
    for term in allergies:
        needle = _normalize(term)
        if not needle or needle in seen:
            continue
        seen.add(needle)

        if family and needle in family:
            matches.append(AllergyMatch(term.strip(), 'family', identity.family))
            continue

        for original, normalized in ingredients:
            if needle in normalized:
                matches.append(AllergyMatch(term.strip(), 'ingredient', original))
                break

    return matches


def _join_terms(terms: List[str]) -> str:
    if len(terms) == 1:
        return terms[0]
    return ", ".join(terms[:-1]) + f" and {terms[-1]}"


class SafetyResolver:
    """Contract shared by the rule-based and the Gemini-backed resolvers"""

    engine = "base"

    def resolve(self, identity: DrugIdentity, allergies: Iterable[str]) -> SafetyVerdict:
        raise NotImplementedError

    @staticmethod
    def _validate(identity: DrugIdentity):
        if identity is None or not (identity.name or '').strip():
            raise InvalidInput("Please enter a drug name.")


class RuleBasedSafetyResolver(SafetyResolver):
    """
    Deterministic resolver over the drug knowledge base

    Steps:
    - Degraded (unknown) identity resolves to CAUTION
    - Otherwise start from the drug's baseline verdict
    - Any allergy match escalates to RISK with a contraindication per match
    """

    engine = "rules"

    def __init__(self, knowledge_base: DrugKnowledgeBase):
        self.knowledge_base = knowledge_base

    def resolve(self, identity: DrugIdentity, allergies: Iterable[str]) -> SafetyVerdict:
        self._validate(identity)

        if identity.is_degraded:
            logger.info(f"Unrecognized medication '{identity.name}', resolving to CAUTION")
            return SafetyVerdict(
                status=SafetyStatus.CAUTION,
                warnings=(UNKNOWN_DRUG_WARNING,),
                explanation=UNKNOWN_DRUG_EXPLANATION,
                matched_identity=identity,
            )

        allergies = list(allergies)
        baseline = self.knowledge_base.baseline_for(identity)
        matches = find_allergy_matches(identity, allergies)

        if not matches:
            return SafetyVerdict(
                status=baseline.status,
                warnings=baseline.warnings,
                explanation=baseline.explanation,
                matched_identity=identity,
            )

        terms = [m.term for m in matches]
        alternatives = self._tolerated_alternatives(identity, allergies)

        warnings = [m.warning(identity.name) for m in matches]
        if alternatives:
            warnings.append(
                f"Ask your pharmacist about alternatives such as {_join_terms(list(alternatives))}"
            )
        warnings.extend(w for w in baseline.warnings if w not in warnings)

        logger.info(f"Allergy conflict for {identity.name}: {terms}")
        return SafetyVerdict(
            status=baseline.status.escalate(SafetyStatus.RISK),
            warnings=warnings,
            explanation=(
                f"Critical alert: {identity.name} conflicts with your reported "
                f"{_join_terms(terms)} allergy. Do not take it without medical advice."
            ),
            matched_identity=identity,
            matched_allergens=terms,
            alternatives=alternatives,
        )

    def _tolerated_alternatives(self, identity: DrugIdentity, allergies: List[str]) -> Tuple[str, ...]:
        """Alternatives for the drug's class minus any that hit the same allergy profile"""
        tolerated = []
        for candidate in self.knowledge_base.alternatives_for(identity):
            candidate_identity = self.knowledge_base.lookup(candidate)
            if candidate_identity is None:
                continue
            if find_allergy_matches(candidate_identity, allergies):
                logger.info(f"Dropping alternative {candidate}: conflicts with allergy profile")
                continue
            tolerated.append(candidate_identity.name)
        return tuple(tolerated)


SAFETY_SYSTEM_INSTRUCTION = (
    "You are Hygeia, a medical safety expert. Map the drug to its active ingredients and chemical "
    "family. Check for specific allergy conflicts or cross-reactivity with the user's profile. "
    "Determine safety status: SAFE, CAUTION (potential risk or limited data), or RISK "
    "(clear contraindication)."
)

SAFETY_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "status": {"type": "string", "description": "SAFE, CAUTION, or RISK"},
        "warnings": {"type": "array", "items": {"type": "string"}},
        "explanation": {"type": "string"},
        "drugDetails": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "ingredients": {"type": "array", "items": {"type": "string"}},
                "family": {"type": "string"},
            },
        },
    },
    "required": ["status", "warnings", "explanation", "drugDetails"],
}


class GeminiSafetyResolver(SafetyResolver):
    """
    Resolver backed by a Gemini structured-output call

    The remote verdict is floored by the local matching rule: a direct
    family/ingredient match is always RISK even if the model says otherwise.
    """

    engine = "gemini"

    def __init__(self, client):
        self.client = client

    def resolve(self, identity: DrugIdentity, allergies: Iterable[str]) -> SafetyVerdict:
        self._validate(identity)
        terms = [t.strip() for t in allergies if t and t.strip()]

        prompt = f'Drug to check: "{identity.name}". User known allergies: [{", ".join(terms)}].'
        if not identity.is_degraded and identity.family:
            prompt += (f' Known family: "{identity.family}". '
                       f'Known ingredients: [{", ".join(identity.ingredients)}].')

        data = self.client.generate_json(
            prompt=prompt,
            system_instruction=SAFETY_SYSTEM_INSTRUCTION,
            response_schema=SAFETY_RESPONSE_SCHEMA,
        )
        verdict = self.parse_verdict(data, identity)

        # Check both the known identity and whatever the model mapped the drug to
        matches = []
        for candidate in (verdict.matched_identity, identity):
            if candidate.is_degraded:
                continue
            seen = {m.term.lower() for m in matches}
            matches += [m for m in find_allergy_matches(candidate, terms) if m.term.lower() not in seen]

        status = verdict.status
        warnings = list(verdict.warnings)
        explanation = verdict.explanation

        if identity.is_degraded and status.rank < SafetyStatus.CAUTION.rank:
            logger.warning(
                f"Remote verdict {status.value} for unrecognized medication '{identity.name}' raised to CAUTION"
            )
            status = status.escalate(SafetyStatus.CAUTION)
            explanation = UNKNOWN_DRUG_EXPLANATION
        if identity.is_degraded and UNKNOWN_DRUG_WARNING not in warnings:
            warnings.insert(0, UNKNOWN_DRUG_WARNING)

        if matches and status != SafetyStatus.RISK:
            terms_matched = [m.term for m in matches]
            logger.warning(
                f"Remote verdict {status.value} for {identity.name} overridden by "
                f"direct allergy match {terms_matched}"
            )
            status = status.escalate(SafetyStatus.RISK)
            warnings = [m.warning(identity.name) for m in matches] + warnings
            explanation = (
                f"Critical alert: {identity.name} conflicts with your reported "
                f"{_join_terms(terms_matched)} allergy."
            )

        return SafetyVerdict(
            status=status,
            warnings=warnings,
            explanation=explanation,
            matched_identity=verdict.matched_identity,
            matched_allergens=[m.term for m in matches],
        )

    @staticmethod
    def parse_verdict(data: Dict[str, Any], identity: DrugIdentity) -> SafetyVerdict:
        """Map the remote JSON reply onto a SafetyVerdict; never defaults to SAFE"""
        if not data or not isinstance(data, dict):
            raise AnalysisFailed("Empty response from AI")

        raw_status = data.get('status')
        try:
            if not isinstance(raw_status, str):
                raise ValueError(raw_status)
            status = SafetyStatus(raw_status.strip().upper())
        except ValueError as e:
            logger.error(f"Unrecognized safety status from AI: {raw_status!r}")
            raise AnalysisFailed(f"Unrecognized safety status: {raw_status!r}") from e

        details = data.get('drugDetails') or {}
        if not isinstance(details, dict):
            raise AnalysisFailed(f"Malformed drugDetails in AI response: {details!r}")

        name = str(details.get('name') or '').strip() or identity.name
        family = str(details.get('family') or '').strip()
        ingredients = [str(i).strip() for i in reply_list(details, 'ingredients') if str(i).strip()]
        if family or ingredients:
            matched_identity = DrugIdentity(name=name, family=family, ingredients=ingredients)
        else:
            matched_identity = identity

        warnings = [str(w).strip() for w in reply_list(data, 'warnings') if str(w).strip()]
        return SafetyVerdict(
            status=status,
            warnings=warnings,
            explanation=str(data.get('explanation') or '').strip(),
            matched_identity=matched_identity,
        )
