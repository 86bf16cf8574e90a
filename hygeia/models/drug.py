"""
Drug identity, allergy profile and safety verdict models
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

UNKNOWN_FAMILY = "Unknown"


class SafetyStatus(str, Enum):
    SAFE = "SAFE"
    CAUTION = "CAUTION"
    RISK = "RISK"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    def escalate(self, other: "SafetyStatus") -> "SafetyStatus":
        """Return the more severe of the two statuses; never downgrades"""
        return other if other.rank > self.rank else self


_STATUS_RANK = {
    SafetyStatus.SAFE: 0,
    SafetyStatus.CAUTION: 1,
    SafetyStatus.RISK: 2,
}


@dataclass(frozen=True)
class DrugIdentity:
    """Canonical drug name, its chemical/therapeutic family and ingredients"""
    name: str
    family: str
    ingredients: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'ingredients', tuple(self.ingredients or ()))

    @classmethod
    def unknown(cls, name: str) -> "DrugIdentity":
        """Degraded placeholder for a drug missing from the knowledge base"""
        return cls(name=(name or '').strip(), family=UNKNOWN_FAMILY, ingredients=(UNKNOWN_FAMILY,))

    @property
    def is_degraded(self) -> bool:
        unknown = UNKNOWN_FAMILY.lower()
        return (
            self.family.strip().lower() == unknown
            and [i.strip().lower() for i in self.ingredients] == [unknown]
        )

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'family': self.family,
            'ingredients': list(self.ingredients),
        }


class AllergyProfile:
    """
    User-entered allergy and sensitivity terms.

    Keeps insertion order, stores trimmed terms as typed and rejects empty
    entries and case-insensitive duplicates.
    """

    def __init__(self, terms: Optional[Iterable[str]] = None):
        self._terms: List[str] = []
        for term in terms or []:
            self.add(term)

    @staticmethod
    def normalize(term: str) -> str:
        return (term or '').strip().lower()

    def add(self, term: str) -> bool:
        """Add a term; returns False when it is empty or already present"""
        value = (term or '').strip()
        if not value or value.lower() in self:
            return False
        self._terms.append(value)
        return True

    def remove(self, term: str) -> bool:
        needle = self.normalize(term)
        for index, existing in enumerate(self._terms):
            if existing.lower() == needle:
                del self._terms[index]
                return True
        return False

    def clear(self):
        self._terms = []

    def copy(self) -> "AllergyProfile":
        return AllergyProfile(self._terms)

    def to_list(self) -> List[str]:
        return list(self._terms)

    def __contains__(self, term) -> bool:
        needle = self.normalize(term)
        return any(existing.lower() == needle for existing in self._terms)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._terms))

    def __len__(self) -> int:
        return len(self._terms)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AllergyProfile):
            return NotImplemented
        return {t.lower() for t in self._terms} == {t.lower() for t in other._terms}

    def __repr__(self):
        return f"<AllergyProfile {self._terms}>"


@dataclass(frozen=True)
class Baseline:
    """A drug's default rating absent any allergy match"""
    status: SafetyStatus
    warnings: Tuple[str, ...] = ()
    explanation: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'warnings', tuple(self.warnings or ()))


@dataclass(frozen=True)
class SafetyVerdict:
    """Outcome of cross-referencing a drug against an allergy profile"""
    status: SafetyStatus
    warnings: Tuple[str, ...]
    explanation: str
    matched_identity: DrugIdentity
    matched_allergens: Tuple[str, ...] = field(default=())
    alternatives: Tuple[str, ...] = field(default=())

    def __post_init__(self):
        object.__setattr__(self, 'warnings', tuple(self.warnings or ()))
        object.__setattr__(self, 'matched_allergens', tuple(self.matched_allergens or ()))
        object.__setattr__(self, 'alternatives', tuple(self.alternatives or ()))

    def to_dict(self) -> Dict:
        return {
            'status': self.status.value,
            'warnings': list(self.warnings),
            'explanation': self.explanation,
            'drug_details': self.matched_identity.to_dict(),
            'matched_allergens': list(self.matched_allergens),
            'alternatives': list(self.alternatives),
        }
