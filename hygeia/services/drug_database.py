"""
Drug Knowledge Base - Reference data for safety resolution
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from hygeia.models.drug import Baseline, DrugIdentity, SafetyStatus

logger = logging.getLogger(__name__)


# Canonical drug catalog
DRUG_CATALOG = {
    # NSAIDs
    'aspirin': {
        'name': 'Aspirin',
        'family': 'NSAID (Salicylate)',
        'ingredients': ['Acetylsalicylic Acid', 'Corn Starch', 'Cellulose'],
    },
    'ibuprofen': {
        'name': 'Ibuprofen',
        'family': 'NSAID (Propionic Acid Derivative)',
        'ingredients': ['Ibuprofen', 'Microcrystalline Cellulose', 'Croscarmellose Sodium'],
    },
    'naproxen': {
        'name': 'Naproxen',
        'family': 'NSAID (Propionic Acid Derivative)',
        'ingredients': ['Naproxen Sodium', 'Povidone', 'Talc'],
    },
    'diclofenac': {
        'name': 'Diclofenac',
        'family': 'NSAID (Acetic Acid Derivative)',
        'ingredients': ['Diclofenac Sodium', 'Lactose Monohydrate'],
    },
    'celecoxib': {
        'name': 'Celecoxib',
        'family': 'NSAID (COX-2 Inhibitor)',
        'ingredients': ['Celecoxib', 'Lactose Monohydrate', 'Sodium Lauryl Sulfate'],
    },

    # Analgesics
    'paracetamol': {
        'name': 'Paracetamol',
        'family': 'Analgesic / Antipyretic',
        'ingredients': ['Paracetamol', 'Pregelatinised Starch', 'Povidone'],
        'baseline': {
            'status': 'SAFE',
            'warnings': ['Do not exceed 4 g in 24 hours; check other products for paracetamol'],
            'explanation': 'Paracetamol is generally well tolerated at recommended doses.',
        },
    },
    'acetaminophen': {
        'name': 'Acetaminophen',
        'family': 'Analgesic / Antipyretic',
        'ingredients': ['Acetaminophen', 'Pregelatinized Starch', 'Povidone'],
        'baseline': {
            'status': 'SAFE',
            'warnings': ['Do not exceed 4 g in 24 hours; check other products for acetaminophen'],
            'explanation': 'Acetaminophen is generally well tolerated at recommended doses.',
        },
    },
    'tramadol': {
        'name': 'Tramadol',
        'family': 'Opioid Analgesic',
        'ingredients': ['Tramadol Hydrochloride', 'Microcrystalline Cellulose'],
    },

    # Antibiotics - Penicillins
    'amoxicillin': {
        'name': 'Amoxicillin',
        'family': 'Penicillin Antibiotic',
        'ingredients': ['Amoxicillin Trihydrate', 'Magnesium Stearate'],
    },
    'ampicillin': {
        'name': 'Ampicillin',
        'family': 'Penicillin Antibiotic',
        'ingredients': ['Ampicillin Trihydrate', 'Magnesium Stearate'],
    },
    'augmentin': {
        'name': 'Augmentin',
        'family': 'Penicillin Antibiotic (Beta-Lactamase Inhibitor Combination)',
        'ingredients': ['Amoxicillin Trihydrate', 'Potassium Clavulanate'],
    },

    # Antibiotics - Others
    'cephalexin': {
        'name': 'Cephalexin',
        'family': 'Cephalosporin Antibiotic',
        'ingredients': ['Cephalexin Monohydrate', 'Magnesium Stearate'],
    },
    'azithromycin': {
        'name': 'Azithromycin',
        'family': 'Macrolide Antibiotic',
        'ingredients': ['Azithromycin Dihydrate', 'Pregelatinized Starch'],
    },
    'ciprofloxacin': {
        'name': 'Ciprofloxacin',
        'family': 'Fluoroquinolone Antibiotic',
        'ingredients': ['Ciprofloxacin Hydrochloride', 'Microcrystalline Cellulose'],
    },
    'doxycycline': {
        'name': 'Doxycycline',
        'family': 'Tetracycline Antibiotic',
        'ingredients': ['Doxycycline Hyclate', 'Lactose'],
    },
    'co-trimoxazole': {
        'name': 'Co-trimoxazole',
        'family': 'Sulfonamide Antibiotic',
        'ingredients': ['Sulfamethoxazole', 'Trimethoprim'],
    },
    'gentamicin': {
        'name': 'Gentamicin',
        'family': 'Aminoglycoside Antibiotic',
        'ingredients': ['Gentamicin Sulfate', 'Sodium Chloride'],
        'baseline': {
            'status': 'CAUTION',
            'warnings': [
                'Narrow therapeutic index; blood levels must be monitored',
                'Can affect hearing and kidney function',
            ],
            'explanation': 'Gentamicin requires close clinical monitoring.',
        },
    },

    # Blood thinners
    'warfarin': {
        'name': 'Warfarin',
        'family': 'Coumarin Anticoagulant',
        'ingredients': ['Warfarin Sodium', 'Lactose Monohydrate'],
    },
    'clopidogrel': {
        'name': 'Clopidogrel',
        'family': 'Antiplatelet (P2Y12 Inhibitor)',
        'ingredients': ['Clopidogrel Bisulfate', 'Mannitol'],
    },

    # Chronic therapy
    'metformin': {
        'name': 'Metformin',
        'family': 'Biguanide Antidiabetic',
        'ingredients': ['Metformin Hydrochloride', 'Povidone', 'Magnesium Stearate'],
    },
    'atorvastatin': {
        'name': 'Atorvastatin',
        'family': 'Statin (HMG-CoA Reductase Inhibitor)',
        'ingredients': ['Atorvastatin Calcium', 'Calcium Carbonate'],
    },
    'lisinopril': {
        'name': 'Lisinopril',
        'family': 'ACE Inhibitor',
        'ingredients': ['Lisinopril Dihydrate', 'Mannitol'],
    },
    'amlodipine': {
        'name': 'Amlodipine',
        'family': 'Calcium Channel Blocker',
        'ingredients': ['Amlodipine Besylate', 'Microcrystalline Cellulose'],
    },
    'omeprazole': {
        'name': 'Omeprazole',
        'family': 'Proton Pump Inhibitor',
        'ingredients': ['Omeprazole Magnesium', 'Sugar Spheres', 'Gelatin'],
    },

    # Antihistamines
    'cetirizine': {
        'name': 'Cetirizine',
        'family': 'Antihistamine (H1 Blocker)',
        'ingredients': ['Cetirizine Hydrochloride', 'Lactose Monohydrate'],
    },
    'loratadine': {
        'name': 'Loratadine',
        'family': 'Antihistamine (H1 Blocker)',
        'ingredients': ['Loratadine', 'Lactose Monohydrate', 'Corn Starch'],
    },

    # Psychiatric
    'alprazolam': {
        'name': 'Alprazolam',
        'family': 'Benzodiazepine',
        'ingredients': ['Alprazolam', 'Lactose', 'Docusate Sodium'],
    },
    'sertraline': {
        'name': 'Sertraline',
        'family': 'Antidepressant (SSRI)',
        'ingredients': ['Sertraline Hydrochloride', 'Dibasic Calcium Phosphate'],
    },
}


# Inherent risk classes: first family keyword that matches decides the baseline
RISK_CLASS_RULES = [
    ('nsaid', SafetyStatus.CAUTION,
     ['NSAIDs can irritate the stomach lining; take with food',
      'Avoid combining with other NSAIDs or blood thinners'],
     'NSAID-class medication: generally tolerated, but carries gastrointestinal and bleeding risks.'),
    ('antibiotic', SafetyStatus.CAUTION,
     ['Complete the full prescribed course',
      'Seek help immediately for rash, swelling or breathing difficulty'],
     'Antibiotic therapy: hypersensitivity reactions are possible; use only as prescribed.'),
    ('anticoagulant', SafetyStatus.CAUTION,
     ['Increased bleeding risk; regular INR monitoring required'],
     'Anticoagulant with a narrow therapeutic window: use under medical supervision.'),
    ('antiplatelet', SafetyStatus.CAUTION,
     ['Increased bleeding risk, especially with NSAIDs'],
     'Antiplatelet medication: bleeding risk requires caution.'),
    ('opioid', SafetyStatus.CAUTION,
     ['May cause drowsiness and dependence; avoid alcohol'],
     'Opioid analgesic: risk of sedation and dependence.'),
    ('benzodiazepine', SafetyStatus.CAUTION,
     ['May cause drowsiness and dependence; avoid alcohol'],
     'Benzodiazepine: risk of sedation and dependence.'),
]


# Alternatives for allergic patients, keyed by allergen class
ALLERGY_ALTERNATIVES = {
    'penicillin': ['Azithromycin', 'Doxycycline', 'Ciprofloxacin'],
    'cephalosporin': ['Azithromycin', 'Ciprofloxacin'],
    'nsaid': ['Paracetamol'],
    'sulfonamide': ['Amoxicillin', 'Azithromycin'],
}


@dataclass(frozen=True)
class DrugEntry:
    """Catalog entry: identity plus an optional explicit baseline"""
    identity: DrugIdentity
    baseline: Optional[Baseline] = None


def normalize_drug_name(name: str) -> str:
    """Normalize drug name for exact matching: trimmed and lowercased"""
    return (name or '').strip().lower()


def _build_entry(data: Dict) -> DrugEntry:
    identity = DrugIdentity(
        name=data['name'].strip(),
        family=(data.get('family') or '').strip(),
        ingredients=[i.strip() for i in data.get('ingredients', []) if i and i.strip()],
    )
    baseline = None
    if data.get('baseline'):
        raw = data['baseline']
        baseline = Baseline(
            status=SafetyStatus(raw['status'].upper()),
            warnings=raw.get('warnings', []),
            explanation=raw.get('explanation', ''),
        )
    return DrugEntry(identity=identity, baseline=baseline)


def load_catalog_file(path: Union[str, Path]) -> Dict[str, DrugEntry]:
    """
    Load extra catalog entries from a JSON file

    The file holds either a list of entries or ``{"drugs": [...]}``; each
    entry has ``name``, ``family``, ``ingredients`` and an optional
    ``baseline`` with ``status``, ``warnings`` and ``explanation``.
    """
    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)

    items = raw.get('drugs', []) if isinstance(raw, dict) else raw
    entries = {}
    for item in items:
        try:
            entry = _build_entry(item)
        except (KeyError, ValueError, AttributeError) as e:
            logger.error(f"Invalid knowledge base entry in {path}: {item!r} ({e})")
            raise ValueError(f"Invalid knowledge base entry: {item!r}") from e
        entries[normalize_drug_name(entry.identity.name)] = entry

    logger.info(f"Loaded {len(entries)} knowledge base entries from {path}")
    return entries


class DrugKnowledgeBase:
    """
    Static drug reference data

    Features:
    - Case-insensitive exact lookup by canonical name
    - Baseline verdicts from explicit entries or inherent risk class
    - Therapeutic alternatives for allergic patients
    """

    def __init__(self, catalog: Optional[Dict[str, Dict]] = None,
                 extra_catalog_path: Optional[Union[str, Path]] = None):
        source = DRUG_CATALOG if catalog is None else catalog
        self._entries: Dict[str, DrugEntry] = {}
        for data in source.values():
            entry = _build_entry(data)
            self._entries[normalize_drug_name(entry.identity.name)] = entry

        if extra_catalog_path:
            self._entries.update(load_catalog_file(extra_catalog_path))

    def get_entry(self, name: str) -> Optional[DrugEntry]:
        return self._entries.get(normalize_drug_name(name))

    def lookup(self, name: str) -> Optional[DrugIdentity]:
        """
        Look up a drug by canonical name

        Returns:
            DrugIdentity, or None when the name is not in the catalog. The
            caller decides on the fallback (usually DrugIdentity.unknown).
        """
        entry = self.get_entry(name)
        return entry.identity if entry else None

    def names(self) -> List[str]:
        return sorted(entry.identity.name for entry in self._entries.values())

    def baseline_for(self, identity: DrugIdentity) -> Baseline:
        """Baseline verdict for a drug: catalog override first, then risk class"""
        entry = self.get_entry(identity.name)
        if entry and entry.baseline:
            return entry.baseline

        family = identity.family.lower()
        for keyword, status, warnings, explanation in RISK_CLASS_RULES:
            if keyword in family:
                return Baseline(status=status, warnings=warnings, explanation=explanation)

        return Baseline(
            status=SafetyStatus.SAFE,
            warnings=(),
            explanation=f"No allergy conflicts found for {identity.name} against your profile.",
        )

    def alternatives_for(self, identity: DrugIdentity) -> Tuple[str, ...]:
        family = identity.family.lower()
        own_name = normalize_drug_name(identity.name)
        alternatives: List[str] = []
        for allergen_class, candidates in ALLERGY_ALTERNATIVES.items():
            if allergen_class not in family:
                continue
            for candidate in candidates:
                if normalize_drug_name(candidate) != own_name and candidate not in alternatives:
                    alternatives.append(candidate)
        return tuple(alternatives)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return normalize_drug_name(name) in self._entries
