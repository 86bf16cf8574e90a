import json

import pytest

from hygeia.models.drug import DrugIdentity, SafetyStatus
from hygeia.services.drug_database import DrugKnowledgeBase, normalize_drug_name


def test_lookup_is_case_insensitive_exact_match(knowledge_base):
    identity = knowledge_base.lookup("  AMOXICILLIN ")

    assert identity == DrugIdentity(
        name="Amoxicillin",
        family="Penicillin Antibiotic",
        ingredients=("Amoxicillin Trihydrate", "Magnesium Stearate"),
    )


def test_lookup_has_no_fuzzy_matching(knowledge_base):
    assert knowledge_base.lookup("Amoxicilin") is None
    assert knowledge_base.lookup("Amoxicillin 500mg") is None
    assert knowledge_base.lookup("Unknownotron") is None


def test_normalize_drug_name_trims_and_lowercases_only():
    assert normalize_drug_name("  Co-Trimoxazole ") == "co-trimoxazole"
    assert normalize_drug_name("Augmentin   Duo") == "augmentin   duo"


def test_inner_whitespace_is_part_of_the_name(knowledge_base):
    assert knowledge_base.lookup(" co-trimoxazole\t") is not None
    assert knowledge_base.lookup("Co -trimoxazole") is None


@pytest.mark.parametrize("name, expected", [
    ("Ibuprofen", SafetyStatus.CAUTION),
    ("Aspirin", SafetyStatus.CAUTION),
    ("Amoxicillin", SafetyStatus.CAUTION),
    ("Warfarin", SafetyStatus.CAUTION),
    ("Gentamicin", SafetyStatus.CAUTION),
    ("Metformin", SafetyStatus.SAFE),
    ("Paracetamol", SafetyStatus.SAFE),
])
def test_baseline_by_risk_class(knowledge_base, name, expected):
    baseline = knowledge_base.baseline_for(knowledge_base.lookup(name))
    assert baseline.status == expected


def test_explicit_baseline_overrides_risk_class(knowledge_base):
    baseline = knowledge_base.baseline_for(knowledge_base.lookup("Gentamicin"))
    assert any("Narrow therapeutic index" in w for w in baseline.warnings)


def test_baseline_for_identity_outside_catalog_uses_family(knowledge_base):
    identity = DrugIdentity(name="Ketorolac", family="NSAID", ingredients=["Ketorolac Tromethamine"])
    assert knowledge_base.baseline_for(identity).status == SafetyStatus.CAUTION

    identity = DrugIdentity(name="Simethicone", family="Antiflatulent", ingredients=["Simethicone"])
    assert knowledge_base.baseline_for(identity).status == SafetyStatus.SAFE


def test_class_alternatives_exclude_the_drug_itself(knowledge_base):
    alternatives = knowledge_base.alternatives_for(knowledge_base.lookup("Azithromycin"))
    assert alternatives == ()

    alternatives = knowledge_base.alternatives_for(knowledge_base.lookup("Amoxicillin"))
    assert alternatives == ("Azithromycin", "Doxycycline", "Ciprofloxacin")

    # unfiltered class candidates; the resolver drops the ones the profile rules out
    alternatives = knowledge_base.alternatives_for(knowledge_base.lookup("Co-trimoxazole"))
    assert "Amoxicillin" in alternatives


def test_custom_catalog_and_extra_file(tmp_path):
    extra = tmp_path / "drugs.json"
    extra.write_text(json.dumps({"drugs": [
        {
            "name": "Lithium",
            "family": "Mood Stabilizer",
            "ingredients": ["Lithium Carbonate"],
            "baseline": {
                "status": "caution",
                "warnings": ["Narrow therapeutic index"],
                "explanation": "Requires blood level monitoring.",
            },
        }
    ]}))

    kb = DrugKnowledgeBase(
        catalog={"x": {"name": "Aspirin", "family": "NSAID", "ingredients": ["Acetylsalicylic Acid"]}},
        extra_catalog_path=extra,
    )

    assert kb.names() == ["Aspirin", "Lithium"]
    assert len(kb) == 2
    assert "LITHIUM" in kb
    assert kb.baseline_for(kb.lookup("lithium")).status == SafetyStatus.CAUTION


def test_invalid_extra_file_entry_is_rejected(tmp_path):
    extra = tmp_path / "drugs.json"
    extra.write_text(json.dumps([{"family": "No Name"}]))

    with pytest.raises(ValueError):
        DrugKnowledgeBase(extra_catalog_path=extra)
