"""
Drug Knowledge Base API Routes
"""
from fastapi import APIRouter, Depends, HTTPException

from hygeia.api.deps import get_knowledge_base
from hygeia.services.drug_database import DrugKnowledgeBase

router = APIRouter(prefix="/drugs", tags=["Knowledge Base"])


@router.get("")
async def list_drugs(knowledge_base: DrugKnowledgeBase = Depends(get_knowledge_base)):
    """List canonical drug names in the reference database"""
    names = knowledge_base.names()
    return {'drugs': names, 'count': len(names)}


@router.get("/{drug_name}")
async def get_drug(drug_name: str, knowledge_base: DrugKnowledgeBase = Depends(get_knowledge_base)):
    """Look up a drug by canonical name (case-insensitive, exact)"""
    identity = knowledge_base.lookup(drug_name)
    if identity is None:
        raise HTTPException(status_code=404, detail=f"Drug '{drug_name}' not in reference database")

    baseline = knowledge_base.baseline_for(identity)
    return {
        **identity.to_dict(),
        'baseline': {
            'status': baseline.status.value,
            'warnings': list(baseline.warnings),
            'explanation': baseline.explanation,
        },
    }
