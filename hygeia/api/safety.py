"""
Safety Check API Routes - Drug name + allergy profile
"""
from typing import List

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from hygeia.api.deps import get_safety_check_service, to_http_error
from hygeia.exceptions import HygeiaError
from hygeia.services.safety_check_service import SafetyCheckService

router = APIRouter(tags=["Drug Safety"])


class SafetyCheckInput(BaseModel):
    drug_name: str
    allergies: List[str] = []


@router.post("/safety-check")
async def check_drug_safety(
    input_data: SafetyCheckInput,
    service: SafetyCheckService = Depends(get_safety_check_service)
):
    """
    Check a medication against the user's allergy profile

    - RISK: an allergy matches the drug family or an ingredient
    - CAUTION: unrecognized drug or inherently cautionary class (e.g. NSAIDs)
    - SAFE: no conflicts found
    """
    try:
        verdict = await run_in_threadpool(service.check, input_data.drug_name, input_data.allergies)
    except HygeiaError as e:
        raise to_http_error(e, "Failed to check safety. Please try again.")

    return verdict.to_dict()
