"""
Authenticity API Routes - Single-shot fake detection
"""
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from hygeia.api.deps import get_assessor, to_http_error
from hygeia.exceptions import HygeiaError
from hygeia.models.image import ImagePayload
from hygeia.services.authenticity_service import AuthenticityAssessor
from hygeia.services.flow_controller import ANALYSIS_RETRY_MESSAGE

router = APIRouter(prefix="/authenticity", tags=["Authenticity"])


class DataUrlInput(BaseModel):
    image: str = Field(..., description="data:<mime>;base64,<data> URL or bare base64")


@router.post("")
async def check_authenticity(
    file: UploadFile = File(...),
    assessor: AuthenticityAssessor = Depends(get_assessor)
):
    """
    Verify a medicine package photo

    Returns drug name, manufacturer, active ingredients, family,
    authenticity status with confidence and reasoning, and side effects.
    """
    try:
        image = ImagePayload.from_upload(await file.read(), content_type=file.content_type)
        report = await run_in_threadpool(assessor.assess, image)
    except HygeiaError as e:
        raise to_http_error(e, ANALYSIS_RETRY_MESSAGE)

    response = report.to_dict()
    response['filename'] = file.filename
    return response


@router.post("/data-url")
async def check_authenticity_data_url(
    input_data: DataUrlInput,
    assessor: AuthenticityAssessor = Depends(get_assessor)
):
    """Verify a medicine package photo sent as a data URL"""
    try:
        image = ImagePayload.from_data_url(input_data.image)
        report = await run_in_threadpool(assessor.assess, image)
    except HygeiaError as e:
        raise to_http_error(e, ANALYSIS_RETRY_MESSAGE)

    return report.to_dict()
