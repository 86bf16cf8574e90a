"""
Verify API Routes - Guided scan, allergy profile and review flow
"""
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from hygeia.api.deps import get_session_store, to_http_error
from hygeia.exceptions import HygeiaError
from hygeia.models.image import ImagePayload
from hygeia.services.flow_controller import (
    ANALYSIS_RETRY_MESSAGE, SAFETY_RETRY_MESSAGE, FlowSessionStore, InteractionFlowController
)

router = APIRouter(prefix="/verify/sessions", tags=["Verify"])


class AllergyInput(BaseModel):
    allergy: str


def _get_session(session_id: str, store: FlowSessionStore) -> InteractionFlowController:
    controller = store.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Verify session not found")
    return controller


@router.post("")
async def create_session(store: FlowSessionStore = Depends(get_session_store)):
    """Start a verify session in the capture stage"""
    return store.create().snapshot()


@router.get("/{session_id}")
async def get_session(session_id: str, store: FlowSessionStore = Depends(get_session_store)):
    return _get_session(session_id, store).snapshot()


@router.delete("/{session_id}")
async def discard_session(session_id: str, store: FlowSessionStore = Depends(get_session_store)):
    if not store.discard(session_id):
        raise HTTPException(status_code=404, detail="Verify session not found")
    return {'session_id': session_id, 'discarded': True}


@router.post("/{session_id}/image")
async def upload_image(
    session_id: str,
    file: UploadFile = File(...),
    store: FlowSessionStore = Depends(get_session_store)
):
    """Attach a medicine package photo (capture stage)"""
    controller = _get_session(session_id, store)
    try:
        controller.set_image(ImagePayload.from_upload(await file.read(), content_type=file.content_type))
    except HygeiaError as e:
        raise to_http_error(e)
    return controller.snapshot()


@router.delete("/{session_id}/image")
async def clear_image(session_id: str, store: FlowSessionStore = Depends(get_session_store)):
    controller = _get_session(session_id, store)
    try:
        controller.clear_image()
    except HygeiaError as e:
        raise to_http_error(e)
    return controller.snapshot()


@router.post("/{session_id}/analyze")
async def analyze(session_id: str, store: FlowSessionStore = Depends(get_session_store)):
    """
    Run the authenticity check

    Counterfeit packages go straight to review; anything else moves on
    to the allergy profile stage.
    """
    controller = _get_session(session_id, store)
    try:
        await controller.analyze()
    except HygeiaError as e:
        raise to_http_error(e, ANALYSIS_RETRY_MESSAGE)
    return controller.snapshot()


@router.post("/{session_id}/allergies")
async def add_allergy(
    session_id: str,
    input_data: AllergyInput,
    store: FlowSessionStore = Depends(get_session_store)
):
    controller = _get_session(session_id, store)
    try:
        controller.add_allergy(input_data.allergy)
    except HygeiaError as e:
        raise to_http_error(e)
    return controller.snapshot()


@router.delete("/{session_id}/allergies/{allergy}")
async def remove_allergy(
    session_id: str,
    allergy: str,
    store: FlowSessionStore = Depends(get_session_store)
):
    controller = _get_session(session_id, store)
    try:
        controller.remove_allergy(allergy)
    except HygeiaError as e:
        raise to_http_error(e)
    return controller.snapshot()


@router.post("/{session_id}/complete")
async def complete_profile(session_id: str, store: FlowSessionStore = Depends(get_session_store)):
    """Resolve safety against the allergy profile and move to review"""
    controller = _get_session(session_id, store)
    try:
        await controller.complete_profile()
    except HygeiaError as e:
        raise to_http_error(e, SAFETY_RETRY_MESSAGE)
    return controller.snapshot()


@router.post("/{session_id}/back")
async def go_back(session_id: str, store: FlowSessionStore = Depends(get_session_store)):
    controller = _get_session(session_id, store)
    try:
        controller.go_back()
    except HygeiaError as e:
        raise to_http_error(e)
    return controller.snapshot()


@router.post("/{session_id}/reset")
async def reset(session_id: str, store: FlowSessionStore = Depends(get_session_store)):
    controller = _get_session(session_id, store)
    controller.reset()
    return controller.snapshot()
