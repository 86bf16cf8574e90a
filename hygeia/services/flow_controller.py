"""
Interaction Flow Controller - Guided verify flow (Capture -> Profile -> Review)
"""
import asyncio
import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional

from hygeia.exceptions import AnalysisFailed, FlowBusy, InvalidInput, InvalidTransition
from hygeia.models.authenticity import AuthenticityReport
from hygeia.models.drug import AllergyProfile, DrugIdentity, SafetyVerdict
from hygeia.models.image import ImagePayload

logger = logging.getLogger(__name__)


ANALYSIS_RETRY_MESSAGE = (
    "Failed to analyze the medicine. Please ensure the image is clear and try again."
)
SAFETY_RETRY_MESSAGE = "Failed to perform safety check. Please try again."


class FlowStage(str, Enum):
    CAPTURE = "capture"
    PROFILE = "profile"
    REVIEW = "review"


class InteractionFlowController:
    """
    One verify session: scan image, collect allergies, resolve safety, review.

    State is only touched on the event loop thread; the blocking assessor and
    resolver calls run in a worker thread and are awaited. A counterfeit
    verdict skips the allergy step entirely. ``reset()`` abandons any call
    still in flight: its result is discarded when it arrives.
    """

    def __init__(self, assessor, resolver, session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.assessor = assessor
        self.resolver = resolver
        self.created_at = datetime.utcnow()

        self.stage = FlowStage.CAPTURE
        self.image: Optional[ImagePayload] = None
        self.report: Optional[AuthenticityReport] = None
        self.allergies = AllergyProfile()
        self.verdict: Optional[SafetyVerdict] = None
        self.error: Optional[str] = None
        self.busy = False
        self._generation = 0

    @property
    def identity(self) -> Optional[DrugIdentity]:
        return self.report.identity if self.report else None

    def _require(self, action: str, *stages: FlowStage):
        if self.busy:
            raise FlowBusy(f"Cannot {action} while a request is in progress.")
        if self.stage not in stages:
            allowed = ", ".join(s.value for s in stages)
            raise InvalidTransition(
                f"Cannot {action} in the {self.stage.value} stage (allowed: {allowed})."
            )

    def _move(self, stage: FlowStage):
        logger.info(f"Session {self.session_id}: {self.stage.value} -> {stage.value}")
        self.stage = stage

    # ==================== Capture ====================

    def set_image(self, image: ImagePayload):
        """Store a new image; any identity computed for a previous image is discarded"""
        self._require("upload an image", FlowStage.CAPTURE)
        if image is None or not image.data:
            raise InvalidInput("No image provided.")
        self.image = image
        self.report = None
        self.verdict = None
        self.error = None

    def clear_image(self):
        self._require("clear the image", FlowStage.CAPTURE)
        self.image = None
        self.report = None
        self.verdict = None
        self.error = None

    async def analyze(self) -> FlowStage:
        """
        Run the authenticity assessor on the captured image

        Reuses the existing report when the user went back without changing
        the image. Moves to REVIEW for counterfeits, otherwise to PROFILE.

        Raises:
            InvalidInput: no image captured
            AnalysisFailed: assessor failed; the session stays in CAPTURE
        """
        self._require("analyze", FlowStage.CAPTURE)
        if self.image is None:
            raise InvalidInput("Please upload a photo of the medicine first.")

        if self.report is None:
            generation = self._generation
            self.busy = True
            self.error = None
            try:
                report = await asyncio.to_thread(self.assessor.assess, self.image)
            except AnalysisFailed:
                if generation != self._generation:
                    logger.info(f"Session {self.session_id}: failed analysis dropped after reset")
                    return self.stage
                self.error = ANALYSIS_RETRY_MESSAGE
                raise
            finally:
                if generation == self._generation:
                    self.busy = False

            if generation != self._generation:
                logger.info(f"Session {self.session_id}: analysis result dropped after reset")
                return self.stage
            self.report = report

        if self.report.is_counterfeit:
            self._move(FlowStage.REVIEW)
        else:
            self._move(FlowStage.PROFILE)
        return self.stage

    # ==================== Profile ====================

    def add_allergy(self, term: str) -> bool:
        self._require("edit allergies", FlowStage.PROFILE)
        return self.allergies.add(term)

    def remove_allergy(self, term: str) -> bool:
        self._require("edit allergies", FlowStage.PROFILE)
        return self.allergies.remove(term)

    def go_back(self) -> FlowStage:
        """Return to CAPTURE keeping the computed identity"""
        self._require("go back", FlowStage.PROFILE)
        self._move(FlowStage.CAPTURE)
        return self.stage

    async def complete_profile(self) -> FlowStage:
        """
        Resolve safety for the identified drug against the allergy profile

        Raises:
            AnalysisFailed: resolver failed; the session stays in PROFILE
        """
        self._require("complete the allergy profile", FlowStage.PROFILE)

        generation = self._generation
        self.busy = True
        self.error = None
        try:
            verdict = await asyncio.to_thread(
                self.resolver.resolve, self.identity, self.allergies.copy()
            )
        except AnalysisFailed:
            if generation != self._generation:
                logger.info(f"Session {self.session_id}: failed safety check dropped after reset")
                return self.stage
            self.error = SAFETY_RETRY_MESSAGE
            raise
        finally:
            if generation == self._generation:
                self.busy = False

        if generation != self._generation:
            logger.info(f"Session {self.session_id}: safety verdict dropped after reset")
            return self.stage

        self.verdict = verdict
        self._move(FlowStage.REVIEW)
        return self.stage

    # ==================== Any stage ====================

    def reset(self) -> FlowStage:
        """Clear all state and return to CAPTURE, abandoning in-flight calls"""
        self._generation += 1
        self.busy = False
        self.image = None
        self.report = None
        self.allergies = AllergyProfile()
        self.verdict = None
        self.error = None
        self._move(FlowStage.CAPTURE)
        return self.stage

    def snapshot(self) -> Dict:
        return {
            'session_id': self.session_id,
            'stage': self.stage.value,
            'busy': self.busy,
            'has_image': self.image is not None,
            'image_mime_type': self.image.mime_type if self.image else None,
            'error': self.error,
            'analysis': self.report.to_dict() if self.report else None,
            'allergies': self.allergies.to_list(),
            'safety_result': self.verdict.to_dict() if self.verdict else None,
            'created_at': self.created_at.isoformat(),
        }


class FlowSessionStore:
    """In-memory verify sessions, oldest evicted beyond ``max_sessions``"""

    def __init__(self, factory: Callable[[], InteractionFlowController], max_sessions: int = 1000):
        self.factory = factory
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, InteractionFlowController]" = OrderedDict()

    def create(self) -> InteractionFlowController:
        controller = self.factory()
        self._sessions[controller.session_id] = controller
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted verify session {evicted}")
        return controller

    def get(self, session_id: str) -> Optional[InteractionFlowController]:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)
