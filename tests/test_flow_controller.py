import asyncio
import threading

import pytest

from conftest import AUTHENTIC_AMOXICILLIN
from hygeia.exceptions import AnalysisFailed, FlowBusy, InvalidInput, InvalidTransition
from hygeia.models.drug import SafetyStatus
from hygeia.services.authenticity_service import AuthenticityAssessor
from hygeia.services.flow_controller import (
    ANALYSIS_RETRY_MESSAGE, FlowSessionStore, FlowStage, InteractionFlowController
)


class SpyResolver:
    """Wraps a resolver and counts calls"""

    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    def resolve(self, identity, allergies):
        self.calls += 1
        return self.inner.resolve(identity, allergies)


class FailingResolver:

    def resolve(self, identity, allergies):
        raise AnalysisFailed("Gemini request failed: unavailable")


class BlockingAssessor:
    """Holds the assess call open until released"""

    def __init__(self, report):
        self.report = report
        self.started = threading.Event()
        self.release = threading.Event()

    def assess(self, image):
        self.started.set()
        self.release.wait(5)
        return self.report


@pytest.fixture
def controller(assessor, resolver):
    return InteractionFlowController(assessor, SpyResolver(resolver))


def test_full_flow_to_review(controller, image):
    controller.set_image(image)
    assert asyncio.run(controller.analyze()) == FlowStage.PROFILE
    assert controller.identity.name == "Amoxicillin"

    controller.add_allergy("Penicillin")
    controller.add_allergy("penicillin ")
    controller.add_allergy("  ")
    assert controller.allergies.to_list() == ["Penicillin"]

    assert asyncio.run(controller.complete_profile()) == FlowStage.REVIEW
    assert controller.verdict.status == SafetyStatus.RISK

    snapshot = controller.snapshot()
    assert snapshot["stage"] == "review"
    assert snapshot["safety_result"]["status"] == "RISK"
    assert snapshot["analysis"]["authenticity_status"] == "AUTHENTIC"


def test_counterfeit_skips_profile(counterfeit_client, resolver, image):
    spy = SpyResolver(resolver)
    controller = InteractionFlowController(AuthenticityAssessor(counterfeit_client), spy)
    controller.set_image(image)

    assert asyncio.run(controller.analyze()) == FlowStage.REVIEW
    assert controller.verdict is None
    assert spy.calls == 0
    with pytest.raises(InvalidTransition):
        controller.add_allergy("latex")
    with pytest.raises(InvalidTransition):
        asyncio.run(controller.complete_profile())


def test_analyze_requires_image(controller):
    with pytest.raises(InvalidInput):
        asyncio.run(controller.analyze())


def test_failed_analysis_stays_in_capture_and_is_retryable(failing_client, resolver, image):
    controller = InteractionFlowController(AuthenticityAssessor(failing_client), resolver)
    controller.set_image(image)

    with pytest.raises(AnalysisFailed):
        asyncio.run(controller.analyze())
    assert controller.stage == FlowStage.CAPTURE
    assert controller.report is None
    assert controller.error == ANALYSIS_RETRY_MESSAGE
    assert not controller.busy

    failing_client.error = None
    failing_client.reply = dict(AUTHENTIC_AMOXICILLIN)
    assert asyncio.run(controller.analyze()) == FlowStage.PROFILE
    assert controller.error is None


def test_go_back_keeps_identity_and_reuses_report(controller, authentic_client, image):
    controller.set_image(image)
    asyncio.run(controller.analyze())
    controller.add_allergy("latex")

    assert controller.go_back() == FlowStage.CAPTURE
    assert controller.identity.name == "Amoxicillin"

    assert asyncio.run(controller.analyze()) == FlowStage.PROFILE
    assert len(authentic_client.calls) == 1
    assert controller.allergies.to_list() == ["latex"]


def test_clearing_image_after_go_back_discards_identity(controller, image):
    controller.set_image(image)
    asyncio.run(controller.analyze())
    controller.go_back()

    controller.clear_image()
    assert controller.identity is None
    with pytest.raises(InvalidInput):
        asyncio.run(controller.analyze())


def test_new_image_discards_previous_identity(controller, authentic_client, image):
    controller.set_image(image)
    asyncio.run(controller.analyze())
    controller.go_back()

    controller.set_image(image)
    assert controller.identity is None
    asyncio.run(controller.analyze())
    assert len(authentic_client.calls) == 2


def test_remove_allergy(controller, image):
    controller.set_image(image)
    asyncio.run(controller.analyze())
    controller.add_allergy("Latex")
    controller.add_allergy("Sulfa")

    assert controller.remove_allergy("LATEX")
    assert not controller.remove_allergy("peanut")
    assert controller.allergies.to_list() == ["Sulfa"]


def test_review_only_leaves_through_reset(controller, image):
    controller.set_image(image)
    asyncio.run(controller.analyze())
    asyncio.run(controller.complete_profile())

    with pytest.raises(InvalidTransition):
        controller.go_back()
    with pytest.raises(InvalidTransition):
        controller.set_image(image)

    assert controller.reset() == FlowStage.CAPTURE
    snapshot = controller.snapshot()
    assert snapshot["has_image"] is False
    assert snapshot["analysis"] is None
    assert snapshot["allergies"] == []
    assert snapshot["safety_result"] is None


def test_reset_abandons_in_flight_analysis(resolver, image, assessor):
    blocking = BlockingAssessor(assessor.parse_report(dict(AUTHENTIC_AMOXICILLIN)))
    controller = InteractionFlowController(blocking, resolver)
    controller.set_image(image)

    async def scenario():
        task = asyncio.create_task(controller.analyze())
        while not blocking.started.is_set():
            await asyncio.sleep(0.01)

        assert controller.busy
        with pytest.raises(FlowBusy):
            await controller.analyze()

        controller.reset()
        blocking.release.set()
        return await task

    assert asyncio.run(scenario()) == FlowStage.CAPTURE
    assert controller.report is None
    assert controller.image is None
    assert not controller.busy


def test_resolver_failure_stays_in_profile(image, assessor):
    controller = InteractionFlowController(assessor, FailingResolver())
    controller.set_image(image)
    asyncio.run(controller.analyze())

    with pytest.raises(AnalysisFailed):
        asyncio.run(controller.complete_profile())
    assert controller.stage == FlowStage.PROFILE
    assert controller.verdict is None
    assert controller.error is not None


def test_session_store_evicts_oldest(assessor, resolver):
    store = FlowSessionStore(lambda: InteractionFlowController(assessor, resolver), max_sessions=2)
    first = store.create()
    second = store.create()
    third = store.create()

    assert len(store) == 2
    assert store.get(first.session_id) is None
    assert store.get(second.session_id) is second
    assert store.discard(third.session_id)
    assert not store.discard(third.session_id)
