import io
import os

# Never reach Vertex AI from the test suite
os.environ.setdefault("USE_GEMINI", "false")
os.environ.setdefault("SAFETY_ENGINE", "rules")

import pytest
from PIL import Image

from hygeia.exceptions import AnalysisFailed
from hygeia.models.image import ImagePayload
from hygeia.services.authenticity_service import AuthenticityAssessor
from hygeia.services.drug_database import DrugKnowledgeBase
from hygeia.services.safety_resolver import RuleBasedSafetyResolver


AUTHENTIC_AMOXICILLIN = {
    "name": "Amoxicillin",
    "manufacturer": "GSK",
    "activeIngredients": [
        {"name": "Amoxicillin Trihydrate", "dosage": "500mg"},
        {"name": "Magnesium Stearate", "dosage": ""},
    ],
    "drugFamily": "Penicillin Antibiotic",
    "authenticityStatus": "AUTHENTIC",
    "confidenceScore": 0.93,
    "authenticityReasoning": "Crisp typography, consistent batch code and hologram.",
    "sideEffects": [
        {"effect": "Nausea", "severity": "LOW"},
        {"effect": "Anaphylaxis", "severity": "HIGH"},
    ],
}

COUNTERFEIT_AMOXICILLIN = dict(
    AUTHENTIC_AMOXICILLIN,
    authenticityStatus="COUNTERFEIT",
    confidenceScore=0.88,
    authenticityReasoning="Misspelled ingredients, blurry typography.",
)


class FakeGeminiClient:
    """Stands in for GeminiService: returns canned replies, records every call"""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate_json(self, prompt, system_instruction, response_schema, image=None):
        self.calls.append({
            "prompt": prompt,
            "system_instruction": system_instruction,
            "response_schema": response_schema,
            "image": image,
        })
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def image(png_bytes):
    return ImagePayload.from_upload(png_bytes)


@pytest.fixture
def knowledge_base():
    return DrugKnowledgeBase()


@pytest.fixture
def resolver(knowledge_base):
    return RuleBasedSafetyResolver(knowledge_base)


@pytest.fixture
def authentic_client():
    return FakeGeminiClient(reply=dict(AUTHENTIC_AMOXICILLIN))


@pytest.fixture
def counterfeit_client():
    return FakeGeminiClient(reply=dict(COUNTERFEIT_AMOXICILLIN))


@pytest.fixture
def failing_client():
    return FakeGeminiClient(error=AnalysisFailed("Gemini request failed: timeout"))


@pytest.fixture
def assessor(authentic_client):
    return AuthenticityAssessor(authentic_client)
