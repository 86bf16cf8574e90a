"""
Gemini AI Service - Structured JSON generation for medicine analysis
Uses Google Cloud Vertex AI with service account or default credentials
"""
import json
import logging
import os
from typing import Any, Dict, List, Optional

import vertexai
from vertexai.generative_models import (
    GenerationConfig, GenerativeModel, HarmBlockThreshold, HarmCategory, Part, SafetySetting
)
from google.oauth2 import service_account

from hygeia.config import settings
from hygeia.exceptions import AnalysisFailed
from hygeia.models.image import ImagePayload

logger = logging.getLogger(__name__)


class GeminiService:
    """
    Google Gemini AI Service via Vertex AI

    Every call asks for a JSON reply constrained by a response schema and
    returns the decoded object. Any failure (not initialized, transport
    error, blocked or empty reply, invalid JSON) raises AnalysisFailed.
    """

    def __init__(self, model_name: Optional[str] = None,
                 credentials_path: Optional[str] = None,
                 project_id: Optional[str] = None,
                 location: Optional[str] = None,
                 enabled: Optional[bool] = None):
        self.model_name = model_name or settings.GEMINI_MODEL
        self.credentials_path = credentials_path or settings.GOOGLE_APPLICATION_CREDENTIALS
        self.project_id = project_id or settings.GOOGLE_CLOUD_PROJECT
        self.location = location or settings.VERTEX_LOCATION
        self.enabled = settings.USE_GEMINI if enabled is None else enabled
        self.initialized = False

        # Safety settings - allow medical content
        self.safety_settings = [
            SafetySetting(
                category=HarmCategory.HARM_CATEGORY_HARASSMENT,
                threshold=HarmBlockThreshold.OFF
            ),
            SafetySetting(
                category=HarmCategory.HARM_CATEGORY_HATE_SPEECH,
                threshold=HarmBlockThreshold.OFF
            ),
            SafetySetting(
                category=HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
                threshold=HarmBlockThreshold.OFF
            ),
            SafetySetting(
                category=HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
                threshold=HarmBlockThreshold.OFF
            ),
        ]

        if self.enabled:
            self._initialize()
        else:
            logger.info("Gemini disabled by configuration (USE_GEMINI=false)")

    def _initialize(self):
        """Initialize Vertex AI with service account credentials, or ADC when none are configured"""
        try:
            credentials = None
            if self.credentials_path:
                if not os.path.exists(self.credentials_path):
                    logger.error(f"Service account file not found: {self.credentials_path}")
                    return

                with open(self.credentials_path, 'r') as f:
                    creds_data = json.load(f)
                    self.project_id = self.project_id or creds_data.get('project_id')

                credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_path,
                    scopes=['https://www.googleapis.com/auth/cloud-platform']
                )

            if not self.project_id:
                logger.error("No Google Cloud project configured for Vertex AI")
                return

            vertexai.init(
                project=self.project_id,
                location=self.location,
                credentials=credentials
            )
            self.initialized = True

            logger.info(f"Gemini initialized with project {self.project_id} ({self.model_name})")

        except Exception as e:
            logger.error(f"Failed to initialize Gemini via Vertex AI: {e}")
            self.initialized = False

    def generate_json(self, prompt: str, system_instruction: str,
                      response_schema: Dict[str, Any],
                      image: Optional[ImagePayload] = None) -> Dict[str, Any]:
        """
        Run one structured generation call

        Args:
            prompt: User prompt text
            system_instruction: Model persona and task instructions
            response_schema: OpenAPI-style schema the reply must follow
            image: Optional image to send alongside the prompt

        Returns:
            Decoded JSON object

        Raises:
            AnalysisFailed: on any failure to obtain a usable reply
        """
        if not self.initialized:
            raise AnalysisFailed(
                "Gemini model not initialized. Check Vertex AI credentials and project settings."
            )

        contents = []
        if image is not None:
            contents.append(Part.from_data(data=image.data, mime_type=image.mime_type))
        if prompt:
            contents.append(prompt)

        try:
            model = GenerativeModel(self.model_name, system_instruction=system_instruction)
            response = model.generate_content(
                contents,
                safety_settings=self.safety_settings,
                generation_config=GenerationConfig(
                    temperature=settings.GEMINI_TEMPERATURE,
                    max_output_tokens=settings.GEMINI_MAX_OUTPUT_TOKENS,
                    response_mime_type="application/json",
                    response_schema=response_schema,
                )
            )
            text = response.text
        except Exception as e:
            logger.error(f"Gemini generation failed: {e}")
            raise AnalysisFailed(f"Gemini request failed: {e}") from e

        return self.parse_json_text(text)

    @staticmethod
    def parse_json_text(response_text: Optional[str]) -> Dict[str, Any]:
        """Parse a Gemini reply into a JSON object"""
        if not response_text or not response_text.strip():
            raise AnalysisFailed("Empty response from AI")

        # Clean response - remove markdown code blocks if present
        cleaned = response_text.strip()
        if cleaned.startswith('```json'):
            cleaned = cleaned[7:]
        if cleaned.startswith('```'):
            cleaned = cleaned[3:]
        if cleaned.endswith('```'):
            cleaned = cleaned[:-3]
        cleaned = cleaned.strip()

        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse Gemini response as JSON: {e}")
            raise AnalysisFailed(f"JSON parse error: {e}") from e

        if not isinstance(data, dict) or not data:
            raise AnalysisFailed("Empty response from AI")
        return data


def reply_list(data: Dict[str, Any], key: str) -> List[Any]:
    """A list field of a JSON reply; missing means empty, any other type is unusable"""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        logger.error(f"Expected a list for '{key}' in AI response, got {type(value).__name__}")
        raise AnalysisFailed(f"Malformed '{key}' in AI response")
    return value
