"""
Prescription Extraction Service
===============================

Reads candidate medicines off a prescription photo with the OpenAI vision
API. Produces ExtractedMedicine entries (name, dosage, frequency, duration,
instructions); turning them into medicines is the medicine service's job.
"""

import base64
import json
import logging
import re
from typing import Any, List, Optional

import httpx
from openai import AsyncOpenAI
from pydantic import ValidationError

from medreminder.config import settings, get_openai_client
from medreminder.core.exceptions import PrescriptionExtractionError
from medreminder.schemas.medicine_schemas import ExtractedMedicine

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Analyze this prescription image and extract all medicine information. For each medicine, provide:
1. Medicine name (exact name as written)
2. Dosage (e.g., 500mg, 10ml, 1 tablet)
3. Frequency (e.g., "twice daily", "every 8 hours", "3 times daily", "once daily")
4. Duration in days (if specified, otherwise leave blank)
5. Special instructions (e.g., "take with food", "before bed", "after meals")

Return ONLY a JSON array, no markdown and no explanations:
[{"medicine_name": "...", "dosage": "...", "frequency": "...", "duration_days": 7, "instructions": "..."}]

If you cannot read the prescription or find no medicines, return []."""

_CODE_FENCE = re.compile(r"```(?:json)?\n?")


def parse_extraction_response(content: Optional[str]) -> List[ExtractedMedicine]:
    """
    Parse the model's reply into medicines.

    Markdown fences are stripped; unparseable replies and malformed entries
    are dropped rather than raised.
    """
    text = _CODE_FENCE.sub("", content or "[]").strip()

    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError:
        logger.warning(f"Failed to parse extraction response: {text[:200]}")
        return []

    if not isinstance(payload, list):
        return []

    medicines = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            medicines.append(ExtractedMedicine.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Dropping malformed extracted medicine: {e.error_count()} error(s)")
    return medicines


class PrescriptionExtractionService:
    """Calls the vision model on a prescription image"""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client = client
        self.http_client = http_client
        self.model = settings.OPENAI_VISION_MODEL
        self.max_tokens = 2000
        self.max_image_bytes = settings.MAX_PRESCRIPTION_IMAGE_BYTES

    def _get_client(self) -> AsyncOpenAI:
        if self.client is None:
            self.client = get_openai_client()
        return self.client

    async def fetch_image(self, image_url: str) -> str:
        """Download the image and return it as a data URL"""
        try:
            if self.http_client is not None:
                response = await self.http_client.get(image_url)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.get(image_url)
        except httpx.HTTPError as e:
            raise PrescriptionExtractionError(f"Failed to fetch image: {e}", upstream=True) from e

        if response.status_code >= 400:
            raise PrescriptionExtractionError(
                f"Failed to fetch image: {response.status_code}", upstream=True
            )

        content = response.content
        if len(content) > self.max_image_bytes:
            raise PrescriptionExtractionError("Image too large. Please use an image smaller than 20MB.")

        content_type = response.headers.get("content-type", "image/jpeg")
        encoded = base64.b64encode(content).decode("ascii")
        logger.info(f"Fetched prescription image: {len(content)} bytes, {content_type}")
        return f"data:{content_type};base64,{encoded}"

    async def extract_medicines(self, image_url: str) -> List[ExtractedMedicine]:
        """Return the medicines found on the prescription, possibly none"""
        client = self._get_client()
        data_url = await self.fetch_image(image_url)

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": EXTRACTION_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": data_url, "detail": "high"}
                            }
                        ]
                    }
                ],
                max_tokens=self.max_tokens,
                temperature=0.2
            )
        except Exception as e:
            logger.error(f"Prescription analysis call failed: {str(e)}")
            raise PrescriptionExtractionError(f"AI service error: {e}", upstream=True) from e

        content = None
        if response.choices and response.choices[0].message:
            content = response.choices[0].message.content

        medicines = parse_extraction_response(content)
        logger.info(f"Extracted {len(medicines)} medicine(s) from prescription")
        return medicines
