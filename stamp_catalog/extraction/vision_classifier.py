"""
Vision Classifier Module.

This module provides the VisionClassifier class that sends a stamp
image (plus OCR text as a hint) to a multimodal model and decodes the
answer into an ExtractionCandidate.

Approach:
    The model is instructed to answer with a single JSON object whose
    values come from the fixed theme taxonomy and color palette. The
    answer is decoded permissively: the first '{' to the last '}' is
    parsed, and every field is checked against its taxonomy, palette or
    pattern. Anything invalid is treated as absent instead of failing
    the extraction.

Capability:
    The classifier is disabled when no usable API key is configured.
    A disabled classifier returns None without any network traffic.
"""

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from config import get_config, get_secret
from stamp_catalog.postprocessor.normalizers import (
    normalize_colors,
    normalize_confidence,
    normalize_face_value,
    normalize_identifier,
    normalize_name,
    normalize_theme,
)
from stamp_catalog.taxonomy import COLOR_PALETTE, THEME_TAXONOMY
from stamp_catalog.utils.exceptions import VisionAPIError
from stamp_catalog.utils.logger import get_logger
from .extraction_result import ExtractionCandidate, FieldValue

# Initialize module logger
logger = get_logger(__name__)

SOURCE_NAME = "vision"

# Markers of a key copied verbatim from a sample .env file
PLACEHOLDER_MARKERS = ("your_real_key_here", "replace")


def has_usable_api_key(api_key: Optional[str]) -> bool:
    """
    Check whether an API key can plausibly authenticate.

    Example:
        >>> has_usable_api_key("  ")
        False
        >>> has_usable_api_key("sk-REPLACE-ME")
        False
    """
    key = (api_key or "").strip()
    if not key:
        return False
    lowered = key.lower()
    return not any(marker in lowered for marker in PLACEHOLDER_MARKERS)


@dataclass(frozen=True)
class VisionConfig:
    """
    Connection settings for the vision service.

    Attributes:
        api_key: Bearer credential; empty or placeholder disables the client
        model: Model name sent with each request
        endpoint: Responses API URL
        timeout_seconds: Per-request timeout
        max_output_tokens: Cap on the model answer length
    """
    api_key: str = ""
    model: str = "gpt-4.1-mini"
    endpoint: str = "https://api.openai.com/v1/responses"
    timeout_seconds: float = 60.0
    max_output_tokens: int = 220

    @property
    def is_enabled(self) -> bool:
        return has_usable_api_key(self.api_key)

    @classmethod
    def from_config(cls) -> 'VisionConfig':
        """Build settings from settings.yaml plus the credential in the environment."""
        return cls(
            api_key=get_secret(get_config("vision.api_key_env", "OPENAI_API_KEY")),
            model=get_config("vision.model", cls.model),
            endpoint=get_config("vision.endpoint", cls.endpoint),
            timeout_seconds=float(get_config("vision.timeout_seconds", cls.timeout_seconds)),
            max_output_tokens=int(get_config("vision.max_output_tokens", cls.max_output_tokens)),
        )


def build_prompt(ocr_text: str) -> str:
    """
    Build the classification instructions.

    Args:
        ocr_text: Recognized text used as supporting context.

    Returns:
        Prompt text listing the taxonomy, the palette and the JSON contract.
    """
    return "\n".join([
        "Classify this postage stamp image into one theme from this taxonomy only:",
        ", ".join(THEME_TAXONOMY),
        "Also label dominant colors from this fixed list only:",
        ", ".join(COLOR_PALETTE),
        "Return 1 to 5 colors, ordered by prominence.",
        "If no confident fit, use null for theme.",
        "Use OCR text as supporting context:",
        ocr_text or "(empty)",
        'Return JSON only with keys: {"name": string|null, "theme": ThemeTaxonomy|null, '
        '"confidenceTheme": number, "colors": StampColor[], "confidenceColors": number, '
        '"scottNumber": string|null, "confidenceScottNumber": number, '
        '"faceValue": string|null, "confidenceFaceValue": number}.',
        "name should be a concise stamp title (not a filename).",
        "All confidence fields must be 0 to 1.",
    ])


def extract_response_text(response: Any) -> str:
    """
    Pull the model's answer text out of a Responses API payload.

    Prefers the top-level ``output_text``; otherwise joins every text
    block found under ``output[].content[]``.
    """
    if not isinstance(response, dict):
        return ""
    if isinstance(response.get("output_text"), str):
        return response["output_text"]

    output = response.get("output")
    if not isinstance(output, list):
        return ""

    parts = []
    for item in output:
        content = item.get("content") if isinstance(item, dict) else None
        if not isinstance(content, list):
            continue
        for block in content:
            if isinstance(block, dict) and isinstance(block.get("text"), str):
                parts.append(block["text"])
    return "\n".join(parts)


def extract_json_object(text: str) -> Optional[str]:
    """Slice from the first '{' to the last '}', or None if there is no such span."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start:end + 1]


def decode_candidate(text: str) -> Optional[ExtractionCandidate]:
    """
    Decode the model answer into a validated candidate.

    Args:
        text: Raw answer text, possibly wrapped in prose or code fences.

    Returns:
        ExtractionCandidate, or None if no JSON object can be decoded.
    """
    json_text = extract_json_object(text)
    if json_text is None:
        logger.warning("Vision response contained no JSON object")
        return None

    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.warning(f"Vision response JSON could not be parsed: {e}")
        return None

    if not isinstance(parsed, dict):
        logger.warning("Vision response JSON was not an object")
        return None

    return ExtractionCandidate(
        identifier=_field(normalize_identifier(parsed.get("scottNumber")),
                          parsed.get("confidenceScottNumber")),
        face_value=_field(normalize_face_value(parsed.get("faceValue")),
                          parsed.get("confidenceFaceValue")),
        theme=_field(normalize_theme(parsed.get("theme")),
                     parsed.get("confidenceTheme")),
        colors=tuple(normalize_colors(parsed.get("colors"))),
        colors_confidence=normalize_confidence(parsed.get("confidenceColors")),
        name=normalize_name(parsed.get("name")),
        source=SOURCE_NAME,
    )


def _field(value: Optional[str], confidence: Any) -> FieldValue:
    return FieldValue(value, normalize_confidence(confidence))


class VisionClassifier:
    """
    Client for the multimodal classification service.

    Attributes:
        config: VisionConfig with credential and endpoint
        session: requests.Session used for all calls

    Example:
        >>> classifier = VisionClassifier(VisionConfig.from_config())
        >>> if classifier.is_enabled:
        ...     candidate = classifier.classify(image_bytes, "image/png", ocr_text)
    """

    def __init__(
        self,
        config: Optional[VisionConfig] = None,
        session: Optional[requests.Session] = None
    ) -> None:
        self.config = config or VisionConfig.from_config()
        self.session = session or requests.Session()

        if self.is_enabled:
            logger.info(f"VisionClassifier initialized with model: {self.config.model}")
        else:
            logger.warning("VisionClassifier disabled: no usable API key configured")

    @property
    def is_enabled(self) -> bool:
        return self.config.is_enabled

    def classify(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
        ocr_text: str = ""
    ) -> Optional[ExtractionCandidate]:
        """
        Classify a stamp image.

        Args:
            image_bytes: Raw image file content.
            mime_type: MIME type used in the data URL.
            ocr_text: Recognized text passed as a hint (may be empty).

        Returns:
            ExtractionCandidate, or None when the classifier is disabled
            or the answer holds no decodable JSON object.

        Raises:
            VisionAPIError: On a non-success HTTP status or a network
                failure.
        """
        if not self.is_enabled:
            return None

        payload = self._build_payload(image_bytes, mime_type, ocr_text)

        try:
            response = self.session.post(
                self.config.endpoint,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.config.api_key}",
                },
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise VisionAPIError(None, str(e)) from e

        if not response.ok:
            raise VisionAPIError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Vision API returned a non-JSON body: {e}")
            return None

        candidate = decode_candidate(extract_response_text(data))
        if candidate is not None:
            logger.debug(
                f"Vision candidate: theme={candidate.theme.value} "
                f"colors={list(candidate.colors)} identifier={candidate.identifier.value}"
            )
        return candidate

    def _build_payload(self, image_bytes: bytes, mime_type: str, ocr_text: str) -> Dict[str, Any]:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return {
            "model": self.config.model,
            "temperature": 0,
            "max_output_tokens": self.config.max_output_tokens,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": build_prompt(ocr_text)},
                        {"type": "input_image", "image_url": f"data:{mime_type};base64,{encoded}"},
                    ],
                }
            ],
        }
