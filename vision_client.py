"""
AI Vision Client

Sends the report description and photo to a remote multimodal model and turns
its reply into a ValidationVerdict.

Response handling, in order:
1. Strip markdown fences and parse as JSON        -> ai_full_vision
2. Extract the {...} span from prose and parse    -> ai_full_vision_recovered
3. Keep the raw text as a degraded verdict         -> ai_text_fallback

Network errors are NOT handled here; they propagate to the pipeline, which
falls back to the heuristic analyzer.

Dependencies:
- openai (default provider)
- google-genai (when AI_PROVIDER=gemini)
"""

import re
import json
import base64
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from loguru import logger

from models import ValidationVerdict, ValidationMethod, Category, Severity, is_valid_length
from prompts import get_validation_prompt
from settings import Settings


RAW_PREVIEW_CHARS = 200


# =============================================================================
# FILE HANDLING
# =============================================================================

@dataclass(frozen=True)
class ImagePayload:
    """Image bytes plus MIME type, ready to send to a model."""
    data: bytes
    media_type: str

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.b64}"


def get_image_media_type(file_path: str) -> str:
    """Get MIME type for image."""
    ext = Path(file_path).suffix.lower()
    media_types = {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".webp": "image/webp",
    }
    return media_types.get(ext, "image/jpeg")


def load_image_payload(image_path: Optional[str]) -> Optional[ImagePayload]:
    """Read the image for upload to the model; None when missing or unreadable."""
    if not image_path:
        return None
    try:
        with open(image_path, "rb") as f:
            data = f.read()
    except OSError as e:
        logger.warning(f"Could not read image {image_path}, sending text only: {e}")
        return None
    return ImagePayload(data=data, media_type=get_image_media_type(image_path))


# =============================================================================
# CLIENTS
# =============================================================================

class AIVisionClient(Protocol):
    """Anything that can send a prompt (and optional image) and return text."""

    model: str

    def generate(self, prompt: str, image: Optional[ImagePayload] = None) -> str:
        ...


class OpenAIVisionClient:
    """Vision client backed by the OpenAI chat completions API."""

    def __init__(self, api_key: str, model: str = "gpt-4o", timeout: float = 30.0):
        from openai import OpenAI

        self.model = model
        # Single attempt per submission
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def generate(self, prompt: str, image: Optional[ImagePayload] = None) -> str:
        content = [{"type": "text", "text": prompt}]
        if image is not None:
            content.append({
                "type": "image_url",
                "image_url": {"url": image.data_url},
            })

        response = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": content}],
            max_tokens=1500,
            temperature=0.1,
        )
        return response.choices[0].message.content or ""


class GeminiVisionClient:
    """Vision client backed by Google Gemini."""

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash", timeout: float = 30.0):
        from google import genai
        from google.genai import types

        self.model = model
        self._types = types
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )

    def generate(self, prompt: str, image: Optional[ImagePayload] = None) -> str:
        contents = [prompt]
        if image is not None:
            contents.append(self._types.Part.from_bytes(data=image.data, mime_type=image.media_type))

        response = self._client.models.generate_content(model=self.model, contents=contents)
        return response.text or ""


def create_vision_client(config: Settings) -> Optional[AIVisionClient]:
    """
    Build the configured vision client.

    Returns None when the selected provider has no credential, which
    disables the AI tier.
    """
    provider = config.AI_PROVIDER.lower()
    api_key = config.ai_api_key

    if provider not in ("openai", "gemini"):
        raise ValueError(f"Unsupported AI provider: {config.AI_PROVIDER}")

    if not api_key:
        logger.info(f"No API key for {provider}, AI vision disabled")
        return None

    if provider == "gemini":
        client = GeminiVisionClient(api_key, config.GEMINI_MODEL, config.AI_TIMEOUT_SECONDS)
    else:
        client = OpenAIVisionClient(api_key, config.OPENAI_MODEL, config.AI_TIMEOUT_SECONDS)

    logger.info(f"AI vision client initialized: {provider}/{client.model}")
    return client


# =============================================================================
# RESPONSE PARSING
# =============================================================================

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_JSON_BLOCK_RE = re.compile(r"\{.*\}", re.DOTALL)


def parse_json_response(content: str) -> Optional[dict]:
    """Parse JSON from a model response, ignoring markdown code fences."""
    cleaned = _FENCE_RE.sub("", content).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json_block(content: str) -> Optional[dict]:
    """Recover a JSON object embedded in surrounding prose."""
    found = _JSON_BLOCK_RE.search(content)
    if not found:
        return None
    try:
        parsed = json.loads(found.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def text_fallback_verdict(text: str, description: str, ai_model: Optional[str] = None) -> ValidationVerdict:
    """Degraded verdict when the model replied with something other than JSON."""
    return ValidationVerdict(
        match=is_valid_length(description),
        confidence=0.7,
        severity=Severity.MEDIUM.value,
        category_suggestion=Category.OTHER.value,
        image_analysis=text[:RAW_PREVIEW_CHARS] + "...",
        validation_method=ValidationMethod.AI_TEXT_FALLBACK.value,
        suggested_description=description,
        raw_response=text,
        ai_model=ai_model,
    )


# =============================================================================
# MAIN FUNCTION: ANALYZE WITH AI
# =============================================================================

def analyze_with_ai(
    client: AIVisionClient,
    description: str,
    image_path: Optional[str] = None,
) -> ValidationVerdict:
    """
    Validate a report with the remote vision model.

    Args:
        client: Configured vision client
        description: Reporter's description
        image_path: Local path to the uploaded photo (optional)

    Returns:
        ValidationVerdict tagged ai_full_vision, ai_full_vision_recovered
        or ai_text_fallback
    """
    image = load_image_payload(image_path)
    if image is None:
        logger.info("No image available, performing text-only AI analysis")

    prompt = get_validation_prompt(description, has_image=image is not None)

    logger.info(f"Sending validation request to {client.model}...")
    text = client.generate(prompt, image)
    logger.debug(f"Raw AI response: {text}")

    parsed = parse_json_response(text)
    if parsed is not None:
        return ValidationVerdict.from_ai_response(
            parsed,
            description,
            ValidationMethod.AI_FULL_VISION.value,
            ai_model=client.model,
            analysis_timestamp=datetime.now().isoformat(),
        )

    logger.warning("AI response is not clean JSON, attempting recovery")
    recovered = extract_json_block(text)
    if recovered is not None:
        return ValidationVerdict.from_ai_response(
            recovered,
            description,
            ValidationMethod.AI_FULL_VISION_RECOVERED.value,
            ai_model=client.model,
        )

    logger.warning("Could not recover JSON from AI response, keeping raw text")
    return text_fallback_verdict(text, description, ai_model=client.model)
