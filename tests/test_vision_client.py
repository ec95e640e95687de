import base64
import json

import pytest

from models import Category, Severity, ValidationMethod
from settings import Settings
from vision_client import (
    OpenAIVisionClient,
    analyze_with_ai,
    create_vision_client,
    extract_json_block,
    get_image_media_type,
    load_image_payload,
    parse_json_response,
)


# =============================================================================
# FILE HANDLING
# =============================================================================

@pytest.mark.parametrize(
    "path,expected",
    [
        ("a.jpg", "image/jpeg"),
        ("a.JPEG", "image/jpeg"),
        ("a.png", "image/png"),
        ("a.webp", "image/webp"),
        ("a.heic", "image/jpeg"),
        ("noext", "image/jpeg"),
    ],
)
def test_media_type_from_extension(path, expected):
    assert get_image_media_type(path) == expected


def test_load_image_payload(tmp_path):
    path = tmp_path / "road.png"
    path.write_bytes(b"\x89PNG fake")
    payload = load_image_payload(str(path))

    assert payload.media_type == "image/png"
    assert base64.b64decode(payload.b64) == b"\x89PNG fake"
    assert payload.data_url.startswith("data:image/png;base64,")


def test_load_image_payload_missing(tmp_path):
    assert load_image_payload(str(tmp_path / "missing.jpg")) is None
    assert load_image_payload(None) is None


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def test_parse_plain_json():
    assert parse_json_response('{"match": true}') == {"match": True}


def test_parse_fenced_json():
    assert parse_json_response('```json\n{"match": false}\n```') == {"match": False}
    assert parse_json_response('```\n{"match": false}\n```') == {"match": False}


def test_parse_rejects_prose_and_non_objects():
    assert parse_json_response('Sure! {"match": true}') is None
    assert parse_json_response("[1, 2]") is None


def test_extract_json_block_from_prose():
    text = 'Here is my analysis:\n{"match": false, "confidence": 0.3}\nHope this helps.'
    assert extract_json_block(text) == {"match": False, "confidence": 0.3}


def test_extract_json_block_none():
    assert extract_json_block("no braces at all") is None
    assert extract_json_block("{not json}") is None


# =============================================================================
# ANALYZE WITH AI
# =============================================================================

def test_full_vision_verdict(make_vision_client, ai_json_response, make_image_file, pothole_report):
    client = make_vision_client(ai_json_response)
    image_path = make_image_file("photo.jpg", 2048)

    verdict = analyze_with_ai(client, pothole_report, image_path)

    assert verdict.validation_method == ValidationMethod.AI_FULL_VISION.value
    assert verdict.match is True
    assert verdict.confidence == pytest.approx(0.92)
    assert verdict.severity == Severity.HIGH.value
    assert verdict.category_suggestion == Category.ROAD.value
    assert verdict.visual_details == "Roughly 1m wide, jagged edges"
    assert verdict.ai_model == "test-vision-model"
    assert verdict.analysis_timestamp is not None
    assert verdict.raw_response is None

    prompt, image = client.generate.call_args.args
    assert pothole_report in prompt
    assert image.media_type == "image/jpeg"
    assert image.data == b"\xff" * 2048


def test_fenced_response_is_full_vision(make_vision_client, ai_json_response, pothole_report):
    client = make_vision_client(f"```json\n{ai_json_response}\n```")
    verdict = analyze_with_ai(client, pothole_report)
    assert verdict.validation_method == ValidationMethod.AI_FULL_VISION.value


def test_text_only_when_image_missing(make_vision_client, ai_json_response, tmp_path, pothole_report):
    client = make_vision_client(ai_json_response)
    analyze_with_ai(client, pothole_report, str(tmp_path / "missing.jpg"))

    prompt, image = client.generate.call_args.args
    assert image is None
    assert "No image is attached" in prompt


def test_recovered_from_prose(make_vision_client):
    client = make_vision_client(
        'I looked at the photo.\n{"match": false, "confidence": 0.4, "severity": "low", '
        '"category_suggestion": "Water", "image_analysis": "A dry street"}\nThanks!'
    )
    verdict = analyze_with_ai(client, "Burst water main on Oak Road flooding houses")

    assert verdict.validation_method == ValidationMethod.AI_FULL_VISION_RECOVERED.value
    assert verdict.match is False
    assert verdict.severity == Severity.LOW.value
    assert verdict.category_suggestion == Category.WATER.value
    assert verdict.analysis_timestamp is None


def test_text_fallback_for_unparseable_reply(make_vision_client, pothole_report):
    reply = "The image shows a road with a hole. " * 10
    client = make_vision_client(reply)
    verdict = analyze_with_ai(client, pothole_report)

    assert verdict.validation_method == ValidationMethod.AI_TEXT_FALLBACK.value
    assert verdict.match is True
    assert verdict.confidence == 0.7
    assert verdict.severity == Severity.MEDIUM.value
    assert verdict.category_suggestion == Category.OTHER.value
    assert verdict.image_analysis == reply[:200] + "..."
    assert verdict.raw_response == reply


def test_ai_values_are_normalized(make_vision_client, pothole_report):
    client = make_vision_client(json.dumps({
        "match": "yes",
        "confidence": "1.7",
        "severity": "CRITICAL",
        "category_suggestion": "road",
    }))
    verdict = analyze_with_ai(client, pothole_report)

    assert verdict.match is True
    assert verdict.confidence == 1.0
    assert verdict.severity == Severity.MEDIUM.value
    assert verdict.category_suggestion == Category.ROAD.value


def test_ai_match_is_gated_by_description_length(make_vision_client, ai_json_response):
    assert analyze_with_ai(make_vision_client(ai_json_response), "bad").match is False
    assert analyze_with_ai(make_vision_client("not json"), "bad").match is False


def test_network_errors_propagate(make_vision_client, pothole_report):
    client = make_vision_client(error=TimeoutError("timed out"))
    with pytest.raises(TimeoutError):
        analyze_with_ai(client, pothole_report)


# =============================================================================
# CLIENT FACTORY
# =============================================================================

def test_no_credential_disables_ai():
    config = Settings(_env_file=None, AI_PROVIDER="openai", OPENAI_API_KEY=None)
    assert create_vision_client(config) is None


def test_gemini_without_credential_disables_ai():
    config = Settings(_env_file=None, AI_PROVIDER="gemini", OPENAI_API_KEY="sk-test", GEMINI_API_KEY=None)
    assert create_vision_client(config) is None


def test_openai_client_created():
    config = Settings(_env_file=None, AI_PROVIDER="openai", OPENAI_API_KEY="sk-test", OPENAI_MODEL="gpt-4o-mini")
    client = create_vision_client(config)
    assert isinstance(client, OpenAIVisionClient)
    assert client.model == "gpt-4o-mini"


def test_unknown_provider_rejected():
    config = Settings(_env_file=None, AI_PROVIDER="llama", OPENAI_API_KEY="sk-test")
    with pytest.raises(ValueError):
        create_vision_client(config)
