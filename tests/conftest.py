import json
from unittest.mock import MagicMock

import pytest


POTHOLE_REPORT = "There is a large dangerous pothole on Main Street causing accidents"


@pytest.fixture
def pothole_report():
    return POTHOLE_REPORT


@pytest.fixture
def make_image_file(tmp_path):
    """Create a file of a given size; the heuristic tier only looks at size and name."""

    def _make(name: str = "upload.jpg", size: int = 1024):
        path = tmp_path / name
        path.write_bytes(b"\xff" * size)
        return str(path)

    return _make


@pytest.fixture
def make_vision_client():
    def _make(response=None, error=None, model="test-vision-model"):
        client = MagicMock()
        client.model = model
        if error is not None:
            client.generate.side_effect = error
        else:
            client.generate.return_value = response
        return client

    return _make


@pytest.fixture
def ai_json_response():
    return json.dumps(
        {
            "match": True,
            "confidence": 0.92,
            "suggested_description": "A deep pothole in the middle of an asphalt road",
            "image_analysis": "Road surface with a large pothole filled with water",
            "severity": "high",
            "category_suggestion": "Road",
            "visual_details": "Roughly 1m wide, jagged edges",
            "authenticity_check": "Appears to be a genuine street photo",
            "improvement_suggestions": "Fill and resurface the damaged section",
        }
    )
