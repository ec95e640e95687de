"""
Heuristic Validators for Civic Issue Reports

Local analysis used when the AI vision tier is disabled or fails:
- Keyword classification of the description (category, severity)
- Image file metadata checks (size, capture-source hints)
- Minimal length-only fallback

Requires: models.py
"""

import os
import re
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from models import (
    ValidationVerdict,
    ValidationMethod,
    Category,
    Severity,
    is_valid_length,
)


# =============================================================================
# CONSTANTS
# =============================================================================

def _keywords(*words: str) -> re.Pattern:
    return re.compile(r"\b(" + "|".join(words) + r")\b", re.IGNORECASE)


# Category keyword sets, in priority order (first match wins)
CATEGORY_KEYWORDS = [
    (Category.ROAD, _keywords(
        "pothole", "road", "street", "pavement", "asphalt", "traffic", "vehicle",
        "car", "bike", "pedestrian", "crossing", "crack", "bump",
    )),
    (Category.SANITATION, _keywords(
        "garbage", "trash", "waste", "dump", "dirty", "smell", "overflow", "bin",
        "litter", "sewage", "toilet", "clean",
    )),
    (Category.ELECTRICITY, _keywords(
        "light", "lamp", "power", "electric", "wire", "pole", "dark", "bulb",
        r"street.*light", "signal", "outage",
    )),
    (Category.WATER, _keywords(
        "water", "pipe", "leak", "flood", "drain", "burst", "flow", "wet", "puddle",
        "overflow", "tap", "supply",
    )),
]

# Words that raise severity to high, per category
URGENCY_KEYWORDS = {
    Category.ROAD: _keywords("pothole", "crack", "dangerous", "accident", "deep", "large"),
    Category.SANITATION: _keywords("overflow", "smell", "health", "disease", "blocked"),
    Category.ELECTRICITY: _keywords("dark", "unsafe", "night", "security", "outage"),
    Category.WATER: _keywords("flood", "burst", "emergency", "contaminated"),
}

GENERAL_PROBLEM_KEYWORDS = _keywords(
    "broken", "damaged", "issue", "problem", "repair", "fix", "crack", "hole",
    "unsafe", "danger", "maintenance",
)

BASE_CONFIDENCE = 0.5
CATEGORY_BONUS = 0.2
PROBLEM_BONUS = 0.1
LENGTH_BONUS = 0.1
TEXT_CONFIDENCE_CAP = 0.9
COMBINED_CONFIDENCE_CAP = 0.95
MATCH_THRESHOLD = 0.6

LARGE_IMAGE_BYTES = 100_000
LARGE_IMAGE_BONUS = 0.2
MOBILE_CAPTURE_HINTS = ("whatsapp", "photo")
MOBILE_CAPTURE_BONUS = 0.1

NO_IMAGE_ANALYSIS = "No image analysis available"
SYSTEM_UNAVAILABLE = "Validation system unavailable"


# =============================================================================
# TEXT ANALYSIS
# =============================================================================

@dataclass(frozen=True)
class TextAnalysis:
    match: bool
    confidence: float
    severity: str
    category: str


def classify_category(description: str) -> Category:
    """First matching category in priority order; Other when none match."""
    for category, pattern in CATEGORY_KEYWORDS:
        if pattern.search(description):
            return category
    return Category.OTHER


def assess_severity(description: str, category: Category) -> Severity:
    """High when the category's urgency words are present. Other stays medium."""
    pattern = URGENCY_KEYWORDS.get(category)
    if pattern is not None and pattern.search(description):
        return Severity.HIGH
    return Severity.MEDIUM


def analyze_description(description: str) -> TextAnalysis:
    """
    Keyword-driven classification of the report text.

    Confidence starts at 0.5 and is raised by a category hit, a general
    problem word and description length, capped at 0.9.
    """
    valid_length = is_valid_length(description)

    category = classify_category(description)
    severity = assess_severity(description, category)

    confidence = BASE_CONFIDENCE
    if category is not Category.OTHER:
        confidence += CATEGORY_BONUS
    if GENERAL_PROBLEM_KEYWORDS.search(description):
        confidence += PROBLEM_BONUS
    if len(description) > 50:
        confidence += LENGTH_BONUS
    if len(description) > 100:
        confidence += LENGTH_BONUS

    return TextAnalysis(
        match=valid_length and confidence > MATCH_THRESHOLD,
        confidence=min(TEXT_CONFIDENCE_CAP, confidence),
        severity=severity.value,
        category=category.value,
    )


# =============================================================================
# IMAGE FILE ANALYSIS
# =============================================================================

@dataclass(frozen=True)
class ImageFileAnalysis:
    confidence: float
    narrative: str


def analyze_image_file(image_path: Optional[str]) -> ImageFileAnalysis:
    """
    Inspect image file metadata (size and name only, never pixels).

    A missing or unreadable file counts as "no image".
    """
    if not image_path:
        return ImageFileAnalysis(BASE_CONFIDENCE, NO_IMAGE_ANALYSIS)

    try:
        file_size = os.stat(image_path).st_size
    except OSError as e:
        logger.info(f"Could not analyze image file: {e}")
        return ImageFileAnalysis(BASE_CONFIDENCE, NO_IMAGE_ANALYSIS)

    confidence = BASE_CONFIDENCE
    phrases = []

    if file_size > LARGE_IMAGE_BYTES:
        confidence += LARGE_IMAGE_BONUS
        phrases.append("Large image file detected, likely contains detailed visual information")
    else:
        phrases.append(NO_IMAGE_ANALYSIS)

    file_name = os.path.basename(image_path).lower()
    if any(hint in file_name for hint in MOBILE_CAPTURE_HINTS):
        confidence += MOBILE_CAPTURE_BONUS
        phrases.append("Image appears to be from mobile device, suggesting real-world capture")

    # Round half up
    phrases.append(f"File size: {int(file_size / 1024 + 0.5)}KB")

    return ImageFileAnalysis(confidence, ". ".join(phrases))


# =============================================================================
# HEURISTIC TIER
# =============================================================================

def analyze_heuristic(description: str, image_path: Optional[str] = None) -> ValidationVerdict:
    """
    Validate a report without the AI service.

    Match, severity and category come from the text; the image only moves
    confidence and supplies the narrative.
    """
    text = analyze_description(description)
    image = analyze_image_file(image_path)

    combined = min(COMBINED_CONFIDENCE_CAP, (text.confidence + image.confidence) / 2)

    return ValidationVerdict(
        match=text.match,
        confidence=combined,
        severity=text.severity,
        category_suggestion=text.category,
        image_analysis=image.narrative,
        validation_method=ValidationMethod.ENHANCED_TEXT_ANALYSIS.value,
        suggested_description=description,
    )


# =============================================================================
# MINIMAL FALLBACK
# =============================================================================

def fallback_validation(description: Optional[str]) -> ValidationVerdict:
    """Length-only verdict used when every other tier failed."""
    return ValidationVerdict(
        match=is_valid_length(description),
        confidence=BASE_CONFIDENCE,
        severity=Severity.MEDIUM.value,
        category_suggestion=Category.OTHER.value,
        image_analysis=SYSTEM_UNAVAILABLE,
        validation_method=ValidationMethod.FALLBACK.value,
        suggested_description=description if isinstance(description, str) else "",
    )
