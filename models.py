"""
Data Models for Civic Issue Validation

Defines common structures for:
- Validation verdicts (produced by every pipeline tier)
- Issue records (persisted report submissions)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class Category(str, Enum):
    """Civic issue categories."""
    ROAD = "Road"
    SANITATION = "Sanitation"
    ELECTRICITY = "Electricity"
    WATER = "Water"
    OTHER = "Other"


class Severity(str, Enum):
    """Urgency of a reported issue."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ValidationMethod(str, Enum):
    """Which pipeline tier produced a verdict."""
    AI_FULL_VISION = "ai_full_vision"
    AI_FULL_VISION_RECOVERED = "ai_full_vision_recovered"
    AI_TEXT_FALLBACK = "ai_text_fallback"
    ENHANCED_TEXT_ANALYSIS = "enhanced_text_analysis"
    FALLBACK = "fallback"


class IssueStatus(str, Enum):
    """Workflow status of a stored issue."""
    PENDING = "Pending"
    VERIFIED = "Verified"
    # In Progress and Resolved are set by the admin status workflow
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


MIN_DESCRIPTION_LENGTH = 10
MAX_DESCRIPTION_LENGTH = 1000


def is_valid_length(description: Optional[str]) -> bool:
    """Description length rule shared by every tier."""
    if not description:
        return False
    return MIN_DESCRIPTION_LENGTH <= len(description) <= MAX_DESCRIPTION_LENGTH


def coerce_category(value: Any) -> str:
    """Map free-form category text to a known category."""
    if isinstance(value, str):
        for category in Category:
            if value.strip().lower() == category.value.lower():
                return category.value
    return Category.OTHER.value


def coerce_severity(value: Any) -> str:
    """Map free-form severity text to a known severity."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        for severity in Severity:
            if lowered == severity.value:
                return severity.value
    return Severity.MEDIUM.value


def coerce_confidence(value: Any, default: float = 0.0) -> float:
    """Coerce to float and clamp into [0, 1]."""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    if confidence != confidence:  # NaN
        return default
    return max(0.0, min(1.0, confidence))


def coerce_match(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


# =============================================================================
# VALIDATION VERDICT
# =============================================================================

@dataclass(frozen=True)
class ValidationVerdict:
    """
    Structured result of the validation pipeline.

    Built once per report submission and embedded verbatim into the
    stored Issue. The optional AI fields are only set by the AI tier.
    """
    match: bool = False
    confidence: float = 0.0
    severity: str = Severity.MEDIUM.value
    category_suggestion: str = Category.OTHER.value
    image_analysis: str = ""
    validation_method: str = ValidationMethod.FALLBACK.value
    suggested_description: str = ""

    # AI tier extras
    visual_details: Optional[str] = None
    authenticity_check: Optional[str] = None
    improvement_suggestions: Optional[str] = None
    raw_response: Optional[str] = None
    ai_model: Optional[str] = None
    analysis_timestamp: Optional[str] = None

    @classmethod
    def from_ai_response(
        cls,
        data: Dict[str, Any],
        description: str,
        validation_method: str,
        ai_model: Optional[str] = None,
        analysis_timestamp: Optional[str] = None,
    ) -> "ValidationVerdict":
        """Create from a parsed AI response dict, normalizing its values."""

        def optional_text(key: str) -> Optional[str]:
            value = data.get(key)
            if value is None:
                return None
            return value if isinstance(value, str) else str(value)

        return cls(
            match=coerce_match(data.get("match", False)) and is_valid_length(description),
            confidence=coerce_confidence(data.get("confidence", 0.0)),
            severity=coerce_severity(data.get("severity")),
            category_suggestion=coerce_category(data.get("category_suggestion")),
            image_analysis=optional_text("image_analysis") or "",
            validation_method=validation_method,
            suggested_description=optional_text("suggested_description") or description,
            visual_details=optional_text("visual_details"),
            authenticity_check=optional_text("authenticity_check"),
            improvement_suggestions=optional_text("improvement_suggestions"),
            ai_model=ai_model,
            analysis_timestamp=analysis_timestamp,
        )

    @property
    def is_ai(self) -> bool:
        return self.validation_method.startswith("ai_")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "match": self.match,
            "confidence": self.confidence,
            "severity": self.severity,
            "category_suggestion": self.category_suggestion,
            "image_analysis": self.image_analysis,
            "validation_method": self.validation_method,
            "suggested_description": self.suggested_description,
        }
        # Add AI extras only if present
        for key in (
            "visual_details",
            "authenticity_check",
            "improvement_suggestions",
            "raw_response",
            "ai_model",
            "analysis_timestamp",
        ):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    def summary(self) -> str:
        """Human-readable summary."""
        icon = "✅" if self.match else "⚠️"
        return (
            f"{icon} {self.category_suggestion} ({self.severity}) "
            f"confidence {self.confidence:.0%} via {self.validation_method}"
        )


# =============================================================================
# ISSUE
# =============================================================================

@dataclass
class Issue:
    """A submitted civic issue report with its validation verdict."""
    id: str
    description: str
    issue_type: str
    image_url: str
    validation: Dict[str, Any]
    status: str = IssueStatus.PENDING.value
    location: Optional[Dict[str, Any]] = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def from_verdict(
        cls,
        issue_id: str,
        description: str,
        issue_type: str,
        image_url: str,
        verdict: ValidationVerdict,
        location: Optional[Dict[str, Any]] = None,
    ) -> "Issue":
        """Create a new issue; status follows the verdict's match flag."""
        status = IssueStatus.VERIFIED if verdict.match else IssueStatus.PENDING
        return cls(
            id=issue_id,
            description=description,
            issue_type=issue_type,
            image_url=image_url,
            validation=verdict.to_dict(),
            status=status.value,
            location=location,
        )

    def ai_analysis(self) -> Dict[str, Any]:
        """Short view of the verdict returned to the reporter."""
        return {
            "description_match": self.validation.get("match"),
            "confidence": self.validation.get("confidence"),
            "image_analysis": self.validation.get("image_analysis"),
            "severity": self.validation.get("severity"),
            "suggested_category": self.validation.get("category_suggestion"),
            "validation_method": self.validation.get("validation_method"),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "issue_type": self.issue_type,
            "location": self.location,
            "image_url": self.image_url,
            "validation": dict(self.validation),
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
