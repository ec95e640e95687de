"""
Report Validation Pipeline

Tiered flow for validating a civic issue report:
1. AI vision analysis (only when a vision client is configured)
2. Heuristic text + image metadata analysis
3. Minimal length-only fallback

Each tier is a callable (description, image_path) -> ValidationVerdict. Tiers
are tried in order and the first one that returns wins; the minimal fallback
cannot fail, so validate() never raises.

Usage:
    from pipeline import ValidationPipeline

    pipeline = ValidationPipeline.from_settings(settings)
    verdict = pipeline.validate("Deep pothole on Main Street", "photo.jpg")
"""

import json
from functools import partial
from typing import Callable, List, Optional, Tuple

from loguru import logger

from models import ValidationVerdict
from settings import Settings
from validators import analyze_heuristic, fallback_validation
from vision_client import AIVisionClient, analyze_with_ai, create_vision_client


Tier = Callable[[str, Optional[str]], ValidationVerdict]


# =============================================================================
# MAIN PIPELINE
# =============================================================================

class ValidationPipeline:
    """Ordered validation tiers with a guaranteed final fallback."""

    def __init__(self, vision_client: Optional[AIVisionClient] = None):
        self.vision_client = vision_client

        self.tiers: List[Tuple[str, Tier]] = []
        if vision_client is not None:
            self.tiers.append(("ai_vision", partial(analyze_with_ai, vision_client)))
        self.tiers.append(("heuristic", analyze_heuristic))

    @classmethod
    def from_settings(cls, config: Settings) -> "ValidationPipeline":
        return cls(vision_client=create_vision_client(config))

    @property
    def ai_enabled(self) -> bool:
        return self.vision_client is not None

    def validate(self, description: str, image_path: Optional[str] = None) -> ValidationVerdict:
        """
        Validate a report description and optional photo.

        Args:
            description: Reporter's description
            image_path: Local path to the uploaded photo (optional, never modified)

        Returns:
            ValidationVerdict; validation_method records which tier produced it
        """
        for name, tier in self.tiers:
            try:
                verdict = tier(description, image_path)
            except Exception as e:
                logger.warning(f"Validation tier '{name}' failed, falling back: {e}")
                continue

            logger.info(f"Validation complete: {verdict.summary()}")
            return verdict

        logger.error("All validation tiers failed, using minimal fallback")
        return fallback_validation(description)


# =============================================================================
# CLI
# =============================================================================

if __name__ == "__main__":
    import sys

    from logger import setup_logger
    from settings import settings

    if len(sys.argv) < 2:
        print('Usage: python pipeline.py "<description>" [image_path]')
        sys.exit(1)

    setup_logger()

    description = sys.argv[1]
    image_path = sys.argv[2] if len(sys.argv) > 2 else None

    pipeline = ValidationPipeline.from_settings(settings)
    verdict = pipeline.validate(description, image_path)

    print("=" * 60)
    print(" RESULT")
    print("=" * 60)
    print(verdict.summary())
    print()
    print(json.dumps(verdict.to_dict(), indent=2, ensure_ascii=False))
