"""
Prompts for Civic Issue Validation

A single structured-output prompt is sent to the vision model together with
the reporter's description and (when available) the photo.
"""

# =============================================================================
# CIVIC ISSUE VISUAL ANALYSIS
# =============================================================================

CIVIC_ISSUE_VALIDATION_PROMPT = """You are an expert civic infrastructure analyst. Analyze this image and text description to validate a civic issue report.

USER'S DESCRIPTION: "{description}"

## Analysis requirements:
1. VISUAL INSPECTION: Carefully examine what you see in the image
2. CONTENT MATCHING: Does the description match what's actually in the image?
3. ISSUE VALIDATION: Is this a legitimate civic infrastructure problem?
4. SEVERITY ASSESSMENT: How urgent is this issue?
5. CATEGORY CLASSIFICATION: What type of civic issue is this?

## Return EXACTLY this JSON format:
{{
  "match": true,
  "confidence": 0.95,
  "suggested_description": "Detailed description of what you actually see in the image",
  "image_analysis": "Detailed description of the civic issue visible in the image",
  "severity": "high",
  "category_suggestion": "Road",
  "visual_details": "Specific details you observe (colors, size, location, damage extent)",
  "authenticity_check": "Assessment of whether this appears to be a real civic issue photo",
  "improvement_suggestions": "What should be done to fix this issue"
}}

## Guidelines:
- match: true only if description reasonably matches what you see
- confidence: 0.0-1.0 based on image clarity and description accuracy
- severity: "low" (minor), "medium" (needs attention), "high" (urgent/dangerous)
- category_suggestion: "Road", "Sanitation", "Electricity", "Water", or "Other"
- Be specific about what you actually observe in the image
- Flag any suspicious or non-civic issues
"""

TEXT_ONLY_NOTE = """
NOTE: No image is attached to this report. Judge the description on its own
and say so in "image_analysis".
"""


# =============================================================================
# GETTER FUNCTIONS
# =============================================================================

def get_validation_prompt(description: str, has_image: bool = True) -> str:
    """Get the validation prompt with the description injected."""
    prompt = CIVIC_ISSUE_VALIDATION_PROMPT.format(description=description)
    if not has_image:
        prompt += TEXT_ONLY_NOTE
    return prompt
