"""
Prompt builders for scene analysis, design advice and image generation
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from roomwise.config.style_definitions import vocabulary_for
from roomwise.database.models import RecommendationTier, VisualizationType

SCENE_ANALYSIS_SYSTEM_PROMPT = """You are an expert interior designer analyzing room photographs. Provide a detailed, structured analysis of:
- Furniture items (type, style, condition, placement)
- Lighting (natural light sources, artificial fixtures, overall assessment)
- Color palette (dominant colors, accents, warmth/coolness)
- Room layout (traffic flow, focal points, problem areas)
- Overall style (detected style, confidence, supporting elements)
- One short description per photo, in the order the photos were given

You must respond with valid JSON matching this exact structure:
{
  "furniture": [{"item": "string", "location": "string", "condition": "good|fair|poor", "style": "string"}],
  "lighting": {"natural": "abundant|moderate|limited", "artificial": ["fixtures"], "assessment": "string"},
  "colors": {"dominant": ["colors"], "accents": ["colors"], "palette": "warm|cool|neutral"},
  "layout": {"flow": "string", "focalPoint": "string or null", "issues": ["issues"]},
  "style": {"detected": "modern|scandinavian|industrial|traditional|bohemian|minimalist|coastal|mid-century|transitional|eclectic", "confidence": 0.0, "elements": ["elements"]},
  "photoDescriptions": ["what photo 0 shows", "what photo 1 shows"]
}"""

ADVISOR_SYSTEM_PROMPT = """You are an expert interior designer providing actionable recommendations to improve a room.
You have been given an analysis of the room photos and the user's preferences and constraints.

Generate specific, practical recommendations that:
1. Respect the user's budget and constraints
2. Build on the existing style or transition to their preferred style
3. Address identified issues in the room
4. Are easy to understand and implement

Each recommendation must include a visualization prompt describing ONLY that change and saying to keep the rest of the room identical.

Respond with valid JSON only."""

_ITEM_FORMAT = """Response format:
{{
  "items": [
    {{
      "id": "unique-id",
      "title": "Short title",
      "description": "What to do and how",
      "category": "{categories}",
      "estimatedCost": {{"min": {cost_min}, "max": {cost_max}, "currency": "USD"}},
      "impact": "high|medium|low",
      "difficulty": "diy|easy_install|professional",
      "reasoning": "Why this helps based on the analysis",
      "visualizationPrompt": "Describe ONLY the change. Say to keep everything else identical.",
      "suggestedPhotoIndex": 0
    }}
  ],
  "summary": "Brief overview of the recommendations"
}}"""

_PHOTO_INDEX_HINT = (
    "The room has multiple photos (indexed 0, 1, 2...). For each recommendation set \"suggestedPhotoIndex\" "
    "to the photo that best shows the targeted area, using the photo descriptions. If unsure, use 0."
)


@dataclass(frozen=True)
class TierSpec:
    min_items: int
    max_items: int
    cost_min: int
    cost_max: int
    categories: str
    brief: str


TIER_SPECS = {
    RecommendationTier.QUICK_WINS.value: TierSpec(
        min_items=5,
        max_items=7,
        cost_min=0,
        cost_max=200,
        categories="decor|lighting|textiles|plants|organization|artwork",
        brief='Generate 5-7 "quick win" recommendations: under $200 each, DIY or easy installation, noticeable improvement.',
    ),
    RecommendationTier.TRANSFORMATIONS.value: TierSpec(
        min_items=3,
        max_items=5,
        cost_min=200,
        cost_max=2000,
        categories="furniture|fixtures|paint|flooring|layout",
        brief='Generate 3-5 "transformation" recommendations: $200-2000 each, may need a professional, significant improvement.',
    ),
    RecommendationTier.CUSTOM.value: TierSpec(
        min_items=1,
        max_items=1,
        cost_min=0,
        cost_max=2000,
        categories="furniture|decor|lighting|textiles|fixtures|paint|flooring|layout|organization|plants|artwork|other",
        brief="Answer the user's question with exactly 1 recommendation costing $0-2000.",
    ),
}


def tier_prompt(tier: str, question: Optional[str] = None) -> str:
    spec = TIER_SPECS[tier]
    parts = [spec.brief]
    if question:
        parts.append(f'User question: "{question}"')
    parts.append(_PHOTO_INDEX_HINT)
    parts.append(_ITEM_FORMAT.format(categories=spec.categories, cost_min=spec.cost_min, cost_max=spec.cost_max))
    return "\n\n".join(parts)


def scene_analysis_user_prompt(photo_count: int, style_profile: Optional[Dict[str, Any]] = None) -> str:
    lines = [
        f"Analyze these {photo_count} room photograph(s) and provide a detailed assessment.",
        "Focus on furniture and its condition, lighting, dominant colors, how the layout works, and the style.",
    ]
    if style_profile and style_profile.get("primary_style"):
        lines.append(
            f"The owner prefers a {style_profile['primary_style']} style; note elements that support or clash with it."
        )
    lines.append("Respond with JSON only.")
    return "\n".join(lines)


def _format_dimensions(dimensions: Dict[str, Any]) -> str:
    text = f"{dimensions.get('width')}x{dimensions.get('length')}"
    if dimensions.get("height"):
        text += f"x{dimensions['height']}"
    return f"{text} {dimensions.get('unit', 'ft')}"


def build_advisor_context(
    analysis_results: Dict[str, Any],
    room_name: str,
    room_type: str,
    photos: List[Dict[str, Any]],
    dimensions: Optional[Dict[str, Any]] = None,
    notes: Optional[str] = None,
    style_profile: Optional[Dict[str, Any]] = None,
    budget: Optional[Dict[str, Any]] = None,
    constraints: Optional[Dict[str, Any]] = None,
) -> str:
    """Single text block handed to the advisor model along with the tier prompt."""
    analysis_for_prompt = {k: v for k, v in analysis_results.items() if k != "raw_analysis"}
    lines = [
        "## Room Analysis",
        json.dumps(analysis_for_prompt, indent=2),
        "",
        "## Room Details",
        f"- Name: {room_name}",
        f"- Type: {room_type}",
        f"- Number of photos: {len(photos)}",
    ]
    if dimensions:
        lines.append(f"- Dimensions: {_format_dimensions(dimensions)}")
    if notes:
        lines.append(f"- Notes: {notes}")

    descriptions = analysis_results.get("photo_descriptions") or []
    if descriptions:
        lines += ["", "## Photo Descriptions"]
        lines += [f"- Photo {i}: {desc}" for i, desc in enumerate(descriptions)]

    if style_profile:
        lines += ["", "## User Style Preferences"]
        primary = style_profile.get("primary_style")
        secondary = style_profile.get("secondary_style")
        if primary:
            lines.append(f"- Primary Style: {primary}")
        if secondary:
            lines.append(f"- Secondary Style: {secondary}")
        if style_profile.get("color_preferences"):
            lines.append(f"- Color Preferences: {', '.join(style_profile['color_preferences'])}")
        if style_profile.get("priorities"):
            lines.append(f"- Priorities: {', '.join(style_profile['priorities'])}")

        hints = [(name, vocabulary_for(name)) for name in (primary, secondary) if name]
        hints = [(name, vocab) for name, vocab in hints if vocab]
        if hints:
            lines += ["", "## Style Vocabulary"]
            lines += [f"- {name}: {vocab}" for name, vocab in hints]

    if budget:
        remaining = (budget.get("total") or 0) - (budget.get("spent") or 0)
        lines += ["", "## Budget", f"- Remaining: {budget.get('currency', 'USD')} {remaining:g}"]

    if constraints:
        constraint_lines = []
        if constraints.get("rental_friendly"):
            constraint_lines.append("- Rental Friendly: Yes - no permanent modifications allowed")
        if constraints.get("pet_friendly"):
            constraint_lines.append("- Pet Friendly: Yes - durable, easy-clean materials preferred")
        if constraints.get("child_friendly"):
            constraint_lines.append("- Child Friendly: Yes - safe designs, rounded edges preferred")
        if constraints.get("mobility_accessible"):
            constraint_lines.append("- Mobility Accessible: Yes - consider accessibility needs")
        if constraint_lines:
            lines += ["", "## Constraints"] + constraint_lines

    return "\n".join(lines)


_TYPE_INSTRUCTIONS = {
    VisualizationType.FULL_RENDER.value: "Render the full room with the requested changes applied.",
    VisualizationType.ITEM_CHANGE.value: "Change only the specific item described.",
    VisualizationType.COLOR_CHANGE.value: "Change only the colors described; keep every object and material.",
    VisualizationType.STYLE_TRANSFER.value: "Restyle the room as described while keeping its architecture and layout.",
}


def visualization_instructions(prompt: str, render_type: str, has_product_reference: bool = False) -> str:
    parts = [
        "Photorealistic interior photo of the provided room.",
        "Keep the layout, architecture, camera angle, lighting, materials and colors unchanged unless explicitly specified.",
        _TYPE_INSTRUCTIONS.get(render_type, _TYPE_INSTRUCTIONS[VisualizationType.FULL_RENDER.value]),
        f"Apply only these changes: {prompt}",
        "Do not add, remove or move other objects.",
        "Professional real estate photography, natural lighting, highly detailed.",
    ]
    if has_product_reference:
        parts.append("Use the second image as the exact reference for the product being placed.")
    return " ".join(parts)
