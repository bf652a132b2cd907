"""
Design style vocabulary used when building recommendation prompts.

Each known style name maps to the words a designer would use for it, so the
model stays consistent with the user's stated preference.
"""

# Vocabulary hints per style name
STYLE_VOCABULARY = {
    "modern": "clean lines, neutral palette, functional forms, minimal ornament, charcoal and walnut accents",
    "scandinavian": "light oak, soft white, cozy wool textiles, hygge, airy and bright, sage green accents",
    "industrial": "exposed brick, raw metal, weathered wood, Edison bulbs, graphite tones, utilitarian fixtures",
    "traditional": "classic silhouettes, rich mahogany, cream and navy, symmetrical layouts, tufted upholstery",
    "bohemian": "layered textiles, global patterns, rattan, terracotta and mustard, abundant plants",
    "minimalist": "uncluttered surfaces, crisp white, light gray, natural wood, hidden storage, purposeful objects",
    "coastal": "linen and jute, seafoam and sand tones, whitewashed wood, breezy light fabrics",
    "mid-century": "tapered legs, organic curves, teak, olive green and burnt orange, statement lighting",
    "eclectic": "curated mix of eras, jewel tones, mixed metals, gallery walls, vibrant accents",
    "maximalist": "bold pattern on pattern, rich burgundy and emerald, gold accents, abundant decor",
    "farmhouse": "barn wood, weathered white, shiplap, vintage hardware, sage and cream",
    "transitional": "blend of classic and contemporary, soft neutrals, simple profiles, mixed textures",
    "japandi": "warm minimalism, natural materials, low profiles, muted earth tones, handcrafted ceramics",
    "contemporary": "current finishes, mixed materials, sculptural pieces, restrained color",
}

STYLE_ALIASES = {
    "boho": "bohemian",
    "boho_chic": "bohemian",
    "minimal": "minimalist",
    "scandi": "scandinavian",
    "nordic": "scandinavian",
    "hygge": "scandinavian",
    "mcm": "mid-century",
    "midcentury": "mid-century",
    "mid_century": "mid-century",
    "mid_century_modern": "mid-century",
    "retro": "mid-century",
    "urban": "industrial",
    "loft": "industrial",
    "warehouse": "industrial",
    "beach": "coastal",
    "nautical": "coastal",
    "rustic": "farmhouse",
    "classic": "traditional",
    "japanese": "japandi",
    "zen": "japandi",
}


def normalize_style(style: str) -> str:
    """
    Normalize a style name to a key of STYLE_VOCABULARY.
    Unknown styles are returned lowercased and trimmed.
    """
    cleaned = style.lower().strip()
    if cleaned in STYLE_VOCABULARY:
        return cleaned

    underscored = cleaned.replace(" ", "_").replace("-", "_")
    if underscored in STYLE_ALIASES:
        return STYLE_ALIASES[underscored]

    hyphenated = cleaned.replace(" ", "-").replace("_", "-")
    if hyphenated in STYLE_VOCABULARY:
        return hyphenated

    return cleaned


def vocabulary_for(style: str):
    """Vocabulary hint for a style name, or None when the style is unknown."""
    if not style:
        return None
    return STYLE_VOCABULARY.get(normalize_style(style))
