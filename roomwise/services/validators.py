"""
Input validation for request handlers.

Every function raises ValidationError with a user-facing message; nothing here
touches the database.
"""
import re
from typing import Optional
from urllib.parse import urlparse

from roomwise.core.exceptions import ValidationError

ROOM_TYPES = (
    "living_room",
    "bedroom",
    "kitchen",
    "bathroom",
    "dining_room",
    "home_office",
    "entryway",
    "outdoor",
    "other",
)

MAX_BUDGET_TOTAL = 10_000_000

_XSS_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),  # onclick= and friends
    re.compile(r"<embed", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
]


def validate_string_length(value: str, field_name: str, min_length: int, max_length: int) -> None:
    if len(value) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters")
    if len(value) > max_length:
        raise ValidationError(f"{field_name} must not exceed {max_length} characters")


def validate_no_xss(value: str, field_name: str) -> None:
    for pattern in _XSS_PATTERNS:
        if pattern.search(value):
            raise ValidationError(f"{field_name} contains invalid characters")


def validate_prompt(prompt: str) -> str:
    prompt = (prompt or "").strip()
    validate_string_length(prompt, "Prompt", 1, 1000)
    validate_no_xss(prompt, "Prompt")
    return prompt


def validate_question(question: str) -> str:
    question = (question or "").strip()
    validate_string_length(question, "Question", 1, 500)
    validate_no_xss(question, "Question")
    return question


def validate_name(name: str, field_name: str = "Name") -> str:
    name = (name or "").strip()
    validate_string_length(name, field_name, 1, 200)
    validate_no_xss(name, field_name)
    return name


def validate_room_type(room_type: str) -> str:
    if room_type not in ROOM_TYPES:
        raise ValidationError(f"Invalid room type: {room_type}")
    return room_type


def validate_budget(total: float, spent: float) -> None:
    if total < 0:
        raise ValidationError("Budget total cannot be negative")
    if spent < 0:
        raise ValidationError("Budget spent cannot be negative")
    if total > MAX_BUDGET_TOTAL:
        raise ValidationError("Budget total exceeds maximum allowed ($10M)")
    if spent > total:
        raise ValidationError("Budget spent cannot exceed total budget")


def validate_dimensions(width: float, length: float, height: Optional[float] = None) -> None:
    if width <= 0 or width > 1000:
        raise ValidationError("Width must be between 0 and 1000")
    if length <= 0 or length > 1000:
        raise ValidationError("Length must be between 0 and 1000")
    if height is not None and (height <= 0 or height > 100):
        raise ValidationError("Height must be between 0 and 100")


def validate_image_url(url: str) -> str:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Product image URL must be an http(s) URL")
    return url
