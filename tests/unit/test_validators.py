"""
Unit tests for request input validation
"""
import pytest

from roomwise.core.exceptions import ValidationError
from roomwise.services import validators


class TestTextValidation:
    @pytest.mark.unit
    def test_prompt_is_trimmed(self):
        assert validators.validate_prompt("  add a blue rug ") == "add a blue rug"

    @pytest.mark.unit
    @pytest.mark.parametrize("prompt", ["", "   ", "x" * 1001])
    def test_prompt_length(self, prompt):
        with pytest.raises(ValidationError):
            validators.validate_prompt(prompt)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text", ["<script>alert(1)</script>", "javascript:void(0)", "<img onerror=x>", "<iframe src=x>"]
    )
    def test_markup_is_rejected(self, text):
        with pytest.raises(ValidationError) as exc_info:
            validators.validate_question(text)
        assert "invalid characters" in exc_info.value.message

    @pytest.mark.unit
    def test_question_limit(self):
        validators.validate_question("q" * 500)
        with pytest.raises(ValidationError):
            validators.validate_question("q" * 501)


class TestRoomValidation:
    @pytest.mark.unit
    def test_room_type(self):
        assert validators.validate_room_type("bedroom") == "bedroom"
        with pytest.raises(ValidationError):
            validators.validate_room_type("garage")

    @pytest.mark.unit
    def test_dimensions(self):
        validators.validate_dimensions(12, 14, 9)
        with pytest.raises(ValidationError):
            validators.validate_dimensions(0, 14)
        with pytest.raises(ValidationError):
            validators.validate_dimensions(12, 14, 150)


class TestBudgetValidation:
    @pytest.mark.unit
    def test_spent_cannot_exceed_total(self):
        with pytest.raises(ValidationError) as exc_info:
            validators.validate_budget(1000, 1500)
        assert exc_info.value.message == "Budget spent cannot exceed total budget"

    @pytest.mark.unit
    def test_maximum_total(self):
        with pytest.raises(ValidationError):
            validators.validate_budget(validators.MAX_BUDGET_TOTAL + 1, 0)


class TestImageUrl:
    @pytest.mark.unit
    def test_http_urls_only(self):
        assert validators.validate_image_url("https://example.com/chair.jpg")
        with pytest.raises(ValidationError):
            validators.validate_image_url("file:///etc/passwd")
        with pytest.raises(ValidationError):
            validators.validate_image_url("not a url")
