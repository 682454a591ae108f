"""Tests for reflection prompts."""

import pytest

from private_journal.prompts import PROMPTS, list_prompts, render_prompt


class TestPrompts:
    """Tests for prompt listing and rendering."""

    def test_list(self):
        names = [p["name"] for p in list_prompts()]
        assert names == [
            "daily_reflection",
            "project_retrospective",
            "learning_capture",
            "emotional_processing",
        ]

    def test_arguments_are_optional(self):
        for prompt in PROMPTS.values():
            assert all(arg["required"] is False for arg in prompt["arguments"])

    def test_daily_reflection_focus(self):
        rendered = render_prompt("daily_reflection", {"focus_area": "learning"})
        assert "daily reflection with a focus on learning" in rendered["content"]
        assert "process_thoughts" in rendered["content"]

    def test_daily_reflection_without_focus(self):
        rendered = render_prompt("daily_reflection")
        assert "Take a moment for daily reflection. " in rendered["content"]

    def test_project_retrospective(self):
        rendered = render_prompt("project_retrospective", {"project_name": "atlas"})
        assert "retrospective for atlas" in rendered["content"]

    def test_learning_capture(self):
        rendered = render_prompt("learning_capture", {"topic": "CRDTs"})
        assert "Capture your learning about CRDTs" in rendered["content"]

    def test_emotional_processing(self):
        rendered = render_prompt("emotional_processing", {})
        assert rendered["description"] == "An emotional processing prompt"
        assert "**Feelings**" in rendered["content"]

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown prompt"):
            render_prompt("gratitude")
