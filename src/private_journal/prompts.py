"""Reflection prompt templates offered to the calling agent."""

from __future__ import annotations

from typing import Any, Optional

PROMPTS: dict[str, dict[str, Any]] = {
    "daily_reflection": {
        "name": "daily_reflection",
        "description": "A structured prompt for daily reflection and journaling",
        "arguments": [
            {
                "name": "focus_area",
                "description": 'Optional focus area for the reflection (e.g., "work", "relationships", "learning")',
                "required": False,
            },
        ],
    },
    "project_retrospective": {
        "name": "project_retrospective",
        "description": "A prompt for reflecting on project work and technical insights",
        "arguments": [
            {
                "name": "project_name",
                "description": "Name of the project being reflected upon",
                "required": False,
            },
        ],
    },
    "learning_capture": {
        "name": "learning_capture",
        "description": "A prompt for capturing technical insights and world knowledge",
        "arguments": [
            {
                "name": "topic",
                "description": "The topic or area of learning to focus on",
                "required": False,
            },
        ],
    },
    "emotional_processing": {
        "name": "emotional_processing",
        "description": "A safe space prompt for processing feelings and emotions",
        "arguments": [],
    },
}


def _daily_reflection(focus_area: Optional[str] = None) -> str:
    focus = f" with a focus on {focus_area}" if focus_area else ""
    return f"""Take a moment for daily reflection{focus}. Consider using the process_thoughts tool to capture:

**Feelings**: How are you feeling right now? What emotions came up today? Be completely honest with yourself.

**Project Notes**: What did you learn about your current work? Any technical breakthroughs, challenges, or patterns worth noting?

**User Context**: Any insights about your collaborators or users? Communication that worked well or areas for improvement?

**Technical Insights**: Broader technical learnings that extend beyond today's specific work?

**World Knowledge**: Anything interesting you learned about the world, systems, or how things work?

Remember: This is your private space. Write freely and honestly."""


def _project_retrospective(project_name: Optional[str] = None) -> str:
    project = f" for {project_name}" if project_name else ""
    return f"""Time for a project retrospective{project}. Use the process_thoughts tool to reflect on:

**Project Notes**:
- What went well in this project phase?
- What challenges did you encounter?
- What would you do differently?
- What architectural or design decisions paid off?

**Technical Insights**:
- What new techniques or patterns did you discover?
- What tools or approaches were most effective?
- What would you want to remember for future projects?

**Feelings**:
- How do you feel about the project's progress?
- Any frustrations or satisfactions worth noting?

Take your time and be thorough - future you will thank you for these insights."""


def _learning_capture(topic: Optional[str] = None) -> str:
    hint = f" about {topic}" if topic else ""
    return f"""Capture your learning{hint}. Use the process_thoughts tool to document:

**Technical Insights**:
- What new concepts or techniques did you learn?
- How do they connect to what you already know?
- When might you apply this knowledge?

**World Knowledge**:
- What interesting facts or insights did you discover?
- How does this change your understanding of the domain?
- What questions does this raise for future exploration?

**Project Notes** (if applicable):
- How does this learning apply to your current work?
- What opportunities does this create?

Focus on capturing the "why" and "how" - the raw understanding while it's fresh in your mind."""


def _emotional_processing() -> str:
    return """This is your safe space for emotional processing. Use the process_thoughts tool with the feelings section to:

**Feelings**:
- What emotions are you experiencing right now?
- What triggered these feelings?
- What do these emotions tell you about what you need or value?
- How can you honor these feelings while moving forward?

Remember:
- There are no wrong emotions
- You don't need to fix or change anything
- Just acknowledge and understand what you're experiencing
- This is completely private and confidential

Take as much space as you need. Your emotional well-being matters."""


def list_prompts() -> list[dict[str, Any]]:
    return list(PROMPTS.values())


def render_prompt(name: str, arguments: Optional[dict[str, Any]] = None) -> dict[str, str]:
    """Render a prompt by name.

    Returns:
        Dict with "description" and "content".

    Raises:
        ValueError: If the prompt name is unknown.
    """
    args = arguments or {}
    if name == "daily_reflection":
        return {
            "description": "A structured daily reflection prompt",
            "content": _daily_reflection(args.get("focus_area")),
        }
    if name == "project_retrospective":
        return {
            "description": "A project retrospective prompt",
            "content": _project_retrospective(args.get("project_name")),
        }
    if name == "learning_capture":
        return {
            "description": "A learning capture prompt",
            "content": _learning_capture(args.get("topic")),
        }
    if name == "emotional_processing":
        return {
            "description": "An emotional processing prompt",
            "content": _emotional_processing(),
        }
    raise ValueError(f"Unknown prompt: {name}")
