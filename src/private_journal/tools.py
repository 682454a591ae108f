"""MCP tool definitions wrapping the journal engine."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from .engine import JournalEngine
from .errors import (
    DerivationError,
    JournalError,
    StorageError,
    TransportError,
    UsageError,
)
from .models import SECTION_KEYS, DateRange, Scope, SearchResult, local_now
from .search import DEFAULT_LIMIT, DEFAULT_MIN_SCORE

DEFAULT_RECENT_DAYS = 30

_SCOPE_PROPERTY = {
    "type": "string",
    "enum": [s.value for s in Scope],
    "default": Scope.BOTH.value,
}


def make_tools(engine: JournalEngine) -> dict[str, dict]:
    """Create MCP tool definitions for the journal engine.

    Returns:
        Dict mapping tool names to their definitions.
    """

    tools = {}

    # ========== process_thoughts ==========
    tools["process_thoughts"] = {
        "name": "process_thoughts",
        "description": (
            "Your PRIVATE JOURNAL for learning and reflection. Write to any combination of "
            "these completely private spaces. Nobody but you will ever see this. Use it to "
            "clarify your thoughts and feelings and to record observations."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "feelings": {
                    "type": "string",
                    "description": (
                        "YOUR PRIVATE SPACE to be completely honest about what you're feeling "
                        "and thinking. No judgment, no performance, no filters."
                    ),
                },
                "project_notes": {
                    "type": "string",
                    "description": (
                        "Your private technical laboratory for insights about the current "
                        "project: patterns, decisions that worked or failed, gotchas, clever "
                        "solutions. Stored with the project."
                    ),
                },
                "user_context": {
                    "type": "string",
                    "description": (
                        "Your private field notes about working with your human collaborator: "
                        "communication styles, preferences, decisions and their reasons."
                    ),
                },
                "technical_insights": {
                    "type": "string",
                    "description": (
                        "Your private software engineering notebook for learnings beyond the "
                        "current project: design patterns, debugging techniques, language features."
                    ),
                },
                "world_knowledge": {
                    "type": "string",
                    "description": (
                        "Your private learning journal for everything else: domain knowledge, "
                        "surprising facts, connections between ideas."
                    ),
                },
            },
            "required": [],
        },
    }

    # ========== search_journal ==========
    tools["search_journal"] = {
        "name": "search_journal",
        "description": (
            "Search through your private journal entries using natural language queries. "
            "Returns semantically similar entries ranked by relevance."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Natural language search query (e.g., 'lessons about async patterns')",
                },
                "limit": {
                    "type": "integer",
                    "description": f"Maximum number of results to return (default: {DEFAULT_LIMIT})",
                    "default": DEFAULT_LIMIT,
                    "minimum": 0,
                },
                "min_score": {
                    "type": "number",
                    "description": f"Minimum similarity score (default: {DEFAULT_MIN_SCORE})",
                    "default": DEFAULT_MIN_SCORE,
                },
                "type": {
                    **_SCOPE_PROPERTY,
                    "description": "Search project notes, user-global notes, or both (default: both)",
                },
                "sections": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Filter by section types (e.g., ['feelings', 'technical_insights'])",
                },
            },
            "required": ["query"],
        },
    }

    # ========== read_journal_entry ==========
    tools["read_journal_entry"] = {
        "name": "read_journal_entry",
        "description": "Read the full content of a specific journal entry by file path (or entry id in remote-only mode).",
        "inputSchema": {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "File path to the journal entry (from search results)",
                },
            },
            "required": ["path"],
        },
    }

    # ========== list_recent_entries ==========
    tools["list_recent_entries"] = {
        "name": "list_recent_entries",
        "description": "Get recent journal entries in chronological order.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "description": f"Maximum number of entries to return (default: {DEFAULT_LIMIT})",
                    "default": DEFAULT_LIMIT,
                    "minimum": 0,
                },
                "type": {
                    **_SCOPE_PROPERTY,
                    "description": "List project notes, user-global notes, or both (default: both)",
                },
                "days": {
                    "type": "integer",
                    "description": f"Number of days back to search (default: {DEFAULT_RECENT_DAYS})",
                    "default": DEFAULT_RECENT_DAYS,
                },
            },
            "required": [],
        },
    }

    return tools


def _scope(arguments: dict[str, Any]) -> Scope:
    value = arguments.get("type", Scope.BOTH.value)
    try:
        return Scope(value)
    except ValueError:
        raise UsageError(f"type must be one of {[s.value for s in Scope]}, got {value!r}") from None


def _number(arguments: dict[str, Any], key: str, default: Any, kind: type = int) -> Any:
    value = arguments.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UsageError(f"{key} must be a number")
    return kind(value)


def _count(arguments: dict[str, Any], key: str, default: int) -> int:
    value = _number(arguments, key, default)
    if value < 0:
        raise UsageError(f"{key} must not be negative, got {value}")
    return value


def _summarize(result: SearchResult) -> dict[str, Any]:
    summary = result.to_dict()
    summary.pop("text")
    return summary


async def execute_tool(engine: JournalEngine, name: str, arguments: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Execute a journal tool and return the result.

    Args:
        engine: JournalEngine instance
        name: Tool name
        arguments: Tool arguments

    Returns:
        Result dict with success status and data or error
    """
    arguments = arguments or {}
    try:
        if name == "process_thoughts":
            sections = {
                key: arguments[key]
                for key in SECTION_KEYS
                if isinstance(arguments.get(key), str)
            }
            if not any(sections.values()):
                raise UsageError("At least one thought category must be provided")
            paths = await engine.write_thoughts(sections)
            return {
                "success": True,
                "paths": paths,
                "message": "Thoughts recorded successfully.",
            }

        elif name == "search_journal":
            query = arguments.get("query")
            if not isinstance(query, str):
                raise UsageError("query is required and must be a string")
            sections = arguments.get("sections")
            if sections is not None:
                sections = [s for s in sections if isinstance(s, str)] if isinstance(sections, list) else None
            results = await engine.search(
                query,
                limit=_count(arguments, "limit", DEFAULT_LIMIT),
                min_score=_number(arguments, "min_score", DEFAULT_MIN_SCORE, float),
                sections=sections,
                scope=_scope(arguments),
            )
            return {
                "success": True,
                "count": len(results),
                "results": [_summarize(r) for r in results],
                "message": (
                    f"Found {len(results)} relevant entries"
                    if results else "No relevant entries found."
                ),
            }

        elif name == "read_journal_entry":
            path = arguments.get("path")
            if not isinstance(path, str):
                raise UsageError("path is required and must be a string")
            content = await engine.read_entry(path)
            if content is None:
                return {
                    "success": False,
                    "error": "Entry not found",
                    "error_type": "not_found",
                }
            return {
                "success": True,
                "path": path,
                "content": content,
            }

        elif name == "list_recent_entries":
            days = _count(arguments, "days", DEFAULT_RECENT_DAYS)
            results = await engine.list_recent(
                limit=_count(arguments, "limit", DEFAULT_LIMIT),
                date_range=DateRange(start=local_now() - timedelta(days=days)),
                scope=_scope(arguments),
            )
            return {
                "success": True,
                "count": len(results),
                "days": days,
                "results": [_summarize(r) for r in results],
                "message": (
                    f"Recent entries (last {days} days)"
                    if results else f"No entries found in the last {days} days."
                ),
            }

        else:
            return {
                "success": False,
                "error": f"Unknown tool: {name}",
            }

    except UsageError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "usage_error",
        }

    except TransportError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "remote_error",
            "suggestion": "Check REMOTE_JOURNAL_SERVER_URL and that the server is reachable",
        }

    except DerivationError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "embedding_error",
            "suggestion": "Check JOURNAL_EMBEDDING_MODEL and that sentence-transformers is installed",
        }

    except StorageError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "storage_error",
        }

    except JournalError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "journal_error",
        }

    except Exception as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "unexpected_error",
        }
