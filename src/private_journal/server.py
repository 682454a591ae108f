"""Private Journal MCP Server - Main entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

# MCP imports are optional - only needed when running the server
try:
    from mcp import types  # pragma: no cover
    from mcp.server import Server  # pragma: no cover
    from mcp.server.stdio import stdio_server  # pragma: no cover
    HAS_MCP = True  # pragma: no cover
except ImportError:
    HAS_MCP = False
    Server = None  # type: ignore
    types = None  # type: ignore

from .config import JournalConfig, load_config
from .engine import JournalEngine
from .errors import UsageError
from .logging_config import configure_logging
from .prompts import list_prompts, render_prompt
from .tools import execute_tool, make_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "private-journal-mcp"

_MISSING_MCP = "MCP package not installed. Install with: pip install private-journal-mcp[mcp]"


def create_server(engine: JournalEngine) -> "Server":
    """Create and configure the MCP server around an engine.

    Args:
        engine: Journal engine that backs every tool, resource and prompt

    Returns:
        Configured MCP Server instance

    Raises:
        ImportError: If MCP package is not installed
    """
    if not HAS_MCP:
        raise ImportError(_MISSING_MCP)

    server = Server(SERVER_NAME)
    tool_defs = make_tools(engine)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        """Return list of available tools."""
        return [
            types.Tool(
                name=t["name"],
                description=t["description"],
                inputSchema=t["inputSchema"],
            )
            for t in tool_defs.values()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        """Handle tool invocation."""
        result = await execute_tool(engine, name, arguments)
        return [types.TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return [types.Resource(**r) for r in await engine.list_resources()]

    @server.read_resource()
    async def read_resource(uri: Any) -> str:
        content = await engine.read_resource(str(uri))
        if content is None:
            raise UsageError(f"Entry not found: {uri}")
        return content

    @server.list_prompts()
    async def list_prompts_handler() -> list[types.Prompt]:
        return [
            types.Prompt(
                name=p["name"],
                description=p["description"],
                arguments=[types.PromptArgument(**a) for a in p["arguments"]],
            )
            for p in list_prompts()
        ]

    @server.get_prompt()
    async def get_prompt(name: str, arguments: Optional[dict[str, str]]) -> types.GetPromptResult:
        rendered = render_prompt(name, arguments)
        return types.GetPromptResult(
            description=rendered["description"],
            messages=[
                types.PromptMessage(
                    role="user",
                    content=types.TextContent(type="text", text=rendered["content"]),
                ),
            ],
        )

    return server


async def run_server(config: JournalConfig) -> None:
    """Run the MCP server with stdio transport.

    Missing search vectors are generated before serving, except in
    remote-only mode where there is nothing local to index.
    """
    if not HAS_MCP:
        raise ImportError(_MISSING_MCP)

    engine = JournalEngine(config)  # pragma: no cover
    try:  # pragma: no cover
        if not engine.remote_only:
            count = await engine.generate_missing_embeddings()
            if count:
                logger.info("Generated %d missing embeddings", count)
        else:
            logger.info("Remote-only mode: skipping local embedding generation")

        server = create_server(engine)
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:  # pragma: no cover
        await engine.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Private Journal MCP Server - private reflective journal with semantic search"
    )
    parser.add_argument(
        "--project-root",
        "-p",
        type=Path,
        default=Path.cwd(),
        help="Project root directory (default: current directory)",
    )
    parser.add_argument(
        "--journal-path",
        "-j",
        type=Path,
        help="Project journal directory (default: <project-root>/.private-journal)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Path to config file (default: auto-detect in project root)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level to stderr",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> JournalConfig:
    """Load configuration, then apply command line overrides."""
    config = load_config(args.project_root.resolve(), args.config)
    if args.journal_path is not None:
        config.project_journal_path = args.journal_path.expanduser().resolve()
    if args.debug:
        config.debug = True
    return config


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Check for MCP before loading config for server mode
    if not HAS_MCP:
        print(f"Error: {_MISSING_MCP}", file=sys.stderr)
        sys.exit(1)

    # Load configuration
    try:
        config = config_from_args(args)
    except (OSError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.debug)
    logger.info("Project journal: %s", config.project_journal_path)
    logger.info("User journal: %s", config.user_journal_path)

    # Run server
    asyncio.run(run_server(config))


if __name__ == "__main__":  # pragma: no cover
    main()
