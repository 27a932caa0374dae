"""
HW Synth Render MCP Server

Exposes the hardware synth render tools over MCP (stdio transport).
REAPER must be running with mcp_bridge.lua loaded for the tools to work.
"""

import logging
import os
import sys

from mcp.server.fastmcp import FastMCP

from .tools.hw_synth_render import register_hw_synth_render_tools

logger = logging.getLogger(__name__)

# Category name -> registration function, in listing order
CATEGORY_REGISTRY = {
    "Hardware Synth Render": register_hw_synth_render_tools,
}


def configure_logging(default_level: str = "WARNING") -> int:
    """Configure process-wide logging and return the resolved level.

    The level is read from ``LOG_LEVEL``. Logs go to stderr because stdout
    carries the MCP protocol.
    """
    level_name = os.environ.get("LOG_LEVEL", default_level).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = getattr(logging, default_level.upper(), logging.WARNING)
        invalid_level = level_name
    else:
        invalid_level = None

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    if invalid_level is not None:
        logger.warning("Invalid LOG_LEVEL '%s'; using %s",
                       invalid_level, logging.getLevelName(level))
    return level


def create_app() -> FastMCP:
    """Build the MCP server with every tool category registered."""
    mcp = FastMCP("hw-synth-render")
    total = 0
    for category, register in CATEGORY_REGISTRY.items():
        count = register(mcp)
        logger.info("Registered %d tool(s) in %s", count, category)
        total += count
    logger.info("%d tool(s) available", total)
    return mcp


def main() -> None:
    configure_logging()
    create_app().run()


if __name__ == "__main__":
    main()
