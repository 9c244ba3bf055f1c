"""MCP server exposing the DRIVE2 export and post rendering as tools."""

from __future__ import annotations

import logging
from pathlib import Path

from mcp.server.fastmcp import FastMCP
from playwright.async_api import async_playwright

from .config import ScraperConfig
from .content import extract_post
from .fetcher import FetchClient
from .markdown import render_post as render_post_markdown
from .pipeline import run_pipeline

logger = logging.getLogger("drive2_mdx.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="drive2-mdx")


@mcp.tool()
async def export_car(url: str, output_dir: str) -> str:
    """Save a car review and its logbook posts as Markdown, resuming prior runs."""

    config = ScraperConfig(output_root=Path(output_dir).expanduser().resolve())
    summary = await run_pipeline(url, config)
    if summary.collection_failed:
        raise RuntimeError(f"Failed to load the logbook listing of {url}")
    return (
        f"Saved {summary.posts_saved} of {summary.posts_remaining} remaining posts "
        f"({summary.posts_failed} failed) to {summary.output_dir}"
    )


@mcp.tool()
async def render_post(url: str) -> str:
    """Render one logbook post page and return it as Markdown."""

    config = ScraperConfig(output_root=Path.cwd())
    async with async_playwright() as playwright:
        record = await FetchClient(playwright, config).fetch(url, extract_post)
    return render_post_markdown(record)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
