"""MCP server exposing the presentation tools over stdio."""

import logging
import sys
from typing import List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from .config import DeckSettings
from .exceptions import ConfigurationError
from .slide_models import Background, SlideNumber, TextBlock
from .tools import PresentationTools, ToolResult

LOGGER = logging.getLogger(__name__)

SERVER_NAME = "PowerPoint MCP Server"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout carries the MCP stream."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def _unwrap(result: ToolResult) -> str:
    if result.is_error:
        raise ToolError(result.text)
    return result.text


def create_server(
    settings: Optional[DeckSettings] = None,
    tools: Optional[PresentationTools] = None,
) -> FastMCP:
    """Build a FastMCP server with every presentation tool registered."""

    if tools is None:
        if settings is None:
            raise ConfigurationError("create_server needs settings or a tools instance")
        tools = PresentationTools.from_settings(settings)

    # argument names use the camelCase vocabulary of the stored JSON
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool()
    def create_presentation(
        name: str,
        title: Optional[str] = None,
        subject: Optional[str] = None,
        force: bool = False,
    ) -> str:
        """Create an empty presentation. Fails if `name` exists unless `force` is true."""
        return _unwrap(tools.create_presentation(name, title, subject, force))

    @mcp.tool()
    def list_presentations() -> str:
        """List the names of all stored presentations as a JSON array."""
        return _unwrap(tools.list_presentations())

    @mcp.tool()
    def add_slide(
        name: str,
        background: Optional[Background] = None,
        color: Optional[str] = None,
        slideNumber: Optional[SlideNumber] = None,
        texts: Optional[List[TextBlock]] = None,
    ) -> str:
        """Append a slide to the presentation and report its zero-based index.

        `texts` is a list of text blocks; a block is either one run
        `{"text": ..., "options": {...}}` or a list of runs rendered as one
        paragraph. Positions are in inches on a 10 x 5.625 slide.
        """
        return _unwrap(tools.add_slide(name, background, color, slideNumber, texts))

    @mcp.tool()
    def replace_slide(
        name: str,
        slideIndex: int,
        background: Optional[Background] = None,
        color: Optional[str] = None,
        slideNumber: Optional[SlideNumber] = None,
        texts: Optional[List[TextBlock]] = None,
    ) -> str:
        """Replace the slide at `slideIndex` (zero-based) with a new one."""
        return _unwrap(
            tools.replace_slide(name, slideIndex, background, color, slideNumber, texts)
        )

    @mcp.tool()
    def remove_slide(name: str, slideIndex: int) -> str:
        """Remove the slide at `slideIndex`; later slides shift down by one."""
        return _unwrap(tools.remove_slide(name, slideIndex))

    @mcp.tool()
    def get_slide(name: str, slideIndex: int) -> str:
        """Return the slide at `slideIndex` as JSON."""
        return _unwrap(tools.get_slide(name, slideIndex))

    @mcp.tool()
    def get_slides(name: str) -> str:
        """Return all slides of the presentation as a JSON array."""
        return _unwrap(tools.get_slides(name))

    @mcp.tool()
    def export_presentation_as_pptx(name: str, outDir: str) -> str:
        """Write `<outDir>/<name>.pptx`. `outDir` must be an absolute path."""
        return _unwrap(tools.export_presentation_as_pptx(name, outDir))

    @mcp.tool()
    def export_slide_as_png(name: str, slideIndex: int, outDir: str) -> str:
        """Render one slide to `<outDir>/<name>-<slideIndex>.png`."""
        return _unwrap(tools.export_slide_as_png(name, slideIndex, outDir))

    @mcp.tool()
    def export_slides_as_png(name: str, outDir: str) -> str:
        """Render every slide to `<outDir>/<name>-<index>.png` and list the files."""
        return _unwrap(tools.export_slides_as_png(name, outDir))

    return mcp


def main() -> None:
    try:
        settings = DeckSettings.from_env()
        configure_logging(settings.log_level)
        settings.ensure_directories()
    except ConfigurationError as exc:
        sys.exit(f"Configuration error: {exc}")

    server = create_server(settings)
    LOGGER.info("Serving presentations from %s", settings.storage_dir)
    server.run()


if __name__ == "__main__":  # pragma: no cover - manual execution utility
    main()
