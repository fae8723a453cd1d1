#!/usr/bin/env python3
"""
PDF Tutor MCP Server
Builds tutor prompts for questions about a PDF, then turns the model's answer
into page navigation and highlights resolved against the PDF's text layout.
"""

import logging
import sys

from pdf_tutor.core.config import parse_arguments, setup_config
from pdf_tutor.tools.mcp_tools import build_server

# --- Basic Configuration ---
# stdout carries the MCP stdio transport, so logs go to stderr.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("PDFTutor")


def main(argv=None) -> None:
    args = parse_arguments(argv)
    logging.getLogger().setLevel(getattr(logging, args.log_level))

    config = setup_config(args)
    logger.info("Starting PDF Tutor MCP Server...")
    logger.info(f"Accessible directories: {list(config.search_directories)}")
    logger.info(f"Maximum file size: {config.max_file_size // (1024 * 1024)} MB")
    logger.info(f"Fragment granularity: {config.fragment_granularity}")

    build_server(config).run()


if __name__ == "__main__":
    main()
