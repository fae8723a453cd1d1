import argparse
import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from pdf_tutor.core.resolver import DEFAULT_HIGHLIGHT_COLOR

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
ALLOWED_EXTENSIONS = (".pdf",)
PROMPT_CHAR_LIMIT = 15000
GRANULARITIES = ("line", "word")

# Used when no directories are given on the command line
DEFAULT_SEARCH_DIRECTORIES = [
    os.path.expanduser("~/Downloads"),
    os.path.expanduser("~/Desktop"),
    os.path.expanduser("~/Documents"),
    os.getcwd(),
]


@dataclass(frozen=True)
class TutorConfig:
    """Settings built once at start-up and passed to everything that needs them."""
    search_directories: Tuple[str, ...]
    max_file_size: int = MAX_FILE_SIZE
    fragment_granularity: str = "line"
    line_tolerance: float = 3.0
    prompt_char_limit: int = PROMPT_CHAR_LIMIT
    highlight_color: str = DEFAULT_HIGHLIGHT_COLOR

    def describe(self) -> dict:
        return {
            "accessible_directories": list(self.search_directories),
            "directory_count": len(self.search_directories),
            "max_file_size_mb": self.max_file_size // (1024 * 1024),
            "allowed_extensions": list(ALLOWED_EXTENSIONS),
            "fragment_granularity": self.fragment_granularity,
            "prompt_char_limit": self.prompt_char_limit,
            "highlight_color": self.highlight_color,
        }


def parse_arguments(argv: Optional[Sequence[str]] = None):
    """Parse CLI arguments for accessible directories and tutor settings."""
    parser = argparse.ArgumentParser(
        description="PDF Tutor MCP Server: tutor prompts, annotation commands and highlight resolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "\nExamples:\n"
            "  python main.py ~/Downloads ~/Documents\n"
            "  python main.py --allow-dir ~/Work --allow-dir /shared/pdfs\n"
            "  python main.py ~/Papers --fragment-granularity word --log-level DEBUG\n"
        ),
    )

    # 1) Positional directories
    parser.add_argument(
        "directories",
        nargs="*",
        help="Accessible directories for PDFs (space-separated)",
    )

    # 2) Repeated --allow-dir option
    parser.add_argument(
        "--allow-dir",
        action="append",
        dest="allowed_dirs",
        help="Add an allowed directory (can be used multiple times)",
    )

    parser.add_argument(
        "--max-file-size",
        type=int,
        default=MAX_FILE_SIZE,
        help="Maximum file size in bytes (default: 100MB)",
    )

    parser.add_argument(
        "--fragment-granularity",
        choices=GRANULARITIES,
        default="line",
        help="Text fragments used for highlight matching (default: line)",
    )

    parser.add_argument(
        "--prompt-char-limit",
        type=int,
        default=PROMPT_CHAR_LIMIT,
        help=f"Maximum document characters placed in tutor prompts (default: {PROMPT_CHAR_LIMIT})",
    )

    parser.add_argument(
        "--highlight-color",
        default=DEFAULT_HIGHLIGHT_COLOR,
        help=f"Colour for highlights that do not name one (default: {DEFAULT_HIGHLIGHT_COLOR})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def _normalize_dir(d: str) -> str:
    return os.path.realpath(os.path.abspath(os.path.expanduser(d)))


def _validate_directories(provided: List[str]) -> List[str]:
    validated: List[str] = []
    for d in provided:
        try:
            real_path = _normalize_dir(d)
            if not os.path.exists(real_path):
                logger.info(f"Creating directory: {real_path}")
                os.makedirs(real_path, exist_ok=True)
            if not os.path.isdir(real_path):
                logger.warning(f"Not a directory, skipped: {d} -> {real_path}")
                continue
            if not os.access(real_path, os.R_OK):
                logger.warning(f"Unreadable directory, skipped: {d} -> {real_path}")
                continue
            if real_path not in validated:
                validated.append(real_path)
        except OSError as e:
            logger.error(f"Failed to process directory '{d}': {e}")
    return validated


def setup_config(args) -> TutorConfig:
    """Validate parsed args and build the TutorConfig handle.
    Falls back to DEFAULT_SEARCH_DIRECTORIES when none are usable.
    """
    provided: List[str] = []
    if getattr(args, "directories", None):
        provided.extend(args.directories)
    if getattr(args, "allowed_dirs", None):
        provided.extend(args.allowed_dirs)

    if not provided:
        logger.info("No directories given; using default search directories.")
        directories = [_normalize_dir(d) for d in DEFAULT_SEARCH_DIRECTORIES]
    else:
        directories = _validate_directories(provided)
        if not directories:
            logger.warning("No valid directories from arguments; falling back to defaults.")
            directories = [_normalize_dir(d) for d in DEFAULT_SEARCH_DIRECTORIES]

    if args.prompt_char_limit <= 0:
        raise ValueError("--prompt-char-limit must be positive")

    return TutorConfig(
        search_directories=tuple(directories),
        max_file_size=int(args.max_file_size),
        fragment_granularity=args.fragment_granularity,
        prompt_char_limit=int(args.prompt_char_limit),
        highlight_color=args.highlight_color,
    )
