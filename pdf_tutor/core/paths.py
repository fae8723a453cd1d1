import logging
import os
from pathlib import Path
from typing import Optional

from pdf_tutor.core.config import ALLOWED_EXTENSIONS, TutorConfig

logger = logging.getLogger(__name__)


def _is_within(base: str, target: str) -> bool:
    base = os.path.join(os.path.realpath(base), "")  # ensure trailing separator
    target = os.path.realpath(target)
    return target.startswith(base) or target == base[:-1]


def validate_and_resolve_path(config: TutorConfig, file_path: str) -> Optional[Path]:
    """Validate a candidate file path and return an absolute Path if allowed and safe."""
    try:
        abs_path = os.path.expanduser(file_path) if file_path.startswith("~") else os.path.abspath(file_path)
        real_path = os.path.realpath(abs_path)

        # Must be within one of the allowed directories; block traversal
        is_safe = any(_is_within(allowed, real_path) for allowed in config.search_directories)
        if not is_safe or ".." in Path(file_path).parts:
            logger.warning(f"Security risk detected (outside allowed directories): {file_path}")
            return None

        resolved = Path(real_path)
        if not resolved.is_file():
            return None
        if resolved.suffix.lower() not in ALLOWED_EXTENSIONS:
            logger.warning(f"Disallowed file extension: {file_path}")
            return None
        if resolved.stat().st_size > config.max_file_size:
            logger.warning(f"File too large: {file_path}")
            return None
        return resolved
    except OSError as e:
        logger.error(f"Error validating path {file_path}: {e}")
        return None


def find_file(config: TutorConfig, file_name: str) -> Optional[Path]:
    """Resolve an absolute path or search by name/substring within the configured directories."""
    if os.path.isabs(file_name) or file_name.startswith("~"):
        path = validate_and_resolve_path(config, file_name)
        if path:
            return path

    for directory in config.search_directories:
        dir_path = Path(directory)
        path = validate_and_resolve_path(config, str(dir_path / file_name))
        if path:
            return path
        try:
            candidates = sorted(dir_path.glob("*.pdf"))
        except OSError as e:
            logger.error(f"Error searching directory {directory}: {e}")
            continue
        for pdf in candidates:
            if file_name.lower() in pdf.name.lower():
                path = validate_and_resolve_path(config, str(pdf))
                if path:
                    return path

    logger.warning(f"File not found: {file_name}")
    return None


def resolve_output_path(config: TutorConfig, output_name: str) -> Path:
    """Where exported PDFs go: a bare .pdf file name inside the first allowed directory."""
    name = Path(output_name).name
    if not name or name != output_name:
        raise ValueError(f"Output name must be a plain file name, got '{output_name}'")
    if Path(name).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise ValueError(f"Output file must end in .pdf: '{output_name}'")
    if not config.search_directories:
        raise ValueError("No accessible directory is configured for output")
    return Path(config.search_directories[0]) / name
