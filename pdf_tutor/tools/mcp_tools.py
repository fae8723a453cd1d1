import json
import logging
from typing import Any, Dict, Optional

import pdfplumber
from mcp.server.fastmcp import FastMCP

from pdf_tutor.backends.pdfplumber_backend import PdfLayoutSource, page_fragments, read_pages
from pdf_tutor.backends.pypdf2_backend import read_highlight_annotations, write_highlight_annotations
from pdf_tutor.core.commands import classify, extract, split_controls
from pdf_tutor.core.config import TutorConfig
from pdf_tutor.core.pages import coerce_page_number
from pdf_tutor.core.paths import find_file, resolve_output_path
from pdf_tutor.core.prompts import build_tutor_prompt, document_text_from_pages
from pdf_tutor.core.resolver import resolve
from pdf_tutor.core.viewer import AnnotationViewer

logger = logging.getLogger(__name__)


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _not_found(file_path: str) -> str:
    return (
        f"Error: Could not find file '{file_path}'. Provide an absolute path or place the file "
        "within the configured accessible directories."
    )


def _load_json_arg(value: Any, name: str) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except (ValueError, RecursionError) as e:
            raise ValueError(f"'{name}' is not valid JSON: {e}") from None
    return value


# ---------- Tool implementations (plain functions over a TutorConfig) ----------

def extract_annotation_commands_text(response_text: str) -> str:
    result = extract(response_text)
    annotations, controls = split_controls(result.directives)
    return _dumps({
        "clean_text": result.clean_text,
        "directives": [d.to_record() for d in result.directives],
        "annotations": [d.to_record() for d in annotations],
        "controls": [d.to_record() for d in controls],
    })


def resolve_highlight_text(config: TutorConfig, directive: Any, fragments: Any,
                           origin_left: float = 0.0, origin_top: float = 0.0) -> str:
    try:
        parsed = classify(_load_json_arg(directive, "directive"))
        if parsed is None or parsed.kind not in ("highlight", "area"):
            return "Error: directive is not a valid highlight or area command."
        items = _load_json_arg(fragments, "fragments")
        if not isinstance(items, list):
            return "Error: 'fragments' must be a list of {content, bounding_box} objects."
        origin = {"left": float(origin_left), "top": float(origin_top)}
        highlights = resolve(parsed, items, origin, config.highlight_color)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        return f"Error: {e}"
    return _dumps({
        "directive": parsed.to_record(),
        "total_highlights": len(highlights),
        "highlights": [h.to_dict() for h in highlights],
    })


def list_page_fragments_text(config: TutorConfig, file_path: str, page: int,
                             granularity: Optional[str] = None) -> str:
    path = find_file(config, file_path)
    if not path:
        return _not_found(file_path)
    page_number = coerce_page_number(page)
    if page_number is None:
        return f"Error: page must be a positive integer, got {page!r}"
    try:
        result = page_fragments(path, page_number, granularity or config.fragment_granularity,
                                config.line_tolerance)
    except ValueError as ve:
        return f"Error: {ve}"
    except Exception as e:
        logger.error(f"Fragment listing failed: {e}")
        return f"Error: {e}"
    result["file_name"] = path.name
    return _dumps(result)


def read_pdf_text_text(config: TutorConfig, file_path: str, page_range: Optional[str] = None) -> str:
    path = find_file(config, file_path)
    if not path:
        return _not_found(file_path)
    try:
        return _dumps(read_pages(path, page_range))
    except ValueError as ve:
        return f"Error: {ve}"
    except Exception as e:
        logger.error(f"Text extraction failed: {e}")
        return f"Error: {e}"


def build_tutor_prompt_text(config: TutorConfig, file_path: str, question: str) -> str:
    path = find_file(config, file_path)
    if not path:
        return _not_found(file_path)
    if not question or not question.strip():
        return "Error: question is required."
    try:
        doc = read_pages(path)
    except Exception as e:
        logger.error(f"Prompt construction failed: {e}")
        return f"Error: {e}"
    title = doc["metadata"].get("title") or path.stem
    document_text = document_text_from_pages(doc["extracted_pages"])
    return build_tutor_prompt(title, document_text, question.strip(), config.prompt_char_limit)


def _replay(config: TutorConfig, pdf, response_text: str, current_page: int):
    source = PdfLayoutSource(pdf, config.fragment_granularity, config.line_tolerance)
    viewer = AnnotationViewer(source.page_count, current_page, config.highlight_color)
    result = extract(response_text)
    viewer.apply(result.directives, source)
    return result, viewer


def _summary(result, viewer: AnnotationViewer) -> Dict[str, Any]:
    return {
        "clean_text": result.clean_text,
        "directives": [d.to_record() for d in result.directives],
        "current_page": viewer.current_page,
        "total_highlights": len(viewer.highlights),
        "highlights": [h.to_dict() for h in viewer.highlights],
        "unresolved": [d.to_record() for d in viewer.unresolved],
    }


def apply_tutor_response_text(config: TutorConfig, file_path: str, response_text: str,
                              current_page: int = 1) -> str:
    path = find_file(config, file_path)
    if not path:
        return _not_found(file_path)
    try:
        with pdfplumber.open(path) as pdf:
            result, viewer = _replay(config, pdf, response_text, current_page)
    except Exception as e:
        logger.error(f"Applying tutor response failed: {e}")
        return f"Error: {e}"
    payload = _summary(result, viewer)
    payload["file_name"] = path.name
    return _dumps(payload)


def export_highlights_text(config: TutorConfig, file_path: str, response_text: str,
                           output_name: str) -> str:
    path = find_file(config, file_path)
    if not path:
        return _not_found(file_path)
    try:
        out_path = resolve_output_path(config, output_name)
        if out_path.resolve() == path.resolve():
            return "Error: output would overwrite the source PDF."
        with pdfplumber.open(path) as pdf:
            result, viewer = _replay(config, pdf, response_text, 1)
        written = write_highlight_annotations(path, viewer.highlights, out_path)
    except ValueError as ve:
        return f"Error: {ve}"
    except Exception as e:
        logger.error(f"Highlight export failed: {e}")
        return f"Error: {e}"
    logger.info(f"Exported {written} highlight(s) from {path.name} to {out_path}")
    return _dumps({
        "file_name": path.name,
        "output_path": str(out_path),
        "annotations_written": written,
        "unresolved": [d.to_record() for d in viewer.unresolved],
    })


def list_highlight_annotations_text(config: TutorConfig, file_path: str) -> str:
    path = find_file(config, file_path)
    if not path:
        return _not_found(file_path)
    try:
        highlights = read_highlight_annotations(path)
    except Exception as e:
        logger.error(f"Reading highlight annotations failed: {e}")
        return f"Error: {e}"
    return _dumps({
        "file_name": path.name,
        "total_highlights": len(highlights),
        "highlights": highlights,
    })


# ---------- Server ----------

def build_server(config: TutorConfig) -> FastMCP:
    mcp = FastMCP("PDF Tutor")

    @mcp.tool()
    async def extract_annotation_commands(response_text: str) -> str:
        """Split a tutor response into display text and annotation commands.

        Returns JSON with `clean_text` (Markdown without command blocks),
        `directives` (all valid commands in order), and the same commands
        partitioned into `annotations` (highlight/area) and `controls`
        (navigate/clear).
        """
        return extract_annotation_commands_text(response_text)

    @mcp.tool()
    async def resolve_highlight(
        directive: str,
        fragments: str,
        origin_left: float = 0.0,
        origin_top: float = 0.0,
    ) -> str:
        """Resolve one highlight/area command against caller-supplied text fragments.

        Parameters
        ----------
        directive: str
            JSON command record, e.g. {"action": "highlight", "text": "...", "page": 2}.
        fragments: str
            JSON list of {"content": str, "bounding_box": {left, top, width, height}}.
        origin_left, origin_top: float
            Page origin in the fragments' coordinate space; boxes are returned page-local.
        """
        return resolve_highlight_text(config, directive, fragments, origin_left, origin_top)

    @mcp.tool()
    async def list_page_fragments(file_path: str, page: int, granularity: Optional[str] = None) -> str:
        """Positioned text fragments of one PDF page (`line` or `word` granularity)."""
        return list_page_fragments_text(config, file_path, page, granularity)

    @mcp.tool()
    async def read_pdf_text(file_path: str, page_range: Optional[str] = None) -> str:
        """Extract page text and basic PDF metadata.

        `page_range` accepts `first`, `last`, `N`, `S-E`, or nothing for all pages.
        """
        return read_pdf_text_text(config, file_path, page_range)

    @mcp.tool()
    async def tutor_prompt(file_path: str, question: str) -> str:
        """Build the tutor prompt for a question about a PDF.

        Answer the returned prompt, then pass the answer to `apply_tutor_response`.
        """
        return build_tutor_prompt_text(config, file_path, question)

    @mcp.tool()
    async def apply_tutor_response(file_path: str, response_text: str, current_page: int = 1) -> str:
        """Apply the annotation commands of a tutor response to a PDF.

        Commands are replayed in order: navigate changes the current page,
        clear drops earlier highlights, highlight/area commands are matched
        against the page text. Returns JSON with the clean text, final page,
        highlights (page-local boxes) and commands that matched nothing.
        """
        return apply_tutor_response_text(config, file_path, response_text, current_page)

    @mcp.tool()
    async def export_highlights(file_path: str, response_text: str, output_name: str) -> str:
        """Write a copy of the PDF with the response's highlights as PDF highlight annotations.

        `output_name` is a plain .pdf file name; the copy is written to the
        first accessible directory.
        """
        return export_highlights_text(config, file_path, response_text, output_name)

    @mcp.tool()
    async def list_highlight_annotations(file_path: str) -> str:
        """List the /Highlight annotations stored in a PDF, e.g. an exported copy.

        Each entry has `page`, `author`, `content` and `position` ([x0, y0, x1, y1]
        in PDF user space).
        """
        return list_highlight_annotations_text(config, file_path)

    @mcp.tool()
    async def show_configuration() -> str:
        """Return the accessible directories, limits and tutor settings as JSON."""
        return _dumps(config.describe())

    return mcp
