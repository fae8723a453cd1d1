"""Tutor prompt sent to the text-generation model."""

from typing import Dict, Iterable

from pdf_tutor.core.commands import format_command_block
from pdf_tutor.core.types import (
    AreaDirective,
    ClearDirective,
    Coordinates,
    HighlightDirective,
    NavigateDirective,
)

# Page numbers in the examples are placeholders; the model substitutes real ones.
_EXAMPLES = [
    ("HIGHLIGHT TEXT", "To highlight specific text on a page",
     HighlightDirective(text="exact phrase from document", page=1,
                        comment="explanation or note", color="yellow")),
    ("HIGHLIGHT AREA", "To highlight a rectangular area",
     AreaDirective(page=1, coordinates=Coordinates(100, 200, 300, 50),
                   comment="explanation", color="yellow")),
    ("NAVIGATE TO PAGE", "To direct the student to a specific page",
     NavigateDirective(page=1)),
    ("CLEAR ANNOTATIONS", "To remove all highlights",
     ClearDirective()),
]

CAPABILITIES = [
    "Answer questions about the document content",
    "Reference specific pages when relevant",
    "Control PDF annotations and highlighting",
    "Navigate to specific pages",
    "Provide explanations and clarifications",
]


def document_text_from_pages(pages: Iterable[Dict]) -> str:
    """Join extracted pages ({page_number, text}) with page markers."""
    parts = []
    for page in pages:
        text = (page.get("text") or "").strip()
        if text:
            parts.append(f"--- Page {page['page_number']} ---\n{text}")
    return "\n\n".join(parts)


def annotation_instructions() -> str:
    sections = []
    for title, purpose, example in _EXAMPLES:
        sections.append(f"**{title}**: {purpose}:\n{format_command_block(example)}")
    return "\n\n".join(sections)


def build_tutor_prompt(title: str, document_text: str, question: str,
                       char_limit: int = 15000) -> str:
    capabilities = "\n".join(f"{i}. {c}" for i, c in enumerate(CAPABILITIES, 1))
    return f"""You are an AI tutor helping a student understand a PDF document titled "{title}".

AVAILABLE PDF CONTENT:
{document_text[:char_limit]}

Your capabilities include:
{capabilities}

ANNOTATION COMMANDS:
When you want to highlight or annotate the PDF, use these special commands in your response.
Use real page numbers from the document and quote text exactly as it appears.

{annotation_instructions()}

RESPONSE FORMAT:
Respond using clean, well-formatted Markdown. Include annotation commands when appropriate.

STUDENT QUESTION: "{question}"

Provide a helpful, educational response with relevant page references and annotations.
"""
