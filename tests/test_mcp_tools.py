from __future__ import annotations

import asyncio
import json
from pathlib import Path

from pdf_tutor.backends.pypdf2_backend import read_highlight_annotations
from pdf_tutor.core.config import TutorConfig
from pdf_tutor.tools import mcp_tools

RESPONSE = """Here is the **summary**.

```annotation
{"action": "highlight", "text": "Introduction", "page": 1, "comment": "start here"}
```
```annotation
{"action": "navigate", "page": 2}
```
```annotation
{"action": "highlight", "text": "mitochondria", "page": 2}
```
```annotation
{"action": "highlight", "text": "quantum entanglement", "page": 2}
```
"""


def test_extract_annotation_commands_text() -> None:
    payload = json.loads(mcp_tools.extract_annotation_commands_text(RESPONSE))
    assert payload["clean_text"] == "Here is the **summary**."
    assert [d["action"] for d in payload["directives"]] == ["highlight", "navigate", "highlight", "highlight"]
    assert payload["controls"] == [{"action": "navigate", "page": 2}]
    assert len(payload["annotations"]) == 3


def test_resolve_highlight_text(config: TutorConfig) -> None:
    fragments = json.dumps([
        {"content": "Key Findings Summary", "bounding_box": {"left": 30, "top": 40, "width": 5, "height": 3}},
    ])
    directive = json.dumps({"action": "highlight", "text": "the key results", "page": 2})
    payload = json.loads(mcp_tools.resolve_highlight_text(config, directive, fragments, 10, 20))
    assert payload["total_highlights"] == 1
    assert payload["highlights"][0]["bounding_box"] == {"left": 20.0, "top": 20.0, "width": 20.0, "height": 16.0}


def test_resolve_highlight_rejects_bad_input(config: TutorConfig) -> None:
    fragments = "[]"
    assert mcp_tools.resolve_highlight_text(config, '{"action": "clear"}', fragments).startswith("Error:")
    assert mcp_tools.resolve_highlight_text(config, "{oops", fragments).startswith("Error:")
    nested = "[" * 100000 + "]" * 100000
    assert mcp_tools.resolve_highlight_text(config, nested, fragments).startswith("Error:")
    directive = '{"action": "highlight", "text": "x", "page": 1}'
    assert mcp_tools.resolve_highlight_text(config, directive, '{"a": 1}').startswith("Error:")
    assert mcp_tools.resolve_highlight_text(config, directive, '[{"content": "x"}]').startswith("Error:")


def test_list_page_fragments_text(config: TutorConfig, sample_pdf: Path) -> None:
    payload = json.loads(mcp_tools.list_page_fragments_text(config, "lecture.pdf", 1))
    assert payload["file_name"] == "lecture.pdf"
    assert [f["content"] for f in payload["fragments"]] == ["Introduction to Systems", "Conclusion"]
    assert mcp_tools.list_page_fragments_text(config, "lecture.pdf", 0).startswith("Error:")
    assert mcp_tools.list_page_fragments_text(config, "lecture.pdf", 7).startswith("Error:")
    assert mcp_tools.list_page_fragments_text(config, "missing.pdf", 1).startswith("Error:")


def test_read_pdf_text_text(config: TutorConfig, sample_pdf: Path) -> None:
    payload = json.loads(mcp_tools.read_pdf_text_text(config, str(sample_pdf), "first"))
    assert payload["extracted_pages"][0]["page_number"] == 1
    assert mcp_tools.read_pdf_text_text(config, str(sample_pdf), "5-9").startswith("Error:")


def test_build_tutor_prompt_text(config: TutorConfig, sample_pdf: Path) -> None:
    prompt = mcp_tools.build_tutor_prompt_text(config, "lecture", "What do mitochondria do?")
    assert 'titled "lecture"' in prompt
    assert "--- Page 2 ---" in prompt
    assert 'STUDENT QUESTION: "What do mitochondria do?"' in prompt
    assert mcp_tools.build_tutor_prompt_text(config, "lecture", "  ").startswith("Error:")


def test_apply_tutor_response_text(config: TutorConfig, sample_pdf: Path) -> None:
    payload = json.loads(mcp_tools.apply_tutor_response_text(config, "lecture.pdf", RESPONSE))
    assert payload["current_page"] == 2
    assert [(h["page_number"], h["source_text"]) for h in payload["highlights"]] == [
        (1, "Introduction to Systems"),
        (2, "Mitochondria produce energy for the cell"),
    ]
    assert payload["highlights"][0]["comment"] == "start here"
    assert payload["highlights"][0]["color"] == config.highlight_color
    assert payload["unresolved"] == [{"action": "highlight", "text": "quantum entanglement", "page": 2}]


def test_export_highlights_text(config: TutorConfig, sample_pdf: Path, tmp_path: Path) -> None:
    payload = json.loads(mcp_tools.export_highlights_text(config, "lecture.pdf", RESPONSE, "lecture-notes.pdf"))
    assert payload["annotations_written"] == 2
    out = Path(payload["output_path"])
    assert out.parent == tmp_path.resolve()
    assert [a["page"] for a in read_highlight_annotations(out)] == [1, 2]


def test_list_highlight_annotations_text(config: TutorConfig, sample_pdf: Path) -> None:
    before = json.loads(mcp_tools.list_highlight_annotations_text(config, "lecture.pdf"))
    assert before == {"file_name": "lecture.pdf", "total_highlights": 0, "highlights": []}

    mcp_tools.export_highlights_text(config, "lecture.pdf", RESPONSE, "lecture-notes.pdf")
    after = json.loads(mcp_tools.list_highlight_annotations_text(config, "lecture-notes.pdf"))
    assert after["total_highlights"] == 2
    assert [a["page"] for a in after["highlights"]] == [1, 2]
    assert {a["author"] for a in after["highlights"]} == {"AI Tutor"}
    assert len(after["highlights"][0]["position"]) == 4

    assert mcp_tools.list_highlight_annotations_text(config, "missing.pdf").startswith("Error:")


def test_export_refuses_bad_targets(config: TutorConfig, sample_pdf: Path) -> None:
    assert mcp_tools.export_highlights_text(config, "lecture.pdf", RESPONSE, "lecture.pdf").startswith("Error:")
    assert mcp_tools.export_highlights_text(config, "lecture.pdf", RESPONSE, "../x.pdf").startswith("Error:")
    assert mcp_tools.export_highlights_text(config, "lecture.pdf", RESPONSE, "notes.txt").startswith("Error:")


def test_build_server_registers_tools(config: TutorConfig) -> None:
    server = mcp_tools.build_server(config)
    names = {tool.name for tool in asyncio.run(server.list_tools())}
    assert names == {
        "extract_annotation_commands",
        "resolve_highlight",
        "list_page_fragments",
        "read_pdf_text",
        "tutor_prompt",
        "apply_tutor_response",
        "export_highlights",
        "list_highlight_annotations",
        "show_configuration",
    }
