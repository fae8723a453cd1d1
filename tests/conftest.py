from pathlib import Path
from typing import List, Sequence, Tuple

import pytest

from pdf_tutor.core.config import TutorConfig

# (x, y, font size, text) in PDF user space on a 612x792 page
Line = Tuple[float, float, int, str]

SAMPLE_PAGES: List[List[Line]] = [
    [
        (72, 720, 24, "Introduction to Systems"),
        (72, 600, 14, "Conclusion"),
    ],
    [
        (72, 700, 18, "Key Findings Summary"),
        (72, 650, 12, "Mitochondria produce energy for the cell"),
    ],
]


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def write_text_pdf(path: Path, pages: Sequence[Sequence[Line]]) -> Path:
    """Write a minimal PDF with Helvetica text lines, one content stream per page."""
    page_count = len(pages)
    font_id = 3
    first_page_id = 4
    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        (
            "<< /Type /Pages /Kids [%s] /Count %d >>"
            % (" ".join(f"{first_page_id + 2 * i} 0 R" for i in range(page_count)), page_count)
        ).encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for i, lines in enumerate(pages):
        content_id = first_page_id + 2 * i + 1
        stream = "\n".join(
            f"BT /F1 {size} Tf {x} {y} Td ({_escape(text)}) Tj ET" for x, y, size, text in lines
        ).encode("latin-1")
        objects.append(
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {content_id} 0 R >>"
            ).encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    path.write_bytes(bytes(out))
    return path


@pytest.fixture
def sample_pdf(tmp_path: Path) -> Path:
    return write_text_pdf(tmp_path / "lecture.pdf", SAMPLE_PAGES)


@pytest.fixture
def config(tmp_path: Path) -> TutorConfig:
    return TutorConfig(search_directories=(str(tmp_path.resolve()),))

