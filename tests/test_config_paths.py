from __future__ import annotations

import os
from pathlib import Path

import pytest

from pdf_tutor.core import config as config_mod
from pdf_tutor.core.config import TutorConfig, parse_arguments, setup_config
from pdf_tutor.core.paths import find_file, resolve_output_path, validate_and_resolve_path


def test_parse_arguments_defaults() -> None:
    args = parse_arguments([])
    assert args.directories == []
    assert args.fragment_granularity == "line"
    assert args.prompt_char_limit == 15000
    assert args.log_level == "INFO"


def test_setup_config_merges_and_creates_directories(tmp_path: Path) -> None:
    first = tmp_path / "papers"
    second = tmp_path / "new" / "notes"
    first.mkdir()
    args = parse_arguments([str(first), "--allow-dir", str(second), "--allow-dir", str(first),
                            "--fragment-granularity", "word", "--highlight-color", "yellow"])
    cfg = setup_config(args)
    assert cfg.search_directories == (os.path.realpath(first), os.path.realpath(second))
    assert second.is_dir()
    assert cfg.fragment_granularity == "word"
    assert cfg.highlight_color == "yellow"


def test_setup_config_falls_back_to_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(config_mod, "DEFAULT_SEARCH_DIRECTORIES", [str(tmp_path)])
    a_file = tmp_path / "plain.txt"
    a_file.write_text("x")
    cfg = setup_config(parse_arguments([str(a_file)]))
    assert cfg.search_directories == (os.path.realpath(tmp_path),)
    assert setup_config(parse_arguments([])).search_directories == (os.path.realpath(tmp_path),)


def test_setup_config_rejects_non_positive_prompt_limit(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        setup_config(parse_arguments([str(tmp_path), "--prompt-char-limit", "0"]))


def test_describe_reports_limits(config: TutorConfig) -> None:
    info = config.describe()
    assert info["directory_count"] == 1
    assert info["max_file_size_mb"] == 100
    assert info["allowed_extensions"] == [".pdf"]


def test_path_validation(config: TutorConfig, sample_pdf: Path, tmp_path: Path) -> None:
    assert validate_and_resolve_path(config, str(sample_pdf)) == Path(os.path.realpath(sample_pdf))

    notes = tmp_path / "notes.txt"
    notes.write_text("not a pdf")
    assert validate_and_resolve_path(config, str(notes)) is None

    outside = TutorConfig(search_directories=(str(tmp_path / "elsewhere"),))
    assert validate_and_resolve_path(outside, str(sample_pdf)) is None

    tiny = TutorConfig(search_directories=config.search_directories, max_file_size=10)
    assert validate_and_resolve_path(tiny, str(sample_pdf)) is None


def test_find_file_by_name_and_substring(config: TutorConfig, sample_pdf: Path) -> None:
    resolved = Path(os.path.realpath(sample_pdf))
    assert find_file(config, "lecture.pdf") == resolved
    assert find_file(config, "LECT") == resolved
    assert find_file(config, "missing") is None


def test_resolve_output_path(config: TutorConfig) -> None:
    assert resolve_output_path(config, "out.pdf") == Path(config.search_directories[0]) / "out.pdf"
    with pytest.raises(ValueError):
        resolve_output_path(config, "sub/out.pdf")
    with pytest.raises(ValueError):
        resolve_output_path(config, "out.docx")
