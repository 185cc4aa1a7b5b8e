import asyncio
import json
from pathlib import Path

import pytest

from tex_trans_lib.config_models import PipelineConfig
from tex_trans_lib.enums import DiagnosticKind
from tex_trans_lib.errors import InputPathError
from tex_trans_lib.project_translator import ProjectLayout, ProjectTranslator
from tex_trans_lib.storage import LocalStorage

MAIN_TEX = r"""\documentclass{article}
\begin{document}
Hello $x$ world.

\input{chapters/intro}
\end{document}
"""

INTRO_TEX = r"""An introduction with $a+b$ and \ref{sec:one}.
"""


class FailingWriteStorage(LocalStorage):
    """Refuses to write the translated version of one file."""

    def __init__(self, failing_name: str):
        self.failing_name = failing_name

    def write_text(self, path: Path, contents: str) -> None:
        if path.name == self.failing_name and path.parent.name != "log":
            raise OSError("disk full")
        super().write_text(path, contents)


def make_config(tmp_path: Path) -> PipelineConfig:
    config = PipelineConfig(output_dir=str(tmp_path / "out"))
    config.translation.bypass_llm_translation = True
    config.translation.inter_chunk_delay = 0
    return config


def make_project(tmp_path: Path) -> Path:
    project = tmp_path / "paper"
    (project / "chapters").mkdir(parents=True)
    (project / "chapters" / "intro.tex").write_text(INTRO_TEX, encoding="utf-8")
    (project / "main.tex").write_text(MAIN_TEX, encoding="utf-8")
    (project / "figure.png").write_bytes(b"\x89PNG")
    return project


def test_directory_project(tmp_path):
    project = make_project(tmp_path)
    result = asyncio.run(ProjectTranslator(make_config(tmp_path)).translate_async(project))

    out = tmp_path / "out" / "paper"
    assert result.layout.project_dir == out
    assert result.output_path == out / "translated" / "main.tex"
    assert [f.path.name for f in result.files] == ["main.tex", "intro.tex"]
    assert not result.failed_files

    assert (out / "original" / "main.tex").read_text(encoding="utf-8") == MAIN_TEX
    assert (out / "translated" / "figure.png").read_bytes() == b"\x89PNG"
    assert (out / "translated" / "chapters" / "intro.tex").read_text(encoding="utf-8") == INTRO_TEX
    translated_main = (out / "translated" / "main.tex").read_text(encoding="utf-8")
    assert "Hello $x$ world." in translated_main
    assert "\\begin{document}" in translated_main

    masked_map = json.loads((out / "log" / "chapters_intro.tex_masked_map.json").read_text(encoding="utf-8"))
    assert masked_map["IMATH_0001"] == {"id": "IMATH_0001", "originalContent": "$a+b$"}
    assert masked_map["CMD_0001"]["originalContent"] == "\\ref{sec:one}"
    assert (out / "log" / "main.tex_masked.txt").is_file()
    assert (out / "log" / "main.tex_translated.txt").is_file()
    assert (out / "log" / "paper_ast.json").is_file()
    assert (out / "log" / "translation.log").is_file()


def test_single_file(tmp_path):
    source = tmp_path / "note.tex"
    source.write_text(INTRO_TEX, encoding="utf-8")
    config = make_config(tmp_path)
    config.save_intermediate_files = False

    result = asyncio.run(ProjectTranslator(config).translate_async(source))

    assert result.output_path == tmp_path / "out" / "note" / "translated" / "note.tex"
    assert result.output_path.read_text(encoding="utf-8") == INTRO_TEX
    assert (tmp_path / "out" / "note" / "original" / "note.tex").is_file()
    assert not (tmp_path / "out" / "note" / "log" / "note.tex_masked.txt").exists()


def test_failing_file_is_skipped_in_directory_mode(tmp_path):
    project = make_project(tmp_path)
    translator = ProjectTranslator(make_config(tmp_path), storage=FailingWriteStorage("main.tex"))
    result = asyncio.run(translator.translate_async(project))

    assert [p.name for p in result.failed_files] == ["main.tex"]
    assert [f.path.name for f in result.files] == ["intro.tex"]
    assert result.diagnostics.of_kind(DiagnosticKind.FILE_FAILURE)
    assert (tmp_path / "out" / "paper" / "translated" / "chapters" / "intro.tex").is_file()


def test_failing_single_file_propagates(tmp_path):
    source = tmp_path / "main.tex"
    source.write_text(MAIN_TEX, encoding="utf-8")
    translator = ProjectTranslator(make_config(tmp_path), storage=FailingWriteStorage("main.tex"))
    with pytest.raises(OSError):
        asyncio.run(translator.translate_async(source))


def test_missing_input(tmp_path):
    with pytest.raises(InputPathError):
        asyncio.run(ProjectTranslator(make_config(tmp_path)).translate_async(tmp_path / "nope"))


class InMemoryDirStorage(LocalStorage):
    """Reports the given paths as directories without touching the disk."""

    def __init__(self, dirs: set[Path]):
        self.dirs = dirs
        self.asked: list[Path] = []

    def is_dir(self, path: Path) -> bool:
        self.asked.append(path)
        return path in self.dirs


def test_layout_asks_the_storage(tmp_path):
    storage = InMemoryDirStorage({Path("/remote/paper.v2")})
    layout = ProjectLayout.for_input(Path("/remote/paper.v2"), tmp_path, storage)
    assert layout.project_dir == tmp_path / "paper.v2"
    assert layout.translated_dir.parent == layout.project_dir
    assert storage.asked == [Path("/remote/paper.v2")]

    layout = ProjectLayout.for_input(Path("/remote/main.tex"), tmp_path, storage)
    assert layout.project_dir == tmp_path / "main"
