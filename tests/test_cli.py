import json
from pathlib import Path

from typer.testing import CliRunner

import cli
from tex_trans_lib.storage import LocalStorage

runner = CliRunner()


class RecordingStorage(LocalStorage):
    written: list[Path] = []

    def write_text(self, path: Path, contents: str) -> None:
        RecordingStorage.written.append(path)
        super().write_text(path, contents)


def test_mask_writes_through_storage(tmp_path, monkeypatch):
    RecordingStorage.written = []
    monkeypatch.setattr(cli, "LocalStorage", RecordingStorage)
    (tmp_path / "main.tex").write_text("Hello $x$ and \\ref{a}.\n", encoding="utf-8")
    out = tmp_path / "masked"

    result = runner.invoke(cli.app, ["mask", str(tmp_path / "main.tex"), "--output-dir", str(out)])

    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in RecordingStorage.written) == ["main.tex_masked.txt", "main.tex_masked_map.json"]
    assert (out / "main.tex_masked.txt").read_text(encoding="utf-8") == \
        'Hello  <ph id="IMATH_0001"/>  and  <ph id="CMD_0001"/> .\n'
    mapping = json.loads((out / "main.tex_masked_map.json").read_text(encoding="utf-8"))
    assert mapping["CMD_0001"]["originalContent"] == "\\ref{a}"


def test_parse_writes_through_storage(tmp_path, monkeypatch):
    RecordingStorage.written = []
    monkeypatch.setattr(cli, "LocalStorage", RecordingStorage)
    (tmp_path / "main.tex").write_text("Text.\n", encoding="utf-8")
    out = tmp_path / "tree.json"

    result = runner.invoke(cli.app, ["parse", str(tmp_path / "main.tex"), "--output", str(out)])

    assert result.exit_code == 0, result.output
    assert RecordingStorage.written == [out]
    assert json.loads(out.read_text(encoding="utf-8"))["files"][0]["nodes"][0]["type"] == "Text"
