import subprocess
from pathlib import Path

import pytest

from pptx_deck import converters
from pptx_deck.converters import SubprocessConverter, discover_outputs, locate_soffice
from pptx_deck.exceptions import ConversionFailedError, ConversionTimeoutError


class RecordingRun:
    """Replacement for ``subprocess.run`` that records commands and fakes outputs."""

    def __init__(self, *, returncode=0, stderr=b"", outputs=(), exc=None):
        self.returncode = returncode
        self.stderr = stderr
        self.outputs = [Path(path) for path in outputs]
        self.exc = exc
        self.commands = []

    def __call__(self, cmd, **kwargs):
        self.commands.append((list(cmd), kwargs))
        for path in self.outputs:
            path.write_bytes(b"data")
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(cmd, self.returncode, b"", self.stderr)


def _converter(monkeypatch, run, **kwargs):
    monkeypatch.setattr(converters.subprocess, "run", run)
    converter = SubprocessConverter("soffice", "pdftoppm", **kwargs)
    monkeypatch.setattr(converter, "_soffice", lambda: "/usr/bin/soffice")
    return converter


def test_discover_outputs_sorts_by_page_number(tmp_path):
    for name in ["deck-10.png", "deck-2.png", "deck-1.png", "deck-x.png", "other-3.png", "deck-3.jpg"]:
        (tmp_path / name).write_bytes(b"")
    found = discover_outputs(tmp_path, "deck")
    assert [path.name for path in found] == ["deck-1.png", "deck-2.png", "deck-10.png"]


def test_discover_outputs_handles_glob_characters_in_stem(tmp_path):
    (tmp_path / "deck[1]-01.png").write_bytes(b"")
    (tmp_path / "deck1-01.png").write_bytes(b"")
    assert [p.name for p in discover_outputs(tmp_path, "deck[1]")] == ["deck[1]-01.png"]


def test_to_pdf_runs_soffice_headless_with_private_profile(tmp_path, monkeypatch):
    source = tmp_path / "deck.abc.pptx"
    run = RecordingRun(outputs=[tmp_path / "deck.abc.pdf"])
    converter = _converter(monkeypatch, run, timeout=42)

    pdf = converter.to_pdf(source, tmp_path)

    assert pdf == tmp_path / "deck.abc.pdf"
    cmd, kwargs = run.commands[0]
    assert cmd[0] == "/usr/bin/soffice"
    assert "--headless" in cmd
    assert any(part.startswith("-env:UserInstallation=file://") for part in cmd)
    assert cmd[-5:] == ["--convert-to", "pdf", "--outdir", str(tmp_path), str(source)]
    assert kwargs["timeout"] == 42


def test_to_pdf_nonzero_exit_raises_with_stderr(tmp_path, monkeypatch):
    run = RecordingRun(returncode=77, stderr=b"source file could not be loaded")
    converter = _converter(monkeypatch, run)

    with pytest.raises(ConversionFailedError) as excinfo:
        converter.to_pdf(tmp_path / "deck.pptx", tmp_path)

    assert excinfo.value.returncode == 77
    assert "could not be loaded" in str(excinfo.value)


def test_to_pdf_without_output_raises(tmp_path, monkeypatch):
    converter = _converter(monkeypatch, RecordingRun())
    with pytest.raises(ConversionFailedError):
        converter.to_pdf(tmp_path / "deck.pptx", tmp_path)


def test_timeout_raises_and_removes_partial_output(tmp_path, monkeypatch):
    partial = tmp_path / "deck.pdf"
    run = RecordingRun(
        outputs=[partial], exc=subprocess.TimeoutExpired(cmd="soffice", timeout=5)
    )
    converter = _converter(monkeypatch, run, timeout=5)

    with pytest.raises(ConversionTimeoutError):
        converter.to_pdf(tmp_path / "deck.pptx", tmp_path)
    assert not partial.exists()


def test_missing_binary_is_reported_as_conversion_failure(tmp_path, monkeypatch):
    run = RecordingRun(exc=FileNotFoundError(2, "No such file or directory"))
    converter = _converter(monkeypatch, run)
    with pytest.raises(ConversionFailedError) as excinfo:
        converter.rasterize(tmp_path / "deck.pdf", tmp_path, "deck")
    assert "pdftoppm" in str(excinfo.value)


def test_rasterize_single_page_uses_one_based_page_numbers(tmp_path, monkeypatch):
    run = RecordingRun(outputs=[tmp_path / "deck.png"])
    converter = _converter(monkeypatch, run, dpi=96)

    images = converter.rasterize(tmp_path / "deck.pdf", tmp_path, "deck", page_index=2)

    assert images == [tmp_path / "deck.png"]
    cmd, _ = run.commands[0]
    assert cmd[:4] == ["pdftoppm", "-png", "-r", "96"]
    assert cmd[4:9] == ["-f", "3", "-l", "3", "-singlefile"]
    assert cmd[-2:] == [str(tmp_path / "deck.pdf"), str(tmp_path / "deck")]


def test_rasterize_all_pages_discovers_outputs(tmp_path, monkeypatch):
    outputs = [tmp_path / f"deck-{page:02d}.png" for page in (1, 2, 10)]
    run = RecordingRun(outputs=outputs)
    converter = _converter(monkeypatch, run)

    images = converter.rasterize(tmp_path / "deck.pdf", tmp_path, "deck")

    assert images == outputs
    cmd, _ = run.commands[0]
    assert "-f" not in cmd and "-singlefile" not in cmd


def test_rasterize_all_pages_timeout_cleans_partial_pages(tmp_path, monkeypatch):
    outputs = [tmp_path / "deck-1.png", tmp_path / "deck-2.png"]
    run = RecordingRun(outputs=outputs, exc=subprocess.TimeoutExpired("pdftoppm", 1))
    converter = _converter(monkeypatch, run)

    with pytest.raises(ConversionTimeoutError):
        converter.rasterize(tmp_path / "deck.pdf", tmp_path, "deck")
    assert not any(path.exists() for path in outputs)


def test_rasterize_all_pages_failure_cleans_partial_pages(tmp_path, monkeypatch):
    pdf = tmp_path / "deck.tok.pdf"
    pdf.write_bytes(b"%PDF")
    outputs = [tmp_path / "deck.tok-1.png"]
    run = RecordingRun(outputs=outputs, returncode=1, stderr=b"Syntax Error")
    converter = _converter(monkeypatch, run)

    with pytest.raises(ConversionFailedError):
        converter.rasterize(pdf, tmp_path, "deck.tok")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["deck.tok.pdf"]


def test_missing_soffice_raises_conversion_failed(tmp_path, monkeypatch):
    monkeypatch.setattr(converters, "locate_soffice", lambda explicit=None: None)
    converter = SubprocessConverter()
    with pytest.raises(ConversionFailedError):
        converter.to_pdf(tmp_path / "deck.pptx", tmp_path)


def test_locate_soffice_returns_none_when_nothing_is_installed(monkeypatch):
    monkeypatch.setattr(converters.shutil, "which", lambda candidate: None)
    assert locate_soffice() is None


def test_locate_soffice_prefers_explicit_path(monkeypatch):
    monkeypatch.setattr(converters.shutil, "which", lambda candidate: f"/opt/{candidate}")
    run = RecordingRun()
    monkeypatch.setattr(converters.subprocess, "run", run)

    assert locate_soffice("my-soffice") == "/opt/my-soffice"
    assert run.commands[0][0] == ["/opt/my-soffice", "--version"]
