import io
from pathlib import Path
from types import SimpleNamespace

import pytest
from pypdf import PdfWriter

from smartcv.core import cv_extraction
from smartcv.core.cv_extraction import (
    DOCX_MIME,
    PDF_MIME,
    CVExtractor,
    VirusScanner,
    normalize_text,
    sniff_mime,
)
from smartcv.errors import EmptyUpload, FileTooLarge, MalwareDetected, NoTextExtracted, UnsupportedFileType


def _extractor(*, scanner_enabled: bool = False) -> CVExtractor:
    return CVExtractor(
        max_bytes=5 * 1024 * 1024,
        scanner=VirusScanner(enabled=scanner_enabled, binary="clamscan", timeout_sec=5),
    )


def _blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def test_sniff_recognises_supported_and_other_types(docx_bytes) -> None:
    assert sniff_mime(_blank_pdf()) == PDF_MIME
    assert sniff_mime(docx_bytes("Hello")) == DOCX_MIME
    assert sniff_mime(b"\x89PNG\r\n\x1a\nrest") == "image/png"
    assert sniff_mime(b"plain words") == "text/plain"


def test_normalize_collapses_whitespace() -> None:
    assert normalize_text("  Jane   Doe\n\n\tPython engineer  ") == "Jane Doe Python engineer"


def test_docx_text_is_extracted_and_normalised(docx_bytes) -> None:
    content = docx_bytes("Jane   Doe", "", "Senior  Python engineer, 6 years")
    text = _extractor().extract(content, identifier="+2341")
    assert text == "Jane Doe Senior Python engineer, 6 years"


def test_oversized_upload_rejected_before_extraction(monkeypatch) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("extraction must not run")

    monkeypatch.setattr(cv_extraction, "sniff_mime", fail)
    monkeypatch.setattr(cv_extraction, "extract_pdf_text", fail)
    monkeypatch.setattr(cv_extraction, "extract_docx_text", fail)

    content = b"%PDF-" + b"0" * (6 * 1024 * 1024)
    with pytest.raises(FileTooLarge) as info:
        _extractor().extract(content)
    assert info.value.size == len(content)


def test_empty_upload_rejected() -> None:
    with pytest.raises(EmptyUpload):
        _extractor().extract(b"")


def test_unsupported_type_names_detected_type() -> None:
    with pytest.raises(UnsupportedFileType) as info:
        _extractor().extract(b"just some text in a .txt file")
    assert info.value.detected == "text/plain"


def test_empty_extraction_is_a_failure() -> None:
    with pytest.raises(NoTextExtracted):
        _extractor().extract(_blank_pdf())


def test_missing_scanner_is_skipped(monkeypatch, docx_bytes) -> None:
    monkeypatch.setattr(cv_extraction.shutil, "which", lambda name: None)
    text = _extractor(scanner_enabled=True).extract(docx_bytes("Accountant"))
    assert text == "Accountant"


def test_positive_scan_blocks_text_and_cleans_up(monkeypatch, docx_bytes) -> None:
    scanned: list[Path] = []

    def fake_run(args, **kwargs):
        path = Path(args[-1])
        assert path.exists()
        scanned.append(path)
        return SimpleNamespace(returncode=1, stdout=f"{path}: Eicar-Signature FOUND", stderr="")

    monkeypatch.setattr(cv_extraction.shutil, "which", lambda name: "/usr/bin/clamscan")
    monkeypatch.setattr(cv_extraction.subprocess, "run", fake_run)

    with pytest.raises(MalwareDetected):
        _extractor(scanner_enabled=True).extract(docx_bytes("Totally a CV"))

    assert len(scanned) == 1
    assert not scanned[0].exists()


def test_scanner_error_does_not_block(monkeypatch, docx_bytes) -> None:
    monkeypatch.setattr(cv_extraction.shutil, "which", lambda name: "/usr/bin/clamscan")
    monkeypatch.setattr(
        cv_extraction.subprocess,
        "run",
        lambda args, **kwargs: SimpleNamespace(returncode=2, stdout="", stderr="database missing"),
    )
    assert _extractor(scanner_enabled=True).extract(docx_bytes("Nurse")) == "Nurse"


def test_temporary_file_removed_when_extraction_fails(monkeypatch, docx_bytes) -> None:
    seen: list[Path] = []

    def capture(self, path):
        seen.append(path)

    def broken(content):
        raise RuntimeError("parser crashed")

    monkeypatch.setattr(VirusScanner, "scan", capture)
    monkeypatch.setattr(cv_extraction, "extract_docx_text", broken)

    with pytest.raises(RuntimeError):
        _extractor().extract(docx_bytes("x"))
    assert seen and not seen[0].exists()
