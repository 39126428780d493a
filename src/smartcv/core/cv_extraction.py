from __future__ import annotations

import io
import logging
import re
import shutil
import subprocess
import tempfile
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from docx import Document
from pypdf import PdfReader

from smartcv.config import Settings
from smartcv.errors import EmptyUpload, FileTooLarge, MalwareDetected, NoTextExtracted, UnsupportedFileType

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
SUPPORTED_TYPES = {PDF_MIME: "pdf", DOCX_MIME: "docx"}

_SIGNATURES: list[tuple[bytes, str]] = [
    (b"%PDF-", PDF_MIME),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF8", "image/gif"),
    (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", "application/msword"),
    (b"{\\rtf", "application/rtf"),
]
_WHITESPACE = re.compile(r"\s+")
_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9]+")


def sniff_mime(content: bytes) -> str:
    for magic, mime in _SIGNATURES:
        if content.startswith(magic):
            return mime

    if content.startswith(b"PK\x03\x04"):
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as archive:
                if "word/document.xml" in archive.namelist():
                    return DOCX_MIME
        except zipfile.BadZipFile:
            pass
        return "application/zip"

    try:
        content[:4096].decode("utf-8")
    except UnicodeDecodeError:
        return "application/octet-stream"
    return "text/plain"


def normalize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def extract_pdf_text(content: bytes) -> str:
    reader = PdfReader(io.BytesIO(content))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def extract_docx_text(content: bytes) -> str:
    document = Document(io.BytesIO(content))
    parts = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells)
    return "\n".join(parts)


class VirusScanner:
    """Best-effort ClamAV scan. A missing or broken scanner never blocks an upload."""

    def __init__(self, *, enabled: bool, binary: str, timeout_sec: int):
        self.enabled = enabled
        self.binary = binary
        self.timeout_sec = timeout_sec

    def scan(self, path: Path) -> None:
        if not self.enabled:
            return

        executable = shutil.which(self.binary)
        if executable is None:
            logger.warning("Antivirus scanner '%s' not found; skipping scan", self.binary)
            return

        try:
            result = subprocess.run(
                [executable, "--no-summary", str(path)],
                capture_output=True,
                text=True,
                timeout=self.timeout_sec,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning("Antivirus scan could not run for %s: %s", path.name, exc)
            return

        # clamscan: 0 clean, 1 infected, 2 error
        if result.returncode == 1:
            raise MalwareDetected(result.stdout.strip() or "infected")
        if result.returncode != 0:
            logger.warning(
                "Antivirus scan error code=%s file=%s stderr=%s",
                result.returncode,
                path.name,
                result.stderr.strip(),
            )


class CVExtractor:
    def __init__(self, *, max_bytes: int, scanner: VirusScanner):
        self.max_bytes = max_bytes
        self.scanner = scanner

    @classmethod
    def from_settings(cls, settings: Settings) -> CVExtractor:
        return cls(
            max_bytes=settings.max_cv_bytes,
            scanner=VirusScanner(
                enabled=settings.antivirus_enabled,
                binary=settings.clamscan_path,
                timeout_sec=settings.clamscan_timeout_sec,
            ),
        )

    def extract(self, content: bytes, *, identifier: str = "") -> str:
        if not content:
            raise EmptyUpload("upload is empty")
        if len(content) > self.max_bytes:
            raise FileTooLarge(len(content), self.max_bytes)

        mime = sniff_mime(content)
        extension = SUPPORTED_TYPES.get(mime)
        if extension is None:
            raise UnsupportedFileType(mime)

        with temporary_upload(content, identifier=identifier, suffix=f".{extension}") as path:
            self.scanner.scan(path)
            raw = extract_pdf_text(content) if mime == PDF_MIME else extract_docx_text(content)

        text = normalize_text(raw)
        if not text:
            raise NoTextExtracted(f"no text found in {extension} upload")

        logger.info("Extracted CV text identifier=%s type=%s chars=%s", identifier, extension, len(text))
        return text


@contextmanager
def temporary_upload(content: bytes, *, identifier: str, suffix: str) -> Iterator[Path]:
    prefix = f"cv_{_UNSAFE_NAME.sub('', identifier)[:32]}_"
    handle = tempfile.NamedTemporaryFile(prefix=prefix, suffix=suffix, delete=False)
    path = Path(handle.name)
    try:
        with handle:
            handle.write(content)
        yield path
    finally:
        path.unlink(missing_ok=True)
