from __future__ import annotations

import logging
from io import BytesIO
from zipfile import BadZipFile, ZipFile

import defusedxml.ElementTree as ET

from contract_health.core.errors import UnsupportedDocumentError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"pdf", "docx"}
# Formats whose text is extracted locally instead of being sent to the
# analysis service as a file; records built from them carry no file_id.
LOCAL_TEXT_EXTENSIONS = {"docx"}

PDF_MAGIC = b"%PDF-"
ZIP_MAGICS = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")


def extension_of(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _is_zip_payload(content: bytes) -> bool:
    return any(content.startswith(prefix) for prefix in ZIP_MAGICS)


def _zip_has_paths(content: bytes, prefixes: tuple[str, ...]) -> bool:
    try:
        with ZipFile(BytesIO(content)) as archive:
            names = archive.namelist()
        return any(any(name.startswith(prefix) for prefix in prefixes) for name in names)
    except (BadZipFile, OSError):
        return False


def validate_upload(*, filename: str, content: bytes) -> str:
    """Check extension and magic bytes; return the normalized extension."""
    ext = extension_of(filename)
    if ext == "doc":
        raise UnsupportedDocumentError("Legacy .doc is not supported. Convert to .docx.")
    if ext not in ALLOWED_EXTENSIONS:
        raise UnsupportedDocumentError(
            f"Unsupported file type '.{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}."
        )
    if not content:
        raise UnsupportedDocumentError("Uploaded file is empty.")

    if ext == "pdf" and not content.startswith(PDF_MAGIC):
        raise UnsupportedDocumentError("File signature does not match .pdf content.")
    if ext == "docx" and (not _is_zip_payload(content) or not _zip_has_paths(content, ("word/",))):
        raise UnsupportedDocumentError("File signature does not match .docx content.")
    return ext


def _extract_docx_text_fallback(content: bytes) -> str:
    with ZipFile(BytesIO(content)) as archive:
        raw = archive.read("word/document.xml")
    root = ET.fromstring(raw)
    paragraphs: list[str] = []
    for paragraph in root.iter():
        if not paragraph.tag.endswith("}p"):
            continue
        texts: list[str] = []
        for node in paragraph.iter():
            if node.tag.endswith("}t") and node.text:
                value = node.text.strip()
                if value:
                    texts.append(value)
        if texts:
            paragraphs.append(" ".join(texts))
    return "\n".join(paragraphs)


def extract_docx_text(content: bytes) -> str:
    try:
        from docx import Document

        document = Document(BytesIO(content))
        parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))
        text = "\n".join(parts)
    except Exception as exc:  # noqa: BLE001
        logger.info("docx_parser_fallback reason=%s", exc)
        try:
            text = _extract_docx_text_fallback(content)
        except Exception as fallback_exc:  # noqa: BLE001
            raise UnsupportedDocumentError("Unable to extract text from this .docx file.") from fallback_exc

    if not text.strip():
        raise UnsupportedDocumentError("No extractable text found in this .docx file.")
    return text
