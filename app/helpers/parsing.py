import io
import os
import re
import zipfile
from typing import Dict, List, Tuple

from pdfminer.high_level import extract_text as pdf_extract
from docx import Document

from app.utils.config import MAX_UPLOAD_BYTES
from app.utils.exceptions import ValidationError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def get_file_type(filename: str) -> Dict[str, object]:
    ext = os.path.splitext(filename)[1].lower()
    return {
        "extension": ext,
        "mime_type": MIME_TYPES.get(ext, "application/octet-stream"),
        "is_supported": ext in MIME_TYPES,
    }


def read_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


def read_docx(data: bytes) -> str:
    try:
        doc = Document(io.BytesIO(data))
    except Exception as e:
        raise ValidationError(f"Failed to parse DOCX: {e}", cause=e) from e
    return "\n".join([p.text for p in doc.paragraphs])


def read_pdf(data: bytes) -> str:
    try:
        return pdf_extract(io.BytesIO(data))
    except Exception as e:
        raise ValidationError(f"Failed to parse PDF: {e}", cause=e) from e


def extract_text(filename: str, data: bytes) -> str:
    """Text of an uploaded file; .doc and unknown text types are decoded as UTF-8."""
    ext = get_file_type(filename)["extension"]
    if ext == ".pdf":
        return read_pdf(data)
    if ext == ".docx":
        return read_docx(data)
    return read_txt(data)


def clean_text(x: str) -> str:
    x = re.sub(r'\s+', ' ', x).strip()
    return x


def extract_zip(data: bytes, max_entry_bytes: int = MAX_UPLOAD_BYTES) -> List[Tuple[str, bytes]]:
    """
    (basename, content) of every supported file in a ZIP archive.

    Directories and unsupported entries are skipped without being
    decompressed. An entry larger than `max_entry_bytes`, by its declared
    size or by what it actually inflates to, rejects the whole archive.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ValidationError(f"Failed to extract ZIP file: {e}", cause=e) from e

    out = []
    with archive:
        for info in archive.infolist():
            name = os.path.basename(info.filename)
            if info.is_dir() or not get_file_type(name)["is_supported"]:
                continue
            if info.file_size > max_entry_bytes:
                raise ValidationError(f"{name} exceeds the upload size limit",
                                      details={"size": info.file_size, "limit": max_entry_bytes})
            try:
                with archive.open(info) as entry:
                    content = entry.read(max_entry_bytes + 1)
            except (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError) as e:
                raise ValidationError(f"Failed to extract {name} from ZIP file: {e}", cause=e) from e
            if len(content) > max_entry_bytes:
                raise ValidationError(f"{name} exceeds the upload size limit",
                                      details={"limit": max_entry_bytes})
            out.append((name, content))
    logger.debug(f"Extracted {len(out)} files from ZIP archive")
    return out
