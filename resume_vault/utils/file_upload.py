"""
File Upload Utility - helpers for multipart resume uploads.

Size, emptiness and signature checks live in the ingestion pipeline; this
module only reads the upload and shapes filenames and CSV form fields.
"""

import os
import re
import time
from typing import List, Optional

from fastapi import UploadFile

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(filename: str) -> str:
    """Replace everything except alphanumerics, '.', '_' and '-' with '_'."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def filename_stem(filename: Optional[str]) -> str:
    """Filename without its extension, or a timestamped placeholder."""
    if not filename:
        return f"Resume_{int(time.time() * 1000)}"
    stem, _ext = os.path.splitext(os.path.basename(filename))
    return stem or filename


def split_csv(value: Optional[str]) -> Optional[List[str]]:
    """
    Split a comma-separated form field.
    Returns None when the field was not supplied, so callers can tell
    "not given" from "given but empty".
    """
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


async def read_upload(file: Optional[UploadFile], limit: int) -> Optional[bytes]:
    """
    Read an uploaded file into memory.
    Reads at most limit + 1 bytes so oversized uploads are detectable
    without buffering all of them.
    """
    if file is None:
        return None
    try:
        return await file.read(limit + 1)
    finally:
        await file.close()
