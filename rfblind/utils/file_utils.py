"""
CSV utility functions for upload handling.
"""

import hashlib
from pathlib import Path

import aiofiles
from fastapi import HTTPException, UploadFile

from rfblind.config import cnf


def calculate_file_sha1(file_path: Path) -> str:
    """Calculate SHA1 hash of a single file."""
    sha1 = hashlib.sha1()
    with open(file_path, "rb") as f:
        while chunk := f.read(8192):
            sha1.update(chunk)
    return sha1.hexdigest()


def validate_csv_file(file: UploadFile) -> bool:
    """Validate that the file is a CSV."""
    if not file.filename:
        return False

    extension = Path(file.filename).suffix.lower()
    return extension in cnf.rf_allowed_extensions


async def save_csv_file(file: UploadFile, temp_dir: Path) -> Path:
    """Save uploaded CSV file to temporary directory."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    file_path = temp_dir / Path(file.filename).name

    async with aiofiles.open(file_path, "wb") as f:
        content = await file.read()
        await f.write(content)

    return file_path
