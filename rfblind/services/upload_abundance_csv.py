from __future__ import annotations

import contextlib
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile

from rfblind.config import cnf
from rfblind.schemas import CSVUploadResponse
from rfblind.utils import file_utils as csvu
from rfblind.utils.helpers import read_abundance_csv, unique_treatments


class UploadAbundanceCSVService:
    def __init__(self, workdir: Path):
        self.workdir = Path(workdir)

    @contextlib.contextmanager
    def _tempdir(self):
        td = tempfile.TemporaryDirectory()
        try:
            yield Path(td.name)
        finally:
            td.cleanup()

    def _ensure_file_present_and_extension(self, file: UploadFile) -> None:
        if not file:
            raise HTTPException(status_code=400, detail="No file provided")
        if not csvu.validate_csv_file(file):
            suffix = Path(file.filename).suffix if file.filename else "unknown"
            raise HTTPException(
                status_code=400,
                detail=f"Only CSV files are allowed. Got: {suffix}",
            )

    def _verify_or_compute_sha1(
        self, temp_file_path: Path, provided_id: Optional[str]
    ) -> str:
        calculated_hash = csvu.calculate_file_sha1(temp_file_path)
        if provided_id and provided_id != calculated_hash:
            raise HTTPException(
                status_code=400,
                detail=f"Provided id does not match calculated hash. Expected: {calculated_hash}, Got: {provided_id}",
            )
        return provided_id or calculated_hash

    def _already_uploaded(self, storage_dir: Path) -> bool:
        return storage_dir.exists() and any(storage_dir.iterdir())

    def _validate_treatment_row(self, temp_file_path: Path) -> None:
        try:
            _, labels = read_abundance_csv(
                temp_file_path, treatment_row=cnf.treatment_row_name
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid CSV file: {str(e)}")

        if labels is None:
            raise HTTPException(
                status_code=400,
                detail=f"CSV validation failed: first row must start with '{cnf.treatment_row_name}'. "
                "Expected structure: features in rows, samples in columns, first row holds the treatment of each sample.",
            )
        if len(unique_treatments(labels)) < 2:
            raise HTTPException(
                status_code=400,
                detail=f"The '{cnf.treatment_row_name}' row must contain at least two treatments",
            )

    async def handle_upload(
        self, file: UploadFile, provided_id: Optional[str]
    ) -> CSVUploadResponse:
        self._ensure_file_present_and_extension(file)

        with self._tempdir() as temp_dir:
            temp_file_path = await csvu.save_csv_file(file, temp_dir)

            sha1_hash = self._verify_or_compute_sha1(temp_file_path, provided_id)
            storage_dir = self.workdir / sha1_hash
            file_size = temp_file_path.stat().st_size

            if self._already_uploaded(storage_dir):
                return CSVUploadResponse(
                    sha1_hash=sha1_hash,
                    message="File with this SHA1 hash already exists",
                    filename=file.filename,
                    file_size=file_size,
                )

            # Validate schema before persisting
            self._validate_treatment_row(temp_file_path)

            storage_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(temp_file_path, storage_dir / cnf.upload_filename)

            return CSVUploadResponse(
                sha1_hash=sha1_hash,
                message="CSV file uploaded successfully",
                filename=file.filename,
                file_size=file_size,
            )
