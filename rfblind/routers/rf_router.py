# Blind Random Forest Router
# Handles uploading abundance tables, growing forests, and managing results
import shutil
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi import Path as PathParam
from fastapi.responses import FileResponse

from rfblind.celery_tasks.rf_tasks import run_rf_blind
from rfblind.config import cnf
from rfblind.schemas import (
    SHA1_PATTERN,
    CSVUploadResponse,
    RFBlindRequest,
    RFBlindResponse,
    TaskStatus,
    TreatmentValuesResponse,
)
from rfblind.services.get_task_status import get_celery_task_status
from rfblind.services.upload_abundance_csv import UploadAbundanceCSVService
from rfblind.utils.helpers import read_abundance_csv, unique_treatments

router = APIRouter(prefix=cnf.prefix_rf, tags=["Blind Random Forest"])

upload_service = UploadAbundanceCSVService(cnf.rf_workdir)

OUT = cnf.rf_outdir_name

MEDIA_TYPES = {".csv": "text/csv", ".json": "application/json", ".png": "image/png"}

# rejects "..", separators and anything else that is not a stored upload
Sha1Path = Annotated[str, PathParam(pattern=SHA1_PATTERN)]


def _uploaded_csv(sha1_hash: str) -> Path:
    csv_file = cnf.rf_workdir / sha1_hash / cnf.upload_filename
    if not csv_file.exists():
        raise HTTPException(status_code=404, detail="File not found")
    return csv_file


@router.post("/upload", response_model=CSVUploadResponse)
async def upload_csv_file(
    file: UploadFile = File(
        ..., description="Upload an abundance CSV with a Treatment row"
    ),
    id: str = Form(None),  # Optional SHA1 hash from frontend
):
    return await upload_service.handle_upload(file, id)


@router.get("/exists/{sha1_hash}")
async def check_file_exists(sha1_hash: Sha1Path):
    """Check if a file with the given SHA1 hash exists."""
    storage_dir = cnf.rf_workdir / sha1_hash
    exists = storage_dir.exists() and any(storage_dir.iterdir())
    return {"sha1_hash": sha1_hash, "exists": exists}


@router.get("/treatments/{sha1_hash}", response_model=TreatmentValuesResponse)
async def get_treatment_values(sha1_hash: Sha1Path):
    """Get the treatments and sample names of an uploaded abundance table."""
    csv_file = _uploaded_csv(sha1_hash)

    try:
        tab, labels = read_abundance_csv(csv_file, treatment_row=cnf.treatment_row_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if labels is None:
        raise HTTPException(
            status_code=400,
            detail=f"CSV file must contain a '{cnf.treatment_row_name}' row",
        )

    unique_values = unique_treatments(labels)
    return TreatmentValuesResponse(
        sha1_hash=sha1_hash,
        filename=csv_file.name,
        unique_values=unique_values,
        sample_names=[str(s) for s in tab.columns],
        total_features=tab.shape[0],
        total_samples=tab.shape[1],
        message=f"Found {len(unique_values)} unique treatments",
    )


@router.post("/run", response_model=RFBlindResponse)
async def run_blind_forest(request: RFBlindRequest):
    """
    Grow random forests on the training samples and evaluate them on the rest.
    """
    csv_file = _uploaded_csv(request.sha1_hash)
    storage_dir = csv_file.parent

    try:
        task = run_rf_blind.delay(
            file_path=str(csv_file),
            sha1_hash=request.sha1_hash,
            storage_dir=str(storage_dir),
            positive_class=request.positive_class,
            train_id=request.train_id.model_dump(),
            mtry=request.mtry,
            n_tree=request.n_tree,
            n_forest=request.n_forest,
            seed=request.seed,
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error starting task: {str(e)}")

    return RFBlindResponse(
        task_id=task.id,
        sha1_hash=request.sha1_hash,
        positive_class=request.positive_class,
        message=f"Growing {request.n_forest} forests with '{request.positive_class}' as positive class",
    )


@router.get("/status/{task_id}", response_model=TaskStatus)
async def get_task_status(task_id: str):
    """Get the status of a blind cross validation task."""
    return get_celery_task_status(task_id)


@router.get("/results/{sha1_hash}")
async def list_results(sha1_hash: Sha1Path):
    """List all result files for a given SHA1 hash."""
    storage_dir = cnf.rf_workdir / sha1_hash / OUT

    if not storage_dir.exists():
        raise HTTPException(status_code=404, detail="Directory not found")

    results = []
    for result_file in sorted(storage_dir.iterdir()):
        if result_file.suffix.lower() not in MEDIA_TYPES:
            continue
        results.append(
            {
                "filename": result_file.name,
                "file_size": result_file.stat().st_size,
                "created_time": result_file.stat().st_ctime,
                "download_url": f"{cnf.prefix_rf}/download/{sha1_hash}/{result_file.name}",
            }
        )

    return {"sha1_hash": sha1_hash, "result_count": len(results), "results": results}


@router.get("/download/{sha1_hash}/{filename}")
async def download_result_file(sha1_hash: Sha1Path, filename: str):
    """Download a result file."""
    file_path = cnf.rf_workdir / sha1_hash / OUT / Path(filename).name

    if not file_path.exists():
        raise HTTPException(status_code=404, detail="File not found")

    media_type = MEDIA_TYPES.get(file_path.suffix.lower(), "application/octet-stream")
    return FileResponse(
        path=str(file_path), filename=file_path.name, media_type=media_type
    )


@router.delete("/remove/{sha1_hash}")
async def remove_file(sha1_hash: Sha1Path):
    """Remove an uploaded table and all its results by SHA1 hash."""
    storage_dir = cnf.rf_workdir / sha1_hash

    if not storage_dir.exists():
        raise HTTPException(status_code=404, detail="File not found")

    try:
        shutil.rmtree(storage_dir)
        return {"message": f"File with SHA1 hash {sha1_hash} removed successfully"}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error removing file: {str(e)}")
