import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass(frozen=True)
class Config:
    broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    backend_url: str = os.getenv("CELERY_BACKEND_URL", broker_url)
    treatment_row_name: str = os.getenv("TREATMENT_ROW_NAME", "Treatment")

    workdir: Path = Path(os.getenv("DATA_FOLDER", "workdir"))

    rf: str = os.getenv("PREFIX_RF", "rf")
    prefix_rf = f"/{rf}"

    rf_workdir: Path = workdir / rf  # Blind cross validation uploads
    # subdirectory under the sha1_hash directory
    # e.g. workdir/rf/<sha1_hash>/rfout
    rf_outdir_name: str = os.getenv("RF_OUT_DIR", "rfout")
    upload_filename: str = "abundance.csv"

    rf_allowed_extensions = {".csv"}

    default_n_tree: int = int(os.getenv("DEFAULT_N_TREE", "500"))
    default_n_forest: int = int(os.getenv("DEFAULT_N_FOREST", "10"))

    metadata_file: str = os.getenv("METADATA_FILE", "results.json")

    def create_directories(self):
        self.workdir.mkdir(parents=True, exist_ok=True)
        self.rf_workdir.mkdir(parents=True, exist_ok=True)


cnf = Config()
cnf.create_directories()
