import json
import time
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt

from rfblind.config import cnf
from rfblind.plots.importance import importance_plot
from rfblind.schemas import train_id_adapter
from rfblind.utils.algorithm_utils import rf_blind_wrapper
from rfblind.utils.json_utils import serialize_for_json

from .celery import app

OUT = cnf.rf_outdir_name


def notify_progress(task, status: str, progress: int):
    """Helper to update Celery task state."""
    task.update_state(state="PROCESSING", meta={"status": status, "progress": progress})


@app.task(bind=True)
def run_rf_blind(
    self,
    file_path: str,
    sha1_hash: str,
    storage_dir: str,
    positive_class: str,
    train_id: dict,
    mtry: Optional[int] = None,
    n_tree: int = cnf.default_n_tree,
    n_forest: int = cnf.default_n_forest,
    seed: Optional[int] = None,
):
    """
    Grow n_forest random forests on the fixed training samples and save
    summary, confusion, importance tables and plot under <storage_dir>/rfout.
    """
    try:
        selector = train_id_adapter.validate_python(train_id).to_selector()

        results = rf_blind_wrapper(
            csv_path=file_path,
            positive_class=positive_class,
            train_id=selector,
            mtry=mtry,
            n_tree=n_tree,
            n_forest=n_forest,
            seed=seed,
            parent=self,
        )
        report = results["report"]
        notify_progress(self, "Saving results", 90)

        paths = generate_output_paths(storage_dir, positive_class)
        report.summary.to_csv(paths["summary"], index_label="stat")
        report.confusion.to_csv(paths["confusion"], index_label="forest")
        report.importance_table().to_csv(paths["importance"], index_label="Feature")

        fig = importance_plot(report, title=f"{positive_class} vs rest")
        fig.savefig(paths["plot"], dpi=300, bbox_inches="tight")
        plt.close(fig)

        final_results = {
            "sha1_hash": sha1_hash,
            "positive_class": positive_class,
            "all_treatments": results["all_treatments"],
            "train_id": train_id,
            "mtry": mtry,
            "n_tree": n_tree,
            "n_forest": n_forest,
            "seed": seed,
            "total_samples": results["n_samples"],
            "total_features": results["n_features"],
            "train_samples": results["train_samples"],
            "test_samples": results["test_samples"],
            "summary": report.to_dict()["summary"],
            "output_files": {key: Path(p).name for key, p in paths.items()},
            "processing_time": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime()),
        }

        notify_success(self)

        write_json(paths["json"], final_results)
        return serialize_for_json(final_results)

    except Exception as exc:
        notify_failure(self, positive_class, str(exc), type(exc).__name__)
        raise


def notify_failure(self, positive_class, error_msg, exc_type):
    self.update_state(
        state="FAILURE",
        meta={
            "status": f"Error growing forests: {error_msg}",
            "error": error_msg,
            "exc_type": exc_type,
            "exc_message": error_msg,
            "positive_class": positive_class,
        },
    )


def notify_success(self):
    self.update_state(
        state="SUCCESS", meta={"status": "Cross validation completed", "progress": 100}
    )


def write_json(json_path, final_results):
    with open(json_path, "w") as f:
        json.dump(serialize_for_json(final_results), f, indent=2, default=str)


def generate_output_paths(storage_dir, positive_class) -> dict:
    save_path = Path(storage_dir) / OUT
    save_path.mkdir(parents=True, exist_ok=True)

    stem = f"rf_blind_{positive_class}"
    return {
        "summary": save_path / f"{stem}_summary.csv",
        "confusion": save_path / f"{stem}_confusion.csv",
        "importance": save_path / f"{stem}_importance.csv",
        "plot": save_path / f"{stem}_importance.png",
        "json": save_path / f"{stem}_{cnf.metadata_file}",
    }
