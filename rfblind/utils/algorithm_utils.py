from typing import Optional

from rfblind.algorithms.notify import Notify, NotifyCeleryTask, NotifyPrint
from rfblind.algorithms.rf_blind import rf_blind
from rfblind.config import cnf
from rfblind.utils.helpers import read_abundance_csv, treatment_mask, unique_treatments

TAG = cnf.treatment_row_name


def rf_blind_wrapper(
    *,
    csv_path,
    positive_class: str,
    train_id,
    mtry: Optional[int] = None,
    n_tree: int = cnf.default_n_tree,
    n_forest: int = cnf.default_n_forest,
    seed: Optional[int] = None,
    parent=None,
    notify: Optional[Notify] = None,
) -> dict:
    """
    Read an abundance CSV, label samples against `positive_class` and run
    the blind cross validation. Progress goes to the Celery `parent` task
    when one is given.
    """
    if notify is None:
        notify = NotifyCeleryTask(parent) if parent else NotifyPrint()

    try:
        notify.info("Reading CSV file...")
        tab, labels = read_abundance_csv(csv_path, treatment_row=TAG)
        if labels is None:
            raise ValueError(f"CSV file must contain a '{TAG}' row")

        notify.info("Preparing data...")
        treat = treatment_mask(labels, positive_class)

        report = rf_blind(
            tab,
            treat,
            train_id,
            mtry=mtry,
            n_tree=n_tree,
            n_forest=n_forest,
            seed=seed,
            notify=notify,
        )
    except Exception as e:
        notify.error(str(e))
        raise

    return {
        "report": report,
        "positive_class": positive_class,
        "all_treatments": unique_treatments(labels),
        "n_samples": tab.shape[1],
        "n_features": tab.shape[0],
        "train_samples": [str(s) for s in tab.columns[report.split.train]],
        "test_samples": [str(s) for s in tab.columns[report.split.test]],
    }
