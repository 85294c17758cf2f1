import re
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype
from sklearn.ensemble import RandomForestClassifier
from sklearn.metrics import confusion_matrix

from rfblind.algorithms.notify import Notify, NotifyPrint
from rfblind.utils.json_utils import serialize_for_json

POSITIVE = "positive"
NEGATIVE = "negative"

# Column order of the run table and of the summary
METRICS = ["TN", "TP", "FN", "FP", "error", "sensitivity", "precision"]
SUMMARY_ROWS = ["mean", "sd"]


@dataclass(frozen=True)
class Split:
    train: np.ndarray
    test: np.ndarray


@dataclass(frozen=True)
class PatternSelector:
    """Training samples are those whose name matches a regular expression."""

    pattern: str

    def match(self, sample_names) -> np.ndarray:
        regex = re.compile(self.pattern)
        return np.array(
            [i for i, name in enumerate(sample_names) if regex.search(str(name))],
            dtype=int,
        )


@dataclass(frozen=True)
class MaskSelector:
    """Training samples are flagged True, one flag per sample."""

    mask: tuple

    def match(self, sample_names) -> np.ndarray:
        mask = np.asarray(self.mask, dtype=bool)
        if len(mask) != len(sample_names):
            raise ValueError(
                f"train_id mask has {len(mask)} entries for {len(sample_names)} samples"
            )
        return np.flatnonzero(mask)


@dataclass(frozen=True)
class NamesSelector:
    """Training samples are listed by name."""

    names: tuple

    def match(self, sample_names) -> np.ndarray:
        wanted = {str(name) for name in self.names}
        return np.array(
            [i for i, name in enumerate(sample_names) if str(name) in wanted],
            dtype=int,
        )


TrainSelector = Union[PatternSelector, MaskSelector, NamesSelector]


def as_train_selector(train_id) -> TrainSelector:
    """
    Turn a raw train_id into a selector:
      - str                      -> PatternSelector
      - boolean vector           -> MaskSelector
      - any other 1D vector      -> NamesSelector
    Selectors are returned unchanged.
    """
    if isinstance(train_id, (PatternSelector, MaskSelector, NamesSelector)):
        return train_id
    if isinstance(train_id, str):
        return PatternSelector(train_id)

    values = np.asarray(train_id)
    if values.ndim != 1:
        raise ValueError(
            "train_id must be a pattern, a boolean vector or a list of sample names"
        )
    if is_bool_dtype(values.dtype):
        return MaskSelector(tuple(bool(v) for v in values))
    return NamesSelector(tuple(str(v) for v in values))


def resolve_split(
    sample_names, selector: TrainSelector, notify: Notify = NotifyPrint()
) -> Split:
    train = selector.match(sample_names)

    if len(train) == 0:
        raise ValueError("train_id does not match sample names")
    if len(train) == 1:
        notify.warning("The training dataset only contains 1 sample")

    test = np.setdiff1d(np.arange(len(sample_names)), train)
    if len(test) == 0:
        raise ValueError("train_id selects every sample, no sample left for testing")

    return Split(train=train, test=test)


def _ratio(num: int, den: int) -> float:
    return num / den if den else np.nan


def run_metrics(predicted, truth) -> dict:
    """Confusion counts and derived rates with "positive" as reference class."""
    predicted = np.asarray(predicted)
    truth = np.asarray(truth)

    tn, fp, fn, tp = confusion_matrix(
        truth, predicted, labels=[NEGATIVE, POSITIVE]
    ).ravel()
    tn, fp, fn, tp = int(tn), int(fp), int(fn), int(tp)

    return {
        "TN": tn,
        "TP": tp,
        "FN": fn,
        "FP": fp,
        "error": _ratio(int(np.sum(predicted != truth)), len(truth)),
        "sensitivity": _ratio(tp, tp + fn),
        "precision": _ratio(tp, tp + fp),
    }


def summarize_runs(confusion: pd.DataFrame) -> pd.DataFrame:
    # undefined rates propagate to the summary instead of being skipped
    return pd.DataFrame(
        [confusion.mean(skipna=False), confusion.std(ddof=1, skipna=False)],
        index=SUMMARY_ROWS,
    )


@dataclass
class BlindReport:
    summary: pd.DataFrame
    confusion: pd.DataFrame
    importance: List[pd.Series]
    split: Split

    def importance_table(self) -> pd.DataFrame:
        """Features in rows, one column per grown forest."""
        return pd.concat(self.importance, axis=1)

    def mean_importance(self) -> pd.DataFrame:
        table = self.importance_table()
        df = pd.DataFrame(
            {
                "Feature": table.index,
                "Importance": table.mean(axis=1).to_numpy(),
                "SD": table.std(axis=1, ddof=1).to_numpy(),
            }
        )
        return df.sort_values("Importance", ascending=False, kind="stable").reset_index(
            drop=True
        )

    def to_dict(self) -> dict:
        return serialize_for_json(
            {
                "summary": self.summary.to_dict(orient="index"),
                "confusion": self.confusion.to_dict(orient="records"),
                "importance": [s.to_dict() for s in self.importance],
                "train": self.split.train,
                "test": self.split.test,
            }
        )


def _check_treatment(treat) -> np.ndarray:
    values = np.asarray(treat)
    if not is_bool_dtype(values.dtype):
        raise ValueError("treat is not a boolean vector")
    return values


def _check_treatment_length(values: np.ndarray, n_samples: int) -> None:
    if values.ndim != 1 or len(values) != n_samples:
        raise ValueError(
            f"treat has {values.size} entries but the table has {n_samples} samples"
        )


def _check_table(tab: pd.DataFrame) -> None:
    if not isinstance(tab, pd.DataFrame):
        raise ValueError("tab must be a pandas DataFrame (features x samples).")
    if tab.empty:
        raise ValueError("tab contains no data")
    nonnum = [c for c in tab.columns if not is_numeric_dtype(tab[c])]
    if nonnum:
        raise ValueError(
            f"Non-numeric sample columns found: {nonnum}. Encode/convert them first."
        )


def _check_positive(name: str, value, allow_none: bool = False) -> None:
    if value is None and allow_none:
        return
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


def rf_blind(
    tab: pd.DataFrame,
    treat,
    train_id,
    mtry: Optional[int] = None,
    n_tree: int = 500,
    n_forest: int = 10,
    seed: Optional[int] = None,
    *,
    n_jobs: int = -1,
    notify: Notify = NotifyPrint(),
) -> BlindReport:
    """
    Non-random cross validation for random forest.

    Forests are trained on a fixed part of the samples (selected by train_id)
    and evaluated on the remaining samples, n_forest times.

    Assumes:
      - tab has features in rows and samples in columns, numeric values,
      - treat holds one boolean per sample (column order); True is the
        "positive" reference class for sensitivity and precision.

    train_id can be a regular expression searched in sample names, a boolean
    vector (True for training samples) or a list of training sample names.
    mtry is the number of features tried at each split (None: sqrt of the
    number of features). seed is only used when n_forest == 1.

    Returns:
      BlindReport with
        - summary: mean and sd of TN, TP, FN, FP, error, sensitivity, precision,
        - confusion: one row of those metrics per forest,
        - importance: one Gini importance Series per forest.
    """
    treat = _check_treatment(treat)
    _check_table(tab)
    _check_treatment_length(treat, tab.shape[1])
    _check_positive("n_tree", n_tree)
    _check_positive("n_forest", n_forest)
    _check_positive("mtry", mtry, allow_none=True)

    labels = np.where(treat, POSITIVE, NEGATIVE)
    split = resolve_split(tab.columns, as_train_selector(train_id), notify=notify)

    X = tab.T.to_numpy(dtype=float)
    X_train, y_train = X[split.train], labels[split.train]
    X_test, y_test = X[split.test], labels[split.test]

    rows = []
    importance = []
    notify.info(f"Growing {n_forest} forests...")
    for i in range(n_forest):
        rf = RandomForestClassifier(
            n_estimators=n_tree,
            max_features="sqrt" if mtry is None else mtry,
            random_state=seed if n_forest == 1 else None,
            n_jobs=n_jobs,
        )
        rf.fit(X_train, y_train)
        predicted = rf.predict(X_test)

        rows.append(run_metrics(predicted, y_test))
        importance.append(
            pd.Series(rf.feature_importances_, index=tab.index, name=f"forest_{i + 1}")
        )
        notify.progress(i + 1, n_forest)

    confusion = pd.DataFrame(rows, columns=METRICS)
    notify.info("Done!")

    return BlindReport(
        summary=summarize_runs(confusion),
        confusion=confusion,
        importance=importance,
        split=split,
    )
