from typing import Optional, Tuple

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype

from rfblind.config import cnf

TAG_ROW = cnf.treatment_row_name  # default treatment row label


def _read_csv(csv_path, **kwargs) -> pd.DataFrame:
    for encoding in ("utf-8", "latin-1"):
        try:
            return pd.read_csv(csv_path, encoding=encoding, **kwargs)
        except UnicodeDecodeError:
            continue
        except pd.errors.EmptyDataError:
            raise ValueError("CSV file is empty or has no valid data")
        except Exception as e:
            raise ValueError(f"Could not read CSV file: {str(e)}")


def read_abundance_csv(
    csv_path,
    treatment_row: Optional[str] = TAG_ROW,
    *,
    sep: str = ",",
    decimal: str = ".",
) -> Tuple[pd.DataFrame, Optional[pd.Series]]:
    """
    Reads an abundance table: features (OTUs/ASVs) in rows, samples in columns,
    feature ids in the first column.

    If the first data row is labelled `treatment_row` it holds the class of
    each sample and is returned separately.

    Returns:
      tab: numeric pd.DataFrame (features x samples)
      labels: pd.Series of class labels indexed by sample, or None
    """
    first = _read_csv(csv_path, sep=sep, decimal=decimal, index_col=0, nrows=1)
    has_treatment = (
        treatment_row is not None
        and len(first) > 0
        and str(first.index[0]) == treatment_row
    )

    tab = _read_csv(
        csv_path,
        sep=sep,
        decimal=decimal,
        index_col=0,
        skiprows=[1] if has_treatment else None,
    )
    if tab.empty:
        raise ValueError("CSV file contains no data rows")

    nonnum = [c for c in tab.columns if not is_numeric_dtype(tab[c])]
    if nonnum:
        raise ValueError(
            f"Non-numeric values found in samples: {nonnum}. "
            f"Only the '{treatment_row}' row may hold text."
        )
    missing = tab.columns[tab.isna().any(axis=0)].tolist()
    if missing:
        raise ValueError(f"Missing values found in samples: {missing}")

    labels = None
    if has_treatment:
        labels = first.iloc[0].reindex(tab.columns).astype(str)
        labels.name = treatment_row

    return tab, labels


def unique_treatments(labels: pd.Series) -> list:
    uniques = [str(u) for u in pd.unique(labels.dropna())]
    uniques.sort()
    return uniques


def treatment_mask(labels, positive_class: str) -> np.ndarray:
    """Boolean vector, True where the sample belongs to `positive_class`."""
    values = np.asarray(labels).astype(str)
    present = sorted(set(values))
    if str(positive_class) not in present:
        raise ValueError(
            f"Treatment '{positive_class}' not found. Available treatments: {present}"
        )
    return values == str(positive_class)
