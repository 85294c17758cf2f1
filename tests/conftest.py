import numpy as np
import pandas as pd
import pytest

N_FEATURES = 10
N_SAMPLES = 20
N_TRAIN = 12


@pytest.fixture
def sample_names():
    # first 12 samples come from the "north" site, the rest from "south"
    return [
        f"north_{i:02d}" if i < N_TRAIN else f"south_{i:02d}" for i in range(N_SAMPLES)
    ]


@pytest.fixture
def treat():
    # alternating classes: 10 positive, 10 negative, both sites mixed
    return np.array([i % 2 == 0 for i in range(N_SAMPLES)])


@pytest.fixture
def abundance_table(sample_names, treat):
    rng = np.random.default_rng(0)
    counts = rng.poisson(lam=20, size=(N_FEATURES, N_SAMPLES))
    # the first three OTUs are enriched in positive samples
    counts[:3, treat] += 40
    return pd.DataFrame(
        counts,
        index=[f"OTU_{i + 1}" for i in range(N_FEATURES)],
        columns=sample_names,
    )


@pytest.fixture
def labels(treat, sample_names):
    return pd.Series(
        np.where(treat, "treated", "control"), index=sample_names, name="Treatment"
    )


def write_abundance_csv(path, tab, labels=None, treatment_row="Treatment"):
    if labels is not None:
        header = pd.DataFrame(
            [list(labels)], index=[treatment_row], columns=tab.columns
        )
        tab = pd.concat([header, tab.astype(object)])
    tab.to_csv(path)
    return path


@pytest.fixture
def abundance_csv(tmp_path, abundance_table, labels):
    return write_abundance_csv(tmp_path / "abundance.csv", abundance_table, labels)


@pytest.fixture
def csv_writer():
    return write_abundance_csv
