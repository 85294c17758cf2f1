import numpy as np
import pandas as pd
import pytest
from sklearn.ensemble import RandomForestClassifier

import rfblind.algorithms.rf_blind as rfb
from rfblind.algorithms.notify import NotifyPrint, TrainingSetWarning
from rfblind.algorithms.rf_blind import (
    METRICS,
    MaskSelector,
    NamesSelector,
    PatternSelector,
    as_train_selector,
    resolve_split,
    rf_blind,
    run_metrics,
    summarize_runs,
)

FIRST_12 = [i < 12 for i in range(20)]


@pytest.fixture
def forests(monkeypatch):
    """Record the keyword arguments of every forest that gets built."""
    created = []

    def factory(**kwargs):
        created.append(kwargs)
        return RandomForestClassifier(**kwargs)

    monkeypatch.setattr(rfb, "RandomForestClassifier", factory)
    return created


def test_as_train_selector():
    assert as_train_selector("^north") == PatternSelector("^north")
    assert as_train_selector([True, False]) == MaskSelector((True, False))
    assert as_train_selector(np.array([True, False])) == MaskSelector((True, False))
    assert as_train_selector(["a", "b"]) == NamesSelector(("a", "b"))
    assert as_train_selector(pd.Series(["a"])) == NamesSelector(("a",))

    selector = NamesSelector(("x",))
    assert as_train_selector(selector) is selector

    with pytest.raises(ValueError, match="train_id must be"):
        as_train_selector(np.array([[True, False]]))


@pytest.mark.parametrize(
    "train_id",
    [
        "^north",
        FIRST_12,
        [f"north_{i:02d}" for i in range(12)],
    ],
)
def test_split_partition(sample_names, train_id):
    split = resolve_split(sample_names, as_train_selector(train_id))

    assert split.train.tolist() == list(range(12))
    assert split.test.tolist() == list(range(12, 20))
    assert len(split.train) + len(split.test) == len(sample_names)
    assert set(split.train).isdisjoint(split.test)


def test_split_pattern_is_a_regex_search(sample_names):
    split = resolve_split(sample_names, PatternSelector(r"_0[0-4]$"))
    assert split.train.tolist() == [0, 1, 2, 3, 4]


def test_split_names_ignores_unknown(sample_names):
    split = resolve_split(sample_names, NamesSelector(("south_19", "missing")))
    assert split.train.tolist() == [19]


def test_split_mask_length_mismatch(sample_names):
    with pytest.raises(ValueError, match="mask has 3 entries"):
        resolve_split(sample_names, MaskSelector((True, False, True)))


def test_split_no_match(sample_names):
    with pytest.raises(ValueError, match="does not match sample names"):
        resolve_split(sample_names, PatternSelector("^east"))


def test_split_every_sample(sample_names):
    with pytest.raises(ValueError, match="no sample left for testing"):
        resolve_split(sample_names, PatternSelector("_"))


def test_run_metrics():
    truth = ["positive", "positive", "positive", "negative", "negative"]
    predicted = ["positive", "negative", "positive", "positive", "negative"]

    metrics = run_metrics(predicted, truth)

    assert metrics["TP"] == 2
    assert metrics["FN"] == 1
    assert metrics["FP"] == 1
    assert metrics["TN"] == 1
    assert metrics["error"] == pytest.approx(2 / 5)
    assert metrics["sensitivity"] == pytest.approx(2 / 3)
    assert metrics["precision"] == pytest.approx(2 / 3)


def test_run_metrics_undefined_rates():
    # no positive sample in the test set and none predicted
    metrics = run_metrics(["negative", "negative"], ["negative", "negative"])

    assert metrics["TN"] == 2
    assert metrics["TP"] == metrics["FP"] == metrics["FN"] == 0
    assert metrics["error"] == 0
    assert np.isnan(metrics["sensitivity"])
    assert np.isnan(metrics["precision"])


def test_summarize_runs():
    confusion = pd.DataFrame(
        [
            [1, 3, 0, 0, 0.0, 1.0, 1.0],
            [0, 3, 0, 1, 0.25, 1.0, np.nan],
        ],
        columns=METRICS,
    )
    summary = summarize_runs(confusion)

    assert summary.index.tolist() == ["mean", "sd"]
    assert summary.columns.tolist() == METRICS
    assert summary.loc["mean", "TN"] == pytest.approx(0.5)
    assert summary.loc["sd", "error"] == pytest.approx(np.std([0.0, 0.25], ddof=1))
    assert np.isnan(summary.loc["mean", "precision"])


def test_single_forest_scenario(abundance_table, treat):
    report = rf_blind(
        abundance_table, treat, FIRST_12, n_tree=50, n_forest=1, seed=42, n_jobs=1
    )

    assert len(report.split.train) == 12
    assert len(report.split.test) == 8
    assert len(report.confusion) == 1
    assert report.confusion.columns.tolist() == METRICS

    row = report.confusion.iloc[0]
    assert row["TP"] + row["TN"] + row["FP"] + row["FN"] == 8
    assert row["error"] == pytest.approx((row["FP"] + row["FN"]) / 8)

    assert len(report.importance) == 1
    assert len(report.importance[0]) == 10
    assert report.importance[0].index.tolist() == abundance_table.index.tolist()

    # sd of a single run is undefined
    assert report.summary.index.tolist() == ["mean", "sd"]
    assert report.summary.loc["sd"].isna().all()


def test_single_forest_is_reproducible(abundance_table, treat):
    kwargs = dict(n_tree=50, n_forest=1, seed=7, n_jobs=1)
    first = rf_blind(abundance_table, treat, "^north", **kwargs)
    second = rf_blind(abundance_table, treat, "^north", **kwargs)

    pd.testing.assert_frame_equal(first.confusion, second.confusion)
    pd.testing.assert_series_equal(first.importance[0], second.importance[0])


def test_several_forests(abundance_table, treat, capsys):
    report = rf_blind(abundance_table, treat, "^north", n_tree=25, n_forest=3, n_jobs=1)

    assert len(report.confusion) == 3
    assert len(report.importance) == 3
    assert set(report.summary.columns) == set(report.confusion.columns)

    counts = report.confusion[["TP", "TN", "FP", "FN"]].sum(axis=1)
    assert (counts == 8).all()
    np.testing.assert_allclose(
        report.confusion["error"], (report.confusion["FP"] + report.confusion["FN"]) / 8
    )

    out = capsys.readouterr().out
    assert "Growing 3 forests..." in out
    assert "Done!" in out


def test_seed_only_used_for_single_forest(abundance_table, treat, forests):
    rf_blind(abundance_table, treat, "^north", n_tree=10, n_forest=2, seed=3, n_jobs=1)
    assert [f["random_state"] for f in forests] == [None, None]

    forests.clear()
    rf_blind(abundance_table, treat, "^north", n_tree=10, n_forest=1, seed=3, n_jobs=1)
    assert [f["random_state"] for f in forests] == [3]


def test_forest_parameters(abundance_table, treat, forests):
    rf_blind(abundance_table, treat, "^north", mtry=4, n_tree=15, n_forest=1, n_jobs=1)
    assert forests[0]["max_features"] == 4
    assert forests[0]["n_estimators"] == 15

    forests.clear()
    rf_blind(abundance_table, treat, "^north", n_tree=15, n_forest=1, n_jobs=1)
    assert forests[0]["max_features"] == "sqrt"


def test_single_training_sample_warns(abundance_table, treat):
    mask = [i == 0 for i in range(20)]
    with pytest.warns(TrainingSetWarning, match="only contains 1 sample"):
        report = rf_blind(abundance_table, treat, mask, n_tree=10, n_forest=1, n_jobs=1)

    assert len(report.split.train) == 1
    assert len(report.confusion) == 1


def test_no_match_fails_before_growing(abundance_table, treat, monkeypatch):
    def factory(**kwargs):
        raise AssertionError("no forest should be grown")

    monkeypatch.setattr(rfb, "RandomForestClassifier", factory)
    with pytest.raises(ValueError, match="does not match sample names"):
        rf_blind(abundance_table, treat, "^east")


@pytest.mark.parametrize(
    "bad_treat",
    [
        np.arange(20) % 2,
        ["treated", "control"] * 10,
        np.linspace(0, 1, 20),
    ],
)
def test_treat_must_be_boolean(abundance_table, bad_treat):
    with pytest.raises(ValueError, match="treat is not a boolean vector"):
        rf_blind(abundance_table, bad_treat, "^north")


def test_treat_length(abundance_table):
    with pytest.raises(ValueError, match="treat has 3 entries"):
        rf_blind(abundance_table, [True, False, True], "^north")


@pytest.mark.parametrize(
    "kwargs", [{"n_forest": 0}, {"n_tree": -1}, {"mtry": 0}, {"n_forest": 2.5}]
)
def test_positive_integers(abundance_table, treat, kwargs):
    with pytest.raises(ValueError, match="must be a positive integer"):
        rf_blind(abundance_table, treat, "^north", **kwargs)


def test_non_numeric_table(abundance_table, treat):
    tab = abundance_table.astype(object)
    tab.iloc[0, 0] = "n/a"
    with pytest.raises(ValueError, match="Non-numeric"):
        rf_blind(tab, treat, "^north")


def test_mtry_above_feature_count_is_left_to_sklearn(abundance_table, treat):
    with pytest.raises(ValueError):
        rf_blind(
            abundance_table, treat, "^north", mtry=50, n_tree=5, n_forest=1, n_jobs=1
        )


def test_report_outputs(abundance_table, treat):
    report = rf_blind(
        abundance_table,
        treat,
        "^north",
        n_tree=25,
        n_forest=2,
        n_jobs=1,
        notify=NotifyPrint(),
    )

    table = report.importance_table()
    assert table.shape == (10, 2)
    assert table.columns.tolist() == ["forest_1", "forest_2"]

    ranking = report.mean_importance()
    assert ranking.columns.tolist() == ["Feature", "Importance", "SD"]
    assert ranking["Importance"].is_monotonic_decreasing
    assert set(ranking["Feature"]) == set(abundance_table.index)

    as_dict = report.to_dict()
    assert set(as_dict) == {"summary", "confusion", "importance", "train", "test"}
    assert list(as_dict["summary"]) == ["mean", "sd"]
    assert len(as_dict["confusion"]) == 2
    assert as_dict["train"] == list(range(12))
    assert isinstance(as_dict["confusion"][0]["TP"], int)
