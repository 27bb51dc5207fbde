#!/usr/bin/env python3
"""
Tests for per-sample alpha diversity.
"""

import math

import pandas as pd
import pytest

from decontam_eval.abundance.table import AbundanceTable
from decontam_eval.diversity import alpha_diversity


def test_even_community():
    table = AbundanceTable(pd.DataFrame(
        {"A": [25, 10], "B": [25, 0], "C": [25, 0], "D": [25, 0]},
        index=["even", "single"],
    ))
    div = alpha_diversity(table)
    assert list(div.columns) == ["observed", "shannon", "inv_simpson"]

    assert div.loc["even", "observed"] == 4
    assert div.loc["even", "shannon"] == pytest.approx(math.log(4))
    assert div.loc["even", "inv_simpson"] == pytest.approx(4.0)

    assert div.loc["single", "observed"] == 1
    assert div.loc["single", "shannon"] == 0.0
    assert div.loc["single", "inv_simpson"] == pytest.approx(1.0)


def test_uneven_community(mock_table):
    div = alpha_diversity(mock_table)
    p = [0.8, 0.15, 0.05]
    assert div.loc["sample1", "observed"] == 3
    assert div.loc["sample1", "shannon"] == pytest.approx(-sum(x * math.log(x) for x in p))
    assert div.loc["sample1", "inv_simpson"] == pytest.approx(1 / sum(x * x for x in p))


def test_empty_sample_is_undefined():
    table = AbundanceTable(pd.DataFrame({"A": [0, 3], "B": [0, 1]}, index=["empty", "s2"]))
    div = alpha_diversity(table)
    assert div.loc["empty", "observed"] == 0
    assert math.isnan(div.loc["empty", "shannon"])
    assert math.isnan(div.loc["empty", "inv_simpson"])
    assert div.loc["s2", "observed"] == 2


def test_table_without_variants():
    table = AbundanceTable(pd.DataFrame(index=["s1", "s2"]))
    div = alpha_diversity(table)
    assert div["observed"].tolist() == [0, 0]
    assert div["shannon"].isna().all()


def test_relative_table_is_rejected(mock_table):
    with pytest.raises(ValueError):
        alpha_diversity(mock_table.normalize())


def test_real_valued_counts():
    table = AbundanceTable(pd.DataFrame(
        {"A": [80.5, 8.05e6], "B": [15.2, 1.52e6], "C": [5.0, 5.0e5]},
        index=["small", "large"],
    ))
    div = alpha_diversity(table)
    p = [x / 100.7 for x in (80.5, 15.2, 5.0)]
    expected_shannon = -sum(x * math.log(x) for x in p)
    expected_inv_simpson = 1 / sum(x * x for x in p)
    for sample_id in ("small", "large"):
        assert div.loc[sample_id, "observed"] == 3
        assert div.loc[sample_id, "shannon"] == pytest.approx(expected_shannon)
        assert div.loc[sample_id, "inv_simpson"] == pytest.approx(expected_inv_simpson)
