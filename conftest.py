"""Pytest fixtures for decontam_eval tests."""

import pandas as pd
import pytest

from decontam_eval.abundance.reference import ReferenceSet
from decontam_eval.abundance.table import AbundanceTable


@pytest.fixture
def mock_counts() -> pd.DataFrame:
    """Two mock community samples; A and B are expected, C is a contaminant."""
    return pd.DataFrame(
        {"A": [80, 10], "B": [15, 30], "C": [5, 60]},
        index=["sample1", "sample2"],
    )


@pytest.fixture
def mock_table(mock_counts) -> AbundanceTable:
    return AbundanceTable(mock_counts)


@pytest.fixture
def reference() -> ReferenceSet:
    return ReferenceSet.from_iterable(["A", "B"])


@pytest.fixture
def blank_table() -> AbundanceTable:
    """Negative controls where only C (and a variant absent from the samples) shows up."""
    return AbundanceTable(pd.DataFrame(
        {"C": [3, 1], "D": [2, 0], "A": [0, 0]},
        index=["Blank1", "Blank2"],
    ))
