#!/usr/bin/env python3
"""
Tests for method types, label parsing and the built-in detectors.
"""

import pandas as pd
import pytest

from decontam_eval.abundance.table import AbundanceTable
from decontam_eval.errors import DegenerateSampleError
from decontam_eval.io import read_decisions
from decontam_eval.methods import (
    AbundanceThresholdDetector, CallableDetector, ControlDetector, MethodType,
    NoRemovalDetector, PrecomputedDetector, detector_from_config,
    method_type_from_label
)


@pytest.mark.parametrize("value, expected", [
    ("frequency", MethodType.FREQUENCY),
    ("Source-Mixture", MethodType.SOURCE_MIXTURE),
    ("  Abundance Threshold ", MethodType.ABUNDANCE_THRESHOLD),
    ("decontam prevalence", MethodType.PREVALENCE),
    (MethodType.COMBINED, MethodType.COMBINED),
])
def test_method_type_parse(value, expected):
    assert MethodType.parse(value) is expected


def test_method_type_parse_unknown():
    with pytest.raises(ValueError):
        MethodType.parse("bayesian")


def test_method_type_positions_follow_declaration():
    positions = [t.position for t in MethodType]
    assert positions == sorted(positions)
    assert MethodType.UNFILTERED.position == 0


@pytest.mark.parametrize("label, expected", [
    ("Decontam frequency, 0.5", MethodType.FREQUENCY),
    ("Decontam prevalence, 0.1", MethodType.PREVALENCE),
    ("SourceTracker, 50%", MethodType.SOURCE_MIXTURE),
    ("Abundance filter, 0.01%", MethodType.ABUNDANCE_THRESHOLD),
    ("Original", MethodType.UNFILTERED),
    # Only the text before the first separator counts
    ("Control, min 1, both blanks", MethodType.CONTROL_SUBTRACTION),
])
def test_method_type_from_label(label, expected):
    assert method_type_from_label(label) is expected


def test_method_type_from_label_unknown_prefix():
    with pytest.raises(ValueError, match="Cannot derive"):
        method_type_from_label("My method, 0.5")
    assert method_type_from_label("frequency; 0.5", separator=";") is MethodType.FREQUENCY


def test_no_removal_detector(mock_table):
    decision = NoRemovalDetector().classify(mock_table)
    assert list(decision.index) == ["A", "B", "C"]
    assert not decision.any()


def test_abundance_threshold_detector():
    table = AbundanceTable(pd.DataFrame(
        {"A": [500, 499], "B": [0, 0.9], "C": [0, 0.1]}, index=["s1", "s2"]
    ))
    # Whole-table shares: A 99.9%, B 0.09%, C 0.01%
    decision = AbundanceThresholdDetector(0.05).classify(table)
    assert decision.to_dict() == {"A": False, "B": False, "C": True}

    decision = AbundanceThresholdDetector(0.1).classify(table)
    assert decision.to_dict() == {"A": False, "B": True, "C": True}

    assert not AbundanceThresholdDetector(0).classify(table).any()


def test_abundance_threshold_detector_validation():
    with pytest.raises(ValueError):
        AbundanceThresholdDetector(-1)
    with pytest.raises(ValueError):
        AbundanceThresholdDetector(101)
    empty = AbundanceTable(pd.DataFrame({"A": [0, 0]}, index=["s1", "s2"]))
    with pytest.raises(DegenerateSampleError):
        AbundanceThresholdDetector(0.1).classify(empty)


def test_control_detector(mock_table, blank_table):
    detector = ControlDetector(blank_table)
    assert detector.contaminants == frozenset({"C", "D"})
    decision = detector.classify(mock_table)
    assert decision.to_dict() == {"A": False, "B": False, "C": True}

    strict = ControlDetector(blank_table, min_count=5)
    assert strict.contaminants == frozenset()
    assert strict.describe()["blank_samples"] == 2


def test_precomputed_detector(mock_table):
    detector = PrecomputedDetector({"C": True, "A": False}, source="decontam.tsv")
    assert detector.classify(mock_table).to_dict() == {"C": True, "A": False}
    assert detector.describe()["n_contaminants"] == 1
    assert "decontam.tsv" in repr(detector)


def test_callable_detector(mock_table):
    def high_in_sample2(table, covariate, cutoff):
        df = table.to_dataframe()
        return df.loc["sample2"] > cutoff

    detector = CallableDetector(high_in_sample2, cutoff=20)
    assert detector.classify(mock_table).to_dict() == {"A": False, "B": True, "C": True}
    assert detector.describe()["cutoff"] == 20

    needs_covariate = CallableDetector(high_in_sample2, requires_covariate=True, cutoff=20)
    with pytest.raises(ValueError, match="covariate"):
        needs_covariate.classify(mock_table)


def test_read_decisions(tmp_path):
    path = tmp_path / "decontam.tsv"
    path.write_text(
        "feature\tp\tcontaminant\n"
        "A\t0.9\tFALSE\n"
        "B\t0.05\tTRUE\n"
        "C\tNA\tno\n"
    )
    assert read_decisions(path).to_dict() == {"A": False, "B": True, "C": False}
    by_score = read_decisions(path, score_column="p", threshold=0.1)
    assert by_score.to_dict() == {"A": False, "B": True, "C": False}

    with pytest.raises(ValueError):
        read_decisions(path, score_column="p")
    with pytest.raises(ValueError):
        read_decisions(path, column="missing")
    with pytest.raises(FileNotFoundError):
        read_decisions(tmp_path / "nope.tsv")


def test_detector_from_config(tmp_path, blank_table):
    assert isinstance(detector_from_config("unfiltered"), NoRemovalDetector)

    abundance = detector_from_config(MethodType.ABUNDANCE_THRESHOLD, {"threshold": 1})
    assert isinstance(abundance, AbundanceThresholdDetector)
    assert abundance.threshold == 1

    control = detector_from_config("control_subtraction", {"min_count": 2}, blank_table)
    assert isinstance(control, ControlDetector)
    assert control.contaminants == frozenset({"C", "D"})
    with pytest.raises(ValueError):
        detector_from_config("control_subtraction", {})

    path = tmp_path / "freq.tsv"
    path.write_text("feature\tcontaminant\nC\tTRUE\n")
    freq = detector_from_config("frequency", {"decisions": path})
    assert isinstance(freq, PrecomputedDetector)
    with pytest.raises(ValueError):
        detector_from_config("frequency", {})
