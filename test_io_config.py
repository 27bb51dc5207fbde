#!/usr/bin/env python3
"""
Tests for file loading, the YAML configuration and the end-to-end run.
"""

import logging
import sys
from pathlib import Path

import pandas as pd
import pytest
import yaml

from decontam_eval.abundance.table import AbundanceTable
from decontam_eval.config import get_config, get_method_entries, resolve_relative_paths
from decontam_eval.io import (
    import_metadata_tsv, import_reference, import_table, import_table_biom,
    import_table_tsv, write_results_tsv
)
from decontam_eval.logger import setup_logging

sys.path.append(str(Path(__file__).resolve().parent / "src"))
from run import DecontamEvaluation, WorkflowError  # noqa: E402


QIIME_TABLE = (
    "# Constructed from biom file\n"
    "#OTU ID\tsample1\tsample2\tBlank1\ttaxonomy\n"
    "A\t80\t10\t0\tk__Bacteria\n"
    "B\t15\t30\t0\tk__Bacteria\n"
    "C\t5\t60\t4\tk__Bacteria\n"
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


def test_import_table_tsv(tmp_path):
    table = import_table_tsv(_write(tmp_path / "table.tsv", QIIME_TABLE))
    assert table.samples == ("sample1", "sample2", "Blank1")
    assert table.variants == ("A", "B", "C")
    assert table.get("sample2", "C") == 60

    assert import_table(tmp_path / "table.tsv").equals(table)
    with pytest.raises(FileNotFoundError):
        import_table_tsv(tmp_path / "missing.tsv")


def test_import_table_biom(tmp_path, mock_table):
    from biom.util import biom_open

    path = tmp_path / "table.biom"
    with biom_open(str(path), "w") as handle:
        mock_table.to_biom().to_hdf5(handle, "test")
    loaded = import_table_biom(path)
    assert loaded.equals(mock_table)
    assert import_table(path).equals(mock_table)


def test_import_reference(tmp_path):
    path = _write(tmp_path / "ref.txt", "# mock community\nA\n\nB\tBacillus\nA\n")
    reference = import_reference(path)
    assert reference.variants == ("A", "B")

    with pytest.raises(ValueError):
        import_reference(_write(tmp_path / "empty.txt", "# nothing here\n"))


def test_import_metadata_tsv(tmp_path):
    path = _write(
        tmp_path / "metadata.tsv",
        "#SampleID\tdilution\tdna_concentration\n"
        "#q2:types\tcategorical\tnumeric\n"
        "sample1\t1\t12.5\n"
        "001\t8\t0.4\n"
    )
    metadata = import_metadata_tsv(path)
    assert metadata.index.tolist() == ["sample1", "001"]
    assert metadata.index.name == "sample_id"
    assert list(metadata.columns) == ["dilution", "dna_concentration"]

    with pytest.raises(ValueError):
        import_metadata_tsv(path, sample_id_column="sample-name")


def test_write_results_tsv(tmp_path):
    frame = pd.DataFrame({"sample_id": ["s1"], "sensitivity": [float("nan")]})
    path = write_results_tsv(frame, tmp_path / "out" / "results.tsv")
    assert path.read_text().splitlines() == ["sample_id\tsensitivity", "s1\t"]


def test_resolve_relative_paths(tmp_path):
    config = {
        "table": "./data/table.tsv",
        "name": "mock",
        "methods": [{"label": "x", "params": {"decisions": "../freq.tsv"}}],
    }
    resolved = resolve_relative_paths(config, tmp_path)
    assert resolved["table"] == (tmp_path / "data" / "table.tsv").resolve()
    assert resolved["name"] == "mock"
    assert resolved["methods"][0]["params"]["decisions"] == (tmp_path.parent / "freq.tsv").resolve()


def test_get_config_and_method_entries(tmp_path):
    path = _write(tmp_path / "config.yaml", yaml.safe_dump({
        "reference": "./ref.txt",
        "methods": [{"label": "Original"}, {"label": "Abundance filter, 1%"}],
    }))
    config = get_config(path)
    assert config["reference"] == (tmp_path / "ref.txt").resolve()
    assert [m["label"] for m in get_method_entries(config)] == ["Original", "Abundance filter, 1%"]

    assert get_config(_write(tmp_path / "empty.yaml", "")) == {}
    with pytest.raises(ValueError):
        get_method_entries({"methods": [{"label": "a"}, {"label": "a"}]})
    with pytest.raises(ValueError):
        get_method_entries({"methods": [{"type": "unfiltered"}]})


def test_setup_logging(tmp_path):
    logger = setup_logging(tmp_path / "logs", log_filename="run.log")
    assert logger.name == "decontam_eval"
    assert len(logger.handlers) == 2
    logger.debug("debug line")
    for handler in logger.handlers:
        handler.flush()
    assert "debug line" in (tmp_path / "logs" / "run.log").read_text()

    # Reconfiguring replaces rather than stacks handlers
    setup_logging(tmp_path / "logs", log_filename="run2.log", console_level=logging.WARNING)
    assert len(logger.handlers) == 2


def _write_project(tmp_path: Path, methods) -> Path:
    _write(tmp_path / "table.tsv", QIIME_TABLE)
    _write(tmp_path / "ref.txt", "A\nB\n")
    _write(
        tmp_path / "metadata.tsv",
        "sample-id\tdilution\tdna_concentration\n"
        "sample1\t1\t12.5\nsample2\t8\t0.4\nBlank1\t0\t0.01\n"
    )
    _write(tmp_path / "freq.tsv", "feature\tp\nA\t0.8\nB\t0.6\nC\t0.01\n")
    return _write(tmp_path / "config.yaml", yaml.safe_dump({
        "table": "./table.tsv",
        "reference": "./ref.txt",
        "metadata": "./metadata.tsv",
        "blank_samples": ["Blank1"],
        "output_dir": "./results",
        "log_dir": "./logs",
        "methods": methods,
    }))


def test_end_to_end_run(tmp_path):
    config_path = _write_project(tmp_path, [
        {"label": "Original", "type": "unfiltered"},
        {"label": "Decontam frequency, 0.1", "type": "frequency",
         "params": {"decisions": "./freq.tsv", "score_column": "p", "threshold": 0.1}},
        {"label": "Remove blank variants", "type": "control_subtraction"},
        {"label": "Decontam prevalence, 0.5", "type": "prevalence",
         "params": {"decisions": "./missing.tsv"}},
    ])
    batch = DecontamEvaluation(config_path).run()
    assert list(batch.failures) == ["Decontam prevalence, 0.5"]

    combined = pd.read_csv(tmp_path / "results" / "combined_results.tsv", sep="\t")
    assert len(combined) == 3 * 2
    assert "Blank1" not in set(combined["sample_id"])
    assert {"dilution", "dna_concentration"} <= set(combined.columns)
    frequency = combined[combined["method_label"] == "Decontam frequency, 0.1"]
    assert frequency["true_positive"].tolist() == [5, 60]
    assert (tmp_path / "results" / "method_summary.tsv").exists()
    assert (tmp_path / "results" / "failed_methods.tsv").exists()


def test_all_runs_failing_raises(tmp_path):
    config_path = _write_project(tmp_path, [
        {"label": "Decontam prevalence, 0.5", "type": "prevalence",
         "params": {"decisions": "./missing.tsv"}},
    ])
    with pytest.raises(WorkflowError):
        DecontamEvaluation(config_path).run()
