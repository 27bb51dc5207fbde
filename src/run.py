"""
Contaminant Removal Evaluation
----------------------------------------------------------------------------------------
Scores contaminant identification/removal methods on a diluted mock community. Each
configured method splits the sequence variants of the abundance table into kept and
removed; the split is scored per sample against the known mock community members and
all methods are written to one long-format results table.
"""
# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import argparse
import sys
import traceback
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Third-Party Imports
import pandas as pd

# Local Imports
parent_dir = Path(__file__).resolve().parent
sys.path.append(str(parent_dir))

from decontam_eval import constants
from decontam_eval.abundance.table import AbundanceTable
from decontam_eval.aggregation import attach_sample_metadata, summarize_by_method
from decontam_eval.config import get_config, get_method_entries
from decontam_eval.io import (
    import_metadata_tsv, import_reference, import_table, write_results_tsv
)
from decontam_eval.logger import setup_logging
from decontam_eval.runner import BatchResult, MethodRun, MethodRunner

# ========================== INITIALIZATION & CONFIGURATION ========================== #

pd.set_option('display.max_colwidth', None)

# =================================== MAIN WORKFLOW ================================== #

class WorkflowError(Exception):
    """Custom exception for workflow-related errors."""
    pass


class DecontamEvaluation:
    def __init__(self, config_path: Path = constants.DEFAULT_CONFIG) -> None:
        self.config = get_config(config_path)
        self.output_dir = Path(self.config.get("output_dir", constants.DEFAULT_OUTPUT_DIR))
        self.logger = setup_logging(self.config.get("log_dir", constants.DEFAULT_LOG_DIR))

    def run(self) -> BatchResult:
        """Execute the evaluation based on configuration settings."""
        try:
            table, blank_table = self._load_tables()
            reference = import_reference(self.config["reference"])
            metadata = self._load_metadata()
            runs, build_failures = self._build_runs(blank_table)

            runner = MethodRunner(
                reference,
                max_workers=self.config.get("max_workers", constants.DEFAULT_MAX_WORKERS)
            )
            batch = runner.run(runs, table, covariate=self._covariate(metadata))
        except Exception as e:
            self.logger.error(f"Evaluation failed: {e}\n"
                              f"Traceback: {traceback.format_exc()}")
            raise WorkflowError("Evaluation aborted due to errors") from e

        batch.failures = {**build_failures, **batch.failures}
        if not batch.results:
            raise WorkflowError(
                f"All {len(runs) + len(build_failures)} method runs failed"
            )
        self._write_outputs(batch, metadata)
        return batch

    def _load_tables(self) -> Tuple[AbundanceTable, Optional[AbundanceTable]]:
        """Load the abundance table and split off the negative controls."""
        table = import_table(self.config["table"])
        self.logger.info(
            f"Loaded table: {len(table.samples)} samples × {len(table.variants)} variants"
        )

        blank_samples = [str(s) for s in self.config.get("blank_samples") or []]
        if blank_samples:
            blank_table = table.subset_samples(blank_samples)
            table = table.subset_samples([s for s in table.samples if s not in set(blank_samples)])
            self.logger.info(f"Using {len(blank_samples)} in-table negative control(s)")
            return table, blank_table
        if self.config.get("blank_table"):
            return table, import_table(self.config["blank_table"])
        return table, None

    def _load_metadata(self) -> Optional[pd.DataFrame]:
        if not self.config.get("metadata"):
            return None
        return import_metadata_tsv(
            self.config["metadata"], self.config.get("sample_id_column")
        )

    def _covariate(self, metadata: Optional[pd.DataFrame]) -> Optional[pd.Series]:
        column = self.config.get("concentration_column", constants.DEFAULT_CONCENTRATION_COLUMN)
        if metadata is None or column not in metadata.columns:
            return None
        return pd.to_numeric(metadata[column], errors="coerce")

    def _build_runs(
        self,
        blank_table: Optional[AbundanceTable]
    ) -> Tuple[List[MethodRun], Dict[str, Exception]]:
        """Build one MethodRun per configured method. Entries whose detector
        cannot be built (e.g. a missing decisions file) are reported as
        failures instead of aborting the other methods."""
        entries = get_method_entries(self.config)
        if not entries:
            raise WorkflowError("No methods configured")

        runs, failures = [], {}
        for i, entry in enumerate(entries):
            try:
                runs.append(MethodRun.from_config(entry, order=i, blank_table=blank_table))
            except (ValueError, OSError) as e:
                self.logger.error(f"Could not set up method '{entry['label']}': {e}")
                failures[entry["label"]] = e
        return runs, failures

    def _write_outputs(self, batch: BatchResult, metadata: Optional[pd.DataFrame]) -> None:
        combined = batch.combined
        if metadata is not None:
            columns = [
                c for c in (
                    self.config.get("dilution_column", constants.DEFAULT_DILUTION_COLUMN),
                    self.config.get("concentration_column", constants.DEFAULT_CONCENTRATION_COLUMN),
                )
                if c in metadata.columns
            ]
            if columns:
                combined = attach_sample_metadata(combined, metadata, columns)

        write_results_tsv(combined, self.output_dir / "combined_results.tsv")
        write_results_tsv(summarize_by_method(combined), self.output_dir / "method_summary.tsv")
        if batch.failures:
            failures = pd.DataFrame(
                [(label, type(e).__name__, str(e)) for label, e in batch.failures.items()],
                columns=["method_label", "error", "message"]
            )
            write_results_tsv(failures, self.output_dir / "failed_methods.tsv")


def main(config_path: Path = constants.DEFAULT_CONFIG) -> None:
    """Run the entire evaluation."""
    evaluation = DecontamEvaluation(config_path)
    evaluation.run()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Evaluate contaminant removal methods.")
    parser.add_argument(
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG,
        help="Path to the configuration file.",
    )
    args = parser.parse_args()
    main(args.config)
