# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

# Third‑Party Imports
import pandas as pd

# Local Imports
from decontam_eval import constants
from decontam_eval.abundance.reference import ReferenceSet
from decontam_eval.abundance.table import AbundanceTable
from decontam_eval.aggregation import MethodResult, ResultAggregator, combine_results
from decontam_eval.errors import SchemaMismatchError
from decontam_eval.methods import (
    Detector, MethodType, detector_from_config, method_type_from_label
)
from decontam_eval.partition import check_reconstruction, partition
from decontam_eval.utils.progress import get_progress_bar, _format_task_desc

# ========================== INITIALISATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# =================================== DATA CLASSES =================================== #

@dataclass(frozen=True)
class MethodRun:
    """One detection-method configuration to evaluate."""
    label: str
    method_type: MethodType
    detector: Detector
    order: int = 0

    def __str__(self):
        return f"{self.label} [{self.method_type.value}]"

    @classmethod
    def from_config(
        cls,
        entry: Dict,
        order: int = 0,
        blank_table: Optional[AbundanceTable] = None
    ) -> "MethodRun":
        """Build a run from a config entry `{label, type, params}`.

        When `type` is omitted it is derived from the label (text before the
        first comma).
        """
        label = entry["label"]
        if entry.get("type"):
            method_type = MethodType.parse(entry["type"])
        else:
            method_type = method_type_from_label(label)
        detector = detector_from_config(method_type, entry.get("params"), blank_table)
        return cls(label=label, method_type=method_type, detector=detector, order=order)


@dataclass
class BatchResult:
    """Outcome of evaluating a batch of method runs."""
    combined: pd.DataFrame
    results: List[MethodResult] = field(default_factory=list)
    failures: Dict[str, Exception] = field(default_factory=dict)

    @property
    def succeeded(self) -> List[str]:
        return [r.label for r in self.results]

# ==================================== EVALUATION ==================================== #

def evaluate_method(
    run: MethodRun,
    table: AbundanceTable,
    reference: ReferenceSet,
    covariate: Optional[pd.Series] = None,
    aggregator: Optional[ResultAggregator] = None
) -> MethodResult:
    """Classify, partition, score and aggregate a single method run.

    Pure: reads only its arguments and returns a new `MethodResult`.

    Raises:
        SchemaMismatchError: The detector needs a covariate and some samples of
                             `table` have no value.
    """
    if run.detector.requires_covariate and covariate is not None:
        align_covariate(covariate, table, required=True)
    aggregator = aggregator or ResultAggregator(reference)
    decision = run.detector.classify(table, covariate=covariate)
    kept, removed = partition(table, decision)
    check_reconstruction(table, kept, removed)
    result = aggregator.build(
        run.label, run.method_type, table, kept, removed, order=run.order
    )
    logger.debug(
        f"{run}: removed {len(removed.variants)}/{len(table.variants)} variants"
    )
    return result


def align_covariate(
    covariate: Optional[pd.Series],
    table: AbundanceTable,
    required: bool = True
) -> Optional[pd.Series]:
    """Reorder a per-sample covariate to the table's samples.

    Raises:
        SchemaMismatchError: Samples of the table have no covariate value and
                             `required` is set (otherwise they stay NaN).
    """
    if covariate is None:
        return None
    aligned = covariate.reindex(list(table.samples))
    missing = aligned.index[aligned.isna()].tolist()
    if missing:
        if required:
            raise SchemaMismatchError(f"Covariate missing for samples: {missing}")
        logger.warning(f"Covariate missing for {len(missing)} sample(s): {missing}")
    return aligned


class MethodRunner:
    """Evaluates many method runs against one table and reference set.

    Each run is independent; a failing run is logged and recorded in
    `BatchResult.failures` without stopping the others.
    """

    def __init__(
        self,
        reference: ReferenceSet,
        max_workers: int = constants.DEFAULT_MAX_WORKERS,
        show_progress: bool = True
    ):
        self.reference = reference
        self.max_workers = max(1, int(max_workers or 1))
        self.show_progress = show_progress

    def run(
        self,
        runs: Iterable[MethodRun],
        table: AbundanceTable,
        covariate: Optional[pd.Series] = None,
        method_order: Optional[Sequence[str]] = None
    ) -> BatchResult:
        runs = list(runs)
        labels = [r.label for r in runs]
        duplicates = sorted({l for l in labels if labels.count(l) > 1})
        if duplicates:
            raise ValueError(f"Duplicate method labels: {duplicates}")

        self.reference.check_against(table)
        # Runs that need a complete covariate fail individually in evaluate_method
        covariate = align_covariate(covariate, table, required=False)

        results: List[MethodResult] = []
        failures: Dict[str, Exception] = {}
        start_time = time.perf_counter()

        with get_progress_bar(disable=not self.show_progress) as progress:
            desc = "Evaluating contaminant removal"
            task_id = progress.add_task(_format_task_desc(desc), total=len(runs), failed=0)

            if self.max_workers == 1:
                for run in runs:
                    progress.update(task_id, description=_format_task_desc(f"{desc} ({run.label})"))
                    self._store(self._evaluate_safely(run, table, covariate), results, failures)
                    progress.update(task_id, advance=1, failed=len(failures))
            else:
                logger.debug(f"Using {self.max_workers} worker threads")
                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    future_to_run = {
                        executor.submit(self._evaluate_safely, run, table, covariate): run
                        for run in runs
                    }
                    for future in as_completed(future_to_run):
                        self._store(future.result(), results, failures)
                        progress.update(task_id, advance=1, failed=len(failures))

            progress.update(task_id, description=_format_task_desc(desc))

        # Completion order is arbitrary with worker threads
        results.sort(key=lambda r: labels.index(r.label))
        duration = time.perf_counter() - start_time
        if failures:
            logger.warning(
                f"Completed with {len(failures)} errors out of {len(runs)} method runs: "
                f"{list(failures)}"
            )
        logger.info(f"Evaluated {len(results)}/{len(runs)} method runs in {duration:.2f}s")

        combined = combine_results(results, method_order=method_order)
        return BatchResult(combined=combined, results=results, failures=failures)

    def _evaluate_safely(
        self,
        run: MethodRun,
        table: AbundanceTable,
        covariate: Optional[pd.Series]
    ) -> Tuple[MethodRun, Optional[MethodResult], Optional[Exception]]:
        try:
            return run, evaluate_method(run, table, self.reference, covariate), None
        except Exception as e:
            logger.error(f"Evaluation failed for {run}: {e}")
            logger.debug("Traceback:", exc_info=True)
            return run, None, e

    @staticmethod
    def _store(
        outcome: Tuple[MethodRun, Optional[MethodResult], Optional[Exception]],
        results: List[MethodResult],
        failures: Dict[str, Exception]
    ) -> None:
        run, result, error = outcome
        if error is not None:
            failures[run.label] = error
        else:
            results.append(result)
