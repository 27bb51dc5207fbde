# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

# Third-Party Imports
import pandas as pd

# Local Imports
from decontam_eval import constants
from decontam_eval.abundance.reference import ReferenceSet
from decontam_eval.abundance.table import AbundanceTable
from decontam_eval.diversity import alpha_diversity
from decontam_eval.errors import SchemaMismatchError
from decontam_eval.methods import MethodType
from decontam_eval.scoring.confusion import safe_ratio, score_confusion

# ========================== INITIALISATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# =================================== DATA CLASSES =================================== #

@dataclass(frozen=True, eq=False)
class MethodResult:
    """Per-sample result rows of one evaluated method configuration."""
    label: str
    method_type: MethodType
    rows: pd.DataFrame
    order: int = 0

    def __len__(self) -> int:
        return len(self.rows)

    def __str__(self):
        return f"{self.label} [{self.method_type.value}]"


def reference_column(variant) -> str:
    return f"{constants.REFERENCE_COLUMN_PREFIX}{variant}"


def reference_columns(frame: pd.DataFrame) -> List[str]:
    return [
        c for c in frame.columns
        if str(c).startswith(constants.REFERENCE_COLUMN_PREFIX)
    ]

# ================================ RESULT AGGREGATOR ================================= #

class ResultAggregator:
    """Builds one row per sample for a method run, with a schema fixed by the
    reference set so that results of different methods line up."""

    def __init__(self, reference: ReferenceSet):
        self.reference = reference

    @property
    def columns(self) -> List[str]:
        return constants.RESULT_COLUMNS + [reference_column(v) for v in self.reference]

    def build(
        self,
        label: str,
        method_type: MethodType,
        original: AbundanceTable,
        kept: AbundanceTable,
        removed: AbundanceTable,
        order: int = 0
    ) -> MethodResult:
        method_type = MethodType.parse(method_type)
        confusion = score_confusion(original, kept, removed, self.reference)
        samples = confusion.index

        diversity = alpha_diversity(kept).reindex(samples)
        removal = self._removal_metrics(original, kept, removed).reindex(samples)
        abundances = self._reference_abundances(kept).reindex(samples)

        rows = pd.concat([confusion, diversity, removal, abundances], axis=1)
        rows.index.name = "sample_id"
        rows = rows.reset_index()
        rows.insert(0, "method_type", method_type.value)
        rows.insert(0, "method_label", label)
        return MethodResult(
            label=label,
            method_type=method_type,
            rows=rows[self.columns],
            order=order
        )

    def _removal_metrics(
        self,
        original: AbundanceTable,
        kept: AbundanceTable,
        removed: AbundanceTable
    ) -> pd.DataFrame:
        """Percent of reference / contaminant mass removed and the contaminant
        share of what is left. NaN where the denominator mass is zero."""
        ref_original = original.in_reference(self.reference).sample_sums()
        con_original = original.not_in_reference(self.reference).sample_sums()
        ref_removed = removed.in_reference(self.reference).sample_sums()
        con_removed = removed.not_in_reference(self.reference).sample_sums()
        con_kept = kept.not_in_reference(self.reference).sample_sums()

        scale = constants.RELATIVE_ABUNDANCE_SCALE
        return pd.DataFrame({
            "pct_reference_removed": safe_ratio(ref_removed, ref_original) * scale,
            "pct_contaminant_removed": safe_ratio(con_removed, con_original) * scale,
            "contaminant_relative_abundance": safe_ratio(con_kept, kept.sample_sums()) * scale,
        })

    def _reference_abundances(self, kept: AbundanceTable) -> pd.DataFrame:
        """Relative abundance (%) of each reference variant after removal.

        Reference variants absent from `kept` (removed or never observed) are 0;
        samples with nothing left are NaN.
        """
        totals = kept.sample_sums()
        variants = list(self.reference)
        counts = kept.to_dataframe().reindex(columns=variants, fill_value=0).astype(float)
        rel = counts.div(totals.where(totals > 0), axis=0) * constants.RELATIVE_ABUNDANCE_SCALE
        rel.columns = [reference_column(v) for v in variants]
        return rel

# =================================== COMBINATION ==================================== #

def combine_results(
    results: Iterable[MethodResult],
    method_order: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """Concatenate method results into one long-format table.

    Ordering is deterministic: by `method_order` (a list of labels) when
    given, else by MethodType position and then each result's declared
    `order`. Reference-abundance columns missing from a result are filled
    with 0; NaN metrics are left as they are.

    Raises:
        SchemaMismatchError: Duplicate labels in `results` or `method_order`, or
                             labels absent from `method_order`.
    """
    results = list(results)
    labels = [r.label for r in results]
    duplicates = sorted({l for l in labels if labels.count(l) > 1})
    if duplicates:
        raise SchemaMismatchError(f"Duplicate method labels: {duplicates}")

    if method_order is None:
        ordered = sorted(results, key=lambda r: (r.method_type.position, r.order))
        method_order = [r.label for r in ordered]
    else:
        method_order = list(method_order)
        repeated = sorted({l for l in method_order if method_order.count(l) > 1})
        if repeated:
            raise SchemaMismatchError(f"Duplicate labels in the method order: {repeated}")
        unknown = [l for l in labels if l not in method_order]
        if unknown:
            raise SchemaMismatchError(f"Labels missing from the method order: {unknown}")
        rank = {label: i for i, label in enumerate(method_order)}
        ordered = sorted(results, key=lambda r: rank[r.label])

    ref_cols: List[str] = []
    for result in ordered:
        for col in reference_columns(result.rows):
            if col not in ref_cols:
                ref_cols.append(col)
    columns = constants.RESULT_COLUMNS + ref_cols

    frames = []
    for result in ordered:
        frame = result.rows.copy()
        for col in ref_cols:
            if col not in frame.columns:
                # Structurally absent for this method
                frame[col] = 0.0
        frames.append(frame[columns])

    if frames:
        combined = pd.concat(frames, axis=0, ignore_index=True)
    else:
        combined = pd.DataFrame(columns=columns)

    combined["method_label"] = pd.Categorical(
        combined["method_label"], categories=method_order, ordered=True
    )
    combined["method_type"] = pd.Categorical(
        combined["method_type"], categories=[t.value for t in MethodType], ordered=True
    )
    return combined

# ================================== DOWNSTREAM ====================================== #

def attach_sample_metadata(
    combined: pd.DataFrame,
    metadata: pd.DataFrame,
    columns: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """Join per-sample covariates (e.g. dilution step, DNA concentration) onto
    the combined results by sample id."""
    columns = list(columns) if columns is not None else list(metadata.columns)
    missing = [c for c in columns if c not in metadata.columns]
    if missing:
        raise ValueError(f"Metadata columns not found: {missing}")
    clashes = [c for c in columns if c in combined.columns]
    if clashes:
        raise ValueError(f"Metadata columns clash with result columns: {clashes}")

    unmatched = sorted(set(combined["sample_id"]) - set(metadata.index))
    if unmatched:
        logger.warning(f"{len(unmatched)} sample(s) have no metadata: {unmatched}")

    meta = metadata[columns]
    return combined.merge(meta, how="left", left_on="sample_id", right_index=True)


def summarize_by_method(
    combined: pd.DataFrame,
    metrics: Optional[Sequence[str]] = None,
    stats: Sequence[str] = ("mean", "median")
) -> pd.DataFrame:
    """Per-method summary statistics of the metric columns (NaN skipped),
    in method order."""
    metrics = list(metrics) if metrics is not None else constants.DEFAULT_SUMMARY_METRICS
    metrics = [m for m in metrics if m in combined.columns]

    grouped = combined.groupby(["method_label", "method_type"], observed=True, sort=True)
    summary = grouped[metrics].agg(list(stats))
    summary.columns = [f"{metric}_{stat}" for metric, stat in summary.columns]
    summary.insert(0, "n_samples", grouped.size())
    if "sensitivity" in combined.columns:
        # Samples without any contaminant mass to detect
        summary.insert(
            1, "n_undefined_sensitivity",
            grouped["sensitivity"].apply(lambda s: int(s.isna().sum()))
        )
    return summary.reset_index()
