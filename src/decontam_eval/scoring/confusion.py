# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
import math
from dataclasses import dataclass
from typing import Hashable, List, Union

# Third-Party Imports
import numpy as np
import pandas as pd

# Local Imports
from decontam_eval import constants
from decontam_eval.abundance.reference import ReferenceSet
from decontam_eval.abundance.table import AbundanceTable, require_same_samples
from decontam_eval.errors import ReconstructionViolation

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# ===================================== HELPERS ====================================== #

def safe_ratio(
    numerator: Union[float, pd.Series],
    denominator: Union[float, pd.Series]
) -> Union[float, pd.Series]:
    """numerator / denominator, NaN wherever the denominator is zero."""
    if isinstance(denominator, pd.Series):
        return numerator / denominator.where(denominator != 0)
    if denominator == 0:
        return math.nan
    return numerator / denominator

# ================================= CONFUSION RECORD ================================= #

@dataclass(frozen=True)
class ConfusionRecord:
    """Per-sample classification masses.

    "Positive" means classified (or expected) as contaminant, i.e. a variant
    outside the reference set.
    """
    sample_id: Hashable
    true_positive: float
    true_negative: float
    false_positive: float
    false_negative: float

    @property
    def total(self) -> float:
        return (
            self.true_positive + self.true_negative
            + self.false_positive + self.false_negative
        )

    @property
    def sensitivity(self) -> float:
        return safe_ratio(self.true_positive, self.true_positive + self.false_negative)

    @property
    def specificity(self) -> float:
        return safe_ratio(self.true_negative, self.true_negative + self.false_positive)

    @property
    def accuracy(self) -> float:
        return safe_ratio(self.true_positive + self.true_negative, self.total)

    @property
    def prevalence(self) -> float:
        return safe_ratio(self.true_positive + self.false_negative, self.total)

# ===================================== SCORING ====================================== #

def score_confusion(
    original: AbundanceTable,
    kept: AbundanceTable,
    removed: AbundanceTable,
    reference: ReferenceSet,
    atol: float = constants.DEFAULT_RECONSTRUCTION_ATOL,
    rtol: float = constants.DEFAULT_RECONSTRUCTION_RTOL
) -> pd.DataFrame:
    """Confusion masses and derived metrics for every sample.

    - true_negative:  reference mass in `kept` (genuine signal retained)
    - false_negative: non-reference mass in `kept` (contaminant retained)
    - true_positive:  non-reference mass in `removed` (contaminant removed)
    - false_positive: reference mass in `removed` (genuine signal removed)

    Metrics whose denominator is zero are NaN. The mass check uses both tolerances
    (`np.isclose`), so large real-valued abundances are compared relative to
    their sample total.

    Returns:
        DataFrame indexed by sample id with the confusion and metric columns.

    Raises:
        SchemaMismatchError:     The three tables do not share one sample set.
        ReconstructionViolation: The four masses do not add up to the original
                                 sample total.
    """
    require_same_samples(original, kept, removed)
    samples = pd.Index(original.samples, name="sample_id")

    def _mass(table: AbundanceTable, in_reference: bool) -> pd.Series:
        subset = table.in_reference(reference) if in_reference else table.not_in_reference(reference)
        return subset.sample_sums().reindex(samples).astype(float)

    frame = pd.DataFrame({
        "true_positive": _mass(removed, in_reference=False),
        "true_negative": _mass(kept, in_reference=True),
        "false_positive": _mass(removed, in_reference=True),
        "false_negative": _mass(kept, in_reference=False),
    }, index=samples)

    totals = frame.sum(axis=1)
    expected = original.sample_sums().reindex(samples).astype(float)
    close = np.isclose(totals.values, expected.values, rtol=rtol, atol=atol)
    if not close.all():
        raise ReconstructionViolation(
            f"Confusion masses do not add up to the sample totals for: "
            f"{totals.index[~close].tolist()}"
        )

    return add_confusion_metrics(frame)


def add_confusion_metrics(frame: pd.DataFrame) -> pd.DataFrame:
    """Append sensitivity, specificity, accuracy and prevalence columns."""
    frame = frame.copy()
    tp, tn = frame["true_positive"], frame["true_negative"]
    fp, fn = frame["false_positive"], frame["false_negative"]
    total = tp + tn + fp + fn
    frame["sensitivity"] = safe_ratio(tp, tp + fn)
    frame["specificity"] = safe_ratio(tn, tn + fp)
    frame["accuracy"] = safe_ratio(tp + tn, total)
    frame["prevalence"] = safe_ratio(tp + fn, total)
    return frame


def confusion_records(frame: pd.DataFrame) -> List[ConfusionRecord]:
    """Convert the output of `score_confusion` to `ConfusionRecord`s."""
    return [
        ConfusionRecord(
            sample_id=sample_id,
            true_positive=float(row["true_positive"]),
            true_negative=float(row["true_negative"]),
            false_positive=float(row["false_positive"]),
            false_negative=float(row["false_negative"]),
        )
        for sample_id, row in frame.iterrows()
    ]
