# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, Optional

# Third-Party Imports
import pandas as pd

# Local Imports
from decontam_eval import constants
from decontam_eval.abundance.decision import DecisionLike, as_decision
from decontam_eval.abundance.table import AbundanceTable
from decontam_eval.errors import DegenerateSampleError
from decontam_eval.io import read_decisions

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# =================================== METHOD TYPES =================================== #

class MethodType(Enum):
    """Families of contaminant detection methods, in reporting order."""
    UNFILTERED = "unfiltered"
    FREQUENCY = "frequency"
    PREVALENCE = "prevalence"
    COMBINED = "combined"
    SOURCE_MIXTURE = "source_mixture"
    ABUNDANCE_THRESHOLD = "abundance_threshold"
    CONTROL_SUBTRACTION = "control_subtraction"

    @property
    def position(self) -> int:
        return list(MethodType).index(self)

    @classmethod
    def parse(cls, value: Any) -> "MethodType":
        """Accept a MethodType, its value, or a known alias (case-insensitive)."""
        if isinstance(value, cls):
            return value
        key = _normalize_type_key(str(value))
        if key in LABEL_ALIASES:
            return LABEL_ALIASES[key]
        raise ValueError(f"Unknown method type: '{value}'")


def _normalize_type_key(text: str) -> str:
    return re.sub(r"[\s\-]+", "_", text.strip().lower())


LABEL_ALIASES: Dict[str, MethodType] = {
    **{t.value: t for t in MethodType},
    "original": MethodType.UNFILTERED,
    "none": MethodType.UNFILTERED,
    "decontam_frequency": MethodType.FREQUENCY,
    "decontam_prevalence": MethodType.PREVALENCE,
    "decontam_combined": MethodType.COMBINED,
    "decontam_either": MethodType.COMBINED,
    "sourcetracker": MethodType.SOURCE_MIXTURE,
    "abundance": MethodType.ABUNDANCE_THRESHOLD,
    "abundance_filter": MethodType.ABUNDANCE_THRESHOLD,
    "control": MethodType.CONTROL_SUBTRACTION,
    "blank_removal": MethodType.CONTROL_SUBTRACTION,
    "remove_blank_variants": MethodType.CONTROL_SUBTRACTION,
}


def method_type_from_label(
    label: str,
    separator: str = constants.DEFAULT_LABEL_SEPARATOR
) -> MethodType:
    """Derive the method family from a label such as "Decontam frequency, 0.5".

    Rule: take the text before the first `separator`, strip it, lower-case it,
    turn runs of spaces/hyphens into "_" and look it up among the MethodType
    values and aliases. A label without the separator is looked up whole.

    Raises:
        ValueError: The prefix is not a known method family.
    """
    prefix = label.split(separator, 1)[0]
    try:
        return MethodType.parse(prefix)
    except ValueError:
        raise ValueError(
            f"Cannot derive a method type from label '{label}' "
            f"(prefix '{prefix.strip()}')"
        ) from None

# ==================================== DETECTORS ===================================== #

class Detector:
    """Contract for a contaminant detection method.

    `classify` returns a per-variant boolean Series, True = contaminant. The
    evaluation never looks at how the decision was produced.
    """
    requires_covariate: bool = False

    def classify(
        self,
        table: AbundanceTable,
        covariate: Optional[pd.Series] = None
    ) -> pd.Series:
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        return {"detector": type(self).__name__}

    def __repr__(self) -> str:
        params = ", ".join(
            f"{k}={v}" for k, v in self.describe().items() if k != "detector"
        )
        return f"{type(self).__name__}({params})"


class NoRemovalDetector(Detector):
    """Baseline: keeps every variant."""

    def classify(self, table, covariate=None):
        return as_decision(pd.Series(False, index=list(table.variants), dtype=bool))


class AbundanceThresholdDetector(Detector):
    """Removes variants whose relative abundance over the whole table (%) is
    below `threshold`. Uses neither ground truth nor a covariate."""

    def __init__(self, threshold: float = constants.DEFAULT_ABUNDANCE_THRESHOLD):
        if not 0 <= threshold <= constants.RELATIVE_ABUNDANCE_SCALE:
            raise ValueError(
                f"Abundance threshold must be within [0, "
                f"{constants.RELATIVE_ABUNDANCE_SCALE}], got {threshold}"
            )
        self.threshold = threshold

    def classify(self, table, covariate=None):
        totals = table.variant_sums().astype(float)
        grand_total = totals.sum()
        if grand_total <= 0:
            raise DegenerateSampleError(
                table.samples, "Abundance filter needs a table with non-zero counts"
            )
        rel = totals / grand_total * constants.RELATIVE_ABUNDANCE_SCALE
        return as_decision(rel < self.threshold)

    def describe(self):
        return {**super().describe(), "threshold": self.threshold}


class ControlDetector(Detector):
    """Removes every variant observed in the negative controls.

    Args:
        blank_table: Abundance table of the blank / negative control samples.
        min_count:   Minimum total count across the blanks for a variant to be
                     treated as a contaminant.
    """

    def __init__(
        self,
        blank_table: AbundanceTable,
        min_count: float = constants.DEFAULT_CONTROL_MIN_COUNT
    ):
        self.blank_table = blank_table
        self.min_count = min_count
        blank_totals = blank_table.variant_sums()
        self.contaminants = frozenset(blank_totals.index[blank_totals >= min_count])

    def classify(self, table, covariate=None):
        variants = list(table.variants)
        return as_decision(pd.Series(
            [v in self.contaminants for v in variants], index=variants, dtype=bool
        ))

    def describe(self):
        return {
            **super().describe(),
            "blank_samples": len(self.blank_table.samples),
            "min_count": self.min_count,
        }


class PrecomputedDetector(Detector):
    """Decision computed outside this package, e.g. an exported decontam result."""

    def __init__(self, decision: DecisionLike, source: Optional[str] = None):
        self.decision = as_decision(decision)
        self.source = source

    def classify(self, table, covariate=None):
        return self.decision.copy()

    def describe(self):
        return {
            **super().describe(),
            "source": self.source,
            "n_contaminants": int(self.decision.sum()),
        }


class CallableDetector(Detector):
    """Wraps an external `func(table, covariate, **params) -> decision`."""

    def __init__(
        self,
        func: Callable[..., DecisionLike],
        requires_covariate: bool = False,
        **params
    ):
        self.func = func
        self.requires_covariate = requires_covariate
        self.params = params

    def classify(self, table, covariate=None):
        if self.requires_covariate and covariate is None:
            raise ValueError(
                f"{getattr(self.func, '__name__', 'detector')} requires a sample covariate"
            )
        return as_decision(self.func(table, covariate, **self.params))

    def describe(self):
        return {
            **super().describe(),
            "func": getattr(self.func, "__name__", repr(self.func)),
            **self.params,
        }

# ===================================== REGISTRY ===================================== #

def _precomputed_from_params(params: Dict, blank_table: Optional[AbundanceTable]) -> Detector:
    if "decisions" not in params:
        raise ValueError("Precomputed methods need a 'decisions' file in params")
    decision = read_decisions(
        params["decisions"],
        column=params.get("column", constants.DEFAULT_DECISION_COLUMN),
        score_column=params.get("score_column"),
        threshold=params.get("threshold"),
    )
    return PrecomputedDetector(decision, source=str(params["decisions"]))


def _control_from_params(params: Dict, blank_table: Optional[AbundanceTable]) -> Detector:
    if blank_table is None:
        raise ValueError("Control-based methods need a blank/negative control table")
    return ControlDetector(
        blank_table, min_count=params.get("min_count", constants.DEFAULT_CONTROL_MIN_COUNT)
    )


DETECTOR_REGISTRY: Dict[MethodType, Callable[[Dict, Optional[AbundanceTable]], Detector]] = {
    MethodType.UNFILTERED: lambda params, blanks: NoRemovalDetector(),
    MethodType.FREQUENCY: _precomputed_from_params,
    MethodType.PREVALENCE: _precomputed_from_params,
    MethodType.COMBINED: _precomputed_from_params,
    MethodType.SOURCE_MIXTURE: _precomputed_from_params,
    MethodType.ABUNDANCE_THRESHOLD: lambda params, blanks: AbundanceThresholdDetector(
        params.get("threshold", constants.DEFAULT_ABUNDANCE_THRESHOLD)
    ),
    MethodType.CONTROL_SUBTRACTION: _control_from_params,
}


def detector_from_config(
    method_type: MethodType,
    params: Optional[Dict] = None,
    blank_table: Optional[AbundanceTable] = None
) -> Detector:
    """Build the detector for a configured method entry."""
    method_type = MethodType.parse(method_type)
    return DETECTOR_REGISTRY[method_type](params or {}, blank_table)
