# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from typing import Hashable, Mapping, Union

# Third-Party Imports
import pandas as pd

# Local Imports
from decontam_eval import constants

# ==================================== DECISIONS ===================================== #

# Per-variant classification: True = contaminant (remove), False = genuine (keep)
DecisionLike = Union[pd.Series, Mapping[Hashable, bool]]


def as_decision(decision: DecisionLike) -> pd.Series:
    """Coerce a mapping or Series to a boolean Series indexed by variant id.

    Raises:
        ValueError: Duplicate variant ids, missing values, or values that are
                    not booleans (0/1 are accepted).
    """
    if isinstance(decision, pd.Series):
        series = decision.copy()
    else:
        series = pd.Series(dict(decision), dtype=object)

    if series.index.has_duplicates:
        dups = series.index[series.index.duplicated()].unique().tolist()
        raise ValueError(f"Decision lists variants more than once: {dups}")
    if series.isna().any():
        missing = series.index[series.isna()].tolist()
        raise ValueError(f"Decision has no value for variants: {missing}")
    if not series.isin([True, False]).all():
        bad = series[~series.isin([True, False])].to_dict()
        raise ValueError(f"Decision values must be boolean: {bad}")

    series = series.astype(bool)
    series.name = constants.DEFAULT_DECISION_COLUMN
    series.index.name = "variant_id"
    return series
