# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Hashable, Iterable, Tuple

# Local Imports
from decontam_eval import constants
from decontam_eval.abundance.decision import DecisionLike, as_decision
from decontam_eval.abundance.table import AbundanceTable, require_same_samples
from decontam_eval.errors import ReconstructionViolation

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# ==================================== PARTITION ===================================== #

def partition(
    table: AbundanceTable,
    decision: DecisionLike,
    default_contaminant: bool = False
) -> Tuple[AbundanceTable, AbundanceTable]:
    """Split a table into kept and removed variants.

    Every variant lands in exactly one of the two tables, so adding them back
    together reproduces `table`.

    Args:
        table:               Raw abundance table.
        decision:            Per-variant flags, True = contaminant (removed).
        default_contaminant: Classification for variants the decision does not
                             mention. Defaults to False, i.e. undecided
                             variants are kept.

    Returns:
        (kept, removed) tables sharing the samples of `table`.
    """
    decision = as_decision(decision)
    variants = list(table.variants)
    known = set(variants)

    unknown = [v for v in decision.index if v not in known]
    if unknown:
        logger.warning(
            f"Ignoring decisions for {len(unknown)} variant(s) not in the table: "
            f"{unknown[:10]}{' ...' if len(unknown) > 10 else ''}"
        )

    undecided = [v for v in variants if v not in decision.index]
    if undecided:
        fate = "removed" if default_contaminant else "kept"
        logger.debug(
            f"{len(undecided)} variant(s) without a decision are {fate} by default"
        )

    removed_ids = {
        v for v in variants
        if (bool(decision[v]) if v in decision.index else default_contaminant)
    }
    kept = table.subset_variants(lambda v: v not in removed_ids)
    removed = table.subset_variants(lambda v: v in removed_ids)
    return kept, removed


def partition_removed(
    table: AbundanceTable,
    removed_ids: Iterable[Hashable]
) -> Tuple[AbundanceTable, AbundanceTable]:
    """Partition from a precomputed set of removed variants; all others are kept."""
    return partition(table, {v: True for v in removed_ids}, default_contaminant=False)


def check_reconstruction(
    original: AbundanceTable,
    kept: AbundanceTable,
    removed: AbundanceTable,
    atol: float = constants.DEFAULT_RECONSTRUCTION_ATOL,
    rtol: float = constants.DEFAULT_RECONSTRUCTION_RTOL
) -> None:
    """Verify that `kept` and `removed` partition `original` exactly.

    Raises:
        SchemaMismatchError:     The three tables do not share one sample set.
        ReconstructionViolation: A variant is in both outputs, in neither, or
                                 the summed counts differ from the original.
    """
    require_same_samples(original, kept, removed)

    overlap = set(kept.variants) & set(removed.variants)
    if overlap:
        raise ReconstructionViolation(
            f"{len(overlap)} variant(s) are both kept and removed: {sorted(map(str, overlap))}"
        )

    covered = set(kept.variants) | set(removed.variants)
    expected = set(original.variants)
    if covered != expected:
        lost = sorted(map(str, expected - covered))
        extra = sorted(map(str, covered - expected))
        raise ReconstructionViolation(
            f"Partition does not cover the original variants (lost: {lost}; extra: {extra})"
        )

    if not kept.add(removed).equals(original, atol=atol, rtol=rtol):
        raise ReconstructionViolation(
            "Kept and removed counts do not add up to the original table"
        )
