# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from typing import Iterable

# ==================================== EXCEPTIONS ==================================== #

class DecontamEvalError(Exception):
    """Base exception for contaminant-removal evaluation errors."""
    pass


class DegenerateSampleError(DecontamEvalError, ValueError):
    """One or more samples have zero total counts.

    Raised for strict normalization and when a whole table is empty; in all
    other cases the affected values are NaN.
    """
    def __init__(self, samples: Iterable[str], message: str = ""):
        self.samples = list(samples)
        if not message:
            message = (
                f"{len(self.samples)} sample(s) with zero total counts: "
                f"{', '.join(map(str, self.samples))}"
            )
        super().__init__(message)


class SchemaMismatchError(DecontamEvalError, ValueError):
    """Tables that are combined or compared do not share the same samples."""
    pass


class ReconstructionViolation(DecontamEvalError):
    """Kept and removed tables do not add back up to the original table."""
    pass

# ===================================== WARNINGS ===================================== #

class UnknownVariantInReferenceSet(UserWarning):
    """A reference variant is absent from the abundance table."""
    pass
