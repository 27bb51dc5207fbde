# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
import warnings
from dataclasses import dataclass, field
from typing import FrozenSet, Hashable, Iterable, Iterator, List, Tuple

# Local Imports
from decontam_eval.abundance.table import AbundanceTable
from decontam_eval.errors import UnknownVariantInReferenceSet

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# ================================== REFERENCE SET =================================== #

@dataclass(frozen=True)
class ReferenceSet:
    """Variants expected in the mock community (the ground truth).

    Order is kept as given (first occurrence wins) because it fixes the order of
    the per-variant result columns.
    """
    variants: Tuple[Hashable, ...]
    _members: FrozenSet[Hashable] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        ordered = tuple(dict.fromkeys(self.variants))
        object.__setattr__(self, "variants", ordered)
        object.__setattr__(self, "_members", frozenset(ordered))

    @classmethod
    def from_iterable(cls, variants: Iterable[Hashable]) -> "ReferenceSet":
        return cls(tuple(variants))

    def __contains__(self, variant: Hashable) -> bool:
        return variant in self._members

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.variants)

    def __len__(self) -> int:
        return len(self.variants)

    def missing_from(self, table: AbundanceTable) -> List[Hashable]:
        present = set(table.variants)
        return [v for v in self.variants if v not in present]

    def check_against(self, table: AbundanceTable) -> List[Hashable]:
        """Warn about reference variants absent from `table`.

        Missing variants only contribute zero mass, so this never raises.
        """
        missing = self.missing_from(table)
        if missing:
            msg = (
                f"{len(missing)}/{len(self)} reference variant(s) not found in "
                f"the abundance table: {missing}"
            )
            logger.warning(msg)
            warnings.warn(msg, UnknownVariantInReferenceSet, stacklevel=2)
        return missing
