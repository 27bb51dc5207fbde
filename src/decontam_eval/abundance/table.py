# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Callable, Hashable, Iterable, List, Tuple, Union

# Third-Party Imports
import numpy as np
import pandas as pd
from biom import Table

# Local Imports
from decontam_eval import constants
from decontam_eval.errors import DegenerateSampleError, SchemaMismatchError
from decontam_eval.utils.table_conversion import table_to_df, to_biom

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# ================================= ABUNDANCE TABLE ================================== #

class AbundanceTable:
    """Samples × sequence variants abundance matrix.

    The wrapped frame is copied on the way in and on the way out; every
    transform returns a new table and never touches the source.

    Args:
        counts:   Samples × variants DataFrame of non-negative counts.
        relative: True for a relative abundance table produced by `normalize`.
                  Only relative tables may hold NaN (rows of degenerate samples).

    Raises:
        ValueError: Duplicate ids, negative counts or missing values.
        TypeError:  Non-numeric columns.
    """

    def __init__(self, counts: pd.DataFrame, relative: bool = False):
        df = pd.DataFrame(counts).copy()
        self._validate(df, relative)
        df.index.name = "sample_id"
        df.columns.name = "variant_id"
        self._counts = df
        self._relative = relative

    @staticmethod
    def _validate(df: pd.DataFrame, relative: bool) -> None:
        if df.index.has_duplicates:
            dups = df.index[df.index.duplicated()].unique().tolist()
            raise ValueError(f"Duplicate sample ids: {dups}")
        if df.columns.has_duplicates:
            dups = df.columns[df.columns.duplicated()].unique().tolist()
            raise ValueError(f"Duplicate variant ids: {dups}")
        non_numeric = [
            col for col, dtype in df.dtypes.items()
            if not pd.api.types.is_numeric_dtype(dtype)
        ]
        if non_numeric:
            raise TypeError(f"Non-numeric abundance columns: {non_numeric}")
        if not relative and df.isna().values.any():
            raise ValueError("Abundance table contains missing values")
        if (df.values < 0).any():
            raise ValueError("Abundance table contains negative values")

    # -------------------------------- constructors -------------------------------- #

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "AbundanceTable":
        """Build from a samples × variants DataFrame."""
        return cls(df)

    @classmethod
    def from_biom(cls, table: Table) -> "AbundanceTable":
        """Build from a BIOM table (variants × samples)."""
        return cls(table_to_df(table))

    def _derive(self, df: pd.DataFrame, relative: bool = None) -> "AbundanceTable":
        return AbundanceTable(df, relative=self._relative if relative is None else relative)

    # --------------------------------- accessors ---------------------------------- #

    @property
    def samples(self) -> Tuple[Hashable, ...]:
        return tuple(self._counts.index)

    @property
    def variants(self) -> Tuple[Hashable, ...]:
        return tuple(self._counts.columns)

    @property
    def shape(self) -> Tuple[int, int]:
        return self._counts.shape

    @property
    def is_relative(self) -> bool:
        return self._relative

    def get(self, sample: Hashable, variant: Hashable) -> float:
        """Count for one (sample, variant) pair; 0 for variants not in the table."""
        if sample not in self._counts.index:
            raise KeyError(f"Unknown sample: {sample}")
        if variant not in self._counts.columns:
            return 0.0
        return self._counts.at[sample, variant]

    def to_dataframe(self) -> pd.DataFrame:
        return self._counts.copy()

    def to_biom(self) -> Table:
        return to_biom(self._counts)

    def sample_sums(self) -> pd.Series:
        """Total per sample (row sums)."""
        return self._counts.sum(axis=1)

    def variant_sums(self) -> pd.Series:
        """Total per variant (column sums)."""
        return self._counts.sum(axis=0)

    def degenerate_samples(self) -> List[Hashable]:
        """Samples whose total is zero and cannot be normalized."""
        totals = self.sample_sums()
        return totals.index[totals <= 0].tolist()

    # --------------------------------- transforms --------------------------------- #

    def normalize(self, strict: bool = False) -> "AbundanceTable":
        """Relative abundance table where each sample row sums to 100.

        Samples with a zero total get an all-NaN row and are logged. With
        `strict=True` they raise `DegenerateSampleError` instead.
        """
        degenerate = self.degenerate_samples()
        if degenerate:
            if strict:
                raise DegenerateSampleError(degenerate)
            logger.warning(
                f"{len(degenerate)} sample(s) with zero total counts cannot be "
                f"normalized and are set to NaN: {degenerate}"
            )
        totals = self.sample_sums()
        safe_totals = totals.where(totals > 0)
        rel = self._counts.astype(float).div(safe_totals, axis=0)
        return self._derive(rel * constants.RELATIVE_ABUNDANCE_SCALE, relative=True)

    def subset_variants(self, predicate: Callable[[Hashable], bool]) -> "AbundanceTable":
        """Restrict to the variants satisfying `predicate`; samples unchanged."""
        keep = [v for v in self._counts.columns if predicate(v)]
        return self._derive(self._counts.loc[:, keep])

    def in_reference(self, reference: Iterable[Hashable]) -> "AbundanceTable":
        members = set(reference)
        return self.subset_variants(lambda v: v in members)

    def not_in_reference(self, reference: Iterable[Hashable]) -> "AbundanceTable":
        members = set(reference)
        return self.subset_variants(lambda v: v not in members)

    def subset_samples(self, samples: Iterable[Hashable]) -> "AbundanceTable":
        """Restrict to the given samples, in the given order."""
        samples = list(samples)
        unknown = [s for s in samples if s not in self._counts.index]
        if unknown:
            raise SchemaMismatchError(f"Samples not in table: {unknown}")
        return self._derive(self._counts.loc[samples, :])

    def add(self, other: "AbundanceTable") -> "AbundanceTable":
        """Elementwise sum over the union of variants (absent entries count 0)."""
        self._require_same_samples(other)
        if self._relative != other.is_relative:
            raise ValueError("Cannot add a relative table to an absolute one")
        other_df = other.to_dataframe().reindex(index=self._counts.index)
        summed = self._counts.add(other_df, fill_value=0)
        return self._derive(summed)

    def equals(
        self,
        other: "AbundanceTable",
        atol: float = 0.0,
        rtol: float = 0.0
    ) -> bool:
        """Whether both tables hold the same counts, treating absent variants as 0."""
        if set(self.samples) != set(other.samples):
            return False
        variants = list(dict.fromkeys(self.variants + other.variants))
        a = self._counts.reindex(columns=variants, fill_value=0)
        b = other.to_dataframe().reindex(index=a.index, columns=variants, fill_value=0)
        return bool(np.allclose(
            a.values.astype(float), b.values.astype(float),
            rtol=rtol, atol=atol, equal_nan=True
        ))

    def _require_same_samples(self, other: "AbundanceTable") -> None:
        if set(self.samples) != set(other.samples):
            only_self = sorted(map(str, set(self.samples) - set(other.samples)))
            only_other = sorted(map(str, set(other.samples) - set(self.samples)))
            raise SchemaMismatchError(
                f"Sample sets differ (only in first: {only_self}; "
                f"only in second: {only_other})"
            )

    def __len__(self) -> int:
        return len(self._counts.index)

    def __repr__(self) -> str:
        kind = "relative" if self._relative else "counts"
        return (
            f"AbundanceTable({len(self.samples)} samples × "
            f"{len(self.variants)} variants, {kind})"
        )


def require_same_samples(*tables: AbundanceTable) -> None:
    """Raise `SchemaMismatchError` unless all tables share one sample set."""
    first = tables[0]
    for other in tables[1:]:
        first._require_same_samples(other)


TableLike = Union[AbundanceTable, pd.DataFrame, Table]


def as_abundance_table(table: TableLike) -> AbundanceTable:
    if isinstance(table, AbundanceTable):
        return table
    if isinstance(table, Table):
        return AbundanceTable.from_biom(table)
    if isinstance(table, pd.DataFrame):
        return AbundanceTable(table)
    raise TypeError("Input must be AbundanceTable, BIOM Table, or DataFrame.")
