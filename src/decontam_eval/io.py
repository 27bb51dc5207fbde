# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from pathlib import Path
from typing import Optional, Union

# Third‑Party Imports
import h5py
import pandas as pd
from biom import load_table
from biom.table import Table

# Local Imports
from decontam_eval import constants
from decontam_eval.abundance.decision import as_decision
from decontam_eval.abundance.reference import ReferenceSet
from decontam_eval.abundance.table import AbundanceTable

# ========================== INITIALISATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# ===================================== TABLES ======================================= #

def import_table_biom(biom_path: Union[str, Path]) -> AbundanceTable:
    """Load a BIOM table (HDF5 or JSON) from file.

    Args:
        biom_path: Path to .biom file.

    Returns:
        Samples × variants abundance table.
    """
    biom_path = Path(biom_path)
    if not biom_path.exists():
        raise FileNotFoundError(f"BIOM file not found: {biom_path}")
    try:
        with h5py.File(biom_path, "r") as f:
            table = Table.from_hdf5(f)
    except OSError:
        # Not HDF5; let biom sniff JSON / TSV formats
        table = load_table(str(biom_path))
    logger.debug(f"Loaded {biom_path.name}: {table.shape[1]} samples × {table.shape[0]} variants")
    return AbundanceTable.from_biom(table)


def import_table_tsv(table_tsv: Union[str, Path]) -> AbundanceTable:
    """
    Load a QIIME2-exported feature table (TSV, variants × samples).
    Handles the "# Constructed from biom file" preamble so that the header row
    beginning with "#OTU ID" is kept rather than discarded as a comment, and
    drops a trailing taxonomy column.
    """
    table_tsv = Path(table_tsv)
    if not table_tsv.exists():
        raise FileNotFoundError(f"Table file not found: {table_tsv}")

    skiprows = 0
    with open(table_tsv, "r") as handle:
        for line in handle:
            stripped = line.strip()
            if not stripped:
                skiprows += 1
                continue
            if stripped.startswith("#") and not stripped.startswith(constants.TABLE_HEADER_TOKENS):
                skiprows += 1
                continue
            # Header row found
            break

    df = pd.read_csv(table_tsv, sep="\t", skiprows=skiprows, index_col=0)
    df.index = df.index.astype(str)
    df.columns = [str(c).lstrip("#") for c in df.columns]
    if len(df.columns) and df.columns[-1].lower().startswith("taxonomy"):
        df = df.iloc[:, :-1]
    return AbundanceTable(df.T)


def import_table(path: Union[str, Path]) -> AbundanceTable:
    """Load a table, choosing the reader from the file suffix."""
    path = Path(path)
    if path.suffix.lower() in (".tsv", ".txt", ".tab"):
        return import_table_tsv(path)
    return import_table_biom(path)

# =================================== REFERENCE SET ================================== #

def import_reference(path: Union[str, Path]) -> ReferenceSet:
    """Load reference variant ids, one per line; blank lines and '#' comments
    are skipped."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Reference file not found: {path}")
    with open(path, "r") as handle:
        ids = [
            line.strip().split("\t")[0] for line in handle
            if line.strip() and not line.lstrip().startswith("#")
        ]
    if not ids:
        raise ValueError(f"Reference file is empty: {path}")
    return ReferenceSet.from_iterable(ids)

# ===================================== METADATA ===================================== #

def import_metadata_tsv(
    tsv_path: Union[str, Path],
    sample_id_column: Optional[str] = None
) -> pd.DataFrame:
    """Load a sample metadata TSV file indexed by sample id.

    Args:
        tsv_path:         Path to metadata TSV file.
        sample_id_column: Column holding sample ids; by default the first of
                          '#sampleid', 'sample-id', 'sample_id' found
                          (case-insensitive), else the first column.

    Raises:
        FileNotFoundError: If specified path doesn't exist.
    """
    tsv_path = Path(tsv_path)
    if not tsv_path.exists():
        raise FileNotFoundError(f"Metadata file not found: {tsv_path}")

    header = pd.read_csv(tsv_path, sep="\t", nrows=0).columns
    if sample_id_column is None:
        lowered = {c.lower(): c for c in header}
        sample_id_column = next(
            (lowered[c] for c in (constants.DEFAULT_META_ID_COLUMN, "sample-id", "sample_id")
             if c in lowered),
            header[0]
        )
    if sample_id_column not in header:
        raise ValueError(f"Sample id column '{sample_id_column}' not in {tsv_path}")

    df = pd.read_csv(tsv_path, sep="\t", dtype={sample_id_column: str})
    # QIIME2 metadata may carry a '#q2:types' directive row
    df = df[~df[sample_id_column].astype(str).str.startswith("#")]
    df = df.set_index(df[sample_id_column].astype(str)).drop(columns=[sample_id_column])
    df.index.name = "sample_id"
    return df

# ===================================== DECISIONS ==================================== #

_TRUE_STRINGS = {"true", "t", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "f", "no", "n", "0"}


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"Cannot interpret '{value}' as a contaminant flag")


def read_decisions(
    path: Union[str, Path],
    column: str = constants.DEFAULT_DECISION_COLUMN,
    score_column: Optional[str] = None,
    threshold: Optional[float] = None
) -> pd.Series:
    """Load an externally computed decision (e.g. a decontam result table).

    Variant ids are read from the first column. With `score_column` and
    `threshold`, variants scoring strictly below the threshold are
    contaminants and missing scores are not; otherwise the boolean `column`
    is used.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Decision file not found: {path}")
    df = pd.read_csv(path, sep="\t", index_col=0)
    df.index = df.index.astype(str)

    if score_column is not None:
        if threshold is None:
            raise ValueError("A score column needs a threshold")
        if score_column not in df.columns:
            raise ValueError(f"Score column '{score_column}' not in {path}")
        scores = pd.to_numeric(df[score_column], errors="coerce")
        return as_decision((scores < threshold).fillna(False))

    if column not in df.columns:
        raise ValueError(f"Decision column '{column}' not in {path}")
    return as_decision(df[column].map(_parse_bool))

# ===================================== RESULTS ====================================== #

def write_results_tsv(frame: pd.DataFrame, path: Union[str, Path]) -> Path:
    """Write a result table; NaN becomes an empty cell."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, sep="\t", index=False, na_rep="")
    logger.info(f"Wrote {len(frame)} rows → {path}")
    return path
