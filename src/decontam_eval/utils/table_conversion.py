# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Dict, Union

# Third-Party Imports
import pandas as pd
from biom import Table

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# ================================ TABLE CONVERSION ================================== #

def table_to_df(table: Union[Dict, Table, pd.DataFrame]) -> pd.DataFrame:
    """Convert various table formats to samples × variants DataFrame.

    Handles:
    - Pandas DataFrame (returned as a copy)
    - BIOM Table (transposes to samples × variants)
    - Dictionary of {variant: {sample: count}} (converts to DataFrame)

    Args:
        table: Input table in various formats.

    Returns:
        DataFrame in samples × variants orientation.

    Raises:
        TypeError: For unsupported input types
    """
    if isinstance(table, pd.DataFrame):  # samples × variants
        return table.copy()
    if isinstance(table, Table):         # variants × samples
        return table.to_dataframe(dense=True).T
    if isinstance(table, dict):          # samples × variants
        return pd.DataFrame(table)
    raise TypeError("Input must be BIOM Table, dict, or DataFrame.")


def to_biom(table: Union[Dict, Table, pd.DataFrame]) -> Table:
    """Convert various table formats to BIOM Table with variants × samples
    orientation.

    Args:
        table: Input table in various formats (samples × variants if tabular).

    Returns:
        BIOM Table object.

    Raises:
        TypeError: For unsupported input types.
    """
    if isinstance(table, Table):
        return table
    if isinstance(table, dict):
        table = pd.DataFrame(table)
    if isinstance(table, pd.DataFrame):
        # samples × variants → variants × samples for BIOM
        return Table(
            table.values.T,
            observation_ids=[str(v) for v in table.columns],
            sample_ids=[str(s) for s in table.index]
        )
    raise TypeError("Input must be BIOM Table, dict, or DataFrame.")
