# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging

# Third-Party Imports
import numpy as np
import pandas as pd
from skbio.diversity import alpha

# Local Imports
from decontam_eval import constants
from decontam_eval.abundance.table import AbundanceTable

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("decontam_eval")

# ================================= ALPHA DIVERSITY ================================== #

def alpha_diversity(table: AbundanceTable) -> pd.DataFrame:
    """
    Calculate richness and diversity for each sample.

    - observed:    number of variants with a count > 0
    - shannon:     skbio Shannon entropy with the natural log
    - inv_simpson: skbio inverse Simpson, 1 / sum(p^2)

    Samples with zero total reads get NaN for shannon and inv_simpson (their
    observed count is 0).

    Args:
        table: Raw (unnormalized) abundance table.

    Returns:
        DataFrame indexed by sample id with one column per index.
    """
    if table.is_relative:
        raise ValueError("Diversity requires raw counts, not a relative abundance table")

    df = table.to_dataframe().astype(float)

    # Precompute common statistics vectorially
    totals = df.sum(axis=1)
    observed = (df > 0).sum(axis=1).astype(int)
    proportions = df.div(totals.where(totals > 0), axis=0)

    shannon = pd.Series(np.nan, index=df.index)
    inv_simpson = pd.Series(np.nan, index=df.index)
    for sample_id in totals.index[totals > 0]:
        values = proportions.loc[sample_id].to_numpy()
        shannon[sample_id] = alpha.shannon(values, base=np.e) + 0.0
        inv_simpson[sample_id] = alpha.inv_simpson(values)

    degenerate = totals.index[totals <= 0]
    if len(degenerate):
        logger.debug(
            f"Diversity undefined for {len(degenerate)} empty sample(s): {degenerate.tolist()}"
        )

    result = pd.DataFrame({
        "observed": observed,
        "shannon": shannon,
        "inv_simpson": inv_simpson,
    }, index=df.index)
    return result[constants.DIVERSITY_COLUMNS]
