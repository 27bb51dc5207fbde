from pathlib import Path

# ==================================================================================== #
# PROGRESS BAR
# ==================================================================================== #
# Colors are rich/X11 color names

# Width that task descriptions are padded or cut to
DEFAULT_N: int = 65
DEFAULT_BAR_WIDTH: int = 40
DEFAULT_DESCRIPTION_STYLE: str = "white"
# Filled portion of the bar and the spinner
DEFAULT_BAR_COLUMN_COMPLETE_STYLE: str = "honeydew2"
DEFAULT_FINISHED_STYLE: str = "dark_cyan"
DEFAULT_PROGRESS_PERCENTAGE_STYLE: str = "honeydew2"
# "finished/total" method run counter
DEFAULT_M_OF_N_COMPLETE_STYLE: str = "honeydew2"
DEFAULT_TIME_ELAPSED_STYLE: str = "light_sky_blue1"

# ==================================================================================== #
# SETTINGS
# ==================================================================================== #
# Repository root / references / config.yaml
DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "references" / "config.yaml"
DEFAULT_LOG_DIR = "logs"
DEFAULT_OUTPUT_DIR = "results"
DEFAULT_MAX_WORKERS: int = 1

# ==================================================================================== #
# METADATA
# ==================================================================================== #
DEFAULT_META_ID_COLUMN = '#sampleid'
DEFAULT_CONCENTRATION_COLUMN = 'dna_concentration'
DEFAULT_DILUTION_COLUMN = 'dilution'

# ==================================================================================== #
# ABUNDANCE TABLES
# ==================================================================================== #
# Each sample row of a relative abundance table sums to this value
RELATIVE_ABUNDANCE_SCALE: float = 100.0
# Absolute and relative tolerance when checking that kept + removed reconstructs
# the original table
DEFAULT_RECONSTRUCTION_ATOL: float = 1e-8
DEFAULT_RECONSTRUCTION_RTOL: float = 1e-9

# Header tokens that mark the feature id column of a QIIME2-exported TSV table
TABLE_HEADER_TOKENS = (
    "#OTU ID", "#OTUID", "#OTU_ID", "#Feature ID", "#FEATURE ID",
    "feature-id", "feature id", "OTU ID", "Feature ID"
)

# ==================================================================================== #
# DETECTION METHODS
# ==================================================================================== #
# Separator between the method family and the free-text part of a method label,
# e.g. "Decontam frequency, 0.5"
DEFAULT_LABEL_SEPARATOR: str = ","
# Relative abundance (%) below which a variant is removed by the abundance filter
DEFAULT_ABUNDANCE_THRESHOLD: float = 0.1
# Minimum total count in the blanks for a variant to be treated as a control contaminant
DEFAULT_CONTROL_MIN_COUNT: int = 1
DEFAULT_DECISION_COLUMN = 'contaminant'

# ==================================================================================== #
# RESULTS
# ==================================================================================== #
REFERENCE_COLUMN_PREFIX = 'reference_abundance__'

ID_COLUMNS = ['method_label', 'method_type', 'sample_id']
CONFUSION_COLUMNS = [
    'true_positive', 'true_negative', 'false_positive', 'false_negative'
]
METRIC_COLUMNS = ['sensitivity', 'specificity', 'accuracy', 'prevalence']
DIVERSITY_COLUMNS = ['observed', 'shannon', 'inv_simpson']
REMOVAL_COLUMNS = [
    'pct_reference_removed', 'pct_contaminant_removed',
    'contaminant_relative_abundance'
]
RESULT_COLUMNS = (
    ID_COLUMNS + CONFUSION_COLUMNS + METRIC_COLUMNS + DIVERSITY_COLUMNS
    + REMOVAL_COLUMNS
)
DEFAULT_SUMMARY_METRICS = METRIC_COLUMNS + DIVERSITY_COLUMNS + REMOVAL_COLUMNS
