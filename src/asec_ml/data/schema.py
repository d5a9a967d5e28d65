"""
Data schema definitions and constants.

Defines raw IPUMS-CPS ASEC column names, their recognized code sets, and the
analysis variable names used throughout the pipeline.
"""

from typing import Dict, List

# ============================================================================
# Analysis Column Names
# ============================================================================

# Identifier columns
YEAR_COL = "year"
ID_COLS = [YEAR_COL, "serial", "pernum"]

# Survey weight
WEIGHT_COL = "weight"

# Labor-force group recoded from EMPSTAT
LFSTATUS_COL = "lfstatus"

# Target column
TARGET_COL = "employed"

# Subgroup flag for transfer evaluation
IMMIGRANT_COL = "immigrant"

AGE_COL = "age"
STATE_COL = "state"

# Numeric fields (NIU recoded to 0 at normalization)
NUMERIC_COLS = ["age", "inctot", "incwage", "incunemp", "incwelfr", "ftotval"]

# Binary fields (1/2 survey codes recoded to 0/1)
BINARY_COLS = ["female", "any_coverage", "medicaid", "spm_mortgage"]

# Coded categorical fields
CATEGORICAL_COLS = [
    "race",
    "hispanic",
    "educ",
    "citizen",
    "state",
    "health",
    "occ",
    "ind",
    "classwkr",
    "unitsstr",
    "whymove",
    "paidgh",
]

# Binaries enter the encoder as two-level categoricals
ENCODED_COLS = CATEGORICAL_COLS + BINARY_COLS

# ============================================================================
# Level Markers
# ============================================================================

# "Not in universe" level for categoricals: encodes as an all-zero block
NIU_LEVEL = -1

# Level assigned to categories collapsed by the rare-level step
OTHER_LEVEL = -2

# ============================================================================
# Labor-Force Status (EMPSTAT)
# ============================================================================

LF_EMPLOYED = "employed"
LF_UNEMPLOYED = "unemployed"
LF_NILF = "nilf"
LF_ARMED_FORCES = "armed_forces"

LFSTATUS_LEVELS = [LF_EMPLOYED, LF_UNEMPLOYED, LF_NILF, LF_ARMED_FORCES]

EMPSTAT_GROUPS: Dict[int, str] = {
    1: LF_ARMED_FORCES,
    10: LF_EMPLOYED,  # at work
    12: LF_EMPLOYED,  # has job, not at work last week
    20: LF_UNEMPLOYED,
    21: LF_UNEMPLOYED,  # experienced worker
    22: LF_UNEMPLOYED,  # new worker
    30: LF_NILF,
    31: LF_NILF,  # housework
    32: LF_NILF,  # unable to work
    33: LF_NILF,  # school
    34: LF_NILF,  # other
    35: LF_NILF,  # unpaid, lt 15 hours
    36: LF_NILF,  # retired
}

LABEL_BY_LFSTATUS: Dict[str, int] = {LF_EMPLOYED: 1, LF_UNEMPLOYED: 0}

# ============================================================================
# Citizenship (CITIZEN)
# ============================================================================

# 1 born in US, 2 born in outlying area, 3 born abroad of US parents,
# 4 naturalized, 5 not a citizen
CITIZEN_RECODE: Dict[int, int] = {1: 1, 2: 1, 3: 2, 4: 3, 5: 4}

CITIZEN_NATIVE_LEVELS = frozenset({1, 2})
CITIZEN_IMMIGRANT_LEVELS = frozenset({3, 4})

# ============================================================================
# Other Code Sets
# ============================================================================

# Single-race codes plus two- and three-race combinations
RACE_CODES = frozenset({100, 200, 300, 651, 652} | set(range(801, 821)))

# General Hispanic-origin codes; detailed Central/South American codes fold into 610
HISPAN_CODES = frozenset({0, 100, 200, 300, 400, 500, 600, 610})
HISPAN_DETAIL_RANGE = (611, 699)

# EDUC: "none or preschool" (2) folds into "grades 1-4" (10)
EDUC_CODES = frozenset({10, 20, 30, 40, 50, 60, 71, 73, 81, 91, 92, 111, 123, 124, 125})
EDUC_RECODE: Dict[int, int] = {2: 10}

# 50 state FIPS codes; DC, territories and multi-state groupings are non-standard
STATE_FIPS = frozenset(
    {
        1, 2, 4, 5, 6, 8, 9, 10, 12, 13, 15, 16, 17, 18, 19, 20, 21, 22, 23, 24,
        25, 26, 27, 28, 29, 30, 31, 32, 33, 34, 35, 36, 37, 38, 39, 40, 41, 42,
        44, 45, 46, 47, 48, 49, 50, 51, 53, 54, 55, 56,
    }
)  # fmt: skip

# HEALTH: 1 excellent .. 5 poor; fair and poor are pooled
HEALTH_CODES = frozenset({1, 2, 3, 4})
HEALTH_RECODE: Dict[int, int] = {5: 4}

CLASSWKR_CODES = frozenset({13, 14, 21, 25, 27, 28, 29})

# UNITSSTR grouped into five structure types
UNITSSTR_RECODE: Dict[int, int] = {
    1: 1,  # mobile home or trailer
    11: 2,  # one-family house, detached
    12: 2,  # one-family house, attached
    21: 3,  # 2-family building
    22: 3,  # 3-4 family building
    23: 4,  # 5-9 family building
    24: 4,  # 10-19 family building
    25: 4,  # 20-49 family building
    26: 5,  # 50+ family building
}
UNITSSTR_CODES = frozenset(UNITSSTR_RECODE.values())

WHYMOVE_CODES = frozenset(range(1, 21))

# Employer paid none / part / all of the group health premium
PAIDGH_CODES = frozenset({10, 21, 22})

# Open code sets (occupation, industry): any positive code below the missing sentinel
OCC_MAX_CODE = 9998
IND_MAX_CODE = 9998

# ============================================================================
# Feature Sets
# ============================================================================

FEATURE_SETS: Dict[str, List[str]] = {
    "all": NUMERIC_COLS + BINARY_COLS + CATEGORICAL_COLS,
    "demographic": ["age", "female", "race", "hispanic", "educ", "citizen", "state", "health"],
}


def get_feature_columns(feature_set: str = "all") -> List[str]:
    """
    Return the analysis columns for a named feature set.

    Args:
        feature_set: Key of FEATURE_SETS

    Returns:
        Ordered list of column names

    Raises:
        ValueError: If feature_set is unknown
    """
    if feature_set not in FEATURE_SETS:
        raise ValueError(
            f"Unknown feature set: {feature_set}. Valid options: {sorted(FEATURE_SETS)}"
        )
    return list(FEATURE_SETS[feature_set])
