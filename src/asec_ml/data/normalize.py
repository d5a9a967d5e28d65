"""
Record normalization: raw IPUMS-CPS ASEC codes to analysis variables.

Every analysis variable is produced by its own scalar transform, so each
recode can be tested in isolation and no field reads another field's raw
value. ``normalize_record`` applies the rules to one record;
``normalize_frame`` applies the same functions column by column.

Missing-value policy:
    - "missing" / "unknown" sentinels become NaN
    - numeric "not in universe" (NIU) sentinels become 0: structural
      non-applicability is treated as a true zero (e.g. no wage income for
      someone outside the wage universe). This is a modeling choice and can
      bias magnitude-sensitive models.
    - categorical NIU codes become NIU_LEVEL, encoded as an all-zero block
    - unrecognized codes in a fixed code set become NaN (never fatal)

Normalization is idempotent: a column already present under its analysis
name is validated against its canonical domain instead of being recoded.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from asec_ml.data.schema import (
    CITIZEN_IMMIGRANT_LEVELS,
    CITIZEN_NATIVE_LEVELS,
    CITIZEN_RECODE,
    CLASSWKR_CODES,
    EDUC_CODES,
    EDUC_RECODE,
    EMPSTAT_GROUPS,
    HEALTH_CODES,
    HEALTH_RECODE,
    HISPAN_CODES,
    HISPAN_DETAIL_RANGE,
    IMMIGRANT_COL,
    IND_MAX_CODE,
    LABEL_BY_LFSTATUS,
    LFSTATUS_COL,
    LFSTATUS_LEVELS,
    NIU_LEVEL,
    OCC_MAX_CODE,
    PAIDGH_CODES,
    RACE_CODES,
    STATE_FIPS,
    TARGET_COL,
    UNITSSTR_CODES,
    UNITSSTR_RECODE,
    WHYMOVE_CODES,
)
from asec_ml.exceptions import DataIntegrityError

logger = logging.getLogger(__name__)

MISSING = np.nan


# ============================================================================
# Scalar helpers
# ============================================================================


def is_missing(value: Any) -> bool:
    """True for None, NaN and pandas NA scalars."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def as_code(value: Any) -> int | None:
    """Coerce a raw code to int; None when missing or not integral."""
    if is_missing(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def as_number(value: Any) -> float:
    """Coerce a numeric field to float; NaN when missing or non-numeric."""
    if is_missing(value):
        return MISSING
    try:
        return float(value)
    except (TypeError, ValueError):
        return MISSING


# ============================================================================
# Field rules
# ============================================================================


@dataclass(frozen=True)
class FieldRule:
    """
    Normalization rule for one analysis variable.

    Attributes:
        name: Analysis variable name (output column)
        source: Raw extract column name
        kind: "id", "numeric", "binary", "categorical" or "status"
        recode: Raw code -> canonical value
        canonical: Canonical value -> canonical value (validation only)
    """

    name: str
    source: str
    kind: str
    recode: Callable[[Any], Any]
    canonical: Callable[[Any], Any]


def _id_rule(name: str, source: str) -> FieldRule:
    def recode(value):
        code = as_code(value)
        return MISSING if code is None else code

    return FieldRule(name, source, "id", recode, recode)


def _numeric_rule(
    name: str,
    source: str,
    niu: Iterable[float] = (),
    missing: Iterable[float] = (),
) -> FieldRule:
    niu_set = frozenset(niu)
    missing_set = frozenset(missing)

    def recode(value):
        number = as_number(value)
        if np.isnan(number) or number in missing_set:
            return MISSING
        if number in niu_set:
            return 0.0
        return number

    return FieldRule(name, source, "numeric", recode, recode)


def _binary_rule(name: str, source: str, mapping: Mapping[int, int] | None = None) -> FieldRule:
    mapping = dict(mapping or {1: 0, 2: 1})

    def recode(value):
        code = as_code(value)
        return mapping.get(code, MISSING) if code is not None else MISSING

    def canonical(value):
        code = as_code(value)
        return code if code in (0, 1) else MISSING

    return FieldRule(name, source, "binary", recode, canonical)


def _categorical_rule(
    name: str,
    source: str,
    recognized: Callable[[int], bool] | frozenset,
    niu: Iterable[int] = (),
    remap: Mapping[int, int] | Callable[[int], int | None] | None = None,
) -> FieldRule:
    niu_set = frozenset(niu)
    accepts = recognized.__contains__ if isinstance(recognized, frozenset) else recognized
    if remap is None:
        translate = lambda code: code  # noqa: E731
    elif callable(remap):
        translate = remap
    else:
        translate = lambda code: remap.get(code, code)  # noqa: E731

    def recode(value):
        code = as_code(value)
        if code is None:
            return MISSING
        if code in niu_set:
            return NIU_LEVEL
        code = translate(code)
        return code if accepts(code) else MISSING

    def canonical(value):
        code = as_code(value)
        if code is None:
            return MISSING
        if code == NIU_LEVEL:
            return NIU_LEVEL
        return code if accepts(code) else MISSING

    return FieldRule(name, source, "categorical", recode, canonical)


def _lfstatus_rule() -> FieldRule:
    def recode(value):
        code = as_code(value)
        return EMPSTAT_GROUPS.get(code, MISSING) if code is not None else MISSING

    def canonical(value):
        return value if isinstance(value, str) and value in LFSTATUS_LEVELS else MISSING

    return FieldRule(LFSTATUS_COL, "EMPSTAT", "status", recode, canonical)


def _fold_hispanic_detail(code: int) -> int:
    low, high = HISPAN_DETAIL_RANGE
    return 610 if low <= code <= high else code


FIELD_RULES: tuple[FieldRule, ...] = (
    _id_rule("year", "YEAR"),
    _id_rule("serial", "SERIAL"),
    _id_rule("pernum", "PERNUM"),
    _numeric_rule("weight", "ASECWT"),
    _numeric_rule("age", "AGE"),
    _binary_rule("female", "SEX"),
    _categorical_rule("race", "RACE", RACE_CODES),
    _categorical_rule("hispanic", "HISPAN", HISPAN_CODES, remap=_fold_hispanic_detail),
    _categorical_rule("educ", "EDUC", EDUC_CODES, niu=(0, 1), remap=EDUC_RECODE),
    _categorical_rule(
        "citizen", "CITIZEN", frozenset(CITIZEN_RECODE.values()), remap=CITIZEN_RECODE.get
    ),
    _categorical_rule("state", "STATEFIP", STATE_FIPS),
    _categorical_rule("health", "HEALTH", HEALTH_CODES, remap=HEALTH_RECODE),
    _categorical_rule("occ", "OCC", lambda code: 0 < code <= OCC_MAX_CODE, niu=(0,)),
    _categorical_rule("ind", "IND", lambda code: 0 < code <= IND_MAX_CODE, niu=(0,)),
    _categorical_rule("classwkr", "CLASSWKR", CLASSWKR_CODES, niu=(0,)),
    _categorical_rule("unitsstr", "UNITSSTR", UNITSSTR_CODES, niu=(0,), remap=UNITSSTR_RECODE.get),
    _categorical_rule("whymove", "WHYMOVE", WHYMOVE_CODES, niu=(0,)),
    _categorical_rule("paidgh", "PAIDGH", PAIDGH_CODES, niu=(0,)),
    _numeric_rule("inctot", "INCTOT", niu=(999999999,), missing=(999999998,)),
    _numeric_rule("incwage", "INCWAGE", niu=(99999999,), missing=(99999998,)),
    _numeric_rule("incunemp", "INCUNEMP", niu=(99999,), missing=(99998,)),
    _numeric_rule("incwelfr", "INCWELFR", niu=(99999,), missing=(99998,)),
    _numeric_rule("ftotval", "FTOTVAL", missing=(9999999999,)),
    _binary_rule("any_coverage", "HCOVANY"),
    _binary_rule("medicaid", "HIMCAIDLY"),
    _binary_rule("spm_mortgage", "SPMMORT", mapping={1: 1, 2: 0}),
    _lfstatus_rule(),
)

RULES_BY_NAME: dict[str, FieldRule] = {rule.name: rule for rule in FIELD_RULES}

# Raw column names required in an extract
RAW_COLUMNS = [rule.source for rule in FIELD_RULES]


# ============================================================================
# Derived fields
# ============================================================================


def derive_employed(lfstatus: Any) -> float:
    """1 employed, 0 unemployed, NaN outside the labor force or unknown."""
    if is_missing(lfstatus):
        return MISSING
    return LABEL_BY_LFSTATUS.get(lfstatus, MISSING)


def derive_immigrant(citizen: Any) -> float:
    """1 naturalized or non-citizen, 0 born a citizen, NaN outside the taxonomy."""
    code = as_code(citizen)
    if code in CITIZEN_IMMIGRANT_LEVELS:
        return 1
    if code in CITIZEN_NATIVE_LEVELS:
        return 0
    return MISSING


DERIVED_FIELDS: tuple[tuple[str, str, Callable[[Any], Any]], ...] = (
    (TARGET_COL, LFSTATUS_COL, derive_employed),
    (IMMIGRANT_COL, "citizen", derive_immigrant),
)

OUTPUT_COLUMNS = [rule.name for rule in FIELD_RULES] + [name for name, _, _ in DERIVED_FIELDS]


# ============================================================================
# Record / frame normalization
# ============================================================================


def _resolve(rule: FieldRule, available: Iterable[str]) -> tuple[str, Callable[[Any], Any]] | None:
    """Pick the raw source (recode) or the canonical column (validate)."""
    available = set(available)
    if rule.source in available:
        return rule.source, rule.recode
    if rule.name in available:
        return rule.name, rule.canonical
    return None


def normalize_record(record: Mapping[str, Any], record_id: Any = None) -> dict[str, Any]:
    """
    Normalize one raw (or already-normalized) record.

    Args:
        record: Mapping of raw field names (e.g. ``EMPSTAT``) or analysis names to values
        record_id: Optional identifier used in error diagnostics

    Returns:
        Dict of analysis variables in OUTPUT_COLUMNS order

    Raises:
        DataIntegrityError: If a required field is absent under both its raw and analysis name
    """
    out: dict[str, Any] = {}
    for rule in FIELD_RULES:
        resolved = _resolve(rule, record.keys())
        if resolved is None:
            raise DataIntegrityError(
                f"Record {record_id if record_id is not None else '<unknown>'} is missing "
                f"required field '{rule.source}' ({rule.name})",
                field=rule.source,
                record=record_id,
            )
        column, transform = resolved
        out[rule.name] = transform(record[column])

    for name, depends_on, derive in DERIVED_FIELDS:
        out[name] = derive(out[depends_on])
    return out


def check_required_columns(columns: Iterable[str]) -> None:
    """Raise DataIntegrityError naming every required field absent from ``columns``."""
    available = set(columns)
    missing = [rule.source for rule in FIELD_RULES if _resolve(rule, available) is None]
    if missing:
        raise DataIntegrityError(
            f"Extract is missing {len(missing)} required field(s): {', '.join(missing)}",
            field=missing[0],
        )


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize a raw extract (one respondent-year per row).

    Applies each field's scalar transform to its column and derives
    ``employed`` and ``immigrant``. Raw columns are not carried through.

    Args:
        df: Raw or already-normalized extract

    Returns:
        DataFrame with OUTPUT_COLUMNS, same row order and index as ``df``

    Raises:
        DataIntegrityError: If a required field is absent
    """
    check_required_columns(df.columns)

    out = pd.DataFrame(index=df.index)
    n_unrecognized: dict[str, int] = {}
    for rule in FIELD_RULES:
        column, transform = _resolve(rule, df.columns)
        values = df[column].map(transform)
        if rule.kind == "id":
            out[rule.name] = pd.to_numeric(values).astype("Int64")
        elif rule.kind == "status":
            out[rule.name] = values.astype(object)
        else:
            out[rule.name] = pd.to_numeric(values).astype(float)

        newly_missing = int((out[rule.name].isna() & df[column].notna()).sum())
        if newly_missing:
            n_unrecognized[rule.name] = newly_missing

    for name, depends_on, derive in DERIVED_FIELDS:
        out[name] = pd.to_numeric(out[depends_on].map(derive)).astype(float)

    if n_unrecognized:
        logger.debug(
            "Sentinel/unrecognized codes set to missing: %s",
            ", ".join(f"{k}={v}" for k, v in n_unrecognized.items()),
        )
    logger.info(
        "Normalized %d records: %d labeled (%d employed, %d unemployed)",
        len(out),
        int(out[TARGET_COL].notna().sum()),
        int((out[TARGET_COL] == 1).sum()),
        int((out[TARGET_COL] == 0).sum()),
    )
    return out
