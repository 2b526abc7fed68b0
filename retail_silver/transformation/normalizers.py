"""
Field Normalizers

Per-field cleansing rules for raw (bronze) records. Each rule turns one
loosely-typed value into a strictly-typed value or null:
- Whitespace trimming (optionally nulling blanks)
- Boolean text ("true"/"false") to 1/0
- Business dates bounded to [date_floor, processing date]
- Numeric lower bounds (non-negative amounts, rating floor)
- Closed value sets
- Fixed patterns

Rules never raise. A value that cannot be validated becomes null, so a
single bad field never drops a row.

Rules compile to Polars expressions so a whole column is normalized at once;
normalize_value() applies one rule to a single value.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional, Tuple

import polars as pl

DEFAULT_DATE_FLOOR = date(2000, 1, 1)
DATE_FORMAT = "%Y-%m-%d"
# A date, optionally followed by a time of day; ASCII digits only
DATE_TEXT_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}([ T][0-9]{2}:[0-9]{2}(:[0-9]{2}(\.[0-9]+)?)?)?$"


class RuleKind(str, Enum):
    """Cleansing rule kinds"""
    TRIM = "trim"
    TRIM_BLANK_NULL = "trim_blank_null"
    BOOLEAN_TEXT = "boolean_text"
    BOUNDED_DATE = "bounded_date"
    MIN_NUMERIC = "min_numeric"
    CLOSED_ENUM = "closed_enum"
    PATTERN = "pattern"
    PASSTHROUGH = "passthrough"


class FieldType(str, Enum):
    """Typed (silver) representation of a field"""
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"


POLARS_TYPES = {
    FieldType.TEXT: pl.Utf8,
    FieldType.INTEGER: pl.Int64,
    FieldType.DECIMAL: pl.Float64,
    FieldType.DATE: pl.Date,
}


@dataclass(frozen=True)
class FieldRule:
    """Declared cleansing rule for one column"""
    kind: RuleKind
    field_type: FieldType = FieldType.TEXT
    minimum: Optional[float] = None
    allowed: Tuple[Any, ...] = ()
    pattern: Optional[str] = None

    @property
    def dtype(self) -> pl.DataType:
        return POLARS_TYPES[self.field_type]


# =============================================================================
# RULE CONSTRUCTORS
# =============================================================================

def trim() -> FieldRule:
    return FieldRule(RuleKind.TRIM)


def trim_blank_null() -> FieldRule:
    return FieldRule(RuleKind.TRIM_BLANK_NULL)


def boolean_text() -> FieldRule:
    return FieldRule(RuleKind.BOOLEAN_TEXT, FieldType.INTEGER)


def bounded_date() -> FieldRule:
    return FieldRule(RuleKind.BOUNDED_DATE, FieldType.DATE)


def at_least(minimum: float, field_type: FieldType = FieldType.DECIMAL) -> FieldRule:
    """Null out values below ``minimum``; everything else passes unchanged"""
    return FieldRule(RuleKind.MIN_NUMERIC, field_type, minimum=minimum)


def non_negative(field_type: FieldType = FieldType.DECIMAL) -> FieldRule:
    return at_least(0, field_type)


def closed_enum(*allowed: Any, field_type: FieldType = FieldType.TEXT) -> FieldRule:
    return FieldRule(RuleKind.CLOSED_ENUM, field_type, allowed=tuple(allowed))


def pattern(regex: str) -> FieldRule:
    return FieldRule(RuleKind.PATTERN, pattern=regex)


def passthrough(field_type: FieldType = FieldType.TEXT) -> FieldRule:
    return FieldRule(RuleKind.PASSTHROUGH, field_type)


# =============================================================================
# EXPRESSION BUILDERS
# =============================================================================

def _null(dtype: pl.DataType) -> pl.Expr:
    return pl.lit(None, dtype=dtype)


def _text(column: str) -> pl.Expr:
    return pl.col(column).cast(pl.Utf8).str.strip_chars()


def _decimal(column: str) -> pl.Expr:
    value = _text(column).cast(pl.Float64, strict=False)
    # NaN and infinities are not usable amounts
    return pl.when(value.is_finite()).then(value).otherwise(_null(pl.Float64))


def _integer(column: str) -> pl.Expr:
    exact = _text(column).cast(pl.Int64, strict=False)
    # "2.0" style values only; exact integer text never goes through Float64
    value = _decimal(column)
    from_decimal = (
        pl.when(value == value.floor())
        .then(value.cast(pl.Int64, strict=False))
        .otherwise(_null(pl.Int64))
    )
    return pl.coalesce(exact, from_decimal)


def _date(column: str) -> pl.Expr:
    value = _text(column)
    # The time of day, if any, is ignored; any other trailing text is not a date
    parsed = value.str.slice(0, 10).str.to_date(DATE_FORMAT, strict=False)
    return pl.when(value.str.contains(DATE_TEXT_PATTERN)).then(parsed).otherwise(_null(pl.Date))


def _typed(column: str, field_type: FieldType) -> pl.Expr:
    if field_type == FieldType.INTEGER:
        return _integer(column)
    if field_type == FieldType.DECIMAL:
        return _decimal(column)
    if field_type == FieldType.DATE:
        return _date(column)
    return _text(column)


def build_expression(
    column: str,
    rule: FieldRule,
    today: date,
    date_floor: date = DEFAULT_DATE_FLOOR,
) -> pl.Expr:
    """
    Compile a rule into a Polars expression over ``column``.

    Args:
        column: Source column name (the output keeps the same name)
        rule: Declared rule for the column
        today: Processing date, the upper bound for business dates
        date_floor: Lower bound for business dates

    Returns:
        Expression producing the typed column
    """
    dtype = rule.dtype

    if rule.kind == RuleKind.TRIM:
        expr = _text(column)

    elif rule.kind == RuleKind.TRIM_BLANK_NULL:
        value = _text(column)
        expr = pl.when(value == "").then(_null(pl.Utf8)).otherwise(value)

    elif rule.kind == RuleKind.BOOLEAN_TEXT:
        flag = _text(column).str.to_uppercase()
        expr = (
            pl.when(flag == "TRUE").then(pl.lit(1, dtype=pl.Int64))
            .when(flag == "FALSE").then(pl.lit(0, dtype=pl.Int64))
            .otherwise(_null(pl.Int64))
        )

    elif rule.kind == RuleKind.BOUNDED_DATE:
        value = _date(column)
        expr = (
            pl.when(value.is_between(pl.lit(date_floor), pl.lit(today)))
            .then(value)
            .otherwise(_null(pl.Date))
        )

    elif rule.kind == RuleKind.MIN_NUMERIC:
        value = _typed(column, rule.field_type)
        expr = pl.when(value < rule.minimum).then(_null(dtype)).otherwise(value)

    elif rule.kind == RuleKind.CLOSED_ENUM:
        value = _typed(column, rule.field_type)
        expr = pl.when(value.is_in(list(rule.allowed))).then(value).otherwise(_null(dtype))

    elif rule.kind == RuleKind.PATTERN:
        value = _text(column)
        expr = pl.when(value.str.contains(rule.pattern)).then(value).otherwise(_null(pl.Utf8))

    elif rule.kind == RuleKind.PASSTHROUGH:
        expr = _typed(column, rule.field_type)

    else:
        raise ValueError(f"Unknown rule kind: {rule.kind}")

    return expr.cast(dtype).alias(column)


def to_text(raw: Any) -> Optional[str]:
    """Render a raw value as the text the rules operate on"""
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    return str(raw)


def normalize_value(
    rule: FieldRule,
    raw: Any,
    today: Optional[date] = None,
    date_floor: date = DEFAULT_DATE_FLOOR,
) -> Any:
    """
    Apply one rule to a single raw value.

    Example:
        normalize_value(boolean_text(), " True ")  # -> 1
        normalize_value(non_negative(), "-5")      # -> None
    """
    frame = pl.DataFrame({"value": [to_text(raw)]}, schema={"value": pl.Utf8})
    expr = build_expression("value", rule, today or date.today(), date_floor)
    return frame.select(expr).item()
