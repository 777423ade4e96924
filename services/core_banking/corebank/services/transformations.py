"""
Transformation primitives for core banking field mappings.

Each rule has an outbound form (canonical -> vendor) and a declared inverse
(vendor -> canonical). Transforms never raise: malformed input degrades the
single field to a best-effort value instead of aborting the exchange.
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

from corebank.obs.logging import get_logger
from corebank.schemas.integration import (
    DATE_PATTERNS,
    CaseFoldRule,
    DateFormatRule,
    LookupRule,
    NumberScaleRule,
    StringPadRule,
)

logger = get_logger(__name__)

Rule = Union[DateFormatRule, NumberScaleRule, LookupRule, StringPadRule, CaseFoldRule]


# ============================================================================
# Dates
# ============================================================================

def _coerce_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_date(value: Any, fmt: str) -> str:
    """Render a date, datetime or ISO date string in a vendor pattern. Empty on failure."""
    parsed = _coerce_date(value)
    pattern = DATE_PATTERNS.get(fmt)
    if parsed is None or pattern is None:
        return ""
    return parsed.strftime(pattern)


def parse_date(value: Any, fmt: str) -> str:
    """Parse a vendor date back into a canonical YYYY-MM-DD string. Empty on failure."""
    pattern = DATE_PATTERNS.get(fmt)
    if value is None or pattern is None:
        return ""

    text = str(value).strip()
    if not text:
        return ""
    try:
        return datetime.strptime(text, pattern).date().isoformat()
    except ValueError:
        return ""


# ============================================================================
# Numbers
# ============================================================================

def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        parsed = value
    else:
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            parsed = None

    if parsed is None or not parsed.is_finite():
        logger.warning(
            f"Non-numeric value coerced to 0 during number scaling: {value!r}",
            extra={"error_type": "TransformationDegradation"},
        )
        return Decimal(0)
    return parsed


def _to_number(value: Decimal) -> Union[int, float]:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def scale_number(value: Any, scale: float) -> Union[int, float]:
    """Multiply by scale using decimal arithmetic, so 12.34 * 100 is exactly 1234."""
    return _to_number(_to_decimal(value) * Decimal(str(scale)))


def unscale_number(value: Any, scale: float) -> Union[int, float]:
    return _to_number(_to_decimal(value) / Decimal(str(scale)))


# ============================================================================
# Lookups
# ============================================================================

def _lookup_key(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def lookup_value(value: Any, table: Dict[str, Any]) -> Any:
    """Canonical value -> vendor code. Unmapped values pass through."""
    key = _lookup_key(value)
    if key is None or key not in table:
        return value
    return table[key]


def reverse_lookup_value(value: Any, table: Dict[str, Any]) -> Any:
    """Vendor code -> canonical value via the inverted table. Unmapped values pass through."""
    key = _lookup_key(value)
    if key is None:
        return value

    reverse = {}
    for canonical, code in table.items():
        code_key = _lookup_key(code)
        if code_key is not None:
            reverse[code_key] = canonical
    return reverse.get(key, value)


# ============================================================================
# Strings
# ============================================================================

def pad_string(value: Any, length: int, char: str = "0") -> str:
    text = "" if value is None else str(value)
    return text.rjust(length, char)


def fold_case(value: Any, mode: str) -> Any:
    if value is None:
        return None
    text = str(value)
    return text.upper() if mode == "uppercase" else text.lower()


# ============================================================================
# Dispatch
# ============================================================================

def has_inverse(rule: Optional[Rule]) -> bool:
    """Whether a rule reconstructs the canonical value on the inbound pass."""
    return rule is None or isinstance(rule, (DateFormatRule, NumberScaleRule, LookupRule))


def apply_transformation(value: Any, rule: Optional[Rule]) -> Any:
    """Outbound transform: canonical value -> vendor value."""
    if rule is None:
        return value
    if isinstance(rule, DateFormatRule):
        return format_date(value, rule.format)
    if isinstance(rule, NumberScaleRule):
        return scale_number(value, rule.scale)
    if isinstance(rule, LookupRule):
        return lookup_value(value, rule.values)
    if isinstance(rule, StringPadRule):
        return pad_string(value, rule.length, rule.char)
    if isinstance(rule, CaseFoldRule):
        return fold_case(value, rule.type)
    return value


def reverse_transformation(value: Any, rule: Optional[Rule]) -> Any:
    """Inbound transform: vendor value -> canonical value. Rules without an inverse are identity."""
    if rule is None:
        return value
    if isinstance(rule, DateFormatRule):
        return parse_date(value, rule.format)
    if isinstance(rule, NumberScaleRule):
        return unscale_number(value, rule.scale)
    if isinstance(rule, LookupRule):
        return reverse_lookup_value(value, rule.values)
    return value
