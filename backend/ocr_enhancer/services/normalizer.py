"""
Field normalizer: strict accept-or-null coercion for known receipt fields.

FIELD_SPECS is declared once and applied by key name in two places:
- normalize_fields() rewrites quoted values in the repaired text before decode
- apply_field_specs() coerces decoded values inside the pydantic models

A value that fails its field contract becomes null. This is the expected
FieldNulled outcome, logged at DEBUG and never raised.
"""

import re
import json
import math
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from ocr_enhancer.utils.money import normalize_money

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r'^\d{2}/\d{2}/\d{4}$')
TIME_PATTERN = re.compile(r'^(0?[1-9]|1[0-2]):[0-5][0-9]\s?(AM|PM)$', re.IGNORECASE)
DIGIT_RUN = re.compile(r'[0-9]+')
MAX_QUANTITY_DIGITS = 18

# Decimals further than this from the units place are not receipt amounts
MAX_DECIMAL_EXPONENT = 30

FieldValue = Union[str, int, None]


class FieldKind(Enum):
    """Format contract families."""
    MONEY = "money"
    INTEGER = "integer"
    DATE = "date"
    TIME = "time"
    FREEFORM = "freeform"


def coerce_quantity(value: str) -> Optional[int]:
    """First contiguous digit run as an integer ("3 unites" -> 3)."""
    match = DIGIT_RUN.search(value)
    if not match or len(match.group(0)) > MAX_QUANTITY_DIGITS:
        return None
    return int(match.group(0))


def coerce_date(value: str) -> Optional[str]:
    """Accept only mm/dd/yyyy-shaped values. No calendar check."""
    return value if DATE_PATTERN.match(value) else None


def coerce_time(value: str) -> Optional[str]:
    """Accept only H:MM or HH:MM with an AM/PM suffix."""
    return value if TIME_PATTERN.match(value) else None


def coerce_freeform(value: str) -> Optional[str]:
    return value


@dataclass(frozen=True)
class FieldSpec:
    """A receipt field, its contract family and its coercer."""
    name: str
    kind: FieldKind
    coerce: Callable[[str], FieldValue]
    compiled: re.Pattern = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self):
        # "name": "value" in the repaired text
        pattern = r'("' + re.escape(self.name) + r'"\s*:\s*)"([^"\\]*)"'
        object.__setattr__(self, 'compiled', re.compile(pattern))


FIELD_SPECS: Tuple[FieldSpec, ...] = (
    FieldSpec('imageQuality', FieldKind.FREEFORM, coerce_freeform),
    FieldSpec('storeName', FieldKind.FREEFORM, coerce_freeform),
    FieldSpec('storePhone', FieldKind.FREEFORM, coerce_freeform),
    FieldSpec('storeAddress', FieldKind.FREEFORM, coerce_freeform),
    FieldSpec('purchaseDate', FieldKind.DATE, coerce_date),
    FieldSpec('purchaseTime', FieldKind.TIME, coerce_time),
    FieldSpec('totalPaid', FieldKind.MONEY, normalize_money),
    FieldSpec('description', FieldKind.FREEFORM, coerce_freeform),
    FieldSpec('code', FieldKind.FREEFORM, coerce_freeform),
    FieldSpec('quantity', FieldKind.INTEGER, coerce_quantity),
    FieldSpec('price', FieldKind.MONEY, normalize_money),
)

FIELD_SPECS_BY_NAME: Dict[str, FieldSpec] = {spec.name: spec for spec in FIELD_SPECS}


def _render(value: FieldValue) -> str:
    """Render a coerced value as a JSON token."""
    return json.dumps(value)


def normalize_fields(text: str) -> str:
    """
    Rewrite quoted values of every non-freeform field in place.

    Args:
        text: Output of the generic repair chain

    Returns:
        Text with money/integer/date/time values normalized or set to null
    """
    for spec in FIELD_SPECS:
        if spec.kind is FieldKind.FREEFORM:
            continue

        def _replace(match: re.Match, spec: FieldSpec = spec) -> str:
            prefix, raw_value = match.groups()
            coerced = spec.coerce(raw_value)
            if coerced is None:
                logger.debug("Field nulled", extra={"field": spec.name, "value": raw_value})
            return f'{prefix}{_render(coerced)}'

        text = spec.compiled.sub(_replace, text)
    return text


def coerce_value(spec: FieldSpec, value: Any) -> FieldValue:
    """
    Coerce an already-decoded value against its field contract.

    Idempotent on values produced by normalize_fields(); also covers
    unquoted numbers the text pass never sees.
    """
    if value is None:
        return None

    if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
        if spec.kind is not FieldKind.FREEFORM:
            logger.debug("Field nulled", extra={"field": spec.name, "value": repr(value)})
        return None

    if spec.kind is FieldKind.FREEFORM:
        return value if isinstance(value, str) else str(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        value = Decimal(repr(value))

    if isinstance(value, Decimal):
        if not value.is_finite() or abs(value.adjusted()) > MAX_DECIMAL_EXPONENT:
            logger.debug("Field nulled", extra={"field": spec.name, "value": str(value)})
            return None
        # Plain notation, every digit kept ("12.50", not "12.5" or "1.25E+1")
        value = format(value, 'f')

    coerced = spec.coerce(str(value))
    if coerced is None:
        logger.debug("Field nulled", extra={"field": spec.name, "value": str(value)})
    return coerced


def apply_field_specs(data: Any) -> Any:
    """
    Return a copy of data with every spec'd key coerced.

    Non-dict input is returned untouched so model validation reports it.
    """
    if not isinstance(data, dict):
        return data

    coerced = dict(data)
    for key, value in data.items():
        spec = FIELD_SPECS_BY_NAME.get(key)
        if spec is not None:
            coerced[key] = coerce_value(spec, value)
    return coerced
