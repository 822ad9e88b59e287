"""
Generic repair chain for quasi-JSON returned by the language model.

Each stage is a named regex substitution addressing one artifact class.
Stages are pure and total; they run unconditionally and in the order of
REPAIR_STAGES. Valid JSON passes through unchanged and the chain is a fixed
point of itself (running it twice equals running it once).
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# A JSON string literal on a single line. Raw newlines are not valid inside
# JSON strings, so an unbalanced quote never swallows the rest of the text.
STRING_LITERAL = re.compile(r'"(?:[^"\\\n]|\\.)*"')

Replacement = Union[str, Callable[[re.Match], str]]

# Characters removed by non_ascii_strip. The stages that run before it allow
# them anywhere inside the tokens they match, so stripping them later never
# exposes a new match to an earlier stage.
NOISE_CHAR = r'[^\t\n\r\x20-\x7e]'
NOISE = NOISE_CHAR + '*'
NOISE_RE = re.compile(NOISE_CHAR + '+')

# Whitespace or noise after a colon
GAP = r'[^\x21-\x7e]*'


def _noisy(token: str) -> str:
    """Pattern for token with noise allowed between its characters."""
    return NOISE.join(re.escape(char) for char in token)


NULL = _noisy('null')
DIGIT_RUN = '[0-9](?:' + NOISE + '[0-9])*'
NULL_TIME = (
    '(?:"' + NOISE + ')?' + NULL + NOISE
    + '([0-9](?:' + NOISE + '[0-9])?)' + NOISE + '(?::' + NOISE + ')?'
    + '([0-9]' + NOISE + '[0-9])' + GAP
    + '([AaPp]' + NOISE + '[Mm])' + NOISE + '"?'
)


@dataclass(frozen=True)
class RepairStage:
    """A named regex repair with a documented before/after example."""
    name: str
    pattern: str
    replacement: Replacement
    example: Tuple[str, str]
    notes: Optional[str] = None
    outside_strings: bool = False
    flags: int = 0
    compiled: re.Pattern = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'compiled', re.compile(self.pattern, self.flags))

    def apply(self, text: str) -> str:
        """Apply the stage to text. Never raises for str input."""
        if self.outside_strings:
            return _sub_outside_strings(self.compiled, self.replacement, text)
        return self.compiled.sub(self.replacement, text)


def _sub_outside_strings(pattern: re.Pattern, replacement: Replacement, text: str) -> str:
    """Run pattern.sub only on the parts of text that are not string literals."""
    pieces = []
    last = 0
    for literal in STRING_LITERAL.finditer(text):
        pieces.append(pattern.sub(replacement, text[last:literal.start()]))
        pieces.append(literal.group(0))
        last = literal.end()
    pieces.append(pattern.sub(replacement, text[last:]))
    return ''.join(pieces)


def _rebuild_null_time(match: re.Match) -> str:
    prefix, hour, minute, suffix = match.groups()
    if hour is not None:
        hour, minute, suffix = (NOISE_RE.sub('', part) for part in (hour, minute, suffix))
    if hour is not None and 1 <= int(hour) <= 12 and int(minute) <= 59:
        return f'{prefix}"{hour}:{minute} {suffix.upper()}"'
    return f'{prefix}null'


def _quote_bare_value(match: re.Match) -> str:
    prefix, value = match.groups()
    stripped = value.rstrip()
    escaped = stripped.replace('\\', '\\\\')
    return f'{prefix}"{escaped}"{value[len(stripped):]}'


def _truncate_decimals(match: re.Match) -> str:
    integer, _, rest = match.group(0).partition('.')
    fraction = rest.split('.')[0][:2]
    return f'{integer}.{fraction}'


REPAIR_STAGES: Tuple[RepairStage, ...] = (
    RepairStage(
        name='null_time_reconstruction',
        pattern='(:' + GAP + ')(?:' + NULL_TIME + '|' + NULL + NOISE + DIGIT_RUN + ')',
        replacement=_rebuild_null_time,
        example=('"purchaseTime": null10:45 AM"', '"purchaseTime": "10:45 AM"'),
        notes='Time collapsed into null plus stray digits; anything short of '
              'hour, minute and AM/PM becomes bare null',
    ),
    RepairStage(
        name='trailing_null_cleanup',
        pattern='(:' + GAP + ')' + NULL + '(?!' + GAP + r'(?:[,}\]\n"]|$))[^,}\]\n"]+',
        replacement=r'\1null',
        example=('"storePhone": null (not found),', '"storePhone": null,'),
        notes='null followed by junk up to the next delimiter',
        outside_strings=True,
    ),
    RepairStage(
        name='apostrophe_decimal',
        pattern="(?<=[0-9])" + NOISE + "'" + NOISE + "(?=[0-9])",
        replacement='.',
        example=('"price": "1\'05"', '"price": "1.05"'),
        notes='Swiss-style apostrophe used as the decimal mark',
    ),
    RepairStage(
        name='non_ascii_strip',
        pattern=NOISE_CHAR + '+',
        replacement='',
        example=('"storeName": "Café ☕"', '"storeName": "Caf "'),
        notes='Lossy; accents, emoji and OCR glyphs break decoding',
    ),
    RepairStage(
        name='trailing_comma',
        pattern=r',[\s,]*([}\]])',
        replacement=r'\1',
        example=('{"a": 1, "b": [1, 2,],}', '{"a": 1, "b": [1, 2]}'),
        outside_strings=True,
    ),
    RepairStage(
        name='missing_object_separator',
        pattern=r'}(\s*){',
        replacement=r'},\1{',
        example=('{"a":1}{"b":2}', '{"a":1},{"b":2}'),
        notes='List items concatenated without a comma',
        outside_strings=True,
    ),
    RepairStage(
        name='bare_value_quoting',
        pattern=r'(:\s*)(?!(?:true|false|null)\b)([A-Za-z][^",{}\[\]\n]*)',
        replacement=_quote_bare_value,
        example=('{"storeName": Walmart Supercenter}', '{"storeName": "Walmart Supercenter"}'),
        notes='Runs after time reconstruction so rebuilt times are left alone',
        outside_strings=True,
    ),
    RepairStage(
        name='bare_key_quoting',
        pattern=r'([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)',
        replacement=r'\1"\2"\3',
        example=('{storeName: "Walmart", totalPaid: null}', '{"storeName": "Walmart", "totalPaid": null}'),
        outside_strings=True,
    ),
)

# Opt-in second pass, only after a first decode failure.
FALLBACK_STAGES: Tuple[RepairStage, ...] = (
    RepairStage(
        name='excess_decimal_truncation',
        pattern=r'\d+\.\d+(?:\.\d*)*',
        replacement=_truncate_decimals,
        example=('{"price": 12.50.3, "totalPaid": 4.999}', '{"price": 12.50, "totalPaid": 4.99}'),
        notes='Drops fractional digits past the cents and repeated dot groups',
        outside_strings=True,
    ),
)


def run_repair_chain(text: str, stages: Iterable[RepairStage] = REPAIR_STAGES) -> str:
    """
    Apply repair stages in order.

    Args:
        text: Candidate JSON text
        stages: Stages to run (defaults to the full generic chain)

    Returns:
        Repaired text
    """
    for stage in stages:
        repaired = stage.apply(text)
        if repaired != text:
            logger.debug("Repair stage changed text", extra={
                "stage": stage.name,
                "length_before": len(text),
                "length_after": len(repaired),
            })
        text = repaired
    return text
