"""
String-to-value conversion.

Primitive kinds get a generic setter from make_string_setter(). Other types
are decodable from text when they

  - define a ``from_text(text)`` classmethod (the TextUnmarshaler protocol),
  - are an Enum (matched by value, then by member name), or
  - have a setter registered with register_string_setter().

Built-in registrations: UUID, Decimal, datetime, date, time, timedelta.
"""

from __future__ import annotations

import datetime as dt
import decimal
import math
import re
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, get_origin, runtime_checkable

from .kinds import FloatBits, IntBounds
from .shapes import Shape, classify, unwrap_annotated
from .tags import parse_bool

StringSetter = Callable[[str], Any]

_FLOAT32_MAX = 3.4028234663852886e38

# no whitespace, underscores or non-ASCII digits
_INT_RE = re.compile(r"[+-]?[0-9]+")


@runtime_checkable
class TextUnmarshaler(Protocol):
    @classmethod
    def from_text(cls, text: str) -> Any:
        ...


_REGISTRY: Dict[Any, StringSetter] = {}


def register_string_setter(tp: Any, setter: StringSetter) -> None:
    """Teach the binder to decode ``tp`` from a single string."""
    _REGISTRY[tp] = setter


def text_setter(tp: Any) -> Optional[StringSetter]:
    """Setter for types with their own text decoding, None for everything else."""
    base, _ = unwrap_annotated(tp)
    if get_origin(base) is not None or not isinstance(base, type):
        return None
    from_text = getattr(base, "from_text", None)
    if callable(from_text):
        return from_text
    if base in _REGISTRY:
        return _REGISTRY[base]
    if issubclass(base, Enum):
        return _enum_setter(base)
    return None


def make_string_setter(tp: Any) -> StringSetter:
    s = classify(tp)
    if s.shape is not Shape.PRIMITIVE:
        raise TypeError(f"no string setter for {tp!r}")
    base = s.base

    if issubclass(base, bool):
        return lambda value: base(parse_bool(value))
    if issubclass(base, int):
        return _int_setter(base, s.bounds if isinstance(s.bounds, IntBounds) else None)
    if issubclass(base, float):
        return _float_setter(base, s.bounds if isinstance(s.bounds, FloatBits) else None)
    if issubclass(base, complex):
        return lambda value: base(parse_complex(value))
    if issubclass(base, bytes):
        return lambda value: base(value.encode("utf-8"))
    if base is str:
        return lambda value: value
    return base


def _int_setter(base: type, bounds: Optional[IntBounds]) -> StringSetter:
    def set_int(value: str) -> Any:
        if not _INT_RE.fullmatch(value):
            raise ValueError(f"invalid integer {value!r}")
        n = int(value, 10)
        if bounds is not None and not (bounds.low <= n <= bounds.high):
            raise ValueError(f"value {value!r} out of range for {'' if bounds.signed else 'u'}int{bounds.bits}")
        return n if base is int else base(n)

    return set_int


def _float_setter(base: type, bits: Optional[FloatBits]) -> StringSetter:
    def set_float(value: str) -> Any:
        f = float(value)
        if bits is not None and bits.bits == 32 and math.isfinite(f) and abs(f) > _FLOAT32_MAX:
            raise ValueError(f"value {value!r} out of range for float32")
        return f if base is float else base(f)

    return set_float


def parse_complex(value: str) -> complex:
    """Accept both Go (``1+2i``) and Python (``1+2j``) spellings."""
    v = value.strip()
    if v.startswith("(") and v.endswith(")"):
        v = v[1:-1]
    if v.endswith("i"):
        v = v[:-1] + "j"
    return complex(v)


def _enum_setter(tp: type) -> StringSetter:
    by_value = {str(m.value): m for m in tp}
    by_name = dict(tp.__members__)

    def set_enum(value: str) -> Any:
        if value in by_value:
            return by_value[value]
        if value in by_name:
            return by_name[value]
        raise ValueError(f"{value!r} is not a valid {tp.__name__}")

    return set_enum


def _decimal(value: str) -> decimal.Decimal:
    try:
        return decimal.Decimal(value)
    except decimal.InvalidOperation as e:
        raise ValueError(f"invalid decimal {value!r}") from e


_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> dt.timedelta:
    """Go style durations ("1h30m", "250ms") or a plain number of seconds."""
    v = value.strip()
    try:
        return dt.timedelta(seconds=float(v))
    except ValueError:
        pass
    sign = 1.0
    if v[:1] in ("+", "-"):
        sign = -1.0 if v[0] == "-" else 1.0
        v = v[1:]
    if not v:
        raise ValueError(f"invalid duration {value!r}")
    total = 0.0
    pos = 0
    while pos < len(v):
        m = _DURATION_PART.match(v, pos)
        if m is None:
            raise ValueError(f"invalid duration {value!r}")
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    return dt.timedelta(seconds=sign * total)


register_string_setter(uuid.UUID, uuid.UUID)
register_string_setter(decimal.Decimal, _decimal)
register_string_setter(dt.datetime, dt.datetime.fromisoformat)
register_string_setter(dt.date, dt.date.fromisoformat)
register_string_setter(dt.time, dt.time.fromisoformat)
register_string_setter(dt.timedelta, parse_duration)
