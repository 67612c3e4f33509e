from __future__ import annotations

import collections.abc
import dataclasses
import functools
import types
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union, get_args, get_origin

from .kinds import FloatBits, IntBounds


class Shape(str, Enum):
    PRIMITIVE = "primitive"
    OPTIONAL = "optional"
    SLICE = "slice"
    ARRAY = "array"
    MAP = "map"
    STRUCT = "struct"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class TypeShape:
    shape: Shape
    base: Any
    args: Tuple[Any, ...] = ()
    factory: Optional[Callable[..., Any]] = None
    bounds: Optional[Union[IntBounds, FloatBits]] = None


PRIMITIVES = (bool, int, float, complex, str, bytes)

_SEQUENCE_FACTORIES: Dict[Any, Callable[..., Any]] = {
    list: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Iterable: list,
    collections.abc.Collection: list,
    set: set,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
    frozenset: frozenset,
}

_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

_UNION_TYPES: Tuple[Any, ...] = (Union,)
if hasattr(types, "UnionType"):
    _UNION_TYPES = (Union, types.UnionType)


def unwrap_annotated(tp: Any) -> Tuple[Any, Tuple[Any, ...]]:
    if get_origin(tp) is typing.Annotated:
        args = get_args(tp)
        return args[0], tuple(tp.__metadata__)
    return tp, ()


def classify(tp: Any) -> TypeShape:
    base, extras = unwrap_annotated(tp)
    bounds = next((m for m in extras if isinstance(m, (IntBounds, FloatBits))), None)

    origin = get_origin(base)
    if origin in _UNION_TYPES:
        args = get_args(base)
        inner = [a for a in args if a is not type(None)]
        if len(inner) == 1 and len(args) == 2:
            return TypeShape(Shape.OPTIONAL, base, (inner[0],))
        return TypeShape(Shape.UNSUPPORTED, base)

    if origin is None and isinstance(base, type) and issubclass(base, PRIMITIVES) and not issubclass(base, Enum):
        return TypeShape(Shape.PRIMITIVE, base, bounds=bounds)

    if base is tuple or origin is tuple:
        args = get_args(base)
        if not args:
            return TypeShape(Shape.SLICE, base, (str,), factory=tuple)
        if len(args) == 2 and args[1] is Ellipsis:
            return TypeShape(Shape.SLICE, base, (args[0],), factory=tuple)
        if args == ((),):
            return TypeShape(Shape.ARRAY, base, ())
        return TypeShape(Shape.ARRAY, base, tuple(args))

    container = origin if origin is not None else base
    if container in _SEQUENCE_FACTORIES:
        args = get_args(base) or (str,)
        return TypeShape(Shape.SLICE, base, (args[0],), factory=_SEQUENCE_FACTORIES[container])

    if container in _MAP_ORIGINS:
        args = get_args(base) or (str, str)
        return TypeShape(Shape.MAP, base, (args[0], args[1]), factory=dict)

    if origin is None and isinstance(base, type) and dataclasses.is_dataclass(base):
        return TypeShape(Shape.STRUCT, base)

    return TypeShape(Shape.UNSUPPORTED, base)


@functools.lru_cache(maxsize=None)
def type_hints(cls: type) -> Dict[str, Any]:
    return typing.get_type_hints(cls, include_extras=True)


def zero_factory(tp: Any) -> Callable[[], Any]:
    """Callable producing a fresh zero value of tp on each call."""
    s = classify(tp)
    if s.shape is Shape.PRIMITIVE:
        return s.base
    if s.shape is Shape.SLICE:
        return s.factory
    if s.shape is Shape.ARRAY:
        parts = [zero_factory(a) for a in s.args]
        return lambda: tuple(p() for p in parts)
    if s.shape is Shape.MAP:
        return dict
    if s.shape is Shape.STRUCT:
        return functools.partial(new_instance, s.base)
    return lambda: None


def zero_value(tp: Any) -> Any:
    return zero_factory(tp)()


def new_instance(cls: type) -> Any:
    """Instance of a dataclass with defaults applied and zero values for required fields."""
    return cls(**{name: zero() for name, zero in _required_zeros(cls)})


@functools.lru_cache(maxsize=None)
def _required_zeros(cls: type) -> Tuple[Tuple[str, Callable[[], Any]], ...]:
    hints = type_hints(cls)
    out = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
            continue
        out.append((f.name, zero_factory(hints.get(f.name, Any))))
    return tuple(out)


def set_field(obj: Any, name: str, value: Any) -> None:
    # frozen dataclasses reject setattr
    object.__setattr__(obj, name, value)


def type_name(tp: Any) -> str:
    base, _ = unwrap_annotated(tp)
    if isinstance(base, type) and get_origin(base) is None:
        return base.__qualname__
    return repr(base).replace("typing.", "")
