"""
Unpacker factory.

build_unpacker() walks a field's type once and returns an Unpacker: up to
three decoding callables chosen for the field's shape and tag options.

  single(value)           one raw string, e.g. a path segment or an
                          explode=false query value
  multi(values)           every repeated occurrence of a parameter
  deep_object(mapping)    {sub-key: [values]} gathered from name[sub-key]=...

Decoders return the new value; the caller assigns it.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import BinderOptions
from .errors import (
    DecodeError,
    DuplicateParameterError,
    MissingDecoderError,
    TagParseError,
    UnknownParameterError,
    UnsupportedTypeError,
)
from .setters import make_string_setter, text_setter
from .shapes import Shape, classify, new_instance, set_field, type_hints, type_name, zero_factory
from .tags import TagDescriptor, lookup_tag, parse_tag

SingleDecoder = Callable[[str], Any]
MultiDecoder = Callable[[List[str]], Any]
DeepObjectDecoder = Callable[[Dict[str, List[str]]], Any]

# sources that may repeat a parameter
_EXPLODABLE = ("query", "header")


@dataclass(frozen=True)
class Unpacker:
    single: Optional[SingleDecoder] = None
    multi: Optional[MultiDecoder] = None
    deep_object: Optional[DeepObjectDecoder] = None


def build_unpacker(
    field_type: Any,
    field_name: str,
    name: str,
    source: str,  # "path", "query", etc.
    tags: TagDescriptor,
    options: BinderOptions,
) -> Unpacker:
    if tags.content:
        return _content_unpacker(field_type, field_name, name, source, tags, options)

    setter = text_setter(field_type)
    if setter is not None:
        _reject_deep_object(tags, field_name)
        return Unpacker(single=setter)

    s = classify(field_type)

    if s.shape is Shape.PRIMITIVE:
        _reject_deep_object(tags, field_name)
        return Unpacker(single=make_string_setter(field_type))

    if s.shape is Shape.OPTIONAL:
        # absent parameters leave None in place, present ones decode as the inner type
        return build_unpacker(s.args[0], field_name, name, source, tags, options)

    if s.shape in (Shape.SLICE, Shape.ARRAY):
        _check_compound(source, tags, field_name)
        if tags.deep_object:
            raise TagParseError("deepObject=true not supported for sequences", field=field_name)
        if s.shape is Shape.SLICE:
            elem = _element_single(s.args[0], field_name, name, source, tags.without_explode(), options)
            factory = s.factory

            def unslice(values: List[str]) -> Any:
                return factory(elem(v) for v in values)

        else:
            elems = [
                _element_single(a, field_name, name, source, tags.without_explode(), options) for a in s.args
            ]
            zeros = [zero_factory(a) for a in s.args]

            def unslice(values: List[str]) -> Any:
                return _array_unpack(elems, zeros, values)

        if source in _EXPLODABLE and tags.explode:
            return Unpacker(multi=unslice)
        delimiter = tags.delimiter
        return Unpacker(single=lambda value: unslice(value.split(delimiter)))

    if s.shape is Shape.MAP:
        _check_compound(source, tags, field_name)
        key_type, value_type = s.args
        key = _element_single(
            key_type, field_name, name, source, tags.without_explode().without_deep_object(), options
        )
        etags = tags.without_deep_object() if tags.deep_object else tags.without_explode()
        value_unpacker = build_unpacker(value_type, field_name, name, source, etags, options)

        if tags.deep_object:
            if source != "query":
                raise TagParseError(f"deepObject=true not supported for {source}", field=field_name)

            def deep_map(map_values: Dict[str, List[str]]) -> Dict[Any, Any]:
                m: Dict[Any, Any] = {}
                for key_string, values in map_values.items():
                    if value_unpacker.multi is not None:
                        v = value_unpacker.multi(values)
                    else:
                        v = value_unpacker.single(values[0] if values else "")
                    m[key(key_string)] = v
                return m

            return Unpacker(deep_object=deep_map)

        value = value_unpacker.single
        if value is None:
            raise UnsupportedTypeError(field=field_name, field_type=field_type, reason="map values must decode from one string")
        if source in _EXPLODABLE and tags.explode:
            return Unpacker(multi=lambda values: _map_unpack(key, value, resplit_on_equals(values)))
        delimiter = tags.delimiter
        return Unpacker(single=lambda v: _map_unpack(key, value, v.split(delimiter)))

    if s.shape is Shape.STRUCT:
        _check_compound(source, tags, field_name)
        nested = _struct_unpacker(source, s.base, tags, options)
        if tags.deep_object:
            if source != "query":
                raise TagParseError(f"deepObject=true not supported for {source}", field=field_name)
            return Unpacker(deep_object=nested.deep_object)
        fill = nested.multi
        if source in _EXPLODABLE and tags.explode:
            return Unpacker(multi=lambda values: fill(resplit_on_equals(values)))
        delimiter = tags.delimiter
        return Unpacker(single=lambda value: fill(value.split(delimiter)))

    raise UnsupportedTypeError(
        field=field_name,
        field_type=field_type,
        reason="type has no from_text() and is not a supported container",
    )


def _element_single(
    tp: Any, field_name: str, name: str, source: str, tags: TagDescriptor, options: BinderOptions
) -> SingleDecoder:
    u = build_unpacker(tp, field_name, name, source, tags, options)
    if u.single is None:
        raise UnsupportedTypeError(
            field=field_name, field_type=tp, reason="element type must decode from one string"
        )
    return u.single


def _reject_deep_object(tags: TagDescriptor, field_name: str) -> None:
    if tags.deep_object:
        raise TagParseError("deepObject=true is only supported for maps and structs", field=field_name)


def _check_compound(source: str, tags: TagDescriptor, field_name: str) -> None:
    if source in ("cookie", "path"):
        if tags.delimiter != ",":
            raise TagParseError("delimiter setting is only allowed for 'query' and 'header' parameters", field=field_name)
        if tags.explode:
            raise TagParseError("explode=true not supported for cookies & path parameters", field=field_name)


def resplit_on_equals(values: List[str]) -> List[str]:
    out: List[str] = []
    for v in values:
        k, _, rest = v.partition("=")
        out.append(k)
        out.append(rest)
    return out


def _pairs(values: List[str]):
    for i in range(0, len(values), 2):
        yield values[i], values[i + 1] if i + 1 < len(values) else ""


def _map_unpack(key: SingleDecoder, value: SingleDecoder, tokens: List[str]) -> Dict[Any, Any]:
    return {key(k): value(v) for k, v in _pairs(tokens)}


def _array_unpack(elems: List[SingleDecoder], zeros: List[Callable[[], Any]], values: List[str]) -> Tuple[Any, ...]:
    if len(values) > len(elems):
        raise ValueError(f"too many values for fixed length array: {len(values)} > {len(elems)}")
    out = [elems[i](v) for i, v in enumerate(values)]
    out.extend(z() for z in zeros[len(values):])
    return tuple(out)


@dataclass(frozen=True)
class _FillTarget:
    field: str
    unpacker: Unpacker


@dataclass(frozen=True)
class _StructUnpacker:
    multi: MultiDecoder
    deep_object: DeepObjectDecoder


def _struct_unpacker(source: str, model_type: type, outer: TagDescriptor, options: BinderOptions) -> _StructUnpacker:
    """Fill a nested dataclass from key/value tokens or a deep-object mapping.

    Nested fields are keyed by their tag's positional value, or by the field
    name when untagged. ``-`` skips a field.
    """
    hints = type_hints(model_type)
    targets: Dict[str, _FillTarget] = {}
    for f in dataclasses.fields(model_type):
        raw = lookup_tag(f, options.tag) or ""
        tags = parse_tag(raw, nested=True, field=f.name)
        if tags.base == "-":
            continue
        key = tags.name or tags.base or f.name
        if key in targets:
            raise DuplicateParameterError(
                f"Only one field can be filled with the same name. {key!r} is duplicated. One example is {f.name}"
            )
        if not outer.deep_object:
            tags = tags.without_explode()
        if tags.deep_object:
            raise TagParseError(f"deepObject=true is not allowed on fields inside a struct. Used on {key}", field=f.name)
        targets[key] = _FillTarget(
            field=f.name,
            unpacker=build_unpacker(hints.get(f.name, Any), f.name, key, source, tags, options),
        )

    strict = options.reject_unknown_query_parameters

    def lookup(key: str) -> Optional[_FillTarget]:
        target = targets.get(key)
        if target is None and strict:
            raise UnknownParameterError(key, message=f"No struct member to receive key {key!r}")
        return target

    def fill(target: _FillTarget, obj: Any, decode: Callable[[], Any]) -> None:
        try:
            set_field(obj, target.field, decode())
        except (UnknownParameterError, DecodeError):
            raise
        except Exception as e:
            raise DecodeError(f"{target.field}: {e}", source=source, field=target.field) from e

    def multi(values: List[str]) -> Any:
        obj = new_instance(model_type)
        for key_string, value_string in _pairs(values):
            target = lookup(key_string)
            if target is None:
                continue
            u = target.unpacker
            if u.single is not None:
                fill(target, obj, lambda: u.single(value_string))
            else:
                fill(target, obj, lambda: u.multi([value_string]))
        return obj

    def deep_object(map_values: Dict[str, List[str]]) -> Any:
        obj = new_instance(model_type)
        for key_string, values in map_values.items():
            target = lookup(key_string)
            if target is None:
                continue
            u = target.unpacker
            if u.single is not None:
                if values:
                    fill(target, obj, lambda: u.single(values[0]))
            else:
                fill(target, obj, lambda: u.multi(values))
        return obj

    return _StructUnpacker(multi=multi, deep_object=deep_object)


def _content_unpacker(
    field_type: Any,
    field_name: str,
    name: str,
    source: str,
    tags: TagDescriptor,
    options: BinderOptions,
) -> Unpacker:
    """Decode through a content-type decoder instead of the string setters.

    With explode=true on a query or header sequence/map, every occurrence is
    decoded on its own (map occurrences arrive as key=value).
    """
    decoder = options.decoders.for_field(tags.content)
    if decoder is None:
        raise MissingDecoderError(tags.content, f"No decoder provided for content type {tags.content!r} on {field_name}")

    s = classify(field_type)
    if s.shape is Shape.OPTIONAL:
        s = classify(s.args[0])

    if tags.explode and source in _EXPLODABLE and s.shape in (Shape.SLICE, Shape.MAP):
        if s.shape is Shape.SLICE:
            elem = _element_single(s.args[0], field_name, name, source, tags.without_explode(), options)
            factory = s.factory
            return Unpacker(multi=lambda values: factory(elem(v) for v in values))

        key_type, value_type = s.args
        key = _element_single(
            key_type, field_name, name, source, tags.without_explode().without_content().without_deep_object(), options
        )
        value = _element_single(value_type, field_name, name, source, tags.without_explode(), options)
        return Unpacker(multi=lambda values: _map_unpack(key, value, resplit_on_equals(values)))

    def decode(value: str) -> Any:
        try:
            return decoder(value.encode("utf-8"), field_type)
        except Exception as e:
            raise DecodeError(
                f"could not decode {tags.content} into {type_name(field_type)}: {e}",
                source=source,
                parameter=name,
                field=field_name,
            ) from e

    return Unpacker(single=decode)
