"""
Struct filler synthesizer.

compile_binder() looks at a model dataclass once, sorts its tagged fields by
request part and returns a ModelBinder, or None when no field is tagged.

    @dataclass
    class GetUser:
        user_id: int = param("path,name=id")
        verbose: bool = param("query,name=verbose")
        payload: Optional[UserPatch] = param("model", default=None)

    binder = compile_binder(GetUser, BinderOptions().with_decoder("application/json", json_decoder))
    user = binder.resolve(request, body)
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from starlette.requests import Request

from .config import BinderOptions, PathVarLookup
from .errors import (
    ConfigurationError,
    DecodeError,
    DuplicateParameterError,
    MissingDecoderError,
    UnknownParameterError,
)
from .resolver import (
    BodyFiller,
    CookieFiller,
    DeepObjectFiller,
    HeaderFiller,
    ModelBinder,
    PathFiller,
    QueryFiller,
)
from .shapes import Shape, classify, set_field, type_hints, type_name
from .tags import TagDescriptor, lookup_tag, parse_tag
from .unpack import Unpacker, build_unpacker

log = logging.getLogger("reqbind.compile")

_LABELS = {
    "path": "path element",
    "query": "query parameter",
    "header": "header",
    "cookie": "cookie parameter",
}


def compile_binder(model_type: Any, options: Optional[BinderOptions] = None) -> Optional[ModelBinder]:
    """Compile the fillers for ``model_type``.

    Returns None when the type is not a dataclass or has no tagged fields.
    Raises a BinderCompileError subclass for bad tags or undecodable types.
    """
    options = options or BinderOptions()
    s = classify(model_type)
    if s.shape is Shape.OPTIONAL:
        s = classify(s.args[0])
    if s.shape is not Shape.STRUCT:
        return None
    cls = s.base
    hints = type_hints(cls)

    body_fillers: List[BodyFiller] = []
    path_fillers: List[PathFiller] = []
    header_fillers: List[HeaderFiller] = []
    cookie_fillers: List[CookieFiller] = []
    query_fillers: Dict[str, QueryFiller] = {}
    deep_object_fillers: Dict[str, Any] = {}
    form_fillers: Dict[str, QueryFiller] = {}
    form_deep_object_fillers: Dict[str, Any] = {}
    seen: Dict[str, Set[str]] = {}

    for f in dataclasses.fields(cls):
        raw = lookup_tag(f, options.tag)
        if raw is None:
            continue
        tags = parse_tag(raw, field=f.name)
        if tags.base == "-":
            continue
        field_type = hints.get(f.name, Any)

        if tags.base == "model":
            if body_fillers:
                raise DuplicateParameterError(f"{type_name(cls)}: only one field may be tagged 'model', found another on {f.name}")
            body_fillers.append(_body_filler(f.name, field_type, options))
            continue

        name = tags.name or f.name
        names = seen.setdefault(tags.base, set())
        if name in names:
            raise DuplicateParameterError(f"{type_name(cls)}: {tags.base} parameter {name!r} is filled twice, again by {f.name}")
        names.add(name)

        unpacker = build_unpacker(field_type, f.name, name, tags.base, tags, options)

        if tags.base == "path":
            path_fillers.append(_path_filler(f.name, name, unpacker))
        elif tags.base == "header":
            header_fillers.append(_header_filler(f.name, name, unpacker))
        elif tags.base == "cookie":
            cookie_fillers.append(_cookie_filler(f.name, name, unpacker))
        elif tags.base == "query":
            _register_query(f.name, name, tags, unpacker, query_fillers, deep_object_fillers, form_fillers, form_deep_object_fillers)

    if not (
        body_fillers
        or path_fillers
        or header_fillers
        or cookie_fillers
        or query_fillers
        or deep_object_fillers
        or form_fillers
        or form_deep_object_fillers
    ):
        log.debug("binder declined model=%s: no tagged fields", type_name(cls))
        return None

    if body_fillers:
        if not options.decoders:
            raise MissingDecoderError(
                "",
                f"{type_name(cls)} has a 'model' field but no body decoder is registered",
            )
        if options.default_content_type and options.default_content_type not in options.decoders:
            raise MissingDecoderError(options.default_content_type)

    if path_fillers and options.path_vars is None:
        raise ConfigurationError(
            f"{type_name(cls)}: path/route variable interpolation requested, but no path variable provider configured"
        )

    binder = ModelBinder(
        model_type=cls,
        body_fillers=tuple(body_fillers),
        path_fillers=tuple(path_fillers),
        header_fillers=tuple(header_fillers),
        cookie_fillers=tuple(cookie_fillers),
        query_fillers=query_fillers,
        deep_object_fillers=deep_object_fillers,
        form_fillers=form_fillers,
        form_deep_object_fillers=form_deep_object_fillers,
        path_vars=options.path_vars,
        reject_unknown_query_parameters=options.reject_unknown_query_parameters,
    )
    log.debug(
        "binder compiled model=%s fillers=%d body=%s path=%s form=%s",
        type_name(cls),
        binder.filler_count(),
        bool(body_fillers),
        binder.needs_path,
        binder.needs_form,
    )
    return binder


def _register_query(
    field_name: str,
    name: str,
    tags: TagDescriptor,
    unpacker: Unpacker,
    query_fillers: Dict[str, QueryFiller],
    deep_object_fillers: Dict[str, DeepObjectFiller],
    form_fillers: Dict[str, QueryFiller],
    form_deep_object_fillers: Dict[str, DeepObjectFiller],
) -> None:
    if unpacker.deep_object is not None:
        filler: Any = _deep_object_filler(field_name, name, unpacker)
        query_bucket, form_bucket = deep_object_fillers, form_deep_object_fillers
    else:
        filler = _query_filler(field_name, name, unpacker)
        query_bucket, form_bucket = query_fillers, form_fillers
    if tags.form or tags.form_only:
        form_bucket[name] = filler
    if not tags.form_only:
        query_bucket[name] = filler


def _wrap(source: str, name: str, field_name: str, decode: Callable[[], Any], model: Any) -> None:
    try:
        value = decode()
    except UnknownParameterError:
        raise
    except Exception as e:
        raise DecodeError(
            f"{_LABELS[source]} {name} into field {field_name}: {e}",
            source=source,
            parameter=name,
            field=field_name,
        ) from e
    set_field(model, field_name, value)


def _body_filler(field_name: str, field_type: Any, options: BinderOptions) -> BodyFiller:
    decoders = options.decoders
    default_ct = options.default_content_type

    def fill_body(model: Any, body: bytes, request: Request) -> None:
        ct = request.headers.get("content-type") or default_ct
        decoder = decoders.for_body(ct)
        if decoder is None:
            # tolerate parameters such as "; charset=utf-8"
            decoder = decoders.for_body(ct.split(";", 1)[0].strip())
        if decoder is None:
            missing = MissingDecoderError(ct, f"No body decoder for content type {ct!r}")
            raise DecodeError(str(missing), source="body", field=field_name) from missing
        try:
            value = decoder(body, field_type)
        except Exception as e:
            raise DecodeError(
                f"Could not decode {ct} into {type_name(field_type)}: {e}",
                source="body",
                field=field_name,
            ) from e
        set_field(model, field_name, value)

    return fill_body


def _path_filler(field_name: str, name: str, unpacker: Unpacker) -> PathFiller:
    single = unpacker.single

    def fill_path(model: Any, lookup: PathVarLookup) -> None:
        raw = lookup(name)
        if raw is None:
            # the route has no such variable
            raise DecodeError(
                f"path element {name} into field {field_name}: no path variable named {name!r}",
                source="path",
                parameter=name,
                field=field_name,
            )
        _wrap("path", name, field_name, lambda: single(raw), model)

    return fill_path


def _header_filler(field_name: str, name: str, unpacker: Unpacker) -> HeaderFiller:
    if unpacker.multi is not None:
        multi = unpacker.multi

        def fill_header_values(model: Any, request: Request) -> None:
            values = request.headers.getlist(name)
            if not values:
                return
            _wrap("header", name, field_name, lambda: multi(values), model)

        return fill_header_values

    single = unpacker.single

    def fill_header(model: Any, request: Request) -> None:
        values = request.headers.getlist(name)
        if not values:
            return
        _wrap("header", name, field_name, lambda: single(values[0]), model)

    return fill_header


def _query_filler(field_name: str, name: str, unpacker: Unpacker) -> QueryFiller:
    if unpacker.multi is not None:
        multi = unpacker.multi
        return lambda model, values: _wrap("query", name, field_name, lambda: multi(values), model)

    single = unpacker.single

    def fill_query(model: Any, values: List[str]) -> None:
        if not values:
            return
        _wrap("query", name, field_name, lambda: single(values[0]), model)

    return fill_query


def _deep_object_filler(field_name: str, name: str, unpacker: Unpacker) -> DeepObjectFiller:
    deep = unpacker.deep_object
    return lambda model, map_values: _wrap("query", name, field_name, lambda: deep(map_values), model)


def _cookie_filler(field_name: str, name: str, unpacker: Unpacker) -> CookieFiller:
    single = unpacker.single

    def fill_cookie(model: Any, cookies: Mapping[str, str]) -> None:
        raw = cookies.get(name)
        if raw is None:
            return
        _wrap("cookie", name, field_name, lambda: single(raw), model)

    return fill_cookie
