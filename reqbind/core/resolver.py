from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl

from starlette.requests import Request

from .config import PathVarLookup, PathVarProvider
from .errors import DecodeError, ModelBindError, RequestBindError, UnknownParameterError
from .shapes import new_instance, type_name

log = logging.getLogger("reqbind.resolve")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# id[name]
DEEP_OBJECT_RE = re.compile(r"^([^\[]+)\[([^\]]+)\]$")

BodyFiller = Callable[[Any, bytes, Request], None]
PathFiller = Callable[[Any, PathVarLookup], None]
HeaderFiller = Callable[[Any, Request], None]
CookieFiller = Callable[[Any, Mapping[str, str]], None]
QueryFiller = Callable[[Any, List[str]], None]
DeepObjectFiller = Callable[[Any, Dict[str, List[str]]], None]

_FILLER_MAPS = ("query_fillers", "deep_object_fillers", "form_fillers", "form_deep_object_fillers")


class _FirstError:
    """Keeps the first failure; every filler still runs."""

    def __init__(self) -> None:
        self.error: Optional[RequestBindError] = None

    def record(self, e: RequestBindError) -> None:
        if self.error is None:
            self.error = e

    def run(self, fn: Callable[..., None], *args: Any) -> None:
        try:
            fn(*args)
        except RequestBindError as e:
            self.record(e)


def group_values(items: Iterable[Tuple[str, str]]) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for k, v in items:
        out.setdefault(k, []).append(v)
    return out


@dataclass(frozen=True)
class ModelBinder:
    """Compiled fillers for one model type.

    Built by compile_binder(); immutable and shared by all requests.
    """

    model_type: type
    body_fillers: Tuple[BodyFiller, ...] = ()
    path_fillers: Tuple[PathFiller, ...] = ()
    header_fillers: Tuple[HeaderFiller, ...] = ()
    cookie_fillers: Tuple[CookieFiller, ...] = ()
    query_fillers: Mapping[str, QueryFiller] = field(default_factory=dict)
    deep_object_fillers: Mapping[str, DeepObjectFiller] = field(default_factory=dict)
    form_fillers: Mapping[str, QueryFiller] = field(default_factory=dict)
    form_deep_object_fillers: Mapping[str, DeepObjectFiller] = field(default_factory=dict)
    path_vars: Optional[PathVarProvider] = None
    reject_unknown_query_parameters: bool = False

    def __post_init__(self) -> None:
        for name in _FILLER_MAPS:
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def needs_body(self) -> bool:
        return bool(self.body_fillers) or self.needs_form

    @property
    def needs_path(self) -> bool:
        return bool(self.path_fillers)

    @property
    def needs_form(self) -> bool:
        return bool(self.form_fillers) or bool(self.form_deep_object_fillers)

    def filler_count(self) -> int:
        return (
            len(self.body_fillers)
            + len(self.path_fillers)
            + len(self.header_fillers)
            + len(self.cookie_fillers)
            + len(self.query_fillers)
            + len(self.deep_object_fillers)
            + len(self.form_fillers)
            + len(self.form_deep_object_fillers)
        )

    def resolve(self, request: Request, body: bytes = b"") -> Any:
        """Build a fresh model from the request.

        Raises ModelBindError carrying the first failure once every filler
        has run.
        """
        model = new_instance(self.model_type)
        errs = _FirstError()

        for bf in self.body_fillers:
            errs.run(bf, model, body, request)

        if self.path_fillers:
            lookup = self.path_vars(request)
            for pf in self.path_fillers:
                errs.run(pf, model, lookup)

        for hf in self.header_fillers:
            errs.run(hf, model, request)

        deep_objects: Dict[str, Dict[str, List[str]]] = {}
        self._handle_query(
            model,
            group_values(request.query_params.multi_items()),
            self.query_fillers,
            self.deep_object_fillers,
            deep_objects,
            errs,
        )

        if self.needs_form and request.headers.get("content-type") == FORM_CONTENT_TYPE:
            try:
                values = group_values(parse_qsl(body.decode("utf-8"), keep_blank_values=True))
            except (UnicodeDecodeError, ValueError) as e:
                errs.record(DecodeError(f"could not parse {FORM_CONTENT_TYPE} data: {e}", source="form"))
            else:
                self._handle_query(
                    model,
                    values,
                    self.form_fillers,
                    self.form_deep_object_fillers,
                    deep_objects,
                    errs,
                )

        for root, values in deep_objects.items():
            dof = self.deep_object_fillers.get(root) or self.form_deep_object_fillers[root]
            errs.run(dof, model, values)

        if self.cookie_fillers:
            cookies = request.cookies
            for cf in self.cookie_fillers:
                errs.run(cf, model, cookies)

        if errs.error is not None:
            log.debug(
                "bind failed model=%s path=%s source=%s parameter=%s: %s",
                type_name(self.model_type),
                request.url.path,
                getattr(errs.error, "source", None),
                getattr(errs.error, "parameter", None),
                errs.error,
            )
            raise ModelBindError(model_type=self.model_type, cause=errs.error, model=model) from errs.error
        return model

    def _handle_query(
        self,
        model: Any,
        values: Dict[str, List[str]],
        fillers: Mapping[str, QueryFiller],
        deep_fillers: Mapping[str, DeepObjectFiller],
        deep_objects: Dict[str, Dict[str, List[str]]],
        errs: _FirstError,
    ) -> None:
        for key, vals in values.items():
            qf = fillers.get(key)
            if qf is not None:
                errs.run(qf, model, vals)
                continue
            if deep_fillers:
                m = DEEP_OBJECT_RE.match(key)
                if m is not None and m.group(1) in deep_fillers:
                    deep_objects.setdefault(m.group(1), {})[m.group(2)] = vals
                    continue
            if self.reject_unknown_query_parameters:
                errs.record(UnknownParameterError(key))
