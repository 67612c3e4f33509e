"""
FastAPI / Starlette wiring.

RequestDecoder compiles one binder per model type at wiring time and hands
out dependencies that fill the model for every request:

    decoder = RequestDecoder(BinderOptions().with_decoder("application/json", json_decoder))

    @router.get("/users/{id}")
    async def get_user(req: GetUser = Depends(decoder.depends(GetUser))):
        ...

Binding failures become HTTP 400 responses. Code that decodes outside a
dependency compiles its models up front with ``decoder.prepare(GetUser)``
and then calls ``await decoder.decode(GetUser, request)``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException, Request

from reqbind.api.observability.metrics import BIND_FAILURES_TOTAL, BINDERS_COMPILED_TOTAL
from reqbind.core.config import BinderOptions, PathVarLookup
from reqbind.core.errors import ConfigurationError, ModelBindError
from reqbind.core.filler import compile_binder
from reqbind.core.resolver import ModelBinder
from reqbind.core.shapes import type_name

log = logging.getLogger("reqbind.api")


def starlette_path_vars(request: Request) -> PathVarLookup:
    """Path variable lookup backed by the matched route's path_params."""
    params = request.path_params

    def lookup(name: str) -> Optional[str]:
        v = params.get(name)
        return None if v is None else str(v)

    return lookup


async def read_body(request: Request) -> bytes:
    # Starlette caches the body on the request, later readers get the same bytes
    return await request.body()


class RequestDecoder:
    def __init__(self, options: Optional[BinderOptions] = None, **overrides: Any):
        opts = options if options is not None else BinderOptions.from_env()
        if overrides:
            opts = replace(opts, **overrides)
        if opts.path_vars is None:
            opts = opts.with_path_vars(starlette_path_vars)
        self.options = opts
        self._binders: Dict[Any, Optional[ModelBinder]] = {}

    def binder_for(self, model_type: Any) -> Optional[ModelBinder]:
        """Compiled binder for model_type, or None when the type has nothing to fill.

        Call during wiring; compile errors raise here.
        """
        if model_type not in self._binders:
            binder = compile_binder(model_type, self.options)
            self._binders[model_type] = binder
            if binder is not None:
                BINDERS_COMPILED_TOTAL.labels(model=type_name(binder.model_type)).inc()
        return self._binders[model_type]

    def prepare(self, *model_types: Any) -> "RequestDecoder":
        """Compile binders for decode(). Returns self so wiring can chain."""
        for model_type in model_types:
            self._require(model_type)
        return self

    async def decode(self, model_type: Any, request: Request) -> Any:
        """Fill model_type from request. Raises ModelBindError.

        Only models compiled by prepare(), binder_for() or depends() are
        accepted; nothing is compiled while serving requests.
        """
        binder = self._binders.get(model_type)
        if binder is None:
            raise ConfigurationError(f"{type_name(model_type)} was not prepared; call prepare() while wiring")
        body = await read_body(request) if binder.needs_body else b""
        return binder.resolve(request, body)

    def depends(self, model_type: Any) -> Callable[..., Any]:
        binder = self._require(model_type)
        label = type_name(binder.model_type)

        async def provide(request: Request) -> Any:
            body = await read_body(request) if binder.needs_body else b""
            try:
                return binder.resolve(request, body)
            except ModelBindError as e:
                BIND_FAILURES_TOTAL.labels(model=label).inc()
                log.info("bind rejected model=%s path=%s: %s", label, request.url.path, e)
                raise HTTPException(status_code=e.status_code, detail=str(e)) from e

        provide.__name__ = f"bind_{label}"
        return provide

    def _require(self, model_type: Any) -> ModelBinder:
        binder = self.binder_for(model_type)
        if binder is None:
            raise ConfigurationError(f"{type_name(model_type)} has no fields tagged with {self.options.tag!r}")
        return binder
