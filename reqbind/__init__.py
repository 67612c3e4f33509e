"""Declarative request-model binding for Starlette and FastAPI."""

from reqbind.api.dependency import RequestDecoder, read_body, starlette_path_vars
from reqbind.core import (
    BinderOptions,
    DecodeError,
    ModelBindError,
    ModelBinder,
    ReqBindError,
    compile_binder,
    json_decoder,
    param,
    xml_decoder,
    yaml_decoder,
)

__version__ = "0.1.0"

__all__ = [
    "BinderOptions",
    "DecodeError",
    "ModelBindError",
    "ModelBinder",
    "ReqBindError",
    "RequestDecoder",
    "compile_binder",
    "json_decoder",
    "param",
    "read_body",
    "starlette_path_vars",
    "xml_decoder",
    "yaml_decoder",
]
