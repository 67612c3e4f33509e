"""Binder exceptions.

Compile-time errors derive from BinderCompileError and are raised while a
binder is being built for a model type. Runtime errors derive from
RequestBindError; they describe a bad client request and carry a 400
status code for the surrounding web layer.
"""

from __future__ import annotations

from typing import Any, Optional


class ReqBindError(Exception):
    pass


class BinderCompileError(ReqBindError):
    pass


class TagParseError(BinderCompileError):
    def __init__(self, message: str, *, tag: Optional[str] = None, field: Optional[str] = None):
        self.tag = tag
        self.field = field
        if field:
            message = f"{field}: {message}"
        if tag is not None:
            message = f"{message} (tag {tag!r})"
        super().__init__(message)


class UnsupportedTypeError(BinderCompileError):
    def __init__(self, *, field: str, field_type: Any, reason: str = ""):
        self.field = field
        self.field_type = field_type
        msg = f"Cannot decode into {field}, {_type_name(field_type)}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class MissingDecoderError(BinderCompileError):
    def __init__(self, content_type: str, message: str = ""):
        self.content_type = content_type
        super().__init__(message or f"No decoder provided for content type {content_type!r}")


class DuplicateParameterError(BinderCompileError):
    pass


class ConfigurationError(BinderCompileError):
    pass


class RequestBindError(ReqBindError):
    status_code = 400


class DecodeError(RequestBindError):
    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        parameter: Optional[str] = None,
        field: Optional[str] = None,
    ):
        self.source = source
        self.parameter = parameter
        self.field = field
        super().__init__(message)


class UnknownParameterError(RequestBindError):
    def __init__(self, parameter: str, *, message: str = ""):
        self.parameter = parameter
        super().__init__(message or f"query parameter {parameter!r} not supported")


class ModelBindError(RequestBindError):
    """Terminal error raised by a binder; wraps the first failure of a request.

    ``model`` is the partially populated instance, every filler having run.
    """

    def __init__(self, *, model_type: Any, cause: BaseException, model: Any = None):
        self.model_type = model_type
        self.cause = cause
        self.model = model
        self.status_code = getattr(cause, "status_code", RequestBindError.status_code)
        super().__init__(f"{_type_name(model_type)} model: {cause}")


def _type_name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)
