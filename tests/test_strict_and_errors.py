import logging
from dataclasses import dataclass
from typing import Dict, Optional

import pytest

from reqbind.core.config import BinderOptions
from reqbind.core.errors import DecodeError, ModelBindError, RequestBindError, UnknownParameterError
from reqbind.core.filler import compile_binder
from reqbind.core.tags import param

STRICT = BinderOptions().with_reject_unknown_query_parameters()


@dataclass
class Inner:
    a: int = 0
    b: str = ""


@dataclass
class StrictModel:
    limit: int = param("query,name=limit", default=0)
    inner: Optional[Inner] = param("query,name=inner,explode=false", default=None)
    deep: Dict[str, int] = param("query,name=deep,deepObject=true", default_factory=dict)
    token: str = param("header,name=X-Token", default="")


# ---------------------------------------------------------------------------
# unknown query parameters
# ---------------------------------------------------------------------------

def test_unknown_query_parameters_ignored_by_default(build_request):
    got = compile_binder(StrictModel).resolve(build_request("/x?limit=2&other=1"))
    assert got.limit == 2


def test_unknown_query_parameter_rejected_in_strict_mode(build_request):
    with pytest.raises(ModelBindError) as ei:
        compile_binder(StrictModel, STRICT).resolve(build_request("/x?limit=2&other=1"))
    cause = ei.value.cause
    assert isinstance(cause, UnknownParameterError)
    assert cause.parameter == "other"
    assert "query parameter 'other' not supported" in str(ei.value)
    assert ei.value.model.limit == 2


def test_deep_object_keys_are_known_in_strict_mode(build_request):
    got = compile_binder(StrictModel, STRICT).resolve(build_request("/x?deep[a]=1&deep[b]=2"))
    assert got.deep == {"a": 1, "b": 2}


def test_bracket_key_for_unknown_root_rejected_in_strict_mode(build_request):
    with pytest.raises(ModelBindError) as ei:
        compile_binder(StrictModel, STRICT).resolve(build_request("/x?nope[a]=1"))
    assert ei.value.cause.parameter == "nope[a]"


def test_unknown_nested_key_rejected_in_strict_mode(build_request):
    with pytest.raises(ModelBindError) as ei:
        compile_binder(StrictModel, STRICT).resolve(build_request("/x?inner=a,1,zzz,2"))
    assert isinstance(ei.value.cause, UnknownParameterError)
    assert "No struct member to receive key 'zzz'" in str(ei.value)


def test_unknown_nested_key_ignored_by_default(build_request):
    got = compile_binder(StrictModel).resolve(build_request("/x?inner=a,1,zzz,2"))
    assert got.inner == Inner(a=1)


# ---------------------------------------------------------------------------
# first error wins
# ---------------------------------------------------------------------------

@dataclass
class Several:
    first: int = param("header,name=X-First", default=0)
    second: int = param("query,name=second", default=0)
    third: int = param("query,name=third", default=0)
    fourth: str = param("cookie,name=fourth", default="")


def test_first_error_wins_and_later_fields_still_fill(build_request):
    req = build_request(
        "/x?second=bad&third=3",
        headers=[("X-First", "also-bad")],
        cookies={"fourth": "ok"},
    )
    with pytest.raises(ModelBindError) as ei:
        compile_binder(Several).resolve(req)
    err = ei.value
    # headers run before query parameters
    assert err.cause.source == "header"
    assert err.cause.parameter == "X-First"
    assert err.model.third == 3
    assert err.model.fourth == "ok"
    assert err.model_type is Several


def test_bind_errors_are_client_errors(build_request):
    with pytest.raises(RequestBindError) as ei:
        compile_binder(Several).resolve(build_request("/x?second=x"))
    assert ei.value.status_code == 400
    assert isinstance(ei.value.__cause__, DecodeError)


def test_bind_failure_logged_at_debug(build_request, caplog):
    caplog.set_level(logging.DEBUG, logger="reqbind.resolve")
    with pytest.raises(ModelBindError):
        compile_binder(Several).resolve(build_request("/x?second=x"))
    assert any("bind failed model=Several" in r.getMessage() for r in caplog.records)


def test_compile_logged_at_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="reqbind.compile")
    compile_binder(Several)
    assert any("binder compiled model=Several" in r.getMessage() for r in caplog.records)
