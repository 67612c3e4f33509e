from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest

from reqbind.core.config import BinderOptions
from reqbind.core.decoders import json_decoder, xml_decoder, yaml_decoder
from reqbind.core.errors import DecodeError, MissingDecoderError, ModelBindError
from reqbind.core.filler import compile_binder
from reqbind.core.tags import param

FORM = "application/x-www-form-urlencoded"


# ---------------------------------------------------------------------------
# form values
# ---------------------------------------------------------------------------

@dataclass
class FormModel:
    a: int = param("query,name=a", default=0)
    b: int = param("query,form,name=b", default=0)
    c: int = param("query,formOnly,name=c", default=0)
    d: int = param("query,formOnly,name=d", default=0)


@pytest.fixture()
def post(build_request):
    def _post(model, url, content_type, body, options=None):
        binder = compile_binder(model, options or BinderOptions())
        req = build_request(url, method="POST", headers=[("Content-Type", content_type)])
        return binder.resolve(req, body)

    return _post


def test_form_and_query_values_combine(post):
    got = post(FormModel, "/x?a=7&b=8", FORM, b"c=9")
    assert got == FormModel(a=7, b=8, c=9)


def test_form_ignored_for_other_content_types(post):
    got = post(FormModel, "/x?a=7&b=8", "application/json", b"{}")
    assert got == FormModel(a=7, b=8)


def test_form_fills_form_and_form_only_fields(post):
    got = post(FormModel, "/x?a=7", FORM, b"c=9&b=8&d=2")
    assert got == FormModel(a=7, b=8, c=9, d=2)


def test_form_only_fields_ignore_query(post):
    got = post(FormModel, "/x?c=5&d=6", FORM, b"")
    assert got == FormModel()


def test_form_does_not_fill_query_only_fields(post):
    got = post(FormModel, "/x", FORM, b"a=3")
    assert got.a == 0


def test_binder_reports_it_needs_the_body_for_forms():
    assert compile_binder(FormModel).needs_body is True
    assert compile_binder(FormModel).needs_form is True


@dataclass
class FormDeep:
    filt: Dict[str, str] = param("query,formOnly,name=filter,deepObject=true", default_factory=dict)


def test_form_only_deep_object(post):
    got = post(FormDeep, "/x", FORM, b"filter%5Bcolor%5D=red&filter%5Bsize%5D=xl")
    assert got.filt == {"color": "red", "size": "xl"}


def test_bad_form_value(post):
    with pytest.raises(ModelBindError) as ei:
        post(FormModel, "/x", FORM, b"d=notanint")
    assert ei.value.cause.parameter == "d"


# ---------------------------------------------------------------------------
# request body
# ---------------------------------------------------------------------------

@dataclass
class Payload:
    name: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass
class BodyModel:
    limit: int = param("query,name=limit", default=0)
    body: Optional[Payload] = param("model", default=None)


def _body_options():
    return (
        BinderOptions()
        .with_decoder("application/json", json_decoder)
        .with_decoder("application/xml", xml_decoder)
        .with_decoder("application/yaml", yaml_decoder)
    )


def test_json_body(post):
    got = post(BodyModel, "/x?limit=2", "application/json", b'{"name": "n", "tags": ["a", "b"]}', _body_options())
    assert got.limit == 2
    assert got.body == Payload(name="n", tags=["a", "b"])


def test_content_type_parameters_are_tolerated(post):
    got = post(BodyModel, "/x", "application/json; charset=utf-8", b'{"name": "n"}', _body_options())
    assert got.body == Payload(name="n")


def test_yaml_body(post):
    got = post(BodyModel, "/x", "application/yaml", b"name: y\ntags: [p]\n", _body_options())
    assert got.body == Payload(name="y", tags=["p"])


def test_xml_body_with_repeated_elements(post):
    raw = b"<payload><name>x</name><tags>a</tags><tags>b</tags></payload>"
    got = post(BodyModel, "/x", "application/xml", raw, _body_options())
    assert got.body == Payload(name="x", tags=["a", "b"])


def test_unknown_body_content_type(post):
    with pytest.raises(ModelBindError) as ei:
        post(BodyModel, "/x", "text/csv", b"a,b", _body_options())
    cause = ei.value.cause
    assert isinstance(cause, DecodeError)
    assert isinstance(cause.__cause__, MissingDecoderError)
    assert cause.__cause__.content_type == "text/csv"


def test_default_content_type_used_without_header(build_request):
    opts = _body_options().with_default_content_type("application/json")
    binder = compile_binder(BodyModel, opts)
    got = binder.resolve(build_request("/x", method="POST"), b'{"name": "d"}')
    assert got.body == Payload(name="d")


def test_bad_body(post):
    with pytest.raises(ModelBindError) as ei:
        post(BodyModel, "/x", "application/json", b"{nope", _body_options())
    assert ei.value.cause.source == "body"
    assert "Could not decode application/json into" in str(ei.value)


def test_empty_body_is_still_decoded(post):
    with pytest.raises(ModelBindError):
        post(BodyModel, "/x", "application/json", b"", _body_options())
