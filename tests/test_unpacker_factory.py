from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pytest

from reqbind.core.config import BinderOptions
from reqbind.core.errors import DecodeError, UnknownParameterError, UnsupportedTypeError
from reqbind.core.tags import param, parse_tag
from reqbind.core.unpack import build_unpacker, resplit_on_equals


def unpacker(tp, tag, options=None):
    tags = parse_tag(tag)
    return build_unpacker(tp, "f", tags.name or "f", tags.base, tags, options or BinderOptions())


def test_primitive_gets_single_only():
    u = unpacker(int, "query,name=n")
    assert u.single("5") == 5
    assert u.multi is None
    assert u.deep_object is None


def test_optional_unwraps_to_inner_decoder():
    assert unpacker(Optional[int], "query,name=n").single("5") == 5


def test_exploded_slice_gets_multi():
    u = unpacker(List[int], "query,name=n")
    assert u.single is None
    assert u.multi(["1", "2"]) == [1, 2]


def test_delimited_slice_gets_single():
    u = unpacker(List[int], "header,name=n,explode=false,delimiter=;")
    assert u.single("1;2;3") == [1, 2, 3]


def test_path_slice_is_always_delimited():
    u = unpacker(List[str], "path,name=n", BinderOptions())
    assert u.multi is None
    assert u.single("a,b") == ["a", "b"]


def test_fixed_array():
    u = unpacker(Tuple[int, str, bool], "query,name=n,explode=false")
    assert u.single("1,x") == (1, "x", False)
    with pytest.raises(ValueError):
        u.single("1,x,true,extra")


def test_exploded_map():
    u = unpacker(Dict[str, int], "query,name=n")
    assert u.multi(["a=1", "b=2"]) == {"a": 1, "b": 2}


def test_delimited_map_with_odd_token_count():
    u = unpacker(Dict[str, str], "query,name=n,explode=false")
    assert u.single("a,1,b") == {"a": "1", "b": ""}


def test_deep_object_map():
    u = unpacker(Dict[str, List[int]], "query,name=n,deepObject=true")
    assert u.deep_object({"a": ["1", "2"], "b": ["3"]}) == {"a": [1, 2], "b": [3]}


def test_resplit_on_equals():
    assert resplit_on_equals(["a=1", "b", "c=d=e"]) == ["a", "1", "b", "", "c", "d=e"]


@dataclass
class Pt:
    x: int = param("x", default=0)
    y: int = param("y", default=0)
    label: Optional[str] = None


def test_struct_from_pairs():
    u = unpacker(Pt, "query,name=p,explode=false")
    assert u.single("x,1,y,2,label,here") == Pt(1, 2, "here")


def test_struct_exploded_pairs():
    u = unpacker(Pt, "query,name=p")
    assert u.multi(["x=1", "y=2"]) == Pt(1, 2)


def test_struct_deep_object():
    u = unpacker(Pt, "query,name=p,deepObject=true")
    assert u.deep_object({"x": ["4"], "label": ["l"]}) == Pt(4, 0, "l")


def test_struct_member_errors_name_the_member():
    u = unpacker(Pt, "query,name=p,explode=false")
    with pytest.raises(DecodeError, match="^x: "):
        u.single("x,abc")


def test_struct_strict_keys():
    u = unpacker(Pt, "query,name=p,explode=false", BinderOptions().with_reject_unknown_query_parameters())
    with pytest.raises(UnknownParameterError):
        u.single("z,1")


def test_content_decoder_single():
    u = unpacker(List[int], "query,name=n,explode=false,content=application/json")
    assert u.single("[1, 2]") == [1, 2]


def test_content_decoder_error():
    u = unpacker(int, "query,name=n,content=application/json")
    with pytest.raises(DecodeError) as ei:
        u.single("nope")
    assert ei.value.parameter == "n"


def test_content_decoder_exploded_slice():
    u = unpacker(List[Dict[str, int]], "query,name=n,content=application/json")
    assert u.multi(['{"a": 1}', '{"b": 2}']) == [{"a": 1}, {"b": 2}]


def test_unsupported_element():
    with pytest.raises(UnsupportedTypeError):
        unpacker(List[object], "query,name=n")
