"""
Field tag grammar.

A tag is attached to a dataclass field through its metadata:

    @dataclass
    class ListRequest:
        limit: int = param("query,name=limit")
        ids: List[int] = param("query,name=id,explode=true", default_factory=list)

Grammar: ``<base>[,key[=value]]*``. A bare key is a boolean set to true.
Nested models reuse the grammar, but the positional value is the sub-key
name instead of a base.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .errors import TagParseError

DEFAULT_TAG = "reqbind"

BASES = ("model", "path", "query", "header", "cookie", "-")

DELIMITERS: Dict[str, str] = {
    "comma": ",",
    "pipe": "|",
    "space": " ",
}

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}

# tag key -> (attribute, is_bool)
_KEYS: Dict[str, tuple] = {
    "name": ("name", False),
    "explode": ("explode", True),
    "delimiter": ("delimiter", False),
    "allowReserved": ("allow_reserved", True),
    "form": ("form", True),
    "formOnly": ("form_only", True),
    "content": ("content", False),
    "deepObject": ("deep_object", True),
}

_QUERY_ONLY = ("allow_reserved", "form", "form_only", "deep_object")


@dataclass(frozen=True)
class TagDescriptor:
    base: str
    name: str = ""
    explode: bool = False
    delimiter: str = ","
    allow_reserved: bool = False
    form: bool = False
    form_only: bool = False
    content: str = ""
    deep_object: bool = False

    def without_explode(self) -> "TagDescriptor":
        return replace(self, explode=False)

    def without_content(self) -> "TagDescriptor":
        return replace(self, content="")

    def without_deep_object(self) -> "TagDescriptor":
        return replace(self, deep_object=False)


def parse_bool(value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean {value!r}")


def parse_tag(text: str, *, nested: bool = False, field: Optional[str] = None) -> TagDescriptor:
    parts = text.split(",")
    base = parts[0].strip()
    if not nested and base not in BASES:
        raise TagParseError(f"unknown base {base!r}, expected one of {', '.join(BASES)}", tag=text, field=field)

    values: Dict[str, Any] = {}
    for part in parts[1:]:
        if part == "":
            raise TagParseError("empty option", tag=text, field=field)
        key, sep, raw = part.partition("=")
        if key not in _KEYS:
            raise TagParseError(f"unknown option {key!r}", tag=text, field=field)
        attr, is_bool = _KEYS[key]
        if attr in values:
            raise TagParseError(f"option {key!r} given twice", tag=text, field=field)
        if is_bool:
            if not sep:
                values[attr] = True
                continue
            try:
                values[attr] = parse_bool(raw)
            except ValueError as e:
                raise TagParseError(f"option {key!r}: {e}", tag=text, field=field) from e
        else:
            if not sep:
                raise TagParseError(f"option {key!r} requires a value", tag=text, field=field)
            values[attr] = raw

    if "delimiter" in values:
        d = values["delimiter"]
        if d == "":
            raise TagParseError("empty delimiter", tag=text, field=field)
        values["delimiter"] = DELIMITERS.get(d, d)

    if "explode" not in values:
        values["explode"] = (not nested) and base in ("query", "header")

    if not nested:
        if base in ("model", "-") and len(parts) > 1:
            raise TagParseError(f"{base!r} does not take options", tag=text, field=field)
        if base != "query":
            for attr in _QUERY_ONLY:
                if values.get(attr):
                    raise TagParseError(f"{attr} is only allowed for query parameters", tag=text, field=field)
    if values.get("form") and values.get("form_only"):
        raise TagParseError("form and formOnly are mutually exclusive", tag=text, field=field)

    return TagDescriptor(base=base, **values)


def lookup_tag(f: dataclasses.Field, key: str = DEFAULT_TAG) -> Optional[str]:
    v = f.metadata.get(key) if f.metadata else None
    if v is None:
        return None
    return str(v)


def param(tag: str, *, key: str = DEFAULT_TAG, metadata: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
    """dataclasses.field() carrying a binder tag in its metadata."""
    md = dict(metadata or {})
    md[key] = tag
    return dataclasses.field(metadata=md, **kwargs)
