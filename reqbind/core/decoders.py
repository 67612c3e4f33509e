"""
Content-type byte decoders.

A decoder takes the raw payload and the target type and returns a value of
that type:

    def decode(raw: bytes, target_type) -> Any

Request bodies are only decoded with decoders registered explicitly.
Field-level ``content=`` tags fall back to the built-in JSON, XML and YAML
decoders when nothing is registered for the content type.
"""

from __future__ import annotations

import functools
import xml.etree.ElementTree as ET
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

import yaml
from pydantic import TypeAdapter

Decoder = Callable[[bytes, Any], Any]


@functools.lru_cache(maxsize=512)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def json_decoder(raw: bytes, target_type: Any) -> Any:
    return _adapter(target_type).validate_json(raw)


def yaml_decoder(raw: bytes, target_type: Any) -> Any:
    return _adapter(target_type).validate_python(yaml.safe_load(raw))


def xml_decoder(raw: bytes, target_type: Any) -> Any:
    """Decode an XML document; the root element's children become fields."""
    root = ET.fromstring(raw)
    return _adapter(target_type).validate_python(_element_value(root))


def _element_value(el: ET.Element) -> Any:
    children = list(el)
    if not children and not el.attrib:
        return (el.text or "").strip()
    out: Dict[str, Any] = dict(el.attrib)
    for child in children:
        value = _element_value(child)
        if child.tag in out:
            prev = out[child.tag]
            if isinstance(prev, list):
                prev.append(value)
            else:
                out[child.tag] = [prev, value]
        else:
            out[child.tag] = value
    return out


BUILTIN_DECODERS: Mapping[str, Decoder] = MappingProxyType(
    {
        "application/json": json_decoder,
        "application/xml": xml_decoder,
        "application/yaml": yaml_decoder,
        "text/yaml": yaml_decoder,
    }
)


class DecoderRegistry(Mapping[str, Decoder]):
    """Immutable content-type -> decoder mapping."""

    def __init__(self, decoders: Optional[Mapping[str, Decoder]] = None):
        self._decoders: Mapping[str, Decoder] = MappingProxyType(dict(decoders or {}))

    def __getitem__(self, content_type: str) -> Decoder:
        return self._decoders[content_type]

    def __iter__(self) -> Iterator[str]:
        return iter(self._decoders)

    def __len__(self) -> int:
        return len(self._decoders)

    def __repr__(self) -> str:
        return f"DecoderRegistry({sorted(self._decoders)})"

    def with_decoder(self, content_type: str, decoder: Decoder) -> "DecoderRegistry":
        d = dict(self._decoders)
        d[content_type] = decoder
        return DecoderRegistry(d)

    def for_body(self, content_type: str) -> Optional[Decoder]:
        return self._decoders.get(content_type)

    def for_field(self, content_type: str) -> Optional[Decoder]:
        return self._decoders.get(content_type) or BUILTIN_DECODERS.get(content_type)

    def content_types(self) -> List[str]:
        return sorted(self._decoders)
