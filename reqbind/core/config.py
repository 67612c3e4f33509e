from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

from .decoders import Decoder, DecoderRegistry
from .tags import DEFAULT_TAG

# provider(request) -> lookup(name) -> raw path segment
PathVarLookup = Callable[[str], Optional[str]]
PathVarProvider = Callable[[Any], PathVarLookup]

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class BinderOptions:
    # IMPORTANT: binders capture these at compile time; changes do not reach compiled binders
    tag: str = DEFAULT_TAG
    decoders: DecoderRegistry = field(default_factory=DecoderRegistry)
    default_content_type: str = ""
    reject_unknown_query_parameters: bool = False
    path_vars: Optional[PathVarProvider] = None

    def __post_init__(self) -> None:
        if not isinstance(self.decoders, DecoderRegistry):
            object.__setattr__(self, "decoders", DecoderRegistry(self.decoders))

    @classmethod
    def from_env(cls, **overrides: Any) -> "BinderOptions":
        """
        Reads:
          REQBIND_TAG                   metadata key holding field tags
          REQBIND_DEFAULT_CONTENT_TYPE  body content type when the request sends none
          REQBIND_REJECT_UNKNOWN_QUERY  true/false
        Keyword overrides win over the environment.
        """
        values: dict = {}
        tag = os.getenv("REQBIND_TAG")
        if tag:
            values["tag"] = tag
        ct = os.getenv("REQBIND_DEFAULT_CONTENT_TYPE")
        if ct:
            values["default_content_type"] = ct
        strict = os.getenv("REQBIND_REJECT_UNKNOWN_QUERY")
        if strict is not None:
            values["reject_unknown_query_parameters"] = strict.strip().lower() in _TRUTHY
        values.update(overrides)
        return cls(**values)

    def with_decoder(self, content_type: str, decoder: Decoder) -> "BinderOptions":
        return replace(self, decoders=self.decoders.with_decoder(content_type, decoder))

    def with_default_content_type(self, content_type: str) -> "BinderOptions":
        return replace(self, default_content_type=content_type)

    def with_reject_unknown_query_parameters(self, reject: bool = True) -> "BinderOptions":
        return replace(self, reject_unknown_query_parameters=bool(reject))

    def with_path_vars(self, provider: PathVarProvider) -> "BinderOptions":
        return replace(self, path_vars=provider)

    def with_tag(self, tag: str) -> "BinderOptions":
        return replace(self, tag=tag)
