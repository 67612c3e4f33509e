from .config import BinderOptions, PathVarLookup, PathVarProvider
from .decoders import BUILTIN_DECODERS, Decoder, DecoderRegistry, json_decoder, xml_decoder, yaml_decoder
from .errors import (
    BinderCompileError,
    ConfigurationError,
    DecodeError,
    DuplicateParameterError,
    MissingDecoderError,
    ModelBindError,
    ReqBindError,
    RequestBindError,
    TagParseError,
    UnknownParameterError,
    UnsupportedTypeError,
)
from .filler import compile_binder
from .kinds import Float32, Float64, Int8, Int16, Int32, Int64, UInt, UInt8, UInt16, UInt32, UInt64
from .resolver import ModelBinder
from .setters import TextUnmarshaler, register_string_setter
from .tags import DEFAULT_TAG, TagDescriptor, param, parse_tag
from .unpack import Unpacker, build_unpacker

__all__ = [
    "BUILTIN_DECODERS",
    "BinderCompileError",
    "BinderOptions",
    "ConfigurationError",
    "DEFAULT_TAG",
    "DecodeError",
    "Decoder",
    "DecoderRegistry",
    "DuplicateParameterError",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "MissingDecoderError",
    "ModelBindError",
    "ModelBinder",
    "PathVarLookup",
    "PathVarProvider",
    "ReqBindError",
    "RequestBindError",
    "TagDescriptor",
    "TagParseError",
    "TextUnmarshaler",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "UnknownParameterError",
    "Unpacker",
    "UnsupportedTypeError",
    "build_unpacker",
    "compile_binder",
    "json_decoder",
    "param",
    "parse_tag",
    "register_string_setter",
    "xml_decoder",
    "yaml_decoder",
]
