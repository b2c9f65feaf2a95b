from .codec import (
    InvalidSizeError,
    ShortBufferError,
    TLCodecError,
    TLReader,
    TLWriter,
    UnexpectedConstructorError,
    dumps,
    loads,
    loads_prefix,
)
from .registry import CONSTRUCTORS_BY_ID, RegistryError, name_of, register
from .runtime import TLObject, TLRequest
from .types import UnknownConstructor

__all__ = [
    "CONSTRUCTORS_BY_ID",
    "InvalidSizeError",
    "RegistryError",
    "ShortBufferError",
    "TLCodecError",
    "TLObject",
    "TLReader",
    "TLRequest",
    "TLWriter",
    "UnexpectedConstructorError",
    "UnknownConstructor",
    "dumps",
    "loads",
    "loads_prefix",
    "name_of",
    "register",
]
