from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated


@dataclass(frozen=True)
class IntBounds:
    bits: int
    signed: bool = True

    @property
    def low(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def high(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1


@dataclass(frozen=True)
class FloatBits:
    bits: int


Int8 = Annotated[int, IntBounds(8)]
Int16 = Annotated[int, IntBounds(16)]
Int32 = Annotated[int, IntBounds(32)]
Int64 = Annotated[int, IntBounds(64)]
UInt = Annotated[int, IntBounds(64, signed=False)]
UInt8 = Annotated[int, IntBounds(8, signed=False)]
UInt16 = Annotated[int, IntBounds(16, signed=False)]
UInt32 = Annotated[int, IntBounds(32, signed=False)]
UInt64 = Annotated[int, IntBounds(64, signed=False)]
Float32 = Annotated[float, FloatBits(32)]
Float64 = Annotated[float, FloatBits(64)]
