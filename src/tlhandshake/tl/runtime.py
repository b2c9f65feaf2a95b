from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(slots=True)
class TLObject:
    """
    Base class for TL constructors.

    Subclasses set `TL_ID` (unsigned 32-bit constructor id), `TL_NAME` and
    `TL_PARAMS`, an ordered tuple of `(field, type_expr)` pairs that drives
    both encoding and decoding.
    """

    TL_ID: ClassVar[int]
    TL_NAME: ClassVar[str]
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = ()


@dataclass(slots=True)
class TLRequest(TLObject):
    """
    Base class for TL methods (requests). `TL_RESULT` names the expected result type.
    """

    TL_RESULT: ClassVar[str]
