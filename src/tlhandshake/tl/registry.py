from __future__ import annotations

from typing import TypeVar

from .runtime import TLObject
from .types import (
    ClientDhInnerData,
    DhGenFail,
    DhGenOk,
    DhGenRetry,
    PQInnerData,
    ReqDhParams,
    ReqPq,
    ReqPqMulti,
    ResPq,
    ServerDhInnerData,
    ServerDhParamsFail,
    ServerDhParamsOk,
    SetClientDhParams,
)


class RegistryError(Exception):
    pass


T = TypeVar("T", bound=type[TLObject])

CONSTRUCTORS_BY_ID: dict[int, type[TLObject]] = {}


def register(cls: T) -> T:
    """
    Register a TL constructor class by its `TL_ID`.

    Usable as a class decorator. Re-registering the same class is a no-op;
    a different class under an already known id is rejected.
    """

    tl_id = getattr(cls, "TL_ID", None)
    if not isinstance(tl_id, int) or not 0 < tl_id <= 0xFFFFFFFF:
        raise RegistryError(f"{cls.__name__} has invalid TL_ID: {tl_id!r}")
    existing = CONSTRUCTORS_BY_ID.get(tl_id)
    if existing is not None and existing is not cls:
        raise RegistryError(
            f"Constructor id {tl_id:#010x} already registered for {existing.TL_NAME}"
        )
    CONSTRUCTORS_BY_ID[tl_id] = cls
    return cls


def get_constructor(tl_id: int) -> type[TLObject] | None:
    return CONSTRUCTORS_BY_ID.get(tl_id)


def name_of(tl_id: int) -> str:
    cls = CONSTRUCTORS_BY_ID.get(tl_id)
    if cls is None:
        return f"#{tl_id:08x}"
    return cls.TL_NAME


for _cls in (
    ReqPq,
    ReqPqMulti,
    ResPq,
    PQInnerData,
    ReqDhParams,
    ServerDhParamsOk,
    ServerDhParamsFail,
    ServerDhInnerData,
    ClientDhInnerData,
    SetClientDhParams,
    DhGenOk,
    DhGenRetry,
    DhGenFail,
):
    register(_cls)
