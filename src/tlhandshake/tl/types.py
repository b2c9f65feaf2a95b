from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from .runtime import TLObject, TLRequest

# Auth key exchange constructors (unencrypted phase).
# Ids are the unsigned values as written in the TL schema.


@dataclass(slots=True)
class ReqPq(TLRequest):
    TL_ID: ClassVar[int] = 0x60469778
    TL_NAME: ClassVar[str] = "req_pq"
    TL_RESULT: ClassVar[str] = "ResPQ"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (("nonce", "int128"),)

    nonce: bytes


@dataclass(slots=True)
class ReqPqMulti(TLRequest):
    TL_ID: ClassVar[int] = 0xBE7E8EF1
    TL_NAME: ClassVar[str] = "req_pq_multi"
    TL_RESULT: ClassVar[str] = "ResPQ"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (("nonce", "int128"),)

    nonce: bytes


@dataclass(slots=True)
class ResPq(TLObject):
    TL_ID: ClassVar[int] = 0x05162463
    TL_NAME: ClassVar[str] = "resPQ"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("pq", "bytes"),
        ("server_public_key_fingerprints", "Vector<long>"),
    )

    nonce: bytes
    server_nonce: bytes
    pq: bytes
    server_public_key_fingerprints: list[int]


@dataclass(slots=True)
class PQInnerData(TLObject):
    TL_ID: ClassVar[int] = 0x83C95AEC
    TL_NAME: ClassVar[str] = "p_q_inner_data"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("pq", "bytes"),
        ("p", "bytes"),
        ("q", "bytes"),
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("new_nonce", "int256"),
    )

    pq: bytes
    p: bytes
    q: bytes
    nonce: bytes
    server_nonce: bytes
    new_nonce: bytes


@dataclass(slots=True)
class ReqDhParams(TLRequest):
    TL_ID: ClassVar[int] = 0xD712E4BE
    TL_NAME: ClassVar[str] = "req_DH_params"
    TL_RESULT: ClassVar[str] = "Server_DH_Params"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("p", "bytes"),
        ("q", "bytes"),
        ("public_key_fingerprint", "long"),
        ("encrypted_data", "bytes"),
    )

    nonce: bytes
    server_nonce: bytes
    p: bytes
    q: bytes
    public_key_fingerprint: int
    encrypted_data: bytes


@dataclass(slots=True)
class ServerDhParamsOk(TLObject):
    TL_ID: ClassVar[int] = 0xD0E8075C
    TL_NAME: ClassVar[str] = "server_DH_params_ok"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("encrypted_answer", "bytes"),
    )

    nonce: bytes
    server_nonce: bytes
    encrypted_answer: bytes


@dataclass(slots=True)
class ServerDhParamsFail(TLObject):
    TL_ID: ClassVar[int] = 0x79CB045D
    TL_NAME: ClassVar[str] = "server_DH_params_fail"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("new_nonce_hash", "int128"),
    )

    nonce: bytes
    server_nonce: bytes
    new_nonce_hash: bytes


@dataclass(slots=True)
class ServerDhInnerData(TLObject):
    TL_ID: ClassVar[int] = 0xB5890DBA
    TL_NAME: ClassVar[str] = "server_DH_inner_data"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("g", "int"),
        ("dh_prime", "bytes"),
        ("g_a", "bytes"),
        ("server_time", "int"),
    )

    nonce: bytes
    server_nonce: bytes
    g: int
    dh_prime: bytes
    g_a: bytes
    server_time: int


@dataclass(slots=True)
class ClientDhInnerData(TLObject):
    TL_ID: ClassVar[int] = 0x6643B654
    TL_NAME: ClassVar[str] = "client_DH_inner_data"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("retry_id", "long"),
        ("g_b", "bytes"),
    )

    nonce: bytes
    server_nonce: bytes
    retry_id: int
    g_b: bytes


@dataclass(slots=True)
class SetClientDhParams(TLRequest):
    TL_ID: ClassVar[int] = 0xF5045F1F
    TL_NAME: ClassVar[str] = "set_client_DH_params"
    TL_RESULT: ClassVar[str] = "Set_client_DH_params_answer"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("encrypted_data", "bytes"),
    )

    nonce: bytes
    server_nonce: bytes
    encrypted_data: bytes


@dataclass(slots=True)
class DhGenOk(TLObject):
    TL_ID: ClassVar[int] = 0x3BCBF734
    TL_NAME: ClassVar[str] = "dh_gen_ok"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("new_nonce_hash1", "int128"),
    )

    nonce: bytes
    server_nonce: bytes
    new_nonce_hash1: bytes


@dataclass(slots=True)
class DhGenRetry(TLObject):
    TL_ID: ClassVar[int] = 0x46DC1FB9
    TL_NAME: ClassVar[str] = "dh_gen_retry"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("new_nonce_hash2", "int128"),
    )

    nonce: bytes
    server_nonce: bytes
    new_nonce_hash2: bytes


@dataclass(slots=True)
class DhGenFail(TLObject):
    TL_ID: ClassVar[int] = 0xA69DAE02
    TL_NAME: ClassVar[str] = "dh_gen_fail"
    TL_PARAMS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("nonce", "int128"),
        ("server_nonce", "int128"),
        ("new_nonce_hash3", "int128"),
    )

    nonce: bytes
    server_nonce: bytes
    new_nonce_hash3: bytes


@dataclass(frozen=True, slots=True)
class UnknownConstructor:
    """
    A record whose constructor id is not registered.

    `data` holds the undecoded bytes that followed the id.
    """

    constructor_id: int
    data: bytes = b""

    @property
    def name(self) -> str:
        return f"#{self.constructor_id:08x}"


DhGenAnswer = DhGenOk | DhGenRetry | DhGenFail
ServerDhParams = ServerDhParamsOk | ServerDhParamsFail
