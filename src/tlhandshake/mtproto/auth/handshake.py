from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from tlhandshake.core.bytes import be_bytes_to_int, int_to_be_bytes
from tlhandshake.mtproto.core.msg_id import MsgIdGenerator
from tlhandshake.mtproto.core.state import HandshakeStage, Session
from tlhandshake.mtproto.core.unencrypted import UnencryptedMessage, unpack_unencrypted
from tlhandshake.mtproto.crypto.aes_ige import AesIge, AesIgeError
from tlhandshake.mtproto.crypto.hashes import sha1
from tlhandshake.mtproto.crypto.random import random_bytes, random_padding
from tlhandshake.mtproto.crypto.rsa import RsaError, RsaPublicKey
from tlhandshake.mtproto.transport.base import PacketTransport
from tlhandshake.tl.codec import dumps, loads, loads_prefix
from tlhandshake.tl.registry import name_of
from tlhandshake.tl.types import (
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
    UnknownConstructor,
)

from .dh import DhError, check_dh_params, make_dh_result
from .kdf import KdfError, new_nonce_hash, params_fail_hash, retry_id, server_salt, tmp_aes_key_iv
from .pq import PqFactorizationError, factorize_pq
from .server_keys import ServerKeyRing, default_server_keyring

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_DH_RETRIES = 5
DEFAULT_MAX_IGNORED_FRAMES = 16


class AuthHandshakeError(Exception):
    pass


class NonceMismatchError(AuthHandshakeError):
    def __init__(self, field: str, where: str) -> None:
        super().__init__(f"{where}: {field} does not match the value sent")
        self.field = field
        self.where = where


class NoTrustedKeyError(AuthHandshakeError):
    def __init__(self, server_fingerprints: list[int]) -> None:
        super().__init__(f"No trusted RSA key for server fingerprints: {server_fingerprints!r}")
        self.server_fingerprints = server_fingerprints


class UnexpectedResponseError(AuthHandshakeError):
    pass


class HandshakeFailedError(AuthHandshakeError):
    """The server refused the exchange (params_fail, dh_gen_fail, retries exhausted)."""


@contextmanager
def _crypto_step(what: str) -> Iterator[None]:
    try:
        yield
    except (AesIgeError, DhError, KdfError, PqFactorizationError, RsaError) as e:
        raise AuthHandshakeError(f"{what}: {e}") from e


@dataclass(frozen=True, slots=True)
class AuthKeyExchangeResult:
    nonce: bytes  # int128
    server_nonce: bytes  # int128
    new_nonce: bytes  # int256

    rsa_fingerprint: int  # TL long (signed)

    g: int
    dh_prime: bytes
    g_a: bytes
    g_b: bytes

    server_time: int
    server_salt: bytes  # 8 bytes

    auth_key: bytes
    auth_key_id: int  # uint64 (last 8 bytes of sha1(auth_key), LE)
    retries: int = 0


def build_pq_inner_data(
    res_pq: ResPq, *, p: int, q: int, new_nonce: bytes
) -> PQInnerData:
    return PQInnerData(
        pq=res_pq.pq,
        p=int_to_be_bytes(p),
        q=int_to_be_bytes(q),
        nonce=res_pq.nonce,
        server_nonce=res_pq.server_nonce,
        new_nonce=new_nonce,
    )


def rsa_encrypt_inner_data(inner: PQInnerData, key: RsaPublicKey) -> bytes:
    """
    RSA encrypt p_q_inner_data for req_DH_params.encrypted_data.
    """

    return key.encrypt_raw(dumps(inner))


def decrypt_server_dh_inner(
    server_dh: ServerDhParamsOk, *, new_nonce: bytes
) -> ServerDhInnerData:
    """
    Decrypt server_DH_inner_data from server_DH_params_ok.encrypted_answer.

    The plaintext is sha1(inner_data) + inner_data + random padding (< 16 bytes);
    the hash is checked against exactly the bytes the decoder consumed.
    """

    key, iv = tmp_aes_key_iv(new_nonce=new_nonce, server_nonce=server_dh.server_nonce)
    dec = AesIge(key=key, iv=iv).decrypt(server_dh.encrypted_answer)
    if len(dec) < 20 + 4:
        raise AuthHandshakeError("Decrypted server DH inner data too short")
    digest, rest = dec[:20], dec[20:]
    inner, consumed = loads_prefix(rest)
    if not isinstance(inner, ServerDhInnerData):
        raise UnexpectedResponseError(
            f"Unexpected decrypted object: {_describe(inner)} (expected server_DH_inner_data)"
        )
    if sha1(rest[:consumed]) != digest:
        raise AuthHandshakeError("server_DH_inner_data sha1 mismatch")
    if len(rest) - consumed >= 16:
        raise AuthHandshakeError("server_DH_inner_data padding too long")
    return inner


def encrypt_client_dh_inner(
    inner: ClientDhInnerData, *, new_nonce: bytes, server_nonce: bytes
) -> bytes:
    data = dumps(inner)
    plain = sha1(data) + data
    plain += random_padding(len(plain), 16)
    key, iv = tmp_aes_key_iv(new_nonce=new_nonce, server_nonce=server_nonce)
    return AesIge(key=key, iv=iv).encrypt(plain)


def _describe(obj: Any) -> str:
    if isinstance(obj, UnknownConstructor):
        return obj.name
    tl_id = getattr(obj, "TL_ID", None)
    if isinstance(tl_id, int):
        return name_of(tl_id)
    return type(obj).__name__


class HandshakeEngine:
    """
    Client side of the unencrypted auth key exchange:
      req_pq -> req_DH_params -> set_client_DH_params

    Drives one request/response pair at a time over `transport` and records
    progress in `session.stage`. Any failure moves the session to ABORTED
    (`aborted_at` keeps the stage that failed); a new exchange needs a fresh
    engine, session and connection.
    """

    def __init__(
        self,
        transport: PacketTransport,
        keyring: ServerKeyRing | None = None,
        *,
        session: Session | None = None,
        recv_timeout: float | None = None,
        max_dh_retries: int = DEFAULT_MAX_DH_RETRIES,
        max_ignored_frames: int = DEFAULT_MAX_IGNORED_FRAMES,
        use_req_pq_multi: bool = False,
    ) -> None:
        if max_dh_retries < 0:
            raise ValueError("max_dh_retries must be >= 0")
        self._transport = transport
        self._keyring = keyring if keyring is not None else default_server_keyring()
        self.session = session if session is not None else Session()
        self.recv_timeout = recv_timeout
        self.max_dh_retries = max_dh_retries
        self.max_ignored_frames = max_ignored_frames
        self.use_req_pq_multi = use_req_pq_multi
        self.aborted_at: HandshakeStage | None = None

    @property
    def stage(self) -> HandshakeStage:
        return self.session.stage

    def _set_stage(self, stage: HandshakeStage) -> None:
        logger.debug("Key exchange: %s -> %s", self.session.stage.value, stage.value)
        self.session.stage = stage

    def _abort(self) -> None:
        self.aborted_at = self.session.stage
        self._set_stage(HandshakeStage.ABORTED)

    async def run(self) -> AuthKeyExchangeResult:
        if self.session.stage is not HandshakeStage.INIT:
            raise AuthHandshakeError(
                f"Key exchange already started (stage={self.session.stage.value}); "
                "use a fresh session"
            )
        try:
            res_pq = await self._request_pq()
            key = self._accept_pq(res_pq)
            dh_params = await self._request_dh_params(res_pq, key)
            server_inner = self._accept_dh_params(dh_params)
            return await self._negotiate_auth_key(server_inner, key)
        finally:
            if not self.session.stage.terminal:
                self._abort()

    # -- transport --------------------------------------------------------

    async def _send(self, req: Any) -> None:
        msg = UnencryptedMessage(msg_id=self.session.next_msg_id(), body=dumps(req))
        logger.debug("Sending %s (msg_id=%d)", req.TL_NAME, msg.msg_id)
        await self._transport.send(msg.pack())

    async def _recv_payload(self) -> bytes:
        if self.recv_timeout is None:
            return await self._transport.recv()
        try:
            return await asyncio.wait_for(self._transport.recv(), timeout=self.recv_timeout)
        except TimeoutError as e:
            raise AuthHandshakeError(
                f"Timed out waiting for response (timeout={self.recv_timeout}s, "
                f"stage={self.session.stage.value})"
            ) from e

    async def _receive(self) -> Any:
        """
        Receive the next decoded response, skipping unknown constructors.
        """

        ignored = 0
        while True:
            resp = unpack_unencrypted(await self._recv_payload())
            self.session.msg_id_gen.observe(resp.msg_id)
            obj = loads(resp.body)
            if not isinstance(obj, UnknownConstructor):
                return obj
            ignored += 1
            logger.warning(
                "Ignoring unknown constructor %s (%d bytes) during key exchange",
                obj.name,
                len(obj.data),
            )
            if ignored > self.max_ignored_frames:
                raise UnexpectedResponseError(
                    f"Too many unknown responses while waiting (ignored={ignored})"
                )

    def _expect(self, obj: Any, types: tuple[type[T], ...], what: str) -> T:
        if not isinstance(obj, types):
            expected = " or ".join(t.TL_NAME for t in types)  # type: ignore[attr-defined]
            raise UnexpectedResponseError(
                f"Unexpected response to {what}: {_describe(obj)} (expected {expected})"
            )
        return obj

    def _check_nonces(self, obj: Any, where: str) -> None:
        if obj.nonce != self.session.require("nonce"):
            raise NonceMismatchError("nonce", where)
        if self.session.server_nonce is not None and obj.server_nonce != self.session.server_nonce:
            raise NonceMismatchError("server_nonce", where)

    # -- stages -----------------------------------------------------------

    async def _request_pq(self) -> ResPq:
        self.session.nonce = random_bytes(16)
        req_cls = ReqPqMulti if self.use_req_pq_multi else ReqPq
        await self._send(req_cls(nonce=self.session.nonce))
        self._set_stage(HandshakeStage.AWAITING_PQ)
        return self._expect(await self._receive(), (ResPq,), req_cls.TL_NAME)

    def _accept_pq(self, res_pq: ResPq) -> RsaPublicKey:
        self._check_nonces(res_pq, "resPQ")
        fps = res_pq.server_public_key_fingerprints
        key = self._keyring.select(fps)
        if key is None:
            raise NoTrustedKeyError(fps)

        self.session.server_nonce = res_pq.server_nonce
        self.session.pq = be_bytes_to_int(res_pq.pq)
        self.session.public_key_fingerprint = key.fingerprint
        self._set_stage(HandshakeStage.PQ_RECEIVED)
        return key

    async def _request_dh_params(self, res_pq: ResPq, key: RsaPublicKey) -> Any:
        session = self.session
        if session.pq is None:
            raise AuthHandshakeError("pq is not set")
        with _crypto_step("pq factorization"):
            session.p, session.q = factorize_pq(session.pq)
        session.new_nonce = random_bytes(32)

        inner = build_pq_inner_data(res_pq, p=session.p, q=session.q, new_nonce=session.new_nonce)
        with _crypto_step("p_q_inner_data encryption"):
            encrypted = rsa_encrypt_inner_data(inner, key)

        await self._send(
            ReqDhParams(
                nonce=inner.nonce,
                server_nonce=inner.server_nonce,
                p=inner.p,
                q=inner.q,
                public_key_fingerprint=key.fingerprint,
                encrypted_data=encrypted,
            )
        )
        self._set_stage(HandshakeStage.DH_REQUESTED)
        return await self._receive()

    def _accept_dh_params(self, obj: Any) -> ServerDhInnerData:
        session = self.session
        answer = self._expect(obj, (ServerDhParamsOk, ServerDhParamsFail), "req_DH_params")
        self._check_nonces(answer, answer.TL_NAME)
        new_nonce = session.require("new_nonce")

        if isinstance(answer, ServerDhParamsFail):
            if answer.new_nonce_hash != params_fail_hash(new_nonce):
                logger.warning("server_DH_params_fail carries an unexpected new_nonce_hash")
            raise HandshakeFailedError("Server returned server_DH_params_fail")

        with _crypto_step("server_DH_inner_data decryption"):
            inner = decrypt_server_dh_inner(answer, new_nonce=new_nonce)
        self._check_nonces(inner, "server_DH_inner_data")

        dh_prime = be_bytes_to_int(inner.dh_prime)
        g_a = be_bytes_to_int(inner.g_a)
        with _crypto_step("server DH parameters"):
            check_dh_params(g=inner.g, dh_prime=dh_prime, g_a=g_a)

        session.g = inner.g
        session.dh_prime = dh_prime
        session.g_a = g_a
        session.server_time = inner.server_time
        session.msg_id_gen.sync_time(inner.server_time)
        self._set_stage(HandshakeStage.DH_PARAMS_RECEIVED)
        return inner

    async def _negotiate_auth_key(
        self, server_inner: ServerDhInnerData, key: RsaPublicKey
    ) -> AuthKeyExchangeResult:
        session = self.session
        nonce = session.require("nonce")
        server_nonce = session.require("server_nonce")
        new_nonce = session.require("new_nonce")

        attempt = 0
        while True:
            with _crypto_step("DH computation"):
                dh = make_dh_result(
                    g=server_inner.g,
                    dh_prime=server_inner.dh_prime,
                    g_a=server_inner.g_a,
                )
            session.b = dh.b
            session.g_b = be_bytes_to_int(dh.g_b)

            client_inner = ClientDhInnerData(
                nonce=nonce,
                server_nonce=server_nonce,
                retry_id=session.retry_id,
                g_b=dh.g_b,
            )
            with _crypto_step("client_DH_inner_data encryption"):
                encrypted = encrypt_client_dh_inner(
                    client_inner, new_nonce=new_nonce, server_nonce=server_nonce
                )
            await self._send(
                SetClientDhParams(nonce=nonce, server_nonce=server_nonce, encrypted_data=encrypted)
            )
            self._set_stage(HandshakeStage.CLIENT_DH_SENT)

            ans = self._expect(
                await self._receive(), (DhGenOk, DhGenRetry, DhGenFail), "set_client_DH_params"
            )
            self._check_nonces(ans, ans.TL_NAME)

            if isinstance(ans, DhGenOk):
                expected = new_nonce_hash(new_nonce=new_nonce, auth_key=dh.auth_key, number=1)
                if ans.new_nonce_hash1 != expected:
                    raise AuthHandshakeError("dh_gen_ok new_nonce_hash1 mismatch")
                session.auth_key = dh.auth_key
                session.server_salt = server_salt(new_nonce=new_nonce, server_nonce=server_nonce)
                self._set_stage(HandshakeStage.COMPLETE)
                logger.info(
                    "Auth key established (auth_key_id=%016x, retries=%d)",
                    dh.auth_key_id,
                    attempt,
                )
                return AuthKeyExchangeResult(
                    nonce=nonce,
                    server_nonce=server_nonce,
                    new_nonce=new_nonce,
                    rsa_fingerprint=key.fingerprint,
                    g=server_inner.g,
                    dh_prime=server_inner.dh_prime,
                    g_a=server_inner.g_a,
                    g_b=dh.g_b,
                    server_time=server_inner.server_time,
                    server_salt=session.server_salt,
                    auth_key=dh.auth_key,
                    auth_key_id=dh.auth_key_id,
                    retries=attempt,
                )

            if isinstance(ans, DhGenRetry):
                expected = new_nonce_hash(new_nonce=new_nonce, auth_key=dh.auth_key, number=2)
                if ans.new_nonce_hash2 != expected:
                    raise AuthHandshakeError("dh_gen_retry new_nonce_hash2 mismatch")
                if attempt >= self.max_dh_retries:
                    raise HandshakeFailedError(
                        "Server kept requesting dh_gen_retry "
                        f"(max_dh_retries={self.max_dh_retries})"
                    )
                session.retry_id = retry_id(dh.auth_key)
                logger.warning("Server requested dh_gen_retry (attempt %d)", attempt + 1)
                self._set_stage(HandshakeStage.DH_PARAMS_RECEIVED)
                attempt += 1
                continue

            expected = new_nonce_hash(new_nonce=new_nonce, auth_key=dh.auth_key, number=3)
            if ans.new_nonce_hash3 != expected:
                logger.warning("dh_gen_fail carries an unexpected new_nonce_hash3")
            raise HandshakeFailedError("Server returned dh_gen_fail")


async def exchange_auth_key(
    transport: PacketTransport,
    *,
    keyring: ServerKeyRing | None = None,
    msg_id_gen: MsgIdGenerator | None = None,
    recv_timeout: float | None = None,
    max_dh_retries: int = DEFAULT_MAX_DH_RETRIES,
    max_ignored_frames: int = DEFAULT_MAX_IGNORED_FRAMES,
    use_req_pq_multi: bool = False,
) -> AuthKeyExchangeResult:
    """
    Perform the unencrypted auth key exchange on a connected transport.

    Returns the negotiated auth_key + derived values, or raises
    AuthHandshakeError (codec and transport errors propagate unchanged).
    """

    session = Session(msg_id_gen=msg_id_gen) if msg_id_gen is not None else Session()
    engine = HandshakeEngine(
        transport,
        keyring,
        session=session,
        recv_timeout=recv_timeout,
        max_dh_retries=max_dh_retries,
        max_ignored_frames=max_ignored_frames,
        use_req_pq_multi=use_req_pq_multi,
    )
    return await engine.run()
