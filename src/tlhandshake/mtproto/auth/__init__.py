from .dh import DhError, DhResult, make_dh_result
from .handshake import (
    AuthHandshakeError,
    AuthKeyExchangeResult,
    HandshakeEngine,
    HandshakeFailedError,
    NonceMismatchError,
    NoTrustedKeyError,
    UnexpectedResponseError,
    exchange_auth_key,
)
from .kdf import new_nonce_hash, server_salt, tmp_aes_key_iv
from .pq import factorize_pq
from .server_keys import DEFAULT_FINGERPRINT, ServerKeyRing, default_server_keyring

__all__ = [
    "DEFAULT_FINGERPRINT",
    "AuthHandshakeError",
    "AuthKeyExchangeResult",
    "DhError",
    "DhResult",
    "HandshakeEngine",
    "HandshakeFailedError",
    "NoTrustedKeyError",
    "NonceMismatchError",
    "ServerKeyRing",
    "UnexpectedResponseError",
    "default_server_keyring",
    "exchange_auth_key",
    "factorize_pq",
    "make_dh_result",
    "new_nonce_hash",
    "server_salt",
    "tmp_aes_key_iv",
]
