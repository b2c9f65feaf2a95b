from .aes_ige import AesIge, AesIgeError
from .hashes import sha1
from .random import random_bytes, random_padding
from .rsa import RsaError, RsaPublicKey, fingerprint_of, load_rsa_public_key, rsa_encrypt_raw

__all__ = [
    "AesIge",
    "AesIgeError",
    "RsaError",
    "RsaPublicKey",
    "fingerprint_of",
    "load_rsa_public_key",
    "random_bytes",
    "random_padding",
    "rsa_encrypt_raw",
    "sha1",
]
