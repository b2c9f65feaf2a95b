from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, cast

from tlhandshake.mtproto.auth.server_keys import DEFAULT_FINGERPRINT, to_signed_fingerprint

ENV_PREFIX = "TLHANDSHAKE_"


@dataclass(slots=True, frozen=True)
class HandshakeConfig:
    host: str = "149.154.167.40"
    port: int = 443
    connect_timeout: float = 10.0
    recv_timeout: float | None = 30.0
    max_dh_retries: int = 5
    use_req_pq_multi: bool = False
    trusted_fingerprints: tuple[int, ...] = (DEFAULT_FINGERPRINT,)


def _as_bool(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return default


def _as_int(value: Any, *, default: int, min_value: int | None = None) -> int:
    if value is None:
        out = default
    elif isinstance(value, bool):
        out = int(value)
    elif isinstance(value, (int, float)):
        out = int(value)
    elif isinstance(value, str):
        try:
            out = int(value.strip())
        except ValueError:
            out = default
    else:
        out = default
    if min_value is not None and out < min_value:
        return min_value
    return out


def _as_optional_float(value: Any, *, default: float | None) -> float | None:
    if value is None:
        return default
    if isinstance(value, str):
        stripped = value.strip().lower()
        if stripped in {"none", "null", ""}:
            return None
        try:
            out = float(stripped)
        except ValueError:
            return default
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        out = float(value)
    else:
        return default
    return out if out > 0 else None


def _as_fingerprint(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, int):
            return to_signed_fingerprint(value)
        if isinstance(value, str):
            # Accepts decimal and 0x-prefixed hex.
            return to_signed_fingerprint(int(value.strip(), 0))
    except ValueError:
        return None
    return None


def _as_fingerprint_tuple(value: Any, *, default: tuple[int, ...]) -> tuple[int, ...]:
    if not isinstance(value, list):
        return default
    out: list[int] = []
    for item in value:
        fp = _as_fingerprint(item)
        if fp is not None and fp not in out:
            out.append(fp)
    return tuple(out) if out else default


def load_handshake_config(path: str | Path) -> HandshakeConfig:
    """
    Load handshake JSON config with safe defaults.

    If file does not exist, defaults are returned.
    """
    p = Path(path).expanduser()
    if not p.exists():
        return HandshakeConfig()

    payload = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Invalid handshake config at {p}: root must be an object")
    data = cast(dict[str, Any], payload)
    defaults = HandshakeConfig()

    host_raw = data.get("host")
    host = host_raw.strip() if isinstance(host_raw, str) else ""

    return HandshakeConfig(
        host=host if host else defaults.host,
        port=_as_int(data.get("port"), default=defaults.port, min_value=1),
        connect_timeout=_as_optional_float(
            data.get("connect_timeout"),
            default=defaults.connect_timeout,
        )
        or defaults.connect_timeout,
        recv_timeout=_as_optional_float(data.get("recv_timeout"), default=defaults.recv_timeout),
        max_dh_retries=_as_int(
            data.get("max_dh_retries"),
            default=defaults.max_dh_retries,
            min_value=0,
        ),
        use_req_pq_multi=_as_bool(data.get("use_req_pq_multi"), default=False),
        trusted_fingerprints=_as_fingerprint_tuple(
            data.get("trusted_fingerprints"),
            default=defaults.trusted_fingerprints,
        ),
    )


def apply_env_overrides(config: HandshakeConfig, environ: Mapping[str, str]) -> HandshakeConfig:
    """Override host/port/recv_timeout from TLHANDSHAKE_* variables when present."""

    host = environ.get(ENV_PREFIX + "HOST", "").strip()
    return replace(
        config,
        host=host or config.host,
        port=_as_int(environ.get(ENV_PREFIX + "PORT"), default=config.port, min_value=1),
        recv_timeout=_as_optional_float(
            environ.get(ENV_PREFIX + "RECV_TIMEOUT"),
            default=config.recv_timeout,
        ),
    )
