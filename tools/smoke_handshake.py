from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from dataclasses import replace

from tlhandshake.config import HandshakeConfig, apply_env_overrides, load_handshake_config
from tlhandshake.mtproto.auth.handshake import AuthHandshakeError, HandshakeEngine
from tlhandshake.mtproto.auth.server_keys import default_server_keyring
from tlhandshake.mtproto.transport.abridged import AbridgedFraming
from tlhandshake.mtproto.transport.base import Endpoint, TransportError
from tlhandshake.mtproto.transport.tcp import TcpTransport
from tlhandshake.tl.codec import TLCodecError

logger = logging.getLogger("smoke_handshake")


def _build_config(args: argparse.Namespace) -> HandshakeConfig:
    cfg = HandshakeConfig()
    if args.config is not None:
        cfg = load_handshake_config(args.config)
    cfg = apply_env_overrides(cfg, os.environ)
    overrides: dict[str, object] = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.req_pq_multi:
        overrides["use_req_pq_multi"] = True
    return replace(cfg, **overrides)


async def _run(args: argparse.Namespace) -> int:
    cfg = _build_config(args)
    keyring = default_server_keyring().restrict(cfg.trusted_fingerprints)
    if not keyring.keys_by_fingerprint:
        print("No bundled RSA key matches the configured trusted_fingerprints")
        return 2

    endpoint = Endpoint(host=cfg.host, port=cfg.port)
    transport = TcpTransport(
        endpoint=endpoint,
        framing=AbridgedFraming(),
        connect_timeout=cfg.connect_timeout,
    )
    engine = HandshakeEngine(
        transport,
        keyring,
        recv_timeout=cfg.recv_timeout,
        max_dh_retries=cfg.max_dh_retries,
        use_req_pq_multi=cfg.use_req_pq_multi,
    )

    try:
        await transport.connect()
        try:
            res = await asyncio.wait_for(engine.run(), timeout=args.timeout)
        finally:
            await transport.close()
    except TimeoutError:
        print(f"Timed out after {args.timeout:.1f}s (stage={engine.stage.value})")
        return 1
    except (AuthHandshakeError, TransportError, TLCodecError) as e:
        logger.debug("Key exchange failed", exc_info=True)
        print(f"Key exchange failed at stage {engine.aborted_at}: {e}")
        return 1

    fp_u64 = res.rsa_fingerprint if res.rsa_fingerprint >= 0 else res.rsa_fingerprint + 2**64
    summary = {
        "endpoint": {"host": endpoint.host, "port": endpoint.port},
        "rsa_fingerprint_signed": res.rsa_fingerprint,
        "rsa_fingerprint_unsigned_hex": hex(fp_u64),
        "auth_key_id_hex": f"{res.auth_key_id:016x}",
        "server_salt_hex": res.server_salt.hex(),
        "server_time": res.server_time,
        "dh_retries": res.retries,
    }
    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0


def main() -> int:
    p = argparse.ArgumentParser(description="Smoke-test the auth key exchange against a server.")
    p.add_argument("--config", type=str, default=None, help="JSON config file")
    p.add_argument("--host", type=str, default=None, help="Override host")
    p.add_argument("--port", type=int, default=None, help="Override port")
    p.add_argument("--timeout", type=float, default=60.0, help="Overall timeout (seconds)")
    p.add_argument("--req-pq-multi", action="store_true", help="Start with req_pq_multi")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
