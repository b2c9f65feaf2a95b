from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .abridged import AbridgedFraming
from .base import Endpoint, Framing, TransportError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TcpTransport:
    """
    One TCP connection carrying framed packets.

    The framing's CONNECT_HEADER (0xef for abridged) is written right after the
    connection opens. Not safe for concurrent use: one in-flight send/recv pair.
    """

    endpoint: Endpoint
    framing: Framing = field(default_factory=AbridgedFraming)
    connect_timeout: float = 10.0
    read_chunk_size: int = 4096

    _reader: asyncio.StreamReader | None = None
    _writer: asyncio.StreamWriter | None = None
    _rx_buf: bytearray = field(default_factory=bytearray)

    @property
    def connected(self) -> bool:
        return self._writer is not None

    async def connect(self) -> None:
        if self._writer is not None:
            return
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.endpoint.host, self.endpoint.port),
                timeout=self.connect_timeout,
            )
        except (OSError, TimeoutError) as e:
            raise TransportError(f"Failed to connect to {self.endpoint}") from e
        self._reader, self._writer = reader, writer
        logger.debug("Connected to %s", self.endpoint)

        header = self.framing.CONNECT_HEADER
        if header:
            writer.write(bytes(header))
            await writer.drain()

    async def close(self) -> None:
        if self._writer is None:
            return
        writer = self._writer
        self._writer = None
        self._reader = None
        self._rx_buf.clear()
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Error while closing connection to %s: %s", self.endpoint, e)

    async def __aenter__(self) -> TcpTransport:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def send(self, payload: bytes) -> None:
        if self._writer is None:
            raise TransportError("Not connected.")
        framed = self.framing.encode(payload)
        self._writer.write(framed)
        try:
            await self._writer.drain()
        except OSError as e:
            raise TransportError(f"Send to {self.endpoint} failed") from e

    async def recv(self) -> bytes:
        if self._reader is None:
            raise TransportError("Not connected.")
        while True:
            payload = self.framing.decode_from_buffer(self._rx_buf)
            if payload is not None:
                logger.debug("Received frame: %d bytes", len(payload))
                return payload
            try:
                chunk = await self._reader.read(self.read_chunk_size)
            except OSError as e:
                raise TransportError(f"Receive from {self.endpoint} failed") from e
            if not chunk:
                raise TransportError("Connection closed.")
            self._rx_buf.extend(chunk)
