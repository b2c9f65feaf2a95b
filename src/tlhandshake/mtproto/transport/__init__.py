from .abridged import AbridgedFraming
from .base import (
    Endpoint,
    MalformedFrameError,
    PacketTransport,
    ServerErrorFrameError,
    TransportError,
)
from .tcp import TcpTransport

__all__ = [
    "AbridgedFraming",
    "Endpoint",
    "MalformedFrameError",
    "PacketTransport",
    "ServerErrorFrameError",
    "TcpTransport",
    "TransportError",
]
