from __future__ import annotations

import time
from collections.abc import Callable


class MsgIdGenerator:
    """
    Generate client message ids.

    - strictly increasing per session
    - divisible by 4 (server ids are 1 or 3 mod 4)
    - unix time in the high 32 bits, sub-second fraction in the low bits
    """

    __slots__ = ("_last", "_clock", "time_offset")

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._last = 0
        self._clock = clock
        self.time_offset = 0

    def sync_time(self, server_time: int) -> None:
        """Adopt the offset between the server's clock and ours (whole seconds)."""

        self.time_offset = int(server_time) - int(self._clock())

    def observe(self, remote_msg_id: int) -> None:
        """
        Observe a server message id so future client ids are higher.

        Server ids can run slightly ahead of the local clock.
        """

        # Flooring to a multiple of 4 keeps next() divisible by 4.
        remote_floor = int(remote_msg_id) & ~3
        if remote_floor > self._last:
            self._last = remote_floor

    def next(self) -> int:
        now = self._clock() + self.time_offset
        msg_id = int(now * (2**32))
        msg_id &= ~3
        if msg_id <= self._last:
            msg_id = self._last + 4
        self._last = msg_id
        return msg_id
