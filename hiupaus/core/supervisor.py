"""Connection supervisor - fixed-delay, retry-forever reconnect loop"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from .. import config

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionSupervisor:
    """Keeps one connection alive.

    Transitions:
        DISCONNECTED -> CONNECTING      (attempt starts)
        CONNECTING   -> CONNECTED       (connect returned)
        CONNECTING   -> DISCONNECTED    (connect raised; wait failure_delay)
        CONNECTED    -> DISCONNECTED    (connection_lost(); wait lost_delay)

    The first attempt is made immediately. There is no backoff and no retry
    limit; every retry is a fresh attempt.
    """

    def __init__(self, name: str, connect: Callable[[], Awaitable[None]],
                 failure_delay: float = config.RECONNECT_FAILURE_DELAY,
                 lost_delay: float = config.RECONNECT_LOST_DELAY,
                 on_state_change: Optional[Callable[[ConnectionState], None]] = None):
        if failure_delay <= 0 or lost_delay <= 0:
            raise ValueError("reconnect delays must be positive")
        self.name = name
        self._connect = connect
        self.failure_delay = failure_delay
        self.lost_delay = lost_delay
        self.on_state_change = on_state_change
        self.state = ConnectionState.DISCONNECTED
        self.attempts = 0
        self._lost = asyncio.Event()
        self._stopped = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def _set_state(self, state: ConnectionState):
        if state is self.state:
            return
        logger.debug(f"[{self.name}] {self.state.value} -> {state.value}")
        self.state = state
        if self.on_state_change is not None:
            try:
                self.on_state_change(state)
            except Exception as e:
                logger.error(f"[{self.name}] state listener failed: {e}", exc_info=True)

    def connection_lost(self):
        """Report that an established connection dropped"""
        self._lost.set()

    def stop(self):
        """Stop supervising after the current step"""
        self._stopped.set()
        self._lost.set()

    async def _wait(self, delay: float) -> bool:
        """Sleep for delay; returns False when stopped meanwhile"""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    async def run(self):
        """Supervise until stop() is called"""
        while not self._stopped.is_set():
            self._set_state(ConnectionState.CONNECTING)
            self.attempts += 1
            self._lost.clear()
            try:
                await self._connect()
            except Exception as e:
                logger.error(f"❌ {self.name} connection failed: {e}")
                self._set_state(ConnectionState.DISCONNECTED)
                logger.info(f"🔄 Retrying {self.name} in {self.failure_delay:g}s")
                if not await self._wait(self.failure_delay):
                    break
                continue

            self._set_state(ConnectionState.CONNECTED)
            logger.info(f"✅ {self.name} connected")

            await self._lost.wait()
            self._set_state(ConnectionState.DISCONNECTED)
            if self._stopped.is_set():
                break
            logger.warning(f"{self.name} connection lost, reconnecting in {self.lost_delay:g}s")
            if not await self._wait(self.lost_delay):
                break

        self._set_state(ConnectionState.DISCONNECTED)
        logger.info(f"{self.name} supervisor stopped")
