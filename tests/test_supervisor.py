"""Tests for the reconnecting connection supervisor."""

from __future__ import annotations

import asyncio

import pytest

from hiupaus.core.supervisor import ConnectionState, ConnectionSupervisor

DELAY = 0.01


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.001)


def test_retries_failed_connects_until_success() -> None:
    attempts = []
    states: list[ConnectionState] = []

    async def connect() -> None:
        attempts.append(len(attempts))
        if len(attempts) < 3:
            raise ConnectionError("broker unreachable")

    async def run() -> ConnectionSupervisor:
        supervisor = ConnectionSupervisor(
            "test", connect, failure_delay=DELAY, lost_delay=DELAY, on_state_change=states.append
        )
        task = asyncio.create_task(supervisor.run())
        await _wait_for(lambda: supervisor.connected)
        supervisor.stop()
        await task
        return supervisor

    supervisor = asyncio.run(run())

    assert supervisor.attempts == 3
    assert states == [
        ConnectionState.CONNECTING,
        ConnectionState.DISCONNECTED,
        ConnectionState.CONNECTING,
        ConnectionState.DISCONNECTED,
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
        ConnectionState.DISCONNECTED,
    ]
    assert supervisor.state is ConnectionState.DISCONNECTED


def test_lost_connection_triggers_fresh_attempt() -> None:
    connects = []

    async def connect() -> None:
        connects.append(True)

    async def run() -> None:
        supervisor = ConnectionSupervisor("test", connect, failure_delay=DELAY, lost_delay=DELAY)
        task = asyncio.create_task(supervisor.run())
        await _wait_for(lambda: supervisor.connected)

        supervisor.connection_lost()
        await _wait_for(lambda: len(connects) == 2 and supervisor.connected)

        supervisor.stop()
        await task

    asyncio.run(run())

    assert len(connects) == 2


def test_retries_forever_without_backoff() -> None:
    started: list[float] = []

    async def connect() -> None:
        started.append(asyncio.get_running_loop().time())
        raise OSError("refused")

    async def run() -> None:
        supervisor = ConnectionSupervisor("test", connect, failure_delay=0.02, lost_delay=DELAY)
        task = asyncio.create_task(supervisor.run())
        await _wait_for(lambda: len(started) >= 6)
        supervisor.stop()
        await task

    asyncio.run(run())

    gaps = [later - earlier for earlier, later in zip(started, started[1:])]
    # A fixed delay keeps every gap in the same range; backoff would double them
    assert max(gaps) < 4 * min(gaps) + 0.05


def test_stop_during_wait_ends_promptly() -> None:
    async def connect() -> None:
        raise OSError("refused")

    async def run() -> ConnectionSupervisor:
        supervisor = ConnectionSupervisor("test", connect, failure_delay=30, lost_delay=30)
        task = asyncio.create_task(supervisor.run())
        await _wait_for(lambda: supervisor.attempts == 1 and not supervisor.connected)
        supervisor.stop()
        await asyncio.wait_for(task, timeout=1)
        return supervisor

    supervisor = asyncio.run(run())

    assert supervisor.attempts == 1


def test_state_listener_errors_do_not_break_supervision() -> None:
    def listener(state: ConnectionState) -> None:
        raise RuntimeError("listener bug")

    async def connect() -> None:
        return None

    async def run() -> bool:
        supervisor = ConnectionSupervisor("test", connect, failure_delay=DELAY,
                                          lost_delay=DELAY, on_state_change=listener)
        task = asyncio.create_task(supervisor.run())
        await _wait_for(lambda: supervisor.connected)
        supervisor.stop()
        await task
        return True

    assert asyncio.run(run())


@pytest.mark.parametrize("failure_delay, lost_delay", [(0, 1), (1, 0), (-1, 1)])
def test_delays_must_be_positive(failure_delay: float, lost_delay: float) -> None:
    async def connect() -> None:
        return None

    with pytest.raises(ValueError):
        ConnectionSupervisor("test", connect, failure_delay=failure_delay, lost_delay=lost_delay)
