from __future__ import annotations

import asyncio

import pytest

from core.single_flight import SingleFlight


def test_concurrent_callers_share_one_execution() -> None:
    flight = SingleFlight()
    calls = []

    async def work() -> str:
        calls.append(1)
        await asyncio.sleep(0.01)
        return "done"

    async def run() -> list[str]:
        return await asyncio.gather(*(flight.do("key", work) for _ in range(4)))

    assert asyncio.run(run()) == ["done"] * 4
    assert len(calls) == 1
    assert not flight.in_flight("key")


def test_failures_are_not_remembered() -> None:
    flight = SingleFlight()
    attempts = []

    async def flaky() -> str:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("first call fails")
        return "ok"

    async def run() -> str:
        with pytest.raises(RuntimeError):
            await flight.do("key", flaky)
        await asyncio.sleep(0)
        return await flight.do("key", flaky)

    assert asyncio.run(run()) == "ok"
    assert len(attempts) == 2
