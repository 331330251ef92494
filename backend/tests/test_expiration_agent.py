"""
Tests for the background expiration agent.

Covers:
- Sweep on start, then on every interval
- Pause / resume
- Failed sweeps counted without stopping the loop
- Clean stop
"""

import asyncio

import pytest

from agents.expiration_agent import ExpirationAgent
from models.entities import CheckoutStatus, SweepResult


class FailingEngine:
    def __init__(self):
        self.calls = 0

    def run_expiration_sweep(self):
        self.calls += 1
        raise RuntimeError("database unavailable")


class CountingEngine:
    def __init__(self):
        self.calls = 0

    def run_expiration_sweep(self):
        self.calls += 1
        return SweepResult(completed=1)


def test_rejects_non_positive_interval(engine):
    with pytest.raises(ValueError):
        ExpirationAgent(sweep_interval=0, engine=engine)


def test_sweeps_on_start(engine, clock, make_timer):
    timer_id = make_timer(3600)
    checkout = engine.create_checkout(timer_id, 60)
    engine.start_checkout(checkout.id)
    clock.advance(95)

    async def scenario():
        agent = ExpirationAgent(sweep_interval=60, engine=engine)
        await agent.start()
        await asyncio.sleep(0.2)
        stats = agent.get_stats()
        await agent.stop()
        return agent, stats

    agent, stats = asyncio.run(scenario())

    assert stats["is_running"] is True
    assert stats["total_sweeps"] == 1
    assert stats["total_completed"] == 1
    assert stats["last_sweep_result"] == {"completed": 1, "force_stopped": 0, "failed": 0}
    assert agent.is_running is False
    assert engine.get_checkout(checkout.id).status == CheckoutStatus.COMPLETED


def test_repeats_on_interval():
    engine = CountingEngine()

    async def scenario():
        agent = ExpirationAgent(sweep_interval=0.01, engine=engine)
        await agent.start()
        await asyncio.sleep(0.2)
        await agent.stop()
        return agent

    agent = asyncio.run(scenario())
    assert engine.calls >= 2
    assert 1 <= agent.stats["total_completed"] <= engine.calls


def test_pause_skips_sweeps():
    engine = CountingEngine()

    async def scenario():
        agent = ExpirationAgent(sweep_interval=0.01, engine=engine)
        await agent.start()
        agent.pause()
        await asyncio.sleep(0.1)
        paused_calls = engine.calls

        agent.resume()
        await asyncio.sleep(0.1)
        await agent.stop()
        return paused_calls

    paused_calls = asyncio.run(scenario())
    assert paused_calls == 0
    assert engine.calls >= 1


def test_failed_sweeps_keep_the_loop_alive():
    engine = FailingEngine()

    async def scenario():
        agent = ExpirationAgent(sweep_interval=0.01, engine=engine)
        await agent.start()
        await asyncio.sleep(0.1)
        still_running = agent.sweep_task is not None and not agent.sweep_task.done()
        await agent.stop()
        return agent, still_running

    agent, still_running = asyncio.run(scenario())
    assert still_running is True
    assert engine.calls >= 2
    assert 1 <= agent.stats["failed_sweeps"] <= engine.calls
    assert agent.stats["total_sweeps"] == 0


def test_run_once_returns_none_on_failure():
    agent = ExpirationAgent(engine=FailingEngine())
    assert asyncio.run(agent.run_once()) is None
    assert agent.stats["failed_sweeps"] == 1


def test_start_twice_keeps_one_task():
    engine = CountingEngine()

    async def scenario():
        agent = ExpirationAgent(sweep_interval=60, engine=engine)
        await agent.start()
        first_task = agent.sweep_task
        await agent.start()
        same = agent.sweep_task is first_task
        await agent.stop()
        return same

    assert asyncio.run(scenario()) is True


def test_stop_when_not_running_is_a_no_op():
    agent = ExpirationAgent(engine=CountingEngine())
    asyncio.run(agent.stop())
    assert agent.is_running is False
