#!/usr/bin/env python3
"""
Demo: step mode

Every process pauses after broadcasting REQUEST, before entering the CS
and before leaving it. This script plays the part of a user pressing
"Next step": it waits for a parked task, prints what is waiting, and
advances exactly one of them.

Usage: python demo/demo_step_mode.py
"""

import asyncio

from lamportsim.core import Simulation, SimulationConfig, ZeroDelay


async def drive() -> None:
    config = SimulationConfig(n_processes=3, entries=1, step_mode=True)
    sim = Simulation(config, delays=ZeroDelay())
    run = asyncio.create_task(sim.run())

    step = 0
    while not run.done():
        waiting = asyncio.create_task(sim.steps.wait_for_pending())
        await asyncio.wait([run, waiting], return_when=asyncio.FIRST_COMPLETED)
        if not waiting.done():
            waiting.cancel()
            break
        step += 1
        parked = ", ".join(f"P{pid}@{cp.value}" for pid, cp in sim.steps.pending)
        released = sim.steps.advance()
        print(f"step {step:2d}: waiting [{parked}] -> released P{released.pid} ({released.label})")

    result = await run
    print(f"\nCS order: {['P%d' % pid for pid in result.cs_order]}")
    for snap in result.snapshots:
        print(f"P{snap.pid}: clock={snap.clock} completed={snap.completed_entries}")


def main():
    print("=" * 60)
    print("  STEP MODE")
    print("=" * 60)
    asyncio.run(drive())


if __name__ == "__main__":
    main()
