"""Tests for fire-and-forget background tasks."""

import asyncio

from fastapi import BackgroundTasks

from greenlight.background import BackgroundTaskRunner, run_guarded


def test_task_waits_for_the_response():
    tasks = BackgroundTasks()
    runner = BackgroundTaskRunner(tasks)
    seen = []

    runner.run(lambda a, b=0: seen.append(a + b), 1, b=2)
    assert seen == []

    asyncio.run(tasks())
    assert seen == [3]


def test_failures_never_reach_the_caller():
    def explode():
        raise RuntimeError("smtp down")

    # Logged and swallowed
    assert run_guarded(explode) is None


def test_runner_keeps_working_after_a_failure():
    tasks = BackgroundTasks()
    runner = BackgroundTaskRunner(tasks)
    done = []

    runner.run(lambda: 1 / 0)
    runner.run(done.append, "second")

    asyncio.run(tasks())
    assert done == ["second"]
