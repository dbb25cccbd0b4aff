from __future__ import annotations

import threading

import pytest

from vlcwrap.backend.common.errors import TaskError
from vlcwrap.backend.common.tasks import TaskRunner, TaskSpec, get_deferred_runner


def test_single_worker_runs_in_submission_order() -> None:
    order: list[int] = []
    with TaskRunner(context="test") as runner:
        futures = [runner.submit(TaskSpec(fn=order.append, args=(n,), name=f"t{n}")) for n in range(20)]
        for future in futures:
            future.result(5.0)

    assert order == list(range(20))


def test_failures_surface_through_the_future() -> None:
    def boom() -> None:
        raise ValueError("bad")

    with TaskRunner() as runner:
        future = runner.submit(TaskSpec(fn=boom, name="boom"))
        with pytest.raises(ValueError):
            future.result(5.0)


def test_kwargs_are_passed() -> None:
    with TaskRunner() as runner:
        future = runner.submit(TaskSpec(fn=lambda a, b=0: a + b, args=(1,), kwargs={"b": 2}))
        assert future.result(5.0) == 3


def test_closed_runner_refuses_work() -> None:
    runner = TaskRunner()
    runner.close()

    assert runner.closed
    with pytest.raises(TaskError):
        runner.submit(TaskSpec(fn=lambda: None))


def test_deferred_runner_is_shared_and_recreated() -> None:
    runner = get_deferred_runner()
    assert get_deferred_runner() is runner

    runner.close()
    replacement = get_deferred_runner()

    assert replacement is not runner
    assert not replacement.closed


def test_tasks_run_off_the_calling_thread() -> None:
    with TaskRunner(context="threads") as runner:
        name = runner.submit(TaskSpec(fn=lambda: threading.current_thread().name)).result(5.0)

    assert name.startswith("vlcwrap-threads")
    assert name != threading.current_thread().name
