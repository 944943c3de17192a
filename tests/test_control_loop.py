from __future__ import annotations

import threading
import time

import pytest

from control_loop import ControlLoop


@pytest.fixture
def loop():
    control = ControlLoop(name="test-control")
    yield control
    control.close()


def test_posted_tasks_run_in_order_on_one_thread(loop: ControlLoop) -> None:
    seen: list[tuple[int, str]] = []

    def record(i: int) -> None:
        seen.append((i, threading.current_thread().name))

    workers = [threading.Thread(target=loop.post, args=(record, i)) for i in range(5)]
    for worker in workers:
        worker.start()
        worker.join()

    assert loop.flush()
    assert [i for i, _ in seen] == [0, 1, 2, 3, 4]
    assert {name for _, name in seen} == {"test-control"}


def test_task_error_does_not_stop_the_loop(loop: ControlLoop) -> None:
    seen: list[str] = []

    def boom() -> None:
        raise ValueError("boom")

    loop.post(boom)
    loop.post(seen.append, "after")

    assert loop.flush()
    assert seen == ["after"]


def test_call_later_posts_after_delay(loop: ControlLoop) -> None:
    fired = threading.Event()
    names: list[str] = []

    def on_fire() -> None:
        names.append(threading.current_thread().name)
        fired.set()

    started = time.monotonic()
    loop.call_later(0.05, on_fire)

    assert fired.wait(1.0)
    assert time.monotonic() - started >= 0.05
    assert names == ["test-control"]


def test_cancelled_timer_never_fires(loop: ControlLoop) -> None:
    fired = threading.Event()
    timer = loop.call_later(0.05, fired.set)
    timer.cancel()

    assert not fired.wait(0.15)


def test_closed_loop_drops_posts() -> None:
    control = ControlLoop()
    control.close()
    seen: list[int] = []
    control.post(seen.append, 1)

    assert control.is_running is False
    assert control.flush(timeout=0.1) is False
    assert seen == []


def test_flush_from_loop_thread_is_rejected(loop: ControlLoop) -> None:
    errors: list[Exception] = []

    def nested() -> None:
        try:
            loop.flush()
        except RuntimeError as exc:
            errors.append(exc)

    loop.post(nested)
    assert loop.flush()
    assert len(errors) == 1
