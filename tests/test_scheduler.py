import threading

from kiosk_client.scheduler import ThreadScheduler


def test_repeating_timer_runs_immediately_and_repeats():
    scheduler = ThreadScheduler()
    calls = []
    done = threading.Event()

    def tick():
        calls.append(1)
        if len(calls) >= 3:
            done.set()

    timer = scheduler.call_every(0.01, tick, name="tick", immediate=True)
    assert done.wait(2)
    timer.cancel()
    assert not timer.active
    timer.join(1)
    assert not timer.is_alive()


def test_failing_task_keeps_running():
    scheduler = ThreadScheduler()
    calls = []
    done = threading.Event()

    def flaky():
        calls.append(1)
        if len(calls) >= 2:
            done.set()
        raise RuntimeError("boom")

    timer = scheduler.call_every(0.01, flaky, name="flaky")
    assert done.wait(2)
    timer.cancel()


def test_one_shot_timer_fires_once():
    scheduler = ThreadScheduler()
    fired = threading.Event()
    timer = scheduler.call_later(0.01, fired.set, name="once")
    assert fired.wait(2)
    assert not timer.active


def test_cancelled_one_shot_never_fires():
    scheduler = ThreadScheduler()
    fired = threading.Event()
    timer = scheduler.call_later(0.5, fired.set, name="cancelled")
    timer.cancel()
    assert not fired.wait(0.7)
    assert not timer.active
