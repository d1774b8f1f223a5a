import time
from queue import Empty, Queue
from threading import Event

from kitbase_flags.impl.repeating_task import RepeatingTask


def test_task_does_not_start_when_created():
    signal = Event()
    task = RepeatingTask("kitbase_flags.testing.set-signal", 0.01, 0, lambda: signal.set())
    try:
        signal_was_set = signal.wait(0.1)
        assert signal_was_set is False
    finally:
        task.stop()


def test_task_executes_until_stopped():
    queue = Queue()
    task = RepeatingTask("kitbase_flags.testing.enqueue-time", 0.1, 0, lambda: queue.put(time.time()))
    try:
        last = None
        task.start()
        for _ in range(3):
            t = queue.get(True, 1)
            if last is not None:
                assert (time.time() - last) >= 0.05
            last = t
    finally:
        task.stop()
    stopped_time = time.time()
    no_more_items = False
    for _ in range(2):
        try:
            t = queue.get(False)
            assert t <= stopped_time
        except Empty:
            no_more_items = True
    assert no_more_items is True


def test_task_waits_for_initial_delay():
    queue = Queue()
    started = time.time()
    task = RepeatingTask("kitbase_flags.testing.initial-delay", 0.05, 0.2, lambda: queue.put(time.time()))
    try:
        task.start()
        first = queue.get(True, 1)
        assert first - started >= 0.15
    finally:
        task.stop()


def test_task_stopped_during_initial_delay_never_runs():
    signal = Event()
    task = RepeatingTask("kitbase_flags.testing.stop-early", 0.01, 0.2, lambda: signal.set())
    task.start()
    task.stop()
    assert task.stopped is True
    assert signal.wait(0.3) is False


def test_exception_in_task_does_not_stop_it():
    calls = Queue()

    def do_task():
        calls.put(True)
        raise Exception("deliberate error")

    task = RepeatingTask("kitbase_flags.testing.failing", 0.01, 0, do_task)
    try:
        task.start()
        calls.get(True, 1)
        calls.get(True, 1)
    finally:
        task.stop()


def test_task_can_be_stopped_from_within_the_task():
    counter = 0
    stopped = Event()
    task = None

    def do_task():
        nonlocal counter
        counter += 1
        if counter >= 2:
            task.stop()
            stopped.set()

    task = RepeatingTask("kitbase_flags.testing.task-runner", 0.01, 0, do_task)
    try:
        task.start()
        assert stopped.wait(0.1) is True
        assert counter == 2
        time.sleep(0.1)
        assert counter == 2
    finally:
        task.stop()
