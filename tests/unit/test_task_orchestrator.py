import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from smartcv.core.tasks import TaskOrchestrator
from smartcv.errors import TaskFailed, TaskTimeout, UnknownTask


@pytest.fixture
def tasks() -> TaskOrchestrator:
    orchestrator = TaskOrchestrator(max_workers=2, timeout_sec=5)
    yield orchestrator
    orchestrator.shutdown()


def test_run_returns_handler_result(tasks: TaskOrchestrator) -> None:
    tasks.register("double", lambda payload: payload["value"] * 2)
    assert tasks.run("double", {"value": 21}) == 42


def test_handler_error_surfaces_as_task_failed(tasks: TaskOrchestrator) -> None:
    def boom(payload):
        raise ValueError("bad document")

    tasks.register("extract-cv", boom)
    with pytest.raises(TaskFailed) as info:
        tasks.run("extract-cv", {}, identifier="+2341")

    assert info.value.task_name == "extract-cv"
    assert isinstance(info.value.cause, ValueError)


def test_unregistered_task_is_rejected(tasks: TaskOrchestrator) -> None:
    with pytest.raises(UnknownTask):
        tasks.run("missing", {})


def test_timeout_raises_and_running_unit_completes_unobserved(tasks: TaskOrchestrator) -> None:
    release = threading.Event()
    finished = threading.Event()

    def slow(payload):
        release.wait(5)
        finished.set()
        return "late"

    tasks.register("parse-query", slow)
    with pytest.raises(TaskTimeout) as info:
        tasks.run("parse-query", {}, timeout_sec=0.05)
    assert info.value.task_name == "parse-query"

    release.set()
    assert finished.wait(5)


def test_concurrent_calls_never_share_results(tasks: TaskOrchestrator) -> None:
    tasks.register("echo", lambda payload: payload["n"])
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda n: tasks.run("echo", {"n": n}), range(40)))
    assert results == list(range(40))


def test_submit_tracks_lifecycle(tasks: TaskOrchestrator) -> None:
    tasks.register("noop", lambda payload: None)
    record, future = tasks.submit("noop", {}, identifier="42")
    future.result(timeout=5)
    assert record.status == "completed"
    assert record.identifier == "42"
    assert record.finished_at is not None


def test_pool_restarts_after_shutdown(tasks: TaskOrchestrator) -> None:
    tasks.register("one", lambda payload: 1)
    tasks.shutdown()
    assert tasks.run("one", {}) == 1
