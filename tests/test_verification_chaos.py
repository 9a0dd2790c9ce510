"""Verification Test: Chaos Monkey - Random process termination resilience.

Processes are terminated and spawned while the engine refreshes against the
live system. A refresh must never raise because a process vanished between
enumeration and a metric query.
"""

import multiprocessing
import random
import time

import pytest

from proctop.config import Settings
from proctop.engine import TaskEngine
from proctop.models import SortColumn
from proctop.providers import PsutilProvider


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def spawn(count: int, duration: float = 60.0) -> list[multiprocessing.Process]:
    processes = []
    for _ in range(count):
        p = multiprocessing.Process(target=dummy_worker, args=(duration,))
        p.start()
        processes.append(p)
    return processes


def cleanup(processes: list[multiprocessing.Process]) -> None:
    for p in processes:
        if p.is_alive():
            p.terminate()
    for p in processes:
        p.join(timeout=1.0)


@pytest.fixture
def live_engine():
    engine = TaskEngine.from_provider(PsutilProvider(), Settings(tree_view=True))
    assert engine.refresh()
    return engine


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_engine_survives_process_termination(self, live_engine):
        """
        Test that refresh keeps working while processes die mid-poll.

        Children are terminated between and during refreshes; every refresh
        must still succeed and the dead children must drop out.
        """
        processes = spawn(30)
        try:
            assert live_engine.refresh()
            listed = {e.pid for e in live_engine.processes}
            assert all(p.pid in listed for p in processes)

            doomed = random.sample(processes, 15)
            for p in doomed:
                p.terminate()
                assert live_engine.refresh()

            for p in doomed:
                p.join(timeout=1.0)
            assert live_engine.refresh()

            listed = {e.pid for e in live_engine.processes}
            assert not any(p.pid in listed for p in doomed)
            tracked = live_engine._monitor.cpu_tracker.tracked_pids
            assert not any(p.pid in tracked for p in doomed)
        finally:
            cleanup(processes)

    def test_rapid_process_churn(self, live_engine):
        """
        Test stability while processes are rapidly created and destroyed.

        Sorting, filtering and the tree are rebuilt on every pass.
        """
        processes: list[multiprocessing.Process] = []
        try:
            start_time = time.time()
            while time.time() - start_time < 3.0:
                processes.extend(spawn(5, duration=10.0))
                alive = [p for p in processes if p.is_alive()]
                if len(alive) > 10:
                    for p in random.sample(alive, 3):
                        p.terminate()

                assert live_engine.refresh()
                live_engine.cycle_sort()
                time.sleep(0.1)

            assert live_engine.message is None
            assert live_engine.displayed
        finally:
            cleanup(processes)

    def test_detail_view_closes_when_child_dies(self, live_engine):
        """Test the detail view of a terminated child closes cleanly."""
        processes = spawn(1)
        try:
            live_engine.refresh()
            live_engine.tree_view = False
            live_engine.sort_column = SortColumn.PID
            live_engine.filter_text = ""
            live_engine.refresh()
            pids = [e.pid for e in live_engine.displayed]
            live_engine.selected_index = pids.index(processes[0].pid)
            live_engine.open_detail()
            assert live_engine.detail is not None

            processes[0].terminate()
            processes[0].join(timeout=2.0)
            live_engine.refresh()

            assert live_engine.detail is None
            assert live_engine.message == "Process no longer exists"
        finally:
            cleanup(processes)
