import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest
from randomwalk.exceptions import ResourceClosedError, ResourceTimeoutError
from randomwalk.lazy import SingleFlight


class TestSingleFlight:
    def test_builds_once_and_returns_same_object(self):
        factory = Mock(side_effect=lambda: object())
        flight = SingleFlight("handle", factory)

        first = flight.get()
        second = flight.get()

        assert first is second
        factory.assert_called_once()

    def test_peek_does_not_construct(self):
        factory = Mock(return_value="value")
        flight = SingleFlight("handle", factory)

        assert flight.peek() is None
        assert not flight.is_resolved()
        factory.assert_not_called()

        flight.get()
        assert flight.peek() == "value"
        assert flight.is_resolved()

    def test_failure_is_not_cached(self):
        factory = Mock(side_effect=[ConnectionError("down"), "value"])
        flight = SingleFlight("handle", factory)

        with pytest.raises(ConnectionError):
            flight.get()
        assert flight.peek() is None

        assert flight.get() == "value"
        assert factory.call_count == 2

    def test_close_returns_value_and_refuses_further_requests(self):
        flight = SingleFlight("handle", Mock(return_value="value"))
        flight.get()

        assert flight.close() == "value"
        with pytest.raises(ResourceClosedError):
            flight.get()

    def test_close_unbuilt_returns_none(self):
        factory = Mock()
        flight = SingleFlight("handle", factory)

        assert flight.close() is None
        factory.assert_not_called()


class TestConcurrentConstruction:
    def test_concurrent_callers_share_one_construction(self):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def slow_factory():
            calls.append(1)
            started.set()
            release.wait(5)
            return object()

        flight = SingleFlight("handle", slow_factory)

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(flight.get) for _ in range(8)]
            assert started.wait(5)
            time.sleep(0.05)
            release.set()
            results = [f.result(timeout=5) for f in futures]

        assert len(calls) == 1
        assert all(r is results[0] for r in results)

    def test_concurrent_callers_share_one_failure(self):
        started = threading.Event()
        release = threading.Event()
        calls = []
        error = ConnectionError("refused")

        def failing_factory():
            calls.append(1)
            started.set()
            release.wait(5)
            raise error

        flight = SingleFlight("handle", failing_factory)

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(flight.get) for _ in range(4)]
            assert started.wait(5)
            time.sleep(0.05)
            release.set()
            raised = [f.exception(timeout=5) for f in futures]

        assert len(calls) == 1
        assert all(e is error for e in raised)

    def test_waiter_times_out(self):
        started = threading.Event()
        release = threading.Event()

        def slow_factory():
            started.set()
            release.wait(5)
            return "late"

        flight = SingleFlight("handle", slow_factory, timeout=0.05)

        with ThreadPoolExecutor(max_workers=1) as pool:
            owner = pool.submit(flight.get)
            assert started.wait(5)
            with pytest.raises(ResourceTimeoutError):
                flight.get()
            release.set()
            assert owner.result(timeout=5) == "late"

        assert flight.get() == "late"
