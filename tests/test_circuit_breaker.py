import threading

from pagecache.circuit_breaker import CircuitBreakerStore


def test_breaker_trips_after_threshold():
    now = [1000.0]
    store = CircuitBreakerStore(max_failures=2, ttl_sec=1, clock=lambda: now[0])

    assert store.record_failure("store", error="boom") is False
    assert store.can_attempt("store")

    assert store.record_failure("store", error="boom") is True
    assert not store.can_attempt("store")
    assert store.get_state("store").last_error == "boom"

    # advance time
    now[0] += 2
    assert store.can_attempt("store")


def test_success_resets_failures():
    store = CircuitBreakerStore(max_failures=2, ttl_sec=30)

    store.record_failure("store")
    store.record_success("store")
    store.record_failure("store")

    assert store.can_attempt("store")
    assert store.get_state("store").failures == 1


def test_concurrent_failures_trip_once_per_threshold():
    store = CircuitBreakerStore(max_failures=5, ttl_sec=30, clock=lambda: 1000.0)
    barrier = threading.Barrier(10)
    trips = []

    def fail():
        barrier.wait()
        trips.append(store.record_failure("store", error="locked"))

    threads = [threading.Thread(target=fail) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert trips.count(True) == 2
    assert store.get_state("store").failures == 0
    assert not store.can_attempt("store")
