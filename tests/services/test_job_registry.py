import threading

from galleryharvest.services.job_registry import InMemoryJobRegistry


def test_register_returns_handle_with_event():
    registry = InMemoryJobRegistry()

    handle = registry.register("job-1")

    assert isinstance(handle.cancel_event, threading.Event)
    assert registry.is_registered("job-1")
    assert registry.get_event("job-1") is handle.cancel_event
    assert not handle.should_cancel()


def test_register_is_idempotent():
    registry = InMemoryJobRegistry()
    assert registry.register("job-1").cancel_event is registry.register("job-1").cancel_event


def test_cancel_sets_flag_seen_by_worker():
    registry = InMemoryJobRegistry()
    handle = registry.register("job-1")
    should_cancel = registry.should_cancel("job-1")

    assert registry.cancel("job-1")

    assert handle.should_cancel()
    assert should_cancel()
    assert registry.is_cancelled("job-1")


def test_cancel_unknown_job_returns_false():
    assert not InMemoryJobRegistry().cancel("missing")


def test_finish_drops_mapping_but_handle_keeps_state():
    registry = InMemoryJobRegistry()
    handle = registry.register("job-1")
    registry.cancel("job-1")

    registry.finish("job-1")

    assert not registry.is_registered("job-1")
    assert not registry.is_cancelled("job-1")
    assert handle.should_cancel()
    assert not registry.cancel("job-1")


def test_cancel_all_and_list_active():
    registry = InMemoryJobRegistry()
    a = registry.register("a")
    b = registry.register("b")

    assert sorted(registry.list_active()) == ["a", "b"]
    assert sorted(registry.cancel_all()) == ["a", "b"]
    assert a.should_cancel() and b.should_cancel()
