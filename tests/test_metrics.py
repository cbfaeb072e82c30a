from recordwatch.core import metrics


def test_metrics_increment_and_snapshot() -> None:
    metrics.reset()

    metrics.increment("portal.login")
    metrics.increment("portal.login")
    metrics.increment("portal.page_fetch", list_type="reportedRecords")

    snapshot = metrics.snapshot()

    assert snapshot["portal.login"] == 2
    assert snapshot["portal.page_fetch|list_type=reportedRecords"] == 1
    assert metrics.get("portal.page_fetch", list_type="reportedRecords") == 1
    assert metrics.get("portal.scan", policy="all") == 0


def test_registry_keys_sort_labels() -> None:
    registry = metrics.CounterRegistry()

    registry.increment("job.run", job="billing_report", attempt="1")
    registry.increment("job.run", attempt="1", job="billing_report")

    assert registry.snapshot() == {"job.run|attempt=1,job=billing_report": 2}
    assert metrics.counter_key("portal.login", {}) == "portal.login"
