import threading

from finbot.utils.rate_limit import AIRequestBudget, get_ai_request_budget, reset_ai_request_budget


def _freeze_time(monkeypatch, start=1000.0):
    t = {"now": start}

    def fake_monotonic():
        return t["now"]

    monkeypatch.setattr("finbot.utils.rate_limit.time.monotonic", fake_monotonic)
    return t


def test_per_minute_cap_blocks_then_recovers(monkeypatch):
    t = _freeze_time(monkeypatch)
    budget = AIRequestBudget(max_daily=1000, max_per_minute=20)

    for _ in range(20):
        assert budget.can_proceed() is True
        budget.record()

    assert budget.can_proceed() is False

    # Still inside the window.
    t["now"] += 59.0
    assert budget.can_proceed() is False

    t["now"] += 1.5
    assert budget.can_proceed() is True


def test_daily_cap_blocks_until_rollover(monkeypatch):
    t = _freeze_time(monkeypatch)
    budget = AIRequestBudget(max_daily=3, max_per_minute=100)

    for _ in range(3):
        budget.record()
    assert budget.can_proceed() is False

    # The minute window clearing does not lift the daily cap.
    t["now"] += 3600
    assert budget.can_proceed() is False

    t["now"] += 24 * 60 * 60
    assert budget.can_proceed() is True
    assert budget.stats().daily_used == 0


def test_stats_reports_usage(monkeypatch):
    _freeze_time(monkeypatch)
    budget = AIRequestBudget(max_daily=1000, max_per_minute=20)
    for _ in range(5):
        budget.record()

    stats = budget.stats()
    assert stats.daily_used == 5
    assert stats.daily_limit == 1000
    assert stats.percent_used == 0.5
    assert stats.can_proceed is True


def test_zero_limits_never_proceed():
    budget = AIRequestBudget(max_daily=0, max_per_minute=20)
    assert budget.can_proceed() is False
    assert budget.stats().percent_used == 100.0


def test_reset_clears_counters(monkeypatch):
    _freeze_time(monkeypatch)
    budget = AIRequestBudget(max_daily=2, max_per_minute=2)
    budget.record()
    budget.record()
    assert budget.can_proceed() is False

    budget.reset()
    assert budget.can_proceed() is True
    assert budget.stats().daily_used == 0


def test_concurrent_records_are_all_counted():
    budget = AIRequestBudget(max_daily=100_000, max_per_minute=100_000)

    def worker():
        for _ in range(500):
            budget.record()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert budget.stats().daily_used == 4000


def test_process_budget_built_from_settings(monkeypatch):
    monkeypatch.setenv("AI_MAX_DAILY_REQUESTS", "7")
    monkeypatch.setenv("AI_MAX_REQUESTS_PER_MINUTE", "3")
    from finbot.core.config import get_settings

    get_settings.cache_clear()
    reset_ai_request_budget()

    budget = get_ai_request_budget()
    assert budget.max_daily == 7
    assert budget.max_per_minute == 3
    assert get_ai_request_budget() is budget
