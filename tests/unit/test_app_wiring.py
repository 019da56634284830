from datetime import time, timedelta

from fundtracker import main


def test_manual_sample_interval_does_not_follow_snapshot_cadence(monkeypatch):
    monkeypatch.setattr(main.settings, "SNAPSHOT_INTERVAL_MINUTES", 15)
    monkeypatch.setattr(main.settings, "MANUAL_SAMPLE_INTERVAL_MINUTES", 5)

    replay = main.build_replay()

    assert replay.sample_interval == timedelta(minutes=5)
    assert replay.close_cutoff == time(18, 10)


def test_market_router_is_mounted():
    paths = {route.path for route in main.app.routes}

    assert "/api/v1/market" in paths
    assert "/api/v1/portfolios/{code}/intraday" in paths
