import pytest

from .utils import NOW


@pytest.fixture
def frozen_time(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Pin time.time to NOW and record time.sleep calls instead of sleeping."""
    sleeps: list[float] = []
    monkeypatch.setattr("time.time", lambda: float(NOW))
    monkeypatch.setattr("time.sleep", lambda secs: sleeps.append(secs))
    return sleeps
