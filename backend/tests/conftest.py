import pytest

from models import NetworkObservation


class FakeScanSource:
    def __init__(self, accept=True):
        self.accept = accept
        self.requests = 0
        self.listeners = []

    def subscribe(self, callback):
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def request_scan(self):
        self.requests += 1
        return self.accept

    def emit(self, observations):
        for listener in list(self.listeners):
            listener(observations)


class FakeScheduler:
    """Records jobs instead of running them on a clock."""

    def __init__(self):
        self.jobs = []
        self.running = False

    def add_job(self, func, trigger, args=None, **kwargs):
        self.jobs.append({"func": func, "trigger": trigger, "args": args or [], **kwargs})

    def run_date_jobs(self):
        due = [j for j in self.jobs if j["trigger"] == "date"]
        self.jobs = [j for j in self.jobs if j["trigger"] != "date"]
        for job in due:
            job["func"](*job["args"])
        return len(due)

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False


def obs(identifier, freq, dbm):
    return NetworkObservation(identifier=identifier, center_frequency_mhz=freq, signal_strength_dbm=dbm)


@pytest.fixture
def scan_source():
    return FakeScanSource()


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()
