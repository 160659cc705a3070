import pytest

from cloudprof.internal import service


class _Service(service.Service):
    def __init__(self):
        super(_Service, self).__init__()
        self.calls = []

    def _start_service(self, *args, **kwargs):
        self.calls.append(("start", args, kwargs))

    def _stop_service(self, *args, **kwargs):
        self.calls.append(("stop", args, kwargs))


def test_service_status():
    s = _Service()
    assert s.status == service.ServiceStatus.STOPPED
    s.start(1, foo="bar")
    assert s.status == service.ServiceStatus.RUNNING
    s.stop()
    assert s.status == service.ServiceStatus.STOPPED
    assert s.calls == [("start", (1,), {"foo": "bar"}), ("stop", (), {})]


def test_service_double_start():
    s = _Service()
    s.start()
    with pytest.raises(service.ServiceStatusError) as e:
        s.start()
    assert e.value.current_status == service.ServiceStatus.RUNNING
    assert str(e.value) == "_Service is already in status running"


def test_service_stop_not_started():
    with pytest.raises(service.ServiceStatusError):
        _Service().stop()


def test_service_context_manager():
    with _Service() as s:
        assert s.status == service.ServiceStatus.RUNNING
    assert s.status == service.ServiceStatus.STOPPED
