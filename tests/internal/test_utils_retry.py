import pytest

from cloudprof.internal.utils.retry import Retryer


def test_retryer_backoff_grows_until_cap():
    r = Retryer(1000, 1000000, 5, random=lambda: 0.5)
    assert [r.get_backoff() for _ in range(8)] == [500, 2500, 12500, 62500, 312500, 500000, 500000, 500000]


def test_retryer_reset():
    r = Retryer(1000, 1000000, 5, random=lambda: 0.5)
    for _ in range(4):
        r.get_backoff()
    assert r.next_backoff_millis == 625000

    r.reset()
    assert r.next_backoff_millis == 1000
    assert r.get_backoff() == 500


def test_retryer_random_bounds():
    r = Retryer(1000, 60000, 1.3)
    for _ in range(50):
        envelope = r.next_backoff_millis
        backoff = r.get_backoff()
        assert 0 <= backoff < envelope
    assert r.next_backoff_millis == 60000


@pytest.mark.parametrize("rand", [0.0, 0.25, 0.999])
def test_retryer_scales_with_random(rand):
    r = Retryer(2000, 10000, 2, random=lambda: rand)
    assert r.get_backoff() == rand * 2000
    assert r.get_backoff() == rand * 4000


def test_retryer_repr():
    r = Retryer(1000, 2000, 1.5)
    assert repr(r) == (
        "Retryer(initial_backoff_millis=1000, backoff_cap_millis=2000, backoff_multiplier=1.5, "
        "next_backoff_millis=1000)"
    )
