import random
import typing as t


class Retryer(object):
    """Track how long to wait before the next retry.

    The delay returned by :meth:`get_backoff` is drawn uniformly from ``[0, envelope)``. The envelope starts at
    ``initial_backoff_millis`` and is multiplied by ``backoff_multiplier`` on every call, up to
    ``backoff_cap_millis``. :meth:`reset` brings it back to its initial value.
    """

    def __init__(
        self,
        initial_backoff_millis: float,
        backoff_cap_millis: float,
        backoff_multiplier: float,
        random: t.Callable[[], float] = random.random,
    ) -> None:
        self.initial_backoff_millis = initial_backoff_millis
        self.backoff_cap_millis = backoff_cap_millis
        self.backoff_multiplier = backoff_multiplier
        self.next_backoff_millis = initial_backoff_millis
        self._random = random

    def __repr__(self):
        return "%s(initial_backoff_millis=%r, backoff_cap_millis=%r, backoff_multiplier=%r, next_backoff_millis=%r)" % (
            self.__class__.__name__,
            self.initial_backoff_millis,
            self.backoff_cap_millis,
            self.backoff_multiplier,
            self.next_backoff_millis,
        )

    def get_backoff(self) -> float:
        """Return the next delay, in milliseconds, and grow the envelope."""
        cur_backoff = self._random() * self.next_backoff_millis
        self.next_backoff_millis = min(self.backoff_multiplier * self.next_backoff_millis, self.backoff_cap_millis)
        return cur_backoff

    def reset(self) -> None:
        self.next_backoff_millis = self.initial_backoff_millis
