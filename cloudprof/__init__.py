"""Background profiling agent reporting time and heap profiles to the Cloud Profiler API.

Usage::

    import cloudprof

    cloudprof.start(service="my-service", time_collector=..., heap_collector=...)
"""
from ._version import __version__  # noqa: E402
from .profiling.profiler import LocalProfiler  # noqa: E402
from .profiling.profiler import Profiler  # noqa: E402
from .profiling.profiler import start  # noqa: E402
from .profiling.profiler import start_local  # noqa: E402


__all__ = [
    "__version__",
    "LocalProfiler",
    "Profiler",
    "start",
    "start_local",
]
