# -*- encoding: utf-8 -*-
"""Boundary between the agent and the samplers of the profiled runtime.

Samplers are not part of the agent: they are handed to the :class:`cloudprof.profiling.profiler.Profiler` and return
call trees made of :class:`SampleTreeNode`. The root of a tree is a synthetic container and is never sampled itself.
"""
import abc
import dataclasses
import typing


class CollectorError(Exception):
    pass


class CollectorUnavailable(CollectorError):
    pass


class ProfileTypeError(CollectorError):
    """The requested profile cannot be collected by this agent."""


@dataclasses.dataclass
class Allocation:
    """Allocations of a given size sampled at a call site."""

    count: int
    size_bytes: int


@dataclasses.dataclass
class SampleTreeNode:
    """A call site in a sampled call tree.

    Time trees carry a ``hit_count``, heap trees carry ``allocations``. Every node is owned by its parent.
    """

    name: typing.Optional[str] = None
    script_name: str = ""
    script_id: int = 0
    line_number: int = 0
    column_number: int = 0
    hit_count: int = 0
    allocations: typing.List[Allocation] = dataclasses.field(default_factory=list)
    children: typing.List["SampleTreeNode"] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class TimeProfile:
    root: SampleTreeNode
    start_time_ns: int
    end_time_ns: int


@dataclasses.dataclass
class HeapProfile:
    root: SampleTreeNode
    start_time_ns: int


class TimeCollector(abc.ABC):
    """A sampler of the time spent in each call site."""

    @abc.abstractmethod
    def collect(self, duration_ms: float) -> TimeProfile:
        """Sample the process for ``duration_ms`` milliseconds and return the call tree."""


class HeapCollector(abc.ABC):
    """A sampler of the live heap allocations."""

    def start(self, interval_bytes: int, max_stack_depth: int) -> None:
        """Start sampling allocations, every ``interval_bytes`` allocated bytes on average."""

    def stop(self) -> None:
        """Stop sampling allocations."""

    @abc.abstractmethod
    def collect(self) -> HeapProfile:
        """Return the call tree of the sampled allocations that are still alive."""
