# -*- encoding: utf-8 -*-
"""Conversion of sampled call trees to the pprof format.

A serializer is used for a single call tree: the string table and the location and function tables it fills are
never shared between two profiles.
"""
import typing

import attr

from cloudprof.profiling.collector import HeapProfile
from cloudprof.profiling.collector import SampleTreeNode
from cloudprof.profiling.collector import TimeProfile
from cloudprof.profiling.exporter import _profile_proto as pprof_pb2


ANONYMOUS_FUNCTION_NAME = "(anonymous)"

_StackType = typing.List[int]


@attr.s
class _Sequence(object):
    start_at = attr.ib(default=1, type=int)
    next_id = attr.ib(init=False, default=None, type=int)

    def __attrs_post_init__(self):
        self.next_id = self.start_at

    def generate(self):
        # type: () -> int
        """Generate a new unique id and return it."""
        generated_id = self.next_id
        self.next_id += 1
        return generated_id


@attr.s
class StringTable(object):
    """Interned strings of a profile. The empty string always has the id 0."""

    _strings = attr.ib(init=False, factory=lambda: {"": 0}, repr=False)
    strings = attr.ib(init=False, factory=lambda: [""])

    def to_id(self, string):
        # type: (str) -> int
        try:
            return self._strings[string]
        except KeyError:
            id_ = self._strings[string] = len(self.strings)
            self.strings.append(string)
            return id_

    def __iter__(self):
        # type: () -> typing.Iterator[str]
        return iter(self.strings)

    def __len__(self):
        # type: () -> int
        return len(self.strings)


class _ProfileSerializer(object):
    """Base class of the call tree serializers.

    Subclasses define the sample types of the profile, the key identifying a call site and the samples emitted for a
    node.
    """

    count_type = ("", "")  # type: typing.Tuple[str, str]
    weighted_type = ("", "")  # type: typing.Tuple[str, str]

    def __init__(self, period, ignore_samples_path=None):
        # type: (int, typing.Optional[str]) -> None
        self.period = period
        self.ignore_samples_path = ignore_samples_path
        self.string_table = StringTable()
        self.samples = []  # type: typing.List[pprof_pb2.Sample]
        self._locations = {}  # type: typing.Dict[typing.Hashable, pprof_pb2.Location]
        self._functions = {}  # type: typing.Dict[typing.Tuple[int, str], pprof_pb2.Function]
        self._location_ids = _Sequence()
        self._function_ids = _Sequence()

    def _value_type(self, type_unit):
        # type: (typing.Tuple[str, str]) -> pprof_pb2.ValueType
        type_, unit = type_unit
        return pprof_pb2.ValueType(type=self.string_table.to_id(type_), unit=self.string_table.to_id(unit))

    def _location_key(self, node):
        # type: (SampleTreeNode) -> typing.Hashable
        raise NotImplementedError

    def _node_values(self, node):
        # type: (SampleTreeNode) -> typing.Iterable[typing.Tuple[int, int]]
        raise NotImplementedError

    def _is_ignored(self, node):
        # type: (SampleTreeNode) -> bool
        return bool(self.ignore_samples_path) and self.ignore_samples_path in node.script_name

    def _to_function_id(self, node):
        # type: (SampleTreeNode) -> int
        name = node.name or ANONYMOUS_FUNCTION_NAME
        key = (node.script_id, name)
        function = self._functions.get(key)
        if function is None:
            name_id = self.string_table.to_id(name)
            function = self._functions[key] = pprof_pb2.Function(
                id=self._function_ids.generate(),
                name=name_id,
                system_name=name_id,
                filename=self.string_table.to_id(node.script_name),
            )
        return function.id

    def _to_location_id(self, node):
        # type: (SampleTreeNode) -> int
        key = self._location_key(node)
        location = self._locations.get(key)
        if location is None:
            location = self._locations[key] = pprof_pb2.Location(
                id=self._location_ids.generate(),
                line=[pprof_pb2.Line(function_id=self._to_function_id(node), line=node.line_number)],
            )
        return location.id

    def _convert_tree(self, root):
        # type: (SampleTreeNode) -> None
        # The root is a synthetic container: only its descendants are call sites.
        # An explicit stack keeps deep trees from hitting the recursion limit.
        entries = [(child, []) for child in root.children]  # type: typing.List[typing.Tuple[SampleTreeNode, _StackType]]
        while entries:
            node, parent_stack = entries.pop()
            if self._is_ignored(node):
                # The callees of an ignored call site are dropped along with it
                continue

            stack = [self._to_location_id(node)] + parent_stack
            for count, weight in self._node_values(node):
                self.samples.append(pprof_pb2.Sample(location_id=stack, value=[count, weight]))

            entries.extend((child, stack) for child in node.children)

    def _profile(self, root):
        # type: (SampleTreeNode) -> pprof_pb2.Profile
        sample_type = [self._value_type(self.count_type), self._value_type(self.weighted_type)]
        self._convert_tree(root)
        return pprof_pb2.Profile(
            sample_type=sample_type,
            sample=self.samples,
            location=list(self._locations.values()),
            function=list(self._functions.values()),
            period_type=sample_type[1],
            period=self.period,
        )

    def _finish(self, profile):
        # type: (pprof_pb2.Profile) -> pprof_pb2.Profile
        profile.string_table.extend(self.string_table)
        return profile


class TimeProfileSerializer(_ProfileSerializer):
    """Serialize time profiles: one sample per sampled call site, weighted by the sampling interval."""

    count_type = ("samples", "count")
    weighted_type = ("time", "microseconds")

    def __init__(self, interval_micros, ignore_samples_path=None):
        # type: (int, typing.Optional[str]) -> None
        super(TimeProfileSerializer, self).__init__(interval_micros, ignore_samples_path)

    def _location_key(self, node):
        return (node.script_id, node.line_number, node.column_number, node.name)

    def _node_values(self, node):
        if node.hit_count > 0:
            yield node.hit_count, node.hit_count * self.period

    def serialize(self, prof):
        # type: (TimeProfile) -> pprof_pb2.Profile
        profile = self._profile(prof.root)
        profile.time_nanos = prof.start_time_ns
        profile.duration_nanos = prof.end_time_ns - prof.start_time_ns
        return self._finish(profile)


class HeapProfileSerializer(_ProfileSerializer):
    """Serialize heap profiles: one sample per allocation record, weighted by the allocated bytes."""

    count_type = ("objects", "count")
    weighted_type = ("space", "bytes")

    def __init__(self, interval_bytes, ignore_samples_path=None):
        # type: (int, typing.Optional[str]) -> None
        super(HeapProfileSerializer, self).__init__(interval_bytes, ignore_samples_path)

    def _location_key(self, node):
        # Call sites with the same position but different allocations keep distinct locations
        return (
            node.script_id,
            node.line_number,
            node.column_number,
            node.name,
            tuple((a.count, a.size_bytes) for a in node.allocations),
        )

    def _node_values(self, node):
        for allocation in node.allocations:
            yield allocation.count, allocation.count * allocation.size_bytes

    def serialize(self, prof):
        # type: (HeapProfile) -> pprof_pb2.Profile
        profile = self._profile(prof.root)
        profile.time_nanos = prof.start_time_ns
        return self._finish(profile)


def serialize_time_profile(prof, interval_micros):
    # type: (TimeProfile, int) -> pprof_pb2.Profile
    """Convert a time profile to a pprof profile.

    :param prof: The collected time profile.
    :param interval_micros: The average time between two samples, in microseconds.
    """
    return TimeProfileSerializer(interval_micros).serialize(prof)


def serialize_heap_profile(prof, interval_bytes, ignore_samples_path=None):
    # type: (HeapProfile, int, typing.Optional[str]) -> pprof_pb2.Profile
    """Convert a heap profile to a pprof profile.

    :param prof: The collected heap profile.
    :param interval_bytes: The average number of bytes allocated between two samples.
    :param ignore_samples_path: Drop the call sites whose script name contains this string, and their callees.
    """
    return HeapProfileSerializer(interval_bytes, ignore_samples_path).serialize(prof)
