from cloudprof.profiling.collector import Allocation
from cloudprof.profiling.collector import HeapProfile
from cloudprof.profiling.collector import SampleTreeNode
from cloudprof.profiling.collector import TimeProfile
from cloudprof.profiling.exporter import _profile_proto as pprof_pb2
from cloudprof.profiling.exporter import pprof
from tests.profiling.utils import heap_tree
from tests.profiling.utils import time_tree


def _string(profile, string_id):
    return profile.string_table[string_id]


def _function_names(profile, sample):
    locations = {loc.id: loc for loc in profile.location}
    functions = {f.id: f for f in profile.function}
    return [_string(profile, functions[locations[i].line[0].function_id].name) for i in sample.location_id]


def test_string_table():
    t = pprof.StringTable()
    assert len(t) == 1
    assert t.to_id("") == 0
    assert t.to_id("foo") == 1
    assert t.to_id("bar") == 2
    assert t.to_id("foo") == 1
    assert list(t) == ["", "foo", "bar"]
    assert len(t) == 3


def test_serialize_time_profile():
    profile = pprof.serialize_time_profile(TimeProfile(time_tree(), 1000, 5000), 1000)

    assert list(profile.string_table[:5]) == ["", "samples", "count", "time", "microseconds"]
    assert set(profile.string_table[5:]) == {"main", "app.py", "leaf"}
    assert len(profile.string_table) == len(set(profile.string_table))

    assert [(_string(profile, v.type), _string(profile, v.unit)) for v in profile.sample_type] == [
        ("samples", "count"),
        ("time", "microseconds"),
    ]
    assert profile.period_type == profile.sample_type[1]
    assert profile.period == 1000
    assert profile.time_nanos == 1000
    assert profile.duration_nanos == 4000

    assert len(profile.sample) == 2
    assert list(profile.sample[0].value) == [3, 3000]
    assert _function_names(profile, profile.sample[0]) == ["main"]
    assert list(profile.sample[1].value) == [1, 1000]
    assert _function_names(profile, profile.sample[1]) == ["leaf", "main"]

    assert [loc.id for loc in profile.location] == [1, 2]
    assert [f.id for f in profile.function] == [1, 2]
    main = profile.function[0]
    assert _string(profile, main.name) == "main"
    assert main.system_name == main.name
    assert _string(profile, main.filename) == "app.py"
    assert profile.location[0].line[0].line == 10


def test_serialize_time_profile_leaf_first():
    c = SampleTreeNode(name="c", script_name="c.py", script_id=3, line_number=3, hit_count=1)
    b = SampleTreeNode(name="b", script_name="b.py", script_id=2, line_number=2, children=[c])
    a = SampleTreeNode(name="a", script_name="a.py", script_id=1, line_number=1, children=[b])
    profile = pprof.serialize_time_profile(TimeProfile(SampleTreeNode(children=[a]), 0, 0), 10)

    # nodes without hits emit no sample
    assert len(profile.sample) == 1
    sample = profile.sample[0]
    assert len(sample.location_id) == 3
    assert _function_names(profile, sample) == ["c", "b", "a"]


def test_serialize_time_profile_dedup():
    def _node(**kwargs):
        return SampleTreeNode(name="f", script_name="f.py", script_id=1, line_number=1, column_number=1, **kwargs)

    other_line = SampleTreeNode(name="f", script_name="f.py", script_id=1, line_number=2, hit_count=1)
    root = SampleTreeNode(
        children=[_node(hit_count=1, children=[_node(hit_count=2)]), _node(hit_count=4), other_line]
    )
    profile = pprof.serialize_time_profile(TimeProfile(root, 0, 0), 1)

    # same call site: one location, same function at another line: one function
    assert len(profile.location) == 2
    assert len(profile.function) == 1
    assert len(profile.sample) == 4
    assert sorted(list(s.location_id) for s in profile.sample) == [[1], [2], [2], [2, 2]]


def test_serialize_anonymous_function():
    root = SampleTreeNode(children=[SampleTreeNode(script_name="x.py", hit_count=1)])
    profile = pprof.serialize_time_profile(TimeProfile(root, 0, 0), 1)
    assert _string(profile, profile.function[0].name) == "(anonymous)"


def test_serialize_root_not_sampled():
    root = SampleTreeNode(name="(root)", hit_count=10)
    profile = pprof.serialize_time_profile(TimeProfile(root, 0, 0), 1)
    assert len(profile.sample) == 0
    assert len(profile.location) == 0


def test_serialize_deep_tree():
    root = node = SampleTreeNode()
    for i in range(1000):
        child = SampleTreeNode(name="f%d" % i, script_name="deep.py", line_number=i, hit_count=1)
        node.children.append(child)
        node = child
    profile = pprof.serialize_time_profile(TimeProfile(root, 0, 0), 1)
    assert len(profile.sample) == 1000
    assert len(profile.sample[-1].location_id) == 1000


def test_serialize_heap_profile():
    profile = pprof.serialize_heap_profile(HeapProfile(heap_tree(), 2000), 512 * 1024)

    assert list(profile.string_table[:5]) == ["", "objects", "count", "space", "bytes"]
    assert [(_string(profile, v.type), _string(profile, v.unit)) for v in profile.sample_type] == [
        ("objects", "count"),
        ("space", "bytes"),
    ]
    assert profile.period_type == profile.sample_type[1]
    assert profile.period == 512 * 1024
    assert profile.time_nanos == 2000
    assert profile.duration_nanos == 0

    assert [list(s.value) for s in profile.sample] == [[2, 128], [1, 1024], [1, 8]]
    assert _function_names(profile, profile.sample[2]) == ["(anonymous)", "alloc"]


def test_serialize_heap_profile_distinct_allocations():
    def _node(*allocations):
        return SampleTreeNode(name="f", script_name="f.py", script_id=1, line_number=1, allocations=list(allocations))

    root = SampleTreeNode(children=[_node(Allocation(1, 8)), _node(Allocation(1, 16)), _node(Allocation(1, 8))])
    profile = pprof.serialize_heap_profile(HeapProfile(root, 0), 1)
    assert len(profile.location) == 2
    assert len(profile.function) == 1
    assert len(profile.sample) == 3


def test_serialize_ignore_samples_path_drops_subtree():
    c = SampleTreeNode(name="c", script_name="app/c.py", allocations=[Allocation(1, 1)])
    b = SampleTreeNode(name="b", script_name="app/b.py", allocations=[Allocation(1, 1)], children=[c])
    a = SampleTreeNode(
        name="a", script_name="site-packages/cloudprof/a.py", allocations=[Allocation(1, 1)], children=[b]
    )
    d = SampleTreeNode(name="d", script_name="app/d.py", allocations=[Allocation(1, 2)])
    profile = pprof.serialize_heap_profile(HeapProfile(SampleTreeNode(children=[a, d]), 0), 1, "cloudprof")

    assert len(profile.sample) == 1
    assert _function_names(profile, profile.sample[0]) == ["d"]
    assert len(profile.location) == 1
    assert "app/b.py" not in profile.string_table


def test_serialize_fresh_tables_per_call():
    first = pprof.serialize_time_profile(TimeProfile(time_tree(), 0, 0), 1)
    second = pprof.serialize_time_profile(TimeProfile(time_tree(), 0, 0), 1)
    assert list(first.string_table) == list(second.string_table)
    assert [loc.id for loc in second.location] == [1, 2]


def test_serialize_large_values():
    root = SampleTreeNode(
        children=[SampleTreeNode(name="big", allocations=[Allocation(count=2 ** 20, size_bytes=2 ** 40)])]
    )
    profile = pprof.serialize_heap_profile(HeapProfile(root, 0), 1)
    assert list(profile.sample[0].value) == [2 ** 20, 2 ** 60]


def test_profile_wire_round_trip():
    profile = pprof.serialize_time_profile(TimeProfile(time_tree(), 1000, 5000), 1000)
    data = profile.SerializeToString()
    decoded = pprof_pb2.Profile.FromString(data)
    assert decoded == profile
    assert decoded.SerializeToString() == data
