from cloudprof.profiling import collector
from cloudprof.profiling.collector import Allocation
from cloudprof.profiling.collector import HeapProfile
from cloudprof.profiling.collector import SampleTreeNode
from cloudprof.profiling.collector import TimeProfile


def time_tree():
    """root -> main(3) -> leaf(1)"""
    leaf = SampleTreeNode(name="leaf", script_name="app.py", script_id=1, line_number=20, column_number=4, hit_count=1)
    main = SampleTreeNode(
        name="main", script_name="app.py", script_id=1, line_number=10, column_number=0, hit_count=3, children=[leaf]
    )
    return SampleTreeNode(name="(root)", children=[main])


def heap_tree():
    """root -> alloc(2 x 64 bytes, 1 x 1024 bytes) -> (anonymous)(1 x 8 bytes)"""
    anonymous = SampleTreeNode(
        script_name="lib.py", script_id=2, line_number=5, allocations=[Allocation(count=1, size_bytes=8)]
    )
    alloc = SampleTreeNode(
        name="alloc",
        script_name="app.py",
        script_id=1,
        line_number=30,
        allocations=[Allocation(count=2, size_bytes=64), Allocation(count=1, size_bytes=1024)],
        children=[anonymous],
    )
    return SampleTreeNode(name="(root)", children=[alloc])


class FakeTimeCollector(collector.TimeCollector):
    def __init__(self, root=None):
        self.root = root if root is not None else time_tree()
        self.durations = []

    def collect(self, duration_ms):
        self.durations.append(duration_ms)
        return TimeProfile(root=self.root, start_time_ns=1000, end_time_ns=1000 + int(duration_ms * 1e6))


class FakeHeapCollector(collector.HeapCollector):
    def __init__(self, root=None):
        self.root = root if root is not None else heap_tree()
        self.started = None
        self.stopped = False

    def start(self, interval_bytes, max_stack_depth):
        self.started = (interval_bytes, max_stack_depth)

    def stop(self):
        self.stopped = True

    def collect(self):
        return HeapProfile(root=self.root, start_time_ns=2000)
