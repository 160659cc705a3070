# -*- encoding: utf-8 -*-
import dataclasses
import logging
import typing  # noqa:F401

import humanfriendly
import psutil

from cloudprof.internal import logger
from cloudprof.internal import periodic
from cloudprof.internal import service
from cloudprof.internal.utils.retry import Retryer
from cloudprof.internal.utils.time import StopWatch
from cloudprof.internal.utils.time import format_millis
from cloudprof.internal.utils.time import parse_duration
from cloudprof.profiling import collector
from cloudprof.profiling import exporter
from cloudprof.profiling.exporter import pprof
from cloudprof.profiling.exporter.http import ProfilerAPIClient
from cloudprof.profiling.exporter.http import profile_bytes
from cloudprof.profiling.request import HEAP
from cloudprof.profiling.request import WALL
from cloudprof.profiling.request import Deployment
from cloudprof.profiling.request import RequestProfile
from cloudprof.settings.profiler import ProfilerConfig


LOG = logger.get_logger(__name__)


class Profiler(periodic.PeriodicService):
    """Poll the profiler API for instructions, then collect and upload the requested profiles.

    Each cycle sends a create profile request, which the API holds until a profile is due. Once it answers, the
    requested profile is collected, serialized and uploaded, and the next cycle starts right away. When the create
    request fails, the next cycle is delayed by the backoff requested by the API or, if there is none, by a
    randomized exponential backoff.

    Problems are logged and never raised: profiling must not disturb the profiled process.

    :param config: The profiler configuration.
    :param client: The profiler API client. Built from ``config`` if not given.
    :param time_collector: The sampler of time profiles. Time profiles are not requested if ``None``.
    :param heap_collector: The sampler of heap profiles. Heap profiles are not requested if ``None``.
    :param retryer: The backoff used after a failed create profile request. Built from ``config`` if not given.
    :param max_cycles: Stop after this number of cycles. Never stop if ``None``.
    """

    def __init__(
        self,
        config=None,  # type: typing.Optional[ProfilerConfig]
        client=None,  # type: typing.Optional[ProfilerAPIClient]
        time_collector=None,  # type: typing.Optional[collector.TimeCollector]
        heap_collector=None,  # type: typing.Optional[collector.HeapCollector]
        retryer=None,  # type: typing.Optional[Retryer]
        max_cycles=None,  # type: typing.Optional[int]
    ):
        # type: (...) -> None
        super(Profiler, self).__init__(interval=0)
        self.config = config if config is not None else ProfilerConfig()
        self.client = (
            client
            if client is not None
            else ProfilerAPIClient(self.config.base_api_url, self.config.create_timeout, self.config.api_timeout)
        )
        self.time_collector = time_collector
        self.heap_collector = heap_collector
        self.retryer = (
            retryer
            if retryer is not None
            else Retryer(
                self.config.initial_backoff_millis,
                self.config.backoff_cap_millis,
                self.config.backoff_multiplier,
            )
        )
        self.max_cycles = max_cycles
        self.cycles = 0

        labels = {"language": "python"}
        if self.config.zone:
            labels["zone"] = self.config.zone
        if self.config.version:
            labels["version"] = self.config.version
        self.deployment = Deployment(project_id=self.config.project_id, target=self.config.service, labels=labels)

        self.profile_labels = {}  # type: typing.Dict[str, str]
        if self.config.instance:
            self.profile_labels["instance"] = self.config.instance

        self.profile_types = []  # type: typing.List[str]
        if self.time_enabled:
            self.profile_types.append(WALL)
        if self.heap_enabled:
            self.profile_types.append(HEAP)

    @property
    def time_enabled(self):
        # type: () -> bool
        return not self.config.disable_time and self.time_collector is not None

    @property
    def heap_enabled(self):
        # type: () -> bool
        return not self.config.disable_heap and self.heap_collector is not None

    def start_collectors(self):
        # type: () -> None
        """Start the collectors that sample continuously."""
        if self.heap_enabled:
            self.heap_collector.start(self.config.heap_interval_bytes, self.config.heap_max_stack_depth)

    def stop_collectors(self):
        # type: () -> None
        if self.heap_enabled:
            self.heap_collector.stop()

    def _start_service(self):
        # type: (...) -> None
        LOG.debug("Starting profiler for %r, requesting %s profiles", self.deployment, self.profile_types)
        # Heap sampling starts before the first request so that the allocations made meanwhile are caught
        self.start_collectors()
        super(Profiler, self)._start_service()

    def _stop_service(self):
        # type: (...) -> None
        super(Profiler, self)._stop_service()
        self.stop_collectors()
        LOG.debug("Profiler stopped after %d cycles", self.cycles)

    def periodic(self):
        # type: (...) -> None
        delay_millis = 0.0
        try:
            delay_millis = self.collect_profile()
        finally:
            self.interval = delay_millis / 1000.0
            self.cycles += 1
            if self.max_cycles is not None and self.cycles >= self.max_cycles:
                try:
                    self.stop()
                except service.ServiceStatusError:
                    # Already stopped
                    pass

    def collect_profile(self):
        # type: () -> float
        """Run one create, collect and upload cycle.

        :return: The delay in milliseconds before the next cycle.
        """
        try:
            prof = self.create_profile()
        except exporter.BackoffResponseError as e:
            LOG.debug("Must wait %s to create profile: %s", format_millis(e.backoff_millis), e)
            return min(e.backoff_millis, self.config.server_backoff_cap_millis)
        except Exception as e:
            backoff = self.retryer.get_backoff()
            LOG.warning("Failed to create profile, waiting %s to try again: %s", format_millis(backoff), e)
            return backoff

        self.retryer.reset()
        self.profile_and_upload(prof)
        return 0.0

    def create_profile(self):
        # type: () -> RequestProfile
        """Wait for the profiler API to request a profile.

        :raises ProfilerAPIError: if the request failed, was rejected or returned an invalid profile.
        """
        LOG.debug("Attempting to create profile.")
        prof = self.client.create_profile(self.deployment, self.profile_types)
        LOG.debug("Successfully created profile %s.", prof.profile_type)
        return prof

    def profile_and_upload(self, prof):
        # type: (RequestProfile) -> None
        """Collect the requested profile and upload it.

        Failures are logged and otherwise ignored.
        """
        try:
            prof = self.profile(prof)
        except Exception as e:
            LOG.debug("Failed to collect profile: %s", e)
            return
        LOG.debug("Successfully collected profile %s.", prof.profile_type)
        prof = dataclasses.replace(prof, labels=dict(self.profile_labels))

        try:
            self.client.upload_profile(prof)
        except Exception as e:
            LOG.debug("Failed to upload profile: %s", e)
            return
        LOG.debug("Successfully uploaded profile %s.", prof.profile_type)

    def profile(self, prof):
        # type: (RequestProfile) -> RequestProfile
        """Collect the profile requested by ``prof``.

        :return: A copy of ``prof`` holding the encoded profile.
        :raises ProfileTypeError: if the profile type is unknown or cannot be collected.
        :raises CollectorUnavailable: if no collector was given for the profile type.
        """
        if prof.profile_type == WALL:
            return self.write_time_profile(prof)
        if prof.profile_type == HEAP:
            return self.write_heap_profile(prof)
        raise collector.ProfileTypeError("Unexpected profile type %s." % prof.profile_type)

    def write_time_profile(self, prof):
        # type: (RequestProfile) -> RequestProfile
        if self.config.disable_time:
            raise collector.ProfileTypeError("Cannot collect time profile, time profiler not enabled.")
        if self.time_collector is None:
            raise collector.CollectorUnavailable("Cannot collect time profile, no time collector.")
        if prof.duration is None:
            raise collector.ProfileTypeError("Cannot collect time profile, duration is undefined.")
        duration_millis = parse_duration(prof.duration)
        if not duration_millis:
            raise collector.ProfileTypeError(
                'Cannot collect time profile, duration "%s" cannot be parsed.' % prof.duration
            )

        collected = self.time_collector.collect(duration_millis)
        profile = pprof.serialize_time_profile(collected, self.config.time_interval_micros)
        return dataclasses.replace(prof, profile_bytes=profile_bytes(profile))

    def write_heap_profile(self, prof):
        # type: (RequestProfile) -> RequestProfile
        if self.config.disable_heap:
            raise collector.ProfileTypeError("Cannot collect heap profile, heap profiler not enabled.")
        if self.heap_collector is None:
            raise collector.CollectorUnavailable("Cannot collect heap profile, no heap collector.")

        collected = self.heap_collector.collect()
        profile = pprof.serialize_heap_profile(
            collected, self.config.heap_interval_bytes, self.config.ignore_heap_samples_path
        )
        return dataclasses.replace(prof, profile_bytes=profile_bytes(profile))


class LocalProfiler(periodic.PeriodicService):
    """Collect profiles locally and discard them, for debugging.

    Every period a heap profile is collected, then a time profile half a period later. The collection rates are
    logged at the debug level.
    """

    def __init__(self, profiler):
        # type: (Profiler) -> None
        config = profiler.config
        self._period = config.local_profiling_period_millis / 1000.0
        super(LocalProfiler, self).__init__(interval=self._period)
        self.profiler = profiler
        self._process = psutil.Process()
        self.heap_profile_count = 0
        self.time_profile_count = 0
        self._log_period = config.local_log_period_millis / 1000.0
        self._since_log = StopWatch()

    def _start_service(self):
        # type: (...) -> None
        self.profiler.start_collectors()
        self._since_log.start()
        super(LocalProfiler, self)._start_service()

    def _stop_service(self):
        # type: (...) -> None
        super(LocalProfiler, self)._stop_service()
        self.profiler.stop_collectors()

    def _collect(self, prof):
        # type: (RequestProfile) -> bool
        try:
            self.profiler.profile(prof)
        except Exception as e:
            LOG.debug("Failed to collect profile %s: %s", prof.name, e)
            return False
        return True

    def log_rates(self):
        # type: () -> None
        elapsed = self._since_log.elapsed()
        if elapsed > 0:
            LOG.debug(
                "heap profile collection rate %.3f profiles/s, time profile collection rate %.3f profiles/s, rss %s",
                self.heap_profile_count / elapsed,
                self.time_profile_count / elapsed,
                humanfriendly.format_size(self._process.memory_info().rss),
            )
        self.heap_profile_count = 0
        self.time_profile_count = 0
        self._since_log.start()

    def periodic(self):
        # type: (...) -> None
        with StopWatch() as sw:
            self._collect_profiles()
        # Collections start a fixed period apart
        self.interval = max(0.0, self._period - sw.elapsed())

    def _collect_profiles(self):
        # type: () -> None
        config = self.profiler.config
        if self.profiler.heap_enabled and self._collect(RequestProfile(name="Heap-Profile", profile_type=HEAP)):
            self.heap_profile_count += 1

        if self._worker is not None and self._worker.quit.wait(self._period / 2):
            return

        if self.profiler.time_enabled and self._collect(
            RequestProfile(
                name="Time-Profile",
                profile_type=WALL,
                duration="%.3fms" % config.local_time_duration_millis,
            )
        ):
            self.time_profile_count += 1

        if self._since_log.elapsed() >= self._log_period:
            self.log_rates()


def _build_config(options):
    # type: (typing.Dict[str, typing.Any]) -> typing.Optional[ProfilerConfig]
    try:
        config = ProfilerConfig(overrides=options).validate()
    except ValueError as e:
        LOG.error("Could not start profiler: %s", e)
        return None
    logger.configure(config.log_level)
    return config


def start(
    time_collector=None,  # type: typing.Optional[collector.TimeCollector]
    heap_collector=None,  # type: typing.Optional[collector.HeapCollector]
    client=None,  # type: typing.Optional[ProfilerAPIClient]
    **options  # type: typing.Any
):
    # type: (...) -> typing.Optional[Profiler]
    """Start profiling in the background.

    ``options`` override the configuration read from the environment, e.g. ``start(service="api")``.

    :return: The running profiler, or ``None`` if the configuration is invalid.
    """
    config = _build_config(options)
    if config is None:
        return None
    profiler = Profiler(config, client=client, time_collector=time_collector, heap_collector=heap_collector)
    profiler.start()
    return profiler


def start_local(
    time_collector=None,  # type: typing.Optional[collector.TimeCollector]
    heap_collector=None,  # type: typing.Optional[collector.HeapCollector]
    **options  # type: typing.Any
):
    # type: (...) -> typing.Optional[LocalProfiler]
    """Start collecting and discarding profiles locally, for debugging.

    :return: The running local profiler, or ``None`` if the configuration is invalid.
    """
    config = _build_config(options)
    if config is None:
        return None
    if LOG.getEffectiveLevel() > logging.DEBUG:
        LOG.warning("Local profiling only reports at the debug level (log_level=4)")
    local = LocalProfiler(Profiler(config, time_collector=time_collector, heap_collector=heap_collector))
    local.start()
    return local
