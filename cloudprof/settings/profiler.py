import re
import typing as t

from envier import Env

from cloudprof.settings._core import ConfigBase
from cloudprof.settings._core import ConfigError


SERVICE_RE = re.compile(r"^[a-z]([-a-z0-9_.]{0,253}[a-z0-9])?$")

DEFAULT_BASE_API_URL = "https://cloudprofiler.googleapis.com/v2"

# Largest delay accepted by the scheduler without it firing immediately on every platform.
MAX_SERVER_BACKOFF_MILLIS = 2147483647


def _validate_positive(value: t.Union[int, float]) -> None:
    if value <= 0:
        raise ValueError("value must be positive")


def _validate_non_negative(value: t.Union[int, float]) -> None:
    if value < 0:
        raise ValueError("value must be non negative")


def _validate_multiplier(value: float) -> None:
    if value < 1:
        raise ValueError("backoff multiplier must be greater or equal to 1")


class PlatformEnv(Env):
    """Deployment information exposed by the hosting platform (App Engine, Cloud Run, ...)."""

    project = Env.v(t.Optional[str], "gcloud_project", default=None)

    _gae_service = Env.v(t.Optional[str], "gae_service", default=None)
    _k_service = Env.v(t.Optional[str], "k_service", default=None)
    _gae_version = Env.v(t.Optional[str], "gae_version", default=None)
    _k_revision = Env.v(t.Optional[str], "k_revision", default=None)

    service = Env.d(t.Optional[str], lambda e: e._gae_service or e._k_service)
    version = Env.d(t.Optional[str], lambda e: e._gae_version or e._k_revision)


def _platform(config: "ProfilerConfig") -> PlatformEnv:
    return PlatformEnv(source=config.source)


class ProfilerConfig(ConfigBase):
    __prefix__ = "gcloud_profiler"
    __config_file_env__ = "GCLOUD_PROFILER_CONFIG"

    log_level = Env.v(
        int,
        "loglevel",
        default=2,
        help_type="Integer",
        help="Log level: 0 disabled, 1 error, 2 warning, 3 info, 4 debug",
    )

    _project_id = Env.v(
        t.Optional[str],
        "project_id",
        default=None,
        help_type="String",
        help="The project to report profiles to. Defaults to ``GCLOUD_PROJECT``",
    )
    project_id = Env.d(t.Optional[str], lambda c: c._project_id or _platform(c).project)

    _service = Env.v(
        t.Optional[str],
        "service",
        default=None,
        help_type="String",
        help="Name of the profiled service. Should be the same across the replicas of the service so that a globally "
        "constant profiling rate is maintained. Defaults to ``GAE_SERVICE`` or ``K_SERVICE``",
    )
    service = Env.d(t.Optional[str], lambda c: c._service or _platform(c).service)

    _version = Env.v(
        t.Optional[str],
        "version",
        default=None,
        help_type="String",
        help="Version of the profiled service. Defaults to ``GAE_VERSION`` or ``K_REVISION``",
    )
    version = Env.d(str, lambda c: c._version or _platform(c).version or "")

    zone = Env.v(
        str,
        "zone",
        default="",
        help_type="String",
        help="Zone to associate profiles with",
    )

    instance = Env.v(
        str,
        "instance",
        default="",
        help_type="String",
        help="Virtual machine instance to associate profiles with",
    )

    disable_time = Env.v(
        bool,
        "disable_time",
        default=False,
        help_type="Boolean",
        help="Whether to disable time (wall) profiling",
    )

    disable_heap = Env.v(
        bool,
        "disable_heap",
        default=False,
        help_type="Boolean",
        help="Whether to disable heap profiling",
    )

    time_interval_micros = Env.v(
        int,
        "time_interval_micros",
        default=1000,
        validator=_validate_positive,
        help_type="Integer",
        help="Average time in microseconds between two time profile samples",
    )

    heap_interval_bytes = Env.v(
        int,
        "heap_interval_bytes",
        default=512 * 1024,
        validator=_validate_positive,
        help_type="Integer",
        help="Average number of bytes allocated between two heap profile samples",
    )

    heap_max_stack_depth = Env.v(
        int,
        "heap_max_stack_depth",
        default=64,
        validator=_validate_positive,
        help_type="Integer",
        help="Maximum stack depth recorded for heap samples",
    )

    ignore_heap_samples_path = Env.v(
        str,
        "ignore_heap_samples_path",
        default="cloudprof",
        help_type="String",
        help="Heap samples whose script name contains this string are dropped along with their callees",
    )

    initial_backoff_millis = Env.v(
        float,
        "initial_backoff_millis",
        default=60 * 1000.0,
        validator=_validate_non_negative,
        help_type="Float",
        help="Initial envelope of the randomized delay before retrying a failed create profile request",
    )

    backoff_cap_millis = Env.v(
        float,
        "backoff_cap_millis",
        default=60 * 60 * 1000.0,
        validator=_validate_non_negative,
        help_type="Float",
        help="Maximum envelope of the randomized delay before retrying a failed create profile request",
    )

    backoff_multiplier = Env.v(
        float,
        "backoff_multiplier",
        default=1.3,
        validator=_validate_multiplier,
        help_type="Float",
        help="Growth factor of the retry envelope after each failed create profile request",
    )

    server_backoff_cap_millis = Env.v(
        float,
        "server_backoff_cap_millis",
        default=float(MAX_SERVER_BACKOFF_MILLIS),
        validator=_validate_non_negative,
        help_type="Float",
        help="Upper bound of a backoff requested by the profiler API",
    )

    base_api_url = Env.v(
        str,
        "base_api_url",
        default=DEFAULT_BASE_API_URL,
        help_type="String",
        help="Base URL of the profiler API",
    )

    create_timeout = Env.v(
        float,
        "create_timeout",
        default=60 * 60.0,
        validator=_validate_positive,
        help_type="Float",
        help="Timeout in seconds of a create profile request. The API holds this request until a profile is due, "
        "for up to an hour",
    )

    api_timeout = Env.v(
        float,
        "api_timeout",
        default=60.0,
        validator=_validate_positive,
        help_type="Float",
        help="Timeout in seconds of a profile upload request",
    )

    local_profiling_period_millis = Env.v(
        float,
        "local_profiling_period_millis",
        default=1000.0,
        validator=_validate_positive,
        help_type="Float",
        help="Period between two local profile collections",
    )

    local_log_period_millis = Env.v(
        float,
        "local_log_period_millis",
        default=10 * 1000.0,
        validator=_validate_positive,
        help_type="Float",
        help="Period between two logs of the local collection rates",
    )

    local_time_duration_millis = Env.v(
        float,
        "local_time_duration_millis",
        default=1000.0,
        validator=_validate_positive,
        help_type="Float",
        help="Duration of the time profiles collected locally",
    )

    def validate(self):
        # type: () -> ProfilerConfig
        """Check the values that have no usable default.

        :raises ConfigError: if the service name is missing or invalid.
        """
        if not isinstance(self.service, str):
            raise ConfigError("Service must be specified in the configuration")
        if not SERVICE_RE.match(self.service):
            raise ConfigError(
                'Service %s does not match regular expression "%s"' % (self.service, SERVICE_RE.pattern)
            )
        return self
