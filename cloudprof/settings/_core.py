from collections import ChainMap
from enum import Enum
import json
import os
from typing import Any  # noqa:F401
from typing import Dict  # noqa:F401
from typing import Mapping  # noqa:F401
from typing import Optional  # noqa:F401

from envier import Env


class ConfigError(ValueError):
    pass


class ValueSource(str, Enum):
    CODE = "code"
    ENV_VAR = "env_var"
    CONFIG_FILE = "config_file"
    DEFAULT = "default"
    UNKNOWN = "unknown"


def _stringify(value):
    # type: (Any) -> str
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set)):
        return ",".join(str(v) for v in value)
    return str(value)


def read_config_file(path):
    # type: (str) -> Dict[str, Any]
    """Read a JSON object of configuration values from ``path``."""
    try:
        with open(path, "r") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError("Could not read config file %s: %s" % (path, e))
    try:
        data = json.loads(content)
    except ValueError as e:
        raise ConfigError("Could not parse config file %s: %s" % (path, e))
    if not isinstance(data, dict):
        raise ConfigError("Could not parse config file %s: expected a JSON object" % path)
    return data


class ConfigBase(Env):
    """Provides support for loading configurations from multiple sources.

    Values are looked up, in order of precedence, in the overrides given in code, in the environment and in the
    JSON config file named by ``__config_file_env__``. Overrides and config file entries are keyed by attribute name
    (e.g. ``initial_backoff_millis``) rather than by environment variable name.
    """

    __config_file_env__ = None  # type: Optional[str]

    def __init__(
        self,
        overrides=None,  # type: Optional[Mapping[str, Any]]
        env=None,  # type: Optional[Mapping[str, str]]
    ):
        # type: (...) -> None
        self.env_source = os.environ if env is None else env
        self.code_source = self._to_source(overrides or {})

        config_file = self.env_source.get(self.__config_file_env__) if self.__config_file_env__ else None
        self.file_source = self._to_source(read_config_file(config_file)) if config_file else {}

        # Order of precedence: code > environment variables > config file
        super().__init__(source=ChainMap(self.code_source, self.env_source, self.file_source))

        self._value_source = {}  # type: Dict[str, ValueSource]
        for name, e in type(self).items(recursive=True):
            env_name = e.full_name
            if env_name in self.code_source:
                value_source = ValueSource.CODE
            elif env_name in self.env_source:
                value_source = ValueSource.ENV_VAR
            elif env_name in self.file_source:
                value_source = ValueSource.CONFIG_FILE
            else:
                value_source = ValueSource.DEFAULT
            self._value_source[env_name] = value_source

    @classmethod
    def _to_source(cls, values):
        # type: (Mapping[str, Any]) -> Dict[str, str]
        names = {name.lstrip("_"): e.full_name for name, e in cls.items(recursive=True)}
        source = {}
        for key, value in values.items():
            if value is None:
                continue
            try:
                source[names[key]] = _stringify(value)
            except KeyError:
                raise ConfigError("Unknown configuration option '%s'" % key)
        return source

    def value_source(self, env_name):
        # type: (str) -> ValueSource
        return self._value_source.get(env_name, ValueSource.UNKNOWN)
