# -*- encoding: utf-8 -*-
"""Records exchanged with the profiler API.

The API speaks JSON with camel case keys; the records are converted to and from it with
:meth:`RequestProfile.from_json` and :meth:`RequestProfile.to_json`. Parsing checks the shape of the data and raises
:class:`cloudprof.profiling.exporter.InvalidProfileError` on mismatch.
"""
import dataclasses
import json
import typing

from cloudprof.profiling.exporter import InvalidProfileError


WALL = "WALL"
HEAP = "HEAP"


def _is_optional_str(data, key):
    # type: (typing.Dict[str, typing.Any], str) -> bool
    # A missing key is allowed, a null value is not
    return key not in data or isinstance(data[key], str)


def _drop_none(data):
    # type: (typing.Dict[str, typing.Any]) -> typing.Dict[str, typing.Any]
    return {k: v for k, v in data.items() if v is not None}


@dataclasses.dataclass
class Deployment:
    """The group of replicas that share a profiling rate."""

    project_id: typing.Optional[str] = None
    target: typing.Optional[str] = None
    labels: typing.Dict[str, str] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_json(cls, data):
        # type: (typing.Any) -> Deployment
        if not isinstance(data, dict):
            raise InvalidProfileError("Deployment not valid: %s." % json.dumps(data))
        labels = data.get("labels")
        if (
            not _is_optional_str(data, "projectId")
            or not _is_optional_str(data, "target")
            or not isinstance(labels, dict)
            or not isinstance(labels.get("language"), str)
        ):
            raise InvalidProfileError("Deployment not valid: %s." % json.dumps(data))
        return cls(project_id=data.get("projectId"), target=data.get("target"), labels=dict(labels))

    def to_json(self):
        # type: () -> typing.Dict[str, typing.Any]
        return _drop_none({"projectId": self.project_id, "target": self.target, "labels": self.labels})


@dataclasses.dataclass
class RequestProfile:
    """A profile requested by the profiler API, and then uploaded to it once collected."""

    name: str
    profile_type: str
    duration: typing.Optional[str] = None
    profile_bytes: typing.Optional[str] = None
    deployment: typing.Optional[Deployment] = None
    labels: typing.Optional[typing.Dict[str, str]] = None

    @classmethod
    def from_json(cls, data):
        # type: (typing.Any) -> RequestProfile
        """Build a profile from the body of a create profile response.

        :raises InvalidProfileError: if the body is not a valid profile.
        """
        try:
            return cls._from_json(data)
        except InvalidProfileError as e:
            raise InvalidProfileError("Profile not valid: %s." % json.dumps(data), e.status)

    @classmethod
    def _from_json(cls, data):
        # type: (typing.Any) -> RequestProfile
        if not isinstance(data, dict):
            raise InvalidProfileError("not an object")
        labels = data.get("labels")
        if (
            not isinstance(data.get("name"), str)
            or not isinstance(data.get("profileType"), str)
            or not _is_optional_str(data, "duration")
            or not ("labels" not in data or (isinstance(labels, dict) and _is_optional_str(labels, "instance")))
        ):
            raise InvalidProfileError("unexpected fields")
        deployment = data.get("deployment")
        return cls(
            name=data["name"],
            profile_type=data["profileType"],
            duration=data.get("duration"),
            profile_bytes=data.get("profileBytes"),
            deployment=Deployment.from_json(deployment) if "deployment" in data else None,
            labels=dict(labels) if "labels" in data else None,
        )

    def to_json(self):
        # type: () -> typing.Dict[str, typing.Any]
        return _drop_none(
            {
                "name": self.name,
                "profileType": self.profile_type,
                "duration": self.duration,
                "profileBytes": self.profile_bytes,
                "deployment": self.deployment.to_json() if self.deployment is not None else None,
                "labels": self.labels,
            }
        )
