# -*- encoding: utf-8 -*-
"""Message classes of the pprof profile format.

The classes are built at import time from a descriptor of ``perftools/profiles/profile.proto``
(https://github.com/google/pprof/blob/main/proto/profile.proto), registered in a private descriptor pool so they
never clash with another copy of the same proto loaded by the profiled application.
"""
from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf import message_factory


_PACKAGE = "perftools.profiles"

_F = descriptor_pb2.FieldDescriptorProto

_OPTIONAL = _F.LABEL_OPTIONAL
_REPEATED = _F.LABEL_REPEATED

_INT64 = _F.TYPE_INT64
_UINT64 = _F.TYPE_UINT64
_BOOL = _F.TYPE_BOOL
_STRING = _F.TYPE_STRING
_MESSAGE = _F.TYPE_MESSAGE

# message name -> [(field name, number, label, type, message type name)]
_MESSAGES = {
    "Profile": [
        ("sample_type", 1, _REPEATED, _MESSAGE, "ValueType"),
        ("sample", 2, _REPEATED, _MESSAGE, "Sample"),
        ("mapping", 3, _REPEATED, _MESSAGE, "Mapping"),
        ("location", 4, _REPEATED, _MESSAGE, "Location"),
        ("function", 5, _REPEATED, _MESSAGE, "Function"),
        ("string_table", 6, _REPEATED, _STRING, None),
        ("drop_frames", 7, _OPTIONAL, _INT64, None),
        ("keep_frames", 8, _OPTIONAL, _INT64, None),
        ("time_nanos", 9, _OPTIONAL, _INT64, None),
        ("duration_nanos", 10, _OPTIONAL, _INT64, None),
        ("period_type", 11, _OPTIONAL, _MESSAGE, "ValueType"),
        ("period", 12, _OPTIONAL, _INT64, None),
        ("comment", 13, _REPEATED, _INT64, None),
        ("default_sample_type", 14, _OPTIONAL, _INT64, None),
    ],
    "ValueType": [
        ("type", 1, _OPTIONAL, _INT64, None),
        ("unit", 2, _OPTIONAL, _INT64, None),
    ],
    "Sample": [
        ("location_id", 1, _REPEATED, _UINT64, None),
        ("value", 2, _REPEATED, _INT64, None),
        ("label", 3, _REPEATED, _MESSAGE, "Label"),
    ],
    "Label": [
        ("key", 1, _OPTIONAL, _INT64, None),
        ("str", 2, _OPTIONAL, _INT64, None),
        ("num", 3, _OPTIONAL, _INT64, None),
        ("num_unit", 4, _OPTIONAL, _INT64, None),
    ],
    "Mapping": [
        ("id", 1, _OPTIONAL, _UINT64, None),
        ("memory_start", 2, _OPTIONAL, _UINT64, None),
        ("memory_limit", 3, _OPTIONAL, _UINT64, None),
        ("file_offset", 4, _OPTIONAL, _UINT64, None),
        ("filename", 5, _OPTIONAL, _INT64, None),
        ("build_id", 6, _OPTIONAL, _INT64, None),
        ("has_functions", 7, _OPTIONAL, _BOOL, None),
        ("has_filenames", 8, _OPTIONAL, _BOOL, None),
        ("has_line_numbers", 9, _OPTIONAL, _BOOL, None),
        ("has_inline_frames", 10, _OPTIONAL, _BOOL, None),
    ],
    "Location": [
        ("id", 1, _OPTIONAL, _UINT64, None),
        ("mapping_id", 2, _OPTIONAL, _UINT64, None),
        ("address", 3, _OPTIONAL, _UINT64, None),
        ("line", 4, _REPEATED, _MESSAGE, "Line"),
        ("is_folded", 5, _OPTIONAL, _BOOL, None),
    ],
    "Line": [
        ("function_id", 1, _OPTIONAL, _UINT64, None),
        ("line", 2, _OPTIONAL, _INT64, None),
    ],
    "Function": [
        ("id", 1, _OPTIONAL, _UINT64, None),
        ("name", 2, _OPTIONAL, _INT64, None),
        ("system_name", 3, _OPTIONAL, _INT64, None),
        ("filename", 4, _OPTIONAL, _INT64, None),
        ("start_line", 5, _OPTIONAL, _INT64, None),
    ],
}


def _file_descriptor_proto():
    # type: () -> descriptor_pb2.FileDescriptorProto
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="perftools/profiles/profile.proto",
        package=_PACKAGE,
        syntax="proto3",
    )
    for message_name, fields in _MESSAGES.items():
        message_proto = file_proto.message_type.add(name=message_name)
        for field_name, number, label, field_type, type_name in fields:
            field_proto = message_proto.field.add(name=field_name, number=number, label=label, type=field_type)
            if type_name is not None:
                field_proto.type_name = ".%s.%s" % (_PACKAGE, type_name)
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_descriptor_proto().SerializeToString())


def _message_class(name):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName("%s.%s" % (_PACKAGE, name)))


Profile = _message_class("Profile")
ValueType = _message_class("ValueType")
Sample = _message_class("Sample")
Label = _message_class("Label")
Mapping = _message_class("Mapping")
Location = _message_class("Location")
Line = _message_class("Line")
Function = _message_class("Function")
