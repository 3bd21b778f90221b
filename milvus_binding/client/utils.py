from typing import Any, List

import ujson

from milvus_binding.exceptions import ExceptionsMessage, MilvusException, ServiceError
from pymilvus.grpc_gen import schema_pb2
from pymilvus.grpc_gen.common_pb2 import Status

from .types import DataType


def check_status(status: Status):
    """Raise ServiceError unless the envelope status reports success.

    Newer servers fill ``code``; older ones only the legacy ``error_code``.
    """
    if not is_successful(status):
        raise ServiceError(status.code or status.error_code, status.reason)


def is_successful(status: Status):
    return status.code == 0 and status.error_code == 0


def dumps(v: Any):
    if isinstance(v, dict):
        return ujson.dumps(v)
    return str(v)


def len_of(field_data: schema_pb2.FieldData) -> int:
    if field_data.HasField("scalars"):
        scalars = field_data.scalars
        for name in ("bool_data", "int_data", "long_data", "float_data", "double_data"):
            if scalars.HasField(name):
                return len(getattr(scalars, name).data)
        if scalars.HasField("string_data"):
            return len(scalars.string_data.data)
        if scalars.HasField("json_data"):
            return len(scalars.json_data.data)
        if scalars.HasField("array_data"):
            return len(scalars.array_data.data)
        return 0

    if field_data.HasField("vectors"):
        vectors = field_data.vectors
        dim = vectors.dim
        if field_data.type == DataType.FLOAT_VECTOR:
            return len(vectors.float_vector.data) // dim if dim else 0
        if field_data.type == DataType.BINARY_VECTOR:
            return len(vectors.binary_vector) * 8 // dim if dim else 0
        if field_data.type == DataType.FLOAT16_VECTOR:
            return len(vectors.float16_vector) // 2 // dim if dim else 0
        if field_data.type == DataType.BFLOAT16_VECTOR:
            return len(vectors.bfloat16_vector) // 2 // dim if dim else 0
        if field_data.type == DataType.SPARSE_FLOAT_VECTOR:
            return len(vectors.sparse_float_vector.contents)

    raise MilvusException(message="Unknown data type")


def check_fields_length(fields_data: List[schema_pb2.FieldData]) -> int:
    """Return the shared row count of columnar results, raising if columns disagree."""
    it = iter(fields_data)
    first = next(it, None)
    if first is None:
        return 0
    num_entities = len_of(first)
    if not all(len_of(field_data) == num_entities for field_data in it):
        raise MilvusException(message=ExceptionsMessage.InconsistentFieldLength)
    return num_entities
