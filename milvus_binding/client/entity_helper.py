from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from milvus_binding.exceptions import DataNotMatchException, ExceptionsMessage, ParamError
from pymilvus.grpc_gen import schema_pb2 as schema_types

from . import blob, utils
from .constants import DYNAMIC_FIELD_NAME
from .json_codec import decode_json, encode_json
from .types import DataType

_SCALAR_CHECKS = {
    DataType.BOOL: ((bool, np.bool_), "bool"),
    DataType.INT8: ((int, np.integer), "int"),
    DataType.INT16: ((int, np.integer), "int"),
    DataType.INT32: ((int, np.integer), "int"),
    DataType.INT64: ((int, np.integer), "int"),
    DataType.FLOAT: ((float, int, np.floating, np.integer), "float"),
    DataType.DOUBLE: ((float, int, np.floating, np.integer), "double"),
    DataType.VARCHAR: ((str,), "str"),
    DataType.STRING: ((str,), "str"),
}

_SCALAR_COLUMNS = {
    DataType.BOOL: "bool_data",
    DataType.INT8: "int_data",
    DataType.INT16: "int_data",
    DataType.INT32: "int_data",
    DataType.INT64: "long_data",
    DataType.FLOAT: "float_data",
    DataType.DOUBLE: "double_data",
    DataType.VARCHAR: "string_data",
    DataType.STRING: "string_data",
}


def _check_scalar(field_name: str, dtype: DataType, values: Iterable[Any]):
    accepted, expected = _SCALAR_CHECKS[dtype]
    for v in values:
        # bool is an int subclass, keep it out of numeric columns
        if not isinstance(v, accepted) or (dtype != DataType.BOOL and isinstance(v, bool)):
            raise DataNotMatchException(
                message=ExceptionsMessage.FieldDataInconsistent % (field_name, expected, type(v))
            )


def _pack_scalars(
    field_name: str, dtype: DataType, values: Sequence[Any], scalars: schema_types.ScalarField
):
    _check_scalar(field_name, dtype, values)
    column = getattr(scalars, _SCALAR_COLUMNS[dtype])
    if dtype in (DataType.FLOAT, DataType.DOUBLE):
        column.data.extend(float(v) for v in values)
    elif dtype in (DataType.VARCHAR, DataType.STRING, DataType.BOOL):
        column.data.extend(values)
    else:
        column.data.extend(int(v) for v in values)


def _check_dim(field_name: str, dtype: DataType, vector: Any, dim: int):
    if len(vector) != dim:
        raise DataNotMatchException(
            message=f"The dim of {dtype.name} field {field_name!r} must be {dim}, got {len(vector)}"
        )


def _pack_vectors(
    field_name: str,
    dtype: DataType,
    values: Sequence[Any],
    dim: Optional[int],
    vectors: schema_types.VectorField,
):
    if dtype == DataType.SPARSE_FLOAT_VECTOR:
        vectors.sparse_float_vector.dim = blob.sparse_dim(values)
        vectors.sparse_float_vector.contents.extend(blob.sparse_row_to_bytes(v) for v in values)
        vectors.dim = vectors.sparse_float_vector.dim
        return

    if dim is None:
        dim = _infer_dim(dtype, values)
    vectors.dim = dim

    if dtype == DataType.FLOAT_VECTOR:
        for v in values:
            if isinstance(v, (str, bytes)):
                raise DataNotMatchException(
                    message=ExceptionsMessage.FieldDataInconsistent
                    % (field_name, "float vector", type(v))
                )
            _check_dim(field_name, dtype, v, dim)
            vectors.float_vector.data.extend(float(x) for x in v)
    elif dtype == DataType.BINARY_VECTOR:
        for v in values:
            if not isinstance(v, bytes):
                raise DataNotMatchException(
                    message=ExceptionsMessage.FieldDataInconsistent
                    % (field_name, "bytes", type(v))
                )
        vectors.binary_vector = b"".join(values)
        if len(vectors.binary_vector) != len(values) * dim // 8:
            raise DataNotMatchException(
                message=f"The dim of binary vector field {field_name!r} must be {dim}"
            )
    elif dtype == DataType.FLOAT16_VECTOR:
        packed = [blob.vector_float16_to_bytes(v) for v in values]
        vectors.float16_vector = b"".join(packed)
        if len(vectors.float16_vector) != len(values) * dim * 2:
            raise DataNotMatchException(
                message=f"The dim of float16 vector field {field_name!r} must be {dim}"
            )
    elif dtype == DataType.BFLOAT16_VECTOR:
        packed = [blob.vector_bfloat16_to_bytes(v) for v in values]
        vectors.bfloat16_vector = b"".join(packed)
        if len(vectors.bfloat16_vector) != len(values) * dim * 2:
            raise DataNotMatchException(
                message=f"The dim of bfloat16 vector field {field_name!r} must be {dim}"
            )


def _infer_dim(dtype: DataType, values: Sequence[Any]) -> int:
    if not values:
        return 0
    first = values[0]
    if dtype == DataType.BINARY_VECTOR:
        return len(first) * 8
    if isinstance(first, bytes):
        return len(first) // 2
    return len(first)


def entity_to_field_data(
    field_name: str,
    dtype: DataType,
    values: Sequence[Any],
    dim: Optional[int] = None,
    element_type: Optional[DataType] = None,
    is_dynamic: bool = False,
) -> schema_types.FieldData:
    """Pack one column of values into a wire ``FieldData``."""
    field_data = schema_types.FieldData(type=dtype, field_name=field_name, is_dynamic=is_dynamic)
    values = list(values)

    if dtype in _SCALAR_COLUMNS:
        _pack_scalars(field_name, dtype, values, field_data.scalars)
    elif dtype == DataType.JSON:
        field_data.scalars.json_data.data.extend(encode_json(v) for v in values)
    elif dtype == DataType.ARRAY:
        if element_type not in _SCALAR_COLUMNS:
            raise ParamError(message=f"Unsupported element type of array field {field_name!r}")
        field_data.scalars.array_data.element_type = element_type
        for v in values:
            if not isinstance(v, (list, tuple, np.ndarray)):
                raise DataNotMatchException(
                    message=ExceptionsMessage.FieldDataInconsistent % (field_name, "list", type(v))
                )
            element = schema_types.ScalarField()
            _pack_scalars(field_name, element_type, list(v), element)
            field_data.scalars.array_data.data.append(element)
    elif dtype.is_vector:
        _pack_vectors(field_name, dtype, values, dim, field_data.vectors)
    else:
        raise ParamError(message=f"Unsupported data type: {dtype}")
    return field_data


def _scalar_values(scalars: schema_types.ScalarField, dtype: DataType) -> List[Any]:
    return list(getattr(scalars, _SCALAR_COLUMNS[dtype]).data)


def _chunks(data: Any, size: int) -> List[Any]:
    if size <= 0:
        return []
    return [data[i : i + size] for i in range(0, len(data), size)]


def field_data_to_values(field_data: schema_types.FieldData) -> List[Any]:
    """Decode a wire column into one Python value per row."""
    dtype = DataType(field_data.type)
    if dtype in _SCALAR_COLUMNS:
        values = _scalar_values(field_data.scalars, dtype)
    elif dtype == DataType.JSON:
        values = [decode_json(raw) if raw else None for raw in field_data.scalars.json_data.data]
    elif dtype == DataType.ARRAY:
        element_type = DataType(field_data.scalars.array_data.element_type)
        values = [_scalar_values(e, element_type) for e in field_data.scalars.array_data.data]
    elif dtype == DataType.FLOAT_VECTOR:
        values = _chunks(list(field_data.vectors.float_vector.data), field_data.vectors.dim)
    elif dtype == DataType.BINARY_VECTOR:
        values = _chunks(field_data.vectors.binary_vector, field_data.vectors.dim // 8)
    elif dtype == DataType.FLOAT16_VECTOR:
        values = _chunks(field_data.vectors.float16_vector, field_data.vectors.dim * 2)
    elif dtype == DataType.BFLOAT16_VECTOR:
        values = _chunks(field_data.vectors.bfloat16_vector, field_data.vectors.dim * 2)
    elif dtype == DataType.SPARSE_FLOAT_VECTOR:
        values = [
            blob.sparse_bytes_to_row(raw) for raw in field_data.vectors.sparse_float_vector.contents
        ]
    else:
        raise ParamError(message=f"Unsupported data type: {dtype}")

    if field_data.valid_data:
        values = [v if valid else None for v, valid in zip(values, field_data.valid_data)]
    return values


def _is_dynamic_column(field_data: schema_types.FieldData) -> bool:
    return field_data.is_dynamic or field_data.field_name == DYNAMIC_FIELD_NAME


def fields_data_to_rows(
    fields_data: Sequence[schema_types.FieldData],
    output_fields: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """Turn columnar result data into row dicts, keeping only requested fields.

    Keys of the dynamic ``$meta`` column are flattened into the row. Declared
    columns take precedence over dynamic keys of the same name. ``"*"`` or an
    empty ``output_fields`` keeps everything.
    """
    num_rows = utils.check_fields_length(fields_data)
    wanted = None if not output_fields or "*" in output_fields else set(output_fields)
    rows = [{} for _ in range(num_rows)]

    for field_data in fields_data:
        values = field_data_to_values(field_data)
        if _is_dynamic_column(field_data):
            for row, extra in zip(rows, values):
                if not isinstance(extra, dict):
                    continue
                for key, value in extra.items():
                    if wanted is None or key in wanted:
                        row.setdefault(key, value)
            continue
        if wanted is not None and field_data.field_name not in wanted:
            continue
        for row, value in zip(rows, values):
            row[field_data.field_name] = value
    return rows
