import numpy as np
import pytest
from milvus_binding.client.entity_helper import (
    entity_to_field_data,
    field_data_to_values,
    fields_data_to_rows,
)
from milvus_binding.client.types import DataType
from milvus_binding.exceptions import DataNotMatchException, MilvusException, ParamError
from pymilvus.grpc_gen import schema_pb2


class TestEntityToFieldData:
    @pytest.mark.parametrize(
        "dtype, values, column",
        [
            (DataType.BOOL, [True, False], "bool_data"),
            (DataType.INT8, [1, -1], "int_data"),
            (DataType.INT32, [np.int32(3), 4], "int_data"),
            (DataType.INT64, [1, 2**40], "long_data"),
            (DataType.DOUBLE, [1, 2.5], "double_data"),
            (DataType.VARCHAR, ["a", "b"], "string_data"),
        ],
    )
    def test_scalars(self, dtype, values, column):
        field_data = entity_to_field_data("f", dtype, values)
        assert field_data.type == dtype
        assert field_data.field_name == "f"
        assert list(getattr(field_data.scalars, column).data) == [
            v.item() if isinstance(v, np.generic) else v for v in values
        ]

    @pytest.mark.parametrize(
        "dtype, values",
        [
            (DataType.INT64, [True]),
            (DataType.INT64, [1.5]),
            (DataType.BOOL, [1]),
            (DataType.FLOAT, ["1.0"]),
            (DataType.VARCHAR, [1]),
        ],
    )
    def test_scalar_type_mismatch(self, dtype, values):
        with pytest.raises(DataNotMatchException):
            entity_to_field_data("f", dtype, values)

    def test_json(self):
        field_data = entity_to_field_data("doc", DataType.JSON, [{"a": [1, None]}, "s", 3])
        assert list(field_data.scalars.json_data.data) == [b'{"a":[1,null]}', b'"s"', b"3"]
        assert field_data_to_values(field_data) == [{"a": [1, None]}, "s", 3]

    def test_array(self):
        field_data = entity_to_field_data(
            "tags", DataType.ARRAY, [[1, 2], (3,)], element_type=DataType.INT64
        )
        assert field_data.scalars.array_data.element_type == DataType.INT64
        assert field_data_to_values(field_data) == [[1, 2], [3]]

    def test_array_of_strings(self):
        field_data = entity_to_field_data(
            "tags", DataType.ARRAY, [["x"], []], element_type=DataType.VARCHAR
        )
        assert field_data_to_values(field_data) == [["x"], []]

    def test_array_element_must_be_scalar(self):
        with pytest.raises(ParamError):
            entity_to_field_data("tags", DataType.ARRAY, [[{}]], element_type=DataType.JSON)

    def test_array_value_must_be_list(self):
        with pytest.raises(DataNotMatchException):
            entity_to_field_data("tags", DataType.ARRAY, [1], element_type=DataType.INT64)

    def test_float_vector(self):
        field_data = entity_to_field_data(
            "v", DataType.FLOAT_VECTOR, [[1, 2], np.array([3.0, 4.0])], dim=2
        )
        assert field_data.vectors.dim == 2
        assert field_data_to_values(field_data) == [[1.0, 2.0], [3.0, 4.0]]

    def test_float_vector_dim_inferred(self):
        field_data = entity_to_field_data("v", DataType.FLOAT_VECTOR, [[1.0, 2.0, 3.0]])
        assert field_data.vectors.dim == 3

    @pytest.mark.parametrize("values", [[[1.0]], [[1.0, 2.0], [1.0]], ["ab"]])
    def test_float_vector_mismatch(self, values):
        with pytest.raises(DataNotMatchException):
            entity_to_field_data("v", DataType.FLOAT_VECTOR, values, dim=2)

    def test_binary_vector(self):
        field_data = entity_to_field_data(
            "v", DataType.BINARY_VECTOR, [b"\x01\x02", b"\x03\x04"], dim=16
        )
        assert field_data.vectors.binary_vector == b"\x01\x02\x03\x04"
        assert field_data_to_values(field_data) == [b"\x01\x02", b"\x03\x04"]

    @pytest.mark.parametrize("values", [[b"\x01"], [[0, 1]]])
    def test_binary_vector_mismatch(self, values):
        with pytest.raises(DataNotMatchException):
            entity_to_field_data("v", DataType.BINARY_VECTOR, values, dim=16)

    def test_float16_vector(self):
        field_data = entity_to_field_data("v", DataType.FLOAT16_VECTOR, [[1.0, 2.0]], dim=2)
        expected = np.array([1.0, 2.0], dtype="<f2").tobytes()
        assert field_data.vectors.float16_vector == expected
        assert field_data_to_values(field_data) == [expected]

    def test_float16_vector_wrong_dim(self):
        with pytest.raises(DataNotMatchException):
            entity_to_field_data("v", DataType.FLOAT16_VECTOR, [[1.0, 2.0, 3.0]], dim=2)

    def test_bfloat16_vector_truncates_float32(self):
        field_data = entity_to_field_data("v", DataType.BFLOAT16_VECTOR, [[1.0, -2.0]], dim=2)
        assert field_data.vectors.bfloat16_vector == b"\x80\x3f\x00\xc0"

    def test_sparse_vector(self):
        field_data = entity_to_field_data(
            "v", DataType.SPARSE_FLOAT_VECTOR, [{3: 0.25, 1: 0.5}, [(7, 1.0)]]
        )
        assert field_data.vectors.sparse_float_vector.dim == 8
        assert field_data_to_values(field_data) == [{1: 0.5, 3: 0.25}, {7: 1.0}]

    @pytest.mark.parametrize("row", [{-1: 0.5}, {1: float("nan")}])
    def test_sparse_vector_invalid(self, row):
        with pytest.raises(ParamError):
            entity_to_field_data("v", DataType.SPARSE_FLOAT_VECTOR, [row])


class TestFieldDataToValues:
    def test_wire_field_data_carries_valid_data(self):
        assert "valid_data" in schema_pb2.FieldData.DESCRIPTOR.fields_by_name

    def test_rows_without_nulls(self):
        field_data = entity_to_field_data("id", DataType.INT64, [1, 2])
        assert fields_data_to_rows([field_data]) == [{"id": 1}, {"id": 2}]

    def test_valid_data_marks_nulls(self):
        field_data = entity_to_field_data("n", DataType.INT64, [1, 0, 3])
        field_data.valid_data.extend([True, False, True])
        assert field_data_to_values(field_data) == [1, None, 3]


class TestFieldsDataToRows:
    @pytest.fixture
    def columns(self):
        return [
            entity_to_field_data("id", DataType.INT64, [1, 2]),
            entity_to_field_data("title", DataType.VARCHAR, ["a", "b"]),
            entity_to_field_data(
                "$meta",
                DataType.JSON,
                [{"color": "r", "title": "shadowed"}, {"size": 3}],
                is_dynamic=True,
            ),
        ]

    @pytest.mark.parametrize("output_fields", [None, [], ["*"]])
    def test_all_fields(self, columns, output_fields):
        assert fields_data_to_rows(columns, output_fields) == [
            {"id": 1, "title": "a", "color": "r"},
            {"id": 2, "title": "b", "size": 3},
        ]

    def test_filtered(self, columns):
        assert fields_data_to_rows(columns, ["id", "size"]) == [{"id": 1}, {"id": 2, "size": 3}]

    def test_no_columns(self):
        assert fields_data_to_rows([], ["id"]) == []

    def test_inconsistent_lengths(self):
        columns = [
            entity_to_field_data("id", DataType.INT64, [1, 2]),
            entity_to_field_data("title", DataType.VARCHAR, ["a"]),
        ]
        with pytest.raises(MilvusException):
            fields_data_to_rows(columns)
