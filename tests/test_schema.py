import pytest
from milvus_binding.client.schema import (
    CollectionDescriptor,
    FieldDescriptor,
    normalize_collection,
    normalize_field,
)
from milvus_binding.client.types import DataType
from milvus_binding.exceptions import InvalidFieldSpec, ParamError, UnknownDataType
from pymilvus.grpc_gen import schema_pb2


def type_params(field_schema):
    return {kv.key: kv.value for kv in field_schema.type_params}


VALID_FIELDS = [
    pytest.param(FieldDescriptor("id", "int64", is_primary=True, auto_id=True), id="pk"),
    pytest.param(FieldDescriptor("pk", "var-char", is_primary=True, max_length=32), id="str_pk"),
    pytest.param(FieldDescriptor("vec", "float-vector", dim=8), id="float_vector"),
    pytest.param(FieldDescriptor("bvec", "binary-vector", dim=16), id="binary_vector"),
    pytest.param(FieldDescriptor("hvec", "float16-vector", dim=4), id="float16_vector"),
    pytest.param(FieldDescriptor("bfvec", "bfloat16-vector", dim=4), id="bfloat16_vector"),
    pytest.param(FieldDescriptor("svec", "sparse-float-vector"), id="sparse"),
    pytest.param(FieldDescriptor("meta", "json", description="free form"), id="json"),
    pytest.param(
        FieldDescriptor("tags", "array", element_type="int32", max_capacity=10), id="array"
    ),
    pytest.param(
        FieldDescriptor(
            "names", "array", element_type="varchar", max_capacity=4, max_length=16
        ),
        id="array_of_varchar",
    ),
    pytest.param(
        {"name": "year", "data_type": "int16", "partition_key": True, "params": {"mmap": "true"}},
        id="dict",
    ),
]


class TestNormalizeField:
    @pytest.mark.parametrize("descriptor", VALID_FIELDS)
    def test_idempotent(self, descriptor):
        once = normalize_field(descriptor)
        twice = normalize_field(once)
        assert twice == once
        assert twice is not once

    def test_float_vector(self):
        f = normalize_field(FieldDescriptor("vec", "float-vector", dim="8", description="d"))
        assert f.name == "vec"
        assert f.data_type == DataType.FLOAT_VECTOR
        assert f.description == "d"
        assert type_params(f) == {"dim": "8"}

    def test_primary_key(self):
        f = normalize_field(FieldDescriptor("id", "int64", is_primary=True, auto_id=True))
        assert f.is_primary_key
        assert f.autoID

    def test_array(self):
        f = normalize_field(
            FieldDescriptor("names", "array", element_type="var-char", max_capacity=4, max_length=16)
        )
        assert f.data_type == DataType.ARRAY
        assert f.element_type == DataType.VARCHAR
        assert type_params(f) == {"max_length": "16", "max_capacity": "4"}

    def test_extra_type_params(self):
        f = normalize_field(
            FieldDescriptor("vec", "float-vector", dim=4, type_params={"mmap.enabled": True, "x": {"a": 1}})
        )
        assert type_params(f) == {"dim": "4", "mmap.enabled": "True", "x": '{"a":1}'}

    def test_named_param_inside_type_params(self):
        f = normalize_field({"name": "vec", "data_type": "float-vector", "type_params": {"dim": 4}})
        assert type_params(f) == {"dim": "4"}

    def test_named_param_given_twice(self):
        with pytest.raises(InvalidFieldSpec) as e:
            normalize_field(FieldDescriptor("vec", "float-vector", dim=4, type_params={"dim": 4}))
        assert e.value.attribute == "dim"

    @pytest.mark.parametrize(
        "data_type", ["float-vector", "binary-vector", "float16-vector", "bfloat16-vector"]
    )
    def test_vector_without_dim(self, data_type):
        with pytest.raises(InvalidFieldSpec) as e:
            normalize_field(FieldDescriptor("vec", data_type))
        assert e.value.field == "vec"
        assert e.value.attribute == "dim"

    @pytest.mark.parametrize(
        "descriptor, attribute",
        [
            pytest.param(FieldDescriptor("v", "float-vector", dim=0), "dim", id="zero_dim"),
            pytest.param(FieldDescriptor("v", "float-vector", dim="x"), "dim", id="bad_dim"),
            pytest.param(FieldDescriptor("n", "int64", dim=4), "dim", id="dim_on_scalar"),
            pytest.param(FieldDescriptor("s", "sparse-float-vector", dim=4), "dim", id="dim_on_sparse"),
            pytest.param(FieldDescriptor("s", "varchar"), "max_length", id="no_max_length"),
            pytest.param(FieldDescriptor("n", "int64", max_length=4), "max_length", id="max_length_on_int"),
            pytest.param(FieldDescriptor("a", "array", max_capacity=4), "element_type", id="no_element"),
            pytest.param(FieldDescriptor("a", "array", element_type="int8"), "max_capacity", id="no_capacity"),
            pytest.param(
                FieldDescriptor("a", "array", element_type="json", max_capacity=2),
                "element_type",
                id="json_element",
            ),
            pytest.param(
                FieldDescriptor("a", "array", element_type="varchar", max_capacity=2),
                "max_length",
                id="varchar_element_no_max_length",
            ),
            pytest.param(FieldDescriptor("n", "int64", element_type="int8"), "element_type", id="element_on_scalar"),
            pytest.param(FieldDescriptor("n", "int64", max_capacity=3), "max_capacity", id="capacity_on_scalar"),
            pytest.param(FieldDescriptor("n", "int64", auto_id=True), "auto_id", id="auto_id_without_pk"),
            pytest.param(FieldDescriptor("f", "float", is_primary=True), "is_primary", id="float_pk"),
            pytest.param(FieldDescriptor("", "int64"), "name", id="empty_name"),
            pytest.param({"name": "x", "data_type": "int64", "colour": "red"}, "colour", id="unknown_key"),
            pytest.param({"name": "x"}, "data_type", id="missing_type"),
        ],
    )
    def test_invalid(self, descriptor, attribute):
        with pytest.raises(InvalidFieldSpec) as e:
            normalize_field(descriptor)
        assert e.value.attribute == attribute

    def test_unknown_data_type(self):
        with pytest.raises(UnknownDataType) as e:
            normalize_field(FieldDescriptor("vec", "float-vec", dim=4))
        assert e.value.field == "vec"
        assert e.value.token == "float-vec"

    def test_not_a_descriptor(self):
        with pytest.raises(ParamError):
            normalize_field(42)

    def test_from_field_schema(self):
        raw = schema_pb2.FieldSchema(name="vec", data_type=DataType.FLOAT_VECTOR)
        raw.type_params.add(key="dim", value="3")
        desc = FieldDescriptor.from_field_schema(raw)
        assert desc.dim == 3
        assert desc.data_type == DataType.FLOAT_VECTOR
        assert desc.type_params == {}


class TestNormalizeCollection:
    FIELDS = [
        {"name": "id", "data_type": "int64", "is_primary": True, "auto_id": True},
        {"name": "title", "data_type": "var-char", "max_length": 64},
        {"name": "embedding", "data_type": "float-vector", "dim": 4},
    ]

    def test_field_order_preserved(self):
        schema = normalize_collection(
            CollectionDescriptor("books", self.FIELDS, description="d", enable_dynamic_field=True)
        )
        assert [f.name for f in schema.fields] == ["id", "title", "embedding"]
        assert schema.name == "books"
        assert schema.description == "d"
        assert schema.autoID
        assert schema.enable_dynamic_field

    def test_no_primary_key(self):
        with pytest.raises(ParamError):
            normalize_collection(CollectionDescriptor("books", self.FIELDS[1:]))

    def test_two_primary_keys(self):
        fields = [*self.FIELDS, {"name": "id2", "data_type": "int64", "is_primary": True}]
        with pytest.raises(ParamError):
            normalize_collection(CollectionDescriptor("books", fields))

    def test_duplicate_names(self):
        with pytest.raises(ParamError):
            normalize_collection(CollectionDescriptor("books", [*self.FIELDS, self.FIELDS[1]]))

    @pytest.mark.parametrize("name", ["", None, 3])
    def test_bad_name(self, name):
        with pytest.raises(ParamError):
            normalize_collection(CollectionDescriptor(name, self.FIELDS))

    @pytest.mark.parametrize("fields", [[], None, {"name": "id"}])
    def test_bad_fields(self, fields):
        with pytest.raises(ParamError):
            normalize_collection(CollectionDescriptor("books", fields))
