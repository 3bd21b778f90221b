import pytest
from milvus_binding.client.abstract import (
    AnnSearchRequest,
    CollectionSchema,
    FieldSchema,
    MutationResult,
    RRFRanker,
    WeightedRanker,
)
from milvus_binding.client.types import DataType
from milvus_binding.exceptions import ParamError
from mock_responses import (
    books_schema_fields,
    make_describe_response,
    make_field_schema,
    make_mutation_response,
)


class TestMutationResult:
    def test_insert(self):
        result = MutationResult(
            make_mutation_response(insert_cnt=2, int_ids=[1, 2], timestamp=449122), "insert"
        )
        assert result.insert_count == 2
        assert result.primary_keys == result.ids == [1, 2]
        assert result.id_kind == "int_id"
        assert result.timestamp == 449122
        assert result.delete_count is None
        assert result.upsert_count is None
        assert result.dict()["ids"] == [1, 2]

    def test_delete_with_string_ids(self):
        result = MutationResult(make_mutation_response(delete_cnt=1, str_ids=["a"]), "delete")
        assert result.delete_count == 1
        assert result.insert_count is None
        assert result.primary_keys == ["a"]
        assert result.id_kind == "str_id"

    def test_upsert(self):
        result = MutationResult(make_mutation_response(upsert_cnt=3, insert_cnt=3), "upsert")
        assert result.upsert_count == 3
        assert result.insert_count is None

    def test_no_ids(self):
        result = MutationResult(make_mutation_response(delete_cnt=0), "delete")
        assert result.primary_keys == []
        assert result.id_kind is None
        assert result.delete_count == 0


class TestCollectionSchema:
    def test_fields(self):
        fields = books_schema_fields() + [
            make_field_schema("$meta", DataType.JSON, is_dynamic=True),
            make_field_schema("tags", DataType.ARRAY, element_type=DataType.INT64, max_capacity=8),
        ]
        schema = CollectionSchema(make_describe_response(fields, enable_dynamic_field=True))
        assert schema.collection_name == "books"
        assert schema.collection_id == 7
        assert schema.enable_dynamic_field
        assert schema.primary_field.name == "id"
        assert [f.name for f in schema.declared_fields] == ["id", "title", "embedding", "tags"]
        assert schema.get_field("title").params == {"max_length": 64}
        assert schema.get_field("tags").element_type == DataType.INT64
        assert schema.get_field("tags").params == {"max_capacity": 8}
        assert schema.get_field("missing") is None

    def test_json_params(self):
        field = FieldSchema(make_field_schema("v", DataType.FLOAT_VECTOR, dim=4, params='{"a": 1}'))
        assert field.dim == 4
        assert field.params == {"dim": 4, "params": {"a": 1}}
        assert field.dict()["type"] == DataType.FLOAT_VECTOR


class TestRankers:
    def test_rrf(self):
        assert RRFRanker().dict() == {"strategy": "rrf", "params": {"k": 60}}
        assert RRFRanker(10).dict() == {"strategy": "rrf", "params": {"k": 10}}

    def test_weighted(self):
        assert WeightedRanker(0.2, 1, norm_score=False).dict() == {
            "strategy": "weighted",
            "params": {"weights": [0.2, 1], "norm_score": False},
        }

    @pytest.mark.parametrize("weight", [True, "0.5", None])
    def test_weighted_rejects_non_numbers(self, weight):
        with pytest.raises(ParamError):
            WeightedRanker(0.5, weight)


class TestAnnSearchRequest:
    def test_properties(self):
        req = AnnSearchRequest(
            "embedding",
            top_k=5,
            metric_type="l2",
            expr="id > 0",
            params={"nprobe": 8},
            binary_vectors=[b"\x00", b"\x01"],
        )
        assert req.anns_field == "embedding"
        assert req.vector_type == DataType.BINARY_VECTOR
        assert req.vector_count == 2
        assert req.limit == 5
        assert req.metric_type == "l2"
        assert req.expr == "id > 0"
        assert req.params == {"nprobe": 8}

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"float_vectors": [[1.0]], "sparse_float_vectors": [{1: 0.5}]},
        ],
    )
    def test_exactly_one_vector_kind(self, kwargs):
        with pytest.raises(ParamError):
            AnnSearchRequest("embedding", **kwargs)
