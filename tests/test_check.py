import pytest
from milvus_binding.client.check import (
    check_pass_param,
    is_legal_db_name,
    is_legal_expr,
    is_legal_host,
    is_legal_port,
    is_legal_table_name,
    is_legal_timeout,
)
from milvus_binding.exceptions import ParamError


class TestChecks:
    @pytest.mark.parametrize("valid_host", ["localhost", "example.com"])
    def test_check_is_legal_host_true(self, valid_host):
        assert is_legal_host(valid_host) is True

    @pytest.mark.parametrize("invalid_host", ["", 1, None, "localhost:19530"])
    def test_check_is_legal_host_false(self, invalid_host):
        assert is_legal_host(invalid_host) is False

    @pytest.mark.parametrize("valid_port", ["19530", 222])
    def test_check_is_legal_port_true(self, valid_port):
        assert is_legal_port(valid_port) is True

    @pytest.mark.parametrize("invalid_port", [None, "abc", True, 1.5])
    def test_check_is_legal_port_false(self, invalid_port):
        assert is_legal_port(invalid_port) is False

    def test_names(self):
        assert is_legal_table_name("books")
        assert not is_legal_table_name("")
        assert is_legal_db_name("")
        assert not is_legal_db_name(None)
        assert is_legal_expr("")
        assert not is_legal_expr(None)

    @pytest.mark.parametrize("timeout, valid", [(None, True), (1, True), (0.5, True), (False, False), ("1", False)])
    def test_timeout(self, timeout, valid):
        assert is_legal_timeout(timeout) is valid


class TestCheckPassParam:
    def test_ok(self):
        check_pass_param(collection_name="books", field_name="embedding", timeout=None)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"collection_name": ""},
            {"collection_name": 1},
            {"field_name": None},
            {"expr": 1},
            {"db_name": None},
            {"port": "x"},
        ],
    )
    def test_illegal(self, kwargs):
        with pytest.raises(ParamError):
            check_pass_param(**kwargs)

    def test_unknown_param(self):
        with pytest.raises(ParamError, match="unknown param"):
            check_pass_param(partition_tag="p")
