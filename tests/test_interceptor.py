from collections import namedtuple

from milvus_binding.client.interceptor import header_adder_interceptor

Details = namedtuple("Details", ["method", "timeout", "metadata", "credentials"])


def continuation(details, request):
    return details, request


class TestHeaderInterceptor:
    def test_unary_unary_appends_headers(self):
        interceptor = header_adder_interceptor(["dbname"], ["db1"])
        details, request = interceptor.intercept_unary_unary(
            continuation, Details("/milvus.proto.milvus.MilvusService/Query", 3, [("k", "v")], None), "req"
        )
        assert request == "req"
        assert details.method.endswith("/Query")
        assert details.timeout == 3
        assert details.metadata == [("k", "v"), ("dbname", "db1")]

    def test_unary_stream_without_metadata(self):
        interceptor = header_adder_interceptor(["authorization"], [b"dG9rZW4="])
        details, _ = interceptor.intercept_unary_stream(
            continuation, Details("/m", None, None, None), "req"
        )
        assert details.metadata == [("authorization", b"dG9rZW4=")]
        assert interceptor.headers == [("authorization", b"dG9rZW4=")]
