"""Client interceptor that stamps fixed metadata headers on every call."""

from typing import Any, Callable, List, NamedTuple, Sequence, Tuple

import grpc


class _CallDetails(
    NamedTuple(
        "_CallDetails",
        [("method", Any), ("timeout", Any), ("metadata", Any), ("credentials", Any)],
    ),
    grpc.ClientCallDetails,
):
    pass


class HeaderInterceptor(grpc.UnaryUnaryClientInterceptor, grpc.UnaryStreamClientInterceptor):
    """Append ``headers`` to the metadata of every unary request.

    The binding only issues unary-unary and unary-stream calls, so the
    streaming-request hooks are not implemented.
    """

    def __init__(self, headers: Sequence[Tuple[str, Any]]) -> None:
        super().__init__()
        self._headers = list(headers)

    @property
    def headers(self) -> List[Tuple[str, Any]]:
        return list(self._headers)

    def _with_headers(self, details: Any) -> _CallDetails:
        metadata = list(details.metadata) if details.metadata is not None else []
        metadata.extend(self._headers)
        return _CallDetails(details.method, details.timeout, metadata, details.credentials)

    def intercept_unary_unary(self, continuation: Callable, client_call_details: Any, request: Any):
        return continuation(self._with_headers(client_call_details), request)

    def intercept_unary_stream(self, continuation: Callable, client_call_details: Any, request: Any):
        return continuation(self._with_headers(client_call_details), request)


def header_adder_interceptor(headers: List, values: List) -> HeaderInterceptor:
    return HeaderInterceptor(zip(headers, values))
