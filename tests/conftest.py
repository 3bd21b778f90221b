from unittest.mock import MagicMock

import pytest
from milvus_binding.client.grpc_handler import GrpcHandler


@pytest.fixture
def handler():
    """GrpcHandler over a mocked channel whose stub records every call."""
    h = GrpcHandler(channel=MagicMock())
    h._stub = MagicMock()
    return h
