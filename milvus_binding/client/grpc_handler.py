import base64
import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from urllib import parse

import grpc

from milvus_binding.decorators import error_handler
from milvus_binding.exceptions import (
    MilvusException,
    ParamError,
    SyncWaitTimeout,
    TransportError,
)
from milvus_binding.settings import Config
from pymilvus.grpc_gen import milvus_pb2_grpc

from . import entity_helper, interceptor
from .abstract import AnnSearchRequest, BaseRanker, CollectionSchema, MutationResult
from .check import check_pass_param, is_legal_host, is_legal_port
from .prepare import Prepare
from .search_result import SearchResult
from .types import IndexState, LogLevel, Status
from .utils import check_status

LOGGER = logging.getLogger(__name__)
PACKAGE_LOGGER = "milvus_binding"


def _ok(status: Any) -> Status:
    check_status(status)
    return Status(message=status.reason or "Success")


class GrpcHandler:
    """Synchronous client over one gRPC channel to a Milvus service.

    Every operation compiles its options with ``Prepare`` first, so invalid
    options raise before anything is sent. Each call is sent once; there is no
    retry. ``timeout`` on an operation overrides the default set by
    ``with_timeout``.
    """

    # pylint: disable=too-many-instance-attributes

    def __init__(
        self,
        uri: str = "",
        host: str = "",
        port: Union[str, int] = "",
        channel: Optional[grpc.Channel] = None,
        **kwargs,
    ) -> None:
        self._stub = None
        self._channel = channel

        self._address = self.__get_address(uri or Config.MILVUS_URI or Config.GRPC_URI, host, port)
        self._timeout = kwargs.get("timeout")
        self._keep_alive_time_ms = kwargs.get("keep_alive_time_ms", Config.KEEP_ALIVE_TIME_MS)
        self._keep_alive_timeout_ms = kwargs.get("keep_alive_timeout_ms")
        self._keep_alive_without_calls = kwargs.get("keep_alive_without_calls")
        self._idle_timeout_ms = kwargs.get("idle_timeout_ms")
        self._set_authorization(**kwargs)
        self._setup_db_interceptor(kwargs.get("db_name", Config.MILVUS_DB_NAME or None))
        self._setup_grpc_channel()
        self.schema_cache: Dict[str, CollectionSchema] = {}

    def __get_address(self, uri: str, host: Union[str, int], port: Union[str, int]) -> str:
        if host != "" and port != "" and is_legal_host(host) and is_legal_port(port):
            return f"{host}:{port}"

        try:
            parsed_uri = parse.urlparse(uri)
        except ValueError as e:
            raise ParamError(message=f"Illegal uri: [{uri}], {e}") from e
        if not parsed_uri.netloc:
            raise ParamError(message=f"Illegal uri: [{uri}], expected scheme://host:port")
        return parsed_uri.netloc

    def _set_authorization(self, **kwargs):
        secure = kwargs.get("secure", False)
        if not isinstance(secure, bool):
            raise ParamError(message="secure must be bool type")
        self._secure = secure
        self._client_pem_path = kwargs.get("client_pem_path", "")
        self._client_key_path = kwargs.get("client_key_path", "")
        self._ca_pem_path = kwargs.get("ca_pem_path", "")
        self._server_pem_path = kwargs.get("server_pem_path", "")
        self._server_name = kwargs.get("server_name", "")

        self._authorization_interceptor = None
        self._setup_authorization_interceptor(
            kwargs.get("user"),
            kwargs.get("password"),
            kwargs.get("token"),
        )

    def __enter__(self):
        return self

    def __exit__(self: object, exc_type: object, exc_val: object, exc_tb: object):
        self.close()

    def _setup_authorization_interceptor(self, user: str, password: str, token: str):
        keys = []
        values = []
        if token:
            authorization = base64.b64encode(f"{token}".encode())
            keys.append("authorization")
            values.append(authorization)
        elif user and password:
            authorization = base64.b64encode(f"{user}:{password}".encode())
            keys.append("authorization")
            values.append(authorization)
        if len(keys) > 0 and len(values) > 0:
            self._authorization_interceptor = interceptor.header_adder_interceptor(keys, values)

    def _setup_db_interceptor(self, db_name: Optional[str]):
        if db_name is None:
            self._db_interceptor = None
        else:
            check_pass_param(db_name=db_name)
            self._db_interceptor = interceptor.header_adder_interceptor(["dbname"], [db_name])

    def _channel_options(self) -> List:
        opts = [
            ("grpc.max_send_message_length", -1),
            ("grpc.max_receive_message_length", -1),
            ("grpc.keepalive_time_ms", int(self._keep_alive_time_ms)),
        ]
        if self._keep_alive_timeout_ms is not None:
            opts.append(("grpc.keepalive_timeout_ms", int(self._keep_alive_timeout_ms)))
        if self._keep_alive_without_calls is not None:
            opts.append(("grpc.keepalive_permit_without_calls", int(self._keep_alive_without_calls)))
        if self._idle_timeout_ms is not None:
            opts.append(("grpc.client_idle_timeout_ms", int(self._idle_timeout_ms)))
        return opts

    def _setup_grpc_channel(self):
        """Create a grpc channel unless one was handed in, then wrap it with header interceptors"""
        if self._channel is None:
            opts = self._channel_options()
            if not self._secure:
                self._channel = grpc.insecure_channel(self._address, options=opts)
            else:
                if self._server_name != "":
                    opts.append(("grpc.ssl_target_name_override", self._server_name))

                root_cert, private_k, cert_chain = None, None, None
                if self._server_pem_path != "":
                    with Path(self._server_pem_path).open("rb") as f:
                        root_cert = f.read()
                elif (
                    self._client_pem_path != ""
                    and self._client_key_path != ""
                    and self._ca_pem_path != ""
                ):
                    with Path(self._ca_pem_path).open("rb") as f:
                        root_cert = f.read()
                    with Path(self._client_key_path).open("rb") as f:
                        private_k = f.read()
                    with Path(self._client_pem_path).open("rb") as f:
                        cert_chain = f.read()

                creds = grpc.ssl_channel_credentials(
                    root_certificates=root_cert,
                    private_key=private_k,
                    certificate_chain=cert_chain,
                )
                self._channel = grpc.secure_channel(self._address, creds, options=opts)

        self._final_channel = self._channel
        if self._authorization_interceptor:
            self._final_channel = grpc.intercept_channel(
                self._final_channel, self._authorization_interceptor
            )
        if self._db_interceptor:
            self._final_channel = grpc.intercept_channel(self._final_channel, self._db_interceptor)
        self._stub = milvus_pb2_grpc.MilvusServiceStub(self._final_channel)

    def wait_for_channel_ready(self, timeout: Optional[float] = None):
        if self._channel is None:
            raise TransportError(message="No channel in handler, please setup grpc channel first")

        timeout = Config.MILVUS_CONN_TIMEOUT if timeout is None else timeout
        try:
            grpc.channel_ready_future(self._channel).result(timeout=timeout)
        except grpc.FutureTimeoutError as e:
            self.close()
            raise TransportError(
                message=f"Fail connecting to server on {self._address}, illegal connection params or server unavailable",
                grpc_code=grpc.StatusCode.UNAVAILABLE,
            ) from e

    def close(self, max_wait: Optional[float] = None):
        """Release the channel, waiting at most ``max_wait`` seconds for it to shut down."""
        if self._channel is None:
            return
        max_wait = Config.MILVUS_CLOSE_WAIT if max_wait is None else max_wait
        closer = threading.Thread(target=self._channel.close, daemon=True)
        closer.start()
        closer.join(max_wait)
        if closer.is_alive():
            LOGGER.warning(f"channel to {self._address} did not shut down within {max_wait}s")
        self._channel = None
        self._final_channel = None
        self._stub = None

    def with_timeout(self, timeout: Optional[float]) -> "GrpcHandler":
        check_pass_param(timeout=timeout)
        self._timeout = timeout
        return self

    def _timeout_or_default(self, timeout: Optional[float]) -> Optional[float]:
        check_pass_param(timeout=timeout)
        return self._timeout if timeout is None else timeout

    @staticmethod
    def set_log_level(level: Union[str, LogLevel]):
        log_level = LogLevel.from_token(level)
        logging.getLogger(PACKAGE_LOGGER).setLevel(log_level.value)

    @property
    def server_address(self):
        return self._address

    # databases

    @error_handler()
    def create_database(self, db_name: str, timeout: Optional[float] = None) -> Status:
        request = Prepare.create_database_request(db_name)
        status = self._stub.CreateDatabase(request, timeout=self._timeout_or_default(timeout))
        return _ok(status)

    @error_handler()
    def drop_database(self, db_name: str, timeout: Optional[float] = None) -> Status:
        request = Prepare.drop_database_request(db_name)
        status = self._stub.DropDatabase(request, timeout=self._timeout_or_default(timeout))
        return _ok(status)

    @error_handler()
    def list_databases(self, timeout: Optional[float] = None) -> List[str]:
        request = Prepare.list_databases_request()
        response = self._stub.ListDatabases(request, timeout=self._timeout_or_default(timeout))
        check_status(response.status)
        return list(response.db_names)

    # collections

    @error_handler()
    def create_collection(
        self,
        collection_name: str,
        fields: Sequence[Any],
        description: Optional[str] = None,
        shards_num: Optional[int] = None,
        num_partitions: Optional[int] = None,
        consistency_level: Optional[Any] = None,
        enable_dynamic_field: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> Status:
        request = Prepare.create_collection_request(
            collection_name,
            fields,
            description=description,
            shards_num=shards_num,
            num_partitions=num_partitions,
            consistency_level=consistency_level,
            enable_dynamic_field=enable_dynamic_field,
        )
        status = self._stub.CreateCollection(request, timeout=self._timeout_or_default(timeout))
        self.schema_cache.pop(collection_name, None)
        return _ok(status)

    @error_handler()
    def drop_collection(self, collection_name: str, timeout: Optional[float] = None) -> Status:
        request = Prepare.drop_collection_request(collection_name)
        status = self._stub.DropCollection(request, timeout=self._timeout_or_default(timeout))
        self.schema_cache.pop(collection_name, None)
        return _ok(status)

    @error_handler()
    def describe_collection(
        self, collection_name: str, timeout: Optional[float] = None
    ) -> CollectionSchema:
        request = Prepare.describe_collection_request(collection_name)
        response = self._stub.DescribeCollection(
            request, timeout=self._timeout_or_default(timeout)
        )
        check_status(response.status)
        return CollectionSchema(raw=response)

    def _get_schema(self, collection_name: str, timeout: Optional[float] = None):
        schema = self.schema_cache.get(collection_name)
        if schema is None:
            schema = self.describe_collection(collection_name, timeout=timeout)
            self.schema_cache[collection_name] = schema
        return schema

    def invalidate_schema_cache(self, collection_name: Optional[str] = None):
        if collection_name is None:
            self.schema_cache.clear()
        else:
            self.schema_cache.pop(collection_name, None)

    # indexes

    @error_handler()
    def create_index(
        self,
        collection_name: str,
        field_name: str,
        index_type: Optional[Any] = None,
        index_name: Optional[str] = None,
        metric_type: Optional[Any] = None,
        extra_param: Optional[Union[str, Dict]] = None,
        sync_mode: bool = True,
        sync_waiting_interval: Optional[float] = None,
        sync_waiting_timeout: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Status:
        request = Prepare.create_index_request(
            collection_name,
            field_name,
            index_type=index_type,
            index_name=index_name,
            metric_type=metric_type,
            extra_param=extra_param,
        )
        timeout = self._timeout_or_default(timeout)
        status = _ok(self._stub.CreateIndex(request, timeout=timeout))
        if sync_mode:
            self.wait_for_creating_index(
                collection_name,
                index_name=index_name,
                field_name=field_name,
                interval=sync_waiting_interval,
                wait_timeout=sync_waiting_timeout,
                timeout=timeout,
            )
        return status

    def _get_index_state(
        self,
        collection_name: str,
        index_name: Optional[str],
        field_name: Optional[str],
        timeout: Optional[float],
    ):
        request = Prepare.describe_index_request(collection_name, index_name, field_name)
        response = self._stub.DescribeIndex(request, timeout=timeout)
        check_status(response.status)
        for description in response.index_descriptions:
            if index_name and description.index_name != index_name:
                continue
            if field_name and not index_name and description.field_name != field_name:
                continue
            return IndexState(description.state), description.index_state_fail_reason
        raise MilvusException(message=f"no index found on collection {collection_name}")

    def wait_for_creating_index(
        self,
        collection_name: str,
        index_name: Optional[str] = None,
        field_name: Optional[str] = None,
        interval: Optional[float] = None,
        wait_timeout: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        interval = Config.WaitTimeDurationWhenIndex if interval is None else interval
        start = time.time()
        while True:
            state, fail_reason = self._get_index_state(
                collection_name, index_name, field_name, timeout
            )
            if state == IndexState.Finished:
                return
            if state == IndexState.Failed:
                raise MilvusException(
                    message=f"create index on collection {collection_name} failed: {fail_reason}"
                )
            if wait_timeout is not None and time.time() - start > wait_timeout:
                raise SyncWaitTimeout(
                    message=f"collection {collection_name} create index {index_name or field_name} timeout in {wait_timeout}s"
                )
            LOGGER.debug(f"index of {collection_name} in state {state.name}, waiting")
            time.sleep(interval)

    @error_handler()
    def drop_index(
        self,
        collection_name: str,
        index_name: Optional[str] = None,
        field_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Status:
        request = Prepare.drop_index_request(collection_name, index_name, field_name)
        status = self._stub.DropIndex(request, timeout=self._timeout_or_default(timeout))
        return _ok(status)

    # mutations

    @error_handler()
    def insert(
        self,
        collection_name: str,
        fields: Optional[Union[Mapping, Sequence[Mapping]]] = None,
        rows: Optional[Sequence[Mapping]] = None,
        partition_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> MutationResult:
        timeout = self._timeout_or_default(timeout)
        schema = self._get_schema(collection_name, timeout=timeout)
        request = Prepare.insert_request(
            collection_name, schema, fields=fields, rows=rows, partition_name=partition_name
        )
        response = self._stub.Insert(request, timeout=timeout)
        check_status(response.status)
        return MutationResult(response, operation="insert")

    @error_handler()
    def upsert(
        self,
        collection_name: str,
        fields: Optional[Union[Mapping, Sequence[Mapping]]] = None,
        rows: Optional[Sequence[Mapping]] = None,
        partition_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> MutationResult:
        timeout = self._timeout_or_default(timeout)
        schema = self._get_schema(collection_name, timeout=timeout)
        request = Prepare.upsert_request(
            collection_name, schema, fields=fields, rows=rows, partition_name=partition_name
        )
        response = self._stub.Upsert(request, timeout=timeout)
        check_status(response.status)
        return MutationResult(response, operation="upsert")

    @error_handler()
    def delete(
        self,
        collection_name: str,
        expr: str,
        partition_name: Optional[str] = None,
        consistency_level: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> MutationResult:
        request = Prepare.delete_request(
            collection_name, expr, partition_name=partition_name, consistency_level=consistency_level
        )
        response = self._stub.Delete(request, timeout=self._timeout_or_default(timeout))
        check_status(response.status)
        return MutationResult(response, operation="delete")

    @error_handler()
    def flush(
        self,
        collection_names: List[str],
        sync_flush: bool = True,
        sync_waiting_interval: Optional[float] = None,
        sync_waiting_timeout: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Status:
        request = Prepare.flush_request(collection_names)
        timeout = self._timeout_or_default(timeout)
        response = self._stub.Flush(request, timeout=timeout)
        status = _ok(response.status)
        if sync_flush:
            for name in collection_names:
                self._wait_for_flushed(
                    list(response.coll_segIDs[name].data),
                    name,
                    response.coll_flush_ts[name],
                    interval=sync_waiting_interval,
                    wait_timeout=sync_waiting_timeout,
                    timeout=timeout,
                )
        return status

    def _wait_for_flushed(
        self,
        segment_ids: List[int],
        collection_name: str,
        flush_ts: int,
        interval: Optional[float] = None,
        wait_timeout: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        interval = Config.WaitTimeDurationWhenFlush if interval is None else interval
        start = time.time()
        while True:
            request = Prepare.get_flush_state_request(segment_ids, collection_name, flush_ts)
            response = self._stub.GetFlushState(request, timeout=timeout)
            check_status(response.status)
            if response.flushed:
                return
            if wait_timeout is not None and time.time() - start > wait_timeout:
                raise SyncWaitTimeout(
                    message=f"wait for flush timeout, collection: {collection_name}, flush_ts: {flush_ts}"
                )
            time.sleep(interval)

    # loading

    @error_handler()
    def load_collection(
        self,
        collection_name: str,
        replica_number: Optional[int] = None,
        refresh: Optional[bool] = None,
        sync_load: bool = True,
        sync_waiting_interval: Optional[float] = None,
        sync_waiting_timeout: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Status:
        request = Prepare.load_collection_request(
            collection_name, replica_number=replica_number, refresh=refresh
        )
        timeout = self._timeout_or_default(timeout)
        status = _ok(self._stub.LoadCollection(request, timeout=timeout))
        if sync_load:
            self.wait_for_loading_collection(
                collection_name,
                is_refresh=bool(refresh),
                interval=sync_waiting_interval,
                wait_timeout=sync_waiting_timeout,
                timeout=timeout,
            )
        return status

    def get_loading_progress(
        self, collection_name: str, is_refresh: bool = False, timeout: Optional[float] = None
    ) -> int:
        request = Prepare.get_loading_progress_request(collection_name)
        response = self._stub.GetLoadingProgress(request, timeout=timeout)
        check_status(response.status)
        if is_refresh:
            return response.refresh_progress
        return response.progress

    def wait_for_loading_collection(
        self,
        collection_name: str,
        is_refresh: bool = False,
        interval: Optional[float] = None,
        wait_timeout: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        interval = Config.WaitTimeDurationWhenLoad if interval is None else interval
        start = time.time()
        while True:
            progress = self.get_loading_progress(
                collection_name, is_refresh=is_refresh, timeout=timeout
            )
            if progress >= 100:
                return
            if wait_timeout is not None and time.time() - start > wait_timeout:
                raise SyncWaitTimeout(
                    message=f"wait for loading collection timeout, collection: {collection_name}"
                )
            LOGGER.debug(f"collection {collection_name} loaded {progress}%")
            time.sleep(interval)

    @error_handler()
    def release_collection(self, collection_name: str, timeout: Optional[float] = None) -> Status:
        request = Prepare.release_collection_request(collection_name)
        status = self._stub.ReleaseCollection(request, timeout=self._timeout_or_default(timeout))
        return _ok(status)

    # reads

    @error_handler()
    def query(
        self,
        collection_name: str,
        expr: Optional[str] = None,
        out_fields: Optional[List[str]] = None,
        partition_names: Optional[List[str]] = None,
        consistency_level: Optional[Any] = None,
        travel_timestamp: Optional[int] = None,
        guarantee_timestamp: Optional[int] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        ignore_growing: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        if out_fields is not None and not isinstance(out_fields, list):
            raise ParamError(message="Invalid query format. 'out_fields' must be a list")
        request = Prepare.query_request(
            collection_name,
            expr=expr,
            out_fields=out_fields,
            partition_names=partition_names,
            consistency_level=consistency_level,
            travel_timestamp=travel_timestamp,
            guarantee_timestamp=guarantee_timestamp,
            offset=offset,
            limit=limit,
            ignore_growing=ignore_growing,
        )
        response = self._stub.Query(request, timeout=self._timeout_or_default(timeout))
        check_status(response.status)
        return entity_helper.fields_data_to_rows(response.fields_data, out_fields)

    @error_handler()
    def search(
        self,
        collection_name: str,
        vectors: Sequence[Any],
        vector_field_name: str,
        top_k: Optional[int] = None,
        metric_type: Optional[Any] = None,
        expr: Optional[str] = None,
        partition_names: Optional[List[str]] = None,
        out_fields: Optional[List[str]] = None,
        consistency_level: Optional[Any] = None,
        round_decimal: Optional[int] = None,
        params: Optional[Union[str, Dict]] = None,
        offset: Optional[int] = None,
        ignore_growing: Optional[bool] = None,
        travel_timestamp: Optional[int] = None,
        guarantee_timestamp: Optional[int] = None,
        vector_type: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> SearchResult:
        request = Prepare.search_request(
            collection_name,
            vectors,
            vector_field_name,
            top_k=top_k,
            metric_type=metric_type,
            expr=expr,
            partition_names=partition_names,
            out_fields=out_fields,
            consistency_level=consistency_level,
            round_decimal=round_decimal,
            params=params,
            offset=offset,
            ignore_growing=ignore_growing,
            travel_timestamp=travel_timestamp,
            guarantee_timestamp=guarantee_timestamp,
            vector_type=vector_type,
        )
        response = self._stub.Search(request, timeout=self._timeout_or_default(timeout))
        check_status(response.status)
        return SearchResult(
            response.results,
            nq=len(vectors),
            output_fields=out_fields,
            round_decimal=-1 if round_decimal is None else round_decimal,
        )

    @error_handler()
    def hybrid_search(
        self,
        collection_name: str,
        search_requests: Sequence[AnnSearchRequest],
        ranker: BaseRanker,
        top_k: Optional[int] = None,
        out_fields: Optional[List[str]] = None,
        partition_names: Optional[List[str]] = None,
        consistency_level: Optional[Any] = None,
        round_decimal: Optional[int] = None,
        offset: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> SearchResult:
        request = Prepare.hybrid_search_request(
            collection_name,
            search_requests,
            ranker,
            top_k=top_k,
            out_fields=out_fields,
            partition_names=partition_names,
            consistency_level=consistency_level,
            round_decimal=round_decimal,
            offset=offset,
        )
        response = self._stub.HybridSearch(request, timeout=self._timeout_or_default(timeout))
        check_status(response.status)
        return SearchResult(
            response.results,
            nq=search_requests[0].vector_count,
            output_fields=out_fields,
            round_decimal=-1 if round_decimal is None else round_decimal,
        )
