import datetime
import functools
import logging
from typing import Callable

import grpc

from .exceptions import MilvusException, TransportError

LOGGER = logging.getLogger(__name__)


def _grpc_code(e: grpc.RpcError):
    code = getattr(e, "code", None)
    return code() if callable(code) else None


def _grpc_details(e: grpc.RpcError):
    details = getattr(e, "details", None)
    return details() if callable(details) else str(e)


def error_handler(func_name: str = ""):
    """Log failures of an RPC call and surface transport failures as TransportError.

    Errors raised by the binding itself (MilvusException and subclasses) pass
    through untouched. Nothing is retried.
    """

    def wrapper(func: Callable):
        @functools.wraps(func)
        def handler(*args, **kwargs):
            inner_name = func_name
            if inner_name == "":
                inner_name = func.__name__
            record_dict = {}
            try:
                record_dict["RPC start"] = str(datetime.datetime.now())
                return func(*args, **kwargs)
            except MilvusException as e:
                record_dict["RPC error"] = str(datetime.datetime.now())
                LOGGER.error(f"RPC error: [{inner_name}], {e}, <Time:{record_dict}>")
                raise e from e
            except grpc.FutureTimeoutError as e:
                record_dict["gRPC timeout"] = str(datetime.datetime.now())
                LOGGER.error(
                    f"grpc Timeout: [{inner_name}], <{e.__class__.__name__}>, <Time:{record_dict}>"
                )
                raise TransportError(
                    message=f"[{inner_name}] timed out waiting for the server",
                    grpc_code=grpc.StatusCode.DEADLINE_EXCEEDED,
                ) from e
            except grpc.RpcError as e:
                record_dict["gRPC error"] = str(datetime.datetime.now())
                code, details = _grpc_code(e), _grpc_details(e)
                LOGGER.error(
                    f"grpc RpcError: [{inner_name}], <{e.__class__.__name__}: "
                    f"{code}, {details}>, <Time:{record_dict}>"
                )
                raise TransportError(message=details, grpc_code=code) from e

        return handler

    return wrapper
