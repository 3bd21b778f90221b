from typing import Any, Callable, Dict

from milvus_binding.exceptions import ParamError


def is_legal_host(host: Any) -> bool:
    return isinstance(host, str) and len(host) > 0 and (":" not in host)


def is_legal_port(port: Any) -> bool:
    if isinstance(port, (str, int)) and not isinstance(port, bool):
        try:
            int(port)
        except ValueError:
            return False
        else:
            return True
    return False


def is_legal_table_name(table_name: Any) -> bool:
    return bool(table_name) and isinstance(table_name, str)


def is_legal_db_name(db_name: Any) -> bool:
    # you can connect to the default database "".
    return isinstance(db_name, str)


def is_legal_field_name(field_name: Any) -> bool:
    return bool(field_name) and isinstance(field_name, str)


def is_legal_expr(expr: Any) -> bool:
    return isinstance(expr, str)


def is_legal_timeout(timeout: Any) -> bool:
    return timeout is None or (not isinstance(timeout, bool) and isinstance(timeout, (int, float)))


def _raise_param_error(param_name: str, param_value: Any) -> None:
    raise ParamError(message=f"`{param_name}` value {param_value} is illegal")


_CHECKERS: Dict[str, Callable[[Any], bool]] = {
    "db_name": is_legal_db_name,
    "collection_name": is_legal_table_name,
    "field_name": is_legal_field_name,
    "index_name": is_legal_field_name,
    "expr": is_legal_expr,
    "timeout": is_legal_timeout,
    "host": is_legal_host,
    "port": is_legal_port,
}


def check_pass_param(**kwargs: Any) -> None:
    for key, value in kwargs.items():
        checker = _CHECKERS.get(key)
        if checker is None:
            raise ParamError(message=f"unknown param `{key}`")
        if not checker(value):
            _raise_param_error(key, value)
