"""{"data": ...} / {"error": ...} envelopes and the top-level operation dispatcher"""
import logging
from typing import Any, Callable, Dict, Tuple

from pydantic import BaseModel

from strata_analytics.errors import StrataError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"

def to_jsonable(value: Any) -> Any:
    """Result models to camelCase dicts, recursing into lists and dict values"""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode='json')
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value

def ok(data: Any, **extra) -> Dict[str, Any]:
    body = {'data': to_jsonable(data)}
    body.update(extra)
    return body

def fail(message: str) -> Dict[str, Any]:
    return {'error': message}

def is_envelope(value: Any) -> bool:
    return isinstance(value, dict) and 'data' in value

def dispatch(operation: Callable[..., Any], *args, **kwargs) -> Tuple[Dict[str, Any], int]:
    """
    Run one operation and shape its outcome as (body, status).

    Operations that already built their own envelope (soft errors next to empty
    data) are passed through unchanged.
    """
    try:
        result = operation(*args, **kwargs)
    except StrataError as e:
        logger.warning(f"{getattr(operation, '__name__', 'operation')} rejected: {e.message}")
        return fail(e.message), e.status
    except Exception:
        logger.exception(f"Unexpected error in {getattr(operation, '__name__', 'operation')}")
        return fail(INTERNAL_ERROR_MESSAGE), 500

    if is_envelope(result):
        return result, 200
    return ok(result), 200
