"""
Handler registry

Handlers are plain async functions registered with ``@api_handler``. A
transport (HTTP router, IPC bridge, CLI) looks them up by method and path
and calls ``dispatch`` with the raw payload; the body is validated with the
handler's pydantic request model before the handler runs.

Handlers tagged ``admin`` only run when the registered admin gate approves
the caller context. Without a gate every admin call is denied.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from pydantic import ValidationError as PydanticValidationError

from core.errors import EngineError
from core.logger import get_logger
from models.base import BaseModel
from models.responses import EngineResponse

logger = get_logger(__name__)

ADMIN_TAG = "admin"

AdminGate = Callable[[Optional[Dict[str, Any]]], bool]


@dataclass
class HandlerSpec:
    func: Callable[..., Awaitable[EngineResponse]]
    method: str
    path: str
    body: Optional[Type[BaseModel]] = None
    tags: List[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return ADMIN_TAG in self.tags


# (method, path) -> handler
_registry: Dict[Tuple[str, str], HandlerSpec] = {}

_admin_gate: Optional[AdminGate] = None


def api_handler(
    body: Optional[Type[BaseModel]] = None,
    method: str = "POST",
    path: Optional[str] = None,
    tags: Optional[List[str]] = None,
):
    """
    Register an async handler

    Args:
        body: Request model the payload is validated against (None: no body)
        method: HTTP-style method
        path: Route path, defaults to ``/<function_name>``
        tags: Grouping tags; ``admin`` puts the handler behind the admin gate
    """

    def decorator(func):
        route = (method.upper(), path or f"/{func.__name__}")
        if route in _registry:
            raise ValueError(f"Handler already registered for {route[0]} {route[1]}")

        _registry[route] = HandlerSpec(
            func=func,
            method=route[0],
            path=route[1],
            body=body,
            tags=list(tags or []),
        )
        return func

    return decorator


def get_handlers() -> List[HandlerSpec]:
    return list(_registry.values())


# ============ Admin gate ============


def register_admin_gate(gate: Optional[AdminGate]) -> None:
    """Install the callable that authorizes admin calls; None denies all"""
    global _admin_gate
    _admin_gate = gate


def is_admin_authorized(context: Optional[Dict[str, Any]] = None) -> bool:
    if _admin_gate is None:
        return False
    try:
        return bool(_admin_gate(context))
    except Exception as e:
        logger.error(f"Admin gate raised, denying: {e}", exc_info=True)
        return False


# ============ Responses ============


def timestamp() -> str:
    return datetime.now().isoformat()


def failure_response(
    response_cls: Type[EngineResponse], error: EngineError
) -> EngineResponse:
    """Response for an expected engine failure, carrying its code and details"""
    details = error.details()
    return response_cls(
        success=False,
        message=error.message,
        error=error.code,
        reason=details.get("reason"),
        remaining_seconds=details.get("remaining_seconds"),
        timestamp=timestamp(),
    )


def unexpected_response(response_cls: Type[EngineResponse], action: str) -> EngineResponse:
    """Response for an unexpected failure; the cause is logged, not returned"""
    return response_cls(
        success=False,
        message=f"Failed to {action}",
        error="INTERNAL_ERROR",
        timestamp=timestamp(),
    )


# ============ Dispatch ============


async def dispatch(
    method: str,
    path: str,
    payload: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> EngineResponse:
    """
    Validate a payload and run the registered handler

    Args:
        method: HTTP-style method
        path: Route path
        payload: Raw request body (camelCase or snake_case keys)
        context: Caller context handed to the admin gate

    Returns:
        The handler's response, or a failure response for unknown routes,
        denied admin calls and invalid bodies
    """
    entry = _registry.get((method.upper(), path))
    if entry is None:
        logger.warning(f"No handler for {method.upper()} {path}")
        return EngineResponse(
            success=False,
            message=f"Unknown route: {method.upper()} {path}",
            error="UNKNOWN_ROUTE",
            timestamp=timestamp(),
        )

    if entry.is_admin and not is_admin_authorized(context):
        logger.warning(f"Admin call denied: {entry.method} {entry.path}")
        return EngineResponse(
            success=False,
            message="Admin authorization required",
            error="FORBIDDEN",
            timestamp=timestamp(),
        )

    if entry.body is None:
        return await entry.func()

    try:
        body = entry.body.model_validate(payload or {})
    except PydanticValidationError as e:
        logger.warning(f"Invalid body for {entry.method} {entry.path}: {e}")
        return EngineResponse(
            success=False,
            message=str(e),
            error="VALIDATION_ERROR",
            timestamp=timestamp(),
        )

    return await entry.func(body)


# Register handler modules
from . import allocations, checkouts, expiration, timers  # noqa: E402,F401

__all__ = [
    "api_handler",
    "dispatch",
    "get_handlers",
    "register_admin_gate",
    "is_admin_authorized",
    "failure_response",
    "unexpected_response",
    "timestamp",
    "HandlerSpec",
    "ADMIN_TAG",
]
