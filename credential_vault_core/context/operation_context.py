"""
Operation context for handling cross-cutting concerns.

This module provides context management for service operations: entry/exit
logging, correlation ids, durations, and enrichment of raised errors.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional, TypeVar, Union, cast

from ..exceptions import BaseError, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger
from .principal_context import PrincipalContext


class OperationContext:
    """Context for a specific operation."""

    def __init__(self, operation_name: str, correlation_id: Optional[str] = None, **context):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())

        # Use provided correlation_id or get from context or generate new one
        self.correlation_id = correlation_id or get_correlation_id() or str(uuid.uuid4())
        set_correlation_id(self.correlation_id)

        self.context = context
        self.context["operation_id"] = self.operation_id
        self.context["correlation_id"] = self.correlation_id

        self.start_time = time.time()

    @property
    def duration_ms(self) -> float:
        """Get the operation duration in milliseconds."""
        return (time.time() - self.start_time) * 1000

    def add_context(self, **kwargs) -> None:
        """Add additional context information."""
        self.context.update(kwargs)


class OperationHandler:
    """Handles operation logging and error enrichment."""

    def __init__(self, logger: Optional[Union[logging.Logger, "ContextAwareLogger"]] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, **context):
        """Context manager for operations."""
        principal_id = PrincipalContext.get_current_principal_id()
        if principal_id is not None and "principal_id" not in context:
            context["principal_id"] = principal_id

        op_ctx = OperationContext(name, **context)

        self.logger.debug(
            f"ENTER: {name}",
            extra={
                **context,
                "operation_id": op_ctx.operation_id,
                "correlation_id": op_ctx.correlation_id,
            },
        )

        try:
            yield op_ctx

            self.logger.info(
                f"EXIT: {name}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "status": "success",
                },
            )

        except BaseError as e:
            # Our exceptions already logged themselves; enrich and annotate
            e.add_context(
                operation_name=name,
                operation_id=op_ctx.operation_id,
                operation_duration_ms=op_ctx.duration_ms,
            )

            self.logger.warning(
                f"ERROR: {name} -> {e.error_code.value}: {e.message}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "error_id": e.error_id,
                    "error_code": e.error_code.value,
                    "status": "error",
                },
            )
            raise

        except Exception as e:
            self.logger.exception(
                f"ERROR: {name} -> {type(e).__name__}: {str(e)}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "error_type": type(e).__name__,
                    "status": "error",
                },
            )
            raise


F = TypeVar("F", bound=Callable[..., Any])


def _sanitize_param(param):
    """Reduce a parameter to something safe to log; strings may carry secrets."""
    if param is None or isinstance(param, (bool, int, float)):
        return param
    elif isinstance(param, Enum):
        return param.value
    else:
        return f"{type(param).__name__}"


def operation(name: Union[Optional[str], Callable] = None):
    """
    Decorator for service operations.

    Args:
        name: Optional operation name. If not provided, a name will be generated
             from module, class and function information.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if name is not None:
                op_name = name
            else:
                op_name = func.__name__
                if args and hasattr(args[0], "__class__"):
                    op_name = f"{args[0].__class__.__name__}.{op_name}"
                module_name = func.__module__.split(".")[-1]
                op_name = f"{module_name}.{op_name}"

            context = {"source_module": func.__module__}
            context["params"] = {k: _sanitize_param(v) for k, v in kwargs.items()}
            if len(args) > 1:
                context["positional"] = [_sanitize_param(a) for a in args[1:]]

            handler = OperationHandler()
            with handler.operation(op_name, **context):
                return func(*args, **kwargs)

        return cast(F, wrapper)

    # Used without parentheses
    if callable(name):
        func, name = name, None
        return decorator(func)

    return decorator
