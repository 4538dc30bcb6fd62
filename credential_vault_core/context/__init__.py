"""Context management for operations and the acting principal."""

from .operation_context import OperationContext, operation
from .principal_context import Principal, PrincipalContext, principal_context, require_principal

__all__ = [
    "operation",
    "OperationContext",
    "Principal",
    "PrincipalContext",
    "principal_context",
    "require_principal",
]
