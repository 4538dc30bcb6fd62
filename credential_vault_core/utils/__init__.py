"""Utility modules for the credential vault core."""

from .encryption_utils import EncryptionCodec, generate_key
from .logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    PrincipalContextFilter,
    configure_logging,
    get_logger,
)

__all__ = [
    "EncryptionCodec",
    "generate_key",
    "AzureQueueHandler",
    "ContextAwareLogger",
    "PrincipalContextFilter",
    "configure_logging",
    "get_logger",
]
