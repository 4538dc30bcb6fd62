"""
AES-256-GCM encryption for secret columns.

Stored values are text tokens of the form ``v1:<key_id>:<payload>`` where the
payload is url-safe base64 of nonce (12 bytes) + ciphertext + tag (16 bytes).
The token header is bound to the ciphertext as associated data, so a token
re-labelled with another key id fails authentication.

Encryption always uses the active key; decryption uses the key named in the
token, which keeps values written under a retired key readable until their
next write.
"""

import base64
import binascii
import secrets
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import CodecError, ErrorCode
from .logger import get_logger

if TYPE_CHECKING:
    from ..config import AppConfig, SecurityConfig

TOKEN_VERSION = "v1"
KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16


def _b64decode(value: str) -> bytes:
    value = value.strip().replace("+", "-").replace("/", "_")
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_key() -> str:
    """Generate a new random 256-bit key, base64 encoded for configuration."""
    return base64.urlsafe_b64encode(secrets.token_bytes(KEY_SIZE)).decode("ascii")


class EncryptionCodec:
    """Reversible authenticated encryption of individual secret strings."""

    def __init__(self, keys: Mapping[str, Union[str, bytes]], active_key_id: Optional[str] = None):
        """
        Args:
            keys: Keyring of key_id -> 32-byte key (raw bytes or base64 text)
            active_key_id: Key used for new encryptions; optional when the ring has one key

        Raises:
            CodecError: If the keyring is empty, a key is malformed, or the active id is unknown
        """
        self.logger = get_logger()

        if not keys:
            raise CodecError(
                "Encryption keyring is empty",
                error_code=ErrorCode.CONFIGURATION_ERROR,
            )

        self._keys: Dict[str, AESGCM] = {}
        for key_id, key in keys.items():
            if not key_id or ":" in key_id:
                raise CodecError(
                    f"Invalid key id '{key_id}'",
                    error_code=ErrorCode.CONFIGURATION_ERROR,
                )
            try:
                raw = key if isinstance(key, bytes) else _b64decode(key)
            except (binascii.Error, ValueError) as e:
                raise CodecError(
                    f"Key '{key_id}' is not valid base64",
                    error_code=ErrorCode.CONFIGURATION_ERROR,
                    cause=e,
                )
            if len(raw) != KEY_SIZE:
                raise CodecError(
                    f"Key '{key_id}' must be {KEY_SIZE} bytes, got {len(raw)}",
                    error_code=ErrorCode.CONFIGURATION_ERROR,
                )
            self._keys[key_id] = AESGCM(raw)

        if active_key_id is None:
            if len(self._keys) != 1:
                raise CodecError(
                    "active_key_id is required when the keyring holds several keys",
                    error_code=ErrorCode.CONFIGURATION_ERROR,
                )
            active_key_id = next(iter(self._keys))
        if active_key_id not in self._keys:
            raise CodecError(
                f"Active key id '{active_key_id}' is not in the keyring",
                error_code=ErrorCode.CONFIGURATION_ERROR,
            )
        self.active_key_id = active_key_id

    @classmethod
    def from_config(cls, config: Union["AppConfig", "SecurityConfig"]) -> "EncryptionCodec":
        """Build a codec from the security section of the application config."""
        security = getattr(config, "security", config)
        return cls(security.encryption_keys, security.active_key_id)

    @property
    def key_ids(self):
        return tuple(self._keys)

    @staticmethod
    def _header(key_id: str) -> str:
        return f"{TOKEN_VERSION}:{key_id}"

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        """
        Encrypt a secret.

        Returns:
            The token, or None for None/empty input (an absent secret is stored as NULL)
        """
        if plaintext is None or plaintext == "":
            return None

        header = self._header(self.active_key_id)
        nonce = secrets.token_bytes(NONCE_SIZE)
        try:
            sealed = self._keys[self.active_key_id].encrypt(
                nonce, plaintext.encode("utf-8"), header.encode("ascii")
            )
        except (TypeError, ValueError, UnicodeEncodeError) as e:
            raise CodecError(
                "Failed to encrypt secret", error_code=ErrorCode.ENCRYPTION_FAILED, cause=e
            )
        return f"{header}:{_b64encode(nonce + sealed)}"

    def _split(self, token: str):
        version, sep1, rest = token.partition(":")
        key_id, sep2, payload = rest.partition(":")
        if version != TOKEN_VERSION or not sep1 or not sep2 or not key_id or not payload:
            raise CodecError("Malformed ciphertext token", key_id=key_id or None)
        return key_id, payload

    def decrypt(self, ciphertext: Optional[str]) -> str:
        """
        Decrypt a token produced by encrypt().

        Returns:
            The plaintext; "" for None/empty input

        Raises:
            CodecError: On a malformed token, an unknown key id, or failed authentication
        """
        if ciphertext is None or ciphertext == "":
            return ""

        key_id, payload = self._split(ciphertext)
        aesgcm = self._keys.get(key_id)
        if aesgcm is None:
            raise CodecError("Ciphertext was sealed with an unknown key", key_id=key_id)

        try:
            data = _b64decode(payload)
        except (binascii.Error, ValueError) as e:
            raise CodecError("Malformed ciphertext payload", key_id=key_id, cause=e)
        if len(data) < NONCE_SIZE + TAG_SIZE:
            raise CodecError("Ciphertext payload too short", key_id=key_id)

        try:
            plaintext = aesgcm.decrypt(
                data[:NONCE_SIZE], data[NONCE_SIZE:], self._header(key_id).encode("ascii")
            )
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError) as e:
            raise CodecError(
                "Ciphertext failed authentication (corrupt data or wrong key)",
                key_id=key_id,
                cause=e,
            )

    def needs_rotation(self, ciphertext: Optional[str]) -> bool:
        """Report whether a stored token was sealed with a key other than the active one."""
        if not ciphertext:
            return False
        key_id, _ = self._split(ciphertext)
        return key_id != self.active_key_id

    def rotate(self, ciphertext: Optional[str]) -> Optional[str]:
        """Re-encrypt a token under the active key; tokens already current are returned as-is."""
        if not self.needs_rotation(ciphertext):
            return ciphertext or None
        return self.encrypt(self.decrypt(ciphertext))
