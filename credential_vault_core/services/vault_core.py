"""
Entry point for the web layer: every service bound to one session.

Usage:
    with VaultCore() as core:
        item = core.secure_logins.create_item(user_id, {"item_name": "Bank"})
        core.secure_logins.grant_access(user_id, item.id, "group", group_id, "read")
    # committed on clean exit, rolled back on error
"""

from typing import Optional

from sqlalchemy.orm import Session

from ..config import AppConfig, get_config
from ..utils.encryption_utils import EncryptionCodec
from .access_control_service import AccessControlService, AccessResult
from .audit_service import AuditService
from .base_service import SessionManagedService
from .folder_service import FolderService
from .group_service import GroupService
from .identity_lookup import EmailAccountLookup, ExternalIdentityLookup
from .platform_service import PlatformCredentialService
from .secure_login_service import SecureLoginService


class VaultCore(SessionManagedService):
    """Wires the resolver, audit writer, codec and domain services together."""

    def __init__(
        self,
        session: Optional[Session] = None,
        config: Optional[AppConfig] = None,
        codec: Optional[EncryptionCodec] = None,
        identity_lookup: Optional[ExternalIdentityLookup] = None,
    ):
        super().__init__(session)
        self.config = config or get_config()
        self.codec = codec or EncryptionCodec.from_config(self.config)

        self.access = AccessControlService(self.session)
        self.audit = AuditService(self.session, self.config)
        self.secure_logins = SecureLoginService(
            self.session,
            codec=self.codec,
            config=self.config,
            access=self.access,
            audit=self.audit,
            identity_lookup=identity_lookup or EmailAccountLookup(self.session),
        )
        self.groups = GroupService(self.session, access=self.access)
        self.folders = FolderService(self.session, audit=self.audit)
        self.platforms = PlatformCredentialService(
            self.session,
            codec=self.codec,
            config=self.config,
            access=self.access,
            audit=self.audit,
        )

    def resolve_access(self, principal_id: int, secure_login_id: int) -> AccessResult:
        return self.access.resolve(principal_id, secure_login_id)

    def list_accessible_resource_ids(self, principal_id: int):
        return self.access.list_accessible_resource_ids(principal_id)
