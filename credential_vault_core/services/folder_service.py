"""
Owner-private folders for organizing vault items.

Folders carry no permissions: they only group the owner's own items. Parent
chains must stay acyclic, and sibling names are unique per owner.
"""

from typing import Any, Dict, List, Optional, Set, Union

from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..db.db_vault_models import SecureLogin, SecureLoginFolder
from ..enums import AuditAction, ResourceType
from ..exceptions import ErrorCode, ValidationError, duplicate, not_found
from ..repositories.record_store import Op, Predicate, where
from ..schemas.audit_schemas import AuditOrigin
from ..schemas.vault_schemas import FolderCreate, FolderRead, FolderUpdate
from .audit_service import AuditService
from .base_service import SessionManagedService


class FolderService(SessionManagedService):
    """Folder CRUD with cycle prevention on re-parenting."""

    def __init__(self, session: Optional[Session] = None, audit: Optional[AuditService] = None):
        super().__init__(session)
        self.audit = audit or AuditService(self.session)

    def _get_owned(self, owner_id: int, folder_id: int, label: str = "Folder") -> SecureLoginFolder:
        folder = self.store.find_one(SecureLoginFolder, where(id=folder_id, owner_id=owner_id))
        if folder is None:
            raise not_found(label, folder_id=folder_id)
        return folder

    def _ensure_unique_sibling(
        self, owner_id: int, parent_id: Optional[int], name: str, exclude_id: Optional[int] = None
    ) -> None:
        conditions = where(owner_id=owner_id, parent_id=parent_id, name=name)
        if exclude_id is not None:
            conditions.append(Predicate("id", Op.NE, exclude_id))
        if self.store.exists(SecureLoginFolder, conditions):
            raise duplicate("Folder", owner_id=owner_id, parent_id=parent_id, name=name)

    def _check_no_cycle(self, folder_id: int, new_parent_id: int) -> None:
        """
        Walk up from the proposed parent. Reaching the folder itself, or
        revisiting any ancestor, means the move would leave a cycle.
        """
        if new_parent_id == folder_id:
            raise ValidationError(
                "A folder cannot be its own parent",
                field="parent_id",
                error_code=ErrorCode.CYCLE_DETECTED,
                folder_id=folder_id,
            )

        visited: Set[int] = set()
        current: Optional[int] = new_parent_id
        while current is not None:
            if current == folder_id or current in visited:
                raise ValidationError(
                    "Move would create a cycle",
                    field="parent_id",
                    error_code=ErrorCode.CYCLE_DETECTED,
                    folder_id=folder_id,
                    parent_id=new_parent_id,
                )
            visited.add(current)
            parents = self.store.column_values(SecureLoginFolder, "parent_id", where(id=current))
            current = parents[0] if parents else None

    def _to_read(self, folder: SecureLoginFolder) -> FolderRead:
        read = FolderRead.model_validate(folder)
        read.item_count = self.store.count(SecureLogin, where(folder_id=folder.id))
        read.child_count = self.store.count(SecureLoginFolder, where(parent_id=folder.id))
        return read

    @operation()
    def create_folder(
        self, owner_id: int, data: Union[FolderCreate, Dict[str, Any]]
    ) -> FolderRead:
        """
        Create a folder at the root or under one of the owner's folders.

        Raises:
            ValidationError: Missing name
            NotFoundError: Parent is not one of the owner's folders
            ConflictError: A sibling already has this name
        """
        data = self._coerce(FolderCreate, data)

        with self.transaction("create_folder"):
            if data.parent_id is not None:
                self._get_owned(owner_id, data.parent_id, label="Parent folder")
            self._ensure_unique_sibling(owner_id, data.parent_id, data.name)
            folder = self.store.create(
                SecureLoginFolder,
                {
                    "owner_id": owner_id,
                    "parent_id": data.parent_id,
                    "name": data.name,
                    "description": (data.description or "").strip() or None,
                    "color": data.color,
                    "icon": data.icon,
                },
            )

        return self._to_read(folder)

    @operation()
    def get_folder(self, owner_id: int, folder_id: int) -> FolderRead:
        return self._to_read(self._get_owned(owner_id, folder_id))

    @operation()
    def update_folder(
        self, owner_id: int, folder_id: int, data: Union[FolderUpdate, Dict[str, Any]]
    ) -> FolderRead:
        """
        Partial update. Supplying parent_id re-parents the folder (None moves it
        to the root); the cycle check runs before anything is written.
        """
        data = self._coerce(FolderUpdate, data)
        fields = data.model_dump(exclude_unset=True)
        folder = self._get_owned(owner_id, folder_id)

        with self.transaction("update_folder", folder_id):
            parent_id = fields.get("parent_id", folder.parent_id)
            if "parent_id" in fields and parent_id is not None:
                self._check_no_cycle(folder_id, parent_id)
                self._get_owned(owner_id, parent_id, label="Parent folder")

            name = fields.get("name") or folder.name
            if name != folder.name or parent_id != folder.parent_id:
                self._ensure_unique_sibling(owner_id, parent_id, name, exclude_id=folder_id)

            updates: Dict[str, Any] = {}
            if fields.get("name"):
                updates["name"] = fields["name"]
            if "description" in fields:
                updates["description"] = (fields["description"] or "").strip() or None
            for key in ("color", "icon"):
                if fields.get(key):
                    updates[key] = fields[key]
            if "parent_id" in fields:
                updates["parent_id"] = parent_id

            if updates:
                self.store.update(folder, updates)

        return self._to_read(folder)

    def move_folder(self, owner_id: int, folder_id: int, parent_id: Optional[int]) -> FolderRead:
        """Re-parent a folder; None moves it to the root."""
        return self.update_folder(owner_id, folder_id, {"parent_id": parent_id})

    @operation()
    def delete_folder(
        self, owner_id: int, folder_id: int, origin: Optional[AuditOrigin] = None
    ) -> None:
        """
        Delete an empty-of-subfolders folder. Items it holds move to the root,
        each audited as an update of folder_id.

        Raises:
            NotFoundError: Not one of the owner's folders
            ValidationError: The folder still has sub-folders
        """
        folder = self._get_owned(owner_id, folder_id)

        with self.transaction("delete_folder", folder_id):
            if self.store.exists(SecureLoginFolder, where(parent_id=folder_id)):
                raise ValidationError(
                    "Cannot delete folder with subfolders",
                    field="folder_id",
                    error_code=ErrorCode.BUSINESS_RULE_VIOLATION,
                    folder_id=folder_id,
                )
            items = self.store.find_all(
                SecureLogin, where(folder_id=folder_id), order_by=[SecureLogin.id]
            )
            for item in items:
                self.store.update(item, {"folder_id": None, "updated_by": owner_id})
                self.audit.record(
                    ResourceType.SECURE_LOGIN,
                    item.id,
                    AuditAction.UPDATE,
                    owner_id,
                    field_name="folder_id",
                    old_value=folder_id,
                    new_value=None,
                    origin=origin,
                )
            moved = len(items)
            self.store.delete(folder)

        self.logger.info(
            "Folder deleted", extra={"folder_id": folder_id, "items_moved_to_root": moved}
        )

    @operation()
    def list_folders(self, owner_id: int) -> List[FolderRead]:
        """All of the owner's folders, by name."""
        folders = self.store.find_all(
            SecureLoginFolder,
            where(owner_id=owner_id),
            order_by=[SecureLoginFolder.name, SecureLoginFolder.id],
        )
        return [self._to_read(f) for f in folders]
