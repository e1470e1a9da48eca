"""
Permission Models
Capability sets carried by grants and share link recipients
"""

from typing import Any, Dict

from pydantic import BaseModel

from sharegate.core.exceptions import PolicyViolationException
from sharegate.models.enums import Action


class PermissionSet(BaseModel):
    """The four independent document capabilities"""

    can_view: bool = False
    can_download: bool = False
    can_edit: bool = False
    can_share: bool = False

    model_config = {"from_attributes": True, "frozen": True}

    @classmethod
    def full(cls) -> "PermissionSet":
        return cls(can_view=True, can_download=True, can_edit=True, can_share=True)

    @classmethod
    def none(cls) -> "PermissionSet":
        return cls()

    @classmethod
    def from_row(cls, row: Any) -> "PermissionSet":
        """Build from any object exposing can_* attributes"""
        return cls.model_validate(row)

    def allows(self, action: Action) -> bool:
        return bool(getattr(self, action.column))

    def any(self) -> bool:
        return self.can_view or self.can_download or self.can_edit or self.can_share

    def issubset(self, other: "PermissionSet") -> bool:
        return all(other.allows(a) for a in Action if self.allows(a))

    def as_columns(self) -> Dict[str, bool]:
        return self.model_dump()

    def access_level(self) -> str:
        """Highest capability held: share > edit > download > view > none"""
        if self.can_share:
            return "share"
        if self.can_edit:
            return "edit"
        if self.can_download:
            return "download"
        if self.can_view:
            return "view"
        return "none"


def check_view_dependency(permissions: PermissionSet) -> None:
    """Download, edit and share all require view"""
    dependent = [
        a.value
        for a in (Action.DOWNLOAD, Action.EDIT, Action.SHARE)
        if permissions.allows(a)
    ]
    if dependent and not permissions.can_view:
        raise PolicyViolationException(
            message="'view' must be enabled before any other permission",
            details={"dependent_permissions": dependent},
        )
