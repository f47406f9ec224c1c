"""Platform users and the fixed four-role model."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    PARTNER = "partner"
    SUBMITTER = "submitter"


class User(BaseModel):
    id: str
    email: str
    name: str = ""
    role: Role = Role.SUBMITTER
    partner_id: Optional[str] = None
    is_active: bool = True

    @property
    def is_staff(self) -> bool:
        """Managers and admins may evaluate and move projects through the pipeline."""
        return self.role in (Role.MANAGER, Role.ADMIN)
