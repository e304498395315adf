from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

ADMIN_ROLES = frozenset({"ADMIN", "SUPER_ADMIN"})


class AuthUser(BaseModel):
    """
    Represents the authenticated caller, decoded from a bearer token.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "USER"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
