from pydantic import BaseModel

from journal.core.roles import Role


class RoleUpdate(BaseModel):
    role: Role


class StatusUpdate(BaseModel):
    is_active: bool
