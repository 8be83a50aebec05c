from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime

UNASSIGNED = "unassigned"


class Task(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    description: str = ""
    deadline: datetime
    completed: bool = False
    assignedUser: Optional[str] = None
    assignedUserName: str = UNASSIGNED
    dateCreated: datetime

    @property
    def is_pending(self) -> bool:
        return self.assignedUser is not None and not self.completed

    @classmethod
    def from_doc(cls, doc: dict) -> "Task":
        return cls.model_validate(doc)

    def to_doc(self) -> dict:
        return self.model_dump(by_alias=True)


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    email: str
    pendingTasks: List[str] = []
    dateCreated: datetime

    @classmethod
    def from_doc(cls, doc: dict) -> "User":
        return cls.model_validate(doc)

    def to_doc(self) -> dict:
        return self.model_dump(by_alias=True)


class TaskIn(BaseModel):
    """Body of POST/PUT /api/tasks.

    `_id`, `dateCreated` and `assignedUserName` are server-managed: they are
    accepted so a fetched task can be sent back as-is, but their values are ignored.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(min_length=1)
    description: Optional[str] = None
    deadline: datetime
    completed: bool = False
    assignedUser: Optional[str] = None
    assignedUserName: Optional[str] = None
    id: Optional[str] = Field(default=None, alias="_id")
    dateCreated: Optional[datetime] = None

    @field_validator("assignedUser")
    @classmethod
    def _normalize_assignee(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v or v == UNASSIGNED:
            return None
        return v


class UserIn(BaseModel):
    """Body of POST/PUT /api/users."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    pendingTasks: List[str] = []
    id: Optional[str] = Field(default=None, alias="_id")
    dateCreated: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def _strip_email(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("email is required")
        return v
