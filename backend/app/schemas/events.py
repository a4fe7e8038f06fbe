"""
Inbound event payloads.

Field names are the wire contract shared with the editor client and must not
be renamed.
"""
from pydantic import BaseModel, AfterValidator
from typing import Optional, Annotated
from datetime import datetime


def _require_text(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be empty")
    return v


RequiredText = Annotated[str, AfterValidator(_require_text)]


class IdentityUser(BaseModel):
    email: RequiredText
    name: Optional[str] = None
    picture: Optional[str] = None


class IdentityAssert(BaseModel):
    user: IdentityUser
    expiresAt: Optional[datetime] = None


class RoomPayload(BaseModel):
    roomId: RequiredText


class CodeEdit(RoomPayload):
    code: str  # Full editor buffer, may be empty


class LanguageSelect(RoomPayload):
    language: RequiredText


class RunCommand(RoomPayload):
    command: RequiredText


class RunScript(RoomPayload):
    code: RequiredText


class ProjectClone(RoomPayload):
    repoUrl: RequiredText
    email: RequiredText


class ProjectsList(BaseModel):
    email: RequiredText


class FileRead(BaseModel):
    projectPath: RequiredText
    relativePath: RequiredText


class FileWrite(FileRead):
    content: str
