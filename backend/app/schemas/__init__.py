# Pydantic schemas
from app.schemas.project import FileNode, FileWriteResult
from app.schemas.events import (
    IdentityAssert,
    IdentityUser,
    RoomPayload,
    CodeEdit,
    LanguageSelect,
    RunCommand,
    RunScript,
    ProjectClone,
    ProjectsList,
    FileRead,
    FileWrite,
)

__all__ = [
    "FileNode",
    "FileWriteResult",
    "IdentityAssert",
    "IdentityUser",
    "RoomPayload",
    "CodeEdit",
    "LanguageSelect",
    "RunCommand",
    "RunScript",
    "ProjectClone",
    "ProjectsList",
    "FileRead",
    "FileWrite",
]
