from pydantic import BaseModel
from typing import Optional, List, Literal


class FileNode(BaseModel):
    """One file or folder of a materialized project tree"""
    name: str
    path: str  # Relative to the project root, '/'-separated
    type: Literal["file", "folder"]
    content: Optional[str] = None  # Files only; empty when binary, too large or unreadable
    children: Optional[List["FileNode"]] = None  # Folders only


class FileWriteResult(BaseModel):
    success: bool
    relativePath: str
    error: Optional[str] = None
