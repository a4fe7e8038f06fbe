from sqlalchemy import Column, String, DateTime, Text, JSON, Index
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class Project(Base):
    """
    Owner-scoped snapshot of a source tree.

    `files` holds the FileNode documents produced at ingestion time:
    [{"name", "path", "type": "file"|"folder", "content"?, "children"?}, ...]

    (email, repo_url) is the cache key for ingestion. There is no unique
    constraint on it; ProjectCache allows one ingestion per key in-process.
    """
    __tablename__ = "projects"

    __table_args__ = (
        Index('ix_projects_email', 'email'),
        Index('ix_projects_email_repo_url', 'email', 'repo_url'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False)
    name = Column(String(500), nullable=False)
    repo_url = Column(Text, nullable=True)  # Projects need not come from a clone
    path = Column(Text, nullable=False)  # Local storage path of the working copy

    files = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self, include_files: bool = True):
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "repoUrl": self.repo_url,
            "path": self.path,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if include_files:
            data["files"] = self.files or []
        return data

    def __repr__(self):
        return f"<Project {self.name} ({self.email})>"
