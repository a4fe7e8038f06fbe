"""
Sync Hub

Routes inbound editor events to the room registry, command relay and project
cache, and sends the outbound events back.

Inbound message:  {"type": "<event>", "data": {...}, "ackId": "<optional>"}
Outbound message: {"type": "<event>", "data": {...}, "timestamp": "...", "ackId"?}

Client events:
- identity-assert: {user: {email, name, picture}, expiresAt}
- room-create / room-join: {roomId}
- room-leave: {roomId}
- code-edit: {roomId, code}
- language-select: {roomId, language}
- run-command: {roomId, command}
- run-script: {roomId, code}
- project-clone: {roomId, repoUrl, email}
- projects-list: {email}
- file-read: {projectPath, relativePath}
- file-write: {projectPath, relativePath, content}

Server events:
- connected: {connectionId}
- identity-ack: {user}
- ack: {success, roomId} or {success: false, error: "Room ID is required"}
- room-created / room-joined: {roomId}
- code-sync: {roomId, code} (never echoed to the sender)
- language-sync: {roomId, language}
- command-result: {command, output}
- project-ready: {roomId, project}
- clone-error: {roomId, repoUrl, success: false, error}
- projects-result: {success, email, projects}
- file-content: {projectPath, relativePath, success, content}
- file-write-ack: {projectPath, success, relativePath, error}
- error: {event, success: false, error}

Every payload is an object, including those that carry a single value: the
room notifications send {roomId} rather than a bare id, and code-sync sends
{roomId, code} rather than the bare buffer.

Room events touch only in-memory state and run inline, which keeps each
connection's edits in order. Everything that waits on a process, the
filesystem, git or the database runs as a background task so the receive
loop keeps draining. A failing handler is logged and reported to its
requester; it never stops dispatch.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import (
    CloneError,
    CodeSyncError,
    FileAccessError,
    StorageError,
    UnknownEventError,
    ValidationError,
    error_response,
)
from app.core.logging_config import logger, set_connection_id, set_room_id
from app.schemas.events import (
    CodeEdit,
    FileRead,
    FileWrite,
    IdentityAssert,
    LanguageSelect,
    ProjectClone,
    ProjectsList,
    RoomPayload,
    RunCommand,
    RunScript,
)
from app.services.command_relay import CommandRelay
from app.services.identity_service import IdentityService
from app.services.project_cache import ProjectCache
from app.services.room_registry import Connection, RoomRegistry


PayloadT = TypeVar("PayloadT", bound=BaseModel)
Handler = Callable[[Connection, Dict[str, Any], Optional[str]], Awaitable[None]]

ROOM_ID_REQUIRED = "Room ID is required"


def parse_payload(model: Type[PayloadT], data: Any) -> PayloadT:
    """Validate an inbound payload, raising our ValidationError on failure."""
    try:
        return model.model_validate(data if data is not None else {})
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        if first.get("type") == "missing":
            message = f"{field} is required"
        else:
            message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid payload")
        raise ValidationError(message, field=field)


class SyncHub:
    """Top-level event dispatcher for editor connections."""

    INLINE_EVENTS = frozenset({
        "room-create",
        "room-join",
        "room-leave",
        "code-edit",
        "language-select",
    })

    def __init__(
        self,
        rooms: RoomRegistry,
        relay: CommandRelay,
        projects: ProjectCache,
        identity: IdentityService,
    ):
        self.rooms = rooms
        self.relay = relay
        self.projects = projects
        self.identity = identity

        self._handlers: Dict[str, Handler] = {
            "identity-assert": self.handle_identity_assert,
            "room-create": self.handle_room_create,
            "room-join": self.handle_room_join,
            "room-leave": self.handle_room_leave,
            "code-edit": self.handle_code_edit,
            "language-select": self.handle_language_select,
            "run-command": self.handle_run_command,
            "run-script": self.handle_run_script,
            "project-clone": self.handle_project_clone,
            "projects-list": self.handle_projects_list,
            "file-read": self.handle_file_read,
            "file-write": self.handle_file_write,
        }
        self._tasks: Set[asyncio.Task] = set()

    @property
    def events(self) -> Set[str]:
        return set(self._handlers)

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    # ==================== Dispatch ====================

    async def dispatch(self, connection: Connection, message: Any):
        """
        Route one inbound message.

        Returns once inline handlers finish; background handlers are only
        scheduled.
        """
        if not isinstance(message, dict):
            await self._reply_error(connection, None, ValidationError("Message must be a JSON object"))
            return

        event = message.get("type") or ""
        data = message.get("data") or {}
        ack_id = message.get("ackId")

        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"Unknown event type: {event}")
            await self._reply_error(connection, event, UnknownEventError(event), ack_id)
            return

        if event in self.INLINE_EVENTS:
            await self._run_handler(event, handler, connection, data, ack_id)
            return

        task = asyncio.create_task(
            self._run_handler(event, handler, connection, data, ack_id),
            name=f"{event}:{connection.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_handler(
        self,
        event: str,
        handler: Handler,
        connection: Connection,
        data: Dict[str, Any],
        ack_id: Optional[str],
    ):
        set_connection_id(connection.id)
        try:
            await handler(connection, data, ack_id)
        except ValidationError as e:
            logger.info(f"Rejected {event} from {connection.id}: {e.message}")
            await self._reply_error(connection, event, e, ack_id)
        except CodeSyncError as e:
            logger.warning(f"{event} failed for {connection.id}: {e.message}")
            await self._reply_error(connection, event, e, ack_id)
        except Exception as e:
            logger.log_error_with_context(e, context=f"event {event}", connection_id=connection.id)
            await self._reply_error(connection, event, CodeSyncError(str(e)), ack_id)

    async def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for background handlers. Returns False if some are still running."""
        if not self._tasks:
            return True
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        return not pending

    async def _reply_error(
        self,
        connection: Connection,
        event: Optional[str],
        error: CodeSyncError,
        ack_id: Optional[str] = None,
    ):
        await self.rooms.send_to(
            connection,
            "error",
            {"event": event, **error_response(error)},
            ack_id,
        )

    # ==================== Identity ====================

    async def handle_identity_assert(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(IdentityAssert, data)
        user = await self.identity.assert_identity(
            email=payload.user.email,
            name=payload.user.name,
            picture=payload.user.picture,
            expires_at=payload.expiresAt,
        )
        await self.rooms.send_to(connection, "identity-ack", {"user": user.to_dict()}, ack_id)

    # ==================== Rooms ====================

    async def _join_room(
        self,
        connection: Connection,
        data: Dict[str, Any],
        ack_id: Optional[str],
        notify_event: str,
    ):
        try:
            payload = parse_payload(RoomPayload, data)
        except ValidationError:
            await self.rooms.send_to(connection, "ack", {"success": False, "error": ROOM_ID_REQUIRED}, ack_id)
            return

        set_room_id(payload.roomId)
        ack = self.rooms.join(connection, payload.roomId)
        await self.rooms.send_to(connection, "ack", ack, ack_id)
        await self.rooms.broadcast_to_all(payload.roomId, notify_event, {"roomId": payload.roomId})

    async def handle_room_create(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        await self._join_room(connection, data, ack_id, "room-created")

    async def handle_room_join(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        await self._join_room(connection, data, ack_id, "room-joined")

    async def handle_room_leave(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(RoomPayload, data)
        self.rooms.leave(connection, payload.roomId)

    async def handle_code_edit(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(CodeEdit, data)
        await self.rooms.broadcast_to_others(
            connection,
            payload.roomId,
            "code-sync",
            {"roomId": payload.roomId, "code": payload.code},
        )

    async def handle_language_select(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(LanguageSelect, data)
        await self.rooms.broadcast_to_all(
            payload.roomId,
            "language-sync",
            {"roomId": payload.roomId, "language": payload.language},
        )

    # ==================== Execution ====================

    async def handle_run_command(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(RunCommand, data)
        set_room_id(payload.roomId)
        await self.relay.interactive_command(payload.roomId, payload.command)

    async def handle_run_script(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(RunScript, data)
        set_room_id(payload.roomId)
        await self.relay.ephemeral_script(payload.roomId, payload.code)

    # ==================== Projects ====================

    async def handle_project_clone(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(ProjectClone, data)
        set_room_id(payload.roomId)

        try:
            project = await self.projects.ingest(payload.email, payload.repoUrl)
        except CloneError as e:
            logger.warning(f"Clone failed for {payload.repoUrl}: {e.message}")
            await self.rooms.send_to(
                connection,
                "clone-error",
                {"roomId": payload.roomId, "repoUrl": payload.repoUrl, **error_response(e)},
                ack_id,
            )
            return

        await self.rooms.broadcast_to_all(
            payload.roomId,
            "project-ready",
            {"roomId": payload.roomId, "project": project.to_dict()},
        )

    async def handle_projects_list(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(ProjectsList, data)
        try:
            projects = await self.projects.list_by_owner(payload.email)
        except StorageError as e:
            await self.rooms.send_to(
                connection,
                "projects-result",
                {"email": payload.email, "projects": [], **error_response(e)},
                ack_id,
            )
            return

        await self.rooms.send_to(
            connection,
            "projects-result",
            {
                "success": True,
                "email": payload.email,
                "projects": [project.to_dict() for project in projects],
            },
            ack_id,
        )

    async def handle_file_read(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(FileRead, data)
        reply = {"projectPath": payload.projectPath, "relativePath": payload.relativePath}
        try:
            content = await self.projects.read_file(payload.projectPath, payload.relativePath)
        except FileAccessError as e:
            await self.rooms.send_to(connection, "file-content", {**reply, "content": "", **error_response(e)}, ack_id)
            return

        await self.rooms.send_to(connection, "file-content", {**reply, "success": True, "content": content}, ack_id)

    async def handle_file_write(self, connection: Connection, data: Dict[str, Any], ack_id: Optional[str]):
        payload = parse_payload(FileWrite, data)
        result = await self.projects.write_file(payload.projectPath, payload.relativePath, payload.content)
        await self.rooms.send_to(
            connection,
            "file-write-ack",
            {"projectPath": payload.projectPath, **result.model_dump()},
            ack_id,
        )
