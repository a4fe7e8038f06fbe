"""
Command Relay

Runs commands on behalf of a room and shares the result with everyone in it:
- interactive_command: a shell command line, run verbatim
- ephemeral_script: Python source written to a throwaway file, run once, deleted

Both broadcast `command-result` {command, output} to the originating room.
"""

import shlex
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiofiles
import aiofiles.os

from app.core.config import settings
from app.core.logging_config import logger
from app.services.process_runner import ProcessRunner
from app.services.room_registry import RoomRegistry


COMMAND_RESULT_EVENT = "command-result"
SCRIPT_LABEL = "python script"


class CommandRelay:
    """Bridges ProcessRunner output to room broadcasts."""

    def __init__(
        self,
        runner: ProcessRunner,
        rooms: RoomRegistry,
        script_dir: Optional[Union[str, Path]] = None,
        interpreter: Optional[str] = None,
        command_timeout_ms: Optional[int] = None,
        script_timeout_ms: Optional[int] = None,
    ):
        self.runner = runner
        self.rooms = rooms
        self.script_dir = Path(script_dir) if script_dir else settings.SCRIPT_DIR
        self.interpreter = interpreter or settings.SCRIPT_INTERPRETER
        self.command_timeout_ms = command_timeout_ms or settings.COMMAND_TIMEOUT_MS
        self.script_timeout_ms = script_timeout_ms or settings.SCRIPT_TIMEOUT_MS

    async def interactive_command(self, room_id: str, command: str) -> Dict[str, Any]:
        """Run `command` and broadcast {command, output} to room_id."""
        handle = self.runner.start(command, self.command_timeout_ms)
        output = await handle.result()

        result = {"command": command, "output": output}
        await self.rooms.broadcast_to_all(room_id, COMMAND_RESULT_EVENT, result)
        return result

    async def ephemeral_script(self, room_id: str, code: str) -> Dict[str, Any]:
        """
        Write `code` to a fresh temp file, run it, broadcast the result and
        remove the file whatever happened.
        """
        script_path = self.new_script_path()

        try:
            try:
                await aiofiles.os.makedirs(self.script_dir, exist_ok=True)
                async with aiofiles.open(script_path, "w", encoding="utf-8") as f:
                    await f.write(code)
            except OSError as e:
                logger.error(f"[CommandRelay] Failed to write script {script_path}: {e}")
                output = f"Failed to write script: {e}"
            else:
                command = f"{self.interpreter} {shlex.quote(str(script_path))}"
                output = await self.runner.start(command, self.script_timeout_ms).result()

            result = {"command": SCRIPT_LABEL, "output": output}
            await self.rooms.broadcast_to_all(room_id, COMMAND_RESULT_EVENT, result)
            return result
        finally:
            await self._remove_script(script_path)

    def new_script_path(self) -> Path:
        """Timestamp plus random suffix, unique across concurrent requests."""
        return self.script_dir / f"script_{time.time_ns()}_{uuid.uuid4().hex[:8]}.py"

    async def _remove_script(self, script_path: Path):
        try:
            await aiofiles.os.remove(script_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[CommandRelay] Failed to delete {script_path}: {e}")
