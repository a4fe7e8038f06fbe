# Room & project synchronization engine
from app.services.room_registry import RoomRegistry, Connection
from app.services.process_runner import ProcessRunner, RunHandle
from app.services.command_relay import CommandRelay
from app.services.file_tree_builder import FileTreeBuilder
from app.services.project_cache import ProjectCache
from app.services.sync_hub import SyncHub
