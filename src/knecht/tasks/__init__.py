from ._schema import BlockerInfo, Status, Task, parse_task_ref, validate_title
from .allocator import next_id
from .codec import Format, decode_tasks, detect_format, encode_task, encode_tasks
from .done import deliver_task, done_task, start_task
from .prioritizer import pick_next, rank
from .resolver import blocker_info, dependents, ready_set
from .store import TaskStore

__all__ = [
    "BlockerInfo", "Status", "Task", "parse_task_ref", "validate_title",
    "next_id",
    "Format", "decode_tasks", "detect_format", "encode_task", "encode_tasks",
    "deliver_task", "done_task", "start_task",
    "pick_next", "rank",
    "blocker_info", "dependents", "ready_set",
    "TaskStore",
]
