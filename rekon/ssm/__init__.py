"""
SSM association resource.
"""

from .association import create, read, update, delete, import_state, migrate_state
from .find import find_association_by_id
from .status import wait_association_success

__all__ = [
    "create",
    "read",
    "update",
    "delete",
    "import_state",
    "migrate_state",
    "find_association_by_id",
    "wait_association_success",
]
