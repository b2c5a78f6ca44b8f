"""
Resource records and their on-disk store.
"""

import copy
import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import load_settings


RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


class ResourceData:
    """
    Flat field map for one resource plus its remote identifier.

    An empty id means the resource does not exist remotely. Handlers clear
    the id to tell the caller the record should be dropped.
    """

    def __init__(
        self,
        fields: Optional[Dict[str, Any]] = None,
        resource_id: str = "",
        is_new_resource: bool = False,
        schema_version: int = 0,
    ):
        self._fields: Dict[str, Any] = {}
        for key, value in (fields or {}).items():
            self.set(key, value)
        self._id = resource_id or ""
        self.is_new_resource = is_new_resource
        self.schema_version = schema_version

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, value: Optional[str]) -> None:
        """
        Set or clear the identifier.

        Raises:
            ValueError: If a different identifier was already assigned
        """
        value = value or ""
        if value and self._id and value != self._id:
            raise ValueError(f"Resource identifier already assigned: {self._id}")
        self._id = value

    def get(self, key: str) -> Any:
        return self._fields.get(key)

    def get_ok(self, key: str) -> Tuple[Any, bool]:
        """
        Get a field and whether it holds a non-zero value.

        Absent, None, "", False, 0 and empty collections all count as unset.
        """
        value = self._fields.get(key)
        if value is None:
            return None, False
        if isinstance(value, (str, list, dict, tuple)) and len(value) == 0:
            return value, False
        if value is False or (isinstance(value, int) and not isinstance(value, bool) and value == 0):
            return value, False
        return value, True

    def set(self, key: str, value: Any) -> None:
        if value is None:
            self._fields.pop(key, None)
        else:
            self._fields[key] = copy.deepcopy(value)

    def fields(self) -> Dict[str, Any]:
        return copy.deepcopy(self._fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self._id,
            "schema_version": self.schema_version,
            "attributes": self.fields(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceData":
        return cls(
            fields=data.get("attributes", {}),
            resource_id=data.get("id", ""),
            schema_version=data.get("schema_version", 0),
        )

    def __repr__(self) -> str:
        return f"ResourceData(id={self._id!r}, fields={self._fields!r})"


def get_rekon_home() -> Path:
    """
    Get the Rekon home directory.

    Returns:
        Path: Rekon home directory from the current settings
    """
    return load_settings().home_path


def get_record_path(resource_type: str, resource_id: str) -> Path:
    """
    Get the file path for a stored record.

    Args:
        resource_type: Resource type name (e.g., aws_ssm_association)
        resource_id: Remote identifier

    Returns:
        Path: Record file path

    Raises:
        ValueError: If either name is not filesystem safe
    """
    if not RECORD_ID_PATTERN.match(resource_type):
        raise ValueError(f"Invalid resource type: {resource_type}")
    if not RECORD_ID_PATTERN.match(resource_id) or resource_id in (".", ".."):
        raise ValueError(f"Invalid resource ID: {resource_id}")

    return get_rekon_home() / resource_type / f"{resource_id}.json"


def write_record(resource_type: str, data: ResourceData) -> Path:
    """
    Persist a record.

    Args:
        resource_type: Resource type name
        data: Record to write; must have an identifier

    Returns:
        Path: Written file
    """
    if not data.id:
        raise ValueError("Cannot persist a record without an identifier")

    path = get_record_path(resource_type, data.id)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = data.to_dict()
    payload["resource_type"] = resource_type
    payload["updated_at"] = datetime.now().isoformat()

    with open(path, "w") as f:
        json.dump(payload, f, indent=2, sort_keys=True)

    return path


def read_record(resource_type: str, resource_id: str) -> ResourceData:
    """
    Load a record.

    Raises:
        FileNotFoundError: If the record doesn't exist
    """
    path = get_record_path(resource_type, resource_id)

    if not path.exists():
        raise FileNotFoundError(f"Record {resource_type}/{resource_id} not found")

    with open(path, "r") as f:
        return ResourceData.from_dict(json.load(f))


def record_exists(resource_type: str, resource_id: str) -> bool:
    return get_record_path(resource_type, resource_id).exists()


def remove_record(resource_type: str, resource_id: str) -> bool:
    """
    Remove a stored record.

    Returns:
        bool: True if a record was removed
    """
    path = get_record_path(resource_type, resource_id)

    if path.exists():
        path.unlink()
        return True
    return False


def list_records(resource_type: Optional[str] = None) -> List[Tuple[str, str]]:
    """
    List stored records.

    Args:
        resource_type: Only list this type when given

    Returns:
        List of (resource_type, resource_id) pairs, sorted
    """
    rekon_home = get_rekon_home()

    if not rekon_home.exists():
        return []

    records = []
    for type_dir in rekon_home.iterdir():
        if not type_dir.is_dir():
            continue
        if resource_type and type_dir.name != resource_type:
            continue
        for item in type_dir.glob("*.json"):
            records.append((type_dir.name, item.stem))

    return sorted(records)

