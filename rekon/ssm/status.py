"""
Association status refresh and the wait-for-success poller.
"""

import logging
import threading
from typing import Any, Dict, Optional

from ..errors import NotFoundError
from ..wait import StateChangeConf
from .find import find_association_by_id

logger = logging.getLogger(__name__)


ASSOCIATION_STATUS_PENDING = "Pending"
ASSOCIATION_STATUS_SUCCESS = "Success"


def status_association(conn, association_id: str):
    """
    Build a refresh function reporting the association's overview status.

    DescribeAssociation doesn't reliably return the root-level Status, so
    Overview.Status is used.
    """
    def refresh():
        try:
            output = find_association_by_id(conn, association_id)
        except NotFoundError:
            return None, ""

        overview = output.get("Overview")
        if not overview:
            return None, ""

        return output, overview.get("Status", "")

    return refresh


def _detailed_status(output: Dict[str, Any]) -> Optional[str]:
    return (output.get("Overview") or {}).get("DetailedStatus")


def wait_association_success(
    conn,
    association_id: str,
    timeout: float,
    cancel: Optional[threading.Event] = None,
    min_interval: float = 0.5,
    max_interval: float = 10.0,
) -> Optional[Dict[str, Any]]:
    """
    Block until the association reports Success.

    Args:
        conn: boto3 SSM client
        association_id: Association ID
        timeout: Seconds to wait; 0 skips the wait entirely
        cancel: Event that aborts the wait when set

    Returns:
        The final AssociationDescription, or None when no wait was made
    """
    conf = StateChangeConf(
        pending=[ASSOCIATION_STATUS_PENDING],
        target=[ASSOCIATION_STATUS_SUCCESS],
        refresh=status_association(conn, association_id),
        timeout=timeout,
        min_interval=min_interval,
        max_interval=max_interval,
        describe_failure=_detailed_status,
    )

    output = conf.wait(cancel)
    if output is not None:
        logger.info(f"SSM Association {association_id} reached {ASSOCIATION_STATUS_SUCCESS}")
    return output
