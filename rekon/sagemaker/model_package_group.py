"""
Lifecycle handlers for aws_sagemaker_model_package_group.
"""

import logging
import re
import threading
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..conns import AWSClient
from ..errors import NotFoundError, RekonError, RemoteError, ResourceValidationError
from ..state import ResourceData
from ..wait import StateChangeConf
from .find import find_model_package_group_by_name, is_validation_not_found

logger = logging.getLogger(__name__)


RESOURCE_TYPE = "aws_sagemaker_model_package_group"

PATTERN_GROUP_NAME = re.compile(r"^[a-zA-Z0-9](-*[a-zA-Z0-9]){0,62}$")

STATUS_PENDING = "Pending"
STATUS_IN_PROGRESS = "InProgress"
STATUS_COMPLETED = "Completed"
STATUS_DELETING = "Deleting"

CREATE_TIMEOUT = 600
DELETE_TIMEOUT = 600


def validate(d: ResourceData) -> Dict[str, Any]:
    name = d.get("model_package_group_name") or ""
    if not PATTERN_GROUP_NAME.match(name):
        raise ResourceValidationError(
            "model_package_group_name",
            "must be 1-63 alphanumeric characters or hyphens, starting with a letter or digit",
        )

    description = d.get("model_package_group_description")
    if description is not None and len(description) > 1024:
        raise ResourceValidationError("model_package_group_description", "must be at most 1024 characters")

    return d.fields()


def status_model_package_group(conn, name: str):
    def refresh():
        try:
            output = find_model_package_group_by_name(conn, name)
        except NotFoundError:
            return None, ""
        return output, output.get("ModelPackageGroupStatus", "")

    return refresh


def wait_model_package_group_completed(conn, name: str, timeout: float = CREATE_TIMEOUT,
                                       cancel: Optional[threading.Event] = None):
    conf = StateChangeConf(
        pending=[STATUS_PENDING, STATUS_IN_PROGRESS],
        target=[STATUS_COMPLETED],
        refresh=status_model_package_group(conn, name),
        timeout=timeout,
        min_interval=1.0,
    )
    return conf.wait(cancel)


def wait_model_package_group_deleted(conn, name: str, timeout: float = DELETE_TIMEOUT,
                                     cancel: Optional[threading.Event] = None) -> None:
    """Wait until DescribeModelPackageGroup stops finding the group."""
    conf = StateChangeConf(
        pending=[STATUS_DELETING],
        target=[],
        refresh=status_model_package_group(conn, name),
        timeout=timeout,
        min_interval=1.0,
        not_found_checks=1,
    )
    try:
        conf.wait(cancel)
    except NotFoundError:
        return


def create(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    validate(d)
    conn = client.sagemaker_conn()
    d.is_new_resource = True

    name = d.get("model_package_group_name")
    request = {"ModelPackageGroupName": name}

    description, ok = d.get_ok("model_package_group_description")
    if ok:
        request["ModelPackageGroupDescription"] = description

    logger.debug(f"Creating SageMaker Model Package Group: {name}")

    try:
        conn.create_model_package_group(**request)
    except (ClientError, BotoCoreError) as e:
        raise RemoteError("creating SageMaker Model Package Group", name, e) from e

    d.set_id(name)

    try:
        wait_model_package_group_completed(conn, name, cancel=cancel)
    except RekonError as e:
        raise e.with_context(f"waiting for SageMaker Model Package Group ({name}) to be created")

    read(d, client)
    d.is_new_resource = False


def read(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    conn = client.sagemaker_conn()

    try:
        group = find_model_package_group_by_name(conn, d.id)
    except NotFoundError as e:
        if not d.is_new_resource:
            logger.warning(f"Unable to find SageMaker Model Package Group ({d.id}); removing from state")
            d.set_id("")
            return
        raise e.with_context(f"reading SageMaker Model Package Group ({d.id})")

    d.set("model_package_group_name", group.get("ModelPackageGroupName"))
    d.set("model_package_group_description", group.get("ModelPackageGroupDescription"))
    d.set("arn", group.get("ModelPackageGroupArn"))


def delete(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    conn = client.sagemaker_conn()

    logger.debug(f"Deleting SageMaker Model Package Group: {d.id}")

    try:
        conn.delete_model_package_group(ModelPackageGroupName=d.id)
    except ClientError as e:
        if not is_validation_not_found(e):
            raise RemoteError("deleting SageMaker Model Package Group", d.id, e) from e
        d.set_id("")
        return
    except BotoCoreError as e:
        raise RemoteError("deleting SageMaker Model Package Group", d.id, e) from e

    try:
        wait_model_package_group_deleted(conn, d.id, cancel=cancel)
    except RekonError as e:
        raise e.with_context(f"waiting for SageMaker Model Package Group ({d.id}) to delete")

    d.set_id("")


def import_state(d: ResourceData, client: AWSClient) -> ResourceData:
    d.set("model_package_group_name", d.id)
    return d
