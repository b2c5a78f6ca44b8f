"""
Lifecycle handlers for aws_sagemaker_model_package_group_policy.

The record ID is the model package group name.
"""

import json
import logging
import threading
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..conns import AWSClient
from ..errors import NotFoundError, RemoteError, ResourceValidationError
from ..state import ResourceData
from .find import find_model_package_group_policy_by_name, is_validation_not_found
from .model_package_group import PATTERN_GROUP_NAME

logger = logging.getLogger(__name__)


RESOURCE_TYPE = "aws_sagemaker_model_package_group_policy"


def normalize_policy(policy: str) -> str:
    """
    Canonical JSON text for a policy document.

    Raises:
        ValueError: If the policy isn't a JSON object
    """
    document = json.loads(policy)
    if not isinstance(document, dict):
        raise ValueError("policy must be a JSON object")
    return json.dumps(document, sort_keys=True, separators=(",", ":"))


def policies_equivalent(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return a == b
    try:
        return json.loads(a) == json.loads(b)
    except (TypeError, ValueError):
        return False


def validate(d: ResourceData) -> Dict[str, Any]:
    name = d.get("model_package_group_name") or ""
    if not PATTERN_GROUP_NAME.match(name):
        raise ResourceValidationError(
            "model_package_group_name",
            "must be 1-63 alphanumeric characters or hyphens, starting with a letter or digit",
        )

    policy = d.get("resource_policy")
    if not policy:
        raise ResourceValidationError("resource_policy", "required")
    try:
        normalize_policy(policy)
    except ValueError as e:
        raise ResourceValidationError("resource_policy", f"invalid JSON: {e}") from e

    return d.fields()


def _put(d: ResourceData, client: AWSClient, operation: str) -> None:
    conn = client.sagemaker_conn()
    name = d.get("model_package_group_name")

    try:
        conn.put_model_package_group_policy(
            ModelPackageGroupName=name,
            ResourcePolicy=normalize_policy(d.get("resource_policy")),
        )
    except (ClientError, BotoCoreError) as e:
        raise RemoteError(operation, name, e) from e


def create(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    validate(d)
    d.is_new_resource = True

    logger.debug(f"Creating SageMaker Model Package Group Policy: {d.get('model_package_group_name')}")

    _put(d, client, "creating SageMaker Model Package Group Policy")
    d.set_id(d.get("model_package_group_name"))

    read(d, client)
    d.is_new_resource = False


def read(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    conn = client.sagemaker_conn()

    logger.debug(f"Reading SageMaker Model Package Group Policy: {d.id}")

    try:
        output = find_model_package_group_policy_by_name(conn, d.id)
    except NotFoundError as e:
        if not d.is_new_resource:
            logger.warning(f"Unable to find SageMaker Model Package Group Policy ({d.id}); removing from state")
            d.set_id("")
            return
        raise e.with_context(f"reading SageMaker Model Package Group Policy ({d.id})")

    d.set("model_package_group_name", d.id)

    remote_policy = output["ResourcePolicy"]
    if not policies_equivalent(d.get("resource_policy"), remote_policy):
        try:
            d.set("resource_policy", normalize_policy(remote_policy))
        except ValueError:
            d.set("resource_policy", remote_policy)


def update(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    validate(d)

    logger.debug(f"Updating SageMaker Model Package Group Policy: {d.id}")

    _put(d, client, "updating SageMaker Model Package Group Policy")
    read(d, client)


def delete(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    conn = client.sagemaker_conn()

    logger.debug(f"Deleting SageMaker Model Package Group Policy: {d.id}")

    try:
        conn.delete_model_package_group_policy(ModelPackageGroupName=d.id)
    except ClientError as e:
        if not is_validation_not_found(e):
            raise RemoteError("deleting SageMaker Model Package Group Policy", d.id, e) from e
    except BotoCoreError as e:
        raise RemoteError("deleting SageMaker Model Package Group Policy", d.id, e) from e

    d.set_id("")


def import_state(d: ResourceData, client: AWSClient) -> ResourceData:
    d.set("model_package_group_name", d.id)
    return d
