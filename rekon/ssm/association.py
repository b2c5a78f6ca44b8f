"""
Lifecycle handlers for aws_ssm_association.

Every handler receives the record and an explicit AWSClient handle. AWS
creates a new association version on every update, so update sends every
configured mutable field, not only the changed ones.
"""

import logging
import threading
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..arn import build_arn
from ..conns import AWSClient
from ..errors import NotFoundError, RekonError, RemoteError, err_code_contains
from ..state import ResourceData
from .find import ERR_ASSOCIATION_DOES_NOT_EXIST, find_association_by_id
from .flex import (
    expand_document_parameters,
    expand_output_location,
    expand_targets,
    flatten_output_location,
    flatten_parameters,
    flatten_targets,
)
from .schema import SCHEMA_VERSION, validate_config
from .status import wait_association_success

logger = logging.getLogger(__name__)


# (record field, API member) pairs copied as plain strings in both directions
STRING_FIELDS = [
    ("association_name", "AssociationName"),
    ("document_version", "DocumentVersion"),
    ("schedule_expression", "ScheduleExpression"),
    ("compliance_severity", "ComplianceSeverity"),
    ("max_concurrency", "MaxConcurrency"),
    ("max_errors", "MaxErrors"),
    ("automation_target_parameter_name", "AutomationTargetParameterName"),
]


def validate(d: ResourceData) -> Dict[str, Any]:
    return validate_config(d.fields())


def _expand_mutable_fields(d: ResourceData) -> Dict[str, Any]:
    """Request members shared by CreateAssociation and UpdateAssociation."""
    request: Dict[str, Any] = {}

    if d.get_ok("apply_only_at_cron_interval")[1]:
        request["ApplyOnlyAtCronInterval"] = True

    for field, member in STRING_FIELDS:
        value, ok = d.get_ok(field)
        if ok:
            request[member] = value

    parameters, ok = d.get_ok("parameters")
    if ok:
        request["Parameters"] = expand_document_parameters(parameters)

    targets, ok = d.get_ok("targets")
    if ok:
        request["Targets"] = expand_targets(targets)

    output_location, ok = d.get_ok("output_location")
    if ok:
        request["OutputLocation"] = expand_output_location(output_location)

    return request


def create(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    """
    Create the association, optionally wait for Success, then read it back.

    Raises:
        ResourceValidationError: If the configuration is invalid
        RemoteError: If CreateAssociation fails
        WaitTimeoutError: If the association doesn't reach Success in time
    """
    validate(d)
    conn = client.ssm_conn()
    d.is_new_resource = True

    logger.debug(f"SSM association create: {d.get('name')}")

    request = {"Name": d.get("name")}

    instance_id, ok = d.get_ok("instance_id")
    if ok:
        request["InstanceId"] = instance_id

    request.update(_expand_mutable_fields(d))

    try:
        response = conn.create_association(**request)
    except (ClientError, BotoCoreError) as e:
        raise RemoteError("creating SSM association", d.get("name"), e) from e

    description = (response or {}).get("AssociationDescription")
    if not description:
        raise RekonError("creating SSM association: AssociationDescription was empty")

    d.set_id(description["AssociationId"])
    d.schema_version = SCHEMA_VERSION

    timeout, ok = d.get_ok("wait_for_success_timeout_seconds")
    if ok:
        try:
            wait_association_success(conn, d.id, float(timeout), cancel)
        except RekonError as e:
            raise e.with_context(f"waiting for SSM Association ({d.id}) to be Success")

    read(d, client)
    d.is_new_resource = False


def read(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    """
    Refresh the record from DescribeAssociation.

    A missing association clears the id unless the record is being
    created, where it is an error.
    """
    conn = client.ssm_conn()

    logger.debug(f"Reading SSM Association: {d.id}")

    try:
        association = find_association_by_id(conn, d.id)
    except NotFoundError as e:
        if not d.is_new_resource:
            logger.warning(f"Unable to find SSM Association ({d.id}); removing from state")
            d.set_id("")
            return
        raise e.with_context(f"reading SSM Association ({d.id})")

    association_id = association.get("AssociationId", d.id)

    d.set("arn", build_arn(
        client.partition,
        "ssm",
        client.region,
        client.account_id,
        f"association/{association_id}",
    ))
    d.set("apply_only_at_cron_interval", bool(association.get("ApplyOnlyAtCronInterval", False)))
    d.set("association_id", association_id)
    d.set("name", association.get("Name"))
    d.set("instance_id", association.get("InstanceId"))

    for field, member in STRING_FIELDS:
        d.set(field, association.get(member))

    d.set("parameters", flatten_parameters(association.get("Parameters")))
    d.set("targets", flatten_targets(association.get("Targets")))
    d.set("output_location", flatten_output_location(association.get("OutputLocation")))

    d.schema_version = SCHEMA_VERSION


def update(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    validate(d)
    conn = client.ssm_conn()

    logger.debug(f"SSM Association update: {d.id}")

    request = {"AssociationId": d.id}
    request.update(_expand_mutable_fields(d))

    try:
        conn.update_association(**request)
    except (ClientError, BotoCoreError) as e:
        raise RemoteError("updating SSM association", d.id, e) from e

    read(d, client)


def delete(d: ResourceData, client: AWSClient, cancel: Optional[threading.Event] = None) -> None:
    """Delete the association; an association that is already gone is not an error."""
    conn = client.ssm_conn()

    logger.debug(f"Deleting SSM Association: {d.id}")

    try:
        conn.delete_association(AssociationId=d.id)
    except ClientError as e:
        if not err_code_contains(e, ERR_ASSOCIATION_DOES_NOT_EXIST):
            raise RemoteError("deleting SSM association", d.id, e) from e
        logger.debug(f"SSM Association {d.id} already deleted")
    except BotoCoreError as e:
        raise RemoteError("deleting SSM association", d.id, e) from e

    d.set_id("")


def import_state(d: ResourceData, client: AWSClient) -> ResourceData:
    """The import ID is the association ID, so the record passes through."""
    return d


def migrate_state(version: int, d: ResourceData) -> ResourceData:
    """
    Upgrade a stored record to the current schema version.

    Version 0 records kept the association ID only as the record ID.
    """
    if version == 0:
        logger.info("Found SSM Association state v0; migrating to v1")
        if d.id:
            d.set("association_id", d.id)
        version = 1

    d.schema_version = version
    return d
