"""
Remote lookups for SageMaker model package groups and their policies.
"""

from typing import Any, Dict

from botocore.exceptions import ClientError

from ..errors import EmptyResultError, NotFoundError, RemoteError, err_message_contains


ERR_VALIDATION_EXCEPTION = "ValidationException"

# SageMaker reports a missing group as a validation error with one of these messages
NOT_FOUND_FRAGMENTS = ["does not exist", "Cannot find Model Package Group"]


def is_validation_not_found(err: Exception) -> bool:
    return any(err_message_contains(err, ERR_VALIDATION_EXCEPTION, fragment) for fragment in NOT_FOUND_FRAGMENTS)


def find_model_package_group_by_name(conn, name: str) -> Dict[str, Any]:
    """
    Describe a model package group.

    Raises:
        NotFoundError: If the group doesn't exist
        RemoteError: For any other API failure
    """
    request = {"ModelPackageGroupName": name}

    try:
        response = conn.describe_model_package_group(**request)
    except ClientError as e:
        if is_validation_not_found(e):
            raise NotFoundError(str(e), last_request=request) from e
        raise RemoteError("reading SageMaker Model Package Group", name, e) from e

    if not response:
        raise EmptyResultError(last_request=request)

    return response


def find_model_package_group_policy_by_name(conn, name: str) -> Dict[str, Any]:
    """
    Get the resource policy attached to a model package group.

    Args:
        conn: boto3 SageMaker client
        name: Model package group name

    Returns:
        Dict: GetModelPackageGroupPolicy response

    Raises:
        NotFoundError: If the group or its policy doesn't exist
        RemoteError: For any other API failure
    """
    request = {"ModelPackageGroupName": name}

    try:
        response = conn.get_model_package_group_policy(**request)
    except ClientError as e:
        if is_validation_not_found(e):
            raise NotFoundError(str(e), last_request=request) from e
        raise RemoteError("reading SageMaker Model Package Group Policy", name, e) from e

    if not response or not response.get("ResourcePolicy"):
        raise EmptyResultError(last_request=request)

    return response
