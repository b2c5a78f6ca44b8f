"""
Remote lookups for SSM associations.
"""

from typing import Any, Dict

from botocore.exceptions import ClientError

from ..errors import EmptyResultError, NotFoundError, RemoteError, err_code_contains


ERR_ASSOCIATION_DOES_NOT_EXIST = "AssociationDoesNotExist"


def find_association_by_id(conn, association_id: str) -> Dict[str, Any]:
    """
    Describe one association.

    Args:
        conn: boto3 SSM client
        association_id: Association ID

    Returns:
        Dict: AssociationDescription from the response

    Raises:
        NotFoundError: If the association doesn't exist
        RemoteError: For any other API failure
    """
    request = {"AssociationId": association_id}

    try:
        response = conn.describe_association(**request)
    except ClientError as e:
        if err_code_contains(e, ERR_ASSOCIATION_DOES_NOT_EXIST):
            raise NotFoundError(str(e), last_request=request) from e
        raise RemoteError("describing SSM Association", association_id, e) from e

    description = (response or {}).get("AssociationDescription")
    if not description:
        raise EmptyResultError(last_request=request)

    return description
