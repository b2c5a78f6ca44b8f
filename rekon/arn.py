"""
ARN helpers.
"""


def build_arn(partition: str, service: str, region: str, account_id: str, resource: str) -> str:
    """
    Build an ARN string.

    Args:
        partition: AWS partition (aws, aws-cn, aws-us-gov)
        service: Service namespace (e.g., ssm)
        region: Region name, may be empty for global services
        account_id: Owning account ID
        resource: Resource part (e.g., association/<id>)

    Returns:
        str: ARN in arn:partition:service:region:account:resource form
    """
    return f"arn:{partition}:{service}:{region}:{account_id}:{resource}"
