"""
Expand flat configuration values into SSM request shapes, and flatten
SSM responses back.
"""

from typing import Any, Dict, List, Optional


def expand_document_parameters(params: Dict[str, str]) -> Dict[str, List[str]]:
    """SSM takes a list of values per parameter; configuration holds exactly one."""
    return {key: [str(value)] for key, value in params.items()}


def flatten_parameters(parameters: Optional[Dict[str, List[str]]]) -> Dict[str, str]:
    result = {}
    for key, values in (parameters or {}).items():
        result[key] = ",".join(values or [])
    return result


def expand_targets(targets: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Expand configured targets into the request shape.

    Args:
        targets: List of {"key", "values"} maps

    Returns:
        List of {"Key", "Values"} maps in the same order
    """
    expanded = []
    for target in targets:
        if not target:
            continue
        expanded.append({
            "Key": target["key"],
            "Values": list(target.get("values") or []),
        })
    return expanded


def flatten_targets(targets: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    flattened = []
    for target in targets or []:
        flattened.append({
            "key": target.get("Key", ""),
            "values": list(target.get("Values") or []),
        })
    return flattened


def expand_output_location(config: Optional[List[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    """
    Expand the single-entry output_location block.

    Args:
        config: List holding at most one location map

    Returns:
        {"S3Location": {...}} or None when no location is configured
    """
    if not config or not config[0]:
        return None

    location_config = config[0]

    s3_location = {
        "OutputS3BucketName": location_config["s3_bucket_name"],
    }

    if location_config.get("s3_key_prefix") is not None:
        s3_location["OutputS3KeyPrefix"] = location_config["s3_key_prefix"]

    if location_config.get("s3_region"):
        s3_location["OutputS3Region"] = location_config["s3_region"]

    return {"S3Location": s3_location}


def flatten_output_location(location: Optional[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
    if not location or not location.get("S3Location"):
        return None

    s3_location = location["S3Location"]
    item = {"s3_bucket_name": s3_location.get("OutputS3BucketName", "")}

    if s3_location.get("OutputS3KeyPrefix") is not None:
        item["s3_key_prefix"] = s3_location["OutputS3KeyPrefix"]

    if s3_location.get("OutputS3Region") is not None:
        item["s3_region"] = s3_location["OutputS3Region"]

    return [item]
