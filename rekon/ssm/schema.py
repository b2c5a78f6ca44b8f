"""
Configuration schema for SSM associations.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ResourceValidationError

logger = logging.getLogger(__name__)


RESOURCE_TYPE = "aws_ssm_association"

SCHEMA_VERSION = 1

MAX_TARGETS = 5

MAX_TARGET_VALUES = 50

COMPLIANCE_SEVERITY_VALUES = ["CRITICAL", "HIGH", "MEDIUM", "LOW", "UNSPECIFIED"]

PATTERN_ASSOCIATION_NAME = re.compile(r"^[a-zA-Z0-9_\-.]{3,128}$")

PATTERN_DOCUMENT_VERSION = re.compile(r"^(\$LATEST|\$DEFAULT|[1-9][0-9]*)$")

PATTERN_MAX_CONCURRENCY = re.compile(r"^([1-9][0-9]*|[1-9][0-9]%|[1-9]%|100%)$")

PATTERN_MAX_ERRORS = re.compile(r"^([1-9][0-9]*|[0]|[1-9][0-9]%|[0-9]%|100%)$")

MESSAGE_NUMBER_OR_PERCENT = "must be a valid number (e.g. 10) or percentage including the percent sign (e.g. 10%)"

# Changing any of these replaces the association
FORCE_NEW_FIELDS = ["name", "instance_id"]

# Set by the remote side only
COMPUTED_FIELDS = ["arn", "association_id"]

INSTANCE_ID_DEPRECATION = (
    "instance_id is deprecated, use 'targets' instead. "
    "https://docs.aws.amazon.com/systems-manager/latest/APIReference/API_CreateAssociation.html"
)


class Target(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: str = Field(min_length=1, max_length=163)
    values: List[str] = Field(min_length=1, max_length=MAX_TARGET_VALUES)


class OutputLocation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    s3_bucket_name: str = Field(min_length=3, max_length=63)
    s3_key_prefix: Optional[str] = Field(None, max_length=500)
    s3_region: Optional[str] = Field(None, min_length=3, max_length=20)


class AssociationConfig(BaseModel):
    """User-facing configuration of an aws_ssm_association."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    apply_only_at_cron_interval: bool = False
    association_name: Optional[str] = None
    instance_id: Optional[str] = None
    document_version: Optional[str] = None
    max_concurrency: Optional[str] = None
    max_errors: Optional[str] = None
    parameters: Optional[Dict[str, str]] = None
    schedule_expression: Optional[str] = Field(None, min_length=1, max_length=256)
    output_location: Optional[List[OutputLocation]] = Field(None, max_length=1)
    targets: Optional[List[Target]] = Field(None, max_length=MAX_TARGETS)
    compliance_severity: Optional[str] = None
    automation_target_parameter_name: Optional[str] = Field(None, min_length=1, max_length=50)
    wait_for_success_timeout_seconds: Optional[int] = Field(None, ge=0)

    @field_validator("association_name")
    @classmethod
    def _check_association_name(cls, v):
        if v is not None and not PATTERN_ASSOCIATION_NAME.match(v):
            raise ValueError("must contain only alphanumeric, underscore, hyphen, or period characters")
        return v

    @field_validator("document_version")
    @classmethod
    def _check_document_version(cls, v):
        if v is not None and not PATTERN_DOCUMENT_VERSION.match(v):
            raise ValueError("must be $LATEST, $DEFAULT or a version number")
        return v

    @field_validator("max_concurrency")
    @classmethod
    def _check_max_concurrency(cls, v):
        if v is not None and not PATTERN_MAX_CONCURRENCY.match(v):
            raise ValueError(MESSAGE_NUMBER_OR_PERCENT)
        return v

    @field_validator("max_errors")
    @classmethod
    def _check_max_errors(cls, v):
        if v is not None and not PATTERN_MAX_ERRORS.match(v):
            raise ValueError(MESSAGE_NUMBER_OR_PERCENT)
        return v

    @field_validator("compliance_severity")
    @classmethod
    def _check_compliance_severity(cls, v):
        if v is not None and v not in COMPLIANCE_SEVERITY_VALUES:
            raise ValueError(f"expected one of {', '.join(COMPLIANCE_SEVERITY_VALUES)}")
        return v


def to_validation_error(err: ValidationError) -> ResourceValidationError:
    """Convert the first pydantic error into a ResourceValidationError."""
    first = err.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", str(err))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return ResourceValidationError(field, message)


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate an association configuration.

    Args:
        config: Flat configuration; computed fields are ignored

    Returns:
        Dict: Normalised configuration with unset fields removed

    Raises:
        ResourceValidationError: If any value is malformed
    """
    user_config = {k: v for k, v in config.items() if k not in COMPUTED_FIELDS}

    try:
        model = AssociationConfig(**user_config)
    except ValidationError as e:
        raise to_validation_error(e) from e
    except TypeError as e:
        raise ResourceValidationError("", str(e)) from e

    if model.instance_id:
        logger.warning(INSTANCE_ID_DEPRECATION)

    return model.model_dump(exclude_none=True)
