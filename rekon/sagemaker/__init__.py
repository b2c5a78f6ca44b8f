"""
SageMaker model package group and model package group policy resources.
"""

from . import model_package_group, model_package_group_policy
from .find import find_model_package_group_by_name, find_model_package_group_policy_by_name

__all__ = [
    "model_package_group",
    "model_package_group_policy",
    "find_model_package_group_by_name",
    "find_model_package_group_policy_by_name",
]
