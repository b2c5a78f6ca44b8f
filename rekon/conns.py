"""
Connection handle passed explicitly into every lifecycle operation.
"""

import logging
from typing import Optional

import boto3
import botocore.config
from botocore.exceptions import UnknownRegionError

from .config import Settings, boto_config, load_settings

logger = logging.getLogger(__name__)


class AWSClient:
    """Session, identity and client factory for one AWS account/region."""

    def __init__(
        self,
        session: Optional[boto3.Session] = None,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        config: Optional[botocore.config.Config] = None,
        account_id: Optional[str] = None,
        partition: Optional[str] = None,
    ):
        if session is None:
            session = boto3.Session(profile_name=profile, region_name=region)
        self.session = session
        self.region = region or session.region_name
        if not self.region:
            raise ValueError("No AWS region configured")
        self.partition = partition or self._session_partition()
        self.config = config or botocore.config.Config()
        self._account_id = account_id
        self._clients = {}

    def _session_partition(self) -> str:
        try:
            return self.session.get_partition_for_region(self.region)
        except UnknownRegionError:
            logger.warning(f"No partition known for region {self.region}; assuming aws")
            return "aws"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AWSClient":
        settings = settings or load_settings()
        return cls(
            region=settings.region,
            profile=settings.profile,
            config=boto_config(settings),
        )

    @property
    def account_id(self) -> str:
        """Caller account, resolved through STS on first use."""
        if self._account_id is None:
            identity = self.sts_conn().get_caller_identity()
            self._account_id = identity["Account"]
            logger.debug(f"Resolved caller account {self._account_id}")
        return self._account_id

    def client(self, service: str):
        if service not in self._clients:
            self._clients[service] = self.session.client(service, region_name=self.region, config=self.config)
        return self._clients[service]

    def ssm_conn(self):
        return self.client("ssm")

    def sagemaker_conn(self):
        return self.client("sagemaker")

    def sts_conn(self):
        return self.client("sts")
