"""AWS client factory using boto3."""

from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from logstackctl.config import AWSConfig
from logstackctl.core.exceptions import AWSError, AuthenticationError
from logstackctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)


class AWSClientFactory:
    """Factory for creating boto3 clients with consistent configuration."""

    def __init__(self, config: AWSConfig, region: str | None = None):
        self._config = config
        self._region_override = region
        self._session: boto3.Session | None = None

    @property
    def session(self) -> boto3.Session:
        """Get or create boto3 session."""
        if self._session is None:
            profile = self._config.get_profile()
            region = self._region_override or self._config.get_region()

            session_kwargs: dict[str, Any] = {}
            if profile:
                session_kwargs["profile_name"] = profile
            if region:
                session_kwargs["region_name"] = region

            try:
                self._session = boto3.Session(**session_kwargs)
                logger.debug("Created AWS session", profile=profile, region=region)
            except BotoCoreError as e:
                raise AuthenticationError(f"Failed to create AWS session: {e}")

        return self._session

    @property
    def region(self) -> str:
        """Get the configured region."""
        return self.session.region_name or "us-east-1"

    def client(self, service_name: str, **kwargs: Any) -> Any:
        """Create a boto3 client for a service.

        Args:
            service_name: AWS service name (e.g., 'sts', 'secretsmanager')
            **kwargs: Additional client configuration

        Returns:
            boto3 client instance
        """
        config = BotoConfig(
            retries={"max_attempts": 3, "mode": "adaptive"},
            connect_timeout=10,
            read_timeout=30,
        )

        client_kwargs: dict[str, Any] = {"config": config, **kwargs}

        if self._config.endpoint_url:
            client_kwargs["endpoint_url"] = self._config.endpoint_url

        try:
            return self.session.client(service_name, **client_kwargs)
        except BotoCoreError as e:
            raise AWSError(
                f"Failed to create {service_name} client: {e}",
                service=service_name,
            )

    def caller_identity(self) -> dict[str, Any]:
        """Return the STS caller identity for the current credentials."""
        try:
            return self.client("sts").get_caller_identity()
        except (BotoCoreError, ClientError) as e:
            raise AuthenticationError(f"AWS credentials not usable: {e}")

    def secret_exists(self, secret_id: str) -> bool:
        """Check whether a Secrets Manager secret exists."""
        try:
            self.client("secretsmanager").describe_secret(SecretId=secret_id)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
                return False
            raise AWSError(
                f"Failed to describe secret {secret_id}: {e}",
                service="secretsmanager",
                operation="DescribeSecret",
            )
        except BotoCoreError as e:
            raise AWSError(
                f"Failed to describe secret {secret_id}: {e}",
                service="secretsmanager",
                operation="DescribeSecret",
            )
