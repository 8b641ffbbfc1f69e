"""
Environment-specific deployment settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
from typing import List
import os


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Existing help desk database (the PHP front end owns the schema)
    db_secret_arn: str = ""
    db_prefix: str = "hesk_"
    hesk_url: str = "http://localhost/hesk"

    # Email
    noreply_mail: str = "support@example.com"

    # Lambda Configuration
    lambda_memory_mb: int = 256
    lambda_timeout_seconds: int = 15
    push_timeout_seconds: int = 5

    # Sessions
    session_ttl_seconds: int = 86400

    def problems(self) -> List[str]:
        """Deploy-time misconfigurations; fatal for prod, warnings elsewhere."""
        found = []
        if not self.db_secret_arn:
            found.append("DB_SECRET_ARN is not set, the reply function has no database")
        if "localhost" in self.hesk_url:
            found.append("HESK_URL points at localhost, staff email links will not resolve")
        if self.push_timeout_seconds >= self.lambda_timeout_seconds:
            found.append("push timeout must be shorter than the Lambda timeout")
        return found

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        common = dict(
            db_secret_arn=os.environ.get("DB_SECRET_ARN", ""),
            db_prefix=os.environ.get("DB_PREFIX", "hesk_"),
            hesk_url=os.environ.get("HESK_URL", "http://localhost/hesk"),
            noreply_mail=os.environ.get("NOREPLY_MAIL", "support@example.com"),
            aws_region=os.environ.get("AWS_REGION", "eu-west-2"),
        )

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                lambda_memory_mb=512,
                lambda_timeout_seconds=30,
                **common,
            )

        return cls(environment=env, **common)
