"""
Data layer construct: session table, attachment bucket and push secret.

The help desk database itself already exists; its credentials are imported
by ARN.
"""

from typing import Optional

from aws_cdk import (
    Duration,
    RemovalPolicy,
    aws_dynamodb as dynamodb,
    aws_s3 as s3,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct


class DataLayerConstruct(Construct):
    """Provision storage used by the reply Lambda."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        db_secret_arn: Optional[str] = None,
    ) -> None:
        super().__init__(scope, construct_id)

        removal = RemovalPolicy.RETAIN if environment == "prod" else RemovalPolicy.DESTROY

        # Customer sessions (flood timestamps, resubmission data).
        self.sessions_table = dynamodb.Table(
            self,
            "Sessions",
            partition_key=dynamodb.Attribute(
                name="session_id", type=dynamodb.AttributeType.STRING
            ),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            removal_policy=removal,
            time_to_live_attribute="ttl",
        )

        # Attachment files; staged uploads expire if never submitted.
        self.attachments_bucket = s3.Bucket(
            self,
            "Attachments",
            encryption=s3.BucketEncryption.S3_MANAGED,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
            removal_policy=removal,
            auto_delete_objects=environment != "prod",
            lifecycle_rules=[
                s3.LifecycleRule(prefix="tmp/", expiration=Duration.days(1)),
            ],
        )

        # Telegram token / FCM service account, filled in by operators.
        self.push_secret = secretsmanager.Secret(
            self,
            "PushCredentials",
            description="Telegram bot token and chat id, FCM service account",
        )

        self.db_secret = (
            secretsmanager.Secret.from_secret_complete_arn(self, "DbCredentials", db_secret_arn)
            if db_secret_arn
            else None
        )
