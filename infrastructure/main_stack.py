"""
Main CDK Stack for the help desk reply service.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
    aws_iam as iam,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct
from infrastructure.config.settings import Settings


class HelpdeskReplyStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "helpdesk-reply")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Data layer.
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
            db_secret_arn=settings.db_secret_arn or None,
        )

        # 2) API layer (single Lambda).
        lambda_environment = {
            "DB_PREFIX": settings.db_prefix,
            "HESK_URL": settings.hesk_url,
            "NOREPLY_MAIL": settings.noreply_mail,
            "SESSIONS_TABLE": data_construct.sessions_table.table_name,
            "SESSION_TTL_SECONDS": str(settings.session_ttl_seconds),
            "ATTACHMENTS_BUCKET": data_construct.attachments_bucket.bucket_name,
            "PUSH_SECRET_ARN": data_construct.push_secret.secret_arn,
            "PUSH_TIMEOUT_SECONDS": str(settings.push_timeout_seconds),
        }
        if settings.db_secret_arn:
            lambda_environment["DB_SECRET_ARN"] = settings.db_secret_arn

        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            lambda_environment=lambda_environment,
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # Permissions for the API Lambda.
        fn = api_construct.main_lambda
        data_construct.sessions_table.grant_read_write_data(fn)
        data_construct.attachments_bucket.grant_read_write(fn)
        data_construct.attachments_bucket.grant_delete(fn)
        data_construct.push_secret.grant_read(fn)
        if data_construct.db_secret is not None:
            data_construct.db_secret.grant_read(fn)

        fn.add_to_role_policy(
            iam.PolicyStatement(
                actions=["ses:SendEmail", "ses:SendRawEmail"],
                resources=["*"],
            )
        )

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "SessionsTable", value=data_construct.sessions_table.table_name)
        CfnOutput(self, "AttachmentsBucket", value=data_construct.attachments_bucket.bucket_name)
        CfnOutput(self, "PushSecretArn", value=data_construct.push_secret.secret_arn)
