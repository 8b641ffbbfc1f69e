"""
API layer construct: reply Lambda + HTTP API routes.

Uses Docker bundling to install the package and its dependencies.
"""

from typing import Dict

from aws_cdk import (
    BundlingOptions,
    Duration,
    aws_lambda as _lambda,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_integrations as integrations,
    aws_logs as logs,
)
from constructs import Construct


class ApiLayerConstruct(Construct):
    """Expose the customer reply endpoint via HTTP API."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        lambda_environment: Dict[str, str],
        lambda_memory_mb: int = 256,
        lambda_timeout_seconds: int = 15,
    ) -> None:
        super().__init__(scope, construct_id)

        bundled_code = _lambda.Code.from_asset(
            ".",
            exclude=["cdk.out", "tests", ".git", "*.md"],
            bundling=BundlingOptions(
                image=_lambda.Runtime.PYTHON_3_12.bundling_image,
                command=[
                    "bash", "-c",
                    "pip install . -t /asset-output",
                ],
            ),
        )

        self.main_lambda = _lambda.Function(
            self,
            "ApiHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="helpdesk_reply.handlers.main.lambda_handler",
            code=bundled_code,
            memory_size=lambda_memory_mb,
            timeout=Duration.seconds(lambda_timeout_seconds),
            architecture=_lambda.Architecture.X86_64,
            environment={"ENVIRONMENT": environment, **lambda_environment},
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        self.api = apigw.HttpApi(
            self,
            "HttpApi",
            api_name=f"helpdesk-reply-api-{environment}",
        )

        integration = integrations.HttpLambdaIntegration(
            "LambdaIntegration", self.main_lambda
        )

        route_defs = [
            (apigw.HttpMethod.POST, "/reply_ticket"),
            (apigw.HttpMethod.GET, "/reply_ticket"),
            (apigw.HttpMethod.GET, "/health"),
        ]

        for method, path in route_defs:
            self.api.add_routes(
                path=path,
                methods=[method],
                integration=integration,
            )
