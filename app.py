"""
CDK app entrypoint.

Creates the help desk reply stack. Deploy settings are checked first: a
prod synth with missing wiring is refused, other environments get the
same findings as stack warnings.
"""

import aws_cdk as cdk

from infrastructure.config.settings import Settings
from infrastructure.main_stack import HelpdeskReplyStack


def main() -> None:
    """Instantiate the CDK app and stack."""
    settings = Settings.from_environment()
    problems = settings.problems()
    if problems and settings.environment == "prod":
        raise SystemExit("Refusing to synthesize prod: " + "; ".join(problems))

    app = cdk.App()
    stack = HelpdeskReplyStack(
        app,
        f"HelpdeskReplyStack-{settings.environment}",
        settings=settings,
        env=cdk.Environment(
            account=app.node.try_get_context("account"),
            region=settings.aws_region,
        ),
    )
    for problem in problems:
        cdk.Annotations.of(stack).add_warning(problem)
    cdk.Tags.of(app).add("Service", "helpdesk-reply")

    app.synth()


if __name__ == "__main__":
    main()
