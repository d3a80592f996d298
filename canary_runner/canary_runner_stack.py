"""
Canary Runner Application Stack
Defines infrastructure for running CloudWatch Synthetics canaries on demand

AWS Services Used:
- AWS Lambda: Serverless compute that drives each canary through a run
  Documentation: https://docs.aws.amazon.com/lambda/latest/dg/welcome.html
- Amazon CloudWatch Synthetics: Canaries being started, stopped and observed
  Documentation: https://docs.aws.amazon.com/AmazonCloudWatch/latest/monitoring/CloudWatch_Synthetics_Canaries.html
- Amazon CloudWatch: Log retention and error alarm for the runner
  Documentation: https://docs.aws.amazon.com/AmazonCloudWatch/latest/monitoring/WhatIsCloudWatch.html
- Amazon SNS: Alarm notification distribution
  Documentation: https://docs.aws.amazon.com/sns/latest/dg/welcome.html

Architecture Overview:
1. Runner Lambda: invoked with {"canaryName": ...}, stops/starts the canary and waits for a new run
2. IAM: Synthetics permissions scoped to the canaries this stack runs
3. Outputs: CanaryNames and function name, read by the functional test suite
"""

from aws_cdk import (
    Stack,
    Duration,
    RemovalPolicy,
    CfnOutput,
    ArnFormat,
    BundlingOptions,
    aws_lambda as lambda_,
    aws_iam as iam,
    aws_cloudwatch as cloudwatch,
    aws_cloudwatch_actions as cloudwatch_actions,
    aws_sns as sns,
    aws_logs as logs,
)
from constructs import Construct
from modules.constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    DEFAULT_LOG_LEVEL,
    ENV_POLL_INTERVAL_SECONDS,
    ENV_POLL_TIMEOUT_SECONDS,
    ENV_LOG_LEVEL,
    ENV_SERVICE_NAME,
    OUTPUT_CANARY_NAMES,
    OUTPUT_FUNCTION_NAME,
)

# Lambda can run for at most 15 minutes; the poll budget must fit inside it
RUNNER_TIMEOUT = Duration.minutes(15)


class CanaryRunnerStack(Stack):
    """
    Application stack containing the canary runner Lambda.

    This stack is deployed to multiple stages (alpha, prod) via the CI/CD pipeline.
    The stage_name parameter ensures resource names are unique per environment.
    Canary names come from the constructor or the "canaryNames" CDK context
    (a list, or a comma separated string).
    """

    def __init__(self, scope: Construct, construct_id: str, stage_name: str = "prod",
                 canary_names=None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # RESOURCE NAMING: Stage-specific prefixes prevent conflicts - for alpha/prod stages
        stage_prefix = f"{stage_name}-" if stage_name != "prod" else ""
        function_name = f"{stage_prefix}CanaryRunner"

        if canary_names is None:
            canary_names = self.node.try_get_context("canaryNames") or []
        if isinstance(canary_names, str):
            canary_names = [name.strip() for name in canary_names.split(",") if name.strip()]
        self.canary_names = list(canary_names)

        # ========================================================================
        # LOG GROUP: Runner Lambda Logs
        # ========================================================================
        # Created explicitly so retention is managed by the stack
        # LogGroup documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.aws_logs/LogGroup.html
        log_group = logs.LogGroup(
            self, "CanaryRunnerLogGroup",
            log_group_name=f"/aws/lambda/{function_name}",
            retention=logs.RetentionDays.ONE_MONTH,
            removal_policy=RemovalPolicy.DESTROY
        )

        # ========================================================================
        # LAMBDA FUNCTION: Canary Runner
        # ========================================================================
        # Stops the canary, starts a fresh run and waits for it to pass or fail
        # Lambda Function documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.aws_lambda/Function.html
        self.runner_lambda = lambda_.Function(
            self, "CanaryRunnerLambda",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="CanaryRunnerLambda.lambda_handler",
            # Dependencies from modules/requirements.txt are installed into the asset
            # Bundling documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk/BundlingOptions.html
            code=lambda_.Code.from_asset(
                "./modules",
                bundling=BundlingOptions(
                    image=lambda_.Runtime.PYTHON_3_11.bundling_image,
                    command=[
                        "bash", "-c",
                        "pip install -r requirements.txt -t /asset-output && cp -au . /asset-output"
                    ]
                )
            ),
            timeout=RUNNER_TIMEOUT,
            function_name=function_name,
            description=f"[{stage_name.upper()}] Runs Synthetics canaries on demand and reports pass/fail",
            log_group=log_group,
            environment={
                ENV_POLL_INTERVAL_SECONDS: str(DEFAULT_POLL_INTERVAL_SECONDS),
                ENV_POLL_TIMEOUT_SECONDS: str(DEFAULT_POLL_TIMEOUT_SECONDS),
                ENV_LOG_LEVEL: DEFAULT_LOG_LEVEL,
                ENV_SERVICE_NAME: function_name
            }
        )

        # IAM PERMISSIONS: Canary lifecycle operations
        # Synthetics actions: https://docs.aws.amazon.com/service-authorization/latest/reference/list_amazoncloudwatchsynthetics.html
        if self.canary_names:
            canary_arns = [
                self.format_arn(
                    service="synthetics",
                    resource="canary",
                    resource_name=name,
                    arn_format=ArnFormat.COLON_RESOURCE_NAME
                )
                for name in self.canary_names
            ]
        else:
            canary_arns = ["*"]

        self.runner_lambda.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=[
                    "synthetics:GetCanary",
                    "synthetics:StartCanary",
                    "synthetics:StopCanary"
                ],
                resources=canary_arns
            )
        )

        # DescribeCanariesLastRun does not support resource-level permissions
        self.runner_lambda.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["synthetics:DescribeCanariesLastRun"],
                resources=["*"]
            )
        )

        # ========================================================================
        # OPERATIONAL MONITORING: Runner Errors
        # ========================================================================
        # Every failed invocation (command failure, missing data, poll timeout)
        # surfaces as a Lambda error
        # SNS Topic documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.aws_sns/Topic.html
        alarm_topic = sns.Topic(
            self, "CanaryRunnerAlarmTopic",
            topic_name=f"{stage_prefix}CanaryRunnerAlarms",
            display_name=f"[{stage_name.upper()}] Canary Runner Alarm Notifications"
        )

        # metric_errors documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.aws_lambda/Function.html#aws_cdk.aws_lambda.Function.metric_errors
        errors_alarm = cloudwatch.Alarm(
            self, "CanaryRunnerErrorsAlarm",
            alarm_name=f"{stage_prefix}CanaryRunner-Errors-Alarm",
            alarm_description=f"[{stage_name.upper()}] Canary runner invocation failed",
            metric=self.runner_lambda.metric_errors(period=Duration.minutes(5)),
            threshold=1,
            evaluation_periods=1,
            comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
            treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING
        )
        errors_alarm.add_alarm_action(cloudwatch_actions.SnsAction(alarm_topic))

        # ========================================================================
        # CLOUDFORMATION OUTPUTS: Export Stack Values
        # ========================================================================
        # CfnOutput documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk/CfnOutput.html
        CfnOutput(
            self, OUTPUT_FUNCTION_NAME,
            value=self.runner_lambda.function_name,
            description=f"[{stage_name.upper()}] Canary runner Lambda function name"
        )

        # Read by the functional tests to discover which canaries to run
        if self.canary_names:
            CfnOutput(
                self, OUTPUT_CANARY_NAMES,
                value=",".join(self.canary_names),
                description=f"[{stage_name.upper()}] Comma separated canaries run by this stack"
            )
