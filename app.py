#!/usr/bin/env python3
import os
import aws_cdk as cdk
from canary_runner.canary_runner_stack import CanaryRunnerStack
from canary_runner.pipeline_stack import PipelineStack

# Initialize CDK application
# Documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk/App.html
app = cdk.App()

# Account and region are retrieved from environment variables or AWS CLI config
# Documentation: https://docs.aws.amazon.com/cdk/v2/guide/environments.html
env = cdk.Environment(
    account=os.getenv('CDK_DEFAULT_ACCOUNT'),
    region=os.getenv('CDK_DEFAULT_REGION')
)

# Canaries to run, e.g. cdk deploy -c canaryNames=checkout-flow,login-flow
canary_names = app.node.try_get_context("canaryNames")

# The pipeline is only defined when a source repository is configured,
# e.g. cdk deploy -c repository=my-org/canary-runner
repository = app.node.try_get_context("repository")

if repository:
    PipelineStack(
        app,
        "CanaryRunnerPipelineStack",
        repo_string=repository,
        branch=app.node.try_get_context("branch") or "main",
        canary_names=canary_names,
        env=env
    )
else:
    # Standalone deployment of the runner without a pipeline
    CanaryRunnerStack(
        app,
        "CanaryRunnerStack",
        canary_names=canary_names,
        env=env
    )

# Synthesize CloudFormation templates
app.synth()
