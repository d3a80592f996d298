from aws_cdk import (
    Stack,
    SecretValue,
    pipelines,
    aws_iam as iam
)
from constructs import Construct
from .pipeline_stage import CanaryRunnerStage


class PipelineStack(Stack):
    """
    Defines the CI/CD pipeline infrastructure.

    Pipeline Flow:
    1. Source Stage: Pull code from GitHub
    2. Build Stage: Run CDK synth via CodeBuild
    3. Pre-deployment: Run unit tests
    4. Alpha Stage: Deploy to test environment
    5. Post-alpha: Run every canary through the deployed runner and require all to pass
    6. Production Stage: Deploy to production (with manual approval)
    """

    def __init__(self, scope: Construct, construct_id: str, repo_string: str,
                 branch: str = "main", github_token_secret: str = "github-token",
                 canary_names=None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # SOURCE STAGE: GitHub Repository Integration
        # Documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.pipelines/CodePipelineSource.html#aws_cdk.pipelines.CodePipelineSource.git_hub
        source = pipelines.CodePipelineSource.git_hub(
            repo_string=repo_string,
            branch=branch,
            # GitHub token stored in AWS Secrets Manager for secure authentication
            authentication=SecretValue.secrets_manager(github_token_secret),
        )

        # BUILD STAGE: CDK Synthesis via CodeBuild
        # The same context must be passed so the pipeline synthesizes itself again
        # Documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.pipelines/ShellStep.html
        synth_context = f"-c repository={repo_string} -c branch={branch}"
        if canary_names:
            if not isinstance(canary_names, str):
                canary_names = ",".join(canary_names)
            synth_context += f" -c canaryNames={canary_names}"

        synth_step = pipelines.ShellStep(
            "CodeBuild",
            input=source,
            commands=[
                "npm install -g aws-cdk",
                "python -m pip install --upgrade pip",
                "python -m pip install -e .",
                f"cdk synth {synth_context}"
            ]
        )

        # PIPELINE DEFINITION: Create CodePipeline
        # Documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.pipelines/CodePipeline.html
        # docker_enabled_for_synth is required for Lambda asset bundling
        pipeline = pipelines.CodePipeline(
            self, "CanaryRunnerPipeline",
            pipeline_name="CanaryRunnerPipeline",
            synth=synth_step,
            docker_enabled_for_synth=True
        )

        # UNIT TESTS: Fast, isolated tests with mocked AWS services
        # pytest documentation: https://docs.pytest.org/
        unit_test = pipelines.ShellStep(
            "UnitTests",
            input=source,
            commands=[
                "python -m pip install --upgrade pip",
                "python -m pip install -e '.[test]'",
                "python -m pytest tests/unit/ -v"
            ]
        )

        pipeline.add_wave(
            "PreDeploymentValidation",
            pre=[unit_test]
        )

        # ALPHA STAGE: Test Environment Deployment
        # Stage documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk/Stage.html
        alpha = CanaryRunnerStage(self, 'alpha', canary_names=canary_names)

        # CANARY TESTS: Run each canary listed in the alpha stack's CanaryNames output
        # The runner handler is executed inside CodeBuild against the real Synthetics API
        canary_test = pipelines.ShellStep(
            "CanaryTests",
            input=source,
            env={
                "STACK_NAME": alpha.stack.stack_name
            },
            commands=[
                "python -m pip install --upgrade pip",
                "python -m pip install -e '.[test]'",
                "python -m pytest tests/functional/ -v"
            ],
            role_policy_statements=[
                iam.PolicyStatement(
                    actions=["cloudformation:DescribeStacks"],
                    resources=["*"]
                ),
                iam.PolicyStatement(
                    actions=[
                        "synthetics:GetCanary",
                        "synthetics:DescribeCanariesLastRun",
                        "synthetics:StartCanary",
                        "synthetics:StopCanary"
                    ],
                    resources=["*"]
                )
            ]
        )

        pipeline.add_stage(
            alpha,
            post=[canary_test]
        )

        # PRODUCTION STAGE: Requires manual approval before deploying to production
        # Manual Approval documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.pipelines/ManualApprovalStep.html
        prod = CanaryRunnerStage(self, 'prod', canary_names=canary_names)
        pipeline.add_stage(
            prod,
            pre=[
                pipelines.ManualApprovalStep(
                    "ApproveProduction",
                    comment="All canaries passed in Alpha environment. Approve deployment to Production?"
                )
            ]
        )
