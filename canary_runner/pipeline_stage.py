from aws_cdk import Stage
from constructs import Construct
from .canary_runner_stack import CanaryRunnerStack


class CanaryRunnerStage(Stage):
    """
    Deployment stage for the canary runner.

    Stage names (construct_id) are used as prefixes to prevent resource name conflicts.
    For example, the 'alpha' stage creates an 'alpha-CanaryRunner' Lambda.
    """

    def __init__(self, scope: Construct, construct_id: str, canary_names=None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Stack documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk/Stack.html
        self.stack = CanaryRunnerStack(
            self,
            "CanaryRunnerStack",
            stage_name=construct_id,  # Examples: 'alpha', 'prod'
            canary_names=canary_names
        )
