"""
Functional Tests for the Canary Runner
Runs every canary of a deployed stack through the runner handler

Test Level: Functional Testing
- Uses the real Synthetics API (canaries are stopped, started and awaited)
- Requires deployed infrastructure; the pipeline runs it after the alpha stage
- The stack to test is named by the STACK_NAME environment variable

AWS Services Used:
- AWS CloudFormation: CanaryNames stack output
  Documentation: https://docs.aws.amazon.com/cloudformation/latest/userguide/Welcome.html
- Amazon CloudWatch Synthetics: Canary lifecycle and run results
  Documentation: https://docs.aws.amazon.com/AmazonCloudWatch/latest/monitoring/CloudWatch_Synthetics_Canaries.html
"""
import os
import uuid
from types import SimpleNamespace

import boto3
import pytest

from constants import ENV_STACK_NAME
from stack_outputs import all_passed, get_canary_names, run_canaries


@pytest.fixture(scope='module')
def canary_names():
    """Canary names listed in the deployed stack's CanaryNames output"""
    stack_name = os.environ.get(ENV_STACK_NAME)
    if not stack_name:
        pytest.skip(f"{ENV_STACK_NAME} environment variable not set")

    return get_canary_names(boto3.client('cloudformation'), stack_name)


def test_all_canaries_pass(canary_names):
    """
    Each canary is run once, in order, with a shared correlation id so the
    log lines of this test run can be found together in CloudWatch Logs.
    """
    from CanaryRunnerLambda import lambda_handler

    context = SimpleNamespace(client_context=SimpleNamespace(custom={'runId': str(uuid.uuid4())}))
    results = run_canaries(canary_names, lambda_handler, context)

    failed = [result['canaryName'] for result in results if not result['passed']]
    assert all_passed(results), f"Canaries failed: {failed}"
