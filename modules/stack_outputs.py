"""
Canary discovery from CloudFormation stack outputs.

A deployed stack lists the canaries it owns in its CanaryNames output as a
comma and/or whitespace separated string. The functional test suite reads
that output and runs every canary through the runner handler.
"""
import os
import re

from constants import ENV_STACK_NAME, OUTPUT_CANARY_NAMES
from errors import MissingValueError

_NAME_SEPARATOR = re.compile(r"[,\s]+")


def get_stack_name(environ=None):
    environ = os.environ if environ is None else environ
    stack_name = environ.get(ENV_STACK_NAME)
    if not stack_name:
        raise MissingValueError(f"{ENV_STACK_NAME} environment variable")
    return stack_name


def get_stack_outputs(cloudformation, stack_name):
    """
    Map of output key to output value for a deployed stack.

    describe_stacks: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/cloudformation/client/describe_stacks.html
    """
    response = cloudformation.describe_stacks(StackName=stack_name)
    stacks = response.get('Stacks') or []
    if not stacks:
        raise MissingValueError(f"Stack {stack_name}")

    return {
        output['OutputKey']: output.get('OutputValue')
        for output in stacks[0].get('Outputs') or []
    }


def parse_canary_names(value):
    return [name for name in _NAME_SEPARATOR.split(value or "") if name]


def get_canary_names(cloudformation, stack_name, output_key=OUTPUT_CANARY_NAMES):
    outputs = get_stack_outputs(cloudformation, stack_name)
    canary_names = parse_canary_names(outputs.get(output_key))
    if not canary_names:
        raise MissingValueError(f"{output_key} output of stack {stack_name}")
    return canary_names


def run_canaries(canary_names, handler, context=None):
    """
    Invoke the runner handler once per canary, in order.

    An exception from any canary aborts the remaining ones.
    """
    return [handler({'canaryName': name}, context) for name in canary_names]


def all_passed(results):
    return all(result['passed'] for result in results)
