import os
from datetime import datetime, timezone

import boto3

from canary_lifecycle import CanaryOrchestrator
from constants import (
    DEADLINE_MARGIN_SECONDS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SERVICE_NAME,
    ENV_LOG_LEVEL,
    ENV_SERVICE_NAME,
)
from errors import MissingValueError
from logging_config import (
    bind_invocation_context,
    clear_invocation_context,
    configure_logging,
    get_logger,
)
from polling import PollSettings

# Logging is configured once per Lambda execution environment
configure_logging(
    service_name=os.environ.get(ENV_SERVICE_NAME, DEFAULT_SERVICE_NAME),
    level=os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL),
)
logger = get_logger(__name__)

# Initialize Synthetics client outside the handler so warm invocations reuse it
# Synthetics Client API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/synthetics.html
synthetics = boto3.client('synthetics')


def lambda_handler(event, context):
    """
    Run a single canary and report whether its new run passed.

    Event format: {"canaryName": "<name>"}
    Response format: {"canaryName": str, "passed": bool, "timestamp": ISO-8601}

    Any failure is logged with the canary name and re-raised so the
    invocation itself fails; there is no partial result.
    """
    canary_name = (event or {}).get('canaryName')
    bind_invocation_context(
        canary_name=canary_name,
        client_run_id=get_client_run_id(context),
    )

    try:
        if not canary_name:
            raise MissingValueError("canaryName in invocation event")

        orchestrator = CanaryOrchestrator(
            synthetics,
            logger=logger,
            poll_settings=get_poll_settings(context),
        )

        return {
            'canaryName': canary_name,
            'passed': orchestrator.run_canary(canary_name),
            'timestamp': utc_timestamp(),
        }
    except Exception as e:
        logger.exception("Error running canary", canary_name=canary_name, error=str(e))
        raise
    finally:
        clear_invocation_context()


def get_poll_settings(context):
    """
    Poll settings from the environment, with one deadline for every poll loop
    of this invocation taken from the time Lambda has left.

    Context object documentation: https://docs.aws.amazon.com/lambda/latest/dg/python-context.html
    """
    settings = PollSettings.from_environment()

    get_remaining_time = getattr(context, 'get_remaining_time_in_millis', None)
    if get_remaining_time is None:
        return settings
    return settings.with_deadline(get_remaining_time() / 1000 - DEADLINE_MARGIN_SECONDS)


def get_client_run_id(context):
    """
    Correlation id supplied by the caller through the Lambda client context.

    Context object documentation: https://docs.aws.amazon.com/lambda/latest/dg/python-context.html
    """
    client_context = getattr(context, 'client_context', None)
    custom = getattr(client_context, 'custom', None) or {}
    return custom.get('runId')


def utc_timestamp():
    # ISO 8601 with millisecond precision, e.g. 2024-05-01T12:00:00.000Z
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
