"""Shared constants for the canary runner stack & Lambda."""

# Canary lifecycle states (Synthetics CanaryState)
# https://docs.aws.amazon.com/AmazonSynthetics/latest/APIReference/API_CanaryStatus.html
CANARY_STATE_READY = "READY"
CANARY_STATE_STARTING = "STARTING"
CANARY_STATE_RUNNING = "RUNNING"
CANARY_STATE_STOPPING = "STOPPING"
CANARY_STATE_STOPPED = "STOPPED"

# States with no run in flight that accept a start command
STOPPED_CANARY_STATES = (CANARY_STATE_STOPPED, CANARY_STATE_READY)

# Canary run states (Synthetics CanaryRunState)
# https://docs.aws.amazon.com/AmazonSynthetics/latest/APIReference/API_CanaryRunStatus.html
RUN_STATE_RUNNING = "RUNNING"
RUN_STATE_PASSED = "PASSED"
RUN_STATE_FAILED = "FAILED"

# Environment variable keys
ENV_POLL_INTERVAL_SECONDS = "POLL_INTERVAL_SECONDS"
ENV_POLL_TIMEOUT_SECONDS = "POLL_TIMEOUT_SECONDS"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_SERVICE_NAME = "SERVICE_NAME"
ENV_STACK_NAME = "STACK_NAME"

# Defaults
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_POLL_TIMEOUT_SECONDS = 600
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SERVICE_NAME = "canary-runner"

# Time kept back from the Lambda timeout to log the failure and return
DEADLINE_MARGIN_SECONDS = 10

# Stack outputs
OUTPUT_CANARY_NAMES = "CanaryNames"
OUTPUT_FUNCTION_NAME = "CanaryRunnerFunctionName"

# Misc
SUCCESS_STATUS_CODE = 200
