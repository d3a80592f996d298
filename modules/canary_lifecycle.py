"""
Canary lifecycle orchestration.

Drives a CloudWatch Synthetics canary through a clean run:
1. Stop the canary (waiting out any start or stop already in flight)
2. Record the ID of its most recent run as a baseline
3. Start the canary and wait for it to report RUNNING
4. Poll the most recent run until a new run (ID differs from the baseline)
   reaches a terminal state

Synthetics is the only source of truth: every decision is made on freshly
fetched state and the orchestrator never assumes a transition happened.

Synthetics Client API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/synthetics.html
"""
import time

from botocore.exceptions import ClientError

from constants import (
    CANARY_STATE_RUNNING,
    CANARY_STATE_STARTING,
    CANARY_STATE_STOPPED,
    CANARY_STATE_STOPPING,
    RUN_STATE_PASSED,
    RUN_STATE_RUNNING,
    STOPPED_CANARY_STATES,
    SUCCESS_STATUS_CODE,
)
from errors import CommandFailedError, MissingValueError
from logging_config import get_logger
from polling import PollSettings, wait_for_state, wait_until


class CanaryOrchestrator:
    """
    Runs a canary once and reports whether that run passed.

    The Synthetics client, logger and poll settings are passed in so the
    state machine can be exercised without AWS access.
    """

    def __init__(self, synthetics, logger=None, poll_settings=None, sleep=time.sleep):
        self.synthetics = synthetics
        self.logger = logger or get_logger(__name__)
        self.poll_settings = poll_settings or PollSettings()
        self.sleep = sleep

    def run_canary(self, canary_name: str) -> bool:
        self.logger.info("Executing canary", canary_name=canary_name)

        self.stop_canary(canary_name)

        last_run_id = self.get_last_canary_run_id(canary_name)
        self.start_canary(canary_name)

        new_run = self.wait_for_new_canary_run(canary_name, last_run_id)
        run_status = new_run.get("Status") or {}
        passed = run_status.get("State") == RUN_STATE_PASSED

        self.logger.info(
            f"Canary {'passed' if passed else 'failed'}",
            canary_name=canary_name,
            run_id=new_run["Id"],
            run_state=run_status.get("State"),
            state_reason=run_status.get("StateReason"),
        )
        return passed

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def stop_canary(self, canary_name: str) -> None:
        """
        Bring the canary to STOPPED.

        A canary that is STARTING cannot be stopped yet, so wait for it to
        reach RUNNING first. A canary that is STOPPING already has a stop in
        flight and only needs waiting on.

        StopCanary API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/synthetics/client/stop_canary.html
        """
        state = self.get_canary_state(canary_name)

        if state in STOPPED_CANARY_STATES:
            self.logger.info("Canary is stopped", canary_name=canary_name, state=state)
            return

        if state == CANARY_STATE_STARTING:
            self.wait_for_canary_to_start(canary_name)
            state = CANARY_STATE_RUNNING

        if state != CANARY_STATE_STOPPING:
            self.logger.info("Stopping canary", canary_name=canary_name, state=state)
            self._send_command("stop_canary", canary_name, Name=canary_name)

        self.wait_for_canary_to_stop(canary_name)

    def start_canary(self, canary_name: str) -> None:
        """
        Bring the canary to RUNNING.

        StartCanary API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/synthetics/client/start_canary.html
        """
        state = self.get_canary_state(canary_name)

        if state == CANARY_STATE_RUNNING:
            # Something else started it after the stop phase. The run awaited
            # afterwards must still differ from the recorded baseline.
            self.logger.warning("Canary is already running", canary_name=canary_name)
            return

        if state == CANARY_STATE_STOPPING:
            self.wait_for_canary_to_stop(canary_name)
            state = CANARY_STATE_STOPPED

        if state != CANARY_STATE_STARTING:
            self.logger.info("Starting canary", canary_name=canary_name, state=state)
            self._send_command("start_canary", canary_name, Name=canary_name)

        self.wait_for_canary_to_start(canary_name)

    def wait_for_canary_to_start(self, canary_name: str) -> None:
        wait_until(
            lambda: self.is_canary_running(canary_name),
            self.poll_settings,
            sleep=self.sleep,
            description=f"canary {canary_name} to start",
        )
        self.logger.info("Canary has started", canary_name=canary_name)

    def wait_for_canary_to_stop(self, canary_name: str) -> None:
        wait_until(
            lambda: self.is_canary_stopped(canary_name),
            self.poll_settings,
            sleep=self.sleep,
            description=f"canary {canary_name} to stop",
        )
        self.logger.info("Canary has stopped", canary_name=canary_name)

    def wait_for_new_canary_run(self, canary_name: str, previous_run_id):
        """
        Wait for a run other than previous_run_id to finish.

        previous_run_id is None when the canary had never run, in which case
        any completed run counts as new.
        """
        self.logger.info(
            "Waiting for current run of canary to complete",
            canary_name=canary_name,
            previous_run_id=previous_run_id,
        )

        def is_new_completed_run(canary_run):
            if canary_run is None:
                return False
            run_id = self._require(canary_run.get("Id"), f"ID of last run of canary {canary_name}")
            if run_id == previous_run_id:
                return False
            run_state = self._require(
                (canary_run.get("Status") or {}).get("State"),
                f"State of run {run_id} of canary {canary_name}",
            )
            return run_state != RUN_STATE_RUNNING

        return wait_for_state(
            lambda: self.get_last_canary_run(canary_name),
            is_new_completed_run,
            self.poll_settings,
            sleep=self.sleep,
            description=f"new run of canary {canary_name} to complete",
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_canary_state(self, canary_name: str) -> str:
        """
        GetCanary API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/synthetics/client/get_canary.html
        """
        response = self._send_command("get_canary", canary_name, Name=canary_name)
        canary = response.get("Canary") or {}
        return self._require(
            (canary.get("Status") or {}).get("State"), f"State of canary {canary_name}"
        )

    def get_last_canary_run(self, canary_name: str):
        """
        Return the most recent run of the canary, or None if it has never run.

        DescribeCanariesLastRun API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/synthetics/client/describe_canaries_last_run.html
        """
        response = self._send_command(
            "describe_canaries_last_run",
            canary_name,
            Names=[canary_name],
            MaxResults=1,
        )

        for last_run in response.get("CanariesLastRun") or []:
            if last_run.get("CanaryName") == canary_name:
                return last_run.get("LastRun")
        return None

    def get_last_canary_run_id(self, canary_name: str):
        last_run = self.get_last_canary_run(canary_name)
        if last_run is None:
            self.logger.info("Canary has no previous run", canary_name=canary_name)
            return None
        return self._require(last_run.get("Id"), f"ID of last run of canary {canary_name}")

    def is_canary_running(self, canary_name: str) -> bool:
        return self.get_canary_state(canary_name) == CANARY_STATE_RUNNING

    def is_canary_stopped(self, canary_name: str) -> bool:
        return self.get_canary_state(canary_name) == CANARY_STATE_STOPPED

    # ------------------------------------------------------------------
    # Synthetics calls
    # ------------------------------------------------------------------

    def _send_command(self, operation: str, canary_name: str, **params) -> dict:
        """
        Call a Synthetics operation and check the HTTP status of the reply.

        boto3 normally raises ClientError for error statuses; both that and a
        non-200 ResponseMetadata are reported as CommandFailedError.
        """
        try:
            response = getattr(self.synthetics, operation)(**params)
        except ClientError as e:
            status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            raise CommandFailedError(operation, status_code, canary_name) from e

        status_code = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if status_code != SUCCESS_STATUS_CODE:
            raise CommandFailedError(operation, status_code, canary_name)

        return response

    @staticmethod
    def _require(value, name):
        if value is None:
            raise MissingValueError(name)
        return value
