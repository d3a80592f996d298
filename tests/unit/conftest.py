"""
Shared fixtures for unit tests.

FakeSynthetics stands in for the boto3 Synthetics client. It keeps a single
canary in memory and advances it the way the real service does:
- A transitional state (STARTING/STOPPING) is reported once, then settles
- start_canary creates a new RUNNING run that completes after a few polls
- Every start/stop command is recorded with the state it was issued in
"""
import copy

import pytest

from constants import (
    CANARY_STATE_RUNNING,
    CANARY_STATE_STARTING,
    CANARY_STATE_STOPPED,
    CANARY_STATE_STOPPING,
    RUN_STATE_PASSED,
    RUN_STATE_RUNNING,
)


class FakeSynthetics:

    def __init__(self, canary_name="checkout-flow", state=CANARY_STATE_STOPPED, last_run=None,
                 new_run_result=RUN_STATE_PASSED, run_polls=2, status_codes=None):
        self.canary_name = canary_name
        self.state = state
        self.last_run = copy.deepcopy(last_run)
        self.new_run_result = new_run_result
        self.run_polls = run_polls
        self.status_codes = status_codes or {}
        self.commands = []
        self._run_count = 0 if last_run is None else 1
        self._remaining_polls = 0

    def _reply(self, operation, **body):
        body['ResponseMetadata'] = {'HTTPStatusCode': self.status_codes.get(operation, 200)}
        return body

    def _succeeds(self, operation):
        return self.status_codes.get(operation, 200) == 200

    def get_canary(self, Name):
        state = self.state
        if state == CANARY_STATE_STOPPING:
            self.state = CANARY_STATE_STOPPED
        elif state == CANARY_STATE_STARTING:
            self.state = CANARY_STATE_RUNNING
        return self._reply('get_canary', Canary={'Name': Name, 'Status': {'State': state}})

    def describe_canaries_last_run(self, Names, MaxResults):
        # A run of another canary is listed first to exercise name matching
        last_runs = [{'CanaryName': 'unrelated-canary', 'LastRun': {'Id': 'other-run', 'Status': {'State': 'FAILED'}}}]

        if self.last_run is not None:
            last_runs.append({'CanaryName': self.canary_name, 'LastRun': copy.deepcopy(self.last_run)})
            if self.last_run['Status']['State'] == RUN_STATE_RUNNING:
                self._remaining_polls -= 1
                if self._remaining_polls <= 0:
                    self.last_run['Status']['State'] = self.new_run_result

        return self._reply('describe_canaries_last_run', CanariesLastRun=last_runs)

    def start_canary(self, Name):
        self.commands.append(('start_canary', self.state))
        if self._succeeds('start_canary'):
            self.state = CANARY_STATE_STARTING
            self._run_count += 1
            self.last_run = {'Id': f'run-{self._run_count}', 'Status': {'State': RUN_STATE_RUNNING}}
            self._remaining_polls = self.run_polls
        return self._reply('start_canary')

    def stop_canary(self, Name):
        self.commands.append(('stop_canary', self.state))
        if self._succeeds('stop_canary'):
            self.state = CANARY_STATE_STOPPING
        return self._reply('stop_canary')

    def issued(self, operation):
        return [state for name, state in self.commands if name == operation]


@pytest.fixture
def fake_synthetics():
    """Factory for FakeSynthetics instances"""
    return FakeSynthetics
