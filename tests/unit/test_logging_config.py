"""Unit tests for the JSON log lines written to CloudWatch Logs"""
import json

import pytest

from constants import DEFAULT_LOG_LEVEL, DEFAULT_SERVICE_NAME
from logging_config import (
    bind_invocation_context,
    clear_invocation_context,
    configure_logging,
    get_logger,
)


@pytest.fixture
def service_logging():
	configure_logging(service_name='alpha-CanaryRunner', level='INFO')
	yield
	clear_invocation_context()
	configure_logging(service_name=DEFAULT_SERVICE_NAME, level=DEFAULT_LOG_LEVEL)


def test_log_line_is_json_with_service_and_context(service_logging, capsys):
	bind_invocation_context(canary_name='checkout-flow', client_run_id=None)

	get_logger('canary_lifecycle').info("Canary has started", state='RUNNING')

	line = json.loads(capsys.readouterr().out.strip())
	assert line['event'] == 'Canary has started'
	assert line['service'] == 'alpha-CanaryRunner'
	assert line['level'] == 'info'
	assert line['canary_name'] == 'checkout-flow'
	assert line['state'] == 'RUNNING'
	assert line['timestamp'].endswith('Z')
	# None values are not bound
	assert 'client_run_id' not in line


def test_debug_filtered_at_info_level(service_logging, capsys):
	get_logger('canary_lifecycle').debug("Polling")

	assert capsys.readouterr().out == ''
