import time
from queue import Queue

import mock

from kitbase_flags.errors import (ApiError, AuthenticationError,
                                  RequestTimeoutError)
from kitbase_flags.impl.datasource.polling import \
    PollingConfigurationProcessor
from kitbase_flags.testing.builders import *
from kitbase_flags.testing.stub_util import MockConfigurationRequester

pp = None
mock_requester = None
received = None
current_etag = None


def setup_function():
    global mock_requester, received, current_etag
    mock_requester = MockConfigurationRequester()
    received = Queue()
    current_etag = None


def teardown_function():
    if pp is not None:
        pp.stop()


def on_configuration(configuration):
    global current_etag
    current_etag = configuration.etag
    received.put(configuration)


def setup_processor(interval=0.05):
    global pp
    pp = PollingConfigurationProcessor(interval, mock_requester, lambda: current_etag, on_configuration)
    pp.start()


def wait_for_requests(count, timeout=1):
    deadline = time.time() + timeout
    while mock_requester.request_count < count and time.time() < deadline:
        time.sleep(0.01)
    assert mock_requester.request_count >= count


def test_first_poll_happens_after_one_interval():
    mock_requester.configurations = [ConfigurationBuilder().etag('v1').build()]
    setup_processor(0.3)
    time.sleep(0.1)
    assert mock_requester.request_count == 0
    received.get(True, 1)


def test_new_configuration_is_delivered():
    configuration = ConfigurationBuilder().etag('v1').flags(make_boolean_flag('a')).build()
    mock_requester.configurations = [configuration]
    setup_processor()
    assert received.get(True, 1) == configuration


def test_poll_sends_current_etag_and_ignores_unchanged_configuration():
    mock_requester.configurations = [ConfigurationBuilder().etag('v1').build()]
    setup_processor()
    received.get(True, 1)
    wait_for_requests(3)
    assert mock_requester.etags_seen[0] is None
    assert mock_requester.etags_seen[1:3] == ['v1', 'v1']
    assert received.empty()


def test_successive_configurations_are_delivered_in_order():
    mock_requester.configurations = [ConfigurationBuilder().etag('v1').build(), ConfigurationBuilder().etag('v2').build()]
    setup_processor()
    assert received.get(True, 1).etag == 'v1'
    assert received.get(True, 1).etag == 'v2'


def test_recoverable_error_is_logged_as_warning_and_polling_continues():
    mock_requester.exception = ApiError('unavailable', 503)
    with mock.patch('kitbase_flags.impl.datasource.polling.log') as log:
        setup_processor()
        wait_for_requests(2)
        pp.stop()
        assert log.warning.called
        assert not log.error.called


def test_unrecoverable_error_is_logged_as_error_and_polling_continues():
    mock_requester.exception = ApiError('forbidden', 403)
    with mock.patch('kitbase_flags.impl.datasource.polling.log') as log:
        setup_processor()
        wait_for_requests(2)
        pp.stop()
        assert log.error.called


def test_authentication_error_is_logged_as_error_and_polling_continues():
    mock_requester.exception = AuthenticationError()
    with mock.patch('kitbase_flags.impl.datasource.polling.log') as log:
        setup_processor()
        wait_for_requests(2)
        pp.stop()
        assert log.error.called


def test_timeout_is_logged_as_warning():
    mock_requester.exception = RequestTimeoutError()
    with mock.patch('kitbase_flags.impl.datasource.polling.log') as log:
        setup_processor()
        wait_for_requests(2)
        pp.stop()
        assert log.warning.called


def test_unexpected_error_does_not_stop_polling():
    mock_requester.exception = Exception("bad")
    setup_processor()
    wait_for_requests(2)


def test_polling_recovers_after_error():
    mock_requester.exception = ApiError('unavailable', 503)
    mock_requester.configurations = [ConfigurationBuilder().etag('v1').build()]
    setup_processor()
    wait_for_requests(2)
    mock_requester.exception = None
    assert received.get(True, 1).etag == 'v1'


def test_stop_ends_polling():
    setup_processor()
    wait_for_requests(1)
    pp.stop()
    assert pp.stopped is True
    time.sleep(0.1)
    count = mock_requester.request_count
    time.sleep(0.2)
    assert mock_requester.request_count == count