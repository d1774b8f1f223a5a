"""
Default implementation of the streaming component.
"""

import json
from threading import Thread
from typing import Callable, Optional

from ld_eventsource import SSEClient
from ld_eventsource.actions import Event, Fault
from ld_eventsource.config import (ConnectStrategy, ErrorStrategy,
                                   RetryDelayStrategy)
from ld_eventsource.errors import HTTPStatusError

from kitbase_flags.config import Config
from kitbase_flags.errors import ParseError
from kitbase_flags.impl.http import HTTPFactory, _config_headers
from kitbase_flags.impl.model import FlagConfiguration
from kitbase_flags.impl.util import (http_error_message,
                                     is_http_error_recoverable, log)

# allows for up to 5 minutes to elapse without any data sent across the stream. The heartbeat events
# sent on the stream will keep this from triggering
stream_read_timeout = 5 * 60

MAX_RETRY_DELAY = 30
BACKOFF_RESET_INTERVAL = 60
JITTER_RATIO = 0.5

STREAM_PATH = '/v1/feature-flags/config/stream'


class StreamingConfigurationProcessor(Thread):
    """
    Receives the flag configuration over a server-sent events connection. Each ``config`` event
    carries a complete configuration; ``heartbeat`` events only keep the connection alive.

    Network errors and recoverable HTTP statuses are retried with backoff. An unrecoverable status
    stops the stream and is reported to ``on_failure`` so that the client can fall back to polling.
    """

    def __init__(
        self,
        config: Config,
        current_etag: Callable[[], Optional[str]],
        on_configuration: Callable[[FlagConfiguration], None],
        on_failure: Callable[[int], None],
    ):
        Thread.__init__(self, name="kitbase_flags.datasource.streaming")
        self.daemon = True
        self._uri = config.base_uri + STREAM_PATH
        self._config = config
        self._current_etag = current_etag
        self._on_configuration = on_configuration
        self._on_failure = on_failure
        self._running = True
        self._sse = self._create_sse_client()

    def run(self):
        if not self._running:
            return
        log.info("Starting StreamingConfigurationProcessor connecting to uri: " + self._uri)
        for action in self._sse.all:
            if isinstance(action, Event):
                try:
                    self._process_message(action)
                except (ValueError, ParseError) as e:
                    log.warning("Error while handling stream event; will restart stream: %s" % e)
                    self._sse.interrupt()
                except Exception as e:
                    log.exception('Error: Exception encountered when updating flags. %s' % e)
            elif isinstance(action, Fault):
                # a fault without an error means the server closed the stream; the client reconnects
                if action.error is None:
                    continue

                if not self._handle_error(action.error):
                    break
        self._sse.close()

    def _create_sse_client(self) -> SSEClient:
        # The stream must not use the same read timeout as the rest of the SDK.
        http_factory = HTTPFactory(self._config.http, override_read_timeout=stream_read_timeout)
        return SSEClient(
            connect=ConnectStrategy.http(
                url=self._uri,
                headers=_config_headers(self._config),
                pool=http_factory.create_pool_manager(1, self._uri),
                urllib3_request_options={"timeout": http_factory.timeout},
            ),
            error_strategy=ErrorStrategy.always_continue(),  # errors are judged in _handle_error
            initial_retry_delay=self._config.initial_reconnect_delay,
            retry_delay_strategy=RetryDelayStrategy.default(max_delay=MAX_RETRY_DELAY, backoff_multiplier=2, jitter_multiplier=JITTER_RATIO),
            retry_delay_reset_threshold=BACKOFF_RESET_INTERVAL,
            logger=log,
        )

    def stop(self):
        log.info("Stopping StreamingConfigurationProcessor")
        self._running = False
        self._sse.close()

    @property
    def stopped(self) -> bool:
        return not self._running

    def _process_message(self, msg: Event):
        if msg.event == 'config':
            configuration = FlagConfiguration.from_json_dict(json.loads(msg.data))
            log.debug("Received config event with ETag [%s] and %d flags", configuration.etag, len(configuration.flags))
            if configuration.etag is not None and configuration.etag == self._current_etag():
                return
            if not self._running:
                log.debug("Discarding configuration received after streaming was stopped")
                return
            self._on_configuration(configuration)
        elif msg.event == 'heartbeat':
            pass
        else:
            log.warning('Unhandled event in stream processor: ' + msg.event)

    # Returns true to continue, false to stop
    def _handle_error(self, error: Exception) -> bool:
        if not self._running:
            return False  # don't retry if we've been deliberately stopped

        if isinstance(error, HTTPStatusError):
            message = http_error_message(error.status, "stream connection")
            if not is_http_error_recoverable(error.status):
                log.error(message)
                self.stop()
                self._on_failure(error.status)
                return False
            log.warning(message)
        else:
            # no stacktrace here because, for a typical connection error, it'll just be a lengthy tour of urllib3 internals
            log.warning("Unexpected error on stream connection: %s, will retry" % error)
        return True

    # magic methods for "with" statement (used in testing)
    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.stop()
