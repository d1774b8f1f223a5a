"""
This submodule contains the client for local flag evaluation, :class:`LocalFlagsClient`.
"""

from collections import deque
from threading import Event, Lock
from typing import Any, Callable, Deque, List, Optional, Tuple, Union

from kitbase_flags.config import Config
from kitbase_flags.errors import (ClientNotReadyError, ParseError,
                                  ValidationError)
from kitbase_flags.evaluation import (EvaluatedFlag, EvaluationContext,
                                      FlagSnapshot, FlagValueType,
                                      ResolutionDetails)
from kitbase_flags.impl.changes import ChangedFlags, compute_changed_flags
from kitbase_flags.impl.datasource.config_requester import \
    ConfigurationRequesterImpl
from kitbase_flags.impl.datasource.polling import \
    PollingConfigurationProcessor
from kitbase_flags.impl.datasource.streaming import \
    StreamingConfigurationProcessor
from kitbase_flags.impl.evaluator_cache import EvaluatorCache
from kitbase_flags.impl.flag_tracker import FlagTrackerImpl
from kitbase_flags.impl.listeners import Listeners
from kitbase_flags.impl.model import FlagConfiguration
from kitbase_flags.impl.util import iso_timestamp, log, validate_flag_key
from kitbase_flags.interfaces import (ClientEvent, ClientEventKind,
                                      ClientState, ConfigurationRequester,
                                      FlagTracker)


class LocalFlagsClient:
    """The client for evaluating feature flags locally.

    The client downloads the flag configuration of an environment once, evaluates flags against it
    in-process, and keeps it fresh by polling. Evaluation methods never perform I/O.

    Applications should instantiate a single instance for the lifetime of the application and call
    :func:`initialize()` once before relying on flag values::

        client = LocalFlagsClient(Config("my-api-key"))
        client.initialize()
        enabled = client.get_boolean_value("dark-mode", False, {"targetingKey": user.id})
    """

    def __init__(self, config: Config, requester: Optional[ConfigurationRequester] = None):
        """Constructs a new client. This does not make any network request.

        :param config: the client configuration
        :param requester: replaces the component that downloads the configuration; intended for testing
        :raises ValidationError: if the configuration has no API key
        """
        if not isinstance(config, Config):
            raise ValidationError("config should be a Config instance", "config")
        config._validate()

        self._config = config
        self._requester = requester or ConfigurationRequesterImpl(config)
        self._cache = EvaluatorCache()
        self._event_listeners = Listeners()
        self._changed_flags_listeners = Listeners()
        self._flag_tracker = FlagTrackerImpl(self._changed_flags_listeners, lambda key, context: self._cache.evaluate(key, context).value)

        self.__state = ClientState.UNINITIALIZED
        self.__ready = Event()
        self.__init_lock = Lock()
        self.__update_lock = Lock()
        self.__processor: Optional[Union[PollingConfigurationProcessor, StreamingConfigurationProcessor]] = None
        self.__closed = False
        self.__pending_events: Deque[Tuple[FlagConfiguration, ChangedFlags]] = deque()
        self.__delivering = False

        if config.initial_configuration is not None:
            self._cache.set_configuration(config.initial_configuration)

    def initialize(self):
        """Loads the flag configuration and starts receiving updates by polling or streaming.

        If an ``initial_configuration`` was configured, it is used and no request is made; otherwise
        this blocks until the configuration has been downloaded. Calling this method again after it
        succeeded does nothing; after a failure it makes a new attempt.

        :raises AuthenticationError: if the API key was rejected
        :raises ApiError: if the service returned any other unsuccessful status
        :raises RequestTimeoutError: if the request timed out
        :raises ParseError: if the configuration could not be decoded
        """
        with self.__init_lock:
            if self.__state == ClientState.READY:
                return
            if self.__closed:
                log.warning("initialize() called on a closed LocalFlagsClient; ignoring")
                return

            log.info("Initializing LocalFlagsClient...")
            try:
                configuration = self._config.initial_configuration
                if configuration is None:
                    configuration = self._requester.fetch()
                    if configuration is None:
                        raise ParseError("no flag configuration was returned")
            except Exception as e:
                self.__state = ClientState.FAILED
                log.error("LocalFlagsClient failed to initialize: %s" % e)
                raise

            self._cache.set_configuration(configuration)
            self.__state = ClientState.READY
            self.__ready.set()
            log.info("Started LocalFlagsClient: OK (%d flags)" % len(configuration.flags))
            self._event_listeners.notify(ClientEvent(ClientEventKind.READY, configuration))
            self._start_updates()

    def _start_updates(self):
        with self.__update_lock:
            if self.__closed:
                return
            if self._config.stream:
                self.__processor = StreamingConfigurationProcessor(self._config, self._cache.get_etag, self._update_configuration, self._on_stream_failure)
            elif self._config.poll_interval > 0:
                self.__processor = self._create_polling_processor()
            else:
                log.info("Polling is disabled; call refresh() to update the flag configuration")
                return
            self.__processor.start()

    def _create_polling_processor(self) -> PollingConfigurationProcessor:
        return PollingConfigurationProcessor(self._config.poll_interval, self._requester, self._cache.get_etag, self._update_configuration)

    def _on_stream_failure(self, status: int):
        with self.__update_lock:
            if self.__closed:
                return
            if self._config.poll_interval <= 0:
                log.warning("Stream connection failed with HTTP error %d and polling is disabled; call refresh() to update the flag configuration" % status)
                return
            log.warning("Stream connection failed with HTTP error %d; falling back to polling" % status)
            self.__processor = self._create_polling_processor()
            self.__processor.start()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Blocks until :func:`initialize()` has succeeded.

        :param timeout: the maximum number of seconds to wait, or None to wait indefinitely
        :return: True if the client is ready, False if the timeout elapsed first
        """
        return self.__ready.wait(timeout)

    def is_ready(self) -> bool:
        """Returns true if :func:`initialize()` has succeeded and a configuration is installed."""
        return self.__state == ClientState.READY and self._cache.is_ready()

    def get_state(self) -> ClientState:
        return self.__state

    def refresh(self):
        """Checks for a new flag configuration now instead of waiting for the next poll.

        Unlike a scheduled poll, a failure is raised to the caller.
        """
        configuration = self._requester.fetch(self._cache.get_etag())
        if configuration is None:
            log.debug("Flag configuration is unchanged")
            return
        self._update_configuration(configuration)

    def _update_configuration(self, configuration: FlagConfiguration):
        with self.__update_lock:
            if self.__closed:
                log.debug("Discarding flag configuration received after close()")
                return
            old_state = self._cache.state()
            self._cache.set_configuration(configuration)
            changed = compute_changed_flags(old_state, self._cache.state())
            log.debug("Installed flag configuration with ETag [%s]; %d flags changed" % (configuration.etag, len(changed)))
            self.__pending_events.append((configuration, changed))
            if self.__delivering:
                return
            self.__delivering = True
        self._deliver_pending_events()

    def _deliver_pending_events(self):
        # Only one thread delivers at a time, so listeners see configurations in install order.
        while True:
            with self.__update_lock:
                if not self.__pending_events:
                    self.__delivering = False
                    return
                configuration, changed = self.__pending_events.popleft()
            self._event_listeners.notify(ClientEvent(ClientEventKind.CONFIGURATION_CHANGED, configuration))
            if changed:
                self._changed_flags_listeners.notify(changed)

    def on(self, listener: Callable[[ClientEvent], None]) -> Callable[[], None]:
        """Registers a listener for lifecycle events (``ready`` and ``configurationChanged``).

        Listeners are called synchronously on the thread that installed the configuration. An
        exception raised by a listener is logged and does not affect other listeners.

        :return: a function that removes the listener
        """
        return self._event_listeners.add(listener)

    def off(self, listener: Callable[[ClientEvent], None]):
        self._event_listeners.remove(listener)

    def on_flag_change(self, listener: Callable[[ChangedFlags], None]) -> Callable[[], None]:
        """Registers a listener that receives the set of flag keys changed by each new configuration.

        It is not called when a new configuration changes nothing.

        :return: a function that removes the listener
        """
        return self._changed_flags_listeners.add(listener)

    @property
    def flag_tracker(self) -> FlagTracker:
        """
        Returns an object for subscribing to changes of individual flags.
        """
        return self._flag_tracker

    def close(self):
        """Stops polling or streaming and removes all listeners.

        The last configuration stays installed, so evaluation methods keep working.
        """
        log.info("Closing LocalFlagsClient..")
        with self.__update_lock:
            self.__closed = True
            processor = self.__processor
        if processor is not None:
            processor.stop()
        self._event_listeners.clear()
        self._changed_flags_listeners.clear()
        self._requester.close()

    # These magic methods allow a client object to be automatically cleaned up by the "with" scope operator
    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.close()

    def evaluate_flag(self, key: str, context: Optional[EvaluationContext] = None, default: Any = None) -> EvaluatedFlag:
        """Evaluates a flag against the current configuration.

        A flag that does not exist, or an evaluation before any configuration is installed, yields a
        result with reason ``ERROR`` and ``default`` as its value rather than raising.

        :param key: the flag key
        :param context: the evaluation context, including ``targetingKey`` for percentage rollouts
        :param default: the value reported when the flag cannot be evaluated
        """
        validate_flag_key(key)
        return self._cache.evaluate(key, context, default)

    def get_snapshot(self, context: Optional[EvaluationContext] = None) -> FlagSnapshot:
        """Evaluates every flag of the current configuration for one context.

        :raises ClientNotReadyError: if no configuration has been installed
        """
        state = self._cache.state()
        if state is None:
            raise ClientNotReadyError()
        flags = [state.evaluate(key, context) for key in state.flags_by_key]
        return FlagSnapshot('', state.configuration.environment_id, iso_timestamp(), flags)

    def get_boolean_value(self, key: str, default: bool, context: Optional[EvaluationContext] = None) -> bool:
        return self.get_boolean_details(key, default, context).value

    def get_boolean_details(self, key: str, default: bool, context: Optional[EvaluationContext] = None) -> ResolutionDetails:
        return self._resolve(key, FlagValueType.BOOLEAN, default, context)

    def get_string_value(self, key: str, default: str, context: Optional[EvaluationContext] = None) -> str:
        return self.get_string_details(key, default, context).value

    def get_string_details(self, key: str, default: str, context: Optional[EvaluationContext] = None) -> ResolutionDetails:
        return self._resolve(key, FlagValueType.STRING, default, context)

    def get_number_value(self, key: str, default: float, context: Optional[EvaluationContext] = None) -> float:
        return self.get_number_details(key, default, context).value

    def get_number_details(self, key: str, default: float, context: Optional[EvaluationContext] = None) -> ResolutionDetails:
        return self._resolve(key, FlagValueType.NUMBER, default, context)

    def get_json_value(self, key: str, default: Any, context: Optional[EvaluationContext] = None) -> Any:
        return self.get_json_details(key, default, context).value

    def get_json_details(self, key: str, default: Any, context: Optional[EvaluationContext] = None) -> ResolutionDetails:
        return self._resolve(key, FlagValueType.JSON, default, context)

    def _resolve(self, key: str, expected_type: FlagValueType, default: Any, context: Optional[EvaluationContext]) -> ResolutionDetails:
        validate_flag_key(key)
        return ResolutionDetails.resolve(self._cache.evaluate(key, context, default), expected_type, default)

    def has_flag(self, key: str) -> bool:
        return self._cache.has_flag(key)

    def get_flag_keys(self) -> List[str]:
        return self._cache.get_flag_keys()

    def get_configuration(self) -> Optional[FlagConfiguration]:
        return self._cache.get_configuration()


__all__ = ['LocalFlagsClient']
