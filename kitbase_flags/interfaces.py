"""
This submodule contains interfaces and event types used by the local-evaluation client.

Application code normally only receives these objects; the abstract classes can be implemented to
replace SDK components, for instance in tests.
"""

from abc import ABCMeta, abstractmethod
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from kitbase_flags.impl.model import FlagConfiguration


class ConfigurationRequester(metaclass=ABCMeta):
    """
    Interface for the component that downloads the flag configuration in local-evaluation mode. The
    default implementation can be replaced for testing purposes.
    """

    @abstractmethod
    def fetch(self, etag: Optional[str] = None) -> Optional[FlagConfiguration]:
        """
        Downloads the current configuration.

        :param etag: the validator of the configuration the caller already has, if any
        :return: the new configuration, or None if the server reported that the configuration
            identified by ``etag`` is still current
        :raises kitbase_flags.errors.AuthenticationError: if the API key was rejected
        :raises kitbase_flags.errors.ApiError: for any other unsuccessful status
        :raises kitbase_flags.errors.RequestTimeoutError: if the request timed out
        :raises kitbase_flags.errors.ParseError: if the response could not be decoded
        """

    def close(self):
        """
        Releases any network resources.
        """
        pass


class ClientState(Enum):
    """
    The lifecycle state of :class:`kitbase_flags.client.LocalFlagsClient`.
    """

    UNINITIALIZED = 'uninitialized'
    """
    ``initialize()`` has not completed yet.
    """

    READY = 'ready'
    """
    A configuration was installed by ``initialize()``. Polling, if enabled, keeps running in this state.
    """

    FAILED = 'failed'
    """
    The last call to ``initialize()`` raised an error. Polling was not started; ``initialize()`` may
    be called again.
    """


class ClientEventKind(Enum):
    READY = 'ready'
    CONFIGURATION_CHANGED = 'configurationChanged'


class ClientEvent:
    """
    A lifecycle event delivered to listeners registered with
    :func:`kitbase_flags.client.LocalFlagsClient.on()`.
    """

    __slots__ = ['_kind', '_configuration']

    def __init__(self, kind: ClientEventKind, configuration: FlagConfiguration):
        self._kind = kind
        self._configuration = configuration

    @property
    def kind(self) -> ClientEventKind:
        return self._kind

    @property
    def configuration(self) -> FlagConfiguration:
        """
        :return: the configuration that was installed
        """
        return self._configuration

    def __repr__(self) -> str:
        return "ClientEvent(%s)" % self._kind.value


class FlagChange:
    """
    Change event fired when some aspect of the flag referenced by the key has changed.
    """

    def __init__(self, key: str):
        self.__key = key

    @property
    def key(self) -> str:
        """
        :return: The key of the flag that changed.
        """
        return self.__key


class FlagValueChange:
    """
    Change event fired when the evaluated value for the specified flag key has changed.
    """

    def __init__(self, key, old_value, new_value):
        self.__key = key
        self.__old_value = old_value
        self.__new_value = new_value

    @property
    def key(self):
        return self.__key

    @property
    def old_value(self):
        """
        :return: The value for the context before the configuration changed
        """
        return self.__old_value

    @property
    def new_value(self):
        """
        :return: The value for the context after the configuration changed
        """
        return self.__new_value


class FlagTracker(metaclass=ABCMeta):
    """
    An interface for subscribing to changes of individual flags.

    An implementation of this interface is returned by :attr:`kitbase_flags.client.LocalFlagsClient.flag_tracker`.
    Application code never needs to implement this interface.
    """

    @abstractmethod
    def add_listener(self, listener: Callable[[FlagChange], None]) -> Callable[[], None]:
        """
        Registers a listener that is called with a :class:`FlagChange` for every flag that changed
        when a new configuration is installed.

        :param listener: the listener to add
        :return: a function that removes the listener
        """

    @abstractmethod
    def add_key_listener(self, key: str, listener: Callable[[FlagChange], None]) -> Callable[[FlagChange], None]:
        """
        Registers a listener that is only called when the flag with the given key changed.

        :param key: the flag key to watch
        :param listener: the listener to add
        :return: the registered listener, which can be passed to :func:`remove_listener()`
        """

    @abstractmethod
    def remove_listener(self, listener: Callable[[FlagChange], None]):
        """
        Unregisters a listener so that it will no longer be notified of flag changes.

        :param listener: a listener that was previously added; if it was not, this method does nothing
        """

    @abstractmethod
    def add_flag_value_change_listener(self, key: str, context: Optional[Mapping[str, Any]], listener: Callable[[FlagValueChange], None]) -> Callable[[FlagChange], None]:
        """
        Registers a listener to be notified of a change in a specific flag's value for a specific
        evaluation context.

        When the flag is reported as changed, the flag is evaluated for ``context`` and ``listener`` is
        called with a :class:`FlagValueChange` only if the result differs from the previous one.

        :param key: the flag key to watch
        :param context: the evaluation context to evaluate the flag for
        :param listener: the listener to add
        :return: the underlying change listener, which can be passed to :func:`remove_listener()`
        """


__all__ = ['ConfigurationRequester', 'ClientState', 'ClientEventKind', 'ClientEvent', 'FlagChange', 'FlagValueChange', 'FlagTracker']
