"""
This submodule contains the :class:`Config` class for custom configuration of the SDK clients.
"""

from typing import Optional, Union

from kitbase_flags.errors import ValidationError
from kitbase_flags.impl.model.configuration import FlagConfiguration
from kitbase_flags.impl.util import log

DEFAULT_BASE_URI = 'https://api.kitbase.dev'


class HTTPConfig:
    """Advanced HTTP configuration options for the SDK clients.

    This class groups together HTTP/HTTPS-related configuration properties that rarely need to be changed.
    If you need to set these, construct an ``HTTPConfig`` instance and pass it as the ``http`` parameter when
    you construct the main :class:`Config`.
    """

    def __init__(
        self,
        connect_timeout: float = 10,
        read_timeout: float = 30,
        http_proxy: Optional[str] = None,
        ca_certs: Optional[str] = None,
        disable_ssl_verification: bool = False,
    ):
        """
        :param connect_timeout: The connect timeout for network connections in seconds.
        :param read_timeout: The read timeout for network connections in seconds. A request that takes
          longer raises :class:`kitbase_flags.errors.RequestTimeoutError`.
        :param http_proxy: Use a proxy when connecting to Kitbase. This is the full URI of the
          proxy; for example: http://my-proxy.com:1234. Setting this overrides any proxy specified by
          the ``http_proxy``/``https_proxy`` environment variables.
        :param ca_certs: If using a custom certificate authority, set this to the file path of the
          certificate bundle.
        :param disable_ssl_verification: If true, completely disables SSL verification and certificate
          verification for secure requests. This is unsafe and should not be used in a production environment.
        """
        self.__connect_timeout = connect_timeout
        self.__read_timeout = read_timeout
        self.__http_proxy = http_proxy
        self.__ca_certs = ca_certs
        self.__disable_ssl_verification = disable_ssl_verification

    @property
    def connect_timeout(self) -> float:
        return self.__connect_timeout

    @property
    def read_timeout(self) -> float:
        return self.__read_timeout

    @property
    def http_proxy(self) -> Optional[str]:
        return self.__http_proxy

    @property
    def ca_certs(self) -> Optional[str]:
        return self.__ca_certs

    @property
    def disable_ssl_verification(self) -> bool:
        return self.__disable_ssl_verification


class Config:
    """Configuration options for :class:`kitbase_flags.client.LocalFlagsClient` and
    :class:`kitbase_flags.remote_client.FlagsClient`.

    Options that only apply to one of the two clients are ignored by the other.
    """

    def __init__(
        self,
        token: str,
        base_uri: str = DEFAULT_BASE_URI,
        poll_interval: float = 60,
        stream: bool = False,
        initial_reconnect_delay: float = 1,
        initial_configuration: Optional[Union[FlagConfiguration, dict]] = None,
        cache_ttl: float = 60,
        cache_capacity: int = 1000,
        http: HTTPConfig = HTTPConfig(),
        wrapper_name: Optional[str] = None,
        wrapper_version: Optional[str] = None,
    ):
        """
        :param token: The API key for your Kitbase environment. This is always required.
        :param base_uri: The base URL of the Kitbase API. Most users should use the default value.
        :param poll_interval: (local evaluation) The number of seconds between polls for configuration
          updates. Set to 0 to disable polling; the configuration can still be updated with
          :func:`kitbase_flags.client.LocalFlagsClient.refresh()`.
        :param stream: (local evaluation) Whether to receive configuration updates over a server-sent events
          connection instead of polling. If the service refuses the stream, the client falls back to polling
          every ``poll_interval`` seconds.
        :param initial_reconnect_delay: (local evaluation) The initial reconnect delay (in seconds) for the
          streaming connection. The delay grows exponentially, with jitter, for consecutive connection failures.
        :param initial_configuration: (local evaluation) A configuration to evaluate against before, or
          instead of, the first fetch. When set, ``initialize()`` does not make a network request. Either a
          :class:`FlagConfiguration` or its JSON representation.
        :param cache_ttl: (remote evaluation) The number of seconds an evaluation result is reused for the
          same flag key and targeting key. Set to 0 to disable caching.
        :param cache_capacity: (remote evaluation) The maximum number of cached evaluation results.
        :param http: Optional properties for customizing the client's HTTP/HTTPS behavior. See
          :class:`HTTPConfig`.
        :param wrapper_name: For use by wrapper libraries to set an identifying name for the wrapper
          being used. This will be sent in HTTP headers.
        :param wrapper_version: For use by wrapper libraries to report the version of the library in
          use. If ``wrapper_name`` is not set, this field will be ignored.
        """
        self.__token = token
        self.__base_uri = base_uri.rstrip('/')
        self.__poll_interval = max(poll_interval, 0)
        self.__stream = stream
        self.__initial_reconnect_delay = initial_reconnect_delay
        if isinstance(initial_configuration, dict):
            initial_configuration = FlagConfiguration.from_json_dict(initial_configuration)
        self.__initial_configuration = initial_configuration
        self.__cache_ttl = max(cache_ttl, 0)
        self.__cache_capacity = cache_capacity
        self.__http = http
        self.__wrapper_name = wrapper_name
        self.__wrapper_version = wrapper_version

    def copy_with_new_token(self, new_token: str) -> 'Config':
        """Returns a new ``Config`` instance that is the same as this one, except for having a different API key.

        :param new_token: the new API key
        """
        return Config(
            token=new_token,
            base_uri=self.__base_uri,
            poll_interval=self.__poll_interval,
            stream=self.__stream,
            initial_reconnect_delay=self.__initial_reconnect_delay,
            initial_configuration=self.__initial_configuration,
            cache_ttl=self.__cache_ttl,
            cache_capacity=self.__cache_capacity,
            http=self.__http,
            wrapper_name=self.__wrapper_name,
            wrapper_version=self.__wrapper_version,
        )

    @property
    def token(self) -> str:
        return self.__token

    @property
    def base_uri(self) -> str:
        return self.__base_uri

    @property
    def poll_interval(self) -> float:
        return self.__poll_interval

    @property
    def stream(self) -> bool:
        return self.__stream

    @property
    def initial_reconnect_delay(self) -> float:
        return self.__initial_reconnect_delay

    @property
    def initial_configuration(self) -> Optional[FlagConfiguration]:
        return self.__initial_configuration

    @property
    def cache_ttl(self) -> float:
        return self.__cache_ttl

    @property
    def cache_capacity(self) -> int:
        return self.__cache_capacity

    @property
    def http(self) -> HTTPConfig:
        return self.__http

    @property
    def wrapper_name(self) -> Optional[str]:
        return self.__wrapper_name

    @property
    def wrapper_version(self) -> Optional[str]:
        return self.__wrapper_version

    def _validate(self):
        if not isinstance(self.token, str) or self.token.strip() == '':
            log.error("Missing or blank API token.")
            raise ValidationError('API key is required', 'token')


__all__ = ['Config', 'HTTPConfig']
