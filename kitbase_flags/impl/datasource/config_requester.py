"""
Default implementation of flag configuration requests for local evaluation.
"""

import json
from typing import Optional

import urllib3

from kitbase_flags.config import Config
from kitbase_flags.errors import (ApiError, AuthenticationError, NetworkError,
                                  ParseError, RequestTimeoutError)
from kitbase_flags.impl.http import _config_headers, _http_factory
from kitbase_flags.impl.model import FlagConfiguration
from kitbase_flags.impl.util import (error_message_from_body, log,
                                     parse_response_body)
from kitbase_flags.interfaces import ConfigurationRequester

CONFIG_PATH = '/v1/feature-flags/config'


class ConfigurationRequesterImpl(ConfigurationRequester):
    def __init__(self, config: Config):
        self._config = config
        self._http_factory = _http_factory(config)
        self._http = self._http_factory.create_pool_manager(1, config.base_uri)
        self._uri = config.base_uri + CONFIG_PATH

    def fetch(self, etag: Optional[str] = None) -> Optional[FlagConfiguration]:
        hdrs = _config_headers(self._config)
        hdrs['Accept-Encoding'] = 'gzip'
        if etag is not None:
            hdrs['If-None-Match'] = etag
        try:
            r = self._http.request('GET', self._uri, headers=hdrs, timeout=self._http_factory.timeout, retries=False)
        except urllib3.exceptions.NewConnectionError as e:
            raise NetworkError(str(e)) from e
        except urllib3.exceptions.TimeoutError as e:
            raise RequestTimeoutError() from e
        except urllib3.exceptions.HTTPError as e:
            raise NetworkError(str(e)) from e

        if r.status == 304 and etag is not None:
            log.debug("%s response status:[304] configuration with ETag [%s] is current", self._uri, etag)
            return None

        if r.status == 401:
            raise AuthenticationError()
        if r.status < 200 or r.status >= 300:
            body = parse_response_body(r.data)
            raise ApiError(error_message_from_body(body, "HTTP error %d" % r.status), r.status, body)

        try:
            data = json.loads(r.data.decode('UTF-8'))
        except ValueError as e:
            raise ParseError('flag configuration response is not valid JSON: %s' % e) from e
        configuration = FlagConfiguration.from_json_dict(data, r.headers.get('ETag'))
        log.debug("%s response status:[%d] ETag:[%s]", self._uri, r.status, configuration.etag)
        return configuration

    def close(self):
        self._http.clear()
