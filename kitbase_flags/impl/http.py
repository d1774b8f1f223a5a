from os import environ
from typing import Optional
from urllib.parse import urlparse

import certifi
import urllib3

from kitbase_flags.version import VERSION


def _base_headers(config):
    headers = {'User-Agent': 'KitbaseFlagsPython/' + VERSION}

    if isinstance(config.wrapper_name, str) and config.wrapper_name != "":
        wrapper_version = ""
        if isinstance(config.wrapper_version, str) and config.wrapper_version != "":
            wrapper_version = "/" + config.wrapper_version
        headers['X-Kitbase-Wrapper'] = config.wrapper_name + wrapper_version

    return headers


def _config_headers(config):
    """Headers for the local-evaluation configuration endpoint."""
    headers = _base_headers(config)
    headers['X-API-Key'] = config.token or ''
    return headers


def _evaluation_headers(config):
    """Headers for the remote-evaluation endpoints."""
    headers = _base_headers(config)
    headers.update({'Authorization': 'Bearer ' + (config.token or ''), 'Content-Type': 'application/json'})
    return headers


def _http_factory(config):
    return HTTPFactory(config.http)


class HTTPFactory:
    def __init__(self, http_config, override_read_timeout=None):
        self.__http_config = http_config
        self.__timeout = urllib3.Timeout(connect=http_config.connect_timeout, read=http_config.read_timeout if override_read_timeout is None else override_read_timeout)

    @property
    def http_config(self):
        return self.__http_config

    @property
    def timeout(self):
        return self.__timeout

    def create_pool_manager(self, num_pools, target_base_uri):
        proxy_url = self.__http_config.http_proxy or _get_proxy_url(target_base_uri)

        if self.__http_config.disable_ssl_verification:
            cert_reqs = 'CERT_NONE'
            ca_certs = None
        else:
            cert_reqs = 'CERT_REQUIRED'
            ca_certs = self.__http_config.ca_certs or certifi.where()

        if proxy_url is None:
            return urllib3.PoolManager(num_pools=num_pools, cert_reqs=cert_reqs, ca_certs=ca_certs)

        url = urllib3.util.parse_url(proxy_url)
        proxy_headers = None
        if url.auth is not None:
            proxy_headers = urllib3.util.make_headers(proxy_basic_auth=url.auth)
        return urllib3.ProxyManager(proxy_url, num_pools=num_pools, cert_reqs=cert_reqs, ca_certs=ca_certs, proxy_headers=proxy_headers)


def _get_proxy_url(target_base_uri: Optional[str]) -> Optional[str]:
    """
    Determine the proxy for a target URI from the https_proxy/http_proxy environment variables.
    A no_proxy entry that is '*' or a suffix of the target host disables the proxy.
    """
    if not target_base_uri:
        return None

    parsed = urlparse(target_base_uri)
    host = parsed.hostname or ''
    proxy_url = environ.get('https_proxy') if parsed.scheme == 'https' else environ.get('http_proxy')
    if proxy_url is None:
        return None

    for entry in environ.get('no_proxy', '').split(','):
        entry = entry.strip().split(':')[0]
        if entry == '*' or (entry != '' and host.endswith(entry)):
            return None

    return proxy_url
