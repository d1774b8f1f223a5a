import json
from typing import List, Optional

from kitbase_flags.impl.model import FlagConfiguration
from kitbase_flags.interfaces import ConfigurationRequester
from kitbase_flags.testing.http_util import ChunkedResponse


def make_config_event(configuration: FlagConfiguration) -> str:
    return 'event: config\ndata: %s\n\n' % json.dumps(configuration.to_json_dict())


def make_invalid_config_event() -> str:
    return 'event: config\ndata: {"flags": [\n\n'


def make_heartbeat_event() -> str:
    return 'event: heartbeat\ndata: {}\n\n'


def stream_content(event=None):
    stream = ChunkedResponse({'Content-Type': 'text/event-stream'})
    if event:
        stream.push(event)
    return stream


class MockConfigurationRequester(ConfigurationRequester):
    """
    Returns the queued configurations in order, then keeps returning the last one. A fetch whose
    ETag matches the configuration it would return yields None, like a 304 response.
    """

    def __init__(self, *configurations: FlagConfiguration):
        self.configurations: List[FlagConfiguration] = list(configurations)
        self.exception: Optional[Exception] = None
        self.request_count = 0
        self.etags_seen: List[Optional[str]] = []
        self.closed = False

    def fetch(self, etag: Optional[str] = None) -> Optional[FlagConfiguration]:
        self.request_count += 1
        self.etags_seen.append(etag)
        if self.exception is not None:
            raise self.exception
        if len(self.configurations) > 1:
            configuration = self.configurations.pop(0)
        elif self.configurations:
            configuration = self.configurations[0]
        else:
            return None
        if etag is not None and configuration.etag == etag:
            return None
        return configuration

    def close(self):
        self.closed = True
