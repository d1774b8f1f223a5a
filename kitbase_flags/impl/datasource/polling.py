"""
Default implementation of the polling component.
"""

from typing import Callable, Optional

from kitbase_flags.errors import ApiError, AuthenticationError, FlagsError
from kitbase_flags.impl.model import FlagConfiguration
from kitbase_flags.impl.repeating_task import RepeatingTask
from kitbase_flags.impl.util import (http_error_message,
                                     is_http_error_recoverable, log)
from kitbase_flags.interfaces import ConfigurationRequester


class PollingConfigurationProcessor:
    """
    Re-fetches the flag configuration every ``interval`` seconds, sending the ETag of the current
    configuration so that an unchanged configuration costs a 304 response.

    Failures never stop the loop; they are logged and the next tick tries again.
    """

    def __init__(
        self,
        interval: float,
        requester: ConfigurationRequester,
        current_etag: Callable[[], Optional[str]],
        on_configuration: Callable[[FlagConfiguration], None],
    ):
        self._interval = interval
        self._requester = requester
        self._current_etag = current_etag
        self._on_configuration = on_configuration
        self._task = RepeatingTask("kitbase_flags.datasource.polling", interval, interval, self._poll)

    def start(self):
        log.info("Starting PollingConfigurationProcessor with request interval: " + str(self._interval))
        self._task.start()

    def stop(self):
        log.info("Stopping PollingConfigurationProcessor")
        self._task.stop()

    @property
    def stopped(self) -> bool:
        return self._task.stopped

    def _poll(self):
        try:
            configuration = self._requester.fetch(self._current_etag())
            if configuration is None:
                return
            if self._task.stopped:
                log.debug("Discarding configuration received after polling was stopped")
                return
            self._on_configuration(configuration)
        except AuthenticationError:
            log.error(http_error_message(401, "polling request"))
        except ApiError as e:
            message = http_error_message(e.status, "polling request")
            if is_http_error_recoverable(e.status):
                log.warning(message)
            else:
                log.error(message)
        except FlagsError as e:
            log.warning("Polling request failed - will retry: %s" % e)
        except Exception as e:
            log.exception('Error: Exception encountered when updating flags. %s' % e)
