"""
This submodule contains the client for remote flag evaluation, :class:`FlagsClient`.
"""

import json
from typing import Any, Optional, Tuple

import urllib3
from expiringdict import ExpiringDict

from kitbase_flags.config import Config
from kitbase_flags.errors import (ApiError, AuthenticationError,
                                  FlagNotFoundError, InvalidContextError,
                                  NetworkError, ParseError,
                                  RequestTimeoutError, ValidationError)
from kitbase_flags.evaluation import (TARGETING_KEY, ErrorCode, EvaluatedFlag,
                                      EvaluationContext, FlagSnapshot,
                                      FlagValueType, ResolutionDetails,
                                      ResolutionReason)
from kitbase_flags.impl.evaluator_cache import validate_context
from kitbase_flags.impl.http import _evaluation_headers, _http_factory
from kitbase_flags.impl.util import (error_message_from_body, log,
                                     parse_response_body, validate_flag_key)

SNAPSHOT_PATH = '/v1/feature-flags/snapshot'
EVALUATE_PATH = '/v1/feature-flags/evaluate'

_CacheKey = Tuple[Optional[str], Optional[str]]


class FlagsClient:
    """The client for evaluating feature flags on the Kitbase service.

    Every evaluation is one HTTP request, unless an earlier result for the same flag key and
    targeting key is still in the cache (see ``cache_ttl`` in :class:`kitbase_flags.config.Config`).
    Use :class:`kitbase_flags.client.LocalFlagsClient` to evaluate without network round-trips.
    """

    def __init__(self, config: Config):
        """
        :param config: the client configuration
        :raises ValidationError: if the configuration has no API key
        """
        if not isinstance(config, Config):
            raise ValidationError("config should be a Config instance", "config")
        config._validate()

        self._config = config
        self._http_factory = _http_factory(config)
        self._http = self._http_factory.create_pool_manager(1, config.base_uri)
        self._cache: Optional[ExpiringDict] = None
        if config.cache_ttl > 0 and config.cache_capacity > 0:
            self._cache = ExpiringDict(max_len=config.cache_capacity, max_age_seconds=config.cache_ttl)

    def get_snapshot(self, context: Optional[EvaluationContext] = None) -> FlagSnapshot:
        """Evaluates every flag of the environment for one context.

        :raises InvalidContextError: if the context is not a mapping or its ``targetingKey`` is not a string
        :raises AuthenticationError: if the API key was rejected
        :raises ApiError: if the service returned an unsuccessful status
        :raises RequestTimeoutError: if the request timed out
        :raises ParseError: if the response could not be decoded
        """
        _check_context(context)
        targeting_key = _targeting_key(context)
        cached = self._cache_get((None, targeting_key))
        if cached is not None:
            log.debug("Snapshot for targeting key [%s] served from cache" % targeting_key)
            return cached

        data = self._post(SNAPSHOT_PATH, _snapshot_payload(context))
        snapshot = FlagSnapshot.from_json_dict(data)
        self._cache_put((None, targeting_key), snapshot)
        for flag in snapshot.flags:
            if flag.reason != ResolutionReason.ERROR:
                self._cache_put((flag.flag_key, targeting_key), flag)
        return snapshot

    def evaluate_flag(self, key: str, context: Optional[EvaluationContext] = None, default: Any = None) -> EvaluatedFlag:
        """Evaluates one flag on the service.

        :param key: the flag key
        :param context: the evaluation context
        :param default: sent to the service as the value to use if it cannot evaluate the flag
        :raises FlagNotFoundError: if the service does not know the flag
        :raises InvalidContextError: if the context is not a mapping or its ``targetingKey`` is not a string
        :raises AuthenticationError: if the API key was rejected
        :raises ApiError: if the service returned any other unsuccessful status
        :raises RequestTimeoutError: if the request timed out
        :raises ParseError: if the response could not be decoded
        """
        validate_flag_key(key)
        return self._evaluate(key, context, default, None)

    def _evaluate(self, key: str, context: Optional[EvaluationContext], default: Any, expected_type: Optional[FlagValueType]) -> EvaluatedFlag:
        _check_context(context)
        targeting_key = _targeting_key(context)
        cached = self._cache_get((key, targeting_key))
        if cached is not None:
            if expected_type is None or cached.value_type == expected_type:
                log.debug("Flag \"%s\" for targeting key [%s] served from cache" % (key, targeting_key))
                return cached
            log.debug("Cached result for flag \"%s\" has type %s; fetching it again" % (key, cached.value_type.value))

        try:
            data = self._post(EVALUATE_PATH, _evaluate_payload(key, context, default))
        except ApiError as e:
            if e.status == 404:
                raise FlagNotFoundError(key) from e
            raise
        flag = EvaluatedFlag.from_json_dict(data)
        if flag.reason != ResolutionReason.ERROR:
            self._cache_put((key, targeting_key), flag)
        return flag

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
        try:
            flag = self._evaluate(key, context, default, expected_type)
        except FlagNotFoundError as e:
            return ResolutionDetails(default, ResolutionReason.ERROR, error_code=ErrorCode.FLAG_NOT_FOUND, error_message=str(e))
        except InvalidContextError as e:
            log.warning("Invalid context for flag evaluation of \"%s\" (%s); returning default value" % (key, e))
            return ResolutionDetails(default, ResolutionReason.ERROR, error_code=ErrorCode.INVALID_CONTEXT, error_message=str(e))
        return ResolutionDetails.resolve(flag, expected_type, default)

    def is_ready(self) -> bool:
        """Always true; a remote client needs no initialization."""
        return True

    def clear_cache(self):
        if self._cache is not None:
            self._cache.clear()

    def close(self):
        """Releases the client's network connections."""
        log.info("Closing FlagsClient..")
        self.clear_cache()
        self._http.clear()

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.close()

    def _cache_get(self, key: _CacheKey) -> Any:
        if self._cache is None:
            return None
        return self._cache.get(key)

    def _cache_put(self, key: _CacheKey, value: Any):
        if self._cache is None:
            return
        self._cache[key] = value

    def _post(self, path: str, payload: dict) -> Any:
        uri = self._config.base_uri + path
        try:
            r = self._http.request(
                'POST',
                uri,
                body=json.dumps(payload),
                headers=_evaluation_headers(self._config),
                timeout=self._http_factory.timeout,
                retries=False,
            )
        except urllib3.exceptions.NewConnectionError as e:
            raise NetworkError(str(e)) from e
        except urllib3.exceptions.TimeoutError as e:
            raise RequestTimeoutError() from e
        except urllib3.exceptions.HTTPError as e:
            raise NetworkError(str(e)) from e

        log.debug("%s response status:[%d]" % (uri, r.status))
        if r.status == 401:
            raise AuthenticationError()
        if r.status < 200 or r.status >= 300:
            body = parse_response_body(r.data)
            raise ApiError(error_message_from_body(body, "HTTP error %d" % r.status), r.status, body)

        try:
            return json.loads(r.data.decode('UTF-8'))
        except ValueError as e:
            raise ParseError('response from %s is not valid JSON: %s' % (path, e)) from e


def _check_context(context: Any):
    error = validate_context(context)
    if error is not None:
        raise InvalidContextError(error)


def _targeting_key(context: Optional[EvaluationContext]) -> Optional[str]:
    if not context:
        return None
    return context.get(TARGETING_KEY)


def _snapshot_payload(context: Optional[EvaluationContext]) -> dict:
    payload: dict = {}
    if not context:
        return payload
    rest = {k: v for k, v in context.items() if k != TARGETING_KEY}
    if context.get(TARGETING_KEY):
        payload['identityId'] = context[TARGETING_KEY]
    if rest:
        payload['context'] = rest
    return payload


def _evaluate_payload(key: str, context: Optional[EvaluationContext], default: Any) -> dict:
    payload = {'flagKey': key}
    payload.update(_snapshot_payload(context))
    if default is not None:
        payload['defaultValue'] = default
    return payload


__all__ = ['FlagsClient']
