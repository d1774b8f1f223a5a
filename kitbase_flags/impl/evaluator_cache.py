from collections.abc import Mapping as _MappingABC
from typing import Any, Dict, List, Mapping, Optional

from kitbase_flags.evaluation import TARGETING_KEY, ErrorCode, EvaluatedFlag
from kitbase_flags.impl.evaluator import evaluate_flag
from kitbase_flags.impl.model import (FlagConfiguration, FlagDefinition,
                                      SegmentDefinition)
from kitbase_flags.impl.util import log


class EvaluatorState:
    """
    One configuration together with the lookup tables derived from it. Built in full for every new
    configuration and never modified afterward.
    """

    __slots__ = ['_configuration', '_flags_by_key', '_segments_by_key']

    def __init__(self, configuration: FlagConfiguration):
        self._configuration = configuration
        self._flags_by_key: Dict[str, FlagDefinition] = {flag.key: flag for flag in configuration.flags}
        self._segments_by_key: Dict[str, SegmentDefinition] = {segment.key: segment for segment in configuration.segments}

    @property
    def configuration(self) -> FlagConfiguration:
        return self._configuration

    @property
    def flags_by_key(self) -> Mapping[str, FlagDefinition]:
        return self._flags_by_key

    @property
    def segments_by_key(self) -> Mapping[str, SegmentDefinition]:
        return self._segments_by_key

    def evaluate(self, key: str, context: Optional[Mapping[str, Any]] = None, default: Any = None) -> EvaluatedFlag:
        error = validate_context(context)
        if error is not None:
            log.warning("Invalid context for flag evaluation of \"%s\" (%s); returning default value" % (key, error))
            return EvaluatedFlag.error(key, ErrorCode.INVALID_CONTEXT, error, default)

        flag = self._flags_by_key.get(key)
        if flag is None:
            return EvaluatedFlag.error(key, ErrorCode.FLAG_NOT_FOUND, "Flag '%s' not found" % key, default)

        return evaluate_flag(flag, context, self._segments_by_key).flag


def validate_context(context: Any) -> Optional[str]:
    if context is None:
        return None
    if not isinstance(context, _MappingABC):
        return "context should be a mapping but was %s" % context.__class__.__name__
    targeting_key = context.get(TARGETING_KEY)
    if targeting_key is not None and not isinstance(targeting_key, str):
        return "targetingKey should be a string but was %s" % targeting_key.__class__.__name__
    return None


class EvaluatorCache:
    """
    Holds the current configuration and evaluates flags against it without any I/O.

    The configuration and its lookup tables are published together as one :class:`EvaluatorState`
    by a single reference assignment, so a concurrent evaluation sees either the whole old
    configuration or the whole new one. Readers that need several evaluations against the same
    configuration should take :func:`state()` once and use it.
    """

    def __init__(self):
        self.__state: Optional[EvaluatorState] = None

    def set_configuration(self, configuration: FlagConfiguration):
        self.__state = EvaluatorState(configuration)

    def state(self) -> Optional[EvaluatorState]:
        return self.__state

    def get_configuration(self) -> Optional[FlagConfiguration]:
        state = self.__state
        return None if state is None else state.configuration

    def is_ready(self) -> bool:
        return self.__state is not None

    def get_etag(self) -> Optional[str]:
        state = self.__state
        return None if state is None else state.configuration.etag

    def evaluate(self, key: str, context: Optional[Mapping[str, Any]] = None, default: Any = None) -> EvaluatedFlag:
        state = self.__state
        if state is None:
            return EvaluatedFlag.error(key, ErrorCode.PROVIDER_NOT_READY, "Flag configuration has not been loaded", default)
        return state.evaluate(key, context, default)

    def evaluate_all(self, context: Optional[Mapping[str, Any]] = None) -> List[EvaluatedFlag]:
        state = self.__state
        if state is None:
            return []
        return [state.evaluate(key, context) for key in state.flags_by_key]

    def has_flag(self, key: str) -> bool:
        state = self.__state
        return state is not None and key in state.flags_by_key

    def get_flag_keys(self) -> List[str]:
        state = self.__state
        return [] if state is None else list(state.flags_by_key.keys())
