from typing import Any, Optional, Tuple

from kitbase_flags.evaluation import FlagValueType
from kitbase_flags.impl.model.entity import *


class FlagRule:
    __slots__ = ['_priority', '_segment_key', '_rollout_percentage', '_enabled', '_value']

    def __init__(self, data: dict):
        self._priority = opt_number(data, 'priority') or 0
        self._segment_key = opt_str(data, 'segmentKey')
        self._rollout_percentage = opt_number(data, 'rolloutPercentage')
        self._enabled = req_bool(data, 'enabled')
        self._value = data.get('value')

    @property
    def priority(self) -> float:
        return self._priority

    @property
    def segment_key(self) -> Optional[str]:
        return self._segment_key

    @property
    def rollout_percentage(self) -> Optional[float]:
        return self._rollout_percentage

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def value(self) -> Any:
        return self._value


class FlagDefinition(ModelEntity):
    __slots__ = ['_data', '_key', '_value_type', '_default_enabled', '_default_value', '_rules']

    def __init__(self, data: dict):
        super().__init__(require_dict(data, 'flag'))
        self._key = req_str(data, 'key')
        value_type = FlagValueType.from_str(req_str(data, 'valueType'))
        if value_type is None:
            raise ParseError('error in flag configuration: flag "%s" has unknown valueType "%s"' % (self._key, data['valueType']))
        self._value_type = value_type
        self._default_enabled = req_bool(data, 'defaultEnabled')
        self._default_value = data.get('defaultValue')
        self._rules = tuple(FlagRule(item) for item in opt_dict_list(data, 'rules'))

    @property
    def key(self) -> str:
        return self._key

    @property
    def value_type(self) -> FlagValueType:
        return self._value_type

    @property
    def default_enabled(self) -> bool:
        return self._default_enabled

    @property
    def default_value(self) -> Any:
        return self._default_value

    @property
    def rules(self) -> Tuple[FlagRule, ...]:
        """The rules in declaration order; the evaluator orders them by priority."""
        return self._rules
