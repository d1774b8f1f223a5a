from typing import Optional, Tuple

from kitbase_flags.impl.model.entity import *


class SegmentRule:
    __slots__ = ['_field', '_operator', '_value']

    def __init__(self, data: dict):
        self._field = req_str(data, 'field')
        self._operator = req_str(data, 'operator')
        value = data.get('value')
        # numbers and booleans are accepted and compared by their string form
        if value is not None and not isinstance(value, (str, int, float, bool)):
            raise ParseError('error in flag configuration: segment rule value for "%s" should be a string but was %s' % (self._field, value.__class__))
        self._value = value

    @property
    def field(self) -> str:
        return self._field

    @property
    def operator(self) -> str:
        return self._operator

    @property
    def value(self) -> Optional[object]:
        return self._value


class SegmentDefinition(ModelEntity):
    """
    A named, reusable predicate over context attributes. A context matches the segment only if it
    matches every one of its rules; a segment with no rules matches every context.
    """

    __slots__ = ['_data', '_key', '_name', '_rules']

    def __init__(self, data: dict):
        super().__init__(require_dict(data, 'segment'))
        self._key = req_str(data, 'key')
        self._name = opt_str(data, 'name')
        self._rules = tuple(SegmentRule(item) for item in opt_dict_list(data, 'rules'))

    @property
    def key(self) -> str:
        return self._key

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def rules(self) -> Tuple[SegmentRule, ...]:
        return self._rules
