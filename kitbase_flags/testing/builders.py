from __future__ import annotations

from typing import Any, List, Optional

from kitbase_flags.impl.model import *


class BaseBuilder:
    def __init__(self, data):
        self.data = data

    def _set(self, key: str, value: Any):
        self.data[key] = value
        return self

    def _append(self, key: str, item: dict):
        self.data[key].append(item)
        return self

    def _append_all(self, key: str, items: List[Any]):
        self.data[key].extend(items)
        return self

    def build(self):
        return self.data.copy()


class FlagBuilder(BaseBuilder):
    def __init__(self, key):
        super().__init__({'key': key, 'valueType': 'boolean', 'defaultEnabled': False, 'defaultValue': None, 'rules': []})

    def build(self):
        return FlagDefinition(self.data.copy())

    def key(self, key: str) -> FlagBuilder:
        return self._set('key', key)

    def value_type(self, value_type: str) -> FlagBuilder:
        return self._set('valueType', value_type)

    def default_enabled(self, enabled: bool) -> FlagBuilder:
        return self._set('defaultEnabled', enabled)

    def default_value(self, value: Any) -> FlagBuilder:
        return self._set('defaultValue', value)

    def rules(self, *rules: dict) -> FlagBuilder:
        return self._append_all('rules', list(rules))


class FlagRuleBuilder(BaseBuilder):
    def __init__(self):
        super().__init__({'priority': 0, 'enabled': True})

    def priority(self, priority: float) -> FlagRuleBuilder:
        return self._set('priority', priority)

    def segment_key(self, key: Optional[str]) -> FlagRuleBuilder:
        return self._set('segmentKey', key)

    def rollout_percentage(self, percentage: Optional[float]) -> FlagRuleBuilder:
        return self._set('rolloutPercentage', percentage)

    def enabled(self, enabled: bool) -> FlagRuleBuilder:
        return self._set('enabled', enabled)

    def value(self, value: Any) -> FlagRuleBuilder:
        return self._set('value', value)


class SegmentBuilder(BaseBuilder):
    def __init__(self, key):
        super().__init__({'key': key, 'name': key, 'rules': []})

    def build(self):
        return SegmentDefinition(self.data.copy())

    def name(self, name: str) -> SegmentBuilder:
        return self._set('name', name)

    def rules(self, *rules: dict) -> SegmentBuilder:
        return self._append_all('rules', list(rules))

    def rule(self, field: str, operator: str, value: Any = None) -> SegmentBuilder:
        return self._append('rules', make_segment_rule(field, operator, value))


class ConfigurationBuilder(BaseBuilder):
    def __init__(self):
        super().__init__({'environmentId': 'env-1', 'schemaVersion': '1', 'generatedAt': '2024-01-01T00:00:00.000Z', 'flags': [], 'segments': []})

    def build(self):
        return FlagConfiguration(self.data.copy())

    def etag(self, etag: Optional[str]) -> ConfigurationBuilder:
        return self._set('etag', etag)

    def environment_id(self, environment_id: str) -> ConfigurationBuilder:
        return self._set('environmentId', environment_id)

    def flags(self, *flags: Any) -> ConfigurationBuilder:
        return self._append_all('flags', [_as_json(f) for f in flags])

    def segments(self, *segments: Any) -> ConfigurationBuilder:
        return self._append_all('segments', [_as_json(s) for s in segments])


def _as_json(item):
    return item.to_json_dict() if isinstance(item, ModelEntity) else item


def make_segment_rule(field: str, operator: str, value: Any = None) -> dict:
    return {'field': field, 'operator': operator, 'value': value}


def make_boolean_flag(key: str, value: bool = True, enabled: bool = True) -> FlagDefinition:
    return FlagBuilder(key).default_enabled(enabled).default_value(value).build()
