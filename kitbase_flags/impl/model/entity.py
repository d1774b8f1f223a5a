import json
from typing import Any, List, Optional, Union

from kitbase_flags.errors import ParseError

# This file provides support for our data model classes.
#
# Top-level data model classes (FlagDefinition, SegmentDefinition, FlagConfiguration) subclass
# ModelEntity: they are decoded from a dict that corresponds to the JSON representation, the
# constructor of each class captures and validates individual properties, and ModelEntity keeps
# the original dict so the entity can be re-serialized or inspected.
#
# Lower-level classes such as FlagRule are not derived from ModelEntity because they are never
# serialized outside of their enclosing entity.
#
# All data model classes use the opt_ and req_ functions so that JSON values of invalid types
# reject the whole configuration at decode time, rather than reaching the evaluator where they
# would cause errors that are harder to diagnose.


def opt_type(data: dict, name: str, desired_type) -> Any:
    value = data.get(name)
    if value is not None and not isinstance(value, desired_type):
        raise ParseError('error in flag configuration: property "%s" should be type %s but was %s' % (name, desired_type, value.__class__))
    return value


def opt_bool(data: dict, name: str) -> bool:
    return opt_type(data, name, bool) is True


def opt_number(data: dict, name: str) -> Optional[Union[int, float]]:
    value = data.get(name)
    if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
        raise ParseError('error in flag configuration: property "%s" should be a number but was %s' % (name, value.__class__))
    return value


def opt_list(data: dict, name: str) -> list:
    return opt_type(data, name, list) or []


def opt_str(data: dict, name: str) -> Optional[str]:
    return opt_type(data, name, str)


def opt_dict_list(data: dict, name: str) -> List[dict]:
    return validate_list_type(opt_list(data, name), name, dict)


def req_type(data: dict, name: str, desired_type) -> Any:
    value = opt_type(data, name, desired_type)
    if value is None:
        raise ParseError('error in flag configuration: required property "%s" is missing' % name)
    return value


def req_bool(data: dict, name: str) -> bool:
    return req_type(data, name, bool)


def req_number(data: dict, name: str) -> Union[int, float]:
    value = opt_number(data, name)
    if value is None:
        raise ParseError('error in flag configuration: required property "%s" is missing' % name)
    return value


def req_str(data: dict, name: str) -> str:
    return req_type(data, name, str)


def req_dict_list(data: dict, name: str) -> List[dict]:
    return validate_list_type(req_type(data, name, list), name, dict)


def validate_list_type(items: list, name: str, desired_type) -> list:
    for item in items:
        if not isinstance(item, desired_type):
            raise ParseError('error in flag configuration: property %s should be an array of %s but an item was %s' % (name, desired_type, item.__class__))
    return items


def require_dict(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ParseError('error in flag configuration: %s should be an object but was %s' % (what, data.__class__))
    return data


class ModelEntity:
    def __init__(self, data: dict):
        self._data = data

    def to_json_dict(self):
        return self._data

    def get(self, attribute, default=None) -> Any:
        return self._data.get(attribute, default)

    def __getitem__(self, attribute) -> Any:
        return self._data[attribute]

    def __contains__(self, attribute) -> bool:
        return attribute in self._data

    def __eq__(self, other) -> bool:
        return self.__class__ == other.__class__ and self._data == other._data

    def __repr__(self) -> str:
        return json.dumps(self._data, separators=(',', ':'))
