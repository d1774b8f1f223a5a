"""
This submodule contains the public types that describe the result of a flag evaluation.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from kitbase_flags.errors import ParseError, TypeMismatchError

EvaluationContext = Mapping[str, Any]
"""
An evaluation context: arbitrary attributes plus the reserved ``targetingKey`` attribute, a stable
identifier of the subject (user id, device id) used for percentage rollouts.
"""

TARGETING_KEY = 'targetingKey'


class FlagValueType(Enum):
    """
    The declared type of a flag's value.
    """

    BOOLEAN = 'boolean'
    STRING = 'string'
    NUMBER = 'number'
    JSON = 'json'

    @staticmethod
    def from_str(value: Any) -> Optional['FlagValueType']:
        for member in FlagValueType:
            if member.value == value:
                return member
        return None

    @staticmethod
    def of(value: Any) -> 'FlagValueType':
        """
        Returns the type a Python value would naturally be declared as.
        """
        if isinstance(value, bool):
            return FlagValueType.BOOLEAN
        if isinstance(value, (int, float)):
            return FlagValueType.NUMBER
        if isinstance(value, str):
            return FlagValueType.STRING
        return FlagValueType.JSON


class ResolutionReason(Enum):
    """
    Explains why a particular value was returned. Compatible with the OpenFeature resolution reasons.
    """

    STATIC = 'STATIC'
    DEFAULT = 'DEFAULT'
    TARGETING_MATCH = 'TARGETING_MATCH'
    SPLIT = 'SPLIT'
    CACHED = 'CACHED'
    DISABLED = 'DISABLED'
    STALE = 'STALE'
    ERROR = 'ERROR'
    UNKNOWN = 'UNKNOWN'

    @staticmethod
    def from_str(value: Any) -> 'ResolutionReason':
        for member in ResolutionReason:
            if member.value == value:
                return member
        return ResolutionReason.UNKNOWN


class ErrorCode(Enum):
    """
    OpenFeature-compatible error codes attached to resolutions whose reason is ``ERROR``.
    """

    PROVIDER_NOT_READY = 'PROVIDER_NOT_READY'
    FLAG_NOT_FOUND = 'FLAG_NOT_FOUND'
    PARSE_ERROR = 'PARSE_ERROR'
    TYPE_MISMATCH = 'TYPE_MISMATCH'
    TARGETING_KEY_MISSING = 'TARGETING_KEY_MISSING'
    INVALID_CONTEXT = 'INVALID_CONTEXT'
    GENERAL = 'GENERAL'

    @staticmethod
    def from_str(value: Any) -> Optional['ErrorCode']:
        if value is None:
            return None
        for member in ErrorCode:
            if member.value == value:
                return member
        return ErrorCode.GENERAL


class EvaluatedFlag:
    """
    The result of evaluating a single flag, either locally or by the remote service.

    ``value`` has the shape given by ``value_type``, or is None when the flag is disabled for the
    context or could not be evaluated.
    """

    __slots__ = ['_flag_key', '_enabled', '_value_type', '_value', '_variant', '_reason', '_error_code', '_error_message', '_flag_metadata']

    def __init__(
        self,
        flag_key: str,
        enabled: bool,
        value_type: FlagValueType,
        value: Any,
        reason: ResolutionReason,
        variant: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        error_message: Optional[str] = None,
        flag_metadata: Optional[Dict[str, Any]] = None,
    ):
        self._flag_key = flag_key
        self._enabled = enabled
        self._value_type = value_type
        self._value = value
        self._reason = reason
        self._variant = variant
        self._error_code = error_code
        self._error_message = error_message
        self._flag_metadata = flag_metadata

    @classmethod
    def error(cls, flag_key: str, error_code: ErrorCode, message: str, default: Any = None) -> 'EvaluatedFlag':
        value_type = FlagValueType.BOOLEAN if default is None else FlagValueType.of(default)
        return cls(flag_key, False, value_type, default, ResolutionReason.ERROR, error_code=error_code, error_message=message)

    @classmethod
    def from_json_dict(cls, data: Any) -> 'EvaluatedFlag':
        if not isinstance(data, dict):
            raise ParseError('evaluated flag should be an object but was %s' % data.__class__.__name__)
        flag_key = data.get('flagKey')
        if not isinstance(flag_key, str):
            raise ParseError('evaluated flag is missing "flagKey"')
        value_type = FlagValueType.from_str(data.get('valueType'))
        if value_type is None:
            raise ParseError('evaluated flag "%s" has unknown valueType %s' % (flag_key, data.get('valueType')))
        metadata = data.get('flagMetadata')
        return cls(
            flag_key,
            data.get('enabled') is True,
            value_type,
            data.get('value'),
            ResolutionReason.from_str(data.get('reason')),
            variant=data.get('variant'),
            error_code=ErrorCode.from_str(data.get('errorCode')),
            error_message=data.get('errorMessage'),
            flag_metadata=metadata if isinstance(metadata, dict) else None,
        )

    def to_json_dict(self) -> dict:
        ret = {'flagKey': self._flag_key, 'enabled': self._enabled, 'valueType': self._value_type.value, 'value': self._value, 'reason': self._reason.value}
        if self._variant is not None:
            ret['variant'] = self._variant
        if self._error_code is not None:
            ret['errorCode'] = self._error_code.value
        if self._error_message is not None:
            ret['errorMessage'] = self._error_message
        if self._flag_metadata is not None:
            ret['flagMetadata'] = self._flag_metadata
        return ret

    @property
    def flag_key(self) -> str:
        return self._flag_key

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def value_type(self) -> FlagValueType:
        return self._value_type

    @property
    def value(self) -> Any:
        return self._value

    @property
    def variant(self) -> Optional[str]:
        return self._variant

    @property
    def reason(self) -> ResolutionReason:
        return self._reason

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self._error_code

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def flag_metadata(self) -> Optional[Dict[str, Any]]:
        return self._flag_metadata

    def typed_value(self, expected_type: FlagValueType) -> Any:
        """
        Returns the value, first checking that the flag was declared with the expected type.

        :raises TypeMismatchError: if the declared type is different
        """
        if self._value_type != expected_type:
            raise TypeMismatchError(self._flag_key, expected_type.value, self._value_type.value)
        return self._value

    def __eq__(self, other) -> bool:
        return isinstance(other, EvaluatedFlag) and self.to_json_dict() == other.to_json_dict()

    def __repr__(self) -> str:
        return "EvaluatedFlag(%s)" % json.dumps(self.to_json_dict(), separators=(',', ':'), default=str)


class ResolutionDetails:
    """
    The outcome of a typed flag read, such as :func:`kitbase_flags.client.LocalFlagsClient.get_boolean_details()`.
    """

    __slots__ = ['_value', '_variant', '_reason', '_error_code', '_error_message', '_flag_metadata']

    def __init__(
        self,
        value: Any,
        reason: ResolutionReason,
        variant: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        error_message: Optional[str] = None,
        flag_metadata: Optional[Dict[str, Any]] = None,
    ):
        self._value = value
        self._reason = reason
        self._variant = variant
        self._error_code = error_code
        self._error_message = error_message
        self._flag_metadata = flag_metadata

    @classmethod
    def resolve(cls, flag: EvaluatedFlag, expected_type: FlagValueType, default: Any) -> 'ResolutionDetails':
        """
        Turns an evaluation result into the outcome of a typed read.

        An ``ERROR`` result resolves to ``default`` with its error code. A flag declared with a type
        other than ``expected_type`` raises. A disabled flag, or one without a value, resolves to
        ``default`` but keeps the flag's reason and variant.

        :raises TypeMismatchError: if the flag's declared type is not ``expected_type``
        """
        if flag.reason == ResolutionReason.ERROR:
            return cls(default, ResolutionReason.ERROR, error_code=flag.error_code, error_message=flag.error_message)

        value = flag.typed_value(expected_type)
        if not flag.enabled or value is None:
            return cls(default, flag.reason, variant=flag.variant, flag_metadata=flag.flag_metadata)

        return cls(value, flag.reason, variant=flag.variant, flag_metadata=flag.flag_metadata)

    @property
    def value(self) -> Any:
        """The resolved value, or the caller's default if the flag could not supply one."""
        return self._value

    @property
    def variant(self) -> Optional[str]:
        return self._variant

    @property
    def reason(self) -> ResolutionReason:
        return self._reason

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self._error_code

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def flag_metadata(self) -> Optional[Dict[str, Any]]:
        return self._flag_metadata

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, ResolutionDetails)
            and self._value == other._value
            and self._variant == other._variant
            and self._reason == other._reason
            and self._error_code == other._error_code
            and self._error_message == other._error_message
            and self._flag_metadata == other._flag_metadata
        )

    def __repr__(self) -> str:
        return "ResolutionDetails(value=%r, variant=%r, reason=%s, error_code=%s)" % (
            self._value,
            self._variant,
            self._reason.value,
            None if self._error_code is None else self._error_code.value,
        )


class FlagSnapshot:
    """
    All flags evaluated for one context at one point in time.
    """

    __slots__ = ['_project_id', '_environment_id', '_evaluated_at', '_flags']

    def __init__(self, project_id: str, environment_id: str, evaluated_at: str, flags: List[EvaluatedFlag]):
        self._project_id = project_id
        self._environment_id = environment_id
        self._evaluated_at = evaluated_at
        self._flags = flags

    @classmethod
    def from_json_dict(cls, data: Any) -> 'FlagSnapshot':
        if not isinstance(data, dict) or not isinstance(data.get('flags'), list):
            raise ParseError('snapshot response is missing "flags"')
        return cls(
            data.get('projectId') or '',
            data.get('environmentId') or '',
            data.get('evaluatedAt') or '',
            [EvaluatedFlag.from_json_dict(item) for item in data['flags']],
        )

    def to_json_dict(self) -> dict:
        return {
            'projectId': self._project_id,
            'environmentId': self._environment_id,
            'evaluatedAt': self._evaluated_at,
            'flags': [flag.to_json_dict() for flag in self._flags],
        }

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def environment_id(self) -> str:
        return self._environment_id

    @property
    def evaluated_at(self) -> str:
        return self._evaluated_at

    @property
    def flags(self) -> List[EvaluatedFlag]:
        return self._flags

    def get(self, flag_key: str) -> Optional[EvaluatedFlag]:
        for flag in self._flags:
            if flag.flag_key == flag_key:
                return flag
        return None


__all__ = ['EvaluationContext', 'FlagValueType', 'ResolutionReason', 'ErrorCode', 'EvaluatedFlag', 'ResolutionDetails', 'FlagSnapshot']
