from typing import Any, Mapping, Optional

from kitbase_flags.evaluation import (TARGETING_KEY, EvaluatedFlag,
                                      ResolutionReason)
from kitbase_flags.impl.model import (FlagDefinition, FlagRule,
                                      SegmentDefinition)
from kitbase_flags.impl.operators import match

# Rule fields that read the context's targeting key rather than an ordinary attribute.
_TARGETING_KEY_FIELDS = (TARGETING_KEY, 'identityId')


class LocalEvaluationResult:
    """
    The result of :func:`evaluate_flag`: the evaluated flag plus the rule and segment that decided it,
    if any. The extra fields are for diagnostics only.
    """

    __slots__ = ['_flag', '_matched_rule', '_matched_segment']

    def __init__(self, flag: EvaluatedFlag, matched_rule: Optional[FlagRule] = None, matched_segment: Optional[str] = None):
        self._flag = flag
        self._matched_rule = matched_rule
        self._matched_segment = matched_segment

    @property
    def flag(self) -> EvaluatedFlag:
        return self._flag

    @property
    def matched_rule(self) -> Optional[FlagRule]:
        return self._matched_rule

    @property
    def matched_segment(self) -> Optional[str]:
        return self._matched_segment


def bucket(targeting_key: str) -> int:
    """
    Maps a targeting key to a bucket in [0, 99].

    The hash is the 32-bit ``h = h * 31 + c`` rolling hash over UTF-16 code units, so a given key
    lands in the same bucket in every process and in every Kitbase SDK.
    """
    h = 0
    encoded = targeting_key.encode('utf-16-le', 'surrogatepass')
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = (h * 31 + code_unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return abs(h) % 100


def _context_value(context: Mapping[str, Any], field: str) -> Any:
    if field in _TARGETING_KEY_FIELDS:
        return context.get(TARGETING_KEY)
    return context.get(field)


def matches_segment(segment: SegmentDefinition, context: Mapping[str, Any]) -> bool:
    for rule in segment.rules:
        if not match(rule.operator, _context_value(context, rule.field), rule.value):
            return False
    return True


def _has_rollout_gate(rule: FlagRule) -> bool:
    return rule.rollout_percentage is not None and rule.rollout_percentage < 100


def _matches_rule(rule: FlagRule, context: Optional[Mapping[str, Any]], segments_by_key: Mapping[str, SegmentDefinition]) -> bool:
    if rule.segment_key:
        segment = segments_by_key.get(rule.segment_key)
        if segment is None:
            return False
        if not matches_segment(segment, context or {}):
            return False

    if _has_rollout_gate(rule):
        targeting_key = None if context is None else context.get(TARGETING_KEY)
        if not targeting_key:
            # without a targeting key the split cannot be computed; never match
            return False
        if bucket(targeting_key) >= rule.rollout_percentage:
            return False

    return True


def _reason_for(rule: FlagRule) -> ResolutionReason:
    if rule.segment_key:
        return ResolutionReason.TARGETING_MATCH
    if rule.rollout_percentage is not None:
        return ResolutionReason.SPLIT
    return ResolutionReason.STATIC


def evaluate_flag(flag: FlagDefinition, context: Optional[Mapping[str, Any]], segments_by_key: Mapping[str, SegmentDefinition]) -> LocalEvaluationResult:
    """
    Evaluates one flag against one context. Rules are tried in ascending priority (ties keep their
    declaration order) and the first match decides the result; if none matches, the flag's defaults
    apply.

    This function has no side effects. The caller is responsible for making sure the context is a
    mapping whose targeting key, if present, is a string.
    """
    for rule in sorted(flag.rules, key=lambda r: r.priority):
        if _matches_rule(rule, context, segments_by_key):
            value = None
            if rule.enabled:
                value = rule.value if rule.value is not None else flag.default_value
            return LocalEvaluationResult(
                EvaluatedFlag(flag.key, rule.enabled, flag.value_type, value, _reason_for(rule)),
                matched_rule=rule,
                matched_segment=rule.segment_key or None,
            )

    return LocalEvaluationResult(
        EvaluatedFlag(flag.key, flag.default_enabled, flag.value_type, flag.default_value if flag.default_enabled else None, ResolutionReason.DEFAULT),
    )
