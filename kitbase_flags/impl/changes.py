from typing import FrozenSet, Optional, Set

from kitbase_flags.evaluation import EvaluatedFlag
from kitbase_flags.impl.evaluator_cache import EvaluatorState
from kitbase_flags.impl.util import same_json_value

ChangedFlags = FrozenSet[str]

_NEUTRAL_CONTEXT: dict = {}


def compute_changed_flags(old_state: Optional[EvaluatorState], new_state: EvaluatorState) -> ChangedFlags:
    """
    Returns the keys of the flags whose result may be different under the new configuration.

    Each flag is evaluated with an empty context against both configurations and is reported when
    its enabled state, declared type, value or variant differs. Values are compared as JSON, so
    ``1`` and ``true`` are different values. A flag that exists in only one of the two
    configurations is always reported. Changes that only affect contexts matching a segment or a
    rollout are not visible to this comparison.
    """
    if old_state is None:
        return frozenset(new_state.flags_by_key.keys())

    changed: Set[str] = set()
    old_keys = old_state.flags_by_key.keys()
    new_keys = new_state.flags_by_key.keys()

    changed.update(old_keys ^ new_keys)

    for key in old_keys & new_keys:
        if not _same_result(old_state.evaluate(key, _NEUTRAL_CONTEXT), new_state.evaluate(key, _NEUTRAL_CONTEXT)):
            changed.add(key)

    return frozenset(changed)


def _same_result(old_flag: EvaluatedFlag, new_flag: EvaluatedFlag) -> bool:
    return (
        old_flag.enabled == new_flag.enabled
        and old_flag.value_type == new_flag.value_type
        and old_flag.variant == new_flag.variant
        and same_json_value(old_flag.value, new_flag.value)
    )
