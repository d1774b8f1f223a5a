import pytest

from kitbase_flags.evaluation import ResolutionReason
from kitbase_flags.impl.evaluator import bucket, evaluate_flag
from kitbase_flags.testing.builders import *


def test_flag_without_rules_returns_default_value():
    flag = FlagBuilder('dark-mode').default_enabled(True).default_value(True).build()
    result = evaluate_flag(flag, {}, {})
    assert result.flag.enabled is True
    assert result.flag.value is True
    assert result.flag.reason == ResolutionReason.DEFAULT
    assert result.matched_rule is None
    assert result.matched_segment is None


def test_disabled_flag_without_rules_has_no_value():
    flag = FlagBuilder('dark-mode').default_enabled(False).default_value(True).build()
    result = evaluate_flag(flag, {}, {})
    assert result.flag.enabled is False
    assert result.flag.value is None
    assert result.flag.reason == ResolutionReason.DEFAULT


def test_none_context_is_treated_as_empty():
    flag = FlagBuilder('dark-mode').default_enabled(True).default_value(True).build()
    assert evaluate_flag(flag, None, {}).flag.value is True


def test_segment_rule_match_returns_rule_value():
    segment = SegmentBuilder('pro-users').rule('plan', 'eq', 'pro').build()
    rule = FlagRuleBuilder().segment_key('pro-users').value(True).build()
    flag = FlagBuilder('premium-feature').default_enabled(True).default_value(False).rules(rule).build()
    segments = {'pro-users': segment}

    result = evaluate_flag(flag, {'targetingKey': 'u1', 'plan': 'pro'}, segments)
    assert result.flag.value is True
    assert result.flag.reason == ResolutionReason.TARGETING_MATCH
    assert result.matched_segment == 'pro-users'
    assert result.matched_rule is not None

    result = evaluate_flag(flag, {'targetingKey': 'u2', 'plan': 'free'}, segments)
    assert result.flag.value is False
    assert result.flag.reason == ResolutionReason.DEFAULT


def test_rule_without_segment_or_rollout_is_static():
    rule = FlagRuleBuilder().value('blue').build()
    flag = FlagBuilder('color').value_type('string').default_enabled(True).default_value('red').rules(rule).build()
    result = evaluate_flag(flag, {}, {})
    assert result.flag.value == 'blue'
    assert result.flag.reason == ResolutionReason.STATIC


def test_matching_rule_without_value_uses_flag_default_value():
    rule = FlagRuleBuilder().build()
    flag = FlagBuilder('color').value_type('string').default_enabled(False).default_value('red').rules(rule).build()
    result = evaluate_flag(flag, {}, {})
    assert result.flag.enabled is True
    assert result.flag.value == 'red'


def test_matching_disabled_rule_disables_flag():
    rule = FlagRuleBuilder().enabled(False).value(True).build()
    flag = FlagBuilder('feature').default_enabled(True).default_value(True).rules(rule).build()
    result = evaluate_flag(flag, {}, {})
    assert result.flag.enabled is False
    assert result.flag.value is None
    assert result.flag.reason == ResolutionReason.STATIC


def test_rules_are_tried_in_priority_order():
    low = FlagRuleBuilder().priority(1).value('second').build()
    high = FlagRuleBuilder().priority(0).value('first').build()
    flag = FlagBuilder('order').value_type('string').default_enabled(True).default_value('default').rules(low, high).build()
    assert evaluate_flag(flag, {}, {}).flag.value == 'first'


def test_rules_with_equal_priority_keep_declaration_order():
    a = FlagRuleBuilder().priority(1).value('a').build()
    b = FlagRuleBuilder().priority(1).value('b').build()
    flag = FlagBuilder('order').value_type('string').default_enabled(True).default_value('default').rules(a, b).build()
    assert evaluate_flag(flag, {}, {}).flag.value == 'a'


def test_rule_with_missing_segment_never_matches():
    rule = FlagRuleBuilder().segment_key('deleted-segment').value(True).build()
    flag = FlagBuilder('feature').default_enabled(True).default_value(False).rules(rule).build()
    result = evaluate_flag(flag, {'targetingKey': 'u1'}, {})
    assert result.flag.value is False
    assert result.flag.reason == ResolutionReason.DEFAULT


@pytest.mark.parametrize(
    "targeting_key,expected",
    [
        ["a", 97],
        ["b", 98],
        ["ab", 5],
        ["abc", 54],
        ["u1", 76],
        ["", 0],
    ],
)
def test_bucket(targeting_key, expected):
    assert bucket(targeting_key) == expected


def test_bucket_wraps_to_32_bits():
    value = bucket('user-1234567890-abcdefghijklmnop')
    assert 0 <= value < 100
    assert value == bucket('user-1234567890-abcdefghijklmnop')


def test_bucket_uses_utf16_code_units():
    # U+1F600 is the surrogate pair D83D DE00
    assert bucket('\U0001F600') == (0xD83D * 31 + 0xDE00) % 100


def test_bucket_accepts_unpaired_surrogates():
    assert bucket('\ud800') == 0xD800 % 100
    assert bucket('a\ud800') == (97 * 31 + 0xD800) % 100


def test_rollout_with_unpaired_surrogate_in_targeting_key_does_not_raise():
    rule = FlagRuleBuilder().rollout_percentage(97).value(True).build()
    flag = FlagBuilder('rollout').default_enabled(True).default_value(False).rules(rule).build()
    assert evaluate_flag(flag, {'targetingKey': '\ud800'}, {}).flag.value is True


def test_rollout_matches_only_keys_below_percentage():
    rule = FlagRuleBuilder().rollout_percentage(60).value(True).build()
    flag = FlagBuilder('rollout').default_enabled(True).default_value(False).rules(rule).build()

    included = evaluate_flag(flag, {'targetingKey': 'ab'}, {})  # bucket 5
    assert included.flag.value is True
    assert included.flag.reason == ResolutionReason.SPLIT

    excluded = evaluate_flag(flag, {'targetingKey': 'u1'}, {})  # bucket 76
    assert excluded.flag.value is False
    assert excluded.flag.reason == ResolutionReason.DEFAULT


def test_rollout_boundary_is_exclusive():
    rule = FlagRuleBuilder().rollout_percentage(54).value(True).build()
    flag = FlagBuilder('rollout').default_enabled(True).default_value(False).rules(rule).build()
    assert evaluate_flag(flag, {'targetingKey': 'abc'}, {}).flag.value is False  # bucket 54


@pytest.mark.parametrize("context", [None, {}, {'targetingKey': ''}, {'plan': 'pro'}])
def test_rollout_never_matches_without_targeting_key(context):
    rule = FlagRuleBuilder().rollout_percentage(99).value(True).build()
    flag = FlagBuilder('rollout').default_enabled(True).default_value(False).rules(rule).build()
    assert evaluate_flag(flag, context, {}).flag.value is False


def test_rollout_of_100_percent_is_not_a_gate():
    rule = FlagRuleBuilder().rollout_percentage(100).value(True).build()
    flag = FlagBuilder('rollout').default_enabled(True).default_value(False).rules(rule).build()
    result = evaluate_flag(flag, {}, {})
    assert result.flag.value is True
    assert result.flag.reason == ResolutionReason.SPLIT


def test_rollout_is_deterministic():
    rule = FlagRuleBuilder().rollout_percentage(50).value(True).build()
    flag = FlagBuilder('rollout').default_enabled(True).default_value(False).rules(rule).build()
    for key in ['a', 'ab', 'abc', 'u1', 'user-42']:
        first = evaluate_flag(flag, {'targetingKey': key}, {}).flag.value
        for _ in range(5):
            assert evaluate_flag(flag, {'targetingKey': key}, {}).flag.value == first


def test_segment_and_rollout_must_both_match():
    segment = SegmentBuilder('us').rule('country', 'eq', 'US').build()
    rule = FlagRuleBuilder().segment_key('us').rollout_percentage(50).value(True).build()
    flag = FlagBuilder('feature').default_enabled(True).default_value(False).rules(rule).build()
    segments = {'us': segment}

    assert evaluate_flag(flag, {'targetingKey': 'ab', 'country': 'US'}, segments).flag.value is True
    assert evaluate_flag(flag, {'targetingKey': 'u1', 'country': 'US'}, segments).flag.value is False
    assert evaluate_flag(flag, {'targetingKey': 'ab', 'country': 'CA'}, segments).flag.value is False
    assert evaluate_flag(flag, {'targetingKey': 'ab', 'country': 'US'}, segments).flag.reason == ResolutionReason.TARGETING_MATCH
