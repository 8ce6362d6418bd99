"""
Contains the selectors which decide whether a rule may be executed in the current validation run
"""
import re
from typing import TYPE_CHECKING, Iterable, Protocol

if TYPE_CHECKING:
    from .context import ValidationContext
    from .rules import Rule

DEFAULT_RULE_SET = "default"
WILDCARD_RULE_SET = "*"

_INDEXER_PATTERN = re.compile(r"\[[^\]]*\]")


class Selector(Protocol):
    """
    A selector can veto the execution of a rule. It is asked before any condition or value of the rule is evaluated.
    """

    def can_execute(self, rule: "Rule", property_name: str, context: "ValidationContext") -> bool:
        ...


class DefaultSelector:
    """
    Executes all rules which are not part of a named rule set (or which are explicitly part of the default set).
    """

    def can_execute(self, rule: "Rule", property_name: str, context: "ValidationContext") -> bool:
        return not rule.rule_sets or DEFAULT_RULE_SET in rule.rule_sets

    def __repr__(self):
        return "DefaultSelector()"


class RuleSetSelector:
    """
    Executes only the rules of the given rule sets. Use `default` to include rules without rule set and `*` to
    include every rule.
    """

    def __init__(self, rule_sets: Iterable[str]):
        self.rule_sets: frozenset[str] = frozenset(rule_sets)

    def can_execute(self, rule: "Rule", property_name: str, context: "ValidationContext") -> bool:
        if WILDCARD_RULE_SET in self.rule_sets:
            return True
        if not rule.rule_sets:
            return DEFAULT_RULE_SET in self.rule_sets
        return not self.rule_sets.isdisjoint(rule.rule_sets)

    def __repr__(self):
        return f"RuleSetSelector({sorted(self.rule_sets)})"


class MemberNameSelector:
    """
    Executes only the rules for the given (full) property names. Rules of nested properties and collection elements
    of a selected member are executed as well, e.g. selecting `lines` executes the rules for `lines[0].amount`.
    """

    def __init__(self, member_names: Iterable[str]):
        self.member_names: frozenset[str] = frozenset(member_names)

    def can_execute(self, rule: "Rule", property_name: str, context: "ValidationContext") -> bool:
        if not property_name:
            # model-level rules are never addressed by a member name
            return False
        normalized = _INDEXER_PATTERN.sub("", property_name)
        for member in self.member_names:
            if normalized == member or property_name == member:
                return True
            if normalized.startswith(f"{member}.") or property_name.startswith(f"{member}."):
                return True
            if member.startswith(f"{normalized}.") or member.startswith(f"{property_name}."):
                # the rule validates a parent of the member, e.g. a child validator
                return True
        return False

    def __repr__(self):
        return f"MemberNameSelector({sorted(self.member_names)})"
