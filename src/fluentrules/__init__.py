"""
This package evaluates trees of validation rules against arbitrary objects. Rules run their checks in a fixed order,
may short-circuit, be conditional, iterate collections, transform values and gate dependent rules. The synchronous
and the asynchronous path produce identical results.
"""

from .analysis import ValidationResult
from .builder import ApplyConditionTo, RuleBuilder
from .chain import PropertyChain
from .checks import Check, ChildValidatorCheck, async_predicate_check, predicate_check
from .context import Lazy, PropertyContext, ValidationContext
from .errors import PreconditionError, Severity, ValidationCancelled, ValidationException, ValidationFailure
from .execution import evaluate, evaluate_async
from .invoker import CheckInvoker
from .options import CascadeMode, ValidatorOptions, global_options
from .rules import CollectionRule, Rule, RuleCollection
from .selectors import DefaultSelector, MemberNameSelector, RuleSetSelector, Selector
from .validator import Validator
