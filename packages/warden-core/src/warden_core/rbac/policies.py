"""Policy applicability, ordering and condition evaluation."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from warden_core.rbac.models import (
    AccessContext,
    ConditionOperator,
    ConditionType,
    Policy,
    PolicyCondition,
    Resource,
)

logger = logging.getLogger(__name__)

_UNSOURCED = object()

# Operators that assert something about the value; a missing value fails them.
_POSITIVE = frozenset(
    {
        ConditionOperator.equals,
        ConditionOperator.in_,
        ConditionOperator.contains,
        ConditionOperator.matches,
        ConditionOperator.greater,
        ConditionOperator.less,
    }
)


def resource_matches(pattern: str, resource_pattern: str) -> bool:
    """Match a policy resource pattern against ``type:id`` / ``type:*``."""
    if pattern == "*":
        return True
    if pattern.endswith("*"):
        return resource_pattern.startswith(pattern[:-1])
    return pattern == resource_pattern


def sort_by_priority(policies: Sequence[Policy]) -> list[Policy]:
    """Highest priority first. Ties keep their discovery order."""
    return sorted(policies, key=lambda p: -(p.priority or 0))


class PolicyEvaluator:
    """Evaluates a snapshot of policies for a single access check."""

    def __init__(self, policies: Sequence[Policy]) -> None:
        self._policies = list(policies)

    def applicable_policies(self, resource_pattern: str, action: str) -> list[Policy]:
        """Policies covering ``action`` on ``resource_pattern``, in evaluation order."""
        applicable = [
            policy
            for policy in self._policies
            if ("*" in policy.actions or action in policy.actions)
            and any(resource_matches(p, resource_pattern) for p in policy.resources)
        ]
        return sort_by_priority(applicable)

    def evaluate(
        self,
        policy: Policy,
        context: AccessContext,
        resource: Resource | None = None,
    ) -> bool:
        """True when every condition on ``policy`` holds (vacuously for none)."""
        return all(
            evaluate_condition(condition, context, resource)
            for condition in policy.conditions or ()
        )


def evaluate_condition(
    condition: PolicyCondition,
    context: AccessContext,
    resource: Resource | None = None,
) -> bool:
    """Evaluate one condition. Unsupported type/operator combinations are False.

    A missing value fails the positive operators; ``not_equals`` and
    ``not_in`` compare against None.
    """
    actual = _source_value(condition, context, resource)
    if actual is _UNSOURCED:
        return False

    expected = condition.value
    op = condition.operator
    if actual is None and op in _POSITIVE:
        return False

    if op is ConditionOperator.equals:
        return _strict_equals(actual, expected)
    if op is ConditionOperator.not_equals:
        return not _strict_equals(actual, expected)
    if op is ConditionOperator.in_:
        return isinstance(expected, list) and any(_strict_equals(actual, v) for v in expected)
    if op is ConditionOperator.not_in:
        return isinstance(expected, list) and not any(
            _strict_equals(actual, v) for v in expected
        )
    if op is ConditionOperator.contains:
        return isinstance(actual, str) and expected is not None and str(expected) in actual
    if op is ConditionOperator.matches:
        if not isinstance(actual, str) or expected is None:
            return False
        try:
            return re.search(str(expected), actual) is not None
        except re.error as e:
            logger.warning("Invalid regular expression in condition %r: %s", expected, e)
            return False
    if op is ConditionOperator.greater:
        return _compare(actual, expected, lambda a, b: a > b)
    if op is ConditionOperator.less:
        return _compare(actual, expected, lambda a, b: a < b)
    return False


def _source_value(
    condition: PolicyCondition, context: AccessContext, resource: Resource | None
) -> Any:
    ctype = condition.type
    if ctype is ConditionType.attribute:
        return context.attributes.get(condition.field)
    if ctype is ConditionType.ip_range:
        return context.ip_address
    if ctype is ConditionType.time_range:
        return context.timestamp or datetime.now(UTC)
    if ctype is ConditionType.resource_attribute:
        if resource is None:
            return None
        return resource.attributes.get(condition.field)
    return _UNSOURCED


def _strict_equals(a: Any, b: Any) -> bool:
    # bool is an int subclass; keep True != 1.
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _as_aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def _compare(actual: Any, expected: Any, op) -> bool:
    if _is_number(actual) and _is_number(expected):
        return op(actual, expected)
    if isinstance(actual, datetime):
        if isinstance(expected, str):
            try:
                expected = datetime.fromisoformat(expected)
            except ValueError:
                return False
        if isinstance(expected, datetime):
            return op(_as_aware(actual), _as_aware(expected))
    return False
