"""Activation conditions over collected answers.

Conditions are plain frozen dataclasses so they can be logged, compared and
serialized (`to_dict`) without executing anything. `evaluate` is pure: it never
raises on a missing answer and never mutates the answer map.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, TypeAlias, Union

Scalar: TypeAlias = Union[str, int, float, bool]
AnswerValue: TypeAlias = Union[Scalar, tuple[Scalar, ...]]
AnswerMap: TypeAlias = Mapping[str, AnswerValue]

_MISSING = object()


def _require_question_id(question_id: Any, kind: str) -> str:
    if not isinstance(question_id, str) or not question_id.strip():
        raise TypeError(f"{kind}.question_id must be a non-empty string")
    return question_id.strip()


def _scalar_equals(left: Any, right: Any) -> bool:
    # bool is an int subclass; True must not match 1
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


@dataclass(frozen=True)
class Equals:
    question_id: str
    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "question_id", _require_question_id(self.question_id, "Equals"))

    def to_dict(self) -> dict[str, Any]:
        return {"type": "equals", "question_id": self.question_id, "value": self.value}


@dataclass(frozen=True)
class IncludesValue:
    """Array answer contains `value`."""

    question_id: str
    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "question_id", _require_question_id(self.question_id, "IncludesValue")
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": "includes", "question_id": self.question_id, "value": self.value}


@dataclass(frozen=True)
class Contains:
    """String answer contains `value` as a substring."""

    question_id: str
    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "question_id", _require_question_id(self.question_id, "Contains"))
        if not isinstance(self.value, str):
            raise TypeError(f"Contains.value must be a string (type={type(self.value).__name__})")

    def to_dict(self) -> dict[str, Any]:
        return {"type": "contains", "question_id": self.question_id, "value": self.value}


@dataclass(frozen=True)
class IsOneOf:
    question_id: str
    values: tuple[Any, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "question_id", _require_question_id(self.question_id, "IsOneOf"))
        if isinstance(self.values, (str, bytes)) or not isinstance(self.values, (list, tuple, set, frozenset)):
            raise TypeError("IsOneOf.values must be a list or tuple of values")
        object.__setattr__(self, "values", tuple(self.values))

    def to_dict(self) -> dict[str, Any]:
        return {"type": "in", "question_id": self.question_id, "values": list(self.values)}


@dataclass(frozen=True)
class Custom:
    question_id: str
    predicate: Callable[[Any, AnswerMap], bool]
    label: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "question_id", _require_question_id(self.question_id, "Custom"))
        if not callable(self.predicate):
            raise TypeError(
                f"Custom.predicate must be callable (type={type(self.predicate).__name__})"
            )

    def describe_predicate(self) -> str:
        if self.label:
            return self.label
        module = getattr(self.predicate, "__module__", None) or "<unknown_module>"
        qualname = getattr(self.predicate, "__qualname__", None) or "<callable>"
        return f"{module}.{qualname}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "custom",
            "question_id": self.question_id,
            "predicate": self.describe_predicate(),
        }


@dataclass(frozen=True)
class And:
    conditions: tuple["Condition", ...]

    def __init__(self, *conditions: "Condition") -> None:
        object.__setattr__(self, "conditions", _check_children(conditions, "And"))

    def to_dict(self) -> dict[str, Any]:
        return {"type": "and", "conditions": [c.to_dict() for c in self.conditions]}


@dataclass(frozen=True)
class Or:
    conditions: tuple["Condition", ...]

    def __init__(self, *conditions: "Condition") -> None:
        object.__setattr__(self, "conditions", _check_children(conditions, "Or"))

    def to_dict(self) -> dict[str, Any]:
        return {"type": "or", "conditions": [c.to_dict() for c in self.conditions]}


Condition: TypeAlias = Union[Equals, IncludesValue, Contains, IsOneOf, Custom, And, Or]
_CONDITION_TYPES = (Equals, IncludesValue, Contains, IsOneOf, Custom, And, Or)


def _check_children(conditions: tuple[Any, ...], kind: str) -> tuple[Condition, ...]:
    if not conditions:
        raise ValueError(f"{kind} requires at least one condition")
    for idx, condition in enumerate(conditions):
        if not isinstance(condition, _CONDITION_TYPES):
            raise TypeError(
                f"{kind}.conditions[{idx}] is not an activation condition "
                f"(type={type(condition).__name__})"
            )
    return tuple(conditions)


def is_condition(value: Any) -> bool:
    return isinstance(value, _CONDITION_TYPES)


def normalize_answers(answers: Mapping[str, Any] | None) -> dict[str, AnswerValue]:
    """
    Close an externally collected answer mapping over the supported value types.

    Accepts str/int/float/bool scalars and lists/tuples of scalars. `None`
    values are dropped (treated as unanswered). Anything else raises TypeError
    with the offending question id.
    """

    if answers is None:
        return {}
    if not isinstance(answers, Mapping):
        raise TypeError(f"answers must be a mapping (type={type(answers).__name__})")

    out: dict[str, AnswerValue] = {}
    for key, value in answers.items():
        if not isinstance(key, str) or not key.strip():
            raise TypeError(f"answer keys must be non-empty strings (got {key!r})")
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            out[key] = value
            continue
        if isinstance(value, (list, tuple)):
            items: list[Scalar] = []
            for idx, item in enumerate(value):
                if not isinstance(item, (str, int, float, bool)):
                    raise TypeError(
                        f"answers.{key}[{idx}] must be a scalar (type={type(item).__name__})"
                    )
                items.append(item)
            out[key] = tuple(items)
            continue
        raise TypeError(f"answers.{key} has unsupported type {type(value).__name__}")
    return out


def evaluate(condition: Condition, answers: AnswerMap, feature_id: str | None = None) -> bool:
    """Evaluate `condition` against `answers`; absent answers make leaf checks false."""

    if isinstance(condition, And):
        return all(evaluate(child, answers, feature_id) for child in condition.conditions)
    if isinstance(condition, Or):
        return any(evaluate(child, answers, feature_id) for child in condition.conditions)

    if not isinstance(condition, _CONDITION_TYPES):
        label = f" (feature={feature_id})" if feature_id else ""
        raise TypeError(
            f"Not an activation condition{label}: {type(condition).__name__}"
        )

    value = answers.get(condition.question_id, _MISSING)

    if isinstance(condition, Custom):
        return bool(condition.predicate(None if value is _MISSING else value, answers))

    if value is _MISSING:
        return False

    if isinstance(condition, Equals):
        return _scalar_equals(value, condition.value)
    if isinstance(condition, IncludesValue):
        if isinstance(value, (list, tuple)):
            return any(_scalar_equals(item, condition.value) for item in value)
        return False
    if isinstance(condition, Contains):
        return isinstance(value, str) and condition.value in value
    if isinstance(condition, IsOneOf):
        return any(_scalar_equals(value, candidate) for candidate in condition.values)

    raise AssertionError(f"Unhandled condition type: {type(condition).__name__}")
