"""
Predicate and mutation builders for conditional single-document writes.

Predicates inspect a document and return a bool; mutations modify the
document in place. Stores evaluate both under their per-document atomicity
guarantee, so a guard such as `array_lacks("interviewers", user_id=uid)`
is re-checked at write time.
"""

from typing import Any, Dict

from .protocols import Document, Mutation, Predicate


# --- Predicates ---

def by_id(document_id: str) -> Predicate:
    return lambda doc: doc.get("_id") == document_id


def field_equals(field: str, value: Any) -> Predicate:
    return lambda doc: doc.get(field) == value


def array_contains(array: str, **match: Any) -> Predicate:
    """True if some element of `doc[array]` has every `match` key equal."""

    def predicate(doc: Document) -> bool:
        return any(_matches(element, match) for element in doc.get(array) or [])

    return predicate


def array_lacks(array: str, **match: Any) -> Predicate:
    contains = array_contains(array, **match)
    return lambda doc: not contains(doc)


def all_of(*predicates: Predicate) -> Predicate:
    return lambda doc: all(predicate(doc) for predicate in predicates)


# --- Mutations ---

def push(array: str, value: Any) -> Mutation:
    def mutation(doc: Document) -> None:
        doc.setdefault(array, []).append(value)

    return mutation


def pull(array: str, **match: Any) -> Mutation:
    """Remove every element of `doc[array]` matching all `match` keys."""

    def mutation(doc: Document) -> None:
        doc[array] = [element for element in doc.get(array) or [] if not _matches(element, match)]

    return mutation


def pull_value(array: str, value: Any) -> Mutation:
    """Remove every element equal to `value` from a list of scalars."""

    def mutation(doc: Document) -> None:
        doc[array] = [element for element in doc.get(array) or [] if element != value]

    return mutation


def set_fields(**values: Any) -> Mutation:
    def mutation(doc: Document) -> None:
        doc.update(values)

    return mutation


def increment(field: str, amount: int = 1) -> Mutation:
    def mutation(doc: Document) -> None:
        doc[field] = doc.get(field, 0) + amount

    return mutation


def on_elements(array: str, element_mutation: Mutation, **match: Any) -> Mutation:
    """Apply `element_mutation` to each element of `doc[array]` matching `match`."""

    def mutation(doc: Document) -> None:
        for element in doc.get(array) or []:
            if _matches(element, match):
                element_mutation(element)

    return mutation


def chain(*mutations: Mutation) -> Mutation:
    def mutation(doc: Document) -> None:
        for step in mutations:
            step(doc)

    return mutation


def _matches(element: Any, match: Dict[str, Any]) -> bool:
    if not isinstance(element, dict):
        return False
    return all(element.get(key) == value for key, value in match.items())

