#!/usr/bin/env python3
"""
Field Classifier
Pure label predicates shared by the calculator and the document renderer.
Phrase lists come from settings.yaml so both consumers always agree.
"""

import re
from typing import NamedTuple, Tuple

from .config import get_config

TABLE_TYPES = ('pay', 'employee')


class FieldTags(NamedTuple):
    """Classification of one label, computed on demand and never stored."""
    gross_salary: bool
    severance: bool
    subtotal: bool
    net_salary: bool
    total_employment_cost: bool


def _phrases(key: str) -> Tuple[str, ...]:
    return tuple(phrase.lower() for phrase in get_config(f"classifier.{key}", ()))


def _contains_any(label: str, key: str) -> bool:
    text = label.lower()
    return any(phrase in text for phrase in _phrases(key))


def phrase_list_version() -> int:
    return int(get_config("classifier.phrase_list_version", 0))


def is_gross_salary(label: str) -> bool:
    return _contains_any(label, "gross_salary")


def is_severance(label: str) -> bool:
    """True for "Severance Pay" and the usual OCR misspellings, even when split by a hyphen."""
    compact = re.sub(r"[\s\-]+", "", label.lower())
    return any(spelling in compact for spelling in _phrases("severance_spellings"))


def is_subtotal(label: str, table_type: str) -> bool:
    if table_type not in TABLE_TYPES:
        raise ValueError(f"table_type must be one of {TABLE_TYPES}, got {table_type!r}")
    return _contains_any(label, f"{table_type}_subtotals")


def is_net_salary(label: str) -> bool:
    return _contains_any(label, "net_salary")


def is_total_employment_cost(label: str) -> bool:
    text = label.lower()
    if _contains_any(text, "total_employment_cost"):
        return True
    return "total" in text and "employment" in text


def classify(label: str, table_type: str) -> FieldTags:
    return FieldTags(
        gross_salary=is_gross_salary(label),
        severance=is_severance(label),
        subtotal=is_subtotal(label, table_type),
        net_salary=is_net_salary(label),
        total_employment_cost=is_total_employment_cost(label),
    )
