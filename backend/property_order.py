"""
Property Order - canonical ordering of component property definitions.

Properties are grouped by category (size, state, variant, boolean toggles,
text content, labels, everything else). Within a category the original order
is kept.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Mapping

from figma_nodes import PropertyDefinition, PropertyType
from name_heuristics import is_strict_camel_case, strip_hash_suffix

logger = logging.getLogger(__name__)

CATEGORY_SIZE = 0
CATEGORY_STATE = 1
CATEGORY_VARIANT = 2
CATEGORY_BOOLEAN = 3
CATEGORY_TEXT = 4
CATEGORY_LABEL = 5
CATEGORY_OTHER = 6


def property_category(name: str, definition: PropertyDefinition) -> int:
    """Category rank of a property.

    Name keywords are only trusted on names already in camelCase; a
    wrongly-cased name is ranked by its type alone.
    """
    base = strip_hash_suffix(name).strip()
    keywords = base.lower() if is_strict_camel_case(base) else ""

    if "size" in keywords:
        return CATEGORY_SIZE
    if "state" in keywords or "status" in keywords:
        return CATEGORY_STATE
    if "variant" in keywords:
        return CATEGORY_VARIANT
    if definition.type == PropertyType.BOOLEAN:
        return CATEGORY_BOOLEAN
    if definition.type == PropertyType.TEXT or "text" in keywords:
        return CATEGORY_TEXT
    if "label" in keywords:
        return CATEGORY_LABEL
    return CATEGORY_OTHER


@dataclass
class PropertyOrderEntry:
    name: str
    category: int
    current_index: int
    desired_index: int

    @property
    def in_position(self) -> bool:
        return self.current_index == self.desired_index


@dataclass
class PropertyOrderReport:
    entries: List[PropertyOrderEntry] = field(default_factory=list)
    desired_order: List[str] = field(default_factory=list)

    @property
    def mismatch_count(self) -> int:
        return sum(1 for entry in self.entries if not entry.in_position)

    @property
    def is_ordered(self) -> bool:
        return self.mismatch_count == 0


def validate_property_order(definitions: Mapping[str, PropertyDefinition]) -> PropertyOrderReport:
    names = list(definitions)
    categories = [property_category(name, definitions[name]) for name in names]
    desired = sorted(range(len(names)), key=lambda i: (categories[i], i))
    desired_index = {original: position for position, original in enumerate(desired)}

    report = PropertyOrderReport(desired_order=[names[i] for i in desired])
    for index, name in enumerate(names):
        report.entries.append(PropertyOrderEntry(
            name=name,
            category=categories[index],
            current_index=index,
            desired_index=desired_index[index],
        ))
    if report.mismatch_count:
        logger.debug(f"↕️ {report.mismatch_count} of {len(names)} properties out of order")
    return report
