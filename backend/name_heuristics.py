"""
Name Heuristics - layer and property name checks.

Pure functions that classify a name against a library of anti-patterns and
synthesize a replacement suggestion. The lookup tables live in an immutable
NamingTables instance that callers pass in; DEFAULT_TABLES holds the
house conventions (lower camelCase, design-system vocabulary).
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from figma_nodes import FigmaNode, NodeType
from fuzzy_match import find_fuzzy_match
from tree_walker import walk


class NameIssue(str, Enum):
    DEFAULT_GENERIC = "default-generic"
    TOO_SHORT = "too-short"
    NON_CANONICAL_CASING = "non-camel-case"
    EXTRA_WHITESPACE = "extra-whitespace"


_SYNONYMS = {
    "status": "state",
    "variants": "variant",
    "varient": "variant",
    "varients": "variant",
    "varaint": "variant",
    "display": "viewport",
    "screen": "viewport",
    "breakpoint": "viewport",
    "breakpoints": "viewport",
    "brakepoint": "viewport",
    "breakpiont": "viewport",
}

_TYPE_LABELS = {
    NodeType.SECTION: "section",
    NodeType.FRAME: "container",
    NodeType.GROUP: "group",
    NodeType.COMPONENT: "component",
    NodeType.COMPONENT_SET: "componentSet",
    NodeType.INSTANCE: "instance",
    NodeType.TEXT: "label",
    NodeType.RECTANGLE: "rectangle",
    NodeType.ELLIPSE: "ellipse",
    NodeType.LINE: "divider",
    NodeType.VECTOR: "icon",
    NodeType.POLYGON: "polygon",
    NodeType.STAR: "star",
    NodeType.BOOLEAN_OPERATION: "shape",
    NodeType.SLICE: "slice",
}


@dataclass(frozen=True)
class NamingTables:
    """Static configuration shared by the name checks and the scans."""

    # Base names Figma assigns to new layers
    generic_base_names: Tuple[str, ...] = (
        "Frame", "Rectangle", "Ellipse", "Line", "Vector", "Group", "Polygon",
        "Star", "Text", "Component", "Instance", "Union", "Subtract",
        "Intersect", "Exclude", "Image", "Section", "Slice", "Arrow",
    )
    # Exact names left behind by boolean operations and vector edits
    artifact_names: FrozenSet[str] = frozenset({
        "Vector", "Rectangle", "Ellipse", "Line", "Group", "Frame",
        "Union", "Subtract", "Intersect", "Exclude",
    })
    synonyms: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(_SYNONYMS)))
    stopwords: FrozenSet[str] = frozenset({
        "a", "an", "the", "and", "or", "of", "to", "in", "on", "for", "with",
        "at", "by", "is", "are", "be", "it", "this", "that", "your", "you",
        "our", "we", "my", "from", "as",
    })
    type_labels: Mapping[NodeType, str] = field(default_factory=lambda: MappingProxyType(dict(_TYPE_LABELS)))
    ui_keywords: Tuple[str, ...] = (
        "button", "input", "card", "checkbox", "radio", "switch", "select", "tab", "modal",
    )
    short_name_length: int = 2
    max_text_words: int = 3

    @cached_property
    def generic_pattern(self) -> "re.Pattern[str]":
        alternatives = "|".join(re.escape(n) for n in self.generic_base_names)
        return re.compile(rf"^(?:{alternatives})(?:\s*\d+)?$", re.IGNORECASE)


DEFAULT_TABLES = NamingTables()

_CAMEL_CASE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
_HASH_SUFFIX = re.compile(r"#[^#]*$")
_WORD = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")

REASON_EXTRA_WHITESPACE = "extra whitespace"
REASON_SPACES = "contains spaces"
REASON_CASING = "not camelCase"


def strip_hash_suffix(name: str) -> str:
    """Drop the `#id` suffix Figma appends to text/boolean/instance-swap property names."""
    return _HASH_SUFFIX.sub("", name)


def normalize_whitespace(name: str) -> str:
    return " ".join(name.split())


def base_name(name: str) -> str:
    return normalize_whitespace(strip_hash_suffix(name))


def is_strict_camel_case(name: str) -> bool:
    return bool(_CAMEL_CASE.match(name))


def split_words(text: str) -> List[str]:
    """Split on separators and camelCase boundaries; non-ASCII characters are dropped."""
    words: List[str] = []
    for chunk in _NON_ALNUM.split(text):
        words.extend(_WORD.findall(chunk))
    return words


def to_camel_case(text: str) -> str:
    """Lower camelCase form of `text`, or "" when nothing letter-led survives."""
    words = split_words(text)
    while words and words[0].isdigit():
        words.pop(0)
    if not words:
        return ""
    head, rest = words[0].lower(), words[1:]
    return head + "".join(w[:1].upper() + w[1:].lower() for w in rest)


def classify_name(name: str, tables: NamingTables = DEFAULT_TABLES) -> FrozenSet[NameIssue]:
    trimmed = name.strip()
    issues = set()
    if tables.generic_pattern.match(trimmed):
        issues.add(NameIssue.DEFAULT_GENERIC)
    if len(trimmed) <= tables.short_name_length:
        issues.add(NameIssue.TOO_SHORT)
    if not is_strict_camel_case(strip_hash_suffix(trimmed)):
        issues.add(NameIssue.NON_CANONICAL_CASING)
    if name != normalize_whitespace(name):
        issues.add(NameIssue.EXTRA_WHITESPACE)
    return frozenset(issues)


def is_good_name(name: str, tables: NamingTables = DEFAULT_TABLES) -> bool:
    return not classify_name(name, tables)


def type_label(node_type: NodeType, tables: NamingTables = DEFAULT_TABLES) -> str:
    return tables.type_labels.get(node_type, "")


@dataclass
class NamingResult:
    reasons: List[str]
    suggestion: str

    @property
    def ok(self) -> bool:
        return not self.reasons

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)


def apply_naming_rules(raw_name: str, tables: NamingTables = DEFAULT_TABLES) -> NamingResult:
    """Check a property or option name and propose a conforming one.

    Every rule that fires is reported, in detection order. When nothing
    fires the suggestion is the name itself (hash suffix removed).
    """
    name = strip_hash_suffix(raw_name)
    reasons: List[str] = []

    if name != normalize_whitespace(name):
        reasons.append(REASON_EXTRA_WHITESPACE)
    normalized = normalize_whitespace(name)
    if " " in normalized:
        reasons.append(REASON_SPACES)

    replaced: List[str] = []
    for word in split_words(normalized):
        substitute = tables.synonyms.get(word.lower())
        if substitute:
            reason = f"use '{substitute}' instead of '{word}'"
            if reason not in reasons:
                reasons.append(reason)
            replaced.append(substitute)
        else:
            replaced.append(word)

    if not is_strict_camel_case(normalized):
        reasons.append(REASON_CASING)

    if not reasons:
        return NamingResult(reasons=[], suggestion=normalized)
    return NamingResult(reasons=reasons, suggestion=to_camel_case(" ".join(replaced)))


def significant_words(text: str, tables: NamingTables = DEFAULT_TABLES) -> List[str]:
    words = []
    for word in _NON_ALNUM.split(text):
        if len(word) < 2 or word.isdigit() or word.lower() in tables.stopwords:
            continue
        words.append(word)
        if len(words) == tables.max_text_words:
            break
    return words


def collect_text_content(node: FigmaNode) -> str:
    return " ".join(n.characters for n in walk([node]) if n.type == NodeType.TEXT and n.characters)


def frequent_good_names(
    counts: Iterable[Tuple[str, int]],
    threshold: int,
    tables: NamingTables = DEFAULT_TABLES,
) -> List[str]:
    """Names seen at least `threshold` times that are not flagged themselves, most frequent first."""
    ranked = sorted(counts, key=lambda item: -item[1])
    return [name for name, count in ranked if count >= threshold and is_good_name(name, tables)]


def suggest_replacement(
    node: FigmaNode,
    frequent_names: Sequence[str] = (),
    tables: NamingTables = DEFAULT_TABLES,
) -> str:
    """Propose a name for a flagged node. First strategy that yields wins:

    1. default-generic names get the node type's label
    2. a frequent good name within edit distance
    3. up to three significant words of the text the node contains
    4. the parent's name, if the parent is well named
    5. the node type's label
    """
    label = type_label(node.type, tables)
    issues = classify_name(node.name, tables)

    if NameIssue.DEFAULT_GENERIC in issues and label:
        return label

    match = find_fuzzy_match(base_name(node.name), frequent_names)
    if match:
        return match

    text_name = to_camel_case(" ".join(significant_words(collect_text_content(node), tables)))
    if text_name:
        return text_name

    parent = node.parent
    if parent is not None and parent.type not in (NodeType.PAGE, NodeType.DOCUMENT):
        if is_good_name(parent.name, tables):
            return strip_hash_suffix(parent.name)

    return label
