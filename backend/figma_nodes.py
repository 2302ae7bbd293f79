"""
Figma Nodes - Document Data Model

Pydantic models for the slice of the Figma scene graph the linter reads:
nodes, component property definitions, paints and design-token variables.
Field names are snake_case in Python and camelCase on the wire, matching the
JSON the plugin serializes.
"""

import weakref
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    DOCUMENT = "DOCUMENT"
    PAGE = "PAGE"
    SECTION = "SECTION"
    FRAME = "FRAME"
    GROUP = "GROUP"
    COMPONENT = "COMPONENT"
    COMPONENT_SET = "COMPONENT_SET"
    INSTANCE = "INSTANCE"
    TEXT = "TEXT"
    RECTANGLE = "RECTANGLE"
    ELLIPSE = "ELLIPSE"
    LINE = "LINE"
    VECTOR = "VECTOR"
    POLYGON = "POLYGON"
    STAR = "STAR"
    BOOLEAN_OPERATION = "BOOLEAN_OPERATION"
    SLICE = "SLICE"


class PropertyType(str, Enum):
    BOOLEAN = "BOOLEAN"
    TEXT = "TEXT"
    VARIANT = "VARIANT"
    INSTANCE_SWAP = "INSTANCE_SWAP"


# Types that carry a template identity; anything hidden below them is presumed intentional
COMPONENT_LIKE_TYPES = frozenset({NodeType.COMPONENT, NodeType.COMPONENT_SET, NodeType.INSTANCE})

# Containers that can have auto-layout enabled
AUTO_LAYOUT_TYPES = frozenset({NodeType.FRAME, NodeType.COMPONENT, NodeType.COMPONENT_SET, NodeType.INSTANCE})


class FigmaModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VariableAlias(FigmaModel):
    type: str = "VARIABLE_ALIAS"
    id: str


BoundVariableRef = Union[VariableAlias, List[VariableAlias]]


class RGBAColor(FigmaModel):
    r: float
    g: float
    b: float
    a: Optional[float] = 1.0

    def to_hex(self) -> str:
        channels = [max(0, min(255, round(c * 255))) for c in (self.r, self.g, self.b)]
        return "#" + "".join(f"{c:02X}" for c in channels)


class Paint(FigmaModel):
    type: str
    visible: bool = True
    color: Optional[RGBAColor] = None
    bound_variables: Optional[Dict[str, VariableAlias]] = None

    @property
    def is_solid(self) -> bool:
        return self.type == "SOLID" and self.visible and self.color is not None


class PropertyDefinition(FigmaModel):
    type: PropertyType
    default_value: Any = None
    variant_options: Optional[List[str]] = None


class InstancePropertyValue(FigmaModel):
    type: Optional[PropertyType] = None
    value: Any = None


class FigmaNode(FigmaModel):
    """A node of the scene graph.

    Children are owned by their parent. The parent link is a weak reference
    installed when the parent model is built, so it is only good for lookups
    while the tree root is alive.
    """

    id: str
    name: str = ""
    type: NodeType
    visible: bool = True
    width: float = 0.0
    height: float = 0.0
    remote: bool = False
    children: Optional[List["FigmaNode"]] = None
    bound_variables: Optional[Dict[str, BoundVariableRef]] = None
    component_property_definitions: Optional[Dict[str, PropertyDefinition]] = None
    component_properties: Optional[Dict[str, InstancePropertyValue]] = None
    main_component_id: Optional[str] = None
    characters: Optional[str] = None
    layout_mode: Optional[str] = None
    item_spacing: Optional[float] = None
    counter_axis_spacing: Optional[float] = None
    padding_left: Optional[float] = None
    padding_right: Optional[float] = None
    padding_top: Optional[float] = None
    padding_bottom: Optional[float] = None
    corner_radius: Optional[float] = None
    stroke_weight: Optional[float] = None
    fills: Optional[List[Paint]] = None
    strokes: Optional[List[Paint]] = None

    _parent: Optional[weakref.ReferenceType] = PrivateAttr(default=None)
    _anchor: Any = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        for child in self.children or []:
            child._parent = weakref.ref(self)

    @property
    def parent(self) -> Optional["FigmaNode"]:
        return self._parent() if self._parent is not None else None

    def adopt(self, child: "FigmaNode", index: Optional[int] = None) -> None:
        """Insert a child and point its parent link here."""
        if self.children is None:
            self.children = []
        if index is None:
            self.children.append(child)
        else:
            self.children.insert(index, child)
        child._parent = weakref.ref(self)

    def keep_alive(self, owner: "FigmaNode") -> None:
        """Hold a strong reference to the root of a detached ancestor chain built around this node."""
        self._anchor = owner

    def ancestors(self) -> Iterator["FigmaNode"]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    @property
    def has_auto_layout(self) -> bool:
        return self.type in AUTO_LAYOUT_TYPES and self.layout_mode not in (None, "NONE")

    def bound_variable_ids(self) -> List[str]:
        """Every variable id referenced by this node, node-level slots first, then paints."""
        ids: List[str] = []
        for ref in (self.bound_variables or {}).values():
            refs = ref if isinstance(ref, list) else [ref]
            ids.extend(alias.id for alias in refs if alias is not None and alias.id)
        for paint in (self.fills or []) + (self.strokes or []):
            for alias in (paint.bound_variables or {}).values():
                if alias is not None and alias.id:
                    ids.append(alias.id)
        return ids

    def is_slot_bound(self, slot_key: str) -> bool:
        ref = (self.bound_variables or {}).get(slot_key)
        if isinstance(ref, list):
            return any(alias is not None for alias in ref)
        return ref is not None


FigmaNode.model_rebuild()


def supports_property_definitions(node: FigmaNode) -> bool:
    """Whether reading property definitions is meaningful for this node.

    Component sets and standalone components own definitions. Variant
    children of a set share the set's definitions and have none of their own.
    """
    if node.type == NodeType.COMPONENT_SET:
        return True
    if node.type == NodeType.COMPONENT:
        parent = node.parent
        return parent is None or parent.type != NodeType.COMPONENT_SET
    return False


def build_parent_path(node: FigmaNode) -> str:
    """Ancestor names from the page down to the node's parent, joined with ' > '."""
    parts: List[str] = []
    for ancestor in node.ancestors():
        if ancestor.type in (NodeType.PAGE, NodeType.DOCUMENT):
            break
        parts.append(ancestor.name)
    return " > ".join(reversed(parts))


def has_component_ancestor(node: FigmaNode) -> bool:
    return any(ancestor.type in COMPONENT_LIKE_TYPES for ancestor in node.ancestors())


class VariableMode(FigmaModel):
    mode_id: str
    name: str = ""


class VariableCollection(FigmaModel):
    id: str
    name: str
    modes: List[VariableMode] = Field(default_factory=list)
    default_mode_id: Optional[str] = None
    variable_ids: List[str] = Field(default_factory=list)


class Variable(FigmaModel):
    id: str
    name: str
    description: Optional[str] = ""
    resolved_type: str
    variable_collection_id: str
    values_by_mode: Dict[str, Any] = Field(default_factory=dict)
    remote: bool = False

    def value_for_mode(self, mode_id: Optional[str]) -> Any:
        """Value in the given mode, falling back to the first mode declared."""
        if mode_id is not None and mode_id in self.values_by_mode:
            return self.values_by_mode[mode_id]
        return next(iter(self.values_by_mode.values()), None)
