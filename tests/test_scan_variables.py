"""
Tests for the variable hygiene scan: inventory checks, usage tracking and
unbound style values with nearest-token suggestions.
"""

import asyncio

import pytest

from document_provider import Scope
from scan_variables import (
    MISPLACED,
    MISSING_DESCRIPTION,
    ORPHANS,
    UNBOUND_COLORS,
    UNBOUND_NUMBERS,
    UNUSED,
    find_unbound_fields,
    is_misplaced,
    numeric_pool,
    build_inventory,
    scan_variables,
)


@pytest.fixture
def tokens(figma):
    """Token set plus a page that binds two of them and leaves other values raw."""
    figma.variable("Primary", {"r": 0, "g": 0, "b": 1, "a": 1}, resolved_type="COLOR")
    medium = figma.variable("spacing/md", 8, description="Medium gap")
    figma.variable("spacing/none", 0, description="No gap")
    figma.variable("spacing/lg", 16, description="Large gap")
    figma.variable("global/button/radius", 4, description="Button corners")
    brand = figma.variable("color/brand", {"r": 1, "g": 0, "b": 0, "a": 1}, resolved_type="COLOR", description="Brand")

    stack = figma.auto_layout(
        "stack",
        item_spacing=8,
        padding_left=0,
        padding_top=14,
        bound_variables=figma.bound(itemSpacing=medium),
    )
    swatch = figma.rect("swatch", fills=[figma.solid(r=1.0)])
    brand_swatch = figma.rect("brandSwatch", fills=[figma.solid(r=1.0, variable=brand)])
    rounded = figma.rect("roundedBox", corner_radius=5, stroke_weight=1)
    return figma.page_provider(stack, swatch, brand_swatch, rounded)


class TestInventoryChecks:

    def test_misplaced_component_token(self, figma):
        assert is_misplaced(figma.variable("global/button/radius", 4))
        assert is_misplaced(figma.variable("Global/cardsPadding", 4))
        assert not is_misplaced(figma.variable("global/spacing/sm", 4))
        assert not is_misplaced(figma.variable("button/radius", 4))

    def test_numeric_pool_skips_colors_and_aliases(self, figma):
        figma.variable("color/brand", {"r": 1, "g": 0, "b": 0}, resolved_type="COLOR")
        figma.variable("spacing/alias", {"type": "VARIABLE_ALIAS", "id": "VariableID:9"})
        figma.variable("spacing/sm", 4)
        provider = figma.page_provider()
        pool = numeric_pool(asyncio.run(build_inventory(provider)))
        assert [(c.name, c.value) for c in pool] == [("spacing/sm", 4.0)]


class TestUnboundFields:

    def test_auto_layout_zero_is_flagged(self, figma):
        stack = figma.auto_layout("stack", item_spacing=0)
        numbers, colors = find_unbound_fields(stack, [])
        assert [(i.label, i.value) for i in numbers] == [("itemSpacing", 0)]
        assert colors == []

    def test_non_auto_layout_spacing_ignored(self, figma):
        frame = figma.frame("plain", item_spacing=10)
        assert find_unbound_fields(frame, []) == ([], [])

    def test_radius_zero_not_flagged(self, figma):
        assert find_unbound_fields(figma.rect("box", corner_radius=0), []) == ([], [])

    def test_stroke_weight_needs_strokes(self, figma):
        bare = figma.rect("box", stroke_weight=2)
        stroked = figma.rect("box", stroke_weight=2, strokes=[figma.solid()])
        assert find_unbound_fields(bare, [])[0] == []
        numbers, colors = find_unbound_fields(stroked, [])
        assert [i.label for i in numbers] == ["strokeWeight"]
        assert [i.label for i in colors] == ["strokes/0"]

    def test_corner_slot_binding_counts(self, figma):
        token = figma.variable("radius/sm", 4)
        box = figma.rect("box", corner_radius=4, bound_variables=figma.bound(topLeftRadius=token))
        assert find_unbound_fields(box, [])[0] == []

    def test_color_bound_on_node_slot(self, figma):
        token = figma.variable("color/brand", {"r": 1, "g": 0, "b": 0}, resolved_type="COLOR")
        box = figma.rect("box", fills=[figma.solid(r=1.0)], bound_variables={"fills": [{"id": token.id}]})
        assert find_unbound_fields(box, [])[1] == []

    def test_invisible_paint_ignored(self, figma):
        paint = figma.solid(r=1.0)
        paint.visible = False
        assert find_unbound_fields(figma.rect("box", fills=[paint]), []) == ([], [])


class TestScanVariables:

    def test_orphan_without_description_unused(self, tokens):
        report = asyncio.run(scan_variables(tokens, scope=Scope.ALL_PAGES))
        for category in (ORPHANS, MISSING_DESCRIPTION, UNUSED):
            assert "Primary (Tokens)" in [i.name for i in report.group(category).items]
        assert report.group(ORPHANS).count == 1
        assert report.group(MISSING_DESCRIPTION).count == 1

    def test_unused_and_stats(self, tokens):
        report = asyncio.run(scan_variables(tokens))
        unused = [i.name for i in report.group(UNUSED).items]
        assert unused == [
            "Primary (Tokens)",
            "spacing/none (Tokens)",
            "spacing/lg (Tokens)",
            "global/button/radius (Tokens)",
        ]
        assert report.stats == {"total_variables": 6, "used": 2, "unused": 4, "visited": 4}

    def test_misplaced_group(self, tokens):
        report = asyncio.run(scan_variables(tokens))
        assert [i.name for i in report.group(MISPLACED).items] == ["global/button/radius (Tokens)"]

    def test_unbound_numbers_with_suggestions(self, tokens):
        report = asyncio.run(scan_variables(tokens))
        items = report.group(UNBOUND_NUMBERS).items
        found = {(i.name, i.label): (i.value, i.suggestion) for i in items}
        assert found == {
            ("stack", "paddingLeft"): (0, "spacing/none"),
            ("stack", "paddingTop"): (14, "spacing/lg"),
            ("roundedBox", "cornerRadius"): (5, "global/button/radius"),
        }
        assert all(i.suggestion_id for i in items)

    def test_unbound_colors(self, tokens):
        report = asyncio.run(scan_variables(tokens))
        items = report.group(UNBOUND_COLORS).items
        assert [(i.name, i.label, i.value) for i in items] == [("swatch", "fills/0", "#FF0000")]

    def test_empty_document(self, figma):
        report = asyncio.run(scan_variables(figma.page_provider()))
        assert report.issues == []
        assert report.stats["total_variables"] == 0
