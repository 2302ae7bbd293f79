"""
Tests for the component property scan: missing definitions, property and
option naming, default-only instances and the override rate.
"""

import asyncio

import pytest

from figma_nodes import supports_property_definitions
from scan_properties import (
    DEFAULTS_ONLY,
    NO_PROPERTIES,
    OPTION_NAMES,
    PROPERTY_NAMES,
    UNKNOWN_PROPERTIES,
    definitions_source,
    evaluate_instance,
    scan_properties,
    stringify_value,
)


@pytest.fixture
def library(figma):
    """A component set, two standalone components, a badly named option and five instances."""
    small = figma.variant("Size=sm, status=on")
    medium = figma.variant("Size=md, status=off")
    button = figma.component_set(
        "Button",
        small,
        medium,
        definitions={
            "Size": figma.variant_prop(["sm", "md"]),
            "status": figma.variant_prop(["on", "off"]),
        },
    )
    avatar = figma.component("avatar")
    badge = figma.component("badge", definitions={"label": figma.text_prop("New")})
    toggle = figma.component("toggle", definitions={"state": figma.variant_prop(["On State", "off"])})
    detached = figma.component("ghost")

    usage = figma.frame(
        "usage",
        figma.instance("btnDefault", small, values={"Size": "sm", "status": "on"}),
        figma.instance("btnCustom", medium, values={"Size": "md", "status": "on"}),
        figma.instance("badgeUse", badge, values={"label": "New", "extra": "x"}),
        figma.instance("avatarUse", avatar),
        figma.instance("ghostUse", detached),
    )
    return figma.page_provider(button, avatar, badge, toggle, usage)


class TestStringifyValue:

    @pytest.mark.parametrize("value, expected", [
        (True, "true"),
        (False, "false"),
        (2.0, "2"),
        (2.5, "2.5"),
        (None, ""),
        ("md", "md"),
    ])
    def test_stringify(self, value, expected):
        assert stringify_value(value) == expected


class TestInstanceEvaluation:

    def test_variant_reads_set_definitions(self, figma):
        variant = figma.variant("Size=sm")
        component_set = figma.component_set("chip", variant, definitions={"size": figma.variant_prop(["sm"])})
        assert list(definitions_source(component_set.children[0])) == ["size"]
        assert not supports_property_definitions(component_set.children[0])
        assert supports_property_definitions(component_set)

    def test_boolean_default_matches_string_value(self, figma):
        main = figma.component("chip", definitions={"hasIcon": figma.boolean_prop(False)})
        instance = figma.instance("chip", main, values={"hasIcon": "false"})
        usage = evaluate_instance(instance, main)
        assert usage.overrides == []
        assert not usage.has_override

    def test_override_and_unknown(self, figma):
        main = figma.component("chip", definitions={"hasIcon": figma.boolean_prop(False)})
        instance = figma.instance("chip", main, values={"hasIcon": True, "legacy": "x"})
        usage = evaluate_instance(instance, main)
        assert usage.overrides == ["hasIcon"]
        assert usage.unknown == ["legacy"]


class TestScanProperties:

    def test_component_without_properties(self, library):
        report = asyncio.run(scan_properties(library))
        group = report.group(NO_PROPERTIES)
        assert [i.name for i in group.items] == ["avatar"]

    def test_property_names_on_component_set(self, library):
        report = asyncio.run(scan_properties(library))
        items = report.group(PROPERTY_NAMES).items
        assert [(i.name, i.suggestion) for i in items] == [("Size", "size"), ("status", "state")]
        assert items[1].label == "use 'state' instead of 'status'"
        assert items[1].path == "Button"

    def test_option_names(self, library):
        report = asyncio.run(scan_properties(library))
        items = report.group(OPTION_NAMES).items
        assert [(i.name, i.suggestion) for i in items] == [("On State", "onState")]
        assert items[0].path == "toggle > state"

    def test_variants_are_not_checked_themselves(self, library):
        report = asyncio.run(scan_properties(library))
        assert report.group(NO_PROPERTIES).count == 1
        assert {i.path for i in report.group(PROPERTY_NAMES).items} == {"Button"}

    def test_defaults_only_instances(self, library):
        report = asyncio.run(scan_properties(library))
        names = [i.name for i in report.group(DEFAULTS_ONLY).items]
        assert names == ["btnDefault (Size=sm, status=on)", "badgeUse (badge)"]

    def test_unknown_properties(self, library):
        report = asyncio.run(scan_properties(library))
        items = report.group(UNKNOWN_PROPERTIES).items
        assert [(i.name, i.value) for i in items] == [("badgeUse (badge)", "extra")]

    def test_stats(self, library):
        report = asyncio.run(scan_properties(library))
        assert report.stats == {
            "total_components": 4,
            "total_instances": 5,
            "overridden_instances": 1,
            "unresolved_instances": 1,
            "override_rate": 20.0,
        }

    def test_no_instances_means_zero_rate(self, figma):
        provider = figma.page_provider(figma.component("avatar"))
        report = asyncio.run(scan_properties(provider))
        assert report.stats["override_rate"] == 0.0
        assert report.stats["total_instances"] == 0

    def test_message_uses_camel_case_keys(self, library):
        message = asyncio.run(scan_properties(library)).to_message()
        assert message["type"] == "properties-results"
        first = message["issues"][0]["items"][0]
        assert first["nodeType"] == "COMPONENT"
        assert "node_type" not in first
