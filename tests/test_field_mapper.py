"""
Tests for mapping resolution.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from modules.order_forms.core.diagnostics import CollectingDiagnosticsSink, DiagnosticKind
from modules.order_forms.core.types import FieldMapping, MappingSource
from modules.order_forms.mappers.field_mapper import MappingResolver, resolve
from modules.order_forms.mappers.registry import DEFAULT_MAPPING, BUILTIN_MAPPINGS, mapping_config
from modules.order_forms.mappers.transforms import get_transform

FIXED_TODAY = date(2024, 6, 15)


@pytest.fixture
def resolver(diagnostics):
    return MappingResolver(diagnostics=diagnostics, clock=lambda: FIXED_TODAY)


def _item(pdf_field, field="article"):
    return FieldMapping(pdf_field, MappingSource.ITEM, field)


def _custom(pdf_field, rule):
    return FieldMapping(pdf_field, MappingSource.CUSTOM, rule)


# ==============================================================================
# TOTALITY
# ==============================================================================

@pytest.mark.parametrize("records", [
    {},
    {"project": None, "part": None, "order_list": None, "items": None},
    {"project": {}, "part": {}, "order_list": {}, "items": []},
    {"project": {"engineer": None, "masonryCompany": {}}, "items": [{}]},
])
def test_every_config_entry_resolves_to_a_string(resolver, records):
    for products in BUILTIN_MAPPINGS.values():
        for config in products.values():
            resolved = resolver.resolve(config, **records)

            assert set(resolved) == set(config)
            assert all(isinstance(value, str) for value in resolved.values())


def test_default_mapping_with_full_records(resolver, project, part, order_list, items):
    resolved = resolver.resolve(DEFAULT_MAPPING, project, part, order_list, items)

    assert resolved["projectName"] == "Tower A"
    assert resolved["projectNumber"] == "P1"
    assert resolved["partNumber"] == "X2"
    assert resolved["listNumber"] == "7"
    assert resolved["manager"] == "Marc Weber"
    assert resolved["date"] == "15.06.2024"
    assert resolved["compositePartNumber"] == "P1-X2"
    assert resolved["compositeOrderListNumber"] == "P1-X2.7"
    assert resolved["engineerName"] == "Ingenieure AG"
    assert resolved["engineerAddress"] == "Main St 1"
    assert resolved["engineerCity"] == "CH-1000 Lausanne"
    assert resolved["masonryAddress"] == "Baustrasse 9"
    assert resolved["masonryCity"] == "Bern"
    assert resolved["masonryPhone"] == ""


def test_plain_dict_records(resolver):
    config = mapping_config(
        FieldMapping("name", MappingSource.PROJECT, "name"),
        FieldMapping("email", MappingSource.PROJECT, "engineer.email"),
        FieldMapping("list", MappingSource.ORDER_LIST, "listNumber"),
    )

    resolved = resolver.resolve(
        config,
        project={"name": "Tower B", "engineer": {"email": "eng@example.com"}},
        order_list={"listNumber": 12},
    )

    assert resolved == {"name": "Tower B", "email": "eng@example.com", "list": "12"}


# ==============================================================================
# ITEM OCCURRENCES
# ==============================================================================

def test_item_occurrences_bind_to_successive_items(resolver):
    config = mapping_config(_item("article_1"), _item("article_2"))

    resolved = resolver.resolve(config, items=[{"article": "A"}, {"article": "B"}])

    assert resolved == {"article_1": "A", "article_2": "B"}


def test_missing_item_index_resolves_empty(resolver):
    config = mapping_config(_item("article_1"), _item("article_2"))

    resolved = resolver.resolve(config, items=[{"article": "A"}])

    assert resolved == {"article_1": "A", "article_2": ""}


def test_item_counters_are_per_field(resolver, items):
    config = mapping_config(
        _item("article_1"),
        _item("quantity_1", "quantity"),
        _item("article_2"),
        _item("quantity_2", "quantity"),
    )

    resolved = resolver.resolve(config, items=items)

    assert resolved == {"article_1": "A", "quantity_1": "4", "article_2": "B", "quantity_2": "2"}


def test_item_specifications_fallback(resolver, items):
    config = mapping_config(_item("diameter_1", "diameter"), _item("diameter_2", "diameter"))

    resolved = resolver.resolve(config, items=items)

    assert resolved == {"diameter_1": "M12", "diameter_2": "M16"}


def test_resolution_is_idempotent(resolver, project, part, order_list, items):
    config = {**DEFAULT_MAPPING, **mapping_config(_item("article_1"), _item("article_2"))}

    first = resolver.resolve(config, project, part, order_list, items)
    second = resolver.resolve(config, project, part, order_list, items)

    assert first == second
    assert second["article_1"] == "A"


# ==============================================================================
# CUSTOM RULES
# ==============================================================================

def test_composite_part_number(resolver):
    config = mapping_config(_custom("code", "compositePartNumber"))

    assert resolver.resolve(config, project={"projectNumber": "P1"}, part={"partNumber": "X2"}) == {"code": "P1-X2"}
    assert resolver.resolve(config, project=None, part={"partNumber": "X2"}) == {"code": "??-X2"}


def test_composite_order_list_number_with_missing_parts(resolver):
    config = mapping_config(_custom("code", "compositeOrderListNumber"))

    assert resolver.resolve(config) == {"code": "??-??.??"}


def test_address_falls_back_to_legacy_field(resolver):
    config = mapping_config(_custom("street", "engineerFormattedAddress"))

    resolved = resolver.resolve(config, project={"engineer": {"address": "Main St 1"}})

    assert resolved == {"street": "Main St 1"}


@pytest.mark.parametrize("company, expected", [
    ({"postalCode": "1000", "city": "Lausanne"}, "CH-1000 Lausanne"),
    ({"city": "Lausanne"}, "Lausanne"),
    ({"postalCode": "1000"}, "1000"),
    ({}, ""),
    (None, ""),
])
def test_city_formatting(resolver, company, expected):
    config = mapping_config(_custom("city", "engineerFormattedCity"))

    assert resolver.resolve(config, project={"engineer": company}) == {"city": expected}


def test_country_prefix_is_configurable():
    resolver = MappingResolver(country_prefix="FL", diagnostics=CollectingDiagnosticsSink())
    config = mapping_config(_custom("city", "ownerFormattedCity"))

    resolved = resolver.resolve(config, project={"owner": {"postalCode": "9490", "city": "Vaduz"}})

    assert resolved == {"city": "FL-9490 Vaduz"}


def test_current_date_uses_clock_and_format(diagnostics):
    resolver = MappingResolver(diagnostics=diagnostics, date_format="%Y-%m-%d", clock=lambda: date(2025, 1, 2))

    assert resolver.resolve(mapping_config(_custom("date", "currentDate"))) == {"date": "2025-01-02"}


def test_unknown_custom_rule_resolves_empty(resolver, diagnostics):
    assert resolver.resolve(mapping_config(_custom("x", "noSuchRule"))) == {"x": ""}
    assert diagnostics.diagnostics == []


def test_constant_transform_on_unknown_custom_rule(resolver):
    config = BUILTIN_MAPPINGS["debrunner"]["console-acinox"]

    assert resolver.resolve(config)["steelGrade"] == "S355"


# ==============================================================================
# ERRORS AND TRANSFORMS
# ==============================================================================

def test_unknown_source_reports_and_continues(resolver, diagnostics):
    config = {
        "a": FieldMapping("a", "database", "name"),
        "b": FieldMapping("b", MappingSource.PROJECT, "name"),
    }

    resolved = resolver.resolve(config, project={"name": "Tower A"})

    assert resolved == {"a": "", "b": "Tower A"}
    [diagnostic] = diagnostics.of_kind(DiagnosticKind.UNKNOWN_SOURCE)
    assert diagnostic.field == "a"


def test_failing_transform_falls_back_to_raw_value(resolver, diagnostics):
    def explode(value):
        raise ValueError("boom")

    config = {
        "a": FieldMapping("a", MappingSource.PROJECT, "name", explode),
        "b": FieldMapping("b", MappingSource.PROJECT, "name", str.upper),
    }

    resolved = resolver.resolve(config, project={"name": "Tower A"})

    assert resolved == {"a": "Tower A", "b": "TOWER A"}
    [diagnostic] = diagnostics.of_kind(DiagnosticKind.TRANSFORM_ERROR)
    assert diagnostic.field == "a"
    assert "boom" in str(diagnostic.error)


def test_failing_lookup_degrades_to_empty(resolver, diagnostics):
    class Broken:
        @property
        def name(self):
            raise RuntimeError("lazy load failed")

    config = mapping_config(
        FieldMapping("a", MappingSource.PROJECT, "name"),
        FieldMapping("b", MappingSource.PART, "name"),
    )

    resolved = resolver.resolve(config, project=Broken(), part={"name": "Basement"})

    assert resolved == {"a": "", "b": "Basement"}
    [diagnostic] = diagnostics.of_kind(DiagnosticKind.FIELD_RESOLUTION_ERROR)
    assert diagnostic.field == "a"


def test_uncoercible_value_degrades_to_empty(resolver, diagnostics):
    class Unprintable:
        def __str__(self):
            raise ValueError("bad value")

    config = mapping_config(
        FieldMapping("a", MappingSource.PROJECT, "name"),
        FieldMapping("b", MappingSource.PROJECT, "weird"),
        FieldMapping("c", MappingSource.PROJECT, "weird", get_transform("upper")),
    )

    resolved = resolver.resolve(config, project={"name": "ok", "weird": Unprintable()})

    assert resolved == {"a": "ok", "b": "", "c": ""}
    errors = diagnostics.of_kind(DiagnosticKind.FIELD_RESOLUTION_ERROR)
    assert [d.field for d in errors] == ["b", "c"]
    assert "bad value" in str(errors[0].error)


def test_named_transforms(resolver):
    config = {
        "up": FieldMapping("up", MappingSource.PROJECT, "name", get_transform("upper")),
        "code": FieldMapping("code", MappingSource.ORDER_LIST, "listNumber", get_transform("prefix", value="NO-")),
        "when": FieldMapping("when", MappingSource.ORDER_LIST, "submitted", get_transform("date_format", output_format="%d/%m/%Y")),
        "total": FieldMapping("total", MappingSource.ORDER_LIST, "total", get_transform("number_format")),
    }

    resolved = resolver.resolve(
        config,
        project={"name": "tower a"},
        order_list={"listNumber": "7", "submitted": "2024-06-15", "total": 1234.5},
    )

    assert resolved == {"up": "TOWER A", "code": "NO-7", "when": "15/06/2024", "total": "1'234.50"}


@pytest.mark.parametrize("value, expected", [
    (None, ""),
    ("text", "text"),
    (True, "true"),
    (False, "false"),
    (3, "3"),
    (3.0, "3"),
    (2.5, "2.5"),
    (Decimal("10.50"), "10.50"),
    (date(2024, 6, 15), "15.06.2024"),
    (datetime(2024, 6, 15, 8, 30), "15.06.2024"),
])
def test_to_text(resolver, value, expected):
    assert resolver.to_text(value) == expected


def test_module_level_resolve():
    config = mapping_config(FieldMapping("name", MappingSource.PART, "name"))

    assert resolve(config, part={"name": "Basement"}, diagnostics=CollectingDiagnosticsSink()) == {"name": "Basement"}
