"""
Unit Tests - Identity Resolution
"""
from portal_analytics.analytics.identity import (
    LINE_ITEM_KEY_STRATEGIES,
    candidate_keys,
    resolve,
)
from portal_analytics.analytics.records import LineItem


class TestResolve:
    """Tests for building the identity index"""

    def test_registers_primary_and_secondary_keys(self, make_entry):
        """Both identifier forms resolve to the same entry"""
        entry = make_entry(primary_key="SKU-1", secondary_key="obj-1")
        index = resolve([entry])

        assert index.keys == frozenset({"SKU-1", "obj-1"})
        assert index.lookup["SKU-1"] is entry
        assert index.lookup["obj-1"] is entry

    def test_entry_without_primary_key_registers_secondary(self, make_entry):
        entry = make_entry(primary_key=None, secondary_key="obj-7")
        index = resolve([entry])

        assert index.keys == frozenset({"obj-7"})
        assert entry.identity == "obj-7"

    def test_blank_keys_ignored(self, make_entry):
        index = resolve([make_entry(primary_key="  ", secondary_key="obj-1")])

        assert "" not in index
        assert "obj-1" in index
        assert len(index) == 1

    def test_first_entry_keeps_colliding_key(self, make_entry):
        first = make_entry(primary_key="SKU-1", secondary_key="obj-1", name="First")
        second = make_entry(primary_key="SKU-1", secondary_key="obj-2", name="Second")
        index = resolve([first, second])

        assert index.lookup["SKU-1"].name == "First"
        assert index.lookup["obj-2"].name == "Second"

    def test_empty_catalog(self):
        index = resolve([])

        assert len(index) == 0
        assert index.match(LineItem(product_id="SKU-1")) is None


class TestMatch:
    """Tests for line item matching precedence"""

    def test_strategy_order(self):
        assert [s.field_name for s in LINE_ITEM_KEY_STRATEGIES] == [
            "product_id", "custom_id", "pid", "sku",
        ]

    def test_candidate_keys_in_precedence_order(self):
        item = LineItem(product_id="a", custom_id=None, pid=" ", sku="d")

        assert list(candidate_keys(item)) == ["a", "d"]

    def test_matches_legacy_sku(self, make_entry):
        index = resolve([make_entry()])
        match = index.match(LineItem(sku="SKU-1"))

        assert match is not None
        assert match.key == "SKU-1"

    def test_falls_through_unknown_identifiers(self, make_entry):
        """An unknown product_id does not hide a known custom_id"""
        index = resolve([make_entry()])
        match = index.match(LineItem(product_id="other-seller", custom_id="obj-1"))

        assert match is not None
        assert match.key == "obj-1"

    def test_product_key_is_canonical_identity(self, make_entry):
        """Lines referencing either key group under one product"""
        index = resolve([make_entry(primary_key="SKU-1", secondary_key="obj-1")])

        by_sku = index.match(LineItem(sku="SKU-1"))
        by_object = index.match(LineItem(product_id="obj-1"))

        assert by_sku.product_key == by_object.product_key == "SKU-1"

    def test_unmatched_item(self, make_entry):
        index = resolve([make_entry()])

        assert index.match(LineItem(product_id="nope", sku="nada")) is None

    def test_references(self, make_entry, make_order):
        index = resolve([make_entry()])

        assert index.references(make_order(LineItem(sku="x"), LineItem(pid="SKU-1")))
        assert not index.references(make_order(LineItem(sku="x")))
        assert not index.references(make_order())
