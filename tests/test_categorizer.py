"""
Tests for the Categorizer: naming, tag resolution and amount thresholds.
"""
from datetime import date
from decimal import Decimal

import pytest

from categorizer.rules import compile_rules
from categorizer.service import Categorizer
from config.loader import load_config
from txn_core.errors import ConfigError
from conftest import make_txn


class TestCategorize:
    def test_jets_pizza(self, taxonomy_dir):
        svc = Categorizer(taxonomy_dir)
        name, tags = svc.categorize("JETS PIZZA IL 017 248-980-6386")
        assert name == "Jet's Pizza"
        assert tags == {"food", "delivery", "fast-food"}

    def test_unanchored_match(self, taxonomy_dir):
        name, _ = Categorizer(taxonomy_dir).categorize("POS 4411 UBER TRIP HELP.UBER.COM")
        assert name == "Uber"

    def test_no_match_keeps_description(self, taxonomy_dir):
        name, tags = Categorizer(taxonomy_dir).categorize("Mystery Merchant 42")
        assert name == "Mystery Merchant 42"
        assert tags == set()

    def test_none_description(self, taxonomy_dir):
        name, tags = Categorizer(taxonomy_dir).categorize(None)
        assert name == ""
        assert tags == set()

    def test_earlier_rule_wins(self):
        store = compile_rules(
            [
                {"tags": ["a"], "data": [{"name": "First", "match": "shop"}]},
                {"tags": ["b"], "data": [{"name": "Second", "match": "coffee shop"}]},
            ]
        )
        name, tags = Categorizer(store=store).categorize("COFFEE SHOP")
        assert (name, tags) == ("First", {"a"})

    def test_tags_subset_of_store(self, taxonomy_dir, sample_txns):
        svc = Categorizer(taxonomy_dir)
        known = svc.store.all_tags()
        for t in sample_txns:
            name, tags = svc.categorize(t.description)
            assert name
            assert tags <= known

    def test_returned_tags_are_a_copy(self, taxonomy_dir):
        svc = Categorizer(taxonomy_dir)
        _, tags = svc.categorize("starbucks")
        tags.add("mine")
        assert "mine" not in svc.categorize("starbucks")[1]

    def test_rule_count(self, taxonomy_dir):
        assert Categorizer(taxonomy_dir).rule_count == 4

    def test_bad_taxonomy_is_fatal(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("tags: []\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            Categorizer(tmp_path)

    def test_needs_a_source(self):
        with pytest.raises(TypeError):
            Categorizer()


class TestCategorizeTransactions:
    def test_thresholds(self, taxonomy_dir):
        txns = [make_txn(amount="-0.50"), make_txn(amount="-1500.00"), make_txn(amount="50.00")]
        Categorizer(taxonomy_dir).categorize_transactions(txns, macro=True, micro=True)
        assert txns[0].tags == {"micro"}
        assert txns[1].tags == {"macro"}
        assert txns[2].tags == set()

    def test_bounds_inclusive(self, taxonomy_dir):
        txns = [
            make_txn(amount="1.00"),
            make_txn(amount="-1000.00"),
            make_txn(amount="1.01"),
            make_txn(amount="999.99"),
        ]
        Categorizer(taxonomy_dir).categorize_transactions(txns)
        assert [t.tags for t in txns] == [{"micro"}, {"macro"}, set(), set()]

    def test_thresholds_can_be_disabled(self, taxonomy_dir):
        txns = [make_txn(amount="-0.50"), make_txn(amount="-1500.00")]
        Categorizer(taxonomy_dir).categorize_transactions(txns, macro=False, micro=False)
        assert all(not t.tags for t in txns)

    def test_in_place_and_additive(self, taxonomy_dir):
        txn = make_txn("STARBUCKS #1", amount="-5.25", tags={"reimbursable"})
        txns = [txn]
        out = Categorizer(taxonomy_dir).categorize_transactions(txns)
        assert out is txns
        assert txn.name == "Starbucks"
        assert txn.tags == {"reimbursable", "food", "coffee"}

    def test_unmatched_gets_description_as_name(self, taxonomy_dir):
        txn = make_txn("CHECK 1042", amount="-75.00")
        Categorizer(taxonomy_dir).categorize_transactions([txn])
        assert txn.name == "CHECK 1042"
        assert txn.tags == set()

    def test_accepts_iterators(self, taxonomy_dir):
        gen = (make_txn("UBER", amount="-12.00") for _ in range(2))
        out = Categorizer(taxonomy_dir).categorize_transactions(gen)
        assert [t.name for t in out] == ["Uber", "Uber"]

    def test_custom_limits(self, taxonomy_dir):
        svc = Categorizer(taxonomy_dir, micro_limit=Decimal("5"), macro_limit=Decimal("100"))
        txns = [make_txn(amount="-4.99"), make_txn(amount="100")]
        svc.categorize_transactions(txns)
        assert txns[0].tags == {"micro"}
        assert txns[1].tags == {"macro"}


def test_from_config(tmp_path, taxonomy_dir):
    cfg_path = tmp_path / "config.toml"
    cfg_path.write_text(
        '[taxonomy]\ndir = "taxonomy"\n\n[thresholds]\nmicro = "2.00"\n',
        encoding="utf-8",
    )
    svc = Categorizer.from_config(load_config(cfg_path))
    assert svc.rule_count == 4
    assert svc.micro_limit == Decimal("2.00")
    assert svc.macro_limit == Decimal("1000.00")

    txn = make_txn("JET'S PIZZA", amount="-1.50", post_date=date(2021, 5, 1))
    svc.categorize_transactions([txn])
    assert txn.tags == {"food", "delivery", "fast-food", "micro"}


def test_from_config_bad_threshold(tmp_path, taxonomy_dir):
    cfg_path = tmp_path / "config.toml"
    cfg_path.write_text(
        '[taxonomy]\ndir = "taxonomy"\n\n[thresholds]\nmacro = "lots"\n',
        encoding="utf-8",
    )
    with pytest.raises(ConfigError) as exc:
        Categorizer.from_config(load_config(cfg_path))
    assert "thresholds" in str(exc.value)


def test_batch_goes_through_categorize(taxonomy_dir):
    class Shouty(Categorizer):
        def categorize(self, description):
            name, tags = super().categorize(description)
            return name.upper(), tags | {"seen"}

    txn = make_txn("STARBUCKS #9", amount="-3.00")
    Shouty(taxonomy_dir).categorize_transactions([txn])
    assert txn.name == "STARBUCKS"
    assert txn.tags == {"food", "coffee", "seen"}
