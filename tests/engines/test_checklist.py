"""
Tests for the checklist weight map and weighted progress.
"""

from decimal import Decimal

from progress_engines.checklist import (
    WeightMap,
    build_weight_map,
    checklist_item_from_raw,
    checklist_percent,
    weighted_progress,
)
from progress_kernel.domain.records import ChecklistItem


class TestBuildWeightMap:
    """id -> weight map construction."""

    def test_weights_and_total(self):
        weights = build_weight_map([{"id": "a", "weight": 60}, {"id": "b", "peso": "40"}])
        assert weights.weights == {"a": Decimal("60"), "b": Decimal("40")}
        assert weights.total_weight == Decimal("100")

    def test_weights_are_clamped(self):
        weights = build_weight_map([{"id": "a", "weight": 250}, {"id": "b", "weight": -5}])
        assert weights.weights == {"a": Decimal("100"), "b": Decimal("0")}

    def test_items_without_id_skipped(self):
        weights = build_weight_map([{"weight": 50}, "junk", {"id": "a", "weight": 10}])
        assert list(weights.weights) == ["a"]

    def test_repeated_id_keeps_last_weight(self):
        weights = build_weight_map([{"id": "a", "weight": 10}, {"id": "a", "weight": 30}])
        assert weights.weights == {"a": Decimal("30")}
        assert weights.total_weight == Decimal("30")

    def test_accepts_checklist_items(self):
        item = ChecklistItem(item_id="x", weight=Decimal("20"), progress=Decimal("0"))
        assert build_weight_map([item]).weights == {"x": Decimal("20")}

    def test_empty(self):
        assert build_weight_map([]).is_empty


class TestWeightedProgress:
    """Weighted completion."""

    def test_weighted_mean(self):
        weights = WeightMap({"a": Decimal("75"), "b": Decimal("25")}, Decimal("100"))
        result = weighted_progress({"a": Decimal("100"), "b": Decimal("40")}, weights)
        assert result == Decimal("85")

    def test_missing_item_counts_as_zero(self):
        weights = WeightMap({"a": Decimal("50"), "b": Decimal("50")}, Decimal("100"))
        assert weighted_progress({"a": Decimal("100")}, weights) == Decimal("50")

    def test_weights_need_not_sum_to_hundred(self):
        weights = WeightMap({"a": Decimal("1"), "b": Decimal("3")}, Decimal("4"))
        assert weighted_progress({"a": Decimal("100"), "b": Decimal("0")}, weights) == Decimal("25")

    def test_zero_total_weight_falls_back_to_mean(self):
        weights = WeightMap({"a": Decimal("0"), "b": Decimal("0")}, Decimal("0"))
        result = weighted_progress({"a": Decimal("30"), "b": Decimal("50")}, weights)
        assert result == Decimal("40")

    def test_zero_total_weight_without_values(self):
        assert weighted_progress({}, WeightMap()) == Decimal("0")


class TestChecklistPercent:
    """Checklist-derived percentage of raw documents."""

    def test_raw_items(self):
        items = [
            {"id": "a", "weight": 70, "progress": 100},
            {"id": "b", "weight": 30, "pct": "50%"},
        ]
        assert checklist_percent(items) == Decimal("85")

    def test_unparseable_progress_counts_as_zero(self):
        item = checklist_item_from_raw({"id": "a", "weight": 10, "progress": "??"})
        assert item.progress == Decimal("0")

    def test_empty_checklist_is_zero(self):
        assert checklist_percent([]) == Decimal("0")

    def test_emits_engine_trace(self, captured_logs):
        checklist_percent([{"id": "a", "weight": 1, "progress": 1}])
        traces = [r for r in captured_logs() if r["message"] == "PROGRESS_ENGINE_TRACE"]
        assert traces[-1]["engine_name"] == "checklist"
        assert len(traces[-1]["input_fingerprint"]) == 16
