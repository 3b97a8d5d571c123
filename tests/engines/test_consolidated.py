"""
Tests for consolidated (group, package, single-service) curves.

Covers:
- Two-service reference scenario from raw documents
- End-to-end package scenario (planned 50, realized 20, delta -30)
- Raw curves are never smoothed; the display copy is
- Package curves weighted over subpackage hours
- Union-of-days chart merge
"""

from decimal import Decimal

from progress_engines.consolidated import (
    build_curves,
    build_package_curves,
    merge_series,
    monotonic_clamp,
    service_curves,
)
from progress_engines.indicators import indicators
from progress_kernel.domain.records import CurvePoint, Package, Subpackage
from progress_kernel.domain.values import round_percent
from tests.conftest import day, make_event, make_service

UTC_ZONE = "UTC"


def _raw_services():
    return [
        {
            "id": "A",
            "horas": 10,
            "dataInicio": "2024-01-01",
            "dataFim": "2024-01-05",
            "updates": [
                {"date": "2024-01-02", "percent": 20},
                {"date": "2024-01-04", "percent": 60},
            ],
        },
        {
            "id": "B",
            "horas": 5,
            "dataInicio": "2024-01-03",
            "dataFim": "2024-01-07",
            "updates": [{"date": "2024-01-05", "percent": 40}],
        },
    ]


def _at(points, target):
    return next(point.percent for point in points if point.day == target)


class TestReferenceScenario:
    """Two services with overlapping ranges and different hours."""

    def setup_method(self):
        self.curves = build_curves(_raw_services(), time_zone=UTC_ZONE)

    def test_timeline_spans_both_services(self):
        assert self.curves.timeline == tuple(day(i) for i in range(7))

    def test_planned_on_third_day(self):
        assert round_percent(_at(self.curves.planned_series, day(2))) == Decimal("33.33")

    def test_realized_on_fourth_day(self):
        assert round_percent(_at(self.curves.realized_series, day(3))) == Decimal("40.00")

    def test_indicators_on_fifth_day(self):
        summary = indicators(self.curves.planned_series, self.curves.realized_series, day(4))
        assert round_percent(summary.planned_to_date) == Decimal("83.33")
        assert round_percent(summary.realized) == Decimal("53.33")
        assert round_percent(summary.planned_to_date) - round_percent(summary.realized) == Decimal("30.00")

    def test_last_day_fully_planned(self):
        assert _at(self.curves.planned_series, day(6)) == Decimal("100")

    def test_one_point_per_day(self):
        assert len(self.curves.planned_series) == len(self.curves.timeline)
        assert len(self.curves.realized_series) == len(self.curves.timeline)


class TestEndToEndPackage:
    """Package with one subpackage of two services, sampled mid-range."""

    def setup_method(self):
        self.package = Package(
            name="PKG",
            subpackages=(
                Subpackage(
                    name="S1",
                    services=(
                        make_service("A", hours=40, start=day(0), end=day(10), events=[make_event(day(5), 50)]),
                        make_service("B", hours=60, start=day(0), end=day(10)),
                    ),
                ),
            ),
        )

    def test_indicators_mid_range(self):
        curves = build_package_curves(self.package).curves
        summary = indicators(curves.planned_series, curves.realized_series, day(5))
        assert summary.planned_to_date == Decimal("50")
        assert summary.realized == Decimal("20")
        assert summary.delta == Decimal("-30")

    def test_subpackage_curve_matches_single_subpackage_package(self):
        result = build_package_curves(self.package)
        assert result.subpackages[0].curves.realized_series == result.curves.realized_series
        assert result.subpackages[0].total_hours == Decimal("100")


class TestPackageWeighting:
    """Package value is weighted by each subpackage's total hours."""

    def test_weighted_over_subpackage_hours(self):
        package = Package(
            name="P",
            subpackages=(
                Subpackage("heavy", (make_service("a", hours=30, start=day(0), end=day(2), events=[make_event(day(0), 100)]),)),
                Subpackage("light", (make_service("b", hours=10, start=day(0), end=day(2)),)),
            ),
        )
        result = build_package_curves(package)
        assert _at(result.curves.realized_series, day(1)) == Decimal("75")
        assert result.timeline == (day(0), day(1), day(2))

    def test_subpackages_share_package_timeline(self):
        package = Package(
            name="P",
            subpackages=(
                Subpackage("early", (make_service("a", hours=1, start=day(0), end=day(1)),)),
                Subpackage("late", (make_service("b", hours=1, start=day(3), end=day(4)),)),
            ),
        )
        result = build_package_curves(package)
        for sub in result.subpackages:
            assert sub.curves.timeline == result.timeline

    def test_empty_package(self):
        result = build_package_curves(Package(name="empty"))
        assert result.curves.is_empty
        assert result.subpackages == ()

    def test_logs_package_curves_built(self, captured_logs):
        build_package_curves({"name": "P", "services": [{"id": "a", "hours": 1}]})
        records = [r for r in captured_logs() if r["message"] == "package_curves_built"]
        assert records[-1]["package_name"] == "P"


class TestZeroHoursServices:
    """Unweighted services never move the group curve."""

    def test_zero_hours_service_ignored(self):
        weighted = make_service("a", hours=10, start=day(0), end=day(4), events=[make_event(day(1), 50)])
        unweighted = make_service("b", hours=0, start=day(0), end=day(4), events=[make_event(day(1), 100)])
        with_zero = build_curves([weighted, unweighted])
        alone = build_curves([weighted])
        assert with_zero.realized_series == alone.realized_series
        assert with_zero.planned_series == alone.planned_series

    def test_no_weighted_services_gives_zero_curves(self):
        curves = build_curves([make_service("a", start=day(0), end=day(2), events=[make_event(day(0), 80)])])
        assert {p.percent for p in curves.realized_series} == {Decimal("0")}


class TestServiceCurves:
    """Single-service curves are not hours-weighted."""

    def test_unweighted_service_still_has_realized(self):
        service = make_service("a", start=day(0), end=day(2), events=[make_event(day(1), 40)])
        curves = service_curves(service)
        assert [p.percent for p in curves.realized_series] == [Decimal(0), Decimal(40), Decimal(40)]

    def test_service_without_range_is_empty(self):
        assert service_curves(make_service("a", hours=5)).is_empty


class TestDisplaySmoothing:
    """Raw curves keep corrections; the display copy is clamped."""

    def setup_method(self):
        service = make_service(
            "a",
            hours=10,
            start=day(0),
            end=day(3),
            events=[make_event(day(1), 60), make_event(day(2), 45)],
        )
        self.curves = build_curves([service])

    def test_raw_curve_keeps_correction(self):
        assert _at(self.curves.realized_series, day(2)) == Decimal("45")

    def test_display_curve_is_monotonic(self):
        display = self.curves.for_display()
        assert _at(display.realized_series, day(2)) == Decimal("60")
        assert _at(self.curves.realized_series, day(2)) == Decimal("45")

    def test_monotonic_clamp(self):
        points = [CurvePoint(day(0), Decimal(10)), CurvePoint(day(1), Decimal(5)), CurvePoint(day(2), Decimal(20))]
        assert [p.percent for p in monotonic_clamp(points)] == [Decimal(10), Decimal(10), Decimal(20)]


class TestMergeSeries:
    """Union-of-days chart data."""

    def test_union_and_running_max(self):
        planned = [CurvePoint(day(0), Decimal(0)), CurvePoint(day(2), Decimal(50))]
        realized = [CurvePoint(day(1), Decimal("33.333")), CurvePoint(day(2), Decimal(20))]
        merged = merge_series(planned, realized)
        assert merged.labels == (day(0), day(1), day(2))
        assert merged.planned == (Decimal("0.00"), Decimal("0.00"), Decimal("50.00"))
        assert merged.realized == (Decimal("0.00"), Decimal("33.33"), Decimal("33.33"))

    def test_empty(self):
        merged = merge_series([], [])
        assert merged.labels == ()
        assert merged.planned == ()
