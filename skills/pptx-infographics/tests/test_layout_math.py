from __future__ import annotations

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from pptxviz.colors import blend_over_white, golden_color, golden_palette, pick_text_color_for_background  # noqa: E402
from pptxviz.geometry import (  # noqa: E402
    Region,
    contain_box,
    cover_crop,
    funnel_shade_ratio,
    funnel_widths,
    gantt_cadence,
    gantt_grid_lines,
    nice_step,
    nice_ticks,
    pyramid_bands,
    pyramid_layer_count,
    roadmap_tiling,
    waterfall_series,
)
from pptxviz.payloads import parse_waterfall  # noqa: E402
from pptxviz.textmetrics import (  # noqa: E402
    compute_label_column_width,
    effective_text_length,
    parse_numeric,
)


def test_waterfall_cumulative_points() -> None:
    payload = parse_waterfall(
        {"items": [{"label": "A", "delta": 10}, {"label": "B", "delta": -3}, {"label": "C", "delta": 13}]}
    )
    cumulative, bars = waterfall_series(payload.items)
    assert cumulative == [0, 10, 7, 20]
    assert [b.delta for b in bars] == [10, -3, 13]
    assert bars[1].base == 10


def test_waterfall_total_bar_stands_on_zero() -> None:
    payload = parse_waterfall(
        {"items": [{"label": "A", "delta": 10}, {"label": "B", "delta": 5}, {"label": "Sum", "isTotal": True, "total": 15}]}
    )
    cumulative, bars = waterfall_series(payload.items)
    assert cumulative[-1] == 15
    assert bars[-1].is_total
    assert bars[-1].base == 0.0


def test_funnel_widths_are_proportional_and_bounded() -> None:
    widths = funnel_widths([100, 40], 5.0)
    assert widths[0] == pytest.approx(5.0)
    assert widths[1] == pytest.approx(5.0 * 40 / 100)
    for w in funnel_widths([0, -5, 250, 3], 4.0):
        assert 0 <= w <= 4.0


def test_funnel_widths_with_all_zero_values() -> None:
    widths = funnel_widths([0, 0], 3.0)
    assert all(0 <= w <= 3.0 for w in widths)


@pytest.mark.parametrize(
    "raw, expected",
    [(0.3, 0.5), (1.0, 1.0), (1.4, 2.0), (3.0, 5.0), (7.0, 10.0), (16.6, 20.0), (0.0, 1.0)],
)
def test_nice_step_snaps_to_1_2_5_10(raw: float, expected: float) -> None:
    assert nice_step(raw) == pytest.approx(expected)


def test_nice_ticks_bracket_the_range() -> None:
    step, ticks = nice_ticks(0, 83, 5)
    assert step in (1, 2, 5, 10, 20, 50, 100)
    assert ticks[0] <= 0
    assert ticks[-1] >= 83
    gaps = {round(b - a, 6) for a, b in zip(ticks, ticks[1:])}
    assert gaps == {round(step, 6)}


def test_effective_length_weights_full_width_characters() -> None:
    assert effective_text_length("ab") == 1.0
    assert effective_text_length("売上") == 2.0


def test_label_column_width_stays_in_bounds_for_arbitrary_unicode() -> None:
    rng = random.Random(7)
    alphabet = "abcXYZ 0123 éü売上高東京データ🙂"
    for _ in range(200):
        labels = ["".join(rng.choice(alphabet) for _ in range(rng.randint(0, 40))) for _ in range(rng.randint(0, 6))]
        container_w = rng.uniform(0.5, 12.0)
        min_in = rng.uniform(0.1, 0.6)
        max_ratio = rng.uniform(0.1, 0.5)
        width = compute_label_column_width(labels, rng.uniform(8, 24), container_w, max_ratio=max_ratio, min_in=min_in)
        assert min_in <= width <= max(min_in, container_w * max_ratio) + 1e-9


def test_label_column_width_grows_with_label_length() -> None:
    short = compute_label_column_width(["A"], 12, 10.0, max_ratio=0.5)
    long = compute_label_column_width(["A much longer label"], 12, 10.0, max_ratio=0.5)
    assert long > short


def test_parse_numeric_is_lenient() -> None:
    assert parse_numeric("1,200 pts") == 1200.0
    assert parse_numeric("n/a") == 0.0
    assert parse_numeric(None) == 0.0
    assert parse_numeric(float("nan")) == 0.0


def test_blend_over_white_extremes() -> None:
    assert blend_over_white("000000", 0) == "FFFFFF"
    assert blend_over_white("000000", 100) == "000000"
    assert blend_over_white("000000", 50) == "808080"


def test_contrast_text_color() -> None:
    assert pick_text_color_for_background("FFFFFF") == "000000"
    assert pick_text_color_for_background("111827") == "FFFFFF"


def test_golden_color_is_deterministic() -> None:
    assert golden_color(3) == golden_color(3)
    assert golden_color(0) != golden_color(1)


def test_pyramid_layer_count() -> None:
    assert pyramid_layer_count(5, 3) == 3
    assert pyramid_layer_count(5, 0) == 5
    assert pyramid_layer_count(4, 9) == 4
    assert pyramid_layer_count(0, 0) == 1


def test_pyramid_band_widths_increase_downwards() -> None:
    tri_x, side, height, bands = pyramid_bands(Region(0, 0, 6, 4), 4)
    assert len(bands) == 4
    assert len(bands[0].points) == 3
    assert all(len(b.points) == 4 for b in bands[1:])
    bottoms = [b.bottom_width for b in bands]
    assert bottoms == sorted(bottoms)
    assert bands[-1].bottom_width == pytest.approx(side)
    for upper, lower in zip(bands, bands[1:]):
        assert lower.top_width == pytest.approx(upper.bottom_width)
        assert lower.y_top == pytest.approx(upper.y_bottom)
    assert 0 <= tri_x and tri_x + side <= 6 + 1e-9
    assert height <= 4 + 1e-9


def test_pyramid_band_local_points_are_relative() -> None:
    _, _, _, bands = pyramid_bands(Region(1, 1, 4, 4), 2)
    x, y, w, h, points = bands[1].local()
    assert min(p[0] for p in points) == pytest.approx(0)
    assert min(p[1] for p in points) == pytest.approx(0)
    assert max(p[0] for p in points) == pytest.approx(w)
    assert (x, y) != (0, 0)


def test_roadmap_tiling_overlaps_neighbours() -> None:
    seg_w, step = roadmap_tiling(9.0, 4)
    assert step < seg_w
    assert 3 * step + seg_w <= 9.0 + 0.01


def test_gantt_grid_lines_cover_the_span() -> None:
    start, end = datetime(2024, 1, 3), datetime(2024, 4, 20)
    lines = gantt_grid_lines(start, end)
    assert lines
    assert all(start <= line <= end for line in lines)
    assert lines == sorted(lines)


def test_contain_box_keeps_aspect_and_top_aligns() -> None:
    box = contain_box(1200, 1200, Region(1, 1, 6, 3), top=True)
    assert (box.x, box.y, box.w, box.h) == pytest.approx((2.5, 1, 3, 3))


def test_cover_crop_trims_the_long_side() -> None:
    left, right, top, bottom = cover_crop(2000, 1000, 4, 4)
    assert left == pytest.approx(0.25)
    assert right == pytest.approx(0.25)
    assert top == bottom == 0


def test_golden_color_steps_from_the_fixed_seed() -> None:
    assert golden_color(0) == "9224F2"
    assert golden_color(1) == "24F255"
    assert golden_palette(2) == ["9224F2", "24F255"]


def test_funnel_shade_ratio_eases_from_top_to_bottom() -> None:
    kwargs = dict(min_ratio=0.3, max_ratio=1.0, gamma=2.0)
    assert funnel_shade_ratio(0, 4, **kwargs) == pytest.approx(1.0)
    assert funnel_shade_ratio(3, 4, **kwargs) == pytest.approx(0.3)
    assert funnel_shade_ratio(1, 3, **kwargs) == pytest.approx(0.3 + 0.7 * 0.25)
    assert funnel_shade_ratio(0, 1, **kwargs) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "span, expected",
    [
        (timedelta(days=60), "month"),
        (timedelta(days=59, hours=23), "week"),
        (timedelta(days=14), "week"),
        (timedelta(days=13, hours=23), "day"),
        (timedelta(days=2), "day"),
        (timedelta(days=1, hours=23), "hour"),
    ],
)
def test_gantt_cadence_breakpoints(span: timedelta, expected: str) -> None:
    assert gantt_cadence(span) == expected


def test_gantt_week_lines_fall_on_mondays() -> None:
    lines = gantt_grid_lines(datetime(2024, 1, 3), datetime(2024, 1, 31))
    assert lines == [datetime(2024, 1, 3)] + [datetime(2024, 1, d) for d in (8, 15, 22, 29)]


def test_gantt_day_and_hour_lines() -> None:
    days = gantt_grid_lines(datetime(2024, 1, 1, 12), datetime(2024, 1, 4))
    assert days == [datetime(2024, 1, 1, 12), datetime(2024, 1, 2), datetime(2024, 1, 3), datetime(2024, 1, 4)]
    hours = gantt_grid_lines(datetime(2024, 1, 1, 9, 30), datetime(2024, 1, 1, 12))
    assert hours == [datetime(2024, 1, 1, 9, 30)] + [datetime(2024, 1, 1, h) for h in (10, 11, 12)]


def test_gantt_month_lines_stop_at_the_last_representable_year() -> None:
    lines = gantt_grid_lines(datetime(9999, 11, 1), datetime(9999, 12, 31))
    assert lines == [datetime(9999, 11, 1), datetime(9999, 12, 1)]
