"""Tests for the zoom/pan viewport."""

from __future__ import annotations

import math

import pytest

from backend.app.ui import ViewportController, ZoomTransform
from backend.app.ui.viewport import IDENTITY, ViewportTransition


def test_zoom_is_clamped_to_extent() -> None:
    viewport = ViewportController((0.1, 8))

    assert viewport.apply_zoom_delta(ZoomTransform(x=5, y=6, k=20)).k == 8
    assert viewport.apply_zoom_delta(ZoomTransform(k=0.01)).k == 0.1
    assert viewport.transform.x == 0


@pytest.mark.parametrize(
    "transform",
    [ZoomTransform(k=math.nan), ZoomTransform(x=math.inf, k=2), ZoomTransform(y=-math.inf), ZoomTransform(x=math.nan, y=1)],
)
def test_non_finite_zoom_keeps_current_transform(transform: ZoomTransform) -> None:
    viewport = ViewportController((0.1, 8))
    current = viewport.apply_zoom_delta(ZoomTransform(x=12, y=-4, k=2))

    assert viewport.apply_zoom_delta(transform) == current
    assert viewport.transform == current


def test_scale_by_keeps_anchor_fixed() -> None:
    viewport = ViewportController((0.1, 8))
    viewport.apply_zoom_delta(ZoomTransform(x=10, y=20, k=2))
    anchor = (100.0, 50.0)
    before = viewport.transform.invert(anchor)

    viewport.scale_by(1.5, anchor)

    assert viewport.transform.k == pytest.approx(3)
    assert viewport.transform.invert(anchor) == pytest.approx(before)


def test_recenter_animates_back_to_identity() -> None:
    viewport = ViewportController((0.1, 8), recenter_duration=0.75)
    viewport.apply_zoom_delta(ZoomTransform(x=100, y=-40, k=4))

    viewport.reset_to_identity()
    assert viewport.is_animating

    halfway = viewport.advance(0.375)
    assert 1 < halfway.k < 4
    assert 0 < halfway.x < 100

    final = viewport.advance(0.5)
    assert final == IDENTITY
    assert final.is_identity
    assert viewport.is_animating is False


def test_recenter_without_duration_jumps() -> None:
    viewport = ViewportController((0.1, 8))
    viewport.apply_zoom_delta(ZoomTransform(x=3, y=4, k=2))

    viewport.reset_to_identity(0)

    assert viewport.transform == IDENTITY
    assert viewport.is_animating is False


def test_gesture_interrupts_recenter() -> None:
    viewport = ViewportController((0.1, 8))
    viewport.apply_zoom_delta(ZoomTransform(k=2))
    viewport.reset_to_identity()

    viewport.apply_zoom_delta(ZoomTransform(x=1, y=1, k=3))

    assert viewport.is_animating is False
    assert viewport.advance(1.0) == ZoomTransform(x=1, y=1, k=3)


def test_finish_jumps_to_end() -> None:
    viewport = ViewportController((0.1, 8))
    viewport.apply_zoom_delta(ZoomTransform(k=5))
    viewport.reset_to_identity()

    assert viewport.finish() == IDENTITY


def test_transition_endpoints() -> None:
    transition = ViewportTransition(start=ZoomTransform(x=10, k=2), end=IDENTITY, duration=1.0)

    start = transition.at(0)
    assert (start.x, start.y, start.k) == pytest.approx((10, 0, 2))
    assert transition.at(1.0) == IDENTITY


def test_transform_apply_and_svg() -> None:
    transform = ZoomTransform(x=10, y=20, k=2)

    assert transform.apply((1, 2)) == (12, 24)
    assert transform.invert((12, 24)) == (1, 2)
    assert transform.to_svg() == "translate(10,20) scale(2)"
