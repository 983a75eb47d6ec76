"""
Time <-> pixel conversions for the timeline canvas.

Everything here is a pure function of its arguments; callers pass the
current zoom and layout constants (see `clipline.config.EditorSettings`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .model import Clip


BASE_PX_PER_SEC = 50.0
MIN_ZOOM = 0.05
MAX_ZOOM = 5.0
ZOOM_STEP = 1.5
TRACK_HEIGHT = 48.0
TRACK_GAP = 4.0
MIN_TIMELINE_WIDTH_PX = 2000.0

# Ruler: candidate major intervals (seconds), largest first.
RULER_INTERVALS_SEC: Tuple[int, ...] = (60, 30, 10, 5, 2, 1)
MIN_MAJOR_SPACING_PX = 80.0
MINOR_DIVISIONS = 5


def clamp_zoom(zoom: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    try:
        z = float(zoom)
    except Exception:
        z = min_zoom
    if not math.isfinite(z) or z <= 0:
        z = min_zoom
    return max(float(min_zoom), min(float(max_zoom), z))


def zoom_in(zoom: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    return clamp_zoom(float(zoom) * ZOOM_STEP, min_zoom, max_zoom)


def zoom_out(zoom: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    return clamp_zoom(float(zoom) / ZOOM_STEP, min_zoom, max_zoom)


def px_per_sec(zoom: float, base_px_per_sec: float = BASE_PX_PER_SEC) -> float:
    try:
        z = float(zoom)
    except Exception:
        z = MIN_ZOOM
    # Zero or negative zoom would make px_to_time divide by zero.
    if not math.isfinite(z) or z <= 0:
        z = MIN_ZOOM
    return float(base_px_per_sec) * z


def time_to_px(sec: float, zoom: float, base_px_per_sec: float = BASE_PX_PER_SEC) -> float:
    return float(sec) * px_per_sec(zoom, base_px_per_sec)


def px_to_time(px: float, zoom: float, base_px_per_sec: float = BASE_PX_PER_SEC) -> float:
    """Inverse of `time_to_px`. Not clamped; the caller clamps to [0, duration]."""
    return float(px) / px_per_sec(zoom, base_px_per_sec)


def round_half_up(x: float) -> int:
    return int(math.floor(float(x) + 0.5))


def track_delta_from_dy(dy: float, track_height: float = TRACK_HEIGHT, track_gap: float = TRACK_GAP) -> int:
    """Whole number of track rows covered by a vertical drag offset."""
    row = float(track_height) + float(track_gap)
    if row <= 0:
        return 0
    return round_half_up(float(dy) / row)


def track_index_from_dy(
    origin_index: int,
    dy: float,
    track_height: float = TRACK_HEIGHT,
    track_gap: float = TRACK_GAP,
) -> int:
    return max(0, int(origin_index) + track_delta_from_dy(dy, track_height, track_gap))


def track_top_px(track_index: int, track_height: float = TRACK_HEIGHT, track_gap: float = TRACK_GAP) -> float:
    return int(track_index) * (float(track_height) + float(track_gap)) + float(track_gap) / 2


def timeline_width_px(duration: float, zoom: float, base_px_per_sec: float = BASE_PX_PER_SEC) -> float:
    return max(time_to_px(duration, zoom, base_px_per_sec), MIN_TIMELINE_WIDTH_PX)


def timeline_height_px(track_count: int, track_height: float = TRACK_HEIGHT, track_gap: float = TRACK_GAP) -> float:
    return max(0, int(track_count)) * (float(track_height) + float(track_gap))


@dataclass(frozen=True)
class ClipRect:
    left: float
    top: float
    width: float
    height: float


def clip_rect(
    clip: Clip,
    zoom: float,
    base_px_per_sec: float = BASE_PX_PER_SEC,
    track_height: float = TRACK_HEIGHT,
    track_gap: float = TRACK_GAP,
) -> ClipRect:
    return ClipRect(
        left=time_to_px(clip.start_time, zoom, base_px_per_sec),
        top=track_top_px(clip.track_index, track_height, track_gap),
        width=time_to_px(clip.dur, zoom, base_px_per_sec),
        height=float(track_height),
    )


def ruler_intervals(
    pixels_per_sec: float,
    candidates: Sequence[int] = RULER_INTERVALS_SEC,
    min_spacing_px: float = MIN_MAJOR_SPACING_PX,
) -> Tuple[float, float]:
    """
    Pick (major, minor) gridline intervals in seconds.

    The major interval is the smallest candidate whose on-screen spacing
    exceeds `min_spacing_px`; if none does, the largest candidate is used.
    Minor gridlines split the major interval into `MINOR_DIVISIONS` parts.
    """
    ordered = sorted((float(c) for c in candidates), reverse=True)
    major = ordered[0]
    for c in ordered:
        if float(pixels_per_sec) * c > float(min_spacing_px):
            major = c
    return major, major / MINOR_DIVISIONS


def format_ruler_label(sec: float) -> str:
    total = int(round(max(0.0, float(sec))))
    m, s = divmod(total, 60)
    return f"{m}:{s:02d}"


@dataclass(frozen=True)
class RulerTick:
    sec: float
    px: float
    major: bool
    label: str = ""


def ruler_ticks(
    duration: float,
    zoom: float,
    base_px_per_sec: float = BASE_PX_PER_SEC,
) -> List[RulerTick]:
    """Minor/major tick marks from 0 up to the first minor tick at or past `duration`."""
    pps = px_per_sec(zoom, base_px_per_sec)
    major, minor = ruler_intervals(pps)
    count = int(math.ceil(max(0.0, float(duration)) / minor - 1e-9))
    out: List[RulerTick] = []
    for i in range(count + 1):
        sec = i * minor
        is_major = i % MINOR_DIVISIONS == 0
        out.append(
            RulerTick(
                sec=sec,
                px=sec * pps,
                major=is_major,
                label=format_ruler_label(sec) if is_major else "",
            )
        )
    return out
