from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

from .geometry import BASE_PX_PER_SEC, TRACK_GAP, TRACK_HEIGHT, px_to_time, track_index_from_dy
from .model import MIN_CLIP_SEC, Clip


ACTION_MOVE = "move"
ACTION_TRIM_START = "trim-start"
ACTION_TRIM_END = "trim-end"

GESTURE_ACTIONS: Tuple[str, ...] = (ACTION_MOVE, ACTION_TRIM_START, ACTION_TRIM_END)


def normalize_action(action: str) -> str:
    a = str(action or "").strip().lower().replace("_", "-")
    if a not in GESTURE_ACTIONS:
        raise ValueError(f"unknown gesture action: {action!r}")
    return a


@dataclass(frozen=True)
class Gesture:
    """
    One pointer drag on a clip.

    Holds only what was true when the drag began: the action, the clip as it
    was, and the pointer position. Every sample is resolved against this
    anchor, so deltas are absolute and never accumulate.
    """

    action: str
    origin: Clip
    anchor_x: float
    anchor_y: float = 0.0


def begin_gesture(action: str, clip: Clip, x: float, y: float = 0.0) -> Gesture:
    return Gesture(action=normalize_action(action), origin=clip, anchor_x=float(x), anchor_y=float(y))


def move_clip(origin: Clip, dt: float, track_index: int) -> Clip:
    return replace(
        origin,
        start_time=max(0.0, origin.start_time + float(dt)),
        track_index=max(0, int(track_index)),
    )


def trim_clip_start(origin: Clip, dt: float, min_sec: float = MIN_CLIP_SEC) -> Clip:
    """
    Move the in-point by `dt` seconds while the timeline out-point stays put.

    The clip's timeline position shifts by the same amount the in-point
    moves, so the in-point cannot go earlier than what keeps start_time >= 0.
    """
    lo = max(0.0, origin.trim_start - origin.start_time)
    hi = origin.trim_end - float(min_sec)
    new_trim_start = max(lo, min(hi, origin.trim_start + float(dt)))
    shift = new_trim_start - origin.trim_start
    return replace(
        origin,
        trim_start=new_trim_start,
        start_time=max(0.0, origin.start_time + shift),
    )


def trim_clip_end(origin: Clip, dt: float, min_sec: float = MIN_CLIP_SEC) -> Clip:
    new_trim_end = max(origin.trim_start + float(min_sec), min(origin.source_duration, origin.trim_end + float(dt)))
    return replace(origin, trim_end=new_trim_end)


def step_gesture(
    gesture: Gesture,
    x: float,
    y: float,
    zoom: float,
    base_px_per_sec: float = BASE_PX_PER_SEC,
    track_height: float = TRACK_HEIGHT,
    track_gap: float = TRACK_GAP,
    min_sec: float = MIN_CLIP_SEC,
) -> Clip:
    """
    Resolve one pointer sample into a complete, valid clip record.

    `x`/`y` are the current pointer position in the same coordinate space as
    the gesture anchor.
    """
    dx = float(x) - gesture.anchor_x
    dy = float(y) - gesture.anchor_y
    dt = px_to_time(dx, zoom, base_px_per_sec)
    origin = gesture.origin

    if gesture.action == ACTION_MOVE:
        track = track_index_from_dy(origin.track_index, dy, track_height, track_gap)
        return move_clip(origin, dt, track)
    if gesture.action == ACTION_TRIM_START:
        return trim_clip_start(origin, dt, min_sec=min_sec)
    return trim_clip_end(origin, dt, min_sec=min_sec)
