from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .model import MIN_CLIP_SEC, Clip, new_id, normalize_clip


def find_clip(clips: Sequence[Clip], clip_id: str) -> Optional[Clip]:
    for c in clips:
        if c.id == clip_id:
            return c
    return None


def track_end_sec(clips: Sequence[Clip], track_index: int) -> float:
    """Out-point of the last clip on a track (0 for an empty track)."""
    end = 0.0
    for c in clips:
        if c.track_index == track_index:
            end = max(end, c.end_time)
    return end


def add_clip_end(
    clips: Sequence[Clip],
    src: str,
    duration: float,
    name: str = "",
    track_index: int = 0,
    min_sec: float = MIN_CLIP_SEC,
) -> List[Clip]:
    """Append a full-length clip after the last clip of `track_index`."""
    track = max(0, int(track_index))
    c = Clip(
        id=new_id(),
        src=str(src),
        name=str(name or "").strip() or "New Clip",
        source_duration=float(duration),
        start_time=track_end_sec(clips, track),
        trim_start=0.0,
        trim_end=float(duration),
        track_index=track,
    )
    return [*clips, normalize_clip(c, min_sec=min_sec)]


def replace_clip(clips: Sequence[Clip], updated: Clip) -> List[Clip]:
    """Swap in a whole record by id, keeping insertion order. Unknown ids leave the list as is."""
    return [updated if c.id == updated.id else c for c in clips]


def remove_clip(clips: Sequence[Clip], clip_id: str) -> Tuple[List[Clip], str]:
    out = [c for c in clips if c.id != clip_id]
    if len(out) == len(clips):
        return list(clips), "Remove failed: clip not found"
    return out, "Removed"


def total_duration(clips: Sequence[Clip], floor: float = 0.0) -> float:
    """Timeline length: the furthest placed out-point, never below `floor`."""
    total = max(0.0, float(floor))
    for c in clips:
        total = max(total, c.end_time)
    return total


def track_count(clips: Sequence[Clip]) -> int:
    """Rows to display: highest used track plus one spare row for drops."""
    if not clips:
        return 2
    return max(c.track_index for c in clips) + 2


def clips_at(clips: Sequence[Clip], t: float) -> List[Clip]:
    return [c for c in clips if c.contains(float(t))]


def _top_most(candidates: Sequence[Clip]) -> Optional[Clip]:
    # Highest track wins; on the same track the later-inserted clip wins.
    best: Optional[Clip] = None
    for c in candidates:
        if best is None or c.track_index >= best.track_index:
            best = c
    return best


def active_clip(clips: Sequence[Clip], t: float) -> Optional[Clip]:
    """The clip that should be playing at global time `t`, or None when idle."""
    return _top_most(clips_at(clips, t))


def clip_ending_at(clips: Sequence[Clip], t: float, tolerance: float = 1e-6) -> Optional[Clip]:
    """Top-most clip whose placed interval ends at `t` (its out-point is excluded from `active_clip`)."""
    return _top_most([c for c in clips if abs(c.end_time - float(t)) <= tolerance])
