from __future__ import annotations

import math
from dataclasses import dataclass, asdict, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import uuid


MIN_CLIP_SEC = 0.1  # shortest placed duration a clip may have


def new_id() -> str:
    """Generate a stable unique id for UI/timeline operations."""
    return uuid.uuid4().hex


def _as_float(raw: Any, default: float) -> float:
    try:
        v = float(raw)
    except Exception:
        return float(default)
    if not math.isfinite(v):
        return float(default)
    return v


def _as_int(raw: Any, default: int) -> int:
    try:
        return int(raw)
    except Exception:
        return int(default)


def _pick(d: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    # First present key wins; accepts both snake_case and camelCase records.
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


@dataclass(frozen=True)
class Clip:
    """
    Placed, trimmed reference to a source media asset.

    Attributes:
        src: locator of the media asset (opaque to the core)
        source_duration: full length of the asset in seconds
        start_time: position on the global timeline (seconds)
        trim_start/trim_end: played sub-range within the source (seconds)
        track_index: row on the timeline, 0 = bottom-most/first track
    """

    id: str
    src: str
    name: str
    source_duration: float
    start_time: float = 0.0
    trim_start: float = 0.0
    trim_end: float = 0.0
    track_index: int = 0

    @property
    def dur(self) -> float:
        """Placed duration on the timeline."""
        return max(0.0, self.trim_end - self.trim_start)

    @property
    def end_time(self) -> float:
        return self.start_time + self.dur

    def contains(self, t: float) -> bool:
        # Half-open: the out-point belongs to whatever comes next.
        return self.start_time <= t < self.end_time

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any], min_sec: float = MIN_CLIP_SEC) -> "Clip":
        """Build a clip from loosely-typed input; values are clamped, never rejected."""
        src = str(_pick(d, "src", "url", default="") or "")
        name = str(d.get("name") or "").strip() or (Path(src).name if src else "Clip")
        source_duration = _as_float(_pick(d, "source_duration", "sourceDuration", "duration", default=0.0), 0.0)
        trim_end_raw = _pick(d, "trim_end", "trimEnd")
        clip = Clip(
            id=str(d.get("id") or new_id()),
            src=src,
            name=name,
            source_duration=source_duration,
            start_time=_as_float(_pick(d, "start_time", "startTime", default=0.0), 0.0),
            trim_start=_as_float(_pick(d, "trim_start", "trimStart", default=0.0), 0.0),
            trim_end=source_duration if trim_end_raw is None else _as_float(trim_end_raw, source_duration),
            track_index=_as_int(_pick(d, "track_index", "trackIndex", default=0), 0),
        )
        return normalize_clip(clip, min_sec=min_sec)


def normalize_clip(clip: Clip, min_sec: float = MIN_CLIP_SEC) -> Clip:
    """
    Clamp a clip into a valid state.

    Guarantees afterwards:
        0 <= trim_start, trim_start + min_sec <= trim_end <= source_duration,
        start_time >= 0, track_index >= 0.

    A source shorter than `min_sec` is stretched to `min_sec` so the trim
    range always has room.
    """
    eps = max(0.0, float(min_sec))
    source_duration = max(eps, _as_float(clip.source_duration, eps))
    trim_start = max(0.0, min(source_duration - eps, _as_float(clip.trim_start, 0.0)))
    trim_end = max(trim_start + eps, min(source_duration, _as_float(clip.trim_end, source_duration)))
    start_time = max(0.0, _as_float(clip.start_time, 0.0))
    track_index = max(0, _as_int(clip.track_index, 0))

    if (
        source_duration == clip.source_duration
        and trim_start == clip.trim_start
        and trim_end == clip.trim_end
        and start_time == clip.start_time
        and track_index == clip.track_index
    ):
        return clip
    return replace(
        clip,
        source_duration=source_duration,
        start_time=start_time,
        trim_start=trim_start,
        trim_end=trim_end,
        track_index=track_index,
    )


@dataclass(frozen=True)
class TimelineSnapshot:
    """Read-only view of the editor handed to the render collaborator after every mutation."""

    clips: Tuple[Clip, ...]
    current_time: float
    duration: float
    is_playing: bool
    zoom: float
    active_clip_id: Optional[str] = None
    track_count: int = 2
    local_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clips": [c.to_dict() for c in self.clips],
            "current_time": self.current_time,
            "duration": self.duration,
            "is_playing": bool(self.is_playing),
            "zoom": self.zoom,
            "active_clip_id": self.active_clip_id,
            "track_count": self.track_count,
            "local_time": self.local_time,
        }
