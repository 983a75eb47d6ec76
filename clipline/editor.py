from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from .config import DefaultSource, EditorSettings
from .edit import Gesture, begin_gesture, step_gesture
from .geometry import ClipRect, RulerTick, clamp_zoom, clip_rect, px_to_time, ruler_ticks, zoom_in, zoom_out
from .model import Clip, TimelineSnapshot, normalize_clip
from .playback import MediaPlayer, PlaybackSync
from .timeline import add_clip_end, find_clip, remove_clip, replace_clip, total_duration, track_count


log = logging.getLogger("clipline.editor")

Listener = Callable[[TimelineSnapshot], None]


class Editor:
    """
    Timeline edit model + playback synchronization.

    The editor owns every clip record. Collaborators talk to it through
    one-way commands (`on_*`, gesture messages, player reports) and read
    back a `TimelineSnapshot`, which is also pushed to subscribers after
    every mutation.

    Duration is never stored: it is derived from the clip set each time it
    is read.
    """

    def __init__(
        self,
        clips: Optional[Iterable[Union[Clip, dict]]] = None,
        settings: Optional[EditorSettings] = None,
        player: Optional[MediaPlayer] = None,
        zoom: Optional[float] = None,
        default_source: Optional[DefaultSource] = None,
    ) -> None:
        self.settings = settings or EditorSettings()
        self.default_source = default_source or DefaultSource()
        self.zoom = self._clamp_zoom(self.settings.default_zoom if zoom is None else zoom)
        self._clips: List[Clip] = self._normalize_all(clips or [])
        self._sync = PlaybackSync(player=player, drift_tolerance=self.settings.drift_tolerance_sec)
        self._gesture: Optional[Gesture] = None
        self._listeners: List[Listener] = []
        self._sync.resolve(self._clips, self.duration)

    # ---------- state ----------
    @property
    def clips(self) -> Tuple[Clip, ...]:
        return tuple(self._clips)

    @property
    def duration(self) -> float:
        return total_duration(self._clips, floor=self.settings.min_duration)

    @property
    def current_time(self) -> float:
        return self._sync.current_time

    @property
    def is_playing(self) -> bool:
        return self._sync.is_playing

    @property
    def active_clip(self) -> Optional[Clip]:
        return self._sync.active

    @property
    def gesture(self) -> Optional[Gesture]:
        return self._gesture

    def local_time(self) -> float:
        return self._sync.local_time()

    def snapshot(self) -> TimelineSnapshot:
        active = self._sync.active
        return TimelineSnapshot(
            clips=tuple(self._clips),
            current_time=self._sync.current_time,
            duration=self.duration,
            is_playing=self._sync.is_playing,
            zoom=self.zoom,
            active_clip_id=active.id if active is not None else None,
            track_count=track_count(self._clips),
            local_time=self._sync.local_time(),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a render callback; returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def attach_player(self, player: Optional[MediaPlayer]) -> None:
        self._sync.attach_player(player)

    # ---------- render collaborator -> core ----------
    def on_clips_update(self, clips: Iterable[Union[Clip, dict]]) -> None:
        self._set_clips(self._normalize_all(clips))

    def on_seek(self, t: float) -> None:
        self._sync.seek(self._clips, self.duration, self._as_time(t))
        self._emit()

    def on_seek_px(self, x_px: float) -> None:
        """Seek from a horizontal pixel offset on the track area."""
        self.on_seek(px_to_time(x_px, self.zoom, self.settings.base_px_per_sec))

    def on_add_clip(
        self,
        src: Optional[str] = None,
        duration: Optional[float] = None,
        name: Optional[str] = None,
        track_index: int = 0,
    ) -> Clip:
        source = self.default_source
        clips = add_clip_end(
            self._clips,
            src=source.src if src is None else src,
            duration=source.duration if duration is None else duration,
            name=source.name if name is None else name,
            track_index=track_index,
            min_sec=self.settings.min_clip_sec,
        )
        added = clips[-1]
        log.debug("added clip %s on track %d at %.3f", added.id, added.track_index, added.start_time)
        self._set_clips(clips)
        return added

    def on_remove_clip(self, clip_id: str) -> str:
        clips, msg = remove_clip(self._clips, clip_id)
        if self._gesture is not None and self._gesture.origin.id == clip_id:
            self._gesture = None
        self._set_clips(clips)
        return msg

    def on_zoom_change(self, zoom: float) -> None:
        self.zoom = self._clamp_zoom(zoom)
        self._emit()

    def zoom_in(self) -> None:
        self.on_zoom_change(zoom_in(self.zoom, self.settings.min_zoom, self.settings.max_zoom))

    def zoom_out(self) -> None:
        self.on_zoom_change(zoom_out(self.zoom, self.settings.min_zoom, self.settings.max_zoom))

    def toggle_play(self) -> None:
        self._sync.toggle_play(self._clips, self.duration)
        self._emit()

    # ---------- gesture session ----------
    def begin_gesture(self, clip_id: str, action: str, x: float, y: float = 0.0) -> Optional[Gesture]:
        clip = find_clip(self._clips, clip_id)
        if clip is None:
            return None
        self._gesture = begin_gesture(action, clip, x, y)
        log.debug("gesture %s on %s", self._gesture.action, clip_id)
        return self._gesture

    def update_gesture(self, x: float, y: float = 0.0) -> Optional[Clip]:
        g = self._gesture
        if g is None:
            return None
        if find_clip(self._clips, g.origin.id) is None:
            # Clip vanished mid-drag.
            self._gesture = None
            return None
        updated = step_gesture(
            g,
            x,
            y,
            self.zoom,
            base_px_per_sec=self.settings.base_px_per_sec,
            track_height=self.settings.track_height,
            track_gap=self.settings.track_gap,
            min_sec=self.settings.min_clip_sec,
        )
        self._set_clips(replace_clip(self._clips, updated))
        return updated

    def end_gesture(self) -> None:
        if self._gesture is not None:
            log.debug("gesture %s on %s ended", self._gesture.action, self._gesture.origin.id)
        self._gesture = None

    # ---------- player collaborator -> core ----------
    def report_local_time(self, local_sec: float) -> None:
        self._sync.report_local_time(self._as_time(local_sec))
        self._sync.resolve(self._clips, self.duration)
        self._emit()

    def report_metadata_loaded(self, source_duration: float, src: Optional[str] = None) -> None:
        """
        The player learned the real length of a source.

        `src` names the media that loaded; without it the active clip's
        source is assumed.
        """
        if src is None:
            active = self._sync.active
            src = active.src if active is not None else None
        sd = self._as_time(source_duration)
        if src is None or sd <= 0 or not math.isfinite(sd):
            return
        min_sec = self.settings.min_clip_sec
        clips = []
        for c in self._clips:
            if c.src == src and c.source_duration != sd:
                c = replace(c, source_duration=sd, trim_end=min(c.trim_end, sd))
            clips.append(normalize_clip(c, min_sec=min_sec))
        self._set_clips(clips)

    # ---------- layout helpers ----------
    def clip_rect(self, clip: Clip) -> ClipRect:
        s = self.settings
        return clip_rect(clip, self.zoom, s.base_px_per_sec, s.track_height, s.track_gap)

    def ruler_ticks(self) -> List[RulerTick]:
        return ruler_ticks(self.duration, self.zoom, self.settings.base_px_per_sec)

    # ---------- internals ----------
    def _set_clips(self, clips: Sequence[Clip]) -> None:
        self._clips = list(clips)
        self._sync.resolve(self._clips, self.duration)
        self._emit()

    def _emit(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    def _normalize_all(self, clips: Iterable[Union[Clip, dict]]) -> List[Clip]:
        min_sec = self.settings.min_clip_sec
        out: List[Clip] = []
        for c in clips:
            if isinstance(c, Clip):
                out.append(normalize_clip(c, min_sec=min_sec))
            elif isinstance(c, dict):
                out.append(Clip.from_dict(c, min_sec=min_sec))
        return out

    def _clamp_zoom(self, zoom: Any) -> float:
        return clamp_zoom(zoom, self.settings.min_zoom, self.settings.max_zoom)

    @staticmethod
    def _as_time(raw: Any) -> float:
        try:
            v = float(raw)
        except Exception:
            return 0.0
        if math.isnan(v):
            return 0.0
        return v
