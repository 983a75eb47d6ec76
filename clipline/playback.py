"""Playback synchronizer.

Keeps two clocks consistent: the global timeline cursor and the local media
position of the active clip's source. The synchronizer is the only writer of
the media player (seek, play/pause, source); the player is the only source
of local position updates.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from .model import Clip
from .timeline import active_clip, clip_ending_at


log = logging.getLogger("clipline.playback")

DRIFT_TOLERANCE_SEC = 0.2
# After a mid-playback source switch, reports outside this window past the
# handoff point are treated as stale (old media, or new media before its seek).
HANDOFF_WINDOW_SEC = 1.0
STALE_REPORT_LIMIT = 10


class MediaPlayer(Protocol):
    def seek_to(self, local_sec: float) -> None: ...

    def set_playing(self, playing: bool) -> None: ...

    def set_active_source(self, src: Optional[str]) -> None: ...


class NullPlayer:
    """Player stand-in used until a real one is attached."""

    def seek_to(self, local_sec: float) -> None:
        pass

    def set_playing(self, playing: bool) -> None:
        pass

    def set_active_source(self, src: Optional[str]) -> None:
        pass


def to_local_time(clip: Clip, global_sec: float) -> float:
    return float(global_sec) - clip.start_time + clip.trim_start


def to_global_time(clip: Clip, local_sec: float) -> float:
    return float(local_sec) - clip.trim_start + clip.start_time


class PlaybackSync:
    """
    State machine for {current_time, is_playing} and the derived active clip.

    The clip set is owned by the caller and passed in on every call; the
    synchronizer only remembers which clip was active and what it last told
    the player.
    """

    def __init__(self, player: Optional[MediaPlayer] = None, drift_tolerance: float = DRIFT_TOLERANCE_SEC) -> None:
        self.player: MediaPlayer = player or NullPlayer()
        self.drift_tolerance = max(0.0, float(drift_tolerance))
        self.current_time: float = 0.0
        self.is_playing: bool = False
        self.active: Optional[Clip] = None
        # What the player was last told / last reported.
        self._player_src: Optional[str] = None
        self._player_playing: bool = False
        self._player_local: Optional[float] = None
        self._handoff_local: Optional[float] = None
        self._stale_reports = 0

    def attach_player(self, player: Optional[MediaPlayer]) -> None:
        self.player = player or NullPlayer()
        self._player_src = None
        self._player_playing = False
        self._player_local = None
        self._handoff_local = None
        self._push(force_seek=True)

    # ---------- queries ----------
    def local_time(self) -> float:
        """Position the player should be at, 0 when idle."""
        if self.active is None:
            return 0.0
        return to_local_time(self.active, self.current_time)

    # ---------- commands ----------
    def resolve(self, clips: Sequence[Clip], duration: float) -> None:
        """Re-derive the active clip after the clip set or duration changed."""
        self.current_time = max(0.0, min(float(duration), self.current_time))
        self.active = active_clip(clips, self.current_time)
        self._push()

    def seek(self, clips: Sequence[Clip], duration: float, t: float) -> None:
        target = max(0.0, min(float(duration), float(t)))
        if target != float(t):
            log.debug("seek %.3f clamped to %.3f", float(t), target)
        self.current_time = target
        self.is_playing = False
        self.active = active_clip(clips, target)
        self._handoff_local = None
        self._push(force_seek=True)

    def report_local_time(self, local_sec: float) -> None:
        """Player tick: map the media position back onto the timeline."""
        if self._is_stale(float(local_sec)):
            self._stale_reports += 1
            log.debug("dropping stale position %.3f, waiting for %.3f", float(local_sec), self._handoff_local)
            return
        self._handoff_local = None
        self._player_local = float(local_sec)
        clip = self.active
        if clip is None:
            return
        t = to_global_time(clip, local_sec)
        if t >= clip.end_time:
            log.debug("reached out-point of %s at %.3f", clip.id, clip.end_time)
            self.current_time = clip.end_time
            self.is_playing = False
        else:
            self.current_time = max(0.0, t)

    def toggle_play(self, clips: Sequence[Clip], duration: float) -> None:
        if abs(self.current_time - float(duration)) <= 1e-9:
            at_end = active_clip(clips, self.current_time) or clip_ending_at(clips, self.current_time)
            if at_end is not None:
                self.seek(clips, duration, at_end.start_time)
        self.is_playing = not self.is_playing
        self._push()

    def _is_stale(self, local_sec: float) -> bool:
        h = self._handoff_local
        if h is None or self._stale_reports >= STALE_REPORT_LIMIT:
            return False
        return local_sec < h - self.drift_tolerance or local_sec > h + HANDOFF_WINDOW_SEC

    # ---------- player projection ----------
    def _push(self, force_seek: bool = False) -> None:
        src = self.active.src if self.active is not None else None
        handoff = False
        if src != self._player_src:
            handoff = self.is_playing and src is not None and self._player_src is not None
            log.debug("active source -> %s", src)
            self.player.set_active_source(src)
            self._player_src = src
            force_seek = True
        if self.active is not None:
            expected = self.local_time()
            if force_seek or self._player_local is None or abs(self._player_local - expected) > self.drift_tolerance:
                self.player.seek_to(expected)
                self._player_local = expected
                if handoff:
                    self._handoff_local = expected
                    self._stale_reports = 0
        playing = bool(self.is_playing and self.active is not None)
        if playing != self._player_playing:
            self.player.set_playing(playing)
            self._player_playing = playing
