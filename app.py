from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

import flet as ft
import flet_video as ftv

from clipline.config import ConfigStore
from clipline.edit import ACTION_MOVE, ACTION_TRIM_END, ACTION_TRIM_START
from clipline.editor import Editor
from clipline.geometry import timeline_height_px, timeline_width_px
from clipline.model import Clip, TimelineSnapshot
from clipline.shortcuts import (
    ACTION_ADD_CLIP,
    ACTION_DELETE,
    ACTION_SEEK_END,
    ACTION_SEEK_START,
    ACTION_SELECT_NEXT,
    ACTION_SELECT_PREV,
    ACTION_SHOW_SHORTCUTS,
    ACTION_TOGGLE_PLAY_PAUSE,
    ACTION_ZOOM_IN,
    ACTION_ZOOM_OUT,
    resolve_shortcut_action,
    shortcut_legend,
)

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("clipline")

DEMO_CLIP = {
    "id": "clip-1",
    "src": "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4",
    "name": "Big Buck Bunny",
    "source_duration": 596.0,
    "start_time": 0.0,
    "trim_start": 0.0,
    "trim_end": 596.0,
    "track_index": 0,
}

RULER_H = 32.0
TRIM_HANDLE_W = 10.0
POLL_INTERVAL_SEC = 0.1


def _fmt_time(sec: float) -> str:
    sec = max(0.0, float(sec))
    m = int(sec // 60)
    s = int(sec % 60)
    return f"{m:02d}:{s:02d}"


def _tracks_key(snap: TimelineSnapshot) -> tuple:
    """Clip controls are rebuilt only when this changes; otherwise they are moved."""
    return (snap.track_count,) + tuple((c.id, c.name) for c in snap.clips)


def _ruler_key(snap: TimelineSnapshot) -> tuple:
    return (snap.duration, snap.zoom)


def _position_to_sec(pos_raw) -> Optional[float]:
    if pos_raw is None:
        return None
    try:
        if hasattr(pos_raw, "in_milliseconds"):
            return max(0.0, float(pos_raw.in_milliseconds) / 1000.0)
        if isinstance(pos_raw, (int, float)):
            return max(0.0, float(pos_raw) / 1000.0)
    except Exception:
        return None
    return None


class FletVideoPlayer:
    """
    Drives a flet_video control on behalf of the editor.

    All control methods are async in flet, so every command is scheduled
    on the page loop; failures are logged and otherwise ignored because the
    backend may be mid-load.
    """

    def __init__(self, page: ft.Page, video: ftv.Video) -> None:
        self.page = page
        self.video = video
        self.src: Optional[str] = None

    def _run(self, label: str, coro_factory) -> None:
        async def _do() -> None:
            try:
                await coro_factory()
            except Exception:
                log.exception("player %s failed", label)

        self.page.run_task(_do)

    def set_active_source(self, src: Optional[str]) -> None:
        self.src = src
        if src:
            self.video.playlist = [ftv.VideoMedia(src)]
            self.video.visible = True
        else:
            self.video.visible = False
        try:
            self.video.update()
        except Exception:
            pass

    def seek_to(self, local_sec: float) -> None:
        ms = int(max(0.0, float(local_sec)) * 1000)
        self._run("seek", lambda: self.video.seek(ms))

    def set_playing(self, playing: bool) -> None:
        if playing:
            self._run("play", self.video.play)
        else:
            self._run("pause", self.video.pause)

    async def current_position_sec(self) -> Optional[float]:
        try:
            return _position_to_sec(await self.video.get_current_position())
        except Exception:
            return None

    async def duration_sec(self) -> Optional[float]:
        try:
            return _position_to_sec(await self.video.get_duration())
        except Exception:
            return None


def main(page: ft.Page) -> None:
    page.title = "ClipLine"
    _platform = str(getattr(page, "platform", "") or "").lower()
    is_web = bool(getattr(page, "web", False)) or ("web" in _platform)
    if not is_web:
        page.window.width = 1100
        page.window.height = 720
    page.theme_mode = ft.ThemeMode.DARK
    page.padding = 10

    cfg = ConfigStore.default()
    settings = cfg.editor_settings()
    editor = Editor(
        clips=[DEMO_CLIP],
        settings=settings,
        zoom=cfg.last_zoom(),
        default_source=cfg.default_source(),
    )
    selected_clip_id: Optional[str] = None
    clip_controls: Dict[str, ft.Container] = {}
    rendered_key: tuple = ()
    ruler_key: tuple = ()

    # ---------- helpers ----------
    def snack(msg: str) -> None:
        # SnackBar is a DialogControl in newer Flet versions.
        page.show_dialog(ft.SnackBar(ft.Text(msg)))

    def _event_global_xy(e) -> tuple[float, float]:
        try:
            return float(e.global_position.x), float(e.global_position.y)
        except Exception:
            pass
        try:
            return float(getattr(e, "global_x", 0.0) or 0.0), float(getattr(e, "global_y", 0.0) or 0.0)
        except Exception:
            return 0.0, 0.0

    def _event_local_x(e) -> float:
        try:
            return float(e.local_position.x)
        except Exception:
            pass
        try:
            return float(getattr(e, "local_x", 0.0) or 0.0)
        except Exception:
            return 0.0

    def _pps() -> float:
        return settings.base_px_per_sec * editor.zoom

    # ---------- player ----------
    def on_video_loaded(_e) -> None:
        loaded_src = player.src

        async def _do() -> None:
            sec = await player.duration_sec()
            if sec and loaded_src:
                editor.report_metadata_loaded(sec, src=loaded_src)

        page.run_task(_do)

    preview_video = ftv.Video(
        expand=True,
        playlist=[],
        autoplay=False,
        show_controls=False,
        visible=False,
        on_loaded=on_video_loaded,
    )
    player = FletVideoPlayer(page, preview_video)
    player_time = ft.Text("00:00", size=12, color=ft.Colors.WHITE70)
    play_btn = ft.IconButton(icon=ft.Icons.PLAY_ARROW)
    idle_hint = ft.Text("No clip at playhead", color=ft.Colors.WHITE54)

    def play_click(_e=None) -> None:
        editor.toggle_play()

    play_btn.on_click = play_click

    async def _position_loop() -> None:
        while True:
            await asyncio.sleep(POLL_INTERVAL_SEC)
            if not editor.is_playing or editor.active_clip is None:
                continue
            sec = await player.current_position_sec()
            if sec is None:
                continue
            editor.report_local_time(sec)

    # ---------- timeline ----------
    ruler_stack = ft.Stack(height=RULER_H)
    tracks_stack = ft.Stack()
    playhead = ft.Container(width=2, top=0, bottom=0, left=0, bgcolor=ft.Colors.RED_400)

    def on_track_tap(e) -> None:
        editor.on_seek_px(max(0.0, _event_local_x(e)))

    def on_playhead_drag(e) -> None:
        editor.on_seek_px(max(0.0, _event_local_x(e)))

    tracks_surface = ft.GestureDetector(
        content=tracks_stack,
        on_tap_down=on_track_tap,
        on_horizontal_drag_update=on_playhead_drag,
    )

    def _style_clip(ctrl: ft.Container, selected: bool) -> None:
        ctrl.bgcolor = ft.Colors.AMBER_600 if selected else ft.Colors.BLUE_600
        ctrl.border = ft.Border.all(2, ft.Colors.AMBER_200 if selected else ft.Colors.BLUE_300)

    def _select(clip_id: Optional[str]) -> None:
        nonlocal selected_clip_id
        selected_clip_id = clip_id
        # Restyle in place; rebuilding would drop an in-flight pan.
        for cid, ctrl in clip_controls.items():
            _style_clip(ctrl, cid == clip_id)
        try:
            page.update()
        except Exception:
            pass

    def _make_drag_handlers(clip_id: str, action: str):
        def _start(e) -> None:
            x, y = _event_global_xy(e)
            if editor.begin_gesture(clip_id, action, x, y) is None:
                return
            if selected_clip_id != clip_id:
                _select(clip_id)

        def _update(e) -> None:
            x, y = _event_global_xy(e)
            editor.update_gesture(x, y)

        def _end(_e) -> None:
            editor.end_gesture()

        return _start, _update, _end

    def _drag_zone(clip_id: str, action: str, content: ft.Control, cursor) -> ft.GestureDetector:
        on_start, on_update, on_end = _make_drag_handlers(clip_id, action)
        return ft.GestureDetector(
            mouse_cursor=cursor,
            drag_interval=0,
            content=content,
            on_pan_start=on_start,
            on_pan_update=on_update,
            on_pan_end=on_end,
        )

    def remove_clip(clip_id: str) -> None:
        nonlocal selected_clip_id
        msg = editor.on_remove_clip(clip_id)
        if selected_clip_id == clip_id:
            selected_clip_id = None
        snack(msg)

    def clip_block(clip: Clip) -> ft.Container:
        rect = editor.clip_rect(clip)
        label = ft.Row(
            [
                ft.Icon(ft.Icons.DRAG_INDICATOR, size=16, color=ft.Colors.WHITE70),
                ft.Text(clip.name, size=12, no_wrap=True, expand=True),
                ft.IconButton(
                    icon=ft.Icons.CLOSE,
                    icon_size=14,
                    on_click=lambda _e, cid=clip.id: remove_clip(cid),
                ),
            ],
            spacing=4,
        )
        body = _drag_zone(
            clip.id,
            ACTION_MOVE,
            ft.Container(padding=ft.padding.symmetric(horizontal=TRIM_HANDLE_W), content=label, expand=True),
            ft.MouseCursor.GRAB,
        )
        left_handle = _drag_zone(
            clip.id,
            ACTION_TRIM_START,
            ft.Container(width=TRIM_HANDLE_W, bgcolor=ft.Colors.BLUE_200, opacity=0.6),
            ft.MouseCursor.RESIZE_LEFT_RIGHT,
        )
        right_handle = _drag_zone(
            clip.id,
            ACTION_TRIM_END,
            ft.Container(width=TRIM_HANDLE_W, bgcolor=ft.Colors.BLUE_200, opacity=0.6),
            ft.MouseCursor.RESIZE_LEFT_RIGHT,
        )
        ctrl = ft.Container(
            left=rect.left,
            top=rect.top,
            width=max(1.0, rect.width),
            height=rect.height,
            border_radius=6,
            clip_behavior=ft.ClipBehavior.HARD_EDGE,
            content=ft.Row([left_handle, body, right_handle], spacing=0),
        )
        _style_clip(ctrl, clip.id == selected_clip_id)
        return ctrl

    def _layout_clip(ctrl: ft.Container, clip: Clip) -> None:
        rect = editor.clip_rect(clip)
        ctrl.left = rect.left
        ctrl.top = rect.top
        ctrl.width = max(1.0, rect.width)

    def _render_ruler(snap: TimelineSnapshot) -> None:
        nonlocal ruler_key
        ruler_key = _ruler_key(snap)
        ruler_stack.controls.clear()
        for tick in editor.ruler_ticks():
            mark = ft.Container(
                width=1,
                height=12 if tick.major else 8,
                bgcolor=ft.Colors.WHITE54 if tick.major else ft.Colors.WHITE24,
            )
            children = [mark]
            if tick.major:
                children.append(ft.Text(tick.label, size=10, color=ft.Colors.WHITE54))
            ruler_stack.controls.append(
                ft.Container(left=tick.px, top=0, content=ft.Column(children, spacing=2))
            )
        ruler_stack.width = timeline_width_px(snap.duration, snap.zoom, settings.base_px_per_sec)

    def _render_tracks(snap: TimelineSnapshot) -> None:
        nonlocal rendered_key
        tracks_stack.controls.clear()
        clip_controls.clear()
        row_h = settings.track_height + settings.track_gap
        for i in range(snap.track_count):
            tracks_stack.controls.append(
                ft.Container(
                    left=0,
                    right=0,
                    top=i * row_h + settings.track_gap / 2,
                    height=settings.track_height,
                    bgcolor=ft.Colors.with_opacity(0.06, ft.Colors.WHITE),
                )
            )
        for clip in snap.clips:
            ctrl = clip_block(clip)
            clip_controls[clip.id] = ctrl
            tracks_stack.controls.append(ctrl)
        tracks_stack.controls.append(playhead)
        rendered_key = _tracks_key(snap)

    def render(snap: TimelineSnapshot, force: bool = False) -> None:
        # Same clip set and rows: move existing controls so an in-flight press keeps its target.
        if not force and rendered_key == _tracks_key(snap):
            for clip in snap.clips:
                ctrl = clip_controls.get(clip.id)
                if ctrl is not None:
                    _layout_clip(ctrl, clip)
        else:
            _render_tracks(snap)
        if force or ruler_key != _ruler_key(snap):
            _render_ruler(snap)
        width = timeline_width_px(snap.duration, snap.zoom, settings.base_px_per_sec)
        tracks_stack.width = width
        tracks_stack.height = timeline_height_px(snap.track_count, settings.track_height, settings.track_gap)
        playhead.left = snap.current_time * _pps()
        zoom_slider.value = snap.zoom
        play_btn.icon = ft.Icons.PAUSE if snap.is_playing else ft.Icons.PLAY_ARROW
        player_time.value = _fmt_time(snap.local_time)
        idle_hint.visible = snap.active_clip_id is None
        time_label.value = f"{_fmt_time(snap.current_time)} / {_fmt_time(snap.duration)}"
        try:
            page.update()
        except Exception:
            pass

    # ---------- toolbar ----------
    time_label = ft.Text("00:00 / 00:00", size=12)
    zoom_slider = ft.Slider(min=settings.min_zoom, max=settings.max_zoom, value=editor.zoom, width=160)

    def on_zoom(_e=None) -> None:
        try:
            editor.on_zoom_change(float(zoom_slider.value))
        except Exception:
            return
        cfg.set_last_zoom(editor.zoom)

    def zoom_in_click(_e=None) -> None:
        editor.zoom_in()
        cfg.set_last_zoom(editor.zoom)

    def zoom_out_click(_e=None) -> None:
        editor.zoom_out()
        cfg.set_last_zoom(editor.zoom)

    def add_clip_click(_e=None) -> None:
        nonlocal selected_clip_id
        clip = editor.on_add_clip()
        selected_clip_id = clip.id
        render(editor.snapshot(), force=True)

    def delete_click(_e=None) -> None:
        if selected_clip_id is None:
            snack("No clip selected")
            return
        remove_clip(selected_clip_id)

    def _select_neighbor(delta: int) -> None:
        clips = list(editor.clips)
        if not clips:
            return
        ordered = sorted(clips, key=lambda c: (c.start_time, c.track_index))
        ids = [c.id for c in ordered]
        if selected_clip_id in ids:
            idx = max(0, min(len(ids) - 1, ids.index(selected_clip_id) + delta))
        else:
            idx = 0 if delta > 0 else len(ids) - 1
        _select(ids[idx])

    zoom_slider.on_change = on_zoom

    def _show_shortcuts_dialog(_e=None) -> None:
        rows = []
        for keys, desc in shortcut_legend():
            rows.append(
                ft.Row(
                    [
                        ft.Container(width=210, content=ft.Text(keys, weight=ft.FontWeight.BOLD, size=12)),
                        ft.Text(desc, size=12, color=ft.Colors.WHITE70),
                    ],
                    alignment=ft.MainAxisAlignment.START,
                    vertical_alignment=ft.CrossAxisAlignment.START,
                )
            )

        dlg = ft.AlertDialog(
            modal=True,
            title=ft.Text("Keyboard Shortcuts"),
            content=ft.Container(width=480, height=260, content=ft.ListView(rows, spacing=6)),
            actions=[ft.TextButton("Close", on_click=lambda _e: page.pop_dialog())],
        )
        page.show_dialog(dlg)

    def on_keyboard(e: ft.KeyboardEvent) -> None:
        ev_type = str(getattr(e, "type", "") or "").strip().lower().replace("_", "")
        if ev_type and ev_type != "keydown":
            return

        action = resolve_shortcut_action(
            key=str(getattr(e, "key", "") or ""),
            ctrl=bool(getattr(e, "ctrl", False)),
            shift=bool(getattr(e, "shift", False)),
            alt=bool(getattr(e, "alt", False)),
            meta=bool(getattr(e, "meta", False)),
        )
        if not action:
            return

        if action == ACTION_TOGGLE_PLAY_PAUSE:
            play_click()
        elif action == ACTION_ADD_CLIP:
            add_clip_click()
        elif action == ACTION_DELETE:
            delete_click()
        elif action == ACTION_ZOOM_IN:
            zoom_in_click()
        elif action == ACTION_ZOOM_OUT:
            zoom_out_click()
        elif action == ACTION_SEEK_START:
            editor.on_seek(0.0)
        elif action == ACTION_SEEK_END:
            editor.on_seek(editor.duration)
        elif action == ACTION_SELECT_PREV:
            _select_neighbor(-1)
        elif action == ACTION_SELECT_NEXT:
            _select_neighbor(1)
        elif action == ACTION_SHOW_SHORTCUTS:
            _show_shortcuts_dialog()

    page.on_keyboard_event = on_keyboard

    toolbar = ft.Row(
        [
            ft.Icon(ft.Icons.MOVIE, color=ft.Colors.BLUE_300),
            ft.Text("Video Editor", size=18, weight=ft.FontWeight.BOLD),
            ft.Container(expand=True),
            ft.IconButton(icon=ft.Icons.KEYBOARD, tooltip="Shortcuts", on_click=_show_shortcuts_dialog),
        ]
    )
    preview = ft.Container(
        expand=True,
        bgcolor=ft.Colors.BLACK,
        border_radius=8,
        alignment=ft.Alignment(0, 0),
        content=ft.Stack([preview_video, ft.Container(alignment=ft.Alignment(0, 0), content=idle_hint)]),
    )
    transport = ft.Row([play_btn, player_time, ft.Container(expand=True), time_label])
    timeline_header = ft.Row(
        [
            ft.IconButton(icon=ft.Icons.ADD, tooltip="Add clip", on_click=add_clip_click),
            ft.Container(expand=True),
            ft.IconButton(icon=ft.Icons.ZOOM_OUT, tooltip="Zoom out", on_click=zoom_out_click),
            zoom_slider,
            ft.IconButton(icon=ft.Icons.ZOOM_IN, tooltip="Zoom in", on_click=zoom_in_click),
        ]
    )
    timeline_body = ft.Row(
        [ft.Column([ruler_stack, tracks_surface], spacing=0)],
        scroll=ft.ScrollMode.AUTO,
    )
    timeline = ft.Container(
        height=260,
        padding=8,
        border_radius=8,
        bgcolor=ft.Colors.with_opacity(0.04, ft.Colors.WHITE),
        content=ft.Column([timeline_header, ft.Column([timeline_body], scroll=ft.ScrollMode.AUTO, expand=True)]),
    )

    page.add(ft.Column([toolbar, preview, transport, timeline], expand=True, spacing=10))

    editor.subscribe(render)
    editor.attach_player(player)
    render(editor.snapshot(), force=True)
    page.run_task(_position_loop)


if __name__ == "__main__":
    ft.app(target=main)
