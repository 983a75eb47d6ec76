from __future__ import annotations

from typing import Dict, List, Optional, Tuple


# Shortcut action ids used by app.py dispatcher.
ACTION_DELETE = "delete"
ACTION_ADD_CLIP = "add_clip"
ACTION_ZOOM_IN = "zoom_in"
ACTION_ZOOM_OUT = "zoom_out"
ACTION_SEEK_START = "seek_start"
ACTION_SEEK_END = "seek_end"
ACTION_SELECT_PREV = "select_prev"
ACTION_SELECT_NEXT = "select_next"
ACTION_TOGGLE_PLAY_PAUSE = "toggle_play_pause"
ACTION_SHOW_SHORTCUTS = "show_shortcuts"

# Flet reports key names ("Arrow Left", "Numpad Add", " "); fold them to one spelling.
_KEY_NAMES: Dict[str, str] = {
    " ": "space",
    "spacebar": "space",
    "arrowleft": "left",
    "arrowright": "right",
    "add": "+",
    "numpadadd": "+",
    "=": "+",
    "subtract": "-",
    "numpadsubtract": "-",
    "_": "-",
    "backspace": "delete",
}

_TIMELINE_KEYS: Dict[str, str] = {
    "space": ACTION_TOGGLE_PLAY_PAUSE,
    "delete": ACTION_DELETE,
    "a": ACTION_ADD_CLIP,
    "+": ACTION_ZOOM_IN,
    "-": ACTION_ZOOM_OUT,
    "home": ACTION_SEEK_START,
    "end": ACTION_SEEK_END,
    "left": ACTION_SELECT_PREV,
    "right": ACTION_SELECT_NEXT,
}


def key_name(key: str) -> str:
    raw = str(key or "")
    if raw in _KEY_NAMES:
        return _KEY_NAMES[raw]
    k = raw.strip().lower().replace(" ", "")
    return _KEY_NAMES.get(k, k)


def resolve_shortcut_action(
    *,
    key: str,
    ctrl: bool = False,
    shift: bool = False,
    alt: bool = False,
    meta: bool = False,
) -> Optional[str]:
    """
    Map a key-down event to a timeline action id, or None.

    Every timeline shortcut is a bare key, so chords with Ctrl/Cmd/Alt are
    left to the platform. The help key works regardless of modifiers.
    """
    k = key_name(key)
    if k in ("f1", "?") or (k == "/" and shift):
        return ACTION_SHOW_SHORTCUTS
    if ctrl or meta or alt:
        return None
    return _TIMELINE_KEYS.get(k)


def shortcut_legend() -> List[Tuple[str, str]]:
    """Human-readable shortcuts list for the in-app help dialog."""
    return [
        ("Space", "Play/Pause"),
        ("A", "Add clip at end of track 1"),
        ("Delete / Backspace", "Remove selected clip"),
        ("Left / Right", "Select previous/next clip"),
        ("Home / End", "Jump to timeline start/end"),
        ("+ / -", "Zoom timeline in/out"),
        ("F1 or ?", "Show shortcuts help"),
    ]
