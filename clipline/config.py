from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict


DEFAULT_SOURCE_URL = "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ForBiggerFun.mp4"


def _clamped_float(raw: Any, default: float, lo: float, hi: float) -> float:
    try:
        v = float(raw)
    except Exception:
        v = float(default)
    if v != v:  # NaN
        v = float(default)
    return max(lo, min(hi, v))


@dataclass(frozen=True)
class EditorSettings:
    """
    Tunables for the timeline core.

    Notes:
    - min_clip_sec is the hard floor on trim_end - trim_start.
    - min_duration is the floor applied to the derived timeline duration.
    """

    base_px_per_sec: float = 50.0
    min_clip_sec: float = 0.1
    min_duration: float = 0.0
    default_zoom: float = 0.2
    min_zoom: float = 0.05
    max_zoom: float = 5.0
    track_height: float = 48.0
    track_gap: float = 4.0
    drift_tolerance_sec: float = 0.2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_px_per_sec": self.base_px_per_sec,
            "min_clip_sec": self.min_clip_sec,
            "min_duration": self.min_duration,
            "default_zoom": self.default_zoom,
            "min_zoom": self.min_zoom,
            "max_zoom": self.max_zoom,
            "track_height": self.track_height,
            "track_gap": self.track_gap,
            "drift_tolerance_sec": self.drift_tolerance_sec,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "EditorSettings":
        if not isinstance(d, dict):
            return EditorSettings()
        base = EditorSettings()
        min_zoom = _clamped_float(d.get("min_zoom", base.min_zoom), base.min_zoom, 0.001, 100.0)
        max_zoom = _clamped_float(d.get("max_zoom", base.max_zoom), base.max_zoom, min_zoom, 1000.0)
        return EditorSettings(
            base_px_per_sec=_clamped_float(d.get("base_px_per_sec"), base.base_px_per_sec, 1.0, 10000.0),
            min_clip_sec=_clamped_float(d.get("min_clip_sec"), base.min_clip_sec, 0.01, 10.0),
            min_duration=_clamped_float(d.get("min_duration"), base.min_duration, 0.0, 24 * 3600.0),
            default_zoom=_clamped_float(d.get("default_zoom"), base.default_zoom, min_zoom, max_zoom),
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            track_height=_clamped_float(d.get("track_height"), base.track_height, 8.0, 512.0),
            track_gap=_clamped_float(d.get("track_gap"), base.track_gap, 0.0, 128.0),
            drift_tolerance_sec=_clamped_float(d.get("drift_tolerance_sec"), base.drift_tolerance_sec, 0.0, 5.0),
        )


@dataclass(frozen=True)
class DefaultSource:
    """Media inserted by the "add clip" action."""

    src: str = DEFAULT_SOURCE_URL
    name: str = "New Clip"
    duration: float = 60.0

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "DefaultSource":
        if not isinstance(d, dict):
            return DefaultSource()
        src = str(d.get("src") or "").strip() or DEFAULT_SOURCE_URL
        name = str(d.get("name") or "").strip() or Path(src).stem or "New Clip"
        duration = _clamped_float(d.get("duration"), 60.0, 0.1, 24 * 3600.0)
        return DefaultSource(src=src, name=name, duration=duration)

    def to_dict(self) -> Dict[str, Any]:
        return {"src": self.src, "name": self.name, "duration": self.duration}


class ConfigStore:
    """
    Editor preferences kept as one JSON document.

    Default location: ~/.clipline/config.json (override the directory with CLIPLINE_HOME).
    Stored keys are laid over `default_config()`, so a partial or hand-edited
    file still yields every section.
    """

    FILENAME = "config.json"

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = Path(root_dir)

    @property
    def path(self) -> Path:
        return self.root_dir / self.FILENAME

    @staticmethod
    def default() -> "ConfigStore":
        override = os.environ.get("CLIPLINE_HOME", "").strip()
        if override:
            return ConfigStore(Path(override).expanduser())
        return ConfigStore(Path.home() / ".clipline")

    def load(self) -> Dict[str, Any]:
        cfg = self.default_config()
        if not self.path.is_file():
            return cfg
        try:
            stored = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            # Unreadable preferences reset to defaults rather than block startup.
            return cfg
        if isinstance(stored, dict):
            cfg.update(stored)
        return cfg

    def save(self, data: Dict[str, Any]) -> None:
        self.root_dir.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def default_config(self) -> Dict[str, Any]:
        return {
            "editor": EditorSettings().to_dict(),
            "default_source": DefaultSource().to_dict(),
            "last_zoom": None,
        }

    def editor_settings(self) -> EditorSettings:
        return EditorSettings.from_dict(self.load().get("editor", {}))

    def default_source(self) -> DefaultSource:
        return DefaultSource.from_dict(self.load().get("default_source", {}))

    def last_zoom(self) -> float:
        settings = self.editor_settings()
        raw = self.load().get("last_zoom", None)
        if raw is None:
            return settings.default_zoom
        return _clamped_float(raw, settings.default_zoom, settings.min_zoom, settings.max_zoom)

    def set_last_zoom(self, zoom: float) -> None:
        cfg = self.load()
        try:
            cfg["last_zoom"] = float(zoom)
        except Exception:
            return
        self.save(cfg)
