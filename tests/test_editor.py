import unittest

from clipline.config import DefaultSource, EditorSettings
from clipline.editor import Editor
from clipline.model import MIN_CLIP_SEC, Clip

ROW = 48.0 + 4.0


class _RecordingPlayer:
    def __init__(self):
        self.calls = []

    def seek_to(self, local_sec):
        self.calls.append(("seek", local_sec))

    def set_playing(self, playing):
        self.calls.append(("playing", playing))

    def set_active_source(self, src):
        self.calls.append(("source", src))


def _clip(cid="a", start=0.0, trim_start=0.0, trim_end=30.0, track=0, source_duration=596.0, src=None):
    return Clip(
        id=cid,
        src=src or f"{cid}.mp4",
        name=cid,
        source_duration=source_duration,
        start_time=start,
        trim_start=trim_start,
        trim_end=trim_end,
        track_index=track,
    )


def _expected_duration(clips):
    return max([0.0] + [c.start_time + (c.trim_end - c.trim_start) for c in clips])


class TestEditorPlayback(unittest.TestCase):
    def test_seek_past_last_clip_is_idle(self):
        player = _RecordingPlayer()
        ed = Editor(clips=[_clip()], settings=EditorSettings(min_duration=60.0), player=player)
        ed.on_seek(40.0)
        self.assertAlmostEqual(ed.current_time, 40.0)
        self.assertIsNone(ed.active_clip)
        self.assertFalse(ed.is_playing)
        self.assertEqual(player.calls[-1], ("source", None))

    def test_seek_past_duration_clamps(self):
        ed = Editor(clips=[_clip()])
        ed.on_seek(40.0)
        self.assertAlmostEqual(ed.current_time, 30.0)
        self.assertIsNone(ed.active_clip)

    def test_playing_to_out_point_stops(self):
        ed = Editor(clips=[_clip()])
        ed.toggle_play()
        self.assertTrue(ed.is_playing)
        ed.report_local_time(29.95)
        self.assertAlmostEqual(ed.current_time, 29.95)
        self.assertTrue(ed.is_playing)
        ed.report_local_time(30.05)
        self.assertFalse(ed.is_playing)
        self.assertAlmostEqual(ed.current_time, 30.0)

    def test_seek_round_trip(self):
        ed = Editor(clips=[_clip(start=4.0, trim_start=2.0, trim_end=12.0)])
        for t in (4.0, 7.25, 13.9):
            ed.on_seek(t)
            self.assertAlmostEqual(ed.current_time, t)
            self.assertEqual(ed.active_clip.id, "a")

    def test_seek_is_idempotent(self):
        ed = Editor(clips=[_clip(), _clip("b", start=3.0, trim_end=4.0, track=1)])
        ed.on_seek(5.0)
        first = ed.snapshot()
        ed.on_seek(5.0)
        self.assertEqual(ed.snapshot(), first)

    def test_seek_garbage_input(self):
        ed = Editor(clips=[_clip()])
        ed.on_seek(12.0)
        ed.on_seek(float("nan"))
        self.assertEqual(ed.current_time, 0.0)
        ed.on_seek(float("inf"))
        self.assertEqual(ed.current_time, 30.0)

    def test_seek_px_uses_zoom(self):
        ed = Editor(clips=[_clip()], zoom=1.0)
        ed.on_seek_px(250.0)
        self.assertAlmostEqual(ed.current_time, 5.0)

    def test_tie_break_prefers_upper_track(self):
        low = _clip("low", start=0.0, trim_end=10.0, track=0)
        high = _clip("high", start=2.0, trim_end=10.0, track=1)
        ed = Editor(clips=[low, high])
        ed.on_seek(5.0)
        self.assertEqual(ed.active_clip.id, "high")

    def test_toggle_at_end_rewinds(self):
        ed = Editor(clips=[_clip(start=10.0, trim_end=20.0)])
        ed.on_seek(30.0)
        ed.toggle_play()
        self.assertTrue(ed.is_playing)
        self.assertAlmostEqual(ed.current_time, 10.0)

    def test_metadata_loaded_refines_source_duration(self):
        a = _clip(trim_end=30.0, source_duration=596.0)
        same_src = _clip("a2", start=40.0, trim_start=10.0, trim_end=50.0, src="a.mp4")
        other = _clip("b", start=40.0, trim_end=50.0, track=1, source_duration=100.0)
        ed = Editor(clips=[a, same_src, other])
        ed.report_metadata_loaded(20.0)
        by_id = {c.id: c for c in ed.clips}
        self.assertEqual(by_id["a"].source_duration, 20.0)
        self.assertEqual(by_id["a"].trim_end, 20.0)
        self.assertEqual(by_id["a2"].trim_end, 20.0)
        self.assertEqual(by_id["a2"].trim_start, 10.0)
        self.assertEqual(by_id["b"].source_duration, 100.0)
        self.assertAlmostEqual(ed.duration, 90.0)

    def test_metadata_loaded_for_named_source(self):
        a = _clip(trim_end=30.0)
        b = _clip("b", start=30.0, trim_end=50.0, source_duration=100.0)
        ed = Editor(clips=[a, b])
        # Active clip is "a", but the load that finished was "b.mp4".
        ed.report_metadata_loaded(40.0, src="b.mp4")
        by_id = {c.id: c for c in ed.clips}
        self.assertEqual(by_id["a"].source_duration, 596.0)
        self.assertEqual(by_id["b"].source_duration, 40.0)
        self.assertEqual(by_id["b"].trim_end, 40.0)
        ed.report_metadata_loaded(10.0, src="gone.mp4")
        self.assertEqual({c.id: c for c in ed.clips}, by_id)

    def test_metadata_loaded_ignored_without_active_clip(self):
        ed = Editor(clips=[_clip(start=10.0)])
        before = ed.clips
        ed.report_metadata_loaded(5.0)
        self.assertEqual(ed.clips, before)
        ed.on_seek(12.0)
        ed.report_metadata_loaded(0.0)
        self.assertEqual(ed.clips, before)


class TestEditorEditing(unittest.TestCase):
    def test_trim_start_gesture(self):
        c = _clip(start=10.0, trim_start=5.0, trim_end=20.0, source_duration=30.0)
        ed = Editor(clips=[c], zoom=1.0)
        self.assertIsNotNone(ed.begin_gesture("a", "trim-start", 300.0, 10.0))
        out = ed.update_gesture(400.0, 10.0)
        self.assertAlmostEqual(out.trim_start, 7.0)
        self.assertAlmostEqual(out.start_time, 12.0)
        self.assertAlmostEqual(out.trim_end, 20.0)
        self.assertAlmostEqual(ed.clips[0].start_time, 12.0)
        ed.end_gesture()
        self.assertIsNone(ed.gesture)

    def test_trim_end_gesture_clamps_to_source(self):
        c = _clip(trim_end=25.0, source_duration=30.0)
        ed = Editor(clips=[c], zoom=1.0)
        ed.begin_gesture("a", "trim_end", 0.0)
        out = ed.update_gesture(5000.0)
        self.assertAlmostEqual(out.trim_end, 30.0)

    def test_move_gesture_rounds_half_up(self):
        ed = Editor(clips=[_clip(track=1)])
        ed.begin_gesture("a", "move", 0.0, 0.0)
        out = ed.update_gesture(0.0, 1.5 * ROW)
        self.assertEqual(out.track_index, 3)
        self.assertEqual(ed.snapshot().track_count, 5)

    def test_gesture_on_unknown_clip(self):
        ed = Editor(clips=[_clip()])
        self.assertIsNone(ed.begin_gesture("nope", "move", 0.0))
        self.assertIsNone(ed.update_gesture(10.0))

    def test_gesture_aborts_when_clip_removed(self):
        ed = Editor(clips=[_clip(), _clip("b", start=40.0)])
        ed.begin_gesture("b", "move", 0.0)
        self.assertEqual(ed.on_remove_clip("b"), "Removed")
        self.assertIsNone(ed.gesture)
        self.assertIsNone(ed.update_gesture(100.0))
        self.assertEqual([c.id for c in ed.clips], ["a"])

    def test_gesture_aborts_when_clip_replaced_externally(self):
        ed = Editor(clips=[_clip()])
        ed.begin_gesture("a", "move", 0.0)
        ed.on_clips_update([_clip("z")])
        self.assertIsNone(ed.update_gesture(100.0))
        self.assertIsNone(ed.gesture)

    def test_remove_missing_clip(self):
        ed = Editor(clips=[_clip()])
        self.assertIn("not found", ed.on_remove_clip("zzz"))
        self.assertEqual(len(ed.clips), 1)

    def test_remove_active_clip_idles(self):
        player = _RecordingPlayer()
        ed = Editor(clips=[_clip(), _clip("b", start=0.0, trim_end=50.0, track=1)], player=player)
        ed.on_seek(45.0)
        self.assertEqual(ed.active_clip.id, "b")
        ed.on_remove_clip("b")
        self.assertAlmostEqual(ed.current_time, 30.0)
        self.assertIsNone(ed.active_clip)
        self.assertEqual(player.calls[-1], ("source", None))

    def test_add_clip_uses_default_source(self):
        src = DefaultSource(src="media/intro.mp4", name="Intro", duration=12.0)
        ed = Editor(clips=[_clip(trim_end=8.0)], default_source=src)
        added = ed.on_add_clip()
        self.assertEqual(added.src, "media/intro.mp4")
        self.assertEqual(added.name, "Intro")
        self.assertAlmostEqual(added.start_time, 8.0)
        self.assertAlmostEqual(added.trim_end, 12.0)
        self.assertEqual(added.track_index, 0)
        self.assertAlmostEqual(ed.duration, 20.0)

    def test_add_clip_overrides(self):
        ed = Editor()
        added = ed.on_add_clip(src="b.mp4", duration=3.0, name="B", track_index=2)
        self.assertEqual(added.track_index, 2)
        self.assertEqual(added.start_time, 0.0)
        self.assertAlmostEqual(ed.duration, 3.0)

    def test_clips_update_accepts_camel_case_records(self):
        ed = Editor()
        ed.on_clips_update(
            [{"url": "a.mp4", "duration": 596, "startTime": 40, "trimStart": 10, "trimEnd": 30, "trackIndex": 1}]
        )
        c = ed.clips[0]
        self.assertEqual((c.start_time, c.trim_start, c.trim_end, c.track_index), (40.0, 10.0, 30.0, 1))
        self.assertAlmostEqual(ed.duration, 60.0)

    def test_clips_update_normalizes_input(self):
        ed = Editor()
        ed.on_clips_update(
            [
                {"id": "x", "url": "x.mp4", "duration": 10.0, "trim_start": 8.0, "trim_end": 50.0, "start_time": -3.0},
                _clip("y", trim_start=5.0, trim_end=2.0, source_duration=10.0, track=-1),
            ]
        )
        for c in ed.clips:
            self.assertGreaterEqual(c.trim_start, 0.0)
            self.assertGreaterEqual(c.trim_end - c.trim_start + 1e-9, MIN_CLIP_SEC)
            self.assertLessEqual(c.trim_end, c.source_duration)
            self.assertGreaterEqual(c.start_time, 0.0)
            self.assertGreaterEqual(c.track_index, 0)

    def test_duration_tracks_every_mutation(self):
        ed = Editor(clips=[_clip()], zoom=1.0)
        self.assertAlmostEqual(ed.duration, _expected_duration(ed.clips))
        ed.on_add_clip(duration=5.0)
        self.assertAlmostEqual(ed.duration, _expected_duration(ed.clips))
        ed.begin_gesture(ed.clips[0].id, "trim-end", 0.0)
        ed.update_gesture(-500.0)
        self.assertAlmostEqual(ed.duration, _expected_duration(ed.clips))
        ed.on_remove_clip(ed.clips[-1].id)
        self.assertAlmostEqual(ed.duration, _expected_duration(ed.clips))
        ed.on_clips_update([])
        self.assertEqual(ed.duration, 0.0)
        self.assertEqual(ed.current_time, 0.0)

    def test_duration_floor(self):
        ed = Editor(settings=EditorSettings(min_duration=30.0))
        self.assertEqual(ed.duration, 30.0)


class TestEditorView(unittest.TestCase):
    def test_zoom_clamps(self):
        ed = Editor()
        self.assertAlmostEqual(ed.zoom, 0.2)
        ed.on_zoom_change(0)
        self.assertAlmostEqual(ed.zoom, 0.05)
        ed.on_zoom_change(-3)
        self.assertAlmostEqual(ed.zoom, 0.05)
        ed.on_zoom_change(100)
        self.assertAlmostEqual(ed.zoom, 5.0)

    def test_zoom_steps(self):
        ed = Editor(zoom=1.0)
        ed.zoom_in()
        self.assertAlmostEqual(ed.zoom, 1.5)
        ed.zoom_out()
        ed.zoom_out()
        self.assertAlmostEqual(ed.zoom, 1.0 / 1.5)

    def test_subscribe_and_unsubscribe(self):
        ed = Editor(clips=[_clip()])
        seen = []
        unsubscribe = ed.subscribe(seen.append)
        ed.on_seek(3.0)
        ed.on_zoom_change(1.0)
        self.assertEqual(len(seen), 2)
        self.assertAlmostEqual(seen[0].current_time, 3.0)
        self.assertEqual(seen[0].active_clip_id, "a")
        self.assertAlmostEqual(seen[1].zoom, 1.0)
        unsubscribe()
        ed.on_seek(4.0)
        self.assertEqual(len(seen), 2)
        unsubscribe()

    def test_snapshot(self):
        ed = Editor(clips=[_clip(start=10.0, trim_start=5.0, trim_end=20.0)])
        ed.on_seek(12.0)
        snap = ed.snapshot()
        self.assertAlmostEqual(snap.duration, 25.0)
        self.assertAlmostEqual(snap.local_time, 7.0)
        self.assertFalse(snap.is_playing)
        self.assertEqual(snap.track_count, 2)

    def test_layout_helpers(self):
        ed = Editor(clips=[_clip(start=2.0, trim_end=4.0, track=1)], zoom=1.0)
        rect = ed.clip_rect(ed.clips[0])
        self.assertAlmostEqual(rect.left, 100.0)
        self.assertAlmostEqual(rect.width, 200.0)
        self.assertAlmostEqual(rect.top, 54.0)
        ticks = ed.ruler_ticks()
        self.assertEqual(ticks[0].sec, 0.0)
        self.assertGreaterEqual(ticks[-1].sec, ed.duration)


if __name__ == "__main__":
    unittest.main()
