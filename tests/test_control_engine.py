import json
import tempfile
import unittest
from pathlib import Path
from helpers import RecordingDisplay, make_track
from glassdeck.command_queue import CommandQueue
from glassdeck.config import settings
from glassdeck.engine import ControlEngine
from glassdeck.errors import ResourceNotFound, SessionNotFound, ValidationFailure
from glassdeck.models import MediaEvent, PlaybackReport, PlaybackState
from glassdeck.session import SessionRegistry
from glassdeck.subtitles import SubtitleCache
from glassdeck.text_pager import TextPager
from glassdeck.user_settings import UserSettingsStore


class ControlEngineTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        settings.DEFAULT_SKIP_SECONDS = 10.0
        self.tmp = tempfile.TemporaryDirectory()
        self.queue = CommandQueue(ttl_seconds=5.0)
        self.registry = SessionRegistry(self.queue)
        self.store = UserSettingsStore(self.tmp.name)
        self.subtitles = SubtitleCache()
        self.display = RecordingDisplay()
        self.engine = ControlEngine(self.registry, self.store, self.queue, self.subtitles, self.display)

        self.registry.register("alice", "s1")
        self.state = self.registry.get("s1")

    def tearDown(self):
        self.tmp.cleanup()

    def load_audio(self, *starts, index=-1, current_time=0.0):
        self.subtitles.put("ep1", make_track(*starts))
        self.engine.bind_media(self.state, "ep1")
        self.state.playback.current_subtitle_index = index
        self.state.playback.current_time = current_time

    def event(self, event_type, double=False, source="bluetooth", **extra):
        return MediaEvent(eventType=event_type, isDoubleClick=double, source=source, **extra)


class TestSubtitleNavigation(ControlEngineTestCase):
    async def test_double_next_track_end_to_end(self):
        self.store.update("alice", {"audio-next-subtitle": {"double": {"trigger": "nexttrack"}}})
        self.registry.set_screen("s1", "audio-player")
        self.load_audio(0.0, 5.2, 11.0, index=0)

        resolution = await self.engine.handle_event("s1", self.event("nexttrack", double=True))

        self.assertEqual(resolution.action, "audio-next-subtitle")
        self.assertEqual(self.state.playback.current_subtitle_index, 1)
        commands = self.queue.drain("s1")
        self.assertEqual([(c.kind, c.value) for c in commands], [("seek", 5.2)])
        self.assertIn("line 2", self.display.texts("main"))

    async def test_index_and_seek_are_paired_and_clamped(self):
        self.load_audio(0.0, 5.2, 11.0, index=2)

        command = await self.engine.execute("audio-next-subtitle", None, "s1")
        self.assertEqual(self.state.playback.current_subtitle_index, 2)
        self.assertEqual((command.kind, command.value), ("seek", 11.0))
        self.assertEqual(len(self.queue.pending("s1")), 1)

        self.state.playback.current_subtitle_index = 0
        await self.engine.execute("audio-prev-subtitle", None, "s1")
        self.assertEqual(self.state.playback.current_subtitle_index, 0)
        self.assertEqual([c.value for c in self.queue.drain("s1")], [11.0, 0.0])

    async def test_next_from_no_subtitle_goes_to_first(self):
        self.load_audio(1.5, 5.2)
        await self.engine.execute("audio-next-subtitle", None, "s1")
        self.assertEqual(self.state.playback.current_subtitle_index, 0)
        self.assertEqual(self.state.playback.current_time, 1.5)

    async def test_without_subtitles_nothing_changes(self):
        with self.assertRaises(ResourceNotFound):
            await self.engine.execute("audio-next-subtitle", None, "s1")
        self.assertEqual(self.queue.pending("s1"), [])
        self.assertIsNone(self.state.playback)


class TestClientCommands(ControlEngineTestCase):
    async def test_skip_backward_never_goes_negative(self):
        self.load_audio(0.0, current_time=4.0)
        command = await self.engine.execute("audio-skip-backward", None, "s1")
        self.assertEqual((command.kind, command.value), ("seek", 0.0))

        self.state.playback.current_time = 42.0
        command = await self.engine.execute("audio-skip-backward", None, "s1")
        self.assertEqual(command.value, 32.0)

    async def test_skip_forward_uses_event_interval(self):
        self.registry.set_screen("s1", "audio-player")
        self.load_audio(0.0, current_time=20.0)
        await self.engine.handle_event("s1", self.event("skipforward", interval=30))
        self.assertEqual([(c.kind, c.value) for c in self.queue.drain("s1")], [("seek", 50.0)])

    async def test_skip_without_playback_state_starts_from_zero(self):
        command = await self.engine.execute("audio-skip-forward", None, "s1")
        self.assertEqual(command.value, 10.0)

    async def test_play_pause_and_tracks(self):
        for action in ("audio-play", "audio-pause", "audio-next-track", "audio-prev-track"):
            await self.engine.execute(action, None, "s1")
        self.assertEqual([c.kind for c in self.queue.drain("s1")], ["play", "pause", "next", "prev"])

    async def test_speed_cycles_and_wraps(self):
        speeds = []
        for _ in range(6):
            command = await self.engine.execute("audio-cycle-speed", None, "s1")
            speeds.append(command.value)
        self.assertEqual(speeds, [1.25, 1.5, 1.75, 2.0, 1.0, 1.25])
        self.assertEqual(self.state.speed, 1.25)

    async def test_repeat_toggle(self):
        await self.engine.execute("audio-toggle-repeat", None, "s1")
        self.assertTrue(self.state.repeat)
        await self.engine.execute("audio-toggle-repeat", None, "s1")
        self.assertFalse(self.state.repeat)
        self.assertEqual([(c.kind, c.value) for c in self.queue.drain("s1")], [("repeat", 1.0), ("repeat", 0.0)])

    async def test_confirmation_only_for_non_accessory_sources(self):
        self.registry.set_screen("s1", "audio-player")
        await self.engine.handle_event("s1", self.event("play", source="bluetooth"))
        self.assertEqual(self.display.walls, [])

        await self.engine.handle_event("s1", self.event("play", source="webview-test"))
        self.assertEqual(self.display.texts("main"), ["Play"])
        self.assertEqual(len(self.queue.drain("s1")), 2)

    async def test_unknown_action(self):
        with self.assertRaises(ValidationFailure):
            await self.engine.execute("audio-explode", None, "s1")

    async def test_unknown_session(self):
        with self.assertRaises(SessionNotFound):
            await self.engine.execute("audio-play", None, "nope")


class TestEventHandling(ControlEngineTestCase):
    async def test_legacy_settings_resolve_play(self):
        legacy = {
            "userId": "alice",
            "mappings": {"playpause": {"single": {"type": "audio_play"}, "double": {"type": "none"}}},
        }
        (Path(self.tmp.name) / "alice.json").write_text(json.dumps(legacy), encoding="utf-8")

        resolution = await self.engine.handle_event("s1", self.event("playpause", currentPage="audio-player"))

        self.assertEqual((resolution.action, resolution.origin), ("audio-play", "legacy"))
        self.assertEqual([c.kind for c in self.queue.drain("s1")], ["play"])

    async def test_utility_screen_falls_back_to_last_content_screen(self):
        self.registry.set_screen("s1", "audio-player")
        self.load_audio(0.0, 5.2)
        resolution = await self.engine.handle_event("s1", self.event("nexttrack", currentPage="settings"))

        self.assertEqual(self.state.screen, "settings")
        self.assertEqual(resolution.action, "audio-next-subtitle")

    async def test_unresolved_event_does_nothing(self):
        resolution = await self.engine.handle_event("s1", self.event("playpause"))
        self.assertIsNone(resolution)
        self.assertEqual(self.queue.pending("s1"), [])
        self.assertEqual(self.display.walls, [])


class TestPaging(ControlEngineTestCase):
    async def test_next_page_pushes_to_both_views(self):
        self.state.pager = TextPager("first paragraph\n" + "x" * 150)
        self.registry.set_screen("s1", "text-reader")

        await self.engine.handle_event("s1", self.event("nexttrack"))

        self.assertEqual(self.state.pager.page_number, 2)
        self.assertEqual(self.display.texts("main"), self.display.texts("dashboard"))
        self.assertTrue(self.display.texts("main")[0].endswith("2/2"))
        self.assertEqual(self.queue.pending("s1"), [])

    async def test_boundaries_show_notice(self):
        self.state.pager = TextPager("only page")
        await self.engine.execute("text-next-page", None, "s1")
        await self.engine.execute("text-prev-page", None, "s1")
        self.assertEqual(self.display.texts(), ["Last page", "First page"])
        self.assertEqual(self.state.pager.page_number, 1)

    async def test_no_text_loaded(self):
        with self.assertRaises(ResourceNotFound):
            await self.engine.execute("text-next-page", None, "s1")
        self.assertEqual(self.display.texts(), ["No text loaded"])


class TestPlaybackReports(ControlEngineTestCase):
    async def test_report_updates_mirror_and_shows_text(self):
        self.load_audio(0.0, 5.2, 11.0)
        await self.engine.report_playback(
            self.state, PlaybackReport(currentTime=6.0, subtitleIndex=1, subtitleText="  line 2 ")
        )
        self.assertEqual(self.state.playback.current_time, 6.0)
        self.assertEqual(self.state.playback.current_subtitle_index, 1)
        self.assertEqual(self.display.texts("main"), ["line 2"])

    async def test_out_of_range_index_rejected(self):
        self.load_audio(0.0, 5.2, 11.0)
        with self.assertRaises(ValidationFailure):
            await self.engine.report_playback(self.state, PlaybackReport(currentTime=1.0, subtitleIndex=3))
        self.assertEqual(self.state.playback.current_subtitle_index, -1)

    async def test_subtitle_end_in_repeat_mode(self):
        self.load_audio(0.0, 5.2, 11.0)
        self.assertIsNone(self.engine.subtitle_ended(self.state, "ep1", 1))

        self.state.repeat = True
        command = self.engine.subtitle_ended(self.state, "ep1", 1)
        self.assertEqual((command.kind, command.value), ("seek", 5.2))
        self.assertIsNone(self.engine.subtitle_ended(self.state, "ep1", 9))
        self.assertIsNone(self.engine.subtitle_ended(self.state, "other", 0))

    async def test_bind_media_resets_playback(self):
        self.state.playback = PlaybackState(current_subtitle_index=4, current_time=99.0)
        self.engine.bind_media(self.state, "ep2")
        self.assertEqual(self.state.media_id, "ep2")
        self.assertEqual(self.state.playback.current_subtitle_index, -1)
        self.assertEqual(self.state.playback.current_time, 0.0)

if __name__ == '__main__':
    unittest.main()
