import logging
import time
from typing import List, NamedTuple, Optional, Tuple
from .clients.display_client import VIEW_DASHBOARD, VIEW_MAIN, DisplaySurface
from .command_queue import CommandQueue
from .config import settings
from .errors import ResourceNotFound, SessionNotFound, ValidationFailure
from .models import (
    AUDIO_CYCLE_SPEED, AUDIO_NEXT_SUBTITLE, AUDIO_NEXT_TRACK, AUDIO_PAUSE, AUDIO_PLAY,
    AUDIO_PREV_SUBTITLE, AUDIO_PREV_TRACK, AUDIO_SKIP_BACKWARD, AUDIO_SKIP_FORWARD,
    AUDIO_TOGGLE_REPEAT, CONFIGURABLE_TRIGGERS, LEGACY_ACTIONS, SCREEN_AUDIO, SCREEN_BT,
    SCREEN_SETTINGS, SCREEN_TEXT, SCREEN_TOP, TEXT_NEXT_PAGE, TEXT_PREV_PAGE,
    Command, MediaEvent, PlaybackReport, PlaybackState, SubtitleEntry, UserMediaSettings,
)
from .session import SessionRegistry, SessionState, effective_screen
from .subtitles import SubtitleCache
from .user_settings import MappingStore

logger = logging.getLogger(__name__)

# Sources that come from a physical accessory rather than the web view
PHYSICAL_SOURCES = frozenset({"bluetooth", "bluetooth-ios", "ios", "ios-double"})

PLAYBACK_SPEEDS = (1.0, 1.25, 1.5, 1.75, 2.0)

# Event types outside the configurable trigger set
_PAGE_EVENTS = {"nextpage": TEXT_NEXT_PAGE, "prevpage": TEXT_PREV_PAGE}
_AUDIO_EVENTS = {
    "play": AUDIO_PLAY,
    "pause": AUDIO_PAUSE,
    "stop": AUDIO_PAUSE,
    "skipforward": AUDIO_SKIP_FORWARD,
    "skipbackward": AUDIO_SKIP_BACKWARD,
}
# Safety net for unconfigured triggers
_TRIGGER_DEFAULTS = {
    SCREEN_AUDIO: {"nexttrack": AUDIO_NEXT_SUBTITLE, "prevtrack": AUDIO_PREV_SUBTITLE},
    SCREEN_TEXT: {"nexttrack": TEXT_NEXT_PAGE, "prevtrack": TEXT_PREV_PAGE},
}

_CLIENT_COMMANDS = {
    AUDIO_PLAY: "play",
    AUDIO_PAUSE: "pause",
    AUDIO_NEXT_TRACK: "next",
    AUDIO_PREV_TRACK: "prev",
}

_CONFIRMATIONS = {
    AUDIO_PLAY: "Play",
    AUDIO_PAUSE: "Pause",
    AUDIO_NEXT_TRACK: "Next track",
    AUDIO_PREV_TRACK: "Previous track",
    AUDIO_SKIP_FORWARD: "Skip forward",
    AUDIO_SKIP_BACKWARD: "Skip back",
}


class Resolution(NamedTuple):
    action: str
    value: Optional[float] = None
    origin: str = "mapping"  # mapping, legacy or default


def allowed_prefixes(screen: str) -> Tuple[str, ...]:
    if screen == SCREEN_TEXT:
        return ("text-",)
    if screen == SCREEN_AUDIO:
        return ("audio-",)
    if screen in (SCREEN_TOP, SCREEN_BT, SCREEN_SETTINGS):
        return ("text-", "audio-")
    return ()


def resolve(event_type: str, is_double_click: bool, screen: str,
            user_settings: UserMediaSettings, interval: Optional[float] = None) -> Optional[Resolution]:
    """
    Decide which single action a physical button event triggers.

    Order: hardcoded events, screen-scoped action mappings (first match
    wins), legacy per-trigger mappings, screen defaults.
    """
    event = event_type.lower().strip()

    if event not in CONFIGURABLE_TRIGGERS:
        action = _PAGE_EVENTS.get(event)
        if action is None and screen == SCREEN_AUDIO:
            action = _AUDIO_EVENTS.get(event)
        if action is None:
            return None
        return Resolution(action, interval, "default")

    click = "double" if is_double_click else "single"
    prefixes = allowed_prefixes(screen)

    if prefixes:
        for action, mapping in user_settings.action_mappings.items():
            if not action.startswith(prefixes):
                continue
            if getattr(mapping, click).trigger == event:
                return Resolution(action, interval, "mapping")

    legacy = (user_settings.mappings or {}).get(event)
    if legacy is not None:
        binding = getattr(legacy, click)
        action = LEGACY_ACTIONS.get(binding.type)
        # Legacy slots are not per screen, but the result still has to belong to one we allow
        if action is not None and prefixes and action.startswith(prefixes):
            value = binding.value if binding.value is not None else interval
            return Resolution(action, value, "legacy")

    action = _TRIGGER_DEFAULTS.get(screen, {}).get(event)
    if action is not None:
        return Resolution(action, interval, "default")
    return None


class ControlEngine:
    """
    Executes resolved actions.

    Page and subtitle navigation are applied here against server state and
    pushed to the glasses. Everything touching the audio element becomes
    exactly one queued command for the web view to pick up.
    """

    def __init__(self, registry: SessionRegistry, store: MappingStore, queue: CommandQueue,
                 subtitles: SubtitleCache, display: DisplaySurface):
        self.registry = registry
        self.store = store
        self.queue = queue
        self.subtitles = subtitles
        self.display = display

    def _state(self, session_id: str) -> SessionState:
        state = self.registry.get(session_id)
        if state is None:
            raise SessionNotFound(f"No active session {session_id}")
        return state

    async def handle_event(self, session_id: str, event: MediaEvent) -> Optional[Resolution]:
        state = self._state(session_id)
        if event.current_page:
            self.registry.set_screen(session_id, event.current_page)

        screen = effective_screen(state)
        resolution = resolve(
            event.event_type,
            event.is_double_click,
            screen,
            self.store.get(state.user_id),
            event.interval,
        )
        click = "double" if event.is_double_click else "single"
        if resolution is None:
            logger.info(f"No action for {event.event_type} ({click}) on {screen} from {event.source}")
            return None

        logger.info(f"{event.event_type} ({click}) on {screen} -> {resolution.action} via {resolution.origin}")
        await self.execute(
            resolution.action,
            resolution.value,
            session_id,
            announce=event.source not in PHYSICAL_SOURCES,
        )
        return resolution

    async def execute(self, action: str, value: Optional[float], session_id: str,
                      announce: bool = True) -> Optional[Command]:
        state = self._state(session_id)

        if action in (TEXT_NEXT_PAGE, TEXT_PREV_PAGE):
            await self._turn_page(state, forward=(action == TEXT_NEXT_PAGE))
            return None
        if action in (AUDIO_NEXT_SUBTITLE, AUDIO_PREV_SUBTITLE):
            return await self._step_subtitle(state, 1 if action == AUDIO_NEXT_SUBTITLE else -1)

        if action in (AUDIO_SKIP_FORWARD, AUDIO_SKIP_BACKWARD):
            offset = abs(value) if value is not None else settings.DEFAULT_SKIP_SECONDS
            command = self._skip(state, offset if action == AUDIO_SKIP_FORWARD else -offset)
        elif action in _CLIENT_COMMANDS:
            command = self.queue.enqueue(session_id, _CLIENT_COMMANDS[action])
        elif action == AUDIO_TOGGLE_REPEAT:
            state.repeat = not state.repeat
            command = self.queue.enqueue(session_id, "repeat", 1.0 if state.repeat else 0.0)
        elif action == AUDIO_CYCLE_SPEED:
            command = self._cycle_speed(state)
        else:
            raise ValidationFailure(f"Unknown action: {action}")

        if announce:
            await self.display.show_text_wall(
                session_id, self._confirmation(action, state), VIEW_MAIN, settings.DISPLAY_NOTICE_MS
            )
        return command

    def _confirmation(self, action: str, state: SessionState) -> str:
        if action == AUDIO_TOGGLE_REPEAT:
            return f"Repeat {'on' if state.repeat else 'off'}"
        if action == AUDIO_CYCLE_SPEED:
            return f"Speed {state.speed}x"
        return _CONFIRMATIONS[action]

    async def show_page(self, state: SessionState):
        text = state.pager.display_text()
        await self.display.show_text_wall(state.session_id, text, VIEW_MAIN)
        await self.display.show_text_wall(state.session_id, text, VIEW_DASHBOARD)

    async def _turn_page(self, state: SessionState, forward: bool):
        if state.pager is None:
            await self.display.show_text_wall(
                state.session_id, "No text loaded", VIEW_MAIN, settings.DISPLAY_NOTICE_MS
            )
            raise ResourceNotFound("No text has been uploaded for this session")

        moved = state.pager.next_page() if forward else state.pager.prev_page()
        if not moved:
            await self.display.show_text_wall(
                state.session_id, "Last page" if forward else "First page", VIEW_MAIN, settings.DISPLAY_NOTICE_MS
            )
            return
        await self.show_page(state)

    def _playback(self, state: SessionState) -> PlaybackState:
        if state.playback is None:
            state.playback = PlaybackState(last_update_time=time.time())
        return state.playback

    def _track(self, state: SessionState) -> List[SubtitleEntry]:
        track = self.subtitles.get(state.media_id) if state.media_id else None
        if not track:
            raise ResourceNotFound("No subtitles loaded for this session")
        return track

    async def _step_subtitle(self, state: SessionState, step: int) -> Command:
        track = self._track(state)
        playback = self._playback(state)

        # Navigation always lands on a real subtitle, so the seek has a target
        index = min(max(playback.current_subtitle_index + step, 0), len(track) - 1)
        entry = track[index]
        playback.current_subtitle_index = index
        playback.current_time = entry.start_time
        playback.last_update_time = time.time()

        command = self.queue.enqueue(state.session_id, "seek", entry.start_time)
        await self.display.show_text_wall(state.session_id, entry.text, VIEW_MAIN)
        return command

    def _skip(self, state: SessionState, delta: float) -> Command:
        playback = self._playback(state)
        target = max(0.0, playback.current_time + delta)
        playback.current_time = target
        playback.last_update_time = time.time()
        # Absolute target; a relative seek would drift by the poll latency
        return self.queue.enqueue(state.session_id, "seek", target)

    def _cycle_speed(self, state: SessionState) -> Command:
        try:
            position = PLAYBACK_SPEEDS.index(state.speed)
        except ValueError:
            position = -1
        state.speed = PLAYBACK_SPEEDS[(position + 1) % len(PLAYBACK_SPEEDS)]
        return self.queue.enqueue(state.session_id, "speed", state.speed)

    def bind_media(self, state: SessionState, media_id: str):
        """The web view opened a media item: playback restarts from no subtitle."""
        state.media_id = media_id
        state.playback = PlaybackState(last_update_time=time.time())

    async def report_playback(self, state: SessionState, report: PlaybackReport):
        if report.current_time is not None and report.subtitle_index is not None:
            track = self.subtitles.get(state.media_id) if state.media_id else None
            if track is not None and report.subtitle_index >= len(track):
                raise ValidationFailure(
                    f"subtitleIndex {report.subtitle_index} out of range for {len(track)} subtitles"
                )
            playback = self._playback(state)
            playback.current_time = report.current_time
            playback.current_subtitle_index = report.subtitle_index
            playback.last_update_time = time.time()

        if report.subtitle_text and report.subtitle_text.strip():
            await self.display.show_text_wall(state.session_id, report.subtitle_text.strip(), VIEW_MAIN)

    def subtitle_ended(self, state: SessionState, media_id: Optional[str], index: int) -> Optional[Command]:
        """In repeat mode, send the player back to the start of the subtitle that just ended."""
        if not state.repeat or not media_id:
            return None
        track = self.subtitles.get(media_id)
        if not track or not 0 <= index < len(track):
            return None
        logger.info(f"Repeating subtitle {index} of {media_id} for session {state.session_id}")
        return self.queue.enqueue(state.session_id, "seek", track[index].start_time)

    async def greet(self, session_id: str):
        await self.display.show_text_wall(session_id, "Press a button", VIEW_MAIN)
        await self.display.show_text_wall(session_id, f"Session: {session_id}\nPress a button", VIEW_DASHBOARD)
