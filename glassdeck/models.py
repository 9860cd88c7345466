from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Literal, Optional

# Screens
SCREEN_TOP = "top"
SCREEN_TEXT = "text-reader"
SCREEN_AUDIO = "audio-player"
SCREEN_BT = "bt-controller"
SCREEN_SETTINGS = "settings"
SCREENS = (SCREEN_TOP, SCREEN_TEXT, SCREEN_AUDIO, SCREEN_BT, SCREEN_SETTINGS)
CONTENT_SCREENS = (SCREEN_TEXT, SCREEN_AUDIO)

Screen = Literal["top", "text-reader", "audio-player", "bt-controller", "settings"]
Trigger = Literal["playpause", "nexttrack", "prevtrack", "none"]
CommandKind = Literal["seek", "speed", "play", "pause", "next", "prev", "repeat"]

# Actions. The prefix names the screen that owns the action.
TEXT_PREV_PAGE = "text-prev-page"
TEXT_NEXT_PAGE = "text-next-page"
AUDIO_PLAY = "audio-play"
AUDIO_PAUSE = "audio-pause"
AUDIO_SKIP_FORWARD = "audio-skip-forward"
AUDIO_SKIP_BACKWARD = "audio-skip-backward"
AUDIO_NEXT_SUBTITLE = "audio-next-subtitle"
AUDIO_PREV_SUBTITLE = "audio-prev-subtitle"
AUDIO_TOGGLE_REPEAT = "audio-toggle-repeat"
AUDIO_CYCLE_SPEED = "audio-cycle-speed"
# Only reachable through legacy button mappings
AUDIO_NEXT_TRACK = "audio-next-track"
AUDIO_PREV_TRACK = "audio-prev-track"

ACTION_IDS = (
    TEXT_PREV_PAGE,
    TEXT_NEXT_PAGE,
    AUDIO_PLAY,
    AUDIO_PAUSE,
    AUDIO_SKIP_FORWARD,
    AUDIO_SKIP_BACKWARD,
    AUDIO_NEXT_SUBTITLE,
    AUDIO_PREV_SUBTITLE,
    AUDIO_TOGGLE_REPEAT,
    AUDIO_CYCLE_SPEED,
)

CONFIGURABLE_TRIGGERS = ("playpause", "nexttrack", "prevtrack")

LegacyActionType = Literal[
    "text_nextpage", "text_prevpage",
    "audio_play", "audio_pause", "audio_next", "audio_prev",
    "audio_skip_forward", "audio_skip_backward",
    "none",
]

LEGACY_ACTIONS = {
    "text_nextpage": TEXT_NEXT_PAGE,
    "text_prevpage": TEXT_PREV_PAGE,
    "audio_play": AUDIO_PLAY,
    "audio_pause": AUDIO_PAUSE,
    "audio_next": AUDIO_NEXT_TRACK,
    "audio_prev": AUDIO_PREV_TRACK,
    "audio_skip_forward": AUDIO_SKIP_FORWARD,
    "audio_skip_backward": AUDIO_SKIP_BACKWARD,
}


class TriggerBinding(BaseModel):
    trigger: Trigger = "none"

class ActionTriggerMapping(BaseModel):
    single: TriggerBinding = Field(default_factory=TriggerBinding)
    double: TriggerBinding = Field(default_factory=TriggerBinding)

class LegacyBinding(BaseModel):
    type: LegacyActionType = "none"
    value: Optional[float] = None

class LegacyButtonMapping(BaseModel):
    single: LegacyBinding = Field(default_factory=LegacyBinding)
    double: LegacyBinding = Field(default_factory=LegacyBinding)

class UserMediaSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    action_mappings: Dict[str, ActionTriggerMapping] = Field(default_factory=dict, alias="actionMappings")
    # Screen-agnostic format saved by older clients, keyed by trigger
    mappings: Optional[Dict[str, LegacyButtonMapping]] = None
    updated_at: float = Field(0.0, alias="updatedAt")


class SubtitleEntry(BaseModel):
    index: int
    start_time: float  # seconds
    end_time: float
    text: str

class PlaybackState(BaseModel):
    current_subtitle_index: int = -1
    current_time: float = 0.0
    last_update_time: float = 0.0

class Command(BaseModel):
    kind: CommandKind
    value: Optional[float] = None
    enqueued_at: float


class MediaEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_type: str = Field(alias="eventType", min_length=1)
    is_double_click: bool = Field(False, alias="isDoubleClick")
    interval: Optional[float] = None
    source: str = "webview"
    timestamp: Optional[float] = None
    current_page: Optional[Screen] = Field(None, alias="currentPage")
    session_id: Optional[str] = Field(None, alias="sessionId")

class PlaybackReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_time: Optional[float] = Field(None, alias="currentTime", ge=0)
    subtitle_index: Optional[int] = Field(None, alias="subtitleIndex", ge=-1)
    subtitle_text: Optional[str] = Field(None, alias="subtitleText")

class SubtitleEndReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_id: Optional[str] = Field(None, alias="audioId")
    subtitle_index: int = Field(-1, alias="subtitleIndex")

class SessionRegistration(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)

class ScreenReport(BaseModel):
    screen: Screen

class AudioFile(BaseModel):
    id: str
    name: str
    date: str = ""
    month: str = ""
    title: str = ""
