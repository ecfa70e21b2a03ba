"""
Application context for refinement.

Detects the foreground application and picks a writing style for it, so the
same dictation reads as a polished email in Mail and as a quick message in
Slack.
"""

import logging
import subprocess
import threading
import time
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from .store import JsonFileStore
from .types import AppIdentity


logger = logging.getLogger(__name__)


class AppStyle(str, Enum):
    FORMAL = "formal"
    CASUAL = "casual"
    TECHNICAL = "technical"
    CREATIVE = "creative"
    NEUTRAL = "neutral"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def description(self) -> str:
        return _STYLE_DESCRIPTIONS[self]

    @property
    def prompt_modifier(self) -> str:
        return _STYLE_MODIFIERS[self]


_STYLE_DESCRIPTIONS = {
    AppStyle.FORMAL: "Professional, polished language for business contexts",
    AppStyle.CASUAL: "Relaxed, conversational tone for messaging",
    AppStyle.TECHNICAL: "Precise, technical language preserving jargon",
    AppStyle.CREATIVE: "Expressive language for creative writing",
    AppStyle.NEUTRAL: "Standard refinement without style adjustment",
}

_STYLE_MODIFIERS = {
    AppStyle.FORMAL: (
        "Use formal, professional language. Ensure proper grammar and punctuation.\n"
        "Avoid contractions, slang, and overly casual expressions.\n"
        "Maintain a respectful and polished tone suitable for business communication."
    ),
    AppStyle.CASUAL: (
        "Use casual, friendly language. Contractions are fine.\n"
        "Keep the tone conversational and approachable.\n"
        "Emoji usage is acceptable if contextually appropriate."
    ),
    AppStyle.TECHNICAL: (
        "Preserve technical terminology and jargon exactly as spoken.\n"
        "Maintain precision in descriptions. Format code-related terms appropriately.\n"
        "Keep the language clear and unambiguous."
    ),
    AppStyle.CREATIVE: (
        "Allow for expressive and varied language.\n"
        "Preserve unique phrasing and creative expressions.\n"
        "Maintain the speaker's voice and style."
    ),
    AppStyle.NEUTRAL: (
        "Apply standard text refinement without adjusting the overall tone or style.\n"
        "Focus on clarity and correctness."
    ),
}


DEFAULT_APP_STYLES: Dict[str, AppStyle] = {
    # Email clients
    "com.apple.mail": AppStyle.FORMAL,
    "com.microsoft.Outlook": AppStyle.FORMAL,
    "com.google.Gmail": AppStyle.FORMAL,
    "com.readdle.smartemail-Mac": AppStyle.FORMAL,
    # Messaging
    "com.tencent.xinWeChat": AppStyle.CASUAL,
    "com.apple.MobileSMS": AppStyle.CASUAL,
    "com.apple.iChat": AppStyle.CASUAL,
    "com.facebook.Messenger": AppStyle.CASUAL,
    "com.slack.Slack": AppStyle.CASUAL,
    "com.hnc.Discord": AppStyle.CASUAL,
    "org.telegram.desktop": AppStyle.CASUAL,
    "com.whatsapp.WhatsApp": AppStyle.CASUAL,
    # Development tools
    "com.apple.dt.Xcode": AppStyle.TECHNICAL,
    "com.microsoft.VSCode": AppStyle.TECHNICAL,
    "com.sublimetext.4": AppStyle.TECHNICAL,
    "com.jetbrains.intellij": AppStyle.TECHNICAL,
    "com.googlecode.iterm2": AppStyle.TECHNICAL,
    "com.apple.Terminal": AppStyle.TECHNICAL,
    # Writing and notes
    "com.apple.Notes": AppStyle.NEUTRAL,
    "com.apple.TextEdit": AppStyle.NEUTRAL,
    "md.obsidian": AppStyle.NEUTRAL,
    "com.notion.id": AppStyle.NEUTRAL,
    # Long-form writing
    "com.ulyssesapp.mac": AppStyle.CREATIVE,
    "com.literatureandlatte.scrivener3": AppStyle.CREATIVE,
}


class KnownApp(NamedTuple):
    bundle_id: str
    style: AppStyle
    is_custom: bool


class StyleSelector:
    """
    Maps applications to writing styles.

    Custom overrides always win over the built-in table; anything unknown
    is neutral.

    Usage:
        selector = StyleSelector(JsonFileStore(config.app_styles_file), enabled=True)
        selector.set_style(AppStyle.FORMAL, "com.slack.Slack")
        prompt = selector.generate_context_aware_prompt(base_prompt, app)
    """

    def __init__(
        self,
        store: Optional[JsonFileStore] = None,
        enabled: bool = False,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.enabled = enabled
        self._store = store
        self._on_change = on_change
        self._lock = threading.Lock()
        self._custom: Dict[str, AppStyle] = self._load()

    def _load(self) -> Dict[str, AppStyle]:
        if self._store is None:
            return {}
        raw = self._store.load(default={})
        if not isinstance(raw, dict):
            logger.warning("[Styles] Ignoring malformed app styles file")
            return {}

        custom = {}
        for bundle_id, value in raw.items():
            try:
                custom[bundle_id] = AppStyle(value)
            except ValueError:
                logger.warning("[Styles] Unknown style %r for %s", value, bundle_id)
        return custom

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save({k: v.value for k, v in sorted(self._custom.items())})
        if self._on_change:
            self._on_change()

    @property
    def custom_styles(self) -> Dict[str, AppStyle]:
        with self._lock:
            return dict(self._custom)

    def style_for(self, bundle_id: Optional[str]) -> AppStyle:
        if not bundle_id:
            return AppStyle.NEUTRAL
        with self._lock:
            if bundle_id in self._custom:
                return self._custom[bundle_id]
        return DEFAULT_APP_STYLES.get(bundle_id, AppStyle.NEUTRAL)

    def style_for_app(self, app: Optional[AppIdentity]) -> AppStyle:
        """Style for the foreground app; neutral when disabled or unknown."""
        if not self.enabled or app is None:
            return AppStyle.NEUTRAL
        return self.style_for(app.bundle_id)

    def set_style(self, style: AppStyle, bundle_id: str) -> None:
        with self._lock:
            self._custom[bundle_id] = AppStyle(style)
            self._persist()

    def remove_custom_style(self, bundle_id: str) -> bool:
        """Revert an app to its default. Returns False if it had no override."""
        with self._lock:
            if self._custom.pop(bundle_id, None) is None:
                return False
            self._persist()
            return True

    def generate_context_aware_prompt(self, base_prompt: str, app: Optional[AppIdentity]) -> str:
        """Append the app name and its style guidance to `base_prompt`."""
        if not self.enabled:
            return base_prompt

        style = self.style_for_app(app)
        app_name = app.name if app is not None and app.name else "unknown app"
        return (
            f"{base_prompt}\n\n"
            f"Context: The user is dictating into {app_name}.\n"
            f"Style guidance: {style.prompt_modifier}"
        )

    def all_known_apps(self) -> List[KnownApp]:
        """Every app with a default or custom style, sorted by bundle id."""
        with self._lock:
            custom = dict(self._custom)

        apps = [
            KnownApp(bundle_id, custom.get(bundle_id, style), bundle_id in custom)
            for bundle_id, style in DEFAULT_APP_STYLES.items()
        ]
        apps.extend(
            KnownApp(bundle_id, style, True)
            for bundle_id, style in custom.items()
            if bundle_id not in DEFAULT_APP_STYLES
        )
        return sorted(apps, key=lambda app: app.bundle_id)


# Cache for MacAppInspector - avoids repeated osascript calls
_CONTEXT_CACHE_TTL = 0.3  # 300ms, short enough to notice app switches


class MacAppInspector:
    """
    Foreground app via osascript. Results are cached for 300ms.

    Returns None off macOS or when System Events does not answer.
    """

    _SCRIPT = '''
    tell application "System Events"
        set frontApp to first application process whose frontmost is true
        return (name of frontApp) & "|||" & (bundle identifier of frontApp)
    end tell
    '''

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._cache: Tuple[float, Optional[AppIdentity]] = (0.0, None)

    def current_app(self) -> Optional[AppIdentity]:
        cache_time, cached = self._cache
        if cached is not None and (self._clock() - cache_time) < _CONTEXT_CACHE_TTL:
            return cached

        app = None
        try:
            result = subprocess.run(
                ["osascript", "-e", self._SCRIPT],
                capture_output=True,
                text=True,
                timeout=2.0,
            )
            if result.returncode == 0:
                parts = result.stdout.strip().split("|||")
                if len(parts) >= 2 and parts[1]:
                    app = AppIdentity(bundle_id=parts[1], name=parts[0])
        except subprocess.TimeoutExpired:
            logger.warning("[Context] osascript timed out")
        except OSError as e:
            logger.debug("[Context] osascript unavailable: %s", e)

        self._cache = (self._clock(), app)
        return app


class StaticAppInspector:
    """Always reports the same app (or none). For the CLI and tests."""

    def __init__(self, app: Optional[AppIdentity] = None):
        self.app = app

    def current_app(self) -> Optional[AppIdentity]:
        return self.app
