"""
Application controller for AI Lexicon.

`AppState` is the single source of truth the UI renders from. The controller
is the only code that mutates it: components compute results, the controller
applies them, persists the notebook and notifies listeners.

Network work runs on daemon threads (`spawn`) and completions are handed back
to the UI thread (`schedule`, Tk's `after(0, ...)` in the app). Each kind of
request carries a sequence number; a completion that is no longer the latest
of its kind is dropped, so the last request always wins.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .api import LexiconServices
from .config import Settings
from .fetcher import EntryFetcher
from .languages import is_supported, language_label
from .logger import logger, Timer
from .models import ChatMessage, LookupFailure, LookupResult, SetupProfile, WordEntry
from .notebook import Notebook, NotebookRepository
from .playback import PlaybackScheduler
from .storage import LocalStore
from .story import MIN_STORY_WORDS, STORY_FALLBACK_TEXT, StoryComposer
from .study import StudyNavigator
from .tutor import CONNECTION_ERROR_TEXT, TutorSession

TABS = ("search", "notebook", "study")

Listener = Callable[["AppState"], None]


class SetupError(ValueError):
    """The chosen language pair is not in the catalog."""


@dataclass
class AppState:
    profile: Optional[SetupProfile] = None
    is_setup: bool = False
    active_tab: str = "search"

    # Search
    query: str = ""
    loading: bool = False
    result: Optional[WordEntry] = None
    last_failure: Optional[LookupFailure] = None

    # Notebook + story
    notebook: Notebook = field(default_factory=Notebook)
    story: Optional[str] = None
    story_loading: bool = False

    # Tutor
    chat_open: bool = False
    chat_history: List[ChatMessage] = field(default_factory=list)
    chat_pending: bool = False

    # Flashcards
    study: StudyNavigator = field(default_factory=lambda: StudyNavigator.start(0))


def _spawn_daemon(target: Callable[[], None]) -> None:
    threading.Thread(target=target, daemon=True).start()


def _run_now(callback: Callable[[], None]) -> None:
    callback()


class LexiconController:
    def __init__(
        self,
        settings: Settings,
        services: LexiconServices,
        repository: NotebookRepository,
        playback: Optional[PlaybackScheduler] = None,
        spawn: Callable[[Callable[[], None]], None] = _spawn_daemon,
        schedule: Callable[[Callable[[], None]], None] = _run_now,
    ):
        self.settings = settings
        self.services = services
        self.repository = repository
        self.fetcher = EntryFetcher(services)
        self.tutor = TutorSession(services)
        self.composer = StoryComposer(services)
        self.playback = playback or PlaybackScheduler(services, settings)
        self.state = AppState()

        self._spawn = spawn
        self._schedule = schedule
        self._listeners: List[Listener] = []
        self._sequence: Dict[str, int] = {"lookup": 0, "chat": 0, "story": 0}

        self._hydrate()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        schedule: Callable[[Callable[[], None]], None] = _run_now,
    ) -> "LexiconController":
        services = LexiconServices(settings)
        repository = NotebookRepository(LocalStore(settings.data_dir))
        return cls(settings, services, repository, schedule=schedule)

    @property
    def services_available(self) -> bool:
        """False when no API key is configured; network features cannot work."""
        return self.services.is_available()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)

    def _next_seq(self, kind: str) -> int:
        self._sequence[kind] += 1
        return self._sequence[kind]

    def _is_current(self, kind: str, seq: int) -> bool:
        if self._sequence[kind] != seq:
            logger.debug(f"Discarding stale {kind} response #{seq} (latest #{self._sequence[kind]})")
            return False
        return True

    def _run_in_background(
        self,
        name: str,
        work: Callable[[], Any],
        on_done: Callable[[Any], None],
        fallback: Any,
    ) -> None:
        """
        Run `work` via spawn, then deliver its result through schedule.
        An unexpected exception delivers `fallback` so no loading flag sticks.
        """
        def _task() -> None:
            logger.task_start(name)
            try:
                with Timer() as timer:
                    result = work()
                logger.task_complete(name, duration_ms=timer.duration_ms)
            except Exception as e:
                logger.task_error(name, str(e), exc_info=True)
                result = fallback
            self._schedule(lambda: on_done(result))

        self._spawn(_task)

    def _hydrate(self) -> None:
        self.state.notebook = self.repository.load()
        self.state.study = StudyNavigator.start(len(self.state.notebook))

        profile = self.repository.load_profile()
        if profile and is_supported(profile.native_lang) and is_supported(profile.target_lang):
            self.state.profile = profile
            self.state.is_setup = True
            logger.ui(f"Restored setup: {profile.native_lang} → {profile.target_lang}")
        else:
            logger.ui("No setup found, onboarding required")

    def _commit_notebook(self, notebook: Notebook) -> None:
        self.state.notebook = notebook
        self.state.study = self.state.study.resized(len(notebook))
        try:
            self.repository.save(notebook)
        except OSError as e:
            logger.error(f"[DB] Could not persist notebook: {e}")
        self._notify()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def complete_setup(self, native_lang: str, target_lang: str) -> SetupProfile:
        if not is_supported(native_lang) or not is_supported(target_lang):
            raise SetupError(f"Unsupported language pair: {native_lang!r} → {target_lang!r}")

        profile = SetupProfile(native_lang=native_lang, target_lang=target_lang)
        try:
            self.repository.save_profile(profile)
        except OSError as e:
            logger.error(f"[DB] Could not persist setup: {e}")
        self.state.profile = profile
        self.state.is_setup = True
        logger.ui_transition("setup", "search")
        self._notify()
        return profile

    def reopen_setup(self) -> None:
        """Return to onboarding; the notebook and stored profile are kept."""
        self.state.is_setup = False
        logger.ui_transition("search", "setup")
        self._notify()

    def set_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab!r}")
        logger.ui_transition(self.state.active_tab, tab)
        self.state.active_tab = tab
        if tab == "study":
            self.start_study()
            return
        self._notify()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def set_query(self, query: str) -> None:
        self.state.query = query

    def lookup(self, query: Optional[str] = None) -> bool:
        """Start a lookup. Returns False if nothing was requested."""
        query = self.state.query if query is None else query
        profile = self.state.profile
        if profile is None:
            logger.warning("Lookup ignored: setup not completed")
            return False
        if not query.strip():
            return False

        seq = self._next_seq("lookup")
        self._next_seq("chat")
        self.state.query = query
        self.state.loading = True
        self.state.result = None
        self.state.last_failure = None
        self.state.chat_history = []
        self.state.chat_pending = False
        self.state.chat_open = False
        self._notify()

        self._run_in_background(
            f"lookup #{seq}",
            lambda: self.fetcher.lookup(query, profile),
            lambda result: self._on_lookup_done(seq, result),
            LookupResult.failed(LookupFailure.SERVICE_FAILURE, "lookup crashed"),
        )
        return True

    def _on_lookup_done(self, seq: int, result: LookupResult) -> None:
        if not self._is_current("lookup", seq):
            return
        self.state.loading = False
        if result.ok:
            self.state.result = result.entry
        else:
            self.state.last_failure = result.failure
            logger.warning(f"Lookup produced no entry: {result.failure.value} {result.detail}")
        self._notify()

    # ------------------------------------------------------------------
    # Notebook
    # ------------------------------------------------------------------

    def is_saved(self, word: str) -> bool:
        return self.state.notebook.contains(word)

    def toggle_save(self) -> None:
        entry = self.state.result
        if entry is None:
            return
        self._commit_notebook(self.state.notebook.toggle(entry))

    def remove_entry(self, entry_id: str) -> None:
        self._commit_notebook(self.state.notebook.remove(entry_id))

    def open_entry(self, entry_id: str) -> None:
        """Show a saved entry on the search tab with a fresh tutor transcript."""
        entry = self.state.notebook.get(entry_id)
        if entry is None:
            return
        self._next_seq("chat")
        self.state.result = entry
        self.state.last_failure = None
        self.state.chat_history = []
        self.state.chat_pending = False
        self.state.active_tab = "search"
        self._notify()

    # ------------------------------------------------------------------
    # Story
    # ------------------------------------------------------------------

    def can_compose_story(self) -> bool:
        return len(self.state.notebook) >= MIN_STORY_WORDS

    def generate_story(self) -> bool:
        if not self.can_compose_story() or self.state.profile is None:
            logger.debug(f"Story needs at least {MIN_STORY_WORDS} saved words")
            return False

        seq = self._next_seq("story")
        words = self.state.notebook.words()
        target_label = language_label(self.state.profile.target_lang)
        native_label = language_label(self.state.profile.native_lang)
        self.state.story_loading = True
        self._notify()

        self._run_in_background(
            f"story #{seq}",
            lambda: self.composer.compose(words, target_label, native_label),
            lambda story: self._on_story_done(seq, story),
            STORY_FALLBACK_TEXT,
        )
        return True

    def _on_story_done(self, seq: int, story: str) -> None:
        if not self._is_current("story", seq):
            return
        self.state.story_loading = False
        self.state.story = story
        self._notify()

    def dismiss_story(self) -> None:
        self.state.story = None
        self._notify()

    # ------------------------------------------------------------------
    # Tutor
    # ------------------------------------------------------------------

    def open_chat(self) -> None:
        if self.state.result is not None:
            self.state.chat_open = True
            self._notify()

    def close_chat(self) -> None:
        self.state.chat_open = False
        self._notify()

    def send_chat(self, text: str) -> bool:
        entry = self.state.result
        profile = self.state.profile
        if entry is None or profile is None or not text.strip():
            return False

        seq = self._next_seq("chat")
        prior_turns = list(self.state.chat_history)
        self.state.chat_history.append(ChatMessage(role="user", text=text))
        self.state.chat_pending = True
        self._notify()

        self._run_in_background(
            f"tutor turn #{seq}",
            lambda: self.tutor.ask(text, entry, prior_turns, profile),
            lambda reply: self._on_chat_done(seq, reply),
            ChatMessage(role="model", text=CONNECTION_ERROR_TEXT),
        )
        return True

    def _on_chat_done(self, seq: int, reply: Optional[ChatMessage]) -> None:
        if not self._is_current("chat", seq):
            return
        self.state.chat_pending = False
        if reply is not None:
            self.state.chat_history.append(reply)
        self._notify()

    # ------------------------------------------------------------------
    # Flashcards
    # ------------------------------------------------------------------

    def start_study(self) -> None:
        """Restart flashcards at the first card, face up."""
        self.state.study = StudyNavigator.start(len(self.state.notebook))
        self._notify()

    def current_card(self) -> Optional[WordEntry]:
        study = self.state.study
        if not study.has_cards:
            return None
        return self.state.notebook[study.index]

    def _move(self, step: Callable[[StudyNavigator], StudyNavigator]) -> None:
        if not self.state.study.has_cards:
            return
        self.state.study = step(self.state.study)
        self._notify()

    def next_card(self) -> None:
        self._move(StudyNavigator.next)

    def previous_card(self) -> None:
        self._move(StudyNavigator.previous)

    def flip_card(self) -> None:
        self._move(StudyNavigator.flip)

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    def speak(self, text: str) -> None:
        self.playback.speak(text, self.settings.tts_voice)

    def speak_reply(self, index: int) -> bool:
        """Read a tutor reply aloud; user lines and stale indexes are ignored."""
        history = self.state.chat_history
        if not 0 <= index < len(history) or history[index].role != "model":
            return False
        self.speak(history[index].text)
        return True
