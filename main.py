"""
AI Lexicon - Tkinter desktop app

Flow:
1. Setup card: pick native + target language (stored, re-enterable).
2. Search: look up a word/phrase, get definition, examples, usage note and an
   illustration; listen to it, save it, ask the tutor about it.
3. Notebook: saved entries, reopen or delete them, generate a story from them.
4. Study: flashcards over the notebook.

Setup (from repo root):

    python -m venv .venv
    source .venv/bin/activate   # or .venv\\Scripts\\activate on Windows
    pip install -e .

Ensure .env contains:
    OPENAI_API_KEY=sk-...

Then run:
    python main.py
"""

import tkinter as tk
from tkinter import messagebox, ttk
from typing import Callable, Dict, List, Optional

from PIL import ImageTk

from lexicon.config import Settings
from lexicon.controller import AppState, LexiconController, SetupError
from lexicon.languages import LANGUAGES, find_language
from lexicon.images import load_image
from lexicon.logger import logger
from lexicon.models import WordEntry
from lexicon.tutor import greeting_for

BG = "#1e1e1e"
PANEL = "#2d2d2d"
ACCENT = "#7b8cff"
TEXT = "#e0e0e0"
MUTED = "#9a9a9a"
SAVED = "#ff5fa2"

LANGUAGE_CHOICES = [lang.display for lang in LANGUAGES]


def _code_for_display(display: str) -> Optional[str]:
    for lang in LANGUAGES:
        if lang.display == display:
            return lang.code
    return None


def _wrapped(parent, text: str = "", size: int = 13, color: str = TEXT, bold: bool = False, **kwargs) -> ttk.Label:
    font = ("Helvetica", size, "bold") if bold else ("Helvetica", size)
    return ttk.Label(parent, text=text, font=font, foreground=color, wraplength=560, justify="left", **kwargs)


# ---------------------------------------------------------------------------
# Scrollable Frame Widget
# ---------------------------------------------------------------------------

class ScrollableFrame(ttk.Frame):
    """A vertically scrollable container; children go into `.content`."""

    def __init__(self, parent, **kwargs) -> None:
        super().__init__(parent, **kwargs)
        self.canvas = tk.Canvas(self, background=BG, highlightthickness=0, borderwidth=0)
        self.scrollbar = ttk.Scrollbar(self, orient="vertical", command=self.canvas.yview)
        self.content = ttk.Frame(self.canvas)

        self.content.bind("<Configure>", lambda e: self.canvas.configure(scrollregion=self.canvas.bbox("all")))
        self._window = self.canvas.create_window((0, 0), window=self.content, anchor="nw")
        self.canvas.bind("<Configure>", lambda e: self.canvas.itemconfigure(self._window, width=e.width))
        self.canvas.configure(yscrollcommand=self.scrollbar.set)

        self.canvas.pack(side="left", fill="both", expand=True)
        self.scrollbar.pack(side="right", fill="y")

    def scroll_to_top(self) -> None:
        self.canvas.yview_moveto(0)


def _clear(frame: tk.Widget) -> None:
    for child in frame.winfo_children():
        child.destroy()


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

class LexiconApp(tk.Tk):
    def __init__(self, settings: Settings) -> None:
        super().__init__()
        logger.ui("Initializing LexiconApp window...")

        self.title("AI Lexicon")
        window_width, window_height = 640, 820
        center_x = int(self.winfo_screenwidth() / 2 - window_width / 2)
        center_y = int(self.winfo_screenheight() / 2 - window_height / 2)
        self.geometry(f"{window_width}x{window_height}+{center_x}+{center_y}")
        self.minsize(420, 500)
        self.configure(bg=BG)

        style = ttk.Style()
        style.theme_use("clam")
        style.configure("TFrame", background=BG)
        style.configure("Panel.TFrame", background=PANEL)
        style.configure("TLabel", background=BG, foreground=TEXT, font=("Helvetica", 13))
        style.configure("Panel.TLabel", background=PANEL, foreground=TEXT)
        style.configure("TButton", background=PANEL, foreground=TEXT, font=("Helvetica", 12))
        style.map("TButton", background=[("active", "#3d3d3d")])
        style.configure("Accent.TButton", background=ACCENT, foreground="#ffffff")
        style.configure("Saved.TButton", background=SAVED, foreground="#ffffff")
        style.configure("Tab.TButton", background=BG, foreground=MUTED)
        style.configure("ActiveTab.TButton", background=BG, foreground=ACCENT)
        style.configure("TCombobox", fieldbackground="#3d3d3d", background=PANEL, foreground="#ffffff")

        # Completions from worker threads are applied on the Tk thread
        self.controller = LexiconController.from_settings(settings, schedule=lambda fn: self.after(0, fn))

        self.container = container = ttk.Frame(self)
        container.pack(fill="both", expand=True)
        container.rowconfigure(0, weight=1)
        container.columnconfigure(0, weight=1)

        self.cards: Dict[str, ttk.Frame] = {}
        for name, card_class in (("setup", SetupCard), ("search", SearchCard),
                                 ("notebook", NotebookCard), ("study", StudyCard)):
            card = card_class(parent=container, app=self)
            card.grid(row=0, column=0, sticky="nsew")
            self.cards[name] = card

        self.nav = NavBar(self, app=self)
        self.tutor_window: Optional[TutorWindow] = None

        self.controller.subscribe(self.render)
        self.render(self.controller.state)
        logger.ui("Application initialized successfully")

    def render(self, state: AppState) -> None:
        if not state.is_setup:
            self.nav.pack_forget()
            self.cards["setup"].render(state)
            self.cards["setup"].tkraise()
            return

        self.nav.pack(side="bottom", fill="x", before=self.container)
        self.nav.render(state)
        card = self.cards[state.active_tab]
        card.render(state)
        card.tkraise()
        self._sync_tutor_window(state)

    def _sync_tutor_window(self, state: AppState) -> None:
        wants_window = state.chat_open and state.result is not None
        if wants_window and self.tutor_window is None:
            self.tutor_window = TutorWindow(self, app=self)
        if self.tutor_window is not None:
            if wants_window:
                self.tutor_window.render(state)
            else:
                self.tutor_window.destroy()
                self.tutor_window = None

    def get_photo(self, entry: WordEntry, max_size) -> Optional[ImageTk.PhotoImage]:
        image = load_image(entry.image_url, max_size=max_size)
        return ImageTk.PhotoImage(image) if image else None


class NavBar(ttk.Frame):
    def __init__(self, parent, app: LexiconApp) -> None:
        super().__init__(parent)
        self.app = app
        self.buttons: Dict[str, ttk.Button] = {}
        for tab, label in (("search", "🔍 Search"), ("notebook", "📒 Notebook"), ("study", "🧠 Study")):
            button = ttk.Button(self, text=label, command=lambda t=tab: app.controller.set_tab(t))
            button.pack(side="left", expand=True, fill="x", padx=4, pady=6)
            self.buttons[tab] = button
        ttk.Button(self, text="⚙", width=3, command=app.controller.reopen_setup).pack(side="right", padx=4)

    def render(self, state: AppState) -> None:
        for tab, button in self.buttons.items():
            button.configure(style="ActiveTab.TButton" if tab == state.active_tab else "Tab.TButton")


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

class SetupCard(ttk.Frame):
    def __init__(self, parent, app: LexiconApp) -> None:
        super().__init__(parent)
        self.app = app
        self.columnconfigure(0, weight=1)

        ttk.Label(self, text="AI Lexicon", font=("Helvetica", 28, "bold"), foreground="#ffffff").grid(
            row=0, column=0, pady=(60, 8))
        ttk.Label(self, text="Personalized, visual, and fast learning.", foreground=MUTED).grid(
            row=1, column=0, pady=(0, 30))

        ttk.Label(self, text="Native Language").grid(row=2, column=0)
        self.native_var = tk.StringVar()
        self.native_combo = ttk.Combobox(self, textvariable=self.native_var, values=LANGUAGE_CHOICES,
                                         state="readonly", width=24)
        self.native_combo.grid(row=3, column=0, pady=(4, 16))

        ttk.Label(self, text="⇅", foreground=MUTED).grid(row=4, column=0)

        ttk.Label(self, text="Target Language").grid(row=5, column=0)
        self.target_var = tk.StringVar()
        self.target_combo = ttk.Combobox(self, textvariable=self.target_var, values=LANGUAGE_CHOICES,
                                         state="readonly", width=24)
        self.target_combo.grid(row=6, column=0, pady=(4, 24))

        self.start_button = ttk.Button(self, text="Start Learning", style="Accent.TButton",
                                       command=self._on_start_clicked)
        self.start_button.grid(row=7, column=0, ipadx=20, ipady=6)

        for combo in (self.native_combo, self.target_combo):
            combo.bind("<<ComboboxSelected>>", lambda e: self._update_button())

    def render(self, state: AppState) -> None:
        if state.profile and not self.native_var.get():
            native = find_language(state.profile.native_lang)
            target = find_language(state.profile.target_lang)
            self.native_var.set(native.display if native else "")
            self.target_var.set(target.display if target else "")
        self._update_button()

    def _update_button(self) -> None:
        ready = bool(self.native_var.get() and self.target_var.get())
        self.start_button.state(["!disabled"] if ready else ["disabled"])

    def _on_start_clicked(self) -> None:
        native = _code_for_display(self.native_var.get())
        target = _code_for_display(self.target_var.get())
        if not native or not target:
            return
        try:
            self.app.controller.complete_setup(native, target)
        except SetupError as e:
            messagebox.showerror("AI Lexicon", str(e))


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class SearchCard(ttk.Frame):
    IMAGE_SIZE = (520, 300)

    def __init__(self, parent, app: LexiconApp) -> None:
        super().__init__(parent)
        self.app = app
        self._photo: Optional[ImageTk.PhotoImage] = None
        self._rendered_entry_id: Optional[str] = None

        bar = ttk.Frame(self)
        bar.pack(fill="x", padx=16, pady=(16, 8))
        self.query_var = tk.StringVar()
        entry = ttk.Entry(bar, textvariable=self.query_var, font=("Helvetica", 14))
        entry.pack(side="left", fill="x", expand=True)
        entry.bind("<Return>", lambda e: self._on_search())
        self.search_button = ttk.Button(bar, text="Search", style="Accent.TButton", command=self._on_search)
        self.search_button.pack(side="left", padx=(8, 0))

        self.status_label = ttk.Label(self, text="Search for anything to begin.", foreground=MUTED)
        self.status_label.pack(pady=4)

        self.scrollable = ScrollableFrame(self)
        self.scrollable.pack(fill="both", expand=True, padx=16)
        self.body = self.scrollable.content

    def _on_search(self) -> None:
        controller = self.app.controller
        if not controller.services_available:
            return
        controller.set_query(self.query_var.get())
        controller.lookup()

    def render(self, state: AppState) -> None:
        available = self.app.controller.services_available
        self.search_button.state(["!disabled"] if available else ["disabled"])
        if not available:
            self.status_label.configure(text="Add OPENAI_API_KEY to .env to enable lookups.")
        elif state.loading:
            self.status_label.configure(text="⏳ Consulting the linguistic spirits...")
        elif state.last_failure is not None:
            self.status_label.configure(text="Couldn't look that up. Try again.")
        elif state.result is None:
            self.status_label.configure(text="Search for anything to begin.")
        else:
            self.status_label.configure(text="")

        if state.result is None:
            _clear(self.body)
            self._rendered_entry_id = None
            return
        if state.result.id != self._rendered_entry_id:
            self._render_entry(state.result)
            self._rendered_entry_id = state.result.id
            self.scrollable.scroll_to_top()
        self._update_save_button(state)

    def _render_entry(self, entry: WordEntry) -> None:
        _clear(self.body)
        controller = self.app.controller

        header = ttk.Frame(self.body)
        header.pack(fill="x", pady=(8, 4))
        _wrapped(header, entry.word, size=24, color="#ffffff", bold=True).pack(side="left")
        self.save_button = ttk.Button(header, text="☆ Save", width=8, command=controller.toggle_save)
        self.save_button.pack(side="right")
        ttk.Button(header, text="🔊", width=3, command=lambda: controller.speak(entry.word)).pack(side="right", padx=4)

        _wrapped(self.body, entry.definition, size=15, color=ACCENT).pack(anchor="w", pady=(0, 10))

        self._photo = self.app.get_photo(entry, self.IMAGE_SIZE)
        if self._photo is not None:
            ttk.Label(self.body, image=self._photo).pack(pady=6)

        _wrapped(self.body, "✨ Usage & Vibes", bold=True).pack(anchor="w", pady=(10, 2))
        _wrapped(self.body, f"“{entry.usage}”", color="#c8c8ff").pack(anchor="w")

        _wrapped(self.body, "Examples", bold=True).pack(anchor="w", pady=(14, 2))
        for example in entry.examples:
            row = ttk.Frame(self.body, style="Panel.TFrame", padding=10)
            row.pack(fill="x", pady=4)
            top = ttk.Frame(row, style="Panel.TFrame")
            top.pack(fill="x")
            _wrapped(top, example.target, style="Panel.TLabel").pack(side="left")
            ttk.Button(top, text="🔊", width=3,
                       command=lambda text=example.target: controller.speak(text)).pack(side="right")
            _wrapped(row, example.native, size=11, color=MUTED, style="Panel.TLabel").pack(anchor="w")

        ttk.Button(self.body, text="💬 Ask AI Tutor about this word", style="Accent.TButton",
                   command=controller.open_chat).pack(fill="x", pady=16)

    def _update_save_button(self, state: AppState) -> None:
        saved = self.app.controller.is_saved(state.result.word)
        self.save_button.configure(text="★ Saved" if saved else "☆ Save",
                                   style="Saved.TButton" if saved else "TButton")


# ---------------------------------------------------------------------------
# Notebook
# ---------------------------------------------------------------------------

class NotebookCard(ttk.Frame):
    THUMB_SIZE = (48, 48)

    def __init__(self, parent, app: LexiconApp) -> None:
        super().__init__(parent)
        self.app = app
        self._thumbs: List[ImageTk.PhotoImage] = []

        ttk.Label(self, text="My Notebook", font=("Helvetica", 22, "bold")).pack(anchor="w", padx=16, pady=(16, 8))
        self.story_button = ttk.Button(self, text="✨ Tell a Story", style="Accent.TButton",
                                       command=app.controller.generate_story)
        self.story_button.pack(fill="x", padx=16)

        self.story_frame = ttk.Frame(self, style="Panel.TFrame", padding=12)
        self.story_label = _wrapped(self.story_frame, style="Panel.TLabel")
        self.story_label.pack(side="left", fill="x", expand=True)
        ttk.Button(self.story_frame, text="✕", width=2, command=app.controller.dismiss_story).pack(side="right", anchor="n")

        self.scrollable = ScrollableFrame(self)
        self.scrollable.pack(fill="both", expand=True, padx=16, pady=8)
        self.list_frame = self.scrollable.content

    def render(self, state: AppState) -> None:
        controller = self.app.controller
        enough = controller.services_available and controller.can_compose_story() and not state.story_loading
        self.story_button.state(["!disabled"] if enough else ["disabled"])
        self.story_button.configure(text="⏳ Writing..." if state.story_loading else "✨ Tell a Story")

        if state.story:
            self.story_label.configure(text=state.story)
            self.story_frame.pack(fill="x", padx=16, pady=8, before=self.scrollable)
        else:
            self.story_frame.pack_forget()

        _clear(self.list_frame)
        self._thumbs = []
        if not len(state.notebook):
            _wrapped(self.list_frame, "Notebook is empty. Save some words!", color=MUTED).pack(pady=40)
            return

        for entry in state.notebook:
            self._render_row(entry)

    def _render_row(self, entry: WordEntry) -> None:
        controller = self.app.controller
        row = ttk.Frame(self.list_frame, style="Panel.TFrame", padding=8)
        row.pack(fill="x", pady=3)

        thumb = self.app.get_photo(entry, self.THUMB_SIZE)
        if thumb is not None:
            self._thumbs.append(thumb)
            ttk.Label(row, image=thumb, style="Panel.TLabel").pack(side="left", padx=(0, 8))

        text = ttk.Frame(row, style="Panel.TFrame")
        text.pack(side="left", fill="x", expand=True)
        _wrapped(text, entry.word, bold=True, style="Panel.TLabel").pack(anchor="w")
        _wrapped(text, entry.definition, size=10, color=MUTED, style="Panel.TLabel").pack(anchor="w")

        ttk.Button(row, text="✕", width=2,
                   command=lambda: controller.remove_entry(entry.id)).pack(side="right")
        ttk.Button(row, text="🔍", width=3,
                   command=lambda: controller.open_entry(entry.id)).pack(side="right", padx=4)


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------

class StudyCard(ttk.Frame):
    IMAGE_SIZE = (420, 260)

    def __init__(self, parent, app: LexiconApp) -> None:
        super().__init__(parent)
        self.app = app
        self._photo: Optional[ImageTk.PhotoImage] = None

        ttk.Label(self, text="Training Zone", font=("Helvetica", 22, "bold")).pack(anchor="w", padx=16, pady=(16, 4))
        self.position_label = ttk.Label(self, foreground=ACCENT, font=("Helvetica", 12, "bold"))
        self.position_label.pack(pady=4)

        self.card = ttk.Frame(self, style="Panel.TFrame", padding=20)
        self.card.pack(fill="both", expand=True, padx=24, pady=8)

        nav = ttk.Frame(self)
        nav.pack(fill="x", padx=24, pady=(0, 16))
        self.prev_button = ttk.Button(nav, text="Previous", command=app.controller.previous_card)
        self.prev_button.pack(side="left", expand=True, fill="x", padx=(0, 6))
        self.next_button = ttk.Button(nav, text="Next", style="Accent.TButton", command=app.controller.next_card)
        self.next_button.pack(side="left", expand=True, fill="x", padx=(6, 0))

    def render(self, state: AppState) -> None:
        _clear(self.card)
        entry = self.app.controller.current_card()
        study = state.study
        if entry is None:
            self.position_label.configure(text="")
            _wrapped(self.card, "Save at least one word to start flashcards.", color=MUTED,
                     style="Panel.TLabel").pack(pady=60)
            self.prev_button.state(["disabled"])
            self.next_button.state(["disabled"])
            return

        self.position_label.configure(text=f"Training {study.position_label}")
        self.prev_button.state(["!disabled"] if study.can_go_previous else ["disabled"])
        self.next_button.state(["!disabled"] if study.can_go_next else ["disabled"])

        if study.flipped:
            self._render_back(entry)
        else:
            self._render_front(entry)

        flip: Callable = lambda e: self.app.controller.flip_card()
        self.card.bind("<Button-1>", flip)
        for child in self.card.winfo_children():
            if not isinstance(child, ttk.Button):
                child.bind("<Button-1>", flip)

    def _render_front(self, entry: WordEntry) -> None:
        self._photo = self.app.get_photo(entry, self.IMAGE_SIZE)
        if self._photo is not None:
            ttk.Label(self.card, image=self._photo, style="Panel.TLabel").pack(pady=(0, 12))
        _wrapped(self.card, entry.word, size=30, bold=True, color="#ffffff", style="Panel.TLabel").pack()
        _wrapped(self.card, "Click to reveal", color=ACCENT, style="Panel.TLabel").pack(pady=12)

    def _render_back(self, entry: WordEntry) -> None:
        _wrapped(self.card, entry.definition, size=20, bold=True, style="Panel.TLabel").pack(pady=(0, 12))
        _wrapped(self.card, f"“{entry.usage}”", color="#c8c8ff", style="Panel.TLabel").pack(pady=6)
        example = entry.first_example
        if example is not None:
            _wrapped(self.card, "Example:", size=11, color=MUTED, style="Panel.TLabel").pack(anchor="w", pady=(12, 0))
            _wrapped(self.card, example.target, style="Panel.TLabel").pack(anchor="w")
            _wrapped(self.card, example.native, size=11, color=MUTED, style="Panel.TLabel").pack(anchor="w")
        ttk.Button(self.card, text="🔊", width=3,
                   command=lambda: self.app.controller.speak(entry.word)).pack(pady=16)


# ---------------------------------------------------------------------------
# Tutor
# ---------------------------------------------------------------------------

class TutorWindow(tk.Toplevel):
    def __init__(self, parent, app: LexiconApp) -> None:
        super().__init__(parent)
        self.app = app
        self.title("AI Tutor")
        self.geometry("480x600")
        self.configure(bg=BG)
        self.protocol("WM_DELETE_WINDOW", app.controller.close_chat)

        self.header = ttk.Label(self, font=("Helvetica", 13, "bold"))
        self.header.pack(anchor="w", padx=12, pady=(12, 4))

        self.transcript = tk.Text(self, wrap="word", background=PANEL, foreground=TEXT,
                                  font=("Helvetica", 12), relief="flat", padx=10, pady=10)
        self.transcript.tag_configure("user", foreground=ACCENT, justify="right")
        self.transcript.tag_configure("model", foreground=TEXT)
        self._speak_buttons: List[ttk.Button] = []
        self.transcript.pack(fill="both", expand=True, padx=12)

        bar = ttk.Frame(self)
        bar.pack(fill="x", padx=12, pady=12)
        self.input_var = tk.StringVar()
        entry = ttk.Entry(bar, textvariable=self.input_var)
        entry.pack(side="left", fill="x", expand=True)
        entry.bind("<Return>", lambda e: self._on_send())
        ttk.Button(bar, text="Send", style="Accent.TButton", command=self._on_send).pack(side="left", padx=(8, 0))
        entry.focus_set()

    def _on_send(self) -> None:
        if self.app.controller.send_chat(self.input_var.get()):
            self.input_var.set("")

    def render(self, state: AppState) -> None:
        entry = state.result
        self.header.configure(text=f'🧠 Discussing "{entry.word}"')
        self.transcript.configure(state="normal")
        self.transcript.delete("1.0", "end")
        for button in self._speak_buttons:
            button.destroy()
        self._speak_buttons = []

        self.transcript.insert("end", greeting_for(entry) + "\n\n", "model")
        for index, message in enumerate(state.chat_history):
            self.transcript.insert("end", message.text, message.role)
            if message.role == "model":
                self._add_speak_button(index)
            self.transcript.insert("end", "\n\n", message.role)
        if state.chat_pending:
            self.transcript.insert("end", "…\n", "model")
        self.transcript.configure(state="disabled")
        self.transcript.see("end")

    def _add_speak_button(self, index: int) -> None:
        button = ttk.Button(self.transcript, text="🔊", width=3,
                            command=lambda: self.app.controller.speak_reply(index))
        self.transcript.insert("end", " ")
        self.transcript.window_create("end", window=button)
        self._speak_buttons.append(button)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    logger.banner("AI Lexicon - Starting Application")
    settings = Settings.from_env()
    app = LexiconApp(settings)
    logger.success("Application window created, entering main loop")
    app.mainloop()
    logger.separator("Application Closed")


if __name__ == "__main__":
    main()
