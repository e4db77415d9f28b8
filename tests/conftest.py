import json
from typing import Callable, List, Optional

import pytest

from lexicon.api import ImagePart
from lexicon.config import Settings
from lexicon.models import Example, SetupProfile, WordEntry
from lexicon.notebook import NotebookRepository
from lexicon.storage import LocalStore

HELLO_PAYLOAD = {
    "word": "hello",
    "definition": "a greeting",
    "examples": [{"target": "Hello!", "native": "¡Hola!"}],
    "usage": "casual greeting",
}


class FakeServices:
    """Stands in for LexiconServices; records every call it receives."""

    def __init__(
        self,
        word_json: str = json.dumps(HELLO_PAYLOAD),
        image_parts: Optional[List[ImagePart]] = None,
        speech: bytes = b"",
        chat_reply: str = "Sure!",
        story: str = "Once upon a time...",
    ):
        self.word_json = word_json
        self.image_parts = image_parts if image_parts is not None else []
        self.speech = speech
        self.chat_reply = chat_reply
        self.story = story
        self.available = True

        self.word_error: Optional[Exception] = None
        self.image_error: Optional[Exception] = None
        self.speech_error: Optional[Exception] = None
        self.chat_error: Optional[Exception] = None
        self.story_error: Optional[Exception] = None

        self.word_prompts: List[str] = []
        self.image_prompts: List[str] = []
        self.speech_requests: List[tuple] = []
        self.chat_requests: List[tuple] = []
        self.story_prompts: List[str] = []

    def is_available(self) -> bool:
        return self.available

    def generate_word_json(self, prompt: str) -> str:
        self.word_prompts.append(prompt)
        if self.word_error:
            raise self.word_error
        return self.word_json

    def generate_image(self, prompt: str) -> List[ImagePart]:
        self.image_prompts.append(prompt)
        if self.image_error:
            raise self.image_error
        return self.image_parts

    def synthesize_speech(self, text: str, voice: Optional[str] = None) -> bytes:
        self.speech_requests.append((text, voice))
        if self.speech_error:
            raise self.speech_error
        return self.speech

    def chat(self, system_instruction, history, message) -> str:
        self.chat_requests.append((system_instruction, list(history), message))
        if self.chat_error:
            raise self.chat_error
        return self.chat_reply

    def complete(self, prompt: str, temperature: float = 0.8) -> str:
        self.story_prompts.append(prompt)
        if self.story_error:
            raise self.story_error
        return self.story


class FakeAudioContext:
    instances = 0

    def __init__(self, sample_rate: int, channels: int = 1):
        FakeAudioContext.instances += 1
        self.sample_rate = sample_rate
        self.channels = channels
        self.played = []

    def play(self, buffer) -> None:
        self.played.append(buffer)


class DeferredSpawn:
    """Collects background tasks so tests decide when (and in what order) they finish."""

    def __init__(self):
        self.tasks: List[Callable[[], None]] = []

    def __call__(self, task: Callable[[], None]) -> None:
        self.tasks.append(task)

    def run(self, index: int = 0) -> None:
        self.tasks.pop(index)()

    def run_all(self) -> None:
        while self.tasks:
            self.run()


def run_inline(task: Callable[[], None]) -> None:
    task()


@pytest.fixture(autouse=True)
def _reset_audio_context_count():
    FakeAudioContext.instances = 0


@pytest.fixture
def services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def profile() -> SetupProfile:
    return SetupProfile(native_lang="es", target_lang="en")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(api_key=None, data_dir=tmp_path / "data")


@pytest.fixture
def store(settings) -> LocalStore:
    return LocalStore(settings.data_dir)


@pytest.fixture
def repository(store) -> NotebookRepository:
    return NotebookRepository(store)


@pytest.fixture
def make_entry() -> Callable[..., WordEntry]:
    counter = {"n": 0}

    def _make(word: str, **overrides) -> WordEntry:
        counter["n"] += 1
        fields = dict(
            id=str(1000 + counter["n"]),
            word=word,
            definition=f"meaning of {word}",
            examples=(Example(target=f"{word}!", native=f"¡{word}!"),),
            usage="friendly note",
            target_lang="en",
            native_lang="es",
            image_url="",
        )
        fields.update(overrides)
        return WordEntry(**fields)

    return _make
