from conftest import FakeServices
from lexicon.models import ChatMessage
from lexicon.story import STORY_FALLBACK_TEXT, StoryComposer, build_story_prompt
from lexicon.tutor import (
    CONNECTION_ERROR_TEXT,
    NO_ANSWER_TEXT,
    TutorSession,
    build_system_instruction,
    greeting_for,
)


# --- Tutor ---

def test_system_instruction_names_word_and_languages(make_entry, profile):
    instruction = build_system_instruction(make_entry("apple"), profile)

    assert '"apple" (meaning of apple)' in instruction
    assert "context of English to a Spanish speaker" in instruction
    assert "Answer in Spanish" in instruction


def test_greeting_mentions_word(make_entry):
    assert '"apple"' in greeting_for(make_entry("apple"))


def test_reply_is_returned_as_model_message(make_entry, profile):
    services = FakeServices(chat_reply="  It means a fruit.  ")
    history = [ChatMessage("user", "hi"), ChatMessage("model", "hello")]

    reply = TutorSession(services).ask("What is it?", make_entry("apple"), history, profile)

    assert reply == ChatMessage(role="model", text="It means a fruit.")
    instruction, sent_history, message = services.chat_requests[0]
    assert sent_history == history
    assert message == "What is it?"


def test_blank_question_sends_nothing(make_entry, profile):
    services = FakeServices()
    assert TutorSession(services).ask("  ", make_entry("apple"), [], profile) is None
    assert services.chat_requests == []


def test_service_error_becomes_connection_message(make_entry, profile):
    services = FakeServices()
    services.chat_error = ConnectionError("offline")

    reply = TutorSession(services).ask("why?", make_entry("apple"), [], profile)
    assert reply.text == CONNECTION_ERROR_TEXT


def test_empty_reply_becomes_apology(make_entry, profile):
    reply = TutorSession(FakeServices(chat_reply="")).ask("why?", make_entry("apple"), [], profile)
    assert reply == ChatMessage(role="model", text=NO_ANSWER_TEXT)


# --- Story ---

def test_story_prompt_lists_every_word():
    prompt = build_story_prompt(["apple", "pear", "plum"], "English", "Spanish")

    assert "apple, pear, plum" in prompt
    assert "story in English" in prompt
    assert "translation in Spanish" in prompt


def test_story_text_is_returned_verbatim():
    services = FakeServices(story="Apple met Pear.\nManzana conoció a Pera.")
    text = StoryComposer(services).compose(["apple", "pear"], "English", "Spanish")

    assert text == "Apple met Pear.\nManzana conoció a Pera."
    assert len(services.story_prompts) == 1


def test_story_failure_returns_fallback():
    services = FakeServices()
    services.story_error = RuntimeError("rate limited")
    assert StoryComposer(services).compose(["a", "b"], "English", "Spanish") == STORY_FALLBACK_TEXT


def test_empty_story_returns_fallback():
    assert StoryComposer(FakeServices(story="")).compose(["a", "b"], "English", "Spanish") == STORY_FALLBACK_TEXT
