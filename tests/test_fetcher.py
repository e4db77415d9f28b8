import json

import pytest

from conftest import FakeServices, HELLO_PAYLOAD
from lexicon.api import ImagePart
from lexicon.fetcher import EntryFetcher, build_image_prompt, new_entry_id, select_image_url
from lexicon.models import LookupFailure


def test_lookup_builds_complete_entry(profile):
    services = FakeServices(image_parts=[ImagePart(data=None), ImagePart(data="iVBORw0KGgo=")])
    result = EntryFetcher(services).lookup("hello", profile)

    assert result.ok
    entry = result.entry
    assert entry.word == "hello"
    assert entry.definition == "a greeting"
    assert entry.usage == "casual greeting"
    assert entry.examples[0].target == "Hello!"
    assert entry.examples[0].native == "¡Hola!"
    assert entry.image_url == "data:image/png;base64,iVBORw0KGgo="
    assert (entry.target_lang, entry.native_lang) == ("en", "es")


def test_lookup_without_image_parts(profile):
    services = FakeServices(image_parts=[])
    entry = EntryFetcher(services).lookup("hello", profile).entry

    assert entry.word == "hello"
    assert entry.image_url == ""
    assert entry.definition and entry.usage and entry.examples
    assert len(services.word_prompts) == 1
    assert len(services.image_prompts) == 1


def test_prompts_use_language_names_and_definition(profile):
    services = FakeServices()
    EntryFetcher(services).lookup("hello", profile)

    assert '"hello"' in services.word_prompts[0]
    assert "from English into Spanish" in services.word_prompts[0]
    assert services.image_prompts == [build_image_prompt("hello", "a greeting")]


def test_word_is_the_verbatim_query(profile):
    services = FakeServices(word_json=json.dumps(dict(HELLO_PAYLOAD, word="Hello")))
    entry = EntryFetcher(services).lookup("  hello ", profile).entry

    assert entry.word == "  hello "


@pytest.mark.parametrize("query", ["", "   ", "\n\t"])
def test_blank_query_makes_no_calls(query, profile):
    services = FakeServices()
    result = EntryFetcher(services).lookup(query, profile)

    assert result.failure is LookupFailure.INVALID_QUERY
    assert services.word_prompts == []
    assert services.image_prompts == []


@pytest.mark.parametrize("raw", [
    "not json at all",
    "",
    json.dumps([HELLO_PAYLOAD]),
    json.dumps({k: v for k, v in HELLO_PAYLOAD.items() if k != "usage"}),
    json.dumps(dict(HELLO_PAYLOAD, examples=[])),
])
def test_malformed_response_skips_image(raw, profile):
    services = FakeServices(word_json=raw)
    result = EntryFetcher(services).lookup("hello", profile)

    assert not result.ok
    assert result.failure is LookupFailure.MALFORMED_RESPONSE
    assert services.image_prompts == []


def test_text_service_error_skips_image(profile):
    services = FakeServices()
    services.word_error = ConnectionError("boom")
    result = EntryFetcher(services).lookup("hello", profile)

    assert result.failure is LookupFailure.SERVICE_FAILURE
    assert "boom" in result.detail
    assert services.image_prompts == []


def test_image_failure_still_yields_entry(profile):
    services = FakeServices()
    services.image_error = RuntimeError("quota")
    result = EntryFetcher(services).lookup("hello", profile)

    assert result.ok
    assert result.entry.image_url == ""
    assert not result.entry.has_image


def test_image_response_without_data_yields_no_image(profile):
    services = FakeServices(image_parts=[ImagePart(data=None), ImagePart(data="")])
    assert EntryFetcher(services).lookup("hello", profile).entry.image_url == ""


def test_first_part_with_data_wins():
    parts = [ImagePart(data=None), ImagePart(data="AAA", mime_type="image/jpeg"), ImagePart(data="BBB")]
    assert select_image_url(parts) == "data:image/jpeg;base64,AAA"
    assert select_image_url([]) == ""


def test_entry_ids_are_unique_and_increasing():
    ids = [int(new_entry_id()) for _ in range(50)]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)
