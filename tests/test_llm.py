from types import SimpleNamespace

import pytest

from tastetrip import llm
from tastetrip.llm import LLMExtractionError, extract_json, llm_enrich_destinations


class _FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def _fake_client(content):
    completions = _FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_extract_json_finds_object_inside_prose():
    text = 'Sure! Here you go:\n```json\n{"destinations": {"Bali": {"bestMonths": ["May"]}}}\n```'

    assert extract_json(text) == {"destinations": {"Bali": {"bestMonths": ["May"]}}}


def test_extract_json_accepts_arrays():
    assert extract_json('Result: ["Lisbon", "Porto"]') == ["Lisbon", "Porto"]


@pytest.mark.parametrize("text", ["", "no json here", "{broken: json"])
def test_extract_json_raises_recoverable_error(text):
    with pytest.raises(LLMExtractionError):
        extract_json(text)


def test_enrichment_without_client_returns_empty(monkeypatch):
    monkeypatch.setattr(llm, "_client", None)

    assert llm_enrich_destinations(["Bali"], {"themes": ["food"]}) == {}


def test_enrichment_normalises_model_payload(monkeypatch):
    client, completions = _fake_client(
        '{"destinations": {"Bali": {"bestMonths": ["April-May", 7], "highlights": ["Rice terraces"]},'
        ' "Lisbon": "not a dict"}}'
    )
    monkeypatch.setattr(llm, "_client", client)

    result = llm_enrich_destinations(["Bali", "Lisbon"], {"themes": ["food"], "travel_style": "budget"})

    assert result == {"Bali": {"bestMonths": ["April-May"], "highlights": ["Rice terraces"]}}
    prompt = completions.calls[0]["messages"][1]["content"]
    assert "Bali, Lisbon" in prompt
    assert "budget" in prompt


def test_enrichment_ignores_unparseable_answer(monkeypatch):
    client, _ = _fake_client("I cannot help with that.")
    monkeypatch.setattr(llm, "_client", client)

    assert llm_enrich_destinations(["Bali"], {}) == {}


def test_generate_json_requires_client(monkeypatch):
    monkeypatch.setattr(llm, "_client", None)

    with pytest.raises(RuntimeError):
        llm.generate_json("hello")
