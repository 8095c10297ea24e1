from datetime import datetime

import pytest

from promptlab.errors import IncompleteSynthesis
from promptlab.genes.builtin import builtin_genes
from promptlab.genes.gene import Gene, GeneType
from promptlab.genes.store import GeneStore
from promptlab.synthesis.context import ContextSnapshot, Intent
from promptlab.synthesis.selector import GeneSelector
from promptlab.synthesis.synthesizer import SLOT_RULES, PromptSynthesizer, fill_placeholders


def _synth(genes, seed=1337):
    return PromptSynthesizer(GeneSelector(GeneStore(genes), seed=seed))


def _minimal(**extra):
    genes = [
        Gene(id="p", type=GeneType.PERSONA, content="You are an assistant."),
        Gene(id="f", type=GeneType.RESPONSE_FORMAT, content="Use bullets."),
        Gene(id="s", type=GeneType.SAFETY_GUARDRAIL, content="Stay private."),
    ]
    genes.extend(extra.values())
    return genes


# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------

def test_fill_placeholders_substitutes_known_values():
    text, unresolved = fill_placeholders("{a} and {b}", {"a": "1", "b": "2"})
    assert text == "1 and 2"
    assert unresolved == []


def test_fill_placeholders_leaves_unknown_literal():
    text, unresolved = fill_placeholders("{a}, {missing}, {missing}", {"a": "x"})
    assert text == "x, {missing}, {missing}"
    assert unresolved == ["missing"]


def test_context_snapshot_renders_datetimes_and_skips_none():
    ctx = ContextSnapshot.of({"next_meeting_time": datetime(2026, 3, 2, 9, 30)}, event_count=4, note=None)
    assert ctx.as_template_values() == {"next_meeting_time": "09:30", "event_count": "4"}


# ---------------------------------------------------------------------------
# Slot order and requirements
# ---------------------------------------------------------------------------

def test_every_gene_type_has_a_slot_rule():
    assert set(SLOT_RULES) == set(GeneType)


def test_slot_order_with_builtin_pool():
    synth = _synth(builtin_genes())
    prompt = synth.synthesize(Intent("plan_day", "schedule"), ContextSnapshot.of(event_count=3, next_meeting_time="10:00", free_hours=2))
    assert prompt.slot_types == [
        GeneType.PERSONA,
        GeneType.RESPONSE_FORMAT,
        GeneType.DOMAIN_INSTRUCTION,
        GeneType.CONTEXT_TEMPLATE,
        GeneType.EMOTIONAL_TONE,
        GeneType.ERROR_RECOVERY,
        GeneType.SAFETY_GUARDRAIL,
    ]
    assert prompt.genes[2].category == "schedule"
    assert len(prompt.rendered) == len(prompt.genes)
    assert prompt.unresolved_placeholders == []


def test_unslotted_types_never_appear():
    prompt = _synth(builtin_genes()).synthesize(Intent("digest", "summary"))
    for t in (GeneType.EVOLUTION_DIRECTIVE, GeneType.INSIGHT_PATTERN, GeneType.LANGUAGE_MIXING):
        assert t not in prompt.slot_types


def test_optional_slots_skipped_when_empty():
    prompt = _synth(_minimal()).synthesize(Intent("plan_day", "schedule"))
    assert prompt.gene_ids == ["p", "f", "s"]
    assert prompt.to_prompt_text() == "You are an assistant.\n\nUse bullets.\n\nStay private."


def test_domain_instruction_needs_matching_category():
    genes = _minimal(d=Gene(id="d", type=GeneType.DOMAIN_INSTRUCTION, content="Summarise.", category="summary"))
    prompt = _synth(genes).synthesize(Intent("plan_day", "schedule"))
    assert "d" not in prompt.gene_ids


@pytest.mark.parametrize("drop", ["p", "f", "s"])
def test_missing_required_slot_raises(drop):
    genes = [g for g in _minimal() if g.id != drop]
    with pytest.raises(IncompleteSynthesis) as exc:
        _synth(genes).synthesize(Intent("plan_day", "schedule"))
    expected = {"p": "persona", "f": "response_format", "s": "safety_guardrail"}[drop]
    assert exc.value.missing_slots == [expected]
    assert exc.value.intent == "plan_day"


def test_empty_pool_lists_all_required_slots():
    with pytest.raises(IncompleteSynthesis) as exc:
        _synth([]).synthesize(Intent("plan_day", "schedule"))
    assert exc.value.missing_slots == ["persona", "response_format", "safety_guardrail"]


# ---------------------------------------------------------------------------
# Context template filling
# ---------------------------------------------------------------------------

def test_context_template_filled():
    tmpl = Gene(id="c", type=GeneType.CONTEXT_TEMPLATE, content="You have {event_count} events.")
    prompt = _synth(_minimal(c=tmpl)).synthesize(Intent("x", "schedule"), ContextSnapshot.of(event_count=5))
    assert "You have 5 events." in prompt.rendered
    assert prompt.context_values["event_count"] == "5"


def test_unresolved_placeholder_left_literal_and_logged(caplog):
    tmpl = Gene(id="c", type=GeneType.CONTEXT_TEMPLATE, content="Next at {next_meeting_time}.")
    with caplog.at_level("WARNING"):
        prompt = _synth(_minimal(c=tmpl)).synthesize(Intent("x", "schedule"))
    assert "Next at {next_meeting_time}." in prompt.rendered
    assert prompt.unresolved_placeholders == ["next_meeting_time"]
    assert "Unresolved placeholder" in caplog.text


def test_placeholders_outside_context_template_untouched():
    persona = Gene(id="p", type=GeneType.PERSONA, content="Call the user {name}.")
    genes = [persona] + [g for g in _minimal() if g.id != "p"]
    prompt = _synth(genes).synthesize(Intent("x", "schedule"), ContextSnapshot.of(name="Sam"))
    assert prompt.rendered[0] == "Call the user {name}."


def test_synthesis_increments_usage_of_selected_genes():
    store = GeneStore(_minimal())
    synth = PromptSynthesizer(GeneSelector(store, seed=1))
    synth.synthesize(Intent("x", "schedule"))
    synth.synthesize(Intent("x", "schedule"))
    assert [store.get_gene(i).usage_count for i in ("p", "f", "s")] == [2, 2, 2]


def test_failed_synthesis_records_no_usage():
    genes = [g for g in _minimal() if g.id != "s"]
    store = GeneStore(genes)
    synth = PromptSynthesizer(GeneSelector(store, seed=1))
    for _ in range(12):
        with pytest.raises(IncompleteSynthesis):
            synth.synthesize(Intent("x", "schedule"))
    assert [store.get_gene(i).usage_count for i in ("p", "f")] == [0, 0]


def test_returned_genes_carry_updated_usage():
    prompt = _synth(_minimal()).synthesize(Intent("x", "schedule"))
    assert [g.usage_count for g in prompt.genes] == [1, 1, 1]


def test_to_dict_carries_provenance():
    prompt = _synth(_minimal()).synthesize(Intent("plan_day", "Schedule"))
    d = prompt.to_dict()
    assert d["intent"] == {"name": "plan_day", "category": "schedule"}
    assert [g["id"] for g in d["genes"]] == ["p", "f", "s"]
