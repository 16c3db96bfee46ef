from types import SimpleNamespace

import pytest

from voice_builder.errors import SynthesisFailed
from voice_builder.models.interview_state import Answer
from voice_builder.prompts import template_catalog as catalog
from voice_builder.services.ai_service import GeminiTemplateWriter, build_template_prompt
from voice_builder.services.template_generator import (
    DeterministicTemplateStrategy,
    GenerativeTemplateStrategy,
    TemplateGenerator,
    answers_from_responses,
)

from conftest import ANSWERS


@pytest.fixture
def strategy():
    return DeterministicTemplateStrategy()


def _responses(answers):
    return {i: text for i, text in enumerate(answers)}


def test_same_answers_give_identical_output():
    gen = TemplateGenerator()
    first = gen.generate(_responses(ANSWERS))
    second = gen.generate(_responses(ANSWERS))
    assert first.formatted_template == second.formatted_template
    assert first.template.to_dict() == second.template.to_dict()


def test_background_comes_from_first_and_fourth_answers(strategy):
    template = strategy.generate(ANSWERS).template
    assert template.background.role == ANSWERS[0]
    assert template.background.expertise == ANSWERS[0]
    assert template.background.target_audience == (
        "high schoolers **[Add more context about their needs/situation]**"
    )
    assert template.background.success_criteria == ANSWERS[3]
    assert template.recommendations.app_name == ANSWERS[0]


def test_expertise_keyword_takes_preceding_words(strategy):
    assert strategy.extract_expertise("A friendly writing coach for teens") == "friendly writing coach"


def test_audience_long_enough_is_kept_as_is(strategy):
    assert strategy.extract_audience("A planner for new middle school teachers") == "new middle school teachers"


def test_workflow_splits_journey_into_sentences(strategy):
    steps = strategy.generate(ANSWERS).template.workflow
    assert [s.step_number for s in steps] == [1, 2, 3, 4]
    assert steps[0].description == "Students pick a topic"
    assert steps[1].description == "Then the app asks a warm-up question"
    assert steps[3].description == "Finally it gives practice problems"


def test_workflow_keeps_at_most_five_steps(strategy):
    journey = "One. Two. Three. Four. Five. Six. Seven"
    assert len(strategy.workflow(journey)) == 5


def test_tone_style_and_structure(strategy):
    rules = strategy.generate(ANSWERS).template.conversation_rules
    assert rules.tone == "Friendly"
    assert rules.style == "Question-driven dialogue"
    assert rules.structure == list(catalog.CONVERSATION_RULE_TEMPLATES["supportive"])


def test_direct_tone_uses_efficient_structure(strategy):
    rules = strategy.conversation_rules("Keep it direct")
    assert rules.tone == "Direct"
    assert rules.structure == list(catalog.CONVERSATION_RULE_TEMPLATES["efficient"])


def test_unmatched_tone_gets_defaults(strategy):
    rules = strategy.conversation_rules("Like a patient grandparent")
    assert rules.tone == catalog.DEFAULT_TONE
    assert rules.style == catalog.DEFAULT_STYLE
    assert rules.structure == list(catalog.CONVERSATION_RULE_TEMPLATES["structured"])


def test_guidelines_sort_sentences_by_marker(strategy):
    g = strategy.generate(ANSWERS).template.guidelines
    assert g.boundaries == ["Do not give away final answers", "Avoid off-topic chat"]
    assert g.requirements == ["It must only discuss math"]
    assert g.limitations == ["**[What are the limitations of this assistant?]**"]
    assert g.default_guidelines == list(catalog.DEFAULT_GUIDELINES)


def test_limitations_are_detected(strategy):
    g = strategy.guidelines("It cannot grade essays. There is a limit of ten questions")
    assert g.limitations == ["It cannot grade essays", "There is a limit of ten questions"]


def test_complexity_and_model(strategy):
    rec = strategy.generate(ANSWERS).template.recommendations
    assert strategy.analyze_complexity(ANSWERS[1]) == "medium"
    assert rec.model == "Claude 3.7 Sonnet"

    assert strategy.analyze_complexity("Students analyze a poem") == "high"
    assert strategy.analyze_complexity("Create a quick quiz") == "simple"
    assert strategy.recommend_model("simple", "A quiz maker") == "Claude 3.5 Haiku"
    assert strategy.recommend_model("simple", "A math helper") == catalog.REASONING_MODEL


def test_starter_inputs_follow_journey_keywords(strategy):
    inputs = strategy.generate(ANSWERS).template.recommendations.starter_inputs
    assert [(i.label, i.type) for i in inputs] == [
        ("Subject Area", "dropdown"),
        ("Description", "long_text"),
    ]
    assert inputs[0].options == list(catalog.SUBJECT_OPTIONS)


def test_starter_inputs_default_to_free_text(strategy):
    inputs = strategy.recommend_starter_inputs("Students chat")
    assert [(i.label, i.type) for i in inputs] == [("Your Request", "long_text")]


def test_file_upload_input_is_optional(strategy):
    inputs = strategy.recommend_starter_inputs("Teachers upload a file")
    assert inputs[0].label == "Upload Document"
    assert inputs[0].required is False


def test_knowledge_files(strategy):
    assert strategy.generate(ANSWERS).template.recommendations.knowledge_file_types == [
        catalog.DEFAULT_KNOWLEDGE_FILE
    ]
    found = strategy.recommend_knowledge_files(
        "A helper built on our curriculum", "Teachers share slides", "Never change grades"
    )
    assert found == ["PDF documents", "CSV/Excel files", "PowerPoint presentations"]


def test_empty_answers_become_placeholders():
    result = TemplateGenerator().generate({})
    template = result.template

    assert template.background.expertise.startswith("**[")
    assert template.background.role == "**[Specify role/title]**"
    assert template.background.target_audience == "**[Specify your target audience]**"
    assert template.background.success_criteria.startswith("**[")
    assert template.workflow[0].description == "**[What is the first step users take?]**"
    assert template.conversation_rules.tone.startswith("**[Specify tone")
    assert template.conversation_rules.style.startswith("**[Specify style")
    assert template.guidelines.boundaries == ["**[What topics should be avoided?]**"]
    assert template.recommendations.app_name == "Custom AI Assistant"
    assert "**[describe what the app helps users do]**" in template.recommendations.app_description
    assert result.formatted_template.startswith("# Custom AI Assistant")


def test_markdown_sections_in_order():
    text = TemplateGenerator().generate(_responses(ANSWERS)).formatted_template
    headings = [
        "# A tutoring app for high schoolers",
        "## Background",
        "## Workflow",
        "## Formatting and Conversation Rules",
        "## Guidelines & Guardrails",
        "### Default Guidelines",
        "### Boundaries",
        "### Limitations",
        "### Requirements",
        "## Recommended Model",
        "## Recommended Knowledge Files",
        "## Recommended Starter Inputs",
        "## Recommended User Memory",
    ]
    positions = [text.index(h) for h in headings]
    assert positions == sorted(positions)
    for guideline in catalog.DEFAULT_GUIDELINES:
        assert f"- {guideline}" in text
    assert "### Step 1: Students pick a topic" in text
    assert "*Best for: general purpose, balanced performance, education*" in text
    assert text.rstrip().endswith("*Generated by Voice Builder for Playlab.ai*")


def test_answers_from_responses_uses_confirmed_answers_in_order():
    responses = {
        2: Answer(question_id="q3", question="?", raw_transcript="raw", confirmed_answer="  third  "),
        0: "first",
        1: Answer(question_id="q2", question="?", raw_transcript="only provisional"),
    }
    assert answers_from_responses(responses, total=4) == ["first", "", "third", ""]


class FakeWriter:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.seen = []

    def write_template(self, answers):
        self.seen.append(list(answers))
        if self.error is not None:
            raise self.error
        return self.text


def test_generative_strategy_returns_writer_text():
    writer = FakeWriter(text="  Background\nYou are an expert tutor.  ")
    result = TemplateGenerator(GenerativeTemplateStrategy(writer)).generate(_responses(ANSWERS))
    assert result.formatted_template == "Background\nYou are an expert tutor."
    assert result.template is None
    assert writer.seen == [ANSWERS]


@pytest.mark.parametrize("writer", [
    FakeWriter(text=""),
    FakeWriter(text="   "),
    FakeWriter(text=None),
    FakeWriter(error=RuntimeError("quota")),
    FakeWriter(error=SynthesisFailed("upstream empty")),
])
def test_generative_strategy_failures_raise_synthesis_failed(writer):
    with pytest.raises(SynthesisFailed):
        TemplateGenerator(GenerativeTemplateStrategy(writer)).generate(_responses(ANSWERS))


def test_unexpected_strategy_error_is_wrapped():
    class Broken:
        name = "broken"

        def generate(self, answers):
            raise ValueError("boom")

    with pytest.raises(SynthesisFailed) as exc:
        TemplateGenerator(Broken()).generate({})
    assert "boom" in exc.value.message


def test_template_prompt_includes_answers_and_guidelines():
    prompt = build_template_prompt(ANSWERS)
    for answer in ANSWERS:
        assert answer in prompt
    for guideline in catalog.DEFAULT_GUIDELINES:
        assert guideline in prompt
    assert f"Maintain a {ANSWERS[2].lower()} tone" in prompt


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, model, contents, config):
        self.calls.append(model)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def test_gemini_writer_returns_stripped_text():
    models = FakeModels(text="\nTemplate body\n")
    writer = GeminiTemplateWriter(client=SimpleNamespace(models=models), model="gemini-test")
    assert writer.write_template(ANSWERS) == "Template body"
    assert models.calls == ["gemini-test"]


def test_gemini_writer_empty_output_fails():
    writer = GeminiTemplateWriter(client=SimpleNamespace(models=FakeModels(text="")))
    with pytest.raises(SynthesisFailed):
        writer.write_template(ANSWERS)


def test_gemini_writer_request_error_fails():
    models = FakeModels(error=ConnectionError("offline"))
    writer = GeminiTemplateWriter(client=SimpleNamespace(models=models))
    with pytest.raises(SynthesisFailed):
        writer.write_template(ANSWERS)
    assert len(models.calls) == 1


def test_typographic_apostrophes_are_recognised(strategy):
    g = strategy.guidelines("Don’t share grades. It can’t browse the web")
    assert g.boundaries == ["Don’t share grades"]
    assert g.limitations == ["It can’t browse the web"]
