"""Unit tests for the summarization client."""

import json

import pytest

from src.application.services.summarization import (
    SummarizationClient,
    parse_json_payload,
    strip_code_fences,
)
from src.domain.exceptions import RemoteRejected, RemoteTransient
from src.domain.models.question import QuestionType
from src.domain.models.summary import SummaryType


def good_question(i):
    return {
        "question": f"Question {i}?",
        "type": "multiple_choice",
        "options": [
            {"text": "Right", "isCorrect": True},
            {"text": "Wrong", "isCorrect": False},
        ],
        "correctAnswer": "Right",
        "difficulty": "easy",
    }


class TestParsing:
    """Tests for response parsing helpers."""

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences("```\n[1]\n```") == "[1]"
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_parse_json_payload(self):
        assert parse_json_payload('```json\n{"questions": []}\n```') == {"questions": []}

    def test_malformed_json_is_rejected(self):
        with pytest.raises(RemoteRejected):
            parse_json_payload("Here are your questions: 1. ...")


class TestSummarize:
    """Tests for summary generation."""

    async def test_summary_in_transcript_language(self, scripted_llm):
        llm = scripted_llm("  A short summary.  ")
        client = SummarizationClient(llm)

        summary = await client.summarize("hola mundo", language="es", summary_type=SummaryType.BRIEF)

        assert summary.text == "A short summary."
        assert summary.language == "es"
        assert summary.summary_type == SummaryType.BRIEF
        assert summary.model == "scripted-model"
        call = llm.calls[0]
        assert "es language" in call["messages"][0].content
        assert "hola mundo" in call["messages"][1].content
        assert call["temperature"] == 0.3

    async def test_empty_summary_is_rejected(self, scripted_llm):
        client = SummarizationClient(scripted_llm("   "))

        with pytest.raises(RemoteRejected):
            await client.summarize("hello world")

    async def test_long_transcripts_are_clipped(self, scripted_llm):
        llm = scripted_llm("ok")
        client = SummarizationClient(llm, max_input_chars=10)

        await client.summarize("x" * 50)

        assert "x" * 11 not in llm.calls[0]["messages"][1].content


class TestGenerateQuestions:
    """Tests for question generation and filtering."""

    async def test_malformed_questions_are_dropped(self, scripted_llm):
        items = [good_question(i) for i in range(5)]
        items.insert(1, {"question": "", "type": "short_answer"})
        items.insert(4, {"type": "multiple_choice", "options": ["a", "b"]})
        llm = scripted_llm(json.dumps({"questions": items}))
        client = SummarizationClient(llm)

        questions = await client.generate_questions("hello world", count=7)

        assert len(questions) == 5
        assert [q.question for q in questions] == [f"Question {i}?" for i in range(5)]
        assert llm.calls[0]["json_mode"] is True

    async def test_accepts_bare_list_and_string_options(self, scripted_llm):
        payload = [
            {
                "question": "Pick the greeting",
                "type": "multiple_choice",
                "options": ["hello", "goodbye"],
                "correctAnswer": "hello",
            },
            {"question": "Explain the greeting"},
        ]
        client = SummarizationClient(scripted_llm("```json\n" + json.dumps(payload) + "\n```"))

        questions = await client.generate_questions("hello world")

        assert questions[0].options[0].is_correct is True
        assert questions[0].options[1].is_correct is False
        assert questions[1].type == QuestionType.SHORT_ANSWER

    async def test_all_malformed_gives_empty_list(self, scripted_llm):
        client = SummarizationClient(scripted_llm(json.dumps({"questions": [{"question": ""}]})))

        assert await client.generate_questions("hello world") == []

    async def test_non_list_response_is_rejected(self, scripted_llm):
        client = SummarizationClient(scripted_llm(json.dumps({"items": "nope"})))

        with pytest.raises(RemoteRejected):
            await client.generate_questions("hello world")

    def test_validate_questions_checks_correct_flags(self, scripted_llm):
        client = SummarizationClient(scripted_llm("unused"))
        no_correct = good_question(0)
        no_correct["options"] = [{"text": "a"}, {"text": "b"}]

        assert client.validate_questions([no_correct, "not an object", good_question(1)])[
            0
        ].question == "Question 1?"


class TestFallback:
    """Tests for the secondary provider."""

    async def test_rejection_falls_back(self, scripted_llm):
        primary = scripted_llm("not json at all", name="primary")
        fallback = scripted_llm(json.dumps([good_question(0)]), name="fallback")
        client = SummarizationClient(primary, fallback_llm=fallback)

        questions = await client.generate_questions("hello world")

        assert len(questions) == 1
        assert len(primary.calls) == 1
        assert len(fallback.calls) == 1

    async def test_transient_falls_back(self, scripted_llm):
        primary = scripted_llm(RemoteTransient("503"), name="primary")
        fallback = scripted_llm("Fallback summary", name="fallback")
        client = SummarizationClient(primary, fallback_llm=fallback)

        summary = await client.summarize("hello world")

        assert summary.text == "Fallback summary"
        assert summary.model == "fallback-model"

    async def test_no_fallback_propagates(self, scripted_llm):
        client = SummarizationClient(scripted_llm(RemoteRejected("400")))

        with pytest.raises(RemoteRejected):
            await client.summarize("hello world")

    async def test_both_fail_after_transient_primary_stays_transient(self, scripted_llm):
        client = SummarizationClient(
            scripted_llm(RemoteTransient("503")),
            fallback_llm=scripted_llm(RemoteRejected("400")),
        )

        with pytest.raises(RemoteTransient):
            await client.summarize("hello world")

    async def test_both_rejected(self, scripted_llm):
        client = SummarizationClient(
            scripted_llm(RemoteRejected("400")),
            fallback_llm=scripted_llm(RemoteRejected("422")),
        )

        with pytest.raises(RemoteRejected) as exc_info:
            await client.summarize("hello world")
        assert "422" in str(exc_info.value)


class TestAnalyze:
    """Tests for best-effort content analysis."""

    async def test_collects_all_parts(self, scripted_llm):
        llm = scripted_llm(
            json.dumps({"key_points": [{"point": "Greeting", "importance": 4}, {"importance": 9}]}),
            json.dumps({"topics": [{"name": "Greetings", "relevance": 0.9}]}),
            json.dumps({"overall": "positive", "confidence": 0.8}),
        )

        analysis = await SummarizationClient(llm).analyze("hello world")

        assert [p.point for p in analysis.key_points] == ["Greeting"]
        assert analysis.topics[0].name == "Greetings"
        assert analysis.sentiment.overall == "positive"

    async def test_failed_parts_keep_defaults(self, scripted_llm):
        llm = scripted_llm(
            RemoteTransient("503"),
            json.dumps({"topics": [{"name": "Greetings"}]}),
            "not json",
        )

        analysis = await SummarizationClient(llm).analyze("hello world")

        assert analysis.key_points == []
        assert analysis.topics[0].name == "Greetings"
        assert analysis.sentiment.overall == "neutral"
