"""Prompt construction and response parsing for the text-generation stages."""

import json
import re
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import ValidationError

from src.commons.telemetry import get_logger
from src.domain.exceptions import PipelineError, RemoteRejected, RemoteTransient
from src.domain.models.question import (
    Question,
    QuestionCategory,
    QuestionDifficulty,
    QuestionType,
)
from src.domain.models.summary import (
    ContentAnalysis,
    KeyPoint,
    SentimentAnalysis,
    Summary,
    SummaryType,
    Topic,
)
from src.infrastructure.llm.base import LLMServiceBase, Message, MessageRole

T = TypeVar("T")

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

SUMMARY_INSTRUCTIONS: dict[SummaryType, str] = {
    SummaryType.BRIEF: "Provide a brief 2-3 sentence summary of the following content.",
    SummaryType.DETAILED: (
        "Provide a detailed summary of the following content, covering the main "
        "points, key insights and important details."
    ),
    SummaryType.COMPREHENSIVE: (
        "Provide a comprehensive summary of the following content, including the "
        "main topics, key arguments, supporting details and conclusions."
    ),
    SummaryType.BULLET_POINTS: (
        "Summarize the following content as a list of clear, concise bullet points."
    ),
    SummaryType.KEY_INSIGHTS: (
        "Extract the key insights and main takeaways from the following content."
    ),
}

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert content summarizer. Create clear, accurate and "
    "well-structured summaries. Respond in {language} language."
)

QUESTIONS_SYSTEM_PROMPT = (
    "You are an educational content expert who writes quiz questions that test "
    "understanding of a video transcript. Always answer with valid JSON only."
)

QUESTIONS_PROMPT = """Generate {count} {difficulty} questions about the transcript below.
Use only these question types: {types}.

Answer with a JSON object of the form:
{{"questions": [
  {{
    "question": "question text",
    "type": "multiple_choice|true_false|short_answer|essay|fill_blank",
    "difficulty": "easy|medium|hard",
    "options": [{{"text": "option", "isCorrect": true}}],
    "correctAnswer": "the correct answer",
    "explanation": "why the answer is correct",
    "timestamp": 0,
    "category": "comprehension|analysis|application|synthesis|evaluation"
  }}
]}}
Multiple choice questions need at least two options with exactly one marked correct.

Transcript:
{transcript}"""

KEY_POINTS_PROMPT = """List the most important points of the transcript below.
Answer with a JSON object: {{"key_points": [{{"point": "...", "timestamp": 0,
"importance": 1-5, "category": "..."}}]}}

Transcript:
{transcript}"""

TOPICS_PROMPT = """Identify the main topics discussed in the transcript below.
Answer with a JSON object: {{"topics": [{{"name": "...", "relevance": 0.0-1.0,
"mentions": 0, "description": "..."}}]}}

Transcript:
{transcript}"""

SENTIMENT_PROMPT = """Analyze the overall sentiment of the transcript below.
Answer with a JSON object: {{"overall": "positive|negative|neutral|mixed",
"confidence": 0.0-1.0, "emotions": [{{"emotion": "...", "confidence": 0.0-1.0}}],
"reasoning": "..."}}

Transcript:
{transcript}"""


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json fence if the model added one."""
    return _FENCE_PATTERN.sub("", content.strip()).strip()


def parse_json_payload(content: str) -> Any:
    """Parse model output as JSON.

    Raises:
        RemoteRejected: If the content is not valid JSON.
    """
    try:
        return json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        raise RemoteRejected(f"Model returned malformed JSON: {e.msg}") from e


def _list_from(payload: Any, key: str) -> list[Any]:
    """Accept either a bare JSON array or an object wrapping one under key."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return list(payload[key])
    raise RemoteRejected(f"Model response has no '{key}' list")


def _enum_or_default(enum_cls: type[Any], value: Any, default: Any) -> Any:
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return default


def _question_from_raw(raw: Any) -> Question:
    """Build a Question from one model-produced item.

    Raises:
        ValueError: If the item cannot be a usable question.
    """
    if not isinstance(raw, dict):
        raise ValueError("question item is not an object")

    correct_answer = raw.get("correctAnswer", raw.get("correct_answer"))
    options = []
    for option in raw.get("options") or []:
        if isinstance(option, str):
            options.append(
                {"text": option, "is_correct": correct_answer is not None and option == correct_answer}
            )
        elif isinstance(option, dict):
            options.append(
                {
                    "text": option.get("text", ""),
                    "is_correct": bool(option.get("isCorrect", option.get("is_correct", False))),
                }
            )

    question = Question(
        question=str(raw.get("question") or "").strip(),
        type=QuestionType(str(raw.get("type") or "short_answer").lower()),
        difficulty=_enum_or_default(
            QuestionDifficulty, raw.get("difficulty"), QuestionDifficulty.MEDIUM
        ),
        options=options,
        correct_answer=str(correct_answer) if correct_answer is not None else None,
        explanation=raw.get("explanation"),
        timestamp=raw.get("timestamp") if isinstance(raw.get("timestamp"), int | float) else None,
        category=_enum_or_default(
            QuestionCategory, raw.get("category"), QuestionCategory.COMPREHENSION
        ),
    )
    problems = question.shape_errors()
    if problems:
        raise ValueError("; ".join(problems))
    return question


class SummarizationClient:
    """Drives the text-generation provider for summaries, analysis and quizzes.

    Owns prompt construction and response parsing. Malformed structured
    output counts as a rejection by the provider. When a fallback provider
    is configured, a rejected or transiently failing primary call is tried
    once on the fallback before the error propagates.
    """

    def __init__(
        self,
        llm: LLMServiceBase,
        fallback_llm: LLMServiceBase | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        max_input_chars: int = 60000,
    ) -> None:
        self._llm = llm
        self._fallback = fallback_llm
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._max_input_chars = max_input_chars
        self._logger = get_logger(__name__)

    def _clip(self, text: str) -> str:
        return text[: self._max_input_chars]

    async def _ask(
        self,
        llm: LLMServiceBase,
        messages: list[Message],
        parse: Callable[[str, str], T],
        json_mode: bool,
        temperature: float,
    ) -> T:
        response = await llm.generate(
            messages,
            temperature=temperature,
            max_tokens=self._max_tokens,
            json_mode=json_mode,
        )
        return parse(response.content, response.model)

    async def _complete(
        self,
        task: str,
        messages: list[Message],
        parse: Callable[[str, str], T],
        *,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> T:
        temp = self._temperature if temperature is None else temperature
        try:
            return await self._ask(self._llm, messages, parse, json_mode, temp)
        except (RemoteRejected, RemoteTransient) as primary_error:
            if self._fallback is None:
                raise
            self._logger.warning(
                "Primary provider failed, trying fallback",
                extra={
                    "task": task,
                    "primary": self._llm.provider_name,
                    "fallback": self._fallback.provider_name,
                    "error": str(primary_error),
                },
            )
            try:
                return await self._ask(self._fallback, messages, parse, json_mode, temp)
            except (RemoteRejected, RemoteTransient) as fallback_error:
                # Retrying helps if either provider only failed transiently
                if isinstance(primary_error, RemoteTransient):
                    raise primary_error from fallback_error
                raise fallback_error from primary_error

    async def summarize(
        self,
        transcript_text: str,
        language: str = "en",
        summary_type: SummaryType = SummaryType.DETAILED,
    ) -> Summary:
        """Summarize a transcript in its own language."""
        messages = [
            Message(MessageRole.SYSTEM, SUMMARY_SYSTEM_PROMPT.format(language=language)),
            Message(
                MessageRole.USER,
                f"{SUMMARY_INSTRUCTIONS[summary_type]}\n\nContent:\n"
                f"{self._clip(transcript_text)}",
            ),
        ]

        def parse(content: str, model: str) -> Summary:
            text = content.strip()
            if not text:
                raise RemoteRejected("Model returned an empty summary")
            return Summary.from_text(
                text, model=model, summary_type=summary_type, language=language
            )

        return await self._complete("summary", messages, parse, temperature=0.3)

    async def generate_questions(
        self,
        transcript_text: str,
        count: int = 5,
        difficulty: str = "medium",
        types: list[str] | None = None,
    ) -> list[Question]:
        """Generate quiz questions, dropping any item that breaks the shape contract.

        Raises:
            RemoteRejected: If the response is not a JSON list of questions.
        """
        prompt = QUESTIONS_PROMPT.format(
            count=count,
            difficulty=difficulty,
            types=", ".join(types or ["multiple_choice", "short_answer"]),
            transcript=self._clip(transcript_text),
        )
        messages = [
            Message(MessageRole.SYSTEM, QUESTIONS_SYSTEM_PROMPT),
            Message(MessageRole.USER, prompt),
        ]

        def parse(content: str, _model: str) -> list[Question]:
            return self.validate_questions(
                _list_from(parse_json_payload(content), "questions")
            )

        return await self._complete("questions", messages, parse, json_mode=True)

    def validate_questions(self, raw_items: list[Any]) -> list[Question]:
        """Keep well-formed questions in their original order."""
        questions: list[Question] = []
        for index, raw in enumerate(raw_items):
            try:
                questions.append(_question_from_raw(raw))
            except (ValueError, ValidationError) as e:
                self._logger.info(
                    "Dropping malformed question",
                    extra={"index": index, "reason": str(e).splitlines()[0]},
                )
        return questions

    async def extract_key_points(self, transcript_text: str) -> list[KeyPoint]:
        messages = [
            Message(
                MessageRole.USER,
                KEY_POINTS_PROMPT.format(transcript=self._clip(transcript_text)),
            )
        ]

        def parse(content: str, _model: str) -> list[KeyPoint]:
            items = _list_from(parse_json_payload(content), "key_points")
            points = []
            for item in items:
                try:
                    points.append(KeyPoint.model_validate(item))
                except ValidationError:
                    continue
            return points

        return await self._complete("key_points", messages, parse, json_mode=True)

    async def extract_topics(self, transcript_text: str) -> list[Topic]:
        messages = [
            Message(
                MessageRole.USER,
                TOPICS_PROMPT.format(transcript=self._clip(transcript_text)),
            )
        ]

        def parse(content: str, _model: str) -> list[Topic]:
            items = _list_from(parse_json_payload(content), "topics")
            topics = []
            for item in items:
                try:
                    topics.append(Topic.model_validate(item))
                except ValidationError:
                    continue
            return topics

        return await self._complete("topics", messages, parse, json_mode=True)

    async def analyze_sentiment(self, transcript_text: str) -> SentimentAnalysis:
        messages = [
            Message(
                MessageRole.USER,
                SENTIMENT_PROMPT.format(transcript=self._clip(transcript_text)),
            )
        ]

        def parse(content: str, _model: str) -> SentimentAnalysis:
            try:
                return SentimentAnalysis.model_validate(parse_json_payload(content))
            except ValidationError as e:
                raise RemoteRejected(f"Invalid sentiment payload: {e.error_count()} errors") from e

        return await self._complete("sentiment", messages, parse, json_mode=True)

    async def analyze(self, transcript_text: str) -> ContentAnalysis:
        """Best-effort key points, topics and sentiment.

        Each part that fails is logged and left at its empty default.
        """
        analysis = ContentAnalysis()
        parts: list[tuple[str, Callable[[str], Any]]] = [
            ("key_points", self.extract_key_points),
            ("topics", self.extract_topics),
            ("sentiment", self.analyze_sentiment),
        ]
        for field, extract in parts:
            try:
                value = await extract(transcript_text)
            except PipelineError as e:
                self._logger.warning(
                    "Content analysis step failed",
                    extra={"part": field, "error": str(e)},
                )
                continue
            analysis = analysis.model_copy(update={field: value})
        return analysis
