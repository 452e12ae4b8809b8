"""Quiz question artifact and its shape contract."""

from enum import Enum

from pydantic import BaseModel, Field


class QuestionType(str, Enum):
    """Supported question formats."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"
    FILL_BLANK = "fill_blank"


class QuestionDifficulty(str, Enum):
    """Question difficulty levels."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionCategory(str, Enum):
    """Cognitive category a question targets."""

    COMPREHENSION = "comprehension"
    ANALYSIS = "analysis"
    APPLICATION = "application"
    SYNTHESIS = "synthesis"
    EVALUATION = "evaluation"


class QuestionOption(BaseModel):
    """One answer option of a choice question."""

    text: str
    is_correct: bool = False


class QuestionStatistics(BaseModel):
    """Answer counters kept per question."""

    total_attempts: int = Field(default=0, ge=0)
    correct_attempts: int = Field(default=0, ge=0)
    total_time_ms: int = Field(default=0, ge=0)

    @property
    def success_rate(self) -> float:
        """Percentage of correct answers, rounded to one decimal."""
        if self.total_attempts == 0:
            return 0.0
        return round(self.correct_attempts / self.total_attempts * 100, 1)

    @property
    def average_time_seconds(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return round(self.total_time_ms / self.total_attempts / 1000, 2)


class Question(BaseModel):
    """A generated question about the video content."""

    question: str = Field(min_length=1)
    type: QuestionType = QuestionType.SHORT_ANSWER
    difficulty: QuestionDifficulty = QuestionDifficulty.MEDIUM
    options: list[QuestionOption] = Field(default_factory=list)
    correct_answer: str | None = None
    explanation: str | None = None
    timestamp: float | None = Field(
        default=None,
        ge=0,
        description="Approximate position in the video the question refers to",
    )
    category: QuestionCategory = QuestionCategory.COMPREHENSION
    statistics: QuestionStatistics = Field(default_factory=QuestionStatistics)

    @property
    def is_choice(self) -> bool:
        """Check if the question is answered by picking an option."""
        return self.type in {QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE}

    def check_answer(self, answer: str) -> bool:
        """Grade an answer.

        Choice questions match the text of an option marked correct; other
        types compare with the reference answer. Both comparisons ignore
        case and surrounding whitespace. Questions without a reference
        answer, such as essays, never grade as correct.
        """
        given = answer.strip().lower()
        if self.is_choice and self.options:
            return any(
                option.is_correct and option.text.strip().lower() == given
                for option in self.options
            )
        if self.correct_answer is None:
            return False
        return self.correct_answer.strip().lower() == given

    def shape_errors(self) -> list[str]:
        """List violations of the minimal shape contract.

        Returns:
            Human-readable problems; empty when the question is usable.
        """
        problems: list[str] = []
        if not self.question.strip():
            problems.append("empty question text")
        if self.type == QuestionType.MULTIPLE_CHOICE and len(self.options) < 2:
            problems.append("multiple choice needs at least two options")
        if self.is_choice and self.options:
            correct = sum(1 for option in self.options if option.is_correct)
            if correct == 0:
                problems.append("no option is marked correct")
            if self.type == QuestionType.TRUE_FALSE and correct > 1:
                problems.append("true/false has more than one correct option")
        if any(not option.text.strip() for option in self.options):
            problems.append("option with empty text")
        return problems
