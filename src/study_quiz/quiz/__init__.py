from ._main import build_arg_parser
from .config import ConfigOverrides, QuizConfig, QuizConfigError, load_config
from .errors import (
    PartialAggregateFailure,
    QuestionFormatError,
    QuizError,
    SourceUnavailable,
)
from .models import Question, QuestionType, parse_question
from .runner import QuizRunResult, parse_session_command, run_quiz
from .scoring import (
    AnswerReview,
    ChoiceStatus,
    QuizResult,
    calculate_score,
    choice_feedback,
    is_correct,
    review_answers,
    summarize,
)
from .session import LoadRequest, QuizSession
from .shuffle import (
    random_permutation,
    seeded_permutation,
    shuffle_all_choices,
    shuffle_question_choices,
    shuffle_questions,
)
from .source import (
    DirectoryQuestionSource,
    HttpQuestionSource,
    QuestionSource,
    fetch_questions,
)
from .state import QuizState, apply_action

__all__ = [
    "build_arg_parser",
    "ConfigOverrides",
    "QuizConfig",
    "QuizConfigError",
    "load_config",
    "PartialAggregateFailure",
    "QuestionFormatError",
    "QuizError",
    "SourceUnavailable",
    "Question",
    "QuestionType",
    "parse_question",
    "QuizRunResult",
    "parse_session_command",
    "run_quiz",
    "AnswerReview",
    "ChoiceStatus",
    "QuizResult",
    "calculate_score",
    "choice_feedback",
    "is_correct",
    "review_answers",
    "summarize",
    "LoadRequest",
    "QuizSession",
    "random_permutation",
    "seeded_permutation",
    "shuffle_all_choices",
    "shuffle_question_choices",
    "shuffle_questions",
    "DirectoryQuestionSource",
    "HttpQuestionSource",
    "QuestionSource",
    "fetch_questions",
    "QuizState",
    "apply_action",
]
