import logging
import random
from typing import Dict, List, Mapping, Optional, Sequence

from photobooth.content import QUESTIONS, Question
from photobooth.models.session import Archetype

logger = logging.getLogger(__name__)

DEFAULT_MAX_SELECTIONS = 2

_BLENDS = {
    frozenset({"morning", "midday"}): Archetype.brunch,
    frozenset({"midday", "night"}): Archetype.golden,
    frozenset({"night", "morning"}): Archetype.chill,
}


def calculate_archetype(
        questions: Sequence[Question],
        answers: Mapping[str, Sequence[str]],
        rng: Optional[random.Random] = None,
) -> Archetype:
    """Tally answer weights and map the winning time(s) of day to an archetype.

    A single top score picks the matching base archetype. A two-way tie picks
    the blend of both, and a three-way tie picks one of the blends at random.
    """
    rng = rng or random.Random()
    scores: Dict[str, int] = {"morning": 0, "midday": 0, "night": 0}

    for question in questions:
        for answer_id in answers.get(question.id, []):
            answer = next((a for a in question.answers if a.id == answer_id), None)
            if answer is None:
                continue
            for key, value in answer.weight.items():
                scores[key] = scores.get(key, 0) + value

    max_score = max(scores["morning"], scores["midday"], scores["night"])
    leaders = frozenset(key for key in ("morning", "midday", "night") if scores[key] == max_score)

    if len(leaders) == 1:
        return Archetype(next(iter(leaders)))
    if leaders in _BLENDS:
        return _BLENDS[leaders]
    return rng.choice([Archetype.brunch, Archetype.golden, Archetype.chill])


class QuizSession:
    """Walks a user through the quiz one question at a time."""

    def __init__(self, questions: Sequence[Question] = QUESTIONS, rng: Optional[random.Random] = None):
        self.questions = list(questions)
        self.rng = rng or random.Random()
        self.current_index = 0
        self.answers: Dict[str, List[str]] = {}
        self.result: Optional[Archetype] = None

    @property
    def current_question(self) -> Optional[Question]:
        if self.current_index >= len(self.questions):
            return None
        return self.questions[self.current_index]

    @property
    def is_complete(self) -> bool:
        return self.result is not None

    @property
    def selected_answers(self) -> List[str]:
        question = self.current_question
        if question is None:
            return []
        return self.answers.get(question.id, [])

    @property
    def can_proceed(self) -> bool:
        question = self.current_question
        if question is None:
            return False
        selected = len(self.selected_answers)
        if question.type == "single":
            return selected == 1
        max_selections = question.max_selections or DEFAULT_MAX_SELECTIONS
        return 1 <= selected <= max_selections

    def select_answer(self, answer_id: str) -> None:
        question = self.current_question
        if question is None or all(a.id != answer_id for a in question.answers):
            return

        current = self.answers.get(question.id, [])
        max_selections = question.max_selections or DEFAULT_MAX_SELECTIONS

        if question.type == "single" or max_selections == 1:
            updated = [answer_id]
        elif answer_id in current:
            updated = [a for a in current if a != answer_id]
        elif len(current) >= max_selections:
            updated = current
        else:
            updated = current + [answer_id]

        self.answers[question.id] = updated

    def next_question(self) -> bool:
        if not self.can_proceed:
            return False

        self.current_index += 1
        if self.current_index >= len(self.questions):
            self.result = calculate_archetype(self.questions, self.answers, self.rng)
            logger.info("Quiz complete with archetype %s", self.result.value)
        return True

    def previous_question(self) -> None:
        if self.current_index == 0:
            return
        self.current_index -= 1
        self.result = None

    def submit(self, answers: Mapping[str, Sequence[str]]) -> Archetype:
        """Replay a full answer sheet through the question flow."""
        self.current_index = 0
        self.answers = {}
        self.result = None
        for question in self.questions:
            for answer_id in answers.get(question.id, []):
                self.select_answer(answer_id)
            if not self.next_question():
                raise ValueError(f"Invalid answers for question {question.id}")
        return self.result
