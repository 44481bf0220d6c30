"""Tests for the archetype quiz."""

import random

import pytest

from photobooth.content import QUESTIONS
from photobooth.models.session import Archetype
from photobooth.services.quiz import QuizSession, calculate_archetype


def test_single_leader_picks_base_archetype() -> None:
    answers = {"1": ["1"], "2": ["1"], "3": ["4"], "4": ["6"]}
    assert calculate_archetype(QUESTIONS, answers) == Archetype.morning


def test_two_way_tie_picks_blend() -> None:
    # midday 2, night 2, morning 1
    answers = {"1": ["2"], "2": ["2"], "3": ["4"], "4": ["5"]}
    assert calculate_archetype(QUESTIONS, answers) == Archetype.golden

    # morning 2, midday 2, night 1
    answers = {"1": ["2"], "2": ["1"], "3": ["4"], "4": ["5"]}
    assert calculate_archetype(QUESTIONS, answers) == Archetype.brunch


def test_three_way_tie_picks_a_blend() -> None:
    blends = {Archetype.brunch, Archetype.golden, Archetype.chill}
    for seed in range(10):
        assert calculate_archetype(QUESTIONS, {}, random.Random(seed)) in blends


def test_unknown_answers_are_ignored() -> None:
    answers = {"1": ["3", "99"], "2": ["2"], "3": ["42"], "4": ["5"]}
    assert calculate_archetype(QUESTIONS, answers) == Archetype.night


def test_session_walks_questions() -> None:
    quiz = QuizSession()

    assert quiz.current_question.id == "1"
    assert quiz.can_proceed is False
    assert quiz.next_question() is False

    quiz.select_answer("1")
    quiz.select_answer("3")
    # A question limited to one selection keeps only the latest pick
    assert quiz.selected_answers == ["3"]
    assert quiz.next_question() is True

    quiz.previous_question()
    assert quiz.current_question.id == "1"
    assert quiz.selected_answers == ["3"]


def test_session_ignores_answers_from_other_questions() -> None:
    quiz = QuizSession()
    quiz.select_answer("6")
    assert quiz.selected_answers == []


def test_submit_replays_answer_sheet() -> None:
    quiz = QuizSession()

    result = quiz.submit({"1": ["3"], "2": ["2"], "3": ["3"], "4": ["5"]})

    assert result == Archetype.midday
    assert quiz.is_complete
    assert quiz.current_question is None


def test_submit_rejects_incomplete_sheet() -> None:
    with pytest.raises(ValueError):
        QuizSession().submit({"1": ["1"], "2": []})
