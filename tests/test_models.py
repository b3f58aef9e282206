"""Tests for fact models: structure variants, legacy rubric blobs, derived status."""

import pytest
from pydantic import ValidationError

from models.facts import (
    ExpositoryStructure,
    HOTSAnswer,
    HOTSAnswerStatus,
    HOTSQuestion,
    NarrativeStructure,
    ProceduralStructure,
    Progress,
    Question,
    Text,
)
from models.stats import QuizStats


class TestTextStructure:
    def test_tag_taken_from_genre(self):
        text = Text.model_validate({
            "id": "t1",
            "genre": "narrative",
            "structure": {"orientasi": "o", "komplikasi": "k", "resolusi": "r"},
        })
        assert isinstance(text.structure, NarrativeStructure)
        assert text.structure.complication == "k"

    def test_hyphenated_alias(self):
        text = Text.model_validate({
            "id": "t2",
            "genre": "procedural",
            "structure": {"tujuan": "Make tea", "langkah-langkah": "Boil water"},
        })
        assert isinstance(text.structure, ProceduralStructure)
        assert text.structure.steps == "Boil water"

    def test_empty_structure_is_none(self):
        text = Text.model_validate({"id": "t3", "genre": "descriptive", "structure": {}})
        assert text.structure is None

    def test_english_names_accepted(self):
        structure = ExpositoryStructure(thesis="Water matters")
        text = Text(id="t4", genre="expository", structure=structure)
        assert text.structure.thesis == "Water matters"

    def test_unknown_genre_rejected(self):
        with pytest.raises(ValidationError):
            Text.model_validate({"id": "t5", "genre": "poetry"})


class TestQuestion:
    def test_points_must_be_positive(self):
        with pytest.raises(ValidationError):
            Question(id="q", text_id="t", points=0)

    def test_null_options(self):
        assert Question.model_validate({"id": "q", "text_id": "t", "options": None}).options == []


class TestHOTSQuestion:
    def test_rubric_list(self):
        q = HOTSQuestion.model_validate({
            "id": "h", "text_id": "t",
            "rubric": [{"criterion": "Argument", "maxScore": 60}, {"criterion": "Evidence", "maxScore": 40}],
        })
        assert [c.criterion for c in q.rubric] == ["Argument", "Evidence"]
        assert q.rubric_total == 100

    def test_legacy_rubric_blob(self):
        q = HOTSQuestion.model_validate({
            "id": "h", "text_id": "t",
            "rubric": {"criteria": [{"criterion": "Originality", "maxScore": 30}], "totalScore": 30},
        })
        assert q.rubric[0].max_score == 30

    def test_rubric_not_checked_against_points(self):
        q = HOTSQuestion.model_validate({
            "id": "h", "text_id": "t", "points": 100,
            "rubric": [{"criterion": "Only", "maxScore": 10}],
        })
        assert q.rubric_total == 10

    def test_null_rubric(self):
        assert HOTSQuestion.model_validate({"id": "h", "text_id": "t", "rubric": None}).rubric == []


class TestHOTSAnswer:
    def test_status_follows_graded_at(self):
        answer = HOTSAnswer(id="a", user_id="u", hots_question_id="h")
        assert answer.status == HOTSAnswerStatus.SUBMITTED

        graded = answer.model_copy(update={"graded_at": "2026-03-01T08:00:00+00:00", "score": 70})
        assert graded.is_graded
        assert graded.status == HOTSAnswerStatus.GRADED


def test_progress_null_scores_default_to_zero():
    progress = Progress.model_validate({
        "user_id": "u", "text_id": "t", "reading_score": None, "hots_score": None,
    })
    assert progress.reading_score == 0
    assert progress.hots_score == 0


def test_stats_serialize_camel_case():
    data = QuizStats(total_questions=3, answered=2, percentage=33).model_dump(by_alias=True)
    assert data["totalQuestions"] == 3
    assert data["isCompleted"] is False
