"""Tests for question loading and validation."""

import json

import pytest
import yaml

from quizarena.core.questions import (
    FileQuestionSource,
    Question,
    QuestionLoadError,
    load_questions,
    questions_from_records,
    select_questions,
)

from conftest import build_questions


def _raw(qid="q1", options=("a", "b", "c"), correct=0, **extra):
    return {
        "id": qid,
        "prompt": f"Prompt {qid}",
        "options": list(options),
        "correct_index": correct,
        **extra,
    }


class TestQuestionsFromRecords:
    def test_builds_frozen_questions(self):
        (q,) = questions_from_records([_raw(difficulty="hard", category="science")])
        assert q.id == "q1"
        assert q.options == ("a", "b", "c")
        assert q.difficulty == "hard"
        assert q.category == "science"
        assert q.language == "en"
        assert q.is_correct(0)
        assert not q.is_correct(1)

    def test_integer_ids_become_strings(self):
        (q,) = questions_from_records([_raw(qid=7)])
        assert q.id == "7"

    def test_empty_set_rejected(self):
        with pytest.raises(QuestionLoadError):
            questions_from_records([])

    def test_missing_field_rejected(self):
        raw = _raw()
        del raw["correct_index"]
        with pytest.raises(QuestionLoadError, match="correct_index"):
            questions_from_records([raw])

    def test_too_few_options_rejected(self):
        with pytest.raises(QuestionLoadError):
            questions_from_records([_raw(options=("only",))])

    def test_correct_index_out_of_range(self):
        with pytest.raises(QuestionLoadError, match="out of range"):
            questions_from_records([_raw(correct=3)])

    def test_unknown_field_rejected(self):
        with pytest.raises(QuestionLoadError):
            questions_from_records([_raw(points=5)])

    def test_duplicate_ids_rejected(self):
        with pytest.raises(QuestionLoadError, match="Duplicate"):
            questions_from_records([_raw("a"), _raw("a")])


class TestLoadQuestions:
    def test_load_json(self, tmp_path):
        path = tmp_path / "qs.json"
        path.write_text(json.dumps([_raw("a"), _raw("b")]))
        assert [q.id for q in load_questions(path)] == ["a", "b"]

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "qs.yaml"
        path.write_text(yaml.safe_dump([_raw("a", explanation="because")]))
        (q,) = load_questions(path)
        assert q.explanation == "because"

    def test_missing_file(self, tmp_path):
        with pytest.raises(QuestionLoadError, match="Cannot read"):
            load_questions(tmp_path / "nope.json")

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "qs.yaml"
        path.write_bytes(b"- id: \xff\xfe\n")
        with pytest.raises(QuestionLoadError, match="Cannot parse"):
            load_questions(path)

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "qs.json"
        path.write_text("[{not json")
        with pytest.raises(QuestionLoadError, match="Cannot parse"):
            load_questions(path)


class TestSelectQuestions:
    def test_takes_first_n(self):
        selected = select_questions(build_questions(10), 4)
        assert [q.id for q in selected] == ["q0", "q1", "q2", "q3"]

    def test_too_few(self):
        with pytest.raises(QuestionLoadError, match="needs 5"):
            select_questions(build_questions(3), 5)

    def test_empty(self):
        with pytest.raises(QuestionLoadError, match="empty"):
            select_questions([], 5)

    def test_duplicate_ids_rejected(self):
        questions = build_questions(3) + (build_questions(1)[0],)
        with pytest.raises(QuestionLoadError, match="Duplicate"):
            select_questions(questions, 4)

    def test_hand_built_question_is_bounds_checked(self):
        bad = Question(id="x", prompt="?", options=("a", "b"), correct_index=-1)
        with pytest.raises(QuestionLoadError):
            select_questions([bad], 1)


class TestFileQuestionSource:
    def test_reads_file_once(self, tmp_path):
        path = tmp_path / "qs.json"
        path.write_text(json.dumps([_raw(f"q{i}") for i in range(3)]))
        source = FileQuestionSource(path)
        assert len(source(3)) == 3
        path.unlink()
        assert len(source(2)) == 2
