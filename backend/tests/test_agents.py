import random

from conftest import FakeLLM
from interview.agents import AnswerEvaluator, QuestionGenerator
from interview.state import InterviewSession
from llm.prompts import FALLBACK_QUESTIONS
from models.schemas import InterviewPhase


def test_generated_question_is_sanitized():
    llm = FakeLLM(questions=["Interviewer: What drew you to backend work? Tell me everything."])
    session = InterviewSession(company="Acme", role="Backend Engineer")
    question = QuestionGenerator(llm).generate_question(session)
    assert question == "What drew you to backend work?"


def test_prompt_carries_session_context():
    llm = FakeLLM(questions=["What is a goroutine?"])
    session = InterviewSession(company="Acme", role="Go Developer", competencies="concurrency")
    session.issue_question("Tell me about yourself?")
    session.record_transcript("I write services in Go.")
    QuestionGenerator(llm).generate_question(session)
    prompt = llm.prompts[0]
    for expected in ("Acme", "Go Developer", "concurrency", "intro", "Tell me about yourself?", "I write services in Go."):
        assert expected in prompt


def test_leaked_json_falls_back():
    llm = FakeLLM(questions=['{"question": "What is REST?"}'])
    question = QuestionGenerator(llm).generate_question(InterviewSession())
    assert question == FALLBACK_QUESTIONS["intro"][0]


def test_repeated_question_falls_back():
    llm = FakeLLM(questions=["tell me about YOURSELF"])
    session = InterviewSession()
    session.issue_question("Tell me about yourself?")
    question = QuestionGenerator(llm).generate_question(session)
    assert question == FALLBACK_QUESTIONS["intro"][0]


def test_failed_or_missing_llm_falls_back():
    session = InterviewSession()
    assert QuestionGenerator(FakeLLM(questions=[])).generate_question(session) == FALLBACK_QUESTIONS["intro"][0]
    assert QuestionGenerator(FakeLLM(configured=False)).generate_question(session) == FALLBACK_QUESTIONS["intro"][0]


def test_fallback_wording_depends_on_level():
    generator = QuestionGenerator(FakeLLM(configured=False))
    junior = InterviewSession(role="Junior Developer")
    senior = InterviewSession(role="Senior Developer")
    junior.turn_index = senior.turn_index = 1
    assert junior.phase == InterviewPhase.PROJECTS
    assert generator.generate_question(junior) == FALLBACK_QUESTIONS["projects"]["junior"][0]
    assert generator.generate_question(senior) == FALLBACK_QUESTIONS["projects"]["senior"][0]


def test_fallback_never_repeats():
    generator = QuestionGenerator(FakeLLM(configured=False))
    session = InterviewSession(max_turns=50)
    session.turn_index = 20
    for _ in range(30):
        session.issue_question(generator.generate_question(session))
    assert len(set(session.asked_questions)) == 30


def test_evaluator_uses_valid_model_grade():
    llm = FakeLLM(grades=[{"score": 5, "pass": True, "feedback": "Excellent detail."}])
    evaluation = AnswerEvaluator(llm).evaluate("Why Python?", "Because of its ecosystem.", role="Data Engineer")
    assert evaluation.score == 5
    assert evaluation.mock is False
    assert "Why Python?" in llm.prompts[0]
    assert "Because of its ecosystem." in llm.prompts[0]


def test_evaluator_rejects_bad_schema():
    llm = FakeLLM(grades=[{"score": "high", "pass": True, "feedback": "ok"}])
    evaluation = AnswerEvaluator(llm, rng=random.Random(3)).evaluate("Q?", "short")
    assert evaluation.mock is True
    assert evaluation.passed == (evaluation.score >= 3)


def test_evaluator_without_llm_is_mock():
    evaluation = AnswerEvaluator(FakeLLM(configured=False)).evaluate("Q?", "answer")
    assert evaluation.mock is True
