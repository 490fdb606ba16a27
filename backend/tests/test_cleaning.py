import pytest

from utils.cleaning import ResponseCleaner


def test_strips_code_fence_and_role_play_prefix():
    raw = "```\nInterviewer: Tell me about your last project? I'd love to hear more.\n```"
    assert ResponseCleaner.sanitize_question(raw) == "Tell me about your last project?"


def test_drops_leaked_label_lines():
    raw = "Role: Backend Engineer\nCompany: Acme\nQ: What is a race condition?"
    assert ResponseCleaner.sanitize_question(raw) == "What is a race condition?"


def test_strips_dangling_role_and_company_fragment():
    raw = "For the Backend Engineer role at Acme: how do you handle retries?"
    cleaned = ResponseCleaner.sanitize_question(raw, role="Backend Engineer", company="Acme")
    assert cleaned == "how do you handle retries?"


def test_keeps_words_that_only_look_like_prefixes():
    raw = "AI-driven testing: how would you use it?"
    assert ResponseCleaner.sanitize_question(raw) == raw


def test_collapses_whitespace_and_caps_length():
    assert ResponseCleaner.sanitize_question("What   is\n\n  Docker?") == "What is Docker?"
    assert len(ResponseCleaner.sanitize_question("x" * 300 + "?")) == 240


@pytest.mark.parametrize("raw", [
    "```json\nQ: Why did you pick Postgres over MongoDB? Explain.\n```",
    "Interviewer: Q: **Question 2:** How do you review code?",
    "Known facts: Python\nRecent answers: none\nHow would you shard a table?",
    "  Describe a time you missed a deadline.  ",
    "<think>pick something</think>What does a load balancer do?",
])
def test_sanitizer_is_idempotent(raw):
    once = ResponseCleaner.sanitize_question(raw, role="Data Engineer", company="Initech")
    assert ResponseCleaner.sanitize_question(once, role="Data Engineer", company="Initech") == once


@pytest.mark.parametrize("text,usable", [
    ("", False),
    ('{"question": "What is REST?"}', False),
    ("[1, 2]", False),
    ("Hi?", False),
    ("Why?", True),
])
def test_usable_question(text, usable):
    assert ResponseCleaner.is_usable_question(text) is usable


def test_repeat_detection_ignores_case_and_punctuation():
    asked = ["What is your NAME"]
    assert ResponseCleaner.is_repeat("what is your name?", asked)
    assert not ResponseCleaner.is_repeat("What is your role?", asked)


def test_extract_json_object_tolerates_prose():
    parsed = ResponseCleaner.extract_json_object('Sure! {"score": 4, "pass": true, "feedback": "ok"} thanks')
    assert parsed == {"score": 4, "pass": True, "feedback": "ok"}
    assert ResponseCleaner.extract_json_object("no json here") is None
    assert ResponseCleaner.extract_json_object('{"score": ') is None


def test_strips_bold_numbered_question_label():
    assert ResponseCleaner.sanitize_question("**Question 2:** How do you review code?") == "How do you review code?"
