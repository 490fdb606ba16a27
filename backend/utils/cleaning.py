"""
Response cleaning utilities for LLM outputs.

Every transform here is a pure string -> string function so it can be
tested on its own. The question sanitizer is idempotent: running it on
its own output returns the same string.
"""
import json
import re
from typing import Any, Dict, Iterable, Optional


class ResponseCleaner:
    """
    Cleans LLM responses down to one speakable interview question.
    """

    # Field names used in the context block; a line starting with one of
    # these followed by a colon is leaked prompt, not speech
    LABEL_FIELDS = [
        "company", "role", "level", "role description", "competencies",
        "phase", "current phase", "turn", "turn index", "max turns",
        "summary", "fact summary", "known facts", "candidate facts",
        "recent answers", "recent transcripts", "asked questions",
        "previously asked", "previous questions", "context", "instructions",
        "rules", "output", "answer", "candidate",
    ]

    ROLE_PLAY_PREFIX = re.compile(
        r"^\s*(?:\*\*)?(?:q\d*|question(?:\s*\d+)?|next question|interviewer|assistant|ai)(?:\*\*)?(?::|\s+-)(?:\*\*)?\s*",
        re.IGNORECASE,
    )

    LABEL_LINE = re.compile(
        r"^\s*(?:[-*•]\s*)?(?:\*\*)?(?:" + "|".join(re.escape(f) for f in LABEL_FIELDS) + r")(?:\*\*)?\s*:",
        re.IGNORECASE,
    )

    CODE_FENCE = re.compile(r"^\s*```[\w-]*\s*$", re.MULTILINE)
    THINK_BLOCK = re.compile(r"<think>.*?(?:</think>|$)", re.DOTALL | re.IGNORECASE)
    SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

    MIN_QUESTION_CHARS = 4
    MAX_PASSES = 5

    @classmethod
    def strip_code_fences(cls, text: str) -> str:
        text = cls.THINK_BLOCK.sub("", text)
        text = cls.CODE_FENCE.sub("", text)
        return text.replace("```", "")

    @classmethod
    def strip_role_prefix(cls, line: str) -> str:
        previous = None
        while previous != line:
            previous = line
            line = cls.ROLE_PLAY_PREFIX.sub("", line, count=1)
        return line

    @classmethod
    def is_label_line(cls, line: str) -> bool:
        return bool(cls.LABEL_LINE.match(line))

    @classmethod
    def strip_context_fragments(cls, text: str, role: str = "", company: str = "") -> str:
        """Remove dangling 'for the <role> role at <company>' style fragments."""
        role_pat = re.escape(role.strip()) if role and role.strip() else None
        company_pat = re.escape(company.strip()) if company and company.strip() else None
        if not role_pat and not company_pat:
            return text

        parts = []
        if role_pat:
            parts.append(rf"(?:the\s+|a\s+|an\s+)?{role_pat}(?:\s+(?:role|position))?")
        if company_pat:
            parts.append(rf"(?:at\s+)?{company_pat}")
        fragment = r"(?:" + r"\s*".join(parts) + r"|" + r"|".join(parts) + r")"

        # Leading "For the Backend Engineer role at Acme:" / "As a ..., "
        text = re.sub(rf"^\s*(?:for|as)\s+{fragment}\s*[,:\-]\s*", "", text, flags=re.IGNORECASE)
        # A fragment standing on its own before or after the question
        text = re.sub(rf"^\s*{fragment}\s*[.:\-]\s+", "", text, flags=re.IGNORECASE)
        text = re.sub(rf"(?<=\?)\s*\(?\s*{fragment}\s*\)?\s*[.]?\s*$", "", text, flags=re.IGNORECASE)
        return text

    @classmethod
    def first_question_sentence(cls, text: str) -> str:
        for sentence in cls.SENTENCE_SPLIT.split(text):
            sentence = sentence.strip()
            if sentence.endswith("?"):
                return sentence
        return text

    @classmethod
    def _sanitize_pass(cls, text: str, role: str, company: str, max_chars: int) -> str:
        text = cls.strip_code_fences(text)

        lines = []
        for line in text.splitlines():
            line = cls.strip_role_prefix(line).strip()
            if not line or cls.is_label_line(line):
                continue
            lines.append(line)
        text = " ".join(lines)

        text = cls.strip_context_fragments(text, role, company)
        text = cls.first_question_sentence(text)
        text = cls.strip_role_prefix(text)
        text = re.sub(r"\s+", " ", text).strip()
        if len(text) > max_chars:
            text = text[:max_chars].rstrip()
        return text

    @classmethod
    def sanitize_question(
        cls,
        raw: str,
        role: str = "",
        company: str = "",
        max_chars: int = 240,
    ) -> str:
        """
        Reduce raw model output to a single clean question.

        Strips code fences, leaked label lines, role-play prefixes and
        dangling role/company fragments, keeps the first sentence ending
        in '?', collapses whitespace and caps the length.
        """
        if not raw:
            return ""
        text = raw
        for _ in range(cls.MAX_PASSES):
            cleaned = cls._sanitize_pass(text, role, company, max_chars)
            if cleaned == text:
                break
            text = cleaned
        return text

    @classmethod
    def is_usable_question(cls, text: str) -> bool:
        """False for output that must fall back: empty, leaked JSON, too short."""
        if not text:
            return False
        if text.lstrip().startswith(("{", "[")):
            return False
        return len(text.strip()) >= cls.MIN_QUESTION_CHARS

    @staticmethod
    def normalize_for_compare(text: str) -> str:
        """Case/punctuation-insensitive form used to detect repeated questions."""
        text = re.sub(r"[^a-z0-9\s]", " ", (text or "").lower())
        return re.sub(r"\s+", " ", text).strip()

    @classmethod
    def is_repeat(cls, question: str, asked: Iterable[str]) -> bool:
        key = cls.normalize_for_compare(question)
        return any(key == cls.normalize_for_compare(q) for q in asked)

    @staticmethod
    def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
        """
        Parse the first JSON object in a reply, tolerating leading and
        trailing prose. Returns None unless a JSON object is found.
        """
        if not text:
            return None
        start = text.find("{")
        if start < 0:
            return None
        try:
            parsed, _ = json.JSONDecoder().raw_decode(text[start:])
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None
