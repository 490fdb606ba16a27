"""
Fact extraction utilities for interview answers.
Pulls name, education, projects and skills out of a transcript and folds
them into the capped running summary that serves as long-term memory.
"""
import re
import logging
from typing import List, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class ExtractedFact:
    """Represents an extracted fact from an interview answer."""
    type: str  # name, institution, degree, project, skills
    content: str

    def to_summary(self) -> str:
        return f"{self.type}: {self.content}"


class FactExtractor:
    """
    Extracts structured facts from interview answers.
    No model call: regex and a fixed vocabulary only.
    """

    # Canonical display name -> spoken/typed variants
    SKILL_VOCABULARY = {
        'Python': ['python'],
        'JavaScript': ['javascript'],
        'TypeScript': ['typescript'],
        'Java': ['java'],
        'C++': ['c++', 'cpp'],
        'C#': ['c#', 'c sharp'],
        'Go': ['golang'],
        'Rust': ['rust'],
        'React': ['react', 'react.js', 'reactjs'],
        'Angular': ['angular'],
        'Vue': ['vue', 'vue.js'],
        'Node.js': ['node.js', 'nodejs', 'node'],
        'Django': ['django'],
        'Flask': ['flask'],
        'FastAPI': ['fastapi'],
        'Spring Boot': ['spring boot'],
        'SQL': ['sql'],
        'PostgreSQL': ['postgresql', 'postgres'],
        'MySQL': ['mysql'],
        'MongoDB': ['mongodb', 'mongo'],
        'Redis': ['redis'],
        'Kafka': ['kafka'],
        'AWS': ['aws', 'amazon web services'],
        'Azure': ['azure'],
        'GCP': ['gcp', 'google cloud'],
        'Docker': ['docker'],
        'Kubernetes': ['kubernetes', 'k8s'],
        'Terraform': ['terraform'],
        'Git': ['git'],
        'Linux': ['linux'],
        'GraphQL': ['graphql'],
        'REST': ['rest api', 'rest apis', 'restful'],
        'Microservices': ['microservices'],
        'Machine Learning': ['machine learning'],
        'Deep Learning': ['deep learning'],
        'TensorFlow': ['tensorflow'],
        'PyTorch': ['pytorch'],
        'Pandas': ['pandas'],
        'HTML': ['html'],
        'CSS': ['css'],
        'CI/CD': ['ci/cd', 'continuous integration'],
        'Figma': ['figma'],
    }

    MAX_SKILLS = 8
    MAX_PROJECTS = 2
    MAX_CLAUSE_CHARS = 120

    NAME_PATTERN = re.compile(
        r"(?i:\bmy name is|\bi am|\bi'm|\bthis is|\bcall me)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"
    )

    INSTITUTION_PATTERN = re.compile(
        r"(?i:\b(?:at|from|attended|attend|joined))\s+((?:the\s+)?(?:University|Institute|College|School)\s+of\s+[A-Z][\w&.-]*(?:\s+[A-Z][\w&.-]*)*"
        r"|[A-Z][\w&.-]*(?:\s+[A-Z][\w&.-]*)*\s+(?:University|Institute(?:\s+of\s+Technology)?|College|Polytechnic))"
    )

    DEGREE_PATTERN = re.compile(
        r"\b((?:bachelor|master)(?:'?s)?(?:\s+degree)?(?:\s+(?:of|in)\s+[a-z]+(?:\s+(?!from\b|at\b|and\b)[a-z]+){0,2})?"
        r"|ph\.?\s?d\.?(?:\s+in\s+[a-z]+(?:\s+(?!from\b|at\b|and\b)[a-z]+){0,2})?"
        r"|mba|b\.?\s?tech|m\.?\s?tech|b\.?\s?sc|m\.?\s?sc)(?![\w])",
        re.IGNORECASE,
    )

    PROJECT_WORDS = re.compile(r"\b(?:projects?|built|build|developed|implemented|created|designed)\b", re.IGNORECASE)

    def __init__(self):
        self._skill_patterns = [
            (name, [re.compile(rf"(?<![\w]){re.escape(v)}(?![\w+#])", re.IGNORECASE) for v in variants])
            for name, variants in self.SKILL_VOCABULARY.items()
        ]

    def extract_facts(self, transcript: str) -> List[ExtractedFact]:
        """
        Extract facts from one transcript.

        Args:
            transcript: The candidate's answer text

        Returns:
            List of extracted facts, in summary order
        """
        text = (transcript or "").strip()
        if not text:
            return []

        facts = []

        name = self._extract_name(text)
        if name:
            facts.append(ExtractedFact(type='name', content=name))

        institution = self._first_group(self.INSTITUTION_PATTERN, text)
        if institution:
            facts.append(ExtractedFact(type='institution', content=institution))

        degree = self._first_group(self.DEGREE_PATTERN, text)
        if degree:
            facts.append(ExtractedFact(type='degree', content=degree))

        for clause in self._extract_projects(text):
            facts.append(ExtractedFact(type='project', content=clause))

        skills = self._extract_skills(text)
        if skills:
            facts.append(ExtractedFact(type='skills', content=", ".join(skills)))

        logger.info(f"Extracted {len(facts)} facts from transcript")
        return facts

    def summarize(self, transcript: str) -> str:
        """Single semicolon-joined summary line; empty when nothing matched."""
        return "; ".join(f.to_summary() for f in self.extract_facts(transcript))

    def _extract_name(self, text: str) -> Optional[str]:
        match = self.NAME_PATTERN.search(text)
        return match.group(1).strip() if match else None

    @staticmethod
    def _first_group(pattern: re.Pattern, text: str) -> Optional[str]:
        match = pattern.search(text)
        if not match:
            return None
        return re.sub(r"\s+", " ", match.group(1)).strip(" .,")

    def _extract_projects(self, text: str) -> List[str]:
        clauses = []
        for sentence in re.split(r"(?<=[.!?])\s+", text):
            sentence = sentence.strip()
            if sentence and self.PROJECT_WORDS.search(sentence):
                clauses.append(sentence[:self.MAX_CLAUSE_CHARS].rstrip())
            if len(clauses) >= self.MAX_PROJECTS:
                break
        return clauses

    def _extract_skills(self, text: str) -> List[str]:
        """Recognized skills ordered by first mention, deduplicated."""
        found = []
        for name, patterns in self._skill_patterns:
            positions = [m.start() for p in patterns for m in [p.search(text)] if m]
            if positions:
                found.append((min(positions), name))
        found.sort()
        return [name for _, name in found[:self.MAX_SKILLS]]


def merge_summary(summary: str, facts_line: str, cap: int) -> str:
    """
    Append a facts line to the running summary, keeping the newest content.

    When the combined text exceeds ``cap`` characters the oldest
    (left-most) characters are dropped.
    """
    if cap <= 0:
        return ""
    if not facts_line:
        return summary[-cap:]
    combined = f"{summary}; {facts_line}" if summary else facts_line
    return combined[-cap:]


# Global instance
fact_extractor = FactExtractor()
