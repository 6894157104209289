"""
Resume Service - pre-fill profile fields from an uploaded CV.

Text is pulled out of the PDF with PyMuPDF, then scanned for known skill
keywords and cut down to a short bio. Nothing is saved here; the results
are suggestions the profile form can accept or ignore.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List
import logging
import re

import fitz  # PyMuPDF

from careerbird.core.exceptions import WizardValidationError
from careerbird.services.profile_completeness_service import field_value, is_present
from careerbird.services.wizard_service import split_interests

logger = logging.getLogger(__name__)

SKILL_KEYWORDS = [
    "Python", "JavaScript", "TypeScript", "Java", "C++", "C#", "Go", "Rust",
    "React", "Vue", "Angular", "Node.js", "Express", "Django", "Flask",
    "Machine Learning", "Deep Learning", "AI", "Artificial Intelligence",
    "Data Science", "Data Analysis", "Statistics", "Research",
    "SQL", "MongoDB", "PostgreSQL", "Redis",
    "Git", "Docker", "Kubernetes", "AWS", "Azure", "GCP",
    "TensorFlow", "PyTorch", "Scikit-learn", "Pandas", "NumPy",
    "Computer Vision", "NLP", "Natural Language Processing",
    "MATLAB", "R", "SPSS", "Tableau", "Power BI",
]

BIO_LENGTH = 200


@dataclass
class ResumeDraft:
    skills: List[str] = field(default_factory=list)
    bio: str = ""


def extract_pdf_text(data: bytes) -> str:
    """All page text, pages joined by a space."""
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            return " ".join(page.get_text() for page in doc)
    except (RuntimeError, ValueError) as e:
        logger.info(f"Could not read uploaded resume: {e}")
        raise WizardValidationError(["file"], "Failed to process PDF. Please try again.") from e


def extract_skills(text: str) -> List[str]:
    """Known skills named in the text, whole words only, in list order."""
    found = []
    for skill in SKILL_KEYWORDS:
        if re.search(rf"(?<!\w){re.escape(skill)}(?!\w)", text, re.IGNORECASE):
            found.append(skill)
    return list(dict.fromkeys(found))


def extract_bio(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()[:BIO_LENGTH]


def parse_resume(data: bytes) -> ResumeDraft:
    text = extract_pdf_text(data)
    return ResumeDraft(skills=extract_skills(text), bio=extract_bio(text))


def suggest_profile_fields(profile: Any, draft: ResumeDraft) -> Dict[str, Any]:
    """
    Form values to offer after a resume scan.

    New skills are appended to the saved research interests (case-insensitive
    de-duplication); the bio is only offered when none is saved yet.
    """
    interests = split_interests(field_value(profile, "research_interests"))
    seen = {tag.lower() for tag in interests}
    interests.extend(skill for skill in draft.skills if skill.lower() not in seen)

    suggestion: Dict[str, Any] = {"research_interests": interests}
    if draft.bio and not is_present(field_value(profile, "bio")):
        suggestion["bio"] = draft.bio
    return suggestion
