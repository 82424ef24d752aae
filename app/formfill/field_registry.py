from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .pipeline.normalize import normalize_text

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    key: str
    group: str
    label: str
    keywords: List[str]
    # Groups of interchangeable option texts for closed-vocabulary controls.
    option_fallbacks: List[List[str]] = field(default_factory=list)


FIELDS: List[FieldSpec] = [
    # Identity
    FieldSpec(
        key="fullName",
        group="identity",
        label="Full name",
        keywords=[
            "name",
            "full name",
            "your name",
            "applicant name",
            "candidate name",
            "first name",
            "last name",
            "fname",
            "lname",
            "fullname",
            "complete name",
            "legal name",
        ],
    ),
    # Contact
    FieldSpec(
        key="email",
        group="contact",
        label="Email",
        keywords=[
            "email",
            "e-mail",
            "email address",
            "contact email",
            "university email",
            "college email",
            "mail",
            "electronic mail",
        ],
    ),
    FieldSpec(
        key="phone",
        group="contact",
        label="Phone",
        keywords=[
            "phone",
            "mobile",
            "telephone",
            "contact number",
            "phone number",
            "mobile number",
            "cell",
            "tel",
            "number",
        ],
    ),
    # Academic
    FieldSpec(
        key="studentNumber",
        group="academic",
        label="Student number",
        keywords=[
            "student",
            "registration",
            "id number",
            "student id",
            "enrollment",
            "roll number",
            "student number",
            "registration number",
            "reg no",
        ],
    ),
    FieldSpec(
        key="tenthMarks",
        group="academic",
        label="10th grade marks",
        keywords=[
            "10th",
            "tenth",
            "10 grade",
            "tenth grade",
            "class 10",
            "ssc",
            "matriculation",
            "10th marks",
            "tenth marks",
            "10th percentage",
            "class x",
        ],
    ),
    FieldSpec(
        key="twelfthMarks",
        group="academic",
        label="12th grade marks",
        keywords=[
            "12th",
            "twelfth",
            "12 grade",
            "twelfth grade",
            "class 12",
            "hsc",
            "intermediate",
            "12th marks",
            "twelfth marks",
            "12th percentage",
            "class xii",
        ],
    ),
    FieldSpec(
        key="ugCgpa",
        group="academic",
        label="Undergraduate CGPA",
        keywords=[
            "cgpa",
            "gpa",
            "undergraduate",
            "ug cgpa",
            "college gpa",
            "university gpa",
            "graduation",
            "bachelor",
        ],
    ),
    FieldSpec(
        key="gender",
        group="personal",
        label="Gender",
        keywords=["gender", "sex", "male", "female", "gender identity", "sex identity"],
        option_fallbacks=[
            ["Male", "M", "man", "boy"],
            ["Female", "F", "woman", "girl"],
            ["Other", "prefer not to say", "non-binary", "non binary"],
        ],
    ),
    FieldSpec(
        key="campus",
        group="academic",
        label="Campus",
        keywords=["campus", "college", "university", "institution", "vit", "amaravathi"],
        option_fallbacks=[
            [
                "VIT-AP",
                "VIT-Amaravathi",
                "VIT AP",
                "VITAP",
                "VIT Amravati",
                "amaravathi",
                "amravati",
                "andhra pradesh",
                "ap",
            ],
        ],
    ),
    FieldSpec(
        key="specialization",
        group="academic",
        label="Specialization",
        keywords=["specialization", "specialisation", "branch", "major", "stream", "discipline", "degree"],
    ),
    FieldSpec(
        key="dateOfBirth",
        group="personal",
        label="Date of birth",
        keywords=["date of birth", "birth date", "birthdate", "dob", "birthday"],
    ),
    # Professional links
    FieldSpec(
        key="linkedinUrl",
        group="links",
        label="LinkedIn URL",
        keywords=[
            "linkedin",
            "linked in",
            "linkedin profile",
            "linkedin url",
            "professional profile",
            "linked-in",
        ],
    ),
    FieldSpec(
        key="githubUrl",
        group="links",
        label="GitHub URL",
        keywords=["github", "git hub", "github profile", "github url", "repository", "git-hub", "repo"],
    ),
    FieldSpec(
        key="leetcodeUrl",
        group="links",
        label="Coding profile URL",
        keywords=[
            "leetcode",
            "leet code",
            "coding profile",
            "algorithm profile",
            "competitive programming",
            "leet-code",
            "coding",
        ],
    ),
    FieldSpec(
        key="resumeUrl",
        group="links",
        label="Resume URL",
        keywords=["resume", "cv", "curriculum vitae", "resume link", "cv link", "curriculum", "resume url"],
    ),
    FieldSpec(
        key="portfolioUrl",
        group="links",
        label="Portfolio URL",
        keywords=[
            "portfolio",
            "website",
            "personal website",
            "portfolio website",
            "work samples",
            "personal site",
            "portfolio url",
        ],
    ),
]


FIELD_REGISTRY: Dict[str, FieldSpec] = {spec.key: spec for spec in FIELDS}
FIELD_ORDER: List[str] = [spec.key for spec in FIELDS]


@dataclass(frozen=True)
class PatternEntry:
    key: str
    keywords: Tuple[str, ...]
    option_fallbacks: Tuple[Tuple[str, ...], ...] = ()

    @property
    def match_keywords(self) -> Tuple[str, ...]:
        normalized = (normalize_text(keyword) for keyword in self.keywords)
        return tuple(keyword for keyword in normalized if keyword)


@dataclass(frozen=True)
class Taxonomy:
    """Immutable keyword table; declaration order is the tie-break order."""

    entries: Tuple[PatternEntry, ...]

    def keys(self) -> List[str]:
        return [entry.key for entry in self.entries]

    def get(self, key: str) -> Optional[PatternEntry]:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    def fallback_groups(self, key: str) -> Tuple[Tuple[str, ...], ...]:
        entry = self.get(key)
        return entry.option_fallbacks if entry else ()


def _entry_from_spec(spec: FieldSpec) -> PatternEntry:
    return PatternEntry(
        key=spec.key,
        keywords=tuple(spec.keywords),
        option_fallbacks=tuple(tuple(group) for group in spec.option_fallbacks),
    )


def _entries_from_file(path: Path) -> List[PatternEntry]:
    payload = json.loads(path.read_text())
    raw_entries = payload.get("fields") if isinstance(payload, dict) else payload
    if not isinstance(raw_entries, list):
        raise ValueError(f"Taxonomy file {path} must hold a list of fields")
    entries: List[PatternEntry] = []
    for raw in raw_entries:
        if not isinstance(raw, dict) or not raw.get("key"):
            raise ValueError(f"Taxonomy entry without key in {path}: {raw!r}")
        keywords = [str(keyword) for keyword in raw.get("keywords") or []]
        fallbacks = [[str(item) for item in group] for group in raw.get("option_fallbacks") or []]
        entries.append(
            PatternEntry(
                key=str(raw["key"]),
                keywords=tuple(keywords),
                option_fallbacks=tuple(tuple(group) for group in fallbacks),
            )
        )
    return entries


def build_taxonomy(specs: Iterable[FieldSpec], extra: Iterable[PatternEntry] = ()) -> Taxonomy:
    entries: Dict[str, PatternEntry] = {}
    for spec in specs:
        entries[spec.key] = _entry_from_spec(spec)
    for entry in extra:
        if entry.key in entries:
            LOGGER.info("Taxonomy override for %s", entry.key)
        entries[entry.key] = entry
    return Taxonomy(entries=tuple(entries.values()))


@lru_cache(maxsize=8)
def load_taxonomy(path: Optional[str] = None) -> Taxonomy:
    extra: List[PatternEntry] = []
    if path:
        extra = _entries_from_file(Path(path))
        LOGGER.info("Loaded %d taxonomy entries from %s", len(extra), path)
    return build_taxonomy(FIELDS, extra)


def get_field_spec(key: str) -> Optional[FieldSpec]:
    return FIELD_REGISTRY.get(key)


def get_field_label(key: str) -> str:
    spec = get_field_spec(key)
    return spec.label if spec else key


def _field_group(key: str) -> str:
    # Keys added only through a taxonomy file have no registry entry.
    spec = get_field_spec(key)
    return spec.group if spec else "custom"


def field_registry_payload(taxonomy: Optional[Taxonomy] = None) -> Dict[str, object]:
    taxonomy = taxonomy or load_taxonomy()
    return {
        "fields": [
            {
                "key": entry.key,
                "label": get_field_label(entry.key),
                "group": _field_group(entry.key),
                "keywords": list(entry.keywords),
                "option_fallbacks": [list(group) for group in entry.option_fallbacks],
            }
            for entry in taxonomy.entries
        ],
        "order": taxonomy.keys(),
    }
