"""Static quality scorer producing the 0-100 Silver score.

Five independent heuristics, each worth 0-20 points:

    structure      expected files and folders at the archive root
    documentation  README length and sections
    tests          presence and number of test files
    code_quality   leftover debug statements and TODO markers
    security       known-risky npm / pip dependencies

This is a fast, deterministic triage signal, not a security scanner. The
result depends only on the archive bytes.
"""
from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field

from clawforge.certification.archive import SkillArchive

MAX_CRITERION_SCORE = 20
MAX_SCANNED_CODE_FILES = 20
LARGE_CODEBASE_FILES = 50

TEST_PATTERNS = [
    re.compile(r"\.test\.(js|ts|py)$"),
    re.compile(r"\.spec\.(js|ts|py)$"),
    re.compile(r"_test\.(py|go)$"),
    re.compile(r"test_.*\.py$"),
    re.compile(r"^tests?/"),
]

BAD_PATTERNS = [
    (re.compile(r"console\.log\("), "leftover console.log()"),
    (re.compile(r"TODO|FIXME|HACK|XXX"), "leftover TODO/FIXME marker"),
    (re.compile(r"debugger;"), "leftover debugger; statement"),
]

CODE_EXTENSIONS = (".py", ".js", ".ts", ".sh")

# Packages with a history of hijacking or sabotage
DANGEROUS_DEPS = [
    "event-stream", "flatmap-stream", "colors", "faker",
    "ua-parser-js", "coa", "rc",
]

README_SECTIONS = [
    (re.compile(r"##\s*install", re.IGNORECASE), 3, "Installation section"),
    (re.compile(r"##\s*usage", re.IGNORECASE), 3, "Usage section"),
    (re.compile(r"##\s*(exemple|example)", re.IGNORECASE), 2, "Examples section"),
    (re.compile(r"##\s*(config|configuration)", re.IGNORECASE), 2, "Configuration section"),
]


@dataclass
class SilverCriteria:
    structure: int = 0
    documentation: int = 0
    tests: int = 0
    code_quality: int = 0
    security: int = 0

    def total(self) -> int:
        return sum(asdict(self).values())

    def to_dict(self) -> dict[str, int]:
        return {
            "structure": self.structure,
            "documentation": self.documentation,
            "tests": self.tests,
            "codeQuality": self.code_quality,
            "security": self.security,
        }


@dataclass
class ScoringResult:
    score: int
    criteria: SilverCriteria
    details: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "criteria": self.criteria.to_dict(),
            "details": self.details,
        }


def _clamp(score: int) -> int:
    return max(0, min(MAX_CRITERION_SCORE, score))


def score_structure(archive: SkillArchive) -> tuple[int, list[str]]:
    details: list[str] = []
    score = 0

    if archive.has_file("SKILL.md"):
        score += 5
        details.append("SKILL.md present")
    else:
        details.append("SKILL.md missing")

    if archive.has_file("README.md"):
        score += 5
        details.append("README.md present")
    else:
        details.append("README.md missing")

    if archive.has_dir("scripts"):
        score += 4
        details.append("scripts/ directory present")

    if archive.has_dir("config"):
        score += 3
        details.append("config/ directory present")

    if archive.has_file("LICENSE") or archive.has_file("LICENSE.md"):
        score += 3
        details.append("LICENSE file present")

    return _clamp(score), details


def score_documentation(archive: SkillArchive) -> tuple[int, list[str]]:
    if not archive.has_file("README.md"):
        return 0, ["README.md absent"]

    content = archive.read_relative("README.md")
    if content is None:
        return 0, ["README.md unreadable"]

    details: list[str] = []
    score = 0
    word_count = len(content.split())

    if word_count > 100:
        score += 3
        details.append(f"README: {word_count} words")
    if word_count > 200:
        score += 3
        details.append("README > 200 words")
    if word_count > 500:
        score += 2
        details.append("README > 500 words")

    if "# " in content:
        score += 2
        details.append("Title present")

    for pattern, points, label in README_SECTIONS:
        if pattern.search(content):
            score += points
            details.append(label)

    return _clamp(score), details


def find_test_files(archive: SkillArchive) -> list[str]:
    return [
        path for path in archive.files
        if any(p.search(archive.relative(path)) for p in TEST_PATTERNS)
    ]


def score_tests(archive: SkillArchive) -> tuple[int, list[str]]:
    details: list[str] = []
    score = 0
    test_files = find_test_files(archive)

    if test_files:
        score += 10
        details.append(f"{len(test_files)} test file(s) found")
    else:
        details.append("No test files")

    if len(test_files) >= 3:
        score += 5
        details.append("3+ test files")
    if len(test_files) >= 5:
        score += 5
        details.append("5+ test files")

    return _clamp(score), details


def score_code_quality(archive: SkillArchive) -> tuple[int, list[str]]:
    details: list[str] = []
    score = MAX_CRITERION_SCORE

    code_files = [f for f in archive.files if f.endswith(CODE_EXTENSIONS)]

    total_bad = 0
    for path, content in archive.iter_text(code_files[:MAX_SCANNED_CODE_FILES]):
        for pattern, label in BAD_PATTERNS:
            matches = pattern.findall(content)
            if matches:
                total_bad += len(matches)
                details.append(f"{label} in {archive.relative(path)}")

    if total_bad > 0:
        score -= min(10, total_bad * 2)
    else:
        details.append("No low-quality patterns detected")

    if len(code_files) > LARGE_CODEBASE_FILES:
        score -= 3
        details.append(f"Too many code files (>{LARGE_CODEBASE_FILES})")

    return _clamp(score), details


def _package_json_deps(content: str) -> dict:
    try:
        pkg = json.loads(content)
    except json.JSONDecodeError:
        return {}
    if not isinstance(pkg, dict):
        return {}
    deps: dict = {}
    for key in ("dependencies", "devDependencies"):
        section = pkg.get(key)
        if isinstance(section, dict):
            deps.update(section)
    return deps


def _requirement_names(content: str) -> list[str]:
    return [line.strip().split("==")[0].split(">=")[0] for line in content.split("\n")]


def score_security(archive: SkillArchive) -> tuple[int, list[str]]:
    details: list[str] = []
    score = MAX_CRITERION_SCORE

    package_json = archive.read_relative("package.json")
    if package_json is not None:
        deps = _package_json_deps(package_json)
        for dep in DANGEROUS_DEPS:
            if deps.get(dep):
                score -= 5
                details.append(f"Dangerous dependency: {dep}")

    requirements = archive.read_relative("requirements.txt")
    if requirements is not None:
        names = _requirement_names(requirements)
        for dep in DANGEROUS_DEPS:
            if dep in names:
                score -= 5
                details.append(f"Dangerous dependency (pip): {dep}")

    if score == MAX_CRITERION_SCORE:
        details.append("No known-risky dependency detected")

    return _clamp(score), details


def score_archive(archive: SkillArchive) -> ScoringResult:
    structure, structure_details = score_structure(archive)
    documentation, documentation_details = score_documentation(archive)
    tests, tests_details = score_tests(archive)
    code_quality, code_quality_details = score_code_quality(archive)
    security, security_details = score_security(archive)

    criteria = SilverCriteria(
        structure=structure,
        documentation=documentation,
        tests=tests,
        code_quality=code_quality,
        security=security,
    )
    return ScoringResult(
        score=criteria.total(),
        criteria=criteria,
        details={
            "structure": structure_details,
            "documentation": documentation_details,
            "tests": tests_details,
            "codeQuality": code_quality_details,
            "security": security_details,
        },
    )


def calculate_silver_score(data: bytes) -> ScoringResult:
    """Score raw archive bytes. Raises ``ArchiveError`` if the zip cannot be opened."""
    with SkillArchive.from_bytes(data) as archive:
        return score_archive(archive)
