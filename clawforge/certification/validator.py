"""Bronze validation: strict structural and metadata checks on a skill archive.

The certification pipeline only depends on the ``BronzeValidator`` protocol.
``SkillZipValidator`` is the default implementation: size limits, a
``SKILL.md`` manifest with YAML frontmatter, forbidden paths, suspicious
binaries and committed secrets.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import yaml

from clawforge.certification.archive import SkillArchive
from clawforge.certification.errors import ArchiveError
from clawforge.logging_config import get_logger

logger = get_logger(__name__)

MAX_ZIP_SIZE = 50 * 1024 * 1024
MAX_UNCOMPRESSED_SIZE = 200 * 1024 * 1024  # zip bomb guard
MAX_FILES = 500

SUSPICIOUS_EXTENSIONS = {
    ".exe", ".dll", ".bin", ".bat", ".cmd", ".com", ".scr",
    ".msi", ".vbs", ".wsh", ".wsf", ".ps1", ".pif",
}

FORBIDDEN_PATHS = [".git/", ".env", "node_modules/", ".DS_Store", "__MACOSX/"]

TEXT_EXTENSIONS = (
    ".py", ".sh", ".js", ".ts", ".yaml", ".yml", ".json", ".md",
    ".txt", ".env", ".cfg", ".ini", ".toml",
)

SECRET_PATTERNS = [
    re.compile(r"""(?:api[_-]?key|apikey)\s*[:=]\s*['"][a-zA-Z0-9_\-]{20,}['"]""", re.IGNORECASE),
    re.compile(r"""(?:secret[_-]?key|secret)\s*[:=]\s*['"][a-zA-Z0-9_\-]{20,}['"]""", re.IGNORECASE),
    re.compile(r"""(?:password|passwd|pwd)\s*[:=]\s*['"][^'"]{8,}['"]""", re.IGNORECASE),
    re.compile(r"""(?:access[_-]?token|auth[_-]?token|bearer)\s*[:=]\s*['"][a-zA-Z0-9_\-]{20,}['"]""", re.IGNORECASE),
    re.compile(r"(?:sk_live|sk_test|pk_live|pk_test)_[a-zA-Z0-9]{20,}"),
    re.compile(r"ghp_[a-zA-Z0-9]{36,}"),
    re.compile(r"-----BEGIN (?:RSA |EC |DSA )?PRIVATE KEY-----"),
]

REQUIRED_FIELDS = ["name", "version", "description"]

FRONTMATTER_RE = re.compile(r"^---\s*\n([\s\S]*?)\n---\s*\n?([\s\S]*)")
SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$")

# The automated pipeline validates in this mode
STRICT_MODE = "agent"


@dataclass
class ValidationIssue:
    code: str
    message: str
    file: str | None = None
    line: int | None = None


@dataclass
class SkillMetadata:
    name: str
    version: str
    description: str
    author: str | None = None
    license: str | None = None
    homepage: str | None = None


@dataclass
class ArchiveStats:
    file_count: int = 0
    total_size: int = 0
    has_scripts: bool = False
    has_config: bool = False
    has_assets: bool = False
    has_references: bool = False


@dataclass
class BronzeValidation:
    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    metadata: SkillMetadata | None = None
    stats: ArchiveStats = field(default_factory=ArchiveStats)

    @property
    def error_messages(self) -> list[str]:
        return [e.message for e in self.errors]

    @property
    def warning_messages(self) -> list[str]:
        return [w.message for w in self.warnings]


class BronzeValidator(Protocol):
    def validate(self, data: bytes, mode: str = STRICT_MODE) -> BronzeValidation: ...


def extract_frontmatter(content: str) -> tuple[str, str] | None:
    match = FRONTMATTER_RE.match(content)
    if not match:
        return None
    return match.group(1), match.group(2)


def is_valid_semver(version: str) -> bool:
    return bool(SEMVER_RE.match(version))


class SkillZipValidator:
    """Default Bronze validator for ClawForge skill archives."""

    def validate(self, data: bytes, mode: str = STRICT_MODE) -> BronzeValidation:
        result = BronzeValidation(valid=False)
        errors, warnings = result.errors, result.warnings

        if len(data) > MAX_ZIP_SIZE:
            errors.append(ValidationIssue(
                "ZIP_TOO_LARGE",
                f"Archive exceeds the {MAX_ZIP_SIZE // (1024 * 1024)} MB limit "
                f"({len(data) / 1024 / 1024:.1f} MB)",
            ))
            return result

        try:
            archive = SkillArchive.from_bytes(data)
        except ArchiveError:
            errors.append(ValidationIssue("INVALID_ZIP", "File is not a valid zip archive"))
            return result

        with archive:
            self._validate_archive(archive, result, strict=mode == STRICT_MODE)

        result.valid = not errors
        logger.debug(
            "bronze_validation_done",
            valid=result.valid, errors=len(errors), warnings=len(warnings), mode=mode,
        )
        return result

    def _validate_archive(self, archive: SkillArchive, result: BronzeValidation, strict: bool) -> None:
        errors, warnings, stats = result.errors, result.warnings, result.stats
        infos = archive.infos

        stats.file_count = len(infos)
        if not infos:
            errors.append(ValidationIssue("EMPTY_ZIP", "Archive is empty"))
            return
        if len(infos) > MAX_FILES:
            errors.append(ValidationIssue(
                "TOO_MANY_FILES", f"Archive contains too many files ({len(infos)}/{MAX_FILES} max)",
            ))
            return

        stats.total_size = sum(i.file_size for i in infos)
        if stats.total_size > MAX_UNCOMPRESSED_SIZE:
            errors.append(ValidationIssue(
                "UNCOMPRESSED_TOO_LARGE",
                f"Uncompressed size exceeds {MAX_UNCOMPRESSED_SIZE // (1024 * 1024)} MB "
                f"({stats.total_size / 1024 / 1024:.1f} MB)",
            ))
            return

        if not self._validate_manifest(archive, result):
            return

        for path in archive.files:
            self._scan_entry(archive, path, result, strict)

        root_name = archive.root.rstrip("/")
        if result.metadata and root_name and root_name != result.metadata.name:
            warnings.append(ValidationIssue(
                "NAME_MISMATCH",
                f'Folder name "{root_name}" does not match the SKILL.md name "{result.metadata.name}"',
            ))

        if not archive.has_file("README.md"):
            warnings.append(ValidationIssue("MISSING_README", "README.md is recommended but missing"))

    def _validate_manifest(self, archive: SkillArchive, result: BronzeValidation) -> bool:
        """Parse SKILL.md frontmatter. Returns False when validation cannot continue."""
        errors = result.errors

        if not archive.has_file("SKILL.md"):
            where = f" (looked in {archive.root})" if archive.root else ""
            errors.append(ValidationIssue(
                "MISSING_SKILL_MD", f"Required SKILL.md not found at the archive root{where}",
            ))
            return False

        content = archive.read_relative("SKILL.md")
        if content is None:
            errors.append(ValidationIssue("SKILL_MD_UNREADABLE", "SKILL.md could not be read"))
            return False

        frontmatter = extract_frontmatter(content)
        if frontmatter is None:
            errors.append(ValidationIssue(
                "INVALID_FRONTMATTER", "SKILL.md must start with a YAML block (--- ... ---)",
            ))
            return False

        try:
            parsed: Any = yaml.safe_load(frontmatter[0])
        except yaml.YAMLError as e:
            errors.append(ValidationIssue("INVALID_YAML", f"Invalid YAML in SKILL.md: {e}", file="SKILL.md"))
            return False

        if not isinstance(parsed, dict):
            errors.append(ValidationIssue(
                "INVALID_YAML", "SKILL.md frontmatter must be a mapping", file="SKILL.md",
            ))
            return False

        missing = [f for f in REQUIRED_FIELDS if not parsed.get(f)]
        if missing:
            errors.append(ValidationIssue(
                "MISSING_REQUIRED_FIELDS",
                f"Missing required SKILL.md fields: {', '.join(missing)}",
                file="SKILL.md",
            ))

        if parsed.get("version") and not is_valid_semver(str(parsed["version"])):
            errors.append(ValidationIssue(
                "INVALID_VERSION",
                f'Invalid version "{parsed["version"]}". Use semver (e.g. 1.0.0)',
                file="SKILL.md",
            ))

        if not missing:
            result.metadata = SkillMetadata(
                name=str(parsed["name"]),
                version=str(parsed["version"]),
                description=str(parsed["description"]),
                author=str(parsed["author"]) if parsed.get("author") else None,
                license=str(parsed["license"]) if parsed.get("license") else None,
                homepage=str(parsed["homepage"]) if parsed.get("homepage") else None,
            )
        return True

    def _scan_entry(self, archive: SkillArchive, path: str, result: BronzeValidation, strict: bool) -> None:
        relative = archive.relative(path)
        stats = result.stats

        if any(relative.startswith(p) or ("/" + p) in relative for p in FORBIDDEN_PATHS):
            issue = ValidationIssue("FORBIDDEN_PATH", f"Path not allowed: {relative}", file=relative)
            (result.errors if strict else result.warnings).append(issue)
            return

        ext = "." + path.rsplit(".", 1)[-1].lower() if "." in path else ""
        if ext in SUSPICIOUS_EXTENSIONS:
            result.errors.append(ValidationIssue(
                "SUSPICIOUS_BINARY", f"Suspicious binary extension: {relative}", file=relative,
            ))
            return

        stats.has_scripts |= relative.startswith("scripts/")
        stats.has_config |= relative.startswith("config/")
        stats.has_assets |= relative.startswith("assets/")
        stats.has_references |= relative.startswith("references/")

        if not path.lower().endswith(TEXT_EXTENSIONS):
            return
        content = archive.read_text(path)
        if content is None:
            return
        for lineno, line in enumerate(content.split("\n"), start=1):
            if any(p.search(line) for p in SECRET_PATTERNS):
                result.errors.append(ValidationIssue(
                    "SECRET_DETECTED",
                    f"Potential secret in {relative} (line {lineno})",
                    file=relative, line=lineno,
                ))
