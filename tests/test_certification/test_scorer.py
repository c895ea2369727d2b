"""Tests for the static Silver quality scorer."""

import json

import pytest

from clawforge.certification.archive import SkillArchive
from clawforge.certification.errors import ArchiveError
from clawforge.certification.scorer import (
    calculate_silver_score,
    find_test_files,
    score_code_quality,
    score_documentation,
    score_security,
    score_structure,
    score_tests,
)


def _archive(build_zip, files, dirs=()):
    return SkillArchive.from_bytes(build_zip(files, dirs))


class TestOverallScore:
    def test_well_formed_skill_scores_full_marks(self, valid_skill_zip):
        result = calculate_silver_score(valid_skill_zip)

        assert result.score == 100
        assert result.criteria.to_dict() == {
            "structure": 20,
            "documentation": 20,
            "tests": 20,
            "codeQuality": 20,
            "security": 20,
        }

    def test_score_is_sum_of_criteria(self, build_zip):
        data = build_zip({"skill/SKILL.md": "x", "skill/app.js": "console.log('a')\n"})
        result = calculate_silver_score(data)

        assert result.score == result.criteria.total()
        assert 0 <= result.score <= 100

    def test_deterministic(self, valid_skill_zip):
        assert calculate_silver_score(valid_skill_zip) == calculate_silver_score(valid_skill_zip)

    def test_empty_archive_keeps_quality_and_security(self, build_zip):
        result = calculate_silver_score(build_zip({}))

        assert result.criteria.structure == 0
        assert result.criteria.documentation == 0
        assert result.criteria.tests == 0
        assert result.criteria.code_quality == 20
        assert result.criteria.security == 20
        assert result.score == 40

    def test_corrupt_archive_raises(self):
        with pytest.raises(ArchiveError):
            calculate_silver_score(b"PK\x03\x04 truncated")

    def test_details_per_criterion(self, valid_skill_zip):
        details = calculate_silver_score(valid_skill_zip).details
        assert set(details) == {"structure", "documentation", "tests", "codeQuality", "security"}


class TestStructure:
    def test_wrapping_folder_is_transparent(self, build_zip):
        flat = _archive(build_zip, {"SKILL.md": "x", "README.md": "y", "LICENSE": "MIT"})
        wrapped = _archive(build_zip, {"s/SKILL.md": "x", "s/README.md": "y", "s/LICENSE": "MIT"})

        assert score_structure(flat)[0] == score_structure(wrapped)[0] == 13

    def test_explicit_empty_directories_count(self, build_zip):
        archive = _archive(build_zip, {"s/SKILL.md": "x"}, dirs=("s/scripts/", "s/config/"))
        score, details = score_structure(archive)

        assert score == 5 + 4 + 3
        assert "scripts/ directory present" in details

    def test_license_md_accepted(self, build_zip):
        assert score_structure(_archive(build_zip, {"LICENSE.md": "MIT"}))[0] == 3


class TestDocumentation:
    def test_missing_readme(self, build_zip):
        assert score_documentation(_archive(build_zip, {"SKILL.md": "x"})) == (0, ["README.md absent"])

    def test_short_readme_with_title(self, build_zip):
        score, _ = score_documentation(_archive(build_zip, {"README.md": "# Title\nshort"}))
        assert score == 2

    def test_word_count_tiers(self, build_zip):
        words = "word " * 250
        score, details = score_documentation(_archive(build_zip, {"README.md": words}))
        assert score == 6
        assert "README > 200 words" in details

    def test_sections_case_insensitive(self, build_zip):
        readme = "## INSTALL\n## usage\n## Exemple\n## Config"
        score, _ = score_documentation(_archive(build_zip, {"README.md": readme}))
        # "## " also satisfies the title check
        assert score == 2 + 3 + 3 + 2 + 2

    def test_capped_at_twenty(self, build_zip):
        readme = "# T\n" + "word " * 600 + "## Install\n## Usage\n## Examples\n## Configuration\n"
        assert score_documentation(_archive(build_zip, {"README.md": readme}))[0] == 20


class TestTests:
    @pytest.mark.parametrize("path", [
        "skill/src/app.test.js",
        "skill/src/app.spec.ts",
        "skill/pkg/thing_test.go",
        "skill/test_thing.py",
        "skill/tests/helpers.js",
        "skill/test/fixtures.json",
    ])
    def test_patterns(self, build_zip, path):
        archive = _archive(build_zip, {"skill/SKILL.md": "x", path: ""})
        assert find_test_files(archive) == [path]

    def test_tiers(self, build_zip):
        files = {f"tests/test_{i}.py": "" for i in range(3)}
        assert score_tests(_archive(build_zip, files))[0] == 15

        files = {f"tests/test_{i}.py": "" for i in range(5)}
        assert score_tests(_archive(build_zip, files))[0] == 20

    def test_none(self, build_zip):
        assert score_tests(_archive(build_zip, {"SKILL.md": "x"})) == (0, ["No test files"])


class TestCodeQuality:
    def test_penalty_per_match(self, build_zip):
        code = "console.log('a')\n// TODO fix\ndebugger;\n"
        score, details = score_code_quality(_archive(build_zip, {"app.js": code}))
        assert score == 20 - 6
        assert len(details) == 3

    def test_penalty_capped_at_ten(self, build_zip):
        code = "# TODO\n" * 30
        assert score_code_quality(_archive(build_zip, {"app.py": code}))[0] == 10

    def test_non_code_files_ignored(self, build_zip):
        assert score_code_quality(_archive(build_zip, {"notes.md": "TODO: everything"}))[0] == 20

    def test_only_first_twenty_code_files_scanned(self, build_zip):
        files = {f"src/m{i:02d}.py": "x = 1\n" for i in range(20)}
        files["src/m99.py"] = "# FIXME\n"
        assert score_code_quality(_archive(build_zip, files))[0] == 20

    def test_large_codebase_penalty(self, build_zip):
        files = {f"src/m{i:02d}.py": "x = 1\n" for i in range(51)}
        assert score_code_quality(_archive(build_zip, files))[0] == 17


class TestSecurity:
    def test_dangerous_npm_dependency(self, build_zip):
        pkg = json.dumps({"dependencies": {"event-stream": "3.3.6"}, "devDependencies": {"colors": "1.4.1"}})
        score, details = score_security(_archive(build_zip, {"skill/package.json": pkg}))
        assert score == 10
        assert "Dangerous dependency: event-stream" in details

    def test_dangerous_pip_requirement(self, build_zip):
        reqs = "requests==2.31.0\nfaker>=1.0\n"
        score, _ = score_security(_archive(build_zip, {"requirements.txt": reqs}))
        assert score == 15

    def test_invalid_package_json_is_ignored(self, build_zip):
        assert score_security(_archive(build_zip, {"package.json": "{not json"}))[0] == 20

    def test_clean(self, build_zip):
        score, details = score_security(_archive(build_zip, {"requirements.txt": "httpx\n"}))
        assert score == 20
        assert details == ["No known-risky dependency detected"]
