import re
import textwrap
from pathlib import Path

import pytest

from bean_validation_check import MissingBeanValidationCheck
from java_frontend import JavaProject

FILES_DIR = Path(__file__).parent / "files"

# // Noncompliant [[sc=11;ec=21]] {{message}}   (1-based columns, end exclusive)
NONCOMPLIANT_RE = re.compile(
    r'//\s*Noncompliant(?:\s*\[\[sc=(\d+);ec=(\d+)\]\])?(?:\s*\{\{(.*?)\}\})?'
)


def expected_issues(source: str) -> dict:
    """Map line number -> (start col, end col, message), None where unspecified."""
    expected = {}
    for line_number, line in enumerate(source.splitlines(), start=1):
        match = NONCOMPLIANT_RE.search(line)
        if match:
            sc, ec, message = match.groups()
            expected[line_number] = (int(sc) if sc else None, int(ec) if ec else None, message)
    return expected


@pytest.fixture
def files_dir() -> Path:
    return FILES_DIR


@pytest.fixture
def project_from():
    """Build a resolved JavaProject from {path: source}, dedenting each source."""
    def build(sources: dict, annotation_stubs: dict = None) -> JavaProject:
        return JavaProject.from_sources(
            {path: textwrap.dedent(src) for path, src in sources.items()},
            annotation_stubs=annotation_stubs,
        )
    return build


@pytest.fixture
def verify_issues():
    """Run the check on a fixture file and compare against its Noncompliant marks."""
    def verify(file_name: str):
        path = FILES_DIR / file_name
        source = path.read_text(encoding='utf-8')
        project = JavaProject.from_sources({str(path): source})
        findings = MissingBeanValidationCheck().scan_file(project.units[0])

        expected = expected_issues(source)
        actual_lines = sorted(f.line_number for f in findings)
        assert actual_lines == sorted(expected), (
            f"expected issues on lines {sorted(expected)}, got {actual_lines}"
        )
        for finding in findings:
            sc, ec, message = expected[finding.line_number]
            if sc is not None:
                assert finding.col_offset + 1 == sc, f"start column on line {finding.line_number}"
                assert finding.end_col + 1 == ec, f"end column on line {finding.line_number}"
            if message is not None:
                assert finding.message == message
        return findings
    return verify
