#!/usr/bin/env python3
"""
Beanhunter: Missing Bean Validation Scanner (Tree-sitter)
==========================================================
Scans Spring controllers for request-bound parameters that carry Bean
Validation constraints but are never validated because "@Valid" is missing.

All .java files under the target are parsed into one project so that
request classes declared in other files resolve. The check then runs once
per file.
"""

import sys
import json
import argparse
import re
import time
from pathlib import Path
from typing import List, Dict, Optional, Tuple
from datetime import datetime
from collections import defaultdict

import yaml
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.syntax import Syntax
from rich.columns import Columns
from rich.text import Text
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, MofNCompleteColumn
from rich.align import Align
from rich.rule import Rule
from rich import box

from bean_validation_check import MissingBeanValidationCheck, Finding, RULE_KEY, RULE_NAME
from beanhunter_config import load_config, BeanhunterConfig
from java_frontend import JavaProject

console = Console()

VERSION = "1.0"


# ============================================================================
# Scanner — File Processing
# ============================================================================

class Scanner:
    """Loads Java sources into a JavaProject and runs the check per file."""

    def __init__(self, verbose: bool = False, config: BeanhunterConfig = None):
        self.verbose = verbose
        self.config = config
        self.files_scanned = 0
        self.parse_errors = 0
        self.scan_elapsed = 0.0

    def log(self, message: str):
        """Print verbose logging."""
        if self.verbose:
            console.print(f"[dim][*] {message}[/dim]")

    def collect_files(self, target: str) -> List[Path]:
        """Java files under target, minus config exclusions."""
        target_path = Path(target)
        if target_path.is_file():
            if target_path.suffix != ".java":
                console.print(f"[bold yellow]Warning:[/bold yellow] {target} is not a .java file")
                return []
            candidates = [target_path]
        elif target_path.is_dir():
            candidates = sorted(target_path.rglob("*.java"))
        else:
            console.print(f"[bold red]Error:[/bold red] {target} does not exist")
            return []

        files = []
        for path in candidates:
            if self.config and self.config.should_exclude(str(path)):
                self.log(f"Excluded by config: {path}")
                continue
            files.append(path)
        return files

    def load_project(self, files: List[Path], progress: Optional[Progress] = None) -> JavaProject:
        """Parse every file into one project and resolve it."""
        stubs = self.config.annotation_stubs if self.config else None
        project = JavaProject(annotation_stubs=stubs)
        task = None
        if progress is not None:
            task = progress.add_task("Parsing", total=len(files), current_file="")

        for path in files:
            if progress is not None:
                progress.update(task, current_file=path.name)
            try:
                source = path.read_text(encoding='utf-8', errors='replace')
            except (IOError, OSError) as e:
                print(f"Error reading {path}: {e}", file=sys.stderr)
                continue
            unit = project.add_source(source, str(path))
            if unit.has_parse_errors:
                self.log(f"Parse errors in {path}, analyzing recovered tree")
            if progress is not None:
                progress.advance(task)

        project.resolve()
        self.parse_errors = project.parse_errors
        return project

    def scan_project(self, project: JavaProject) -> List[Finding]:
        findings = []
        for unit in project.units:
            unit_findings = MissingBeanValidationCheck().scan_file(unit)
            if unit_findings:
                self.log(f"{unit.path}: {len(unit_findings)} finding(s)")
            findings.extend(unit_findings)
        return findings

    def scan_path(self, target: str, show_progress: bool = True) -> Tuple[List[Finding], int, float]:
        """Scan a file or directory for Java files. Returns (findings, file_count, elapsed)."""
        start = time.time()
        files = self.collect_files(target)

        if show_progress and files:
            with Progress(
                SpinnerColumn("moon"),
                TextColumn("[bold cyan]{task.description}[/bold cyan]"),
                BarColumn(bar_width=30, style="cyan", complete_style="green"),
                MofNCompleteColumn(),
                TextColumn("[dim]{task.fields[current_file]}[/dim]"),
                console=console, transient=True,
            ) as progress:
                project = self.load_project(files, progress)
        else:
            project = self.load_project(files)

        findings = self.scan_project(project)
        self.files_scanned = len(project.units)
        self.scan_elapsed = time.time() - start
        return findings, self.files_scanned, self.scan_elapsed


def filter_findings(findings: List[Finding], suppression_keyword: str = "nosec") -> List[Finding]:
    """Drop findings suppressed inline (// nosec, /* nosec, beanhunter:ignore)."""
    result = []
    for f in findings:
        if re.search(rf'(?://|/\*)\s*{re.escape(suppression_keyword)}\b', f.line_content):
            continue
        if 'beanhunter:ignore' in f.line_content:
            continue
        result.append(f)
    return result


# ============================================================================
# Output
# ============================================================================

def _print_banner():
    """Print the scanner banner using Rich."""
    title_content = Text()
    title_content.append("B E A N H U N T E R", style="bold green")
    title_content.append("\n\n")
    title_content.append(f"Tree-sitter Bean Validation Scanner v{VERSION}\n", style="bold white")
    title_content.append("Spring Controllers | Constraint Annotations | Missing @Valid", style="dim")

    console.print()
    console.print(Panel(
        Align.center(title_content),
        border_style="green",
        box=box.DOUBLE,
        padding=(1, 2),
    ))
    console.print()


def _build_stats_sidebar(findings: List[Finding], file_count: int, elapsed: float,
                         parse_errors: int = 0) -> Panel:
    """Build the statistics panel."""
    stats = Table(show_header=False, box=None, padding=(0, 1), expand=True)
    stats.add_column("key", style="bold cyan", no_wrap=True, ratio=3)
    stats.add_column("value", style="white", ratio=1)

    stats.add_row("Files Scanned", str(file_count))
    stats.add_row("Total Findings", str(len(findings)))
    stats.add_row("Parse Errors", str(parse_errors))
    stats.add_row("Scan Time", f"{elapsed:.2f}s")
    stats.add_row("Engine", "tree-sitter AST")

    file_counts = defaultdict(int)
    for f in findings:
        file_counts[f.file_path] += 1
    if file_counts:
        stats.add_row("", "")
    for path, count in sorted(file_counts.items(), key=lambda x: -x[1]):
        stats.add_row(Text(Path(path).name, style="cyan"), str(count))

    return Panel(
        stats,
        title="[bold white]Scan Statistics[/bold white]",
        border_style="cyan",
        box=box.ROUNDED,
        padding=(1, 1),
    )


def _build_finding_panel(f: Finding, source_code: Optional[str] = None) -> Panel:
    """Build a Rich Panel for a single finding."""
    title = Text()
    title.append(f" {f.severity} ", style="bold yellow")
    title.append(f" {RULE_NAME} ", style="bold white")
    title.append(f" {f.rule_key} ", style="dim")

    content_parts = []

    source_text = Text()
    source_text.append("Source: ", style="bold cyan")
    source_text.append(f"Line {f.line_number}", style="white")
    source_text.append(f", Col {f.col_offset + 1}", style="dim")

    var_text = Text()
    var_text.append("Variable: ", style="bold magenta")
    var_text.append(f.variable_name, style="white")

    content_parts.append(Columns([source_text, var_text], padding=(0, 4)))

    desc = Text()
    desc.append(f"\n{f.message}", style="italic white")
    content_parts.append(desc)

    code_line = f.line_content.strip()
    if code_line:
        if source_code:
            src_lines = source_code.split('\n')
            start = max(0, f.line_number - 3)
            end = min(len(src_lines), f.line_number + 2)
            snippet = '\n'.join(src_lines[start:end])
            syntax = Syntax(
                snippet, "java", theme="monokai",
                line_numbers=True, start_line=start + 1,
                highlight_lines={f.line_number},
            )
        else:
            syntax = Syntax(
                code_line, "java", theme="monokai",
                line_numbers=True, start_line=f.line_number,
            )
        content_parts.append(Text(""))
        content_parts.append(syntax)

    return Panel(
        Group(*content_parts),
        title=title,
        border_style="yellow",
        box=box.ROUNDED,
        padding=(1, 2),
    )


def output_rich(findings: List[Finding], target: str, file_count: int,
                elapsed: float, parse_errors: int = 0):
    """Output findings using Rich panels and formatting."""
    scan_date = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    header_text = Text()
    header_text.append("Target: ", style="bold cyan")
    header_text.append(f"{target}  ", style="white")
    header_text.append("Date: ", style="bold cyan")
    header_text.append(f"{scan_date}  ", style="white")
    header_text.append("Rule: ", style="bold cyan")
    header_text.append(RULE_KEY, style="white")

    console.print(Panel(
        Align.center(header_text),
        title="[bold white]Scan Info[/bold white]",
        border_style="blue",
        box=box.ROUNDED,
    ))
    console.print()

    console.print(_build_stats_sidebar(findings, file_count, elapsed, parse_errors))
    console.print()

    if not findings:
        console.print(Panel(
            Align.center(Text("No missing validation found.", style="bold green")),
            border_style="green",
            box=box.ROUNDED,
            padding=(1, 4),
        ))
        return

    console.print(Rule("[bold white]Findings[/bold white]", style="yellow"))
    console.print()

    findings_by_file = defaultdict(list)
    for f in findings:
        findings_by_file[f.file_path].append(f)

    for file_path, file_findings in sorted(findings_by_file.items()):
        console.print(Text(f"FILE: {file_path}", style="bold underline cyan"))
        console.print()
        try:
            src = Path(file_path).read_text(encoding='utf-8', errors='ignore')
        except OSError:
            src = None
        for f in sorted(file_findings, key=lambda x: (x.line_number, x.col_offset)):
            console.print(_build_finding_panel(f, source_code=src))
            console.print()


def output_text_plain(findings: List[Finding], file_path: str):
    """Output findings in plain text format (for file output)."""
    with open(file_path, 'w', encoding='utf-8') as out:
        for f in findings:
            out.write(f"\n{'='*70}\n")
            out.write(f"  [{f.severity}] {RULE_NAME} ({f.rule_key})\n")
            out.write(f"  File: {f.file_path}:{f.line_number}:{f.col_offset + 1}\n")
            out.write(f"  Code: {f.line_content}\n")
            out.write(f"  Message: {f.message}\n")

        out.write(f"\n{'='*70}\n")
        out.write(f"Total findings: {len(findings)}\n")

        by_file = defaultdict(int)
        for f in findings:
            by_file[f.file_path] += 1
        if by_file:
            out.write("\nBy file:\n")
            for path, count in sorted(by_file.items()):
                out.write(f"  {path}: {count}\n")


def findings_to_json(findings: List[Finding], file_count: int) -> Dict:
    by_file = defaultdict(int)
    for f in findings:
        by_file[f.file_path] += 1
    return {
        "scan_date": datetime.now().isoformat(),
        "scanner": f"beanhunter v{VERSION}",
        "files_scanned": file_count,
        "total_findings": len(findings),
        "findings": [
            {
                "file": f.file_path,
                "line": f.line_number,
                "column": f.col_offset + 1,
                "end_line": f.end_line,
                "end_column": f.end_col + 1,
                "code": f.line_content,
                "rule": f.rule_key,
                "severity": f.severity,
                "variable": f.variable_name,
                "message": f.message,
            }
            for f in findings
        ],
        "summary": {
            "by_file": dict(sorted(by_file.items())),
        },
    }


def output_json(findings: List[Finding], file_count: int, file_path: str = None):
    """Output findings in JSON format."""
    json_str = json.dumps(findings_to_json(findings, file_count), indent=2)
    if file_path:
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(json_str)
    else:
        print(json_str)


def main():
    parser = argparse.ArgumentParser(
        description="Missing Bean Validation scanner for Spring controllers (tree-sitter)"
    )
    parser.add_argument("target", help="Java file or directory to scan")
    parser.add_argument("--output", choices=["text", "json"], default="text",
                        help="Output format (default: text)")
    parser.add_argument("-o", "--output-file", help="Write output to file")
    parser.add_argument("--no-banner", action="store_true",
                        help="Suppress banner output")
    parser.add_argument("--config", help="Path to .beanhunter.yml config file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose output")

    args = parser.parse_args()

    try:
        config = load_config(args.target, args.config)
    except yaml.YAMLError as e:
        console.print(f"[bold red]Error:[/bold red] invalid config: {e}")
        sys.exit(2)

    is_json = args.output == "json"

    if not args.no_banner and not is_json:
        _print_banner()

    scanner = Scanner(verbose=args.verbose and not is_json, config=config)
    findings, file_count, elapsed = scanner.scan_path(args.target, show_progress=not is_json)
    suppression_kw = config.suppression_keyword if config else "nosec"
    findings = filter_findings(findings, suppression_kw)

    findings.sort(key=lambda f: (f.file_path, f.line_number, f.col_offset))

    if is_json:
        output_json(findings, file_count, args.output_file)
    else:
        output_rich(findings, args.target, file_count, elapsed, scanner.parse_errors)

        if args.output_file:
            output_text_plain(findings, args.output_file)
            console.print(f"\n[bold green]Report saved to {args.output_file}[/bold green]")

    if findings:
        sys.exit(1)


if __name__ == "__main__":
    main()
