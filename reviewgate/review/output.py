"""Rich terminal output for review reports.

Renders each report section in its fixed order: a header panel, then
docs status, issues per section, token savings, verdict and the external
opinion.
"""

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from reviewgate.review.models import SEVERITY_DISPLAY_ORDER, ReviewReport, Verdict

_SEVERITY_STYLES = {
    "critical": "red bold",
    "high": "red",
    "medium": "yellow",
    "low": "blue",
}

_SEVERITY_ICONS = {
    "critical": "X",
    "high": "!",
    "medium": "^",
    "low": ">",
}

_SEVERITY_ORDER = [s.value for s in SEVERITY_DISPLAY_ORDER]

_VERDICT_STYLES = {
    Verdict.APPROVE: "green",
    Verdict.REQUEST_CHANGES: "red",
    Verdict.NEEDS_DISCUSSION: "yellow",
}

_STATUS_STYLES = {
    "updated": "green",
    "not_required": "dim",
    "missing": "red",
    "malformed": "red",
    "deleted": "red bold",
    "passed": "green",
    "issues": "yellow",
    "blocked": "red",
    "skipped": "yellow",
}


class RichReviewOutput:
    """Rich terminal formatter for review reports."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose

    def print_report(self, report: ReviewReport) -> None:
        """Print the complete report."""
        sections = dict(report.sections())
        self.console.print()
        self._print_summary(report, sections["Summary"])
        self._print_docs(sections["Docs Status"])
        self._print_issues("Content", sections["Content"])
        self._print_tokens(sections["Token Optimization"])
        self._print_issues("Markdown", sections["Markdown"])
        self._print_verdict(report.verdict, sections["Verdict"])
        self._print_external(sections["External Opinion"])
        self.console.print()

    def _print_summary(self, report: ReviewReport, summary: Dict[str, Any]) -> None:
        text = Text()
        n_files = summary["files_changed"]
        text.append(f"{n_files} file{'s' if n_files != 1 else ''}")
        text.append(f"  +{summary['additions']} -{summary['deletions']}\n")

        categories = [
            f"{count} {name}" for name, count in summary["by_category"].items() if count
        ]
        if categories:
            text.append(", ".join(categories) + "\n", style="dim")
        text.append("\n")

        counts = summary["issue_counts"]
        shown = [(s, counts[s]) for s in _SEVERITY_ORDER if counts.get(s)]
        if shown:
            for i, (severity, count) in enumerate(shown):
                if i > 0:
                    text.append("  ")
                text.append(f"{count} {severity}", style=_SEVERITY_STYLES[severity])
        else:
            text.append("No issues found", style="green")

        missing = [t["name"] for t in summary["tools"] if not t["available"]]
        if missing:
            text.append(f"\nMissing tools: {', '.join(missing)}", style="yellow")

        border = _VERDICT_STYLES[report.verdict]
        self.console.print(
            Panel(text, title="[bold]Review -- Summary[/bold]", border_style=border)
        )

        if self.verbose and report.changeset.files:
            table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
            table.add_column("", width=1)
            table.add_column("File")
            table.add_column("Category")
            table.add_column("Changes", justify="right")
            for changed in report.changeset:
                table.add_row(
                    changed.stats.status,
                    escape(changed.path),
                    changed.category.value,
                    f"+{changed.stats.additions} -{changed.stats.deletions}",
                )
            self.console.print(table)

    def _print_docs(self, docs: Dict[str, Any]) -> None:
        self.console.print()
        self.console.print("[bold]Docs Status:[/bold]")
        for stage_id, stage in docs["stages"].items():
            if stage["status"] == "skipped":
                self.console.print(
                    f"  [yellow]{stage_id}: skipped[/yellow] [dim]({escape(str(stage['skip_reason']))})[/dim]"
                )
        for entry in docs["files"]:
            style = _STATUS_STYLES.get(entry["status"], "white")
            detail = f" [dim]({escape(entry['detail'])})[/dim]" if entry['detail'] else ""
            self.console.print(f"  {escape(entry['file'])}: [{style}]{entry['status']}[/{style}]{detail}")
        self._print_issue_list(docs["issues"])

    def _print_issues(self, title: str, section: Dict[str, Any]) -> None:
        self.console.print()
        self.console.print(f"[bold]{title}:[/bold]")
        for stage_id, stage in section["stages"].items():
            if stage["status"] == "skipped":
                self.console.print(
                    f"  [yellow]{stage_id}: skipped[/yellow] [dim]({escape(str(stage['skip_reason']))})[/dim]"
                )
        if not section["issues"]:
            if all(s["status"] != "skipped" for s in section["stages"].values()):
                self.console.print("  [green]No issues[/green]")
            return
        self._print_issue_list(section["issues"])

    def _print_issue_list(self, issues: List[Dict[str, Any]]) -> None:
        """Print issues grouped by file, sorted by severity."""
        by_file: Dict[str, List[Dict[str, Any]]] = {}
        for issue in issues:
            by_file.setdefault(issue["file"], []).append(issue)

        for file_path in sorted(by_file):
            self.console.print(f"  [bold]{escape(file_path)}[/bold]")
            file_issues = sorted(
                by_file[file_path],
                key=lambda i: (_SEVERITY_ORDER.index(i["severity"]), i["line"] or 0),
            )
            for issue in file_issues:
                severity = issue["severity"]
                style = _SEVERITY_STYLES.get(severity, "white")
                icon = _SEVERITY_ICONS.get(severity, "?")
                loc = f":{issue['line']}" if issue["line"] else ""
                rule = f" [dim]{issue['rule_id']}[/dim]" if issue["rule_id"] else ""
                self.console.print(
                    f"    [{style}]{icon}[/{style}]{loc}{rule}  {escape(issue['message'])}"
                )
                if issue["suggestion"] and self.verbose:
                    self.console.print(f"      [dim]> {escape(issue['suggestion'])}[/dim]")

    def _print_tokens(self, tokens: Dict[str, Any]) -> None:
        self.console.print()
        self.console.print("[bold]Token Optimization:[/bold]")
        if not tokens["files"]:
            self.console.print("  [dim]No documentation or skill prose changed[/dim]")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
        table.add_column("File")
        table.add_column("Words", justify="right")
        table.add_column("Filler", justify="right")
        table.add_column("Tables", justify="right")
        table.add_column("Duplicates", justify="right")
        table.add_column("Savings", justify="right")
        pending = {c["file"] for c in tokens["confirmations"]}
        for entry in tokens["files"]:
            style = "yellow" if entry["file"] in pending else "dim"
            table.add_row(
                escape(entry["file"]),
                str(entry["total_words"]),
                str(entry["filler_words"]),
                str(entry["table_words"]),
                str(entry["duplicate_words"]),
                Text(f"{entry['percent']:.1f}%", style=style),
            )
        self.console.print(table)

        for request in tokens["confirmations"]:
            self.console.print(
                f"  [yellow]?[/yellow] {escape(request['file'])}: {request['level']} compression "
                f"({request['estimated_percent']:.1f}%) needs confirmation"
            )
            self.console.print(f"      [dim]> reviewgate confirm {escape(request['file'])}[/dim]")

    def _print_verdict(self, verdict: Verdict, section: Dict[str, Any]) -> None:
        self.console.print()
        style = _VERDICT_STYLES[verdict]
        text = Text(verdict.label, style=f"bold {style}")
        for reason in section["reasons"]:
            text.append(f"\n- {reason}", style="dim")
        self.console.print(Panel(text, title="[bold]Verdict[/bold]", border_style=style))

    def _print_external(self, section: Dict[str, Any]) -> None:
        if section["status"] != "ok":
            detail = f" ({section['detail']})" if section["detail"] else ""
            self.console.print(f"[dim]External opinion: {section['status']}{escape(detail)}[/dim]")
            return
        self.console.print(
            Panel(
                Text(section["opinion"]),
                title=f"[bold]External Opinion ({escape(str(section['reviewer']))})[/bold]",
                border_style="cyan",
            )
        )
