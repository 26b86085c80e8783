"""Changeset collection.

Turns one or more diff scopes into a single normalized ``ChangeSet``. The
diff source also serves as the read-only view of the repository that checks
use to read file contents.
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

from reviewgate.review.categorizer import Categorizer, normalize_path
from reviewgate.review.errors import CollectionError
from reviewgate.review.models import ChangedFile, ChangeSet, DiffScope, DiffStats
from reviewgate.utils.logging import get_logger

logger = get_logger("review.collector")

GIT_TIMEOUT = 60


class DiffSource(Protocol):
    """Where changes come from, plus read access to the checked-out tree."""

    def list_changed_files(self, scope: DiffScope) -> List[str]:
        ...

    def diff_stats(self, path: str, scope: DiffScope) -> DiffStats:
        ...

    def read_file(self, path: str) -> Optional[str]:
        ...

    def exists(self, path: str) -> bool:
        ...


class ChangeSetCollector:
    """Collects and deduplicates changed paths across diff scopes.

    Usage::

        collector = ChangeSetCollector(GitDiffSource(Path(".")))
        changeset = collector.collect([DiffScope.BRANCH, DiffScope.COMMIT])
    """

    def __init__(self, source: DiffSource, categorizer: Optional[Categorizer] = None):
        self.source = source
        self.categorizer = categorizer or Categorizer()

    def collect(self, scopes: Sequence[DiffScope] = (DiffScope.BRANCH,)) -> ChangeSet:
        """Collect the changeset.

        Scopes are read widest first; a path already seen in a wider scope
        keeps that scope's stats.

        Raises:
            CollectionError: If no requested scope could be read.
        """
        if not scopes:
            raise ValueError("At least one diff scope is required")

        ordered = sorted(set(scopes), key=lambda s: s.width, reverse=True)
        stats_by_path: Dict[str, DiffStats] = {}
        failures: List[str] = []

        for scope in ordered:
            try:
                scope_stats = self._read_scope(scope)
            except (CollectionError, OSError) as e:
                logger.warning(f"Could not read {scope.value} diff: {e}")
                failures.append(f"{scope.value}: {e}")
                continue

            for path, stats in scope_stats.items():
                stats_by_path.setdefault(path, stats)

        if len(failures) == len(ordered):
            raise CollectionError(
                "No diff source could be read (" + "; ".join(failures) + ")"
            )

        files = tuple(
            ChangedFile(path=path, category=self.categorizer.categorize(path), stats=stats)
            for path, stats in sorted(stats_by_path.items())
        )
        logger.info(f"Collected {len(files)} changed files from {len(ordered) - len(failures)} scope(s)")
        return ChangeSet(files=files)

    def _read_scope(self, scope: DiffScope) -> Dict[str, DiffStats]:
        result: Dict[str, DiffStats] = {}
        for raw in self.source.list_changed_files(scope):
            path = normalize_path(raw)
            if not path or path in result:
                continue
            result[path] = self.source.diff_stats(raw, scope)
        return result


class GitDiffSource:
    """``DiffSource`` backed by the ``git`` command line.

    Scopes:
        branch: merge-base with ``base_ref`` up to the working tree, plus
            untracked files.
        pr: ``base_ref...HEAD``.
        commit: ``HEAD~1..HEAD``.
    """

    def __init__(self, repo_path: Path, base_ref: str = "main") -> None:
        self.repo_path = Path(repo_path).resolve()
        self.base_ref = base_ref
        self._stats: Dict[DiffScope, Dict[str, DiffStats]] = {}

    def list_changed_files(self, scope: DiffScope) -> List[str]:
        return list(self._load(scope).keys())

    def diff_stats(self, path: str, scope: DiffScope) -> DiffStats:
        return self._load(scope).get(normalize_path(path), DiffStats())

    def read_file(self, path: str) -> Optional[str]:
        full_path = self.repo_path / path
        if not full_path.is_file():
            return None
        return full_path.read_text(encoding="utf-8", errors="replace")

    def exists(self, path: str) -> bool:
        return (self.repo_path / path).exists()

    # --- git plumbing ---

    def _git(self, *args: str) -> str:
        try:
            proc = subprocess.run(
                ["git", *args],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=GIT_TIMEOUT,
            )
        except FileNotFoundError as e:
            raise CollectionError("git is not installed") from e
        except subprocess.TimeoutExpired as e:
            raise CollectionError(f"git {' '.join(args)} timed out") from e
        if proc.returncode != 0:
            raise CollectionError(
                f"git {' '.join(args)} failed: {proc.stderr.strip() or proc.returncode}"
            )
        return proc.stdout

    def _range_args(self, scope: DiffScope) -> List[str]:
        if scope == DiffScope.BRANCH:
            merge_base = self._git("merge-base", self.base_ref, "HEAD").strip()
            return [merge_base]
        if scope == DiffScope.PR:
            return [f"{self.base_ref}...HEAD"]
        return ["HEAD~1", "HEAD"]

    def _load(self, scope: DiffScope) -> Dict[str, DiffStats]:
        if scope in self._stats:
            return self._stats[scope]

        range_args = self._range_args(scope)
        statuses = _parse_name_status(
            self._git("diff", "-z", "--no-renames", "--name-status", *range_args)
        )
        counts = _parse_numstat(
            self._git("diff", "-z", "--no-renames", "--numstat", *range_args)
        )

        stats: Dict[str, DiffStats] = {}
        for path, status in statuses.items():
            additions, deletions = counts.get(path, (0, 0))
            stats[path] = DiffStats(status=status, additions=additions, deletions=deletions)

        if scope == DiffScope.BRANCH:
            for path in self._git("ls-files", "-z", "--others", "--exclude-standard").split("\0"):
                path = normalize_path(path)
                if path and path not in stats:
                    content = self.read_file(path) or ""
                    stats[path] = DiffStats(status="A", additions=len(content.splitlines()))

        self._stats[scope] = stats
        return stats


def _parse_name_status(output: str) -> Dict[str, str]:
    """Parse ``git diff -z --name-status``: ``status NUL path NUL`` pairs."""
    fields = output.split("\0")
    statuses: Dict[str, str] = {}
    for status, path in zip(fields[0::2], fields[1::2]):
        if status and path:
            statuses[normalize_path(path)] = status[:1]
    return statuses


def _parse_numstat(output: str) -> Dict[str, tuple]:
    """Parse ``git diff -z --numstat``: ``added TAB deleted TAB path NUL``."""
    counts: Dict[str, tuple] = {}
    for record in output.split("\0"):
        parts = record.split("\t", 2)
        if len(parts) < 3 or not parts[2]:
            continue
        # Binary files report "-" for both counts
        additions = int(parts[0]) if parts[0].isdigit() else 0
        deletions = int(parts[1]) if parts[1].isdigit() else 0
        counts[normalize_path(parts[2])] = (additions, deletions)
    return counts


class StaticDiffSource:
    """In-memory ``DiffSource`` for tests and embedding.

    Args:
        changes: Either ``{path: DiffStats}`` (served for every scope) or
            ``{DiffScope: {path: DiffStats}}``. Scopes missing from the
            second form raise ``CollectionError``.
        files: Repository contents at the reviewed revision.
    """

    def __init__(
        self,
        changes: Mapping,
        files: Optional[Mapping[str, str]] = None,
    ) -> None:
        if changes and all(isinstance(k, DiffScope) for k in changes):
            self._by_scope = {scope: dict(v) for scope, v in changes.items()}
            self._shared = None
        else:
            self._by_scope = {}
            self._shared = dict(changes)
        self.files: Dict[str, str] = dict(files or {})

    def _scope(self, scope: DiffScope) -> Dict[str, DiffStats]:
        if self._shared is not None:
            return self._shared
        if scope not in self._by_scope:
            raise CollectionError(f"scope '{scope.value}' is not available")
        return self._by_scope[scope]

    def list_changed_files(self, scope: DiffScope) -> List[str]:
        return list(self._scope(scope).keys())

    def diff_stats(self, path: str, scope: DiffScope) -> DiffStats:
        return self._scope(scope).get(path, DiffStats())

    def read_file(self, path: str) -> Optional[str]:
        return self.files.get(path)

    def exists(self, path: str) -> bool:
        path = normalize_path(path)
        if path in self.files:
            return True
        prefix = path.rstrip("/") + "/"
        return any(name.startswith(prefix) for name in self.files)
