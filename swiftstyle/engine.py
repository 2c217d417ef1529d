"""Runs rules over source files and merges the results into a report."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .config import LintConfig, RuleSetting, default_workers, resolve_rule_settings
from .logging import get_logger
from .models import Finding, LineIndex, Severity, SourceFile
from .reporter import INTERNAL_ERROR_RULE, PARSE_ERROR_RULE, Report, aggregate
from .rules import Rule, RuleExecutionError, discover_rules
from .scanner import SourceScanner
from .suppression import collect_suppressions
from .syntax import ParseError, parse


class Linter:
    """Applies a fixed set of rules to files, one file per worker."""

    def __init__(
        self,
        rules: Optional[Iterable[Rule]] = None,
        settings: Optional[Dict[str, RuleSetting]] = None,
        workers: Optional[int] = None,
    ) -> None:
        available = list(rules) if rules is not None else discover_rules()
        self.settings: Dict[str, RuleSetting] = dict(settings or {})
        self.rules: List[Rule] = [rule for rule in available if self._setting(rule.rule_id).enabled]
        self.workers = workers if workers is not None else default_workers()
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        self.logger = get_logger("engine")

    @classmethod
    def from_config(cls, config: LintConfig, *, workers: Optional[int] = None) -> "Linter":
        """Build a linter for every discovered rule, honoring the config's rule settings."""
        rules = discover_rules()
        settings = resolve_rule_settings(config.rules, [rule.rule_id for rule in rules])
        return cls(rules, settings, workers if workers is not None else config.workers)

    def lint_text(self, text: str, path: str = "<memory>") -> Report:
        findings = self.lint_file(SourceFile(path=path, text=text))
        return aggregate(findings, files_checked=1)

    def lint_file(self, source: SourceFile) -> List[Finding]:
        """Findings for one file; never raises for parse or rule failures."""
        self.logger.debug("Checking %s", source.path)
        try:
            unit = parse(source.text, source.path)
        except ParseError as exc:
            self.logger.warning("Failed to parse %s: %s", source.path, exc)
            return [self._parse_error(source, exc)]
        except Exception as exc:
            self._log_exception(f"Failed to build syntax model for {source.path}", exc)
            return [self._internal_error(source, "swiftstyle", exc)]

        findings: List[Finding] = []
        for rule in self.rules:
            try:
                produced = list(rule.check(unit))
            except Exception as exc:
                error = RuleExecutionError(rule.rule_id, source.path, exc)
                self._log_exception("Rule execution failed", error)
                findings.append(self._internal_error(source, rule.rule_id, exc))
                continue
            findings.extend(self._apply_setting(item) for item in produced)

        suppressions = collect_suppressions(unit.comments)
        return suppressions.filter(findings)

    def lint_sources(
        self,
        sources: Sequence[SourceFile],
        cancel_event: Optional[threading.Event] = None,
    ) -> Report:
        """Check ``sources`` concurrently with at most ``workers`` files in flight.

        Setting ``cancel_event`` stops new files from being started; files already
        running complete and the report is marked cancelled.
        """
        sources = list(sources)
        batches: List[List[Finding]] = []
        cancelled = False
        position = 0
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="swiftstyle") as executor:
            pending: Set[Future[List[Finding]]] = set()
            while True:
                while position < len(sources) and len(pending) < self.workers:
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = True
                        break
                    pending.add(executor.submit(self.lint_file, sources[position]))
                    position += 1
                if not pending:
                    break
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    batches.append(future.result())

        if cancelled:
            self.logger.info("Lint cancelled after %d of %d file(s)", len(batches), len(sources))
        findings = [item for batch in batches for item in batch]
        return aggregate(findings, cancelled=cancelled, files_checked=len(batches))

    def lint_paths(
        self,
        paths: Sequence[Path],
        *,
        exclude_paths: Sequence[str] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> Report:
        sources = SourceScanner(exclude_paths=exclude_paths).scan(paths)
        self.logger.debug("Scanner discovered %d file(s)", len(sources))
        return self.lint_sources(sources, cancel_event=cancel_event)

    def _setting(self, rule_id: str) -> RuleSetting:
        return self.settings.get(rule_id, RuleSetting())

    def _apply_setting(self, item: Finding) -> Finding:
        severity = self._setting(item.rule_id).severity
        if severity is None or severity is item.severity:
            return item
        return replace(item, severity=severity)

    @staticmethod
    def _parse_error(source: SourceFile, exc: ParseError) -> Finding:
        span = exc.span or LineIndex(source.text).span(exc.offset, exc.offset)
        return Finding(
            rule_id=PARSE_ERROR_RULE,
            severity=Severity.ERROR,
            message=f"Could not parse file: {exc.reason}",
            path=source.path,
            span=span,
        )

    @staticmethod
    def _internal_error(source: SourceFile, origin: str, exc: BaseException) -> Finding:
        return Finding(
            rule_id=INTERNAL_ERROR_RULE,
            severity=Severity.ERROR,
            message=f"Internal error in '{origin}': {exc}",
            path=source.path,
            span=LineIndex(source.text).span(0, 0),
        )

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


__all__ = ["Linter"]
