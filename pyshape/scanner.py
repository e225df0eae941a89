from __future__ import annotations

import logging
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional, Sequence

from .entities import AccessContext, Type
from .fs_scan import iter_modules_in_lib, iter_modules_in_paths, library_paths
from .model import ModulePath, ModuleScanResult, ScanReport
from .session import AnalysisSession
from .versions import DEFAULT_VERSION, LanguageVersion

logger = logging.getLogger(__name__)


class ModuleNotResolved(Exception):
	pass


class LibraryScanner:
	"""Resolves every analyzable module of an inventory and reports per-module outcomes."""

	def __init__(self, session: AnalysisSession, workers: int = 1, module_timeout: Optional[float] = None):
		self.session = session
		self.workers = max(1, workers)
		self.module_timeout = module_timeout

	def scan(self, modules: Iterable[ModulePath]) -> ScanReport:
		report = ScanReport(version=self.session.version.value, search_paths=list(self.session.search_paths))
		analyzable: List[ModulePath] = []
		for module in modules:
			if not module.is_analyzable:
				report.skipped.append(module.module_name)
				continue
			if self.workers == 1 and self.module_timeout is None:
				self._run_serial(module, report)
			else:
				analyzable.append(module)
		if analyzable:
			self._run_parallel(analyzable, report)
		report.resolved.sort(key=lambda r: r.module_name)
		logger.info(
			"scanned %d modules: %d resolved, %d failed, %d skipped",
			len(report.attempted) + len(report.skipped),
			len(report.resolved),
			len(report.warnings),
			len(report.skipped),
		)
		return report

	def resolve_module(self, module: ModulePath) -> ModuleScanResult:
		"""Import one module and walk its full member list."""
		entity = self.session.import_module(module.module_name)
		if entity is None:
			raise ModuleNotResolved(f"failed to import {module.module_name} from {module.source_file}")
		names = self.session.list_member_names(entity, AccessContext.UNQUALIFIED)
		for name in sorted(names):
			member = self.session.get_member(entity, AccessContext.UNQUALIFIED, name)
			if isinstance(member, Type) and member.parent is entity:
				self.session.list_member_names(member, AccessContext.INSTANCE)
		return ModuleScanResult(
			module_name=module.module_name,
			source_file=module.source_file,
			member_count=len(names),
			diagnostics=list(entity.diagnostics),
		)

	def _record_failure(self, module: ModulePath, message: str, report: ScanReport) -> None:
		report.warnings[module.module_name] = message
		logger.warning("%s: %s", module.module_name, message)

	def _run_serial(self, module: ModulePath, report: ScanReport) -> None:
		try:
			report.resolved.append(self.resolve_module(module))
		except ModuleNotResolved as e:
			self._record_failure(module, str(e), report)
		except Exception as e:
			self._record_failure(module, f"{type(e).__name__}: {e}", report)

	def _record_future(self, module: ModulePath, future: Future, report: ScanReport) -> None:
		try:
			report.resolved.append(future.result())
		except ModuleNotResolved as e:
			self._record_failure(module, str(e), report)
		except Exception as e:
			self._record_failure(module, f"{type(e).__name__}: {e}", report)

	def _executor(self) -> ThreadPoolExecutor:
		return ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="pyshape-scan")

	def _run_parallel(self, modules: Sequence[ModulePath], report: ScanReport) -> None:
		"""
		Run modules on a thread pool, at most ``workers`` at a time.

		Modules are submitted only when a worker is free, so a module's clock
		starts when it starts running. A timed-out module cannot be interrupted
		and keeps its thread; the remaining modules move to a fresh pool.
		"""
		started: Dict[str, float] = {}

		def run(module: ModulePath) -> ModuleScanResult:
			started[module.module_name] = time.monotonic()
			return self.resolve_module(module)

		poll = None if self.module_timeout is None else min(0.5, self.module_timeout / 4)
		queue = deque(modules)
		running: Dict[Future, ModulePath] = {}
		executor = self._executor()
		try:
			while queue or running:
				while queue and len(running) < self.workers:
					module = queue.popleft()
					running[executor.submit(run, module)] = module
				done, _ = wait(list(running), timeout=poll, return_when=FIRST_COMPLETED)
				for future in done:
					self._record_future(running.pop(future), future, report)
				if self.module_timeout is None:
					continue
				now = time.monotonic()
				expired = [
					future
					for future, module in running.items()
					if module.module_name in started and now - started[module.module_name] > self.module_timeout
				]
				for future in expired:
					module = running.pop(future)
					self._record_failure(module, f"timed out after {self.module_timeout:g}s", report)
				if expired:
					# Modules still running on the old pool finish there and stay in `running`.
					executor.shutdown(wait=False)
					executor = self._executor()
		finally:
			executor.shutdown(wait=False, cancel_futures=True)


def scan_library(
	search_paths: Sequence[str],
	version: LanguageVersion = DEFAULT_VERSION,
	workers: int = 1,
	module_timeout: Optional[float] = None,
	session: Optional[AnalysisSession] = None,
) -> ScanReport:
	"""Scan every module under the given library roots."""
	session = session or AnalysisSession(search_paths, version)
	scanner = LibraryScanner(session, workers=workers, module_timeout=module_timeout)
	return scanner.scan(iter_modules_in_paths(search_paths))


def scan_installation(
	prefix: str,
	version: LanguageVersion = DEFAULT_VERSION,
	workers: int = 1,
	module_timeout: Optional[float] = None,
) -> ScanReport:
	"""Scan an interpreter installation rooted at ``prefix``."""
	session = AnalysisSession(library_paths(prefix), version)
	scanner = LibraryScanner(session, workers=workers, module_timeout=module_timeout)
	return scanner.scan(iter_modules_in_lib(prefix))
