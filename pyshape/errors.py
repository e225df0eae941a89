from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
	from .model import ScanReport


class PyShapeError(Exception):
	"""Base class for errors raised by the analyzer."""


class ModuleLoadError(PyShapeError):
	"""A module was located but its source could not be read."""

	def __init__(self, module_name: str, path: str, reason: str):
		super().__init__(f"cannot load {module_name} from {path}: {reason}")
		self.module_name = module_name
		self.path = path
		self.reason = reason


class LibraryScanError(PyShapeError):
	"""A library scan resolved no module at all."""

	def __init__(self, message: str, report: Optional["ScanReport"] = None):
		super().__init__(message)
		self.report = report
