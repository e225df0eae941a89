from __future__ import annotations

import glob
import os
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from .model import ModuleLookup, ModulePath, ModuleStatus


# Python's own import order: extension modules, then source, then bytecode.
NATIVE_SUFFIXES: Tuple[str, ...] = (".pyd", ".so", ".dll")
SOURCE_SUFFIXES: Tuple[str, ...] = (".py", ".pyw")
COMPILED_SUFFIXES: Tuple[str, ...] = (".pyc", ".pyo")

_PRIORITY: Dict[ModuleStatus, int] = {
	ModuleStatus.NATIVE: 0,
	ModuleStatus.SOURCE: 1,
	ModuleStatus.COMPILED: 2,
}

SKIP_DIRS: Set[str] = {"__pycache__", "site-packages", "lib-dynload"}


def classify_file(filename: str) -> Optional[Tuple[str, ModuleStatus]]:
	"""Return (module stem, status) for an importable file, or None."""
	lowered = filename.lower()
	for suffixes, status in (
		(NATIVE_SUFFIXES, ModuleStatus.NATIVE),
		(SOURCE_SUFFIXES, ModuleStatus.SOURCE),
		(COMPILED_SUFFIXES, ModuleStatus.COMPILED),
	):
		for suffix in suffixes:
			if lowered.endswith(suffix):
				stem = filename[: -len(suffix)]
				if status != ModuleStatus.SOURCE:
					# _socket.cpython-311-x86_64-linux-gnu.so -> _socket
					stem = stem.split(".", 1)[0]
				if not stem.isidentifier():
					return None
				return stem, status
	return None


def to_module_name(root: str, file_path: str) -> str:
	rel_path = os.path.relpath(file_path, root)
	directory, filename = os.path.split(rel_path)
	parts = [p for p in directory.split(os.sep) if p]
	classified = classify_file(filename)
	stem = classified[0] if classified else os.path.splitext(filename)[0]
	if stem != "__init__":
		parts.append(stem)
	return ".".join(parts)


def _best_candidates(directory: str, entries: Sequence[str]) -> Dict[str, Tuple[ModuleStatus, str]]:
	best: Dict[str, Tuple[ModuleStatus, str]] = {}
	for entry in entries:
		full = os.path.join(directory, entry)
		if not os.path.isfile(full):
			continue
		classified = classify_file(entry)
		if classified is None:
			continue
		stem, status = classified
		current = best.get(stem)
		if current is None or _PRIORITY[status] < _PRIORITY[current[0]]:
			best[stem] = (status, full)
	return best


def _find_init(directory: str) -> Optional[Tuple[ModuleStatus, str]]:
	try:
		entries = sorted(os.listdir(directory))
	except OSError:
		return None
	return _best_candidates(directory, entries).get("__init__")


def _descriptor(module_name: str, library_path: str, status: ModuleStatus, path: str, is_package: bool) -> ModulePath:
	return ModulePath(
		module_name=module_name,
		library_path=library_path,
		source_file=path,
		is_compiled=status == ModuleStatus.COMPILED,
		is_native_extension=status == ModuleStatus.NATIVE,
		is_package=is_package,
	)


def iter_modules(library_path: str, package: str = "") -> Iterator[ModulePath]:
	"""Lazily yield every module under one library root, packages included."""
	directory = os.path.join(library_path, *package.split(".")) if package else library_path
	try:
		entries = sorted(os.listdir(directory))
	except OSError:
		return
	best = _best_candidates(directory, entries)
	for entry in entries:
		full = os.path.join(directory, entry)
		if entry in SKIP_DIRS or not entry.isidentifier() or not os.path.isdir(full):
			continue
		init = _find_init(full)
		if init is None:
			continue
		name = to_module_name(library_path, init[1])
		yield _descriptor(name, library_path, init[0], init[1], True)
		yield from iter_modules(library_path, name)
	for stem in sorted(best):
		if stem == "__init__":
			continue
		status, path = best[stem]
		yield _descriptor(to_module_name(library_path, path), library_path, status, path, False)


def library_paths(prefix: str) -> List[str]:
	"""Library roots of an installation prefix, in search order."""
	candidates = [
		os.path.join(prefix, "Lib"),
		os.path.join(prefix, "DLLs"),
		os.path.join(prefix, "Lib", "site-packages"),
	]
	for lib in sorted(glob.glob(os.path.join(prefix, "lib", "python*"))):
		candidates.extend(
			[lib, os.path.join(lib, "lib-dynload"), os.path.join(lib, "site-packages")]
		)
	existing: List[str] = []
	for c in candidates:
		full = os.path.abspath(c)
		if os.path.isdir(full) and full not in existing:
			existing.append(full)
	return existing or [os.path.abspath(prefix)]


def iter_modules_in_lib(prefix: str) -> Iterator[ModulePath]:
	seen: Set[str] = set()
	for library_path in library_paths(prefix):
		for module in iter_modules(library_path):
			if module.module_name in seen:
				continue
			seen.add(module.module_name)
			yield module


def iter_modules_in_paths(search_paths: Sequence[str]) -> Iterator[ModulePath]:
	seen: Set[str] = set()
	for library_path in search_paths:
		for module in iter_modules(library_path):
			if module.module_name in seen:
				continue
			seen.add(module.module_name)
			yield module


def _find_in_root(library_path: str, parts: Sequence[str]) -> Optional[Tuple[ModuleStatus, str, bool]]:
	directory = library_path
	for part in parts[:-1]:
		directory = os.path.join(directory, part)
		if not os.path.isdir(directory) or _find_init(directory) is None:
			return None
	last = parts[-1]
	package_dir = os.path.join(directory, last)
	if os.path.isdir(package_dir):
		init = _find_init(package_dir)
		if init is not None:
			return init[0], init[1], True
	try:
		entries = [e for e in os.listdir(directory) if e.startswith(last)]
	except OSError:
		return None
	found = _best_candidates(directory, entries).get(last)
	if found is None:
		return None
	return found[0], found[1], False


def find_module(search_paths: Sequence[str], module_name: str) -> ModuleLookup:
	"""Locate a dotted module name; earlier search paths win."""
	parts = module_name.split(".")
	if not module_name or not all(p.isidentifier() for p in parts):
		return ModuleLookup(module_name=module_name, status=ModuleStatus.NOT_FOUND)
	for library_path in search_paths:
		found = _find_in_root(library_path, parts)
		if found is None:
			continue
		status, path, is_package = found
		return ModuleLookup(
			module_name=module_name,
			status=status,
			path=path,
			library_path=library_path,
			is_package=is_package,
		)
	return ModuleLookup(module_name=module_name, status=ModuleStatus.NOT_FOUND)
