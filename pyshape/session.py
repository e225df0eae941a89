"""
Analysis sessions.

An `AnalysisSession` is the unit of caching: it owns the search paths, the
grammar version, the entity arena, the module cache and the resolver's memo
tables. Everything built during a session lives until `close()`.
"""

from __future__ import annotations

import ast
import io
import itertools
import logging
import tokenize
from typing import Dict, FrozenSet, Iterable, Optional, Sequence, Tuple, TypeVar

from .ast_parse import extract_declarations, parse_module_source
from .builder import build_module
from .config import AnalysisConfig
from .entities import AccessContext, Entity, Module, Unknown
from .errors import ModuleLoadError, PyShapeError
from .fs_scan import find_module
from .model import ModuleLookup, ModuleStatus
from .resolution import MemberResolver
from .versions import DEFAULT_VERSION, LanguageVersion

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


def decode_source(data: bytes) -> str:
	encoding, _ = tokenize.detect_encoding(io.BytesIO(data).readline)
	return data.decode(encoding, errors="replace")


class AnalysisSession:
	def __init__(self, search_paths: Sequence[str] = (), version: LanguageVersion = DEFAULT_VERSION):
		self.search_paths = list(search_paths)
		self.version = version
		self._ids = itertools.count(1)
		self.entities: Dict[int, Entity] = {}
		self._modules: Dict[Tuple[str, LanguageVersion], Module] = {}
		self._synthetic: Dict[Tuple[str, LanguageVersion], Module] = {}
		self._lookups: Dict[str, ModuleLookup] = {}
		self.resolver = MemberResolver(self)
		self.closed = False

	@classmethod
	def from_config(cls, config: AnalysisConfig) -> "AnalysisSession":
		return cls(config.search_paths, config.version)

	def __enter__(self) -> "AnalysisSession":
		return self

	def __exit__(self, *exc_info: object) -> None:
		self.close()

	def close(self) -> None:
		"""Drop every cached entity; the session must not be used afterwards."""
		self.resolver.clear()
		self._modules.clear()
		self._synthetic.clear()
		self._lookups.clear()
		self.entities.clear()
		self.closed = True

	# --- arena ---

	def new_id(self) -> int:
		return next(self._ids)

	def register(self, entity: E) -> E:
		return self.entities.setdefault(entity.entity_id, entity)  # type: ignore[return-value]

	def unknown(self, name: str, reason: str = "") -> Unknown:
		return self.register(Unknown(self.new_id(), name, reason))

	# --- modules ---

	@property
	def modules(self) -> Iterable[Module]:
		return list(self._modules.values())

	def find_module(self, module_name: str) -> ModuleLookup:
		lookup = self._lookups.get(module_name)
		if lookup is None:
			lookup = self._lookups.setdefault(module_name, find_module(self.search_paths, module_name))
		return lookup

	def import_module(self, module_name: str, version: Optional[LanguageVersion] = None) -> Optional[Module]:
		"""
		Return the module entity for a dotted name, building it on first use.

		Returns None when nothing under the search paths provides the name.
		Compiled and native modules come back as empty synthetic modules.
		Raises ModuleLoadError when a source file exists but cannot be read.
		"""
		version = version or self.version
		key = (module_name, version)
		cached = self._modules.get(key)
		if cached is not None:
			return cached
		lookup = self.find_module(module_name)
		if not lookup.found:
			logger.debug("module %s not found", module_name)
			return None
		if lookup.status != ModuleStatus.SOURCE:
			module = self.register(
				Module(
					self.new_id(),
					module_name,
					version,
					path=lookup.path,
					is_package=lookup.is_package,
					synthetic=True,
					status=lookup.status.value,
				)
			)
		else:
			source = self._read_source(module_name, lookup.path or "")
			module = self._build(module_name, version, source, lookup.path, lookup.is_package)
		return self._modules.setdefault(key, module)

	def module_from_source(
		self,
		module_name: str,
		source: str,
		path: Optional[str] = None,
		is_package: bool = False,
		version: Optional[LanguageVersion] = None,
	) -> Module:
		"""
		Build a module from text and publish it as if it were imported.

		Modules are never replaced within a session: if a module with this name
		and version is already known, it is returned unchanged and `source` is
		ignored. Analyze edited text in a new session.
		"""
		version = version or self.version
		key = (module_name, version)
		existing = self._modules.get(key)
		if existing is not None:
			logger.warning("module %s (%s) is already loaded; ignoring new source", module_name, version.value)
			return existing
		module = self._build(module_name, version, source, path, is_package)
		return self._modules.setdefault(key, module)

	def missing_module(self, module_name: str, version: Optional[LanguageVersion] = None) -> Module:
		version = version or self.version
		key = (module_name, version)
		module = self._synthetic.get(key)
		if module is None:
			module = self.register(
				Module(self.new_id(), module_name, version, synthetic=True, status=ModuleStatus.NOT_FOUND.value)
			)
			module = self._synthetic.setdefault(key, module)
		return module

	def _read_source(self, module_name: str, path: str) -> str:
		try:
			with open(path, "rb") as fh:
				data = fh.read()
		except OSError as e:
			raise ModuleLoadError(module_name, path, str(e)) from e
		try:
			return decode_source(data)
		except (SyntaxError, LookupError) as e:
			# bad or unknown coding cookie
			raise ModuleLoadError(module_name, path, str(e)) from e

	def _build(
		self, module_name: str, version: LanguageVersion, source: str, path: Optional[str], is_package: bool
	) -> Module:
		tree, diagnostics = parse_module_source(source, version, path or module_name)
		declarations = extract_declarations(tree, version)
		return build_module(
			self,
			module_name,
			version,
			declarations,
			path=path,
			is_package=is_package,
			diagnostics=diagnostics,
			documentation=ast.get_docstring(tree),
		)

	# --- member protocol ---

	def list_member_names(self, entity: Entity, context: AccessContext = AccessContext.UNQUALIFIED) -> FrozenSet[str]:
		return self.resolver.list_member_names(entity, context)

	def get_member(
		self, entity: Entity, context: AccessContext = AccessContext.UNQUALIFIED, name: str = ""
	) -> Optional[Entity]:
		return self.resolver.get_member(entity, context, name)

	def resolve(
		self, module_name: str, member_path: str = "", context: AccessContext = AccessContext.UNQUALIFIED
	) -> Optional[Entity]:
		"""Resolve ``module`` then walk ``a.b.c`` through its members."""
		try:
			current: Optional[Entity] = self.import_module(module_name)
		except PyShapeError as e:
			logger.warning("%s", e)
			return None
		for part in [p for p in member_path.split(".") if p]:
			if current is None:
				return None
			current = self.get_member(current, context, part)
		return current
