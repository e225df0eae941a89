"""
Member lookup over the entity graph.

`MemberResolver` answers "which names does this entity expose" and "what does
this name resolve to" for a given access context. Base lists are resolved
lazily and walked depth-first, left to right; every walk that can revisit a
type carries a visited set so self- and mutually-referential class
declarations terminate.

Results are memoized in plain dicts owned by the session. Writes go through
`dict.setdefault`, so when two scan workers race on the same key the first
result is kept and the duplicate is dropped. A result that a reentrancy guard
cut short on behalf of an enclosing walk is not cached.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from .entities import (
	AccessContext,
	Entity,
	EntityKind,
	Function,
	ImportAlias,
	Module,
	Slot,
	Type,
	Variable,
)
from .errors import PyShapeError
from .versions import LanguageVersion

if TYPE_CHECKING:
	from .session import AnalysisSession

logger = logging.getLogger(__name__)

_MISSING = object()


class MemberResolver:
	def __init__(self, session: "AnalysisSession"):
		self.session = session
		self._names: Dict[Tuple[int, AccessContext], FrozenSet[str]] = {}
		self._members: Dict[Tuple[int, AccessContext, str], Optional[Entity]] = {}
		self._bases: Dict[int, Tuple[Entity, ...]] = {}
		self._mro: Dict[int, Tuple[Type, ...]] = {}
		self._imports: Dict[int, Entity] = {}
		self._local = threading.local()

	# --- reentrancy bookkeeping ---

	def _visiting(self) -> Set[Tuple[str, int]]:
		visiting = getattr(self._local, "visiting", None)
		if visiting is None:
			visiting = self._local.visiting = set()
		return visiting

	def _hits(self) -> List[Tuple[str, int]]:
		hits = getattr(self._local, "hits", None)
		if hits is None:
			hits = self._local.hits = []
		return hits

	def _mark(self) -> int:
		return len(self._hits())

	def _complete(self, mark: int) -> bool:
		# Guard hits on keys still being visited belong to an enclosing
		# computation, so the result depends on where the walk started.
		visiting = self._visiting()
		return not any(key in visiting for key in self._hits()[mark:])

	@contextmanager
	def _guard(self, key: Tuple[str, int]) -> Iterator[bool]:
		visiting = self._visiting()
		if key in visiting:
			self._hits().append(key)
			yield False
			return
		visiting.add(key)
		try:
			yield True
		finally:
			visiting.discard(key)
			if not visiting:
				self._hits().clear()

	def clear(self) -> None:
		self._names.clear()
		self._members.clear()
		self._bases.clear()
		self._mro.clear()
		self._imports.clear()

	# --- public protocol ---

	def list_member_names(self, entity: Entity, context: AccessContext = AccessContext.UNQUALIFIED) -> FrozenSet[str]:
		key = (entity.entity_id, context)
		cached = self._names.get(key)
		if cached is not None:
			return cached
		mark = self._mark()
		names = frozenset(self._compute_names(entity, context))
		if self._complete(mark):
			names = self._names.setdefault(key, names)
		return names

	def get_member(
		self, entity: Entity, context: AccessContext = AccessContext.UNQUALIFIED, name: str = ""
	) -> Optional[Entity]:
		key = (entity.entity_id, context, name)
		cached = self._members.get(key, _MISSING)
		if cached is not _MISSING:
			return cached  # type: ignore[return-value]
		mark = self._mark()
		member = self._compute_member(entity, context, name)
		if self._complete(mark):
			member = self._members.setdefault(key, member)
		return member

	def resolve_bases(self, cls: Type) -> Tuple[Entity, ...]:
		"""Resolved base entities of a type; self references are dropped."""
		cached = self._bases.get(cls.entity_id)
		if cached is not None:
			return cached
		mark = self._mark()
		with self._guard(("bases", cls.entity_id)) as entered:
			if not entered:
				return ()
			bases: List[Entity] = []
			for ref in cls.bases:
				target = self.resolve_expression(ref.expression, ref.scope)
				if target is cls:
					logger.debug("%s lists itself as a base", cls.qualified_name)
					continue
				if target is None:
					target = self.session.unknown(ref.expression, f"unresolved base of {cls.qualified_name}")
				bases.append(target)
			result = tuple(bases)
		if self._complete(mark):
			result = self._bases.setdefault(cls.entity_id, result)
		return result

	def linearize(self, cls: Type) -> Tuple[Type, ...]:
		"""Depth-first, left-to-right walk of a type and its bases; each type once."""
		cached = self._mro.get(cls.entity_id)
		if cached is not None:
			return cached
		mark = self._mark()
		order: List[Type] = []
		visited: Set[int] = set()
		pending: List[Type] = [cls]
		while pending:
			current = pending.pop()
			if current.entity_id in visited:
				continue
			visited.add(current.entity_id)
			order.append(current)
			bases = [b for b in self.resolve_bases(current) if isinstance(b, Type)]
			pending.extend(reversed(bases))
		result = tuple(order)
		if self._complete(mark):
			result = self._mro.setdefault(cls.entity_id, result)
		return result

	def resolve_import(self, alias: ImportAlias) -> Entity:
		cached = self._imports.get(alias.alias_id)
		if cached is not None:
			return cached
		mark = self._mark()
		with self._guard(("import", alias.alias_id)) as entered:
			if not entered:
				return self.session.unknown(alias.name, f"circular import of {alias.module_name}")
			target = self._import_target(alias)
		if self._complete(mark):
			target = self._imports.setdefault(alias.alias_id, target)
		return target

	def resolve_expression(self, expression: str, scope: Entity) -> Optional[Entity]:
		"""Resolve a dotted name such as ``pkg.mod.Base[T]`` from a lexical scope."""
		head = expression.split("[", 1)[0].strip()
		parts = head.split(".")
		if not head or not all(p.isidentifier() for p in parts):
			return None
		current = self.lookup_lexical(parts[0], scope)
		for part in parts[1:]:
			if current is None:
				return None
			current = self.get_member(current, AccessContext.TYPE, part)
		return current

	def lookup_lexical(self, name: str, scope: Entity) -> Optional[Entity]:
		# Class bodies are only visible to statements directly inside them.
		current: Optional[Entity] = scope
		innermost = True
		while current is not None:
			if isinstance(current, Module):
				return self._module_member(current, name, submodules=False)
			if innermost or not isinstance(current, Type):
				slot = current.members.get(name)  # type: ignore[attr-defined]
				if slot is not None:
					return self._resolve_slot(slot)
			innermost = False
			current = current.parent
		return None

	# --- per-kind dispatch ---

	def _compute_names(self, entity: Entity, context: AccessContext) -> Set[str]:
		if entity.kind == EntityKind.MODULE:
			return self._module_names(entity)  # type: ignore[arg-type]
		if entity.kind == EntityKind.TYPE:
			names: Set[str] = set()
			for cls in self.linearize(entity):  # type: ignore[arg-type]
				names.update(cls.members)
				if context == AccessContext.INSTANCE:
					names.update(cls.instance_members)
			return names
		if entity.kind == EntityKind.FUNCTION:
			if context == AccessContext.UNQUALIFIED:
				return set(entity.members)  # type: ignore[attr-defined]
			return set()
		return set()

	def _compute_member(self, entity: Entity, context: AccessContext, name: str) -> Optional[Entity]:
		if entity.kind == EntityKind.MODULE:
			return self._module_member(entity, name, submodules=True)  # type: ignore[arg-type]
		if entity.kind == EntityKind.TYPE:
			mro = self.linearize(entity)  # type: ignore[arg-type]
			if context == AccessContext.INSTANCE:
				for cls in mro:
					if name in cls.instance_members:
						return cls.instance_members[name]
			for cls in mro:
				slot = cls.members.get(name)
				if slot is not None:
					return self._resolve_slot(slot)
			return None
		if entity.kind == EntityKind.FUNCTION and context == AccessContext.UNQUALIFIED:
			slot = entity.members.get(name)  # type: ignore[attr-defined]
			return self._resolve_slot(slot) if slot is not None else None
		return None

	# --- modules and imports ---

	def _resolve_slot(self, slot: Slot) -> Entity:
		if isinstance(slot, ImportAlias):
			return self.resolve_import(slot)
		return slot

	def _module_names(self, module: Module) -> Set[str]:
		names = set(module.members)
		if not module.star_imports:
			return names
		with self._guard(("star", module.entity_id)) as entered:
			if not entered:
				return names
			for alias in module.star_imports:
				target = self._import_module(alias.module_name, module.version)
				if target is not None:
					names.update(self._public_names(target))
		return names

	def _public_names(self, module: Module) -> Set[str]:
		exported = module.members.get("__all__")
		if isinstance(exported, Variable) and exported.string_values is not None:
			return set(exported.string_values)
		return {n for n in self.list_member_names(module, AccessContext.UNQUALIFIED) if not n.startswith("_")}

	def _module_member(self, module: Module, name: str, submodules: bool) -> Optional[Entity]:
		slot = module.members.get(name)
		if slot is not None:
			return self._resolve_slot(slot)
		if module.star_imports:
			with self._guard(("star", module.entity_id)) as entered:
				if entered:
					for alias in reversed(module.star_imports):
						target = self._import_module(alias.module_name, module.version)
						if target is not None and name in self._public_names(target):
							found = self.get_member(target, AccessContext.UNQUALIFIED, name)
							if found is not None:
								return found
		if submodules and module.is_package:
			return self._import_module(f"{module.name}.{name}", module.version)
		return None

	def _import_module(self, module_name: str, version: Optional[LanguageVersion] = None) -> Optional[Module]:
		try:
			return self.session.import_module(module_name, version)
		except PyShapeError as exc:
			logger.debug("import of %s failed: %s", module_name, exc)
			return None

	def _import_target(self, alias: ImportAlias) -> Entity:
		module = self._import_module(alias.module_name, alias.version)
		if alias.imported_name is None:
			if module is None:
				return self.session.missing_module(alias.module_name, alias.version)
			return module
		if module is None:
			return self.session.unknown(alias.name, f"module {alias.module_name} not found")
		member: Optional[Entity] = None
		# "from . import sub" inside a package __init__ binds the submodule
		if module.members.get(alias.imported_name) is not alias:
			member = self.get_member(module, AccessContext.UNQUALIFIED, alias.imported_name)
		if (member is None or member.kind == EntityKind.UNKNOWN) and module.is_package:
			submodule = self._import_module(f"{alias.module_name}.{alias.imported_name}", alias.version)
			if submodule is not None:
				return submodule
		if member is None:
			return self.session.unknown(alias.name, f"{alias.imported_name} not found in {alias.module_name}")
		return member
