from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Sequence

from .entities import (
	Entity,
	Function,
	FunctionScope,
	ImportAlias,
	Module,
	Slot,
	Type,
	Variable,
)
from .model import Declaration, DeclarationKind, ParseDiagnostic
from .versions import LanguageVersion

if TYPE_CHECKING:
	from .session import AnalysisSession

logger = logging.getLogger(__name__)


def absolute_module_name(module_name: str, is_package: bool, imported_module: str, level: int) -> str:
	"""Resolve the target of a (possibly relative) from-import."""
	if level <= 0:
		return imported_module
	package = module_name if is_package else module_name.rpartition(".")[0]
	parts = package.split(".") if package else []
	if level > 1:
		parts = parts[: len(parts) - (level - 1)] if len(parts) >= level - 1 else []
	if imported_module:
		parts.append(imported_module)
	return ".".join(p for p in parts if p)


class ModuleBuilder:
	"""Turns one module's ordered declaration records into its member graph."""

	def __init__(self, session: "AnalysisSession", module: Module):
		self.session = session
		self.module = module
		# declaration index -> entity whose body that declaration opens
		self.containers: Dict[int, Entity] = {}

	def build(self, declarations: Iterable[Declaration]) -> Module:
		for decl in declarations:
			owner = self._owner(decl)
			if owner is None:
				continue
			if decl.kind == DeclarationKind.CLASS:
				self._add_class(decl, owner)
			elif decl.kind == DeclarationKind.FUNCTION:
				self._add_function(decl, owner)
			elif decl.kind == DeclarationKind.ASSIGNMENT:
				self._add_assignment(decl, owner)
			elif decl.kind == DeclarationKind.IMPORT:
				self._add_import(decl, owner)
		return self.module

	def _owner(self, decl: Declaration) -> Optional[Entity]:
		if decl.parent is None:
			return self.module
		owner = self.containers.get(decl.parent)
		if owner is None:
			logger.debug("%s: no container for declaration %s at line %d", self.module.name, decl.name, decl.line)
		return owner

	def _bind(self, owner: Entity, name: str, slot: Slot) -> None:
		owner.members[name] = slot  # type: ignore[attr-defined]

	def _add_class(self, decl: Declaration, owner: Entity) -> None:
		cls = self.session.register(Type(self.session.new_id(), decl.name, owner, decl))
		self._bind(owner, decl.name, cls)
		self.containers[decl.index] = cls

	def _add_function(self, decl: Declaration, owner: Entity) -> None:
		existing = owner.members.get(decl.name)  # type: ignore[attr-defined]
		if isinstance(existing, Function) and existing.parent is owner:
			func = existing
		else:
			if isinstance(owner, Type):
				scope = FunctionScope.METHOD
			elif isinstance(owner, Function):
				scope = FunctionScope.NESTED
			else:
				scope = FunctionScope.MODULE
			func = self.session.register(Function(self.session.new_id(), decl.name, owner, scope))
			self._bind(owner, decl.name, func)
		if decl.signature is not None:
			func.add_overload(decl.signature)
		self.containers[decl.index] = func

	def _add_assignment(self, decl: Declaration, owner: Entity) -> None:
		if decl.instance_attribute:
			cls = owner.parent if isinstance(owner, Function) and owner.is_method else None
			if isinstance(cls, Type):
				cls.instance_members[decl.name] = self.session.register(
					Variable(self.session.new_id(), decl.name, cls, decl.literal_kind)
				)
			return
		var = self.session.register(
			Variable(self.session.new_id(), decl.name, owner, decl.literal_kind, decl.string_values)
		)
		self._bind(owner, decl.name, var)

	def _add_import(self, decl: Declaration, owner: Entity) -> None:
		if decl.imported_name is None:
			target = decl.imported_module or decl.name
		else:
			target = absolute_module_name(
				self.module.name, self.module.is_package, decl.imported_module or "", decl.import_level
			)
		alias = ImportAlias(self.session.new_id(), decl.name, target, decl.imported_name, importer=self.module)
		if alias.is_star:
			if owner is self.module:
				self.module.star_imports.append(alias)
			return
		self._bind(owner, decl.name, alias)


def build_module(
	session: "AnalysisSession",
	name: str,
	version: LanguageVersion,
	declarations: Sequence[Declaration],
	path: Optional[str] = None,
	is_package: bool = False,
	diagnostics: Sequence[ParseDiagnostic] = (),
	documentation: Optional[str] = None,
) -> Module:
	module = session.register(Module(session.new_id(), name, version, path=path, is_package=is_package, status="source"))
	module.diagnostics = list(diagnostics)
	module.documentation = documentation
	ModuleBuilder(session, module).build(declarations)
	logger.debug("built %s: %d members", name, len(module.members))
	return module
