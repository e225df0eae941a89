"""
Semantic entities of the member graph.

Every entity is one of a closed set of variants, tagged by `EntityKind`, and
carries a stable integer identity handed out by its session. Member tables map
names to entities or to `ImportAlias` slots, which the resolver turns into
entities on first access.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .model import Declaration, ParseDiagnostic, Signature
from .versions import LanguageVersion

PSEUDO_MEMBER = "__class__"


class EntityKind(str, Enum):
	MODULE = "module"
	TYPE = "type"
	FUNCTION = "function"
	VARIABLE = "variable"
	UNKNOWN = "unknown"


class AccessContext(str, Enum):
	INSTANCE = "instance"
	TYPE = "type"
	UNQUALIFIED = "unqualified"


class FunctionScope(str, Enum):
	MODULE = "module"
	METHOD = "method"
	NESTED = "nested"


class Entity:
	kind: EntityKind = EntityKind.UNKNOWN

	def __init__(self, entity_id: int, name: str, parent: Optional["Entity"] = None):
		self.entity_id = entity_id
		self.name = name
		self.parent = parent
		self.documentation: Optional[str] = None

	@property
	def qualified_name(self) -> str:
		if self.parent is None:
			return self.name
		return f"{self.parent.qualified_name}.{self.name}"

	def __repr__(self) -> str:
		return f"<{type(self).__name__} {self.qualified_name} #{self.entity_id}>"


class ImportAlias:
	"""
	A name bound by an import statement; resolved lazily.

	`importer` is the module whose code runs the import. Its language version
	selects the version the target module is built under.
	"""

	def __init__(
		self,
		alias_id: int,
		name: str,
		module_name: str,
		imported_name: Optional[str] = None,
		importer: Optional["Module"] = None,
	):
		self.alias_id = alias_id
		self.name = name
		self.module_name = module_name
		self.imported_name = imported_name
		self.importer = importer

	@property
	def version(self) -> Optional[LanguageVersion]:
		return self.importer.version if self.importer is not None else None

	@property
	def is_star(self) -> bool:
		return self.imported_name == "*"

	def __repr__(self) -> str:
		if self.imported_name is None:
			return f"<ImportAlias {self.name} = {self.module_name}>"
		return f"<ImportAlias {self.name} = {self.module_name}:{self.imported_name}>"


Slot = Union[Entity, ImportAlias]


class Module(Entity):
	kind = EntityKind.MODULE

	def __init__(
		self,
		entity_id: int,
		name: str,
		version: LanguageVersion,
		path: Optional[str] = None,
		is_package: bool = False,
		synthetic: bool = False,
		status: Optional[str] = None,
	):
		super().__init__(entity_id, name)
		self.version = version
		self.path = path
		self.is_package = is_package
		self.synthetic = synthetic
		self.status = status
		self.members: Dict[str, Slot] = {}
		self.star_imports: List[ImportAlias] = []
		self.diagnostics: List[ParseDiagnostic] = []

	@property
	def key(self) -> Tuple[str, LanguageVersion]:
		return self.name, self.version


class BaseRef:
	"""An unresolved base-class expression and the scope it is evaluated in."""

	def __init__(self, expression: str, scope: Entity):
		self.expression = expression
		self.scope = scope

	def __repr__(self) -> str:
		return f"<BaseRef {self.expression}>"


class Type(Entity):
	kind = EntityKind.TYPE

	def __init__(self, entity_id: int, name: str, parent: Entity, declaration: Optional[Declaration] = None):
		super().__init__(entity_id, name, parent)
		self.bases: List[BaseRef] = []
		self.members: Dict[str, Slot] = {PSEUDO_MEMBER: self}
		self.instance_members: Dict[str, Entity] = {}
		self.decorators: List[str] = []
		self.keywords: Dict[str, str] = {}
		self.line = 0
		if declaration is not None:
			self.bases = [BaseRef(expr, parent) for expr in declaration.bases]
			self.documentation = declaration.documentation
			self.decorators = list(declaration.decorators)
			self.keywords = dict(declaration.keywords)
			self.line = declaration.line


class Function(Entity):
	kind = EntityKind.FUNCTION

	def __init__(self, entity_id: int, name: str, parent: Entity, scope: FunctionScope):
		super().__init__(entity_id, name, parent)
		self.scope = scope
		self.signatures: List[Signature] = []
		self.members: Dict[str, Slot] = {}

	def add_overload(self, signature: Signature) -> None:
		self.signatures.append(signature)
		if self.documentation is None:
			self.documentation = signature.documentation

	@property
	def is_method(self) -> bool:
		return self.scope == FunctionScope.METHOD

	@property
	def decorators(self) -> List[str]:
		seen: List[str] = []
		for sig in self.signatures:
			for deco in sig.decorators:
				if deco not in seen:
					seen.append(deco)
		return seen


class Variable(Entity):
	kind = EntityKind.VARIABLE

	def __init__(
		self,
		entity_id: int,
		name: str,
		parent: Entity,
		literal_kind: Optional[str] = None,
		string_values: Optional[List[str]] = None,
	):
		super().__init__(entity_id, name, parent)
		self.literal_kind = literal_kind
		self.string_values = string_values


class Unknown(Entity):
	kind = EntityKind.UNKNOWN

	def __init__(self, entity_id: int, name: str, reason: str = ""):
		super().__init__(entity_id, name)
		self.reason = reason
