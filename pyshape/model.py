from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, computed_field

from .errors import LibraryScanError


class ModuleStatus(str, Enum):
	SOURCE = "source"
	COMPILED = "compiled"
	NATIVE = "native"
	NOT_FOUND = "not_found"


class ModulePath(BaseModel):
	module_name: str
	library_path: str
	source_file: str
	is_compiled: bool = False
	is_native_extension: bool = False
	is_package: bool = False

	@property
	def is_analyzable(self) -> bool:
		return not (self.is_compiled or self.is_native_extension)


class ModuleLookup(BaseModel):
	module_name: str
	status: ModuleStatus
	path: Optional[str] = None
	library_path: Optional[str] = None
	is_package: bool = False

	@property
	def found(self) -> bool:
		return self.status != ModuleStatus.NOT_FOUND


class DeclarationKind(str, Enum):
	CLASS = "class"
	FUNCTION = "function"
	ASSIGNMENT = "assignment"
	IMPORT = "import"


class ParameterKind(str, Enum):
	POSITIONAL_ONLY = "positional_only"
	POSITIONAL = "positional"
	VAR_POSITIONAL = "var_positional"
	KEYWORD_ONLY = "keyword_only"
	VAR_KEYWORD = "var_keyword"


class Parameter(BaseModel):
	name: str
	kind: ParameterKind = ParameterKind.POSITIONAL
	has_default: bool = False
	annotation: Optional[str] = None


class Signature(BaseModel):
	parameters: List[Parameter] = []
	return_annotation: Optional[str] = None
	documentation: Optional[str] = None
	decorators: List[str] = []
	is_async: bool = False
	line: int = 0

	def format(self) -> str:
		parts: List[str] = []
		seen_keyword_only = False
		for i, p in enumerate(self.parameters):
			if p.kind == ParameterKind.VAR_POSITIONAL:
				text = "*" + p.name
				seen_keyword_only = True
			elif p.kind == ParameterKind.VAR_KEYWORD:
				text = "**" + p.name
			else:
				if p.kind == ParameterKind.KEYWORD_ONLY and not seen_keyword_only:
					parts.append("*")
					seen_keyword_only = True
				text = p.name
				if p.annotation:
					text += f": {p.annotation}"
				if p.has_default:
					text += "=..."
			parts.append(text)
			following = self.parameters[i + 1] if i + 1 < len(self.parameters) else None
			if p.kind == ParameterKind.POSITIONAL_ONLY and (
				following is None or following.kind != ParameterKind.POSITIONAL_ONLY
			):
				parts.append("/")
		result = f"({', '.join(parts)})"
		if self.return_annotation:
			result += f" -> {self.return_annotation}"
		return result


class Declaration(BaseModel):
	index: int
	kind: DeclarationKind
	name: str
	line: int
	column: int = 0
	path: List[str] = []
	parent: Optional[int] = None
	# class
	bases: List[str] = []
	keywords: Dict[str, str] = {}
	# class and function
	decorators: List[str] = []
	documentation: Optional[str] = None
	# function
	signature: Optional[Signature] = None
	# assignment
	literal_kind: Optional[str] = None
	string_values: Optional[List[str]] = None
	instance_attribute: bool = False
	# import
	imported_module: Optional[str] = None
	imported_name: Optional[str] = None
	import_level: int = 0


class ParseDiagnostic(BaseModel):
	message: str
	line: Optional[int] = None
	column: Optional[int] = None


class MemberInfo(BaseModel):
	name: str
	kind: str
	qualified_name: str
	documentation: Optional[str] = None
	signatures: List[str] = []
	bases: List[str] = []
	literal_kind: Optional[str] = None
	members: List[str] = []


class ModuleScanResult(BaseModel):
	module_name: str
	source_file: str
	member_count: int = 0
	diagnostics: List[ParseDiagnostic] = []


class ScanReport(BaseModel):
	version: str
	search_paths: List[str] = []
	resolved: List[ModuleScanResult] = []
	skipped: List[str] = []
	warnings: Dict[str, str] = {}

	@computed_field
	@property
	def success(self) -> bool:
		return bool(self.resolved)

	@property
	def attempted(self) -> List[str]:
		return [r.module_name for r in self.resolved] + sorted(self.warnings)

	def raise_for_status(self) -> "ScanReport":
		if not self.success:
			raise LibraryScanError(
				f"failed to import any modules at all ({len(self.warnings)} failed, "
				f"{len(self.skipped)} skipped)",
				report=self,
			)
		return self
