from __future__ import annotations

import ast
import logging
from typing import List, Optional, Sequence, Tuple

from .model import Declaration, DeclarationKind, Parameter, ParameterKind, ParseDiagnostic, Signature
from .versions import DEFAULT_VERSION, LanguageVersion, parse

logger = logging.getLogger(__name__)

MAX_RECOVERY_ATTEMPTS = 100


def _get_decorator_names(node: ast.AST) -> List[str]:
	decorators: List[str] = []
	for deco in getattr(node, "decorator_list", []) or []:
		if isinstance(deco, ast.Call):
			deco = deco.func
		if isinstance(deco, ast.Name):
			decorators.append(deco.id)
		elif isinstance(deco, ast.Attribute):
			# Collect dotted attribute like module.decorator
			parts: List[str] = []
			cursor = deco
			while isinstance(cursor, ast.Attribute):
				parts.append(cursor.attr)
				cursor = cursor.value  # type: ignore[assignment]
			if isinstance(cursor, ast.Name):
				parts.append(cursor.id)
			decorators.append(".".join(reversed(parts)))
		else:
			decorators.append(ast.unparse(deco))
	return decorators


def _annotation(node: Optional[ast.AST]) -> Optional[str]:
	if node is None:
		return None
	return ast.unparse(node)


def _parameters(args: ast.arguments) -> List[Parameter]:
	params: List[Parameter] = []
	positional = list(args.posonlyargs) + list(args.args)
	# Defaults align with the tail of the positional parameters.
	first_default = len(positional) - len(args.defaults)
	for i, a in enumerate(positional):
		kind = ParameterKind.POSITIONAL_ONLY if i < len(args.posonlyargs) else ParameterKind.POSITIONAL
		params.append(
			Parameter(name=a.arg, kind=kind, has_default=i >= first_default, annotation=_annotation(a.annotation))
		)
	if args.vararg:
		params.append(
			Parameter(
				name=args.vararg.arg,
				kind=ParameterKind.VAR_POSITIONAL,
				annotation=_annotation(args.vararg.annotation),
			)
		)
	for a, default in zip(args.kwonlyargs, args.kw_defaults):
		params.append(
			Parameter(
				name=a.arg,
				kind=ParameterKind.KEYWORD_ONLY,
				has_default=default is not None,
				annotation=_annotation(a.annotation),
			)
		)
	if args.kwarg:
		params.append(
			Parameter(name=args.kwarg.arg, kind=ParameterKind.VAR_KEYWORD, annotation=_annotation(args.kwarg.annotation))
		)
	return params


def literal_kind(value: Optional[ast.AST]) -> Optional[str]:
	if value is None:
		return None
	if isinstance(value, ast.Constant):
		if value.value is None:
			return "NoneType"
		if value.value is Ellipsis:
			return "ellipsis"
		return type(value.value).__name__
	if isinstance(value, ast.UnaryOp) and isinstance(value.operand, ast.Constant):
		if isinstance(value.op, (ast.USub, ast.UAdd)) and isinstance(value.operand.value, (int, float, complex)):
			return type(value.operand.value).__name__
		return None
	if isinstance(value, ast.JoinedStr):
		return "str"
	if isinstance(value, ast.List):
		return "list"
	if isinstance(value, ast.Tuple):
		return "tuple"
	if isinstance(value, ast.Dict):
		return "dict"
	if isinstance(value, ast.Set):
		return "set"
	return None


def _string_values(value: Optional[ast.AST]) -> Optional[List[str]]:
	if not isinstance(value, (ast.List, ast.Tuple)):
		return None
	strings: List[str] = []
	for elt in value.elts:
		if not (isinstance(elt, ast.Constant) and isinstance(elt.value, str)):
			return None
		strings.append(elt.value)
	return strings


class _Scope:
	def __init__(self, kind: str, path: List[str], parent: Optional[int], self_name: Optional[str] = None):
		self.kind = kind
		self.path = path
		self.parent = parent
		self.self_name = self_name


class DeclarationCollector:
	"""Walks statements in lexical order and records declaration sites."""

	def __init__(self) -> None:
		self.declarations: List[Declaration] = []

	def _add(self, node: ast.AST, scope: _Scope, kind: DeclarationKind, name: str, **fields: object) -> Declaration:
		decl = Declaration(
			index=len(self.declarations),
			kind=kind,
			name=name,
			line=getattr(node, "lineno", 0),
			column=getattr(node, "col_offset", 0),
			path=list(scope.path),
			parent=scope.parent,
			**fields,
		)
		self.declarations.append(decl)
		return decl

	def collect(self, tree: ast.AST) -> List[Declaration]:
		self.walk(getattr(tree, "body", []) or [], _Scope("module", [], None))
		return self.declarations

	def walk(self, body: Sequence[ast.stmt], scope: _Scope) -> None:
		for stmt in body:
			self.visit(stmt, scope)

	def visit(self, node: ast.stmt, scope: _Scope) -> None:
		if isinstance(node, ast.ClassDef):
			self._class(node, scope)
		elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
			self._function(node, scope)
		elif isinstance(node, ast.Assign):
			for target in node.targets:
				self._assign_target(target, node, scope, node.value)
		elif isinstance(node, ast.AnnAssign):
			self._assign_target(node.target, node, scope, node.value)
		elif isinstance(node, ast.Import):
			for alias in node.names:
				if alias.asname:
					bound, module = alias.asname, alias.name
				else:
					# "import a.b" binds "a"
					bound = module = alias.name.split(".")[0]
				self._add(node, scope, DeclarationKind.IMPORT, bound, imported_module=module)
		elif isinstance(node, ast.ImportFrom):
			for alias in node.names:
				self._add(
					node,
					scope,
					DeclarationKind.IMPORT,
					alias.asname or alias.name,
					imported_module=node.module or "",
					imported_name=alias.name,
					import_level=node.level or 0,
				)
		elif isinstance(node, (ast.For, ast.AsyncFor)):
			self._assign_target(node.target, node, scope, None)
			self.walk(node.body, scope)
			self.walk(node.orelse, scope)
		elif isinstance(node, (ast.If, ast.While)):
			self.walk(node.body, scope)
			self.walk(node.orelse, scope)
		elif isinstance(node, (ast.With, ast.AsyncWith)):
			self.walk(node.body, scope)
		elif isinstance(node, ast.Try) or type(node).__name__ == "TryStar":
			self.walk(node.body, scope)
			for handler in node.handlers:
				self.walk(handler.body, scope)
			self.walk(node.orelse, scope)
			self.walk(node.finalbody, scope)
		elif type(node).__name__ == "Match":
			for case in node.cases:
				self.walk(case.body, scope)

	def _class(self, node: ast.ClassDef, scope: _Scope) -> None:
		decl = self._add(
			node,
			scope,
			DeclarationKind.CLASS,
			node.name,
			bases=[ast.unparse(b) for b in node.bases],
			keywords={k.arg: ast.unparse(k.value) for k in node.keywords if k.arg},
			decorators=_get_decorator_names(node),
			documentation=ast.get_docstring(node),
		)
		self.walk(node.body, _Scope("class", scope.path + [node.name], decl.index))

	def _function(self, node: ast.AST, scope: _Scope) -> None:
		decorators = _get_decorator_names(node)
		documentation = ast.get_docstring(node)
		signature = Signature(
			parameters=_parameters(node.args),
			return_annotation=_annotation(node.returns),
			documentation=documentation,
			decorators=decorators,
			is_async=isinstance(node, ast.AsyncFunctionDef),
			line=node.lineno,
		)
		decl = self._add(
			node,
			scope,
			DeclarationKind.FUNCTION,
			node.name,
			decorators=decorators,
			documentation=documentation,
			signature=signature,
		)
		self_name = None
		if scope.kind == "class" and "staticmethod" not in decorators:
			positional = list(node.args.posonlyargs) + list(node.args.args)
			if positional:
				self_name = positional[0].arg
		self.walk(node.body, _Scope("function", scope.path + [node.name], decl.index, self_name))

	def _assign_target(self, target: ast.AST, node: ast.stmt, scope: _Scope, value: Optional[ast.AST]) -> None:
		if isinstance(target, ast.Name):
			self._add(
				node,
				scope,
				DeclarationKind.ASSIGNMENT,
				target.id,
				literal_kind=literal_kind(value),
				string_values=_string_values(value),
			)
		elif isinstance(target, (ast.Tuple, ast.List)):
			for elt in target.elts:
				self._assign_target(elt, node, scope, None)
		elif isinstance(target, ast.Starred):
			self._assign_target(target.value, node, scope, None)
		elif (
			isinstance(target, ast.Attribute)
			and scope.self_name
			and isinstance(target.value, ast.Name)
			and target.value.id == scope.self_name
		):
			self._add(
				node,
				scope,
				DeclarationKind.ASSIGNMENT,
				target.attr,
				literal_kind=literal_kind(value),
				instance_attribute=True,
			)


def extract_declarations(tree: ast.AST, version: LanguageVersion = DEFAULT_VERSION) -> List[Declaration]:
	# The tree already reflects the selected grammar; version is informational here.
	return DeclarationCollector().collect(tree)


# Column-0 keywords that continue the compound statement above them.
_CONTINUATIONS = ("else", "elif", "except", "except*", "finally")


def _starts_statement(line: str) -> bool:
	if not line.strip() or line[0] in " \t\f#)]}":
		return False
	return line.split(None, 1)[0].rstrip(":") not in _CONTINUATIONS


def _top_level_spans(lines: Sequence[str]) -> List[Tuple[int, int]]:
	"""Index ranges [start, end) of the top-level statements, decorators included."""
	starts = [0]
	for i in range(1, len(lines)):
		if _starts_statement(lines[i]) and not lines[i - 1].startswith("@"):
			starts.append(i)
	return list(zip(starts, starts[1:] + [len(lines)]))


def _statement_span(lines: Sequence[str], lineno: int) -> Tuple[int, int]:
	index = min(max(lineno - 1, 0), len(lines) - 1)
	for start, end in _top_level_spans(lines):
		if start <= index < end:
			return start, end
	return index, index + 1


def _diagnostic(exc: SyntaxError, filename: str) -> ParseDiagnostic:
	logger.debug("syntax error in %s line %s: %s", filename, exc.lineno, exc.msg)
	return ParseDiagnostic(message=exc.msg or str(exc), line=exc.lineno, column=exc.offset)


def parse_module_source(
	source: str, version: LanguageVersion = DEFAULT_VERSION, filename: str = "<unknown>"
) -> Tuple[ast.Module, List[ParseDiagnostic]]:
	"""
	Parse source, blanking each top-level statement that fails to parse.

	Every top-level statement is first checked on its own, since the parser
	may report an error on the line after the statement that caused it.
	Blanked lines stay in place so the line numbers of the remaining
	declarations are unchanged. Every cut adds one diagnostic.
	"""
	diagnostics: List[ParseDiagnostic] = []
	try:
		return parse(source, version, filename), diagnostics
	except SyntaxError:
		pass
	except ValueError as exc:
		# e.g. source containing null bytes
		return ast.Module(body=[], type_ignores=[]), [ParseDiagnostic(message=str(exc))]

	lines = source.split("\n")
	for start, end in _top_level_spans(lines):
		# Leading newlines keep the parser's line numbers file-relative.
		chunk = "\n" * start + "\n".join(lines[start:end])
		try:
			parse(chunk, version, filename)
		except SyntaxError as exc:
			diagnostics.append(_diagnostic(exc, filename))
			lines[start:end] = [""] * (end - start)

	# Statements that only fail in context are cut where the parser points.
	for _ in range(MAX_RECOVERY_ATTEMPTS):
		try:
			return parse("\n".join(lines), version, filename), diagnostics
		except SyntaxError as exc:
			diagnostics.append(_diagnostic(exc, filename))
			start, end = _statement_span(lines, exc.lineno or len(lines))
			if not any(line.strip() for line in lines[start:end]):
				break
			lines[start:end] = [""] * (end - start)
	return ast.Module(body=[], type_ignores=[]), diagnostics


def parse_python_module(text: str, version: LanguageVersion = DEFAULT_VERSION, path: str = "<unknown>") -> Tuple[List[Declaration], List[ParseDiagnostic]]:
	tree, diagnostics = parse_module_source(text, version, path)
	return extract_declarations(tree, version), diagnostics
