from __future__ import annotations

from typing import List

from .entities import AccessContext, Entity, Function, Module, Type, Unknown, Variable
from .model import MemberInfo, ScanReport
from .session import AnalysisSession


def describe_entity(
	session: AnalysisSession, entity: Entity, context: AccessContext = AccessContext.UNQUALIFIED
) -> MemberInfo:
	info = MemberInfo(
		name=entity.name,
		kind=entity.kind.value,
		qualified_name=entity.qualified_name,
		documentation=entity.documentation,
		members=sorted(session.list_member_names(entity, context)),
	)
	if isinstance(entity, Function):
		info.signatures = [sig.format() for sig in entity.signatures]
	elif isinstance(entity, Type):
		info.bases = [
			f"?{b.name}" if isinstance(b, Unknown) else b.qualified_name for b in session.resolver.resolve_bases(entity)
		]
	elif isinstance(entity, Variable):
		info.literal_kind = entity.literal_kind
	return info


def _outline(session: AnalysisSession, entity: Entity, indent: str, parts: List[str]) -> None:
	for name in sorted(session.list_member_names(entity, AccessContext.UNQUALIFIED)):
		member = session.get_member(entity, AccessContext.UNQUALIFIED, name)
		if member is None or member is entity:
			continue
		# Only declarations owned here; imported names are listed by name.
		if member.parent is not entity:
			parts.append(f"{indent}{name} -> {member.qualified_name}")
			continue
		if isinstance(member, Type):
			bases = ", ".join(b.name for b in session.resolver.resolve_bases(member))
			parts.append(f"{indent}class {name}({bases})" if bases else f"{indent}class {name}")
			_outline(session, member, indent + "  ", parts)
		elif isinstance(member, Function):
			for sig in member.signatures:
				parts.append(f"{indent}def {name}{sig.format()}")
		elif isinstance(member, Variable):
			kind = member.literal_kind or "?"
			parts.append(f"{indent}{name}: {kind}")


def summarize_module(session: AnalysisSession, module: Module) -> str:
	parts: List[str] = []
	where = module.path or "<source>"
	if module.synthetic:
		where = f"{where} ({module.status})"
	parts.append(f"Module {module.name} at {where}")
	for diag in module.diagnostics:
		parts.append(f"  ! line {diag.line}: {diag.message}")
	_outline(session, module, "  ", parts)
	return "\n".join(parts)


def summarize_scan(report: ScanReport) -> str:
	parts: List[str] = []
	status = "ok" if report.success else "FAILED"
	parts.append(
		f"Scan ({report.version}) {status}: {len(report.resolved)} resolved, "
		f"{len(report.warnings)} failed, {len(report.skipped)} skipped"
	)
	for name in sorted(report.warnings):
		parts.append(f"  warning: {name}: {report.warnings[name]}")
	return "\n".join(parts)
