from textwrap import dedent

from pyshape.entities import AccessContext
from pyshape.model import ModuleScanResult, ScanReport
from pyshape.session import AnalysisSession
from pyshape.summarize import describe_entity, summarize_module, summarize_scan


def test_summarize_module():
	with AnalysisSession([]) as session:
		module = session.module_from_source(
			"pkg.m",
			dedent(
				"""
				import missing
				class Base: pass
				class Child(Base, Other):
					def run(self, *args): pass
				LIMIT = 10
				"""
			),
			path="pkg/m.py",
		)
		text = summarize_module(session, module)
	assert text.splitlines() == [
		"Module pkg.m at pkg/m.py",
		"  class Base",
		"  class Child(Base, Other)",
		"    def run(self, *args)",
		"  LIMIT: int",
		"  missing -> missing",
	]


def test_describe_type_lists_bases():
	with AnalysisSession([]) as session:
		module = session.module_from_source("m", "class A(B):\n\tpass\n")
		info = describe_entity(session, session.get_member(module, AccessContext.UNQUALIFIED, "A"))
	assert info.kind == "type"
	assert info.bases == ["?B"]
	assert info.members == ["__class__"]


def test_summarize_scan():
	report = ScanReport(
		version="3.11",
		resolved=[ModuleScanResult(module_name="a", source_file="a.py")],
		skipped=["_b"],
		warnings={"c": "failed to import c from c.py"},
	)
	assert summarize_scan(report).splitlines() == [
		"Scan (3.11) ok: 1 resolved, 1 failed, 1 skipped",
		"  warning: c: failed to import c from c.py",
	]
