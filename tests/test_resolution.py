from textwrap import dedent

import pytest

from pyshape.entities import PSEUDO_MEMBER, AccessContext, EntityKind, Function, Module, Type, Unknown, Variable
from pyshape.session import AnalysisSession

UNQUALIFIED = AccessContext.UNQUALIFIED
TYPE = AccessContext.TYPE
INSTANCE = AccessContext.INSTANCE


@pytest.fixture
def session():
	with AnalysisSession([]) as s:
		yield s


def _module(session, source, name="m"):
	return session.module_from_source(name, dedent(source))


def test_bases_are_walked_left_to_right(session):
	mod = _module(
		session,
		"""
		class A:
			def a(self): pass
			def shared(self): return "A"
		class B:
			def b(self): pass
			def shared(self): return "B"
		class C(A, B):
			def c(self): pass
		""",
	)
	A = session.get_member(mod, UNQUALIFIED, "A")
	C = session.get_member(mod, UNQUALIFIED, "C")
	assert session.list_member_names(C, TYPE) == {"a", "b", "c", "shared", PSEUDO_MEMBER}
	assert session.get_member(C, TYPE, "shared").parent is A
	# the pseudo-member always refers to the type queried
	assert session.get_member(C, TYPE, PSEUDO_MEMBER) is C


def test_depth_first_linearization(session):
	mod = _module(
		session,
		"""
		class Base:
			def who(self): pass
		class Left(Base): pass
		class Right(Base):
			def who(self): pass
		class Bottom(Left, Right): pass
		""",
	)
	Bottom = session.get_member(mod, UNQUALIFIED, "Bottom")
	assert [t.name for t in session.resolver.linearize(Bottom)] == ["Bottom", "Left", "Base", "Right"]
	assert session.get_member(Bottom, TYPE, "who").parent.name == "Base"


def test_self_referential_base_is_excluded(session):
	mod = _module(
		session,
		"""
		class Self(Self):
			def m(self): pass
		""",
	)
	cls = session.get_member(mod, UNQUALIFIED, "Self")
	assert session.resolver.resolve_bases(cls) == ()
	assert session.list_member_names(cls, TYPE) == {"m", PSEUDO_MEMBER}
	assert session.get_member(cls, TYPE, "missing") is None


def test_mutually_referential_bases_terminate(session):
	mod = _module(
		session,
		"""
		class A(B):
			def a(self): pass
		class B(A):
			def b(self): pass
		""",
	)
	A = session.get_member(mod, UNQUALIFIED, "A")
	B = session.get_member(mod, UNQUALIFIED, "B")
	assert session.list_member_names(A, TYPE) == {"a", "b", PSEUDO_MEMBER}
	assert session.list_member_names(B, INSTANCE) == {"a", "b", PSEUDO_MEMBER}
	assert session.get_member(A, TYPE, "nothing") is None


def test_base_resolved_through_a_cycle(session):
	mod = _module(
		session,
		"""
		class X(Y.Missing):
			pass
		class Y(X):
			pass
		""",
	)
	X = session.get_member(mod, UNQUALIFIED, "X")
	Y = session.get_member(mod, UNQUALIFIED, "Y")
	names = session.list_member_names(X, TYPE)
	assert names == {PSEUDO_MEMBER}
	assert session.list_member_names(X, TYPE) is names
	bases = session.resolver.resolve_bases(X)
	assert len(bases) == 1
	assert isinstance(bases[0], Unknown)
	assert session.list_member_names(Y, TYPE) == {PSEUDO_MEMBER}


def test_unresolvable_bases_degrade_to_unknown(session):
	mod = _module(
		session,
		"""
		class K(undefined_name, collections.OrderedDict, make_base()):
			def k(self): pass
		""",
	)
	K = session.get_member(mod, UNQUALIFIED, "K")
	bases = session.resolver.resolve_bases(K)
	assert [b.kind for b in bases] == [EntityKind.UNKNOWN] * 3
	assert [b.name for b in bases] == ["undefined_name", "collections.OrderedDict", "make_base()"]
	assert session.list_member_names(K, TYPE) == {"k", PSEUDO_MEMBER}


def test_empty_class_has_pseudo_member(session):
	mod = _module(session, "class Empty: pass\n")
	Empty = session.get_member(mod, UNQUALIFIED, "Empty")
	for context in AccessContext:
		assert session.list_member_names(Empty, context) == {PSEUDO_MEMBER}


def test_instance_context_adds_instance_attributes(session):
	mod = _module(
		session,
		"""
		class P:
			kind = "p"
			def __init__(self):
				self.x = 1
				self.y = "s"
		class Q(P):
			def setup(self):
				self.z = None
		""",
	)
	Q = session.get_member(mod, UNQUALIFIED, "Q")
	assert session.list_member_names(Q, INSTANCE) == {
		"kind",
		"__init__",
		"setup",
		"x",
		"y",
		"z",
		PSEUDO_MEMBER,
	}
	assert session.list_member_names(Q, TYPE) == {"kind", "__init__", "setup", PSEUDO_MEMBER}
	x = session.get_member(Q, INSTANCE, "x")
	assert isinstance(x, Variable)
	assert x.literal_kind == "int"
	assert session.get_member(Q, TYPE, "x") is None
	assert session.get_member(Q, INSTANCE, "kind").literal_kind == "str"


def test_same_name_functions_are_merged_as_overloads(session):
	mod = _module(
		session,
		'''
		from typing import overload

		@overload
		def conv(x: int) -> int: ...
		@overload
		def conv(x: str) -> str: ...
		def conv(x):
			"""Convert."""
			return x
		''',
	)
	conv = session.get_member(mod, UNQUALIFIED, "conv")
	assert isinstance(conv, Function)
	assert len(conv.signatures) == 3
	assert [s.parameters[0].annotation for s in conv.signatures] == ["int", "str", None]
	assert conv.signatures[0].format() == "(x: int) -> int"
	assert conv.documentation == "Convert."
	assert conv.decorators == ["overload"]


def test_last_declaration_wins(session):
	mod = _module(
		session,
		"""
		def thing(): pass
		thing = 3

		def other(): pass
		class other: pass

		def again(): pass
		again = None
		def again(a, b): pass
		""",
	)
	thing = session.get_member(mod, UNQUALIFIED, "thing")
	assert isinstance(thing, Variable)
	assert thing.literal_kind == "int"
	assert isinstance(session.get_member(mod, UNQUALIFIED, "other"), Type)
	again = session.get_member(mod, UNQUALIFIED, "again")
	assert isinstance(again, Function)
	assert [p.name for p in again.signatures[0].parameters] == ["a", "b"]
	assert len(again.signatures) == 1


def test_control_flow_is_lexical(session):
	mod = _module(
		session,
		"""
		import sys
		if sys.version_info >= (3,):
			def cond(): pass
		else:
			cond = None
		try:
			import json
		except ImportError:
			json = None
		for loop_var in range(3):
			pass
		""",
	)
	assert session.list_member_names(mod) == {"sys", "cond", "json", "loop_var"}
	assert isinstance(session.get_member(mod, UNQUALIFIED, "cond"), Variable)
	assert isinstance(session.get_member(mod, UNQUALIFIED, "json"), Variable)


def test_class_nested_in_function(session):
	mod = _module(
		session,
		"""
		def factory():
			class Local:
				def method(self): pass
			helper = 1
			return Local

		def make():
			class Base:
				def hello(self): pass
			class Derived(Base): pass
			return Derived
		""",
	)
	factory = session.get_member(mod, UNQUALIFIED, "factory")
	assert session.list_member_names(factory, UNQUALIFIED) == {"Local", "helper"}
	assert session.list_member_names(factory, TYPE) == frozenset()
	Local = session.get_member(factory, UNQUALIFIED, "Local")
	assert isinstance(Local, Type)
	assert Local.qualified_name == "m.factory.Local"
	assert session.list_member_names(Local) == {"method", PSEUDO_MEMBER}
	assert "Local" not in session.list_member_names(mod)

	make = session.get_member(mod, UNQUALIFIED, "make")
	Derived = session.get_member(make, UNQUALIFIED, "Derived")
	assert session.list_member_names(Derived, TYPE) == {"hello", PSEUDO_MEMBER}


def test_nested_class_sees_enclosing_class_body(session):
	mod = _module(
		session,
		"""
		class Outer:
			class Inner:
				def i(self): pass
			class Sub(Inner): pass
		""",
	)
	Outer = session.get_member(mod, UNQUALIFIED, "Outer")
	Sub = session.get_member(Outer, TYPE, "Sub")
	assert session.list_member_names(Sub, TYPE) == {"i", PSEUDO_MEMBER}


def test_variables_and_unknowns_have_no_members(session):
	mod = _module(session, "value = 1\nfrom nowhere import thing\n")
	value = session.get_member(mod, UNQUALIFIED, "value")
	assert session.list_member_names(value, INSTANCE) == frozenset()
	assert session.get_member(value, INSTANCE, "real") is None
	thing = session.get_member(mod, UNQUALIFIED, "thing")
	assert isinstance(thing, Unknown)
	assert session.list_member_names(thing) == frozenset()


@pytest.fixture
def shapes_session(make_tree):
	root = make_tree(
		{
			"shapes/__init__.py": """
				from .base import Shape
				from . import util
				__all__ = ["Shape", "Circle"]
				from .circle import *
			""",
			"shapes/base.py": """
				class Shape:
					def area(self): pass
			""",
			"shapes/circle.py": """
				from .base import Shape
				import math_missing
				__all__ = ["Circle"]
				class Circle(Shape):
					def radius(self): pass
				class _Hidden: pass
			""",
			"shapes/util.py": """
				def helper(): pass
			""",
			"shapes/fast.cpython-311-x86_64-linux-gnu.so": b"\x7fELF",
			"app.py": """
				import shapes.circle
				import shapes.base as sb
				from shapes import Shape, nothing_here
				from shapes.circle import *
				from shapes import fast
				class Square(sb.Shape): pass
				class Round(shapes.circle.Circle): pass
			""",
			"ping.py": "from pong import thing\n",
			"pong.py": "from ping import thing\n",
		}
	)
	with AnalysisSession([str(root)]) as s:
		yield s


def test_imports_resolve_across_modules(shapes_session):
	session = shapes_session
	app = session.import_module("app")
	base = session.import_module("shapes.base")
	Shape = session.get_member(base, UNQUALIFIED, "Shape")

	assert session.get_member(app, UNQUALIFIED, "Shape") is Shape
	assert session.get_member(app, UNQUALIFIED, "sb") is base
	shapes = session.get_member(app, UNQUALIFIED, "shapes")
	assert isinstance(shapes, Module)
	assert shapes.is_package
	assert shapes is session.import_module("shapes")

	Square = session.get_member(app, UNQUALIFIED, "Square")
	assert session.list_member_names(Square, TYPE) == {"area", PSEUDO_MEMBER}
	Round = session.get_member(app, UNQUALIFIED, "Round")
	assert session.list_member_names(Round, TYPE) == {"radius", "area", PSEUDO_MEMBER}


def test_star_imports_respect_all(shapes_session):
	session = shapes_session
	shapes = session.import_module("shapes")
	assert session.list_member_names(shapes) == {"Shape", "util", "__all__", "Circle"}
	Circle = session.get_member(shapes, UNQUALIFIED, "Circle")
	assert Circle.qualified_name == "shapes.circle.Circle"
	util = session.get_member(shapes, UNQUALIFIED, "util")
	assert isinstance(util, Module)
	assert util.name == "shapes.util"

	app = session.import_module("app")
	names = session.list_member_names(app)
	assert "Circle" in names
	assert "_Hidden" not in names
	assert session.get_member(app, UNQUALIFIED, "Circle") is Circle


def test_package_exposes_submodules(shapes_session):
	session = shapes_session
	shapes = session.import_module("shapes")
	circle = session.get_member(shapes, TYPE, "circle")
	assert isinstance(circle, Module)
	assert circle.name == "shapes.circle"
	assert "circle" not in session.list_member_names(shapes)


def test_unresolved_imports_degrade(shapes_session):
	session = shapes_session
	app = session.import_module("app")
	assert session.get_member(app, UNQUALIFIED, "nothing_here").kind == EntityKind.UNKNOWN

	circle = session.import_module("shapes.circle")
	missing = session.get_member(circle, UNQUALIFIED, "math_missing")
	assert isinstance(missing, Module)
	assert missing.synthetic
	assert session.list_member_names(missing) == frozenset()

	fast = session.get_member(app, UNQUALIFIED, "fast")
	assert isinstance(fast, Module)
	assert fast.synthetic
	assert fast.status == "native"


def test_circular_from_imports_terminate(shapes_session):
	session = shapes_session
	ping = session.import_module("ping")
	thing = session.get_member(ping, UNQUALIFIED, "thing")
	assert isinstance(thing, Unknown)
	assert session.list_member_names(ping) == {"thing"}
