import json

import pytest

from cli import main


@pytest.fixture
def root(make_tree):
	return make_tree(
		{
			"mod.py": """
				class C:
					def m(self): pass
					value = 1
				def f(x, /, y=2): pass
			""",
		}
	)


def test_members(root, capsys):
	assert main(["members", "mod", "-s", str(root)]) == 0
	assert capsys.readouterr().out.split() == ["C", "f"]


def test_members_of_nested_path_as_json(root, capsys):
	assert main(["members", "mod", "C", "-s", str(root), "--context", "type", "--json"]) == 0
	body = json.loads(capsys.readouterr().out)
	assert body["kind"] == "type"
	assert body["members"] == ["__class__", "m", "value"]


def test_members_of_unknown_module(root):
	assert main(["members", "nope", "-s", str(root)]) == 1


def test_describe(root, capsys):
	assert main(["describe", "mod", "-s", str(root)]) == 0
	out = capsys.readouterr().out
	assert "class C" in out
	assert "def f(x, /, y=...)" in out
	assert "value: int" in out


def test_scan_exit_codes(root, make_tree, capsys):
	assert main(["scan", "-s", str(root)]) == 0
	assert "1 resolved" in capsys.readouterr().out

	natives = make_tree({"_only.pyd": b"MZ"}, root="natives")
	assert main(["scan", "-s", str(natives), "--json"]) == 2
	body = json.loads(capsys.readouterr().out)
	assert body["success"] is False
	assert body["skipped"] == ["_only"]
