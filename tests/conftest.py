from pathlib import Path
from textwrap import dedent
from typing import Dict, Union

import pytest

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def data_dir() -> Path:
	return DATA_DIR


@pytest.fixture
def make_tree(tmp_path):
	"""Write {relative path: text or bytes} under tmp_path and return the root."""

	def _make(files: Dict[str, Union[str, bytes]], root: str = "lib") -> Path:
		base = tmp_path / root
		base.mkdir(parents=True, exist_ok=True)
		for rel, content in files.items():
			p = base / rel
			p.parent.mkdir(parents=True, exist_ok=True)
			if isinstance(content, bytes):
				p.write_bytes(content)
			else:
				p.write_text(dedent(content))
		return base

	return _make


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
	for name in ("PYSHAPE_SEARCH_PATHS", "PYSHAPE_VERSION", "PYSHAPE_WORKERS", "PYSHAPE_MODULE_TIMEOUT"):
		monkeypatch.delenv(name, raising=False)
