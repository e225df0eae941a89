import os

import pytest
from pydantic import ValidationError

from pyshape.config import AnalysisConfig
from pyshape.versions import DEFAULT_VERSION, LanguageVersion


def test_defaults():
	config = AnalysisConfig()
	assert config.search_paths == []
	assert config.version == DEFAULT_VERSION
	assert config.workers == 1
	assert config.module_timeout is None


def test_from_env(tmp_path):
	a, b = str(tmp_path / "a"), str(tmp_path / "b")
	env = {
		"PYSHAPE_SEARCH_PATHS": os.pathsep.join([a, b, a]),
		"PYSHAPE_VERSION": "3.9",
		"PYSHAPE_WORKERS": "3",
		"PYSHAPE_MODULE_TIMEOUT": "2.5",
	}
	config = AnalysisConfig.from_env(env)
	assert config.search_paths == [a, b]
	assert config.version == LanguageVersion.V3_9
	assert config.workers == 3
	assert config.module_timeout == 2.5


def test_overrides_beat_environment():
	config = AnalysisConfig.from_env({"PYSHAPE_WORKERS": "3"}, workers=5, version=None)
	assert config.workers == 5
	assert config.version == DEFAULT_VERSION


@pytest.mark.parametrize("text", ["3.12", "312", "V3_12"])
def test_version_spellings(text):
	assert LanguageVersion.parse(text) == LanguageVersion.V3_12
	assert AnalysisConfig(version=text).version == LanguageVersion.V3_12


def test_invalid_values_are_rejected():
	with pytest.raises(ValidationError):
		AnalysisConfig(version="2.7")
	with pytest.raises(ValidationError):
		AnalysisConfig(workers=0)
	with pytest.raises(ValidationError):
		AnalysisConfig(module_timeout=0)
