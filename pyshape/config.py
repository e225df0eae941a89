"""
Analysis configuration.

Values come from CLI flags or the environment (``PYSHAPE_*`` variables);
project configuration files are not read.
"""

from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .versions import DEFAULT_VERSION, LanguageVersion

ENV_PREFIX = "PYSHAPE_"


class AnalysisConfig(BaseModel):
	"""
	Settings for one analysis session or library scan.
	"""

	search_paths: List[str] = Field(default_factory=list, description="Ordered library roots searched for modules.")
	version: LanguageVersion = Field(DEFAULT_VERSION, description="Grammar used to parse every module.")
	workers: int = Field(1, ge=1, description="Threads used by a library scan.")
	module_timeout: Optional[float] = Field(
		None, gt=0, description="Seconds a single module may take during a scan before it is abandoned."
	)

	@field_validator("version", mode="before")
	@classmethod
	def validate_version(cls, v: object) -> object:
		if isinstance(v, str) and not isinstance(v, LanguageVersion):
			return LanguageVersion.parse(v)
		return v

	@field_validator("search_paths")
	@classmethod
	def normalize_paths(cls, v: List[str]) -> List[str]:
		seen: List[str] = []
		for p in v:
			full = os.path.abspath(p)
			if full not in seen:
				seen.append(full)
		return seen

	@classmethod
	def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: object) -> "AnalysisConfig":
		"""
		Builds a config from ``PYSHAPE_*`` variables; non-None overrides win.
		"""
		env = os.environ if environ is None else environ
		values: dict = {}
		raw_paths = env.get(ENV_PREFIX + "SEARCH_PATHS")
		if raw_paths:
			values["search_paths"] = [p for p in raw_paths.split(os.pathsep) if p]
		if env.get(ENV_PREFIX + "VERSION"):
			values["version"] = env[ENV_PREFIX + "VERSION"]
		if env.get(ENV_PREFIX + "WORKERS"):
			values["workers"] = int(env[ENV_PREFIX + "WORKERS"])
		if env.get(ENV_PREFIX + "MODULE_TIMEOUT"):
			values["module_timeout"] = float(env[ENV_PREFIX + "MODULE_TIMEOUT"])
		for key, value in overrides.items():
			if value is not None:
				values[key] = value
		return cls(**values)
