"""Language-version selection and the parser entry point.

A session is bound to one `LanguageVersion`. The version is passed straight
through to `ast.parse` as `feature_version` and is part of every module's
identity; nothing else in the analyzer branches on it.
"""

from __future__ import annotations

import ast
import sys
from enum import Enum
from typing import Tuple


class LanguageVersion(str, Enum):
	V3_7 = "3.7"
	V3_8 = "3.8"
	V3_9 = "3.9"
	V3_10 = "3.10"
	V3_11 = "3.11"
	V3_12 = "3.12"
	V3_13 = "3.13"

	@property
	def feature_version(self) -> Tuple[int, int]:
		major, minor = self.value.split(".")
		return int(major), int(minor)

	@classmethod
	def parse(cls, text: str) -> "LanguageVersion":
		"""Accept "3.11", "311" or "V3_11"."""
		cleaned = text.strip().upper().lstrip("V").replace("_", ".")
		if "." not in cleaned and len(cleaned) >= 2:
			cleaned = f"{cleaned[0]}.{cleaned[1:]}"
		for member in cls:
			if member.value == cleaned:
				return member
		raise ValueError(f"Unsupported language version: {text!r}")


DEFAULT_VERSION = LanguageVersion.V3_11


def parse(source: str, version: LanguageVersion, filename: str = "<unknown>") -> ast.Module:
	# The running parser cannot emulate a grammar newer than itself.
	feature_version = min(version.feature_version, tuple(sys.version_info[:2]))
	return ast.parse(source, filename=filename, feature_version=feature_version)
