"""Static analyzer for the declared shape of Python code.

Modules:
- versions.py: Grammar selection and the parser entry point.
- fs_scan.py: Module path resolution and library enumeration.
- ast_parse.py: Declaration extraction from syntax trees.
- entities.py: Module, Type, Function and Variable entities.
- builder.py: Member graph construction from declarations.
- resolution.py: Member lookup, inheritance walking and memoization.
- session.py: Session-scoped caches and module imports.
- scanner.py: Whole-library scans.
- summarize.py: Deterministic textual outlines.
"""

from .config import AnalysisConfig
from .entities import AccessContext, EntityKind, Function, Module, Type, Unknown, Variable
from .errors import LibraryScanError, ModuleLoadError, PyShapeError
from .scanner import scan_installation, scan_library
from .session import AnalysisSession
from .versions import LanguageVersion

__version__ = "0.1.0"

__all__ = [
	"AccessContext",
	"AnalysisConfig",
	"AnalysisSession",
	"EntityKind",
	"Function",
	"LanguageVersion",
	"LibraryScanError",
	"Module",
	"ModuleLoadError",
	"PyShapeError",
	"Type",
	"Unknown",
	"Variable",
	"scan_installation",
	"scan_library",
]
