from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import uvicorn

from pyshape.config import AnalysisConfig
from pyshape.console import configure_logging
from pyshape.entities import AccessContext
from pyshape.errors import LibraryScanError
from pyshape.fs_scan import iter_modules_in_lib, iter_modules_in_paths, library_paths
from pyshape.scanner import LibraryScanner
from pyshape.session import AnalysisSession
from pyshape.summarize import describe_entity, summarize_module, summarize_scan

logger = logging.getLogger("pyshape.cli")


def _config(args: argparse.Namespace) -> AnalysisConfig:
	return AnalysisConfig.from_env(
		search_paths=args.search_path or None,
		version=args.version,
		workers=getattr(args, "workers", None),
		module_timeout=getattr(args, "timeout", None),
	)


def cmd_members(args: argparse.Namespace) -> int:
	context = AccessContext(args.context)
	with AnalysisSession.from_config(_config(args)) as session:
		entity = session.resolve(args.module, args.path or "", context)
		if entity is None:
			logger.error("cannot resolve %s", ".".join(p for p in (args.module, args.path) if p))
			return 1
		if args.json:
			print(json.dumps(describe_entity(session, entity, context).model_dump(), indent=2))
		else:
			for name in sorted(session.list_member_names(entity, context)):
				print(name)
	return 0


def cmd_describe(args: argparse.Namespace) -> int:
	with AnalysisSession.from_config(_config(args)) as session:
		module = session.import_module(args.module)
		if module is None:
			logger.error("module %s not found", args.module)
			return 1
		print(summarize_module(session, module))
	return 0


def cmd_scan(args: argparse.Namespace) -> int:
	config = _config(args)
	if args.prefix:
		config = config.model_copy(update={"search_paths": library_paths(args.prefix)})
		modules = iter_modules_in_lib(args.prefix)
	else:
		modules = iter_modules_in_paths(config.search_paths)
	with AnalysisSession.from_config(config) as session:
		scanner = LibraryScanner(session, workers=config.workers, module_timeout=config.module_timeout)
		report = scanner.scan(modules)
	if args.json:
		print(json.dumps(report.model_dump(), indent=2))
	else:
		print(summarize_scan(report))
	try:
		report.raise_for_status()
	except LibraryScanError as e:
		logger.error("%s", e)
		return 2
	return 0


def cmd_serve(args: argparse.Namespace) -> int:
	# The API process reads its configuration from the environment.
	if args.search_path:
		os.environ["PYSHAPE_SEARCH_PATHS"] = os.pathsep.join(args.search_path)
	if args.version:
		os.environ["PYSHAPE_VERSION"] = args.version
	uvicorn.run("api:app", host=args.host, port=args.port, reload=args.reload)
	return 0


def build_parser() -> argparse.ArgumentParser:
	common = argparse.ArgumentParser(add_help=False)
	common.add_argument("-s", "--search-path", action="append", help="Library root to search (repeatable)")
	common.add_argument("--version", help="Language version of the analyzed code, e.g. 3.11")
	common.add_argument("-v", "--verbose", action="store_true")
	common.add_argument("-q", "--quiet", action="store_true")

	parser = argparse.ArgumentParser(prog="pyshape")
	sub = parser.add_subparsers(dest="cmd", required=True)

	pm = sub.add_parser("members", parents=[common], help="List the members of a module or one of its members")
	pm.add_argument("module", help="Dotted module name")
	pm.add_argument("path", nargs="?", help="Dotted member path inside the module, e.g. C.method")
	pm.add_argument("--context", choices=[c.value for c in AccessContext], default=AccessContext.UNQUALIFIED.value)
	pm.add_argument("--json", action="store_true", help="Print a JSON description instead of names")
	pm.set_defaults(func=cmd_members)

	pd = sub.add_parser("describe", parents=[common], help="Print an outline of a module")
	pd.add_argument("module", help="Dotted module name")
	pd.set_defaults(func=cmd_describe)

	ps = sub.add_parser("scan", parents=[common], help="Resolve every module under the search paths")
	ps.add_argument("--prefix", help="Interpreter installation prefix to scan instead of --search-path")
	ps.add_argument("--workers", type=int)
	ps.add_argument("--timeout", type=float, help="Per-module time budget in seconds")
	ps.add_argument("--json", action="store_true")
	ps.set_defaults(func=cmd_scan)

	pv = sub.add_parser("serve", parents=[common], help="Run the HTTP API")
	pv.add_argument("--host", default="127.0.0.1")
	pv.add_argument("--port", type=int, default=8000)
	pv.add_argument("--reload", action="store_true")
	pv.set_defaults(func=cmd_serve)
	return parser


def main(argv: Optional[List[str]] = None) -> int:
	args = build_parser().parse_args(argv)
	configure_logging(verbose=args.verbose, quiet=args.quiet)
	return args.func(args)


if __name__ == "__main__":
	sys.exit(main())
