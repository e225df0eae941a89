from __future__ import annotations

from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from pyshape.config import AnalysisConfig
from pyshape.entities import AccessContext, Entity
from pyshape.errors import ModuleLoadError
from pyshape.model import MemberInfo, ScanReport
from pyshape.scanner import scan_library
from pyshape.session import AnalysisSession
from pyshape.summarize import describe_entity


class ScanRequest(BaseModel):
	search_paths: List[str]
	version: Optional[str] = None
	workers: int = 1
	module_timeout: Optional[float] = None


class MemberNames(BaseModel):
	qualified_name: str
	kind: str
	context: AccessContext
	members: List[str]


def create_app(config: Optional[AnalysisConfig] = None) -> FastAPI:
	config = config or AnalysisConfig.from_env()
	app = FastAPI(title="pyshape")
	app.state.config = config
	app.state.session = AnalysisSession.from_config(config)

	def _resolve(name: str, path: str, context: AccessContext) -> Entity:
		session: AnalysisSession = app.state.session
		try:
			module = session.import_module(name)
		except ModuleLoadError as e:
			raise HTTPException(status_code=400, detail=str(e))
		if module is None:
			raise HTTPException(status_code=404, detail=f"Module not found: {name}")
		entity: Optional[Entity] = module
		for part in [p for p in path.split(".") if p]:
			entity = session.get_member(entity, context, part)
			if entity is None:
				raise HTTPException(status_code=404, detail=f"Member not found: {name}.{path}")
		return entity

	@app.get("/modules/{name}", response_model=MemberInfo)
	def get_module(name: str) -> MemberInfo:
		return describe_entity(app.state.session, _resolve(name, "", AccessContext.UNQUALIFIED))

	@app.get("/modules/{name}/members", response_model=MemberNames)
	def list_members(name: str, path: str = "", context: AccessContext = AccessContext.UNQUALIFIED) -> MemberNames:
		entity = _resolve(name, path, context)
		names = app.state.session.list_member_names(entity, context)
		return MemberNames(qualified_name=entity.qualified_name, kind=entity.kind.value, context=context, members=sorted(names))

	@app.get("/modules/{name}/member", response_model=MemberInfo)
	def get_member(name: str, path: str, context: AccessContext = AccessContext.UNQUALIFIED) -> MemberInfo:
		return describe_entity(app.state.session, _resolve(name, path, context), context)

	@app.post("/scan", response_model=ScanReport)
	def scan(req: ScanRequest) -> ScanReport:
		try:
			scan_config = AnalysisConfig(
				search_paths=req.search_paths,
				version=req.version or config.version,
				workers=req.workers,
				module_timeout=req.module_timeout,
			)
		except ValueError as e:
			raise HTTPException(status_code=422, detail=str(e))
		return scan_library(
			scan_config.search_paths,
			scan_config.version,
			workers=scan_config.workers,
			module_timeout=scan_config.module_timeout,
		)

	@app.post("/session/reset")
	def reset_session() -> dict:
		app.state.session.close()
		app.state.session = AnalysisSession.from_config(config)
		return {"status": "ok"}

	return app


app = create_app()
