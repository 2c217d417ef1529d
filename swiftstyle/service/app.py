"""FastAPI application entrypoint for swiftstyle service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ConfigurationError, LintConfig
from ..engine import Linter
from ..models import SourceFile
from ..reporter import Report
from ..rules import discover_rules


class SourcePayload(BaseModel):
    path: str
    text: str


class LintRequest(BaseModel):
    files: List[SourcePayload]
    rules: Dict[str, Any] = {}


class FindingResponse(BaseModel):
    path: str
    line: int
    column: int
    end_line: int
    end_column: int
    rule: str
    severity: str
    message: str


class LintResponse(BaseModel):
    findings: List[FindingResponse]
    counts: Dict[str, int]
    parse_failures: int
    files_checked: int
    cancelled: bool
    exit_code: int


class RuleResponse(BaseModel):
    id: str
    description: str
    default_severity: str


class HealthResponse(BaseModel):
    status: str


LinterFactory = Callable[[Mapping[str, Any]], Linter]


def _default_linter(rules: Mapping[str, Any]) -> Linter:
    return Linter.from_config(LintConfig(root=Path.cwd(), rules=dict(rules)))


def create_app(linter_factory: LinterFactory = _default_linter) -> FastAPI:
    """Create the FastAPI application exposing swiftstyle checks."""

    app = FastAPI(title="swiftstyle service", version="1.0.0")

    async def get_factory() -> LinterFactory:
        return linter_factory

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/rules", response_model=List[RuleResponse])
    async def list_rules() -> List[RuleResponse]:
        return [
            RuleResponse(
                id=rule.rule_id,
                description=rule.description,
                default_severity=rule.default_severity.value,
            )
            for rule in discover_rules()
        ]

    @app.post("/lint", response_model=LintResponse)
    async def lint(payload: LintRequest, factory: LinterFactory = Depends(get_factory)) -> LintResponse:
        # Configuration errors surface before any file is checked.
        linter = factory(payload.rules)
        sources = [SourceFile(path=item.path, text=item.text) for item in payload.files]

        def _run_lint() -> Report:
            return linter.lint_sources(sources)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:  # pragma: no cover - fallback path when not in async context
            report = _run_lint()
        else:
            report = await loop.run_in_executor(None, _run_lint)
        return LintResponse(**report.to_dict())

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(_: Any, exc: ConfigurationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000, app: Optional[FastAPI] = None) -> None:  # pragma: no cover - integration path
    try:
        import uvicorn
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install swiftstyle[service]`."
        ) from exc

    uvicorn.run(app or create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
