from __future__ import annotations

from dotenv import load_dotenv
from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from app.twstock_radar.core.config import ConfigValidationError, load_config_raw, save_config_raw
from app.twstock_radar.services import scan_status
from app.twstock_radar.services.pipeline import PipelineService

load_dotenv()

pipeline = PipelineService()

app = FastAPI(title="TW Stock Radar", version="0.1.0")


@app.exception_handler(ConfigValidationError)
async def config_error_handler(_: Request, exc: ConfigValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/stocks")
def api_stocks() -> JSONResponse:
    return JSONResponse(content=pipeline.get_stocks_complete().model_dump(mode="json"))


@app.get("/api/stocks/quick")
def api_stocks_quick() -> JSONResponse:
    return JSONResponse(content=pipeline.get_stocks_quick().model_dump(mode="json"))


@app.get("/api/stocks/{stock_id}")
def api_stock_detail(stock_id: str, technical: bool = False) -> JSONResponse:
    record = pipeline.get_stock(stock_id, include_technical=technical)
    if record is None:
        raise HTTPException(status_code=404, detail="Stock not in watch-list")
    return JSONResponse(content=record.model_dump(mode="json"))


@app.get("/api/summary")
def api_summary() -> JSONResponse:
    return JSONResponse(content=pipeline.get_portfolio_summary())


@app.get("/api/status")
def api_status() -> JSONResponse:
    return JSONResponse(content=scan_status.get_run_status())


@app.get("/api/config", response_class=PlainTextResponse)
def api_config_get() -> str:
    return load_config_raw()


@app.post("/api/config")
def api_config_save(yaml_text: str = Form(...)) -> JSONResponse:
    parsed = save_config_raw(yaml_text)
    return JSONResponse(content={"ok": True, "config": parsed.model_dump(mode="json")})
