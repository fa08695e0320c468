"""FastAPI 应用工厂 + lifespan。"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException

from circuitwise.analyzer import CircuitAnalyzer, ImageUpload
from circuitwise.config import Settings, load_settings
from circuitwise.errors import AnalysisError
from circuitwise.ui.render import render_page
from circuitwise.ui.state import ToolState
from circuitwise.vision import VisionClient

logger = logging.getLogger(__name__)

_STATIC_DIR = Path(__file__).resolve().parent / "ui" / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动/关闭生命周期管理。"""
    settings: Settings = app.state.settings

    # 1. 日志
    logging.basicConfig(
        level=getattr(logging, settings.server.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    # 2. Vision 客户端（外部传入的实例由调用方负责关闭）
    vision: VisionClient | None = app.state.vision
    owns_vision = vision is None
    if vision is None:
        vision = VisionClient(settings.gemini, settings.resolve_api_key())
        await vision.start()

    # 3. Analyzer
    app.state.vision = vision
    app.state.analyzer = CircuitAnalyzer(vision, settings.analyzer)
    logger.info("CircuitWise ready: model=%s", vision.model)

    yield

    if owns_vision:
        await vision.close()


async def read_upload(form: FormData) -> ImageUpload | None:
    """取出 multipart 字段 image；缺失、不是文件或为空时返回 None。"""
    value = form.get("image")
    if not isinstance(value, UploadFile):
        return None
    data = await value.read()
    if not data:
        return None
    return ImageUpload.from_parts(value.filename, value.content_type, data)


def create_app(settings: Settings | None = None, vision: VisionClient | None = None) -> FastAPI:
    """创建 FastAPI 应用。vision 可替换为测试用实现。"""
    if settings is None:
        settings = load_settings()

    app = FastAPI(title="CircuitWise", lifespan=lifespan)
    app.state.settings = settings
    app.state.vision = vision
    app.mount("/static", StaticFiles(directory=_STATIC_DIR), name="static")

    # data: URL 比原图大约三分之一
    form_part_limit = settings.analyzer.max_image_bytes * 2

    @app.post("/api/circuit-analyzer")
    async def circuit_analyzer(request: Request):
        analyzer: CircuitAnalyzer = app.state.analyzer
        try:
            async with request.form() as form:
                upload = await read_upload(form)
            result = await analyzer.analyze(upload)
        except AnalysisError as e:
            if e.status_code >= 500:
                logger.error("Circuit Analyzer error: %s", e)
            return JSONResponse({"error": e.message}, status_code=e.status_code)
        except HTTPException as e:
            return JSONResponse({"error": str(e.detail)}, status_code=e.status_code)
        except Exception as e:
            logger.exception("Circuit Analyzer error")
            return JSONResponse({"error": str(e) or "Something went wrong"}, status_code=500)
        return JSONResponse(result.to_response())

    @app.get("/", response_class=HTMLResponse)
    async def index():
        return render_page(ToolState())

    @app.post("/", response_class=HTMLResponse)
    async def analyze_page(request: Request):
        analyzer: CircuitAnalyzer = app.state.analyzer
        state = ToolState()

        try:
            async with request.form(max_part_size=form_part_limit) as form:
                upload = await read_upload(form)
                if upload is None:
                    # 结果页重新分析：预览里保存的 data: URL
                    data_url = form.get("image_data")
                    if isinstance(data_url, str) and data_url:
                        name = form.get("image_name")
                        upload = ImageUpload.from_data_url(data_url, name if isinstance(name, str) else "")
        except HTTPException as e:
            state.reject_input(str(e.detail))
            return HTMLResponse(render_page(state), status_code=e.status_code)

        if upload is None:
            state.reject_input("No image uploaded")
            return HTMLResponse(render_page(state), status_code=400)
        if not state.select_image(upload):
            state.reject_input("Please choose an image file (PNG, JPG, WebP)")
            return HTMLResponse(render_page(state), status_code=400)

        token = state.begin_analysis()
        status_code = 200
        try:
            result = await analyzer.analyze(state.image)
        except AnalysisError as e:
            logger.error("Circuit Analyzer error: %s", e)
            state.fail(token, e.message)
            status_code = e.status_code
        except Exception as e:
            logger.exception("Circuit Analyzer error")
            state.fail(token, str(e))
            status_code = 500
        else:
            state.complete(token, result)
        return HTMLResponse(render_page(state), status_code=status_code)

    @app.get("/health")
    async def health():
        vision_client: VisionClient | None = app.state.vision
        return {
            "status": "ok",
            "model": vision_client.model if vision_client else settings.gemini.model,
            "credential": vision_client.has_credential if vision_client else False,
        }

    return app
