"""HTTP surface for the browser: relays the proxy handlers as JSON routes.

Run with ``uvicorn api:app``.
"""
from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Mapping

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from interaction_log import init_interaction_log
from services import fal_api, story_proxy
from services.proxy_common import ProxyResponse
from utils.network import client_ip_from_headers

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON body"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_interaction_log()
    yield


app = FastAPI(title="Story Writer API", lifespan=lifespan)


async def _read_json(request: Request) -> Mapping[str, Any] | None:
    raw = await request.body()
    try:
        data = json.loads(raw or b"{}")
    except (ValueError, UnicodeDecodeError):
        return None
    return data if isinstance(data, Mapping) else None


def _respond(result: ProxyResponse) -> JSONResponse:
    return JSONResponse(status_code=result.status, content=result.payload)


def _invalid_json() -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": INVALID_JSON_MESSAGE})


async def _relay(request: Request, handler: Callable[[Mapping[str, Any]], ProxyResponse]) -> JSONResponse:
    body = await _read_json(request)
    if body is None:
        logger.warning("Rejected non-JSON body on %s", request.url.path)
        return _invalid_json()
    return _respond(await run_in_threadpool(handler, body))


@app.get("/")
def health():
    return {"ok": True}


@app.post("/api/generate-video")
async def generate_video(request: Request):
    return await _relay(request, fal_api.generate_video)


@app.post("/api/generate-story-video")
async def generate_story_video(request: Request):
    return await _relay(request, fal_api.generate_story_video)


@app.post("/api/dify-chat")
async def dify_chat(request: Request):
    return await _relay(request, story_proxy.dify_chat)


@app.post("/api/dify-plot-summary")
async def dify_plot_summary(request: Request):
    return await _relay(request, story_proxy.dify_plot_summary)


@app.post("/api/dify-structure-examples")
async def dify_structure_examples(request: Request):
    return await _relay(request, story_proxy.dify_structure_examples)


@app.post("/api/dify-progress-mentor")
async def dify_progress_mentor(request: Request):
    return await _relay(request, story_proxy.dify_progress_mentor)


@app.post("/api/dify-writing-hint")
async def dify_writing_hint(request: Request):
    return await _relay(request, story_proxy.dify_writing_hint)


@app.post("/api/interactions")
async def save_interaction(request: Request):
    body = await _read_json(request)
    if body is None:
        return _invalid_json()
    peer = request.client.host if request.client else None
    client_ip = client_ip_from_headers(request.headers, fallback=peer)
    result = await run_in_threadpool(story_proxy.save_interaction, body, client_ip=client_ip)
    return _respond(result)


__all__ = ["app"]
