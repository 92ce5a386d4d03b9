import json
from contextlib import aclosing

from fastapi import Body, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from gastimator.core.errors import GastimatorError, MalformedEncoding
from gastimator.core.gas import GasEstimateResponse
from gastimator.core.gastimator import Gastimator
from gastimator.core.logger import bind_request_id, get_logger
from gastimator.core.normalizer import from_raw, from_structured, normalize

log = get_logger(__name__)


def build_app(gastimator: Gastimator) -> FastAPI:
    app = FastAPI(title="gastimator")

    @app.middleware("http")
    async def request_id(request: Request, call_next):
        rid = bind_request_id(request.headers.get("x-request-id"))
        response = await call_next(request)
        response.headers["x-request-id"] = rid
        return response

    @app.exception_handler(GastimatorError)
    async def gastimator_error(request: Request, exc: GastimatorError):
        log.warning("REQUEST_REJECTED", path=request.url.path, error=exc.to_dict())
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    @app.post("/tx", response_model=GasEstimateResponse)
    async def estimate_tx(payload: dict = Body(...)):
        return await gastimator.estimate_gas(from_structured(payload))

    @app.post("/rlp", response_model=GasEstimateResponse)
    async def estimate_rlp(rlp: str = Body(..., embed=True)):
        return await gastimator.estimate_gas(from_raw(rlp))

    @app.websocket("/ws")
    async def estimate_stream(websocket: WebSocket):
        """
        One transaction per client message. Every partial estimate is pushed
        as it arrives, then the final one, or a single ``{"error": ...}``.
        """
        await websocket.accept()
        log.info("WS_CLIENT_CONNECTED")
        try:
            while True:
                text = await websocket.receive_text()
                bind_request_id()
                try:
                    tx = normalize(json.loads(text))
                    async with aclosing(gastimator.stream_estimates(tx)) as updates:
                        async for update in updates:
                            await websocket.send_json(update.model_dump(mode="json"))
                except json.JSONDecodeError as e:
                    error = MalformedEncoding(e.msg, length=len(text), position=e.pos)
                    await websocket.send_json({"error": error.to_dict()})
                except GastimatorError as e:
                    log.warning("WS_REQUEST_REJECTED", error=e.to_dict())
                    await websocket.send_json({"error": e.to_dict()})
        except WebSocketDisconnect:
            log.info("WS_CLIENT_DISCONNECTED")

    return app
