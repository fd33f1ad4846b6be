from fastapi import FastAPI
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from sqlmodel import create_engine
import logging
import statsd
import time
import uvicorn

from support_chat.config import Settings
from support_chat.gemini import GeminiAssistant
from support_chat.models import SupportType
from support_chat.store import ChatStore

logger = logging.getLogger("support_chat.proxy")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

GENERIC_ERROR = "Failed to generate a response"


class HistoryTurn(BaseModel):
    role: str
    content: str


class TurnRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    support_type: str = Field(default=SupportType.GENERAL.value, alias="supportType")
    subject: Optional[str] = None
    session_history: List[HistoryTurn] = Field(default_factory=list, alias="sessionHistory")


def create_app(
    settings: Optional[Settings] = None,
    assistant: Optional[GeminiAssistant] = None,
    metrics: Optional[statsd.StatsClient] = None,
    store: Optional[ChatStore] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    # create all tables
    store = store or ChatStore(create_engine(settings.database_url))
    store.create_tables()

    logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s")

    metrics = metrics or statsd.StatsClient(
        host=settings.graphite_host, port=settings.graphite_port, prefix=settings.metrics_prefix
    )
    assistant = assistant or GeminiAssistant(
        metrics=metrics,
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
    )

    app = FastAPI(title="Student Support Chat Proxy")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.get("/health")
    def _health():
        return {"status": "ok"}

    @app.options("/gemini-chat")
    def _gemini_chat_options():
        return Response(status_code=200, headers=CORS_HEADERS)

    @app.post("/gemini-chat")
    async def _gemini_chat(req: Request):
        metrics.incr("gemini_chat")

        # time it starts handling a request
        start_time = time.time()

        try:
            body = await req.json()
            turn = TurnRequest.model_validate(body)
            reply = await run_in_threadpool(
                assistant.chat_completion,
                turn.message,
                SupportType.parse(turn.support_type),
                turn.subject,
                [t.model_dump() for t in turn.session_history],
            )
        except Exception as exc:
            logger.exception("Error in gemini-chat: %s", exc)
            return JSONResponse({"error": str(exc) or GENERIC_ERROR}, status_code=500, headers=CORS_HEADERS)
        finally:
            # log time it took to handle request
            metrics.timing("gemini_chat.timed", time.time() - start_time)

        return JSONResponse({"response": reply}, headers=CORS_HEADERS)

    return app


def run():
    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
