from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from agents.advisor import TravelAdvisor
from agents.survey_agent import SurveyAgent
from api.middleware.logging import RequestLoggingMiddleware
from api.routers import advisor, chat
from channels.web_chat import WebChatConnectionManager
from settings import SETTINGS


logging.basicConfig(
    level=getattr(logging, SETTINGS.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(survey_agent: SurveyAgent | None = None, travel_advisor: TravelAdvisor | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("tripassist_started")
        yield
        await app.state.survey_agent.drain()
        logger.info("tripassist_stopped")

    app = FastAPI(title="TripAssist Survey", version="0.1.0", debug=SETTINGS.debug, lifespan=lifespan)
    app.add_middleware(RequestLoggingMiddleware)
    app.state.survey_agent = survey_agent or SurveyAgent()
    app.state.advisor = travel_advisor or TravelAdvisor()
    app.state.web_chat_manager = WebChatConnectionManager()

    api_prefix = "/api/v1"
    app.include_router(chat.router, prefix=api_prefix)
    app.include_router(advisor.router, prefix=api_prefix)

    @app.get("/health")
    async def health():
        agent: SurveyAgent = app.state.survey_agent
        return {
            "ok": True,
            "service": "tripassist",
            "open_sessions": len(agent.session_memory),
            "advisor_model": app.state.advisor.model,
            "advisor_available": app.state.advisor.available(),
        }

    return app


app = create_app()
