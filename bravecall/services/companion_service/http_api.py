"""FastAPI server for the companion.

Endpoints:
- POST /chat: one conversational turn for a child
- GET /messages: a child's conversation history
- GET /missions: three brave missions drawn from recent conversation
- POST /profile, GET /profile: create/edit and read a child profile
- GET /parent/alerts: unreviewed tier-3 alerts for a child
- POST /parent/alerts/{alert_id}/review: mark an alert reviewed
- GET /parent/report: latest parent report, regenerated once it is stale
- GET /health, GET /ready: liveness and readiness checks

Repositories use the blocking database driver and are run in the
threadpool; the orchestrator and the model writers run on the event loop.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, time as dt_time, timedelta
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from bravecall.shared.database import ConnectionManager, NotFoundError, get_connection_manager
from bravecall.shared.models import ChildProfile, ConversationMessage, MessageRole
from bravecall.shared.utils import configure_pii_salt, hash_pii
from bravecall.services.escalation_service import (
    NotificationDispatcher,
    SnsSmsTransport,
    has_distress_pattern_over_days,
    looks_like_e164,
    window_start,
)
from bravecall.services.llm_service import (
    LLMConfig,
    MissionPlanner,
    ParentReportWriter,
    REPORT_MESSAGE_LIMIT,
    SpecialistResponder,
    create_llm,
)
from bravecall.services.routing_service import Router
from bravecall.services.safety_service import SafetyChecker
from bravecall.services.validation_service import ResponseValidator
from .config import MISSIONS_HISTORY_LIMIT, REPORT_MAX_AGE_DAYS, CompanionConfig
from .orchestrator import CompanionOrchestrator
from .repositories import (
    ChildProfileRepository,
    ConversationRepository,
    ParentAlertRepository,
    ParentReportRepository,
)

logger = logging.getLogger(__name__)

MESSAGE_PAGE_LIMIT = 200


class ChatRequest(BaseModel):
    """Request model for one chat turn."""
    child_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=10000)


class ChatResponse(BaseModel):
    """Response model for one chat turn."""
    response: str
    safe: bool
    agent: Optional[str] = None
    tier: int
    blocked: bool
    edited: bool


class ProfileRequest(BaseModel):
    """Request model for creating or editing a child profile."""
    child_id: str = Field(..., min_length=1)
    child_name: str = Field(..., min_length=1, max_length=100)
    child_age: Optional[int] = Field(None, ge=1, le=18)
    character_name: str = Field("Shelly", min_length=1, max_length=50)
    character_type: str = Field("Turtle", min_length=1, max_length=50)
    parent_contact: Optional[str] = None


@dataclass
class CompanionServices:
    """Collaborators the HTTP layer needs."""
    orchestrator: CompanionOrchestrator
    profiles: ChildProfileRepository
    conversations: ConversationRepository
    alerts: ParentAlertRepository
    reports: ParentReportRepository
    report_writer: ParentReportWriter
    mission_planner: MissionPlanner
    connection_manager: Optional[ConnectionManager] = None
    history_limit: int = 10
    report_max_age_days: int = REPORT_MAX_AGE_DAYS


def build_services(config: Optional[CompanionConfig] = None) -> CompanionServices:
    """Wire the production services from the environment.

    Raises:
        ValueError: If no PII salt is configured; every turn hashes ids
            before logging, so the process must not start without one
    """
    config = config or CompanionConfig.from_env()
    if not config.pii_salt:
        logger.critical("PII_SALT_MISSING", extra={"env_var": "PII_HASH_SALT"})
        raise ValueError("PII_HASH_SALT must be set before the companion can start")
    configure_pii_salt(config.pii_salt)

    connection_manager = get_connection_manager()
    alerts = ParentAlertRepository(connection_manager)
    llm = create_llm(config.llm or LLMConfig.from_env())

    orchestrator = CompanionOrchestrator(
        safety_checker=SafetyChecker(llm),
        router=Router(llm),
        responder=SpecialistResponder(llm),
        validator=ResponseValidator(llm),
        dispatcher=NotificationDispatcher(SnsSmsTransport(config.sms)),
        alert_store=alerts,
        flags=config.flags,
    )

    return CompanionServices(
        orchestrator=orchestrator,
        profiles=ChildProfileRepository(connection_manager),
        conversations=ConversationRepository(connection_manager),
        alerts=alerts,
        reports=ParentReportRepository(connection_manager),
        report_writer=ParentReportWriter(llm),
        mission_planner=MissionPlanner(llm),
        connection_manager=connection_manager,
        history_limit=config.history_limit,
        report_max_age_days=config.report_max_age_days,
    )


def pattern_over_days(
    services: CompanionServices,
    child_id: str,
    message: str,
    now: datetime,
) -> bool:
    """Multi-day distress signal from stored messages plus the current one."""
    since = datetime.combine(window_start(now), dt_time.min)
    messages = services.conversations.user_messages_since(child_id, since)
    messages.append(ConversationMessage(role=MessageRole.USER.value, content=message, timestamp=now))
    return has_distress_pattern_over_days(messages, now)


def create_app(services: Optional[CompanionServices] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    services = services or build_services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services.connection_manager is not None:
            await run_in_threadpool(services.connection_manager.initialize)
        yield
        await services.orchestrator.drain()
        if services.connection_manager is not None:
            services.connection_manager.close()

    app = FastAPI(
        title="Brave Call Companion API",
        description="Child-facing chat, missions and the parent portal",
        version="0.1.0",
        lifespan=lifespan,
    )

    async def require_profile(child_id: str) -> ChildProfile:
        profile = await run_in_threadpool(services.profiles.find_by_id, child_id)
        if profile is None:
            logger.warning("CHILD_NOT_FOUND", extra={"child_id_hash": hash_pii(child_id)})
            raise HTTPException(status_code=404, detail="Child not found")
        return profile

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        logger.warning("INVALID_REQUEST", extra={"path": request.url.path})
        return JSONResponse(status_code=400, content={"detail": "Invalid request"})

    @app.get("/health")
    async def health_check():
        """Liveness check."""
        return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}

    @app.get("/ready")
    async def readiness_check():
        """Readiness check: database reachable."""
        if services.connection_manager is None:
            return {"status": "ready"}

        db = await run_in_threadpool(services.connection_manager.health_check)
        if not db.get("healthy"):
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "database": db.get("status")},
            )
        return {"status": "ready", "database": db.get("status")}

    @app.post("/chat", response_model=ChatResponse)
    async def chat(request: ChatRequest):
        """Run one turn for a child and store both sides of it."""
        if not request.message.strip():
            raise HTTPException(status_code=400, detail="Message is empty")

        profile = await require_profile(request.child_id)

        now = datetime.utcnow()
        history = await run_in_threadpool(
            services.conversations.recent_messages, request.child_id, services.history_limit
        )
        pattern = await run_in_threadpool(
            pattern_over_days, services, request.child_id, request.message, now
        )

        result = await services.orchestrator.process_turn(
            child_id=request.child_id,
            user_message=request.message,
            context=profile.to_context(history),
            parent_contact=profile.parent_contact,
            pattern_over_days=pattern,
        )

        await run_in_threadpool(
            services.conversations.append, request.child_id, MessageRole.USER.value, request.message
        )
        await run_in_threadpool(
            services.conversations.append, request.child_id, MessageRole.MODEL.value, result.response_text
        )

        return ChatResponse(**result.to_dict())

    @app.get("/messages")
    async def list_messages(
        child_id: str = Query(..., min_length=1),
        limit: int = Query(50, ge=1, le=MESSAGE_PAGE_LIMIT),
    ):
        """Most recent messages for a child, oldest first."""
        messages = await run_in_threadpool(services.conversations.recent_messages, child_id, limit)
        return {"messages": [message.to_dict() for message in messages]}

    @app.get("/missions")
    async def list_missions(child_id: str = Query(..., min_length=1)):
        """Three brave missions drawn from the child's recent conversation."""
        profile = await require_profile(child_id)
        messages = await run_in_threadpool(
            services.conversations.recent_messages, child_id, MISSIONS_HISTORY_LIMIT
        )
        missions = await services.mission_planner.generate_missions(
            messages, profile.to_context([])
        )
        return {"missions": [mission.to_dict() for mission in missions]}

    @app.post("/profile")
    async def save_profile(request: ProfileRequest):
        """Create a child profile, or replace the existing one."""
        parent_contact = (request.parent_contact or "").strip() or None
        if parent_contact and not looks_like_e164(parent_contact):
            raise HTTPException(
                status_code=400,
                detail="Parent contact must be a phone number like +15551234567",
            )

        profile = ChildProfile(
            child_id=request.child_id,
            child_name=request.child_name.strip(),
            child_age=request.child_age,
            character_name=request.character_name.strip(),
            character_type=request.character_type.strip(),
            parent_contact=parent_contact,
        )
        stored = await run_in_threadpool(services.profiles.save, profile)
        return stored.to_dict()

    @app.get("/profile")
    async def get_profile(child_id: str = Query(..., min_length=1)):
        profile = await require_profile(child_id)
        return profile.to_dict()

    @app.get("/parent/alerts")
    async def list_alerts(child_id: str = Query(..., min_length=1)):
        """Unreviewed alerts for a child, newest first."""
        alerts = await run_in_threadpool(services.alerts.find_unreviewed, child_id)
        return {"alerts": [alert.to_dict() for alert in alerts]}

    @app.post("/parent/alerts/{alert_id}/review")
    async def review_alert(alert_id: str):
        """Mark an alert as reviewed by the parent."""
        try:
            alert = await run_in_threadpool(services.alerts.mark_reviewed, alert_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Alert not found")
        return alert.to_dict()

    @app.get("/parent/report")
    async def parent_report(child_id: str = Query(..., min_length=1)):
        """Latest report; a new one is written once the stored one is stale.

        A stale report is still served if writing a new one fails.
        """
        await require_profile(child_id)

        latest = await run_in_threadpool(services.reports.latest_for_child, child_id)
        max_age = timedelta(days=services.report_max_age_days)
        if latest is not None and datetime.utcnow() - latest.created_at < max_age:
            return latest.to_dict()

        messages = await run_in_threadpool(
            services.conversations.recent_messages, child_id, REPORT_MESSAGE_LIMIT
        )
        if not messages and latest is None:
            raise HTTPException(status_code=404, detail="No conversations to report on yet")

        report = await services.report_writer.write_report(child_id, messages)
        if report is None:
            if latest is not None:
                return latest.to_dict()
            raise HTTPException(status_code=503, detail="Could not generate report")

        stored = await run_in_threadpool(services.reports.save, report)
        return stored.to_dict()

    return app


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the API server."""
    import uvicorn
    app = create_app()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    run_server()
