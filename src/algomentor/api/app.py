"""
FastAPI Application Module

Backend for the tutor's editor and chat panels. A session holds one
transcript in process memory, seeded with the tutor's greeting; every chat
message or code submission is appended, answered by the model, and the reply
appended after it.

Key Features:
- Async request handling with FastAPI
- Gemini-backed tutor replies with failures folded into reply text
- Structured logging and Prometheus metrics
- CORS and OpenTelemetry support
"""

import time
from contextlib import asynccontextmanager
from typing import List
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CollectorRegistry, Counter, generate_latest
from pydantic import BaseModel, Field, field_validator
from structlog import get_logger

from ..config import EnvironmentConfig, get_settings
from ..domain.models import Message, Session
from ..domain.submissions import DEFAULT_TOPIC, DSA_TOPICS, STARTER_CODE, format_code_submission
from ..repositories.memory import InMemoryRepository, SessionNotFound
from ..services.llm import LLMService
from ..services.personas import get_profile

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

REQUESTS = Counter("requests_total", "Total requests", registry=CUSTOM_REGISTRY)
ERRORS = Counter("errors_total", "Total unhandled request errors", registry=CUSTOM_REGISTRY)
PROCESSING_TIME = Counter("processing_time_seconds", "Total request processing time", registry=CUSTOM_REGISTRY)
REPLIES = Counter("tutor_replies_total", "Tutor replies appended to transcripts", registry=CUSTOM_REGISTRY)

logger = get_logger()


class MessageCreate(BaseModel):
    """Free-form chat message from the chat panel"""
    text: str

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


class CodeSubmission(BaseModel):
    """Code submitted from the editor under a topic"""
    code: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    language: str = "java"


class EditorDefaults(BaseModel):
    topics: List[str]
    default_topic: str
    starter_code: str


# Core service instances
settings = get_settings()
repository = InMemoryRepository()
llm_service = LLMService(
    EnvironmentConfig(),
    get_profile(settings.tutor_profile),
    model_name=settings.tutor_model,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Logs app startup/shutdown"""
    logger.info("application_startup_complete", profile=llm_service.profile.name)
    yield
    logger.info("application_shutdown_complete")


def get_repository() -> InMemoryRepository:
    """Returns the session storage instance"""
    return repository


def get_llm_service() -> LLMService:
    """Returns the tutor model service"""
    return llm_service


app = FastAPI(
    title="AlgoMentor Tutor API",
    description="Java and DSA tutoring chat backed by Gemini",
    version="0.1.0",
    lifespan=lifespan,
)

# Enable cross-origin requests from the browser UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Set up request tracing
FastAPIInstrumentor.instrument_app(app)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Tracks requests and processing time"""
    logger.info("request_started", path=request.url.path)
    REQUESTS.inc()
    started = time.perf_counter()
    try:
        return await call_next(request)
    except Exception as e:
        ERRORS.inc()
        logger.error("request_failed", path=request.url.path, error=str(e))
        raise
    finally:
        PROCESSING_TIME.inc(time.perf_counter() - started)


async def tutor_turn(
    session_id: UUID,
    user_message: Message,
    repository: InMemoryRepository,
    llm_service: LLMService,
) -> Message:
    """Append the user turn, ask the tutor, append and return its reply."""
    try:
        transcript = await repository.append_message(session_id, user_message)
    except SessionNotFound:
        logger.warning("session_not_found_for_message", session_id=str(session_id))
        raise HTTPException(status_code=404, detail="Session not found")

    reply = await llm_service.get_reply(transcript)
    ai_message = Message.from_assistant(reply)
    try:
        await repository.append_message(session_id, ai_message)
    except SessionNotFound:
        # Session ended while the reply was in flight; nothing left to append to.
        logger.warning("session_deleted_before_reply", session_id=str(session_id))
        return ai_message
    REPLIES.inc()

    logger.info(
        "message_processed",
        session_id=str(session_id),
        user_message_length=len(user_message.text),
        ai_response_length=len(reply),
    )
    return ai_message


@app.get("/editor", response_model=EditorDefaults)
async def editor_defaults() -> EditorDefaults:
    """Topics and starter code for the code editor"""
    return EditorDefaults(topics=DSA_TOPICS, default_topic=DEFAULT_TOPIC, starter_code=STARTER_CODE)


@app.post("/sessions", response_model=Session)
async def create_session(
    repository: InMemoryRepository = Depends(get_repository)
) -> Session:
    """Starts a new tutoring session with the greeting"""
    try:
        return await repository.create_session()
    except Exception as e:
        logger.error("create_session_error", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to create session")


@app.get("/sessions/{session_id}", response_model=Session)
async def get_session(
    session_id: UUID,
    repository: InMemoryRepository = Depends(get_repository)
) -> Session:
    """Retrieves a session and its full transcript"""
    session = await repository.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: UUID,
    repository: InMemoryRepository = Depends(get_repository)
) -> Response:
    """Ends a session and discards its transcript"""
    try:
        await repository.delete_session(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@app.get("/sessions/{session_id}/messages", response_model=List[Message])
async def get_messages(
    session_id: UUID,
    limit: int = 100,
    offset: int = 0,
    repository: InMemoryRepository = Depends(get_repository)
) -> List[Message]:
    """Gets paginated transcript messages, oldest first"""
    try:
        return await repository.get_messages(session_id, limit=limit, offset=offset)
    except SessionNotFound:
        logger.warning("session_not_found_for_messages", session_id=str(session_id))
        raise HTTPException(status_code=404, detail="Session not found")


@app.post("/sessions/{session_id}/messages", response_model=Message)
async def send_message(
    session_id: UUID,
    message: MessageCreate,
    repository: InMemoryRepository = Depends(get_repository),
    llm_service: LLMService = Depends(get_llm_service)
) -> Message:
    """Sends a chat message and returns the tutor's reply"""
    return await tutor_turn(session_id, Message.from_user(message.text), repository, llm_service)


@app.post("/sessions/{session_id}/code", response_model=Message)
async def submit_code(
    session_id: UUID,
    submission: CodeSubmission,
    repository: InMemoryRepository = Depends(get_repository),
    llm_service: LLMService = Depends(get_llm_service)
) -> Message:
    """Submits editor code under a topic and returns the tutor's review"""
    text = format_code_submission(submission.code, submission.topic, submission.language)
    logger.info("code_submitted", session_id=str(session_id), topic=submission.topic)
    return await tutor_turn(session_id, Message.from_user(text), repository, llm_service)


@app.get("/metrics")
async def metrics():
    """Provides Prometheus metrics for system monitoring"""
    return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")
