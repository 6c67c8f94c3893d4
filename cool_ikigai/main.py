# cool_ikigai/main.py
"""
Cool Ikigai FastAPI application.

Exposes conversation sessions with Bob (start the Ikigai exercise, send
utterances, fetch speech, hang up, download the summary) and the Ikigai
result endpoints (save, email, WhatsApp, coaching booking).
"""

from fastapi import FastAPI, HTTPException, Depends, Request, Body
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.security import APIKeyHeader
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union
from contextlib import asynccontextmanager
from datetime import datetime
import base64
import os
import secrets

from cool_ikigai.agents.bob_agent import BobAgent
from cool_ikigai.core.config import settings, validate_required_settings
from cool_ikigai.core.exceptions import (
    NotActiveError,
    SessionError,
    TurnTakingError,
    ValidationError
)
from cool_ikigai.core.flow_engine import FlowEngine
from cool_ikigai.core.flow_handlers import FlowHandlers
from cool_ikigai.core.logging_config import setup_logging
from cool_ikigai.core.orchestrator import ConversationSession, SessionStore
from cool_ikigai.core.prompt_manager import get_prompt_manager
from cool_ikigai.core.rate_limit_config import get_real_ip, get_rate_limit_message, RATE_LIMIT_TIERS
from cool_ikigai.models.flow_models import Message, TextPayload
from cool_ikigai.services.delivery_service import DeliveryService
from cool_ikigai.services.document_service import DocumentService
from cool_ikigai.services.gpt_service import GPTService
from cool_ikigai.services.redis_service import RedisService
from cool_ikigai.services.speech_service import ClientPlaybackSink, ElevenLabsService

# Setup logging
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the shared services and the session store"""
    logger.info("=" * 60)
    logger.info(f"{settings.APP_NAME} API starting...")
    logger.info("=" * 60)

    if not validate_required_settings():
        logger.warning("Some integrations are not configured - Bob falls back to text and scripted replies")

    prompt_manager = get_prompt_manager()
    gpt_service = GPTService() if settings.OPENAI_API_KEY else None
    redis_service = RedisService()
    tts_service = ElevenLabsService()
    delivery_service = DeliveryService(prompt_manager=prompt_manager)
    document_service = DocumentService(prompt_manager=prompt_manager)

    bob_agent = BobAgent(prompt_manager=prompt_manager, gpt_service=gpt_service)
    flow_engine = FlowEngine(FlowHandlers(bob_agent=bob_agent, prompt_manager=prompt_manager))

    issues = flow_engine.validate_fsm()
    if issues:
        logger.warning(f"Flow engine issues: {issues}")

    def create_session(session_id: str) -> ConversationSession:
        return ConversationSession(
            session_id=session_id,
            prompt_manager=prompt_manager,
            bob_agent=bob_agent,
            flow_engine=flow_engine,
            sink=ClientPlaybackSink(tts_service=tts_service),
            redis_service=redis_service,
            delivery_service=delivery_service,
            document_service=document_service
        )

    app.state.session_store = SessionStore(create_session)
    app.state.redis_service = redis_service
    app.state.delivery_service = delivery_service

    logger.info(f"Flow engine: {len(flow_engine.transitions)} transitions")
    logger.info(f"Voice: {'ElevenLabs ' + tts_service.config.voice if tts_service.enabled else 'browser speech'}")
    logger.info("API ready")

    yield

    logger.info("Shutting down...")
    await app.state.session_store.shutdown()
    for service in (redis_service, tts_service, gpt_service):
        if service is not None:
            await service.shutdown()
    logger.info("Goodbye!")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Voice-driven Ikigai coaching with Bob",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None
)

# =============================================================================
# API KEY AUTHENTICATION
# =============================================================================

API_KEY_NAME = "X-API-Key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)


def get_api_key():
    """Get API key from settings or generate one for development"""
    api_key = settings.IKIGAI_API_KEY
    if not api_key:
        api_key = secrets.token_urlsafe(32)
        logger.warning("No IKIGAI_API_KEY set. Generated temporary key.")
        logger.warning("Set IKIGAI_API_KEY environment variable for production!")
        logger.warning(f"Temporary key (first 8 chars): {api_key[:8]}...")
    else:
        logger.info("API Key configured from environment")
    return api_key


VALID_API_KEY = get_api_key()


def get_safe_error_message(error: Exception, context: str = "") -> str:
    """Return a safe error message that doesn't expose internal details"""
    logger.error(f"Error in {context}: {type(error).__name__}: {str(error)}")

    if isinstance(error, HTTPException):
        return error.detail

    error_messages = {
        "ConnectionError": "Erreur de connexion. Merci de réessayer plus tard.",
        "TimeoutError": "La requête a pris trop de temps. Merci de réessayer.",
        "DocumentRenderError": "Le document n'a pas pu être généré. Merci de réessayer.",
    }

    return error_messages.get(type(error).__name__, "Une erreur est survenue. Merci de réessayer plus tard.")


async def verify_api_key(api_key: Optional[str] = Depends(api_key_header)):
    """Verify API key for protected endpoints"""
    if api_key is None:
        logger.warning("Request without API key")
        raise HTTPException(
            status_code=401,
            detail="Missing API Key. Include 'X-API-Key' header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    if api_key != VALID_API_KEY:
        logger.warning("Invalid API key attempt detected")
        raise HTTPException(
            status_code=401,
            detail="Invalid API Key",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    return api_key

# =============================================================================
# RATE LIMITING
# =============================================================================

limiter = Limiter(key_func=get_real_ip, enabled=settings.RATE_LIMIT_ENABLED)


def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Rate limit response with a French message"""
    response = PlainTextResponse(
        content=get_rate_limit_message("default"),
        status_code=429,
    )
    response.headers["Retry-After"] = "60"
    response.headers["X-RateLimit-Limit"] = str(getattr(exc, "limit", "N/A"))
    return response


app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)
app.state.limiter = limiter

RATE_LIMITS = RATE_LIMIT_TIERS.get(settings.RATE_LIMIT_TIER, RATE_LIMIT_TIERS["default"])

# =============================================================================
# ERROR MAPPING
# =============================================================================


@app.exception_handler(SessionError)
async def session_error_handler(request: Request, exc: SessionError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(TurnTakingError)
async def turn_taking_error_handler(request: Request, exc: TurnTakingError):
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.exception_handler(NotActiveError)
async def not_active_error_handler(request: Request, exc: NotActiveError):
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info(f"Rejected request: {exc}")
    return JSONResponse(status_code=400, content={"success": False, "message": exc.message})

# =============================================================================
# MIDDLEWARE
# =============================================================================


@app.middleware("http")
async def log_requests(request, call_next):
    """Log all incoming requests, health checks once"""
    path = request.url.path

    if path == "/health":
        if not hasattr(app.state, "health_logged"):
            logger.info(f"Health check endpoint hit: {path}")
            app.state.health_logged = True
    elif not path.endswith("/audio"):
        logger.info(f"Request: {request.method} {path}")

    return await call_next(request)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses"""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    # The client records the user's voice
    response.headers["Permissions-Policy"] = "geolocation=(), microphone=(self), camera=()"

    if "Server" in response.headers:
        del response.headers["Server"]

    return response


production_origins = [
    origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "").split(",") if origin.strip()
]

development_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000"
]

is_production = bool(production_origins) and not settings.DEBUG
allowed_origins = production_origins + ([] if is_production else development_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# =============================================================================
# API MODELS
# =============================================================================


class SessionResponse(BaseModel):
    session_id: str
    is_active: bool
    current_step: str
    is_speaking: bool
    options: List[str] = Field(default_factory=list)
    has_summary: bool = False
    coaching_url: Optional[str] = None
    transcript: List[Dict[str, Any]] = Field(default_factory=list)


class TurnResponse(BaseModel):
    session_id: str
    reply: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    current_step: str
    is_active: bool


class IkigaiSaveRequest(BaseModel):
    passions: Optional[str] = None
    talents: Optional[str] = None
    worldNeeds: Optional[str] = None
    monetization: Optional[str] = None
    summary: Optional[str] = None
    contactInfo: Optional[str] = None


class SendEmailRequest(BaseModel):
    email: Optional[str] = None
    ikigaiData: Optional[Dict[str, Any]] = None


class SendWhatsAppRequest(BaseModel):
    phoneNumber: Optional[str] = None
    ikigaiData: Optional[Dict[str, Any]] = None


class ScheduleCoachingRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phoneNumber: Optional[str] = None


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def turn_response(session: ConversationSession, reply: Optional[Message]) -> TurnResponse:
    state = session.machine.state
    return TurnResponse(
        session_id=session.session_id,
        reply=reply.text if reply else None,
        options=session.options,
        current_step=state.current_step.value,
        is_active=state.is_active
    )

# =============================================================================
# HEALTH
# =============================================================================


@app.get("/", status_code=200)
def read_root():
    return {"status": "ok", "version": "1.0.0", "service": "cool-ikigai"}


@app.head("/", status_code=200)
def head_root():
    return None


@app.get("/health", status_code=200)
async def health(request: Request):
    """Health with optional storage status"""
    redis_status = await request.app.state.redis_service.health_check()
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "sessions": len(request.app.state.session_store.sessions),
        "redis": redis_status["status"]
    }


@app.get("/healthz", response_class=PlainTextResponse, status_code=200)
def healthz():
    return "OK"


@app.get("/ping", status_code=200)
def ping():
    return "pong"


@app.get("/ready", status_code=200)
def ready():
    return {"ready": True}


@app.get("/alive", status_code=200)
def alive():
    return {"alive": True}

# =============================================================================
# SESSIONS
# =============================================================================


@app.post("/sessions", response_model=SessionResponse, dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["session_create"])
async def create_session(request: Request):
    """Open a new conversation with Bob"""
    session = get_session_store(request).create()
    logger.info(f"Session created: {session.session_id[:8]}...")
    return session.get_info()


@app.get("/sessions/{session_id}", response_model=SessionResponse, dependencies=[Depends(verify_api_key)])
async def get_session(session_id: str, request: Request):
    return get_session_store(request).get(session_id).get_info()


@app.post("/sessions/{session_id}/ikigai/start", response_model=TurnResponse, dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["message"])
async def start_ikigai(session_id: str, request: Request):
    """Start (or restart) the Ikigai exercise"""
    session = get_session_store(request).get(session_id)
    reply = await session.start_ikigai()
    return turn_response(session, reply)


@app.post("/sessions/{session_id}/messages", response_model=TurnResponse, dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["message"])
async def send_message(
    session_id: str,
    request: Request,
    payload: Union[TextPayload, str] = Body(...)
):
    """
    Send one utterance (typed or transcribed).

    The body is either a JSON string or an object with one of
    content / message / text.
    """
    session = get_session_store(request).get(session_id)
    reply = await session.handle_user_utterance(payload)
    return turn_response(session, reply)


@app.get("/sessions/{session_id}/audio", dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["audio"])
async def next_audio(session_id: str, request: Request):
    """
    Take the next utterance to play.

    Returns 204 when nothing is queued. audio is base64 MP3, or null
    when the client should use its own speech synthesis.
    """
    session = get_session_store(request).get(session_id)
    if not isinstance(session.sink, ClientPlaybackSink):
        return Response(status_code=204)

    chunk = session.sink.next_chunk()
    if chunk is None:
        return Response(status_code=204)

    return {
        "text": chunk.text,
        "audio": base64.b64encode(chunk.audio).decode("ascii") if chunk.audio else None,
        "media_type": chunk.media_type
    }


@app.post("/sessions/{session_id}/speech-ended", dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["audio"])
async def speech_ended(session_id: str, request: Request):
    """Playback finished or failed on the client"""
    session = get_session_store(request).get(session_id)
    session.notify_playback_ended()
    return {"success": True}


@app.post("/sessions/{session_id}/hangup", response_model=SessionResponse, dependencies=[Depends(verify_api_key)])
async def hang_up(session_id: str, request: Request):
    """End the call and forget the session; later requests get a 404"""
    store = get_session_store(request)
    session = store.get(session_id)
    await store.remove(session_id)
    return session.get_info()


@app.get("/sessions/{session_id}/summary/document", dependencies=[Depends(verify_api_key)])
async def download_summary(session_id: str, request: Request):
    """Download the Ikigai document"""
    session = get_session_store(request).get(session_id)
    if session.machine.state.ikigai_summary is None:
        session.render_summary()
        raise HTTPException(status_code=409, detail="Ikigai summary not composed yet")

    document = session.render_summary()
    if document is None:
        raise HTTPException(status_code=500, detail=get_safe_error_message(
            RuntimeError("document rendering failed"), "download_summary"
        ))

    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'}
    )

# =============================================================================
# IKIGAI RESULTS
# =============================================================================


@app.post("/ikigai/save", dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["results"])
async def save_ikigai(request: Request, req: IkigaiSaveRequest):
    result_id = await request.app.state.redis_service.save_ikigai_result(req.model_dump(exclude_none=True))
    return {"success": True, "message": "Ikigai saved successfully", "resultId": result_id}


@app.post("/ikigai/send-email", dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["results"])
async def send_email(request: Request, req: SendEmailRequest):
    return await request.app.state.delivery_service.send_by_email(req.email, req.ikigaiData)


@app.post("/ikigai/send-whatsapp", dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["results"])
async def send_whatsapp(request: Request, req: SendWhatsAppRequest):
    return await request.app.state.delivery_service.send_by_whatsapp(req.phoneNumber, req.ikigaiData)


@app.post("/ikigai/schedule-coaching", dependencies=[Depends(verify_api_key)])
@limiter.limit(RATE_LIMITS["results"])
async def schedule_coaching(request: Request, req: ScheduleCoachingRequest):
    return await request.app.state.delivery_service.schedule_coaching(req.name, req.email, req.phoneNumber)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting {settings.APP_NAME} on port {port}...")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
