import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_gateway.config import CORS_ORIGINS, GROQ_API_KEY, PORT
from chat_gateway.database.mongodb import get_conversations_collection
from chat_gateway.models.exceptions import ChatError
from chat_gateway.routes.chat_routes import router as chat_router
from chat_gateway.services.conversation_store import ensure_indexes
from chat_gateway.services.personas import PersonaRegistry

# Logging setup
logger = logging.getLogger("main")

# ---------- Initialize FastAPI ----------
app = FastAPI(title="Chat Gateway API", version="1.0.0")

# middleware CORS (Cross-Origin Resource Sharing)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------- Register routers ----------
app.include_router(chat_router)                      # /chat...


# ---------- Error rendering: every failure is {"message": ...} ----------
@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    return JSONResponse(status_code=exc.http_status, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)},
                        headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected request body on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"message": "Invalid request body"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ---------- Startup ----------
@app.on_event("startup")
def startup_event():
    logger.info("Initializing chat gateway...")
    PersonaRegistry.default()  # fails fast if a use case has no persona
    if GROQ_API_KEY:
        logger.info("GROQ_API_KEY loaded successfully.")
    else:
        logger.error("GROQ_API_KEY is missing. Chat requests will fail until it is set.")
    try:
        ensure_indexes(get_conversations_collection())
    except Exception as e:
        logger.error(f"Could not ensure conversation indexes: {e}")


# ---------- Root health check ----------
@app.get("/")
def root():
    return {"message": "Chat Gateway API is running"}


@app.get("/health")
def health_check():
    return {"status": "OK", "llm_configured": bool(GROQ_API_KEY)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
