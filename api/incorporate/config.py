import os

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def llm_settings(env=os.environ) -> dict:
    """Resolve the OpenAI-compatible endpoint for chat and embeddings.

    An explicit LLM_API_KEY uses LLM_BASE_URL as given. A bare GEMINI_API_KEY
    points at Gemini's OpenAI-compatible endpoint, a bare OPENAI_API_KEY at
    OpenAI. Embeddings follow the chat endpoint unless EMBEDDING_API_KEY is set.
    """
    if env.get("LLM_API_KEY"):
        api_key, base_url = env["LLM_API_KEY"], env.get("LLM_BASE_URL")
        model, embedding_model = "gemini-2.5-flash", "text-embedding-3-small"
    elif env.get("GEMINI_API_KEY"):
        api_key, base_url = env["GEMINI_API_KEY"], env.get("LLM_BASE_URL") or GEMINI_BASE_URL
        model, embedding_model = "gemini-2.5-flash", "gemini-embedding-001"
    else:
        api_key, base_url = env.get("OPENAI_API_KEY"), env.get("LLM_BASE_URL")
        model, embedding_model = "gpt-4o-mini", "text-embedding-3-small"

    if env.get("EMBEDDING_API_KEY"):
        embedding_key, embedding_base_url = env["EMBEDDING_API_KEY"], env.get("EMBEDDING_BASE_URL")
        embedding_model = "text-embedding-3-small"
    else:
        embedding_key, embedding_base_url = api_key, env.get("EMBEDDING_BASE_URL") or base_url

    return {
        "api_key": api_key,
        "base_url": base_url,
        "model": env.get("LLM_MODEL", model),
        "embedding_api_key": embedding_key,
        "embedding_base_url": embedding_base_url,
        "embedding_model": env.get("EMBEDDING_MODEL", embedding_model),
    }


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./incorporate.db")
SECRET_KEY = os.getenv("SECRET_KEY", "devsecret")
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(60 * 60 * 24 * 7)))
WEB_BASE_URL = os.getenv("WEB_BASE_URL", "http://localhost:5000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
# password-less login by email, for local development only
DEV_LOGIN_ENABLED = env_flag("DEV_LOGIN_ENABLED")

_llm = llm_settings()
LLM_API_KEY = _llm["api_key"]
LLM_BASE_URL = _llm["base_url"]
LLM_MODEL = _llm["model"]
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "7"))
LLM_MIN_BACKOFF = float(os.getenv("LLM_MIN_BACKOFF", "2"))
LLM_MAX_BACKOFF = float(os.getenv("LLM_MAX_BACKOFF", "128"))
LLM_BACKOFF_FACTOR = float(os.getenv("LLM_BACKOFF_FACTOR", "2"))

EMBEDDING_API_KEY = _llm["embedding_api_key"]
EMBEDDING_BASE_URL = _llm["embedding_base_url"]
EMBEDDING_MODEL = _llm["embedding_model"]
CHROMA_PATH = os.getenv("CHROMA_PATH", "./chroma_db")
CHROMA_COLLECTION = os.getenv("CHROMA_COLLECTION", "legal_documents")

TTS_MODEL = os.getenv("TTS_MODEL", "gpt-4o-mini-tts")
TTS_VOICE = os.getenv("TTS_VOICE", "alloy")
STT_MODEL = os.getenv("STT_MODEL", "whisper-1")

REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
WORKER_QUEUE = os.getenv("WORKER_QUEUE", "notifications")
