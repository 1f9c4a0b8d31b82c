"""Provider endpoints and protocol constants."""

ANTHROPIC_VERSION = "2023-06-01"
VERTEX_ANTHROPIC_VERSION = "vertex-2023-10-16"

DEFAULT_MAX_TOKENS = 4096

# Seconds of upstream silence before a canonical stream sends a ping
STREAM_KEEPALIVE_INTERVAL = 1.0

OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"
POE_API_URL = "https://api.poe.com/v1/chat/completions"
OLLAMA_CLOUD_API_URL = "https://ollama.com/api/chat"
OPENAI_BASE_URL = "https://api.openai.com"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"
GLM_BASE_URL = "https://open.bigmodel.cn/api/paas/v4"
VERTEX_API_VERSION = "v1"

CODE_ASSIST_BASE_URL = "https://cloudcode-pa.googleapis.com"
CODE_ASSIST_STREAM_URL = (
    f"{CODE_ASSIST_BASE_URL}/v1internal:streamGenerateContent?alt=sse"
)
CODE_ASSIST_LOAD_URL = f"{CODE_ASSIST_BASE_URL}/v1internal:loadCodeAssist"

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Native Anthropic-compatible providers: name -> (display name, base url)
ANTHROPIC_COMPAT_PROVIDERS: dict[str, tuple[str, str]] = {
    "minimax": ("MiniMax", "https://api.minimax.io/anthropic"),
    "minimax-coding": ("MiniMax Coding", "https://api.minimax.io/anthropic"),
    "kimi": ("Kimi", "https://api.moonshot.ai/anthropic"),
    "kimi-coding": ("Kimi Coding", "https://api.kimi.com/coding"),
    "zai": ("Z.AI", "https://api.z.ai/api/anthropic"),
}

LOCAL_PROVIDER_URLS: dict[str, str] = {
    "ollama": "http://localhost:11434",
    "lmstudio": "http://localhost:1234",
    "vllm": "http://localhost:8000",
    "mlx": "http://localhost:8080",
}

GEMINI_REASONING_SUPPRESSION = (
    "CRITICAL INSTRUCTION FOR OUTPUT FORMAT:\n"
    "1. Keep ALL internal reasoning INTERNAL. Never output your thought process as visible text.\n"
    '2. Do NOT start responses with phrases like "Wait, I\'m...", "Let me think...", "Okay, so..."\n'
    "3. Only output: final responses, tool calls, and code. Nothing else."
)
