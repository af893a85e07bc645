from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = "Miraverse"
    ENV: str = "local"

    # llm
    LLM_PROVIDER: str = "gemini"  # gemini|openai|ollama
    GOOGLE_API_KEY: str | None = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MODEL: str = "gemini-3-pro-preview"
    GEMINI_IMAGE_MODEL: str = "gemini-3-pro-image-preview"
    GEMINI_TTS_MODEL: str = "gemini-2.5-pro-preview-tts"
    GEMINI_TEMPERATURE: float = 0.35
    GEMINI_TOP_P: float = 0.95
    GEMINI_TOP_K: int = 32
    GEMINI_MAX_OUTPUT_TOKENS: int = 8192
    # seconds; hosting platforms usually cut requests off well before this
    GEMINI_TIMEOUT: float = 180.0

    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1"
    OLLAMA_NUM_PREDICT: int = 4096
    OLLAMA_TEMPERATURE: float = 0.35
    OLLAMA_TOP_P: float = 0.95
    OLLAMA_KEEP_ALIVE: str = "30m"

    # context budgets (characters)
    SOURCE_CONTEXT_LIMIT: int = 18000
    SOURCE_CONTENT_LIMIT: int = 20000
    SUMMARY_INPUT_LIMIT: int = 12000
    PDF_MAX_PAGES: int = 20

    # speech
    TTS_VOICE: str = "Charon"
    TTS_HOST_A_VOICE: str = "Charon"
    TTS_HOST_B_VOICE: str = "Kore"
    TTS_SAMPLE_RATE: int = 24000
    TTS_CHANNELS: int = 1
    TTS_BITS_PER_SAMPLE: int = 16
    AUDIO_CHUNK_LINES: int = 12

    # studio behaviour
    INFOGRAPHIC_AS_IMAGE: bool = True
    SLIDES_WITH_IMAGES: bool = False

    # campus science page; empty means the bundled dataset
    CAMPUS_DATA_PATH: str = ""

    # CORS (for browser-based UIs)
    # Comma-separated list of allowed origins.
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8501,http://127.0.0.1:8501"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
