from miraverse.core.config import settings
from miraverse.adapters.llm.gemini import GeminiLLM
from miraverse.adapters.llm.ollama import OllamaLLM
from miraverse.adapters.llm.openai import OpenAILLM
from miraverse.adapters.media.gemini_image import GeminiImageGenerator
from miraverse.adapters.media.gemini_speech import GeminiSpeechSynthesizer

def get_llm():
    if settings.LLM_PROVIDER == "openai":
        return OpenAILLM()
    if settings.LLM_PROVIDER == "ollama":
        return OllamaLLM()
    return GeminiLLM()

# Image and speech generation only exist on Gemini, whatever LLM_PROVIDER says.
def get_image_generator():
    return GeminiImageGenerator()

def get_speech_synthesizer():
    return GeminiSpeechSynthesizer()
