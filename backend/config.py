import os
from dotenv import load_dotenv

# Values already present in the environment win over .env
load_dotenv(override=False)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# LLM Selection Configuration (narrative rewriting only)
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "none").lower() # Options: none, ollama, openrouter, openai
LLM_API_KEY = os.getenv("LLM_API_KEY") or os.getenv("OPENROUTER_API_KEY") # Fallback for backward compatibility
LLM_MODEL = os.getenv("LLM_MODEL") # Optional override
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

# Meal plan generation
DEFAULT_NUM_DAYS = int(os.getenv("DEFAULT_NUM_DAYS", "7"))
MAX_NUM_DAYS = int(os.getenv("MAX_NUM_DAYS", "14"))

# Validation loop
MAX_VALIDATION_ITERATIONS = int(os.getenv("MAX_VALIDATION_ITERATIONS", "3"))
# Budget units consumed by a failed integrity audit (legacy behaviour: 2)
INTEGRITY_FAILURE_ITERATION_COST = int(os.getenv("INTEGRITY_FAILURE_ITERATION_COST", "2"))
# Legacy behaviour leaves integrity_audit out of the post-exhaustion pass
FINAL_PASS_INCLUDES_INTEGRITY = _env_bool("FINAL_PASS_INCLUDES_INTEGRITY", False)
