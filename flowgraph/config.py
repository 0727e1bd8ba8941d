from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List

# Get the repository root directory (parent of flowgraph directory)
REPO_ROOT = Path(__file__).parent.parent.absolute()

class Settings(BaseSettings):
    """Application settings."""
    
    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = True
    
    # Version and environment
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    
    # Workflow engine backend
    BACKEND_BASE_URL: str = "http://localhost:5000"
    BACKEND_TIMEOUT: float = 15.0
    
    # Storage settings
    WORKFLOW_STORAGE_DIR: str = str(REPO_ROOT / "storage" / "workflows")
    
    # LLM completion endpoint (OpenAI-compatible)
    LLM_API_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    LLM_API_KEYS: List[str] = []
    LLM_MODELS: List[str] = [
        "meta-llama/llama-3.3-70b-instruct:free",
        "google/gemma-3-27b-it:free",
        "mistralai/mistral-small-3.1-24b-instruct:free",
        "meta-llama/llama-3.1-8b-instruct:free",
    ]
    LLM_MAX_TOKENS: int = 4096
    LLM_TEMPERATURE: float = 0.3  # Low temperature for structured output
    LLM_REFERER: str = "http://localhost:8000"
    LLM_APP_TITLE: str = "FlowGraph Workflow AI"
    
    # Execution monitor timings (seconds)
    SIMULATION_STEP_SECONDS: float = 1.0
    SIMULATION_COMPLETE_DELAY: float = 0.6
    RESET_DELAY_SECONDS: float = 3.0
    POLLING_INTERVAL_SECONDS: float = 3.0
    RECONCILIATION_INTERVAL_SECONDS: float = 300.0
    RECONCILIATION_STEP_SECONDS: float = 0.5
    
    # Validation policy
    BLOCK_SAVE_ON_UNREACHABLE: bool = False
    
    class Config:
        env_file = ".env"

settings = Settings()
