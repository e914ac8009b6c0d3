from pydantic_settings import BaseSettings
from pathlib import Path

# Get the project root directory (parent of studyplan folder)
PROJECT_ROOT = Path(__file__).parent.parent

class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""
    database_url: str = "sqlite:///./studyplan.db"
    log_level: str = "INFO"
    
    # Aggregation cache (today's plan / weekly view), in seconds
    plan_cache_ttl_seconds: int = 300
    
    # Behind-schedule policy
    late_tolerance_days: int = 0  # grace period after a week ends
    max_unlearned_modules: int = 0  # behind when more than this many are unlearned
    
    # Defaults shown when a course has no recommendation of its own
    default_recommended_hours_min: int = 6
    default_recommended_hours_max: int = 10
    
    class Config:
        env_file = str(PROJECT_ROOT / ".env")

settings = Settings()
