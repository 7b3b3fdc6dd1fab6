import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_API_BASE_URL = "http://localhost:3001"
DEFAULT_PORT = 3001


class Settings(BaseModel):
    """
    Environment configuration shared by the blog server and the GitHub data layer.
    Call `load_dotenv()` before `from_env()` to pick up a local .env file.
    """
    model_config = ConfigDict(frozen=True)

    github_token: Optional[str] = Field(None, description="Optional; anonymous requests otherwise")
    github_api_url: str = DEFAULT_GITHUB_API_URL
    admin_secret: Optional[str] = None
    database_url: Optional[str] = None
    port: int = Field(DEFAULT_PORT, gt=0, lt=65536)
    api_base_url: str = DEFAULT_API_BASE_URL

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            github_token=os.getenv("GITHUB_TOKEN") or None,
            github_api_url=os.getenv("GITHUB_API_URL", DEFAULT_GITHUB_API_URL),
            admin_secret=os.getenv("ADMIN_SECRET") or None,
            database_url=os.getenv("DATABASE_URL") or None,
            port=int(os.getenv("PORT", DEFAULT_PORT)),
            api_base_url=os.getenv("API_BASE_URL", DEFAULT_API_BASE_URL),
        )
