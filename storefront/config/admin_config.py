from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "dev"                # "dev" / "staging" / "prod"
    SERVICE_NAME: str = "storefront"
    ENABLE_ADMIN: bool = True      # mounts /api/v1/admin back office routes
    ENABLE_METRICS: bool = True
    ADMIN_ROLE: str = "admin"

    class Config:
        env_file = ".env"
        extra="ignore"

admin_config = Settings()
