from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str
    DB_URL: str

    # auth
    JWT_ISS: str = "restodesk"
    JWT_EXP_MIN: int = 12*60
    DEFAULT_PASSWORD: str = "111111"  # dev bootstrap and users created without one

    # runtime
    TZ: str = "UTC"
    LOG_LEVEL: str = "INFO"
    UPLOAD_DIR: str = "public/uploads"
    CORS_ORIGINS: list[str] = ["*"]  # JSON list in the environment

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
