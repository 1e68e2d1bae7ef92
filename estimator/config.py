from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./estimates.db"

    # Grouping defaults for work items without a phase or code
    DEFAULT_PHASE: str = "Без фазы"
    DEFAULT_SECTION_CODE: str = "00"

    # Metadata defaults applied when a persisted estimate leaves them blank
    DEFAULT_ESTIMATE_TYPE: str = "строительство"
    DEFAULT_STATUS: str = "draft"
    DEFAULT_CURRENCY: str = "RUB"
    DEFAULT_DESCRIPTION: str = "Смета создана в конструкторе смет"

    # Bounds for coefficient input typed by a user (apply() itself is unbounded)
    COEFFICIENT_MIN: float = -100.0
    COEFFICIENT_MAX: float = 1000.0

    class Config:
        env_file = ".env"


settings = Settings()
