from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Storage
    DATABASE_PATH: str = "fleet_invoicing.sqlite3"
    MIGRATION_PATH: str = "migrations/sqlite/001_initial_schema.sql"

    # Invoice defaults
    DEFAULT_PAYMENT_TERM_DAYS: int = 30
    DEFAULT_FOOTER_TEXT: str = (
        "We verzoeken u vriendelijk het bovenstaande bedrag voor de vervaldatum te voldoen "
        "op onze bankrekening onder vermelding van het factuurnummer."
    )

    # Audit export
    EXPORT_MAPPING_PATH: str = "backend/config/invoice_export.yaml"
    EXPORT_DIR: str = "exports"

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()

    def validate_production_config(self) -> None:
        """Refuse settings that are only meant for local use."""
        if self.ENV != "production":
            return

        if self.DEBUG:
            raise ValueError("DEBUG=true is not allowed in production.")

        if self.DATABASE_PATH == ":memory:":
            raise ValueError("An in-memory database cannot be used in production.")

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
