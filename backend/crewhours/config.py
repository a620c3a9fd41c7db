from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/crewhours.db"

    # Auth
    secret_key: str = "dev-secret-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7

    # Storage (signature images)
    storage_path: str = "./data/signatures"
    max_upload_size: int = 2 * 1024 * 1024  # 2MB

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]

    # Background jobs
    scheduler_enabled: bool = True

    # Approval workflow
    grace_period_minutes: int = 5

    # Invoicing
    vat_rate: float = 0.20
    transaction_tax_rate: float = 0.4  # percent
    invoice_due_days: int = 21
    due_soon_days: int = 3
    currency: str = "EUR"

    # Customer (the contracting company invoices are addressed to)
    company_name: str = "TKJD, s. r. o."
    company_street: str = "114 094 03 Zalobin"
    company_country: str = "Slovenska republika"
    company_ico: str = "47417528"
    company_dic: str = "2023943845"
    company_ic_dph: str = "SK2023943845"
    qr_recipient_name: str = "TKJD s.r.o."

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url
