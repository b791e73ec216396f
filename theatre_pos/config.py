from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str = "dev-secret-change-me"
    DB_URL: str = "sqlite:///./theatre_pos.db"
    JWT_ISS: str = "theatre-pos"
    JWT_EXP_MIN: int = 12*60

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # order-level flat rate, used when no default TaxConfiguration is active
    TAX_RATE: Decimal = Decimal("0.18")
    CURRENCY: str = "INR"
    CURRENCY_SYMBOL: str = "₹"

    # receipt text
    VENUE_NAME: str = "THE LOFT COIMBATORE"
    VENUE_TAGLINE: str = "Theatre Concessions"
    VENUE_URL: str = "https://theloftscreening.com"
    RECEIPT_FOOTER: list[str] = ["Thank you for visiting!", "Enjoy the show!"]

    PRINTER_TIMEOUT_SEC: float = 10.0
    PRINTER_DEFAULT_PORT: int = 9100
    PRINTER_DEFAULT_WIDTH: int = 80

    # Razorpay-compatible REST gateway
    GATEWAY_KEY_ID: str = ""
    GATEWAY_KEY_SECRET: str = ""
    GATEWAY_BASE_URL: str = "https://api.razorpay.com/v1"
    GATEWAY_TIMEOUT_SEC: float = 15.0

    # empty SMTP_HOST disables confirmation emails
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    SMTP_FROM: str = ""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
