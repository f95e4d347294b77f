import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    uri = os.getenv("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)

    SQLALCHEMY_DATABASE_URI = uri

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Prefix applied to contact mobiles stored without a country code
    DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "+91")

    PROFILE_FEED_LIMIT = int(os.getenv("PROFILE_FEED_LIMIT", "30"))
    PROFILE_LEDGER_LIMIT = int(os.getenv("PROFILE_LEDGER_LIMIT", "50"))
    DASHBOARD_FEED_LIMIT = int(os.getenv("DASHBOARD_FEED_LIMIT", "20"))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"
