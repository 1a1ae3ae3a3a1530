import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name, default):
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "default-secret")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///certflow.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-secret")

    # Mail Configuration
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.zoho.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = _flag("MAIL_USE_TLS", "True")
    MAIL_USE_SSL = _flag("MAIL_USE_SSL", "False")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = (
        os.getenv("MAIL_SENDER_NAME", "Certification Team"),
        os.getenv("MAIL_SENDER_ADDRESS", "no-reply@example.com"),
    )

    # Payment (Stripe)
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_PRICE_ID = os.getenv("STRIPE_PRICE_ID")
    STRIPE_API_BASE = os.getenv("STRIPE_API_BASE", "https://api.stripe.com/v1")

    # Contract signing (SignNow)
    SIGNNOW_API_KEY = os.getenv("SIGNNOW_API_KEY")
    SIGNNOW_API_BASE = os.getenv("SIGNNOW_API_BASE", "https://api.signnow.com")
    SIGNNOW_TEMPLATE_ID = os.getenv("SIGNNOW_TEMPLATE_ID")

    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Default certification price per level, in cents
    CERTIFICATION_PRICING = {
        1: {"amount": 2999, "name": "Level 1 Certification"},
        2: {"amount": 4999, "name": "Level 2 Certification"},
        3: {"amount": 7999, "name": "Level 3 Certification"},
        4: {"amount": 9999, "name": "Level 4 Certification"},
    }


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    MAIL_SUPPRESS_SEND = True
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_test"
    STRIPE_PRICE_ID = None
    SIGNNOW_API_KEY = "signnow-test-key"
    SIGNNOW_TEMPLATE_ID = "template-123"
