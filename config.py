import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev_secret_key_change_me")
    DEBUG = _env_bool("FLASK_DEBUG", False)

    # Nó único: SQLite local por padrão (PostgreSQL via DATABASE_URL)
    DB_PATH = os.environ.get("DB_PATH", os.path.join(basedir, "sm_cotacoes.db"))
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cookie da sessão da API (token assinado)
    AUTH_COOKIE_NAME = "token"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", True)
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "None")
    SESSION_TTL_DAYS = 7

    # Links públicos de cotação
    SHARE_TTL_DAYS = 7
    APP_URL = os.environ.get("APP_URL", "")

    # Custo do hash de senha (formato do werkzeug: "pbkdf2:sha256:600000", "scrypt:32768:8:1")
    PASSWORD_HASH_METHOD = os.environ.get("PASSWORD_HASH_METHOD", "scrypt")
    MIN_PASSWORD_LENGTH = 6

    # Upload do arquivo SPED
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    LOG_DIR = os.environ.get("LOG_DIR", os.path.join(basedir, "logs"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"

    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_SAMESITE = "Lax"

    # Hash barato para a suíte de testes
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"

    APP_URL = "http://testserver"
