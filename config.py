import os
from dotenv import load_dotenv
load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///sac_portal.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    # sql | firestore
    STORE_BACKEND = os.getenv("STORE_BACKEND", "sql")
    FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS")
    # seats per group-interview slot; individual slots are always single-seat
    ROUND_ONE_CAPACITY = int(os.getenv("ROUND_ONE_CAPACITY", "5"))
    AGGREGATE_MAX_ATTEMPTS = int(os.getenv("AGGREGATE_MAX_ATTEMPTS", "3"))
    WTF_CSRF_ENABLED = os.getenv("WTF_CSRF_ENABLED", "1") == "1"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    REDIS_URL = None
    STORE_BACKEND = "sql"
    ROUND_ONE_CAPACITY = 5
    WTF_CSRF_ENABLED = False
