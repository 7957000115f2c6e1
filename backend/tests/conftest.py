"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach real services or use production secrets
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB_NAME", "backstage_test")
os.environ.setdefault("CLOUDINARY_CLOUD_NAME", "test-cloud")
os.environ.setdefault("PUBLIC_BASE_URL", "https://fansite.test")
os.environ.setdefault("LOG_FORMAT", "text")
