import os

# Keep the app's module-level engine off PostgreSQL during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
