"""Declarative base shared by all table models."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
