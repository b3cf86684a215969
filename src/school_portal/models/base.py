"""Declarative base shared by all record store models."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
