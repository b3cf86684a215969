"""Identity record columns shared by students and primary controllers.

The primary key is the account id issued by the identity directory, so the
same value addresses the account in both systems.
"""

from sqlalchemy import Boolean, Column, String


class IdentityColumns:
    """Columns every identity table carries."""

    id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False)  # 'student' or 'controller'
    qr_token = Column(String, unique=True, index=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)  # ISO format string
    updated_at = Column(String, nullable=False)  # ISO format string
    last_login = Column(String, nullable=True)  # ISO format string
