"""Primary controller database model."""

from .base import Base
from .identity import IdentityColumns


class ControllerModel(IdentityColumns, Base):
    """Primary controller (school staff account) database model."""

    __tablename__ = "primary_controllers"
